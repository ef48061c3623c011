"""Fixed assistant sentences and the templates the resolver fills in."""

from __future__ import annotations

from ..models import CropKnowledgeEntry, WeatherSnapshot


ANALYZE_IMAGE_QUERY = "Analyze this image"

NO_CROP_DETECTED = (
    "⚠️ I couldn't detect any crop in this image. Please make sure your photo "
    "includes plants with visible green leaves or yellow/golden crops. Try "
    "capturing the image in good lighting with the crop filling most of the frame."
)

IMAGE_DIAGNOSIS = (
    "I've analyzed the photo. It looks like Early Blight on a Tomato leaf. "
    "You should remove the infected leaves immediately and apply a "
    "copper-based fungicide."
)

GREETING = (
    "Hello farmer! I am ready to help. You can ask me about Corn prices, "
    "Tomato pests, or the weather."
)

NOT_UNDERSTOOD = (
    "I'm not sure about that. Try asking: 'What is the price of Chili?' "
    "or 'How is the weather?'"
)

# Answered when the resolver itself fails or times out.
TURN_FAILED = (
    "Sorry, I couldn't work that out just now. Please try asking again in a moment."
)

# Canned user turns substituted when voice capture is not possible.
OFFLINE_QUERY = "What is the price of Chili?"
RECOGNITION_ERROR_QUERY = "How do I prevent root rot?"
UNSUPPORTED_CAPTURE_QUERY = "Is it a good time to plant Rice?"

# Follow-up handed over from the photo diagnosis result screen.
DIAGNOSIS_FOLLOWUP_QUERY = (
    "I found a problem with my tomato plant. It has Early Blight. "
    "What are the organic treatments?"
)


def crop_price(entry: CropKnowledgeEntry) -> str:
    return (
        f"Current market price for {entry.crop_name} is {entry.price}. "
        f"The trend is {entry.price_trend.value}."
    )


def crop_pest(entry: CropKnowledgeEntry) -> str:
    return f"For {entry.crop_name}, watch out for {entry.primary_pest}. {entry.care_advice}"


def crop_overview(entry: CropKnowledgeEntry) -> str:
    name = entry.crop_name[:1].upper() + entry.crop_name[1:]
    return f"{name} is trading at {entry.price}. {entry.care_advice}"


def city_not_found(city: str) -> str:
    return f'Could not find weather data for "{city}". Please try another city name.'


def weather_report(snapshot: WeatherSnapshot) -> str:
    return (
        f"The forecast for {snapshot.location} is {snapshot.condition.value.lower()} "
        f"with a temperature of {snapshot.temperature_c}°C. "
        f"Humidity is {snapshot.humidity_pct}%. {snapshot.rain_info}."
    )
