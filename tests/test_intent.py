import asyncio

import pytest

from advisory.models import GeoLocation, Intent, ValidationResult
from advisory.prompts import replies
from advisory.services.intent import LocalIntentResolver, classify, extract_city
from advisory.services.knowledge import CROP_KNOWLEDGE

from conftest import FakeWeather

NOT_CROP = ValidationResult(False, 0.01, 0.0, 0.01)
CROP = ValidationResult(True, 0.4, 0.1, 0.5)


def resolve(weather, query, **kwargs):
    resolver = LocalIntentResolver(weather, thinking_delay=0)
    return asyncio.run(resolver.resolve(query, **kwargs))


def test_chili_price_scenario(weather):
    reply = resolve(weather, "What is the price of Chili?")
    assert reply == "Current market price for chili is RM 12.50/kg. The trend is increasing."


@pytest.mark.parametrize("crop", list(CROP_KNOWLEDGE))
@pytest.mark.parametrize("word", ["price", "market", "cost"])
def test_price_reply_has_price_and_trend(weather, crop, word):
    entry = CROP_KNOWLEDGE[crop]
    reply = resolve(weather, f"{word} of {crop} today")
    assert entry.price in reply
    assert entry.price_trend.value in reply


def test_pest_reply(weather):
    reply = resolve(weather, "Any bug I should know about for my tomato?")
    assert reply == "For tomato, watch out for Late Blight. Avoid overhead watering to prevent fungus."


def test_overview_reply_capitalises_crop(weather):
    reply = resolve(weather, "tell me about spinach")
    assert reply == "Spinach is trading at RM 4.00/kg. Harvest early morning for best crispness."


def test_first_crop_in_dictionary_order_wins():
    match = classify("chili or corn price?")
    assert match.intent is Intent.CROP_PRICE
    assert match.crop.crop_name == "corn"


def test_crop_takes_precedence_over_weather():
    assert classify("will rain hurt my paddy").intent is Intent.CROP_OVERVIEW


def test_image_without_crop_colours_gets_warning(weather):
    reply = resolve(weather, "Analyze this image", is_image_query=True, validation=NOT_CROP)
    assert reply == replies.NO_CROP_DETECTED
    assert reply != replies.IMAGE_DIAGNOSIS


@pytest.mark.parametrize("validation", [CROP, None])
def test_image_diagnosis_when_valid_or_unvalidated(weather, validation):
    reply = resolve(weather, "Analyze this image", is_image_query=True, validation=validation)
    assert reply == replies.IMAGE_DIAGNOSIS


def test_unknown_city_keeps_typed_case():
    weather = FakeWeather(locations={})
    reply = resolve(weather, "weather in Ipoh")
    assert reply == 'Could not find weather data for "Ipoh". Please try another city name.'
    assert weather.geocoded == ["Ipoh"]
    assert weather.forecasts == []


def test_geocoding_failure_reads_as_city_not_found():
    reply = resolve(FakeWeather(geocode_error=True), "forecast for Penang")
    assert reply == replies.city_not_found("Penang")


def test_known_city_report():
    kl = GeoLocation(3.1412, 101.6865, "Kuala Lumpur", "Kuala Lumpur")
    weather = FakeWeather(locations={"Kuala Lumpur": kl})
    reply = resolve(weather, "What's the weather in Kuala Lumpur?")
    assert weather.forecasts == [(kl.lat, kl.lon)]
    assert reply == (
        "The forecast for Kuala Lumpur, Kuala Lumpur is partly cloudy with a "
        "temperature of 29°C. Humidity is 70%. No rain expected today."
    )


def test_no_city_uses_default_location(weather):
    reply = resolve(weather, "How is the weather?")
    assert weather.geocoded == []
    assert weather.forecasts == [(3.0738, 101.5183)]
    assert reply.startswith("The forecast for Subang Jaya is partly cloudy")


def test_forecast_failure_uses_fallback_snapshot():
    reply = resolve(FakeWeather(forecast_error=True), "Will it rain tomorrow?")
    assert reply == (
        "The forecast for Subang Jaya is partly cloudy with a temperature of 32°C. "
        "Humidity is 80%. Weather data unavailable."
    )


@pytest.mark.parametrize(
    "query, city",
    [
        ("weather in Ipoh", "Ipoh"),
        ("Weather for Penang?", "Penang"),
        ("what is the weather in Melaka", "Melaka"),
        ("forecast in Johor Bahru?", "Johor Bahru"),
        ("temperature in Kuantan", "Kuantan"),
        ("will it rain in Kedah?", "Kedah"),
        ("how is the weather", None),
    ],
)
def test_extract_city(query, city):
    assert extract_city(query) == city


@pytest.mark.parametrize("query", ["hello there", "Hi!", "oh HI"])
def test_greeting(weather, query):
    assert resolve(weather, query) == replies.GREETING


def test_greeting_needs_a_whole_word(weather):
    assert resolve(weather, "this is nice") == replies.NOT_UNDERSTOOD


def test_fallback_reply(weather):
    assert resolve(weather, "Is it a good time to plant Rice?") == replies.NOT_UNDERSTOOD
