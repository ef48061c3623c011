"""
UI layer
Purpose: Streamlit-only glue. Renders the conversation, collects voice, text
and photo input, and delegates all work to the advisory controller. Streamlit
reruns the script on every interaction, so the controller and its session
context live in st.session_state and photo hand-offs go through the
controller's idempotent initialize().
"""

import asyncio
import hashlib
import logging
import os

import streamlit as st
from audio_recorder_streamlit import audio_recorder

from advisory.config import AdvisorySettings
from advisory.controller import AdvisorySessionController
from advisory.errors import SessionBusyError
from advisory.models import Author, ImageRef, InputMode
from advisory.prompts import replies
from advisory.services.connectivity import connectivity_for
from advisory.services.crop_validator import ColorHeuristicValidator
from advisory.services.intent import LocalIntentResolver
from advisory.services.openai_client import OpenAIAudioClient
from advisory.services.playback import UtterancePlayer
from advisory.services.speech import OpenAISpeechEngine, autoplay_html
from advisory.services.voice import WhisperSpeechRecognizer
from advisory.services.weather import OpenMeteoClient

logging.basicConfig(
    level=os.getenv("VACA_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="VACA - Voice-Assisted Crop Advisory",
    page_icon="🌱",
    layout="centered",
)

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
st_session.setdefault("controller", None)
st_session.setdefault("api_key", os.getenv("OPENAI_API_KEY", ""))
st_session.setdefault("offline", False)
st_session.setdefault("speak_replies", True)
st_session.setdefault("tts_audio_queue", [])
st_session.setdefault("last_voice_sig", None)
st_session.setdefault("last_upload_sig", None)


# ---------------------------
# Helpers
# ---------------------------
def build_controller() -> AdvisorySessionController:
    """Wire concrete services into a fresh controller."""
    settings = AdvisorySettings.from_env()
    audio = None
    if st_session.api_key:
        try:
            audio = OpenAIAudioClient(st_session.api_key)
        except RuntimeError as e:
            st.toast(f"Voice features disabled: {e}", icon="⚠️")
    settings.autoplay = st_session.speak_replies and audio is not None

    weather = OpenMeteoClient(
        geocode_url=settings.geocode_url,
        forecast_url=settings.forecast_url,
        timeout=settings.weather_timeout,
    )
    engine = OpenAISpeechEngine(
        audio,
        st_session.tts_audio_queue.append,
        model=settings.tts_model,
        default_voice=settings.tts_voice,
    )
    previous = st_session.get("controller")
    return AdvisorySessionController(
        resolver=LocalIntentResolver(weather, thinking_delay=settings.thinking_delay),
        validator=ColorHeuristicValidator(),
        recognizer=WhisperSpeechRecognizer(audio, model=settings.stt_model),
        player=UtterancePlayer(engine, settings),
        connectivity=connectivity_for(settings, offline=st_session.offline),
        settings=settings,
        context=previous.state if previous else None,
    )


def get_controller() -> AdvisorySessionController:
    if st_session.controller is None:
        st_session.controller = build_controller()
    return st_session.controller


def run(make_coro):
    """Run one controller coroutine (plus any playback it starts) to completion."""
    controller = get_controller()

    async def _go():
        result = await make_coro()
        await controller.wait_for_playback()
        return result

    try:
        with st.spinner("Thinking…"):
            return asyncio.run(_go())
    except SessionBusyError as e:
        st.toast(str(e), icon="⏳")
    except ValueError as e:
        st.toast(str(e), icon="⚠️")
    return None


async def _play(message_id: int):
    task = get_controller().toggle_playback(message_id)
    if task is not None:
        await task


# ---------------------------
# Sidebar
# ---------------------------
with st.sidebar:
    st.header("Settings")
    key = st.text_input("OpenAI API key (voice)", value=st_session.api_key, type="password")
    offline = st.toggle("Simulate offline", value=st_session.offline)
    speak = st.toggle("🔊 Speak replies", value=st_session.speak_replies)
    if (key, offline, speak) != (
        st_session.api_key,
        st_session.offline,
        st_session.speak_replies,
    ):
        st_session.api_key, st_session.offline, st_session.speak_replies = (
            key,
            offline,
            speak,
        )
        st_session.controller = build_controller()

    if st.button("New conversation"):
        get_controller().reset()
        st_session.tts_audio_queue.clear()
        st.rerun()

controller = get_controller()

# ---------------------------
# Conversation
# ---------------------------
st.title("🌱 VACA AI Assistant")
st.caption("Ask about crop prices, pests or the weather, or send a photo of your crop.")

if st_session.tts_audio_queue:
    st.html(autoplay_html(st_session.tts_audio_queue.pop(0)))

transcript = st.container(height=460, border=True)
with transcript:
    for msg in controller.get_history():
        with st.chat_message(msg.author.value):
            if msg.image_ref is not None:
                st.image(msg.image_ref.data, width=240)
            st.markdown(msg.text)
            # run() waits for playback, so a reply never outlives this rerun
            if st_session.api_key and st.button("🔊", key=f"play_{msg.id}", help="Read aloud"):
                run(lambda m=msg: _play(m.id))
                st.rerun()


# ---------------------------
# Photo capture / upload
# ---------------------------
with st.expander("📷 Crop photo"):
    shot = st.camera_input("Take a photo")
    if shot is not None:
        # camera_input keeps returning the same frame on every rerun
        controller.hand_off_photo(ImageRef.from_bytes(shot.getvalue(), name="camera.png"))
        if run(controller.initialize) is not None:
            st.rerun()

    upload = st.file_uploader("…or upload one", type=["png", "jpg", "jpeg", "webp"])
    if upload is not None:
        data = upload.getvalue()
        sig = hashlib.sha1(data).hexdigest()
        if sig != st_session.last_upload_sig:
            st_session.last_upload_sig = sig
            ref = ImageRef.from_bytes(data, name=upload.name)
            run(lambda: controller.submit_photo(ref))
            st.rerun()

    last = controller.state.transcript.last()
    if last is not None and last.author is Author.ASSISTANT and last.text == replies.IMAGE_DIAGNOSIS:
        if st.button("Ask about organic treatments"):
            controller.hand_off_query(replies.DIAGNOSIS_FOLLOWUP_QUERY)
            run(controller.initialize)
            st.rerun()

# ---------------------------
# Voice / text input
# ---------------------------
mode = st.radio(
    "Input",
    [InputMode.VOICE.value, InputMode.TEXT.value],
    index=0 if controller.input_mode is InputMode.VOICE else 1,
    horizontal=True,
)
controller.set_input_mode(InputMode(mode))

if controller.input_mode is InputMode.VOICE:
    if controller.recognizer.is_supported() and not st_session.offline:
        wav_bytes = audio_recorder(
            pause_threshold=2,
            sample_rate=16_000,
            text="Tap to ask",
            icon_size="2x",
        )
        if wav_bytes:
            sig = hashlib.sha1(wav_bytes).hexdigest()
            if sig != st_session.last_voice_sig:
                st_session.last_voice_sig = sig
                controller.recognizer.feed(wav_bytes)
                run(controller.start_listening)
                st.rerun()
    elif st.button("🎙️ Tap to ask"):
        run(controller.start_listening)
        st.rerun()
else:
    raw = st.chat_input("Type your question…")
    if raw is not None:
        run(lambda: controller.submit_text(raw))
        st.rerun()
