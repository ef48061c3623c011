"""
Purpose: text-to-speech integration. Reads replies aloud.

OpenAISpeechEngine renders an utterance to MP3 bytes and hands them to a sink
(the Streamlit page queues them for an autoplaying <audio> tag). The utterance
"ends" once the audio has been delivered.
"""

from __future__ import annotations
import asyncio
import base64
import hashlib
import logging
import os
import tempfile
from typing import Callable, Optional

from ..errors import PlaybackError
from ..models import Utterance, Voice

logger = logging.getLogger(__name__)

OPENAI_VOICES = [
    Voice("nova", "en-US"),
    Voice("shimmer", "en-US"),
    Voice("alloy", "en-US"),
    Voice("onyx", "en-US"),
    Voice("echo", "en-US"),
]


def tts_bytes(
    text: str,
    llm,
    *,
    voice: str = "alloy",
    model: str = "gpt-4o-mini-tts",
    speed: float = 1.0,
    max_chars: int = 1200,
) -> bytes:
    """
    Return raw MP3 bytes. Tries streaming path; falls back to non-streaming.
    """
    safe = (text or "").strip()
    if not safe:
        return b""
    if len(safe) > max_chars:
        safe = safe[: max_chars - 1].rstrip() + "…"

    client = getattr(llm, "client", llm)

    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".mp3") as tmp:
            tmp_path = tmp.name
        try:
            with client.audio.speech.with_streaming_response.create(
                model=model, voice=voice, input=safe, speed=speed
            ) as resp:
                resp.stream_to_file(tmp_path)
            with open(tmp_path, "rb") as f:
                return f.read()
        finally:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
    except AttributeError:
        pass

    create = client.audio.speech.create
    retrying = getattr(llm, "with_retries", None)
    if retrying is not None:
        resp = retrying(create, model=model, voice=voice, input=safe, speed=speed)
    else:
        resp = create(model=model, voice=voice, input=safe, speed=speed)
    if hasattr(resp, "content"):
        return resp.content
    return b""


def autoplay_html(
    audio: bytes, *, mime: str = "audio/mpeg", element_id: Optional[str] = None
) -> str:
    """Hidden <audio> tag that plays a synthesized reply as soon as it renders.

    Older reply tags on the page are paused first so only one reply is heard.
    The element id defaults to a digest of the audio.
    """
    if not audio:
        return ""
    if not mime.startswith("audio/"):
        raise ValueError(f"Not an audio mime type: {mime!r}")
    el_id = element_id or f"vaca-reply-{hashlib.sha1(audio).hexdigest()[:12]}"
    src = f"data:{mime};base64,{base64.b64encode(audio).decode('ascii')}"
    return (
        f'<audio id="{el_id}" data-vaca-reply autoplay playsinline preload="auto" '
        f'style="display:none"><source src="{src}" type="{mime}"></audio>\n'
        "<script>\n"
        '  document.querySelectorAll("audio[data-vaca-reply]").forEach((el) => {\n'
        f'    if (el.id !== "{el_id}") el.pause();\n'
        "  });\n"
        f'  document.getElementById("{el_id}")?.play().catch(() => {{}});\n'
        "</script>\n"
    )



class OpenAISpeechEngine:
    def __init__(
        self,
        llm,
        sink: Callable[[bytes], None],
        *,
        model: str = "gpt-4o-mini-tts",
        default_voice: str = "alloy",
    ):
        self.llm = llm
        self.sink = sink
        self.model = model
        self.default_voice = default_voice
        self._generation = 0

    def voices(self) -> list[Voice]:
        return list(OPENAI_VOICES)

    async def voices_loaded(self) -> list[Voice]:
        return self.voices()

    async def speak(self, utterance: Utterance) -> None:
        if self.llm is None:
            raise PlaybackError("not-allowed", "No text-to-speech client configured.")
        self._generation += 1
        generation = self._generation
        voice = utterance.voice.name if utterance.voice else self.default_voice
        try:
            audio = await asyncio.to_thread(
                tts_bytes,
                utterance.text,
                self.llm,
                voice=voice,
                model=self.model,
                speed=utterance.rate,
            )
        except Exception as exc:
            raise PlaybackError("synthesis-failed", f"TTS failed: {exc}") from exc
        if generation != self._generation:
            raise PlaybackError("interrupted")
        if audio:
            self.sink(audio)

    def cancel(self) -> None:
        self._generation += 1
