"""
Purpose: speech-to-text integration. Allow voice-based questions.

The Streamlit recorder hands over finished WAV clips, so the recognizer works
as a one-shot mailbox: `feed()` deposits a clip, `listen()` transcribes the
next clip (waiting for one if needed), `stop()` ends a pending capture with
no result.
"""

from __future__ import annotations
import asyncio
import io
import logging
from typing import Optional

from ..errors import RecognitionError

logger = logging.getLogger(__name__)


def transcribe_wav_bytes(wav_bytes: bytes, llm, *, model: str = "whisper-1") -> str:
    """
    Transcribe WAV audio bytes to text using the given client (e.g., OpenAI)."""
    client = getattr(llm, "client", llm)
    with io.BytesIO(wav_bytes) as buf:
        buf.name = "input.wav"
        resp = client.audio.transcriptions.create(model=model, file=buf)
    return (getattr(resp, "text", None) or "").strip()


class WhisperSpeechRecognizer:
    def __init__(self, llm, *, model: str = "whisper-1"):
        self.llm = llm
        self.model = model
        self._clip: Optional[bytes] = None
        self._waiter: Optional[asyncio.Future] = None

    def is_supported(self) -> bool:
        return self.llm is not None

    def feed(self, wav_bytes: bytes) -> None:
        """Hand a recorded clip to the current (or next) capture."""
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(wav_bytes)
        else:
            self._clip = wav_bytes

    def stop(self) -> None:
        self._clip = None
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)

    async def listen(
        self, *, lang: str, continuous: bool = False, interim: bool = False
    ) -> Optional[str]:
        if not self.is_supported():
            raise RecognitionError("not-allowed", "No speech-to-text client configured.")
        clip, self._clip = self._clip, None
        if clip is None:
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                clip = await self._waiter
            finally:
                self._waiter = None
        if not clip:
            return None
        try:
            text = await asyncio.to_thread(
                transcribe_wav_bytes, clip, self.llm, model=self.model
            )
        except Exception as exc:
            raise RecognitionError("network", f"Transcription failed: {exc}") from exc
        logger.debug("Transcribed %d bytes of audio (%s)", len(clip), lang)
        return text or None
