"""
Purpose: single-flight playback of transcript messages.

At most one message is "active" at a time. Playing the active message again
stops it; playing another one cancels the current utterance first. Voice
metadata may not be loaded when playback is requested, in which case the
start is deferred until the engine reports voices (or a timeout passes) and
then issued exactly once.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Optional, Sequence

from ..config import AdvisorySettings
from ..errors import PlaybackError
from ..interfaces import SpeechEngine
from ..models import Utterance, Voice, VoicePreference

logger = logging.getLogger(__name__)


def _primary_lang(lang: str) -> str:
    return (lang or "").replace("_", "-").split("-")[0].lower()


def _is_gender_word(name: str, preference: VoicePreference) -> bool:
    words = name.lower().replace("-", " ").split()
    return preference.value in words


def select_voice(
    voices: Sequence[Voice],
    preference: VoicePreference,
    lang: str = "en-US",
    *,
    female_names: Sequence[str] = (),
    male_names: Sequence[str] = (),
) -> Optional[Voice]:
    """Pick a voice: allow-listed name, then same language, else engine default."""
    primary = _primary_lang(lang)
    allow = female_names if preference is VoicePreference.FEMALE else male_names

    for v in voices:
        if any(name in v.name for name in allow):
            return v
        if _is_gender_word(v.name, preference) and _primary_lang(v.lang) == primary:
            return v

    for v in voices:
        if v.lang == lang:
            return v
    for v in voices:
        if _primary_lang(v.lang) == primary:
            return v
    return None


class UtterancePlayer:
    def __init__(self, engine: SpeechEngine, settings: Optional[AdvisorySettings] = None):
        self.engine = engine
        self.settings = settings or AdvisorySettings()
        self._active_id: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def active_id(self) -> Optional[int]:
        return self._active_id

    def is_playing(self, message_id: int) -> bool:
        return self._active_id == message_id

    def play(
        self,
        message_id: int,
        text: str,
        preference: VoicePreference = VoicePreference.FEMALE,
    ) -> Optional[asyncio.Task]:
        """Toggle playback for a message. Must be called from a running loop.

        Returns the playback task, or None when the call stopped the message.
        """
        if self._active_id == message_id:
            logger.debug("Stop requested for active message %s", message_id)
            self.stop()
            return None

        self.stop()
        self._active_id = message_id
        self._task = asyncio.get_running_loop().create_task(
            self._run(message_id, text, preference)
        )
        return self._task

    def stop(self) -> None:
        """Cancel the current utterance and reset state immediately."""
        task, self._task = self._task, None
        if self._active_id is None and task is None:
            return
        self._active_id = None
        self.engine.cancel()
        if task is not None and not task.done():
            task.cancel()

    async def wait(self) -> None:
        """Wait for the current utterance, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _voices(self) -> list[Voice]:
        voices = self.engine.voices()
        if voices:
            return voices
        try:
            return await asyncio.wait_for(
                self.engine.voices_loaded(), timeout=self.settings.voice_load_timeout
            )
        except asyncio.TimeoutError:
            logger.info("Voices not loaded in time; using the engine default voice")
            return []

    async def _run(self, message_id: int, text: str, preference: VoicePreference) -> None:
        s = self.settings
        try:
            if s.playback_start_delay > 0:
                await asyncio.sleep(s.playback_start_delay)
            voice = select_voice(
                await self._voices(),
                preference,
                s.lang,
                female_names=s.female_voices,
                male_names=s.male_voices,
            )
            utterance = Utterance(
                text=text,
                voice=voice,
                lang=s.lang,
                rate=s.speech_rate,
                pitch=s.speech_pitch,
                volume=s.speech_volume,
            )
            retried = False
            while True:
                try:
                    await self.engine.speak(utterance)
                    logger.debug("Finished speaking message %s", message_id)
                    return
                except PlaybackError as exc:
                    if (
                        exc.code == "interrupted"
                        and not retried
                        and self._active_id == message_id
                    ):
                        retried = True
                        logger.info("Playback of message %s interrupted; retrying", message_id)
                        await asyncio.sleep(s.interrupted_retry_delay)
                        continue
                    logger.warning("Playback of message %s failed: %s", message_id, exc)
                    return
        finally:
            if self._task is asyncio.current_task():
                self._active_id = None
                self._task = None
