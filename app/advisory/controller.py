"""
Purpose: The single orchestration point for an advisory session. Owns the
session context (transcript, status, hand-offs) and drives each turn:
capture -> [crop colour check] -> intent resolution -> append reply -> playback.

Key responsibilities:
- Keep SessionStatus consistent: idle -> listening -> processing -> idle.
- Refuse a second turn while one is processing (status guard, no locks; the
  session runs on one event loop).
- Substitute canned questions when capture is impossible (offline, no
  speech-to-text, recognition error) so every path still ends with a reply.
- Consume photo/question hand-offs from the capture flow at most once.
- Keep a single active utterance (via UtterancePlayer).

Testing: Pure unit tests with fakes for the recognizer, speech engine,
weather client and connectivity. No network or audio needed.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Optional

from .config import AdvisorySettings
from .errors import ImageDecodeError, RecognitionError, SessionBusyError
from .interfaces import Connectivity, CropValidator, IntentResolver, SpeechRecognizer
from .models import (
    Author,
    ImageRef,
    InputMode,
    Message,
    SessionContext,
    SessionStatus,
    ValidationResult,
    VoicePreference,
)
from .prompts import replies
from .services.playback import UtterancePlayer
from .services.security import DefaultSecurity

logger = logging.getLogger(__name__)


class AdvisorySessionController:
    def __init__(
        self,
        resolver: IntentResolver,
        validator: CropValidator,
        recognizer: SpeechRecognizer,
        player: UtterancePlayer,
        connectivity: Connectivity,
        *,
        settings: Optional[AdvisorySettings] = None,
        context: Optional[SessionContext] = None,
    ):
        self.resolver = resolver
        self.validator = validator
        self.recognizer = recognizer
        self.player = player
        self.connectivity = connectivity
        self.settings = settings or AdvisorySettings()
        self.security = DefaultSecurity()
        self.state = context if context is not None else SessionContext()

        self._capture_generation = 0

    # ---------------------------
    # State accessors
    # ---------------------------
    @property
    def status(self) -> SessionStatus:
        return self.state.status

    @property
    def input_mode(self) -> InputMode:
        return self.state.input_mode

    def set_input_mode(self, mode: InputMode) -> None:
        self.state.input_mode = InputMode(mode)

    def get_history(self) -> list[Message]:
        """Snapshot of the transcript, oldest first."""
        return self.state.transcript.as_list()

    def append_user(self, text: str, image_ref: Optional[ImageRef] = None) -> Message:
        """Append a user message to the transcript."""
        return self.state.transcript.append(Author.USER, text, image_ref)

    def append_assistant(self, text: str) -> Message:
        """Append an assistant message to the transcript."""
        return self.state.transcript.append(Author.ASSISTANT, text)

    def reset(self) -> None:
        """Stop audio and capture, then start over with an empty context."""
        self.player.stop()
        self._cancel_capture()
        self.state = SessionContext()

    # ---------------------------
    # Voice capture
    # ---------------------------
    async def toggle_listening(self) -> Optional[Message]:
        """Mic button: stop if listening, otherwise start a capture."""
        if self.state.status is SessionStatus.LISTENING:
            self.stop_listening()
            return None
        return await self.start_listening()

    async def start_listening(self) -> Optional[Message]:
        """
        Capture one spoken question and answer it.
        Returns the assistant reply, or None when capture ended without a
        result (stopped by the user, blank transcript, or superseded).
        """
        self._ensure_not_processing()
        self.player.stop()
        if self.state.status is SessionStatus.LISTENING:
            logger.debug("Capture already in progress")
            return None

        if not self.connectivity.is_online():
            logger.info("Device offline; answering a canned question instead")
            return await self._run_turn(
                replies.OFFLINE_QUERY, delay=self.settings.fallback_delay
            )
        if not self.recognizer.is_supported():
            logger.info("Speech-to-text unavailable; answering a canned question")
            return await self._run_turn(replies.UNSUPPORTED_CAPTURE_QUERY)

        self._capture_generation += 1
        generation = self._capture_generation
        self._set_status(SessionStatus.LISTENING)
        try:
            text = await self.recognizer.listen(
                lang=self.settings.lang, continuous=False, interim=False
            )
        except RecognitionError as exc:
            if not self._capture_current(generation):
                return None
            logger.warning("Speech recognition failed (%s); using fallback question", exc.code)
            return await self._run_turn(
                replies.RECOGNITION_ERROR_QUERY, delay=self.settings.fallback_delay
            )
        except BaseException:
            if self._capture_current(generation):
                self._set_status(SessionStatus.IDLE)
            raise

        if not self._capture_current(generation):
            logger.debug("Discarding capture result that arrived after stop")
            return None
        text = (text or "").strip()
        if not text:
            self._set_status(SessionStatus.IDLE)
            return None
        return await self._run_turn(text)

    def stop_listening(self) -> bool:
        """Stop a running capture. Returns False if nothing was listening."""
        if self.state.status is not SessionStatus.LISTENING:
            return False
        self._cancel_capture()
        return True

    # ---------------------------
    # Typed text and photos
    # ---------------------------
    async def submit_text(self, text: str) -> Message:
        """Answer a typed question. Raises ValueError for empty/oversized input."""
        self._ensure_not_processing()
        self.security.validate_user_input(text)
        clean = self.security.sanitize(text)
        self._cancel_capture()
        self.state.input_mode = InputMode.VOICE
        return await self._run_turn(clean)

    async def submit_photo(self, ref: ImageRef) -> Message:
        """Answer an uploaded photo directly ("Analyze this image")."""
        self._ensure_not_processing()
        self._cancel_capture()
        return await self._run_turn(replies.ANALYZE_IMAGE_QUERY, image_ref=ref)

    # ---------------------------
    # Hand-offs from the capture / diagnosis flow
    # ---------------------------
    def hand_off_photo(self, ref: ImageRef) -> None:
        self.state.pending_photo = ref

    def hand_off_query(self, text: str) -> None:
        self.state.pending_query = text

    async def initialize(self) -> Optional[Message]:
        """
        Run when the session view (re)mounts. Consumes a pending follow-up
        question, else a pending photo. A photo whose key was already consumed
        is dropped, and no second "Analyze this image" message is added when
        the transcript already carries that image. A hand-off that will be
        answered ends any running capture first.
        """
        self.player.stop()
        ctx = self.state
        if ctx.status is SessionStatus.PROCESSING:
            return None
        if ctx.pending_query:
            query, ctx.pending_query = ctx.pending_query, None
            self._cancel_capture()
            return await self._run_turn(query)

        ref = ctx.pending_photo
        if ref is None:
            return None
        ctx.pending_photo = None
        if ref.key == ctx.last_consumed_photo_key:
            logger.debug("Photo %s already analysed; skipping", ref.key[:8])
            return None
        ctx.last_consumed_photo_key = ref.key
        self._cancel_capture()
        return await self._run_turn(
            replies.ANALYZE_IMAGE_QUERY,
            image_ref=ref,
            append_user=not ctx.transcript.has_image(ref),
        )

    # ---------------------------
    # Playback
    # ---------------------------
    def toggle_playback(self, message_id: int) -> Optional[asyncio.Task]:
        """Play a message, or stop it if it is the one currently playing."""
        msg = self.state.transcript.get(message_id)
        if msg is None:
            raise KeyError(f"Message {message_id} not found")
        preference = (
            VoicePreference.FEMALE
            if msg.author is Author.ASSISTANT
            else VoicePreference.MALE
        )
        return self.player.play(msg.id, msg.text, preference)

    async def wait_for_playback(self) -> None:
        await self.player.wait()

    # ---------------------------
    # Internals
    # ---------------------------
    def _set_status(self, status: SessionStatus) -> None:
        if self.state.status is not status:
            logger.debug("Session %s -> %s", self.state.status.value, status.value)
        self.state.status = status

    def _ensure_not_processing(self) -> None:
        if self.state.status is SessionStatus.PROCESSING:
            raise SessionBusyError("Still answering the previous question.")

    def _capture_current(self, generation: int) -> bool:
        return (
            generation == self._capture_generation
            and self.state.status is SessionStatus.LISTENING
        )

    def _cancel_capture(self) -> None:
        if self.state.status is not SessionStatus.LISTENING:
            return
        self._capture_generation += 1
        self.recognizer.stop()
        self._set_status(SessionStatus.IDLE)

    async def _run_turn(
        self,
        query: str,
        *,
        image_ref: Optional[ImageRef] = None,
        append_user: bool = True,
        delay: float = 0.0,
    ) -> Message:
        """One processing phase. Always ends idle; appends a reply if it completes."""
        self._ensure_not_processing()
        self._set_status(SessionStatus.PROCESSING)
        try:
            if delay > 0:
                await asyncio.sleep(delay)
            if append_user:
                self.append_user(query, image_ref)

            validation = None
            if image_ref is not None:
                validation = await self._validate(image_ref)
            reply = await self._resolve(query, image_ref is not None, validation)
            msg = self.append_assistant(reply)
        finally:
            self._set_status(SessionStatus.IDLE)

        if self.settings.autoplay:
            self.player.play(msg.id, msg.text, VoicePreference.FEMALE)
        return msg

    async def _validate(self, ref: ImageRef) -> Optional[ValidationResult]:
        try:
            result = await asyncio.to_thread(self.validator.validate_ref, ref)
        except ImageDecodeError as exc:
            logger.warning("Crop colour check skipped: %s", exc)
            return None
        logger.debug(
            "Photo %s crop colour fraction %.3f (crop-like=%s)",
            ref.key[:8],
            result.combined_fraction,
            result.is_crop_like,
        )
        return result

    async def _resolve(
        self, query: str, is_image_query: bool, validation: Optional[ValidationResult]
    ) -> str:
        try:
            reply = await asyncio.wait_for(
                self.resolver.resolve(query, is_image_query, validation),
                timeout=self.settings.turn_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Answering %r timed out after %.1fs", query, self.settings.turn_timeout)
            return replies.TURN_FAILED
        except Exception:
            logger.exception("Answering %r failed", query)
            return replies.TURN_FAILED
        return reply or replies.TURN_FAILED
