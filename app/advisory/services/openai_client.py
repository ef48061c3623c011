"""
Purpose: Thin client wrapper around OpenAI's audio endpoints.
One place for auth, retries and response normalization for speech-to-text
(Whisper) and text-to-speech.

Testing: Mock SDK calls; the speech adapters accept any object exposing
`.client.audio` (or the SDK client itself).
"""

from __future__ import annotations
import time

from openai import OpenAI
from openai import APIError, RateLimitError, APITimeoutError


class OpenAIAudioClient:
    def __init__(self, api_key: str):
        self.api_key = api_key
        if not self.api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")
        try:
            self.client = OpenAI(api_key=self.api_key)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize OpenAI client: {e}") from e

    def with_retries(self, fn, *args, **kwargs):
        for delay in [0.5, 1.0, 2.0]:
            try:
                return fn(*args, **kwargs)
            except (RateLimitError, APITimeoutError, APIError):
                time.sleep(delay)
        return fn(*args, **kwargs)
