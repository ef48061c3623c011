"""
Purpose: Guardrails for typed input.
Content: early, predictable failures; prevent empty or oversized questions
before they enter the transcript.
"""

MAX_INPUT_CHARS = 2000


class DefaultSecurity:
    def validate_user_input(self, text: str) -> None:
        if not (text or "").strip():
            raise ValueError("Please enter a non-empty message.")
        if len(text) > MAX_INPUT_CHARS:
            raise ValueError("Your question is too long. Please shorten it.")

    def sanitize(self, text: str) -> str:
        return (text or "").replace("\x00", "").strip()
