"""Errors raised by the generation client."""


class GenerationError(Exception):
    """Generation attempt failed; the user has to start over."""


class BlockedPromptError(GenerationError):
    """The provider refused the request."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"prompt was blocked: {reason}")


class EmptyResponseError(GenerationError):
    """The provider answered without any text part."""

    def __init__(self) -> None:
        super().__init__("no content found in API response")


class MalformedOutputError(GenerationError):
    """Structured output did not match the captions schema."""

    def __init__(self, raw_text: str, detail: str):
        self.raw_text = raw_text
        super().__init__(f"error parsing caption JSON: {detail}")
