"""Typed errors for SnapEdit.

Every error carries the HTTP status it maps to and a message that is safe to
show to the end user.  The API layer converts them to ``{"error": message}``
responses; nothing here is retried.
"""


class SnapEditError(Exception):
    """Base exception for all SnapEdit errors."""

    status_code: int = 500
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SnapEditError):
    """Raised when a required input is missing or malformed."""

    status_code = 400
    default_message = "Invalid input"


class NotFoundError(SnapEditError):
    """Raised when no image record exists for an id."""

    status_code = 404
    default_message = "Image not found"

    def __init__(self, image_id: str) -> None:
        self.image_id = image_id
        super().__init__(self.default_message)


class StorageError(SnapEditError):
    """Raised when the storage engine fails.

    The message is generic on purpose; engine details go to the log only.
    """

    status_code = 500
    default_message = "Storage failure"


class ConfigurationError(SnapEditError):
    """Raised when the Gemini credential is not configured."""

    status_code = 503
    default_message = "The image model is not configured: set GEMINI_API_KEY"


class GenerationError(SnapEditError):
    """Base class for problems with the image model's response."""

    status_code = 502
    default_message = "The image model did not return an image"


class EmptyResponseError(GenerationError):
    """Raised when the model returned no candidates or no usable content."""

    default_message = "The image model returned an empty response. Try a different prompt."


class SafetyBlockedError(GenerationError):
    """Raised when the request or the response was blocked by safety filters."""

    status_code = 422
    default_message = "The request was blocked by the image model's safety filters."

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        message = self.default_message
        if reason:
            message = f"{message} Reason: {reason}"
        super().__init__(message)


class UnexpectedTextResponseError(GenerationError):
    """Raised when the model answered with text instead of an image."""

    max_text_length = 500

    def __init__(self, text: str) -> None:
        if len(text) > self.max_text_length:
            text = text[: self.max_text_length] + "..."
        self.text = text
        super().__init__(f"The image model replied with text instead of an image: {text}")


class GatewayRequestError(GenerationError):
    """Raised when the call to the image model itself failed."""

    default_message = "The request to the image model failed"
