"""Gateway to the Gemini image model.

:class:`GenerationGateway` wraps the two calls the application makes to the
external model:

- ``generate(prompt)`` - text-to-image, the prompt is the only content part.
- ``edit(image, mime_type, prompt)`` - the source image is sent inline,
  followed by the instruction text.

Each call is a single blocking round-trip with no retry and no streaming.
The response is reduced to one of three shapes by :func:`classify_response`
(:class:`ImagePart`, :class:`TextPart`, or :class:`EmptyResult`) and only an
image is treated as success; every other outcome raises a
:class:`~snapedit.core.errors.GenerationError` subclass.

Usage
-----
::

    from snapedit.core.config import config
    from snapedit.core.gateway import GenerationGateway

    gateway = GenerationGateway(config)
    result = gateway.edit(b64_png, "image/png", "make the sky purple")
    print(result.mime_type, len(result.data))
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from typing import Union

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from PIL import Image, UnidentifiedImageError

from snapedit.core.config import SnapEditConfig
from snapedit.core.errors import (
    ConfigurationError,
    EmptyResponseError,
    GatewayRequestError,
    SafetyBlockedError,
    UnexpectedTextResponseError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"

# Candidate finish reasons that mean the output was withheld by a filter.
SAFETY_FINISH_REASONS = frozenset({
    "SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "IMAGE_SAFETY",
    "IMAGE_PROHIBITED_CONTENT",
})

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[^;,]*)*;base64,", re.IGNORECASE)


@dataclass(frozen=True)
class GeneratedImage:
    """An image returned by the model, base64-encoded."""

    data: str
    mime_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str | None


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class EmptyResult:
    finish_reason: str | None = None


ResponseContent = Union[ImagePart, TextPart, EmptyResult]


def _enum_name(value) -> str | None:
    """Normalise an SDK enum (or plain string) to its upper-case name."""
    if value is None:
        return None
    name = getattr(value, "value", value)
    return str(name).upper()


def split_data_url(image: str) -> tuple[str, str | None]:
    """Strip a ``data:<mime>;base64,`` prefix if present.

    Args:
        image: Raw base64 or a data URL

    Returns:
        Tuple of ``(base64_payload, embedded_mime_type)``.  The mime type is
        ``None`` when the input had no prefix or the prefix named none.
    """
    match = _DATA_URL_RE.match(image)
    if not match:
        return image, None
    return image[match.end():], match.group("mime")


def sniff_mime_type(data: bytes) -> str | None:
    """Identify the image format of ``data`` with Pillow, or return ``None``."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        return None
    return Image.MIME.get(fmt) if fmt else None


def classify_response(response: types.GenerateContentResponse) -> ResponseContent:
    """Reduce a ``generateContent`` response to image, text, or nothing.

    Only the first candidate is inspected.  The first inline-data part wins;
    otherwise all text parts are joined.

    Raises:
        EmptyResponseError: If the response has no candidates.
        SafetyBlockedError: If the prompt or the candidate was blocked.
    """
    candidates = response.candidates or []
    if not candidates:
        feedback = response.prompt_feedback
        block_reason = _enum_name(feedback.block_reason) if feedback else None
        if block_reason and block_reason != "BLOCKED_REASON_UNSPECIFIED":
            logger.warning(f"Prompt blocked by the image model: {block_reason}")
            raise SafetyBlockedError(block_reason)
        logger.error("No candidates in image model response")
        raise EmptyResponseError()

    candidate = candidates[0]
    finish_reason = _enum_name(candidate.finish_reason)
    if finish_reason in SAFETY_FINISH_REASONS:
        logger.warning(f"Image model response blocked: {finish_reason}")
        raise SafetyBlockedError(finish_reason)

    parts = candidate.content.parts if candidate.content and candidate.content.parts else []
    texts: list[str] = []
    for part in parts:
        if part.inline_data is not None and part.inline_data.data:
            return ImagePart(data=part.inline_data.data, mime_type=part.inline_data.mime_type)
        if part.text and not part.thought:
            texts.append(part.text)

    if texts:
        return TextPart(text="".join(texts))
    return EmptyResult(finish_reason=finish_reason)


class GenerationGateway:
    """Single-call wrapper around the Gemini ``generateContent`` endpoint.

    Attributes:
        config: Application configuration (credential, model, aspect ratio)
    """

    def __init__(self, config: SnapEditConfig, client: genai.Client | None = None) -> None:
        """Initialise the gateway.

        Args:
            config: Application configuration
            client: Pre-built Gemini client.  When omitted a client is created
                on the first call, after the credential check.
        """
        self.config = config
        self._client = client

    def _get_client(self) -> genai.Client:
        if not self.config.has_credentials:
            raise ConfigurationError()
        if self._client is None:
            self._client = genai.Client(api_key=self.config.gemini_api_key.get_secret_value())
            logger.info(f"Gemini client initialised for model {self.config.model_name}")
        return self._client

    def _build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=self.config.system_instruction or None,
            image_config=types.ImageConfig(aspect_ratio=self.config.aspect_ratio),
        )

    def generate(self, prompt: str) -> GeneratedImage:
        """Generate an image from a text prompt.

        Raises:
            ConfigurationError: If no credential is configured.
            ValidationError: If the prompt is empty.
            GenerationError: If the model did not return an image.
        """
        client = self._get_client()
        if not prompt or not prompt.strip():
            raise ValidationError("Missing prompt")

        logger.info(f"Generating image with prompt: {prompt!r}")
        return self._request(client, [types.Part.from_text(text=prompt)])

    def edit(self, image: str, mime_type: str | None, prompt: str) -> GeneratedImage:
        """Edit a source image according to a text instruction.

        Args:
            image: Source image as raw base64 or a ``data:`` URL
            mime_type: Content type of the source image.  May be empty when
                ``image`` is a data URL that names its own type.
            prompt: Editing instruction

        Raises:
            ConfigurationError: If no credential is configured.
            ValidationError: If the image or prompt is missing, or the image
                is not valid base64.
            GenerationError: If the model did not return an image.
        """
        client = self._get_client()
        if not prompt or not prompt.strip():
            raise ValidationError("Missing prompt")
        if not image:
            raise ValidationError("Missing image")

        payload, embedded_mime = split_data_url(image)
        source_mime = mime_type or embedded_mime
        if not source_mime:
            raise ValidationError("Missing mimeType")
        try:
            raw = base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError("Image is not valid base64") from e
        if not raw:
            raise ValidationError("Missing image")

        logger.info(f"Editing {source_mime} image ({len(raw)} bytes) with prompt: {prompt!r}")
        parts = [
            types.Part.from_bytes(data=raw, mime_type=source_mime),
            types.Part.from_text(text=prompt),
        ]
        return self._request(client, parts)

    def _request(self, client: genai.Client, parts: list[types.Part]) -> GeneratedImage:
        try:
            response = client.models.generate_content(
                model=self.config.model_name,
                contents=[types.Content(role="user", parts=parts)],
                config=self._build_config(),
            )
        except genai_errors.APIError as e:
            logger.error(f"Image model request failed ({e.code}): {e.message}")
            raise GatewayRequestError(f"The image model request failed: {e.message or e.status}") from e
        except httpx.HTTPError as e:
            logger.error(f"Image model transport error: {e}")
            raise GatewayRequestError() from e
        except ValueError as e:
            # UnknownApiResponseError and response parsing failures
            logger.error(f"Image model returned an unreadable response: {e}")
            raise GatewayRequestError() from e

        result = classify_response(response)

        if isinstance(result, ImagePart):
            mime = result.mime_type or sniff_mime_type(result.data) or DEFAULT_MIME_TYPE
            logger.info(f"Image model returned {mime} image ({len(result.data)} bytes)")
            return GeneratedImage(
                data=base64.b64encode(result.data).decode("ascii"),
                mime_type=mime,
            )
        if isinstance(result, TextPart):
            logger.warning(f"Image model returned text instead of an image: {result.text!r}")
            raise UnexpectedTextResponseError(result.text)

        logger.error(f"Image model returned no image and no text (finish reason: {result.finish_reason})")
        raise EmptyResponseError()
