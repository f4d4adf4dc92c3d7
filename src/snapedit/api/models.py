"""Pydantic request and response models for the SnapEdit API.

Field names follow Python conventions; the JSON schema uses the camelCase
names the browser client sends (``mimeType``, ``createdAt``, ``dataUrl``).

Models
------
SaveImageRequest / SaveImageResponse
    ``POST /api/images``
ImageRecordResponse
    ``GET /api/images/{id}``
GenerateRequest / EditRequest / GeneratedImageResponse
    ``POST /api/generate`` and ``POST /api/edit``
ErrorResponse
    Body of every error response.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SaveImageRequest(BaseModel):
    """Request body for ``POST /api/images``.

    Both fields are optional at the schema level so that a missing value is
    reported by the store as a 400 rather than a schema error.

    Attributes:
        data: Base64-encoded image payload.
        mime_type: Content type of the payload.
    """

    model_config = ConfigDict(populate_by_name=True)

    data: str | None = Field(
        default=None,
        description="Base64-encoded image payload.",
    )
    mime_type: str | None = Field(
        default=None,
        alias="mimeType",
        description="Content type of the payload (e.g. 'image/png').",
    )


class SaveImageResponse(BaseModel):
    id: str = Field(..., description="Identifier of the stored image.")
    url: str = Field(..., description="Shareable link for the stored image.")


class ImageRecordResponse(BaseModel):
    """Response body for ``GET /api/images/{id}``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    data: str
    mime_type: str = Field(..., alias="mimeType")
    created_at: str = Field(..., alias="createdAt")


class GenerateRequest(BaseModel):
    """Request body for ``POST /api/generate``."""

    prompt: str | None = Field(
        default=None,
        description="Description of the image to generate.",
    )


class EditRequest(BaseModel):
    """Request body for ``POST /api/edit``.

    Attributes:
        image: Source image as raw base64 or a ``data:`` URL.
        mime_type: Content type of the source image.  Optional when ``image``
            is a data URL.
        prompt: Editing instruction.
    """

    model_config = ConfigDict(populate_by_name=True)

    image: str | None = Field(
        default=None,
        description="Source image as raw base64 or a data URL.",
    )
    mime_type: str | None = Field(
        default=None,
        alias="mimeType",
        description="Content type of the source image.",
    )
    prompt: str | None = Field(
        default=None,
        description="Editing instruction.",
    )


class GeneratedImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(..., description="Base64-encoded result image.")
    mime_type: str = Field(..., alias="mimeType")
    data_url: str = Field(..., alias="dataUrl")


class ErrorResponse(BaseModel):
    error: str
