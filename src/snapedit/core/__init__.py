"""Core components for SnapEdit.

- **SnapEditConfig / config**: Pydantic Settings configuration (SNAPEDIT_ prefix)
- **ImageStore**: write-once SQLite store for shared images
- **GenerationGateway**: single-call wrapper around the Gemini image model
- **errors**: typed error taxonomy shared by the store, gateway, and API
"""

from snapedit.core.config import SnapEditConfig, config
from snapedit.core.errors import (
    ConfigurationError,
    EmptyResponseError,
    GatewayRequestError,
    GenerationError,
    NotFoundError,
    SafetyBlockedError,
    SnapEditError,
    StorageError,
    UnexpectedTextResponseError,
    ValidationError,
)
from snapedit.core.gateway import GeneratedImage, GenerationGateway
from snapedit.core.image_store import ImageRecord, ImageStore

__all__ = [
    "SnapEditConfig",
    "config",
    "ImageStore",
    "ImageRecord",
    "GenerationGateway",
    "GeneratedImage",
    "SnapEditError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "ConfigurationError",
    "GenerationError",
    "EmptyResponseError",
    "SafetyBlockedError",
    "UnexpectedTextResponseError",
    "GatewayRequestError",
]
