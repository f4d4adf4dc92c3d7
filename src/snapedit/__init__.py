"""SnapEdit - prompt-driven image generation and editing with shareable links."""

__version__ = "0.1.0"

from snapedit.core.config import SnapEditConfig, config

__all__ = [
    "SnapEditConfig",
    "config",
]
