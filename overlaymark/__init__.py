"""
OverlayMark Package
===================
Stamps an image watermark onto JPEG, PNG and GIF files.

Modules:
    - core: Placement, validation and compositing (no Qt dependencies)
    - workers: QThread workers for batch processing

Usage:
    from overlaymark.core import Watermark, Position
    from overlaymark.workers import MarkWorker, MarkConfig
"""

__version__ = "1.0.0"
__app_name__ = "OverlayMark"

# Core exports
from .core import (
    Watermark,
    Position,
    is_allowed_ext,
    WatermarkError,
    UnsupportedFormatError,
    DecodeError,
    WatermarkTooLargeError,
    ContractError,
    InvalidPositionError,
    InvalidPaddingError,
    InvalidExtensionError,
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Core
    "Watermark",
    "Position",
    "is_allowed_ext",

    # Errors
    "WatermarkError",
    "UnsupportedFormatError",
    "DecodeError",
    "WatermarkTooLargeError",
    "ContractError",
    "InvalidPositionError",
    "InvalidPaddingError",
    "InvalidExtensionError",
]
