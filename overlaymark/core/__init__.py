"""
Core Module - Pure Compositing Logic
====================================
This module contains no UI or threading dependencies.
Placement, validation and compositing are implemented here.
"""

from .errors import (
    ContractError,
    DecodeError,
    InvalidExtensionError,
    InvalidPaddingError,
    InvalidPositionError,
    UnsupportedFormatError,
    WatermarkError,
    WatermarkTooLargeError,
)
from .position import Position, check_fit, placement_offset
from .watermark import AnimatedMark, StillMark, Watermark, is_allowed_ext

__all__ = [
    "Watermark",
    "StillMark",
    "AnimatedMark",
    "Position",
    "is_allowed_ext",
    "placement_offset",
    "check_fit",
    "WatermarkError",
    "UnsupportedFormatError",
    "DecodeError",
    "WatermarkTooLargeError",
    "ContractError",
    "InvalidPositionError",
    "InvalidPaddingError",
    "InvalidExtensionError",
]
