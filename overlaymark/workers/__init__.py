"""
Workers Module - Async Thread Management
========================================
Contains QThread workers for non-blocking batch watermarking.

Components:
- MarkWorker: Stamps one watermark onto many files with progress tracking
"""

from .mark_worker import MarkWorker, MarkConfig, MarkResult

__all__ = [
    "MarkWorker",
    "MarkConfig",
    "MarkResult",
]
