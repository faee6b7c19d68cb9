"""
Watermark Placement
===================
Anchor positions and the geometry that maps them onto a target image.

Technical Notes:
- Offsets are expressed in the watermark's own coordinate space: the
  watermark origin lands on the target at (-x, -y)
- Center placement truncates toward zero, so odd remainders never
  push the mark outside the padded area
"""

from enum import IntEnum
from typing import Tuple

from .errors import InvalidPositionError, WatermarkTooLargeError


class Position(IntEnum):
    """Where the watermark is anchored on the target image."""
    TOP_LEFT = 0
    TOP_RIGHT = 1
    BOTTOM_LEFT = 2
    BOTTOM_RIGHT = 3
    CENTER = 4

    @classmethod
    def coerce(cls, value) -> "Position":
        """
        Convert a raw value into a Position.

        Raises:
            InvalidPositionError: If value is not one of the five anchors.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidPositionError(f"Invalid position: {value!r}")
        try:
            return cls(value)
        except ValueError:
            raise InvalidPositionError(f"Invalid position: {value!r}") from None


def _half(value: int) -> int:
    # integer division truncating toward zero
    return -(-value // 2) if value < 0 else value // 2


def placement_offset(
        width: int,
        height: int,
        mark_width: int,
        mark_height: int,
        padding: int,
        position: Position
) -> Tuple[int, int]:
    """
    Compute the source-space alignment point for a watermark.

    Args:
        width: Target width in pixels.
        height: Target height in pixels.
        mark_width: Watermark width in pixels.
        mark_height: Watermark height in pixels.
        padding: Margin between the watermark and the anchored edges.
        position: Anchor position.

    Returns:
        (x, y) offset; the watermark is drawn at (-x, -y) on the target.
    """
    right = width - padding - mark_width
    bottom = height - padding - mark_height

    if position == Position.TOP_LEFT:
        return -padding, -padding
    if position == Position.TOP_RIGHT:
        return -right, -padding
    if position == Position.BOTTOM_LEFT:
        return -padding, -bottom
    if position == Position.BOTTOM_RIGHT:
        return -right, -bottom
    if position == Position.CENTER:
        return _half(-right), _half(-bottom)

    raise InvalidPositionError(f"Invalid position: {position!r}")


def check_fit(
        offset: Tuple[int, int],
        width: int,
        height: int,
        mark_size: Tuple[int, int],
        padding: int
) -> None:
    """
    Verify the watermark fits the target at the given offset.

    Raises:
        WatermarkTooLargeError: If the space left after padding is smaller
            than the watermark in either dimension.
    """
    available_w = width - offset[0] - padding
    available_h = height - offset[1] - padding
    mark_w, mark_h = mark_size

    if available_w < mark_w or available_h < mark_h:
        raise WatermarkTooLargeError(
            f"Watermark {mark_w}x{mark_h} does not fit target {width}x{height} "
            f"(available {available_w}x{available_h}, padding {padding})"
        )
