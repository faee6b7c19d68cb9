"""
Image Watermark Compositor V1.0
===============================
Overlays a watermark image onto JPEG, PNG and GIF targets using PIL/Pillow.

Technical Notes:
- The watermark is decoded once and reused for every target
- Placement is validated before any byte of the target is written,
  so a rejected target is left untouched
- RGBA mode is used for source-over blending; the result is converted
  back to the target's own format on encode
- GIF targets are composited frame by frame; an animated GIF watermark
  has its frames cycled across the target frames
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple, Union

from PIL import GifImagePlugin, Image, ImageSequence, UnidentifiedImageError

from .errors import (
    DecodeError,
    InvalidExtensionError,
    InvalidPaddingError,
    UnsupportedFormatError,
)
from .position import Position, check_fit, placement_offset

logger = logging.getLogger(__name__)

# Extension -> Pillow format name
FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".gif": "GIF",
}

# Palette slot reserved for transparent pixels in re-encoded GIF frames
_TRANSPARENT_INDEX = 255

# Codec failures reported as DecodeError
_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)


def is_allowed_ext(ext: str) -> bool:
    """
    Check whether images with this extension can be watermarked.

    Args:
        ext: File extension including the leading dot, e.g. ".JPG".

    Returns:
        True for .jpg, .jpeg, .png and .gif (case-insensitive).

    Raises:
        InvalidExtensionError: If ext is empty or does not start with ".".
    """
    if not ext:
        raise InvalidExtensionError("Extension cannot be empty")
    if not ext.startswith("."):
        raise InvalidExtensionError(f"Extension must start with '.': {ext!r}")

    return ext.lower() in FORMATS


def _format_for(ext: str) -> str:
    try:
        return FORMATS[ext.lower()]
    except KeyError:
        raise UnsupportedFormatError(ext) from None


def _decode_still(data: bytes, fmt: str) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data), formats=[fmt])
        image.load()
    except _DECODE_ERRORS as e:
        raise DecodeError(f"Cannot decode {fmt} image: {e}") from e
    return image


@dataclass
class _Animation:
    """Decoded GIF frames plus the metadata needed to re-encode them."""
    frames: List[Image.Image]
    durations: List[int]
    disposals: List[int]
    loop: Optional[int]


def _decode_animation(data: bytes) -> _Animation:
    frames, durations, disposals = [], [], []
    try:
        image = Image.open(io.BytesIO(data), formats=["GIF"])
        loop = image.info.get("loop")
        for frame in ImageSequence.Iterator(image):
            durations.append(frame.info.get("duration", 0))
            disposals.append(getattr(frame, "disposal_method", 0))
            frames.append(frame.convert("RGBA"))
    except _DECODE_ERRORS as e:
        raise DecodeError(f"Cannot decode GIF image: {e}") from e

    if not frames:
        raise DecodeError("GIF image has no frames")

    return _Animation(frames, durations, disposals, loop)


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info


def _to_paletted(frames: List[Image.Image]) -> List[Tuple[Image.Image, bool]]:
    """
    Convert composited RGBA frames into palette-indexed GIF frames.

    All frames are quantized together so they share one global palette.
    Fully transparent pixels (alpha < 128) are mapped to a dedicated
    transparent palette slot.

    Returns:
        List of (paletted frame, has transparent pixels).
    """
    width, height = frames[0].size
    strip = Image.new("RGB", (width, height * len(frames)))
    for index, frame in enumerate(frames):
        strip.paste(frame.convert("RGB"), (0, height * index))

    # colors=255 keeps every index below the transparent slot
    quantized = strip.quantize(colors=_TRANSPARENT_INDEX)
    palette = (quantized.getpalette() or [])[:_TRANSPARENT_INDEX * 3]
    palette += [0] * (768 - len(palette))

    paletted = []
    for index, frame in enumerate(frames):
        image = quantized.crop((0, height * index, width, height * (index + 1)))
        image.putpalette(palette)

        alpha = frame.getchannel("A")
        transparent = alpha.getextrema()[0] < 128
        if transparent:
            mask = alpha.point(lambda a: 255 if a < 128 else 0)
            image.paste(_TRANSPARENT_INDEX, mask=mask)

        paletted.append((image, transparent))

    return paletted


def _encode_animation(
        frames: List[Tuple[Image.Image, bool]],
        animation: _Animation
) -> bytes:
    """
    Encode paletted frames as a GIF, one image block per frame.

    Frames are written individually so none is merged with its
    neighbour, even when two consecutive frames are identical.
    """
    info = {"optimize": False, "duration": animation.durations}
    if animation.loop is not None:
        info["loop"] = animation.loop

    header, _ = GifImagePlugin.getheader(frames[0][0], info=info)

    buffer = io.BytesIO()
    for block in header:
        buffer.write(block)

    for (image, transparent), duration, disposal in zip(
            frames, animation.durations, animation.disposals):
        params = {"duration": duration, "disposal": disposal}
        if transparent:
            params["transparency"] = _TRANSPARENT_INDEX
        for block in GifImagePlugin.getdata(image, **params):
            buffer.write(block)

    buffer.write(b";")
    return buffer.getvalue()


def _encode_still(image: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def _rewrite(stream: BinaryIO, data: bytes) -> None:
    stream.seek(0)
    stream.truncate()
    stream.write(data)
    stream.flush()


@dataclass(frozen=True)
class StillMark:
    """A watermark made of a single RGBA image."""
    image: Image.Image

    @property
    def reference(self) -> Image.Image:
        return self.image

    @property
    def frame_count(self) -> int:
        return 1

    def frame(self, index: int) -> Image.Image:
        return self.image


@dataclass(frozen=True)
class AnimatedMark:
    """A watermark decoded from a GIF: a non-empty sequence of RGBA frames."""
    frames: Tuple[Image.Image, ...]

    def __post_init__(self):
        if not self.frames:
            raise ValueError("An animated watermark needs at least one frame")

    @property
    def reference(self) -> Image.Image:
        return self.frames[0]

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def frame(self, index: int) -> Image.Image:
        """Frame used for the target frame at index, wrapping round-robin."""
        return self.frames[index % len(self.frames)]


class Watermark:
    """
    An image watermark that can be stamped onto JPEG, PNG and GIF files.

    The watermark is decoded once at construction and is read-only
    afterwards, so a single instance can be shared between threads that
    mark distinct targets.
    """

    def __init__(
            self,
            source: BinaryIO,
            ext: str,
            padding: int = 0,
            position: Position = Position.TOP_LEFT
    ):
        """
        Decode a watermark from a binary stream.

        Args:
            source: Readable binary stream holding the watermark image.
            ext: Extension naming the watermark format (".png", ".gif", ...).
            padding: Margin in pixels between the mark and the anchored edges.
            position: Anchor position on the target image.

        Raises:
            InvalidPositionError: If position is not a valid Position.
            InvalidPaddingError: If padding is not a non-negative integer.
            UnsupportedFormatError: If ext is not a supported image type.
            DecodeError: If the watermark bytes cannot be decoded.
        """
        position = Position.coerce(position)

        if isinstance(padding, bool) or not isinstance(padding, int) or padding < 0:
            raise InvalidPaddingError(f"Padding must be a non-negative integer: {padding!r}")

        fmt = _format_for(ext)
        data = source.read()

        if fmt == "GIF":
            animation = _decode_animation(data)
            self._mark = AnimatedMark(tuple(animation.frames))
        else:
            self._mark = StillMark(_decode_still(data, fmt).convert("RGBA"))

        self._padding = padding
        self._position = position

        logger.debug(
            "Loaded %s watermark %dx%d (%d frame(s)), padding=%d, position=%s",
            fmt, *self.size, self._mark.frame_count, padding, position.name
        )

    @classmethod
    def from_file(
            cls,
            path: Union[str, Path],
            padding: int = 0,
            position: Position = Position.TOP_LEFT
    ) -> "Watermark":
        """Load a watermark from a file, using its suffix as the format."""
        path = Path(path)
        position = Position.coerce(position)
        with open(path, "rb") as f:
            return cls(f, path.suffix, padding, position)

    @property
    def padding(self) -> int:
        return self._padding

    @property
    def position(self) -> Position:
        return self._position

    @property
    def size(self) -> Tuple[int, int]:
        return self._mark.reference.size

    @property
    def is_animated(self) -> bool:
        return isinstance(self._mark, AnimatedMark)

    @property
    def frame_count(self) -> int:
        return self._mark.frame_count

    def frame_for(self, index: int) -> Image.Image:
        """Watermark frame composited onto the target frame at index."""
        return self._mark.frame(index)

    def _offset_for(self, size: Tuple[int, int]) -> Tuple[int, int]:
        width, height = size
        offset = placement_offset(
            width, height, *self.size, self._padding, self._position
        )
        check_fit(offset, width, height, self.size, self._padding)
        return offset

    @staticmethod
    def _composite(
            canvas: Image.Image,
            mark: Image.Image,
            offset: Tuple[int, int]
    ) -> Image.Image:
        # Paste onto a transparent layer first: paste() clips, alpha_composite() blends
        layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        layer.paste(mark, (-offset[0], -offset[1]))
        return Image.alpha_composite(canvas, layer)

    def apply(self, image: Image.Image, frame_index: int = 0) -> Image.Image:
        """
        Apply the watermark to an existing PIL Image object.

        Args:
            image: Image to watermark; it is not modified.
            frame_index: Target frame index, selects the watermark frame
                when the watermark is animated.

        Returns:
            New RGBA image with the watermark composited.

        Raises:
            WatermarkTooLargeError: If the watermark does not fit.
        """
        offset = self._offset_for(image.size)
        return self._composite(image.convert("RGBA"), self._mark.frame(frame_index), offset)

    def mark(self, stream: BinaryIO, ext: str) -> None:
        """
        Watermark an image stream in place.

        The stream is read from its current position, and on success its
        content is replaced by the re-encoded, watermarked image.

        Args:
            stream: Seekable read/write binary stream.
            ext: Extension naming the target format.

        Raises:
            UnsupportedFormatError: If ext is not a supported image type.
            DecodeError: If the target cannot be decoded.
            WatermarkTooLargeError: If the watermark does not fit.
        """
        fmt = _format_for(ext)

        if fmt == "GIF":
            self._mark_gif(stream)
        else:
            self._mark_still(stream, fmt)

    def _mark_still(self, stream: BinaryIO, fmt: str) -> None:
        target = _decode_still(stream.read(), fmt)
        result = self.apply(target)

        if fmt == "JPEG" or not _has_alpha(target):
            result = result.convert("RGB")

        # Encode in memory so an encoder failure leaves the stream intact
        data = _encode_still(result, fmt)

        logger.debug("Marked %s image %dx%d", fmt, *target.size)
        _rewrite(stream, data)

    def _mark_gif(self, stream: BinaryIO) -> None:
        animation = _decode_animation(stream.read())
        offset = self._offset_for(animation.frames[0].size)

        marked = [
            self._composite(frame, self._mark.frame(index), offset)
            for index, frame in enumerate(animation.frames)
        ]
        data = _encode_animation(_to_paletted(marked), animation)

        logger.debug(
            "Marked GIF %dx%d with %d frame(s)",
            *animation.frames[0].size, len(marked)
        )
        _rewrite(stream, data)

    def mark_file(self, path: Union[str, Path]) -> None:
        """Watermark an image file in place, using its suffix as the format."""
        path = Path(path)
        ext = path.suffix.lower()
        _format_for(ext)

        with open(path, "r+b") as f:
            self.mark(f, ext)
