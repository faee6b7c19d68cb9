"""
Watermark Errors
================
Exception types raised by the compositing core.

Two families are kept apart:
- WatermarkError: recoverable failures caused by the input
  (unsupported format, bad bytes, a mark that does not fit)
- ContractError: caller bugs (invalid position, padding or extension
  argument), raised immediately and never reported as a soft result
"""


class WatermarkError(Exception):
    """Base class for recoverable watermarking failures."""


class UnsupportedFormatError(WatermarkError):
    """The extension is not one of .jpg, .jpeg, .png or .gif."""

    def __init__(self, ext: str):
        super().__init__(f"Unsupported image type: {ext!r}")
        self.ext = ext


class DecodeError(WatermarkError):
    """The image bytes could not be decoded by the codec."""


class WatermarkTooLargeError(WatermarkError):
    """The watermark does not fit into the target once padding is applied."""


class ContractError(ValueError):
    """An argument broke the API contract."""


class InvalidPositionError(ContractError):
    pass


class InvalidPaddingError(ContractError):
    pass


class InvalidExtensionError(ContractError):
    pass
