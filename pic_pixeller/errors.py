# pic_pixeller/errors.py
"""
Exceptions raised by the conversion core.

All derive from ValueError so callers that already guard user input with
`except ValueError` keep working.
"""


class PixellerError(ValueError):
    """Base class for conversion errors."""


class InvalidDimensions(PixellerError):
    """Source or target size is empty or collapses to zero."""


class InvalidPalette(PixellerError):
    """Palette is empty or holds a channel outside 0..255."""


class InvalidConfig(PixellerError):
    """A pipeline setting is outside its documented range."""


__all__ = ["PixellerError", "InvalidDimensions", "InvalidPalette", "InvalidConfig"]
