"""
Color Palette API Errors
Exception taxonomy for the palette pipeline and its HTTP boundary.
"""


class PaletteError(Exception):
    """Base class for palette pipeline failures surfaced to clients."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PaletteError):
    """Malformed URL, out-of-range color count or missing image source."""

    status_code = 400


class FetchError(PaletteError):
    """Remote image could not be retrieved."""
    pass


class DecodeError(PaletteError):
    """Image bytes are not a supported, decodable raster format."""
    pass


class EmptyImageError(PaletteError):
    """Pixel buffer holds no samples."""
    pass


class InsufficientPaletteError(PaletteError):
    """Diversification accepted no colors, so the palette cannot be padded."""
    pass
