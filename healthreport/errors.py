from __future__ import annotations


class RenderError(RuntimeError):
    """Base class for report rendering failures."""


class FontLoadError(RenderError):
    """Neither the local bundle nor the remote fallback produced a usable font."""

    def __init__(self, family: str, message: str):
        super().__init__(f'{family}: {message}')
        self.family = family


class ImageDecodeError(RenderError):
    """Embedded image bytes are not readable in any supported raster format."""


class UnrenderableGlyphError(RenderError):
    """A line could not be drawn, even after normalization."""


class SerializationError(RenderError):
    """The finished page set could not be written to a valid PDF buffer."""
