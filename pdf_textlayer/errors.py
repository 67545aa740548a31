"""
Exceptions raised by the text-layer engine.

Only engine and encoding failures are exceptions. Empty pages and filtered
glyphs are ordinary results.
"""


class TextLayerError(Exception):
    """Base exception for all text-layer errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown text-layer error occurred."


class EngineFailure(TextLayerError):
    """Raised when the PDF engine rejects an open, glyph or raster request."""

    @property
    def default_message(self) -> str:
        return "The PDF engine failed to process the request."


class EncodingFailure(TextLayerError):
    """Raised when a rendered raster cannot be encoded as an image buffer."""

    @property
    def default_message(self) -> str:
        return "Failed to encode the rendered page image."
