"""Error types raised by the conversion pipeline and output store."""


class ConverterError(Exception):
    """Base class for all converter failures."""


class ValidationError(ConverterError):
    """Request parameters are missing or not acceptable."""


class DecodeError(ConverterError):
    """An uploaded file could not be read as an image."""


class EncodeError(ConverterError):
    """The image could not be written in the requested format."""


class FilesystemError(ConverterError):
    """Reading, writing or deleting a file or directory failed."""


class EmptyExportError(ConverterError):
    """An archive was requested while no outputs are tracked."""
