"""
Exception types raised by the export pipeline.
"""


class ConversionError(Exception):
    """Base class for all errors raised while exporting an article."""


class ArticleLoadError(ConversionError):
    """The HTML article could not be read."""


class ImageDecodeError(ConversionError):
    """An embedded image has a missing, malformed or empty base64 payload."""


class PackagingError(ConversionError):
    """Serializing the document package failed. Fatal for that export."""


class UnsupportedNestingWarning(UserWarning):
    """
    A block element appeared where only inline content is valid
    (e.g. <p> inside <li>). The content is flattened into runs and logged.
    """
