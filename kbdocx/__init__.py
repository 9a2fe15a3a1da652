"""
kbdocx: converts generated knowledge-base HTML articles to .docx documents.
"""
from .core.pipeline import ExportPipeline, ExportResult
from .utils.config import ConversionConfig
from .utils.errors import ConversionError, ImageDecodeError, PackagingError

__version__ = "1.0.0"

__all__ = [
    "ExportPipeline", "ExportResult", "ConversionConfig",
    "ConversionError", "ImageDecodeError", "PackagingError", "export_docx",
]


def export_docx(html: str, title: str | None = None, config: ConversionConfig | None = None) -> ExportResult:
    """Converts an HTML string into .docx bytes and a suggested filename."""
    return ExportPipeline(config).export(html, title)
