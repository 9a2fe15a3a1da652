"""
The main export pipeline (Facade).

This module orchestrates the entire export process, using the other
core modules to perform specific tasks.
"""
import logging
from pathlib import Path
from typing import NamedTuple

from ..utils.config import ConversionConfig
from .docx_builder import DocxDocument, DocxPackager, assemble, derive_filename, package_document
from .html_article import HTMLArticle
from .html_to_docx_converter import HTMLToDocxConverter


log = logging.getLogger("kbdocx")


class ExportResult(NamedTuple):
    """A packaged document and its suggested filename."""
    data: bytes
    filename: str


class ExportPipeline:
    """
    A facade that simplifies the export process.

    The caller (CLI or embedding app) hands over an HTML string and a title
    and gets back the .docx bytes plus a filename. Nothing is shared
    between calls, so one pipeline may serve concurrent exports.
    """

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()


    def build_document(self, html: str | HTMLArticle, title: str | None = None) -> DocxDocument:
        """Parses, converts and assembles the article. No serialization yet."""
        # 1. Parse the HTML into an element tree
        article = html if isinstance(html, HTMLArticle) else HTMLArticle(html).parse()
        title = title or self.config.title or article.title

        # 2. Walk the tree into normalized document nodes
        converter = HTMLToDocxConverter(self.config)
        nodes = converter.convert_body(article.body)
        log.debug(f"Converted '{title}' into {len(nodes)} top-level node(s).")

        # 3. Wrap nodes, numbering and page geometry into a document package
        return assemble(nodes, title, self.config)


    def export(self, html: str | HTMLArticle, title: str | None = None) -> ExportResult:
        """Runs the full export. Raises PackagingError if serialization fails."""
        document = self.build_document(html, title)
        data = package_document(document)
        return ExportResult(data, derive_filename(document.title, self.config.add_timestamp))


    async def export_async(self, html: str | HTMLArticle, title: str | None = None) -> ExportResult:
        """Same as export(), awaiting the packaging step."""
        document = self.build_document(html, title)
        data = await DocxPackager(document).to_blob()
        return ExportResult(data, derive_filename(document.title, self.config.add_timestamp))


    def convert_file(self, source_path: Path) -> Path:
        """
        Exports an .html file and writes the .docx. Returns the written path.
        The file is only written once packaging has succeeded.
        """
        article = HTMLArticle.from_file(source_path).parse()
        result = self.export(article)
        return self.save(result, source_path)


    def save(self, result: ExportResult, source_path: Path | None = None) -> Path:
        """
        Writes the result. `output_path` may be a folder or a .docx filename;
        without it the file goes next to the source (or the current folder).
        """
        output = self.config.output_path
        if output is None:
            target = (source_path.parent if source_path else Path.cwd()) / result.filename
        elif output.suffix.lower() == '.docx':
            target = output
        else:
            target = output / result.filename

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(result.data)
        log.info(f"✅ Success! DOCX file created at: {target}")
        return target
