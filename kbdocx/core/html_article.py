"""
Contains the logic for loading and representing an HTML article.
"""
import logging
import re
from pathlib import Path

import lxml.html
from lxml import etree

from ..utils import xml_utils as xu
from ..utils.errors import ArticleLoadError


log = logging.getLogger("kbdocx")

DEFAULT_TITLE = "Document"


class HTMLArticle:
    """
    Represents a parsed HTML article.

    Wraps the lxml HTML parser: accepts a full document or a fragment and
    exposes its <body> and a title for the document properties.
    """

    def __init__(self, html: str, name: str = ""):
        """Initializes with the HTML source. `name` is only used in log messages."""
        self.html = html
        self.name = name or "<string>"
        self.body: etree._Element
        self.title: str = DEFAULT_TITLE
        self.fallback_title: str = ""


    @classmethod
    def from_file(cls, filepath: Path) -> 'HTMLArticle':
        """Reads an .html file. Raises ArticleLoadError if it can't be read."""
        try:
            html = filepath.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ArticleLoadError(f"Could not read '{filepath}': {e}") from e
        article = cls(html, name=filepath.name)
        article.fallback_title = filepath.stem
        return article


    def parse(self) -> 'HTMLArticle':
        """
        Parses the HTML and populates `body` and `title`.
        An empty or whitespace-only source yields an empty body.
        """
        if not self.html or not self.html.strip():
            log.warning(f"'{self.name}' is empty.")
            self.body = lxml.html.Element('body')
            self.title = self.fallback_title or DEFAULT_TITLE
            return self

        try:
            root = lxml.html.document_fromstring(self.html)
        except (etree.ParserError, ValueError) as e:
            raise ArticleLoadError(f"Could not parse '{self.name}': {e}") from e

        body = root.find('body')
        if body is None:
            # Head-only documents, e.g. just a <title>
            body = lxml.html.Element('body')
        self.body = body
        self.title = self._find_title(root)
        log.info(f"Parsed '{self.name}' successfully.")
        return self


    def _find_title(self, root: etree._Element) -> str:
        """Uses <title>, then the first <h1>, then the fallback."""
        candidates = [root.findtext('.//title')]
        h1 = root.find('.//h1')
        if h1 is not None:
            candidates.append(text_content(h1))
        candidates.append(self.fallback_title)

        for text in candidates:
            if text and text.strip():
                return re.sub(r'\s+', ' ', text).strip()
        return DEFAULT_TITLE


def text_content(element: etree._Element) -> str:
    """
    Visible text of an element, the way a plain-text export would read it:
    block elements and line breaks separate words.
    """
    parts = []
    for node in xu.iter_child_nodes(element):
        if isinstance(node, str):
            parts.append(node)
            continue
        tag = xu.get_tag_name(node)
        if tag in ('script', 'style', 'head', 'title'):
            continue
        if tag == 'br':
            parts.append('\n')
        elif tag in xu.BLOCK_TAGS:
            parts.append(f" {text_content(node)} ")
        else:
            parts.append(text_content(node))
    return "".join(parts)
