"""
Shared fixtures for kbdocx tests.
"""
import base64
from io import BytesIO

import pytest
from PIL import Image as PILImage

from kbdocx.core.html_article import HTMLArticle
from kbdocx.core.html_to_docx_converter import HTMLToDocxConverter
from kbdocx.utils.config import ConversionConfig
from kbdocx.utils.structures import Block, Run, Table


def make_png(width: int = 40, height: int = 20) -> bytes:
    buffer = BytesIO()
    PILImage.new("RGB", (width, height), (255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


def paragraph_texts(nodes):
    """Text of every paragraph in document order, descending into table cells."""
    for node in nodes:
        if isinstance(node, Block):
            yield "".join(child.text for child in node.children if isinstance(child, Run))
        elif isinstance(node, Table):
            for row in node.rows:
                for cell in row.cells:
                    yield from paragraph_texts(cell.children)


@pytest.fixture
def config():
    return ConversionConfig(add_timestamp=False)


@pytest.fixture
def converter(config):
    return HTMLToDocxConverter(config)


@pytest.fixture
def convert(converter):
    """Parses an HTML string and returns the normalized top-level nodes."""
    def _convert(html: str):
        article = HTMLArticle(html).parse()
        return converter.convert_body(article.body)
    return _convert


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
