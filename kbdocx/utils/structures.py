"""
Output node types of the HTML walker and the small value types they carry.

Only Block, Table and PageBreak may appear at the document top level or
inside a table cell. Run and Image only appear inside a Block.
"""
from dataclasses import dataclass, field
from typing import NamedTuple

__all__ = [
    "BorderSide", "BorderSpec", "Spacing", "NumberingRef", "NumberingDefinition",
    "Run", "Image", "Block", "PageBreak", "TableCell", "TableRow", "Table",
    "InlineNode", "BlockNode", "OutputNode", "is_inline", "is_block", "PartNames",
]


class BorderSide(NamedTuple):
    """One paragraph border edge. Size is in eighths of a point."""
    color: str
    size: int
    space: int = 0
    style: str = "single"


class BorderSpec(NamedTuple):
    """Paragraph borders. Only the edges used by the article styles exist."""
    left: BorderSide | None = None
    bottom: BorderSide | None = None


class Spacing(NamedTuple):
    """Paragraph spacing in twips."""
    before: int = 0
    after: int = 0


class NumberingRef(NamedTuple):
    """List membership of a paragraph: a numbering definition name and a level."""
    reference: str
    level: int = 0


class NumberingDefinition(NamedTuple):
    """A single-level list style shared by the whole document."""
    reference: str
    num_id: int
    num_format: str     # 'decimal' | 'bullet'
    level_text: str
    alignment: str = "left"


# --- Output nodes ---

@dataclass(frozen=True)
class Run:
    """Inline leaf: text with character formatting."""
    text: str
    bold: bool = False
    italic: bool = False
    color: str | None = None
    font: str | None = None
    size: int | None = None
    shading: str | None = None


@dataclass(frozen=True)
class Image:
    """Inline leaf: decoded image bytes and display size in px."""
    data: bytes = field(repr=False)
    width: int
    height: int
    content_type: str = "image/png"
    extension: str = "png"


InlineNode = Run | Image


@dataclass(frozen=True)
class Block:
    """A paragraph holding inline nodes and paragraph-level formatting."""
    children: tuple[Run | Image, ...] = ()
    heading: int | None = None
    shading: str | None = None
    border: BorderSpec | None = None
    numbering: NumberingRef | None = None
    spacing: Spacing = Spacing()


@dataclass(frozen=True)
class PageBreak:
    """Forces the following content onto a new page."""


@dataclass(frozen=True)
class TableCell:
    children: tuple["Block | Table", ...]
    header: bool = False


@dataclass(frozen=True)
class TableRow:
    cells: tuple[TableCell, ...]


@dataclass(frozen=True)
class Table:
    rows: tuple[TableRow, ...]


BlockNode = Block | Table | PageBreak
OutputNode = Run | Image | Block | Table | PageBreak


def is_inline(node: OutputNode) -> bool:
    return isinstance(node, (Run, Image))


def is_block(node: OutputNode) -> bool:
    return isinstance(node, (Block, Table, PageBreak))


class PartNames:
    """Part names inside the .docx package."""
    CONTENT_TYPES: str = '[Content_Types].xml'
    ROOT_RELS: str = '_rels/.rels'
    CORE: str = 'docProps/core.xml'
    APP: str = 'docProps/app.xml'
    DOCUMENT: str = 'word/document.xml'
    STYLES: str = 'word/styles.xml'
    NUMBERING: str = 'word/numbering.xml'
    SETTINGS: str = 'word/settings.xml'
    DOCUMENT_RELS: str = 'word/_rels/document.xml.rels'
    MEDIA: str = 'word/media'
