"""
Resolves the effective formatting of an HTML element from its parent's
formatting and the element itself (tag, semantic classes, inline style).
"""
import dataclasses
from dataclasses import dataclass
from typing import NamedTuple

from lxml import etree

from ..utils import xml_utils as xu
from ..utils.colors import to_hex
from ..utils.structures import BorderSide, BorderSpec, Run


MONOSPACE_FONT = "Courier New"
DEFAULT_FONT = "Arial"
DEFAULT_SIZE = 22   # half-points

INLINE_CODE_COLOR = "DB2777"
INLINE_CODE_SHADING = "F3F4F6"
CODE_BLOCK_SHADING = "111827"
CODE_BLOCK_COLOR = "E5E7EB"


@dataclass(frozen=True)
class StyleContext:
    """
    Immutable formatting state threaded down the HTML tree.
    Character fields end up on runs, the rest on the enclosing paragraph.
    """
    bold: bool = False
    italic: bool = False
    color: str | None = None
    font: str = DEFAULT_FONT
    size: int = DEFAULT_SIZE
    shading: str | None = None          # character shading (inline code)
    block_shading: str | None = None    # paragraph shading
    border: BorderSpec | None = None
    heading: int | None = None
    in_pre: bool = False
    in_table_cell: bool = False

    def make_run(self, text: str) -> Run:
        """Creates a Run carrying this context's character formatting."""
        return Run(
            text=text,
            bold=self.bold,
            italic=self.italic,
            color=self.color,
            font=self.font,
            size=self.size,
            shading=self.shading,
        )


class HeadingStyle(NamedTuple):
    level: int
    color: str
    size: int
    border: BorderSpec | None = None


class ClassStyle(NamedTuple):
    """Paragraph look of a semantic callout class."""
    shading: str
    border_color: str
    border_size: int
    color: str

    @property
    def border(self) -> BorderSpec:
        return BorderSpec(left=BorderSide(self.border_color, self.border_size, space=10))


HEADING_STYLES: dict[str, HeadingStyle] = {
    'h1': HeadingStyle(1, "1D4ED8", 36, BorderSpec(bottom=BorderSide("E5E7EB", 12))),
    'h2': HeadingStyle(2, "111827", 30),
    'h3': HeadingStyle(3, "374151", 24),
}

# Heading rules that must not leak into the heading's content
_HEADING_BORDERS = {style.level: style.border for style in HEADING_STYLES.values() if style.border}

# Checked in this order; the first class the element carries wins.
SEMANTIC_CLASS_STYLES: dict[str, ClassStyle] = {
    'warning': ClassStyle("FEF2F2", "EF4444", 32, "991B1B"),
    'metadata': ClassStyle("EFF6FF", "3B82F6", 32, "1E40AF"),
    'lesson-learned': ClassStyle("FFFBEB", "F59E0B", 40, "B45309"),
}


def semantic_class(element: etree._Element) -> str | None:
    """Returns the highest priority semantic class of the element, if any."""
    classes = xu.get_classes(element)
    return next((name for name in SEMANTIC_CLASS_STYLES if name in classes), None)


def resolve(parent: StyleContext, element: etree._Element) -> StyleContext:
    """
    Returns the context for the content of `element`.

    Precedence, later rules override earlier ones:
    tag formatting, heading styles, semantic classes, inline style color.
    """
    tag = xu.get_tag_name(element)
    changes: dict = {}

    # Heading level and the h1 rule line belong to the heading paragraph only
    if parent.heading is not None:
        changes['heading'] = None
        if parent.border is not None and parent.border == _HEADING_BORDERS.get(parent.heading):
            changes['border'] = None

    # 1. Tag-implied formatting
    if tag in ('strong', 'b'):
        changes['bold'] = True
    elif tag in ('em', 'i'):
        changes['italic'] = True
    elif tag == 'code':
        changes['font'] = MONOSPACE_FONT
        if not parent.in_pre:
            changes.update(color=INLINE_CODE_COLOR, shading=INLINE_CODE_SHADING)
    elif tag == 'pre':
        changes.update(
            font=MONOSPACE_FONT,
            block_shading=CODE_BLOCK_SHADING,
            color=CODE_BLOCK_COLOR,
            in_pre=True,
        )
    elif tag in ('td', 'th'):
        # Cells get their own shading; callout looks stop at the table
        changes.update(in_table_cell=True, block_shading=None, border=None)

    # 2. Headings
    if heading := HEADING_STYLES.get(tag):
        changes.update(
            heading=heading.level,
            color=heading.color,
            bold=True,
            size=heading.size,
        )
        # A heading without a rule line keeps a surrounding callout border
        if heading.border is not None:
            changes['border'] = heading.border

    # 3. Semantic classes
    if name := semantic_class(element):
        style = SEMANTIC_CLASS_STYLES[name]
        changes.update(block_shading=style.shading, border=style.border, color=style.color)

    # 4. Inline style
    declarations = xu.parse_style(element)
    if color := to_hex(declarations.get('color')):
        changes['color'] = color
    if background := to_hex(declarations.get('background-color')):
        changes['shading'] = background

    if not changes:
        return parent
    return dataclasses.replace(parent, **changes)


def root_context(font: str = DEFAULT_FONT, size: int = DEFAULT_SIZE) -> StyleContext:
    """The context the document body starts with."""
    return StyleContext(font=font, size=size)
