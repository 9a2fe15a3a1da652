"""
Handles the conversion of HTML article elements to document output nodes.
"""
import dataclasses
import logging
import re

from lxml import etree

from .image_decoder import decode_image, is_data_uri
from .normalizer import CELL_SPACING, BlockNormalizer, tidy_runs
from .style_resolver import StyleContext, resolve, root_context
from ..utils import xml_utils as xu
from ..utils.config import ConversionConfig
from ..utils.errors import ImageDecodeError, UnsupportedNestingWarning
from ..utils.structures import (
    Block, BlockNode, InlineNode, NumberingRef, OutputNode, PageBreak, Run, Spacing,
    Table, TableCell, TableRow, is_inline,
)


log = logging.getLogger("kbdocx")

NUMBERED_LIST = "main-numbering"
BULLET_LIST = "main-bullets"

IMAGE_ERROR_TEXT = "[Image Error]"
ALERT_COLOR = "EF4444"
PAGE_BREAK_CLASS = "page-break"

BLOCK_SPACING = Spacing(before=180, after=180)
H1_SPACING = Spacing(before=400, after=180)

# Never rendered
SKIPPED_TAGS = {'head', 'title', 'meta', 'link', 'script', 'style', 'noscript', 'template'}
LIST_TAGS = {'ul', 'ol'}
TABLE_SECTION_TAGS = {'thead', 'tbody', 'tfoot'}

_WHITESPACE_RE = re.compile(r'\s+')


class HTMLToDocxConverter:
    """
    Transforms an lxml HTML tree into a flat sequence of document nodes.

    Conversion is dispatched by tag name. There are two walking modes:
    `walk` may return paragraphs and tables, `walk_inline` returns only
    runs and images and flattens any block structure it meets.
    """

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()

        # Block-mode handlers. Anything not listed is transparent.
        self._handler_map = {
            'p': self._handle_block,
            'h1': self._handle_block,
            'h2': self._handle_block,
            'h3': self._handle_block,
            'h4': self._handle_block,
            'pre': self._handle_block,
            'div': self._handle_block,
            'ul': self._handle_list,
            'ol': self._handle_list,
            'li': self._handle_list_item,
            'table': self._handle_table,
        }


    def convert_body(self, body: etree._Element) -> list[BlockNode]:
        """Converts the article <body> into normalized top-level nodes."""
        context = root_context(self.config.font_family, self.config.font_size)
        nodes: list[OutputNode] = []
        for child in xu.iter_child_nodes(body):
            nodes.extend(self.walk(child, context))
        return BlockNormalizer().run(nodes)


    def walk(self, node: str | etree._Element, context: StyleContext) -> list[OutputNode]:
        """Core recursive engine. Returns inline and block nodes in document order."""
        if isinstance(node, str):
            return self._handle_text(node, context)

        tag = xu.get_tag_name(node)
        if not tag or tag in SKIPPED_TAGS:
            return []

        # Page breaks win over every other rule and ignore their children
        if self._is_page_break(node, tag):
            return [PageBreak()]
        if tag == 'img':
            return self._handle_image(node, context)
        if tag == 'br':
            return [context.make_run('\n')]

        child_context = resolve(context, node)
        handler = self._handler_map.get(tag, self._handle_transparent)
        return handler(node, child_context)


    def walk_inline(self, node: str | etree._Element, context: StyleContext) -> list[InlineNode]:
        """
        Inline-forcing walk: block elements contribute only their inline content.
        Used where a nested paragraph is not allowed, e.g. inside a list item.
        """
        if isinstance(node, str):
            return self._handle_text(node, context)

        tag = xu.get_tag_name(node)
        if not tag or tag in SKIPPED_TAGS:
            return []

        if self._is_page_break(node, tag):
            self._log_nesting(node, tag)
            return []
        if tag == 'img':
            return self._handle_image(node, context)
        if tag == 'br':
            return [context.make_run('\n')]

        child_context = resolve(context, node)
        # Paragraph shading has no paragraph to go on; keep it on the runs
        if child_context.block_shading != context.block_shading:
            child_context = dataclasses.replace(child_context, shading=child_context.block_shading)

        runs: list[InlineNode] = []
        for child in xu.iter_child_nodes(node):
            runs.extend(self.walk_inline(child, child_context))

        if tag in xu.BLOCK_TAGS:
            self._log_nesting(node, tag)
            # The line break the block stood for becomes a word break
            runs = [context.make_run(' '), *runs, context.make_run(' ')]
        return runs

    # --- HANDLERS ---

    def _handle_text(self, text: str, context: StyleContext) -> list[Run]:
        """
        Outside <pre> any whitespace sequence becomes a single space; spaces at
        paragraph edges and between blocks are removed when paragraphs are built.
        """
        if not context.in_pre:
            text = _WHITESPACE_RE.sub(' ', text)
        return [context.make_run(text)] if text else []


    def _handle_image(self, element: etree._Element, context: StyleContext) -> list[InlineNode]:
        """Embedded base64 images only; remote images are never fetched."""
        src = element.get('src', '')
        if not is_data_uri(src):
            log.debug(f"Skipping image without embedded data: {src[:60]!r}")
            return []

        try:
            return [decode_image(src, self.config.image_box, self.config.keep_image_aspect)]
        except ImageDecodeError as e:
            log.warning(f"Image processing error: {e}")
            return [Run(text=IMAGE_ERROR_TEXT, color=ALERT_COLOR,
                        font=context.font, size=context.size)]


    def _handle_transparent(self, element: etree._Element, context: StyleContext) -> list[OutputNode]:
        """Unwraps the element: its children are converted in its place."""
        nodes: list[OutputNode] = []
        for child in xu.iter_child_nodes(element):
            nodes.extend(self.walk(child, context))
        return nodes


    def _handle_block(self, element: etree._Element, context: StyleContext) -> list[OutputNode]:
        """Handles p, h1-h4, pre and div."""
        spacing = self._paragraph_spacing(context, xu.get_tag_name(element))
        nodes = self._handle_transparent(element, context)
        return self._build_blocks(nodes, context, spacing)


    def _handle_list(self, element: etree._Element, context: StyleContext) -> list[OutputNode]:
        """ul/ol are transparent. Numbering is attached to each <li>."""
        nodes: list[OutputNode] = []
        for child in element:
            if xu.is_element(child):
                nodes.extend(self.walk(child, context))
        return nodes


    def _handle_list_item(self, element: etree._Element, context: StyleContext) -> list[OutputNode]:
        """
        One numbered/bulleted paragraph per <li>. Content is walked inline.
        Nested lists follow the item as flat paragraphs on the same level.
        """
        reference = NUMBERED_LIST if xu.get_parent_tag(element) == 'ol' else BULLET_LIST
        numbering = NumberingRef(reference, 0)

        runs: list[InlineNode] = []
        nested: list[OutputNode] = []
        for child in xu.iter_child_nodes(element):
            if not isinstance(child, str) and xu.get_tag_name(child) in LIST_TAGS:
                nested.extend(self.walk(child, context))
            else:
                runs.extend(self.walk_inline(child, context))

        item = self._make_block(runs, context, self._paragraph_spacing(context), numbering)
        return [item, *nested]


    def _handle_table(self, element: etree._Element, context: StyleContext) -> list[OutputNode]:
        """Converts a table. Cells only ever contain paragraphs and tables."""
        rows: list[TableRow] = []
        for tr in self._iter_rows(element):
            cells: list[TableCell] = []
            for cell_el in tr:
                cell_tag = xu.get_tag_name(cell_el)
                if cell_tag not in ('td', 'th'):
                    continue
                cell_context = resolve(context, cell_el)
                nodes = self._handle_transparent(cell_el, cell_context)
                blocks = self._build_blocks(nodes, cell_context, self._paragraph_spacing(cell_context))
                cells.append(TableCell(children=tuple(blocks), header=cell_tag == 'th'))
            if cells:
                rows.append(TableRow(cells=tuple(cells)))

        if not rows:
            log.debug("Skipping table without cells.")
            return []
        return [Table(rows=tuple(rows))]

    # --- HELPERS ---

    def _build_blocks(self, nodes: list[OutputNode], context: StyleContext,
                      spacing: Spacing) -> list[BlockNode]:
        """
        Groups consecutive inline nodes into paragraphs formatted from `context`.
        Nested blocks keep their position. Never returns an empty list.
        """
        result: list[BlockNode] = []
        pending: list[InlineNode] = []

        def flush():
            if tidy_runs(pending, context.in_pre):
                result.append(self._make_block(pending, context, spacing))
            pending.clear()

        for node in nodes:
            if is_inline(node):
                pending.append(node)
            else:
                flush()
                result.append(node)
        flush()

        if not result:
            result.append(self._make_block([], context, spacing))
        return result


    def _make_block(self, children: list[InlineNode], context: StyleContext,
                    spacing: Spacing, numbering: NumberingRef | None = None) -> Block:
        """Creates a paragraph. An empty one still gets a placeholder run."""
        children = tidy_runs(children, context.in_pre)
        if not children:
            children = [context.make_run('')]
        return Block(
            children=tuple(children),
            heading=context.heading,
            shading=context.block_shading,
            border=context.border,
            numbering=numbering,
            spacing=spacing,
        )


    @staticmethod
    def _paragraph_spacing(context: StyleContext, tag: str = '') -> Spacing:
        """Table cells are compact; elsewhere paragraphs get room around them."""
        if context.in_table_cell:
            return CELL_SPACING
        return H1_SPACING if tag == 'h1' else BLOCK_SPACING


    @staticmethod
    def _iter_rows(table: etree._Element):
        """Yields <tr> children of the table and of its thead/tbody/tfoot."""
        for child in table:
            tag = xu.get_tag_name(child)
            if tag == 'tr':
                yield child
            elif tag in TABLE_SECTION_TAGS:
                for row in child:
                    if xu.get_tag_name(row) == 'tr':
                        yield row


    @staticmethod
    def _is_page_break(element: etree._Element, tag: str) -> bool:
        return tag == 'hr' or PAGE_BREAK_CLASS in xu.get_classes(element)


    @staticmethod
    def _log_nesting(element: etree._Element, tag: str):
        log.info(
            f"{UnsupportedNestingWarning.__name__}: <{tag}> inside "
            f"<{xu.get_parent_tag(element)}> flattened to inline content."
        )

    # --- END of HTMLToDocxConverter ---
