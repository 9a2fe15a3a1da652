"""
Normalization of walker output into valid top-level document content.
"""
import dataclasses
import logging

from ..utils.structures import (
    Block, BlockNode, InlineNode, OutputNode, PageBreak, Run, Spacing, Table, is_inline,
)


log = logging.getLogger("kbdocx")

TOP_LEVEL_SPACING = Spacing(before=120, after=120)
CELL_SPACING = Spacing()


def tidy_runs(children: list[InlineNode], in_pre: bool = False) -> list[InlineNode]:
    """
    Collapses the whitespace between neighbouring runs to one space and strips
    it from both ends of the paragraph. Runs that end up empty are dropped.
    Preformatted content is kept as is.
    """
    if in_pre:
        return list(children)

    tidy: list[InlineNode] = []
    for node in children:
        previous = tidy[-1] if tidy else None
        if isinstance(node, Run) and isinstance(previous, Run) and previous.text.endswith(' '):
            text = node.text.lstrip(' ')
            if not text:
                continue
            if text != node.text:
                node = dataclasses.replace(node, text=text)
        tidy.append(node)

    while tidy and isinstance(tidy[0], Run):
        text = tidy[0].text.lstrip(' ')
        if text:
            tidy[0] = dataclasses.replace(tidy[0], text=text)
            break
        tidy.pop(0)

    while tidy and isinstance(tidy[-1], Run):
        text = tidy[-1].text.rstrip(' ')
        if text:
            tidy[-1] = dataclasses.replace(tidy[-1], text=text)
            break
        tidy.pop()

    return tidy


def wrap_inline(nodes: list[OutputNode], spacing: Spacing = TOP_LEVEL_SPACING) -> list[BlockNode]:
    """
    Groups consecutive Run/Image nodes into synthesized paragraphs.
    Block, Table and PageBreak nodes pass through unchanged and in order.
    Groups holding nothing but whitespace produce no paragraph.
    """
    result: list[BlockNode] = []
    pending: list[InlineNode] = []

    def flush():
        children = tidy_runs(pending)
        if children:
            result.append(Block(children=tuple(children), spacing=spacing))
        elif pending:
            log.debug(f"Dropped {len(pending)} whitespace-only run(s) between blocks.")
        pending.clear()

    for node in nodes:
        if is_inline(node):
            pending.append(node)
        elif isinstance(node, (Block, Table, PageBreak)):
            flush()
            result.append(node)
        else:
            raise TypeError(f"Unexpected output node: {type(node).__name__}")
    flush()
    return result


class BlockNormalizer():
    """
    Makes the top-level node sequence valid for the document body:
    only Block, Table and PageBreak, never a bare Run or Image.
    """
    def __init__(self, spacing: Spacing = TOP_LEVEL_SPACING):
        self.spacing = spacing


    def run(self, nodes: list[OutputNode]) -> list[BlockNode]:
        normalized = wrap_inline(nodes, self.spacing)
        original = {id(node) for node in nodes}
        synthesized = sum(1 for node in normalized if id(node) not in original)
        if synthesized:
            log.debug(f"Wrapped stray inline content into {synthesized} paragraph(s).")
        return normalized
