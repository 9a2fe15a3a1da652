"""
Tests for style context resolution.
"""
import lxml.html
import pytest

from kbdocx.core.style_resolver import (
    CODE_BLOCK_COLOR, CODE_BLOCK_SHADING, INLINE_CODE_COLOR, INLINE_CODE_SHADING,
    MONOSPACE_FONT, SEMANTIC_CLASS_STYLES, StyleContext, resolve, root_context, semantic_class,
)
from kbdocx.utils.structures import BorderSide, BorderSpec


def element(html: str):
    return lxml.html.fragment_fromstring(html)


class TestTagFormatting:
    """Formatting implied by the tag itself."""

    @pytest.mark.parametrize("tag", ["strong", "b"])
    def test_bold_tags(self, tag):
        ctx = resolve(root_context(), element(f"<{tag}>x</{tag}>"))
        assert ctx.bold is True
        assert ctx.italic is False

    @pytest.mark.parametrize("tag", ["em", "i"])
    def test_italic_tags(self, tag):
        ctx = resolve(root_context(), element(f"<{tag}>x</{tag}>"))
        assert ctx.italic is True

    def test_inline_code(self):
        ctx = resolve(root_context(), element("<code>ls -la</code>"))
        assert ctx.font == MONOSPACE_FONT
        assert ctx.color == INLINE_CODE_COLOR
        assert ctx.shading == INLINE_CODE_SHADING

    def test_pre_sets_code_block_style(self):
        ctx = resolve(root_context(), element("<pre>x</pre>"))
        assert ctx.in_pre is True
        assert ctx.font == MONOSPACE_FONT
        assert ctx.block_shading == CODE_BLOCK_SHADING
        assert ctx.color == CODE_BLOCK_COLOR
        assert ctx.shading is None

    def test_code_inside_pre_keeps_block_colors(self):
        pre = resolve(root_context(), element("<pre>x</pre>"))
        code = resolve(pre, element("<code>x</code>"))
        assert code.font == MONOSPACE_FONT
        assert code.color == CODE_BLOCK_COLOR
        assert code.shading is None

    def test_span_without_style_returns_parent(self):
        parent = root_context()
        assert resolve(parent, element("<span>x</span>")) is parent


class TestHeadings:
    """Heading levels, colors and sizes."""

    @pytest.mark.parametrize("tag, level, color, size", [
        ("h1", 1, "1D4ED8", 36),
        ("h2", 2, "111827", 30),
        ("h3", 3, "374151", 24),
    ])
    def test_heading_styles(self, tag, level, color, size):
        ctx = resolve(root_context(), element(f"<{tag}>x</{tag}>"))
        assert ctx.heading == level
        assert ctx.color == color
        assert ctx.size == size
        assert ctx.bold is True

    def test_h1_bottom_border(self):
        ctx = resolve(root_context(), element("<h1>x</h1>"))
        assert ctx.border == BorderSpec(bottom=BorderSide("E5E7EB", 12))

    def test_h2_has_no_border(self):
        ctx = resolve(root_context(), element("<h2>x</h2>"))
        assert ctx.border is None

    def test_h4_is_not_a_heading(self):
        ctx = resolve(root_context(), element("<h4>x</h4>"))
        assert ctx.heading is None
        assert ctx.bold is False

    def test_heading_level_is_not_inherited(self):
        h1 = resolve(root_context(), element("<h1>x</h1>"))
        inner = resolve(h1, element("<strong>x</strong>"))
        assert inner.heading is None
        assert inner.border is None
        assert inner.color == "1D4ED8"
        assert inner.bold is True

    def test_h2_inside_callout_keeps_callout_border(self):
        warning = resolve(root_context(), element('<div class="warning">x</div>'))
        h2 = resolve(warning, element("<h2>x</h2>"))
        assert h2.heading == 2
        assert h2.border == SEMANTIC_CLASS_STYLES["warning"].border
        assert h2.block_shading == "FEF2F2"

    def test_h1_inside_callout_uses_its_rule_line(self):
        warning = resolve(root_context(), element('<div class="warning">x</div>'))
        h1 = resolve(warning, element("<h1>x</h1>"))
        assert h1.border == BorderSpec(bottom=BorderSide("E5E7EB", 12))

    def test_heading_content_inside_callout_keeps_callout_border(self):
        warning = resolve(root_context(), element('<div class="warning">x</div>'))
        h2 = resolve(warning, element("<h2>x</h2>"))
        inner = resolve(h2, element("<strong>x</strong>"))
        assert inner.heading is None
        assert inner.border == SEMANTIC_CLASS_STYLES["warning"].border


class TestSemanticClasses:
    """Callout classes and their priority."""

    @pytest.mark.parametrize("name, shading, border_color, border_size, color", [
        ("warning", "FEF2F2", "EF4444", 32, "991B1B"),
        ("metadata", "EFF6FF", "3B82F6", 32, "1E40AF"),
        ("lesson-learned", "FFFBEB", "F59E0B", 40, "B45309"),
    ])
    def test_class_styles(self, name, shading, border_color, border_size, color):
        ctx = resolve(root_context(), element(f'<div class="{name}">x</div>'))
        assert ctx.block_shading == shading
        assert ctx.border.left == BorderSide(border_color, border_size, space=10)
        assert ctx.color == color

    def test_warning_wins_over_metadata(self):
        el = element('<div class="metadata warning">x</div>')
        assert semantic_class(el) == "warning"
        assert resolve(root_context(), el).block_shading == SEMANTIC_CLASS_STYLES["warning"].shading

    def test_metadata_wins_over_lesson_learned(self):
        el = element('<div class="lesson-learned metadata">x</div>')
        assert semantic_class(el) == "metadata"

    def test_class_overrides_heading_color(self):
        ctx = resolve(root_context(), element('<h2 class="warning">x</h2>'))
        assert ctx.heading == 2
        assert ctx.color == "991B1B"

    def test_unknown_class_is_ignored(self):
        parent = root_context()
        assert resolve(parent, element('<div class="step">x</div>')) == parent

    def test_callout_is_inherited_by_nested_paragraph(self):
        warning = resolve(root_context(), element('<div class="warning">x</div>'))
        p = resolve(warning, element("<p>x</p>"))
        assert p.block_shading == "FEF2F2"
        assert p.color == "991B1B"

    def test_table_cell_drops_callout(self):
        warning = resolve(root_context(), element('<div class="warning">x</div>'))
        td = resolve(warning, lxml.html.Element("td"))
        assert td.in_table_cell is True
        assert td.block_shading is None
        assert td.border is None


class TestInlineStyle:
    """Inline `style` colors."""

    @pytest.mark.parametrize("style, expected", [
        ("color: #ff0000", "FF0000"),
        ("color:#0f0", "00FF00"),
        ("color: rgb(16, 185, 129)", "10B981"),
        ("color: blue", "3B82F6"),
        ("font-weight: bold; color: RGB(1,2,3)", "010203"),
    ])
    def test_color_parsing(self, style, expected):
        ctx = resolve(root_context(), element(f'<span style="{style}">x</span>'))
        assert ctx.color == expected

    def test_style_color_overrides_class(self):
        ctx = resolve(root_context(), element('<div class="warning" style="color: #000000">x</div>'))
        assert ctx.color == "000000"
        assert ctx.block_shading == "FEF2F2"

    @pytest.mark.parametrize("style", ["color: papayawhip", "color: #12", "color:", "color: rgb(1,2)"])
    def test_unparsable_color_inherits(self, style):
        parent = StyleContext(color="123456")
        ctx = resolve(parent, element(f'<span style="{style}">x</span>'))
        assert ctx.color == "123456"

    def test_background_color_sets_run_shading(self):
        ctx = resolve(root_context(), element('<span style="background-color: #FFFF00">x</span>'))
        assert ctx.shading == "FFFF00"


class TestPurity:
    """resolve() depends only on its arguments."""

    def test_resolution_is_idempotent(self):
        parent = resolve(root_context(), element('<div class="metadata">x</div>'))
        el = element('<h1 style="color: #abcdef">x</h1>')
        assert resolve(parent, el) == resolve(parent, el)

    def test_parent_is_not_modified(self):
        parent = root_context()
        resolve(parent, element("<h1>x</h1>"))
        assert parent == root_context()

    def test_root_context_uses_configured_font(self):
        ctx = root_context("Calibri", 24)
        assert ctx.font == "Calibri"
        assert ctx.size == 24
