"""
Tests for the color and XML helpers.
"""
import lxml.html
import pytest
from lxml import etree

from kbdocx.utils import xml_utils as xu
from kbdocx.utils.colors import to_hex
from kbdocx.utils.namespaces import Namespaces as NS


class TestToHex:

    @pytest.mark.parametrize("value, expected", [
        ("#ff0000", "FF0000"),
        ("#F00", "FF0000"),
        (" #abcdef ", "ABCDEF"),
        ("rgb(16, 185, 129)", "10B981"),
        ("rgba(255, 0, 0, 0.5)", "FF0000"),
        ("rgb(300, 0, 0)", "FF0000"),
        ("Blue", "3B82F6"),
        ("grey", "71717A"),
    ])
    def test_valid(self, value, expected):
        assert to_hex(value) == expected

    @pytest.mark.parametrize("value", [None, "", "#12", "#12345g", "rgb(1, 2)", "hsl(0, 0%, 0%)", "teal"])
    def test_invalid(self, value):
        assert to_hex(value) is None


class TestHtmlHelpers:

    def test_iter_child_nodes_keeps_comment_tails(self):
        el = lxml.html.fragment_fromstring("<p>a<!-- c -->b<em>x</em>c</p>")
        nodes = list(xu.iter_child_nodes(el))
        assert nodes[0] == "a"
        assert nodes[1] == "b"
        assert xu.get_tag_name(nodes[2]) == "em"
        assert nodes[3] == "c"

    def test_parse_style(self):
        el = lxml.html.fragment_fromstring('<span style="Color: Red; ; background-color:#fff">x</span>')
        assert xu.parse_style(el) == {"color": "Red", "background-color": "#fff"}

    def test_get_classes(self):
        el = lxml.html.fragment_fromstring('<div class=" warning  metadata ">x</div>')
        assert xu.get_classes(el) == ["warning", "metadata"]

    def test_comment_has_no_tag_name(self):
        assert xu.get_tag_name(etree.Comment("x")) == ""


class TestXmlHelpers:

    def test_w_sub_skips_none(self):
        root = etree.Element(xu.w("root"), nsmap=NS.W_MAP)
        child = xu.w_sub(root, "spacing", before=0, after=None)
        assert child.get(xu.w("before")) == "0"
        assert child.get(xu.w("after")) is None

    def test_to_bytes_declaration(self):
        data = xu.to_bytes(etree.Element(xu.w("document"), nsmap=NS.W_MAP))
        assert data.startswith(b"<?xml version='1.0' encoding='UTF-8' standalone='yes'?>")
