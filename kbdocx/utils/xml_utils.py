from typing import Iterator

from lxml import etree

from .namespaces import Namespaces as NS

# --- HTML source helpers ---

# Elements that start a new line when rendered and can't live inside a paragraph
BLOCK_TAGS = frozenset({
    'p', 'div', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'pre', 'table', 'thead',
    'tbody', 'tfoot', 'tr', 'td', 'th', 'ul', 'ol', 'li', 'blockquote',
})


def is_element(node) -> bool:
    """True for real elements; False for comments, PIs and entities."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def get_tag_name(element: etree._Element) -> str:
    """Returns a lowercase tag name without a namespace prefix."""
    if not isinstance(element.tag, str):
        return ''
    return etree.QName(element.tag).localname.lower()


def get_classes(element: etree._Element) -> list[str]:
    """Returns the element's class list."""
    return element.get('class', '').split()


def parse_style(element: etree._Element) -> dict[str, str]:
    """Parses an inline `style` attribute into a {property: value} dictionary."""
    style = element.get('style') or ''
    declarations = {}
    for declaration in style.split(';'):
        prop, sep, value = declaration.partition(':')
        if sep and prop.strip():
            declarations[prop.strip().lower()] = value.strip()
    return declarations


def iter_child_nodes(element: etree._Element) -> Iterator[str | etree._Element]:
    """
    Yields the element's child nodes in document order, DOM-style:
    text slots are yielded as plain strings, elements as themselves.
    Comments and PIs are skipped, but their tails are kept.
    """
    if element.text:
        yield element.text
    for child in element:
        if is_element(child):
            yield child
        if child.tail:
            yield child.tail


def get_parent_tag(element: etree._Element) -> str:
    parent = element.getparent()
    return get_tag_name(parent) if parent is not None else ''

# --- WordprocessingML helpers ---

def w(tag: str) -> str:
    """Returns the Clark notation name of a w: tag or attribute."""
    return f"{{{NS.W}}}{tag}"


def w_sub(parent: etree._Element, tag: str, **attrib) -> etree._Element:
    """Appends a w: element. Keyword arguments become w: attributes."""
    element = etree.SubElement(parent, w(tag))
    for key, value in attrib.items():
        if value is not None:
            element.set(w(key), str(value))
    return element


def to_bytes(root: etree._Element) -> bytes:
    """Serializes an XML part the way Word writes it."""
    return etree.tostring(root, xml_declaration=True, encoding='UTF-8', standalone=True)
