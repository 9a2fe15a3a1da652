"""
Handles the assembly of the document package and its serialization
into a .docx (WordprocessingML) archive.
"""
import asyncio
import io
import logging
import re
import zipfile
from datetime import datetime, timezone
from typing import NamedTuple

from lxml import etree

from ..utils import xml_utils as xu
from ..utils.config import ConversionConfig
from ..utils.errors import PackagingError
from ..utils.namespaces import Namespaces as NS
from ..utils.structures import (
    Block, BlockNode, BorderSide, Image, NumberingDefinition, PageBreak, PartNames as PN,
    Run, Table, TableCell, is_block,
)
from ..utils.xml_utils import w, w_sub


log = logging.getLogger("kbdocx")

DOCX_EXTENSION = ".docx"
EMU_PER_PIXEL = 9525
APP_NAME = "kbdocx"

HEADER_SHADING = "F9FAFB"
CELL_BORDER = BorderSide("E5E7EB", 1)
CELL_MARGIN = 100   # twips
PARAGRAPH_HEADINGS = {1: "Heading1", 2: "Heading2", 3: "Heading3"}

NUMBERING_DEFINITIONS: tuple[NumberingDefinition, ...] = (
    NumberingDefinition("main-numbering", 1, "decimal", "%1."),
    NumberingDefinition("main-bullets", 2, "bullet", "•"),
)

# Characters XML 1.0 can't carry
_INVALID_XML_CHARS = re.compile('[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]')
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


class PageGeometry(NamedTuple):
    """US Letter page, 1 inch margins. All values in twips."""
    width: int = 12240
    height: int = 15840
    margin_top: int = 1440
    margin_right: int = 1440
    margin_bottom: int = 1440
    margin_left: int = 1440
    header: int = 720
    footer: int = 720

    @property
    def content_width(self) -> int:
        return self.width - self.margin_left - self.margin_right


class DocxDocument(NamedTuple):
    """Everything the packager needs. Built once per export and never modified."""
    title: str
    numbering: tuple[NumberingDefinition, ...]
    page: PageGeometry
    body: tuple[BlockNode, ...]
    font_family: str = "Arial"
    font_size: int = 22


class MediaPart(NamedTuple):
    rel_id: str
    part_name: str
    image: Image


def assemble(nodes: list[BlockNode], title: str, config: ConversionConfig | None = None) -> DocxDocument:
    """Wraps normalized top-level nodes into a document package."""
    config = config or ConversionConfig()
    for node in nodes:
        if not is_block(node):
            raise TypeError(f"{type(node).__name__} can't be placed at the document top level")
    return DocxDocument(
        title=title,
        numbering=NUMBERING_DEFINITIONS,
        page=PageGeometry(),
        body=tuple(nodes),
        font_family=config.font_family,
        font_size=config.font_size,
    )


def derive_filename(title: str, add_timestamp: bool = True, now: datetime | None = None) -> str:
    """
    `My Runbook` -> `My_Runbook_20240101_120000.docx`.
    Whitespace becomes underscores, characters invalid in filenames are dropped.
    """
    stem = _UNSAFE_FILENAME_CHARS.sub('', title.strip())
    stem = re.sub(r'\s+', '_', stem).strip('._') or "document"
    if add_timestamp:
        stem += (now or datetime.now()).strftime("_%Y%m%d_%H%M%S")
    return stem + DOCX_EXTENSION


class DocxPackager:
    """
    Serializes a DocxDocument into a .docx archive held in memory.
    Each part is built as an lxml tree and written into a zip.
    """
    def __init__(self, document: DocxDocument):
        self.document = document
        self.media: list[MediaPart] = []
        self._drawing_id = 0


    def to_bytes(self) -> bytes:
        """Builds the archive. Any failure is raised as PackagingError."""
        self.media = []
        self._drawing_id = 0
        try:
            parts = self._build_parts()
            data = self._zip(parts)
        except Exception as e:
            raise PackagingError(f"Failed to package '{self.document.title}': {e}") from e
        log.info(f"Packaged '{self.document.title}': {len(data)} bytes, {len(self.media)} image(s).")
        return data


    async def to_blob(self) -> bytes:
        """Awaitable packaging; runs in a worker thread."""
        return await asyncio.to_thread(self.to_bytes)


    def _build_parts(self) -> dict[str, bytes]:
        # document.xml first: it registers the media parts
        document_xml = xu.to_bytes(self._create_document())
        parts = {
            PN.CONTENT_TYPES: xu.to_bytes(self._create_content_types()),
            PN.ROOT_RELS: xu.to_bytes(self._create_root_rels()),
            PN.CORE: xu.to_bytes(self._create_core_properties()),
            PN.APP: xu.to_bytes(self._create_app_properties()),
            PN.DOCUMENT: document_xml,
            PN.STYLES: xu.to_bytes(self._create_styles()),
            PN.NUMBERING: xu.to_bytes(self._create_numbering()),
            PN.SETTINGS: xu.to_bytes(self._create_settings()),
            PN.DOCUMENT_RELS: xu.to_bytes(self._create_document_rels()),
        }
        for media in self.media:
            parts[media.part_name] = media.image.data
        return parts


    @staticmethod
    def _zip(parts: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
            for name, data in parts.items():
                zf.writestr(name, data)
                log.debug(f"Added part: {name}")
        return buffer.getvalue()

    # --- PACKAGE PARTS ---

    def _create_content_types(self) -> etree._Element:
        types = etree.Element(f"{{{NS.CONTENT_TYPES}}}Types", nsmap=NS.CONTENT_TYPES_MAP)
        etree.SubElement(types, f"{{{NS.CONTENT_TYPES}}}Default", Extension="rels",
                         ContentType="application/vnd.openxmlformats-package.relationships+xml")
        etree.SubElement(types, f"{{{NS.CONTENT_TYPES}}}Default", Extension="xml", ContentType="application/xml")

        image_types = {m.image.extension: m.image.content_type for m in self.media}
        for extension, content_type in sorted(image_types.items()):
            etree.SubElement(types, f"{{{NS.CONTENT_TYPES}}}Default", Extension=extension, ContentType=content_type)

        overrides = {
            PN.DOCUMENT: "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml",
            PN.STYLES: "application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml",
            PN.NUMBERING: "application/vnd.openxmlformats-officedocument.wordprocessingml.numbering+xml",
            PN.SETTINGS: "application/vnd.openxmlformats-officedocument.wordprocessingml.settings+xml",
            PN.CORE: "application/vnd.openxmlformats-package.core-properties+xml",
            PN.APP: "application/vnd.openxmlformats-officedocument.extended-properties+xml",
        }
        for part_name, content_type in overrides.items():
            etree.SubElement(types, f"{{{NS.CONTENT_TYPES}}}Override", PartName=f"/{part_name}", ContentType=content_type)
        return types


    @staticmethod
    def _create_root_rels() -> etree._Element:
        rels = etree.Element(f"{{{NS.PKG_REL}}}Relationships", nsmap=NS.PKG_REL_MAP)
        etree.SubElement(rels, f"{{{NS.PKG_REL}}}Relationship", Id="rId1", Type=NS.REL_DOCUMENT, Target=PN.DOCUMENT)
        etree.SubElement(rels, f"{{{NS.PKG_REL}}}Relationship", Id="rId2", Type=NS.REL_CORE, Target=PN.CORE)
        etree.SubElement(rels, f"{{{NS.PKG_REL}}}Relationship", Id="rId3", Type=NS.REL_APP, Target=PN.APP)
        return rels


    def _create_document_rels(self) -> etree._Element:
        rels = etree.Element(f"{{{NS.PKG_REL}}}Relationships", nsmap=NS.PKG_REL_MAP)
        etree.SubElement(rels, f"{{{NS.PKG_REL}}}Relationship", Id="rId1", Type=NS.REL_STYLES, Target="styles.xml")
        etree.SubElement(rels, f"{{{NS.PKG_REL}}}Relationship", Id="rId2", Type=NS.REL_NUMBERING, Target="numbering.xml")
        etree.SubElement(rels, f"{{{NS.PKG_REL}}}Relationship", Id="rId3", Type=NS.REL_SETTINGS, Target="settings.xml")
        for media in self.media:
            target = media.part_name.removeprefix("word/")
            etree.SubElement(rels, f"{{{NS.PKG_REL}}}Relationship", Id=media.rel_id, Type=NS.REL_IMAGE, Target=target)
        return rels


    def _create_core_properties(self) -> etree._Element:
        """docProps/core.xml: title and timestamps."""
        core = etree.Element(f"{{{NS.CORE}}}coreProperties", nsmap=NS.CORE_MAP)
        etree.SubElement(core, f"{{{NS.DC}}}title").text = _xml_text(self.document.title)
        etree.SubElement(core, f"{{{NS.DC}}}creator").text = APP_NAME
        now = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
        for tag in ("created", "modified"):
            stamp = etree.SubElement(core, f"{{{NS.DCTERMS}}}{tag}")
            stamp.set(f"{{{NS.XSI}}}type", "dcterms:W3CDTF")
            stamp.text = now
        return core


    @staticmethod
    def _create_app_properties() -> etree._Element:
        props = etree.Element(f"{{{NS.EXT_PROPS}}}Properties", nsmap=NS.EXT_PROPS_MAP)
        etree.SubElement(props, f"{{{NS.EXT_PROPS}}}Application").text = APP_NAME
        return props


    @staticmethod
    def _create_settings() -> etree._Element:
        settings = etree.Element(w("settings"), nsmap=NS.W_MAP)
        w_sub(settings, "defaultTabStop", val=720)
        compat = w_sub(settings, "compat")
        w_sub(compat, "compatSetting", name="compatibilityMode",
              uri="http://schemas.microsoft.com/office/word", val=15)
        return settings


    def _create_styles(self) -> etree._Element:
        """Document defaults plus the paragraph and table styles the body refers to."""
        doc = self.document
        styles = etree.Element(w("styles"), nsmap=NS.W_MAP)

        defaults = w_sub(styles, "docDefaults")
        r_pr = w_sub(w_sub(defaults, "rPrDefault"), "rPr")
        w_sub(r_pr, "rFonts", ascii=doc.font_family, hAnsi=doc.font_family,
              eastAsia=doc.font_family, cs=doc.font_family)
        w_sub(r_pr, "sz", val=doc.font_size)
        w_sub(r_pr, "szCs", val=doc.font_size)
        w_sub(w_sub(defaults, "pPrDefault"), "pPr")

        normal = w_sub(styles, "style", type="paragraph", default=1, styleId="Normal")
        w_sub(normal, "name", val="Normal")
        w_sub(normal, "qFormat")

        for level, style_id in PARAGRAPH_HEADINGS.items():
            heading = w_sub(styles, "style", type="paragraph", styleId=style_id)
            w_sub(heading, "name", val=f"heading {level}")
            w_sub(heading, "basedOn", val="Normal")
            w_sub(heading, "next", val="Normal")
            w_sub(heading, "qFormat")
            p_pr = w_sub(heading, "pPr")
            w_sub(p_pr, "keepNext")
            w_sub(p_pr, "outlineLvl", val=level - 1)
            w_sub(w_sub(heading, "rPr"), "b")

        list_paragraph = w_sub(styles, "style", type="paragraph", styleId="ListParagraph")
        w_sub(list_paragraph, "name", val="List Paragraph")
        w_sub(list_paragraph, "basedOn", val="Normal")
        w_sub(w_sub(list_paragraph, "pPr"), "ind", left=720)

        table_normal = w_sub(styles, "style", type="table", default=1, styleId="TableNormal")
        w_sub(table_normal, "name", val="Normal Table")
        tbl_pr = w_sub(table_normal, "tblPr")
        w_sub(tbl_pr, "tblInd", w=0, type="dxa")
        cell_mar = w_sub(tbl_pr, "tblCellMar")
        for side in ("top", "left", "bottom", "right"):
            w_sub(cell_mar, side, w=CELL_MARGIN, type="dxa")

        table_grid = w_sub(styles, "style", type="table", styleId="TableGrid")
        w_sub(table_grid, "name", val="Table Grid")
        w_sub(table_grid, "basedOn", val="TableNormal")
        borders = w_sub(w_sub(table_grid, "tblPr"), "tblBorders")
        for side in ("top", "left", "bottom", "right", "insideH", "insideV"):
            _border(borders, side, CELL_BORDER)
        return styles


    def _create_numbering(self) -> etree._Element:
        """One single-level abstract definition per list style. All abstractNums precede nums."""
        numbering = etree.Element(w("numbering"), nsmap=NS.W_MAP)
        for index, definition in enumerate(self.document.numbering):
            abstract = w_sub(numbering, "abstractNum", abstractNumId=index)
            w_sub(abstract, "multiLevelType", val="singleLevel")
            lvl = w_sub(abstract, "lvl", ilvl=0)
            w_sub(lvl, "start", val=1)
            w_sub(lvl, "numFmt", val=definition.num_format)
            w_sub(lvl, "lvlText", val=definition.level_text)
            w_sub(lvl, "lvlJc", val=definition.alignment)
            w_sub(w_sub(lvl, "pPr"), "ind", left=720, hanging=360)

        for index, definition in enumerate(self.document.numbering):
            num = w_sub(numbering, "num", numId=definition.num_id)
            w_sub(num, "abstractNumId", val=index)
        return numbering


    def _create_document(self) -> etree._Element:
        """word/document.xml: the body nodes followed by the section properties."""
        document = etree.Element(w("document"), nsmap=NS.DOCUMENT_MAP)
        body = w_sub(document, "body")
        for node in self.document.body:
            self._append_block_node(body, node)

        page = self.document.page
        sect_pr = w_sub(body, "sectPr")
        w_sub(sect_pr, "pgSz", w=page.width, h=page.height)
        w_sub(sect_pr, "pgMar", top=page.margin_top, right=page.margin_right,
              bottom=page.margin_bottom, left=page.margin_left,
              header=page.header, footer=page.footer, gutter=0)
        return document

    # --- BODY CONTENT ---

    def _append_block_node(self, parent: etree._Element, node: BlockNode, width: int | None = None):
        if isinstance(node, Block):
            self._append_paragraph(parent, node)
        elif isinstance(node, Table):
            self._append_table(parent, node, width or self.document.page.content_width)
        elif isinstance(node, PageBreak):
            p = w_sub(parent, "p")
            w_sub(w_sub(p, "pPr"), "spacing", before=0, after=0)
            w_sub(w_sub(p, "r"), "br", type="page")
        else:
            raise TypeError(f"{type(node).__name__} is not a block node")


    def _append_paragraph(self, parent: etree._Element, block: Block):
        p = w_sub(parent, "p")
        p_pr = w_sub(p, "pPr")
        # Child order of pPr is fixed by the schema
        if block.heading in PARAGRAPH_HEADINGS:
            w_sub(p_pr, "pStyle", val=PARAGRAPH_HEADINGS[block.heading])
        elif block.numbering is not None:
            w_sub(p_pr, "pStyle", val="ListParagraph")
        if block.numbering is not None:
            num_pr = w_sub(p_pr, "numPr")
            w_sub(num_pr, "ilvl", val=block.numbering.level)
            w_sub(num_pr, "numId", val=self._num_id(block.numbering.reference))
        if block.border is not None:
            p_bdr = w_sub(p_pr, "pBdr")
            if block.border.left is not None:
                _border(p_bdr, "left", block.border.left)
            if block.border.bottom is not None:
                _border(p_bdr, "bottom", block.border.bottom)
        if block.shading:
            w_sub(p_pr, "shd", val="clear", color="auto", fill=block.shading)
        w_sub(p_pr, "spacing", before=block.spacing.before, after=block.spacing.after)

        for child in block.children:
            if isinstance(child, Run):
                self._append_run(p, child)
            elif isinstance(child, Image):
                self._append_image(p, child)
            else:
                raise TypeError(f"{type(child).__name__} can't be placed inside a paragraph")


    def _append_run(self, p: etree._Element, run: Run):
        r = w_sub(p, "r")
        r_pr = w_sub(r, "rPr")
        if run.font:
            w_sub(r_pr, "rFonts", ascii=run.font, hAnsi=run.font, eastAsia=run.font, cs=run.font)
        if run.bold:
            w_sub(r_pr, "b")
            w_sub(r_pr, "bCs")
        if run.italic:
            w_sub(r_pr, "i")
            w_sub(r_pr, "iCs")
        if run.color:
            w_sub(r_pr, "color", val=run.color)
        if run.size:
            w_sub(r_pr, "sz", val=run.size)
            w_sub(r_pr, "szCs", val=run.size)
        if run.shading:
            w_sub(r_pr, "shd", val="clear", color="auto", fill=run.shading)
        if len(r_pr) == 0:
            r.remove(r_pr)

        # Line breaks and tabs are separate run content elements
        for i, line in enumerate(_xml_text(run.text).split('\n')):
            if i > 0:
                w_sub(r, "br")
            for j, chunk in enumerate(line.split('\t')):
                if j > 0:
                    w_sub(r, "tab")
                if chunk or (i == 0 and j == 0):
                    t = w_sub(r, "t")
                    t.set(f"{{{NS.XML}}}space", "preserve")
                    t.text = chunk


    def _append_image(self, p: etree._Element, image: Image):
        """Inline DrawingML picture referencing a media part."""
        self._drawing_id += 1
        index = self._drawing_id
        rel_id = f"rId{len(self.media) + 4}"   # rId1-3 are styles, numbering, settings
        part_name = f"{PN.MEDIA}/image{index}.{image.extension}"
        self.media.append(MediaPart(rel_id, part_name, image))

        cx, cy = str(image.width * EMU_PER_PIXEL), str(image.height * EMU_PER_PIXEL)
        wp, a, pic = NS.WP, NS.A, NS.PIC

        drawing = w_sub(w_sub(p, "r"), "drawing")
        inline = etree.SubElement(drawing, f"{{{wp}}}inline", distT="0", distB="0", distL="0", distR="0")
        etree.SubElement(inline, f"{{{wp}}}extent", cx=cx, cy=cy)
        etree.SubElement(inline, f"{{{wp}}}effectExtent", l="0", t="0", r="0", b="0")
        etree.SubElement(inline, f"{{{wp}}}docPr", id=str(index), name=f"Picture {index}")
        frame_pr = etree.SubElement(inline, f"{{{wp}}}cNvGraphicFramePr")
        etree.SubElement(frame_pr, f"{{{a}}}graphicFrameLocks", noChangeAspect="1")

        graphic = etree.SubElement(inline, f"{{{a}}}graphic")
        graphic_data = etree.SubElement(graphic, f"{{{a}}}graphicData", uri=NS.PIC)
        picture = etree.SubElement(graphic_data, f"{{{pic}}}pic")

        nv_pic_pr = etree.SubElement(picture, f"{{{pic}}}nvPicPr")
        etree.SubElement(nv_pic_pr, f"{{{pic}}}cNvPr", id="0", name=f"image{index}.{image.extension}")
        etree.SubElement(nv_pic_pr, f"{{{pic}}}cNvPicPr")

        blip_fill = etree.SubElement(picture, f"{{{pic}}}blipFill")
        etree.SubElement(blip_fill, f"{{{a}}}blip").set(f"{{{NS.R}}}embed", rel_id)
        etree.SubElement(etree.SubElement(blip_fill, f"{{{a}}}stretch"), f"{{{a}}}fillRect")

        sp_pr = etree.SubElement(picture, f"{{{pic}}}spPr")
        xfrm = etree.SubElement(sp_pr, f"{{{a}}}xfrm")
        etree.SubElement(xfrm, f"{{{a}}}off", x="0", y="0")
        etree.SubElement(xfrm, f"{{{a}}}ext", cx=cx, cy=cy)
        geometry = etree.SubElement(sp_pr, f"{{{a}}}prstGeom", prst="rect")
        etree.SubElement(geometry, f"{{{a}}}avLst")


    def _append_table(self, parent: etree._Element, table: Table, width: int):
        """Full-width table with thin grey cell borders."""
        columns = max(len(row.cells) for row in table.rows)
        column_width = width // columns

        tbl = w_sub(parent, "tbl")
        tbl_pr = w_sub(tbl, "tblPr")
        w_sub(tbl_pr, "tblStyle", val="TableGrid")
        w_sub(tbl_pr, "tblW", w=5000, type="pct")
        w_sub(tbl_pr, "tblLook", val="04A0", firstRow=1, lastRow=0,
              firstColumn=1, lastColumn=0, noHBand=0, noVBand=1)
        grid = w_sub(tbl, "tblGrid")
        for _ in range(columns):
            w_sub(grid, "gridCol", w=column_width)

        for row in table.rows:
            tr = w_sub(tbl, "tr")
            for cell in row.cells:
                self._append_cell(tr, cell, column_width)


    def _append_cell(self, tr: etree._Element, cell: TableCell, width: int):
        tc = w_sub(tr, "tc")
        tc_pr = w_sub(tc, "tcPr")
        w_sub(tc_pr, "tcW", w=width, type="dxa")
        borders = w_sub(tc_pr, "tcBorders")
        for side in ("top", "left", "bottom", "right"):
            _border(borders, side, CELL_BORDER)
        if cell.header:
            w_sub(tc_pr, "shd", val="clear", color="auto", fill=HEADER_SHADING)
        margins = w_sub(tc_pr, "tcMar")
        for side in ("top", "left", "bottom", "right"):
            w_sub(margins, side, w=CELL_MARGIN, type="dxa")
        w_sub(tc_pr, "vAlign", val="center")

        for node in cell.children:
            self._append_block_node(tc, node, width - 2 * CELL_MARGIN)
        # A cell has to end with a paragraph
        if not cell.children or isinstance(cell.children[-1], Table):
            w_sub(tc, "p")


    def _num_id(self, reference: str) -> int:
        for definition in self.document.numbering:
            if definition.reference == reference:
                return definition.num_id
        raise PackagingError(f"Unknown numbering reference: {reference}")


def _border(parent: etree._Element, side: str, border: BorderSide):
    w_sub(parent, side, val=border.style, sz=border.size, space=border.space, color=border.color)


def _xml_text(text: str) -> str:
    return _INVALID_XML_CHARS.sub('', text)


def package_document(document: DocxDocument) -> bytes:
    """Serializes the document into .docx bytes. Raises PackagingError."""
    return DocxPackager(document).to_bytes()
