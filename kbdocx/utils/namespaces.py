class Namespaces:
    """A container for OOXML namespaces and their corresponding maps for lxml."""
    # Namespace URIs
    W = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
    R = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
    WP = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
    A = "http://schemas.openxmlformats.org/drawingml/2006/main"
    PIC = "http://schemas.openxmlformats.org/drawingml/2006/picture"
    PKG_REL = "http://schemas.openxmlformats.org/package/2006/relationships"
    CONTENT_TYPES = "http://schemas.openxmlformats.org/package/2006/content-types"
    CORE = "http://schemas.openxmlformats.org/package/2006/metadata/core-properties"
    DC = "http://purl.org/dc/elements/1.1/"
    DCTERMS = "http://purl.org/dc/terms/"
    XSI = "http://www.w3.org/2001/XMLSchema-instance"
    EXT_PROPS = "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties"
    XML = "http://www.w3.org/XML/1998/namespace"

    # Relationship types
    REL_DOCUMENT = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"
    REL_CORE = "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties"
    REL_APP = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/extended-properties"
    REL_STYLES = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles"
    REL_NUMBERING = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/numbering"
    REL_SETTINGS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/settings"
    REL_IMAGE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"

    # Namespace Maps
    W_MAP = {'w': W, 'r': R}
    DOCUMENT_MAP = {'w': W, 'r': R, 'wp': WP, 'a': A, 'pic': PIC}
    PKG_REL_MAP = {None: PKG_REL}
    CONTENT_TYPES_MAP = {None: CONTENT_TYPES}
    CORE_MAP = {'cp': CORE, 'dc': DC, 'dcterms': DCTERMS, 'xsi': XSI}
    EXT_PROPS_MAP = {None: EXT_PROPS}
