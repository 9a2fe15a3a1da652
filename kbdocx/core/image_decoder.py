"""
Decodes base64 data URI images embedded in the article.
"""
import base64
import binascii
import logging
import re
from io import BytesIO

from PIL import Image as PILImage, UnidentifiedImageError

from ..utils.errors import ImageDecodeError
from ..utils.structures import Image


log = logging.getLogger("kbdocx")

_DATA_URI_RE = re.compile(r'^data:(image/[\w.+-]+)?[^,]*?;base64,', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r'\s+')

# Pillow format name -> (content type, file extension)
_FORMATS = {
    'PNG': ('image/png', 'png'),
    'JPEG': ('image/jpeg', 'jpeg'),
    'GIF': ('image/gif', 'gif'),
    'BMP': ('image/bmp', 'bmp'),
    'TIFF': ('image/tiff', 'tiff'),
}
_MIME_EXTENSIONS = {ctype: ext for ctype, ext in _FORMATS.values()}
_MIME_EXTENSIONS['image/jpg'] = 'jpeg'


def is_data_uri(src: str | None) -> bool:
    return bool(src) and src.lstrip().lower().startswith('data:image')


def decode(data_uri: str) -> bytes:
    """
    Strips the `data:image/...;base64,` prefix and decodes the payload.
    Raises ImageDecodeError on a missing prefix, invalid base64 or empty data.
    """
    data_uri = data_uri.strip()
    match = _DATA_URI_RE.match(data_uri)
    if not match:
        raise ImageDecodeError("Not a base64 image data URI")

    payload = _WHITESPACE_RE.sub('', data_uri[match.end():])
    # Browsers accept unpadded base64
    payload += '=' * (-len(payload) % 4)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image payload: {e}") from e

    if not data:
        raise ImageDecodeError("Empty image payload")
    return data


def _mime_type(data_uri: str) -> str | None:
    match = _DATA_URI_RE.match(data_uri.strip())
    return match.group(1).lower() if match and match.group(1) else None


def sniff_image(data: bytes, mime_type: str | None = None) -> tuple[str, str, tuple[int, int] | None]:
    """
    Returns (content type, extension, pixel size) of image bytes using Pillow.
    Falls back to the declared mime type when Pillow can't read the data.
    """
    try:
        with PILImage.open(BytesIO(data)) as img:
            content_type, extension = _FORMATS.get(img.format or '', ('image/png', 'png'))
            return content_type, extension, img.size
    except (UnidentifiedImageError, OSError) as e:
        log.debug(f"Could not identify image data ({len(data)} bytes): {e}")

    if mime_type in _MIME_EXTENSIONS:
        return mime_type, _MIME_EXTENSIONS[mime_type], None
    return 'image/png', 'png', None


def fit_box(size: tuple[int, int], box: tuple[int, int]) -> tuple[int, int]:
    """Scales `size` to fit inside `box`, preserving the aspect ratio."""
    width, height = size
    max_width, max_height = box
    if width <= 0 or height <= 0:
        return box
    scale = min(max_width / width, max_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def decode_image(data_uri: str, box: tuple[int, int], keep_aspect: bool = False) -> Image:
    """Decodes a data URI into an Image node sized to the display box."""
    data = decode(data_uri)
    content_type, extension, size = sniff_image(data, _mime_type(data_uri))

    width, height = box
    if keep_aspect and size is not None:
        width, height = fit_box(size, box)

    return Image(data=data, width=width, height=height,
                 content_type=content_type, extension=extension)
