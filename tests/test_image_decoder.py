"""
Tests for data URI decoding and image sizing.
"""
import base64

import pytest

from kbdocx.core.image_decoder import decode, decode_image, fit_box, is_data_uri, sniff_image
from kbdocx.utils.errors import ImageDecodeError

from .conftest import make_png


class TestDecode:

    def test_strips_prefix(self):
        assert decode("data:image/png;base64,AAAA") == b"\x00\x00\x00"

    def test_whitespace_in_payload(self):
        assert decode("data:image/png;base64,AA\n AA") == b"\x00\x00\x00"

    def test_prefix_is_case_insensitive(self):
        assert decode("DATA:IMAGE/PNG;BASE64,AAAA") == b"\x00\x00\x00"

    @pytest.mark.parametrize("payload, expected", [
        ("AAA", b"\x00\x00"),
        ("AA", b"\x00"),
        ("AA=", b"\x00"),
    ])
    def test_missing_padding(self, payload, expected):
        assert decode(f"data:image/png;base64,{payload}") == expected

    @pytest.mark.parametrize("uri", [
        "data:image/png;base64,!!!",
        "data:image/png;base64,",
        "data:image/png;base64,A",
        "image/png;base64,AAAA",
        "data:image/svg+xml,<svg/>",
    ])
    def test_invalid(self, uri):
        with pytest.raises(ImageDecodeError):
            decode(uri)


class TestIsDataUri:

    @pytest.mark.parametrize("src, expected", [
        ("data:image/png;base64,AAAA", True),
        ("  data:image/jpeg;base64,AAAA", True),
        ("https://example.com/x.png", False),
        ("", False),
        (None, False),
    ])
    def test_is_data_uri(self, src, expected):
        assert is_data_uri(src) is expected


class TestSniffImage:

    def test_png(self):
        assert sniff_image(make_png(7, 3)) == ("image/png", "png", (7, 3))

    def test_unknown_data_uses_declared_type(self):
        assert sniff_image(b"\x00\x00\x00", "image/jpeg") == ("image/jpeg", "jpeg", None)

    def test_unknown_data_defaults_to_png(self):
        assert sniff_image(b"\x00\x00\x00") == ("image/png", "png", None)


class TestFitBox:

    @pytest.mark.parametrize("size, box, expected", [
        ((40, 20), (550, 350), (550, 275)),
        ((100, 400), (550, 350), (88, 350)),
        ((550, 350), (550, 350), (550, 350)),
        ((0, 10), (550, 350), (550, 350)),
    ])
    def test_fit_box(self, size, box, expected):
        assert fit_box(size, box) == expected


class TestDecodeImage:

    def test_fixed_box(self, png_data_uri, png_bytes):
        image = decode_image(png_data_uri, (550, 350))
        assert image.data == png_bytes
        assert (image.width, image.height) == (550, 350)
        assert image.extension == "png"

    def test_keep_aspect(self, png_data_uri):
        image = decode_image(png_data_uri, (550, 350), keep_aspect=True)
        assert (image.width, image.height) == (550, 275)

    def test_keep_aspect_without_known_size(self):
        image = decode_image("data:image/png;base64,AAAA", (300, 200), keep_aspect=True)
        assert (image.width, image.height) == (300, 200)

    def test_jpeg_content_type(self):
        from io import BytesIO
        from PIL import Image as PILImage
        buffer = BytesIO()
        PILImage.new("RGB", (4, 4)).save(buffer, format="JPEG")
        uri = "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()
        image = decode_image(uri, (10, 10))
        assert image.content_type == "image/jpeg"
        assert image.extension == "jpeg"
