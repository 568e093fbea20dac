"""Tests for the Pillow codec boundary."""

from io import BytesIO

import pytest
from PIL import Image

from conftest import encode, noise_image
from kbcompress.codec import PillowCodec, downsample_factor
from kbcompress.errors import DecodeFailure, ResizeFailure


class TestDownsampleFactor:
    """Tests for the decode-time memory bound."""

    @pytest.mark.parametrize(
        "size, max_dimension, expected",
        [
            ((4000, 3000), 4096, 1),
            ((8192, 8192), 4096, 2),
            ((10000, 3000), 4096, 4),
            ((300, 20000), 4096, 8),
        ],
    )
    def test_power_of_two_factor(self, size, max_dimension, expected):
        """Should pick the smallest power of two that fits both sides."""
        assert downsample_factor(size, max_dimension) == expected


class TestDecode:
    """Tests for PillowCodec.decode."""

    def test_png_is_reduced_to_bound(self):
        """Should reduce non-JPEG input by the integer factor."""
        data = encode(Image.new("RGB", (1000, 200), (10, 20, 30)))
        raster = PillowCodec(max_dimension=256).decode(data)
        assert raster.size == (250, 50)

    def test_jpeg_uses_draft_reduction(self):
        """Should decode a large JPEG directly at reduced size."""
        image = Image.linear_gradient("L").resize((1024, 768)).convert("RGB")
        raster = PillowCodec(max_dimension=300).decode(encode(image, "JPEG", quality=90))
        assert raster.size == (256, 192)
        assert raster.mode == "RGB"

    def test_small_image_keeps_size(self, small_jpeg):
        """Should leave images within the bound untouched."""
        assert PillowCodec().decode(small_jpeg).size == (320, 240)

    def test_exif_orientation_applied(self):
        """Should rotate according to the EXIF orientation tag."""
        exif = Image.Exif()
        exif[0x0112] = 6
        data = encode(Image.new("RGB", (40, 20), (200, 0, 0)), "JPEG", exif=exif.tobytes())
        assert PillowCodec().decode(data).size == (20, 40)

    def test_alpha_flattened_onto_white(self):
        """Should composite transparent pixels onto white."""
        data = encode(Image.new("RGBA", (10, 10), (255, 0, 0, 0)))
        raster = PillowCodec().decode(data)
        assert raster.mode == "RGB"
        assert raster.getpixel((5, 5)) == (255, 255, 255)

    def test_palette_converted_to_rgb(self):
        """Should convert palette images to RGB."""
        data = encode(Image.new("RGB", (10, 10), (0, 128, 0)).convert("P"), "GIF")
        assert PillowCodec().decode(data).mode == "RGB"

    def test_grayscale_kept(self):
        """Should keep grayscale rasters as L."""
        data = encode(Image.new("L", (10, 10), 90))
        assert PillowCodec().decode(data).mode == "L"

    @pytest.mark.parametrize("data", [b"", b"not an image at all"])
    def test_invalid_bytes(self, data):
        """Should raise DecodeFailure for unparseable input."""
        with pytest.raises(DecodeFailure):
            PillowCodec().decode(data)

    def test_invalid_bound(self):
        """Should reject a non-positive decode bound."""
        with pytest.raises(ValueError):
            PillowCodec(max_dimension=0)


class TestResizeAndEncode:
    """Tests for PillowCodec.resize and encode_jpeg."""

    def test_resize(self):
        """Should resample to the requested dimensions."""
        raster = PillowCodec().resize(Image.new("RGB", (100, 80)), (45, 36))
        assert raster.size == (45, 36)

    @pytest.mark.parametrize("size", [(0, 10), (10, 0), (-1, -1)])
    def test_degenerate_resize(self, size):
        """Should raise ResizeFailure for zero-area targets."""
        with pytest.raises(ResizeFailure):
            PillowCodec().resize(Image.new("RGB", (10, 10)), size)

    def test_encode_jpeg(self):
        """Should produce a decodable JPEG."""
        data = PillowCodec().encode_jpeg(Image.new("RGB", (16, 16), (1, 2, 3)), 80)
        assert data[:2] == b"\xff\xd8"
        with Image.open(BytesIO(data)) as image:
            assert image.format == "JPEG"

    def test_lower_quality_is_not_larger(self):
        """Should never grow when the quality drops."""
        codec = PillowCodec()
        raster = noise_image((320, 240))
        sizes = [len(codec.encode_jpeg(raster, quality)) for quality in (92, 72, 52, 30)]
        assert sizes == sorted(sizes, reverse=True)
