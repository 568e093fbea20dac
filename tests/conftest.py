from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

import pytest
from PIL import Image
from PySide6.QtCore import QCoreApplication

from kbcompress.errors import DecodeFailure, ResizeFailure


def noise_image(size: tuple[int, int], sigma: float = 64) -> Image.Image:
    bands = [Image.effect_noise(size, sigma) for _ in range(3)]
    return Image.merge("RGB", bands)


def encode(image: Image.Image, format: str = "PNG", **kwargs) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=format, **kwargs)
    return buffer.getvalue()


@pytest.fixture
def noise_png() -> bytes:
    return encode(noise_image((640, 480)))


@pytest.fixture
def small_jpeg() -> bytes:
    return encode(noise_image((320, 240), sigma=24), "JPEG", quality=90)


@pytest.fixture(scope="session")
def qapp():
    return QCoreApplication.instance() or QCoreApplication([])


@dataclass
class FakeRaster:
    size: tuple[int, int]
    closed: bool = False

    def close(self) -> None:
        self.closed = True


class FakeCodec:
    """Sizes are ``width * height * quality // divisor`` bytes.

    A 4000x3000 raster at quality 92 encodes to about 3200 KB.
    """

    def __init__(
        self,
        size: tuple[int, int] = (4000, 3000),
        divisor: int = 336,
        fail_resize_below: float | None = None,
    ) -> None:
        self.size = size
        self.divisor = divisor
        self.fail_resize_below = fail_resize_below
        self.decoded: list[FakeRaster] = []
        self.resized: list[FakeRaster] = []
        self.encodes: list[tuple[tuple[int, int], int]] = []

    def decode(self, data: bytes) -> FakeRaster:
        if data == b"corrupt":
            raise DecodeFailure("corrupt image data")
        raster = FakeRaster(self.size)
        self.decoded.append(raster)
        return raster

    def resize(self, raster: FakeRaster, size: tuple[int, int]) -> FakeRaster:
        if raster is not self.decoded[-1]:
            raise AssertionError("resize must start from the decoded original")
        if self.fail_resize_below is not None and size[0] < self.size[0] * self.fail_resize_below:
            raise ResizeFailure(f"degenerate target dimensions {size[0]}x{size[1]}")
        resized = FakeRaster(size)
        self.resized.append(resized)
        return resized

    def encode_jpeg(self, raster: FakeRaster, quality: int) -> bytes:
        self.encodes.append((raster.size, quality))
        width, height = raster.size
        return b"\xff" * (width * height * quality // self.divisor)


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def fake_codec_factory():
    return FakeCodec
