from __future__ import annotations

from io import BytesIO
from typing import Any, Protocol

from loguru import logger
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeFailure, ResizeFailure

MAX_DECODE_DIMENSION = 4096
JPEG_MODES = {"RGB", "L"}
ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}


class ImageCodec(Protocol):
    def decode(self, data: bytes) -> Any: ...

    def resize(self, raster: Any, size: tuple[int, int]) -> Any: ...

    def encode_jpeg(self, raster: Any, quality: int) -> bytes: ...


class PillowCodec:

    def __init__(self, max_dimension: int = MAX_DECODE_DIMENSION) -> None:
        if max_dimension < 1:
            raise ValueError("max_dimension must be at least 1")
        self.max_dimension = max_dimension

    def decode(self, data: bytes) -> Image.Image:
        if not data:
            raise DecodeFailure("input is empty")
        try:
            image = Image.open(BytesIO(data))
            factor = downsample_factor(image.size, self.max_dimension)
            if factor > 1:
                width, height = image.size
                image.draft("RGB", (width // factor, height // factor))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
            raise DecodeFailure(f"unrecognised image data: {exc}") from exc
        except (OSError, EOFError, SyntaxError, ValueError) as exc:
            raise DecodeFailure(f"corrupt image data: {exc}") from exc
        ImageOps.exif_transpose(image, in_place=True)
        raster = to_jpeg_mode(image)
        if raster is not image:
            image.close()
        remaining = downsample_factor(raster.size, self.max_dimension)
        if remaining > 1:
            reduced = raster.reduce(remaining)
            raster.close()
            raster = reduced
        logger.debug(f"Decoded {raster.size[0]}x{raster.size[1]} {raster.mode} raster")
        return raster

    def resize(self, raster: Image.Image, size: tuple[int, int]) -> Image.Image:
        width, height = size
        if width < 1 or height < 1:
            raise ResizeFailure(f"degenerate target dimensions {width}x{height}")
        try:
            return raster.resize((width, height), Image.Resampling.LANCZOS)
        except (ValueError, MemoryError) as exc:
            raise ResizeFailure(f"resize to {width}x{height} failed: {exc}") from exc

    def encode_jpeg(self, raster: Image.Image, quality: int) -> bytes:
        buffer = BytesIO()
        raster.save(
            buffer,
            format="JPEG",
            quality=max(1, min(100, quality)),
            optimize=True,
            progressive=True,
        )
        return buffer.getvalue()


def downsample_factor(size: tuple[int, int], max_dimension: int) -> int:
    width, height = size
    factor = 1
    while width // factor > max_dimension or height // factor > max_dimension:
        factor *= 2
    return factor


def to_jpeg_mode(image: Image.Image) -> Image.Image:
    if image.mode in JPEG_MODES:
        return image
    if image.mode in ALPHA_MODES or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        rgba.close()
        return background
    if image.mode in {"1", "I", "F", "I;16", "I;16B", "I;16L"}:
        return image.convert("L")
    return image.convert("RGB")
