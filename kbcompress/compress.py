from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from .codec import ImageCodec, PillowCodec
from .errors import ResizeFailure
from .models import CompressionRequest, CompressionResult, check_target_kb

INITIAL_QUALITY = 92
QUALITY_STEP = 5
MIN_QUALITY = 30
SCALE_FACTOR = 0.9
MIN_SCALE = 0.3


def quality_levels() -> Iterator[int]:
    quality = INITIAL_QUALITY
    while quality >= MIN_QUALITY:
        yield quality
        quality -= QUALITY_STEP
    if quality + QUALITY_STEP != MIN_QUALITY:
        yield MIN_QUALITY


def scale_steps() -> Iterator[float]:
    # Accumulated by multiplication, so the drift of 0.9 ** n is kept.
    scale = 1.0
    while True:
        scale *= SCALE_FACTOR
        if scale < MIN_SCALE:
            return
        yield scale


def size_kb(data: bytes) -> int:
    return len(data) // 1024


def scaled_dimensions(size: tuple[int, int], scale: float) -> tuple[int, int]:
    width, height = size
    return max(1, int(width * scale)), max(1, int(height * scale))


def compress(data: bytes, target_kb: int, codec: ImageCodec | None = None) -> CompressionResult:
    return compress_request(CompressionRequest(data, target_kb), codec)


def compress_file(source: Path, target_kb: int, codec: ImageCodec | None = None) -> CompressionResult:
    check_target_kb(target_kb)
    request = CompressionRequest(source.read_bytes(), target_kb)
    return compress_request(request, codec)


def compress_request(request: CompressionRequest, codec: ImageCodec | None = None) -> CompressionResult:
    codec = codec or PillowCodec()
    original = codec.decode(request.data)
    try:
        return _search(codec, original, request.target_kb)
    finally:
        original.close()


def _search(codec: ImageCodec, original: Any, target_kb: int) -> CompressionResult:
    dimensions = tuple(original.size)
    best: CompressionResult | None = None
    for quality in quality_levels():
        data = codec.encode_jpeg(original, quality)
        best = CompressionResult(data, quality, 1.0, size_kb(data) > target_kb, dimensions)
        if size_kb(data) <= target_kb:
            logger.debug(f"Quality {quality} reached {size_kb(data)} KB <= {target_kb} KB")
            return best
    logger.debug(f"Quality floor gives {best.size_kb} KB > {target_kb} KB, scaling down")
    for scale in scale_steps():
        size = scaled_dimensions(dimensions, scale)
        try:
            resized = codec.resize(original, size)
        except ResizeFailure as exc:
            logger.warning(f"Stopping scale search at {scale:.4f}: {exc}")
            break
        try:
            data = codec.encode_jpeg(resized, MIN_QUALITY)
        finally:
            resized.close()
        best = CompressionResult(data, MIN_QUALITY, scale, size_kb(data) > target_kb, size)
        if size_kb(data) <= target_kb:
            logger.debug(f"Scale {scale:.4f} ({size[0]}x{size[1]}) reached {size_kb(data)} KB")
            return best
    logger.info(f"Target {target_kb} KB unreachable, best effort is {best.size_kb} KB at scale {best.scale:.4f}")
    return CompressionResult(best.data, best.quality, best.scale, True, best.dimensions)
