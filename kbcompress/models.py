from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidArgument

SUPPORTED_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff"}


@dataclass(frozen=True)
class CompressionRequest:
    data: bytes
    target_kb: int

    def __post_init__(self) -> None:
        check_target_kb(self.target_kb)


@dataclass(frozen=True)
class CompressionResult:
    data: bytes
    quality: int
    scale: float
    approximate: bool
    dimensions: tuple[int, int]

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def size_kb(self) -> int:
        return len(self.data) // 1024


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class ImageSelected:
    source: Path
    original_size_kb: int


@dataclass(frozen=True)
class Compressing:
    source: Path
    original_size_kb: int
    target_kb: int


@dataclass(frozen=True)
class CompressionComplete:
    source: Path
    original_size_kb: int
    target_kb: int
    result: CompressionResult


@dataclass(frozen=True)
class Saved:
    source: Path
    original_size_kb: int
    target_kb: int
    result: CompressionResult
    output: Path


@dataclass(frozen=True)
class Failed:
    message: str


UiState = Idle | ImageSelected | Compressing | CompressionComplete | Saved | Failed


def check_target_kb(target_kb: int) -> None:
    if isinstance(target_kb, bool) or not isinstance(target_kb, int):
        raise InvalidArgument(f"target size must be an integer, got {target_kb!r}")
    if target_kb <= 0:
        raise InvalidArgument(f"target size must be positive, got {target_kb} KB")


def is_supported_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES
