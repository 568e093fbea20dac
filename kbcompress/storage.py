from __future__ import annotations

from pathlib import Path
import time

from loguru import logger

from .models import CompressionResult

ALBUM_NAME = "PhotoCompressor"


def default_output_dir() -> Path:
    return Path.home() / "Pictures" / ALBUM_NAME


def generate_file_name(timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    return f"compressed_{timestamp_ms}.jpg"


def ensure_unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    parent = path.parent
    index = 1
    while True:
        candidate = parent / f"{path.stem}({index}){path.suffix}"
        if not candidate.exists():
            return candidate
        index += 1


def save_result(
    result: CompressionResult,
    output_dir: Path | None = None,
    file_name: str | None = None,
) -> Path:
    output_dir = output_dir or default_output_dir()
    output_dir.mkdir(parents=True, exist_ok=True)
    output = ensure_unique_path(output_dir / (file_name or generate_file_name()))
    temp = output.with_name(f"{output.stem}.__tmp{output.suffix}")
    try:
        temp.write_bytes(result.data)
        temp.replace(output)
    except OSError:
        if temp.exists():
            temp.unlink()
        raise
    logger.info(f"Saved {result.size_kb} KB to {output}")
    return output
