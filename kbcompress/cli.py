from __future__ import annotations

import argparse
from pathlib import Path

from loguru import logger

from .codec import MAX_DECODE_DIMENSION, PillowCodec
from .compress import compress_file
from .config import LOG_LEVELS, get_log_level
from .errors import DecodeFailure, InvalidArgument
from .formatting import format_compression_ratio, format_file_size, format_quality, format_scale
from .logger import setup_logger
from .storage import ensure_unique_path, save_result

JPEG_SUFFIXES = {".jpg", ".jpeg"}


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def jpeg_path(path: Path) -> Path:
    if path.suffix.lower() in JPEG_SUFFIXES:
        return path
    return path.with_suffix(".jpg")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kbcompress",
        description="Re-encode an image as a JPEG no larger than the target size.",
    )
    parser.add_argument("input", type=Path, help="Path to the source image")
    parser.add_argument(
        "-t",
        "--target",
        type=positive_int,
        required=True,
        help="Target size in kilobytes",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file, saved with a .jpg suffix (default: <input>_compressed.jpg)",
    )
    output.add_argument("-d", "--output-dir", type=Path, help="Output folder, file named compressed_<ms>.jpg")
    parser.add_argument(
        "--max-dimension",
        type=positive_int,
        default=MAX_DECODE_DIMENSION,
        help=f"Longest side allowed while decoding (default {MAX_DECODE_DIMENSION})",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=sorted(LOG_LEVELS),
        default=None,
        help="Log level (default: LOG_LEVEL env or INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logger(args.log_level or get_log_level())
    source: Path = args.input
    if not source.is_file():
        logger.error(f"Input not found: {source}")
        return 1
    try:
        result = compress_file(source, args.target, PillowCodec(args.max_dimension))
    except InvalidArgument as exc:
        logger.error(str(exc))
        return 2
    except (DecodeFailure, OSError) as exc:
        logger.error(f"Cannot compress {source.name}: {exc}")
        return 1
    try:
        if args.output_dir is not None:
            output = save_result(result, args.output_dir)
        else:
            target = jpeg_path(args.output or source.with_name(f"{source.stem}_compressed.jpg"))
            output = save_result(result, target.parent, ensure_unique_path(target).name)
    except OSError as exc:
        logger.error(f"Cannot write {args.output_dir or args.output or source.parent}: {exc}")
        return 1
    original_kb = source.stat().st_size // 1024
    width, height = result.dimensions
    print(
        f"{output}: {format_file_size(result.size_kb)} "
        f"(quality {format_quality(result.quality)}, scale {format_scale(result.scale)}, "
        f"{width}x{height}, {format_compression_ratio(original_kb, result.size_kb)} of original)"
    )
    if result.approximate:
        logger.warning(f"Could not reach {args.target} KB; wrote the smallest result instead")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
