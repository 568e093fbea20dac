def format_file_size(size_kb: int) -> str:
    if size_kb < 1024:
        return f"{size_kb} KB"
    return f"{_trim(size_kb / 1024, 2)} MB"


def format_quality(quality: int) -> str:
    return f"{quality}%"


def format_scale(scale: float) -> str:
    return f"{int(scale * 100)}%"


def format_compression_ratio(original_kb: int, compressed_kb: int) -> str:
    if original_kb == 0:
        return "N/A"
    return f"{_trim(compressed_kb / original_kb * 100, 1)}%"


def format_size_reduction(original_kb: int, compressed_kb: int) -> str:
    if original_kb == 0:
        return "N/A"
    reduction = original_kb - compressed_kb
    percent = int(reduction / original_kb * 100)
    return f"{reduction} KB saved ({percent}%)"


def _trim(value: float, digits: int) -> str:
    text = f"{value:.{digits}f}".rstrip("0").rstrip(".")
    return text or "0"
