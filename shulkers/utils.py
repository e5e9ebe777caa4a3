from datetime import datetime
from typing import Optional


def parse_timestamp(value: Optional[str]) -> float:
    """ISO 8601 时间转 Unix 时间戳，无法解析时为 0"""
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def format_bytes(size: int) -> str:
    """字节数格式化为 B / KB / MB / GB"""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"
