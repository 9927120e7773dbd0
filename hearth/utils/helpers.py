"""Utility functions for hearth."""

import hashlib
import re
from pathlib import Path

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the hearth data directory (~/.hearth)."""
    return Path.home() / ".hearth"


def safe_filename(name: str) -> str:
    """Convert a string to a safe filename."""
    return _UNSAFE_FILENAME_CHARS.sub("_", name).strip() or "unnamed"


def md5_hex(text: str) -> str:
    """Hex md5 digest of a UTF-8 string, used for stable ids and keys."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def truncate_chars(text: str, limit: int, suffix: str = "...") -> str:
    """Cut text at `limit` characters, appending `suffix` when something was dropped."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}{suffix}"
