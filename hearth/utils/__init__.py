"""Utility functions for hearth."""

from hearth.utils.helpers import ensure_dir, get_data_path, md5_hex, safe_filename, truncate_chars

__all__ = ["ensure_dir", "get_data_path", "md5_hex", "safe_filename", "truncate_chars"]
