from __future__ import annotations

import re


def normalize_for_search(value: object | None) -> str | None:
    if value is None:
        return None
    return str(value).casefold().strip()


def contains_casefold(haystack: object | None, needle: str) -> bool:
    """Case-insensitive substring test; missing values never match a non-empty needle."""
    if not needle:
        return True
    if haystack is None:
        return False
    return needle.casefold() in str(haystack).casefold()


def is_blank(value: object | None) -> bool:
    return value is None or not str(value).strip()


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """Return a filesystem-safe filename stem (without extension).

    - Replaces forbidden characters / \\ : * ? " < > | and control characters
    - Cuts to max_length
    - Strips leading/trailing dots and spaces
    """
    name = re.sub(r"[\\/:*?\"<>|\x00-\x1F]", "_", name)
    name = re.sub(r"\s+", " ", name).strip()
    name = name.strip(" .")
    if len(name) > max_length:
        name = name[:max_length].rstrip(" .")
    return name or "file"
