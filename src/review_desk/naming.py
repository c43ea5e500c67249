"""File-name normalization shared by every lookup code path.

Ingestion stores chat exports under names such as
``5511999999999@s.whatsapp.net.txt``; the metadata sheet keys rows by the bare
identifier. ``normalize_file_name`` is the only function allowed to derive that
key. Nothing else in the package strips these suffixes inline.
"""

from __future__ import annotations

from typing import Optional

WHATSAPP_SUFFIX = "@s.whatsapp.net"
TEXT_EXTENSION = ".txt"


def _strip_whatsapp_suffix(name: str) -> str:
    if name.endswith(WHATSAPP_SUFFIX):
        return name[: -len(WHATSAPP_SUFFIX)]
    return name


def _strip_text_extension(name: str) -> str:
    if name.lower().endswith(TEXT_EXTENSION):
        return name[: -len(TEXT_EXTENSION)]
    return name


def normalize_file_name(raw: Optional[str]) -> str:
    """
    Return the canonical lookup key for a stored file name.

    Each pass strips the messaging suffix first, then the ``.txt`` extension
    (case-insensitive). Passes repeat until the name stops changing, so the
    result is a fixed point: ``normalize_file_name(normalize_file_name(s))``
    always equals ``normalize_file_name(s)``.
    """
    if not raw:
        return ""
    current = raw
    while True:
        stripped = _strip_text_extension(_strip_whatsapp_suffix(current))
        if stripped == current:
            return current
        current = stripped


def display_file_name(raw: Optional[str]) -> str:
    """Short name for on-screen labels. Never use it as a lookup key."""
    if not raw:
        return ""
    return _strip_whatsapp_suffix(_strip_text_extension(raw))
