"""Match a stored file name against the metadata sheet and pick display columns.

The sheet is small (a few hundred rows) and looked up once per page view, so
``find_row`` is a plain linear scan. If row counts grow past the low thousands
or lookups become frequent, build a key -> row index instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from .errors import MalformedInputError
from .naming import normalize_file_name

logger = logging.getLogger(__name__)

SheetHeader = Sequence[str]
SheetRow = Sequence[Any]
ColumnPair = Tuple[str, str]


@dataclass(frozen=True)
class MatchResult:
    key: str
    row: Optional[List[str]] = None
    index: Optional[int] = None

    @property
    def found(self) -> bool:
        return self.row is not None


@dataclass(frozen=True)
class LookupResult:
    found: bool
    key: str
    header: Optional[List[str]] = None
    row: Optional[List[str]] = None
    matched_columns: Optional[List[ColumnPair]] = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-friendly view used by the service and the CLI."""
        return {
            "found": self.found,
            "key": self.key,
            "header": self.header,
            "row": self.row,
            "matchedColumns": (
                [{"name": name, "value": value} for name, value in self.matched_columns]
                if self.matched_columns is not None
                else None
            ),
        }


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _require_index(name: str, value: int) -> None:
    if value is None or value < 0:
        raise MalformedInputError(f"{name} must be >= 0 (got {value!r}).")


def find_row(
    key: str,
    header: Optional[SheetHeader],
    rows: Optional[Sequence[Optional[SheetRow]]],
    key_column_index: int,
) -> MatchResult:
    """
    Return the first row whose key column equals ``key`` after trimming.

    Rows too short to hold the key column are skipped. Empty key cells never
    match. When several rows share a key the earliest one wins.
    """
    _require_index("key_column_index", key_column_index)
    if header is None or rows is None:
        raise MalformedInputError("header and rows are required for a sheet lookup.")

    target = (key or "").strip()
    for position, row in enumerate(rows):
        if not row or len(row) <= key_column_index:
            continue
        cell = _cell_text(row[key_column_index]).strip()
        if cell and cell == target:
            return MatchResult(
                key=key, row=[_cell_text(v) for v in row], index=position
            )
    return MatchResult(key=key)


def project_columns(
    header: SheetHeader, row: SheetRow, start_index: int
) -> List[ColumnPair]:
    """
    Pair non-blank cells from ``start_index`` onward with their header names.

    A blank or whitespace-only header cell counts as no header entry, so its
    column is omitted even when the value is filled in.
    """
    _require_index("start_index", start_index)
    pairs: List[ColumnPair] = []
    for i in range(start_index, len(row)):
        if i >= len(header):
            continue
        name = _cell_text(header[i])
        value = _cell_text(row[i])
        if not name.strip() or not value.strip():
            continue
        pairs.append((name, value))
    return pairs


def lookup(
    raw_file_name: str,
    header: Optional[SheetHeader],
    rows: Optional[Sequence[Optional[SheetRow]]],
    key_column_index: int,
    display_start_column_index: int,
) -> LookupResult:
    """Normalize ``raw_file_name``, find its sheet row and project the display columns."""
    _require_index("display_start_column_index", display_start_column_index)
    key = normalize_file_name(raw_file_name)
    logger.debug("Cleaned file name %r -> %r", raw_file_name, key)

    match = find_row(key, header, rows, key_column_index)
    if not match.found:
        logger.info("No sheet row for %r", key)
        return LookupResult(found=False, key=key)

    header_list = [_cell_text(name) for name in header]
    columns = project_columns(header_list, match.row, display_start_column_index)
    logger.info(
        "Sheet row %d matched %r (%d display columns)", match.index, key, len(columns)
    )
    return LookupResult(
        found=True,
        key=key,
        header=header_list,
        row=match.row,
        matched_columns=columns,
    )
