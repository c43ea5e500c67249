"""Backend for the file review desk: sheet metadata lookup, file records and webhooks."""

from .naming import display_file_name, normalize_file_name
from .sheet_lookup import LookupResult, MatchResult, find_row, lookup, project_columns

__all__ = [
    "config",
    "models",
    "sheet_lookup",
    "display_file_name",
    "normalize_file_name",
    "find_row",
    "project_columns",
    "lookup",
    "LookupResult",
    "MatchResult",
]
