"""Validate the body the ingestion workflow posts when a text file lands in storage."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from jsonschema import Draft202012Validator

SCHEMA_FILENAME = "file_path_schema.json"


def default_schema_path() -> Path:
    # src/review_desk/schema.py -> <repo>/docs/templates/file_path_schema.json
    return Path(__file__).resolve().parents[2] / "docs" / "templates" / SCHEMA_FILENAME


@lru_cache(maxsize=1)
def load_schema(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Read the ``FilePathPayload`` schema (``minio_path`` + ``name``), cached per path."""
    schema_path = Path(path) if path else default_schema_path()
    return json.loads(schema_path.read_text(encoding="utf-8"))


def validate_file_path_payload(
    payload: Dict[str, Any], schema: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Check that ``payload`` carries a non-empty string ``minio_path`` and ``name``.

    Every violation is reported in one ValueError, each prefixed with the
    offending field (``<root>`` for a missing required field), e.g.
    ``"Invalid file path payload: minio_path: 42 is not of type 'string'"``.
    """
    validator = Draft202012Validator(schema or load_schema())
    problems = [
        f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
        for err in sorted(
            validator.iter_errors(payload), key=lambda e: list(e.absolute_path)
        )
    ]
    if problems:
        raise ValueError(f"Invalid file path payload: {'; '.join(problems)}")
    return payload
