"""JSONL-backed store for file records and their review decisions.

Each store owns one ``files.jsonl`` under its directory. New records are
appended; review decisions rewrite the file, carrying unreadable lines over
verbatim. Writers hold a process-local lock keyed by the resolved path, so two
store objects pointing at the same directory still serialize.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Iterator, List, Union

from pydantic import ValidationError

from .errors import FileNotFoundInStore, ReviewConflictError
from .models import FileRecord, ReviewStatus

logger = logging.getLogger(__name__)

RECORDS_FILENAME = "files.jsonl"

_PATH_LOCKS: dict[str, Lock] = {}
_PATH_LOCKS_GUARD = Lock()


@contextmanager
def _locked(path: Path) -> Iterator[None]:
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.setdefault(key, Lock())
    with lock:
        yield


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FileStore:
    """Pending and reviewed file records for one data directory."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.path = self.root / RECORDS_FILENAME

    def _load(self) -> List[Union[FileRecord, str]]:
        """Parsed records in file order; lines that fail validation stay as raw text."""
        if not self.path.exists():
            return []
        entries: List[Union[FileRecord, str]] = []
        for lineno, line in enumerate(
            self.path.read_text(encoding="utf-8").splitlines(), start=1
        ):
            if not line.strip():
                continue
            try:
                entries.append(FileRecord.model_validate_json(line))
            except ValidationError:
                logger.warning("Skipping unreadable record at %s:%d", self.path, lineno)
                entries.append(line)
        return entries

    def _read(self) -> List[FileRecord]:
        return [entry for entry in self._load() if isinstance(entry, FileRecord)]

    @staticmethod
    def _line(record: FileRecord) -> str:
        return json.dumps(record.model_dump(mode="json"), ensure_ascii=False)

    def _write(self, entries: List[Union[FileRecord, str]]) -> None:
        # Unreadable lines are written back untouched.
        self.root.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".jsonl.tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            for entry in entries:
                f.write(entry if isinstance(entry, str) else self._line(entry))
                f.write("\n")
        os.replace(tmp_path, self.path)

    def add(self, name: str, minio_path: str) -> FileRecord:
        record = FileRecord(
            id=os.urandom(16).hex(),
            name=name,
            minio_path=minio_path,
            created_at=_now(),
        )
        with _locked(self.path):
            self.root.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(self._line(record))
                f.write("\n")
        logger.info("Stored file record %s for %r", record.id, name)
        return record

    def get(self, file_id: str) -> FileRecord:
        for record in self._read():
            if record.id == file_id:
                return record
        raise FileNotFoundInStore(file_id)

    def list_pending(self) -> List[FileRecord]:
        """Files without a review decision, newest first."""
        pending = [r for r in self._read() if r.is_pending]
        return sorted(pending, key=lambda r: r.created_at, reverse=True)

    def list_reviewed(self) -> List[FileRecord]:
        """Files already confirmed or denied, most recently reviewed first."""
        reviewed = [r for r in self._read() if not r.is_pending]
        return sorted(
            reviewed, key=lambda r: r.reviewed_at or r.created_at, reverse=True
        )

    def mark_reviewed(self, file_id: str, status: ReviewStatus | str) -> FileRecord:
        decision = ReviewStatus(status)
        with _locked(self.path):
            entries = self._load()
            for idx, record in enumerate(entries):
                if not isinstance(record, FileRecord) or record.id != file_id:
                    continue
                if not record.is_pending:
                    raise ReviewConflictError(
                        f"File {file_id} was already marked {record.status.value}."
                    )
                updated = record.model_copy(
                    update={"status": decision, "reviewed_at": _now()}
                )
                entries[idx] = updated
                self._write(entries)
                logger.info("File %s marked as %s", file_id, decision.value)
                return updated
        raise FileNotFoundInStore(file_id)
