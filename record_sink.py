"""Append-only pipe-delimited record stream.

Line format (no header row)::

    URL|Topic|Title|Authors|Date

Lines starting with ``#`` are diagnostics (challenge markers, fetch errors,
fallback notes) and must be skipped by readers; ``iter_records`` does so.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

from models import Record
from normalize import FIELD_DELIMITER, sanitize_field

LOGGER = logging.getLogger(__name__)

COMMENT_PREFIX = "#"
RECORD_FIELDS = ("url", "topic", "title", "authors", "date")


class OutputWriteFailure(RuntimeError):
    """The output destination cannot be opened or appended to."""


def format_record(record: Record) -> str:
    return FIELD_DELIMITER.join(getattr(record, name) for name in RECORD_FIELDS) + "\n"


class RecordSink:
    """Writes records as they are produced; every line is flushed immediately."""

    def __init__(self, path: str | Path, fresh: bool = False) -> None:
        self.path = Path(path)
        self.fresh = fresh
        self.records_written = 0
        self._fh: TextIO | None = None

    def open(self) -> RecordSink:
        mode = "w" if self.fresh else "a"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open(mode, encoding="utf-8", newline="\n")
        except OSError as exc:
            raise OutputWriteFailure(f"Cannot open output file {self.path}: {exc}") from exc
        LOGGER.info("Writing records to %s (mode=%s)", self.path, mode)
        return self

    def write_record(self, record: Record) -> None:
        self._write(format_record(record))
        self.records_written += 1

    def write_comment(self, tag: str, *fields: str) -> None:
        """Write ``# TAG|field|field…``; pass a trailing "" for a trailing pipe."""
        parts = [f"{COMMENT_PREFIX} {tag}", *(sanitize_field(f) for f in fields)]
        self._write(FIELD_DELIMITER.join(parts) + "\n")

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> RecordSink:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _write(self, line: str) -> None:
        if self._fh is None:
            raise OutputWriteFailure(f"Output file {self.path} is not open")
        try:
            self._fh.write(line)
            self._fh.flush()
        except OSError as exc:
            raise OutputWriteFailure(f"Cannot append to {self.path}: {exc}") from exc


def iter_records(path: str | Path) -> Iterator[Record]:
    """Yield records from an output file, skipping comments and malformed lines."""
    with Path(path).open(encoding="utf-8") as fh:
        for lineno, raw in enumerate(fh, start=1):
            line = raw.rstrip("\n")
            if not line.strip() or line.startswith(COMMENT_PREFIX):
                continue
            parts = line.split(FIELD_DELIMITER)
            if len(parts) != len(RECORD_FIELDS):
                LOGGER.warning("Skipping malformed line %s in %s (%s fields)", lineno, path, len(parts))
                continue
            yield Record(*parts)
