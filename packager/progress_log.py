"""
CSV progress log.

One record per event: Severity,ItemId,Message,Detail. Records can be mirrored
to a trace stream (e.g. sys.stderr) while the package is being built.
"""

from __future__ import annotations

import csv
import enum
from pathlib import Path
from typing import IO, Optional, TextIO


class Severity(enum.IntEnum):
    MESSAGE = 0
    BENIGN = 1
    TOLERABLE = 2
    DEGRADED = 3
    SEVERE = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


HEADER = ["Severity", "ItemId", "Message", "Detail"]


class ProgressLog:
    def __init__(self, stream: TextIO, trace: Optional[TextIO] = None):
        self._stream = stream
        self._writer = csv.writer(stream, lineterminator="\n")
        self._writer.writerow(HEADER)
        self.trace = trace
        self.message_count = 0
        self.error_count = 0

    @classmethod
    def open(cls, path: Path, trace: Optional[TextIO] = None) -> "ProgressLog":
        path.parent.mkdir(parents=True, exist_ok=True)
        f: IO[str] = path.open("w", encoding="utf-8", newline="")
        return cls(f, trace)

    def log(self, severity: Severity, item_id: object, message: str, detail: str = "") -> None:
        row = [severity.label, "" if item_id is None else str(item_id), message or "", detail or ""]
        self._writer.writerow(row)
        if self.trace is not None:
            csv.writer(self.trace, lineterminator="\n").writerow(row)
        self.message_count += 1
        if severity >= Severity.DEGRADED:
            self.error_count += 1

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> "ProgressLog":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
