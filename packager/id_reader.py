"""
Read the seed item ids.

Flat list: one id per line, either a bare number ("12345") or a full name
("Item-200-12345"). CSV: the first row holds headings; an "ItemId" column is
required and a "BankKey" column is optional.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterator, List, Optional

from packager.content_id import ContentId, ContentIdError
from packager.progress_log import ProgressLog, Severity


def _find_columns(row: List[str]) -> tuple[int, int]:
    id_col, bank_col = -1, -1
    for i, name in enumerate(row):
        heading = name.strip().lower()
        if heading == "itemid":
            id_col = i
        elif heading == "bankkey":
            bank_col = i
    return id_col, bank_col


def read_ids(path: Path, default_bank_key: int, log: Optional[ProgressLog] = None) -> Iterator[ContentId]:
    def degraded(item_id: str, message: str, detail: str) -> None:
        if log is not None:
            log.log(Severity.DEGRADED, item_id, message, detail)

    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        first = next(reader, None)
        if first is None:
            raise ValueError("Empty item ID input file.")

        id_col, bank_col = _find_columns(first)
        if id_col < 0:
            try:
                cid = ContentId.parse(first[0].strip(), default_bank_key) if first else None
            except ContentIdError:
                cid = None
            if cid is None:
                raise ValueError("Item ID input file in unexpected format.")
            id_col = 0
            yield cid
        min_columns = max(id_col, bank_col) + 1

        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            if len(row) < min_columns:
                degraded("", "Too few columns in item ID input file row.", f"minColumns={min_columns} line='{','.join(row)}'")
                continue

            raw_id = row[id_col].strip()
            bank_key = default_bank_key
            if bank_col >= 0 and row[bank_col].strip():
                try:
                    bank_key = int(row[bank_col])
                except ValueError:
                    degraded(raw_id, "Invalid bankKey value in item ID input file row.", f"bankKey='{row[bank_col]}'")
                    continue

            try:
                yield ContentId.parse(raw_id, bank_key)
            except ContentIdError:
                degraded(raw_id, "Invalid item ID in item ID input file row.", f"itemId='{raw_id}'")
