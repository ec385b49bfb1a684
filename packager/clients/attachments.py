"""
Item attachment registry (IMRT PostgreSQL database).

Each registered attachment has a file name and a kind (cc, asl, braille, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import psycopg2

ATTACHMENTS_SQL = (
    "SELECT ia.file_name, ia.file_type "
    "FROM item_attachment AS ia "
    "LEFT JOIN item AS i ON i.key = ia.item_key "
    "WHERE i.id = %s"
)


class AttachmentRegistryError(RuntimeError):
    pass


@dataclass(frozen=True)
class Attachment:
    file_name: str
    file_type: str = ""


class AttachmentRegistry:
    def __init__(self, connect=psycopg2.connect):
        self._connect = connect
        self._conn = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self, dsn: str) -> None:
        try:
            self._conn = self._connect(dsn)
        except psycopg2.Error as e:
            raise AttachmentRegistryError(f"Could not connect to the attachment database: {e}") from e

    def get_attachments(self, item_id: int) -> List[Attachment]:
        if self._conn is None:
            raise AttachmentRegistryError("Attachment registry is not connected")
        try:
            with self._conn.cursor() as cur:
                cur.execute(ATTACHMENTS_SQL, (item_id,))
                rows = cur.fetchall()
        except psycopg2.Error as e:
            raise AttachmentRegistryError(f"Attachment query failed for item {item_id}: {e}") from e
        return [Attachment(file_name=r[0], file_type=r[1] or "") for r in rows]

    def disconnect(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


class EmptyAttachmentRegistry:
    """Stands in when no attachment database is configured."""

    connected = True

    def connect(self, dsn: Optional[str] = None) -> None:
        pass

    def get_attachments(self, item_id: int) -> List[Attachment]:
        return []

    def disconnect(self) -> None:
        pass
