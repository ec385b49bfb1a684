from __future__ import annotations

import csv
import io
from typing import Dict, List

from packager.clients.attachments import Attachment
from packager.clients.gitlab import NotFoundError, RepoFile

OGG_BYTES = b"OggS\x00\x02\x00\x00" + b"\x00" * 24
M4A_BYTES = b"\x00\x00\x00\x18ftypM4A " + b"\x00" * 24


def read_records(stream: io.StringIO) -> List[Dict[str, str]]:
    return list(csv.DictReader(io.StringIO(stream.getvalue())))


class FakeRepository:
    """Projects keyed by name; each maps file path -> bytes."""

    def __init__(self, projects: Dict[str, Dict[str, bytes]]):
        self.projects = projects
        self.reads: List[str] = []

    def project_id_from_name(self, namespace: str, name: str) -> str:
        if name not in self.projects:
            raise NotFoundError(f"HTTP Resource Not Found: {namespace}/{name}")
        return name

    def list_repository_tree(self, project_id: str) -> List[RepoFile]:
        return [RepoFile(path=p, blob_id=f"{project_id}:{p}") for p in self.projects[project_id]]

    def read_blob(self, project_id: str, blob_id: str) -> bytes:
        self.reads.append(blob_id)
        path = blob_id.split(":", 1)[1]
        return self.projects[project_id][path]


class FakeRegistry:
    def __init__(self, attachments: Dict[int, List[Attachment]] = None):
        self.attachments = attachments or {}
        self.queried: List[int] = []

    def get_attachments(self, item_id: int) -> List[Attachment]:
        self.queried.append(item_id)
        return list(self.attachments.get(item_id, []))

    def disconnect(self) -> None:
        pass


def item_xml(
    bank_key: int,
    item_id: int,
    body: str = "",
    kind: str = "MC",
    version: str = "2.0",
    extra: str = "",
) -> bytes:
    return (
        f'<?xml version="1.0" encoding="utf-8"?>\n'
        f'<itemrelease version="{version}">'
        f'<item bankkey="{bank_key}" id="{item_id}" format="{kind}" version="1">'
        f"{extra}<content>{body}</content></item></itemrelease>"
    ).encode("utf-8")


def passage_xml(bank_key: int, passage_id: int, body: str = "", extra: str = "") -> bytes:
    return (
        f'<itemrelease version="2.0">'
        f'<passage bankkey="{bank_key}" id="{passage_id}">{extra}<content>{body}</content></passage>'
        f"</itemrelease>"
    ).encode("utf-8")
