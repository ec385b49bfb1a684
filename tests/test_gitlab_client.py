from __future__ import annotations

from typing import Dict, List, Optional

import pytest
import requests

from packager.clients.gitlab import GitLabClient, NotFoundError, RepoFile, RepositoryError

BANK = "https://bank.example.org"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, headers: Optional[Dict[str, str]] = None, content: bytes = b""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.content = content
        self.text = content.decode("utf-8", "ignore")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses: List):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses)
        self.calls: List = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


def tree_page(page: int, pages: int, total: int, paths: List[str]) -> FakeResponse:
    return FakeResponse(
        payload=[{"id": f"blob-{p}", "path": p, "type": "blob"} for p in paths],
        headers={"X-Page": str(page), "X-Total-Pages": str(pages), "X-Total": str(total)},
    )


def test_token_header_and_project_lookup():
    session = FakeSession([FakeResponse(payload={"id": 4242, "name": "item-200-1"})])
    client = GitLabClient(BANK + "/", "secret", session)
    assert session.headers["PRIVATE-TOKEN"] == "secret"
    assert client.project_id_from_name("itemreviewapp", "item-200-1") == "4242"
    assert session.calls[0][0] == BANK + "/api/v4/projects/itemreviewapp%2Fitem-200-1"


def test_tree_is_paginated():
    session = FakeSession([tree_page(1, 2, 3, ["a.xml", "b.png"]), tree_page(2, 2, 3, ["c.ogg"])])
    files = GitLabClient(BANK, "t", session).list_repository_tree("17")
    assert files == [RepoFile("a.xml", "blob-a.xml"), RepoFile("b.png", "blob-b.png"), RepoFile("c.ogg", "blob-c.ogg")]
    assert [c[1]["page"] for c in session.calls] == [1, 2]
    assert session.calls[0][1]["recursive"] == "true"


def test_tree_count_mismatch():
    session = FakeSession([tree_page(1, 1, 5, ["a.xml"])])
    with pytest.raises(RepositoryError, match="Expected 5 files"):
        GitLabClient(BANK, "t", session).list_repository_tree("17")


def test_tree_wrong_page():
    session = FakeSession([tree_page(2, 2, 1, ["a.xml"])])
    with pytest.raises(RepositoryError, match="returned page 2"):
        GitLabClient(BANK, "t", session).list_repository_tree("17")


def test_read_blob_returns_bytes():
    session = FakeSession([FakeResponse(content=b"OggS...")])
    assert GitLabClient(BANK, "t", session).read_blob("17", "abc") == b"OggS..."
    assert session.calls[0][0].endswith("/projects/17/repository/blobs/abc/raw")


def test_not_found():
    session = FakeSession([FakeResponse(status_code=404, content=b'{"message":"404 Project Not Found"}')])
    with pytest.raises(NotFoundError):
        GitLabClient(BANK, "t", session).project_id_from_name("ns", "item-200-9")


def test_server_error_and_transport_error():
    session = FakeSession([FakeResponse(status_code=500), requests.ConnectionError("refused")])
    client = GitLabClient(BANK, "t", session)
    with pytest.raises(RepositoryError) as e:
        client.read_blob("17", "abc")
    assert not isinstance(e.value, NotFoundError)
    with pytest.raises(RepositoryError):
        client.read_blob("17", "abc")
