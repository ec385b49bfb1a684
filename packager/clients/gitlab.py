"""
Minimal GitLab API v4 client for the item bank.

Each item lives in its own project named "<namespace>/<item-bankKey-id>".
See https://docs.gitlab.com/ce/api/
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote

import requests

API_PATH = "/api/v4/"
FILES_PER_PAGE = 100  # GitLab maximum
TIMEOUT = 60


class RepositoryError(RuntimeError):
    pass


class NotFoundError(RepositoryError):
    pass


@dataclass(frozen=True)
class RepoFile:
    path: str
    blob_id: str


def _header_int(response: requests.Response, name: str) -> int:
    try:
        return int(response.headers.get(name, ""))
    except ValueError:
        return 0


class GitLabClient:
    def __init__(self, server_url: str, access_token: str, session: Optional[requests.Session] = None):
        self.base_url = server_url.rstrip("/") + API_PATH
        self.session = session or requests.Session()
        self.session.headers["PRIVATE-TOKEN"] = access_token

    def _get(self, path: str, params: Optional[dict] = None) -> requests.Response:
        url = self.base_url + path
        try:
            response = self.session.get(url, params=params, timeout=TIMEOUT)
        except requests.RequestException as e:
            raise RepositoryError(f"HTTP ERROR {url}: {e}") from e
        if response.status_code == 404:
            raise NotFoundError(f"HTTP Resource Not Found: {url}\n{response.text}")
        if response.status_code >= 400:
            raise RepositoryError(f"HTTP ERROR {response.status_code} {url}\n{response.text}")
        return response

    def project_id_from_name(self, namespace: str, name: str) -> str:
        doc = self._get("projects/" + quote(f"{namespace}/{name}", safe="")).json()
        return str(doc["id"])

    def list_repository_tree(self, project_id: str) -> List[RepoFile]:
        """List every path in the project (paginated, recursive)."""
        result: List[RepoFile] = []
        expected = 0
        page = 1
        while True:
            response = self._get(
                f"projects/{quote(project_id, safe='')}/repository/tree",
                params={"recursive": "true", "page": page, "per_page": FILES_PER_PAGE},
            )
            expected = _header_int(response, "X-Total")
            total_pages = _header_int(response, "X-Total-Pages")
            returned = _header_int(response, "X-Page")
            if returned != page:
                raise RepositoryError(f"GitLab returned page {returned} expected {page}")
            for entry in response.json():
                result.append(RepoFile(path=entry["path"], blob_id=entry["id"]))
            if page >= total_pages:
                break
            page += 1

        if len(result) != expected:
            raise RepositoryError(f"Expected {expected} files in item but received {len(result)}")
        return result

    def read_blob(self, project_id: str, blob_id: str) -> bytes:
        return self._get(f"projects/{quote(project_id, safe='')}/repository/blobs/{blob_id}/raw").content
