"""
Rename legacy word-list audio files to the canonical glossary pattern:

  (item|stim)_<root id>_<term>_v<major.minor>_<language>[_<dialect>].(m4a|ogg)

Legacy names carry 2 to 5 underscore-separated parts:

  <term>_<language>                              2
  <term>_<language>_<dialect>                    3
  <root id>_<term>_<language>                    3
  item_<root id>_<term>_<language>               4
  <root id>_<term>_<language>_<dialect>          4
  item_<root id>_<term>_<language>_<dialect>     5

Missing pieces are filled in and the version defaults to v1.0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from packager.content_id import ContentId

ROOT_ID_OFFSET = 600000000
DEFAULT_VERSION = "v1.0"


@dataclass(frozen=True)
class FilenameRename:
    old_name: str
    new_name: str


def root_id(cid: ContentId) -> str:
    return str(cid.numeric_id - ROOT_ID_OFFSET)


def _split_extension(name: str) -> tuple[str, str]:
    stem, dot, ext = name.rpartition(".")
    if not dot:
        return name, ""
    return stem, dot + ext


def normalize_audio_filename(old_name: str, cid: ContentId) -> str:
    stem, ext = _split_extension(old_name)
    parts: List[str] = stem.split("_")
    role = cid.role
    root = root_id(cid)
    n = len(parts)
    low = [p.lower() for p in parts]

    if n == 2:
        body = [root, low[0], DEFAULT_VERSION, low[1]]
    elif n == 3 and parts[0] != root:
        body = [root, low[0], DEFAULT_VERSION, low[1], low[2]]
    elif n == 3:
        body = [low[0], low[1], DEFAULT_VERSION, low[2]]
    elif n == 4 and parts[0] == role:
        body = [low[1], low[2], DEFAULT_VERSION, low[3]]
    elif n == 4:
        body = [low[0], low[1], DEFAULT_VERSION, low[2], low[3]]
    elif n == 5:
        body = [low[1], low[2], DEFAULT_VERSION, low[3], low[4]]
    else:
        raise ValueError(f"Cannot normalize {old_name!r}: expected 2-5 name parts, found {n}")

    return "_".join([role] + body) + ext


def apply_renames(text: str, renames: List[FilenameRename]) -> str:
    for r in renames:
        text = text.replace(r.old_name, r.new_name)
    return text
