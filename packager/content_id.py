"""
Content identifiers for items, stimuli, word lists and tutorials.

Two text forms are accepted:
  - "<role>-<bankKey>-<numericId>"   e.g. "Item-200-12345", "stim-187-4410"
  - a bare integer                   e.g. "12345" (role Item, caller's bank key)

The canonical string form (str(cid)) is the lowercase triplet; it names the
repository project and the item's primary XML document.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Hashable


class ContentIdError(ValueError):
    pass


class ItemClass(enum.Enum):
    ITEM = "item"
    STIM = "stim"


class ContentType(enum.Enum):
    ITEM = "Item"
    STIMULUS = "Stimulus"
    WORD_LIST = "WordList"
    TUTORIAL = "Tutorial"


def _to_int(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class ContentId:
    item_class: ItemClass
    bank_key: int
    numeric_id: int
    content_type: ContentType = ContentType.ITEM

    @classmethod
    def parse(cls, text: str, default_bank_key: int) -> "ContentId":
        n = _to_int(text)
        if n is not None:
            return cls(ItemClass.ITEM, default_bank_key, n, ContentType.ITEM)

        parts = text.strip().split("-")
        if len(parts) != 3:
            raise ContentIdError(f"Invalid content id: {text!r}")
        role = parts[0].lower()
        if role == "item":
            item_class, content_type = ItemClass.ITEM, ContentType.ITEM
        elif role == "stim":
            item_class, content_type = ItemClass.STIM, ContentType.STIMULUS
        else:
            raise ContentIdError(f"Invalid content id role: {text!r}")
        bank_key = _to_int(parts[1])
        numeric_id = _to_int(parts[2])
        if bank_key is None or numeric_id is None:
            raise ContentIdError(f"Invalid content id number: {text!r}")
        return cls(item_class, bank_key, numeric_id, content_type)

    @classmethod
    def word_list(cls, bank_key: int, numeric_id: int) -> "ContentId":
        return cls(ItemClass.ITEM, bank_key, numeric_id, ContentType.WORD_LIST)

    @classmethod
    def tutorial(cls, bank_key: int, numeric_id: int) -> "ContentId":
        return cls(ItemClass.ITEM, bank_key, numeric_id, ContentType.TUTORIAL)

    @classmethod
    def stimulus(cls, bank_key: int, numeric_id: int) -> "ContentId":
        return cls(ItemClass.STIM, bank_key, numeric_id, ContentType.STIMULUS)

    @property
    def role(self) -> str:
        return self.item_class.value

    @property
    def is_item(self) -> bool:
        return self.item_class is ItemClass.ITEM

    def __str__(self) -> str:
        return f"{self.role}-{self.bank_key}-{self.numeric_id}"

    def display(self) -> str:
        """Capitalized form with the numeric id zero-padded, for console output."""
        return f"{self.role.capitalize()}-{self.bank_key}-{self.numeric_id:06d}"

    @property
    def xml_name(self) -> str:
        return f"{self}.xml"


# ---------- Identity projections (work-queue dedup keys) ----------

def numeric_id_key(cid: ContentId) -> Hashable:
    """Historical identity: two ids with the same number collide."""
    return cid.numeric_id


def full_identity_key(cid: ContentId) -> Hashable:
    return (cid.item_class, cid.bank_key, cid.numeric_id)
