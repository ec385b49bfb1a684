"""
Decide, file by file, whether a repository file belongs in the package.

Items and tutorials keep their core XML documents plus any attachment that is
registered for the item, referenced by the item content, explicitly included
(import.zip) or referenced by the renderer spec (GAX). Word lists keep only
files their content links by href. Stimuli keep everything.

Filename patterns below are only used to report naming problems; they never
reject a file.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from packager.clients.attachments import Attachment
from packager.content_id import ContentId, ContentType
from packager.filename_normalizer import normalize_audio_filename
from packager.progress_log import ProgressLog, Severity

RE_CC = re.compile(r"passage_\d+_v[0-9]+(\.[0-9]+)?_\d+_[a-z]+[0-9]?\.vtt", re.IGNORECASE)
RE_ASL = re.compile(r"(item|stim|passage)_\d+_ASL_[a-z]+[0-9]?\.(mp4|webm)", re.IGNORECASE)
RE_BRAILLE = re.compile(
    r"(item|passage)_\d+_enu_(exn|ecn|uxn|ucn|uxt|uct|ucl|ecl|contracted|uncontracted)\.(brf|prn)",
    re.IGNORECASE,
)
RE_AUDIO_IN_STIM = re.compile(r"passage_\d+_v[0-9]+(\.[0-9])?_\d+_[a-z]+[0-9]?.(m4a|ogg)", re.IGNORECASE)
RE_AUDIO_GLOSSARY = re.compile(r"(item|stim)_\d+_[a-z]+_v[0-9]+(\.[0-9])_[a-z]+(_[a-z])?\.(m4a|ogg)", re.IGNORECASE)
RE_AUDIO_GLOSSARY_LEGACY = re.compile(
    r"(item|stim)_\d+_v[0-9]+_\d+_[0-9]+[a-z]+_glossary_ogg_m4a\.(m4a|ogg)", re.IGNORECASE
)
RE_IMAGES = re.compile(
    r"(item|passage)_[0-9]+_(v[0-9]+(\.[0-9]))?_?(graphics1|stem|equation)_(png256|ENU|ESN)(_(0[0-9]|[0-9]+))?\.(png|svg)",
    re.IGNORECASE,
)
RE_ILLUSTRATION_GLOSSARY = re.compile(r"item_[0-9]+_[a-z]+_v[0-9]+(\.[0-9]+)?_illustration_glossary\.svg", re.IGNORECASE)

ATTACHMENT_PATTERNS = {"cc": ("CC", RE_CC), "asl": ("ASL", RE_ASL), "braille": ("Braille", RE_BRAILLE)}

CORE_EXTENSIONS = {"xml", "qrx", "eax", "gax"}
AUDIO_EXTENSIONS = {"ogg", "m4a"}
EXCLUDED_FOLDERS = ("glossary", "general-attachments")
IMPORT_ZIP = "import.zip"

OGG_MAGIC = b"OggS"
MP4_MAGIC = b"ftyp"


class Reason(enum.Enum):
    CORE_FILE = "CoreFile"
    REGISTERED_ATTACHMENT = "RegisteredAttachment"
    CONTENT_REFERENCED = "ContentReferenced"
    RENDERER_SPEC_REFERENCED = "RendererSpecReferenced"
    EXPLICIT_INCLUDE = "ExplicitInclude"
    UNMATCHED = "Unmatched"
    EXCLUDED = "Excluded"
    UNCONDITIONAL = "Unconditional"


@dataclass
class Classification:
    admitted: bool
    reason: Reason
    new_name: Optional[str] = None
    audio_mismatch: bool = False


@dataclass
class ItemContext:
    """Everything the classifier needs to know about the owning item."""
    content_id: ContentId
    content_text: str = ""
    renderer_spec_text: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)

    def attachment_named(self, name: str) -> Optional[Attachment]:
        for a in self.attachments:
            if a.file_name == name:
                return a
        return None


def extension(name: str) -> str:
    return name[-3:]


def is_excluded(path: str, cid: ContentId) -> bool:
    for folder in EXCLUDED_FOLDERS:
        if path == folder or f"{folder}/" in path:
            return True
    return path == "item.json" or path == f"{cid.numeric_id}.xml"


def sniff_audio_format(head: bytes) -> str:
    if head[0:4] == OGG_MAGIC:
        return "ogg"
    if head[4:8] == MP4_MAGIC:
        return "m4a"
    return "unknown"


class FileClassifier:
    def __init__(self, log: ProgressLog, include_import_zip: bool = False, rename_audio: bool = False):
        self.log = log
        self.include_import_zip = include_import_zip
        self.rename_audio = rename_audio

    def _note(self, ctx: ItemContext, message: str, severity: Severity = Severity.MESSAGE) -> None:
        self.log.log(severity, ctx.content_id, message)

    def classify(self, name: str, ctx: ItemContext, read_blob: Callable[[], bytes]) -> Classification:
        cid = ctx.content_id
        if is_excluded(name, cid):
            self._note(ctx, f"Will not add the following object: {name}")
            return Classification(False, Reason.EXCLUDED)

        if cid.content_type in (ContentType.ITEM, ContentType.TUTORIAL):
            return self._classify_item_file(name, ctx)
        if cid.content_type is ContentType.WORD_LIST:
            return self._classify_word_list_file(name, ctx, read_blob)
        return Classification(True, Reason.UNCONDITIONAL)

    # ---------- Items and tutorials ----------

    def _classify_item_file(self, name: str, ctx: ItemContext) -> Classification:
        if extension(name) in CORE_EXTENSIONS:
            return Classification(True, Reason.CORE_FILE)

        attachment = ctx.attachment_named(name)
        if attachment is not None:
            self._check_attachment_name(name, attachment, ctx)
            return Classification(True, Reason.REGISTERED_ATTACHMENT)

        fragment = name[1:-3] if len(name) > 4 else None
        if name in ctx.content_text or (fragment and fragment in ctx.content_text):
            if RE_IMAGES.search(name):
                self._note(ctx, f"{name} is a valid file name pattern for images in the content.")
            elif RE_AUDIO_IN_STIM.search(name):
                self._note(ctx, f"{name} is a valid file name pattern for audio in the stim.")
            else:
                self._note(
                    ctx,
                    f"{name} is a valid file, but the file name pattern is not valid for images in the "
                    "content or audio in stim. Consider renaming the file.",
                    Severity.BENIGN,
                )
            self._note(ctx, f"{name} is a valid file referenced in the stem content.")
            return Classification(True, Reason.CONTENT_REFERENCED)

        if name == IMPORT_ZIP and self.include_import_zip:
            self._note(ctx, "Adding the import.zip file.")
            return Classification(True, Reason.EXPLICIT_INCLUDE)

        if ctx.renderer_spec_text is not None:
            base = name.replace("_ESN", "").replace("_esn", "")
            if base.lower() in ctx.renderer_spec_text.lower():
                if RE_IMAGES.search(name):
                    self._note(ctx, f"{name} is a valid file name pattern for images in the content.")
                else:
                    self._note(
                        ctx,
                        f"{name} is a valid file, but the file name pattern is not valid for images in the "
                        "content. Consider renaming the file.",
                        Severity.BENIGN,
                    )
                self._note(ctx, f"{name} is a valid file referenced in the GAX content.")
                return Classification(True, Reason.RENDERER_SPEC_REFERENCED)

        self._note(
            ctx,
            f"Will not add the following object: {name}. The file is NOT a valid attachment file, "
            "or a file referenced in the stem or GAX content",
        )
        return Classification(False, Reason.UNMATCHED)

    def _check_attachment_name(self, name: str, attachment: Attachment, ctx: ItemContext) -> None:
        kind = (attachment.file_type or "").lower()
        if kind not in ATTACHMENT_PATTERNS:
            return
        label, pattern = ATTACHMENT_PATTERNS[kind]
        if pattern.search(name):
            self._note(ctx, f"{name} is a valid file name pattern for {label}.")
        else:
            self._note(
                ctx,
                f"{name} is a valid file, but the file name pattern is not valid for {label}. Consider renaming the file.",
                Severity.BENIGN,
            )

    # ---------- Word lists ----------

    def _classify_word_list_file(self, name: str, ctx: ItemContext, read_blob: Callable[[], bytes]) -> Classification:
        ext = extension(name)
        if ext == "xml":
            return Classification(True, Reason.CORE_FILE)

        if f'href="{name[:-4]}' not in ctx.content_text:
            self._note(ctx, f"Will not add the following object: {name}")
            return Classification(False, Reason.UNMATCHED)

        result = Classification(True, Reason.CONTENT_REFERENCED)
        if ext in AUDIO_EXTENSIONS:
            found = sniff_audio_format(read_blob()[:8])
            if found != ext:
                result.audio_mismatch = True
                self._note(ctx, f"{name} is encoded as {found}, which does not match its extension.", Severity.TOLERABLE)

            if RE_AUDIO_GLOSSARY.search(name) or RE_AUDIO_GLOSSARY_LEGACY.search(name):
                self._note(ctx, f"{name} is a valid file name pattern for audio in glossary.")
            elif self.rename_audio:
                result.new_name = self._rename(name, ctx)
            else:
                self._note(
                    ctx,
                    f"{name} is a valid file, but the file name pattern is not valid for audio in glossary. "
                    "Consider renaming the file.",
                    Severity.BENIGN,
                )
        elif RE_ILLUSTRATION_GLOSSARY.search(name):
            self._note(ctx, f"{name} is a valid file name pattern for illustrated glossary.")
        else:
            self._note(
                ctx,
                f"{name} is a valid file, but the file name pattern is not valid for illustrated glossary. "
                "Consider renaming the file.",
                Severity.BENIGN,
            )
        self._note(ctx, f"{result.new_name or name} is a valid WIT audio or image file.")
        return result

    def _rename(self, name: str, ctx: ItemContext) -> Optional[str]:
        try:
            new_name = normalize_audio_filename(name, ctx.content_id)
        except ValueError as e:
            self._note(ctx, f"{name} could not be renamed: {e}", Severity.BENIGN)
            return None
        self._note(ctx, f"Renamed {name} to {new_name}")
        return new_name
