"""
Assemble a content package from a queue of item ids.

Each dequeued id is fetched from the item bank, its files are filtered by the
classifier and copied into the zip archive, and its content document is
scanned for word lists, stimuli and tutorials, which are queued in turn.
The manifest is written once the queue is empty.
"""

from __future__ import annotations

import codecs
import functools
import re
import sys
import time
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from packager.classifier import CORE_EXTENSIONS, FileClassifier, ItemContext
from packager.clients.attachments import EmptyAttachmentRegistry
from packager.clients.gitlab import NotFoundError, RepoFile
from packager.common import format_elapsed, reencode_package
from packager.config import Settings
from packager.content_id import ContentId, ContentType, full_identity_key, numeric_id_key
from packager.filename_normalizer import FilenameRename, apply_renames
from packager.manifest import EMPTY_MANIFEST, MANIFEST_NAME, ManifestGraph, ManifestNode, ResourceType
from packager.progress_log import ProgressLog, Severity
from packager.work_queue import WorkQueue

METADATA_NAME = "metadata.xml"

RE_XML_ENCODING = re.compile(rb"""^\s*<\?xml[^>]*?\bencoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


class ContentError(RuntimeError):
    pass


def parse_xml(data: bytes) -> ET.Element:
    return ET.fromstring(data)


def xml_text(el: ET.Element) -> str:
    return ET.tostring(el, encoding="unicode")


def declared_encoding(data: bytes) -> str:
    """Encoding named by the document's byte order mark or XML declaration (utf-8 if neither)."""
    if data.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return "utf-16"
    m = RE_XML_ENCODING.match(data)
    return m.group(1).decode("ascii") if m else "utf-8"


def is_legacy_document(root: ET.Element) -> bool:
    """Documents older than itemrelease 2.0 carry the stimulus id in the attribute list."""
    try:
        return float(root.get("version", "")) < 2.0
    except ValueError:
        return False


def node_for(cid: ContentId) -> ManifestNode:
    if cid.is_item:
        folder = f"Items/Item-{cid.bank_key}-{cid.numeric_id}/"
        rtype = ResourceType.ITEM
    else:
        folder = f"Stimuli/{cid}/"
        rtype = ResourceType.STIMULUS
    return ManifestNode(identifier=str(cid), type=rtype, folder=folder, href=folder + cid.xml_name)


class _ItemBlobs:
    """Reads each blob of one project at most once."""

    def __init__(self, repository, project_id: str):
        self.repository = repository
        self.project_id = project_id
        self._cache: Dict[str, bytes] = {}

    def read(self, blob_id: str) -> bytes:
        if blob_id not in self._cache:
            self._cache[blob_id] = self.repository.read_blob(self.project_id, blob_id)
        return self._cache[blob_id]


class PackageBuilder:
    def __init__(
        self,
        repository,
        log: ProgressLog,
        settings: Settings = Settings(),
        registry=None,
        reencode: Callable[[Path, str], None] = reencode_package,
    ):
        self.repository = repository
        self.log = log
        self.settings = settings
        self.registry = registry or EmptyAttachmentRegistry()
        self.reencode = reencode
        self.queue: WorkQueue[ContentId] = WorkQueue(key=full_identity_key if settings.strict_identity else numeric_id_key)
        self.manifest = ManifestGraph()
        self.classifier = FileClassifier(log, settings.include_import_zip, settings.rename_audio)
        self.recode_audio = False

        self.item_count = 0
        self.stimulus_count = 0
        self.word_list_count = 0
        self.tutorial_count = 0
        self.elapsed = 0.0

    def add_id(self, cid: ContentId) -> bool:
        return self.queue.enqueue(cid)

    def add_ids(self, ids: Iterable[ContentId]) -> int:
        return self.queue.load(ids)

    # -------------------- Run --------------------

    def produce_package(self, package: Path) -> None:
        start = time.monotonic()
        package.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(package, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            while self.queue.count > 0:
                self.package_item(archive, self.queue.dequeue())
                print(
                    f"Completed: {self.queue.dequeued_count} of {self.queue.distinct_count} items. "
                    f"Elapsed: {format_elapsed(time.monotonic() - start)}"
                )

            if self.settings.include_manifest:
                print("Writing package manifest.")
                archive.writestr(MANIFEST_NAME, self.manifest.to_xml())
            else:
                print("Including an empty manifest file.")
                archive.writestr(MANIFEST_NAME, EMPTY_MANIFEST)

        if self.recode_audio:
            self._reencode_audio(package)
        self.elapsed = time.monotonic() - start

    def _reencode_audio(self, package: Path) -> None:
        encoder = self.settings.audio_encode_path
        if not encoder:
            self.log.log(Severity.SEVERE, "", "Audio files need re-encoding but no audio encoder is configured.")
            sys.stderr.write("[warn] Audio files need re-encoding but no audio_encode_path is configured\n")
            return
        print("Audio files have been found that need to be recoded as valid Ogg files. Starting the recode process.")
        self.reencode(package, encoder)
        print("Audio file Ogg recode process complete.")

    # -------------------- One item --------------------

    def package_item(self, archive: zipfile.ZipFile, cid: ContentId) -> None:
        print(cid.display())
        try:
            self._package_item(archive, cid)
        except NotFoundError:
            self.log.log(Severity.SEVERE, cid, "Item not found in item bank.")
            print("   Item not found!")
        except Exception as e:
            self.log.log(Severity.SEVERE, cid, "Exception", str(e))
            sys.stderr.write(f"[skip] Could not package {cid}: {e}\n")

    def _package_item(self, archive: zipfile.ZipFile, cid: ContentId) -> None:
        project_id = self.repository.project_id_from_name(self.settings.namespace, str(cid))
        files = self.repository.list_repository_tree(project_id)
        blobs = _ItemBlobs(self.repository, project_id)
        xml_name = cid.xml_name
        primary = next((f for f in files if f.path == xml_name), None)

        ctx = ItemContext(content_id=cid)
        if primary is not None:
            try:
                root = parse_xml(blobs.read(primary.blob_id))
            except ET.ParseError as e:
                raise ContentError(f"Content file {xml_name} is not well-formed XML: {e}") from e
            ctx.content_text = xml_text(root)
            if cid.is_item:
                ctx.renderer_spec_text = self._load_renderer_spec(cid, files, root, blobs)
        if cid.content_type in (ContentType.ITEM, ContentType.TUTORIAL):
            ctx.attachments = self.registry.get_attachments(cid.numeric_id)

        node = node_for(cid)
        renames = self._copy_files(archive, files, ctx, node, blobs)

        if primary is None:
            self.log.log(Severity.SEVERE, cid, "Item has no content file.", xml_name)
            print("   No item content file found.")
            return

        data = blobs.read(primary.blob_id)
        if self.settings.rename_audio and renames:
            encoding = declared_encoding(data)
            try:
                data = apply_renames(data.decode(encoding), renames).encode(encoding)
            except (LookupError, UnicodeError) as e:
                raise ContentError(f"Cannot rewrite {xml_name} as {encoding}: {e}") from e
        archive.writestr(node.folder + xml_name, data)

        added = self._scan_dependencies(cid, node, data)
        self.manifest.add(node)

        summary = "  "
        for count, label in zip(added, ("WIT", "Stimulus", "Tutorial")):
            if count > 0:
                summary += f" +{count} {label}"
        if len(summary) > 2:
            print(summary)

    def _load_renderer_spec(self, cid: ContentId, files: List[RepoFile], root: ET.Element, blobs: _ItemBlobs) -> Optional[str]:
        item_el = root.find("item")
        spec_el = item_el.find("RendererSpec") if item_el is not None else None
        if spec_el is None:
            return None
        file_name = spec_el.get("filename", "")
        if file_name.startswith("//"):
            file_name = file_name[2:]
        self.log.log(Severity.MESSAGE, cid, f"RendererSpec filename: {file_name}")
        entry = next((f for f in files if f.path == file_name), None)
        if entry is None:
            self.log.log(Severity.DEGRADED, cid, "RendererSpec file not found in item.", file_name)
            return None
        try:
            return xml_text(parse_xml(blobs.read(entry.blob_id)))
        except ET.ParseError as e:
            raise ContentError(f"RendererSpec {file_name} is not well-formed XML: {e}") from e

    def _wanted(self, name: str) -> bool:
        wanted = self.settings.file_type
        if not wanted or name == METADATA_NAME:
            return True
        ext = name.rpartition(".")[2].lower()
        return ext in CORE_EXTENSIONS or ext == wanted.lstrip(".").lower()

    def _copy_files(
        self,
        archive: zipfile.ZipFile,
        files: List[RepoFile],
        ctx: ItemContext,
        node: ManifestNode,
        blobs: _ItemBlobs,
    ) -> List[FilenameRename]:
        cid = ctx.content_id
        renames: List[FilenameRename] = []
        for f in files:
            print(f"   {f.path}")
            result = self.classifier.classify(f.path, ctx, functools.partial(blobs.read, f.blob_id))
            if not result.admitted:
                continue
            if result.audio_mismatch and not self.recode_audio:
                self.recode_audio = True
                self.log.log(Severity.MESSAGE, cid, "Package will be re-encoded after it is built.", f.path)
            if f.path.lower() == cid.xml_name.lower():
                continue

            name = result.new_name or f.path
            if result.new_name:
                renames.append(FilenameRename(f.path, result.new_name))
            if not self._wanted(name):
                self.log.log(Severity.MESSAGE, cid, f"Will not add the following object: {name}", "file type filter")
                continue

            archive.writestr(node.folder + name, blobs.read(f.blob_id))
            if name == METADATA_NAME:
                node.set_metadata()
            else:
                node.add_asset(name)
        return renames

    # -------------------- Dependencies --------------------

    def _scan_dependencies(self, cid: ContentId, node: ManifestNode, data: bytes) -> tuple[int, int, int]:
        """Queue the word lists, stimulus and tutorial the content refers to.

        Returns how many of each were newly queued.
        """
        stims_added = tutorials_added = 0
        try:
            root = parse_xml(data)
            item_el = root.find("item")
            if item_el is not None:
                bank_key = int(item_el.get("bankkey"))
                kind = item_el.get("format")
                if kind is None:
                    kind = item_el.get("type", "")
                if kind.lower() == "tut":
                    self.tutorial_count += 1
                elif kind.lower() == "wordlist":
                    self.word_list_count += 1
                else:
                    self.item_count += 1

                wits_added = self._scan_word_lists(cid, node, item_el, "Item")

                stim_id = self._stimulus_reference(root, item_el, bank_key)
                if stim_id is not None:
                    self.log.log(Severity.MESSAGE, cid, "Item depends on stimulus", str(stim_id))
                    if self.add_id(stim_id):
                        stims_added += 1
                    node.stimulus = node_for(stim_id)

                tutorial = item_el.find("tutorial") if self.settings.include_tutorials else None
                if tutorial is not None:
                    tut_id = ContentId.tutorial(int(tutorial.get("bankkey")), int(tutorial.get("id")))
                    self.log.log(Severity.MESSAGE, cid, "Item depends on tutorial", str(tut_id))
                    if self.add_id(tut_id):
                        tutorials_added += 1
                    node.tutorial = node_for(tut_id)
            else:
                passage = root.find("passage")
                if passage is None:
                    raise ContentError("Content file has neither an item nor a passage element.")
                self.stimulus_count += 1
                wits_added = self._scan_word_lists(cid, node, passage, "Stim")
        except (ET.ParseError, ValueError, TypeError, AttributeError, ContentError) as e:
            raise ContentError(f"Expected content missing from item xml: {e}") from e
        return wits_added, stims_added, tutorials_added

    def _scan_word_lists(self, cid: ContentId, node: ManifestNode, el: ET.Element, owner: str) -> int:
        added = 0
        for resource in el.iterfind("resourceslist/resource"):
            if (resource.get("type") or "").lower() != "wordlist":
                continue
            wit_id = ContentId.word_list(int(resource.get("bankkey")), int(resource.get("id")))
            self.log.log(Severity.MESSAGE, cid, f"{owner} depends on WordList", str(wit_id))
            if self.add_id(wit_id):
                added += 1
            node.word_list = node_for(wit_id)
        return added

    @staticmethod
    def _stimulus_reference(root: ET.Element, item_el: ET.Element, bank_key: int) -> Optional[ContentId]:
        if is_legacy_document(root):
            for attrib in item_el.iterfind("attriblist/attrib"):
                if attrib.get("attid") == "stm_pass_id":
                    value = (attrib.findtext("val") or "").strip()
                    return ContentId.stimulus(bank_key, int(value)) if value else None
            return None
        passage = item_el.find("associatedpassage")
        if passage is None or not (passage.text or "").strip():
            return None
        return ContentId.stimulus(bank_key, int(passage.text.strip()))
