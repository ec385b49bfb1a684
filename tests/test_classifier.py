from __future__ import annotations

import pytest

from packager.classifier import FileClassifier, ItemContext, Reason, is_excluded, sniff_audio_format
from packager.clients.attachments import Attachment
from packager.content_id import ContentId

from tests.fakes import M4A_BYTES, OGG_BYTES, read_records

ITEM = ContentId.parse("Item-200-12345", 200)
WIT = ContentId.word_list(200, 600123456)
STIM = ContentId.stimulus(200, 4410)


def no_read() -> bytes:
    raise AssertionError("blob should not be read")


def classify(log, name, ctx, read_blob=no_read, **kwargs):
    return FileClassifier(log, **kwargs).classify(name, ctx, read_blob)


@pytest.mark.parametrize("name", ["item-200-12345.xml", "metadata.xml", "rubric.qrx", "layout.eax", "scoring.gax"])
def test_core_extensions_admitted_for_items(log, name):
    result = classify(log, name, ItemContext(ITEM))
    assert result.admitted
    assert result.reason is Reason.CORE_FILE


@pytest.mark.parametrize(
    "path",
    ["glossary", "general-attachments", "glossary/hello.ogg", "media/general-attachments/a.pdf", "item.json", "12345.xml"],
)
def test_excluded_paths(log, path):
    assert is_excluded(path, ITEM)
    result = classify(log, path, ItemContext(ITEM))
    assert not result.admitted
    assert result.reason is Reason.EXCLUDED


@pytest.mark.parametrize("path", ["glossary", "general-attachments", "glossary/hello.ogg"])
def test_excluded_paths_apply_to_stimuli_and_word_lists(log, path):
    assert classify(log, path, ItemContext(STIM)).reason is Reason.EXCLUDED
    assert classify(log, path, ItemContext(WIT, content_text=f'<a href="{path}"/>')).reason is Reason.EXCLUDED


def test_registered_attachment_with_valid_name(log, log_stream):
    ctx = ItemContext(ITEM, attachments=[Attachment("passage_1_v1_1_enu.vtt", "cc")])
    result = classify(log, "passage_1_v1_1_enu.vtt", ctx)
    assert result.admitted
    assert result.reason is Reason.REGISTERED_ATTACHMENT
    messages = [r["Message"] for r in read_records(log_stream)]
    assert "passage_1_v1_1_enu.vtt is a valid file name pattern for CC." in messages


def test_registered_attachment_with_bad_name_is_benign(log, log_stream):
    ctx = ItemContext(ITEM, attachments=[Attachment("braille.brf", "braille")])
    result = classify(log, "braille.brf", ctx)
    assert result.admitted
    records = read_records(log_stream)
    assert [r["Severity"] for r in records] == ["Benign"]
    assert log.error_count == 0


def test_content_referenced_file(log):
    ctx = ItemContext(ITEM, content_text='<img src="chart.png"/>')
    result = classify(log, "chart.png", ctx)
    assert result.admitted
    assert result.reason is Reason.CONTENT_REFERENCED


def test_import_zip_only_when_enabled(log):
    ctx = ItemContext(ITEM)
    assert not classify(log, "import.zip", ctx).admitted
    result = classify(log, "import.zip", ctx, include_import_zip=True)
    assert result.admitted
    assert result.reason is Reason.EXPLICIT_INCLUDE


@pytest.mark.parametrize("name", ["diagram_ESN.png", "diagram_esn.png", "Diagram.png"])
def test_renderer_spec_reference_ignores_spanish_suffix_and_case(log, name):
    ctx = ItemContext(ITEM, renderer_spec_text='<image src="DIAGRAM.png"/>')
    result = classify(log, name, ctx)
    assert result.admitted
    assert result.reason is Reason.RENDERER_SPEC_REFERENCED


def test_unreferenced_item_file_rejected(log):
    ctx = ItemContext(ITEM, content_text="<p>nothing here</p>", renderer_spec_text="<spec/>")
    result = classify(log, "stray.png", ctx)
    assert not result.admitted
    assert result.reason is Reason.UNMATCHED


def test_tutorials_follow_item_rules(log):
    tut = ContentId.tutorial(200, 777)
    assert not classify(log, "stray.png", ItemContext(tut)).admitted
    assert classify(log, "item-200-777.xml", ItemContext(tut)).admitted


def test_stimulus_admits_everything(log):
    result = classify(log, "anything.bin", ItemContext(STIM))
    assert result.admitted
    assert result.reason is Reason.UNCONDITIONAL


def test_word_list_rejects_unreferenced_file(log):
    ctx = ItemContext(WIT, content_text='<a href="hello_vietnamese.ogg"/>')
    result = classify(log, "goodbye_vietnamese.ogg", ctx)
    assert not result.admitted


def test_word_list_keeps_xml(log):
    assert classify(log, "item-200-600123456.xml", ItemContext(WIT)).reason is Reason.CORE_FILE


def test_word_list_audio_matching_container(log):
    ctx = ItemContext(WIT, content_text='<a href="hello_vietnamese.ogg"/>')
    result = classify(log, "hello_vietnamese.ogg", ctx, read_blob=lambda: OGG_BYTES)
    assert result.admitted
    assert not result.audio_mismatch
    assert result.new_name is None


@pytest.mark.parametrize(
    "name, blob",
    [
        ("hello_vietnamese.ogg", M4A_BYTES),
        ("hello_vietnamese.m4a", OGG_BYTES),
        ("hello_vietnamese.ogg", b"ID3\x03\x00\x00\x00\x00" + b"\x00" * 24),
        ("hello_vietnamese.m4a", b"RIFF\x00\x00\x00\x00WAVE"),
    ],
)
def test_word_list_audio_mismatch_is_tolerable(log, log_stream, name, blob):
    ctx = ItemContext(WIT, content_text='<a href="hello_vietnamese.ogg"/>')
    result = classify(log, name, ctx, read_blob=lambda: blob)
    assert result.admitted
    assert result.audio_mismatch
    assert "Tolerable" in [r["Severity"] for r in read_records(log_stream)]


def test_word_list_m4a_matching_container(log, log_stream):
    ctx = ItemContext(WIT, content_text='<a href="hello_vietnamese.m4a"/>')
    result = classify(log, "hello_vietnamese.m4a", ctx, read_blob=lambda: M4A_BYTES)
    assert result.admitted
    assert not result.audio_mismatch
    assert "Tolerable" not in [r["Severity"] for r in read_records(log_stream)]


def test_word_list_audio_rename(log):
    ctx = ItemContext(WIT, content_text='<a href="hello_vietnamese.m4a"/>')
    result = classify(log, "hello_vietnamese.m4a", ctx, read_blob=lambda: M4A_BYTES, rename_audio=True)
    assert result.admitted
    assert not result.audio_mismatch
    assert result.new_name == "item_123456_hello_v1.0_vietnamese.m4a"


def test_word_list_canonical_audio_name_is_not_renamed(log):
    name = "item_123456_hello_v1.0_vietnamese.ogg"
    ctx = ItemContext(WIT, content_text=f'<a href="{name}"/>')
    result = classify(log, name, ctx, read_blob=lambda: OGG_BYTES, rename_audio=True)
    assert result.new_name is None


def test_word_list_image_is_not_sniffed(log):
    ctx = ItemContext(WIT, content_text='<a href="item_1_hello_v1.0_illustration_glossary.svg"/>')
    result = classify(log, "item_1_hello_v1.0_illustration_glossary.svg", ctx)
    assert result.admitted
    assert not result.audio_mismatch


@pytest.mark.parametrize(
    "head, expected",
    [(OGG_BYTES[:8], "ogg"), (M4A_BYTES[:8], "m4a"), (b"ID3\x03\x00\x00\x00\x00", "unknown"), (b"", "unknown")],
)
def test_sniff_audio_format(head, expected):
    assert sniff_audio_format(head) == expected
