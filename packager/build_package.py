#!/usr/bin/env python3
"""
Build a content package zip from a list of item ids.

Usage:
  build-content-package --ids ids.csv --token $GITLAB_TOKEN --out build/pkg.zip
  build-content-package --ids ids.txt --token $GITLAB_TOKEN --out build/pkg.zip \
      --config packager.yaml --rename-audio --no-tutorials

The ids file is either a flat list (one "12345" or "Item-200-12345" per line)
or a CSV with an ItemId column and an optional BankKey column.
A CSV progress log is written next to the package unless --log is given.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from packager.clients.attachments import AttachmentRegistry, AttachmentRegistryError, EmptyAttachmentRegistry
from packager.clients.gitlab import GitLabClient
from packager.common import AudioEncodeError, format_elapsed
from packager.config import ConfigError, Settings, load_settings
from packager.id_reader import read_ids
from packager.package_builder import PackageBuilder
from packager.progress_log import ProgressLog, Severity


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="build-content-package", argument_default=None)
    ap.add_argument("--ids", required=True, help="Flat list or CSV of item ids to package")
    ap.add_argument("--token", required=True, help="Item bank (GitLab) access token")
    ap.add_argument("--out", required=True, help="Output path for the package zip")
    ap.add_argument("--log", default=None, help="CSV progress log (default: <out stem>.log.csv)")
    ap.add_argument("--config", default=None, help="YAML settings file")
    ap.add_argument("--bank", dest="item_bank_url", default=None, help="Item bank URL")
    ap.add_argument("--ns", dest="namespace", default=None, help="Item bank namespace")
    ap.add_argument("--bank-key", dest="bank_key", type=int, default=None, help="Bank key for bare numeric ids")
    ap.add_argument("--no-tutorials", dest="include_tutorials", action="store_const", const=False, help="Do not package tutorials")
    ap.add_argument("--include-import-zip", dest="include_import_zip", action="store_const", const=True, help="Package import.zip files")
    ap.add_argument("--rename-audio", dest="rename_audio", action="store_const", const=True, help="Rename legacy word-list audio files")
    ap.add_argument("--no-manifest", dest="include_manifest", action="store_const", const=False, help="Write an empty manifest")
    ap.add_argument("--file-type", dest="file_type", default=None, help="Only package attachments with this extension")
    ap.add_argument("--strict-identity", dest="strict_identity", action="store_const", const=True, help="Deduplicate on role, bank key and id")
    ap.add_argument("--trace", action="store_true", help="Mirror progress log records to stderr")
    return ap


def default_log_path(out: Path) -> Path:
    return out.with_name(f"{out.stem}.log.csv")


def echo_settings(settings: Settings, ids_path: Path, out: Path, log_path: Path) -> None:
    print(f"Item bank:        {settings.item_bank_url}")
    print(f"Namespace:        {settings.namespace}")
    print(f"Bank key:         {settings.bank_key}")
    print(f"Ids file:         {ids_path}")
    print(f"Package:          {out}")
    print(f"Log:              {log_path}")
    print(f"Tutorials:        {'yes' if settings.include_tutorials else 'no'}")
    print(f"import.zip:       {'yes' if settings.include_import_zip else 'no'}")
    print(f"Rename audio:     {'yes' if settings.rename_audio else 'no'}")
    print(f"Manifest:         {'yes' if settings.include_manifest else 'empty'}")
    if settings.file_type:
        print(f"File type:        {settings.file_type}")
    if settings.strict_identity:
        print("Identity:         role, bank key and id")


def summary_lines(builder: PackageBuilder, log: ProgressLog) -> List[str]:
    return [
        f"Elapsed: {format_elapsed(builder.elapsed)}",
        f"Items: {builder.item_count}",
        f"Word lists: {builder.word_list_count}",
        f"Stimuli: {builder.stimulus_count}",
        f"Tutorials: {builder.tutorial_count}",
        f"Errors: {log.error_count}",
    ]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)

    try:
        settings = load_settings(Path(args.config) if args.config else None).merged(vars(args))
    except ConfigError as e:
        sys.stderr.write(f"{e}\n")
        return 2

    ids_path = Path(args.ids)
    if not ids_path.exists():
        sys.stderr.write(f"Ids file not found: {ids_path}\n")
        return 2

    out = Path(args.out)
    log_path = Path(args.log) if args.log else default_log_path(out)
    for p in (out, log_path):
        if p.exists():
            p.unlink()

    echo_settings(settings, ids_path, out, log_path)

    with ProgressLog.open(log_path, trace=sys.stderr if args.trace else None) as log:
        if settings.attachment_db:
            registry = AttachmentRegistry()
            try:
                registry.connect(settings.attachment_db)
            except AttachmentRegistryError as e:
                sys.stderr.write(f"{e}\n")
                return 2
        else:
            registry = EmptyAttachmentRegistry()
            log.log(Severity.DEGRADED, "", "No attachment database configured; registered attachments will not be matched.")

        repository = GitLabClient(settings.item_bank_url, args.token)
        builder = PackageBuilder(repository, log, settings, registry)
        try:
            try:
                builder.add_ids(read_ids(ids_path, settings.bank_key, log))
            except ValueError as e:
                sys.stderr.write(f"{e}\n")
                return 2
            print(f"{builder.queue.count} ids queued.")
            builder.produce_package(out)
        except AudioEncodeError as e:
            log.log(Severity.SEVERE, "", "Audio re-encoding failed.", str(e))
            sys.stderr.write(f"{e}\n")
            return 1
        finally:
            registry.disconnect()

        for line in summary_lines(builder, log):
            print(line)
            log.log(Severity.MESSAGE, "", line)

    print(f"Wrote {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
