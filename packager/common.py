#!/usr/bin/env python3
"""
Common helpers for the package builder.

The audio re-encoder is an external program (typically a wrapper script
around ffmpeg) that takes a single argument: a directory to scan. It fixes
word-list audio files whose container does not match their extension
(e.g. an .ogg file that is really MPEG-4).

Typical use:
  from packager.common import reencode_package

  reencode_package(Path("build/pkg.zip"), "tools/audio-encode.sh")
"""

from __future__ import annotations

import shutil
import subprocess
import zipfile
from pathlib import Path
from typing import Callable, List

import yaml


class AudioEncodeError(RuntimeError):
    pass


def have_program(program: str) -> bool:
    """Return True if the program exists as a path or on PATH."""
    return Path(program).is_file() or shutil.which(program) is not None


def run_audio_encoder(encoder: str, directory: Path) -> None:
    if not have_program(encoder):
        raise AudioEncodeError(f"audio encoder not found: {encoder}")
    args: List[str] = [encoder, str(directory)]
    try:
        subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True)
    except subprocess.CalledProcessError as e:
        raise AudioEncodeError(f"audio encoder failed: {e.stderr.decode('utf-8', 'ignore')}") from e


def reencode_package(
    package: Path,
    encoder: str,
    run: Callable[[str, Path], None] = run_audio_encoder,
) -> None:
    """Unzip the package next to itself, re-encode its audio, zip it back up.

    The scratch directory is the package path without its extension and is
    removed afterwards.
    """
    scratch = package.with_suffix("")
    with zipfile.ZipFile(package) as z:
        z.extractall(scratch)
    package.unlink()
    try:
        run(encoder, scratch)
        with zipfile.ZipFile(package, "w", compression=zipfile.ZIP_DEFLATED) as z:
            for p in sorted(scratch.rglob("*")):
                if p.is_file():
                    z.write(p, p.relative_to(scratch).as_posix())
    finally:
        shutil.rmtree(scratch, ignore_errors=True)


def format_elapsed(seconds: float) -> str:
    """Hours, minutes, seconds and tenths; leading zero units are omitted."""
    tenths_total = int(round(seconds * 1000)) // 100
    hours, rem = divmod(tenths_total, 36000)
    minutes, rem = divmod(rem, 600)
    secs, tenths = divmod(rem, 10)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}.{tenths}"
    if minutes:
        return f"{minutes}:{secs:02d}.{tenths}"
    return f"{secs}.{tenths}"


def load_yaml(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)
