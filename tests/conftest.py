from __future__ import annotations

import io
import sys
from pathlib import Path

# Repo root on sys.path so "packager.*" imports work when running pytest at repo root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import pytest

from packager.progress_log import ProgressLog


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def log(log_stream):
    return ProgressLog(log_stream)
