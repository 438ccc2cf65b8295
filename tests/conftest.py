from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. Shared fixtures that build dependency trees and configurations on disk.
"""

import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Union

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

TreeSpec = Dict[str, Union[str, bytes, "TreeSpec"]]


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def make_tree() -> Callable[[Path, TreeSpec], Path]:
    """
    Return a helper that materializes a nested dict as files and directories.

    String values are written as UTF-8 text, bytes as-is, and dicts become
    subdirectories.
    """
    def _make(base: Path, spec: TreeSpec) -> Path:
        base.mkdir(parents=True, exist_ok=True)
        for name, value in spec.items():
            target = base / name
            if isinstance(value, dict):
                _make(target, value)
            elif isinstance(value, bytes):
                target.write_bytes(value)
            else:
                target.write_text(value, encoding="utf-8")
        return base

    return _make


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """Application source directory with an empty node_modules folder."""
    root = tmp_path / "app"
    (root / "node_modules").mkdir(parents=True)
    return root


@pytest.fixture
def mock_config_dict(tmp_path: Path, app_dir: Path) -> Dict[str, Any]:
    """
    Return a valid, complete packaging configuration for testing.

    Reflects the structure defined in 'appfiles.domain.config'.
    """
    return {
        "app_dir": str(app_dir),
        "destination": str(tmp_path / "out" / "app"),
        "unpacked_dest": str(tmp_path / "out" / "app.asar.unpacked"),
        "files": [],
        "always_unpack_dirs": [],
        "concurrency": 4,
        "verbose": False,
        "log_file": "",
    }
