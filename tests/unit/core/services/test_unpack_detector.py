from __future__ import annotations

"""
Unit tests for the Unpacked Directory Detection Service.

Verifies:
1. Package boundary detection (scoped and unscoped).
2. Unpack classification and content sniffing triggers.
3. Ancestor propagation, inheritance, and termination.
4. Physical realization of the directory plan.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Set
from unittest.mock import MagicMock

import pytest

from appfiles.core.services.unpack_detector import (
    detect_unpacked_dirs,
    find_package_dir,
    plan_unpacked_dirs,
    realize_directory_plan,
)
from appfiles.domain.errors import DirectoryCreationError, SniffError
from appfiles.domain.models import PathKind, PathMetadata, ResolvedFileSet, UnpackPlan

SEP = os.sep
SRC = SEP + "proj"
DEST = SEP + "out" + SEP + "app"


def _p(*parts: str) -> str:
    return SEP.join(parts)


def _file_set(rel_files: Iterable[str], links: Iterable[str] = ()) -> ResolvedFileSet:
    """Build a file set under SRC from '/'-separated relative paths."""
    fs = ResolvedFileSet(src=SRC, destination=DEST)
    for rel in rel_files:
        path = SRC + SEP + rel.replace("/", SEP)
        fs.files.append(path)
        fs.metadata[path] = PathMetadata(kind=PathKind.FILE)
    for rel in links:
        path = SRC + SEP + rel.replace("/", SEP)
        fs.files.append(path)
        fs.metadata[path] = PathMetadata(kind=PathKind.LINK, relative_link_target="node_modules/x")
    return fs


def _plan(fs: ResolvedFileSet, seed: Optional[Set[str]] = None, sniffer=None) -> UnpackPlan:
    return plan_unpacked_dirs(
        fs,
        set() if seed is None else seed,
        DEST,
        is_binary=sniffer or MagicMock(return_value=False),
    )


# -----------------------------------------------------------------------------
# BOUNDARY DETECTION
# -----------------------------------------------------------------------------

def test_find_package_dir_unscoped() -> None:
    file = _p(SRC, "node_modules", "pkg", "lib", "a.js")
    assert find_package_dir(file) == _p(SRC, "node_modules", "pkg")


def test_find_package_dir_scoped() -> None:
    file = _p(SRC, "node_modules", "@scope", "name", "bin", "tool")
    assert find_package_dir(file) == _p(SRC, "node_modules", "@scope", "name")


def test_find_package_dir_uses_innermost_node_modules() -> None:
    file = _p(SRC, "node_modules", "outer", "node_modules", "inner", "index.js")
    assert find_package_dir(file) == _p(SRC, "node_modules", "outer", "node_modules", "inner")


def test_find_package_dir_outside_packages() -> None:
    assert find_package_dir(_p(SRC, "main.js")) is None
    assert find_package_dir(_p(SRC, "node_modules", "loose.exe")) is None
    assert find_package_dir(_p(SRC, "node_modules", "@scope", "loose.exe")) is None


# -----------------------------------------------------------------------------
# CLASSIFICATION
# -----------------------------------------------------------------------------

def test_native_extension_is_unpacked_without_sniffing() -> None:
    """A Windows executable is unpacked unconditionally; the sniffer is never asked."""
    sniffer = MagicMock(return_value=False)
    plan = _plan(_file_set(["node_modules/pkg_a/bin/tool.exe"]), sniffer=sniffer)

    sniffer.assert_not_called()
    assert plan.auto_unpack_dirs == {_p("node_modules", "pkg_a"), _p("node_modules", "pkg_a", "bin")}
    assert plan.dirs_to_create == {_p("node_modules", "pkg_a"): ["bin"]}


def test_native_addon_unpacks_its_package_and_later_siblings_inherit() -> None:
    """Once a package is unpacked, every later file of it follows without sniffing."""
    sniffer = MagicMock(return_value=False)
    fs = _file_set([
        "node_modules/pkg/index.js",
        "node_modules/pkg/native.node",
        "node_modules/pkg/lib/helper.js",
    ])
    plan = _plan(fs, sniffer=sniffer)

    sniffer.assert_not_called()
    assert plan.auto_unpack_dirs == {_p("node_modules", "pkg"), _p("node_modules", "pkg", "lib")}
    assert plan.dirs_to_create == {
        "node_modules": ["pkg"],
        _p("node_modules", "pkg"): ["lib"],
    }


def test_files_before_the_trigger_stay_packed() -> None:
    """A text file seen before any binary in its package does not create directories."""
    plan = _plan(_file_set(["node_modules/pkg/lib/a.js", "node_modules/pkg/z.exe"]))

    assert _p("node_modules", "pkg", "lib") not in plan.auto_unpack_dirs
    assert _p("node_modules", "pkg") in plan.auto_unpack_dirs


def test_extensionless_file_is_sniffed() -> None:
    """Extensionless files are unpacked only when the sniffer reports binary content."""
    sniffer = MagicMock(side_effect=lambda path: path.endswith("tool"))
    fs = _file_set(["node_modules/pkg/LICENSE", "node_modules/pkg/bin/tool"])
    plan = _plan(fs, sniffer=sniffer)

    assert sniffer.call_count == 2
    assert plan.auto_unpack_dirs == {_p("node_modules", "pkg"), _p("node_modules", "pkg", "bin")}


def test_dot_after_package_boundary_skips_sniffing() -> None:
    """A dot anywhere below the package directory counts as an extension hint."""
    sniffer = MagicMock(return_value=True)
    fs = _file_set(["node_modules/pkg/v1.2/tool", "node_modules/pkg/index.js"])
    plan = _plan(fs, sniffer=sniffer)

    sniffer.assert_not_called()
    assert plan.is_empty
    assert plan.auto_unpack_dirs == set()


def test_links_and_loose_files_are_ignored() -> None:
    """Only regular files inside a package boundary are considered."""
    sniffer = MagicMock(return_value=True)
    fs = _file_set(["main.exe", "node_modules/loose.exe"], links=["node_modules/pkg/bin/tool"])
    plan = _plan(fs, sniffer=sniffer)

    sniffer.assert_not_called()
    assert plan.auto_unpack_dirs == set()


def test_sniff_failure_is_fatal_and_names_package() -> None:
    """Read errors while sniffing abort planning with the package as root."""
    sniffer = MagicMock(side_effect=PermissionError(13, "Permission denied"))
    fs = _file_set(["node_modules/pkg/bin/tool"])

    with pytest.raises(SniffError) as exc_info:
        _plan(fs, sniffer=sniffer)

    assert exc_info.value.path == _p(SRC, "node_modules", "pkg", "bin", "tool")
    assert exc_info.value.root == _p(SRC, "node_modules", "pkg")


def test_diagnostic_is_logged_when_debug_enabled(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="appfiles.core.services.unpack_detector"):
        _plan(_file_set(["node_modules/pkg/addon.dll"]))

    assert "not packed into asar archive - contains executable code" in caplog.text
    assert _p("node_modules", "pkg", "addon.dll") in caplog.text


# -----------------------------------------------------------------------------
# PROPAGATION
# -----------------------------------------------------------------------------

def test_seeded_package_is_inherited_without_sniffing() -> None:
    """Every file under an always-unpack package is reachable through the plan."""
    sniffer = MagicMock(return_value=True)
    fs = _file_set([
        "node_modules/pkg/index.js",
        "node_modules/pkg/lib/deep/a.js",
        "node_modules/pkg/bin/tool",
    ])
    plan = _plan(fs, seed={_p("node_modules", "pkg")}, sniffer=sniffer)

    sniffer.assert_not_called()
    assert plan.auto_unpack_dirs == {
        _p("node_modules", "pkg"),
        _p("node_modules", "pkg", "lib"),
        _p("node_modules", "pkg", "lib", "deep"),
        _p("node_modules", "pkg", "bin"),
    }
    assert plan.dirs_to_create == {
        _p("node_modules", "pkg", "lib"): ["deep"],
        _p("node_modules", "pkg"): ["lib", "bin"],
    }


def test_second_trigger_in_marked_directory_adds_nothing() -> None:
    """Propagation stops at the first already-marked directory."""
    fs = _file_set(["node_modules/pkg/bin/a.exe", "node_modules/pkg/bin/b.exe"])
    plan = _plan(fs)

    assert plan.dirs_to_create == {_p("node_modules", "pkg"): ["bin"]}


def test_sibling_branches_share_marked_ancestors() -> None:
    """A second branch only records the directories it newly marks."""
    fs = _file_set(["node_modules/pkg/a/b/c/x.exe", "node_modules/pkg/a/b/d/y.exe"])
    plan = _plan(fs)

    assert plan.dirs_to_create == {
        _p("node_modules", "pkg", "a", "b"): ["c", "d"],
        _p("node_modules", "pkg", "a"): ["b"],
        _p("node_modules", "pkg"): ["a"],
    }
    for children in plan.dirs_to_create.values():
        assert len(children) == len(set(children))


def test_scoped_package_boundary_is_marked() -> None:
    plan = _plan(_file_set(["node_modules/@scope/name/bin/tool.exe"]))

    assert _p("node_modules", "@scope", "name") in plan.auto_unpack_dirs
    assert _p("node_modules", "@scope") not in plan.auto_unpack_dirs
    assert plan.dirs_to_create == {_p("node_modules", "@scope", "name"): ["bin"]}


def test_plan_keys_are_node_modules_unpacked_dirs_or_scopes() -> None:
    """Every parent in the plan is node_modules itself, an unpacked directory, or a package scope."""
    fs = _file_set([
        "node_modules/pkg/native.node",
        "node_modules/pkg/a/b/x.exe",
        "node_modules/other/deep/er/tool.dll",
        "node_modules/@scope/name/addon.node",
    ])
    plan = _plan(fs)

    scope = _p("node_modules", "@scope")
    assert scope in plan.dirs_to_create
    assert scope not in plan.auto_unpack_dirs

    for parent, children in plan.dirs_to_create.items():
        assert parent == "node_modules" or parent in plan.auto_unpack_dirs or parent == scope, parent
        for child in children:
            assert parent + SEP + child in plan.auto_unpack_dirs
        assert len(children) == len(set(children))


def test_hoisted_dependency_maps_to_destination_node_modules() -> None:
    """Dependencies resolved outside the app dir are re-rooted at node_modules."""
    fs = ResolvedFileSet(src=SRC, destination=DEST)
    hoisted = _p(SEP + "workspace", "node_modules", "pkg", "tool.exe")
    fs.files.append(hoisted)
    fs.metadata[hoisted] = PathMetadata(kind=PathKind.FILE)

    plan = _plan(fs)

    assert plan.auto_unpack_dirs == {_p("node_modules", "pkg")}


# -----------------------------------------------------------------------------
# REALIZATION
# -----------------------------------------------------------------------------

def test_realize_empty_plan_creates_nothing(tmp_path: Path) -> None:
    dest = tmp_path / "unpacked"
    realize_directory_plan(UnpackPlan(), str(dest))
    assert not dest.exists()


def test_realize_creates_every_planned_directory(tmp_path: Path) -> None:
    fs = _file_set([
        "node_modules/pkg/native.node",
        "node_modules/pkg/a/b/x.exe",
        "node_modules/@scope/name/bin/tool.exe",
    ])
    plan = _plan(fs)
    dest = tmp_path / "unpacked"

    realize_directory_plan(plan, str(dest), concurrency=2)

    assert (dest / "node_modules").is_dir()
    for d in plan.auto_unpack_dirs:
        assert (dest / d).is_dir(), d


def test_detect_unpacked_dirs_plans_and_realizes(tmp_path: Path, app_dir: Path, make_tree) -> None:
    """End-to-end over real files with the real content sniffer."""
    pkg = make_tree(app_dir / "node_modules" / "pkg", {
        "index.js": "module.exports = 1",
        "bin": {"tool": b"\x7fELF\x02\x01\x01\x00" + b"\x00" * 32, "cli": "#!/bin/sh\necho hi\n"},
    })
    fs = ResolvedFileSet(src=str(app_dir), destination=str(tmp_path / "out"))
    for f in (pkg / "index.js", pkg / "bin" / "cli", pkg / "bin" / "tool"):
        fs.files.append(str(f))
        fs.metadata[str(f)] = PathMetadata.from_stat(os.stat(str(f)))

    dest = tmp_path / "unpacked"
    plan = detect_unpacked_dirs(fs, set(), str(dest), str(tmp_path / "out"))

    assert plan.auto_unpack_dirs == {_p("node_modules", "pkg"), _p("node_modules", "pkg", "bin")}
    assert (dest / "node_modules" / "pkg" / "bin").is_dir()


def test_realize_fails_when_a_planned_directory_is_a_file(tmp_path: Path) -> None:
    """A regular file in the way of a planned directory aborts realization."""
    plan = _plan(_file_set(["node_modules/pkg/bin/tool.exe"]))
    dest = tmp_path / "unpacked"
    (dest / "node_modules").mkdir(parents=True)
    (dest / "node_modules" / "pkg").write_text("not a directory", encoding="utf-8")

    with pytest.raises(DirectoryCreationError) as exc_info:
        realize_directory_plan(plan, str(dest))

    assert exc_info.value.path.startswith(str(dest / "node_modules" / "pkg"))
    assert exc_info.value.root == str(dest / "node_modules" / "pkg")
    assert "dependency root" in str(exc_info.value)
