from __future__ import annotations

"""
Unpacked Directory Detection Service.

Decides which dependency directories must stay outside the packed archive
(native binaries, or extensionless files sniffed as binary) and realizes the
resulting directory layout under the unpacked destination.

Unpack decisions are always expressed as whole directories: every directory
between a triggering file and its package boundary is marked, and each newly
marked directory is recorded under its parent so that parents are always
created before their children.
"""

import logging
import os
from typing import Callable, Dict, List, Optional, Set

from appfiles.core.services.sniffer import is_binary_file
from appfiles.domain.constants import (
    CONCURRENCY,
    NATIVE_BINARY_EXTENSIONS,
    NODE_MODULES_DIR_NAME,
    NODE_MODULES_PATTERN,
    SCOPE_MARKER,
    UNPACKED_DIAGNOSTIC,
)
from appfiles.domain.errors import DirectoryCreationError, SniffError
from appfiles.domain.models import ResolvedFileSet, UnpackPlan
from appfiles.infra.fs import create_executor, ensure_dir, ordered_map

logger = logging.getLogger(__name__)

BinarySniffer = Callable[[str], bool]


class _UnpackState:
    """Single owner of the unpack set and the directory creation plan."""

    def __init__(self, auto_unpack_dirs: Set[str]) -> None:
        self.auto_unpack_dirs = auto_unpack_dirs
        self.dirs_to_create: Dict[str, List[str]] = {}

    def add_parents(self, child: str, root: str) -> None:
        """
        Mark every directory from the file's parent up to the package root.

        Stops at the first directory that is already marked.

        Args:
            child: Archive-relative path of the triggering file.
            root: Archive-relative package boundary directory.
        """
        child = os.path.dirname(child)
        if child in self.auto_unpack_dirs:
            return

        while True:
            self.auto_unpack_dirs.add(child)
            parent = os.path.dirname(child)
            # parent must exist before the file copy, without an existence check
            self.dirs_to_create.setdefault(parent, []).append(os.path.basename(child))

            if child == root or parent == root or parent in self.auto_unpack_dirs:
                break
            child = parent

        self.auto_unpack_dirs.add(root)


# ==============================================================================
# PUBLIC API
# ==============================================================================

def find_package_dir(file: str) -> Optional[str]:
    """
    Locate the dependency package directory enclosing a file.

    Scoped packages ('node_modules/@scope/name') resolve to the scoped
    package directory, not to the scope.

    Args:
        file: Absolute file path.

    Returns:
        Optional[str]: The package directory, or None if the file is not
                       inside a package.
    """
    index = file.rfind(NODE_MODULES_PATTERN)
    if index < 0:
        return None

    name_start = index + len(NODE_MODULES_PATTERN)
    next_sep = file.find(os.sep, name_start + 1)
    if next_sep < 0:
        return None

    if file[name_start] == SCOPE_MARKER:
        next_sep = file.find(os.sep, next_sep + 1)
        if next_sep < 0:
            return None

    return file[:next_sep]


def plan_unpacked_dirs(
        file_set: ResolvedFileSet,
        auto_unpack_dirs: Set[str],
        root_for_app_files_without_asar: str,
        *,
        is_binary: BinarySniffer = is_binary_file,
) -> UnpackPlan:
    """
    Decide which directories must be unpacked.

    Files are visited in file set order. A file inside a package that is
    already unpacked is unpacked without inspection; otherwise native
    binary extensions force unpacking and extensionless files are sniffed.

    Args:
        file_set: Walker output.
        auto_unpack_dirs: Seed set of archive-relative directories; it is
                          grown in place and becomes the plan's set.
        root_for_app_files_without_asar: Directory that archive-relative
                                         paths are computed against.
        is_binary: Content sniffer for extensionless files.

    Returns:
        UnpackPlan: Directories to unpack and the creation plan.

    Raises:
        SniffError: If an extensionless file cannot be read.
    """
    state = _UnpackState(auto_unpack_dirs)
    metadata = file_set.metadata

    for file in file_set.files:
        package_dir = find_package_dir(file)
        if package_dir is None:
            continue

        entry = metadata.get(file)
        if entry is None or not entry.is_file:
            continue

        package_dir_in_archive = os.path.relpath(
            file_set.destination_path(package_dir), root_for_app_files_without_asar
        )
        path_in_archive = os.path.relpath(
            file_set.destination_path(file), root_for_app_files_without_asar
        )

        if package_dir_in_archive in state.auto_unpack_dirs:
            state.add_parents(path_in_archive, package_dir_in_archive)
            continue

        if not _should_unpack(file, package_dir, is_binary):
            continue

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(UNPACKED_DIAGNOSTIC.format(path=path_in_archive))

        state.add_parents(path_in_archive, package_dir_in_archive)

    return UnpackPlan(auto_unpack_dirs=state.auto_unpack_dirs, dirs_to_create=state.dirs_to_create)


def realize_directory_plan(
        plan: UnpackPlan,
        unpacked_dest: str,
        concurrency: int = CONCURRENCY,
) -> None:
    """
    Create the planned directories under the unpacked destination.

    Independent parents are processed concurrently. Children of one parent
    are created sequentially; a child that is itself a plan key is left to
    its own entry.

    Args:
        plan: Planner output.
        unpacked_dest: Root directory for unpacked files.
        concurrency: Maximum simultaneous parent entries.

    Raises:
        DirectoryCreationError: If a directory cannot be created.
    """
    if plan.is_empty:
        return

    _ensure_dir(os.path.join(unpacked_dest, NODE_MODULES_DIR_NAME))
    dirs_to_create = plan.dirs_to_create

    def _create_children(parent_dir: str) -> None:
        base = unpacked_dest + os.sep + parent_dir
        _ensure_dir(base)
        for name in dirs_to_create[parent_dir]:
            if parent_dir + os.sep + name in dirs_to_create:
                continue
            _ensure_dir(base + os.sep + name)

    with create_executor(concurrency, "UnpackDirWorker") as executor:
        ordered_map(executor, _create_children, list(dirs_to_create))

    logger.debug(f"Created unpacked layout for {len(dirs_to_create)} parent directories in {unpacked_dest}")


def detect_unpacked_dirs(
        file_set: ResolvedFileSet,
        auto_unpack_dirs: Set[str],
        unpacked_dest: str,
        root_for_app_files_without_asar: str,
        *,
        is_binary: BinarySniffer = is_binary_file,
        concurrency: int = CONCURRENCY,
) -> UnpackPlan:
    """Plan unpacked directories and create them on disk."""
    plan = plan_unpacked_dirs(
        file_set, auto_unpack_dirs, root_for_app_files_without_asar, is_binary=is_binary
    )
    realize_directory_plan(plan, unpacked_dest, concurrency)
    return plan


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _should_unpack(file: str, package_dir: str, is_binary: BinarySniffer) -> bool:
    """Classify a file by name, sniffing content only when the name gives no hint."""
    if file.endswith(NATIVE_BINARY_EXTENSIONS):
        return True

    if "." in file[len(package_dir):] or os.path.splitext(file)[1]:
        return False

    try:
        return is_binary(file)
    except OSError as e:
        raise SniffError(file, package_dir, str(e)) from e


def _ensure_dir(path: str) -> None:
    try:
        ensure_dir(path)
    except OSError as e:
        # trailing separator lets a package directory name itself as root
        raise DirectoryCreationError(path, find_package_dir(path + os.sep), str(e)) from e
