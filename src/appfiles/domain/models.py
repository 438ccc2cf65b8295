from __future__ import annotations

"""
Materialization Domain Data Models.

Defines the immutable path metadata produced by the dependency walker, the
dependency seeds it consumes, the resolved file set handed to the archive
writer, and the unpack plan produced for the physical-copy stage.
"""

import enum
import os
import stat as stat_mod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from appfiles.domain.constants import NODE_MODULES_DIR_NAME, NODE_MODULES_PATTERN

# -----------------------------------------------------------------------------
# PATH METADATA
# -----------------------------------------------------------------------------

class PathKind(enum.Enum):
    """Classification of a walked entry."""
    FILE = "file"
    DIRECTORY = "directory"
    LINK = "link"
    SPECIAL = "special"


@dataclass(frozen=True)
class PathMetadata:
    """
    Immutable classification of a single walked path.

    Attributes:
        kind: File, directory, in-tree symbolic link, or special entry.
        size: Size in bytes as reported by the filesystem.
        mode: Raw st_mode bits.
        relative_link_target: For in-tree links only, the link target
                              relative to the walk root.
    """
    kind: PathKind
    size: int = 0
    mode: int = 0
    relative_link_target: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.kind is PathKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is PathKind.DIRECTORY

    @property
    def is_symbolic_link(self) -> bool:
        return self.kind is PathKind.LINK

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "PathMetadata":
        """
        Build metadata from a stat result.

        Symbolic links that reach this factory unresolved are classified as
        links without a target.
        Any other non-regular entry (FIFO, socket, device) is SPECIAL.
        """
        if stat_mod.S_ISDIR(st.st_mode):
            kind = PathKind.DIRECTORY
        elif stat_mod.S_ISLNK(st.st_mode):
            kind = PathKind.LINK
        elif stat_mod.S_ISREG(st.st_mode):
            kind = PathKind.FILE
        else:
            kind = PathKind.SPECIAL
        return cls(kind=kind, size=st.st_size, mode=st.st_mode)

    @classmethod
    def in_tree_link(cls, st: os.stat_result, relative_target: str) -> "PathMetadata":
        """Build metadata for a link whose target lives inside the walk root."""
        return cls(
            kind=PathKind.LINK,
            size=st.st_size,
            mode=st.st_mode,
            relative_link_target=relative_target,
        )


# -----------------------------------------------------------------------------
# WALKER INPUT / OUTPUT
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class DependencyRoot:
    """
    Top-level directory of one resolved dependency.

    Attributes:
        path: Absolute directory path as seen from the application.
        link: Absolute resolved target when the path itself is a symlink.
        stat: Optional status pre-fetched by dependency resolution.
    """
    path: str
    link: Optional[str] = None
    stat: Optional[os.stat_result] = None


@dataclass
class ResolvedFileSet:
    """
    Ordered file list plus metadata lookup for one packaging run.

    Attributes:
        src: Walk root (application source directory).
        destination: Directory that 'src' maps to in the packaged output.
        files: Absolute file paths in traversal order, without directories.
        metadata: Path to metadata mapping covering every listed file.
    """
    src: str
    destination: str
    files: List[str] = field(default_factory=list)
    metadata: Dict[str, PathMetadata] = field(default_factory=dict)

    def destination_path(self, file: str) -> str:
        """
        Map a source path to its location inside the packaged output.

        Dependencies hoisted outside the source directory are re-rooted at
        their last 'node_modules' segment.

        Raises:
            ValueError: If the path is neither under 'src' nor under a
                        'node_modules' directory.
        """
        if file == self.src:
            return self.destination

        src = self.src
        if len(file) > len(src) and file.startswith(src) and file[len(src)] == os.sep:
            return self.destination + file[len(src):]

        index = file.rfind(NODE_MODULES_PATTERN)
        if index < 0 and file.endswith(os.sep + NODE_MODULES_DIR_NAME):
            index = len(file) - len(NODE_MODULES_DIR_NAME) - 1
        if index < 0:
            raise ValueError(f'File "{file}" not under the source directory "{src}"')
        return self.destination + file[index:]


# -----------------------------------------------------------------------------
# PLANNER OUTPUT
# -----------------------------------------------------------------------------

@dataclass
class UnpackPlan:
    """
    Directories to keep outside the archive and how to create them.

    Attributes:
        auto_unpack_dirs: Archive-relative directories that must be unpacked.
        dirs_to_create: Parent directory to ordered immediate child names.
    """
    auto_unpack_dirs: Set[str] = field(default_factory=set)
    dirs_to_create: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.dirs_to_create
