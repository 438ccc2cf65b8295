from __future__ import annotations

"""
Dependency Tree Walking Service.

Traverses resolved dependency directories, applies the built-in exclusion
table and the caller's file matcher, resolves symbolic links, and produces
a deterministic ordered file list with per-path metadata.

Directory entries are stat'ed concurrently on a bounded pool, but results
are merged by the walking thread in sorted-name order, so the output never
depends on I/O completion order.
"""

import logging
import os
import stat as stat_mod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from appfiles.core.pipeline.components.filters import (
    FileMatcher,
    Filter,
    find_exclusion_rule,
)
from appfiles.domain.constants import CONCURRENCY
from appfiles.domain.errors import SymlinkError, WalkError
from appfiles.domain.models import DependencyRoot, PathKind, PathMetadata, ResolvedFileSet
from appfiles.infra.fs import create_executor, ordered_map, relative_inside

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ChildEntry:
    """Outcome of inspecting one directory entry on a worker thread."""
    name: str
    path: str
    metadata: PathMetadata


# ==============================================================================
# PUBLIC API
# ==============================================================================

class NodeModuleCollector:
    """
    Collects every packable file below a list of dependency roots.

    Attributes:
        matcher: Caller file matcher; its 'from_dir' is the walk root used
                 to tell in-tree symlinks from external ones.
        metadata: Path to metadata for every kept entry, files and
                  directories alike.
    """

    def __init__(self, matcher: FileMatcher, concurrency: int = CONCURRENCY) -> None:
        self.matcher = matcher
        self.filter: Optional[Filter] = matcher.create_filter()
        self.concurrency = max(1, concurrency)
        self.metadata: Dict[str, PathMetadata] = {}

    def collect(self, dependencies: Sequence[DependencyRoot]) -> List[str]:
        """
        Walk each dependency root and return the kept files in traversal order.

        For each root (in the given order), a directory's files are listed in
        name order, then its subdirectories are descended depth-first in name
        order.

        Args:
            dependencies: Dependency roots, in packaging order.

        Returns:
            List[str]: Absolute file paths, without directories.

        Raises:
            WalkError: On a listing or stat failure.
            SymlinkError: On a link that cannot be resolved.
        """
        result: List[str] = []
        with create_executor(self.concurrency, "WalkWorker") as executor:
            seen: Set[str] = set()
            for dep in dependencies:
                if dep.path in seen:
                    logger.debug(f"Skipping duplicate dependency root {dep.path}")
                    continue
                seen.add(dep.path)
                self._collect_dependency(dep, executor, result)

        logger.debug(f"Collected {len(result)} files from {len(dependencies)} dependencies")
        return result

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _collect_dependency(
            self,
            dep: DependencyRoot,
            executor: ThreadPoolExecutor,
            result: List[str],
    ) -> None:
        if dep.link is not None:
            st = dep.stat if dep.stat is not None else self._lstat(dep.path, dep.path)
            self.metadata[dep.path] = self._resolve_link(dep.path, st, dep.link, dep.path)

        # LIFO stack; subdirectories are pushed in reverse name order
        queue: List[str] = [dep.path]
        while queue:
            dir_path = queue.pop()
            child_names = self._listdir(dir_path, dep.path)
            child_names.sort()

            is_top_level = dir_path == dep.path
            candidates = [
                name for name in child_names
                if find_exclusion_rule(dir_path, name, is_top_level) is None
            ]

            entries = ordered_map(
                executor,
                lambda name: self._inspect_child(dir_path, name, dep.path),
                candidates,
            )

            dirs: List[str] = []
            for entry in entries:
                if entry is None:
                    continue
                self.metadata[entry.path] = entry.metadata
                if entry.metadata.is_directory:
                    dirs.append(entry.name)
                else:
                    result.append(entry.path)

            for name in reversed(dirs):
                queue.append(dir_path + os.sep + name)

    def _inspect_child(self, dir_path: str, name: str, root: str) -> Optional[_ChildEntry]:
        """Worker unit: stat, filter, and classify one entry. Writes no shared state."""
        file_path = dir_path + os.sep + name
        st = self._lstat(file_path, root)

        if self.filter is not None and not self.filter(file_path, st):
            return None

        if stat_mod.S_ISLNK(st.st_mode):
            link_target = self._readlink(file_path, root)
            metadata = self._resolve_link(file_path, st, link_target, root)
        else:
            metadata = PathMetadata.from_stat(st)

        # FIFOs, sockets and devices cannot be packaged
        if metadata.kind is PathKind.SPECIAL:
            logger.debug(f"Skipping special file {file_path}")
            return None

        return _ChildEntry(name=name, path=file_path, metadata=metadata)

    # ------------------------------------------------------------------
    # Symlink handling
    # ------------------------------------------------------------------

    def _resolve_link(self, file: str, st: os.stat_result, link_target: str, root: str) -> PathMetadata:
        """
        Classify a symlink.

        Targets inside the walk root keep link semantics and are recorded
        with their root-relative target. External targets are stat'ed and
        classified by what they point to, so they get copied by value.
        """
        relative = relative_inside(self.matcher.from_dir, link_target)
        if relative is not None:
            return PathMetadata.in_tree_link(st, relative)

        logger.debug(f"Following external link {file} -> {link_target}")
        try:
            target_stat = os.stat(link_target)
        except OSError as e:
            raise SymlinkError(file, root, f"target '{link_target}' is not accessible: {e}") from e
        return PathMetadata.from_stat(target_stat)

    # ------------------------------------------------------------------
    # Filesystem primitives
    # ------------------------------------------------------------------

    @staticmethod
    def _listdir(dir_path: str, root: str) -> List[str]:
        try:
            return os.listdir(dir_path)
        except OSError as e:
            raise WalkError(dir_path, root, str(e)) from e

    @staticmethod
    def _lstat(path: str, root: str) -> os.stat_result:
        try:
            return os.lstat(path)
        except OSError as e:
            raise WalkError(path, root, str(e)) from e

    @staticmethod
    def _readlink(path: str, root: str) -> str:
        try:
            target = os.readlink(path)
        except OSError as e:
            raise SymlinkError(path, root, str(e)) from e
        # Relative targets resolve against the link's own directory
        return os.path.normpath(os.path.join(os.path.dirname(path), target))


def walk_dependencies(
        dependencies: Sequence[DependencyRoot],
        matcher: FileMatcher,
        concurrency: int = CONCURRENCY,
) -> ResolvedFileSet:
    """
    Walk dependency roots into a ResolvedFileSet.

    Args:
        dependencies: Dependency roots, in packaging order.
        matcher: Caller file matcher rooted at the application directory.
        concurrency: Maximum simultaneous stat calls.

    Returns:
        ResolvedFileSet: Files in deterministic order plus metadata.
    """
    collector = NodeModuleCollector(matcher, concurrency)
    files = collector.collect(dependencies)
    return ResolvedFileSet(
        src=matcher.from_dir,
        destination=matcher.to_dir,
        files=files,
        metadata=collector.metadata,
    )
