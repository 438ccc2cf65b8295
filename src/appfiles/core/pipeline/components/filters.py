from __future__ import annotations

"""
Dependency File Exclusion Engine.

Implements the built-in exclusion policy applied while walking dependency
directories, as an ordered table of typed rules, and the caller-supplied
glob matcher evaluated after them. Glob patterns follow .gitignore-like
conventions and are translated to Python regexes.
"""

import fnmatch
import os
import re
import stat as stat_mod
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from appfiles.domain.constants import (
    ALWAYS_EXCLUDED_NAMES,
    ALWAYS_EXCLUDED_SUFFIXES,
    GYP_BUILD_EXCLUDED_NAMES,
    GYP_BUILD_EXCLUDED_SUFFIXES,
    KEYTAR_PACKAGES,
    LZMA_NATIVE_EXCLUDED_NAMES,
    RELEASE_EXCLUDED_NAMES,
    TOP_LEVEL_EXCLUDED_NAMES,
)

# Caller filter signature: (absolute path, lstat result) -> keep?
Filter = Callable[[str, os.stat_result], bool]

# -----------------------------------------------------------------------------
# BUILT-IN EXCLUSION RULES
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ChildContext:
    """
    Everything a built-in rule may inspect about a directory entry.

    Attributes:
        dir_path: Absolute path of the directory being listed.
        name: Entry name inside that directory.
        is_top_level: True when 'dir_path' is the dependency's own root.
    """
    dir_path: str
    name: str
    is_top_level: bool


@dataclass(frozen=True)
class ExclusionRule:
    """A named predicate; a True result removes the entry from the walk."""
    name: str
    predicate: Callable[[ChildContext], bool]

    def __call__(self, ctx: ChildContext) -> bool:
        return self.predicate(ctx)


def _is_always_excluded(ctx: ChildContext) -> bool:
    return ctx.name in ALWAYS_EXCLUDED_NAMES or ctx.name.endswith(ALWAYS_EXCLUDED_SUFFIXES)


def _is_top_level_excluded(ctx: ChildContext) -> bool:
    return ctx.is_top_level and ctx.name in TOP_LEVEL_EXCLUDED_NAMES


def _is_build_output_excluded(ctx: ChildContext) -> bool:
    dir_path, name = ctx.dir_path, ctx.name
    # package names are checked first: 'keytar-prebuild' also ends with 'build'
    if name == "src" and dir_path.endswith(KEYTAR_PACKAGES):
        return True
    if dir_path.endswith("lzma-native") and name in LZMA_NATIVE_EXCLUDED_NAMES:
        return True
    if dir_path.endswith("build"):
        return name in GYP_BUILD_EXCLUDED_NAMES or name.endswith(GYP_BUILD_EXCLUDED_SUFFIXES)
    if dir_path.endswith("Release"):
        return name in RELEASE_EXCLUDED_NAMES
    return False


# Evaluated in order; the caller filter always runs after these
EXCLUSION_RULES: Tuple[ExclusionRule, ...] = (
    ExclusionRule("always-excluded", _is_always_excluded),
    ExclusionRule("top-level-only", _is_top_level_excluded),
    ExclusionRule("build-output", _is_build_output_excluded),
)


def find_exclusion_rule(
        dir_path: str,
        name: str,
        is_top_level: bool,
        rules: Sequence[ExclusionRule] = EXCLUSION_RULES,
) -> Optional[ExclusionRule]:
    """
    Return the first built-in rule that excludes an entry.

    Args:
        dir_path: Directory being listed.
        name: Entry name.
        is_top_level: Whether the directory is the dependency root.
        rules: Rule table, in precedence order.

    Returns:
        Optional[ExclusionRule]: The matching rule, or None if the entry survives.
    """
    ctx = ChildContext(dir_path=dir_path, name=name, is_top_level=is_top_level)
    for rule in rules:
        if rule(ctx):
            return rule
    return None


def is_excluded(dir_path: str, name: str, is_top_level: bool) -> bool:
    """Check an entry against the built-in exclusion table."""
    return find_exclusion_rule(dir_path, name, is_top_level) is not None

# -----------------------------------------------------------------------------
# GLOB PATTERN COMPILATION
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class GlobPattern:
    """
    A compiled user glob.

    Attributes:
        source: Original pattern text, without the negation marker.
        negated: True for '!'-prefixed patterns.
        regex: Compiled regex matched against '/'-separated relative paths.
        basename_only: Pattern has no '/' and matches entry names at any depth.
    """
    source: str
    negated: bool
    regex: re.Pattern
    basename_only: bool

    def matches(self, rel_path: str) -> bool:
        """Match the path itself or any of its ancestor directories."""
        parts = rel_path.split("/")
        for i in range(len(parts), 0, -1):
            if self._matches_one("/".join(parts[:i])):
                return True
        return False

    def _matches_one(self, rel_path: str) -> bool:
        if self.regex.match(rel_path):
            return True
        if self.basename_only:
            return self.regex.match(rel_path.rsplit("/", 1)[-1]) is not None
        return False


def compile_glob(pattern: str) -> Optional[GlobPattern]:
    """
    Translate a glob pattern into a GlobPattern.

    Blank lines and '#' comments yield None. A leading '**/' also matches at
    the top level; a trailing '/' is ignored.

    Args:
        pattern: Raw glob pattern.

    Returns:
        Optional[GlobPattern]: The compiled pattern, or None if empty.
    """
    raw = pattern.strip()
    if not raw or raw.startswith("#"):
        return None

    negated = raw.startswith("!")
    if negated:
        raw = raw[1:]
    raw = raw.replace("\\", "/").rstrip("/")
    while raw.startswith("**/"):
        raw = raw[3:]
    raw = raw.lstrip("/")
    if not raw:
        return None

    return GlobPattern(
        source=raw,
        negated=negated,
        regex=re.compile(fnmatch.translate(raw)),
        basename_only="/" not in raw,
    )


def compile_globs(patterns: Sequence[str]) -> List[GlobPattern]:
    """Compile a list of glob patterns, skipping empty entries."""
    compiled: List[GlobPattern] = []
    for p in patterns:
        g = compile_glob(p)
        if g is not None:
            compiled.append(g)
    return compiled

# -----------------------------------------------------------------------------
# CALLER FILE MATCHER
# -----------------------------------------------------------------------------

class FileMatcher:
    """
    User-configured inclusion/exclusion matcher rooted at the app directory.

    Patterns are evaluated in order and the last matching one wins. Files
    matching no pattern are included only when no positive pattern exists.
    Directories are kept unless a negated pattern is the last to match them,
    so that positive file patterns can still be reached inside them.
    """

    def __init__(self, from_dir: str, to_dir: str, patterns: Optional[Sequence[str]] = None) -> None:
        self.from_dir = from_dir
        self.to_dir = to_dir
        self.patterns: List[str] = list(patterns or [])
        self._globs = compile_globs(self.patterns)

    @property
    def is_empty(self) -> bool:
        return not self._globs

    def matches(self, file: str, is_directory: bool = False) -> bool:
        """
        Decide whether an absolute path is kept by this matcher.

        Args:
            file: Absolute path under (or linked from) 'from_dir'.
            is_directory: Whether the path is a directory.

        Returns:
            bool: True if the path should be kept.
        """
        rel = os.path.relpath(file, self.from_dir).replace(os.sep, "/")
        last: Optional[GlobPattern] = None
        for g in self._globs:
            if g.matches(rel):
                last = g

        if last is not None:
            return not last.negated
        if is_directory:
            return True
        return not any(not g.negated for g in self._globs)

    def create_filter(self) -> Optional[Filter]:
        """
        Build the walker's caller filter.

        Returns:
            Optional[Filter]: None when no patterns are configured.
        """
        if self.is_empty:
            return None

        def _filter(file: str, st: os.stat_result) -> bool:
            return self.matches(file, is_directory=stat_mod.S_ISDIR(st.st_mode))

        return _filter

    def __repr__(self) -> str:
        return f"FileMatcher(from_dir={self.from_dir!r}, to_dir={self.to_dir!r}, patterns={self.patterns!r})"
