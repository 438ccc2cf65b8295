from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides path normalization, idempotent directory creation, and a bounded
thread fan-out helper that returns results in input order, so callers can
issue concurrent filesystem calls without giving up deterministic output.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

from appfiles.domain.constants import CONCURRENCY

T = TypeVar("T")
R = TypeVar("R")

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR/%VAR%) and user home
    shortcuts (~/). Reverts to fallback if the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is empty.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)


def relative_inside(root: str, target: str) -> Optional[str]:
    """
    Compute the path of 'target' relative to 'root'.

    Returns:
        Optional[str]: The relative path, or None if the target escapes the
                       root (including targets on a different drive).
    """
    try:
        rel = os.path.relpath(target, root)
    except ValueError:
        return None
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        return None
    return rel

# -----------------------------------------------------------------------------
# DIRECTORY CREATION API
# -----------------------------------------------------------------------------

def ensure_dir(path: str) -> None:
    """
    Create a directory and any missing parents.

    Raises:
        OSError: If the directory cannot be created.
    """
    os.makedirs(path, exist_ok=True)

# -----------------------------------------------------------------------------
# BOUNDED CONCURRENCY API
# -----------------------------------------------------------------------------

def create_executor(concurrency: int = CONCURRENCY, name: str = "FsWorker") -> ThreadPoolExecutor:
    """Create a worker pool capped at 'concurrency' simultaneous operations."""
    return ThreadPoolExecutor(max_workers=max(1, concurrency), thread_name_prefix=name)


def ordered_map(
        executor: ThreadPoolExecutor,
        func: Callable[[T], R],
        items: Iterable[T],
) -> List[R]:
    """
    Run 'func' over 'items' on the executor and collect results in input order.

    The exception of the first failing unit, in input order, is re-raised
    and units that have not started yet are cancelled.

    Args:
        executor: Bounded worker pool.
        func: Unit of work; must not write shared state.
        items: Inputs, in the order results must be returned.

    Returns:
        List[R]: One result per input, in input order.
    """
    return list(executor.map(func, items))
