from __future__ import annotations

"""
Materialization Error Taxonomy.

Every error raised by the walker, the sniffer, or the unpack planner is
fatal for the packaging run. Messages always name the offending path and
the dependency root it was reached from.
"""

from typing import Optional


class MaterializationError(Exception):
    """
    Base class for fatal materialization failures.

    Attributes:
        path: Offending filesystem path.
        root: Dependency root being processed, when known.
        reason: Short human-readable cause.
    """

    action = "process"

    def __init__(self, path: str, root: Optional[str] = None, reason: str = "") -> None:
        self.path = path
        self.root = root
        self.reason = reason
        super().__init__(self._format())

    def _format(self) -> str:
        msg = f"Cannot {self.action} '{self.path}'"
        if self.root:
            msg += f" (dependency root: '{self.root}')"
        if self.reason:
            msg += f": {self.reason}"
        return msg


class WalkError(MaterializationError):
    """Directory listing or stat failed on a path that survived exclusion."""
    action = "read"


class SymlinkError(MaterializationError):
    """Symbolic link target could not be resolved or stat'ed."""
    action = "resolve symlink"


class SniffError(MaterializationError):
    """Content sniffing of an extensionless dependency file failed."""
    action = "inspect content of"


class DirectoryCreationError(MaterializationError):
    """A directory scheduled by the unpack plan could not be created."""
    action = "create directory"
