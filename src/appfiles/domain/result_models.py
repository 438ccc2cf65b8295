from __future__ import annotations

"""
Materialization Result Data Models.

Defines the result object and factory functions used to report the outcome
of a materialization run to its caller.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from appfiles.domain.models import ResolvedFileSet, UnpackPlan

# -----------------------------------------------------------------------------
# CORE DATA MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class MaterializationResult:
    """
    Unified result object of a complete materialization run.

    Attributes:
        ok: Flag indicating success or failure.
        error: Descriptive message in case of failure.
        app_dir: Normalized application source directory.
        unpacked_dest: Directory receiving unpacked files.
        dry_run: Whether directory realization was skipped.
        file_set: Resolved files and metadata (None on failure).
        plan: Unpack plan (None on failure).
        summary: Execution counters.
    """
    ok: bool
    error: str

    app_dir: str
    unpacked_dest: str
    dry_run: bool = False

    file_set: Optional[ResolvedFileSet] = None
    plan: Optional[UnpackPlan] = None

    summary: Dict[str, Any] = field(default_factory=dict)

# -----------------------------------------------------------------------------
# FACTORY FUNCTIONS
# -----------------------------------------------------------------------------

def create_error_result(
        error: str,
        cfg: Dict[str, Any],
        summary_extra: Optional[Dict[str, Any]] = None
) -> MaterializationResult:
    """
    Create a failed materialization result instance.

    Args:
        error: Detailed error description.
        cfg: The configuration used during the failed run.
        summary_extra: Additional metadata for the summary payload.

    Returns:
        MaterializationResult: An immutable error result object.
    """
    return MaterializationResult(
        ok=False,
        error=error,
        app_dir=cfg.get("app_dir", ""),
        unpacked_dest=cfg.get("unpacked_dest", ""),
        summary=summary_extra or {},
    )


def create_success_result(
        cfg: Dict[str, Any],
        file_set: ResolvedFileSet,
        plan: UnpackPlan,
        dry_run: bool = False,
) -> MaterializationResult:
    """
    Create a successful materialization result instance.

    Args:
        cfg: Final configuration used during execution.
        file_set: Files resolved by the walker.
        plan: Unpack plan computed by the planner.
        dry_run: Whether directories were left uncreated.

    Returns:
        MaterializationResult: An immutable success result object.
    """
    return MaterializationResult(
        ok=True,
        error="",
        app_dir=cfg.get("app_dir", ""),
        unpacked_dest=cfg.get("unpacked_dest", ""),
        dry_run=dry_run,
        file_set=file_set,
        plan=plan,
        summary={
            "files": len(file_set.files),
            "unpacked_dirs": len(plan.auto_unpack_dirs),
            "planned_parents": len(plan.dirs_to_create),
        },
    )
