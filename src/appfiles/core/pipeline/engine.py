from __future__ import annotations

"""
Core materialization pipeline.

This module coordinates the file-materialization workflow:
1. Validates and normalizes the packaging configuration.
2. Walks the resolved dependency roots into an ordered file set.
3. Plans which dependency directories must stay unpacked.
4. Creates the unpacked directory layout (unless running dry).
"""

import logging
import os
from typing import Any, Dict, Optional, Sequence, Union

from appfiles.core.pipeline.components.filters import FileMatcher
from appfiles.core.pipeline.stages.validator import validate_config
from appfiles.core.services.scanner import walk_dependencies
from appfiles.core.services.sniffer import is_binary_file
from appfiles.core.services.unpack_detector import (
    BinarySniffer,
    plan_unpacked_dirs,
    realize_directory_plan,
)
from appfiles.domain.errors import MaterializationError
from appfiles.domain.models import DependencyRoot
from appfiles.domain.result_models import (
    MaterializationResult,
    create_error_result,
    create_success_result,
)
from appfiles.infra.logging import LoggingConfig, configure_logging

logger = logging.getLogger(__name__)

DependencyInput = Union[DependencyRoot, str]


def run_materialization(
        config: Optional[Dict[str, Any]],
        dependencies: Sequence[DependencyInput],
        *,
        dry_run: bool = False,
        is_binary: BinarySniffer = is_binary_file,
) -> MaterializationResult:
    """
    Execute the full materialization pipeline.

    Any fatal filesystem error aborts the run; no partial result is
    returned in that case.

    Args:
        config: The packaging configuration dictionary (raw or partial).
        dependencies: Resolved dependency roots, in packaging order. Plain
                      strings are treated as non-linked directory paths.
        dry_run: If True, compute the plan without creating directories.
        is_binary: Content sniffer for extensionless dependency files.

    Returns:
        MaterializationResult: Object containing status, outputs, and summary.
    """
    cfg, warnings = validate_config(config, strict=False)

    if cfg["verbose"] or cfg["log_file"]:
        configure_logging(LoggingConfig.for_verbosity(cfg["verbose"], cfg["log_file"] or None))

    logger.info("Materialization started.")
    for warning in warnings:
        logger.warning(f"Configuration Warning: {warning}")

    app_dir = cfg["app_dir"]
    if not os.path.isdir(app_dir):
        msg = f"Invalid application directory: {app_dir}"
        logger.error(msg)
        return create_error_result(msg, cfg)

    roots = [_as_dependency_root(d) for d in dependencies]
    matcher = FileMatcher(app_dir, cfg["destination"], cfg["files"])

    try:
        file_set = walk_dependencies(roots, matcher, cfg["concurrency"])
        plan = plan_unpacked_dirs(
            file_set,
            set(cfg["always_unpack_dirs"]),
            cfg["destination"],
            is_binary=is_binary,
        )
        if not dry_run:
            realize_directory_plan(plan, cfg["unpacked_dest"], cfg["concurrency"])
    except MaterializationError as e:
        logger.error(f"Materialization aborted: {e}")
        return create_error_result(str(e), cfg, summary_extra={"path": e.path, "root": e.root})

    result = create_success_result(cfg, file_set, plan, dry_run=dry_run)
    logger.info(
        f"Materialization finalized. Files: {result.summary['files']}. "
        f"Unpacked directories: {result.summary['unpacked_dirs']}."
    )
    return result


def _as_dependency_root(dep: DependencyInput) -> DependencyRoot:
    if isinstance(dep, DependencyRoot):
        return dep
    return DependencyRoot(path=os.path.abspath(dep))
