from __future__ import annotations

"""
Packaging Configuration Validation Service.

Acts as the gatekeeper for the materialization pipeline, ensuring that the
configuration dictionary conforms to the expected schema. Handles type
coercion, path normalization, and default value injection.
"""

import logging
import os
from typing import Any, Dict, List, Tuple

from appfiles.domain.config import get_default_config
from appfiles.infra.fs import normalize_path

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize the provided packaging configuration.

    Converts untrusted inputs (JSON files, build scripts) into strictly typed
    parameters and fills missing keys with domain defaults.

    Args:
        config: Raw configuration data (usually a dictionary).
        strict: If True, raises exceptions on type mismatch instead of coercing.

    Returns:
        Tuple[Dict[str, Any], List[str]]: A tuple containing the normalized
                                          configuration and a list of warnings.
    """
    warnings: List[str] = []
    defaults = get_default_config()

    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update(config)

    path_fields = ["app_dir", "destination", "unpacked_dest"]
    bool_fields = ["verbose"]
    int_fields = ["concurrency"]
    list_fields = ["files", "always_unpack_dirs"]

    for field in path_fields:
        raw = _as_str(merged.get(field), defaults[field], field, warnings, strict)
        merged[field] = normalize_path(raw, defaults[field])

    log_file = _as_str(merged.get("log_file"), "", "log_file", warnings, strict)
    merged["log_file"] = normalize_path(log_file, "") if log_file else ""

    for field in bool_fields:
        merged[field] = _as_bool(merged.get(field), defaults[field], field, warnings, strict)

    for field in int_fields:
        merged[field] = _as_positive_int(merged.get(field), defaults[field], field, warnings, strict)

    for field in list_fields:
        merged[field] = _as_list_str(merged.get(field), defaults[field], field, warnings, strict)

    merged["always_unpack_dirs"] = _normalize_unpack_dirs(
        merged["always_unpack_dirs"], warnings, strict
    )

    return merged, warnings


# -----------------------------------------------------------------------------
# PRIVATE HELPERS: TYPE COERCION
# -----------------------------------------------------------------------------

def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    """Validate and sanitize string inputs."""
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        return v if v else fallback

    msg = f"Invalid field '{field}': expected str, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    """Coerce various input types into native booleans."""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback

    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False

    msg = f"Invalid field '{field}': expected bool, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_positive_int(value: Any, fallback: int, field: str, warnings: List[str], strict: bool) -> int:
    """Coerce to an int of at least 1."""
    if value is None:
        return fallback

    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and not strict:
        try:
            parsed = int(value.strip())
            warnings.append(f"Field '{field}' converted from '{value}' to {parsed}.")
        except ValueError:
            parsed = None
    else:
        parsed = None

    if parsed is None:
        msg = f"Invalid field '{field}': expected int, received {type(value).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback

    if parsed < 1:
        msg = f"Invalid field '{field}': must be >= 1, received {parsed}."
        if strict:
            raise ValueError(msg)
        warnings.append(f"{msg} Clamped to 1.")
        return 1
    return parsed


def _as_list_str(value: Any, fallback: List[str], field: str, warnings: List[str], strict: bool) -> List[str]:
    """Ensure input is a list of sanitized strings, supporting CSV parsing."""
    if value is None:
        return list(fallback)

    if isinstance(value, str) and not strict:
        items = [x.strip() for x in value.split(",") if x.strip()]
        if items:
            warnings.append(f"Field '{field}' converted from CSV string to list.")
            return items
        return list(fallback)

    if isinstance(value, list):
        out: List[str] = []
        for i, item in enumerate(value):
            if isinstance(item, str):
                s = item.strip()
                if s:
                    out.append(s)
            else:
                msg = f"Invalid item in '{field}[{i}]': expected str."
                if strict:
                    raise TypeError(msg)
                warnings.append(f"{msg} Item discarded.")
        return out

    msg = f"Invalid field '{field}': expected list[str], received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return list(fallback)


# -----------------------------------------------------------------------------
# PRIVATE HELPERS: DOMAIN NORMALIZATION
# -----------------------------------------------------------------------------

def _normalize_unpack_dirs(dirs: List[str], warnings: List[str], strict: bool) -> List[str]:
    """Convert seed directories to archive-relative paths using the native separator."""
    out: List[str] = []
    for d in dirs:
        p = os.path.normpath(d.replace("/", os.sep))
        if os.path.isabs(p) or p == os.pardir or p.startswith(os.pardir + os.sep):
            msg = f"Unpack directory '{d}' must be relative to the application root."
            if strict:
                raise ValueError(msg)
            warnings.append(f"{msg} Entry discarded.")
            continue
        if p not in out:
            out.append(p)
    return out
