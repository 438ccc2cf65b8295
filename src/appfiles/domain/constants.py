from __future__ import annotations

"""
Domain Constants and Static Data Structures.

Centralizes the exclusion tables used by the dependency walker, the
package-boundary marker used by the unpack planner, and the default
concurrency bound for filesystem fan-out.
"""

import os
from typing import FrozenSet, Tuple

# Maximum number of simultaneous filesystem operations (stat, mkdir)
CONCURRENCY = 8

NODE_MODULES_DIR_NAME = "node_modules"
NODE_MODULES_PATTERN = f"{os.sep}{NODE_MODULES_DIR_NAME}{os.sep}"
SCOPE_MARKER = "@"

# -----------------------------------------------------------------------------
# EXCLUSION TABLES
# -----------------------------------------------------------------------------

# Housekeeping names shared with the user-facing file matcher defaults
DEFAULT_EXCLUDED_NAMES: Tuple[str, ...] = (
    ".git", ".hg", ".svn", "CVS", "RCS", "SCCS",
    "__pycache__", ".DS_Store", "thumbs.db",
    ".gitignore", ".gitkeep", ".gitattributes", ".npmignore",
    ".idea", ".vs", ".flowconfig", ".jshintrc", ".eslintrc", ".circleci",
    ".yarn-integrity", ".yarn-metadata.json", "yarn-error.log", "yarn.lock",
    "package-lock.json", "npm-debug.log",
    "appveyor.yml", ".travis.yml", "circle.yml", ".nyc_output",
)

ALWAYS_EXCLUDED_NAMES: FrozenSet[str] = frozenset(
    (
        ".DS_Store",
        NODE_MODULES_DIR_NAME,  # nested dependencies arrive as their own roots
        "CHANGELOG.md",
        "ChangeLog",
        "changelog.md",
        "binding.gyp",
    ) + DEFAULT_EXCLUDED_NAMES
)

ALWAYS_EXCLUDED_SUFFIXES: Tuple[str, ...] = (
    ".h", ".o", ".obj", ".cc", ".pdb", ".d.ts", ".suo", ".npmignore", ".sln",
)

TOP_LEVEL_EXCLUDED_NAMES: FrozenSet[str] = frozenset((
    "karma.conf.js", ".coveralls.yml",
    "README.md", "readme.markdown", "README", "readme.md", "readme",
    "test", "__tests__", "tests", "powered-test",
    "example", "examples",
))

# Leftovers of node-gyp builds under "<addon>/build"
GYP_BUILD_EXCLUDED_NAMES: FrozenSet[str] = frozenset(("gyp-mac-tool", "Makefile"))
GYP_BUILD_EXCLUDED_SUFFIXES: Tuple[str, ...] = (".mk", ".gypi", ".Makefile")

# Intermediate object directories under "<addon>/build/Release"
RELEASE_EXCLUDED_NAMES: FrozenSet[str] = frozenset((".deps", "obj.target"))

KEYTAR_PACKAGES: Tuple[str, ...] = ("keytar", "keytar-prebuild")
LZMA_NATIVE_EXCLUDED_NAMES: FrozenSet[str] = frozenset(("build", "deps"))

# -----------------------------------------------------------------------------
# UNPACK CLASSIFICATION
# -----------------------------------------------------------------------------

NATIVE_BINARY_EXTENSIONS: Tuple[str, ...] = (".dll", ".exe", ".node")

UNPACKED_DIAGNOSTIC = "{path} is not packed into asar archive - contains executable code"
