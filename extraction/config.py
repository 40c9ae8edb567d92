"""
Configuration constants for documentation extraction.

Defines the syntax-tree node kinds the walker skips or collects, and the
defaults used by the extractor, resolver and pipeline.
"""

from typing import FrozenSet, Tuple

# Node kinds whose payload is skipped entirely. In a freshly parsed tree
# these hold placeholders (free-variable caches, post-typecheck kinds,
# coercion evidence) or raw expressions that never carry documentation.
IGNORE_NODE_KINDS: FrozenSet[str] = frozenset({
    "NameSet",        # free-variable cache
    "PostTcKind",     # kind annotation filled in after typechecking
    "HsExpr",         # expressions
    "Coercion",       # coercion evidence
    "HsWithBndrs",    # binder-annotation wrapper
})

# Node kinds that are documentation and are collected without descending
COLLECT_NODE_KINDS: FrozenSet[str] = frozenset({
    "HsDocString",    # doc attached to a sub-declaration
    "DocD",           # free-standing doc / named chunk declaration
})

# Named chunk that is split off as the module's setup section
SETUP_ANCHOR: str = "setup"

# Inputs with this suffix are compiled artifacts, not sources
OBJECT_SUFFIX: str = ".o"

# LANGUAGE extensions that need compiled code at compile time
STAGE_RESTRICTED_EXTENSIONS: Tuple[str, ...] = (
    "TemplateHaskell",
    "QuasiQuotes",
)

# Scratch directory name prefix (followed by the process id)
TEMP_DIR_PREFIX: str = ".doctract-"

# Appended to every wrapped pipeline failure
BUG_REPORT_NOTE: str = (
    "This is most likely a bug in doctract; please report it "
    "together with the command line that triggered it."
)
