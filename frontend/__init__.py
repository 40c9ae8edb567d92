"""
Reference compiler frontend for Haskell-style modules.

Parses source files into a syntax tree with tree-sitter, analyses module
dependencies, and drives per-module typechecking and loading within a
session.
"""

from frontend.errors import CmdLineError, FrontendError, FrontendPanic, SourceError
from frontend.parser import ModuleHeader, parse_module_header, parse_source
from frontend.session import (
    DynFlags,
    HscTarget,
    ModSummary,
    ModuleGraph,
    ParsedModule,
    Session,
    Target,
    TypecheckedModule,
    parse_flags,
    with_session,
)

__all__ = [
    "CmdLineError",
    "FrontendError",
    "FrontendPanic",
    "SourceError",
    "ModuleHeader",
    "parse_module_header",
    "parse_source",
    "DynFlags",
    "HscTarget",
    "ModSummary",
    "ModuleGraph",
    "ParsedModule",
    "Session",
    "Target",
    "TypecheckedModule",
    "parse_flags",
    "with_session",
]
