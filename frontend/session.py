"""
Compiler session for the reference frontend.

A session owns the dynamic flags, the registered targets, the module graph
found by dependency analysis, and the set of modules that have been
typechecked and loaded. Modules must go through
``parse_module -> typecheck_module -> load_module`` in dependency order.
"""

import json
import logging
import os
import re
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from frontend.errors import CmdLineError, FrontendError, FrontendPanic, SourceError
from frontend.parser import parse_module_header, parse_source
from frontend.syntax import (
    HsModule,
    IEModuleContents,
    IEThingAbs,
    IEThingAll,
    IEThingWith,
    IEVar,
    ImportDecl,
    Located,
    SpliceD,
    decl_binders,
)

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".hs"
INTERFACE_SUFFIX = ".hi"
OBJECT_SUFFIX = ".o"

TEMPLATE_HASKELL = "TemplateHaskell"

_MODULE_NAME_RE = re.compile(r"[A-Z][\w']*(?:\.[A-Z][\w']*)*")


class HscTarget(Enum):
    """What the backend produces for each module."""

    NOTHING = "nothing"
    OBJECT = "object"


@dataclass
class DynFlags:
    """Session-wide (and per-module) compiler flags."""

    search_paths: List[str] = field(default_factory=lambda: ["."])
    extensions: Tuple[str, ...] = ()
    hsc_target: HscTarget = HscTarget.NOTHING
    output_dir: Optional[str] = None
    hi_dir: Optional[str] = None
    stub_dir: Optional[str] = None
    include_paths: List[str] = field(default_factory=list)
    hide_all_packages: bool = False


def parse_flags(flags: Sequence[str]) -> DynFlags:
    """Build DynFlags from command-line style flags.

    Raises:
        CmdLineError: On an unrecognised flag.
    """
    dflags = DynFlags()
    extensions: List[str] = []
    for flag in flags:
        if flag == "-i":
            dflags.search_paths = []
        elif flag.startswith("-i"):
            dflags.search_paths.extend(p for p in flag[2:].split(os.pathsep) if p)
        elif flag.startswith("-XNo") and len(flag) > 4:
            extensions.append("No" + flag[4:])
        elif flag.startswith("-X") and len(flag) > 2:
            extensions.append(flag[2:])
        elif flag == "-fobject-code":
            dflags.hsc_target = HscTarget.OBJECT
        elif flag == "-hide-all-packages":
            dflags.hide_all_packages = True
        else:
            raise CmdLineError(f"unrecognised flag: {flag}")
    dflags.extensions = effective_extensions(extensions)
    return dflags


def effective_extensions(names: Sequence[str]) -> Tuple[str, ...]:
    """Apply ``NoX`` entries to an ordered list of extension names."""
    enabled: List[str] = []
    for name in names:
        if name.startswith("No") and name[2:3].isupper():
            positive = name[2:]
            enabled = [ext for ext in enabled if ext != positive]
        elif name not in enabled:
            enabled.append(name)
    return tuple(enabled)


@dataclass(frozen=True)
class Target:
    """A compilation target: a source file or a module name to look up."""

    path: str
    module_name: Optional[str] = None


@dataclass
class ModSummary:
    """Dependency-analysis record for one module."""

    module_name: str
    file_path: str
    imports: Tuple[Located[ImportDecl], ...]
    extensions: Tuple[str, ...]
    dflags: DynFlags
    source: str

    def import_names(self) -> List[str]:
        return [imp.value.module.value for imp in self.imports]


class ModuleGraph:
    """Module summaries in discovery order, with the local imports relation."""

    def __init__(self, summaries: Sequence[ModSummary]):
        self._summaries = list(summaries)
        self._by_name: Dict[str, ModSummary] = {s.module_name: s for s in self._summaries}

    def __iter__(self) -> Iterator[ModSummary]:
        return iter(self._summaries)

    def __len__(self) -> int:
        return len(self._summaries)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def get(self, name: str) -> Optional[ModSummary]:
        return self._by_name.get(name)

    @property
    def module_names(self) -> List[str]:
        return [s.module_name for s in self._summaries]

    def edges(self, name: str) -> List[str]:
        """Modules in this graph imported by ``name``, in import order."""
        summary = self._by_name[name]
        seen: Set[str] = set()
        edges: List[str] = []
        for imported in summary.import_names():
            if imported in self._by_name and imported not in seen:
                seen.add(imported)
                edges.append(imported)
        return edges

    def reaches(self, source: str, target: str) -> bool:
        """True if ``target`` is reachable from ``source`` along imports."""
        stack = [source]
        visited: Set[str] = set()
        while stack:
            name = stack.pop()
            if name == target:
                return True
            if name in visited:
                continue
            visited.add(name)
            stack.extend(self.edges(name))
        return False


@dataclass(frozen=True)
class ParsedModule:
    mod_summary: ModSummary
    parsed_source: HsModule


@dataclass(frozen=True)
class TypecheckedModule:
    parsed_module: ParsedModule
    exports: Tuple[str, ...]

    @property
    def module_name(self) -> str:
        return self.parsed_module.mod_summary.module_name


class Session:
    """A single compiler session."""

    def __init__(self, dflags: DynFlags):
        self._dflags = dflags
        self._targets: List[Target] = []
        self._graph: Optional[ModuleGraph] = None
        self._typechecked: Dict[str, TypecheckedModule] = {}
        self._loaded: Set[str] = set()

    # -- flags and targets --------------------------------------------------

    def get_session_dyn_flags(self) -> DynFlags:
        return self._dflags

    def set_session_dyn_flags(self, dflags: DynFlags) -> None:
        self._dflags = dflags

    def guess_target(self, name: str) -> Target:
        """Interpret an input as a file path or a module name.

        Raises:
            FrontendError: If neither a file nor a module can be found.
        """
        if os.path.isfile(name):
            return Target(path=name)
        if _MODULE_NAME_RE.fullmatch(name):
            path = self._find_module(name)
            if path is None:
                raise FrontendError(f"can't find module '{name}' in search path")
            return Target(path=path, module_name=name)
        raise FrontendError(f"can't find file: {name}")

    def set_targets(self, targets: Sequence[Target]) -> None:
        self._targets = list(targets)
        self._graph = None

    def _find_module(self, name: str) -> Optional[str]:
        relative = os.path.join(*name.split(".")) + SOURCE_SUFFIX
        for directory in self._dflags.search_paths:
            candidate = os.path.join(directory, relative)
            if os.path.isfile(candidate):
                return candidate
        return None

    # -- dependency analysis ------------------------------------------------

    def depanal(self) -> ModuleGraph:
        """Summarise the targets and every local module they import.

        Modules are summarised depth-first in import order with an explicit
        stack, so long import chains do not hit the recursion limit.
        Imports that resolve to no file on the search path are treated as
        package imports and left out of the graph, unless
        ``-hide-all-packages`` is set.
        """
        summaries: List[ModSummary] = []
        by_name: Dict[str, ModSummary] = {}
        by_path: Dict[str, ModSummary] = {}

        def enter(path: str) -> Optional[ModSummary]:
            """Summarise a module not seen before; ``None`` if already known."""
            key = os.path.realpath(path)
            if key in by_path:
                return None
            summary = self._summarise(path)
            existing = by_name.get(summary.module_name)
            if existing is not None:
                raise FrontendError(
                    f"module '{summary.module_name}' is defined in multiple files: "
                    f"{existing.file_path}, {summary.file_path}"
                )
            by_path[key] = summary
            by_name[summary.module_name] = summary
            summaries.append(summary)
            return summary

        for target in self._targets:
            root = enter(target.path)
            if root is None:
                continue
            stack = [(root, iter(root.imports))]
            while stack:
                summary, pending = stack[-1]
                imp = next(pending, None)
                if imp is None:
                    stack.pop()
                    continue
                imported = imp.value.module.value
                if imported in by_name:
                    continue
                found = self._find_module(imported)
                if found is not None:
                    child = enter(found)
                    if child is not None:
                        stack.append((child, iter(child.imports)))
                elif self._dflags.hide_all_packages:
                    span = imp.value.module.span
                    raise SourceError(
                        f"Could not find module '{imported}'",
                        span.file,
                        span.start_line,
                        span.start_col,
                    )
                else:
                    logger.debug(f"{summary.module_name}: '{imported}' is a package import")

        self._graph = ModuleGraph(summaries)
        logger.info(
            "Dependency analysis found %d module(s) from %d target(s)",
            len(summaries),
            len(self._targets),
        )
        return self._graph

    def _summarise(self, path: str) -> ModSummary:
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                source = f.read()
        except OSError as exc:
            raise FrontendError(f"can't read {path}: {exc}") from exc
        header = parse_module_header(source, path)
        extensions = effective_extensions(self._dflags.extensions + header.extensions)
        return ModSummary(
            module_name=header.name,
            file_path=path,
            imports=header.imports,
            extensions=extensions,
            dflags=replace(self._dflags, extensions=extensions),
            source=source,
        )

    # -- per-module pipeline ------------------------------------------------

    def parse_module(self, summary: ModSummary) -> ParsedModule:
        return ParsedModule(mod_summary=summary, parsed_source=parse_source(summary.source, summary.file_path))

    def typecheck_module(self, parsed: ParsedModule) -> TypecheckedModule:
        """Check a parsed module against the modules loaded so far.

        Raises:
            FrontendError: On dependency-order, cycle, stage-restriction or
                export errors.
            FrontendPanic: If the module is not part of the current graph.
        """
        summary = parsed.mod_summary
        name = summary.module_name
        graph = self._require_graph(name)
        module = parsed.parsed_source

        cyclic = []
        for imported in graph.edges(name):
            if imported in self._loaded:
                continue
            if graph.reaches(imported, name):
                cyclic.append(imported)
                continue
            raise FrontendError(
                f"{name}: module '{imported}' is not loaded; "
                "modules must be processed in dependency order"
            )
        if cyclic and summary.dflags.hsc_target is HscTarget.OBJECT:
            raise FrontendError(
                "Module imports form a cycle: " + " -> ".join([name] + cyclic + [name])
            )

        splices = [d for d in module.decls if isinstance(d, SpliceD)]
        if splices:
            span = splices[0].span
            if TEMPLATE_HASKELL not in summary.extensions:
                raise SourceError(
                    "Parse error: naked expression at top level "
                    "(perhaps you intended to use TemplateHaskell)",
                    span.file,
                    span.start_line,
                    span.start_col,
                )
            if graph.edges(name) and summary.dflags.hsc_target is HscTarget.NOTHING:
                raise SourceError(
                    "GHC stage restriction: splices that use imported local "
                    "definitions need object code",
                    span.file,
                    span.start_line,
                    span.start_col,
                )

        imported_names = {name}
        for imp in summary.imports:
            imported_names.add(imp.value.module.value)
            if imp.value.as_name:
                imported_names.add(imp.value.as_name)
        for entry in module.exports or ():
            item = entry.value
            if isinstance(item, IEModuleContents) and item.module not in imported_names:
                raise SourceError(
                    f"The export item 'module {item.module}' is not imported",
                    entry.span.file,
                    entry.span.start_line,
                    entry.span.start_col,
                )

        typechecked = TypecheckedModule(parsed_module=parsed, exports=_exported_names(module))
        self._typechecked[name] = typechecked
        logger.debug(f"Typechecked {name} ({len(typechecked.exports)} exports)")
        return typechecked

    def load_module(self, typechecked: TypecheckedModule) -> TypecheckedModule:
        """Mark a module loaded, writing interface and object files if needed.

        Raises:
            FrontendPanic: If the module was not typechecked in this session.
            FrontendError: If object output cannot be written.
        """
        name = typechecked.module_name
        self._require_graph(name)
        if self._typechecked.get(name) is not typechecked:
            raise FrontendPanic(f"load_module: {name} was not typechecked in this session")

        dflags = typechecked.parsed_module.mod_summary.dflags
        if dflags.hsc_target is HscTarget.OBJECT:
            self._write_outputs(typechecked, dflags)
        self._loaded.add(name)
        return typechecked

    def _write_outputs(self, typechecked: TypecheckedModule, dflags: DynFlags) -> None:
        name = typechecked.module_name
        obj_dir = dflags.output_dir or self._dflags.output_dir
        hi_dir = dflags.hi_dir or self._dflags.hi_dir or obj_dir
        if not obj_dir or not os.path.isdir(obj_dir) or not os.path.isdir(hi_dir):
            raise FrontendError(f"{name}: no usable output directory for object code")

        summary = typechecked.parsed_module.mod_summary
        interface = {
            "module": name,
            "source": summary.file_path,
            "imports": summary.import_names(),
            "exports": list(typechecked.exports),
        }
        hi_path = os.path.join(hi_dir, name + INTERFACE_SUFFIX)
        with open(hi_path, "w", encoding="utf-8") as f:
            json.dump(interface, f, indent=2)
        with open(os.path.join(obj_dir, name + OBJECT_SUFFIX), "wb") as f:
            f.write(f"{name}\n".encode("utf-8"))
        logger.debug(f"Wrote {hi_path}")

    def _require_graph(self, name: str) -> ModuleGraph:
        if self._graph is None or name not in self._graph:
            raise FrontendPanic(f"module {name} is not part of the current module graph")
        return self._graph

    def close(self) -> None:
        self._typechecked.clear()
        self._loaded.clear()
        self._graph = None


def _exported_names(module: HsModule) -> Tuple[str, ...]:
    if module.exports is None:
        names: List[str] = []
        for decl in module.decls:
            for binder in decl_binders(decl):
                if binder not in names:
                    names.append(binder)
        return tuple(names)
    names = []
    for entry in module.exports:
        item = entry.value
        if isinstance(item, (IEVar, IEThingAbs, IEThingAll)):
            names.append(item.name)
        elif isinstance(item, IEThingWith):
            names.append(item.name)
            names.extend(item.members)
    return tuple(names)


def split_args(args: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split arguments into (flags, inputs)."""
    flags = [a for a in args if a.startswith("-")]
    inputs = [a for a in args if not a.startswith("-")]
    return flags, inputs


@contextmanager
def with_session(args: Sequence[str]):
    """Open a compiler session configured from command-line arguments.

    Yields:
        ``(session, inputs)`` where ``inputs`` are the non-flag arguments.

    Raises:
        CmdLineError: On an unrecognised flag.
    """
    flags, inputs = split_args(args)
    session = Session(parse_flags(flags))
    logger.debug(f"Session opened with {len(flags)} flag(s), {len(inputs)} input(s)")
    try:
        yield session, inputs
    finally:
        session.close()


__all__ = [
    "DynFlags",
    "HscTarget",
    "ModSummary",
    "ModuleGraph",
    "ParsedModule",
    "Session",
    "Target",
    "TypecheckedModule",
    "effective_extensions",
    "parse_flags",
    "split_args",
    "with_session",
]
