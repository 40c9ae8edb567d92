"""
Module graph resolution.

Turns the user's inputs into the list of module summaries to process:
object files are dropped, targets are registered with the session,
dependency analysis finds every local module reachable by imports, and
the result is ordered so that each module comes after the modules it
imports.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterator, List, Sequence, Set, Tuple, TypeVar

from extraction.config import OBJECT_SUFFIX, STAGE_RESTRICTED_EXTENSIONS
from frontend.session import HscTarget, ModSummary, ModuleGraph, Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DONE = object()


def filter_source_inputs(inputs: Sequence[str], object_suffix: str = OBJECT_SUFFIX) -> List[str]:
    """Drop compiled-object inputs, keeping the order of the rest."""
    kept = [name for name in inputs if not name.endswith(object_suffix)]
    if len(kept) != len(inputs):
        logger.debug(f"Ignoring {len(inputs) - len(kept)} object file input(s)")
    return kept


def needs_template_haskell(graph: ModuleGraph) -> bool:
    """True if any module enables an extension that runs code at compile time."""
    return any(
        ext in STAGE_RESTRICTED_EXTENSIONS
        for summary in graph
        for ext in summary.extensions
    )


def enable_compilation(session: Session, graph: ModuleGraph) -> ModuleGraph:
    """Switch the session and every module summary to object-code output.

    The summaries carry their own copy of the flags, so the switch is
    applied to each of them as well as to the session.
    """
    dflags = session.get_session_dyn_flags()
    session.set_session_dyn_flags(replace(dflags, hsc_target=HscTarget.OBJECT))
    updated = [
        replace(summary, dflags=replace(summary.dflags, hsc_target=HscTarget.OBJECT))
        for summary in graph
    ]
    logger.info("Template Haskell in use; enabled object-code generation for %d module(s)", len(updated))
    return ModuleGraph(updated)


def strongly_connected_components(
    nodes: Sequence[T], adjacency: Dict[T, List[T]]
) -> List[List[T]]:
    """Tarjan's algorithm, iterative.

    Nodes are visited in the given order and neighbours in adjacency order,
    so the result is deterministic. Components are emitted after every
    component reachable from them, i.e. dependencies first. Members of a
    component keep the order of ``nodes``.
    """
    position = {node: n for n, node in enumerate(nodes)}
    index_counter = 0
    stack: List[T] = []
    lowlinks: Dict[T, int] = {}
    index: Dict[T, int] = {}
    on_stack: Set[T] = set()
    sccs: List[List[T]] = []

    for root in nodes:
        if root in index:
            continue
        call_stack: List[Tuple[T, Iterator[T]]] = []
        index[root] = lowlinks[root] = index_counter
        index_counter += 1
        stack.append(root)
        on_stack.add(root)
        call_stack.append((root, iter(adjacency.get(root, []))))

        while call_stack:
            v, neighbors = call_stack[-1]
            w = next(neighbors, _DONE)
            if w is not _DONE:
                if w not in index:
                    index[w] = lowlinks[w] = index_counter
                    index_counter += 1
                    stack.append(w)
                    on_stack.add(w)
                    call_stack.append((w, iter(adjacency.get(w, []))))
                elif w in on_stack:
                    lowlinks[v] = min(lowlinks[v], index[w])
                continue

            call_stack.pop()
            if lowlinks[v] == index[v]:
                scc: List[T] = []
                while True:
                    member = stack.pop()
                    on_stack.remove(member)
                    scc.append(member)
                    if member == v:
                        break
                scc.sort(key=lambda node: position.get(node, len(position)))
                sccs.append(scc)
            if call_stack:
                parent, _ = call_stack[-1]
                lowlinks[parent] = min(lowlinks[parent], lowlinks[v])

    return sccs


def top_sort_module_graph(graph: ModuleGraph) -> List[List[ModSummary]]:
    """Group the graph into import cycles, each after the modules it imports."""
    names = graph.module_names
    adjacency = {name: graph.edges(name) for name in names}
    return [
        [graph.get(name) for name in component]
        for component in strongly_connected_components(names, adjacency)
    ]


def flatten_sccs(sccs: Sequence[Sequence[T]]) -> List[T]:
    return [node for component in sccs for node in component]


def resolve(
    session: Session,
    inputs: Sequence[str],
    object_suffix: str = OBJECT_SUFFIX,
) -> List[ModSummary]:
    """Resolve inputs to module summaries in dependency order.

    Args:
        session: Open compiler session.
        inputs: Source files or module names, possibly mixed with object
            files.
        object_suffix: Suffix identifying object files to ignore.

    Returns:
        Summaries of every target and every local module it imports,
        directly or not. A module always follows the modules it imports,
        except within an import cycle, whose members are adjacent.

    Raises:
        FrontendError: Propagated unchanged from target lookup and
            dependency analysis.
    """
    sources = filter_source_inputs(inputs, object_suffix)
    session.set_targets([session.guess_target(name) for name in sources])
    graph = session.depanal()

    if needs_template_haskell(graph):
        graph = enable_compilation(session, graph)

    sccs = top_sort_module_graph(graph)
    cycles = [component for component in sccs if len(component) > 1]
    if cycles:
        logger.info(
            "Import cycles: %s",
            "; ".join(", ".join(s.module_name for s in c) for c in cycles),
        )
    ordered = flatten_sccs(sccs)
    logger.info("Resolved %d module(s): %s", len(ordered), ", ".join(s.module_name for s in ordered))
    return ordered
