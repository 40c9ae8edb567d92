"""
Selective syntax-tree traversal.

Walks any syntax-tree value depth-first, left to right, and yields the
documentation it contains. Each node is classified by type before it is
touched: ignored kinds are skipped without reading them, documentation
kinds are collected without looking inside, and everything else is
descended into field by field.
"""

import dataclasses
import enum
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from extraction.classifier import Policy, classify
from frontend.syntax import DocCommentNamed, DocD, HsDocString, Located

logger = logging.getLogger(__name__)

# (anchor name, located comment text)
RawDocString = Tuple[Optional[str], Located[str]]

_SCALAR_TYPES = (str, bytes, int, float, bool, complex, enum.Enum)


def _collect_doc_string(node: HsDocString) -> RawDocString:
    return None, Located(node.span, node.text)


def _collect_doc_decl(node: DocD) -> RawDocString:
    doc = node.doc
    if isinstance(doc, DocCommentNamed):
        return doc.name, Located(node.span, doc.text)
    return None, Located(node.span, doc.text)


# Collector per COLLECT kind, looked up along the node type's MRO
COLLECTORS: Dict[str, Callable[[Any], RawDocString]] = {
    "HsDocString": _collect_doc_string,
    "DocD": _collect_doc_decl,
}


def _collector_for(cls: type) -> Callable[[Any], RawDocString]:
    for klass in cls.__mro__:
        collector = COLLECTORS.get(klass.__name__)
        if collector is not None:
            return collector
    raise TypeError(f"no collector registered for node kind {cls.__name__}")


def iter_doc_strings(node: Any) -> Iterator[RawDocString]:
    """Yield every documentation comment under ``node`` in source order.

    Args:
        node: Any syntax-tree value: a node, a list or tuple of nodes, or a
            scalar leaf.

    Yields:
        ``(anchor_name, Located[text])`` entries.

    Raises:
        TypeError: If the tree holds a value that is neither a node, an
            ordered container nor a scalar.
    """
    policy = classify(node)
    if policy is Policy.IGNORE:
        return
    if policy is Policy.COLLECT:
        yield _collector_for(type(node))(node)
        return

    if node is None or isinstance(node, _SCALAR_TYPES):
        return
    if dataclasses.is_dataclass(node) and not isinstance(node, type):
        for f in dataclasses.fields(node):
            yield from iter_doc_strings(getattr(node, f.name))
        return
    if isinstance(node, (list, tuple)):
        for child in node:
            yield from iter_doc_strings(child)
        return
    if isinstance(node, dict):
        for child in node.values():
            yield from iter_doc_strings(child)
        return
    if isinstance(node, (set, frozenset)):
        raise TypeError(f"cannot walk unordered container {type(node).__name__}")
    raise TypeError(f"cannot walk value of type {type(node).__name__}")


def extract_doc_strings(node: Any) -> List[RawDocString]:
    """Collect ``iter_doc_strings(node)`` into a list."""
    entries = list(iter_doc_strings(node))
    logger.debug(f"Walked {type(node).__name__}: {len(entries)} doc string(s)")
    return entries
