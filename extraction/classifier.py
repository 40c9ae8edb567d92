"""
Node classification for the selective tree walker.

A node's policy depends only on its runtime type. The type and its bases
are matched by class name against the kind tables in
``extraction.config``, so subclasses inherit their base's policy and the
node value itself is never inspected.
"""

import enum
from functools import lru_cache
from typing import Any, FrozenSet

from extraction.config import COLLECT_NODE_KINDS, IGNORE_NODE_KINDS


class Policy(enum.Enum):
    DESCEND = "descend"
    COLLECT = "collect"
    IGNORE = "ignore"


@lru_cache(maxsize=None)
def _classify_cached(cls: type, ignore: FrozenSet[str], collect: FrozenSet[str]) -> Policy:
    for klass in cls.__mro__:
        name = klass.__name__
        if name in ignore:
            return Policy.IGNORE
        if name in collect:
            return Policy.COLLECT
    return Policy.DESCEND


def classify_kind(cls: type) -> Policy:
    """Return the walk policy for a node type.

    Example:
        >>> from frontend.syntax import NameSet
        >>> classify_kind(NameSet)
        <Policy.IGNORE: 'ignore'>
    """
    return _classify_cached(cls, IGNORE_NODE_KINDS, COLLECT_NODE_KINDS)


def classify(node: Any) -> Policy:
    """Return the walk policy for a node; only ``type(node)`` is consulted."""
    return classify_kind(type(node))
