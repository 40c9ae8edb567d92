"""
Data models for extracted documentation.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, Optional, Tuple

from frontend.syntax import SrcSpan


@dataclass(frozen=True)
class DocItem:
    """One documentation comment.

    Attributes:
        anchor_name: Chunk name for ``-- $name`` comments, ``None`` for
            comments attached to a declaration, export entry or header.
        text: Comment text after the doc marker, continuation lines joined
            with newlines.
        span: Where the comment was found.
    """

    anchor_name: Optional[str]
    text: str
    span: SrcSpan

    def to_dict(self) -> Dict[str, Any]:
        """Convert the item to a dictionary suitable for JSON serialization."""
        return asdict(self)

    def map_text(self, fn: Callable[[str], str]) -> "DocItem":
        return replace(self, text=fn(self.text))


@dataclass(frozen=True)
class ModuleDoc:
    """All documentation of one module.

    Attributes:
        module_name: Module name from the module summary.
        setup: First item anchored at the setup chunk, if any.
        content: Every other item, in source order.
    """

    module_name: str
    setup: Optional[DocItem]
    content: Tuple[DocItem, ...]

    @property
    def items(self) -> Tuple[DocItem, ...]:
        """All items, setup first."""
        if self.setup is None:
            return self.content
        return (self.setup,) + self.content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_name": self.module_name,
            "setup": self.setup.to_dict() if self.setup is not None else None,
            "content": [item.to_dict() for item in self.content],
        }

    def map_text(self, fn: Callable[[str], str]) -> "ModuleDoc":
        """Return a copy with ``fn`` applied to every item's text."""
        return ModuleDoc(
            module_name=self.module_name,
            setup=self.setup.map_text(fn) if self.setup is not None else None,
            content=tuple(item.map_text(fn) for item in self.content),
        )
