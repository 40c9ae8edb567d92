"""
Per-module documentation extraction.

Collects the documentation of one parsed module in source order (module
header, export list, declarations) and splits off the setup chunk.
"""

import logging
from typing import List, Optional

from extraction.config import SETUP_ANCHOR
from extraction.models import DocItem, ModuleDoc
from extraction.traversal import RawDocString, extract_doc_strings
from frontend.session import ParsedModule
from frontend.syntax import IEDoc, Located

logger = logging.getLogger(__name__)


class DuplicateSetupError(ValueError):
    """Raised in strict mode when a module declares its setup chunk twice."""


def doc_strings_from_module(parsed_module: ParsedModule) -> List[RawDocString]:
    """Return every documentation comment of a module in source order.

    Header, export list and declarations are processed separately and
    concatenated, so the result follows source order even though each part
    lives in a different field of the module.
    """
    source = parsed_module.parsed_source

    header: List[RawDocString] = []
    if source.haddock_header is not None:
        header = extract_doc_strings(source.haddock_header)

    exports: List[RawDocString] = [
        (None, Located(entry.span, entry.value.text))
        for entry in source.exports or ()
        if isinstance(entry.value, IEDoc)
    ]

    decls = extract_doc_strings(source.decls)
    return header + exports + decls


def extract_from_module(
    parsed_module: ParsedModule,
    setup_anchor: str = SETUP_ANCHOR,
    strict_setup: bool = False,
) -> ModuleDoc:
    """Extract a module's documentation and attach the module name.

    Args:
        parsed_module: Parsed module with its summary.
        setup_anchor: Chunk name that marks the setup section.
        strict_setup: Raise instead of keeping a second setup chunk as
            ordinary content.

    Returns:
        ModuleDoc whose ``setup`` is the first item anchored at
        ``setup_anchor`` and whose ``content`` holds all other items.

    Raises:
        DuplicateSetupError: If ``strict_setup`` is set and more than one
            item is anchored at ``setup_anchor``.
    """
    name = parsed_module.mod_summary.module_name

    setup: Optional[DocItem] = None
    content: List[DocItem] = []
    for anchor, located in doc_strings_from_module(parsed_module):
        item = DocItem(anchor_name=anchor, text=located.value, span=located.span)
        if anchor != setup_anchor:
            content.append(item)
        elif setup is None:
            setup = item
        elif strict_setup:
            raise DuplicateSetupError(
                f"{name}: '${setup_anchor}' is declared more than once "
                f"(first at {setup.span}, again at {item.span})"
            )
        else:
            logger.warning(
                "%s: extra '$%s' chunk at %s kept as ordinary content",
                name,
                setup_anchor,
                item.span,
            )
            content.append(item)

    logger.debug(f"{name}: {len(content)} content item(s), setup={'yes' if setup else 'no'}")
    return ModuleDoc(module_name=name, setup=setup, content=tuple(content))
