"""
Comment collection over a tree-sitter Haskell syntax tree.

Comment nodes are extras in the grammar, so they can sit anywhere in the
tree. This module gathers them in source order, splits runs of ``--`` lines
into single line comments, records LANGUAGE pragmas, and classifies doc
comments by their marker:

    -- | text     next      (documents the following declaration)
    -- ^ text     prev      (documents the preceding declaration)
    -- $name      named     (named chunk)
    -- * text     group     (section heading)

Line comment text runs to the end of the physical line, so a trailing
``\\r`` from DOS line endings is kept.
"""

import bisect
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from tree_sitter import Node

from frontend.errors import SourceError
from frontend.syntax import SrcSpan

logger = logging.getLogger(__name__)

COMMENT_NODES = frozenset({"comment", "haddock"})
PRAGMA_NODE = "pragma"
EXTRA_NODES = COMMENT_NODES | {PRAGMA_NODE, "cpp"}

DOC_NEXT = "next"
DOC_PREV = "prev"
DOC_NAMED = "named"
DOC_GROUP = "group"
PLAIN = "plain"

_NAMED_RE = re.compile(r"\$([A-Za-z_][\w']*)")
_LANGUAGE_RE = re.compile(r"\{-#\s*LANGUAGE\s+(.*?)\s*#-\}", re.DOTALL)


class SourceText:
    """UTF-8 source bytes with the line table used to report positions.

    Tree-sitter reports byte offsets; spans and errors use 1-indexed lines
    and character columns.
    """

    def __init__(self, text: str, file_path: str):
        self.file_path = file_path
        self.data = text.encode("utf-8")
        self.lines = self.data.split(b"\n")
        self.line_starts = [0]
        for line in self.lines[:-1]:
            self.line_starts.append(self.line_starts[-1] + len(line) + 1)

    def point(self, offset: int) -> Tuple[int, int]:
        """Map a byte offset to a 0-based (row, byte column) pair."""
        row = max(bisect.bisect_right(self.line_starts, offset) - 1, 0)
        return row, offset - self.line_starts[row]

    def column(self, row: int, byte_col: int) -> int:
        """1-based character column of a byte column on ``row``."""
        if row >= len(self.lines):
            return byte_col + 1
        return len(self.lines[row][:byte_col].decode("utf-8", errors="replace")) + 1

    def slice(self, start: int, end: int) -> str:
        return self.data[start:end].decode("utf-8", errors="replace")

    def text(self, node: Node) -> str:
        return self.slice(node.start_byte, node.end_byte)

    def span(self, start: int, end: int) -> SrcSpan:
        start_row, start_col = self.point(start)
        end_row, end_col = self.point(max(end, start))
        return SrcSpan(
            file=self.file_path,
            start_line=start_row + 1,
            start_col=self.column(start_row, start_col),
            end_line=end_row + 1,
            end_col=self.column(end_row, end_col),
        )

    def node_span(self, node: Node) -> SrcSpan:
        return self.span(node.start_byte, node.end_byte)

    def error(self, message: str, offset: int) -> SourceError:
        row, byte_col = self.point(offset)
        return SourceError(message, self.file_path, row + 1, self.column(row, byte_col))


@dataclass
class Comment:
    """A comment with its classification and position.

    ``start`` is the byte offset of the comment and ``byte_col`` its 0-based
    byte column, which is what layout comparisons against tree-sitter nodes
    use. ``line``/``col`` are 1-indexed with character columns.
    """

    start: int
    byte_col: int
    line: int
    col: int
    end_line: int
    end_col: int
    kind: str
    text: str
    name: Optional[str] = None
    level: int = 0
    own_line: bool = False
    block: bool = False

    @property
    def is_doc(self) -> bool:
        return self.kind != PLAIN

    def span(self, file_path: str) -> SrcSpan:
        return SrcSpan(
            file=file_path,
            start_line=self.line,
            start_col=self.col,
            end_line=self.end_line,
            end_col=self.end_col,
        )


def _classify(body: str) -> Tuple[str, str, Optional[str], int]:
    """Classify comment body (text after ``--`` or ``{-``) by its doc marker.

    Returns:
        Tuple of (kind, text, name, level).
    """
    stripped = body.lstrip(" \t")
    if stripped.startswith("|"):
        return DOC_NEXT, stripped[1:], None, 0
    if stripped.startswith("^"):
        return DOC_PREV, stripped[1:], None, 0
    if stripped.startswith("$"):
        match = _NAMED_RE.match(stripped)
        if match:
            return DOC_NAMED, stripped[match.end():], match.group(1), 0
    if stripped.startswith("*"):
        level = len(stripped) - len(stripped.lstrip("*"))
        return DOC_GROUP, stripped[level:], None, level
    return PLAIN, body, None, 0


def _language_extensions(pragma: str) -> List[str]:
    match = _LANGUAGE_RE.match(pragma.strip())
    if not match:
        return []
    return [ext.strip() for ext in match.group(1).split(",") if ext.strip()]


def _block_comment(node: Node, source: SourceText) -> Comment:
    text = source.text(node)
    row, byte_col = node.start_point
    if len(text) < 4 or not text.endswith("-}"):
        raise source.error("unterminated block comment", node.start_byte)
    kind, doc, name, level = _classify(text[2:-2])
    end_row, end_col = node.end_point
    return Comment(
        start=node.start_byte,
        byte_col=byte_col,
        line=row + 1,
        col=source.column(row, byte_col),
        end_line=end_row + 1,
        end_col=source.column(end_row, end_col),
        kind=kind,
        text=doc,
        name=name,
        level=level,
        own_line=not source.lines[row][:byte_col].strip(),
        block=True,
    )


def _line_comments(node: Node, source: SourceText) -> List[Comment]:
    """Split a comment node into one Comment per ``--`` line it covers."""
    first_row, first_col = node.start_point
    last_row, last_col = node.end_point
    if last_col == 0 and last_row > first_row:
        last_row -= 1

    comments = []
    for row in range(first_row, last_row + 1):
        raw = source.lines[row]
        if row == first_row:
            byte_col = first_col
        else:
            byte_col = len(raw) - len(raw.lstrip(b" \t"))
        if not raw.startswith(b"--", byte_col):
            continue
        line = raw[byte_col:].decode("utf-8", errors="replace")
        kind, doc, name, level = _classify(line.lstrip("-"))
        comments.append(
            Comment(
                start=source.line_starts[row] + byte_col,
                byte_col=byte_col,
                line=row + 1,
                col=source.column(row, byte_col),
                end_line=row + 1,
                end_col=source.column(row, len(raw.rstrip(b"\r"))),
                kind=kind,
                text=doc,
                name=name,
                level=level,
                own_line=not raw[:byte_col].strip(),
            )
        )
    return comments


def collect_comments(root: Node, source: SourceText) -> Tuple[List[Comment], Tuple[str, ...]]:
    """Collect every comment below ``root`` and the LANGUAGE pragmas.

    Args:
        root: Root node of the parsed tree.
        source: The text the tree was parsed from.

    Returns:
        Tuple of (comments in source order, extensions in source order).

    Raises:
        SourceError: If a block comment is not terminated.
    """
    comments: List[Comment] = []
    extensions: List[str] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in COMMENT_NODES:
            if source.text(node).startswith("{-"):
                comments.append(_block_comment(node, source))
            else:
                comments.extend(_line_comments(node, source))
        elif node.type == PRAGMA_NODE:
            extensions.extend(_language_extensions(source.text(node)))
        else:
            stack.extend(reversed(node.children))

    comments.sort(key=lambda comment: comment.start)
    merged = _merge_continuations(comments)
    logger.debug(f"Collected {len(merged)} comments from {source.file_path}")
    return merged, tuple(extensions)


def _merge_continuations(comments: List[Comment]) -> List[Comment]:
    """Fold plain ``--`` lines into the doc line comment they continue.

    A doc line comment (other than a section heading) continues over
    immediately following lines that hold nothing but an unmarked line
    comment.
    """
    merged: List[Comment] = []
    for comment in comments:
        head = merged[-1] if merged else None
        if (
            head is not None
            and not head.block
            and head.kind not in (PLAIN, DOC_GROUP)
            and not comment.block
            and comment.kind == PLAIN
            and comment.own_line
            and comment.line == head.end_line + 1
        ):
            head.text = head.text + "\n" + comment.text
            head.end_line = comment.end_line
            head.end_col = comment.end_col
            continue
        merged.append(comment)
    return merged
