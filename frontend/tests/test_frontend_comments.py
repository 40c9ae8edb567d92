"""Tests for comment collection over the tree-sitter tree."""

import unittest

from frontend.comments import (
    DOC_GROUP,
    DOC_NAMED,
    DOC_NEXT,
    DOC_PREV,
    PLAIN,
    SourceText,
    collect_comments,
)
from frontend.parser import create_parser


def _collect(text: str):
    source = SourceText(text, "T.hs")
    tree = create_parser().parse(source.data)
    return collect_comments(tree.root_node, source)


class TestCommentClassification(unittest.TestCase):
    """Doc markers decide the comment kind."""

    def _single(self, text: str):
        comments, _ = _collect(text)
        self.assertEqual(len(comments), 1)
        return comments[0]

    def test_next_doc(self):
        comment = self._single("-- | doc for foo\nfoo = 1\n")
        self.assertEqual(comment.kind, DOC_NEXT)
        self.assertEqual(comment.text, " doc for foo")
        self.assertTrue(comment.own_line)

    def test_prev_doc(self):
        comment = self._single("x = 1 -- ^ after\n")
        self.assertEqual(comment.kind, DOC_PREV)
        self.assertEqual(comment.text, " after")
        self.assertFalse(comment.own_line)

    def test_named_chunk(self):
        comment = self._single("-- $setup\nx = 1\n")
        self.assertEqual(comment.kind, DOC_NAMED)
        self.assertEqual(comment.name, "setup")
        self.assertEqual(comment.text, "")

    def test_group_heading_level(self):
        comment = self._single("-- ** Section\nx = 1\n")
        self.assertEqual(comment.kind, DOC_GROUP)
        self.assertEqual(comment.level, 2)
        self.assertEqual(comment.text, " Section")

    def test_plain_comment(self):
        comment = self._single("-- just a note\nx = 1\n")
        self.assertEqual(comment.kind, PLAIN)
        self.assertFalse(comment.is_doc)

    def test_block_doc_comment(self):
        comment = self._single("{- | block doc -}\nx = 1\n")
        self.assertEqual(comment.kind, DOC_NEXT)
        self.assertEqual(comment.text, " block doc ")
        self.assertTrue(comment.block)


class TestPositions(unittest.TestCase):
    """Lines and character columns of collected comments."""

    def test_operator_is_not_comment(self):
        comments, _ = _collect("x --> y = x\n")
        self.assertEqual(comments, [])

    def test_dashes_in_string_are_not_comment(self):
        comments, _ = _collect('s = "-- not a comment"\n')
        self.assertEqual(comments, [])

    def test_comment_column(self):
        comments, _ = _collect("foo = 1 -- ^ doc\n")
        self.assertEqual(comments[0].col, 9)
        self.assertEqual(comments[0].byte_col, 8)
        self.assertEqual(comments[0].end_col, 17)

    def test_columns_count_characters(self):
        comments, _ = _collect('s = "é" -- ^ doc\n')
        self.assertEqual(comments[0].col, 9)
        self.assertEqual(comments[0].byte_col, 9)

    def test_nested_block_comment(self):
        comments, _ = _collect("{- outer {- inner -} still -} x = 1\n")
        self.assertEqual(len(comments), 1)
        self.assertEqual(comments[0].kind, PLAIN)
        self.assertIn("inner", comments[0].text)

    def test_multi_line_block_comment(self):
        comments, _ = _collect("{- |\n  two\n-}\nx = 1\n")
        comment = comments[0]
        self.assertEqual(comment.line, 1)
        self.assertEqual(comment.end_line, 3)
        self.assertEqual(comment.text, "\n  two\n")

    def test_language_pragmas(self):
        text = "{-# LANGUAGE TemplateHaskell, QuasiQuotes #-}\n{-# LANGUAGE CPP #-}\nmodule M where\n"
        comments, extensions = _collect(text)
        self.assertEqual(extensions, ("TemplateHaskell", "QuasiQuotes", "CPP"))
        self.assertEqual(comments, [])

    def test_carriage_return_kept_in_comment_text(self):
        comments, _ = _collect("-- | doc\r\nfoo = 1\r\n")
        self.assertEqual(comments[0].text, " doc\r")
        self.assertEqual(comments[0].end_col, 9)


class TestContinuationLines(unittest.TestCase):
    """Plain comment lines continue the doc comment above them."""

    def test_named_chunk_continues(self):
        comments, _ = _collect("-- $setup\n-- import A\n\nimport A\n")
        self.assertEqual(len(comments), 1)
        self.assertEqual(comments[0].name, "setup")
        self.assertEqual(comments[0].text, "\n import A")
        self.assertEqual(comments[0].end_line, 2)

    def test_continuation_stops_at_code(self):
        comments, _ = _collect("-- | one\nfoo = 1\n-- two\n")
        self.assertEqual([c.text for c in comments], [" one", " two"])

    def test_continuation_stops_at_blank_line(self):
        comments, _ = _collect("-- | one\n\n-- two\nfoo = 1\n")
        self.assertEqual([c.kind for c in comments], [DOC_NEXT, PLAIN])

    def test_continuation_stops_at_next_marker(self):
        comments, _ = _collect("-- | one\n-- | two\nfoo = 1\n")
        self.assertEqual([c.text for c in comments], [" one", " two"])

    def test_group_heading_does_not_continue(self):
        comments, _ = _collect("-- * Section\n-- plain\nfoo = 1\n")
        self.assertEqual([c.kind for c in comments], [DOC_GROUP, PLAIN])

    def test_trailing_doc_continues_on_next_line(self):
        comments, _ = _collect("foo :: Int -- ^ the\n-- answer\nfoo = 42\n")
        self.assertEqual(len(comments), 1)
        self.assertEqual(comments[0].text, " the\n answer")


if __name__ == "__main__":
    unittest.main()
