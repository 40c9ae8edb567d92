"""
Unit tests for traversal.py

Tests the selective walk over syntax trees.
"""

import unittest
from dataclasses import dataclass
from typing import Optional

from extraction.traversal import extract_doc_strings, iter_doc_strings
from frontend.syntax import (
    ClsInstDecl,
    Coercion,
    ConDecl,
    DataDecl,
    DerivD,
    DocCommentNamed,
    DocCommentNext,
    DocD,
    DocGroup,
    FunBind,
    HsDocString,
    HsDocTy,
    HsExpr,
    HsFunTy,
    HsTyVarBndr,
    HsType,
    HsWithBndrs,
    InstD,
    Located,
    Match,
    NameSet,
    PostTcKind,
    PrefixCon,
    SigD,
    SrcSpan,
    TyClD,
    TypeSig,
    ValD,
)


def _span(line: int) -> SrcSpan:
    return SrcSpan("T.hs", line, 1, line, 10)


class ExplodingNameSet(NameSet):
    def __getattribute__(self, name):
        raise AssertionError(f"walker read NameSet.{name}")


class ExplodingExpr(HsExpr):
    def __getattribute__(self, name):
        raise AssertionError(f"walker read HsExpr.{name}")


class ExplodingKind(PostTcKind):
    def __getattribute__(self, name):
        raise AssertionError(f"walker read PostTcKind.{name}")


class ExplodingCoercion(Coercion):
    def __getattribute__(self, name):
        raise AssertionError(f"walker read Coercion.{name}")


class ExplodingBndrs(HsWithBndrs):
    def __getattribute__(self, name):
        raise AssertionError(f"walker read HsWithBndrs.{name}")


@dataclass(frozen=True)
class AnnotatedDocD(DocD):
    extra: Optional[HsDocString] = None


class TestIgnoredNodes(unittest.TestCase):
    """Ignored kinds are never read."""

    def test_placeholders_are_not_touched(self):
        match = Match(_span(2), "f x", ExplodingExpr(_span(2), "undefined"))
        bind = FunBind(Located(_span(2), "f"), (match,), fvs=ExplodingNameSet())
        decls = (DocD(_span(1), DocCommentNext(" doc for f")), ValD(_span(2), bind))

        entries = extract_doc_strings(decls)

        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0][1].value, " doc for f")

    def test_type_level_placeholders_are_not_touched(self):
        con = ConDecl(
            _span(3),
            Located(_span(3), "Age"),
            HsDocString(_span(3), " wraps an int"),
            PrefixCon((HsType(_span(3), "Int"),)),
        )
        data = DataDecl(
            Located(_span(2), "Age"),
            (HsTyVarBndr("a", kind=ExplodingKind()),),
            (con,),
            is_newtype=True,
            co=ExplodingCoercion(),
        )
        inst = ClsInstDecl(
            head=ExplodingBndrs(HsType(_span(5), "Show Age")),
            binds=(DocD(_span(6), DocCommentNext(" render it")),),
        )
        decls = (
            DocD(_span(1), DocCommentNext(" an age")),
            TyClD(_span(2), data),
            InstD(_span(5), inst),
            DerivD(_span(8), ExplodingBndrs(HsType(_span(8), "Eq Age"))),
            DocD(_span(9), DocCommentNext(" after deriving")),
        )

        texts = [located.value for _, located in extract_doc_strings(decls)]

        self.assertEqual(texts, [" an age", " wraps an int", " render it", " after deriving"])

    def test_walking_an_ignored_root_yields_nothing(self):
        self.assertEqual(list(iter_doc_strings(ExplodingNameSet())), [])
        self.assertEqual(list(iter_doc_strings(ExplodingCoercion())), [])


class TestCollectedNodes(unittest.TestCase):
    """Documentation nodes become entries."""

    def test_doc_string(self):
        node = HsDocString(_span(3), " the input")
        ((anchor, located),) = extract_doc_strings(node)
        self.assertIsNone(anchor)
        self.assertEqual(located.span, _span(3))
        self.assertEqual(located.value, " the input")

    def test_named_chunk_keeps_its_name(self):
        node = DocD(_span(4), DocCommentNamed("setup", "\n import A"))
        ((anchor, located),) = extract_doc_strings(node)
        self.assertEqual(anchor, "setup")
        self.assertEqual(located.value, "\n import A")

    def test_group_heading_has_no_anchor(self):
        node = DocD(_span(5), DocGroup(1, " Section"))
        self.assertEqual(extract_doc_strings(node), [(None, Located(_span(5), " Section"))])

    def test_collected_node_is_not_descended(self):
        node = AnnotatedDocD(_span(6), DocCommentNext(" outer"), extra=HsDocString(_span(7), " inner"))
        entries = extract_doc_strings([node])
        self.assertEqual([located.value for _, located in entries], [" outer"])


class TestWalkOrder(unittest.TestCase):
    """Depth-first, left to right."""

    def test_signature_docs_in_order(self):
        sig_type = HsFunTy(
            arg=HsDocTy(HsType(_span(2), "Int"), HsDocString(_span(2), " the input")),
            result=HsDocTy(HsType(_span(3), "Bool"), HsDocString(_span(3), " the result")),
        )
        decls = [
            DocD(_span(1), DocCommentNext(" f")),
            SigD(_span(2), TypeSig((Located(_span(2), "f"),), sig_type)),
        ]
        texts = [located.value for _, located in iter_doc_strings(decls)]
        self.assertEqual(texts, [" f", " the input", " the result"])

    def test_nested_constructor_docs(self):
        cons = (
            ConDecl(_span(2), Located(_span(2), "A"), HsDocString(_span(2), " first"), PrefixCon(())),
            DocD(_span(3), DocCommentNext(" second")),
            ConDecl(_span(4), Located(_span(4), "B"), None, PrefixCon((HsType(_span(4), "Int"),))),
        )
        data = DataDecl(Located(_span(1), "T"), (), cons)
        texts = [located.value for _, located in iter_doc_strings(data)]
        self.assertEqual(texts, [" first", " second"])

    def test_mapping_walks_values_in_insertion_order(self):
        node = {"b": HsDocString(_span(1), " one"), "a": HsDocString(_span(2), " two")}
        texts = [located.value for _, located in iter_doc_strings(node)]
        self.assertEqual(texts, [" one", " two"])


class TestLeavesAndErrors(unittest.TestCase):
    """Scalars are leaves; unknown shapes are rejected."""

    def test_scalars_yield_nothing(self):
        for value in (None, "text", b"bytes", 3, 2.5, True):
            self.assertEqual(list(iter_doc_strings(value)), [], repr(value))

    def test_unordered_container_raises(self):
        with self.assertRaises(TypeError):
            extract_doc_strings((HsDocString(_span(1), " x"), {1, 2}))

    def test_unknown_object_raises(self):
        with self.assertRaises(TypeError):
            extract_doc_strings([object()])


if __name__ == "__main__":
    unittest.main()
