"""
Syntax tree produced by the frontend parser.

Every node is a frozen dataclass. Field order follows source order, so a
generic left-to-right traversal of the fields visits sub-trees in the
order they appear in the file.

Nodes whose payload is only known after renaming or typechecking
(``NameSet``, ``PostTcKind``, ``HsExpr.ty``, ``Coercion``,
``HsWithBndrs``) carry ``None`` in a freshly parsed tree.
"""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, Tuple, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class SrcSpan:
    """Source region; lines and columns are 1-indexed, end column exclusive."""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"


@dataclass(frozen=True)
class Located(Generic[T]):
    """A value together with the span it was parsed from."""

    span: SrcSpan
    value: T


# ---------------------------------------------------------------------------
# Documentation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HsDocString:
    """A documentation comment attached to a sub-declaration."""

    span: SrcSpan
    text: str


@dataclass(frozen=True)
class DocCommentNext:
    """``-- |`` documentation for the following declaration."""

    text: str


@dataclass(frozen=True)
class DocCommentPrev:
    """``-- ^`` documentation for the preceding declaration."""

    text: str


@dataclass(frozen=True)
class DocCommentNamed:
    """``-- $name`` named documentation chunk."""

    name: str
    text: str


@dataclass(frozen=True)
class DocGroup:
    """``-- *`` section heading."""

    level: int
    text: str


DocDecl = Union[DocCommentNext, DocCommentPrev, DocCommentNamed, DocGroup]


# ---------------------------------------------------------------------------
# Renamer / typechecker placeholders
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NameSet:
    """Free-variable cache filled in by the renamer."""

    names: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class PostTcKind:
    """Kind annotation filled in by the typechecker."""

    kind: Optional[str] = None


@dataclass(frozen=True)
class Coercion:
    """Coercion evidence (newtype axiom) produced by the typechecker."""

    axiom: Optional[str] = None


@dataclass(frozen=True)
class HsExpr:
    """An expression, kept as raw source text."""

    span: SrcSpan
    source: str
    ty: Optional[str] = None


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HsType:
    """A type fragment, kept as raw source text."""

    span: SrcSpan
    source: str


@dataclass(frozen=True)
class HsDocTy:
    """A type annotated with an argument/result doc comment."""

    type: "LHsType"
    doc: HsDocString


@dataclass(frozen=True)
class HsFunTy:
    """Function type ``arg -> result``."""

    arg: "LHsType"
    result: "LHsType"


LHsType = Union[HsType, HsDocTy, HsFunTy]


@dataclass(frozen=True)
class HsWithBndrs:
    """A type together with its implicitly bound kind and type variables."""

    body: LHsType
    kvs: Optional[Tuple[str, ...]] = None
    tvs: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class HsTyVarBndr:
    """A type variable binder."""

    name: str
    kind: PostTcKind = field(default_factory=PostTcKind)


# ---------------------------------------------------------------------------
# Module header
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IEVar:
    name: str


@dataclass(frozen=True)
class IEThingAbs:
    name: str


@dataclass(frozen=True)
class IEThingAll:
    name: str


@dataclass(frozen=True)
class IEThingWith:
    name: str
    members: Tuple[str, ...]


@dataclass(frozen=True)
class IEModuleContents:
    module: str


@dataclass(frozen=True)
class IEGroup:
    level: int
    text: str


@dataclass(frozen=True)
class IEDoc:
    text: str


@dataclass(frozen=True)
class IEDocNamed:
    name: str


IE = Union[
    IEVar, IEThingAbs, IEThingAll, IEThingWith, IEModuleContents,
    IEGroup, IEDoc, IEDocNamed,
]


@dataclass(frozen=True)
class ImportDecl:
    module: Located[str]
    qualified: bool = False
    as_name: Optional[str] = None
    hiding: bool = False
    items: Optional[Tuple[str, ...]] = None


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeSig:
    names: Tuple[Located[str], ...]
    type: LHsType


@dataclass(frozen=True)
class FixSig:
    names: Tuple[str, ...]
    direction: str
    precedence: int


Sig = Union[TypeSig, FixSig]


@dataclass(frozen=True)
class Match:
    span: SrcSpan
    lhs: str
    rhs: HsExpr


@dataclass(frozen=True)
class FunBind:
    name: Located[str]
    matches: Tuple[Match, ...]
    fvs: NameSet = field(default_factory=NameSet)


@dataclass(frozen=True)
class ConDeclField:
    names: Tuple[Located[str], ...]
    type: LHsType
    doc: Optional[HsDocString] = None


@dataclass(frozen=True)
class PrefixCon:
    args: Tuple[LHsType, ...]


@dataclass(frozen=True)
class RecCon:
    fields: Tuple[ConDeclField, ...]


@dataclass(frozen=True)
class GadtCon:
    type: LHsType


@dataclass(frozen=True)
class ConDecl:
    span: SrcSpan
    name: Located[str]
    doc: Optional[HsDocString]
    details: Union[PrefixCon, RecCon, GadtCon]


@dataclass(frozen=True)
class DataDecl:
    name: Located[str]
    tyvars: Tuple[HsTyVarBndr, ...]
    cons: Tuple[Union[ConDecl, "DocD"], ...]
    deriving: Tuple[str, ...] = ()
    is_newtype: bool = False
    co: Optional[Coercion] = None


@dataclass(frozen=True)
class SynDecl:
    name: Located[str]
    tyvars: Tuple[HsTyVarBndr, ...]
    rhs: Optional[LHsType]


@dataclass(frozen=True)
class ClassDecl:
    name: Located[str]
    tyvars: Tuple[HsTyVarBndr, ...]
    body: Tuple["HsDecl", ...]


TyClDecl = Union[DataDecl, SynDecl, ClassDecl]


@dataclass(frozen=True)
class ClsInstDecl:
    head: HsWithBndrs
    binds: Tuple["HsDecl", ...]


@dataclass(frozen=True)
class SigD:
    span: SrcSpan
    sig: Sig


@dataclass(frozen=True)
class ValD:
    span: SrcSpan
    bind: FunBind


@dataclass(frozen=True)
class TyClD:
    span: SrcSpan
    decl: TyClDecl


@dataclass(frozen=True)
class InstD:
    span: SrcSpan
    inst: ClsInstDecl


@dataclass(frozen=True)
class DerivD:
    span: SrcSpan
    type: HsWithBndrs


@dataclass(frozen=True)
class ForD:
    span: SrcSpan
    name: Located[str]
    type: LHsType


@dataclass(frozen=True)
class SpliceD:
    span: SrcSpan
    expr: HsExpr


@dataclass(frozen=True)
class DocD:
    """A free-standing documentation declaration."""

    span: SrcSpan
    doc: DocDecl


HsDecl = Union[SigD, ValD, TyClD, InstD, DerivD, ForD, SpliceD, DocD]


@dataclass(frozen=True)
class HsModule:
    """A parsed module.

    Attributes:
        name: Module name as written, ``None`` when the header is omitted.
        exports: Export list entries, ``None`` when there is no export list.
        imports: Import declarations in source order.
        decls: Top-level declarations in source order.
        haddock_header: ``-- |`` comment preceding the ``module`` keyword.
        extensions: LANGUAGE pragmas found in the file.
    """

    name: Optional[Located[str]]
    exports: Optional[Tuple[Located[IE], ...]]
    imports: Tuple[Located[ImportDecl], ...]
    decls: Tuple[HsDecl, ...]
    haddock_header: Optional[HsDocString] = None
    extensions: Tuple[str, ...] = ()


def decl_binders(decl: HsDecl) -> List[str]:
    """Names bound at top level by a declaration."""
    if isinstance(decl, SigD) and isinstance(decl.sig, TypeSig):
        return [n.value for n in decl.sig.names]
    if isinstance(decl, ValD):
        return [decl.bind.name.value]
    if isinstance(decl, ForD):
        return [decl.name.value]
    if isinstance(decl, TyClD):
        inner = decl.decl
        names = [inner.name.value]
        if isinstance(inner, DataDecl):
            for con in inner.cons:
                if isinstance(con, ConDecl):
                    names.append(con.name.value)
                    if isinstance(con.details, RecCon):
                        names.extend(n.value for f in con.details.fields for n in f.names)
        elif isinstance(inner, ClassDecl):
            for member in inner.body:
                names.extend(decl_binders(member))
        return names
    return []
