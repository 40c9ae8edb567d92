"""
Tree-sitter based parser for Haskell modules.

The concrete syntax tree produced by ``tree_sitter_haskell`` is converted
into the syntax tree defined in ``frontend.syntax``. Only the structure
needed for documentation extraction is kept (header, export list, imports,
declarations and the doc comments attached to them); expressions and most
types are kept as raw source text.

Comments are extras in the grammar, so doc comments are attached by their
position relative to the declarations rather than by their place in the
tree.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

import tree_sitter_haskell as tshs
from tree_sitter import Language, Node, Parser, Tree

from frontend.comments import (
    DOC_GROUP,
    DOC_NAMED,
    DOC_NEXT,
    DOC_PREV,
    EXTRA_NODES,
    Comment,
    SourceText,
    collect_comments,
)
from frontend.syntax import (
    ClassDecl,
    ClsInstDecl,
    Coercion,
    ConDecl,
    ConDeclField,
    DataDecl,
    DerivD,
    DocCommentNamed,
    DocCommentNext,
    DocCommentPrev,
    DocD,
    DocGroup,
    FixSig,
    ForD,
    FunBind,
    GadtCon,
    HsDecl,
    HsDocString,
    HsDocTy,
    HsExpr,
    HsFunTy,
    HsModule,
    HsTyVarBndr,
    HsType,
    HsWithBndrs,
    IE,
    IEDoc,
    IEDocNamed,
    IEGroup,
    IEModuleContents,
    IEThingAbs,
    IEThingAll,
    IEThingWith,
    IEVar,
    ImportDecl,
    InstD,
    LHsType,
    Located,
    Match,
    PrefixCon,
    RecCon,
    SigD,
    SpliceD,
    SrcSpan,
    SynDecl,
    TyClD,
    TypeSig,
    ValD,
)

logger = logging.getLogger(__name__)

# Module-level language constant
HASKELL_LANGUAGE = Language(tshs.language())

DEFAULT_MODULE_NAME = "Main"

_TYVAR_RE = re.compile(r"(?<![\w'.])[a-z_][\w']*")
_CLASS_NAME_RE = re.compile(r"[A-Z][\w'.]*")
_FIXITY_RE = re.compile(r"(infixl|infixr|infix)\s+(\d+)?\s*(.*)", re.DOTALL)

_ARROWS = frozenset({"->", "→"})
_TYPE_WRAPPERS = frozenset({"forall", "forall_required", "quantified_type", "context"})
_CON_NAMES = frozenset({"constructor", "constructor_operator"})
_CON_PREFIXES = frozenset({"context", "forall", "quantified_variables"})

Converter = Callable[[Node, List[Comment], int], List]


@dataclass(frozen=True)
class ModuleHeader:
    """What dependency analysis needs to know about a module."""

    name: str
    name_span: Optional[SrcSpan]
    imports: Tuple[Located[ImportDecl], ...]
    extensions: Tuple[str, ...]


def create_parser() -> Parser:
    """Create a tree-sitter parser for Haskell.

    Example:
        >>> parser = create_parser()
        >>> parser.parse(b"module A where").root_node.type
        'haskell'
    """
    parser = Parser(HASKELL_LANGUAGE)
    logger.debug("Created tree-sitter Haskell parser")
    return parser


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def _named(node: Node) -> List[Node]:
    """Named children of ``node`` without comments and pragmas."""
    return [child for child in node.named_children if child.type not in EXTRA_NODES]


def _child_of_type(node: Node, *types: str) -> Optional[Node]:
    return next((child for child in node.children if child.type in types), None)


def _find_first(node: Node, types: frozenset) -> Optional[Node]:
    """First node of one of ``types`` below ``node``, in source order."""
    stack = list(reversed(node.named_children))
    while stack:
        current = stack.pop()
        if current.type in types:
            return current
        stack.extend(reversed(current.named_children))
    return None


def _first_error(root: Node) -> Node:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        stack.extend(reversed([child for child in node.children if child.has_error or child.is_missing]))
    return root


def _same(a: Node, b: Node) -> bool:
    return (a.start_byte, a.end_byte, a.type) == (b.start_byte, b.end_byte, b.type)


def _squash(source: str) -> str:
    return " ".join(source.split())


def _strip_parens(name: str) -> str:
    name = name.strip()
    if name.startswith("(") and name.endswith(")"):
        return name[1:-1].strip()
    return name


def _operator_name(name: str) -> str:
    return _strip_parens(name).strip("`").strip()


def _strip_context(node: Node) -> Node:
    """Descend through ``forall`` and ``=>`` wrappers to the underlying type."""
    while node.type in _TYPE_WRAPPERS:
        inner = node.child_by_field_name("type")
        if inner is None:
            named = _named(node)
            if not named:
                break
            inner = named[-1]
        node = inner
    return node


def _arrow_split(node: Node) -> Optional[Tuple[Node, Node]]:
    """Return (argument, result) when ``node`` is a function type."""
    param = node.child_by_field_name("parameter")
    result = node.child_by_field_name("result")
    if param is not None and result is not None:
        return param, result
    arrow = next((c for c in node.children if not c.is_named and c.type in _ARROWS), None)
    if arrow is None:
        return None
    before = [c for c in _named(node) if c.end_byte <= arrow.start_byte]
    after = [c for c in _named(node) if c.start_byte >= arrow.end_byte]
    if not before or not after:
        return None
    return before[-1], after[0]


def _arrow_parts(node: Node) -> List[Node]:
    parts = []
    node = _strip_context(node)
    while True:
        split = _arrow_split(node)
        if split is None:
            parts.append(node)
            return parts
        parts.append(split[0])
        node = split[1]


def _binder(node: Node) -> Optional[Node]:
    """The node naming what a ``bind`` or ``function`` defines."""
    for field in ("name", "operator"):
        found = node.child_by_field_name(field)
        if found is not None:
            return found
    for child in node.children:
        if child.type == "infix":
            found = child.child_by_field_name("operator")
            if found is not None:
                return found
        if child.type == "function_head_parens":
            found = _binder(child)
            if found is not None:
                return found
    return node.child_by_field_name("pattern")


def _rhs_start(node: Node) -> int:
    for child in node.children:
        if child.type in ("match", "guards") or (not child.is_named and child.type in ("=", "|")):
            return child.start_byte
    return node.end_byte


def _body_start(owner: Node, body: Node) -> int:
    """Offset after the last piece of ``owner`` that precedes ``body``."""
    ends = [
        child.end_byte
        for child in owner.children
        if child.type not in EXTRA_NODES and child.end_byte <= body.start_byte
    ]
    return max(ends, default=owner.start_byte)


def _record_range(fields: Node) -> Tuple[int, int]:
    """Byte range of a record's fields including its braces."""
    start, end = fields.start_byte, fields.end_byte
    prev = fields.prev_sibling
    while prev is not None and prev.type in EXTRA_NODES:
        prev = prev.prev_sibling
    if prev is not None and prev.type == "{":
        start = prev.start_byte
    nxt = fields.next_sibling
    while nxt is not None and nxt.type != "}":
        nxt = nxt.next_sibling
    if nxt is not None:
        end = nxt.end_byte
    return start, end


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

@dataclass
class _Con:
    node: Node
    name: Node
    fields: Optional[List[Tuple[Node, Tuple[Located[str], ...], Node]]]
    record: Optional[Tuple[int, int]]


class _Converter:
    """Single-use conversion of one module's syntax tree."""

    def __init__(self, text: str, file_path: str):
        self.file_path = file_path
        self.source = SourceText(text, file_path)
        tree: Tree = create_parser().parse(self.source.data)
        self.root = tree.root_node
        self.comments, self.extensions = collect_comments(self.root, self.source)
        if self.root.has_error:
            node = _first_error(self.root)
            message = f"parse error: missing {node.type}" if node.is_missing else "parse error"
            raise self.source.error(message, node.start_byte)
        self.claimed: Set[int] = set()
        self.header = _child_of_type(self.root, "header")
        imports = _child_of_type(self.root, "imports")
        self.import_nodes = [n for n in _named(imports) if n.type == "import"] if imports else []
        decls = _child_of_type(self.root, "declarations")
        self.decl_nodes = _named(decls) if decls else []
        self.handlers: Dict[str, Converter] = {
            "signature": self._signature,
            "bind": self._binding,
            "function": self._binding,
            "data_type": self._data,
            "newtype": self._data,
            "type_synonym": self._synonym,
            "type_family": self._synonym,
            "class": self._class,
            "instance": self._instance,
            "deriving_instance": self._deriving,
            "fixity": self._fixity,
            "foreign_import": self._foreign,
            "foreign_export": self._foreign,
            "top_splice": self._splice,
        }

    # -- module structure ---------------------------------------------------

    def parse(self) -> HsModule:
        header_doc = self._header_doc()
        name = self._module_name()
        exports = self._exports()
        imports = self._imports()
        decls = self._top_level()
        logger.debug(
            f"Parsed {self.file_path}: {len(imports)} imports, {len(decls)} declarations"
        )
        return HsModule(
            name=name,
            exports=exports,
            imports=imports,
            decls=tuple(decls),
            haddock_header=header_doc,
            extensions=self.extensions,
        )

    def parse_header(self) -> ModuleHeader:
        name = self._module_name()
        return ModuleHeader(
            name=name.value if name else DEFAULT_MODULE_NAME,
            name_span=name.span if name else None,
            imports=self._imports(),
            extensions=self.extensions,
        )

    def _module_name(self) -> Optional[Located[str]]:
        if self.header is None:
            return None
        node = self.header.child_by_field_name("module") or _child_of_type(self.header, "module")
        if node is None:
            raise self.source.error("malformed module header", self.header.start_byte)
        return Located(self.source.node_span(node), "".join(self.source.text(node).split()))

    def _header_doc(self) -> Optional[HsDocString]:
        if self.header is None:
            return None
        start = next(
            (c.start_byte for c in self.header.children if c.type not in EXTRA_NODES),
            self.header.start_byte,
        )
        docs = [c for c in self.comments if c.kind == DOC_NEXT and c.start < start]
        return self._doc_string(docs[-1]) if docs else None

    def _exports(self) -> Optional[Tuple[Located[IE], ...]]:
        if self.header is None:
            return None
        node = self.header.child_by_field_name("exports") or _child_of_type(self.header, "exports")
        if node is None:
            return None
        entries: List[Tuple[int, int, Located[IE]]] = []
        for item in _named(node):
            entry = _parse_export_item(_squash(self.source.text(item)))
            entries.append((item.start_byte, 1, Located(self.source.node_span(item), entry)))
        for comment in self._docs_between(node.start_byte, node.end_byte):
            self.claimed.add(comment.start)
            if comment.kind == DOC_NAMED:
                ie: IE = IEDocNamed(comment.name)
            elif comment.kind == DOC_GROUP:
                ie = IEGroup(comment.level, comment.text)
            else:
                ie = IEDoc(comment.text)
            entries.append((comment.start, 0, Located(comment.span(self.file_path), ie)))
        entries.sort(key=lambda entry: (entry[0], entry[1]))
        return tuple(entry[2] for entry in entries)

    def _imports(self) -> Tuple[Located[ImportDecl], ...]:
        return tuple(self._import(node) for node in self.import_nodes)

    def _import(self, node: Node) -> Located[ImportDecl]:
        module = node.child_by_field_name("module") or _child_of_type(node, "module")
        if module is None:
            raise self.source.error("malformed import declaration", node.start_byte)
        alias = node.child_by_field_name("alias")
        names = node.child_by_field_name("names") or _child_of_type(node, "import_list")
        keywords = {c.type for c in node.children if not c.is_named}
        items = None
        if names is not None:
            keywords |= {c.type for c in names.children if not c.is_named}
            items = tuple(_squash(self.source.text(n)) for n in _named(names))
        decl = ImportDecl(
            module=Located(self.source.node_span(module), "".join(self.source.text(module).split())),
            qualified="qualified" in keywords,
            as_name="".join(self.source.text(alias).split()) if alias is not None else None,
            hiding="hiding" in keywords,
            items=items,
        )
        return Located(self.source.node_span(node), decl)

    def _top_level(self) -> List[HsDecl]:
        body_start = self.header.end_byte if self.header is not None else 0
        end_rows = [node.end_point[0] + 1 for node in self.import_nodes]
        pool = []
        for comment in self._docs_between(body_start, len(self.source.data) + 1):
            # comments trailing or inside an import belong to no declaration
            if any(
                node.start_byte <= comment.start < node.end_byte
                or (not comment.own_line and comment.line == row)
                for node, row in zip(self.import_nodes, end_rows)
            ):
                self.claimed.add(comment.start)
                continue
            pool.append(comment)
        decls = self._block(self.decl_nodes, pool, len(self.source.data) + 1, self._decl)
        return _merge_equations(decls)

    # -- doc comment bookkeeping ----------------------------------------------

    def _docs_between(self, start: int, end: int) -> List[Comment]:
        return [
            c
            for c in self.comments
            if c.is_doc and start <= c.start < end and c.start not in self.claimed
        ]

    def _unclaimed(self, comments: Sequence[Comment], *kinds: str) -> List[Comment]:
        return [c for c in comments if c.start not in self.claimed and (not kinds or c.kind in kinds)]

    def _block(self, items: Sequence[Node], pool: List[Comment], end: int, convert: Converter) -> List:
        """Convert ``items`` and turn the doc comments they leave into DocD.

        A doc comment in ``pool`` belongs to the item whose region (up to the
        next item) it starts in, unless it sits on its own line at or left of
        the item's column; such comments stand alone.
        """
        entries: List[Tuple[int, object]] = []
        for n, item in enumerate(items):
            region_end = items[n + 1].start_byte if n + 1 < len(items) else end
            column = item.start_point[1]
            owned = [
                c
                for c in self._unclaimed(pool)
                if item.start_byte <= c.start < region_end
                and not (c.own_line and c.byte_col <= column)
            ]
            entries.extend((item.start_byte, value) for value in convert(item, owned, region_end))
            for comment in self._unclaimed(owned):
                self.claimed.add(comment.start)
                entries.append((comment.start, self._doc_decl(comment)))
        for comment in self._unclaimed(pool):
            self.claimed.add(comment.start)
            entries.append((comment.start, self._doc_decl(comment)))
        entries.sort(key=lambda entry: entry[0])
        return [value for _, value in entries]

    def _doc_decl(self, comment: Comment) -> DocD:
        if comment.kind == DOC_NAMED:
            doc = DocCommentNamed(comment.name, comment.text)
        elif comment.kind == DOC_PREV:
            doc = DocCommentPrev(comment.text)
        elif comment.kind == DOC_GROUP:
            doc = DocGroup(comment.level, comment.text)
        else:
            doc = DocCommentNext(comment.text)
        return DocD(span=comment.span(self.file_path), doc=doc)

    def _doc_string(self, comment: Comment) -> HsDocString:
        self.claimed.add(comment.start)
        return HsDocString(span=comment.span(self.file_path), text=comment.text)

    # -- declarations -------------------------------------------------------

    def _decl(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        while node.type not in self.handlers and len(_named(node)) == 1:
            node = _named(node)[0]
        handler = self.handlers.get(node.type)
        if handler is None:
            logger.debug(f"Skipping {node.type} at {self.source.node_span(node)}")
            return []
        return handler(node, owned, end)

    def _body(self, owner: Node, body: Optional[Node], owned: List[Comment], end: int) -> List[HsDecl]:
        """Convert the declarations following ``where`` in a class or instance."""
        if body is None:
            return []
        start = _body_start(owner, body)
        pool = [c for c in owned if c.start >= start]
        return _merge_equations(self._block(_named(body), pool, end, self._decl))

    def _located_name(self, node: Node) -> Located[str]:
        return Located(self.source.node_span(node), _operator_name(self.source.text(node)))

    def _decl_name(self, node: Node) -> Located[str]:
        found = (
            node.child_by_field_name("name")
            or _child_of_type(node, "name")
            or _find_first(node, frozenset({"name"}))
        )
        if found is None:
            raise self.source.error(f"malformed {node.type} declaration", node.start_byte)
        return self._located_name(found)

    def _tyvars(self, node: Node) -> Tuple[HsTyVarBndr, ...]:
        params = node.child_by_field_name("patterns") or _child_of_type(node, "type_params")
        if params is None:
            return ()
        return tuple(HsTyVarBndr(name=tv) for tv in _TYVAR_RE.findall(self.source.text(params)))

    def _plain_type(self, node: Node) -> HsType:
        return HsType(span=self.source.node_span(node), source=_squash(self.source.text(node)))

    def _signature(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        names = list(node.children_by_field_name("name"))
        group = node.child_by_field_name("names")
        if group is not None:
            names.extend(_named(group))
        sig_type = node.child_by_field_name("type")
        if not names or sig_type is None:
            raise self.source.error("malformed type signature", node.start_byte)
        sig = TypeSig(
            names=tuple(self._located_name(n) for n in names),
            type=self._fun_type(sig_type, owned),
        )
        return [SigD(span=self.source.node_span(node), sig=sig)]

    def _fun_type(self, node: Node, owned: List[Comment]) -> LHsType:
        """Convert a function type, attaching ``-- ^``/``-- |`` docs to its parts."""
        parts = _arrow_parts(node)
        attached: Dict[int, Comment] = {}
        for comment in self._unclaimed(owned, DOC_NEXT, DOC_PREV):
            if comment.kind == DOC_PREV:
                hits = [i for i, part in enumerate(parts) if part.end_byte <= comment.start]
                target = hits[-1] if hits else None
            else:
                hits = [i for i, part in enumerate(parts) if part.start_byte >= comment.start]
                target = hits[0] if hits and comment.start >= node.start_byte else None
            if target is None or target in attached:
                continue
            attached[target] = comment

        converted: List[LHsType] = []
        for i, part in enumerate(parts):
            ty: LHsType = self._plain_type(part)
            if i in attached:
                ty = HsDocTy(type=ty, doc=self._doc_string(attached[i]))
            converted.append(ty)

        result = converted[-1]
        for part in reversed(converted[:-1]):
            result = HsFunTy(arg=part, result=result)
        return result

    def _binding(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        rhs_start = _rhs_start(node)
        lhs = _squash(self.source.slice(node.start_byte, rhs_start))
        if not lhs:
            raise self.source.error("missing left-hand side in binding", node.start_byte)
        target = _binder(node)
        if target is not None:
            name = self._located_name(target)
        else:
            name = Located(self.source.span(node.start_byte, rhs_start), lhs)

        body = rhs_start
        if self.source.data[body:body + 1] == b"=":
            body += 1
        while body < node.end_byte and self.source.data[body:body + 1].isspace():
            body += 1
        match = Match(
            span=self.source.node_span(node),
            lhs=lhs,
            rhs=HsExpr(
                span=self.source.span(body, node.end_byte),
                source=_squash(self.source.slice(body, node.end_byte)),
            ),
        )
        bind = FunBind(name=name, matches=(match,))
        return [ValD(span=self.source.node_span(node), bind=bind)]

    def _data(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        is_newtype = node.type == "newtype"
        deriving = tuple(
            name
            for clause in node.children
            if clause.type == "deriving"
            for name in _deriving_names(self.source.text(clause))
        )
        gadt = _child_of_type(node, "gadt_constructors")
        plain = _child_of_type(node, "data_constructors")
        single = _child_of_type(node, "newtype_constructor")
        if gadt is not None:
            start = _body_start(node, gadt)
            pool = [c for c in owned if c.start >= start]
            cons = tuple(self._block(_named(gadt), pool, end, self._gadt_con))
        elif plain is not None:
            cons = self._constructors([c for c in _named(plain)], owned)
        elif single is not None:
            cons = self._constructors([single], owned)
        else:
            cons = ()

        decl = DataDecl(
            name=self._decl_name(node),
            tyvars=self._tyvars(node),
            cons=cons,
            deriving=deriving,
            is_newtype=is_newtype,
            co=Coercion() if is_newtype else None,
        )
        return [TyClD(span=self.source.node_span(node), decl=decl)]

    def _constructors(self, nodes: Sequence[Node], owned: List[Comment]) -> Tuple[ConDecl, ...]:
        parsed: List[_Con] = []
        for node in nodes:
            name = _find_first(node, _CON_NAMES)
            if name is None:
                raise self.source.error("malformed data constructor", node.start_byte)
            if name.parent is not None and name.parent.type == "prefix_id":
                name = name.parent
            fields_node = _child_of_type(name.parent, "fields") if name.parent is not None else None
            if fields_node is None:
                fields_node = _find_first(node, frozenset({"fields"}))
            if fields_node is not None:
                parsed.append(_Con(node, name, self._record_fields(fields_node), _record_range(fields_node)))
            else:
                parsed.append(_Con(node, name, None, None))

        con_docs: Dict[int, Comment] = {}
        field_docs: Dict[Tuple[int, int], Comment] = {}
        for comment in self._unclaimed(owned, DOC_NEXT, DOC_PREV):
            owner = next(
                (
                    i
                    for i, con in enumerate(parsed)
                    if con.record and con.record[0] <= comment.start < con.record[1]
                ),
                None,
            )
            if owner is not None:
                starts = [field.start_byte for field, _, _ in parsed[owner].fields]
                target = _doc_target(comment, starts)
                if target is None or (owner, target) in field_docs:
                    continue
                field_docs[(owner, target)] = comment
            else:
                target = _doc_target(comment, [con.name.start_byte for con in parsed])
                if target is None or target in con_docs:
                    continue
                con_docs[target] = comment

        cons = []
        for i, con in enumerate(parsed):
            if con.fields is not None:
                fields = []
                for j, (_, names, type_node) in enumerate(con.fields):
                    doc = field_docs.get((i, j))
                    fields.append(
                        ConDeclField(
                            names=names,
                            type=self._plain_type(type_node),
                            doc=self._doc_string(doc) if doc else None,
                        )
                    )
                details = RecCon(fields=tuple(fields))
            else:
                holder = con.name.parent if con.name.parent is not None else con.node
                siblings = [c for c in _named(holder) if c.type not in _CON_PREFIXES]
                index = next((k for k, c in enumerate(siblings) if _same(c, con.name)), -1)
                before, after = (siblings[:index], siblings[index + 1:]) if index >= 0 else ([], [])
                args = before + after if before else after
                details = PrefixCon(args=tuple(self._plain_type(arg) for arg in args))
            doc = con_docs.get(i)
            cons.append(
                ConDecl(
                    span=self.source.node_span(con.node),
                    name=self._located_name(con.name),
                    doc=self._doc_string(doc) if doc else None,
                    details=details,
                )
            )
        return tuple(cons)

    def _record_fields(self, node: Node) -> List[Tuple[Node, Tuple[Located[str], ...], Node]]:
        fields = []
        for field in _named(node):
            if field.type != "field":
                continue
            names = tuple(self._located_name(n) for n in field.children if n.type == "field_name")
            type_node = field.child_by_field_name("type")
            if type_node is None:
                rest = [n for n in _named(field) if n.type != "field_name"]
                type_node = rest[-1] if rest else None
            if not names or type_node is None:
                raise self.source.error("malformed record field", field.start_byte)
            fields.append((field, names, type_node))
        return fields

    def _gadt_con(self, node: Node, owned: List[Comment], end: int) -> List[ConDecl]:
        names = list(node.children_by_field_name("name"))
        group = node.child_by_field_name("names")
        if group is not None:
            names.extend(_named(group))
        if not names:
            names = [c for c in _named(node) if c.type in _CON_NAMES or c.type == "prefix_id"]
        con_type = node.child_by_field_name("type")
        if con_type is None:
            rest = [c for c in _named(node) if not any(_same(c, n) for n in names)]
            con_type = rest[-1] if rest else None
        if not names or con_type is None:
            raise self.source.error("malformed GADT constructor", node.start_byte)
        details = GadtCon(self._fun_type(con_type, owned))
        return [
            ConDecl(
                span=self.source.node_span(node),
                name=self._located_name(name),
                doc=None,
                details=details,
            )
            for name in names
        ]

    def _synonym(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        rhs = node.child_by_field_name("type") if node.type == "type_synonym" else None
        decl = SynDecl(
            name=self._decl_name(node),
            tyvars=self._tyvars(node),
            rhs=self._plain_type(rhs) if rhs is not None else None,
        )
        return [TyClD(span=self.source.node_span(node), decl=decl)]

    def _class(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        body = _child_of_type(node, "class_declarations")
        decl = ClassDecl(
            name=self._decl_name(node),
            tyvars=self._tyvars(node),
            body=tuple(self._body(node, body, owned, end)),
        )
        return [TyClD(span=self.source.node_span(node), decl=decl)]

    def _head_type(self, node: Node, skip: frozenset) -> HsType:
        """The instance head: everything named between the keywords and the body."""
        parts = [c for c in _named(node) if c.type not in skip]
        if not parts:
            raise self.source.error(f"malformed {node.type} declaration", node.start_byte)
        start, stop = parts[0].start_byte, parts[-1].end_byte
        return HsType(span=self.source.span(start, stop), source=_squash(self.source.slice(start, stop)))

    def _instance(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        body = _child_of_type(node, "instance_declarations")
        head = self._head_type(node, frozenset({"instance_declarations"}))
        inst = ClsInstDecl(
            head=HsWithBndrs(body=head),
            binds=tuple(self._body(node, body, owned, end)),
        )
        return [InstD(span=self.source.node_span(node), inst=inst)]

    def _deriving(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        head = self._head_type(node, frozenset({"deriving_strategy", "via"}))
        return [DerivD(span=self.source.node_span(node), type=HsWithBndrs(body=head))]

    def _fixity(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        match = _FIXITY_RE.match(_squash(self.source.text(node)))
        names = tuple(
            _operator_name(n) for n in match.group(3).split(",") if n.strip()
        ) if match else ()
        if not names:
            raise self.source.error("malformed fixity declaration", node.start_byte)
        precedence = int(match.group(2)) if match.group(2) else 9
        sig = FixSig(names=names, direction=match.group(1), precedence=precedence)
        return [SigD(span=self.source.node_span(node), sig=sig)]

    def _foreign(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        sig = node.child_by_field_name("signature") or _child_of_type(node, "signature") or node
        name = sig.child_by_field_name("name")
        sig_type = sig.child_by_field_name("type")
        if name is None or sig_type is None:
            raise self.source.error("foreign declaration is missing a type", node.start_byte)
        return [
            ForD(
                span=self.source.node_span(node),
                name=self._located_name(name),
                type=self._fun_type(sig_type, owned),
            )
        ]

    def _splice(self, node: Node, owned: List[Comment], end: int) -> List[HsDecl]:
        span = self.source.node_span(node)
        return [SpliceD(span=span, expr=HsExpr(span=span, source=_squash(self.source.text(node))))]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _doc_target(comment: Comment, starts: Sequence[int]) -> Optional[int]:
    """Index a ``-- ^`` doc follows or a ``-- |`` doc precedes, if any."""
    if comment.kind == DOC_PREV:
        hits = [i for i, start in enumerate(starts) if start <= comment.start]
        return hits[-1] if hits else None
    hits = [i for i, start in enumerate(starts) if start >= comment.start]
    return hits[0] if hits else None


def _parse_export_item(entry: str) -> IE:
    if entry.startswith("module "):
        return IEModuleContents(entry[len("module "):].strip())
    for prefix in ("type ", "pattern "):
        if entry.startswith(prefix):
            entry = entry[len(prefix):].strip()
    if entry.startswith("("):
        return IEVar(_strip_parens(entry))
    paren = entry.find("(")
    if paren != -1:
        name = entry[:paren].strip()
        inner = entry[paren + 1:entry.rfind(")")].strip()
        if inner == "..":
            return IEThingAll(name)
        return IEThingWith(name, tuple(m.strip() for m in inner.split(",") if m.strip()))
    if entry[:1].isupper():
        return IEThingAbs(entry)
    return IEVar(entry)


def _deriving_names(clause: str) -> Tuple[str, ...]:
    return tuple(_CLASS_NAME_RE.findall(clause))


def _merge_equations(decls: List) -> List:
    """Merge consecutive equations of the same function into one binding."""
    merged: List = []
    for decl in decls:
        previous = merged[-1] if merged else None
        if (
            isinstance(decl, ValD)
            and isinstance(previous, ValD)
            and previous.bind.name.value == decl.bind.name.value
        ):
            merged[-1] = _merge_binds(previous, decl)
        else:
            merged.append(decl)
    return merged


def _merge_binds(first: ValD, second: ValD) -> ValD:
    span = SrcSpan(
        file=first.span.file,
        start_line=first.span.start_line,
        start_col=first.span.start_col,
        end_line=second.span.end_line,
        end_col=second.span.end_col,
    )
    bind = FunBind(
        name=first.bind.name,
        matches=first.bind.matches + second.bind.matches,
        fvs=first.bind.fvs,
    )
    return ValD(span=span, bind=bind)


def parse_source(text: str, file_path: str) -> HsModule:
    """Parse a complete module.

    Args:
        text: Source text.
        file_path: Path recorded in spans and error messages.

    Returns:
        The parsed HsModule.

    Raises:
        SourceError: If the tree has syntax errors or a block comment is
            not terminated.

    Example:
        >>> mod = parse_source("module A where\\n-- | doc\\nfoo = 1\\n", "A.hs")
        >>> mod.name.value
        'A'
    """
    return _Converter(text, file_path).parse()


def parse_module_header(text: str, file_path: str) -> ModuleHeader:
    """Parse only the module name, imports and LANGUAGE pragmas."""
    return _Converter(text, file_path).parse_header()
