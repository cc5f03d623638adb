"""fmtargs/ast.py – expression shapes handled by the conversion engine.

The engine never evaluates call arguments; it only needs to tell a string
literal from the casts wrapped around it, wrap arguments in coercions, and
rebuild a call.  These nodes are exactly that much of a target-language
expression tree.

Design invariants
-----------------
* Every node is a frozen dataclass (immutable after construction).
* Children are held in tuples, never lists.
* Marks (``target``, ``fmt_str``, …) and source locations ride along on
  each node but take no part in equality, so a rebuilt tree compares equal
  to one written by hand.

Module layout
-------------
§1  Source location & marks
§2  Types
§3  Expressions
§4  Statements, declarations, modules
§5  Traversal helpers
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterator, Optional, Tuple, Union

# ════════════════════════════════════════════════════════════════════════
# §1  Source location & marks
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SourceLoc:
    """Points back to a position in the input file."""

    file: str = "<unknown>"
    line: int = 0
    col: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.col}"


#: Sentinel for synthesised nodes (no source position).
NO_LOC = SourceLoc()

_NO_MARKS: FrozenSet[str] = frozenset()


def _marks() -> FrozenSet[str]:
    return field(default=_NO_MARKS, compare=False, repr=False)


def _loc():
    return field(default=NO_LOC, compare=False, repr=False)


# ════════════════════════════════════════════════════════════════════════
# §2  Types
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PathType:
    """A named type such as ``i32`` or ``libc::c_char``."""

    segments: Tuple[str, ...]
    global_: bool = False

    @classmethod
    def of(cls, *segments: str) -> "PathType":
        return cls(tuple(segments))


@dataclass(frozen=True, slots=True)
class PtrType:
    """A raw pointer type ``*const T`` / ``*mut T``."""

    inner: "Type"
    mutable: bool = False


Type = Union[PathType, PtrType]


# ════════════════════════════════════════════════════════════════════════
# §3  Expressions
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Path:
    """A (possibly qualified) name: ``x``, ``libc::printf``, ``::std::ffi``."""

    segments: Tuple[str, ...]
    global_: bool = False
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()

    @classmethod
    def of(cls, *segments: str, global_: bool = False) -> "Path":
        return cls(tuple(segments), global_)

    @property
    def name(self) -> str:
        return self.segments[-1]


@dataclass(frozen=True, slots=True)
class StrLit:
    value: str
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class ByteStrLit:
    value: bytes
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class IntLit:
    value: int
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class Cast:
    """``expr as ty``"""

    expr: "Expr"
    ty: Type
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class TypeAscription:
    """``expr: ty``"""

    expr: "Expr"
    ty: Type
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class Call:
    func: "Expr"
    args: Tuple["Expr", ...] = ()
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class MethodCall:
    receiver: "Expr"
    method: str
    args: Tuple["Expr", ...] = ()
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class MacroCall:
    """``name!(args...)``"""

    name: str
    args: Tuple["Expr", ...] = ()
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class Block:
    """``{ stmts }`` or ``unsafe { stmts }``; a trailing ``ExprStmt``
    with ``semi=False`` is the block's value."""

    stmts: Tuple["Stmt", ...]
    unsafe: bool = False
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class Opaque:
    """Source text the engine carries through without interpreting."""

    text: str
    marks: FrozenSet[str] = _marks()
    loc: SourceLoc = _loc()


Expr = Union[
    Path, StrLit, ByteStrLit, IntLit, Cast, TypeAscription,
    Call, MethodCall, MacroCall, Block, Opaque,
]


# ════════════════════════════════════════════════════════════════════════
# §4  Statements, declarations, modules
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ExprStmt:
    expr: Expr
    semi: bool = True
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class MacroStmt:
    mac: MacroCall
    loc: SourceLoc = _loc()


Stmt = Union[ExprStmt, MacroStmt]


class ForeignKind(Enum):
    FN = "fn"
    STATIC = "static"


@dataclass(frozen=True, slots=True)
class ForeignItem:
    """An ``extern "C"`` declaration the rewrites resolve callees against."""

    name: str
    kind: ForeignKind
    no_mangle: bool = True
    loc: SourceLoc = _loc()


@dataclass(frozen=True, slots=True)
class Module:
    items: Tuple[ForeignItem, ...] = ()
    stmts: Tuple[Stmt, ...] = ()

    def foreign(self, kind: ForeignKind) -> FrozenSet[str]:
        """Names of ``#[no_mangle]`` foreign items of *kind*."""
        return frozenset(
            it.name for it in self.items if it.kind is kind and it.no_mangle
        )


# ════════════════════════════════════════════════════════════════════════
# §5  Traversal helpers
# ════════════════════════════════════════════════════════════════════════


def marked(node: Expr, label: str) -> bool:
    return label in node.marks


def with_marks(node: Expr, *labels: str) -> Expr:
    """Return a copy of *node* carrying *labels* in addition to its marks."""
    return dataclasses.replace(node, marks=node.marks | frozenset(labels))


def stmt_exprs(stmt: Stmt) -> Tuple[Expr, ...]:
    if isinstance(stmt, ExprStmt):
        return (stmt.expr,)
    return (stmt.mac,)


def children(node: Expr) -> Tuple[Expr, ...]:
    """Direct sub-expressions of *node*, in source order."""
    if isinstance(node, (Cast, TypeAscription)):
        return (node.expr,)
    if isinstance(node, Call):
        return (node.func,) + node.args
    if isinstance(node, MethodCall):
        return (node.receiver,) + node.args
    if isinstance(node, MacroCall):
        return node.args
    if isinstance(node, Block):
        out: Tuple[Expr, ...] = ()
        for s in node.stmts:
            out += stmt_exprs(s)
        return out
    return ()


def walk(node: Expr) -> Iterator[Expr]:
    """Pre-order traversal of *node* and every sub-expression."""
    yield node
    for child in children(node):
        yield from walk(child)


def _fold_stmt(stmt: Stmt, fn: Callable[[Expr], Expr]) -> Stmt:
    if isinstance(stmt, ExprStmt):
        return dataclasses.replace(stmt, expr=fold_exprs(stmt.expr, fn))
    mac = fold_exprs(stmt.mac, fn)
    if isinstance(mac, MacroCall):
        return dataclasses.replace(stmt, mac=mac)
    return ExprStmt(mac, loc=stmt.loc)


def fold_exprs(node: Expr, fn: Callable[[Expr], Expr]) -> Expr:
    """Post-order rebuild: children first, then ``fn`` on the new node."""
    if isinstance(node, (Cast, TypeAscription)):
        node = dataclasses.replace(node, expr=fold_exprs(node.expr, fn))
    elif isinstance(node, Call):
        node = dataclasses.replace(
            node,
            func=fold_exprs(node.func, fn),
            args=tuple(fold_exprs(a, fn) for a in node.args),
        )
    elif isinstance(node, MethodCall):
        node = dataclasses.replace(
            node,
            receiver=fold_exprs(node.receiver, fn),
            args=tuple(fold_exprs(a, fn) for a in node.args),
        )
    elif isinstance(node, MacroCall):
        node = dataclasses.replace(
            node, args=tuple(fold_exprs(a, fn) for a in node.args)
        )
    elif isinstance(node, Block):
        node = dataclasses.replace(
            node, stmts=tuple(_fold_stmt(s, fn) for s in node.stmts)
        )
    return fn(node)


def fold_module_exprs(module: Module, fn: Callable[[Expr], Expr]) -> Module:
    return dataclasses.replace(
        module, stmts=tuple(_fold_stmt(s, fn) for s in module.stmts)
    )


def fold_stmts(module: Module, fn: Callable[[Stmt], Stmt]) -> Module:
    """Apply *fn* to every statement, including those in nested blocks."""

    def in_blocks(e: Expr) -> Expr:
        if isinstance(e, Block):
            return dataclasses.replace(e, stmts=tuple(fn(s) for s in e.stmts))
        return e

    module = fold_module_exprs(module, in_blocks)
    return dataclasses.replace(module, stmts=tuple(fn(s) for s in module.stmts))


def first_loc(node: Optional[Expr]) -> SourceLoc:
    """Location of *node*, or of its first located descendant."""
    if node is None:
        return NO_LOC
    for e in walk(node):
        if e.loc is not NO_LOC:
            return e.loc
    return NO_LOC
