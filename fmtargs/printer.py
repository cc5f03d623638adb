"""fmtargs/printer.py – render expression shapes as target source text.

The output is what gets spliced back at a call site, e.g.::

    println!("hello {:}", 123 as i32)
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Type as PyType

from fmtargs import ast as A
from fmtargs.errors import InternalError

__all__ = [
    "to_source",
    "type_source",
    "stmt_source",
    "escape_str",
    "escape_bytes",
]

_SIMPLE_RE = re.compile(r"^(?:::)?[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*$|^\d[\w.]*$")

_STR_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def escape_str(s: str) -> str:
    """Quote *s* as a target-language string literal."""
    out: List[str] = []
    for ch in s:
        if ch in _STR_ESCAPES:
            out.append(_STR_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def escape_bytes(b: bytes) -> str:
    """Quote *b* as a byte-string literal."""
    out: List[str] = []
    for byte in b:
        ch = chr(byte)
        if ch in _STR_ESCAPES:
            out.append(_STR_ESCAPES[ch])
        elif 0x20 <= byte < 0x7F:
            out.append(ch)
        else:
            out.append(f"\\x{byte:02x}")
    return 'b"' + "".join(out) + '"'


def type_source(ty: A.Type) -> str:
    if isinstance(ty, A.PathType):
        return ("::" if ty.global_ else "") + "::".join(ty.segments)
    if isinstance(ty, A.PtrType):
        qual = "mut" if ty.mutable else "const"
        return f"*{qual} {type_source(ty.inner)}"
    raise InternalError(f"cannot print type {ty!r}")


def _is_atomic(e: A.Expr) -> bool:
    """True if *e* can stand as an operand without parentheses."""
    if isinstance(e, A.Opaque):
        return bool(_SIMPLE_RE.match(e.text.strip()))
    if isinstance(e, A.IntLit):
        return e.value >= 0
    return isinstance(e, (A.Path, A.StrLit, A.ByteStrLit, A.Call,
                          A.MethodCall, A.MacroCall))


def _operand(e: A.Expr, allow_cast: bool = False) -> str:
    text = to_source(e)
    if _is_atomic(e) or (allow_cast and isinstance(e, A.Cast)):
        return text
    return f"({text})"


def _args(args) -> str:
    return ", ".join(to_source(a) for a in args)


def _path(e: A.Path) -> str:
    return ("::" if e.global_ else "") + "::".join(e.segments)


def _cast(e: A.Cast) -> str:
    # `as` is left-associative, so a cast operand needs no parentheses.
    return f"{_operand(e.expr, allow_cast=True)} as {type_source(e.ty)}"


def _block(e: A.Block) -> str:
    body = " ".join(stmt_source(s) for s in e.stmts)
    prefix = "unsafe " if e.unsafe else ""
    return f"{prefix}{{ {body} }}"


_PRINTERS: Dict[PyType, Callable[..., str]] = {
    A.Path: _path,
    A.StrLit: lambda e: escape_str(e.value),
    A.ByteStrLit: lambda e: escape_bytes(e.value),
    A.IntLit: lambda e: str(e.value),
    A.Cast: _cast,
    A.TypeAscription: lambda e: f"{_operand(e.expr)}: {type_source(e.ty)}",
    A.Call: lambda e: f"{_operand(e.func)}({_args(e.args)})",
    A.MethodCall: lambda e: f"{_operand(e.receiver)}.{e.method}({_args(e.args)})",
    A.MacroCall: lambda e: f"{e.name}!({_args(e.args)})",
    A.Block: _block,
    A.Opaque: lambda e: e.text,
}


def to_source(e: A.Expr) -> str:
    """Render expression *e* as source text."""
    printer = _PRINTERS.get(type(e))
    if printer is None:
        raise InternalError(f"cannot print expression {e!r}")
    return printer(e)


def stmt_source(s: A.Stmt) -> str:
    if isinstance(s, A.MacroStmt):
        return to_source(s.mac) + ";"
    if isinstance(s, A.ExprStmt):
        return to_source(s.expr) + (";" if s.semi else "")
    raise InternalError(f"cannot print statement {s!r}")
