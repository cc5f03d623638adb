"""fmtargs/reader.py – S-expression → expression/module reader.

Converts the output of ``sexpdata.parse`` (nested Python lists,
:class:`sexpdata.Symbol`, strings, ints) into the nodes defined in
:mod:`fmtargs.ast`.  This is how call sites reach the engine from the
command line and from test fixtures.

Design principles
-----------------
* **Head-symbol dispatch** – every list ``(tag ...)`` is dispatched on
  ``tag`` to a dedicated ``_read_<tag>`` helper.
* **Strict shapes** – anything unexpected raises :class:`ReaderError`.
* String atoms are C literal bodies: ``\\n``, ``\\0``, ``\\x41`` and
  octal escapes are decoded here.

Surface syntax
--------------
::

    x  libc::printf  ::std::ptr     ;; paths
    "text"                          ;; string literal
    (bytes "text")                  ;; byte-string literal
    42  -1                          ;; integer literals
    (path std ffi CStr)             ;; path given segment by segment
    (cast E T)  (ascribe E T)       ;; casts / type ascription
    (call F ARG ...)                ;; function call
    (method RECV NAME ARG ...)      ;; method call
    (macro NAME ARG ...)            ;; macro invocation
    (block ITEM ...)  (unsafe ITEM ...)
    (mark LABEL ... E)              ;; marks on E
    (raw "source text")             ;; opaque expression

    T ::= symbol | (path ...) | (ptr T) | (ptr-mut T)

    ;; module items (top level of a file)
    (extern fn NAME [no_mangle])
    (extern static NAME [no_mangle])
    (stmt E)
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

# ---------------------------------------------------------------------------
# sexpdata import
# ---------------------------------------------------------------------------
try:
    import sexpdata
    from sexpdata import Symbol
except ImportError:  # pragma: no cover
    raise ImportError(
        "The 'sexpdata' package is required for reading call sites. "
        "Install it with:  pip install sexpdata"
    )

from fmtargs import ast as A
from fmtargs.errors import ReaderError, SourceSpan

__all__ = [
    "read_expr",
    "read_module",
    "read_expr_text",
    "read_type",
    "parse_sexp",
    "decode_c_escapes",
]

Sexp = Any  # Union[list, Symbol, str, int]


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _sym_name(s: Sexp) -> str:
    """Extract the string name from a ``sexpdata.Symbol``, or raise."""
    if isinstance(s, Symbol):
        return s.value() if hasattr(s, "value") else str(s)
    raise ReaderError(f"Expected symbol, got {type(s).__name__}: {s!r}")


def _is_string(s: Sexp) -> bool:
    return isinstance(s, str) and not isinstance(s, Symbol)


def _expect_len(s: list, min_len: int, max_len: Optional[int] = None) -> list:
    if len(s) < min_len or (max_len is not None and len(s) > max_len):
        raise ReaderError(
            f"Wrong number of elements in ({_head(s)} ...): got {len(s) - 1}"
        )
    return s


def _head(s: list) -> str:
    """Return the head symbol name of a list form ``(tag ...)``."""
    if not s:
        raise ReaderError("Unexpected empty list")
    return _sym_name(s[0])


def _as_str(s: Sexp) -> str:
    """Coerce *s* to a Python ``str`` – accepts Symbol or string literal."""
    if isinstance(s, Symbol):
        return _sym_name(s)
    if isinstance(s, str):
        return s
    raise ReaderError(f"Expected string or symbol, got {type(s).__name__}: {s!r}")


_ESCAPE_RE = re.compile(r"\\(x[0-9A-Fa-f]{1,2}|[0-7]{1,3}|.)", re.DOTALL)

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "a": "\a", "b": "\b",
    "f": "\f", "v": "\v", "\\": "\\", '"': '"', "'": "'", "?": "?",
}


def decode_c_escapes(body: str) -> str:
    """Decode the escapes of a C string literal body (no quotes)."""

    def repl(m: "re.Match[str]") -> str:
        esc = m.group(1)
        if esc[0] == "x":
            return chr(int(esc[1:], 16))
        if esc[0] in "01234567":
            return chr(int(esc, 8))
        if esc in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[esc]
        raise ReaderError(f"Unknown escape sequence \\{esc} in {body!r}")

    return _ESCAPE_RE.sub(repl, body)


def _split_path(name: str) -> Tuple[Tuple[str, ...], bool]:
    global_ = name.startswith("::")
    segments = tuple(name[2:].split("::") if global_ else name.split("::"))
    if not all(segments):
        raise ReaderError(f"Malformed path {name!r}")
    return segments, global_


# ═══════════════════════════════════════════════════════════════════════
#  Dispatch registry
# ═══════════════════════════════════════════════════════════════════════

_EXPR_DISPATCH: Dict[str, Callable[[list], A.Expr]] = {}
_TYPE_DISPATCH: Dict[str, Callable[[list], A.Type]] = {}


def _register(table: dict, tag: str):
    """Decorator: register a reader function under *tag* in *table*."""
    def deco(fn):
        table[tag] = fn
        return fn
    return deco


# ═══════════════════════════════════════════════════════════════════════
#  Types
# ═══════════════════════════════════════════════════════════════════════

def read_type(s: Sexp) -> A.Type:
    if isinstance(s, Symbol):
        segments, global_ = _split_path(_sym_name(s))
        return A.PathType(segments, global_)
    if isinstance(s, list) and s:
        reader = _TYPE_DISPATCH.get(_head(s))
        if reader is not None:
            return reader(s)
        raise ReaderError(f"Unknown type form: ({_head(s)} ...)")
    raise ReaderError(f"Expected type, got: {s!r}")


@_register(_TYPE_DISPATCH, "path")
def _read_path_type(s: list) -> A.PathType:
    _expect_len(s, 2)
    return A.PathType(tuple(_as_str(seg) for seg in s[1:]))


@_register(_TYPE_DISPATCH, "ptr")
def _read_ptr(s: list) -> A.PtrType:
    _expect_len(s, 2, 2)
    return A.PtrType(read_type(s[1]))


@_register(_TYPE_DISPATCH, "ptr-mut")
def _read_ptr_mut(s: list) -> A.PtrType:
    _expect_len(s, 2, 2)
    return A.PtrType(read_type(s[1]), mutable=True)


# ═══════════════════════════════════════════════════════════════════════
#  Expressions
# ═══════════════════════════════════════════════════════════════════════

def read_expr(s: Sexp) -> A.Expr:
    """Read one expression from a raw S-expression."""
    if isinstance(s, Symbol):
        segments, global_ = _split_path(_sym_name(s))
        return A.Path(segments, global_)
    if isinstance(s, bool):
        raise ReaderError(f"Unexpected boolean {s!r}")
    if isinstance(s, int):
        return A.IntLit(s)
    if _is_string(s):
        return A.StrLit(decode_c_escapes(s))
    if isinstance(s, list) and s:
        reader = _EXPR_DISPATCH.get(_head(s))
        if reader is not None:
            return reader(s)
        raise ReaderError(f"Unknown expression form: ({_head(s)} ...)")
    raise ReaderError(f"Expected expression, got: {s!r}")


@_register(_EXPR_DISPATCH, "bytes")
def _read_bytes(s: list) -> A.ByteStrLit:
    _expect_len(s, 2, 2)
    if not _is_string(s[1]):
        raise ReaderError(f"(bytes ...) takes a string, got {s[1]!r}")
    text = decode_c_escapes(s[1])
    try:
        return A.ByteStrLit(text.encode("latin-1"))
    except UnicodeEncodeError:
        # non-Latin-1 characters are spelled as their UTF-8 bytes
        return A.ByteStrLit(text.encode("utf-8"))


@_register(_EXPR_DISPATCH, "path")
def _read_path(s: list) -> A.Path:
    _expect_len(s, 2)
    return A.Path(tuple(_as_str(seg) for seg in s[1:]))


@_register(_EXPR_DISPATCH, "cast")
def _read_cast(s: list) -> A.Cast:
    _expect_len(s, 3, 3)
    return A.Cast(read_expr(s[1]), read_type(s[2]))


@_register(_EXPR_DISPATCH, "ascribe")
def _read_ascribe(s: list) -> A.TypeAscription:
    _expect_len(s, 3, 3)
    return A.TypeAscription(read_expr(s[1]), read_type(s[2]))


@_register(_EXPR_DISPATCH, "call")
def _read_call(s: list) -> A.Call:
    _expect_len(s, 2)
    return A.Call(read_expr(s[1]), tuple(read_expr(a) for a in s[2:]))


@_register(_EXPR_DISPATCH, "method")
def _read_method(s: list) -> A.MethodCall:
    _expect_len(s, 3)
    return A.MethodCall(
        read_expr(s[1]), _as_str(s[2]), tuple(read_expr(a) for a in s[3:])
    )


@_register(_EXPR_DISPATCH, "macro")
def _read_macro(s: list) -> A.MacroCall:
    _expect_len(s, 2)
    return A.MacroCall(_as_str(s[1]), tuple(read_expr(a) for a in s[2:]))


def _read_block_items(items: list) -> Tuple[A.Stmt, ...]:
    stmts: List[A.Stmt] = []
    for item in items:
        if isinstance(item, list) and item and _head(item) == "stmt":
            stmts.append(_read_stmt(item))
        else:
            stmts.append(A.ExprStmt(read_expr(item), semi=False))
    return tuple(stmts)


@_register(_EXPR_DISPATCH, "block")
def _read_block(s: list) -> A.Block:
    return A.Block(_read_block_items(s[1:]))


@_register(_EXPR_DISPATCH, "unsafe")
def _read_unsafe(s: list) -> A.Block:
    return A.Block(_read_block_items(s[1:]), unsafe=True)


@_register(_EXPR_DISPATCH, "mark")
def _read_mark(s: list) -> A.Expr:
    _expect_len(s, 3)
    labels = [_as_str(label) for label in s[1:-1]]
    return A.with_marks(read_expr(s[-1]), *labels)


@_register(_EXPR_DISPATCH, "raw")
def _read_raw(s: list) -> A.Opaque:
    _expect_len(s, 2, 2)
    if not _is_string(s[1]):
        raise ReaderError(f"(raw ...) takes a string, got {s[1]!r}")
    return A.Opaque(s[1])


# ═══════════════════════════════════════════════════════════════════════
#  Module items
# ═══════════════════════════════════════════════════════════════════════

def _read_stmt(s: list, loc: A.SourceLoc = A.NO_LOC) -> A.ExprStmt:
    _expect_len(s, 2, 2)
    expr = read_expr(s[1])
    if loc is not A.NO_LOC:
        expr = _relocate(expr, loc)
    return A.ExprStmt(expr, semi=True, loc=loc)


def _relocate(expr: A.Expr, loc: A.SourceLoc) -> A.Expr:
    return dataclasses.replace(expr, loc=loc)


def _read_extern(s: list, loc: A.SourceLoc) -> A.ForeignItem:
    _expect_len(s, 3, 4)
    kind_name = _as_str(s[1])
    try:
        kind = A.ForeignKind(kind_name)
    except ValueError:
        raise ReaderError(
            f"Unknown extern kind {kind_name!r}; expected 'fn' or 'static'"
        ) from None
    attrs = {_as_str(a) for a in s[3:]}
    unknown = attrs - {"no_mangle"}
    if unknown:
        raise ReaderError(f"Unknown extern attribute(s): {sorted(unknown)}")
    return A.ForeignItem(_as_str(s[2]), kind, no_mangle="no_mangle" in attrs, loc=loc)


def _toplevel_lines(text: str) -> List[int]:
    """1-based line of each top-level ``(`` in *text*."""
    lines: List[int] = []
    depth = 0
    line = 1
    in_str = False
    in_comment = False
    i = 0
    while i < len(text):
        c = text[i]
        if c == "\n":
            line += 1
            in_comment = False
        elif in_comment:
            pass
        elif in_str:
            if c == "\\":
                i += 1
            elif c == '"':
                in_str = False
        elif c == ";":
            in_comment = True
        elif c == '"':
            in_str = True
        elif c == "(":
            if depth == 0:
                lines.append(line)
            depth += 1
        elif c == ")":
            depth -= 1
        i += 1
    return lines


def _protect_escapes(text: str) -> str:
    """Double each backslash escape inside string atoms.

    sexpdata keeps only the character after a backslash, so ``\\n`` would
    arrive as ``n``; after this pass it arrives as the two characters
    ``\\`` ``n`` and :func:`decode_c_escapes` sees the C escape.
    """
    out: List[str] = []
    in_str = False
    in_comment = False
    i = 0
    while i < len(text):
        c = text[i]
        if in_comment:
            in_comment = c != "\n"
        elif in_str:
            if c == "\\" and i + 1 < len(text):
                nxt = text[i + 1]
                out.append("\\\\" + ("\\" + nxt if nxt in '\\"' else nxt))
                i += 2
                continue
            if c == '"':
                in_str = False
        elif c == ";":
            in_comment = True
        elif c == '"':
            in_str = True
        out.append(c)
        i += 1
    return "".join(out)


def parse_sexp(text: str) -> List[Sexp]:
    """Parse every top-level form in *text*."""
    try:
        return list(sexpdata.parse(_protect_escapes(text),
                                   nil=None, true=None, false=None))
    except ReaderError:
        raise
    except Exception as exc:
        raise ReaderError(f"Malformed S-expression: {exc}") from exc


def read_module(text: str, file: str = "<string>") -> A.Module:
    """Read a sequence of module items (``extern`` / ``stmt`` forms)."""
    forms = parse_sexp(text)
    lines = _toplevel_lines(text)
    items: List[A.ForeignItem] = []
    stmts: List[A.Stmt] = []
    for n, form in enumerate(forms):
        line = lines[n] if n < len(lines) else 0
        loc = A.SourceLoc(file=file, line=line, col=1)
        try:
            if not isinstance(form, list) or not form:
                raise ReaderError(f"Expected (extern ...) or (stmt ...), got {form!r}")
            tag = _head(form)
            if tag == "extern":
                items.append(_read_extern(form, loc))
            elif tag == "stmt":
                stmts.append(_read_stmt(form, loc))
            else:
                raise ReaderError(f"Unknown module item: ({tag} ...)")
        except ReaderError as exc:
            if exc.span.line == 0:
                exc.at(SourceSpan(file=file, line=line, column=1))
            raise
    return A.Module(tuple(items), tuple(stmts))


def read_expr_text(text: str) -> A.Expr:
    """Read exactly one expression from *text*."""
    forms = parse_sexp(text)
    if len(forms) != 1:
        raise ReaderError(f"Expected one expression, got {len(forms)}: {text!r}")
    return read_expr(forms[0])
