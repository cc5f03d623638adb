"""fmtargs/assembly.py – build the replacement format macro for one call.

Workflow for a call site::

    fmt_args[0]  ──unwrap casts──▶  literal text
                                      │
                                 SpecParser
                                      │ pieces
                                      ▼
             assemble(): render specifiers, fold the argument index,
             strip trailing NULs, pick the newline variant, coerce args
                                      │
                                      ▼
                    FormatMacro(name, fmt, args, coercions)

Everything here is a pure function of its inputs; one call site never
sees another's state.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from fmtargs import ast as A
from fmtargs.conversion import CoercionKind, CoercionTable, decode_c_string
from fmtargs.errors import (
    ArgumentOverrunError,
    ErrorReporter,
    FmtErrorCodes,
    FormatError,
    FormatStringNotFoundError,
    InvalidTextArgumentError,
    SourceSpan,
)
from fmtargs.printer import to_source
from fmtargs.spec_parser import Piece, SpecParser, Text

__all__ = [
    "ConversionConfig",
    "FormatMacro",
    "unwrap_format_literal",
    "find_marked_format_string",
    "assemble",
    "build_format_macro",
    "convert_format_string",
]

logger = logging.getLogger(__name__)


# ===================================================================== #
#  Configuration                                                         #
# ===================================================================== #

@dataclass
class ConversionConfig:
    """Tuning knobs for one conversion run."""
    keep_unreferenced_args: bool = False
    validate_text_args: bool = True
    narrow_encoding: str = "utf-8"
    escape_braces: bool = False

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        try:
            codecs.lookup(self.narrow_encoding)
        except LookupError:
            warnings.append(f"unknown narrow_encoding {self.narrow_encoding!r}")
        return warnings


_DEFAULT_CONFIG = ConversionConfig()


# ===================================================================== #
#  Result                                                                #
# ===================================================================== #

@dataclass
class FormatMacro:
    """The rebuilt invocation: ``name!(fmt, args...)``."""
    name: str
    fmt: str
    args: tuple
    coercions: CoercionTable

    def to_expr(self, loc: A.SourceLoc = A.NO_LOC) -> A.MacroCall:
        return A.MacroCall(self.name, (A.StrLit(self.fmt),) + tuple(self.args), loc=loc)

    def to_source(self) -> str:
        return to_source(self.to_expr())


# ===================================================================== #
#  Locating the literal                                                  #
# ===================================================================== #

def unwrap_format_literal(expr: A.Expr, encoding: str = "utf-8") -> str:
    """Peel casts and type ascriptions off *expr* and return the text of
    the string literal underneath."""
    if isinstance(expr, A.StrLit):
        return expr.value
    if isinstance(expr, A.ByteStrLit):
        try:
            return expr.value.decode(encoding)
        except LookupError as exc:
            raise InvalidTextArgumentError(
                f"unknown narrow encoding {encoding!r}",
                span=SourceSpan.from_loc(A.first_loc(expr)),
                arg_index=0,
            ) from exc
        except UnicodeDecodeError as exc:
            raise InvalidTextArgumentError(
                f"format string is not valid {encoding} text: {exc.reason}",
                span=SourceSpan.from_loc(A.first_loc(expr)),
                arg_index=0,
            ) from exc
    if isinstance(expr, (A.Cast, A.TypeAscription)):
        return unwrap_format_literal(expr.expr, encoding)
    raise FormatStringNotFoundError(
        f"unexpected format string: {to_source(expr)}",
        span=SourceSpan.from_loc(A.first_loc(expr)),
        arg_index=0,
        hint="mark the string literal itself with `fmt_str`",
    )


def find_marked_format_string(
    expr: A.Expr,
    mark: str = "fmt_str",
    reporter: Optional[ErrorReporter] = None,
) -> Optional[A.Expr]:
    """Return the first sub-expression of *expr* carrying *mark*.

    Further marked sub-expressions are reported as warnings and ignored.
    """
    found: Optional[A.Expr] = None
    for e in A.walk(expr):
        if not A.marked(e, mark):
            continue
        if found is not None:
            logger.warning("multiple %s marks inside argument %s", mark, to_source(expr))
            if reporter is not None:
                reporter.warning(
                    FmtErrorCodes.MULTIPLE_FORMAT_MARKS,
                    f"multiple {mark} marks inside argument {to_source(expr)}; "
                    f"using the first",
                    span=SourceSpan.from_node(e),
                )
            continue
        found = e
    return found


# ===================================================================== #
#  Assembly                                                              #
# ===================================================================== #

def _check_text_arg(arg: A.Expr, index: int, encoding: str) -> None:
    """Statically reject ``%s`` arguments known not to be text."""
    inner = arg
    while isinstance(inner, (A.Cast, A.TypeAscription)):
        inner = inner.expr
    if isinstance(inner, A.ByteStrLit):
        try:
            decode_c_string(inner.value, encoding, arg_index=index)
        except InvalidTextArgumentError as exc:
            raise exc.at(SourceSpan.from_loc(A.first_loc(arg)))
    elif isinstance(inner, A.IntLit) and inner.value == 0:
        raise InvalidTextArgumentError(
            "null pointer passed for %s",
            code=FmtErrorCodes.NULL_TEXT_ARGUMENT,
            span=SourceSpan.from_loc(A.first_loc(arg)),
            arg_index=index,
        )


def assemble(
    pieces: Iterable[Piece],
    fmt_args: Sequence[A.Expr],
    macro_name: str,
    ln_macro_name: Optional[str] = None,
    config: Optional[ConversionConfig] = None,
) -> FormatMacro:
    """Fold *pieces* into a :class:`FormatMacro`.

    ``fmt_args[0]`` is the format string argument; the coercion table and
    the argument walk both start at index 1.
    """
    config = config or _DEFAULT_CONFIG
    available = len(fmt_args) - 1
    buf: List[str] = []
    casts = CoercionTable()
    idx = 1

    for piece in pieces:
        if isinstance(piece, Text):
            text = piece.text
            if config.escape_braces:
                text = text.replace("{", "{{").replace("}", "}}")
            buf.append(text)
            continue
        buf.append(piece.spec.render())
        idx = piece.spec.assign_coercions(idx, casts)
        logger.debug("  %s -> %s, next arg %d", piece.source, piece.spec.render(), idx)
        if idx - 1 > available:
            raise ArgumentOverrunError(
                available + 1, available,
                offset=piece.offset, specifier=piece.source,
            )

    new_fmt = "".join(buf).rstrip("\0")

    name = macro_name
    if ln_macro_name is not None and new_fmt.endswith("\n"):
        # a trailing "\n" folds into the newline variant (println! etc.)
        new_fmt = new_fmt[:-1]
        name = ln_macro_name

    new_args: List[A.Expr] = []
    for i, arg in enumerate(fmt_args[1:], start=1):
        cast = casts.get(i)
        if cast is None:
            if config.keep_unreferenced_args:
                new_args.append(arg)
            continue
        if cast is CoercionKind.AS_DECODED_CSTRING and config.validate_text_args:
            _check_text_arg(arg, i, config.narrow_encoding)
        new_args.append(cast.apply(arg))

    if available > len(casts):
        logger.info("%d unreferenced argument(s) %s", available - len(casts),
                    "kept" if config.keep_unreferenced_args else "dropped")

    return FormatMacro(name=name, fmt=new_fmt, args=tuple(new_args), coercions=casts)


def build_format_macro(
    macro_name: str,
    ln_macro_name: Optional[str],
    old_fmt_str_expr: Optional[A.Expr],
    fmt_args: Sequence[A.Expr],
    config: Optional[ConversionConfig] = None,
) -> FormatMacro:
    """Convert one call's format string and arguments.

    *old_fmt_str_expr* is the literal to read the format from (possibly
    wrapped in casts); ``None`` means ``fmt_args[0]``.  Errors carry the
    call-site location of the format argument.
    """
    config = config or _DEFAULT_CONFIG
    if old_fmt_str_expr is None:
        if not fmt_args:
            raise FormatStringNotFoundError("call has no format string argument")
        old_fmt_str_expr = fmt_args[0]

    logger.info("  found fmt str %s", to_source(old_fmt_str_expr))
    fmt = unwrap_format_literal(old_fmt_str_expr, config.narrow_encoding)
    try:
        macro = assemble(SpecParser(fmt), fmt_args, macro_name, ln_macro_name, config)
    except FormatError as exc:
        if not exc.span.file and exc.span.line == 0:
            exc.at(SourceSpan.from_loc(A.first_loc(old_fmt_str_expr)))
        raise
    logger.info("new fmt str %r", macro.fmt)
    return macro


def convert_format_string(
    fmt: str,
    args: Sequence[A.Expr] = (),
    macro_name: str = "format_args",
    ln_macro_name: Optional[str] = None,
    config: Optional[ConversionConfig] = None,
) -> FormatMacro:
    """Convert raw format text and its argument expressions."""
    return assemble(
        SpecParser(fmt), (A.StrLit(fmt),) + tuple(args),
        macro_name, ln_macro_name, config,
    )
