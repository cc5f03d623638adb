"""fmtargs/transforms.py – call-site rewrites built on :mod:`fmtargs.assembly`.

``convert_format_args``
    For each call with an argument marked ``target``, parse that argument
    as a printf format string with the following arguments as its format
    args, and replace them all with one ``format_args!`` invocation::

        printf("hello %d\\n", 123)   # "hello %d\\n" marked `target`
        printf(format_args!("hello {:}\\n", 123 as i32))

    The callee is left as it is, so the result does not type-check until a
    later rewrite swaps in a function taking the formatted arguments.  If
    casts surround the literal, mark the literal itself ``fmt_str``.

``convert_printfs``
    Turns ``printf(...)`` and ``fprintf(stderr, ...)`` statements into
    ``print!``/``println!`` and ``eprint!``/``eprintln!``.  Only callees
    declared as ``#[no_mangle]`` foreign functions (and a ``#[no_mangle]``
    foreign ``stderr`` static) are touched, so the call really is libc's.

A call site that cannot be converted is reported, logged and left as it
was; the rest of the module is still converted.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, FrozenSet, Optional, Union

from fmtargs import ast as A
from fmtargs.assembly import (
    ConversionConfig,
    FormatMacro,
    build_format_macro,
    find_marked_format_string,
)
from fmtargs.errors import ErrorReporter, FormatError, SourceSpan

__all__ = [
    "TARGET_MARK",
    "FMT_STR_MARK",
    "convert_format_args",
    "convert_printfs",
    "TRANSFORMS",
]

logger = logging.getLogger(__name__)

TARGET_MARK = "target"
FMT_STR_MARK = "fmt_str"


def _checked(config: Optional[ConversionConfig]) -> ConversionConfig:
    config = config or ConversionConfig()
    for w in config.validate():
        logger.warning("ConversionConfig: %s", w)
    return config


def _skip(call: A.Expr, exc: FormatError, reporter: Optional[ErrorReporter]) -> None:
    span = SourceSpan.from_loc(A.first_loc(call))
    if exc.span.line == 0 and span.line:
        exc.at(span)
    logger.warning("leaving call at %s untouched: %s", exc.span, exc)
    if reporter is not None:
        reporter.report(exc)


def _build(
    call: A.Call,
    reporter: Optional[ErrorReporter],
    *args,
) -> Optional[FormatMacro]:
    try:
        return build_format_macro(*args)
    except FormatError as exc:
        _skip(call, exc, reporter)
        return None


# ===================================================================== #
#  convert_format_args                                                   #
# ===================================================================== #

def convert_format_args(
    node: Union[A.Module, A.Expr],
    reporter: Optional[ErrorReporter] = None,
    config: Optional[ConversionConfig] = None,
) -> Union[A.Module, A.Expr]:
    """Rewrite every ``target``-marked call inside *node*."""
    config = _checked(config)

    def rewrite(e: A.Expr) -> A.Expr:
        if not isinstance(e, A.Call):
            return e
        fmt_idx = next(
            (i for i, a in enumerate(e.args) if A.marked(a, TARGET_MARK)), None
        )
        if fmt_idx is None:
            return e

        old_fmt_str_expr = find_marked_format_string(
            e.args[fmt_idx], FMT_STR_MARK, reporter
        )
        mac = _build(e, reporter, "format_args", None, old_fmt_str_expr,
                     e.args[fmt_idx:], config)
        if mac is None:
            return e
        new_args = e.args[:fmt_idx] + (mac.to_expr(loc=e.args[fmt_idx].loc),)
        return A.Call(e.func, new_args, marks=e.marks, loc=e.loc)

    if isinstance(node, A.Module):
        return A.fold_module_exprs(node, rewrite)
    return A.fold_exprs(node, rewrite)


# ===================================================================== #
#  convert_printfs                                                       #
# ===================================================================== #

def _resolves_to(e: A.Expr, name: str, defs: FrozenSet[str]) -> bool:
    return isinstance(e, A.Path) and e.name == name and name in defs


def convert_printfs(
    module: A.Module,
    reporter: Optional[ErrorReporter] = None,
    config: Optional[ConversionConfig] = None,
) -> A.Module:
    """Rewrite libc ``printf``/``fprintf(stderr, …)`` statements."""
    config = _checked(config)
    fn_defs = module.foreign(A.ForeignKind.FN)
    static_defs = module.foreign(A.ForeignKind.STATIC)
    logger.debug("foreign fns %s, statics %s", sorted(fn_defs), sorted(static_defs))

    def rewrite(stmt: A.Stmt) -> A.Stmt:
        if not isinstance(stmt, A.ExprStmt) or not stmt.semi:
            return stmt
        call = stmt.expr
        if not isinstance(call, A.Call) or len(call.args) < 1:
            return stmt

        if (_resolves_to(call.func, "fprintf", fn_defs)
                and _resolves_to(call.args[0], "stderr", static_defs)):
            mac = _build(call, reporter, "eprint", "eprintln", None,
                         call.args[1:], config)
        elif _resolves_to(call.func, "printf", fn_defs):
            mac = _build(call, reporter, "print", "println", None,
                         call.args, config)
        else:
            return stmt

        if mac is None:
            return stmt
        return A.MacroStmt(mac.to_expr(loc=call.loc), loc=stmt.loc)

    return A.fold_stmts(module, rewrite)


TRANSFORMS: Dict[str, Callable[..., object]] = {
    "convert_format_args": convert_format_args,
    "convert_printfs": convert_printfs,
}
