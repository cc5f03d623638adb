"""fmtargs – printf format strings to format-macro invocations.

This package rewrites a C ``printf``-family format string and its argument
list into an equivalent ``format_args!``-style invocation: every
conversion specifier becomes a ``{:...}`` placeholder and every consumed
argument is wrapped in the coercion its specifier implies.

Submodules
----------
errors
    Exception hierarchy, structured error codes (``FMT-XXXX``),
    ``ErrorReporter`` and ``SourceSpan`` / ``ErrorMessage`` dataclasses.

ast
    The small expression tree the rewrites operate on, plus traversal
    helpers (``walk``, ``fold_exprs``, ``fold_stmts``).

conversion
    ``ConversionSpec``, ``CoercionKind`` and ``CoercionTable``.

spec_parser
    ``SpecParser``: format text → ``Text`` / ``Conv`` pieces.

assembly
    ``assemble`` / ``build_format_macro``: pieces + arguments →
    ``FormatMacro``.

transforms
    Call-site rewrites ``convert_format_args`` and ``convert_printfs``.

reader, printer
    S-expression input (via sexpdata) and Rust-like source output.

main
    CLI entry-point with subcommands: ``convert``, ``pieces``, ``rewrite``.

Usage
-----
Command-line::

    python -m fmtargs convert 'hello %d\\n' 123 --ln-macro println
    python -m fmtargs rewrite calls.sexp --transform convert_printfs
    python -m fmtargs --help

Programmatic::

    from fmtargs import convert_format_string, FormatError

    macro = convert_format_string("%5.*s|%x\\n", args, "print", "println")
    print(macro.to_source())

"""

from __future__ import annotations

from fmtargs.assembly import (
    ConversionConfig,
    FormatMacro,
    build_format_macro,
    convert_format_string,
)
from fmtargs.conversion import CoercionKind, CoercionTable, ConversionSpec
from fmtargs.errors import (
    ArgumentOverrunError,
    ErrorReporter,
    FormatError,
    FormatStringNotFoundError,
    InvalidTextArgumentError,
    MalformedSpecifierError,
)
from fmtargs.spec_parser import SpecParser
from fmtargs.transforms import convert_format_args, convert_printfs

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "ConversionConfig",
    "FormatMacro",
    "build_format_macro",
    "convert_format_string",
    "CoercionKind",
    "CoercionTable",
    "ConversionSpec",
    "ArgumentOverrunError",
    "ErrorReporter",
    "FormatError",
    "FormatStringNotFoundError",
    "InvalidTextArgumentError",
    "MalformedSpecifierError",
    "SpecParser",
    "convert_format_args",
    "convert_printfs",
]
