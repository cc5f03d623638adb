#!/usr/bin/env python3
"""fmtargs/main.py – CLI entry-point for the fmtargs tool.

Usage examples
--------------
    # Convert one format string; arguments are S-expressions
    python -m fmtargs convert 'hello %d\\n' x --ln-macro println

    # Show how a format string is split into pieces (debugging aid)
    python -m fmtargs pieces '%*.*s|%5X'

    # Rewrite libc printf calls in a module file
    python -m fmtargs rewrite calls.sexp --transform convert_printfs

    # Show version and exit
    python -m fmtargs --version

Exit codes
----------
    0   Success (no errors).
    1   One or more diagnostics with severity ERROR were emitted.
    2   Infrastructure failure (unreadable module, bad option value, etc.).

The module doubles as ``python -m fmtargs`` via the companion
``fmtargs/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, TextIO

from fmtargs import __version__
from fmtargs.assembly import ConversionConfig, convert_format_string
from fmtargs.errors import ErrorMessage, ErrorReporter, FormatError
from fmtargs.printer import stmt_source
from fmtargs.reader import decode_c_escapes, read_expr_text, read_module
from fmtargs.spec_parser import Conv, SpecParser
from fmtargs.transforms import TRANSFORMS

_log = logging.getLogger("fmtargs")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2

_LOG_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Route ``fmtargs.*`` log records to stderr.

    Conversion diagnostics are written separately by
    :func:`_emit_diagnostics`; the log only narrates the run
    (``-v`` per call site, ``-vv`` per specifier).
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("fmtargs: %(levelname)s: %(message)s"))
    logger = logging.getLogger("fmtargs")
    # main() may run more than once per process
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.setLevel(_LOG_LEVELS[min(verbosity, len(_LOG_LEVELS) - 1)])
    logger.addHandler(handler)


def _module_path(raw: str) -> Path:
    """Return the module file named on the command line.

    A missing file or a directory ends the run with :data:`EXIT_INFRA`.
    """
    path = Path(raw).expanduser()
    if not path.is_file():
        _log.error("module file not found: %s", path)
        raise SystemExit(EXIT_INFRA)
    return path


@contextlib.contextmanager
def _output(dest: Optional[str]) -> Iterator[TextIO]:
    """Yield the stream converted source goes to: stdout for ``None`` or
    ``"-"``, else *dest* (parent directories are created)."""
    if dest is None or dest == "-":
        yield sys.stdout
        return
    path = Path(dest).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        yield stream


def _emit_diagnostics(
    messages: List[ErrorMessage],
    fmt: str,
    stream: TextIO,
) -> int:
    """Write *messages* to *stream*; return the count of errors."""
    error_count = 0
    for msg in messages:
        if msg.severity is not None and msg.severity.is_error():
            error_count += 1
        if fmt == "json":
            stream.write(json.dumps(msg.to_json()) + "\n")
        else:
            stream.write(msg.to_gcc_format() + "\n")
    return error_count


def _config_from_args(args: argparse.Namespace) -> ConversionConfig:
    """Build the conversion config; an unusable option ends the run with
    :data:`EXIT_INFRA` before any call site is touched."""
    config = ConversionConfig(
        keep_unreferenced_args=args.keep_unreferenced,
        validate_text_args=not args.no_validate_text,
        narrow_encoding=args.encoding,
        escape_braces=args.escape_braces,
    )
    problems = config.validate()
    for problem in problems:
        _log.error("invalid option: %s", problem)
    if problems:
        raise SystemExit(EXIT_INFRA)
    return config


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_convert(args: argparse.Namespace) -> int:
    """Convert one format string and its argument expressions."""
    config = _config_from_args(args)
    reporter = ErrorReporter(source_file="<command line>")
    try:
        call_args = [read_expr_text(a) for a in args.args]
    except FormatError as exc:
        reporter.report(exc)
        _emit_diagnostics(reporter.messages, args.format, sys.stderr)
        return EXIT_INFRA

    try:
        macro = convert_format_string(
            decode_c_escapes(args.fmt), call_args,
            macro_name=args.macro, ln_macro_name=args.ln_macro, config=config,
        )
    except FormatError as exc:
        reporter.report(exc)
        _emit_diagnostics(reporter.messages, args.format, sys.stderr)
        return EXIT_ERROR

    with _output(args.output) as out:
        out.write(macro.to_source() + "\n")
        if args.coercions:
            for idx, kind in macro.coercions.items():
                out.write(f"  arg {idx}: {kind.name}\n")
    return EXIT_OK


def cmd_pieces(args: argparse.Namespace) -> int:
    """Dump the piece sequence of a format string."""
    with _output(args.output) as out:
        try:
            for piece in SpecParser(decode_c_escapes(args.fmt)):
                if isinstance(piece, Conv):
                    spec = piece.spec
                    out.write(
                        f"conv {piece.offset:4d}  {piece.source!r:12} {spec.kind.name:10} "
                        f"width={spec.width} precision={spec.precision} "
                        f"-> {spec.render()}\n"
                    )
                else:
                    out.write(f"text {piece.offset:4d}  {piece.text!r}\n")
        except FormatError as exc:
            _emit_diagnostics([exc.error_message], "gcc", sys.stderr)
            return EXIT_ERROR
    return EXIT_OK


def cmd_rewrite(args: argparse.Namespace) -> int:
    """Apply a call-site rewrite to every statement of a module file."""
    path = _module_path(args.module_file)
    config = _config_from_args(args)
    reporter = ErrorReporter(source_file=str(path))

    _log.info("Reading module: %s", path)
    try:
        module = read_module(path.read_text(encoding="utf-8"), file=str(path))
    except OSError as exc:
        _log.error("Failed to read %s: %s", path, exc)
        return EXIT_INFRA
    except FormatError as exc:
        reporter.report(exc)
        _emit_diagnostics(reporter.messages, args.format, sys.stderr)
        return EXIT_INFRA

    transform = TRANSFORMS[args.transform]
    _log.info("Applying %s to %d statement(s)", args.transform, len(module.stmts))
    module = transform(module, reporter, config)

    with _output(args.output) as out:
        for stmt in module.stmts:
            out.write(stmt_source(stmt) + "\n")

    errors = _emit_diagnostics(reporter.messages, args.format, sys.stderr)
    return EXIT_ERROR if errors else EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--keep-unreferenced",
        action="store_true",
        help="Pass through arguments no specifier consumes (default: drop them).",
    )
    p.add_argument(
        "--no-validate-text",
        action="store_true",
        help="Skip the static check of %%s byte-string arguments.",
    )
    p.add_argument(
        "--encoding",
        default="utf-8",
        metavar="CODEC",
        help="Narrow-string encoding (default: utf-8).",
    )
    p.add_argument(
        "--escape-braces",
        action="store_true",
        help="Double literal { and } in the rendered format string.",
    )
    p.add_argument(
        "-f", "--format",
        choices=["gcc", "json"],
        default="gcc",
        help="Diagnostic format (default: gcc).",
    )
    p.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fmtargs",
        description="Convert printf-style format strings and their arguments "
                    "into format-macro invocations.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )
    subparsers = parser.add_subparsers(title="commands", metavar="COMMAND")

    # --- convert -----------------------------------------------------------
    p_convert = subparsers.add_parser(
        "convert",
        help="Convert one format string and its arguments.",
        description=(
            "Convert FMT (C escapes allowed) and its argument expressions, "
            "given as S-expressions, to a macro invocation."
        ),
    )
    p_convert.add_argument("fmt", metavar="FMT", help="printf format string.")
    p_convert.add_argument(
        "args", metavar="ARG", nargs="*",
        help="Argument expression (S-expression syntax).",
    )
    p_convert.add_argument(
        "--macro",
        default="format_args",
        help="Plain macro name (default: format_args).",
    )
    p_convert.add_argument(
        "--ln-macro",
        default=None,
        metavar="NAME",
        help="Newline-variant macro name; enables trailing-newline folding.",
    )
    p_convert.add_argument(
        "--coercions",
        action="store_true",
        help="Also list the coercion applied to each argument.",
    )
    _add_config_args(p_convert)
    p_convert.set_defaults(func=cmd_convert)

    # --- pieces ------------------------------------------------------------
    p_pieces = subparsers.add_parser(
        "pieces",
        help="Dump the parsed pieces of a format string.",
    )
    p_pieces.add_argument("fmt", metavar="FMT", help="printf format string.")
    p_pieces.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )
    p_pieces.set_defaults(func=cmd_pieces)

    # --- rewrite -----------------------------------------------------------
    p_rewrite = subparsers.add_parser(
        "rewrite",
        help="Rewrite call sites in a module file.",
        description=(
            "Read a module of (extern ...) and (stmt ...) forms, apply a "
            "rewrite and print the resulting statements."
        ),
    )
    p_rewrite.add_argument(
        "module_file", metavar="MODULE", help="Module file (S-expressions)."
    )
    p_rewrite.add_argument(
        "-t", "--transform",
        choices=sorted(TRANSFORMS),
        default="convert_printfs",
        help="Rewrite to apply (default: convert_printfs).",
    )
    _add_config_args(p_rewrite)
    p_rewrite.set_defaults(func=cmd_rewrite)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the fmtargs CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    # No subcommand given → print help.
    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
