# tests/conftest.py
"""
Shared module sources and fixtures for the fmtargs test-suite.

Module sources are written in the reader's S-expression syntax.  String
atoms are C literal bodies, so ``\\n`` below is the two characters
backslash and ``n`` in the file, decoded to a newline by the reader.
"""

import pytest

from fmtargs import ast as A
from fmtargs.errors import ErrorReporter
from fmtargs.reader import read_module


LIBC_DECLS = """\
(extern fn printf no_mangle)
(extern fn fprintf no_mangle)
(extern static stderr no_mangle)
"""

PRINTF_HELLO = LIBC_DECLS + """\
(stmt (call printf "hello %d\\n" 123))
"""

PRINTF_NO_NEWLINE = LIBC_DECLS + """\
(stmt (call printf "%x|%X" a b))
"""

FPRINTF_STDERR = LIBC_DECLS + """\
(stmt (call fprintf stderr "oops: %s\\n" msg))
"""

PRINTF_STAR_PRECISION = LIBC_DECLS + """\
(stmt (call printf "%.*s\\n" n s))
"""

PRINTF_BAD_SPECIFIER = LIBC_DECLS + """\
(stmt (call printf "ok %d\\n" 1))
(stmt (call printf "bad %q\\n" 2))
(stmt (call printf "ok %u\\n" 3))
"""

PRINTF_BYTES_FORMAT = LIBC_DECLS + """\
(stmt (call printf (bytes "x %d\\n") 1))
(stmt (call printf "y %d\\n" 2))
"""

PRINTF_NOT_LIBC = """\
(extern fn printf)
(stmt (call printf "hello %d\\n" 1))
"""

PRINTF_UNDECLARED = """\
(stmt (call printf "hello %d\\n" 1))
"""

FPRINTF_OTHER_STREAM = LIBC_DECLS + """\
(stmt (call fprintf out "x %d\\n" 1))
"""

PRINTF_IN_BLOCK = LIBC_DECLS + """\
(stmt (unsafe (stmt (call printf "in block %c\\n" ch))))
"""

TARGET_CALL = """\
(stmt (call my_printf (mark target "x=%d y=%5.3x\\n") x y))
"""

TARGET_CALL_WITH_CASTS = """\
(stmt (call my_printf
        (mark target (cast (cast (mark fmt_str "%u of %u") (ptr u8)) (ptr libc::c_char)))
        done total))
"""

TARGET_CALL_NO_LITERAL = """\
(stmt (call my_printf (mark target (call get_fmt)) x))
"""


def module_of(text: str, file: str = "calls.sexp") -> A.Module:
    """Read *text* as a module file named *file*."""
    return read_module(text, file=file)


@pytest.fixture
def reporter():
    return ErrorReporter(source_file="calls.sexp")
