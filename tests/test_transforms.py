# tests/test_transforms.py
"""
Tests for the call-site rewrites convert_printfs and convert_format_args.
"""

import pytest

from fmtargs import ast as A
from fmtargs.assembly import ConversionConfig
from fmtargs.errors import FmtErrorCodes
from fmtargs.printer import stmt_source
from fmtargs.transforms import TRANSFORMS, convert_format_args, convert_printfs
from tests.conftest import (
    FPRINTF_OTHER_STREAM,
    FPRINTF_STDERR,
    PRINTF_BAD_SPECIFIER,
    PRINTF_BYTES_FORMAT,
    PRINTF_HELLO,
    PRINTF_IN_BLOCK,
    PRINTF_NO_NEWLINE,
    PRINTF_NOT_LIBC,
    PRINTF_STAR_PRECISION,
    PRINTF_UNDECLARED,
    TARGET_CALL,
    TARGET_CALL_NO_LITERAL,
    TARGET_CALL_WITH_CASTS,
    module_of,
)


def _sources(module):
    return [stmt_source(s) for s in module.stmts]


class TestConvertPrintfs:

    def test_printf_with_newline(self, reporter):
        out = convert_printfs(module_of(PRINTF_HELLO), reporter)
        assert _sources(out) == ['println!("hello {:}", 123 as i32);']
        assert len(reporter) == 0

    def test_printf_without_newline(self):
        out = convert_printfs(module_of(PRINTF_NO_NEWLINE))
        assert _sources(out) == ['print!("{:x}|{:X}", a as u32, b as u32);']

    def test_fprintf_stderr(self):
        out = convert_printfs(module_of(FPRINTF_STDERR))
        assert _sources(out) == [
            'eprintln!("oops: {:}", unsafe { ::std::ffi::CStr::from_ptr('
            'msg as *const libc::c_char).to_str().unwrap() });'
        ]

    def test_star_precision(self):
        out = convert_printfs(module_of(PRINTF_STAR_PRECISION))
        (src,) = _sources(out)
        assert src.startswith('println!("{:.*}", n as usize, unsafe {')

    def test_result_is_macro_statement(self):
        out = convert_printfs(module_of(PRINTF_HELLO))
        (stmt,) = out.stmts
        assert isinstance(stmt, A.MacroStmt)
        assert stmt.mac.name == "println"
        assert stmt.loc.line == 4

    def test_requires_no_mangle(self):
        module = module_of(PRINTF_NOT_LIBC)
        assert convert_printfs(module) == module

    def test_requires_declaration(self):
        module = module_of(PRINTF_UNDECLARED)
        assert convert_printfs(module) == module

    def test_fprintf_to_other_stream_untouched(self):
        module = module_of(FPRINTF_OTHER_STREAM)
        assert convert_printfs(module) == module

    def test_nested_block(self):
        out = convert_printfs(module_of(PRINTF_IN_BLOCK))
        assert _sources(out) == ['unsafe { println!("in block {:}", ch as u8 as char); };']

    def test_bad_call_left_untouched(self, reporter):
        out = convert_printfs(module_of(PRINTF_BAD_SPECIFIER), reporter)
        assert _sources(out) == [
            'println!("ok {:}", 1 as i32);',
            'printf("bad %q\\n", 2);',
            'println!("ok {:}", 3 as u32);',
        ]
        (msg,) = reporter.errors
        assert msg.code == FmtErrorCodes.UNRECOGNIZED_CONVERSION
        assert msg.span.file == "calls.sexp"
        assert msg.span.line == 5
        assert msg.span.offset == 4

    def test_bad_call_logged(self, caplog):
        convert_printfs(module_of(PRINTF_BAD_SPECIFIER))
        assert "leaving call" in caplog.text

    def test_byte_string_format(self):
        out = convert_printfs(module_of(PRINTF_BYTES_FORMAT))
        assert _sources(out)[0] == 'println!("x {:}", 1 as i32);'

    def test_unknown_encoding_isolated_to_call(self, reporter):
        module = module_of(PRINTF_BYTES_FORMAT)
        config = ConversionConfig(narrow_encoding="no-such-codec")
        out = convert_printfs(module, reporter, config)
        assert out.stmts[0] == module.stmts[0]
        assert _sources(out)[1] == 'println!("y {:}", 2 as i32);'
        (msg,) = reporter.errors
        assert msg.code == FmtErrorCodes.INVALID_TEXT_ARGUMENT
        assert msg.span.line == 4

    def test_expression_statement_without_semicolon(self):
        call = A.Call(A.Path.of("printf"), (A.StrLit("x\n"),))
        module = A.Module(
            (A.ForeignItem("printf", A.ForeignKind.FN),),
            (A.ExprStmt(call, semi=False),),
        )
        assert convert_printfs(module) == module

    def test_qualified_callee(self):
        call = A.Call(A.Path.of("libc", "printf"), (A.StrLit("%d\n"), A.IntLit(1)))
        module = A.Module(
            (A.ForeignItem("printf", A.ForeignKind.FN),),
            (A.ExprStmt(call),),
        )
        assert _sources(convert_printfs(module)) == ['println!("{:}", 1 as i32);']


class TestConvertFormatArgs:

    def test_target_call(self):
        out = convert_format_args(module_of(TARGET_CALL))
        assert _sources(out) == [
            'my_printf(format_args!("x={:} y={:5.3x}\\n", x as i32, y as u32));'
        ]

    def test_casts_with_fmt_str_mark(self):
        out = convert_format_args(module_of(TARGET_CALL_WITH_CASTS))
        assert _sources(out) == [
            'my_printf(format_args!("{:} of {:}", done as u32, total as u32));'
        ]

    def test_no_literal_reported(self, reporter):
        module = module_of(TARGET_CALL_NO_LITERAL)
        out = convert_format_args(module, reporter)
        assert out == module
        (msg,) = reporter.errors
        assert msg.code == FmtErrorCodes.FORMAT_STRING_NOT_FOUND
        assert msg.span.line == 1

    def test_leading_arguments_kept(self):
        expr = A.Call(
            A.Path.of("write_fmt"),
            (A.Path.of("out"), A.with_marks(A.StrLit("%c"), "target"), A.Path.of("c")),
        )
        out = convert_format_args(expr)
        assert isinstance(out, A.Call)
        assert out.args[0] == A.Path.of("out")
        assert isinstance(out.args[1], A.MacroCall)
        assert out.args[1].name == "format_args"

    def test_unmarked_call_untouched(self):
        expr = A.Call(A.Path.of("f"), (A.StrLit("%d"), A.Path.of("x")))
        assert convert_format_args(expr) == expr

    def test_config_is_honoured(self):
        config = ConversionConfig(keep_unreferenced_args=True)
        expr = A.Call(
            A.Path.of("f"),
            (A.with_marks(A.StrLit("none"), "target"), A.Path.of("extra")),
        )
        out = convert_format_args(expr, config=config)
        assert out.args[0].args == (A.StrLit("none"), A.Path.of("extra"))


class TestRegistry:

    @pytest.mark.parametrize("name", ["convert_format_args", "convert_printfs"])
    def test_registered(self, name):
        assert TRANSFORMS[name].__name__ == name
