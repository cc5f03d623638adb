# tests/test_printer.py
"""
Tests for rendering nodes as target source text.
"""

import pytest

from fmtargs import ast as A
from fmtargs.errors import InternalError
from fmtargs.printer import escape_bytes, escape_str, stmt_source, to_source, type_source


class TestEscaping:

    @pytest.mark.parametrize("value,expected", [
        ("plain", '"plain"'),
        ("a\nb", '"a\\nb"'),
        ('say "x"', '"say \\"x\\""'),
        ("back\\slash", '"back\\\\slash"'),
        ("tab\t", '"tab\\t"'),
        ("nul\0", '"nul\\0"'),
        ("bell\x07", '"bell\\u{7}"'),
        ("{:}", '"{:}"'),
        ("héllo", '"héllo"'),
    ])
    def test_escape_str(self, value, expected):
        assert escape_str(value) == expected

    def test_escape_bytes(self):
        assert escape_bytes(b"a\xff\0\n") == 'b"a\\xff\\0\\n"'


class TestTypes:

    def test_path_type(self):
        assert type_source(A.PathType(("libc", "c_char"))) == "libc::c_char"

    def test_global_path_type(self):
        assert type_source(A.PathType(("std", "ffi"), global_=True)) == "::std::ffi"

    def test_pointers(self):
        ty = A.PtrType(A.PtrType(A.PathType.of("u8")), mutable=True)
        assert type_source(ty) == "*mut *const u8"


class TestExpressions:

    def test_call(self):
        e = A.Call(A.Path.of("f"), (A.IntLit(1), A.StrLit("s")))
        assert to_source(e) == 'f(1, "s")'

    def test_method_chain(self):
        e = A.MethodCall(A.MethodCall(A.Path.of("s"), "trim"), "len")
        assert to_source(e) == "s.trim().len()"

    def test_macro(self):
        e = A.MacroCall("println", (A.StrLit("{:}"), A.Path.of("x")))
        assert to_source(e) == 'println!("{:}", x)'

    def test_nested_casts_unparenthesized(self):
        e = A.Cast(A.Cast(A.Path.of("b"), A.PathType.of("u8")), A.PathType.of("char"))
        assert to_source(e) == "b as u8 as char"

    def test_cast_of_ascription_parenthesized(self):
        inner = A.TypeAscription(A.Path.of("x"), A.PathType.of("u8"))
        e = A.Cast(inner, A.PathType.of("i32"))
        assert to_source(e) == "(x: u8) as i32"

    def test_cast_of_complex_opaque(self):
        e = A.Cast(A.Opaque("a + b"), A.PathType.of("u32"))
        assert to_source(e) == "(a + b) as u32"

    def test_cast_of_simple_opaque(self):
        e = A.Cast(A.Opaque("self::COUNT"), A.PathType.of("u32"))
        assert to_source(e) == "self::COUNT as u32"

    def test_method_on_block(self):
        e = A.MethodCall(A.Block((A.ExprStmt(A.Path.of("x"), semi=False),)), "len")
        assert to_source(e) == "({ x }).len()"

    def test_unknown_node(self):
        with pytest.raises(InternalError):
            to_source(object())


class TestStatements:

    def test_expr_stmt(self):
        assert stmt_source(A.ExprStmt(A.Call(A.Path.of("f")))) == "f();"

    def test_tail_expr(self):
        assert stmt_source(A.ExprStmt(A.Path.of("x"), semi=False)) == "x"

    def test_macro_stmt(self):
        assert stmt_source(A.MacroStmt(A.MacroCall("print", (A.StrLit("x"),)))) == 'print!("x");'
