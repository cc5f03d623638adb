# tests/test_spec_parser.py
"""
Tests for the format-string scanner: text → Text / Conv pieces.
"""

import pytest

from fmtargs.conversion import NEXT_ARG, ConvKind, ConversionSpec, LiteralAmount
from fmtargs.errors import FmtErrorCodes, MalformedSpecifierError
from fmtargs.spec_parser import Conv, SpecParser, Text, parse_format


class TestPlainText:

    def test_empty_string(self):
        assert parse_format("") == []

    def test_no_percent(self):
        assert parse_format("hello world") == [Text("hello world", 0)]

    def test_double_percent(self):
        assert parse_format("100%%") == [Text("100", 0), Text("%", 3)]

    def test_only_double_percent(self):
        assert parse_format("%%") == [Text("%", 0)]

    def test_pieces_cover_input(self):
        fmt = "a%5db%%c%.*s"
        rebuilt = "".join(
            p.source if isinstance(p, Conv) else ("%%" if p.text == "%" else p.text)
            for p in parse_format(fmt)
        )
        assert rebuilt == fmt


class TestConversions:

    @pytest.mark.parametrize("fmt,kind", [
        ("%d", ConvKind.INT),
        ("%u", ConvKind.UINT),
        ("%x", ConvKind.HEX),
        ("%X", ConvKind.HEX_UPPER),
        ("%c", ConvKind.CHAR),
        ("%s", ConvKind.STR),
    ])
    def test_bare_letter(self, fmt, kind):
        (piece,) = parse_format(fmt)
        assert piece == Conv(ConversionSpec(kind), 0, fmt)

    def test_literal_width(self):
        (piece,) = parse_format("%10d")
        assert piece.spec.width == LiteralAmount(10)
        assert piece.spec.precision is None

    def test_star_width(self):
        (piece,) = parse_format("%*d")
        assert piece.spec.width == NEXT_ARG

    def test_literal_precision(self):
        (piece,) = parse_format("%.3s")
        assert piece.spec.width is None
        assert piece.spec.precision == LiteralAmount(3)

    def test_zero_precision(self):
        (piece,) = parse_format("%.0x")
        assert piece.spec.precision == LiteralAmount(0)

    def test_star_width_and_precision(self):
        (piece,) = parse_format("%*.*s")
        assert piece.spec == ConversionSpec(ConvKind.STR, NEXT_ARG, NEXT_ARG)
        assert piece.source == "%*.*s"

    def test_mixed_sequence_offsets(self):
        pieces = parse_format("a%db%%")
        assert pieces == [
            Text("a", 0),
            Conv(ConversionSpec(ConvKind.INT), 1, "%d"),
            Text("b", 3),
            Text("%", 4),
        ]

    def test_trailing_text(self):
        pieces = parse_format("%u items\n")
        assert pieces[-1] == Text(" items\n", 2)


class TestMalformed:

    def test_unrecognized_letter(self):
        with pytest.raises(MalformedSpecifierError) as exc_info:
            parse_format("value: %q")
        exc = exc_info.value
        assert exc.code == FmtErrorCodes.UNRECOGNIZED_CONVERSION
        assert exc.offset == 7
        assert exc.specifier == "%q"
        assert "'q'" in str(exc)

    def test_flag_is_rejected(self):
        with pytest.raises(MalformedSpecifierError):
            parse_format("%-5d")

    def test_leading_zero_width_is_rejected(self):
        with pytest.raises(MalformedSpecifierError) as exc_info:
            parse_format("%05d")
        assert exc_info.value.code == "FMT-1000"

    def test_length_modifier_is_rejected(self):
        with pytest.raises(MalformedSpecifierError):
            parse_format("%ld")

    def test_percent_at_end(self):
        with pytest.raises(MalformedSpecifierError) as exc_info:
            parse_format("abc%")
        assert exc_info.value.code == FmtErrorCodes.INCOMPLETE_SPECIFIER
        assert exc_info.value.offset == 3

    def test_width_at_end(self):
        with pytest.raises(MalformedSpecifierError) as exc_info:
            parse_format("%12")
        assert exc_info.value.code == FmtErrorCodes.INCOMPLETE_SPECIFIER

    def test_empty_precision(self):
        with pytest.raises(MalformedSpecifierError) as exc_info:
            parse_format("%.d")
        assert exc_info.value.code == FmtErrorCodes.MISSING_PRECISION

    def test_error_span_carries_offset(self):
        with pytest.raises(MalformedSpecifierError) as exc_info:
            parse_format("ok %d then %y")
        assert exc_info.value.span.offset == 11


class TestLaziness:

    def test_pieces_before_error_are_yielded(self):
        parser = SpecParser("a%d%q")
        assert next(parser) == Text("a", 0)
        assert isinstance(next(parser), Conv)
        with pytest.raises(MalformedSpecifierError):
            next(parser)

    def test_one_shot(self):
        parser = SpecParser("x%d")
        assert len(list(parser)) == 2
        assert list(parser) == []

    def test_iter_returns_self(self):
        parser = SpecParser("x")
        assert iter(parser) is parser
