# tests/test_errors.py
"""
Tests for error codes, diagnostics formatting and ErrorReporter.
"""

from fmtargs.errors import (
    ArgumentOverrunError,
    ErrorMessage,
    ErrorReporter,
    ErrorSeverity,
    FmtErrorCodes,
    FormatError,
    InvalidTextArgumentError,
    MalformedSpecifierError,
    SourceSpan,
)


class TestErrorCodes:

    def test_code_string(self):
        assert FmtErrorCodes.UNRECOGNIZED_CONVERSION.code == "FMT-1000"
        assert str(FmtErrorCodes.ARGUMENT_OVERRUN) == "FMT-2000"

    def test_compare_with_string(self):
        assert FmtErrorCodes.MISSING_PRECISION == "FMT-1002"
        assert FmtErrorCodes.MISSING_PRECISION != "FMT-1001"

    def test_default_severities(self):
        assert FmtErrorCodes.MULTIPLE_FORMAT_MARKS.default_severity is ErrorSeverity.WARNING
        assert FmtErrorCodes.INTERNAL_ERROR.default_severity is ErrorSeverity.FATAL
        assert FmtErrorCodes.INVALID_TEXT_ARGUMENT.default_severity is ErrorSeverity.ERROR

    def test_severity_order(self):
        assert ErrorSeverity.INFO < ErrorSeverity.WARNING < ErrorSeverity.ERROR
        assert ErrorSeverity.FATAL.is_error()
        assert not ErrorSeverity.WARNING.is_error()


class TestSourceSpan:

    def test_unknown(self):
        assert str(SourceSpan()) == "<unknown location>"

    def test_full(self):
        assert str(SourceSpan("a.sexp", 3, 5)) == "a.sexp:3:5"

    def test_from_unlocated_node(self):
        class Node:
            loc = None
        assert SourceSpan.from_node(Node()) == SourceSpan()

    def test_with_offset(self):
        assert SourceSpan("f", 1, 1).with_offset(9).offset == 9


class TestExceptions:

    def test_hierarchy(self):
        assert issubclass(ArgumentOverrunError, MalformedSpecifierError)
        assert issubclass(MalformedSpecifierError, FormatError)
        assert issubclass(InvalidTextArgumentError, FormatError)

    def test_str_is_message(self):
        exc = MalformedSpecifierError("bad specifier", offset=2, specifier="%q")
        assert str(exc) == "bad specifier"
        assert exc.span.offset == 2

    def test_at_keeps_offset(self):
        exc = MalformedSpecifierError("bad specifier", offset=2)
        exc.at(SourceSpan("f.sexp", 4, 1))
        assert exc.span == SourceSpan("f.sexp", 4, 1, 2)

    def test_overrun_message(self):
        exc = ArgumentOverrunError(3, 1)
        assert "argument 3" in str(exc)
        assert exc.arg_index == 3
        assert exc.code == FmtErrorCodes.ARGUMENT_OVERRUN


class TestErrorMessage:

    def test_gcc_format(self):
        msg = ErrorMessage(
            FmtErrorCodes.INVALID_TEXT_ARGUMENT, "not text",
            span=SourceSpan("calls.sexp", 2, 1), arg_index=1,
        )
        assert msg.to_gcc_format() == (
            "calls.sexp:2:1: error: not text (argument 1) [FMT-2001]"
        )

    def test_gcc_format_with_hint(self):
        msg = ErrorMessage(FmtErrorCodes.UNRECOGNIZED_CONVERSION, "bad").with_hint("try %d")
        assert msg.to_gcc_format().splitlines()[1] == "hint: try %d"

    def test_json(self):
        msg = ErrorMessage(
            FmtErrorCodes.MULTIPLE_FORMAT_MARKS, "two marks",
            span=SourceSpan("calls.sexp", 2, 1),
        )
        data = msg.to_json()
        assert data["code"] == "FMT-3001"
        assert data["severity"] == "warning"
        assert data["location"]["line"] == 2
        assert data["phase"] == "call-site"


class TestErrorReporter:

    def test_fills_in_source_file(self):
        reporter = ErrorReporter(source_file="calls.sexp")
        msg = reporter.report(MalformedSpecifierError("bad", offset=0))
        assert msg.span.file == "calls.sexp"
        assert msg.span.offset == 0

    def test_errors_and_warnings(self):
        reporter = ErrorReporter()
        reporter.warning(FmtErrorCodes.MULTIPLE_FORMAT_MARKS, "two marks")
        assert not reporter.has_errors()
        reporter.error(FmtErrorCodes.FORMAT_STRING_NOT_FOUND, "no literal")
        assert reporter.has_errors()
        assert len(reporter) == 2
        assert len(reporter.errors) == 1
        assert len(reporter.warnings) == 1
