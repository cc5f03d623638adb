# fmtargs/errors.py
"""
fmtargs Error Types and Reporting Module

Error handling for the format-string conversion pipeline.  Every failure
is attributable to one call site (and, where it makes sense, one argument
index) so that a rewrite run can skip the offending call and continue with
the rest.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  FormatError (base)                                                         │
│  ├── MalformedSpecifierError  - Unrecognized / incomplete conversion        │
│  │   └── ArgumentOverrunError - Specifier consumes a missing argument       │
│  ├── InvalidTextArgumentError - C string argument is not valid text         │
│  ├── FormatStringNotFoundError- No literal under the format argument        │
│  ├── ReaderError              - Malformed S-expression input                │
│  └── InternalError            - Bugs (should never happen)                  │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error has a unique code following the pattern FMT-XXXX:
  - 1000-1999: Format string parse errors
  - 2000-2999: Argument errors
  - 3000-3999: Call-site / marker errors
  - 4000-4999: Reader errors
  - 9000-9999: Internal errors

Example Usage:
──────────────
    from fmtargs.errors import ErrorReporter, MalformedSpecifierError

    reporter = ErrorReporter(source_file="calls.sexp")
    try:
        macro = build_format_macro("print", "println", None, args)
    except MalformedSpecifierError as exc:
        reporter.report(exc)

    if reporter.has_errors():
        for msg in reporter.messages:
            print(msg.to_gcc_format())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto, unique
from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity levels for conversion diagnostics."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    def __lt__(self, other: "ErrorSeverity") -> bool:
        """Allow severity comparison (FATAL > ERROR > WARNING > INFO)."""
        order = [
            ErrorSeverity.INFO,
            ErrorSeverity.WARNING,
            ErrorSeverity.ERROR,
            ErrorSeverity.FATAL,
        ]
        return order.index(self) < order.index(other)

    def is_error(self) -> bool:
        """Check if this severity represents an error (not warning/info)."""
        return self in (ErrorSeverity.FATAL, ErrorSeverity.ERROR)


@unique
class ErrorPhase(Enum):
    """Pipeline phase where the error occurred."""

    PARSE = "parse"            # format-string scanner
    ARGUMENT = "argument"      # Coercion targets
    CALL_SITE = "call-site"    # Locating the format string
    READER = "reader"          # S-expression input
    INTERNAL = "internal"


@unique
class ErrorCategory(Enum):
    """Fine-grained error categories for filtering and statistics."""

    UNRECOGNIZED_CONVERSION = auto()
    INCOMPLETE_SPECIFIER = auto()
    ARGUMENT_OVERRUN = auto()
    INVALID_TEXT = auto()
    NO_FORMAT_LITERAL = auto()
    AMBIGUOUS_MARK = auto()
    MALFORMED_INPUT = auto()
    INTERNAL_ERROR = auto()


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorCode:
    """
    Structured error code of the form ``FMT-NNNN``.

    Codes compare equal to their string form so tests and filters can
    write ``exc.code == "FMT-1000"``.
    """

    __slots__ = ("prefix", "number", "category", "phase", "default_severity")

    def __init__(
        self,
        prefix: str,
        number: int,
        category: ErrorCategory,
        phase: ErrorPhase,
        default_severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.category = category
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.category.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class FmtErrorCodes:
    """Predefined error codes."""

    # ═══════════════════════════════════════════════════════════════════════════
    # PARSE ERRORS (1000-1999)
    # ═══════════════════════════════════════════════════════════════════════════

    UNRECOGNIZED_CONVERSION = ErrorCode(
        "FMT", 1000, ErrorCategory.UNRECOGNIZED_CONVERSION, ErrorPhase.PARSE
    )
    INCOMPLETE_SPECIFIER = ErrorCode(
        "FMT", 1001, ErrorCategory.INCOMPLETE_SPECIFIER, ErrorPhase.PARSE
    )
    MISSING_PRECISION = ErrorCode(
        "FMT", 1002, ErrorCategory.INCOMPLETE_SPECIFIER, ErrorPhase.PARSE
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # ARGUMENT ERRORS (2000-2999)
    # ═══════════════════════════════════════════════════════════════════════════

    ARGUMENT_OVERRUN = ErrorCode(
        "FMT", 2000, ErrorCategory.ARGUMENT_OVERRUN, ErrorPhase.ARGUMENT
    )
    INVALID_TEXT_ARGUMENT = ErrorCode(
        "FMT", 2001, ErrorCategory.INVALID_TEXT, ErrorPhase.ARGUMENT
    )
    NULL_TEXT_ARGUMENT = ErrorCode(
        "FMT", 2002, ErrorCategory.INVALID_TEXT, ErrorPhase.ARGUMENT
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # CALL-SITE ERRORS (3000-3999)
    # ═══════════════════════════════════════════════════════════════════════════

    FORMAT_STRING_NOT_FOUND = ErrorCode(
        "FMT", 3000, ErrorCategory.NO_FORMAT_LITERAL, ErrorPhase.CALL_SITE
    )
    MULTIPLE_FORMAT_MARKS = ErrorCode(
        "FMT", 3001, ErrorCategory.AMBIGUOUS_MARK, ErrorPhase.CALL_SITE,
        ErrorSeverity.WARNING
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # READER ERRORS (4000-4999)
    # ═══════════════════════════════════════════════════════════════════════════

    MALFORMED_INPUT = ErrorCode(
        "FMT", 4000, ErrorCategory.MALFORMED_INPUT, ErrorPhase.READER
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # INTERNAL ERRORS (9000-9999)
    # ═══════════════════════════════════════════════════════════════════════════

    INTERNAL_ERROR = ErrorCode(
        "FMT", 9000, ErrorCategory.INTERNAL_ERROR, ErrorPhase.INTERNAL,
        ErrorSeverity.FATAL
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATION TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """
    Where a diagnostic points.

    ``line``/``column`` locate the call site in its input file;
    ``offset`` is the character offset inside the format string (or -1).
    """

    file: str = ""
    line: int = 0
    column: int = 0
    offset: int = -1

    @classmethod
    def from_node(cls, node: Any) -> "SourceSpan":
        """Create a SourceSpan from an AST node carrying ``loc``."""
        return cls.from_loc(getattr(node, "loc", None))

    @classmethod
    def from_loc(cls, loc: Any) -> "SourceSpan":
        if loc is None or getattr(loc, "line", 0) == 0:
            return cls()
        return cls(
            file=getattr(loc, "file", ""),
            line=getattr(loc, "line", 0),
            column=getattr(loc, "col", 0),
        )

    def with_offset(self, offset: int) -> "SourceSpan":
        return SourceSpan(self.file, self.line, self.column, offset)

    def __str__(self) -> str:
        if not self.file and self.line == 0:
            return "<unknown location>"

        parts = []
        if self.file:
            parts.append(self.file)
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))

        return ":".join(parts)


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGE FORMATTING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ErrorMessage:
    """
    A complete diagnostic with all context.

    This is the internal representation of an error before it is printed
    or serialised.
    """

    code: ErrorCode
    message: str
    span: SourceSpan = field(default_factory=SourceSpan)
    severity: Optional[ErrorSeverity] = None  # None means use code's default
    arg_index: Optional[int] = None
    hint: str = ""

    def __post_init__(self) -> None:
        if self.severity is None:
            self.severity = self.code.default_severity

    def with_hint(self, hint: str) -> "ErrorMessage":
        self.hint = hint
        return self

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        severity = self.severity.value if self.severity else "error"
        where = ""
        if self.arg_index is not None:
            where = f" (argument {self.arg_index})"
        lines = [f"{self.span}: {severity}: {self.message}{where} [{self.code}]"]
        if self.hint:
            lines.append(f"hint: {self.hint}")
        return "\n".join(lines)

    def to_json(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "code": self.code.code,
            "message": self.message,
            "severity": self.severity.value if self.severity else "error",
            "location": {
                "file": self.span.file,
                "line": self.span.line,
                "column": self.span.column,
                "offset": self.span.offset,
            },
            "arg_index": self.arg_index,
            "phase": self.code.phase.value,
            "category": self.code.category.name,
            "hint": self.hint,
        }

    def __str__(self) -> str:
        return self.to_gcc_format()


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class FormatError(Exception):
    """
    Base exception for all fmtargs errors.

    Carries a structured :class:`ErrorMessage` so callers can print or
    collect it without re-deriving location details.
    """

    default_code: ErrorCode = FmtErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        arg_index: Optional[int] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.error_message = ErrorMessage(
            code=code or self.default_code,
            message=message,
            span=span or SourceSpan(),
            arg_index=arg_index,
            hint=hint,
        )

    @property
    def code(self) -> ErrorCode:
        return self.error_message.code

    @property
    def span(self) -> SourceSpan:
        return self.error_message.span

    @property
    def arg_index(self) -> Optional[int]:
        return self.error_message.arg_index

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_message.severity or ErrorSeverity.ERROR

    def at(self, span: SourceSpan) -> "FormatError":
        """Attach a call-site location, keeping any format-string offset."""
        offset = self.error_message.span.offset
        self.error_message.span = span.with_offset(offset) if offset >= 0 else span
        return self

    def to_gcc_format(self) -> str:
        return self.error_message.to_gcc_format()

    def __str__(self) -> str:
        return self.error_message.message


class MalformedSpecifierError(FormatError):
    """Unrecognized or incomplete conversion specifier.

    Unrecoverable for its call site: the whole call is left untouched.
    """

    default_code = FmtErrorCodes.UNRECOGNIZED_CONVERSION

    def __init__(
        self,
        message: str,
        offset: int = -1,
        specifier: str = "",
        code: Optional[ErrorCode] = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("span", SourceSpan(offset=offset))
        super().__init__(message, code=code, **kwargs)
        self.offset = offset
        self.specifier = specifier


class ArgumentOverrunError(MalformedSpecifierError):
    """A specifier consumes an argument index past the supplied arguments."""

    default_code = FmtErrorCodes.ARGUMENT_OVERRUN

    def __init__(self, arg_index: int, available: int, **kwargs: Any) -> None:
        super().__init__(
            f"format string consumes argument {arg_index} "
            f"but only {available} argument(s) follow it",
            arg_index=arg_index,
            hint="add the missing argument or remove the specifier",
            **kwargs,
        )
        self.available = available


class InvalidTextArgumentError(FormatError):
    """A ``%s`` argument cannot be decoded as text.

    Recoverable: the call site is reported and skipped.
    """

    default_code = FmtErrorCodes.INVALID_TEXT_ARGUMENT


class FormatStringNotFoundError(FormatError):
    """No string literal found beneath the format-string argument."""

    default_code = FmtErrorCodes.FORMAT_STRING_NOT_FOUND


class ReaderError(FormatError):
    """Raised when S-expression input cannot be mapped to a node."""

    default_code = FmtErrorCodes.MALFORMED_INPUT


class InternalError(FormatError):
    """Broken invariant inside fmtargs itself."""

    default_code = FmtErrorCodes.INTERNAL_ERROR


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR REPORTER
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorReporter:
    """
    Collects diagnostics over one rewrite run.

    Nothing here is shared between runs; create one reporter per input.
    """

    def __init__(self, source_file: str = "") -> None:
        self.source_file = source_file
        self.messages: List[ErrorMessage] = []

    def _span(self, span: Optional[SourceSpan]) -> SourceSpan:
        span = span or SourceSpan()
        if not span.file and self.source_file:
            span = SourceSpan(self.source_file, span.line, span.column, span.offset)
        return span

    def add(self, msg: ErrorMessage) -> ErrorMessage:
        msg.span = self._span(msg.span)
        self.messages.append(msg)
        return msg

    def error(
        self,
        code: ErrorCode,
        message: str,
        span: Optional[SourceSpan] = None,
        arg_index: Optional[int] = None,
        hint: str = "",
    ) -> ErrorMessage:
        return self.add(ErrorMessage(
            code=code, message=message, span=span or SourceSpan(),
            severity=ErrorSeverity.ERROR, arg_index=arg_index, hint=hint,
        ))

    def warning(
        self,
        code: ErrorCode,
        message: str,
        span: Optional[SourceSpan] = None,
        arg_index: Optional[int] = None,
        hint: str = "",
    ) -> ErrorMessage:
        return self.add(ErrorMessage(
            code=code, message=message, span=span or SourceSpan(),
            severity=ErrorSeverity.WARNING, arg_index=arg_index, hint=hint,
        ))

    def report(self, exc: FormatError) -> ErrorMessage:
        """Record a raised :class:`FormatError`."""
        return self.add(exc.error_message)

    def has_errors(self) -> bool:
        return any(m.severity is not None and m.severity.is_error()
                   for m in self.messages)

    @property
    def errors(self) -> List[ErrorMessage]:
        return [m for m in self.messages
                if m.severity is not None and m.severity.is_error()]

    @property
    def warnings(self) -> List[ErrorMessage]:
        return [m for m in self.messages if m.severity is ErrorSeverity.WARNING]

    def __len__(self) -> int:
        return len(self.messages)
