"""fmtargs/spec_parser.py – single-pass scanner over a printf format string.

Grammar of one specifier (flags and length modifiers are not accepted)::

    '%' ( '%' | width? ( '.' amount )? type )
    width  ::= '*' | [1-9][0-9]*
    amount ::= '*' | [0-9]+
    type   ::= 'd' | 'u' | 'x' | 'X' | 'c' | 's'

The scanner yields :class:`Text` and :class:`Conv` pieces lazily and in
order; together they cover the input exactly once.  It is a one-shot
iterator: argument indices are assigned while the pieces are consumed, so
there is no way to rewind it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

from fmtargs.conversion import (
    NEXT_ARG,
    Amount,
    ConversionSpec,
    ConvKind,
    LiteralAmount,
)
from fmtargs.errors import FmtErrorCodes, MalformedSpecifierError

__all__ = [
    "Text",
    "Conv",
    "Piece",
    "SpecParser",
    "parse_format",
]

_DIGITS = "0123456789"


@dataclass(frozen=True, slots=True)
class Text:
    """Literal text; ``offset`` is where it starts in the format string."""

    text: str
    offset: int = 0


@dataclass(frozen=True, slots=True)
class Conv:
    """One conversion specifier and the raw text it was parsed from."""

    spec: ConversionSpec
    offset: int = 0
    source: str = ""


Piece = Union[Text, Conv]


class SpecParser:
    """Iterator of :data:`Piece` values over *fmt*.

    >>> [p.text if isinstance(p, Text) else p.spec.kind.name
    ...  for p in SpecParser("a%db%%")]
    ['a', 'INT', 'b', '%']
    """

    def __init__(self, fmt: str) -> None:
        self.s = fmt
        self.pos = 0
        self._pieces = self._scan()

    def __iter__(self) -> Iterator[Piece]:
        return self

    def __next__(self) -> Piece:
        return next(self._pieces)

    # -- character helpers ------------------------------------------------

    def _peek(self) -> str:
        return self.s[self.pos] if self.pos < len(self.s) else ""

    def _skip(self) -> None:
        self.pos += 1

    # -- scanning ---------------------------------------------------------

    def _scan(self) -> Iterator[Piece]:
        s = self.s
        while True:
            start = s.find("%", self.pos)
            if start < 0:
                break
            if start > self.pos:
                yield Text(s[self.pos:start], self.pos)
            self.pos = start + 1

            if self._peek() == "%":
                self._skip()
                yield Text("%", start)
                continue

            width: Optional[Amount] = None
            precision: Optional[Amount] = None
            c = self._peek()
            if c == "*" or (c and c in "123456789"):
                width = self._parse_amount(start)
            if self._peek() == ".":
                self._skip()
                precision = self._parse_amount(start)
            kind = self._parse_kind(start)
            yield Conv(ConversionSpec(kind, width, precision), start, s[start:self.pos])

        if self.pos < len(s):
            rest = self.pos
            self.pos = len(s)
            yield Text(s[rest:], rest)

    def _parse_amount(self, start: int) -> Amount:
        if self._peek() == "*":
            self._skip()
            return NEXT_ARG

        begin = self.pos
        while self._peek() and self._peek() in _DIGITS:
            self._skip()
        if self.pos == begin:
            raise MalformedSpecifierError(
                f"missing precision in conversion specifier "
                f"{self.s[start:self.pos + 1]!r}",
                offset=start,
                specifier=self.s[start:self.pos + 1],
                code=FmtErrorCodes.MISSING_PRECISION,
            )
        return LiteralAmount(int(self.s[begin:self.pos]))

    def _parse_kind(self, start: int) -> ConvKind:
        c = self._peek()
        if not c:
            raise MalformedSpecifierError(
                f"incomplete conversion specifier {self.s[start:]!r} "
                f"at end of format string",
                offset=start,
                specifier=self.s[start:],
                code=FmtErrorCodes.INCOMPLETE_SPECIFIER,
            )
        self._skip()
        try:
            return ConvKind(c)
        except ValueError:
            raise MalformedSpecifierError(
                f"unrecognized conversion spec {c!r} in "
                f"{self.s[start:self.pos]!r}",
                offset=start,
                specifier=self.s[start:self.pos],
                hint="supported conversions are %d %u %x %X %c %s and %%",
            ) from None


def parse_format(fmt: str) -> List[Piece]:
    """Parse *fmt* eagerly into a list of pieces."""
    return list(SpecParser(fmt))
