"""fmtargs/conversion.py – per-specifier semantics.

A :class:`ConversionSpec` knows two things:

* how it is written in the target dialect (``render``), where the value's
  type comes from the coerced argument rather than the specifier letter,
  so only hex keeps a suffix;
* which arguments it consumes and how each must be coerced to keep C
  varargs promotion behaviour (``assign_coercions``).

Arguments are consumed left to right: ``*`` width, then ``*`` precision,
then the value itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from fmtargs import ast as A
from fmtargs.errors import (
    FmtErrorCodes,
    InternalError,
    InvalidTextArgumentError,
)

__all__ = [
    "ConvKind",
    "LiteralAmount",
    "NextArgAmount",
    "NEXT_ARG",
    "Amount",
    "ConversionSpec",
    "CoercionKind",
    "CoercionTable",
]

_MASK32 = 0xFFFF_FFFF
_MASK64 = 0xFFFF_FFFF_FFFF_FFFF


# ===================================================================== #
#  Specifier model                                                       #
# ===================================================================== #

class ConvKind(Enum):
    """Conversion type letter; the value is the C letter itself."""

    INT = "d"
    UINT = "u"
    HEX = "x"
    HEX_UPPER = "X"
    CHAR = "c"
    STR = "s"

    @property
    def is_hex(self) -> bool:
        return self in (ConvKind.HEX, ConvKind.HEX_UPPER)

    @property
    def uppercase(self) -> bool:
        return self is ConvKind.HEX_UPPER


@dataclass(frozen=True, slots=True)
class LiteralAmount:
    value: int

    def render(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class NextArgAmount:
    """``*``: the amount is read from the next positional argument."""

    def render(self) -> str:
        return "*"


NEXT_ARG = NextArgAmount()

Amount = Union[LiteralAmount, NextArgAmount]


# ===================================================================== #
#  Coercions                                                             #
# ===================================================================== #

def _cast(e: A.Expr, *ty: str) -> A.Cast:
    return A.Cast(e, A.PathType(ty))


class CoercionKind(Enum):
    """Typed conversion applied to one argument before the rewritten call."""

    AS_SIGNED_INT32 = "i32"
    AS_UNSIGNED_INT32 = "u32"
    AS_USIZE = "usize"
    AS_CHAR_FROM_BYTE = "char"
    AS_DECODED_CSTRING = "str"

    def apply(self, e: A.Expr) -> A.Expr:
        """Wrap expression *e* in this coercion."""
        if self is CoercionKind.AS_CHAR_FROM_BYTE:
            return _cast(_cast(e, "u8"), "char")
        if self is CoercionKind.AS_DECODED_CSTRING:
            ptr = A.Cast(e, A.PtrType(A.PathType(("libc", "c_char"))))
            cstr = A.Call(A.Path.of("std", "ffi", "CStr", "from_ptr", global_=True), (ptr,))
            text = A.MethodCall(A.MethodCall(cstr, "to_str"), "unwrap")
            return A.Block((A.ExprStmt(text, semi=False),), unsafe=True)
        return _cast(e, self.value)

    def coerce(self, value: Any, encoding: str = "utf-8") -> Any:
        """Perform this coercion on a concrete value.

        Integers wrap the way a C cast does.  ``AS_DECODED_CSTRING``
        takes a byte buffer, stops at the first NUL and decodes it;
        ``None`` (a null pointer), undecodable bytes, text the encoding
        cannot represent, or an unknown encoding raise
        :class:`InvalidTextArgumentError`.
        """
        if self is CoercionKind.AS_SIGNED_INT32:
            v = int(value) & _MASK32
            return v - (1 << 32) if v & 0x8000_0000 else v
        if self is CoercionKind.AS_UNSIGNED_INT32:
            return int(value) & _MASK32
        if self is CoercionKind.AS_USIZE:
            return int(value) & _MASK64
        if self is CoercionKind.AS_CHAR_FROM_BYTE:
            return chr(int(value) & 0xFF)
        return decode_c_string(value, encoding)


def decode_c_string(value: Any, encoding: str = "utf-8",
                    arg_index: Optional[int] = None) -> str:
    """Decode a NUL-terminated narrow string."""
    if value is None:
        raise InvalidTextArgumentError(
            "null pointer passed for %s",
            code=FmtErrorCodes.NULL_TEXT_ARGUMENT,
            arg_index=arg_index,
        )
    try:
        if isinstance(value, str):
            raw = value.encode(encoding)
        else:
            raw = bytes(value)
        nul = raw.find(b"\0")
        if nul >= 0:
            raw = raw[:nul]
        return raw.decode(encoding)
    except LookupError as exc:
        raise InvalidTextArgumentError(
            f"unknown narrow encoding {encoding!r}",
            arg_index=arg_index,
        ) from exc
    except UnicodeEncodeError as exc:
        raise InvalidTextArgumentError(
            f"%s argument is not representable in {encoding}: {exc.reason} "
            f"at character {exc.start}",
            arg_index=arg_index,
        ) from exc
    except UnicodeDecodeError as exc:
        raise InvalidTextArgumentError(
            f"%s argument is not valid {encoding} text: {exc.reason} "
            f"at byte {exc.start}",
            arg_index=arg_index,
        ) from exc


_VALUE_COERCION: Dict[ConvKind, CoercionKind] = {
    ConvKind.INT: CoercionKind.AS_SIGNED_INT32,
    ConvKind.UINT: CoercionKind.AS_UNSIGNED_INT32,
    ConvKind.HEX: CoercionKind.AS_UNSIGNED_INT32,
    ConvKind.HEX_UPPER: CoercionKind.AS_UNSIGNED_INT32,
    ConvKind.CHAR: CoercionKind.AS_CHAR_FROM_BYTE,
    ConvKind.STR: CoercionKind.AS_DECODED_CSTRING,
}


class CoercionTable:
    """Argument index -> :class:`CoercionKind`, in ascending index order.

    Indices are positions in the argument list whose slot 0 is the format
    string itself, so the first consumed argument is index 1.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, CoercionKind] = {}

    def insert(self, index: int, kind: CoercionKind) -> None:
        if index in self._entries:
            raise InternalError(f"argument {index} coerced twice")
        if self._entries and index < self.max_index:
            raise InternalError(f"argument {index} inserted out of order")
        self._entries[index] = kind

    def get(self, index: int) -> Optional[CoercionKind]:
        return self._entries.get(index)

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __getitem__(self, index: int) -> CoercionKind:
        return self._entries[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def items(self) -> Iterator[Tuple[int, CoercionKind]]:
        return iter(self._entries.items())

    @property
    def max_index(self) -> int:
        """Highest consumed index, 0 if nothing was consumed."""
        return next(reversed(self._entries), 0)

    def as_dict(self) -> Dict[int, CoercionKind]:
        return dict(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CoercionTable):
            return list(self.items()) == list(other.items())
        if isinstance(other, dict):
            return self._entries == other
        return NotImplemented

    def __repr__(self) -> str:
        inner = ", ".join(f"{i}: {k.name}" for i, k in self.items())
        return f"CoercionTable({{{inner}}})"


# ===================================================================== #
#  ConversionSpec                                                        #
# ===================================================================== #

@dataclass(frozen=True, slots=True)
class ConversionSpec:
    kind: ConvKind
    width: Optional[Amount] = None
    precision: Optional[Amount] = None

    def render(self) -> str:
        """Target placeholder text, e.g. ``{:}``, ``{:*.3x}``."""
        buf = ["{:"]
        if self.width is not None:
            buf.append(self.width.render())
        if self.precision is not None:
            buf.append(".")
            buf.append(self.precision.render())
        if self.kind.is_hex:
            buf.append(self.kind.value)
        buf.append("}")
        return "".join(buf)

    def value_coercion(self) -> CoercionKind:
        return _VALUE_COERCION[self.kind]

    def assign_coercions(self, index: int, table: CoercionTable) -> int:
        """Record the coercions for the arguments this specifier consumes,
        starting at *index*; return the next unconsumed index."""
        if self.width == NEXT_ARG:
            table.insert(index, CoercionKind.AS_USIZE)
            index += 1
        if self.precision == NEXT_ARG:
            table.insert(index, CoercionKind.AS_USIZE)
            index += 1
        table.insert(index, self.value_coercion())
        return index + 1

    def arg_count(self) -> int:
        return 1 + (self.width == NEXT_ARG) + (self.precision == NEXT_ARG)
