"""
Token Types for PDF Content Streams.

A content stream is a flat program of operands followed by operators:

    1 0 0 RG 0 0 10 10 re S

Every lexical unit becomes one immutable token. The set of token kinds is
closed: each token class carries a fixed ``kind`` tag, and code that needs to
branch on the kind of a token switches on ``token.kind`` instead of running
isinstance checks against an open set of classes.

Token kinds:
    OPERATOR   - drawing or state instruction (re, S, Tj, T*, ', ")
    NUMERIC    - integer or real operand
    NAME       - /Name operand
    STRING     - (literal) or <hex> string operand
    COMPOSITE  - [array] or <<dictionary>> operand holding nested tokens
    BOOLEAN    - true / false
    NULL       - null
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union


# =============================================================================
# ENUMS
# =============================================================================


class TokenKind(str, Enum):
    """Tag identifying the variant of a token."""

    OPERATOR = "operator"
    NUMERIC = "numeric"
    NAME = "name"
    STRING = "string"
    COMPOSITE = "composite"
    BOOLEAN = "boolean"
    NULL = "null"


class PrecisionHint(str, Enum):
    """
    How a numeric literal was written in the source.

    SINGLE: real literal with a decimal point ("1.000", ".5"). PDF producers
            treat reals as single-precision values and round them.
    DOUBLE: integer literal ("0", "-12"), exactly representable as a double.
    """

    SINGLE = "single"
    DOUBLE = "double"


class CompositeKind(str, Enum):
    """Structure of a composite operand."""

    ARRAY = "array"
    DICTIONARY = "dictionary"


# =============================================================================
# TOKENS
# =============================================================================


@dataclass(frozen=True)
class Operator:
    """
    A content stream operator.

    Attributes:
        name: Operator name exactly as written (e.g. "re", "T*", "'")
        inline_data: Raw image bytes, only set on the ID operator of an
            inline image (BI ... ID <data> EI)
    """

    name: str
    inline_data: Optional[bytes] = None

    kind: ClassVar[TokenKind] = TokenKind.OPERATOR

    def __str__(self) -> str:
        if self.inline_data is not None:
            return f"{self.name} <{len(self.inline_data)} bytes>"
        return self.name


@dataclass(frozen=True)
class Numeric:
    """
    A numeric operand.

    Attributes:
        value: Parsed value as a 64-bit float
        precision_hint: Whether the source was a real or an integer literal
    """

    value: float
    precision_hint: PrecisionHint = PrecisionHint.DOUBLE

    kind: ClassVar[TokenKind] = TokenKind.NUMERIC

    @property
    def is_integer(self) -> bool:
        """True if the source literal had no decimal point."""
        return self.precision_hint == PrecisionHint.DOUBLE

    def __str__(self) -> str:
        if self.is_integer and float(self.value).is_integer():
            return str(int(self.value))
        return repr(self.value)


@dataclass(frozen=True)
class Name:
    """A /Name operand with #xx escapes resolved (value excludes the slash)."""

    value: str

    kind: ClassVar[TokenKind] = TokenKind.NAME

    def __str__(self) -> str:
        return f"/{self.value}"


@dataclass(frozen=True)
class StringLiteral:
    """A literal or hexadecimal string operand, escapes resolved to raw bytes."""

    data: bytes

    kind: ClassVar[TokenKind] = TokenKind.STRING

    def __str__(self) -> str:
        text = repr(self.data)
        if len(text) > 40:
            text = text[:37] + "..."
        return f"string {text}"


@dataclass(frozen=True)
class Boolean:
    value: bool

    kind: ClassVar[TokenKind] = TokenKind.BOOLEAN

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Null:
    kind: ClassVar[TokenKind] = TokenKind.NULL

    def __str__(self) -> str:
        return "null"


@dataclass(frozen=True)
class CompositeOperand:
    """
    An array or dictionary operand.

    Dictionary elements alternate key (Name) and value, in source order:
    ``<< /MCID 0 >>`` holds ``(Name("MCID"), Numeric(0))``.

    Attributes:
        composite_kind: ARRAY or DICTIONARY
        elements: Nested tokens in source order
    """

    composite_kind: CompositeKind
    elements: tuple["Token", ...] = ()

    kind: ClassVar[TokenKind] = TokenKind.COMPOSITE

    def __len__(self) -> int:
        return len(self.elements)

    def pairs(self) -> list[tuple["Token", "Token"]]:
        """Key/value pairs of a dictionary operand."""
        if self.composite_kind != CompositeKind.DICTIONARY:
            raise TypeError("pairs() is only defined for dictionary operands")
        return list(zip(self.elements[0::2], self.elements[1::2]))

    def __str__(self) -> str:
        if self.composite_kind == CompositeKind.ARRAY:
            return f"[array of {len(self.elements)}]"
        return f"<<dictionary of {len(self.elements) // 2}>>"


Token = Union[Operator, Numeric, Name, StringLiteral, CompositeOperand, Boolean, Null]

TokenSequence = tuple[Token, ...]


def operators(tokens: TokenSequence) -> list[str]:
    """Return the operator names of a sequence, in order."""
    return [token.name for token in tokens if token.kind == TokenKind.OPERATOR]
