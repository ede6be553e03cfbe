"""
Tests for token types.
"""

import pytest
from dataclasses import FrozenInstanceError

from appearance_check import (
    Boolean,
    CompositeKind,
    CompositeOperand,
    Name,
    Null,
    Numeric,
    Operator,
    PrecisionHint,
    StringLiteral,
    TokenKind,
)
from appearance_check.tokens import operators


class TestTokenKinds:
    """Every token class carries a fixed tag."""

    @pytest.mark.parametrize("token,kind", [
        (Operator("S"), TokenKind.OPERATOR),
        (Numeric(1.0), TokenKind.NUMERIC),
        (Name("F1"), TokenKind.NAME),
        (StringLiteral(b"x"), TokenKind.STRING),
        (CompositeOperand(CompositeKind.ARRAY), TokenKind.COMPOSITE),
        (Boolean(True), TokenKind.BOOLEAN),
        (Null(), TokenKind.NULL),
    ])
    def test_kind(self, token, kind):
        assert token.kind == kind

    def test_tokens_are_immutable(self):
        token = Operator("S")
        with pytest.raises(FrozenInstanceError):
            token.name = "f"

    def test_kind_is_not_a_field(self):
        """The tag cannot be passed in or changed per instance."""
        with pytest.raises(TypeError):
            Operator("S", kind=TokenKind.NAME)

    def test_equality_uses_values(self):
        assert Numeric(1.0, PrecisionHint.SINGLE) != Numeric(1.0, PrecisionHint.DOUBLE)
        assert Name("A") == Name("A")
        assert Operator("ID", inline_data=b"\x00") != Operator("ID")


class TestStringForms:
    """Tests for the human-readable forms used in mismatch details."""

    @pytest.mark.parametrize("token,text", [
        (Operator("re"), "re"),
        (Operator("ID", inline_data=b"abc"), "ID <3 bytes>"),
        (Numeric(10.0), "10"),
        (Numeric(10.003), "10.003"),
        (Numeric(10.001, PrecisionHint.SINGLE), "10.001"),
        (Name("GS0"), "/GS0"),
        (StringLiteral(b"Hi"), "string b'Hi'"),
        (Boolean(False), "false"),
        (Null(), "null"),
        (CompositeOperand(CompositeKind.ARRAY, (Numeric(1.0), Numeric(2.0))), "[array of 2]"),
        (CompositeOperand(CompositeKind.DICTIONARY, (Name("A"), Numeric(1.0))), "<<dictionary of 1>>"),
    ])
    def test_str(self, token, text):
        assert str(token) == text

    def test_long_string_truncated(self):
        assert str(StringLiteral(b"x" * 100)).endswith("...")


class TestHelpers:

    def test_operators(self):
        tokens = (Numeric(1.0), Operator("w"), Name("A"), Operator("gs"))
        assert operators(tokens) == ["w", "gs"]
