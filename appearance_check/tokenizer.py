"""
Content Stream Tokenizer.

Turns raw (already decoded) content stream bytes into an ordered tuple of
typed tokens. Only the operator/operand grammar of content streams is
understood; object syntax such as ``12 0 R``, ``obj`` or cross-reference
tables is not.

Grammar handled:
- whitespace (NUL, HT, LF, FF, CR, SP) and % comments separate tokens
- numbers: 12, -3, +.5, 1.000
- names: /F1, /A#20B
- literal strings with nesting and escapes: (a\\(b\\)c), (\\101)
- hex strings: <48656C6C6F>, <4 8 6>
- arrays [ ... ] and dictionaries << ... >>, nested to any depth
- true, false, null
- operators: any other run of regular characters (re, S, T*, ', ")
- inline images: BI <params> ID <binary data> EI

Usage:
    from appearance_check.tokenizer import tokenize

    tokens = tokenize(b"1 0 0 RG 0 0 10 10 re S")
    print(len(tokens))  # 10
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .exceptions import MalformedContentStream
from .tokens import (
    Boolean,
    CompositeKind,
    CompositeOperand,
    Name,
    Null,
    Numeric,
    Operator,
    PrecisionHint,
    StringLiteral,
    Token,
    TokenKind,
    TokenSequence,
)

logger = logging.getLogger(__name__)


WHITESPACE = b"\x00\t\n\x0c\r "
DELIMITERS = b"()<>[]{}/%"

_REGULAR_RUN = re.compile(rb"[^\x00\t\n\x0c\r ()<>\[\]{}/%]+")
_NUMBER = re.compile(rb"[+-]?(?:\d+\.?\d*|\.\d+)")
_HEX_DIGITS = b"0123456789abcdefABCDEF"

# EI must be preceded by whitespace and followed by whitespace, a delimiter or EOF
_INLINE_IMAGE_END = re.compile(rb"[\x00\t\n\x0c\r ]EI(?=[\x00\t\n\x0c\r ()<>\[\]{}/%]|\Z)")

_LITERAL_ESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\x08",
    ord("f"): b"\x0c",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}

_KEYWORDS = {
    "true": Boolean(True),
    "false": Boolean(False),
    "null": Null(),
}


class ContentStreamTokenizer:
    """
    Single-pass tokenizer over one content stream buffer.

    The tokenizer is a pure function of its input: parse() can be called any
    number of times and always returns an equal tuple.

    Usage:
        tokenizer = ContentStreamTokenizer(data)
        tokens = tokenizer.parse()
    """

    def __init__(self, data: bytes):
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        if not isinstance(data, bytes):
            raise TypeError(f"Content stream must be bytes, got {type(data).__name__}")
        self.data = data
        self.pos = 0

    def parse(self) -> TokenSequence:
        """
        Tokenize the whole buffer.

        Returns:
            Tuple of tokens in source order (empty for an empty buffer)

        Raises:
            MalformedContentStream: If the buffer is not well-formed
        """
        self.pos = 0
        tokens = self._parse_until(None, 0)
        logger.debug(f"Tokenized {len(self.data)} bytes into {len(tokens)} tokens")
        return tuple(tokens)

    # -------------------------------------------------------------------------
    # Sequences
    # -------------------------------------------------------------------------

    def _parse_until(self, terminator: Optional[bytes], start: int) -> list[Token]:
        """Read tokens until the terminator (or EOF at top level)."""
        tokens: list[Token] = []
        while True:
            self._skip_whitespace_and_comments()

            if self.pos >= len(self.data):
                if terminator is None:
                    return tokens
                what = "array" if terminator == b"]" else "dictionary"
                raise MalformedContentStream(start, f"unterminated {what}")

            if terminator is not None and self.data.startswith(terminator, self.pos):
                self.pos += len(terminator)
                return tokens

            token = self._next_token(nested=terminator is not None)
            tokens.append(token)

    def _skip_whitespace_and_comments(self) -> None:
        data = self.data
        while self.pos < len(data):
            byte = data[self.pos]
            if byte in WHITESPACE:
                self.pos += 1
            elif byte == ord("%"):
                while self.pos < len(data) and data[self.pos] not in b"\r\n":
                    self.pos += 1
            else:
                break

    # -------------------------------------------------------------------------
    # Single tokens
    # -------------------------------------------------------------------------

    def _next_token(self, nested: bool) -> Token:
        start = self.pos
        byte = self.data[start]

        if byte == ord("/"):
            return self._read_name()
        if byte == ord("("):
            return self._read_literal_string()
        if byte == ord("<"):
            if self.data.startswith(b"<<", start):
                return self._read_dictionary()
            return self._read_hex_string()
        if byte == ord("["):
            self.pos += 1
            elements = self._parse_until(b"]", start)
            return CompositeOperand(CompositeKind.ARRAY, tuple(elements))
        if byte in DELIMITERS:
            raise MalformedContentStream(start, f"unexpected {chr(byte)!r}")

        return self._read_regular(nested)

    def _read_regular(self, nested: bool) -> Token:
        start = self.pos
        match = _REGULAR_RUN.match(self.data, start)
        # _next_token only dispatches here for regular characters
        assert match is not None
        run = match.group()
        self.pos = match.end()

        if run[0] in b"+-.0123456789":
            if not _NUMBER.fullmatch(run):
                raise MalformedContentStream(start, f"invalid number {run!r}")
            if b"." in run:
                return Numeric(float(run), PrecisionHint.SINGLE)
            return Numeric(float(int(run)), PrecisionHint.DOUBLE)

        text = run.decode("latin-1")
        if text in _KEYWORDS:
            return _KEYWORDS[text]

        if nested:
            raise MalformedContentStream(start, f"operator {text!r} inside array or dictionary")
        if text == "ID":
            return self._read_inline_image(start)
        return Operator(text)

    def _read_name(self) -> Name:
        start = self.pos
        self.pos += 1
        match = _REGULAR_RUN.match(self.data, self.pos)
        raw = match.group() if match else b""
        self.pos += len(raw)
        return Name(_unescape_name(raw, start + 1).decode("latin-1"))

    def _read_literal_string(self) -> StringLiteral:
        start = self.pos
        data = self.data
        end = len(data)
        out = bytearray()
        depth = 1
        self.pos += 1

        while True:
            if self.pos >= end:
                raise MalformedContentStream(start, "unterminated string")
            byte = data[self.pos]

            if byte == ord("\\"):
                self.pos += 1
                if self.pos >= end:
                    raise MalformedContentStream(start, "unterminated string")
                escaped = data[self.pos]
                if escaped in _LITERAL_ESCAPES:
                    out += _LITERAL_ESCAPES[escaped]
                    self.pos += 1
                elif 0x30 <= escaped <= 0x37:
                    digits = 0
                    value = 0
                    while digits < 3 and self.pos < end and 0x30 <= data[self.pos] <= 0x37:
                        value = value * 8 + (data[self.pos] - 0x30)
                        self.pos += 1
                        digits += 1
                    out.append(value & 0xFF)
                elif escaped == ord("\r"):
                    # line continuation
                    self.pos += 1
                    if self.pos < end and data[self.pos] == ord("\n"):
                        self.pos += 1
                elif escaped == ord("\n"):
                    self.pos += 1
                else:
                    # unknown escape: backslash is ignored
                    out.append(escaped)
                    self.pos += 1
                continue

            if byte == ord("("):
                depth += 1
            elif byte == ord(")"):
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return StringLiteral(bytes(out))
            elif byte == ord("\r"):
                # CR and CRLF both read as a single LF
                out += b"\n"
                self.pos += 1
                if self.pos < end and data[self.pos] == ord("\n"):
                    self.pos += 1
                continue

            out.append(byte)
            self.pos += 1

    def _read_hex_string(self) -> StringLiteral:
        start = self.pos
        data = self.data
        digits = bytearray()
        self.pos += 1

        while True:
            if self.pos >= len(data):
                raise MalformedContentStream(start, "unterminated hex string")
            byte = data[self.pos]
            if byte == ord(">"):
                self.pos += 1
                break
            if byte in WHITESPACE:
                pass
            elif byte in _HEX_DIGITS:
                digits.append(byte)
            else:
                raise MalformedContentStream(self.pos, f"invalid hex digit {chr(byte)!r}")
            self.pos += 1

        if len(digits) % 2:
            digits.append(ord("0"))
        return StringLiteral(bytes.fromhex(digits.decode("ascii")))

    def _read_dictionary(self) -> CompositeOperand:
        start = self.pos
        self.pos += 2
        elements = self._parse_until(b">>", start)

        if len(elements) % 2:
            raise MalformedContentStream(start, "dictionary has a key without a value")
        for key in elements[0::2]:
            if key.kind != TokenKind.NAME:
                raise MalformedContentStream(start, f"dictionary key must be a name, got {key}")

        return CompositeOperand(CompositeKind.DICTIONARY, tuple(elements))

    def _read_inline_image(self, start: int) -> Operator:
        """Consume the binary payload that follows an ID operator."""
        data_start = self.pos
        # a single whitespace byte separates ID from the data
        if data_start < len(self.data) and self.data[data_start] in WHITESPACE:
            data_start += 1

        match = _INLINE_IMAGE_END.search(self.data, self.pos)
        if match is None:
            raise MalformedContentStream(start, "unterminated inline image")

        payload = self.data[data_start:max(match.start(), data_start)]
        # leave the position on EI so it is read as a normal operator
        self.pos = match.start() + 1
        return Operator("ID", inline_data=payload)


def _unescape_name(raw: bytes, offset: int) -> bytes:
    """Resolve #xx escapes inside a name."""
    if b"#" not in raw:
        return raw

    out = bytearray()
    i = 0
    while i < len(raw):
        byte = raw[i]
        if byte == ord("#"):
            hex_pair = raw[i + 1:i + 3]
            if len(hex_pair) != 2 or any(b not in _HEX_DIGITS for b in hex_pair):
                raise MalformedContentStream(offset + i, "invalid #xx escape in name")
            out.append(int(hex_pair, 16))
            i += 3
        else:
            out.append(byte)
            i += 1
    return bytes(out)


def tokenize(data: bytes) -> TokenSequence:
    """
    Tokenize a content stream.

    Args:
        data: Decoded content stream bytes

    Returns:
        Tuple of tokens in source order

    Raises:
        MalformedContentStream: If the buffer is not well-formed
    """
    return ContentStreamTokenizer(data).parse()
