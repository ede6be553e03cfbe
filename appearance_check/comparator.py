"""
Tolerance-Aware Content Stream Comparator.

Decides whether two token sequences are "the same program": same number of
tokens, same kind of token at every position, same operator names, and
numeric operands that agree within a tolerance. Two independent PDF producers
round coordinates differently, so numbers are never compared exactly.

Comparison is fail-fast: the first divergence is reported as a Mismatch and
nothing after it is inspected. The comparator never raises for a mismatch;
it always returns exactly one Verdict.

Operand checking has two modes:
    lenient (default) - names, strings, booleans and nulls only need the same
                        kind; composites only need the same composite kind
    strict            - those operands must also be equal, and composites
                        are compared element by element

Usage:
    from appearance_check import compare, tokenize

    verdict = compare(tokenize(reference_bytes), tokenize(candidate_bytes))
    if not verdict.matched:
        print(verdict.describe())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Sequence, Union

from pydantic import BaseModel, Field

from .tokenizer import tokenize
from .tokens import CompositeOperand, Token, TokenKind

logger = logging.getLogger(__name__)


DEFAULT_TOLERANCE = 3e-3


# =============================================================================
# CONFIGURATION
# =============================================================================


class ComparisonConfig(BaseModel):
    """
    Configuration for token sequence comparison.

    The default tolerance is deliberately loose: reference streams written by
    authoring tools and regenerated streams round reals differently.
    """

    tolerance: float = Field(
        DEFAULT_TOLERANCE,
        description="Numeric operands match if their absolute difference is strictly below this",
        gt=0,
    )
    strict_operand_equality: bool = Field(
        False,
        description="Also compare values of name, string, boolean, null and composite operands",
    )

    model_config = {"frozen": True}


# =============================================================================
# VERDICTS
# =============================================================================


class MismatchKind(str, Enum):
    """Why two sequences diverged."""

    TOKEN_COUNT = "token_count"
    TYPE = "type"
    OPERATOR_NAME = "operator_name"
    VALUE = "value"


@dataclass(frozen=True)
class Match:
    """Both sequences are equivalent."""

    token_count: int

    matched: ClassVar[bool] = True

    def describe(self) -> str:
        return f"match ({self.token_count} tokens)"

    def to_dict(self) -> dict:
        return {"matched": True, "token_count": self.token_count}


@dataclass(frozen=True)
class Mismatch:
    """
    First point of divergence between reference and candidate.

    Attributes:
        index: Position in the top-level sequence (for TOKEN_COUNT, the
            length of the shorter sequence)
        kind: Category of the divergence
        detail: Human-readable description
        reference: Reference token at the divergence (None for TOKEN_COUNT)
        candidate: Candidate token at the divergence (None for TOKEN_COUNT)
        path: Element indices inside nested composite operands, empty when
            the divergence is at the top level
    """

    index: int
    kind: MismatchKind
    detail: str
    reference: Optional[Token] = None
    candidate: Optional[Token] = None
    path: tuple[int, ...] = ()

    matched: ClassVar[bool] = False

    def describe(self) -> str:
        location = f"token {self.index}"
        if self.path:
            location += "".join(f"[{i}]" for i in self.path)
        return f"{self.kind.value} mismatch at {location}: {self.detail}"

    def to_dict(self) -> dict:
        return {
            "matched": False,
            "index": self.index,
            "kind": self.kind.value,
            "detail": self.detail,
            "reference": None if self.reference is None else str(self.reference),
            "candidate": None if self.candidate is None else str(self.candidate),
            "path": list(self.path),
        }


Verdict = Union[Match, Mismatch]


# =============================================================================
# COMPARATOR
# =============================================================================


class ContentStreamComparator:
    """
    Compares a reference token sequence against a candidate.

    The comparator holds only its configuration; every call to compare() is
    independent, so one instance can be shared between threads.

    Usage:
        comparator = ContentStreamComparator(ComparisonConfig(tolerance=1e-2))
        verdict = comparator.compare(reference_tokens, candidate_tokens)
    """

    def __init__(self, config: Optional[ComparisonConfig] = None):
        self.config = config or ComparisonConfig()

    def compare(self, reference: Sequence[Token], candidate: Sequence[Token]) -> Verdict:
        """
        Compare two token sequences.

        Args:
            reference: Tokens of the reference stream
            candidate: Tokens of the regenerated stream

        Returns:
            Match, or the first Mismatch
        """
        if len(reference) != len(candidate):
            return Mismatch(
                index=min(len(reference), len(candidate)),
                kind=MismatchKind.TOKEN_COUNT,
                detail=f"reference has {len(reference)} tokens, candidate has {len(candidate)}",
            )

        for index, (ref_token, cand_token) in enumerate(zip(reference, candidate)):
            mismatch = self._compare_tokens(ref_token, cand_token, index, ())
            if mismatch is not None:
                logger.debug(f"Sequences diverge: {mismatch.describe()}")
                return mismatch

        return Match(token_count=len(reference))

    def compare_streams(self, reference: bytes, candidate: bytes) -> Verdict:
        """
        Tokenize and compare two raw content streams.

        Raises:
            MalformedContentStream: If either stream cannot be tokenized
        """
        return self.compare(tokenize(reference), tokenize(candidate))

    # -------------------------------------------------------------------------
    # Token pairs
    # -------------------------------------------------------------------------

    def _compare_tokens(
        self,
        ref: Token,
        cand: Token,
        index: int,
        path: tuple[int, ...],
    ) -> Optional[Mismatch]:
        if ref.kind != cand.kind:
            return Mismatch(
                index, MismatchKind.TYPE,
                f"expected {ref.kind.value} {ref}, got {cand.kind.value} {cand}",
                ref, cand, path,
            )

        kind = ref.kind
        strict = self.config.strict_operand_equality

        if kind == TokenKind.OPERATOR:
            if ref.name != cand.name:
                return Mismatch(
                    index, MismatchKind.OPERATOR_NAME,
                    f"expected operator {ref.name!r}, got {cand.name!r}",
                    ref, cand, path,
                )
            if strict and ref.inline_data != cand.inline_data:
                return Mismatch(
                    index, MismatchKind.VALUE, "inline image data differs", ref, cand, path
                )
            return None

        if kind == TokenKind.NUMERIC:
            difference = abs(ref.value - cand.value)
            if difference < self.config.tolerance:
                return None
            return Mismatch(
                index, MismatchKind.VALUE,
                f"expected {ref}, got {cand} (difference {difference:g} >= {self.config.tolerance:g})",
                ref, cand, path,
            )

        if kind == TokenKind.COMPOSITE:
            return self._compare_composites(ref, cand, index, path)

        if kind in (TokenKind.NAME, TokenKind.STRING, TokenKind.BOOLEAN, TokenKind.NULL):
            if strict and ref != cand:
                return Mismatch(
                    index, MismatchKind.VALUE, f"expected {ref}, got {cand}", ref, cand, path
                )
            return None

        return Mismatch(
            index, MismatchKind.TYPE, f"cannot compare {kind.value} tokens", ref, cand, path
        )

    def _compare_composites(
        self,
        ref: CompositeOperand,
        cand: CompositeOperand,
        index: int,
        path: tuple[int, ...],
    ) -> Optional[Mismatch]:
        if ref.composite_kind != cand.composite_kind:
            return Mismatch(
                index, MismatchKind.VALUE,
                f"expected {ref.composite_kind.value}, got {cand.composite_kind.value}",
                ref, cand, path,
            )

        if not self.config.strict_operand_equality:
            return None

        if len(ref) != len(cand):
            return Mismatch(
                index, MismatchKind.VALUE,
                f"expected {ref.composite_kind.value} of {len(ref)} elements, got {len(cand)}",
                ref, cand, path,
            )

        for position, (ref_el, cand_el) in enumerate(zip(ref.elements, cand.elements)):
            nested = self._compare_tokens(ref_el, cand_el, index, path + (position,))
            if nested is not None:
                # any divergence inside a composite is reported as a value mismatch
                detail = nested.detail
                if nested.kind != MismatchKind.VALUE:
                    detail = f"{nested.kind.value}: {detail}"
                return Mismatch(
                    index, MismatchKind.VALUE, detail,
                    nested.reference, nested.candidate, nested.path,
                )
        return None


def compare(
    reference: Sequence[Token],
    candidate: Sequence[Token],
    config: Optional[ComparisonConfig] = None,
) -> Verdict:
    """Compare two token sequences with a one-off comparator."""
    return ContentStreamComparator(config).compare(reference, candidate)


def compare_streams(
    reference: bytes,
    candidate: bytes,
    config: Optional[ComparisonConfig] = None,
) -> Verdict:
    """
    Tokenize and compare two raw content streams.

    Raises:
        MalformedContentStream: If either stream cannot be tokenized
    """
    return ContentStreamComparator(config).compare_streams(reference, candidate)
