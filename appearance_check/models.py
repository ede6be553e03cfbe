"""
Report Models for Appearance Stream Validation.

The tokenizer and comparator work on frozen dataclasses (tokens, verdicts).
This module holds the serializable side: one AnnotationResult per validated
annotation, aggregated into a ValidationReport that can be saved as JSON and
loaded back.

Architecture:
    PDF → [Document] → reference bytes ─┐
                    → regenerate        │
                    → candidate bytes ──┤
                                        ↓
          [Tokenizer] → [Comparator] → Verdict
                                        ↓
                               AnnotationResult[]
                                        ↓
                               ValidationReport

Design Principles:
    - Pydantic v2 for validation and serialization
    - A comparison error (stream could not be read or parsed) is a distinct
      status from a mismatch (stream parsed fine but differs)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field

from .comparator import Mismatch, MismatchKind, Verdict


# =============================================================================
# ENUMS
# =============================================================================


class ComparisonStatus(str, Enum):
    """
    Outcome of validating one annotation or one stream pair.

    MATCH: Sequences are equivalent
    MISMATCH: Both streams parsed, but they diverge
    ERROR: A stream could not be obtained, regenerated or tokenized
    """

    MATCH = "match"
    MISMATCH = "mismatch"
    ERROR = "error"


# =============================================================================
# RESULT MODELS
# =============================================================================


class MismatchInfo(BaseModel):
    """Serializable snapshot of a comparator Mismatch."""

    index: int = Field(..., description="Top-level token index of the divergence", ge=0)
    kind: MismatchKind = Field(..., description="Category of the divergence")
    detail: str = Field(..., description="Human-readable description")
    reference: Optional[str] = Field(None, description="Reference token at the divergence")
    candidate: Optional[str] = Field(None, description="Candidate token at the divergence")
    path: list[int] = Field(
        default_factory=list,
        description="Element indices inside nested composite operands",
    )

    model_config = {"frozen": True}

    @classmethod
    def from_mismatch(cls, mismatch: Mismatch) -> "MismatchInfo":
        return cls(
            index=mismatch.index,
            kind=mismatch.kind,
            detail=mismatch.detail,
            reference=None if mismatch.reference is None else str(mismatch.reference),
            candidate=None if mismatch.candidate is None else str(mismatch.candidate),
            path=list(mismatch.path),
        )


class AnnotationResult(BaseModel):
    """
    Validation outcome for a single annotation.

    Exactly one of ``mismatch`` / ``error`` is set for non-matching results.
    """

    page_number: int = Field(..., description="Page number (1-indexed)", ge=1)
    annotation_index: int = Field(..., description="Index of the annotation on its page", ge=0)
    annotation_type: str = Field("", description="Annotation subtype (e.g. 'Square', 'Ink')")
    xref: int = Field(0, description="Object number of the annotation", ge=0)
    status: ComparisonStatus = Field(..., description="Outcome of the comparison")
    reference_token_count: Optional[int] = Field(None, ge=0)
    candidate_token_count: Optional[int] = Field(None, ge=0)
    mismatch: Optional[MismatchInfo] = Field(None, description="First divergence, if any")
    error: Optional[str] = Field(None, description="Error message for status 'error'")
    error_type: Optional[str] = Field(None, description="Exception class for status 'error'")
    error_stage: Optional[str] = Field(
        None,
        description="Step that failed (e.g. 'extract_reference', 'tokenize_candidate')",
    )

    @computed_field
    @property
    def label(self) -> str:
        """Human-readable location of this annotation."""
        kind = self.annotation_type or "Annotation"
        return f"page {self.page_number} {kind}[{self.annotation_index}]"

    @classmethod
    def from_verdict(
        cls,
        verdict: Verdict,
        reference_token_count: int,
        candidate_token_count: int,
        **location: Any,
    ) -> "AnnotationResult":
        """Build a result from a comparator verdict."""
        if verdict.matched:
            return cls(
                status=ComparisonStatus.MATCH,
                reference_token_count=reference_token_count,
                candidate_token_count=candidate_token_count,
                **location,
            )
        return cls(
            status=ComparisonStatus.MISMATCH,
            reference_token_count=reference_token_count,
            candidate_token_count=candidate_token_count,
            mismatch=MismatchInfo.from_mismatch(verdict),
            **location,
        )

    @classmethod
    def from_error(
        cls,
        error: Exception,
        stage: Optional[str] = None,
        **location: Any,
    ) -> "AnnotationResult":
        """Build a result for an annotation that could not be compared."""
        return cls(
            status=ComparisonStatus.ERROR,
            error=str(error),
            error_type=type(error).__name__,
            error_stage=stage,
            **location,
        )

    def describe(self) -> str:
        if self.status == ComparisonStatus.MATCH:
            return f"{self.label}: match ({self.reference_token_count} tokens)"
        if self.status == ComparisonStatus.MISMATCH and self.mismatch is not None:
            location = f"token {self.mismatch.index}"
            if self.mismatch.path:
                location += "".join(f"[{i}]" for i in self.mismatch.path)
            return (
                f"{self.label}: {self.mismatch.kind.value} mismatch at {location}: "
                f"{self.mismatch.detail}"
            )
        stage = f" during {self.error_stage}" if self.error_stage else ""
        return f"{self.label}: error{stage} ({self.error_type}): {self.error}"


class ValidationReport(BaseModel):
    """
    Complete result of validating every annotation in a document.

    The batch never stops at a failing annotation, so a report always holds
    one result per annotation that was visited.
    """

    source_file: str = Field(..., description="Path to the validated PDF")
    tolerance: float = Field(..., description="Numeric tolerance used", gt=0)
    strict_operand_equality: bool = Field(False)
    results: list[AnnotationResult] = Field(default_factory=list)
    regenerated_file: Optional[str] = Field(
        None,
        description="Where the document with regenerated appearances was saved",
    )
    processing_time_seconds: float = Field(0.0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Query Methods ---

    def get_failures(self) -> list[AnnotationResult]:
        """All results that are not a match."""
        return [r for r in self.results if r.status != ComparisonStatus.MATCH]

    def get_by_status(self, status: ComparisonStatus) -> list[AnnotationResult]:
        return [r for r in self.results if r.status == status]

    # --- Statistics ---

    @computed_field
    @property
    def total(self) -> int:
        return len(self.results)

    @computed_field
    @property
    def matched(self) -> int:
        return len(self.get_by_status(ComparisonStatus.MATCH))

    @computed_field
    @property
    def mismatched(self) -> int:
        return len(self.get_by_status(ComparisonStatus.MISMATCH))

    @computed_field
    @property
    def errors(self) -> int:
        return len(self.get_by_status(ComparisonStatus.ERROR))

    @property
    def all_matched(self) -> bool:
        """True if every annotation matched (vacuously true for none)."""
        return self.matched == self.total

    def get_statistics(self) -> dict[str, Any]:
        """Summary counts, including a breakdown of mismatch kinds."""
        kinds: dict[str, int] = {}
        for result in self.get_by_status(ComparisonStatus.MISMATCH):
            if result.mismatch is not None:
                kinds[result.mismatch.kind.value] = kinds.get(result.mismatch.kind.value, 0) + 1
        return {
            "total": self.total,
            "matched": self.matched,
            "mismatched": self.mismatched,
            "errors": self.errors,
            "mismatch_kinds": kinds,
            "processing_time_seconds": self.processing_time_seconds,
        }

    # --- Export Methods ---

    def to_dict(self) -> dict[str, Any]:
        """Export as dictionary for serialization."""
        return self.model_dump(mode="json")

    def to_json(self, indent: int = 2) -> str:
        """Export as formatted JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    def save(self, path: str) -> None:
        """Save the report to a JSON file."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: str) -> "ValidationReport":
        """Load a report from a JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)
