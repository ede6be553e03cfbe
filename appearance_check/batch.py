"""
Batch comparison of independent content stream pairs.

Tokenizing and comparing are pure functions, so independent pairs can be
fanned out over a thread pool without any coordination. A pair whose stream
cannot be tokenized is recorded as an error for that pair only; the rest of
the batch still runs.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional

from .comparator import ComparisonConfig, ContentStreamComparator, Verdict
from .exceptions import ContentStreamError
from .models import ComparisonStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamPair:
    """A reference/candidate pair of raw content streams."""

    label: str
    reference: bytes
    candidate: bytes


@dataclass(frozen=True)
class PairResult:
    """Outcome for one StreamPair: either a verdict or a tokenizer error."""

    label: str
    verdict: Optional[Verdict] = None
    error: Optional[ContentStreamError] = None

    @property
    def status(self) -> ComparisonStatus:
        if self.error is not None:
            return ComparisonStatus.ERROR
        if self.verdict is not None and self.verdict.matched:
            return ComparisonStatus.MATCH
        return ComparisonStatus.MISMATCH

    def describe(self) -> str:
        if self.error is not None:
            return f"{self.label}: error: {self.error}"
        return f"{self.label}: {self.verdict.describe()}"


def compare_pair(pair: StreamPair, comparator: ContentStreamComparator) -> PairResult:
    """Compare one pair, capturing tokenizer failures as data."""
    try:
        verdict = comparator.compare_streams(pair.reference, pair.candidate)
    except ContentStreamError as e:
        logger.warning(f"{pair.label}: {e}")
        return PairResult(label=pair.label, error=e)
    return PairResult(label=pair.label, verdict=verdict)


def compare_batch(
    pairs: Iterable[StreamPair],
    config: Optional[ComparisonConfig] = None,
    max_workers: Optional[int] = None,
) -> list[PairResult]:
    """
    Compare many independent stream pairs.

    Args:
        pairs: Pairs to compare
        config: Comparison settings shared by every pair
        max_workers: Thread pool size; 1 runs sequentially in the caller

    Returns:
        One PairResult per pair, in input order
    """
    comparator = ContentStreamComparator(config)
    pairs = list(pairs)

    if max_workers == 1 or len(pairs) <= 1:
        results = [compare_pair(pair, comparator) for pair in pairs]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(lambda pair: compare_pair(pair, comparator), pairs))

    failed = sum(1 for r in results if r.status != ComparisonStatus.MATCH)
    logger.info(f"Compared {len(results)} stream pairs, {failed} not matching")
    return results
