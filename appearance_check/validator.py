"""
Appearance Validator.

For every annotation:
    1. read the reference appearance stream (written by the authoring tool)
    2. tokenize it
    3. remove the appearance and let the PDF library regenerate it
    4. read and tokenize the regenerated stream
    5. compare both token sequences

Failures to read, regenerate or tokenize are recorded as an ERROR result for
that annotation and the run moves on to the next one; a divergence between
the streams is recorded as a MISMATCH.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Optional, Union

from .comparator import ComparisonConfig, ContentStreamComparator
from .document import AnnotationRef, AppearanceDocument, AppearanceSource
from .exceptions import AppearanceCheckError, format_error_chain
from .models import AnnotationResult, ComparisonStatus, ValidationReport
from .tokenizer import tokenize

logger = logging.getLogger(__name__)


class AppearanceValidator:
    """
    Validates regenerated annotation appearances against the originals.

    Usage:
        validator = AppearanceValidator(ComparisonConfig(tolerance=3e-3))
        report = validator.validate_document("AnnotationTypes.pdf")

        for result in report.get_failures():
            print(result.describe())
    """

    def __init__(self, config: Optional[ComparisonConfig] = None):
        self.config = config or ComparisonConfig()
        self.comparator = ContentStreamComparator(self.config)

    def validate_annotation(
        self,
        source: AppearanceSource,
        ref: AnnotationRef,
        annotation: Any,
    ) -> AnnotationResult:
        """
        Validate a single annotation.

        Never raises for problems with this annotation; they become an
        ERROR result.
        """
        location = ref.location()
        stage = "extract_reference"
        try:
            reference_bytes = source.extract_content_bytes(annotation)
            stage = "tokenize_reference"
            reference = tokenize(reference_bytes)
            stage = "regenerate"
            source.regenerate_appearance(annotation)
            stage = "extract_candidate"
            candidate_bytes = source.extract_content_bytes(annotation)
            stage = "tokenize_candidate"
            candidate = tokenize(candidate_bytes)
        except AppearanceCheckError as e:
            logger.error(f"page {ref.page_number} {ref.label}: {stage} failed\n{format_error_chain(e)}")
            return AnnotationResult.from_error(e, stage=stage, **location)

        verdict = self.comparator.compare(reference, candidate)
        result = AnnotationResult.from_verdict(verdict, len(reference), len(candidate), **location)

        if result.status == ComparisonStatus.MATCH:
            logger.info(result.describe())
        else:
            logger.warning(result.describe())
        return result

    def validate_source(self, source: AppearanceSource) -> list[AnnotationResult]:
        """Validate every annotation a source provides, in order."""
        return [
            self.validate_annotation(source, ref, annotation)
            for ref, annotation in source.annotations()
        ]

    def validate_document(
        self,
        pdf_path: Union[str, Path],
        regenerated_path: Optional[Union[str, Path]] = None,
    ) -> ValidationReport:
        """
        Validate all annotations of a PDF.

        Args:
            pdf_path: PDF whose appearance streams are the reference
            regenerated_path: If given, save the document with regenerated
                appearances there for manual comparison

        Returns:
            ValidationReport with one result per annotation

        Raises:
            PDFNotFoundError: If the file doesn't exist
            PDFCorruptedError: If the file can't be opened
        """
        start_time = time.time()
        logger.info(f"Validating appearance streams: {pdf_path}")

        saved_path = None
        with AppearanceDocument(pdf_path) as doc:
            results = self.validate_source(doc)
            if regenerated_path is not None:
                saved_path = str(doc.save(regenerated_path))

        report = ValidationReport(
            source_file=str(pdf_path),
            tolerance=self.config.tolerance,
            strict_operand_equality=self.config.strict_operand_equality,
            results=results,
            regenerated_file=saved_path,
            processing_time_seconds=time.time() - start_time,
        )

        logger.info(
            f"Validated {report.total} annotations: {report.matched} matched, "
            f"{report.mismatched} mismatched, {report.errors} errors"
        )
        return report
