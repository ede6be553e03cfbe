"""
Tests for AppearanceValidator and ValidationService.

Most tests use an in-memory FakeAppearanceSource; the TestValidateDocument
class runs the whole flow on a PDF built with PyMuPDF.
"""

import gc
import pytest
from dataclasses import fields
from pathlib import Path
from unittest.mock import Mock

from appearance_check import (
    AnnotationRef,
    AppearanceDocument,
    AppearanceStreamMissingError,
    AppearanceValidator,
    ComparisonConfig,
    ComparisonStatus,
    MismatchKind,
    PDFNotFoundError,
    ValidationReport,
    ValidationService,
    ValidatorConfig,
)


class TestValidateSource:
    """Tests for validation against an in-memory source."""

    @pytest.fixture
    def validator(self):
        return AppearanceValidator()

    def test_one_result_per_annotation(self, validator, fake_source):
        results = validator.validate_source(fake_source)
        assert [r.status for r in results] == [
            ComparisonStatus.MATCH,
            ComparisonStatus.MISMATCH,
            ComparisonStatus.ERROR,
        ]

    def test_match_records_token_counts(self, validator, fake_source):
        result = validator.validate_source(fake_source)[0]
        assert result.reference_token_count == 10
        assert result.candidate_token_count == 10
        assert result.xref == 10
        assert result.annotation_type == "Square"

    def test_mismatch_details(self, validator, fake_source):
        result = validator.validate_source(fake_source)[1]
        assert result.mismatch.kind == MismatchKind.OPERATOR_NAME
        assert result.mismatch.index == 9
        assert result.mismatch.reference == "S"
        assert result.mismatch.candidate == "f"

    def test_regeneration_error_does_not_stop_batch(self, validator, source_factory, reference_stream):
        source = source_factory([
            (reference_stream, None),
            (reference_stream, reference_stream),
        ])
        results = validator.validate_source(source)
        assert results[0].status == ComparisonStatus.ERROR
        assert results[0].error_stage == "regenerate"
        assert results[0].error_type == "RegenerationError"
        assert results[1].status == ComparisonStatus.MATCH

    def test_malformed_reference(self, validator, source_factory, reference_stream):
        source = source_factory([(b"q (unterminated", reference_stream)])
        result = validator.validate_source(source)[0]
        assert result.status == ComparisonStatus.ERROR
        assert result.error_stage == "tokenize_reference"
        assert result.error_type == "MalformedContentStream"
        # regeneration is never attempted for an unreadable reference
        assert source.regenerated == set()

    def test_malformed_candidate(self, validator, source_factory, reference_stream):
        source = source_factory([(reference_stream, b"1 0 0 RG [0")])
        result = validator.validate_source(source)[0]
        assert result.error_stage == "tokenize_candidate"

    def test_missing_appearance(self, validator):
        source = Mock()
        ref = AnnotationRef(page_number=3, index=0, xref=7, annotation_type="Ink")
        source.annotations.return_value = iter([(ref, "annot")])
        source.extract_content_bytes.side_effect = AppearanceStreamMissingError(3, "Ink[xref 7]")

        results = validator.validate_source(source)
        assert results[0].status == ComparisonStatus.ERROR
        assert results[0].error_stage == "extract_reference"
        assert results[0].page_number == 3
        source.regenerate_appearance.assert_not_called()

    def test_collaborator_call_order(self, validator):
        source = Mock()
        ref = AnnotationRef(page_number=1, index=0)
        source.extract_content_bytes.side_effect = [b"0 0 10 10 re S", b"0 0 10 10 re S"]

        result = validator.validate_annotation(source, ref, "annot")

        assert result.status == ComparisonStatus.MATCH
        assert [c[0] for c in source.method_calls] == [
            "extract_content_bytes",
            "regenerate_appearance",
            "extract_content_bytes",
        ]

    def test_strict_config_is_used(self, source_factory):
        source = source_factory([(b"/GS0 gs", b"/GS1 gs")])
        lenient = AppearanceValidator().validate_source(source)[0]
        source = source_factory([(b"/GS0 gs", b"/GS1 gs")])
        strict = AppearanceValidator(ComparisonConfig(strict_operand_equality=True)).validate_source(source)[0]
        assert lenient.status == ComparisonStatus.MATCH
        assert strict.status == ComparisonStatus.MISMATCH


class TestValidateDocument:
    """End-to-end validation of a PyMuPDF-built PDF."""

    def test_regenerated_appearances_match(self, annotated_pdf: Path):
        report = AppearanceValidator().validate_document(annotated_pdf)
        assert report.total == 2
        assert report.all_matched, [r.describe() for r in report.results]
        assert report.tolerance == 3e-3
        assert report.regenerated_file is None

    def test_saves_regenerated_document(self, annotated_pdf: Path, tmp_path: Path):
        output = tmp_path / "out.pdf"
        report = AppearanceValidator().validate_document(annotated_pdf, regenerated_path=output)
        assert output.exists()
        assert report.regenerated_file == str(output)

    def test_document_without_annotations(self, plain_pdf: Path):
        report = AppearanceValidator().validate_document(plain_pdf)
        assert report.total == 0
        assert report.all_matched

    def test_library_error_does_not_stop_validation(self, annotated_pdf: Path):
        validator = AppearanceValidator()
        with AppearanceDocument(annotated_pdf) as doc:
            page = doc.document.load_page(0)
            orphan = list(page.annots())[0]
            del page
            gc.collect()

            failed = validator.validate_annotation(
                doc, AnnotationRef(page_number=1, index=0, xref=orphan.xref, annotation_type="Square"), orphan
            )
            ref, line = doc.get_annotation(1, 1)
            passed = validator.validate_annotation(doc, ref, line)

        assert failed.status == ComparisonStatus.ERROR
        assert failed.error_stage == "regenerate"
        assert failed.error_type == "RegenerationError"
        assert passed.status == ComparisonStatus.MATCH

    def test_missing_pdf(self, tmp_path: Path):
        with pytest.raises(PDFNotFoundError):
            AppearanceValidator().validate_document(tmp_path / "missing.pdf")


class TestValidationService:
    """Tests for ValidationService."""

    def test_validate_and_save(self, annotated_pdf: Path, tmp_path: Path):
        config = ValidatorConfig(data_dir=str(tmp_path / "data"))
        report, paths = ValidationService(config).validate_and_save(str(annotated_pdf))

        assert paths.report_file.exists()
        assert paths.regenerated_file.exists()
        assert ValidationReport.load(str(paths.report_file)).total == report.total

    def test_without_regenerated_copy(self, annotated_pdf: Path, tmp_path: Path):
        config = ValidatorConfig(data_dir=str(tmp_path / "data"), save_regenerated=False)
        report, paths = ValidationService(config).validate_and_save(str(annotated_pdf))

        assert report.regenerated_file is None
        assert not paths.regenerated_file.exists()

    def test_config_fields(self):
        assert [f.name for f in fields(ValidatorConfig)] == ["data_dir", "comparison", "save_regenerated"]
