"""
Tests for PyMuPDF document access.

These build small PDFs with PyMuPDF in tmp_path; no fixture files needed.
"""

import gc
import pytest
from pathlib import Path

import fitz  # PyMuPDF

from appearance_check import (
    AnnotationNotFoundError,
    AppearanceDocument,
    AppearanceReadError,
    AppearanceStreamMissingError,
    DocumentError,
    PDFCorruptedError,
    PDFNotFoundError,
    RegenerationError,
    TokenKind,
    tokenize,
)
from appearance_check.tokens import operators


def orphaned_annotation(doc: AppearanceDocument, index: int) -> fitz.Annot:
    """Annotation whose page object has been garbage collected."""
    page = doc.document.load_page(0)
    annot = list(page.annots())[index]
    del page
    gc.collect()
    return annot


class TestOpen:
    """Tests for opening and closing documents."""

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(PDFNotFoundError):
            AppearanceDocument(tmp_path / "missing.pdf").open()

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")
        with pytest.raises(PDFCorruptedError):
            AppearanceDocument(path).open()

    def test_context_manager_closes(self, plain_pdf: Path):
        with AppearanceDocument(plain_pdf) as doc:
            assert doc.page_count == 2
        with pytest.raises(DocumentError):
            doc.page_count

    def test_no_annotations(self, plain_pdf: Path):
        with AppearanceDocument(plain_pdf) as doc:
            assert list(doc.annotations()) == []


class TestAnnotations:
    """Tests for annotation enumeration."""

    def test_enumerates_in_page_order(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            refs = [ref for ref, _ in doc.annotations()]
        assert [(r.page_number, r.index) for r in refs] == [(1, 0), (1, 1)]
        assert [r.annotation_type for r in refs] == ["Square", "Line"]
        assert all(r.xref > 0 for r in refs)

    def test_get_annotation(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            ref, annot = doc.get_annotation(1, 1)
            assert ref.annotation_type == "Line"
            assert annot.xref == ref.xref

    @pytest.mark.parametrize("page_number,index", [(1, 2), (0, 0), (3, 0)])
    def test_get_missing_annotation(self, annotated_pdf: Path, page_number, index):
        with AppearanceDocument(annotated_pdf) as doc:
            with pytest.raises(AnnotationNotFoundError):
                doc.get_annotation(page_number, index)


class TestAppearanceStreams:
    """Tests for reading and regenerating appearance streams."""

    def test_extract_content_bytes(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            _, square = doc.get_annotation(1, 0)
            data = doc.extract_content_bytes(square)

        tokens = tokenize(data)
        assert tokens
        assert "RG" in operators(tokens)
        assert any(t.kind == TokenKind.NUMERIC for t in tokens)

    def test_missing_appearance(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            _, square = doc.get_annotation(1, 0)
            doc.document.xref_set_key(square.xref, "AP", "null")
            with pytest.raises(AppearanceStreamMissingError) as exc_info:
                doc.extract_content_bytes(square)
        assert exc_info.value.page_number == 1

    def test_regenerate_restores_appearance(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            _, square = doc.get_annotation(1, 0)
            doc.regenerate_appearance(square)
            data = doc.extract_content_bytes(square)
        assert "RG" in operators(tokenize(data))

    def test_save(self, annotated_pdf: Path, tmp_path: Path):
        output = tmp_path / "out" / "AnnotationTypes.pdf-newAP.pdf"
        with AppearanceDocument(annotated_pdf) as doc:
            _, square = doc.get_annotation(1, 0)
            doc.regenerate_appearance(square)
            saved = doc.save(output)

        assert saved == output
        with fitz.open(str(output)) as reopened:
            page = reopened[0]
            assert len(list(page.annots())) == 2


class TestAnnotationLifetime:
    """Annotations handed out stay usable while the document is open."""

    def test_get_annotation_survives_collection(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            _, square = doc.get_annotation(1, 0)
            gc.collect()
            doc.regenerate_appearance(square)
            assert "RG" in operators(tokenize(doc.extract_content_bytes(square)))

    def test_annotations_survive_iteration(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            annots = [annot for _, annot in doc.annotations()]
            gc.collect()
            for annot in annots:
                doc.regenerate_appearance(annot)
                assert doc.extract_content_bytes(annot)

    def test_missing_appearance_reports_page(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            _, line = doc.get_annotation(1, 1)
            doc.document.xref_set_key(line.xref, "AP", "null")
            gc.collect()
            with pytest.raises(AppearanceStreamMissingError) as exc_info:
                doc.extract_content_bytes(line)
        assert exc_info.value.page_number == 1
        assert "Line" in exc_info.value.annotation


class TestLibraryErrors:
    """PyMuPDF failures are wrapped in the package's document errors."""

    def test_regeneration_failure_is_wrapped(self, annotated_pdf: Path):
        with AppearanceDocument(annotated_pdf) as doc:
            orphan = orphaned_annotation(doc, 0)
            with pytest.raises(RegenerationError) as exc_info:
                doc.regenerate_appearance(orphan)
        assert exc_info.value.original_error is not None
        assert not isinstance(exc_info.value.original_error, RegenerationError)

    def test_read_failure_is_wrapped(self, annotated_pdf: Path, monkeypatch):
        class LibraryFailure(Exception):
            pass

        def failing_stream(self, xref):
            raise LibraryFailure("cannot decode stream")

        with AppearanceDocument(annotated_pdf) as doc:
            ref, square = doc.get_annotation(1, 0)
            monkeypatch.setattr(fitz.Document, "xref_stream", failing_stream)
            with pytest.raises(AppearanceReadError) as exc_info:
                doc.extract_content_bytes(square)

        assert exc_info.value.page_number == ref.page_number
        assert isinstance(exc_info.value.__cause__, LibraryFailure)
