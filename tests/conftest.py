"""
Pytest fixtures for appearance_check tests.
"""

import pytest
from pathlib import Path

import fitz  # PyMuPDF

from appearance_check import AnnotationRef, ComparisonConfig, RegenerationError


REFERENCE_STREAM = b"1.000 0.000 0.000 RG 0 0 10 10 re S"
CANDIDATE_STREAM = b"1.0 0 0 RG 0 0 10.001 10 re S"


class FakeAppearanceSource:
    """
    In-memory stand-in for a PDF document.

    Each entry is (reference_bytes, candidate_bytes); a candidate of None makes
    regeneration fail. extract_content_bytes returns the reference until the
    annotation was regenerated, and the candidate afterwards.
    """

    def __init__(self, streams):
        self.streams = list(streams)
        self.regenerated = set()

    def annotations(self):
        for index in range(len(self.streams)):
            ref = AnnotationRef(page_number=1, index=index, xref=10 + index, annotation_type="Square")
            yield ref, index

    def extract_content_bytes(self, annotation):
        reference, candidate = self.streams[annotation]
        if annotation in self.regenerated:
            return candidate
        return reference

    def regenerate_appearance(self, annotation):
        if self.streams[annotation][1] is None:
            raise RegenerationError(f"Square[xref {10 + annotation}]")
        self.regenerated.add(annotation)


@pytest.fixture
def reference_stream():
    """Reference stream as an authoring tool would write it."""
    return REFERENCE_STREAM


@pytest.fixture
def candidate_stream():
    """Regenerated stream with different number formatting and rounding."""
    return CANDIDATE_STREAM


@pytest.fixture
def strict_config():
    return ComparisonConfig(strict_operand_equality=True)


@pytest.fixture
def source_factory():
    """Build a FakeAppearanceSource from (reference, candidate) pairs."""
    return FakeAppearanceSource


@pytest.fixture
def fake_source():
    """Source with one matching, one mismatching and one failing annotation."""
    return FakeAppearanceSource([
        (REFERENCE_STREAM, CANDIDATE_STREAM),
        (REFERENCE_STREAM, b"1 0 0 RG 0 0 10 10 re f"),
        (REFERENCE_STREAM, None),
    ])


@pytest.fixture
def annotated_pdf(tmp_path: Path) -> Path:
    """PDF with a square and a line annotation, appearances built by PyMuPDF."""
    path = tmp_path / "AnnotationTypes.pdf"
    doc = fitz.open()
    page = doc.new_page()

    square = page.add_rect_annot(fitz.Rect(72, 72, 200, 150))
    square.set_colors(stroke=(1, 0, 0))
    square.update()

    line = page.add_line_annot(fitz.Point(100, 300), fitz.Point(300, 300))
    line.set_colors(stroke=(0, 0, 1))
    line.update()

    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def plain_pdf(tmp_path: Path) -> Path:
    """PDF with two pages and no annotations."""
    path = tmp_path / "plain.pdf"
    doc = fitz.open()
    doc.new_page()
    doc.new_page()
    doc.save(str(path))
    doc.close()
    return path
