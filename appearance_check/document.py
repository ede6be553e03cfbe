"""
PDF Document Access for Appearance Validation.

Wraps the parts of PyMuPDF (fitz) the validator needs:
- open/close a PDF as a scoped resource
- enumerate annotations page by page
- read the decoded bytes of an annotation's normal appearance stream (/AP /N)
- drop /AP and let PyMuPDF rebuild the appearance
- save the modified document for manual inspection

The validator only talks to the narrow AppearanceSource protocol, so tests can
substitute an in-memory double for a real document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol, Union

import fitz  # PyMuPDF

from .exceptions import (
    AnnotationNotFoundError,
    AppearanceReadError,
    AppearanceStreamMissingError,
    DocumentError,
    PDFCorruptedError,
    PDFNotFoundError,
    RegenerationError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class AnnotationRef:
    """
    Location and identity of one annotation.

    Attributes:
        page_number: Page number (1-indexed)
        index: Position among the page's annotations (0-indexed)
        xref: Object number of the annotation dictionary
        annotation_type: Subtype name (e.g. "Square", "Ink", "FreeText")
    """

    page_number: int
    index: int
    xref: int = 0
    annotation_type: str = ""

    @property
    def label(self) -> str:
        return f"{self.annotation_type or 'Annotation'}[{self.index}]"

    def location(self) -> dict[str, Any]:
        """Fields shared with AnnotationResult."""
        return {
            "page_number": self.page_number,
            "annotation_index": self.index,
            "annotation_type": self.annotation_type,
            "xref": self.xref,
        }


class AppearanceSource(Protocol):
    """Everything the validator needs from a document."""

    def annotations(self) -> Iterator[tuple[AnnotationRef, Any]]:
        ...

    def extract_content_bytes(self, annotation: Any) -> bytes:
        ...

    def regenerate_appearance(self, annotation: Any) -> None:
        ...


# =============================================================================
# DOCUMENT CLASS
# =============================================================================


class AppearanceDocument:
    """
    A PDF opened for appearance stream validation.

    Usage:
        with AppearanceDocument("AnnotationTypes.pdf") as doc:
            for ref, annot in doc.annotations():
                reference = doc.extract_content_bytes(annot)
                doc.regenerate_appearance(annot)
                candidate = doc.extract_content_bytes(annot)
            doc.save("AnnotationTypes.pdf-newAP.pdf")
    """

    def __init__(self, pdf_path: Union[str, Path]):
        self.path = Path(pdf_path)
        self._doc: Optional[fitz.Document] = None
        self._pages: dict[int, fitz.Page] = {}
        self._annotation_pages: dict[int, int] = {}

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> "AppearanceDocument":
        """
        Open the PDF.

        Raises:
            PDFNotFoundError: If the file doesn't exist
            PDFCorruptedError: If the file can't be opened as a PDF
        """
        if not self.path.exists():
            raise PDFNotFoundError(str(self.path))

        try:
            self._doc = fitz.open(self.path, filetype="pdf")
        except (fitz.FileDataError, RuntimeError) as e:
            raise PDFCorruptedError(str(self.path), e) from e

        logger.debug(f"Opened {self.path} ({len(self._doc)} pages)")
        return self

    def close(self) -> None:
        self._pages.clear()
        self._annotation_pages.clear()
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    def __enter__(self) -> "AppearanceDocument":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def document(self) -> fitz.Document:
        if self._doc is None:
            raise DocumentError("Document is not open", path=str(self.path))
        return self._doc

    @property
    def page_count(self) -> int:
        return len(self.document)

    # -------------------------------------------------------------------------
    # Annotations
    # -------------------------------------------------------------------------

    def _page(self, page_index: int) -> fitz.Page:
        # An Annot only holds a weak reference to its page, so pages stay
        # cached until close() to keep handed-out annotations usable.
        page = self._pages.get(page_index)
        if page is None:
            page = self.document[page_index]
            self._pages[page_index] = page
        return page

    def annotations(self) -> Iterator[tuple[AnnotationRef, fitz.Annot]]:
        """Yield every annotation of the document, page by page."""
        for page_index in range(self.page_count):
            page = self._page(page_index)
            for index, annot in enumerate(page.annots()):
                yield self._make_ref(page, index, annot), annot

    def get_annotation(self, page_number: int, index: int) -> tuple[AnnotationRef, fitz.Annot]:
        """
        Get one annotation by position.

        Args:
            page_number: Page number (1-indexed)
            index: Annotation index on that page (0-indexed)

        Raises:
            AnnotationNotFoundError: If the page or annotation doesn't exist
        """
        if page_number < 1 or page_number > self.page_count:
            raise AnnotationNotFoundError(page_number, index, path=str(self.path))

        page = self._page(page_number - 1)
        for position, annot in enumerate(page.annots()):
            if position == index:
                return self._make_ref(page, index, annot), annot
        raise AnnotationNotFoundError(page_number, index, path=str(self.path))

    def _make_ref(self, page: fitz.Page, index: int, annot: fitz.Annot) -> AnnotationRef:
        ref = AnnotationRef(
            page_number=page.number + 1,
            index=index,
            xref=annot.xref,
            annotation_type=annot.type[1],
        )
        self._annotation_pages[annot.xref] = ref.page_number
        return ref

    def _describe(self, annotation: fitz.Annot) -> tuple[int, str]:
        """Page number and label of an annotation handed out by this document."""
        page_number = self._annotation_pages.get(annotation.xref, 0)
        return page_number, f"{annotation.type[1]}[xref {annotation.xref}]"

    # -------------------------------------------------------------------------
    # Appearance streams
    # -------------------------------------------------------------------------

    def extract_content_bytes(self, annotation: fitz.Annot) -> bytes:
        """
        Read the decoded normal appearance stream of an annotation.

        Raises:
            AppearanceStreamMissingError: If /AP /N is absent or is a
                dictionary of appearance states
            AppearanceReadError: If PyMuPDF fails while reading the stream
        """
        doc = self.document
        page_number, label = self._describe(annotation)

        try:
            key_type, value = doc.xref_get_key(annotation.xref, "AP/N")
        except Exception as e:
            raise AppearanceReadError(page_number, label, e) from e

        if key_type != "xref":
            raise AppearanceStreamMissingError(
                page_number, label, details=f"/AP /N is {key_type}"
            )

        stream_xref = int(value.split()[0])
        try:
            data = doc.xref_stream(stream_xref)
        except Exception as e:
            raise AppearanceReadError(page_number, label, e) from e

        if data is None:
            raise AppearanceStreamMissingError(
                page_number, label, details=f"object {stream_xref} is not a stream"
            )
        return data

    def regenerate_appearance(self, annotation: fitz.Annot) -> None:
        """
        Discard the annotation's appearance and let PyMuPDF rebuild it.

        Raises:
            RegenerationError: If PyMuPDF fails to build a new appearance
        """
        _, label = self._describe(annotation)
        try:
            self.document.xref_set_key(annotation.xref, "AP", "null")
            annotation.update()
        except Exception as e:
            raise RegenerationError(label, e) from e
        logger.debug(f"Regenerated appearance for {label}")

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def save(self, output_path: Union[str, Path]) -> Path:
        """Save the (possibly modified) document to a new file."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.document.save(str(output_path))
        logger.info(f"Saved document to {output_path}")
        return output_path
