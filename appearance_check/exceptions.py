"""
Custom Exceptions for Appearance Stream Validation.

This module defines a hierarchy of exceptions for precise error handling
while reading, regenerating and tokenizing annotation appearance streams.

Comparison mismatches are NOT exceptions: the comparator always returns a
Verdict so that a batch run can collect every failure. Exceptions are
reserved for "could not even get to a comparison" situations.

Exception Hierarchy:
    AppearanceCheckError (base)
    ├── ContentStreamError
    │   └── MalformedContentStream
    └── DocumentError
        ├── PDFNotFoundError
        ├── PDFCorruptedError
        ├── AnnotationNotFoundError
        ├── AppearanceStreamMissingError
        └── RegenerationError

Usage:
    from appearance_check.exceptions import (
        AppearanceCheckError,
        MalformedContentStream,
    )

    try:
        tokens = tokenize(data)
    except MalformedContentStream as e:
        print(f"Cannot parse content stream at byte {e.offset}: {e}")
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class AppearanceCheckError(Exception):
    """
    Base exception for all validation-related errors.

    Attributes:
        message: Human-readable error description
        details: Additional technical details (optional)
    """

    def __init__(
        self,
        message: str = "An appearance check error occurred",
        details: Optional[str] = None,
    ):
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


# =============================================================================
# CONTENT STREAM ERRORS
# =============================================================================


class ContentStreamError(AppearanceCheckError):
    """Base class for content stream parsing errors."""

    pass


class MalformedContentStream(ContentStreamError):
    """
    Raised when the tokenizer cannot classify input at a byte offset.

    Covers unterminated strings, arrays, dictionaries and inline images,
    unbalanced closing delimiters and bytes that match no grammar rule.

    Attributes:
        offset: Byte offset (0-indexed) where parsing failed
        reason: Short description of what was wrong
    """

    def __init__(self, offset: int, reason: str = "unexpected input"):
        self.offset = offset
        self.reason = reason
        super().__init__(f"Malformed content stream at offset {offset}: {reason}")


# =============================================================================
# DOCUMENT ERRORS
# =============================================================================


class DocumentError(AppearanceCheckError):
    """Base class for errors raised by the document collaborator."""

    def __init__(
        self,
        message: str = "Document error",
        path: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.path = path
        if path:
            message = f"{message} [{path}]"
        super().__init__(message, details)


class PDFNotFoundError(DocumentError):
    """
    Raised when the PDF file cannot be found.

    Attributes:
        path: Path to the missing file
    """

    def __init__(self, path: str):
        super().__init__(
            message=f"PDF file not found: {path}",
            path=path,
        )


class PDFCorruptedError(DocumentError):
    """
    Raised when the PDF file is corrupted or cannot be opened.

    Attributes:
        path: Path to the corrupted file
        original_error: The underlying error from PyMuPDF
    """

    def __init__(
        self,
        path: str,
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(
            message=f"PDF file is corrupted or unreadable: {path}",
            path=path,
            details=details,
        )


class AnnotationNotFoundError(DocumentError):
    """
    Raised when an annotation index does not exist on a page.

    Attributes:
        page_number: Page number (1-indexed)
        index: Requested annotation index (0-indexed)
    """

    def __init__(
        self,
        page_number: int,
        index: int,
        path: Optional[str] = None,
    ):
        self.page_number = page_number
        self.index = index
        super().__init__(
            message=f"No annotation {index} on page {page_number}",
            path=path,
        )


class AppearanceStreamMissingError(DocumentError):
    """
    Raised when an annotation has no usable normal appearance stream.

    This happens when /AP is absent, or when /AP /N is a dictionary of
    appearance states instead of a single stream.

    Attributes:
        page_number: Page number (1-indexed)
        annotation: Annotation label (e.g. "Square[12]")
    """

    def __init__(
        self,
        page_number: int,
        annotation: str,
        details: Optional[str] = None,
    ):
        self.page_number = page_number
        self.annotation = annotation
        super().__init__(
            message=f"Annotation {annotation} on page {page_number} has no normal appearance stream",
            details=details,
        )


class AppearanceReadError(DocumentError):
    """
    Raised when the library fails while reading an appearance stream.

    Attributes:
        page_number: Page number (1-indexed)
        annotation: Annotation label
        original_error: The underlying error from PyMuPDF
    """

    def __init__(
        self,
        page_number: int,
        annotation: str,
        original_error: Optional[Exception] = None,
    ):
        self.page_number = page_number
        self.annotation = annotation
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(
            message=f"Failed to read appearance stream of {annotation} on page {page_number}",
            details=details,
        )


class RegenerationError(DocumentError):
    """
    Raised when the library fails to rebuild an annotation appearance.

    Attributes:
        annotation: Annotation label
        original_error: The underlying error from PyMuPDF
    """

    def __init__(
        self,
        annotation: str,
        original_error: Optional[Exception] = None,
    ):
        self.annotation = annotation
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(
            message=f"Failed to regenerate appearance for {annotation}",
            details=details,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def format_error_chain(error: Exception) -> str:
    """
    Format an exception and its chain for logging.

    Returns a multi-line string showing the error hierarchy.
    """
    lines = []
    current = error
    depth = 0

    while current is not None:
        prefix = "  " * depth + ("└─ " if depth > 0 else "")
        lines.append(f"{prefix}{type(current).__name__}: {current}")

        if getattr(current, "original_error", None):
            current = current.original_error
            depth += 1
        elif current.__cause__:
            current = current.__cause__
            depth += 1
        else:
            break

    return "\n".join(lines)
