"""
Appearance Check - Tolerance-aware comparison of PDF content streams

Validates that annotation appearance streams regenerated by a PDF library are
operationally equivalent to the reference streams written by an authoring
tool. Both streams are tokenized into typed operator/operand tokens and
compared position by position; real-valued operands may differ by a small
tolerance.

Features:
- Content stream tokenizer (numbers, names, strings, arrays, dictionaries,
  inline images) with byte offsets on malformed input
- Fail-fast comparator returning a located verdict, never raising
- Lenient or strict operand checking
- PyMuPDF-backed validation of every annotation in a PDF
- Batch comparison across a thread pool

Quick Start:
    from appearance_check import tokenize, compare

    reference = tokenize(b"1.000 0.000 0.000 RG 0 0 10 10 re S")
    candidate = tokenize(b"1.0 0 0 RG 0 0 10.001 10 re S")

    verdict = compare(reference, candidate)
    print(verdict.matched)  # True

    from appearance_check import AppearanceValidator

    report = AppearanceValidator().validate_document("AnnotationTypes.pdf")
    for result in report.get_failures():
        print(result.describe())
"""

__version__ = "1.0.0"

# Tokens
from .tokens import (
    TokenKind,
    PrecisionHint,
    CompositeKind,
    Operator,
    Numeric,
    Name,
    StringLiteral,
    CompositeOperand,
    Boolean,
    Null,
    Token,
    TokenSequence,
)

# Tokenizer
from .tokenizer import ContentStreamTokenizer, tokenize

# Comparator
from .comparator import (
    DEFAULT_TOLERANCE,
    ComparisonConfig,
    ContentStreamComparator,
    Match,
    Mismatch,
    MismatchKind,
    Verdict,
    compare,
    compare_streams,
)

# Batch comparison
from .batch import StreamPair, PairResult, compare_batch

# Report models
from .models import (
    ComparisonStatus,
    MismatchInfo,
    AnnotationResult,
    ValidationReport,
)

# Document access and validation
from .document import AnnotationRef, AppearanceDocument, AppearanceSource
from .validator import AppearanceValidator
from .config import ValidatorConfig
from .service import ValidationService

# Exceptions
from .exceptions import (
    AppearanceCheckError,
    ContentStreamError,
    MalformedContentStream,
    DocumentError,
    PDFNotFoundError,
    PDFCorruptedError,
    AnnotationNotFoundError,
    AppearanceStreamMissingError,
    AppearanceReadError,
    RegenerationError,
    format_error_chain,
)

__all__ = [
    # Version
    "__version__",
    # Tokens
    "TokenKind",
    "PrecisionHint",
    "CompositeKind",
    "Operator",
    "Numeric",
    "Name",
    "StringLiteral",
    "CompositeOperand",
    "Boolean",
    "Null",
    "Token",
    "TokenSequence",
    # Tokenizer
    "ContentStreamTokenizer",
    "tokenize",
    # Comparator
    "DEFAULT_TOLERANCE",
    "ComparisonConfig",
    "ContentStreamComparator",
    "Match",
    "Mismatch",
    "MismatchKind",
    "Verdict",
    "compare",
    "compare_streams",
    # Batch
    "StreamPair",
    "PairResult",
    "compare_batch",
    # Models
    "ComparisonStatus",
    "MismatchInfo",
    "AnnotationResult",
    "ValidationReport",
    # Validation
    "AnnotationRef",
    "AppearanceDocument",
    "AppearanceSource",
    "AppearanceValidator",
    "ValidatorConfig",
    "ValidationService",
    # Exceptions
    "AppearanceCheckError",
    "ContentStreamError",
    "MalformedContentStream",
    "DocumentError",
    "PDFNotFoundError",
    "PDFCorruptedError",
    "AnnotationNotFoundError",
    "AppearanceStreamMissingError",
    "AppearanceReadError",
    "RegenerationError",
    "format_error_chain",
]
