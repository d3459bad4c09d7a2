"""Response processing: accumulation, validation, extraction and sanitization."""

from .accumulator import StreamAccumulator
from .extraction import CodeExtractor, ExtractionDiagnostics, ExtractionStrategy
from .sanitizer import CodeSanitizer, Correction
from .validation import ResponseValidator, ValidationRule

__all__ = [
    "CodeExtractor",
    "CodeSanitizer",
    "Correction",
    "ExtractionDiagnostics",
    "ExtractionStrategy",
    "ResponseValidator",
    "StreamAccumulator",
    "ValidationRule",
]
