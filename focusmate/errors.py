"""Error definitions for the FocusMate annotation engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Kinds of recoverable problems."""

    MISSING_COLOR_KEY = auto()
    MALFORMED_CONFIGURATION = auto()
    OUT_OF_RANGE_PREFERENCE = auto()
    DOCUMENT = auto()
    FILE_IO = auto()
    ARGUMENT = auto()
    OTHER = auto()


class FocusMateError(Exception):
    """Base class for FocusMate failures that stop a run."""


class UnsupportedFileTypeError(FocusMateError):
    """The document suffix has no handler."""


class OverwriteRefusedError(FocusMateError):
    """The output exists, or is the input itself."""


class ConfigurationError(FocusMateError):
    """Raised when application settings cannot be loaded or validated."""


class DocumentError(FocusMateError):
    """Raised when a single document node cannot be rewritten."""


@dataclass
class ErrorRecord:
    """One recovered error, kept for the end-of-run report."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None
