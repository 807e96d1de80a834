"""apgcheck — Validate untrusted APG package archives.

Hardened ``.tar.xz`` extraction into a quarantine directory followed by
structural and metadata-schema validation.  Python 3.10+.
"""

from __future__ import annotations

__title__ = "apgcheck"
__version__ = "0.1.0"
__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"

from apgcheck._core import SafeApgArchive, extract
from apgcheck._exceptions import (
    ApgcheckError,
    ArchiveFormatError,
    ArchiveIOError,
    ExtractionError,
    MetadataParseError,
    PathSecurityViolation,
    SchemaValidationError,
    SizeLimitExceeded,
    StructuralValidationError,
    ValidationError,
)
from apgcheck._models import (
    CheckReport,
    EntryKind,
    ExtractionOutcome,
    SkippedEntry,
    ValidationResult,
    ValidationStatus,
)
from apgcheck._quarantine import Quarantine, check_archive
from apgcheck._validator import MetadataRecord, MetadataSchema, validate

__all__ = [
    # Core
    "SafeApgArchive",
    "extract",
    "validate",
    "check_archive",
    "Quarantine",
    "MetadataRecord",
    "MetadataSchema",
    # Exceptions
    "ApgcheckError",
    "ExtractionError",
    "ArchiveIOError",
    "ArchiveFormatError",
    "PathSecurityViolation",
    "SizeLimitExceeded",
    "ValidationError",
    "StructuralValidationError",
    "SchemaValidationError",
    "MetadataParseError",
    # Results
    "CheckReport",
    "EntryKind",
    "ExtractionOutcome",
    "SkippedEntry",
    "ValidationResult",
    "ValidationStatus",
]
