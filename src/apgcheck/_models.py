"""Entry kinds, outcome and result records for apgcheck."""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"
__all__ = (
    "CheckReport",
    "EntryKind",
    "ExtractionOutcome",
    "SkippedEntry",
    "ValidationResult",
    "ValidationStatus",
)

from dataclasses import dataclass
from enum import Enum

from apgcheck._exceptions import (
    ExtractionError,
    SchemaValidationError,
    StructuralValidationError,
    ValidationError,
)


class EntryKind(Enum):
    """Classification of a tar entry for dispatch.

    ``FILE`` and ``DIRECTORY`` are extracted, ``SYMLINK`` and
    ``HARDLINK`` abort extraction, ``OTHER`` (devices, FIFOs, sparse
    files, unknown type codes) is skipped with a warning.
    """

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    HARDLINK = "hardlink"
    OTHER = "other"


class ValidationStatus(Enum):
    GOOD = "good"
    BAD = "bad"


@dataclass(frozen=True, slots=True)
class SkippedEntry:
    """Non-fatal warning: an entry of an unsupported kind was not written."""

    name: str
    type_code: bytes

    def __str__(self) -> str:
        return f"Skipping unsupported entry type {self.type_code!r}: {self.name!r}"


@dataclass(frozen=True, slots=True)
class ExtractionOutcome:
    """Terminal result of one extraction.

    ``error`` is ``None`` on success.  ``skipped`` is populated in both
    cases with the entries that were passed over before extraction
    finished or aborted.
    """

    error: ExtractionError | None = None
    skipped: tuple[SkippedEntry, ...] = ()
    entry_count: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def entry_name(self) -> str | None:
        """Name of the entry that aborted extraction, if any."""
        return None if self.error is None else self.error.entry_name

    @property
    def reason(self) -> str | None:
        return None if self.error is None else str(self.error)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Verdict on an extracted tree.

    At most one of ``structural_error`` and ``schema_error`` is set;
    the structural phase short-circuits the schema phase.
    """

    status: ValidationStatus
    structural_error: StructuralValidationError | None = None
    schema_error: SchemaValidationError | None = None

    @classmethod
    def good(cls) -> ValidationResult:
        return cls(ValidationStatus.GOOD)

    @property
    def ok(self) -> bool:
        return self.status is ValidationStatus.GOOD

    @property
    def error(self) -> ValidationError | None:
        return self.structural_error or self.schema_error


@dataclass(frozen=True, slots=True)
class CheckReport:
    """Everything the orchestrator learned about one archive.

    ``validation`` is ``None`` when extraction failed.  A cleanup failure
    is reported through ``cleanup_error`` and does not affect ``ok``.
    """

    extraction: ExtractionOutcome
    validation: ValidationResult | None = None
    cleanup_error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.extraction.ok
            and self.validation is not None
            and self.validation.ok
        )
