"""Exception hierarchy for apgcheck.

All exceptions inherit from ``ApgcheckError`` so callers can catch the
package's entire error surface with a single ``except`` clause.
Extraction failures derive from ``ExtractionError`` and validation
failures from ``ValidationError``.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"


class ApgcheckError(Exception):
    """Base exception for all apgcheck failures."""


# ---- extraction ------------------------------------------------------------


class ExtractionError(ApgcheckError):
    """Extraction of the archive was aborted.

    :param message: Human-readable reason.
    :param entry_name: Name of the offending archive entry, if the
        failure is attributable to one.
    """

    def __init__(self, message: str, entry_name: str | None = None) -> None:
        super().__init__(message)
        self.entry_name = entry_name


class ArchiveIOError(ExtractionError):
    """The archive cannot be read or the destination cannot be written."""


class ArchiveFormatError(ExtractionError):
    """The archive is structurally invalid.

    Raised for a bad xz stream header, corrupt compressed data, broken
    tar framing and members whose data region is shorter than declared.
    """


class PathSecurityViolation(ExtractionError):
    """An entry would be written outside the destination root.

    Raised for ``..`` traversal, absolute names, containment-check
    failures, symlink and hardlink entries, over-long names and names
    carrying a NUL byte.
    """


class SizeLimitExceeded(ExtractionError):
    """A member's declared size (or the aggregate budget) is too large."""


# ---- validation ------------------------------------------------------------


class ValidationError(ApgcheckError):
    """The extracted tree is not a valid APG package."""


class StructuralValidationError(ValidationError):
    """A mandatory top-level entry is missing."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class SchemaValidationError(ValidationError):
    """``metadata.json`` is unreadable or lacks required fields.

    ``missing_fields`` lists every offending field, in schema order.
    It is empty when the failure happened before field checks ran.
    """

    def __init__(
        self,
        message: str,
        missing_fields: tuple[str, ...] | list[str] = (),
    ) -> None:
        super().__init__(message)
        self.missing_fields: tuple[str, ...] = tuple(missing_fields)


class MetadataParseError(SchemaValidationError):
    """``metadata.json`` is not a well-formed metadata record."""
