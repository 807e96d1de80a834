"""Structural and metadata-schema validation of an extracted APG tree.

The validator trusts its input tree: it runs only on the output of a
successful extraction and does not re-check paths.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"
__all__ = (
    "REQUIRED_ENTRIES",
    "SCHEMAS",
    "FieldKind",
    "FieldSpec",
    "MetadataRecord",
    "MetadataSchema",
    "check_structure",
    "get_schema",
    "load_metadata",
    "missing_fields",
    "validate",
)

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from apgcheck._exceptions import (
    MetadataParseError,
    SchemaValidationError,
    StructuralValidationError,
)
from apgcheck._models import ValidationResult, ValidationStatus
from apgcheck._streamer import MAX_FILE_SIZE

log = logging.getLogger("apgcheck.validation")

METADATA_FILE = "metadata.json"

# Mandatory top-level entries, in the order they are checked, and
# whether each must be a directory.
REQUIRED_ENTRIES: tuple[tuple[str, bool], ...] = (
    ("data", True),
    ("md5sums", False),
    (METADATA_FILE, False),
)


class FieldKind(Enum):
    SCALAR = "scalar"
    LIST = "list"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    kind: FieldKind
    required: bool = True


@dataclass(frozen=True, slots=True)
class MetadataSchema:
    """Ordered field descriptor for one metadata format version."""

    version: int
    fields: tuple[FieldSpec, ...]

    @property
    def required(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.required)


_S = FieldKind.SCALAR
_L = FieldKind.LIST

SCHEMA_V1 = MetadataSchema(
    version=1,
    fields=(
        FieldSpec("name", _S),
        FieldSpec("version", _S),
        FieldSpec("architecture", _S, required=False),
        FieldSpec("description", _S),
        FieldSpec("maintainer", _S),
        FieldSpec("license", _S, required=False),
        FieldSpec("homepage", _S),
        FieldSpec("dependencies", _L),
        FieldSpec("conflicts", _L),
        FieldSpec("provides", _L),
        FieldSpec("replaces", _L),
    ),
)

SCHEMA_V2 = MetadataSchema(
    version=2,
    fields=SCHEMA_V1.fields
    + (
        FieldSpec("type", _S),
        FieldSpec("tags", _L),
        FieldSpec("conf", _L),
    ),
)

SCHEMAS: Mapping[int, MetadataSchema] = MappingProxyType(
    {SCHEMA_V1.version: SCHEMA_V1, SCHEMA_V2.version: SCHEMA_V2}
)


def get_schema(format_version: int) -> MetadataSchema:
    """Return the schema for *format_version*; ``ValueError`` if unknown."""
    try:
        return SCHEMAS[format_version]
    except KeyError:
        raise ValueError(
            f"Unsupported format version {format_version!r}; "
            f"expected one of {sorted(SCHEMAS)}"
        ) from None


@dataclass(frozen=True, slots=True)
class MetadataRecord:
    """Parsed ``metadata.json``.

    ``fields`` holds only the keys the schema knows about.  A key maps to
    ``None`` when it was present as JSON ``null``; absent keys are not in
    the mapping at all.
    """

    format_version: int
    fields: Mapping[str, str | list[str] | None] = field(default_factory=dict)

    def get(self, name: str) -> str | list[str] | None:
        return self.fields.get(name)


# ---- structure ---------------------------------------------------------------


def check_structure(root: str | os.PathLike[str]) -> None:
    """Raise ``StructuralValidationError`` for the first missing entry."""
    base = Path(root)
    for name, is_dir in REQUIRED_ENTRIES:
        path = base / name
        present = path.is_dir() if is_dir else path.is_file()
        if not present:
            raise StructuralValidationError(
                f"a required file or folder is missing: {name}", path=name
            )


# ---- metadata ----------------------------------------------------------------


def _read_bounded(path: Path, max_size: int) -> bytes:
    try:
        with open(path, "rb") as fh:
            data = fh.read(max_size + 1)
    except OSError as exc:
        raise SchemaValidationError(f"Failed to read metadata: {exc}") from exc
    if len(data) > max_size:
        raise SchemaValidationError(
            f"Metadata file exceeds the size limit ({max_size} bytes)"
        )
    return data


def _check_type(spec: FieldSpec, value: object) -> None:
    if value is None:
        return
    if spec.kind is FieldKind.SCALAR:
        if not isinstance(value, str):
            raise MetadataParseError(
                f"Metadata invalid JSON: field {spec.name!r} must be a string, "
                f"got {type(value).__name__}"
            )
        return
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MetadataParseError(
            f"Metadata invalid JSON: field {spec.name!r} must be a list of strings"
        )


def load_metadata(
    path: str | os.PathLike[str],
    format_version: int,
    *,
    max_size: int = MAX_FILE_SIZE,
) -> MetadataRecord:
    """Read and parse the metadata file at *path*.

    Raises ``SchemaValidationError`` if the file cannot be read or is
    over *max_size*, and ``MetadataParseError`` if it is not a JSON
    object or a known field has the wrong type.
    """
    schema = get_schema(format_version)
    raw = _read_bounded(Path(path), max_size)

    try:
        document = json.loads(raw)
    except ValueError as exc:
        # JSONDecodeError and UnicodeDecodeError both land here.
        raise MetadataParseError(f"Metadata invalid JSON: {exc}") from exc

    if not isinstance(document, dict):
        raise MetadataParseError(
            "Metadata invalid JSON: top-level value must be an object, "
            f"got {type(document).__name__}"
        )

    fields: dict[str, str | list[str] | None] = {}
    for spec in schema.fields:
        if spec.name not in document:
            continue
        value = document[spec.name]
        _check_type(spec, value)
        fields[spec.name] = value

    return MetadataRecord(format_version=format_version, fields=fields)


def missing_fields(record: MetadataRecord, schema: MetadataSchema) -> list[str]:
    """Return every required field *record* lacks, in schema order.

    A scalar is missing when absent, ``null`` or empty.  A list is
    missing only when absent or ``null``: ``[]`` counts as present.
    """
    missing: list[str] = []
    for spec in schema.required:
        value = record.get(spec.name)
        if spec.kind is FieldKind.SCALAR:
            if not value:
                missing.append(spec.name)
        elif value is None:
            missing.append(spec.name)
    return missing


# ---- entry point -------------------------------------------------------------


def validate(
    root: str | os.PathLike[str],
    format_version: int = 1,
    *,
    max_metadata_size: int = MAX_FILE_SIZE,
) -> ValidationResult:
    """Validate the extracted APG tree at *root*.

    The structural check runs first and short-circuits; then
    ``metadata.json`` is parsed and checked against the schema for
    *format_version*.  All missing fields are reported together.

    Raises ``ValueError`` for an unsupported *format_version*.
    """
    schema = get_schema(format_version)

    try:
        check_structure(root)
    except StructuralValidationError as exc:
        log.info("Structural validation failed for %s: %s", root, exc)
        return ValidationResult(ValidationStatus.BAD, structural_error=exc)

    try:
        record = load_metadata(
            Path(root) / METADATA_FILE,
            format_version,
            max_size=max_metadata_size,
        )
        missing = missing_fields(record, schema)
        if missing:
            raise SchemaValidationError(
                f"Missing or empty fields in metadata: {missing}",
                missing_fields=missing,
            )
    except SchemaValidationError as exc:
        log.info("Schema validation failed for %s: %s", root, exc)
        return ValidationResult(ValidationStatus.BAD, schema_error=exc)

    return ValidationResult.good()
