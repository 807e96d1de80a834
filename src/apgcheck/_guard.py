"""Phase A — The Guard: per-entry header validation.

The Guard inspects each ``TarInfo`` header before a single byte of that
member reaches the filesystem.  Everything here is purely lexical: no
system calls are made, so clearly malicious names are rejected before
the (more expensive) containment check in the Sandbox.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"
__all__ = (
    "MAX_NAME_LENGTH",
    "StrictTarInfo",
    "classify_entry",
    "clean_entry_name",
    "validate_entry_name",
    "validate_entry_type",
)

import posixpath
import re
import tarfile

from apgcheck._exceptions import PathSecurityViolation
from apgcheck._models import EntryKind

# TAR type codes, grouped by how they are dispatched.
_REGULAR_TYPES = {tarfile.REGTYPE, tarfile.AREGTYPE, tarfile.CONTTYPE}
_DIR_TYPE = {tarfile.DIRTYPE}
_SYMLINK_TYPE = {tarfile.SYMTYPE}
_HARDLINK_TYPE = {tarfile.LNKTYPE}

# Maximum length of a cleaned entry name.
MAX_NAME_LENGTH = 255

_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")


class StrictTarInfo(tarfile.TarInfo):
    """``TarInfo`` that refuses to read a damaged header as end-of-archive.

    ``tarfile`` quietly ends iteration when a header after the first
    member is truncated, missing or fails its checksum.  Only a real
    zero block (``EOFHeaderError``) may end the archive here; every other
    header defect becomes a ``tarfile.ReadError``.
    """

    @classmethod
    def fromtarfile(cls, tf: tarfile.TarFile) -> tarfile.TarInfo:
        try:
            return super().fromtarfile(tf)
        except tarfile.EOFHeaderError:
            raise
        except tarfile.EmptyHeaderError as exc:
            raise tarfile.ReadError(
                f"Archive ends without an end-of-archive marker at offset {tf.offset}"
            ) from exc
        except tarfile.HeaderError as exc:
            raise tarfile.ReadError(
                f"Invalid tar header at offset {tf.offset}: {exc}"
            ) from exc


def _is_sparse(info: tarfile.TarInfo) -> bool:
    """Return True if *info* represents a GNU sparse file entry."""
    # tarfile reports sparse members as regular files, so the raw type
    # byte and the PAX annotations have to be checked explicitly.
    if getattr(info, "sparse", None):
        return True
    if info.type == tarfile.GNUTYPE_SPARSE:
        return True
    pax = getattr(info, "pax_headers", None) or {}
    return "GNU.sparse.major" in pax or "GNU.sparse.size" in pax


def classify_entry(info: tarfile.TarInfo) -> EntryKind:
    """Map *info*'s type code onto an ``EntryKind``."""
    if _is_sparse(info):
        return EntryKind.OTHER
    if info.type in _REGULAR_TYPES:
        return EntryKind.FILE
    if info.type in _DIR_TYPE:
        return EntryKind.DIRECTORY
    if info.type in _SYMLINK_TYPE:
        return EntryKind.SYMLINK
    if info.type in _HARDLINK_TYPE:
        return EntryKind.HARDLINK
    return EntryKind.OTHER


def validate_entry_type(info: tarfile.TarInfo) -> EntryKind:
    """Classify *info* and reject link entries.

    Links are never extracted, whatever they point at: a link that is
    harmless when written can still redirect a later write.

    Raises ``PathSecurityViolation`` for symlinks and hardlinks.
    """
    kind = classify_entry(info)
    if kind is EntryKind.SYMLINK:
        raise PathSecurityViolation(
            f"Symbolic links are not allowed in archive: {info.name!r}",
            entry_name=info.name,
        )
    if kind is EntryKind.HARDLINK:
        raise PathSecurityViolation(
            f"Hard links are not allowed in archive: {info.name!r}",
            entry_name=info.name,
        )
    return kind


def clean_entry_name(name: str) -> str:
    """Return the lexically cleaned form of *name*.

    Repeated separators and ``.`` segments are dropped and ``dir/..``
    pairs are collapsed.  The empty name cleans to ``"."``.
    """
    cleaned = posixpath.normpath(name) if name else "."
    # POSIX allows exactly two leading slashes to mean something special;
    # normpath preserves them, we do not.
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def validate_entry_name(name: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Run the path-traversal guard over *name*.

    Returns the cleaned relative name.

    Raises ``PathSecurityViolation`` if the name is absolute, has a
    ``..`` segment anywhere (before or after cleaning), is longer than
    *max_length* once cleaned, or carries a NUL byte.
    """
    # Raw segments first: "a/../b" cleans to "b" but is still refused.
    if ".." in name.replace("\\", "/").split("/"):
        raise PathSecurityViolation(
            f"Archive contains path traversal attempt: {name!r}",
            entry_name=name,
        )

    cleaned = clean_entry_name(name)

    if cleaned.startswith("/") or _WINDOWS_DRIVE.match(cleaned):
        raise PathSecurityViolation(
            f"Archive contains absolute path: {name!r}",
            entry_name=name,
        )

    if (
        cleaned == ".."
        or cleaned.startswith("../")
        or "/../" in cleaned
        or cleaned.endswith("/..")
    ):
        raise PathSecurityViolation(
            f"Archive contains path traversal attempt: {name!r}",
            entry_name=name,
        )

    if len(cleaned) > max_length:
        raise PathSecurityViolation(
            f"Path too long ({len(cleaned)} > {max_length}): {name[:256]!r}",
            entry_name=name,
        )

    if "\x00" in cleaned:
        raise PathSecurityViolation(
            f"Path contains null byte: {name[:256]!r}",
            entry_name=name,
        )

    return cleaned
