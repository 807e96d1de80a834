"""Quarantine directory lifecycle and the extract → validate cycle."""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"
__all__ = (
    "Quarantine",
    "check_archive",
)

import logging
import os
import shutil
import tempfile
from pathlib import Path

from apgcheck._core import extract
from apgcheck._models import CheckReport
from apgcheck._validator import get_schema, validate

log = logging.getLogger("apgcheck.quarantine")


class Quarantine:
    """A fresh, empty scratch directory removed on every exit path.

    The directory is created on ``__enter__`` with a unique name under
    *parent* (the system temporary directory by default).  Removal
    errors never propagate: they are logged and kept in
    ``cleanup_error`` so the caller can surface them as a warning.
    """

    def __init__(
        self,
        parent: str | os.PathLike[str] | None = None,
        prefix: str = "apgcheck-",
    ) -> None:
        self._parent = parent
        self._prefix = prefix
        self.path: Path | None = None
        self.cleanup_error: str | None = None

    def __enter__(self) -> Path:
        self.path = Path(tempfile.mkdtemp(prefix=self._prefix, dir=self._parent))
        log.debug("Created quarantine directory %s", self.path)
        return self.path

    def __exit__(self, *args: object) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self.path is None:
            return
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.cleanup_error = f"Failed to delete temp folder: {exc}"
            log.warning("%s", self.cleanup_error)
        else:
            log.debug("Removed quarantine directory %s", self.path)
        self.path = None


def check_archive(
    archive: str | os.PathLike[str],
    format_version: int = 1,
    *,
    quarantine_parent: str | os.PathLike[str] | None = None,
    **kwargs: object,
) -> CheckReport:
    """Extract *archive* into a quarantine directory and validate it.

    Keyword arguments are forwarded to ``SafeApgArchive``.  The
    quarantine directory is gone when this returns, whatever the
    outcome.

    Raises ``ValueError`` for an unsupported *format_version* before
    touching the filesystem.
    """
    if archive is None:
        raise TypeError("check_archive() requires an archive path")
    get_schema(format_version)

    quarantine = Quarantine(parent=quarantine_parent)
    with quarantine as destination:
        outcome = extract(archive, destination, **kwargs)
        if not outcome.ok:
            validation = None
        else:
            max_size = kwargs.get("max_file_size")
            if isinstance(max_size, int):
                validation = validate(
                    destination, format_version, max_metadata_size=max_size
                )
            else:
                validation = validate(destination, format_version)

    return CheckReport(
        extraction=outcome,
        validation=validation,
        cleanup_error=quarantine.cleanup_error,
    )
