"""SafeApgArchive — streamed, hardened extraction of ``.tar.xz`` archives.

``SafeApgArchive`` decompresses the archive with ``lzma.LZMAFile`` and
reads the result through ``tarfile``'s stream mode (``r|``), so the tar
data is consumed one member at a time and never materialised.  Each
member runs through the Guard → Sandbox → Streamer phases before
anything is written.  The tar end-of-archive marker and the xz stream
footer are both required.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"
__all__ = (
    "SafeApgArchive",
    "extract",
)

import contextlib
import logging
import lzma
import os
import tarfile
from pathlib import Path
from typing import BinaryIO

from apgcheck._exceptions import (
    ArchiveFormatError,
    ArchiveIOError,
    ExtractionError,
)
from apgcheck._guard import (
    MAX_NAME_LENGTH,
    StrictTarInfo,
    validate_entry_name,
    validate_entry_type,
)
from apgcheck._models import EntryKind, ExtractionOutcome, SkippedEntry
from apgcheck._sandbox import resolve_member_path, sanitise_dir_mode
from apgcheck._streamer import (
    MAX_FILE_SIZE,
    ExtractionMonitor,
    extract_member_streaming,
)

log = logging.getLogger("apgcheck.security")

_DRAIN_CHUNK = 65536
_ZERO_BLOCK = b"\0" * tarfile.BLOCKSIZE


# ---- environment-variable configuration helpers ----------------------------
# Each helper reads the relevant APGCHECK_* variable and returns its typed
# value, falling back to *fallback* on absence or parse failure.


def _env_int(name: str, fallback: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return fallback
    try:
        return int(raw)
    except ValueError:
        return fallback


def _env_optional_int(name: str) -> int | None:
    """Like ``_env_int`` but ``None`` (disabled) when unset or ``<= 0``."""
    value = _env_int(name, 0)
    return value if value > 0 else None


class SafeApgArchive:
    """Hardened, single-pass extractor for an APG archive.

    The archive is a stream: ``extractall()`` may be called once.

    :param file: Path to the ``.tar.xz`` archive.
    :param max_file_size: Maximum declared size of a regular-file member
        (bytes).
    :param max_name_length: Maximum length of a cleaned member name.
    :param max_total_size: Optional budget for the sum of all member
        sizes (bytes).  ``None`` disables it.
    :raises ArchiveIOError: If the archive cannot be opened.
    :raises ArchiveFormatError: If the xz stream or the first tar header
        is invalid.
    """

    def __init__(
        self,
        file: str | os.PathLike[str],
        *,
        max_file_size: int = _env_int("APGCHECK_MAX_FILE_SIZE", MAX_FILE_SIZE),
        max_name_length: int = _env_int("APGCHECK_MAX_NAME_LENGTH", MAX_NAME_LENGTH),
        max_total_size: int | None = _env_optional_int("APGCHECK_MAX_TOTAL_SIZE"),
    ) -> None:
        self._max_file_size = max_file_size
        self._max_name_length = max_name_length
        self._max_total_size = max_total_size
        self._consumed = False
        self.skipped: list[SkippedEntry] = []
        self.entry_count = 0

        try:
            self._fileobj: BinaryIO = open(file, "rb")  # noqa: SIM115
        except OSError as exc:
            raise ArchiveIOError(f"Cannot open archive: {exc}") from exc

        self._xz = lzma.LZMAFile(self._fileobj, format=lzma.FORMAT_XZ)
        try:
            self._tf = tarfile.open(  # noqa: SIM115
                fileobj=self._xz, mode="r|", tarinfo=StrictTarInfo
            )
        except (tarfile.TarError, lzma.LZMAError, EOFError) as exc:
            self._xz.close()
            self._fileobj.close()
            raise ArchiveFormatError(f"Cannot create the xz reader: {exc}") from exc

    # ---- context manager ---------------------------------------------------

    def __enter__(self) -> SafeApgArchive:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the archive."""
        try:
            self._tf.close()
        finally:
            with contextlib.suppress(OSError, lzma.LZMAError, EOFError):
                self._xz.close()
            with contextlib.suppress(OSError):
                self._fileobj.close()

    # ---- extraction --------------------------------------------------------

    def extractall(self, path: str | os.PathLike[str]) -> list[SkippedEntry]:
        """Extract every member to *path*, aborting on the first violation.

        *path* is created if it does not exist.  Returns the entries that
        were skipped because of their type.  Nothing written before a
        violation is removed; that is the caller's job.
        """
        if path is None:
            raise TypeError(
                "SafeApgArchive.extractall() requires an explicit 'path' "
                "argument; extraction to the current working directory "
                "is not permitted"
            )
        if self._consumed:
            raise RuntimeError("SafeApgArchive is a stream and was already extracted")
        self._consumed = True

        try:
            base_dir = Path(path).resolve()
            base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArchiveIOError(f"Cannot create destination: {exc}") from exc

        monitor = ExtractionMonitor(
            max_file_size=self._max_file_size,
            max_total_size=self._max_total_size,
        )

        while True:
            try:
                info = self._tf.next()
            except (tarfile.TarError, lzma.LZMAError, EOFError) as exc:
                raise ArchiveFormatError(
                    f"Error during reading archive: {exc}"
                ) from exc
            if info is None:
                break
            self.entry_count += 1
            self._extract_one(info, base_dir, monitor)

        self._verify_end_of_archive()
        return self.skipped

    # ---- internal ----------------------------------------------------------

    def _verify_end_of_archive(self) -> None:
        """Check the tar trailer and read the xz stream to its footer.

        ``StrictTarInfo`` guarantees the first zero block was seen.  The
        block after it must be zeros too, or absent.  Draining the rest
        makes ``LZMAFile`` verify the stream index and footer.
        """
        stream = self._tf.fileobj
        try:
            trailer = stream.read(tarfile.BLOCKSIZE)
            if trailer and trailer != _ZERO_BLOCK:
                raise ArchiveFormatError("Invalid end-of-archive marker")
            while stream.read(_DRAIN_CHUNK):
                pass
        except (tarfile.TarError, lzma.LZMAError, EOFError) as exc:
            raise ArchiveFormatError(
                f"Error during reading archive: {exc}"
            ) from exc

    def _extract_one(
        self,
        info: tarfile.TarInfo,
        base_dir: Path,
        monitor: ExtractionMonitor,
    ) -> None:
        """Run Guard → Sandbox → Streamer for a single member."""
        try:
            self._extract_one_inner(info, base_dir, monitor)
        except ExtractionError as exc:
            log.warning("Rejected archive entry %r: %s", info.name, exc)
            raise

    def _extract_one_inner(
        self,
        info: tarfile.TarInfo,
        base_dir: Path,
        monitor: ExtractionMonitor,
    ) -> None:
        # ---- Guard phase ----
        cleaned = validate_entry_name(info.name, self._max_name_length)
        kind = validate_entry_type(info)

        # ---- Sandbox phase ----
        dest_path = resolve_member_path(base_dir, cleaned)

        if kind is EntryKind.OTHER:
            skipped = SkippedEntry(name=info.name, type_code=info.type)
            log.warning("%s", skipped)
            self.skipped.append(skipped)
            return

        if kind is EntryKind.DIRECTORY:
            try:
                dest_path.mkdir(parents=True, exist_ok=True)
                os.chmod(dest_path, sanitise_dir_mode(info.mode))
            except OSError as exc:
                raise ArchiveIOError(
                    f"Failed to create folder {info.name!r}: {exc}",
                    entry_name=info.name,
                ) from exc
            return

        # ---- Streamer phase: regular file extraction ----
        extract_member_streaming(self._tf, info, dest_path, monitor)


def extract(
    archive: str | os.PathLike[str],
    destination: str | os.PathLike[str],
    **kwargs: object,
) -> ExtractionOutcome:
    """Extract *archive* to *destination* and report the outcome.

    Unlike ``SafeApgArchive.extractall`` this never raises an
    ``ExtractionError``; the failure is carried in the returned
    ``ExtractionOutcome``.  Keyword arguments are forwarded to the
    ``SafeApgArchive`` constructor.
    """
    archive_obj: SafeApgArchive | None = None
    try:
        with SafeApgArchive(archive, **kwargs) as archive_obj:  # type: ignore[arg-type]
            archive_obj.extractall(destination)
    except ExtractionError as exc:
        log.debug("Extraction of %s failed: %s", archive, exc)
        if archive_obj is None:
            return ExtractionOutcome(error=exc)
        return ExtractionOutcome(
            error=exc,
            skipped=tuple(archive_obj.skipped),
            entry_count=archive_obj.entry_count,
        )
    return ExtractionOutcome(
        skipped=tuple(archive_obj.skipped),
        entry_count=archive_obj.entry_count,
    )
