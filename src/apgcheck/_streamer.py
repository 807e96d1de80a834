"""Phase C — The Streamer: size enforcement and byte copying.

Member data is copied straight from the decompressing tar stream to the
destination in fixed-size chunks; neither the archive nor a member is
ever held in memory as a whole.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"
__all__ = (
    "MAX_FILE_SIZE",
    "ExtractionMonitor",
    "extract_member_streaming",
)

import lzma
import os
import tarfile
from pathlib import Path

from apgcheck._exceptions import (
    ArchiveFormatError,
    ArchiveIOError,
    SizeLimitExceeded,
)
from apgcheck._sandbox import FILE_MODE

# Per-member ceiling on the declared size of a regular file.
MAX_FILE_SIZE = 500 * 1024 * 1024

# Chunk size for streaming extraction.
_CHUNK_SIZE = 65536


class ExtractionMonitor:
    """Enforces the per-member ceiling and the optional aggregate budget.

    The per-member ceiling is checked against the *declared* size before
    any data is read.  The aggregate budget (``max_total_size``) is
    disabled when ``None`` and is charged as bytes are written.
    """

    def __init__(
        self,
        *,
        max_file_size: int,
        max_total_size: int | None = None,
    ) -> None:
        self._max_file_size = max_file_size
        self._max_total_size = max_total_size
        self._total_bytes: int = 0

    def check_declared(self, info: tarfile.TarInfo) -> None:
        """Raise ``SizeLimitExceeded`` if *info* is over the ceiling."""
        if info.size > self._max_file_size:
            raise SizeLimitExceeded(
                f"File too large: {info.name!r} ({info.size} bytes, "
                f"limit {self._max_file_size})",
                entry_name=info.name,
            )
        if (
            self._max_total_size is not None
            and self._total_bytes + info.size > self._max_total_size
        ):
            raise SizeLimitExceeded(
                f"Archive exceeds total size budget ({self._max_total_size} "
                f"bytes) at {info.name!r}",
                entry_name=info.name,
            )

    def account(self, n: int) -> None:
        self._total_bytes += n

    @property
    def total_bytes(self) -> int:
        return self._total_bytes


def extract_member_streaming(
    tf: tarfile.TarFile,
    info: tarfile.TarInfo,
    dest_path: Path,
    monitor: ExtractionMonitor,
) -> None:
    """Write the regular-file member *info* to *dest_path*.

    Parent directories are created as needed and an existing file at
    *dest_path* is truncated.  Exactly ``info.size`` bytes are copied.
    """
    monitor.check_declared(info)

    try:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ArchiveIOError(
            f"Failed to create a file path: {exc}", entry_name=info.name
        ) from exc

    source = tf.extractfile(info)
    if source is None:
        raise ArchiveFormatError(
            f"No data region for regular file: {info.name!r}",
            entry_name=info.name,
        )

    written = 0
    try:
        with source, open(dest_path, "wb") as out:
            while written < info.size:
                chunk = source.read(min(_CHUNK_SIZE, info.size - written))
                if not chunk:
                    break
                out.write(chunk)
                written += len(chunk)
                monitor.account(len(chunk))
        os.chmod(dest_path, FILE_MODE)
    except (tarfile.TarError, lzma.LZMAError, EOFError) as exc:
        # Truncated or corrupt stream.
        raise ArchiveFormatError(
            f"Archive stream error during extraction of {info.name!r}: {exc}",
            entry_name=info.name,
        ) from exc
    except OSError as exc:
        raise ArchiveIOError(
            f"Failed to write file {info.name!r}: {exc}", entry_name=info.name
        ) from exc

    if written != info.size:
        raise ArchiveFormatError(
            f"Unexpected end of data in {info.name!r}: "
            f"{written} of {info.size} bytes",
            entry_name=info.name,
        )
