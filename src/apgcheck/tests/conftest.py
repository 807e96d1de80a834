"""Archive factory fixtures for apgcheck tests.

Every fixture generates a real, crafted ``.tar.xz`` archive
programmatically using Python's ``tarfile`` and ``lzma`` modules.
No mocks, no stubs.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"

import io
import json
import lzma
import tarfile

import pytest

# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

VALID_METADATA_V1 = {
    "name": "hello",
    "version": "1.0.0",
    "architecture": "x86_64",
    "description": "Prints a greeting",
    "maintainer": "Jane Doe <jane@example.org>",
    "license": "GPL-3.0",
    "homepage": "https://example.org/hello",
    "dependencies": [],
    "conflicts": [],
    "provides": ["hello"],
    "replaces": [],
}

VALID_METADATA_V2 = {
    **VALID_METADATA_V1,
    "type": "binary",
    "tags": ["cli"],
    "conf": [],
}


def _tar_bytes(callback, *, fmt: int = tarfile.PAX_FORMAT) -> bytes:
    """Create a TAR archive in memory via *callback(tf)* and return bytes."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=fmt) as tf:
        callback(tf)
    return buf.getvalue()


def _xz(data: bytes) -> bytes:
    return lzma.compress(data, format=lzma.FORMAT_XZ)


def _write_to_path(tmp_path, name: str, data: bytes) -> str:
    p = tmp_path / name
    p.write_bytes(data)
    return str(p)


def add_regular(tf, name: str, content: bytes, mode: int = 0o644) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(content)
    info.mode = mode
    tf.addfile(info, io.BytesIO(content))


def add_dir(tf, name: str, mode: int = 0o755) -> None:
    info = tarfile.TarInfo(name=name)
    info.type = tarfile.DIRTYPE
    info.mode = mode
    tf.addfile(info)


def add_symlink(tf, name: str, target: str) -> None:
    info = tarfile.TarInfo(name=name)
    info.type = tarfile.SYMTYPE
    info.linkname = target
    tf.addfile(info)


def add_hardlink(tf, name: str, target: str) -> None:
    info = tarfile.TarInfo(name=name)
    info.type = tarfile.LNKTYPE
    info.linkname = target
    tf.addfile(info)


def add_device(tf, name: str, devtype: bytes) -> None:
    info = tarfile.TarInfo(name=name)
    info.type = devtype
    info.devmajor = 1
    info.devminor = 3
    tf.addfile(info)


def add_apg_layout(tf, metadata: dict | bytes | None = None) -> None:
    """Add ``data/``, ``md5sums`` and ``metadata.json`` to *tf*."""
    if metadata is None:
        metadata = VALID_METADATA_V1
    raw = metadata if isinstance(metadata, bytes) else json.dumps(metadata).encode()
    add_dir(tf, "data/")
    add_regular(tf, "data/usr/bin/hello", b"#!/bin/sh\necho hello\n", mode=0o755)
    add_regular(tf, "md5sums", b"d41d8cd98f00b204e9800998ecf8427e  usr/bin/hello\n")
    add_regular(tf, "metadata.json", raw)


# ---------------------------------------------------------------------------
# factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_archive(tmp_path):
    """Return ``build(callback, name=...)`` writing an xz-compressed tar."""

    def build(callback, name: str = "package.apg") -> str:
        return _write_to_path(tmp_path, name, _xz(_tar_bytes(callback)))

    return build


@pytest.fixture()
def make_apg(make_archive):
    """Return ``build(metadata)`` producing a complete APG archive."""

    def build(metadata: dict | bytes | None = None, name: str = "package.apg") -> str:
        return make_archive(lambda tf: add_apg_layout(tf, metadata), name=name)

    return build


# ---------------------------------------------------------------------------
# legitimate archives
# ---------------------------------------------------------------------------


@pytest.fixture()
def legitimate_apg(make_apg):
    """A valid v1 APG archive."""
    return make_apg()


@pytest.fixture()
def legitimate_apg_v2(make_apg):
    """A valid v2 APG archive."""
    return make_apg(VALID_METADATA_V2)


# ---------------------------------------------------------------------------
# path traversal archives
# ---------------------------------------------------------------------------


@pytest.fixture()
def traversal_archive(make_archive):
    """``ok.txt``, then ``../../evil.txt``, then ``later.txt``."""

    def build(tf):
        add_regular(tf, "ok.txt", b"fine")
        add_regular(tf, "../../evil.txt", b"pwned")
        add_regular(tf, "later.txt", b"never written")

    return make_archive(build, name="traversal.apg")


@pytest.fixture()
def absolute_path_archive(make_archive):
    """Archive with an absolute path entry ``/etc/passwd``."""

    def build(tf):
        add_regular(tf, "/etc/passwd", b"root:x:0:0:")

    return make_archive(build, name="absolute.apg")


@pytest.fixture()
def pax_traversal_archive(make_archive):
    """Archive with a safe ustar name but malicious PAX path override."""

    def build(tf):
        info = tarfile.TarInfo(name="safe.txt")
        info.size = 5
        info.pax_headers = {"path": "../../etc/cron.d/evil"}
        tf.addfile(info, io.BytesIO(b"pwned"))

    return make_archive(build, name="pax_traversal.apg")


@pytest.fixture()
def gnu_longname_traversal_archive(tmp_path):
    """Archive using GNU LONGNAME whose reassembled name contains ``../``."""

    def build(tf):
        add_regular(tf, "a" * 150 + "/../../etc/passwd", b"pwned")

    data = _xz(_tar_bytes(build, fmt=tarfile.GNU_FORMAT))
    return _write_to_path(tmp_path, "gnu_longname.apg", data)


@pytest.fixture()
def long_name_archive(make_archive):
    """Archive whose only entry has a 256-character name."""

    def build(tf):
        add_regular(tf, "d/" + "n" * 254, b"x")

    return make_archive(build, name="long_name.apg")


# ---------------------------------------------------------------------------
# link archives
# ---------------------------------------------------------------------------


@pytest.fixture()
def symlink_internal_archive(make_archive):
    """Archive with a symlink that stays inside the extraction root."""

    def build(tf):
        add_regular(tf, "target.txt", b"target content\n")
        add_symlink(tf, "internal_link.txt", "target.txt")

    return make_archive(build, name="symlink_internal.apg")


@pytest.fixture()
def symlink_escape_archive(make_archive):
    """Archive with a symlink pointing outside the extraction root."""

    def build(tf):
        add_symlink(tf, "escape_link", "../../../etc/passwd")

    return make_archive(build, name="symlink_escape.apg")


@pytest.fixture()
def hardlink_internal_archive(make_archive):
    """Archive with an internal hardlink whose target comes first."""

    def build(tf):
        add_regular(tf, "original.txt", b"original content\n")
        add_hardlink(tf, "copy.txt", "original.txt")

    return make_archive(build, name="hardlink_internal.apg")


# ---------------------------------------------------------------------------
# skipped entry types
# ---------------------------------------------------------------------------


@pytest.fixture()
def special_entries_archive(make_archive):
    """Archive with a character device and a FIFO between regular files."""

    def build(tf):
        add_regular(tf, "before.txt", b"before")
        add_device(tf, "dev_null", tarfile.CHRTYPE)
        info = tarfile.TarInfo(name="my_fifo")
        info.type = tarfile.FIFOTYPE
        tf.addfile(info)
        add_regular(tf, "after.txt", b"after")

    return make_archive(build, name="special.apg")


# ---------------------------------------------------------------------------
# size limit archives
# ---------------------------------------------------------------------------


@pytest.fixture()
def oversized_member_archive(tmp_path):
    """Archive declaring a 500 MiB + 1 byte member with no data behind it.

    The header alone is enough: the size guard must fire before any data
    is read.
    """
    info = tarfile.TarInfo(name="huge.bin")
    info.size = 500 * 1024 * 1024 + 1
    raw = info.tobuf(format=tarfile.USTAR_FORMAT) + b"\0" * (2 * tarfile.BLOCKSIZE)
    return _write_to_path(tmp_path, "oversized.apg", _xz(raw))


@pytest.fixture()
def small_members_archive(make_archive):
    """Three 1 KiB members (for testing the aggregate budget)."""

    def build(tf):
        for i in range(3):
            add_regular(tf, f"part_{i}.bin", b"A" * 1024)

    return make_archive(build, name="small_members.apg")


# ---------------------------------------------------------------------------
# malformed archives
# ---------------------------------------------------------------------------


@pytest.fixture()
def not_xz_archive(tmp_path):
    """A plain, uncompressed tar file."""

    def build(tf):
        add_regular(tf, "hello.txt", b"hello")

    return _write_to_path(tmp_path, "plain.apg", _tar_bytes(build))


@pytest.fixture()
def truncated_archive(tmp_path):
    """An xz archive cut off in the middle of a member."""

    def build(tf):
        add_regular(tf, "first.txt", b"first")
        add_regular(tf, "payload.bin", bytes(range(256)) * 4096)

    data = _xz(_tar_bytes(build))
    return _write_to_path(tmp_path, "truncated.apg", data[: len(data) // 2])


def _apg_with_trailer_bytes() -> tuple[bytes, int]:
    """Return an APG tar with one extra member, and that member's offset.

    The extra member sits after the complete APG layout, so dropping or
    corrupting it leaves a tree that would still validate.
    """

    def build(tf):
        add_apg_layout(tf)
        add_regular(tf, "data/usr/share/doc/hello/README", b"read me\n")

    raw = _tar_bytes(build)
    with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as tf:
        last = tf.getmembers()[-1]
    return raw, last.offset


@pytest.fixture()
def member_boundary_truncated_archive(tmp_path):
    """A complete xz stream whose tar ends right before the last header."""
    raw, offset = _apg_with_trailer_bytes()
    return _write_to_path(tmp_path, "boundary.apg", _xz(raw[:offset]))


@pytest.fixture()
def bad_checksum_archive(tmp_path):
    """The last member's header carries a wrong checksum."""
    raw, offset = _apg_with_trailer_bytes()
    corrupt = bytearray(raw)
    # chksum field: 8 bytes at offset 148 of the header block.
    corrupt[offset + 148 : offset + 156] = b"000000\0 "
    return _write_to_path(tmp_path, "bad_checksum.apg", _xz(bytes(corrupt)))


@pytest.fixture()
def missing_xz_footer_archive(tmp_path):
    """An intact tar whose xz stream lost its index and footer."""
    raw, _ = _apg_with_trailer_bytes()
    return _write_to_path(tmp_path, "no_footer.apg", _xz(raw)[:-20])


@pytest.fixture()
def bad_trailer_archive(tmp_path):
    """One zero block, then junk where the second zero block belongs."""

    def build(tf):
        add_apg_layout(tf)

    raw = _tar_bytes(build)
    with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as tf:
        tf.getmembers()
        end = tf.offset
    junk = raw[: end + tarfile.BLOCKSIZE] + b"J" * tarfile.BLOCKSIZE
    return _write_to_path(tmp_path, "bad_trailer.apg", _xz(junk))
