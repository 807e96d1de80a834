"""Phase B — The Sandbox: containment check and permission sanitisation.

Every cleaned entry name is joined onto the canonical destination root
and canonicalised again.  Existing symlinked components are followed by
the canonicalisation, which is what the lexical Guard cannot see.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"
__all__ = (
    "DIR_MODE_CAP",
    "FILE_MODE",
    "is_within",
    "resolve_member_path",
    "sanitise_dir_mode",
)

import os
import stat
from pathlib import Path

from apgcheck._exceptions import PathSecurityViolation

# Upper bound for directory permissions: no group/other write bits and
# no setuid/setgid/sticky.
DIR_MODE_CAP = 0o755

# Extracted regular files are always written with this mode.
FILE_MODE = 0o644


def is_within(base: Path, candidate: Path) -> bool:
    """Return True if *candidate* is *base* or a descendant of it.

    Both paths must already be canonical.
    """
    return candidate == base or str(candidate).startswith(str(base) + os.sep)


def resolve_member_path(base_dir: str | os.PathLike[str], cleaned_name: str) -> Path:
    """Resolve *cleaned_name* against *base_dir* and return the target.

    *cleaned_name* must already have passed the Guard.  The returned path
    is canonical.

    Raises ``PathSecurityViolation`` if the canonical target is neither
    the canonical *base_dir* nor inside it.
    """
    base = Path(base_dir).resolve()
    target = (base / cleaned_name).resolve()
    if not is_within(base, target):
        raise PathSecurityViolation(
            "Path traversal detected, target path outside destination: "
            f"{cleaned_name!r}",
            entry_name=cleaned_name,
        )
    return target


def sanitise_dir_mode(mode: int | None) -> int:
    """Cap a directory *mode* at ``DIR_MODE_CAP``.

    The owner always keeps ``rwx`` so the tree can be populated and
    removed afterwards.
    """
    if mode is None:
        return DIR_MODE_CAP
    return (stat.S_IMODE(mode) & DIR_MODE_CAP) | stat.S_IRWXU
