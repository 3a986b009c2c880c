"""Best-effort ownership and permission access for single paths.

``metadata_accessor`` picks an implementation by platform capability: POSIX
hosts get real UID/GID/mode handling, everything else gets an accessor that
reports ``UnsupportedError`` so callers can log and move on.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

from ..errors import StatError, UnsupportedError


class PosixMetadata:
    """Ownership/permission accessor backed by ``lstat``/``lchown``/``chmod``."""

    supports_ownership = True

    def get_mode(self, path: Path) -> int:
        """Return full ``st_mode`` of ``path`` without following symlinks."""
        try:
            return os.lstat(path).st_mode
        except OSError as exc:
            raise StatError(f"cannot stat: {exc.strerror or exc}", path) from exc

    def get_ownership(self, path: Path) -> tuple[int, int]:
        """Return ``(uid, gid)`` of ``path`` without following symlinks."""
        try:
            info = os.lstat(path)
        except OSError as exc:
            raise UnsupportedError(f"cannot read ownership: {exc.strerror or exc}", path) from exc
        return int(info.st_uid), int(info.st_gid)

    def set_ownership(self, path: Path, uid: int, gid: int) -> Exception | None:
        """Change owner of ``path`` (the link itself for symlinks).

        Returns the failure instead of raising.
        """
        try:
            os.lchown(path, uid, gid)
        except OSError as exc:
            return exc
        return None

    def set_permissions(self, path: Path, mode: int) -> Exception | None:
        """Apply the permission bits of ``mode`` to ``path``.

        Symlinks are skipped since their mode cannot be changed portably.
        Returns the failure instead of raising.
        """
        try:
            if stat.S_ISLNK(os.lstat(path).st_mode):
                return None
            os.chmod(path, stat.S_IMODE(mode))
        except OSError as exc:
            return exc
        return None


class UnsupportedMetadata:
    """Accessor for platforms without POSIX ownership metadata."""

    supports_ownership = False

    def get_mode(self, path: Path) -> int:
        try:
            return os.stat(path).st_mode
        except OSError as exc:
            raise StatError(f"cannot stat: {exc.strerror or exc}", path) from exc

    def get_ownership(self, path: Path) -> tuple[int, int]:
        raise UnsupportedError("ownership metadata is not available on this platform", path)

    def set_ownership(self, path: Path, uid: int, gid: int) -> Exception | None:
        return UnsupportedError("ownership metadata is not available on this platform", path)

    def set_permissions(self, path: Path, mode: int) -> Exception | None:
        try:
            os.chmod(path, stat.S_IMODE(mode))
        except OSError as exc:
            return exc
        return None


MetadataAccessor = PosixMetadata | UnsupportedMetadata


def metadata_accessor() -> MetadataAccessor:
    """Return the accessor matching this platform's capabilities."""
    if hasattr(os, "lchown") and os.name == "posix":
        return PosixMetadata()
    return UnsupportedMetadata()


__all__ = [
    "PosixMetadata",
    "UnsupportedMetadata",
    "MetadataAccessor",
    "metadata_accessor",
]
