"""Pure path transforms for case folding."""

from __future__ import annotations

from pathlib import Path


def lowercase_name(name: str) -> str:
    """Return the lowercase form of one path segment."""
    return name.lower()


def lowercase_path(root: Path, path: Path) -> Path:
    """Lowercase every segment of ``path`` below ``root``.

    The root segments themselves are kept verbatim. Raises ``ValueError`` when
    ``path`` is not under ``root``.
    """
    relative = path.relative_to(root)
    if not relative.parts:
        return path
    return root.joinpath(*(lowercase_name(part) for part in relative.parts))


def is_lowercase(name: str) -> bool:
    """Return whether renaming ``name`` to lowercase would be a no-op."""
    return lowercase_name(name) == name


__all__ = [
    "lowercase_name",
    "lowercase_path",
    "is_lowercase",
]
