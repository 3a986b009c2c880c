"""Filesystem services used by the rename engine.

This package contains the stateless, non-concurrent pieces:
- pure lowercase path transforms
- directory enumeration with per-entry metadata
- ownership/permission access behind a capability check
- a collision-aware single-entry rename
"""

from __future__ import annotations

from .listing import Entry, format_mode, list_entries
from .metadata import MetadataAccessor, PosixMetadata, UnsupportedMetadata, metadata_accessor
from .paths import is_lowercase, lowercase_name, lowercase_path
from .rename import rename_path, would_conflict

__all__ = [
    "Entry",
    "format_mode",
    "list_entries",
    "MetadataAccessor",
    "PosixMetadata",
    "UnsupportedMetadata",
    "metadata_accessor",
    "is_lowercase",
    "lowercase_name",
    "lowercase_path",
    "rename_path",
    "would_conflict",
]
