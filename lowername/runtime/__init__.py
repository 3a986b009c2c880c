"""Concurrent rename runtime.

This package groups the shared admission gate (``ConcurrencyLimiter``), the
injected audit log (``AuditLog``), and the recursive engine that drives them
(``LowercaseRenamer``).
"""

from __future__ import annotations

from .audit import DEFAULT_LOG_FILE, AuditLog, RenameOutcome, archive_existing_log
from .engine import LowercaseRenamer, RenameSummary, plan_sibling_renames
from .limiter import DEFAULT_MAX_IN_FLIGHT, ConcurrencyLimiter

__all__ = [
    "DEFAULT_LOG_FILE",
    "AuditLog",
    "RenameOutcome",
    "archive_existing_log",
    "LowercaseRenamer",
    "RenameSummary",
    "plan_sibling_renames",
    "DEFAULT_MAX_IN_FLIGHT",
    "ConcurrencyLimiter",
]
