"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from voidguard.audit.logger import AuditLogger
from voidguard.cache.file_cache import FileCache
from voidguard.workers.scan_worker import ScanWorker


@lru_cache
def get_file_cache() -> FileCache:
    """Shared parse cache singleton."""
    return FileCache()


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Shared audit logger singleton."""
    return AuditLogger()


@lru_cache
def get_scan_worker() -> ScanWorker:
    """Shared scan worker singleton."""
    return ScanWorker(
        cache=get_file_cache(),
        audit_logger=get_audit_logger(),
    )
