"""
VoidGuard — POST /scan endpoint.

Accepts {"files": [{"path", "content"}], "references": [...] | null}, parses
every file with tree-sitter as one compilation, and reports async void
methods on ASP.NET Core framework types.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from voidguard.api.dependencies import get_scan_worker
from voidguard.config import settings
from voidguard.models.scan_models import ScanRequest, ScanResponse
from voidguard.workers.scan_worker import ScanWorker

logger = logging.getLogger("voidguard.scan")
router = APIRouter()


def _validate(req: ScanRequest) -> None:
    if len(req.files) > settings.max_files_per_scan:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.max_files_per_scan} files can be scanned at once",
        )
    for f in req.files:
        if len(f.content.encode("utf-8")) > settings.max_file_size_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File '{f.path}' exceeds {settings.max_file_size_bytes} bytes",
            )


@router.post("/scan", response_model=ScanResponse)
async def scan_code(req: ScanRequest, worker: ScanWorker = Depends(get_scan_worker)):
    """Scan C# files for async void methods on framework-invoked types."""
    if not req.files:
        return ScanResponse(message="error", detail="No files provided.")

    _validate(req)

    try:
        return await worker.run_scan(req.files, references=req.references)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Unexpected scan error")
        return ScanResponse(message="error", detail="Scan failed safely.")
