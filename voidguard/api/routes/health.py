"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter

from voidguard.config import APP_VERSION
from voidguard.core.rule_engine import RULE_REGISTRY

router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": APP_VERSION,
        "engine": "deterministic",
        "rules": list(RULE_REGISTRY),
    }
