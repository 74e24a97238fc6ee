"""
Rules Route — GET /rules lists every supported diagnostic.
"""

from __future__ import annotations

from fastapi import APIRouter

from voidguard.core.rule_engine import RULE_DESCRIPTORS
from voidguard.models.scan_models import RuleInfo

router = APIRouter()


@router.get("/rules", response_model=list[RuleInfo])
async def list_rules() -> list[RuleInfo]:
    return [
        RuleInfo(
            rule_id=rule_id,
            id=descriptor.id,
            title=descriptor.title,
            category=descriptor.category,
            default_severity=descriptor.default_severity.value,
            description=descriptor.description,
        )
        for rule_id, descriptors in RULE_DESCRIPTORS.items()
        for descriptor in descriptors
    ]
