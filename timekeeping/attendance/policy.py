"""Punch policy — the process-wide rule for merging repeated clock actions."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.attendance.schemas import PunchPolicyResponse
from timekeeping.common.audit import create_audit_entry
from timekeeping.common.constants import (
    DEFAULT_PUNCH_POLICY,
    PUNCH_POLICY_DESCRIPTIONS,
    PUNCH_POLICY_KEY,
    PunchPolicy,
)
from timekeeping.common.models import AppSetting

logger = logging.getLogger(__name__)


class PunchPolicyService:
    """Read and update the PUNCH_POLICY setting."""

    @staticmethod
    async def _get_row(db: AsyncSession) -> Optional[AppSetting]:
        result = await db.execute(
            select(AppSetting).where(AppSetting.key == PUNCH_POLICY_KEY)
        )
        return result.scalars().first()

    @staticmethod
    async def get_policy(db: AsyncSession) -> PunchPolicy:
        """Active policy, MULTIPLE when never configured."""
        row = await PunchPolicyService._get_row(db)
        if row is None:
            return DEFAULT_PUNCH_POLICY
        try:
            return PunchPolicy(row.value)
        except ValueError:
            logger.warning("Unknown punch policy %r stored; using %s", row.value, DEFAULT_PUNCH_POLICY.value)
            return DEFAULT_PUNCH_POLICY

    @staticmethod
    async def get_setting(db: AsyncSession) -> PunchPolicyResponse:
        row = await PunchPolicyService._get_row(db)
        if row is None:
            return PunchPolicyResponse(
                key=PUNCH_POLICY_KEY,
                value=DEFAULT_PUNCH_POLICY,
                description="Default punch policy",
            )
        return PunchPolicyResponse(
            key=row.key,
            value=await PunchPolicyService.get_policy(db),
            description=row.description,
        )

    @staticmethod
    async def set_policy(
        db: AsyncSession,
        policy: PunchPolicy,
        *,
        updated_by: Optional[uuid.UUID] = None,
    ) -> PunchPolicyResponse:
        """Upsert the policy row and its human-readable description."""
        row = await PunchPolicyService._get_row(db)
        old_value = row.value if row else None

        if row is None:
            row = AppSetting(key=PUNCH_POLICY_KEY, value=policy.value)
            db.add(row)
        row.value = policy.value
        row.description = PUNCH_POLICY_DESCRIPTIONS[policy]
        row.updated_by = updated_by
        await db.flush()

        await create_audit_entry(
            db,
            action="update_policy",
            entity_type="app_setting",
            entity_id=PUNCH_POLICY_KEY,
            actor_id=updated_by,
            old_values={"value": old_value} if old_value else None,
            new_values={"value": policy.value},
        )
        logger.info("Punch policy changed from %s to %s", old_value or "default", policy.value)

        return PunchPolicyResponse(
            key=row.key, value=policy, description=row.description,
        )
