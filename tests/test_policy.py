"""Punch policy test suite — default, upsert, descriptions, audit."""

from __future__ import annotations

from sqlalchemy import select

from timekeeping.attendance.policy import PunchPolicyService
from timekeeping.common.constants import PUNCH_POLICY_KEY, PunchPolicy
from timekeeping.common.models import AppSetting, AuditTrail


async def test_default_policy_is_multiple(db):
    assert await PunchPolicyService.get_policy(db) == PunchPolicy.MULTIPLE

    setting = await PunchPolicyService.get_setting(db)
    assert setting.key == "PUNCH_POLICY"
    assert setting.value == PunchPolicy.MULTIPLE
    assert setting.description == "Default punch policy"


async def test_set_policy_upserts_single_row(db, hr_employee):
    first = await PunchPolicyService.set_policy(db, PunchPolicy.FIRST_LAST, updated_by=hr_employee["id"])
    second = await PunchPolicyService.set_policy(db, PunchPolicy.MULTIPLE, updated_by=hr_employee["id"])

    assert first.description == "Only first clock-in and last clock-out count"
    assert second.description == "Multiple punches allowed per day"

    rows = (await db.execute(select(AppSetting))).scalars().all()
    assert len(rows) == 1
    assert rows[0].key == PUNCH_POLICY_KEY
    assert rows[0].value == "MULTIPLE"
    assert rows[0].updated_by == hr_employee["id"]


async def test_get_setting_reflects_stored_policy(db):
    await PunchPolicyService.set_policy(db, PunchPolicy.FIRST_LAST)

    setting = await PunchPolicyService.get_setting(db)
    assert setting.value == PunchPolicy.FIRST_LAST
    assert await PunchPolicyService.get_policy(db) == PunchPolicy.FIRST_LAST


async def test_unknown_stored_value_falls_back_to_default(db):
    db.add(AppSetting(key=PUNCH_POLICY_KEY, value="SOMETHING_ELSE"))
    await db.flush()

    assert await PunchPolicyService.get_policy(db) == PunchPolicy.MULTIPLE


async def test_policy_change_is_audited(db, hr_employee):
    await PunchPolicyService.set_policy(db, PunchPolicy.FIRST_LAST, updated_by=hr_employee["id"])

    entry = (await db.execute(
        select(AuditTrail).where(AuditTrail.action == "update_policy")
    )).scalars().one()
    assert entry.entity_id == PUNCH_POLICY_KEY
    assert entry.actor_id == hr_employee["id"]
    assert entry.new_values == {"value": "FIRST_LAST"}
