"""Tests for database CRUD operations."""

import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from gradedesk.db.operations import (
    delete_service_tier,
    find_submissions_by_email,
    get_submission,
    group_tiers_by_company,
    list_service_tiers,
    list_submissions,
    list_tier_audit,
    save_submission,
    service_tier_to_model,
    submission_to_model,
    upsert_service_tier,
    write_tier_audit,
)
from gradedesk.models.auth import AuthContext
from gradedesk.models.service_tier import ServiceTier
from gradedesk.models.submission import (
    SubmissionLineItem,
    SubmissionRecord,
    SubmissionStatus,
    SubmitterInfo,
)

BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


def make_record(
    submission_id: str,
    company: str = "psa",
    email: str = "pat@example.com",
    minutes: int = 0,
) -> SubmissionRecord:
    submitted_at = BASE_TIME + timedelta(minutes=minutes)
    items = (
        SubmissionLineItem(
            card_type="Sports",
            sport="Baseball",
            player_name="Ken Griffey Jr.",
            year="1989",
            estimated_condition="Near Mint",
            declared_value=Decimal("250.50"),
            manufacturer="Upper Deck",
            image_url="/media/a.png",
            position_in_image=1,
            total_detected_in_image=2,
        ),
        SubmissionLineItem(
            card_type="Sports",
            sport="Baseball",
            player_name="Randy Johnson",
            year="1989",
            estimated_condition="Excellent",
            declared_value=Decimal("10"),
            image_url="/media/a.png",
            position_in_image=2,
            total_detected_in_image=2,
        ),
    )
    return SubmissionRecord(
        submission_id=submission_id,
        submitter=SubmitterInfo(
            grading_company=company,
            submitter_name="Pat Collector",
            email=email,
            service_tier="regular",
        ),
        cards=items,
        total_cards=2,
        total_declared_value=Decimal("260.50"),
        submitted_at=submitted_at,
        expires_at=submitted_at + timedelta(days=90),
    )


def make_tier(company: str = "psa", tier_id: str = "regular", order: int = 1, **kw) -> ServiceTier:
    values = {
        "name": "Regular",
        "turnaround": "15 business days",
        "price": "$75/card",
        "description": "Standard service",
    }
    values.update(kw)
    return ServiceTier(company=company, tier_id=tier_id, order=order, **values)


class TestSubmissionOperations:
    async def test_save_and_read_back(self, session: AsyncSession) -> None:
        await save_submission(session, make_record("sub-1"))
        await session.commit()

        db_submission = await get_submission(session, "sub-1")
        assert db_submission is not None
        record = submission_to_model(db_submission)

        assert record.total_cards == 2
        assert record.total_declared_value == Decimal("260.50")
        assert record.cards[0].declared_value == Decimal("250.50")
        assert record.cards[1].position_in_image == 2
        assert record.status is SubmissionStatus.PENDING
        assert record.submitted_at == BASE_TIME
        assert record.expires_at == BASE_TIME + timedelta(days=90)

    async def test_get_missing(self, session: AsyncSession) -> None:
        assert await get_submission(session, "nope") is None

    async def test_save_same_id_replaces(self, session: AsyncSession) -> None:
        await save_submission(session, make_record("sub-1", email="first@example.com"))
        await session.commit()
        await save_submission(session, make_record("sub-1", email="second@example.com"))
        await session.commit()

        rows = await list_submissions(session)

        assert len(rows) == 1
        assert rows[0].email == "second@example.com"

    async def test_list_newest_first_and_paginated(self, session: AsyncSession) -> None:
        for i in range(5):
            await save_submission(session, make_record(f"sub-{i}", minutes=i))
        await session.commit()

        first_page = await list_submissions(session, limit=2)
        second_page = await list_submissions(session, limit=2, offset=2)

        assert [r.submission_id for r in first_page] == ["sub-4", "sub-3"]
        assert [r.submission_id for r in second_page] == ["sub-2", "sub-1"]

    async def test_list_filtered_by_company(self, session: AsyncSession) -> None:
        await save_submission(session, make_record("a", company="psa"))
        await save_submission(session, make_record("b", company="bgs"))
        await save_submission(session, make_record("c", company="cgc"))
        await session.commit()

        rows = await list_submissions(session, ["psa", "cgc"])

        assert {r.submission_id for r in rows} == {"a", "c"}

    async def test_find_by_email(self, session: AsyncSession) -> None:
        await save_submission(session, make_record("a", email="pat@example.com", minutes=1))
        await save_submission(session, make_record("b", email="other@example.com"))
        await save_submission(session, make_record("c", email="pat@example.com", minutes=2))
        await save_submission(
            session, make_record("d", email="pat@example.com", company="bgs", minutes=3)
        )
        await session.commit()

        mine = await find_submissions_by_email(session, "pat@example.com")
        psa_only = await find_submissions_by_email(session, "pat@example.com", ["psa"])
        latest = await find_submissions_by_email(session, "pat@example.com", limit=1)

        assert [r.submission_id for r in mine] == ["d", "c", "a"]
        assert [r.submission_id for r in psa_only] == ["c", "a"]
        assert [r.submission_id for r in latest] == ["d"]


class TestServiceTierOperations:
    async def test_create_then_update(self, session: AsyncSession) -> None:
        _, previous = await upsert_service_tier(session, make_tier())
        assert previous is None

        db_tier, previous = await upsert_service_tier(session, make_tier(price="$80/card"))
        await session.commit()

        assert previous is not None
        assert previous.price == "$75/card"
        assert db_tier.price == "$80/card"
        assert len(await list_service_tiers(session)) == 1

    async def test_list_ordered_and_filtered(self, session: AsyncSession) -> None:
        await upsert_service_tier(session, make_tier("psa", "value", order=2))
        await upsert_service_tier(session, make_tier("psa", "express", order=1))
        await upsert_service_tier(session, make_tier("bgs", "premium", order=1))
        await session.commit()

        psa = await list_service_tiers(session, ["psa"])
        everything = [service_tier_to_model(t) for t in await list_service_tiers(session)]
        grouped = group_tiers_by_company(everything)

        assert [t.tier_id for t in psa] == ["express", "value"]
        assert list(grouped) == ["bgs", "psa"]
        assert [t.tier_id for t in grouped["psa"]] == ["express", "value"]

    async def test_delete(self, session: AsyncSession) -> None:
        await upsert_service_tier(session, make_tier())
        await session.commit()

        previous = await delete_service_tier(session, "psa", "regular")
        await session.commit()

        assert previous is not None
        assert previous.tier_id == "regular"
        assert await list_service_tiers(session) == []
        assert await delete_service_tier(session, "psa", "regular") is None


class TestTierAudit:
    async def test_audit_record_contents(self, session: AsyncSession) -> None:
        auth = AuthContext.from_groups(
            ["PSA-Admins"], subject="sub-1", email="admin@example.com", username="admin"
        )
        old = make_tier(price="$75/card")
        new = make_tier(price="$80/card")

        await write_tier_audit(session, "update", "psa", "regular", auth, old, new)
        await session.commit()

        (audit,) = await list_tier_audit(session, "psa")
        assert audit.action == "update"
        assert audit.user_id == "sub-1"
        assert audit.user_email == "admin@example.com"
        assert audit.user_name == "admin"
        assert audit.user_groups == "PSA-Admins"
        assert json.loads(audit.old_value)["price"] == "$75/card"
        assert json.loads(audit.new_value)["price"] == "$80/card"

    async def test_unknown_user_fields(self, session: AsyncSession) -> None:
        await write_tier_audit(session, "delete", "bgs", "x", AuthContext(), make_tier("bgs", "x"))
        await session.commit()

        (audit,) = await list_tier_audit(session)
        assert audit.user_id == "unknown"
        assert audit.user_email == "unknown"
        assert audit.new_value is None
