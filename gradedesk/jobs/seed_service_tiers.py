"""
Seed the service tier catalog.

Loads the default tiers for every grading company. Safe to re-run: existing
tiers are updated in place.

Usage:
    python -m gradedesk.jobs.seed_service_tiers
"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gradedesk.db.database import async_session_factory, init_db
from gradedesk.db.operations import upsert_service_tier
from gradedesk.models.service_tier import ServiceTier

logger = logging.getLogger(__name__)

# (tier_id, name, turnaround, price, description), in display order
_CATALOG: dict[str, list[tuple[str, str, str, str, str]]] = {
    "psa": [
        ("walkthrough", "Walk-through", "2 business days", "$600/card", "Fastest service"),
        ("super_express", "Super Express", "3 business days", "$300/card", "Express service"),
        ("express", "Express", "5 business days", "$150/card", "Quick turnaround"),
        ("regular", "Regular", "15 business days", "$75/card", "Standard service"),
        ("value", "Value", "30 business days", "$25/card", "Economy option"),
        ("bulk", "Bulk", "45+ business days", "$20/card", "Bulk submissions (20+ cards)"),
    ],
    "bgs": [
        ("premium", "Premium", "5 business days", "$200/card", "Fastest service"),
        ("express", "Express", "10 business days", "$100/card", "Express service"),
        ("standard", "Standard", "30 business days", "$50/card", "Standard service"),
        ("economy", "Economy", "60 business days", "$25/card", "Budget option"),
    ],
    "sgc": [
        ("walkthrough", "Walk-through", "1 business day", "$500/card", "Same day service"),
        ("next_day", "Next Day", "2 business days", "$250/card", "Next business day"),
        ("2_day", "2-Day", "2 business days", "$100/card", "Two day service"),
        ("5_day", "5-Day", "5 business days", "$50/card", "Five day service"),
        ("10_day", "10-Day", "10 business days", "$30/card", "Ten day service"),
        ("20_day", "20-Day", "20 business days", "$20/card", "Twenty day service"),
        ("bulk", "Bulk", "30+ business days", "$15/card", "Bulk submissions"),
    ],
    "cgc": [
        ("walkthrough", "Walk-through", "3 business days", "$400/card", "Fastest service"),
        ("express", "Express", "7 business days", "$150/card", "Express service"),
        ("standard", "Standard", "20 business days", "$50/card", "Standard service"),
        ("economy", "Economy", "40 business days", "$25/card", "Budget option"),
    ],
}

DEFAULT_SERVICE_TIERS: list[ServiceTier] = [
    ServiceTier(
        company=company,
        tier_id=tier_id,
        name=name,
        turnaround=turnaround,
        price=price,
        description=description,
        order=order,
    )
    for company, rows in _CATALOG.items()
    for order, (tier_id, name, turnaround, price, description) in enumerate(rows, start=1)
]


@dataclass
class SeedResult:
    total: int = 0
    succeeded: int = 0
    failed: int = 0


async def run_seed(
    tiers: list[ServiceTier] | None = None,
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> SeedResult:
    """
    Upsert each tier in its own transaction.

    One failing tier is counted and logged; the rest are still written.
    """
    result = SeedResult()
    for tier in tiers if tiers is not None else DEFAULT_SERVICE_TIERS:
        result.total += 1
        async with session_factory() as session:
            try:
                await upsert_service_tier(session, tier)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                result.failed += 1
                logger.error("Error adding %s/%s: %s", tier.company, tier.tier_id, e)
                continue
        result.succeeded += 1
        logger.info("Added %s %s (%s)", tier.company.upper(), tier.name, tier.price)

    logger.info(
        "Seeding complete. Total: %d, added: %d, errors: %d",
        result.total,
        result.succeeded,
        result.failed,
    )
    return result


async def _main() -> None:
    await init_db()
    await run_seed()


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(_main())


if __name__ == "__main__":
    main()
