from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ServiceTier:
    """
    A turnaround/price option offered by a grading company.

    Attributes:
        company: Grading company id (psa, bgs, sgc, cgc)
        tier_id: Identifier unique within the company (e.g. "express")
        name: Display name (e.g. "Super Express")
        turnaround: Human-readable turnaround (e.g. "5 business days")
        price: Human-readable price (e.g. "$150/card")
        description: Short blurb shown next to the tier
        order: Sort position within the company's catalog
    """

    company: str
    tier_id: str
    name: str
    turnaround: str
    price: str
    description: str
    order: int = 0
    updated_at: datetime | None = None
