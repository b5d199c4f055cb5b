"""
Card Detection Reconciliation.

One uploaded photo may show zero to ten cards. Reconciliation turns the
per-image detection batches into one flat list of independently editable
CardRecords while keeping track of which image (and which position in it)
every card came from.

INVARIANTS:
- Every image contributes at least one record, even when analysis failed
- An image with k detections contributes exactly k records, positions 1..k
- Records from one image share the image reference, never a copy of its bytes
- Re-reconciling an image replaces all of its records; other images are untouched
- No missing field reaches a record: every field is defaulted explicitly
"""

import asyncio
import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from gradedesk.config import MAX_CARDS_PER_IMAGE, settings
from gradedesk.models.card import CARD_TYPE_OTHER, CardDescriptor, CardRecord
from gradedesk.models.failure import AnalysisFailure
from gradedesk.services.value_estimator import estimate
from gradedesk.services.vision_client import AnalysisResult, CardAnalyzer

logger = logging.getLogger(__name__)

DEFAULT_PLAYER_NAME = "Unknown Player"
DEFAULT_MANUFACTURER = "Unknown"
DEFAULT_CARD_NUMBER = ""
DEFAULT_CARD_TYPE = CARD_TYPE_OTHER
DEFAULT_SPORT = "Other"
DEFAULT_CONDITION = "Very Good"

# Fields whose change re-runs the value estimate
_ESTIMATE_FIELDS = frozenset({"player_name", "year", "manufacturer", "estimated_condition"})

EDITABLE_FIELDS = frozenset(
    {
        "player_name",
        "year",
        "manufacturer",
        "card_number",
        "card_type",
        "sport",
        "estimated_condition",
        "declared_value",
    }
)


def current_year() -> str:
    return str(datetime.now(UTC).year)


def build_record(
    image_ref: str,
    descriptor: CardDescriptor,
    *,
    position: int = 1,
    total: int = 1,
    analyzed: bool = True,
) -> CardRecord:
    """
    Build one CardRecord from an untrusted descriptor.

    Each field is defaulted on its own; analyzed records get a value estimate
    whose average becomes the default declared value.
    """
    record = CardRecord(
        source_image_ref=image_ref,
        player_name=descriptor.player_name or DEFAULT_PLAYER_NAME,
        year=descriptor.year or current_year(),
        manufacturer=descriptor.manufacturer or DEFAULT_MANUFACTURER,
        card_number=descriptor.card_number or DEFAULT_CARD_NUMBER,
        card_type=descriptor.card_type or DEFAULT_CARD_TYPE,
        sport=descriptor.sport or DEFAULT_SPORT,
        estimated_condition=descriptor.estimated_condition or DEFAULT_CONDITION,
        position_in_image=position,
        total_detected_in_image=total,
        image_binary_ref=image_ref,
        analyzed=analyzed,
    )
    if analyzed:
        apply_estimate(record)
    return record


def placeholder_record(image_ref: str) -> CardRecord:
    """An unanalyzed record with every field at its default."""
    return build_record(image_ref, CardDescriptor(), analyzed=False)


def apply_estimate(record: CardRecord) -> None:
    """Refresh the record's estimate; a new estimate resets the declared value."""
    value = estimate(record.descriptor())
    record.estimated_value = value
    if value is not None:
        record.declared_value = str(value.average)


def expand_detections(
    image_ref: str, detections: Sequence[CardDescriptor] | None
) -> list[CardRecord]:
    """
    Records for one image.

    ``None`` or an empty list (failed or empty analysis) gives one placeholder.
    """
    if not detections:
        return [placeholder_record(image_ref)]

    kept = list(detections[:MAX_CARDS_PER_IMAGE])
    total = len(kept)
    return [
        build_record(image_ref, descriptor, position=position, total=total)
        for position, descriptor in enumerate(kept, start=1)
    ]


def reconcile(
    images: Sequence[str],
    detection_results: Sequence[Sequence[CardDescriptor] | None],
    existing: Sequence[CardRecord] = (),
) -> list[CardRecord]:
    """
    Merge per-image detection batches into a flat card list.

    Args:
        images: Image references, one per detection batch
        detection_results: ``detection_results[i]`` holds the cards found in
            ``images[i]``; None or empty means analysis failed or found nothing
        existing: Records from an earlier pass. Records of the given images
            are replaced in place; all other records are kept as they are.

    Returns:
        The merged list. Replaced images keep the slot of their first old
        record; new images are appended in input order.
    """
    if len(images) != len(detection_results):
        raise ValueError("images and detection_results must have the same length")
    if len(set(images)) != len(images):
        raise ValueError("images must not contain duplicate references")

    fresh: dict[str, list[CardRecord]] = {}
    for image_ref, detections in zip(images, detection_results, strict=True):
        fresh[image_ref] = expand_detections(image_ref, detections)

    merged: list[CardRecord] = []
    placed: set[str] = set()
    for record in existing:
        ref = record.source_image_ref
        if ref not in fresh:
            merged.append(record)
        elif ref not in placed:
            merged.extend(fresh[ref])
            placed.add(ref)

    for image_ref, records in fresh.items():
        if image_ref not in placed:
            merged.extend(records)

    return merged


@dataclass(slots=True)
class BatchReport:
    """Outcome of one analysis batch."""

    analyzed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    stale: list[str] = field(default_factory=list)
    mock: bool = False

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def summary(self) -> str:
        """User-facing line for partial failures."""
        total = len(self.analyzed) + len(self.failed)
        if not self.failed:
            return f"Successfully analyzed {total} of {total} images."
        return (
            f"Successfully analyzed {len(self.analyzed)} of {total} images. "
            f"{len(self.failed)} image(s) failed - please fill in details manually."
        )


class CardSession:
    """
    The card list of one in-progress submission.

    Owns the uploaded images and the CardRecords derived from them. Analysis
    of several images runs concurrently; results are buffered and merged in
    one step once every call has settled, which is the only place the card
    list is rewritten.
    """

    def __init__(self) -> None:
        self._images: dict[str, str] = {}
        self._records: list[CardRecord] = []
        # Bumped when an image is removed or re-added; in-flight results
        # carrying an older generation are dropped
        self._generations: dict[str, int] = {}

    @property
    def records(self) -> list[CardRecord]:
        return list(self._records)

    @property
    def image_refs(self) -> list[str]:
        return list(self._images)

    def image(self, image_ref: str) -> str:
        return self._images[image_ref]

    def add_image(self, image: str, image_ref: str | None = None) -> str:
        """Register an uploaded image with a single placeholder record."""
        ref = image_ref or uuid.uuid4().hex
        if ref in self._images:
            raise ValueError(f"Image {ref} is already in this session")
        self._images[ref] = image
        self._generations[ref] = self._generations.get(ref, 0) + 1
        self._records.append(placeholder_record(ref))
        return ref

    def remove_image(self, image_ref: str) -> bool:
        """Drop an image and every card detected in it."""
        if image_ref not in self._images:
            return False
        del self._images[image_ref]
        self._generations[image_ref] = self._generations.get(image_ref, 0) + 1
        self._records = [r for r in self._records if r.source_image_ref != image_ref]
        return True

    def remove_card(self, record_id: str) -> bool:
        """
        Drop one card.

        Removing the last card of an image removes the image as well.
        """
        record = self._find(record_id)
        if record is None:
            return False
        self._records.remove(record)
        ref = record.source_image_ref
        if not any(r.source_image_ref == ref for r in self._records):
            self.remove_image(ref)
        return True

    def update_card(self, record_id: str, **changes: str) -> CardRecord:
        """
        Apply user edits to one card.

        Editing name, year, manufacturer or condition refreshes the estimate
        (and with it the declared value) unless the same edit sets the
        declared value explicitly.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        record = self._find(record_id)
        if record is None:
            raise KeyError(record_id)

        for name, value in changes.items():
            setattr(record, name, "" if value is None else str(value))

        if _ESTIMATE_FIELDS & set(changes):
            declared = record.declared_value
            apply_estimate(record)
            if "declared_value" in changes:
                record.declared_value = declared
        return record

    def apply_detections(
        self, detections: Mapping[str, Sequence[CardDescriptor] | None]
    ) -> list[CardRecord]:
        """Merge finished detections for images still in the session."""
        refs = [ref for ref in detections if ref in self._images]
        self._records = reconcile(refs, [detections[ref] for ref in refs], self._records)
        return self.records

    async def analyze(
        self,
        analyzer: CardAnalyzer,
        image_refs: Sequence[str] | None = None,
        *,
        concurrency: int | None = None,
    ) -> BatchReport:
        """
        Analyze images concurrently and reconcile once all calls settle.

        A failed image becomes one placeholder record and is listed in the
        report; it never blocks the other images. Images removed while their
        call was in flight are left out of the merge.
        """
        if image_refs is None:
            refs = list(self._images)
        else:
            refs = [r for r in image_refs if r in self._images]
        report = BatchReport()
        if not refs:
            return report

        limit = max(1, min(concurrency or settings.analysis_concurrency, MAX_CARDS_PER_IMAGE))
        semaphore = asyncio.Semaphore(limit)
        started = {ref: self._generations[ref] for ref in refs}

        async def run(ref: str) -> AnalysisResult:
            async with semaphore:
                return await analyzer.analyze(self._images[ref], image_ref=ref)

        outcomes = await asyncio.gather(*(run(ref) for ref in refs), return_exceptions=True)

        detections: dict[str, list[CardDescriptor] | None] = {}
        for ref, outcome in zip(refs, outcomes, strict=True):
            if self._generations.get(ref) != started[ref] or ref not in self._images:
                report.stale.append(ref)
                continue
            if isinstance(outcome, BaseException):
                if isinstance(outcome, AnalysisFailure):
                    report.failed[ref] = outcome.reason
                elif isinstance(outcome, Exception):
                    logger.error(
                        "Unexpected analysis error for %s",
                        ref,
                        exc_info=outcome,
                    )
                    report.failed[ref] = type(outcome).__name__
                else:
                    raise outcome
                detections[ref] = None
                continue
            report.analyzed.append(ref)
            report.mock = report.mock or outcome.mock
            detections[ref] = outcome.cards

        self.apply_detections(detections)

        if report.failed:
            logger.warning(
                "ANALYSIS_BATCH_PARTIAL",
                extra={"failed": report.failed_count, "total": len(refs)},
            )
        return report

    def _find(self, record_id: str) -> CardRecord | None:
        for record in self._records:
            if record.record_id == record_id:
                return record
        return None
