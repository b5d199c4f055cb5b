"""
GradeDesk services.

Business logic for card analysis, valuation, and submission assembly.
"""

from gradedesk.services.images import (
    ImagePayload,
    ImageStore,
    InvalidImageError,
    LocalImageStore,
    split_data_uri,
    upload_image,
)
from gradedesk.services.reconciler import (
    BatchReport,
    CardSession,
    build_record,
    expand_detections,
    placeholder_record,
    reconcile,
)
from gradedesk.services.submission_assembler import (
    CardSubmission,
    assemble,
    card_from_record,
    generate_submission_id,
    parse_declared_value,
    validate_submission,
)
from gradedesk.services.tier_cache import TierCache
from gradedesk.services.value_estimator import estimate
from gradedesk.services.vision_client import (
    AnalysisResult,
    AnthropicCardAnalyzer,
    CardAnalyzer,
    MockCardAnalyzer,
    get_card_analyzer,
)

__all__ = [
    "AnalysisResult",
    "AnthropicCardAnalyzer",
    "BatchReport",
    "CardAnalyzer",
    "CardSession",
    "CardSubmission",
    "ImagePayload",
    "ImageStore",
    "InvalidImageError",
    "LocalImageStore",
    "MockCardAnalyzer",
    "TierCache",
    "assemble",
    "build_record",
    "card_from_record",
    "estimate",
    "expand_detections",
    "generate_submission_id",
    "get_card_analyzer",
    "parse_declared_value",
    "placeholder_record",
    "reconcile",
    "split_data_uri",
    "upload_image",
    "validate_submission",
]
