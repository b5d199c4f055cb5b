from gradedesk.db.database import dispose_db, get_session, init_db
from gradedesk.db.operations import (
    delete_service_tier,
    find_submissions_by_email,
    get_service_tier,
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

__all__ = [
    "delete_service_tier",
    "dispose_db",
    "find_submissions_by_email",
    "get_service_tier",
    "get_session",
    "get_submission",
    "group_tiers_by_company",
    "init_db",
    "list_service_tiers",
    "list_submissions",
    "list_tier_audit",
    "save_submission",
    "service_tier_to_model",
    "submission_to_model",
    "upsert_service_tier",
    "write_tier_audit",
]
