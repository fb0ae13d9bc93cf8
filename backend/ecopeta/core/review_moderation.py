"""Review flagging and moderation rules.

Each visibility rule has a Python predicate for a single review and a matching
SQL clause over the review's ``status`` and ``flagged_count`` columns.
"""
from sqlalchemy import and_, or_

REVIEW_STATUSES = ("active", "flagged", "hidden")
INITIAL_REVIEW_STATUS = "active"
MODERATION_STATUSES = frozenset({"active", "hidden"})
FLAG_THRESHOLD = 3
MIN_COMMENT_LENGTH = 10
MIN_RESPONSE_LENGTH = 10


def _key(value: object) -> str:
    return str(value or "").strip().lower()


def status_after_flag(flagged_count: int) -> str:
    return "flagged" if int(flagged_count or 0) >= FLAG_THRESHOLD else "active"


def is_publicly_visible(status: str, flagged_count: int) -> bool:
    return _key(status) == "active" and int(flagged_count or 0) < FLAG_THRESHOLD


def needs_moderation(status: str, flagged_count: int) -> bool:
    status = _key(status)
    if status == "flagged":
        return True
    return status == "active" and int(flagged_count or 0) >= FLAG_THRESHOLD


def publicly_visible_clause(status_column, flagged_count_column):
    return and_(status_column == "active", flagged_count_column < FLAG_THRESHOLD)


def needs_moderation_clause(status_column, flagged_count_column):
    return or_(
        status_column == "flagged",
        and_(status_column == "active", flagged_count_column >= FLAG_THRESHOLD),
    )


def can_moderate_review(new_status: str) -> bool:
    return _key(new_status) in MODERATION_STATUSES


def validate_rating(rating: object) -> int:
    try:
        value = int(rating)
    except (TypeError, ValueError) as exc:
        raise ValueError("Rating must be between 1 and 5") from exc
    if value < 1 or value > 5:
        raise ValueError("Rating must be between 1 and 5")
    return value


def validate_comment(comment: object) -> str:
    text = str(comment or "").strip()
    if len(text) < MIN_COMMENT_LENGTH:
        raise ValueError(f"Comment must be at least {MIN_COMMENT_LENGTH} characters")
    return text


def validate_response(response: object) -> str:
    text = str(response or "").strip()
    if len(text) < MIN_RESPONSE_LENGTH:
        raise ValueError(f"Response must be at least {MIN_RESPONSE_LENGTH} characters")
    return text
