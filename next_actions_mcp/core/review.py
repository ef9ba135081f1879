"""Spaced review state: parsing and next-review computation."""

import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any

from next_actions_mcp.core.recurrence import MAX_INTERVAL, add_months
from next_actions_mcp.enums import RecurrenceUnit, ReviewType
from next_actions_mcp.models.task import ReviewState
from next_actions_mcp.utils.dates import to_datetime

logger = logging.getLogger(__name__)

_UNIT_TOKENS = {
    "d": RecurrenceUnit.DAY,
    "day": RecurrenceUnit.DAY,
    "days": RecurrenceUnit.DAY,
    "w": RecurrenceUnit.WEEK,
    "week": RecurrenceUnit.WEEK,
    "weeks": RecurrenceUnit.WEEK,
    "m": RecurrenceUnit.MONTH,
    "month": RecurrenceUnit.MONTH,
    "months": RecurrenceUnit.MONTH,
}
_SIMPLE_RULES = {
    "daily": RecurrenceUnit.DAY,
    "weekly": RecurrenceUnit.WEEK,
    "monthly": RecurrenceUnit.MONTH,
}
_EVERY_RE = re.compile(r"^(?:every\s+)?(\d+)\s*(d|days?|w|weeks?|m|months?)$")


def _positive_int(raw: Any, fallback: int) -> int:
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return fallback
    return value if value >= 1 else fallback


def _interval(raw: Any) -> int:
    return min(_positive_int(raw, 1), MAX_INTERVAL)


def _rule_from_mapping(data: dict[str, Any]) -> tuple[RecurrenceUnit, int] | None:
    unit_token = data.get("unit") or data.get("freq") or data.get("frequency")
    if not isinstance(unit_token, str):
        return None
    unit = _UNIT_TOKENS.get(unit_token.strip().lower())
    if unit is None:
        return None
    return unit, _interval(data.get("interval", data.get("every")))


def parse_review_rule(raw: str | None) -> tuple[RecurrenceUnit, int] | None:
    """Parse `{"unit": "week", "interval": 2}`, `weekly`, `every 3 days` or `2w`."""
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if text == "":
        return None

    if text.startswith("{"):
        try:
            data = json.loads(text)
        except (ValueError, RecursionError):
            return None
        return _rule_from_mapping(data) if isinstance(data, dict) else None

    normalized = re.sub(r"\s+", " ", text.lower())
    if normalized in _SIMPLE_RULES:
        return _SIMPLE_RULES[normalized], 1

    match = _EVERY_RE.match(normalized)
    if match is None:
        return None
    unit = _UNIT_TOKENS.get(match.group(2))
    if unit is None:
        return None
    return unit, _interval(match.group(1))


def stringify_review_rule(unit: RecurrenceUnit, interval: int) -> str:
    return json.dumps({"unit": unit.value, "interval": _interval(interval)})


def _normalize_rule_string(raw: Any) -> str:
    if not isinstance(raw, str) or raw.strip() == "":
        return ""
    parsed = parse_review_rule(raw)
    return raw.strip() if parsed is None else stringify_review_rule(*parsed)


def _review_type(raw: Any) -> ReviewType | None:
    if not isinstance(raw, str):
        return None
    normalized = raw.strip().lower()
    if normalized == "single":
        return ReviewType.SINGLE
    if normalized in ("cycle", "cyclic", "recurring"):
        return ReviewType.CYCLE
    return None


def _from_record(data: dict[str, Any]) -> ReviewState:
    review_every = _normalize_rule_string(data.get("reviewEvery", data.get("review_every")))
    next_review = to_datetime(data.get("nextReview", data.get("nextReviewAt", data.get("next_review"))))
    last_reviewed = to_datetime(data.get("lastReviewed", data.get("lastReviewedAt", data.get("last_reviewed"))))

    review_type = _review_type(data.get("type"))
    if review_type is None:
        review_type = ReviewType.CYCLE if review_every else ReviewType.SINGLE

    has_data = bool(review_every) or next_review is not None or last_reviewed is not None
    enabled_raw = data.get("enabled")
    enabled = enabled_raw if isinstance(enabled_raw, bool) else has_data
    if not enabled:
        return ReviewState()

    return ReviewState(
        enabled=True,
        type=review_type,
        next_review=next_review,
        review_every=review_every if review_type == ReviewType.CYCLE else "",
        last_reviewed=last_reviewed,
    )


def parse_review_state(raw: Any) -> ReviewState:
    """
    Read a review state from a store value.

    Accepts a mapping, a JSON record, a bare JSON rule or a legacy text rule.
    A bare rule means an enabled cyclic review. Anything else is "no review".
    """
    if isinstance(raw, ReviewState):
        return raw
    if isinstance(raw, dict):
        rule = _rule_from_mapping(raw)
        if rule is not None and "enabled" not in raw and "type" not in raw:
            return ReviewState(enabled=True, type=ReviewType.CYCLE, review_every=stringify_review_rule(*rule))
        return _from_record(raw)
    if not isinstance(raw, str) or raw.strip() == "":
        return ReviewState()

    text = raw.strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except (ValueError, RecursionError):
            data = None
        if isinstance(data, dict):
            return parse_review_state(data)

    rule = parse_review_rule(text)
    if rule is not None:
        return ReviewState(enabled=True, type=ReviewType.CYCLE, review_every=stringify_review_rule(*rule))

    return ReviewState()


def add_review_interval(anchor: datetime, unit: RecurrenceUnit, interval: int) -> datetime | None:
    """Anchor plus the interval; None when that leaves the supported date range."""
    try:
        if unit == RecurrenceUnit.DAY:
            return anchor + timedelta(days=interval)
        if unit == RecurrenceUnit.WEEK:
            return anchor + timedelta(weeks=interval)
        return add_months(anchor, interval, anchor.day)
    except (OverflowError, ValueError) as e:
        logger.debug("Review interval %s x %d from %s out of range: %s", unit.value, interval, anchor, e)
        return None


def resolve_effective_next_review(review: ReviewState) -> datetime | None:
    """Explicit next review, else last review plus the cycle interval."""
    if not review.enabled:
        return None
    if review.next_review is not None:
        return review.next_review
    if review.type != ReviewType.CYCLE or review.last_reviewed is None:
        return None
    rule = parse_review_rule(review.review_every)
    if rule is None:
        return None
    return add_review_interval(review.last_reviewed, *rule)


def resolve_next_review_after_mark_reviewed(review: ReviewState, now: datetime) -> datetime | None:
    if not review.enabled or review.type == ReviewType.SINGLE:
        return None
    rule = parse_review_rule(review.review_every)
    if rule is None:
        return None
    return add_review_interval(now, *rule)


def is_review_due(review: ReviewState, now: datetime) -> bool:
    next_review = resolve_effective_next_review(review)
    return next_review is not None and next_review <= now
