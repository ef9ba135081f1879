"""Recurrence engine: rule parsing and next-occurrence computation.

Rules are stored either as JSON::

    {"unit": "week", "interval": 1, "weekday": 1, "time": "09:00",
     "maxCount": 10, "endAt": 1767225599999, "occurrence": 3}

or as a constrained text pattern such as ``every 2 weeks``,
``every monday 09:00``, ``monthly`` or ``每周一 09:00``. Parsing tries JSON
first and falls back to the text patterns. A rule that parses as neither
means "no recurrence".

Weekdays use 0=Sunday .. 6=Saturday.
"""

import calendar
import json
import logging
import math
import re
from datetime import datetime, timedelta
from typing import Any

from next_actions_mcp.config import TaskSchema
from next_actions_mcp.enums import RecurrenceUnit
from next_actions_mcp.models.results import RecurrenceRule, TaskValues
from next_actions_mcp.models.task import ReviewState
from next_actions_mcp.utils.dates import ensure_aware, now_local, to_datetime, to_epoch_ms

logger = logging.getLogger(__name__)

DEFAULT_OCCURRENCE = 1
MONTH_STEP_GUARD = 2400
# Longest step a rule may take; larger intervals are clamped to it.
MAX_INTERVAL = 9999

_UNIT_BY_TOKEN: dict[str, RecurrenceUnit] = {
    **dict.fromkeys(("d", "day", "days", "daily", "天", "日", "每天", "每日"), RecurrenceUnit.DAY),
    **dict.fromkeys(("w", "week", "weeks", "weekly", "周", "星期", "每周", "每星期"), RecurrenceUnit.WEEK),
    **dict.fromkeys(("m", "month", "months", "monthly", "月", "个月", "每月", "每个月"), RecurrenceUnit.MONTH),
}

_WEEKDAY_BY_TOKEN: dict[str, int] = {
    **{str(n): n for n in range(7)},
    **dict.fromkeys(("sun", "sunday", "周日", "周天", "星期日", "星期天"), 0),
    **dict.fromkeys(("mon", "monday", "周一", "星期一"), 1),
    **dict.fromkeys(("tue", "tuesday", "周二", "星期二"), 2),
    **dict.fromkeys(("wed", "wednesday", "周三", "星期三"), 3),
    **dict.fromkeys(("thu", "thursday", "周四", "星期四"), 4),
    **dict.fromkeys(("fri", "friday", "周五", "星期五"), 5),
    **dict.fromkeys(("sat", "saturday", "周六", "星期六"), 6),
}

_SIMPLE_TEXT_UNITS: dict[str, RecurrenceUnit] = {
    **dict.fromkeys(("daily", "every day", "每天", "每日"), RecurrenceUnit.DAY),
    **dict.fromkeys(("weekly", "every week", "每周", "每星期"), RecurrenceUnit.WEEK),
    **dict.fromkeys(("monthly", "every month", "每月", "每个月"), RecurrenceUnit.MONTH),
}

_TIME_SUFFIX_RE = re.compile(r"\s+(\d{1,2}):(\d{2})$")
_TIME_TOKEN_RE = re.compile(r"^(\d{1,2})[:：](\d{2})$")
_DATE_ONLY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_EN_WEEKDAY_RE = re.compile(
    r"^every\s+(monday|mon|tuesday|tue|wednesday|wed|thursday|thu|friday|fri|saturday|sat|sunday|sun)$"
)
_CN_WEEKDAY_RE = re.compile(r"^每(?:周|星期)(一|二|三|四|五|六|日|天)$")
_EN_INTERVAL_RE = re.compile(r"^every\s+(\d+)\s*(day|days|week|weeks|month|months)$")
_CN_INTERVAL_RE = re.compile(r"^每\s*(\d+)\s*(天|日|周|星期|个月|月)$")


# ============================================================================
# Normalization helpers
# ============================================================================


def _positive_int(raw: Any, fallback: int) -> int:
    if isinstance(raw, bool):
        return fallback
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    value = math.floor(number)
    return value if value >= 1 else fallback


def _interval(raw: Any) -> int:
    return min(_positive_int(raw, 1), MAX_INTERVAL)


def _optional_positive_int(raw: Any) -> int | None:
    if raw is None:
        return None
    value = _positive_int(raw, 0)
    return value if value >= 1 else None


def _normalize_unit(token: Any) -> RecurrenceUnit | None:
    if not isinstance(token, str):
        return None
    return _UNIT_BY_TOKEN.get(token.strip().lower())


def _normalize_weekday(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if 0 <= raw <= 6 else None
    if not isinstance(raw, str):
        return None
    return _WEEKDAY_BY_TOKEN.get(raw.strip().lower())


def _valid_time(hour: int, minute: int) -> bool:
    return 0 <= hour <= 23 and 0 <= minute <= 59


def _parse_time_token(raw: Any) -> tuple[int, int] | None:
    if not isinstance(raw, str):
        return None
    match = _TIME_TOKEN_RE.match(raw.strip())
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    return (hour, minute) if _valid_time(hour, minute) else None


def _parse_end_at_ms(raw: Any) -> int | None:
    """Epoch ms, datetime, ISO string, or YYYY-MM-DD meaning the end of that local day."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return math.floor(raw) if math.isfinite(raw) else None
    if isinstance(raw, datetime):
        return to_epoch_ms(raw)
    if not isinstance(raw, str) or raw.strip() == "":
        return None

    text = raw.strip()
    match = _DATE_ONLY_RE.match(text)
    if match is not None:
        try:
            end_of_day = datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)), 23, 59, 59, 999000)
        except ValueError:
            return None
        return to_epoch_ms(end_of_day)

    parsed = to_datetime(text)
    return to_epoch_ms(parsed) if parsed is not None else None


def _js_weekday(value: datetime) -> int:
    """Weekday with Sunday as 0."""
    return (value.weekday() + 1) % 7


# ============================================================================
# Parsing
# ============================================================================


def _parse_json_rule(text: str) -> RecurrenceRule | None:
    if not text.startswith("{"):
        return None
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None

    unit = _normalize_unit(data.get("unit") or data.get("freq") or data.get("frequency"))
    if unit is None:
        return None

    weekday = _normalize_weekday(data.get("weekday", data.get("dayOfWeek")))
    if weekday is not None and unit != RecurrenceUnit.WEEK:
        return None

    raw_time = data.get("time", data.get("at"))
    time_parts = _parse_time_token(raw_time)
    if raw_time is not None and time_parts is None:
        return None

    return RecurrenceRule(
        unit=unit,
        interval=_interval(data.get("interval", data.get("every"))),
        weekday=weekday,
        hour=time_parts[0] if time_parts else None,
        minute=time_parts[1] if time_parts else None,
        max_count=_optional_positive_int(data.get("maxCount", data.get("max", data.get("maxRepeats")))),
        end_at_ms=_parse_end_at_ms(data.get("endAt", data.get("end", data.get("until")))),
        occurrence=_positive_int(data.get("occurrence", data.get("index", data.get("sequence"))), DEFAULT_OCCURRENCE),
    )


def _parse_text_rule(text: str) -> RecurrenceRule | None:
    normalized = re.sub(r"\s+", " ", text.strip().replace("：", ":")).lower()

    hour: int | None = None
    minute: int | None = None
    match = _TIME_SUFFIX_RE.search(normalized)
    if match is not None:
        hour, minute = int(match.group(1)), int(match.group(2))
        if not _valid_time(hour, minute):
            return None
        normalized = normalized[: match.start()].strip()
    base = re.sub(r"\bat$", "", normalized).strip()

    weekday: int | None = None
    en_weekday = _EN_WEEKDAY_RE.match(base)
    if en_weekday is not None:
        weekday = _WEEKDAY_BY_TOKEN[en_weekday.group(1)]
    else:
        cn_weekday = _CN_WEEKDAY_RE.match(base)
        if cn_weekday is not None:
            weekday = _WEEKDAY_BY_TOKEN.get(f"周{cn_weekday.group(1)}")

    if weekday is not None:
        return RecurrenceRule(unit=RecurrenceUnit.WEEK, interval=1, weekday=weekday, hour=hour, minute=minute)

    for pattern in (_EN_INTERVAL_RE, _CN_INTERVAL_RE):
        interval_match = pattern.match(base)
        if interval_match is None:
            continue
        unit = _normalize_unit(interval_match.group(2))
        if unit is None:
            return None
        return RecurrenceRule(
            unit=unit,
            interval=_interval(interval_match.group(1)),
            hour=hour,
            minute=minute,
        )

    unit = _SIMPLE_TEXT_UNITS.get(base)
    if unit is None:
        return None
    return RecurrenceRule(unit=unit, interval=1, hour=hour, minute=minute)


def parse_recurrence_rule(raw: str | None) -> RecurrenceRule | None:
    """Parse a stored rule; returns None for empty or malformed input."""
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if text == "":
        return None

    rule = _parse_json_rule(text) or _parse_text_rule(text)
    if rule is None:
        logger.debug("Ignoring malformed recurrence rule %r", raw)
    return rule


def stringify_recurrence_rule(rule: RecurrenceRule) -> str:
    """Serialize a rule to its canonical JSON form."""
    payload: dict[str, Any] = {
        "unit": rule.unit.value,
        "interval": _interval(rule.interval),
        "occurrence": _positive_int(rule.occurrence, DEFAULT_OCCURRENCE),
    }
    if rule.unit == RecurrenceUnit.WEEK and rule.weekday is not None:
        payload["weekday"] = rule.weekday
    if rule.has_time:
        payload["time"] = f"{rule.hour:02d}:{rule.minute:02d}"
    if rule.max_count is not None:
        payload["maxCount"] = _positive_int(rule.max_count, 1)
    if rule.end_at_ms is not None:
        payload["endAt"] = int(rule.end_at_ms)
    return json.dumps(payload, ensure_ascii=False)


# ============================================================================
# Date arithmetic
# ============================================================================


def add_months(value: datetime, months: int, preferred_day: int) -> datetime:
    """Step `months` months, clamping `preferred_day` to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(preferred_day, last_day))


def _apply_time(value: datetime, rule: RecurrenceRule) -> datetime:
    if not rule.has_time:
        return value
    return value.replace(hour=rule.hour, minute=rule.minute)


def _shift_to_next_weekday(anchor: datetime, now: datetime, rule: RecurrenceRule) -> datetime:
    reference = max(anchor, now)
    candidate = reference.replace(second=anchor.second, microsecond=anchor.microsecond)
    candidate = _apply_time(candidate, rule)

    offset = (rule.weekday - _js_weekday(candidate) + 7) % 7
    candidate += timedelta(days=offset)
    step = timedelta(weeks=rule.interval)
    while candidate <= reference:
        candidate += step
    return candidate


def shift_to_next_occurrence(anchor: datetime | None, rule: RecurrenceRule, now: datetime) -> datetime | None:
    """
    Project `anchor` to the next occurrence strictly after max(anchor, now).

    Day and week units step in whole intervals; weekday rules land on the
    configured weekday; month units keep the anchor's day-of-month and clamp
    it to shorter months. Returns None when the anchor is missing or the
    next occurrence falls outside the supported date range.
    """
    if anchor is None:
        return None
    anchor = ensure_aware(anchor)
    now = ensure_aware(now)

    try:
        return _step_past_reference(anchor, rule, now)
    except (OverflowError, ValueError) as e:
        logger.debug("No occurrence after %s for %s: %s", anchor, rule, e)
        return None


def _step_past_reference(anchor: datetime, rule: RecurrenceRule, now: datetime) -> datetime:
    if rule.weekday is not None:
        return _shift_to_next_weekday(anchor, now, rule)

    reference = max(anchor, now)
    candidate = _apply_time(anchor, rule)

    if rule.unit in (RecurrenceUnit.DAY, RecurrenceUnit.WEEK):
        step = timedelta(days=rule.interval * (7 if rule.unit == RecurrenceUnit.WEEK else 1))
        if candidate <= reference:
            steps = (reference - candidate) // step + 1
            candidate += step * steps
        return candidate

    preferred_day = anchor.day
    guard = 0
    while candidate <= reference and guard < MONTH_STEP_GUARD:
        guard += 1
        candidate = add_months(candidate, rule.interval, preferred_day)
    return candidate


# ============================================================================
# Status transitions
# ============================================================================


def normalize_values_for_status(values: TaskValues, schema: TaskSchema) -> TaskValues:
    """Completing a task clears its review configuration."""
    if not schema.is_done(values.status):
        return values
    return values.model_copy(update={"review": ReviewState()})


def compute_next_recurrence(
    previous_status: str,
    next_values: TaskValues,
    schema: TaskSchema,
    now: datetime | None = None,
) -> TaskValues | None:
    """
    Compute the field values of the next incarnation of a recurring task.

    Fires only on a transition from a non-done status into done. Returns None
    when there is no (parsable) rule, the max count is reached, or the next
    occurrence would fall after the rule's end date or out of the date range.
    Never performs I/O.
    """
    if schema.is_done(previous_status) or not schema.is_done(next_values.status):
        return None

    rule = parse_recurrence_rule(next_values.recurrence_rule)
    if rule is None:
        return None

    occurrence = _positive_int(rule.occurrence, DEFAULT_OCCURRENCE)
    if rule.max_count is not None and occurrence >= _positive_int(rule.max_count, 1):
        return None

    now = ensure_aware(now) if now is not None else now_local()
    next_start = shift_to_next_occurrence(next_values.start_time, rule, now)
    next_end = shift_to_next_occurrence(next_values.end_time, rule, now)
    if (next_values.start_time is not None and next_start is None) or (
        next_values.end_time is not None and next_end is None
    ):
        return None

    planned_start = next_start
    if planned_start is None and next_end is None:
        planned_start = shift_to_next_occurrence(now, rule, now)
        if planned_start is None:
            return None

    if rule.end_at_ms is not None:
        candidate = planned_start or next_end
        if candidate is not None and to_epoch_ms(candidate) > rule.end_at_ms:
            return None
        if candidate is None and to_epoch_ms(now) > rule.end_at_ms:
            return None

    next_rule = rule.model_copy(update={"occurrence": occurrence + 1})
    return next_values.model_copy(
        update={
            "status": schema.default_status,
            "start_time": planned_start,
            "end_time": next_end,
            "recurrence_rule": stringify_recurrence_rule(next_rule),
        }
    )
