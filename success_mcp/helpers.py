"""Value mappings, validation and date helpers shared by the tools."""

import calendar
import re
from datetime import date, datetime, timedelta
from html import unescape
from typing import Any

from success_mcp.errors import ValidationError

VALID_STATES = ("ACTIVE", "INACTIVE", "DELETED")

PRIORITY_TO_NUMBER = {"High": 1, "Medium": 2, "Low": 3, "No priority": 999}
NUMBER_TO_PRIORITY = {number: text for text, number in PRIORITY_TO_NUMBER.items()}

ISSUE_TYPES = {"Short-term": "short-term", "Long-term": "long-term"}
ROCK_TYPES = {"Personal": "personal", "Company": "company"}

# External headline status <-> stored headlineStatusId
HEADLINE_STATUS_TO_INTERNAL = {"Shared": "DISCUSSED", "Not shared": "DISCUSS"}
HEADLINE_STATUS_TO_EXTERNAL = {internal: external for external, internal in HEADLINE_STATUS_TO_INTERNAL.items()}

DATA_FIELD_TYPES = {"weekly": "WEEKLY", "monthly": "MONTHLY", "quarterly": "QUARTERLY", "annually": "ANNUALLY"}
NUMERIC_UNIT_TYPES = ("number", "currency", "percentage", "dollar", "euro", "pound")

_TAG_RE = re.compile(r"<[^>]*>")
_UNIT_CHARS_RE = re.compile(r"[,$%€£]")
_MM_DD_RE = re.compile(r"^\d{2}-\d{2}$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def validate_state_id(state_id: str, allowed: tuple[str, ...] = VALID_STATES) -> str:
    """Return state_id if allowed, otherwise raise ValidationError."""
    if state_id not in allowed:
        raise ValidationError(message=f"stateId must be one of: {', '.join(allowed)}")
    return state_id


def validate_choice(value: str, allowed: tuple[str, ...] | list[str], message: str) -> str:
    if value not in allowed:
        raise ValidationError(message=message)
    return value


def map_priority_to_number(priority: str | None) -> int:
    if not priority:
        return 2
    return PRIORITY_TO_NUMBER.get(priority, 2)


def map_priority_to_text(priority_no: int | None) -> str:
    return NUMBER_TO_PRIORITY.get(priority_no, "Medium")


def map_issue_type(issue_type: str | None) -> str:
    return ISSUE_TYPES.get(issue_type or "", "short-term")


def map_rock_type(rock_type: str | None) -> str:
    return ROCK_TYPES.get(rock_type or "", "company")


def capitalize_type(value: str | None) -> str | None:
    """Display form of a stored lowercase type, e.g. short-term -> Short-term."""
    if not value:
        return value
    return value[0].upper() + value[1:]


def headline_status_to_internal(status: str) -> str:
    try:
        return HEADLINE_STATUS_TO_INTERNAL[status]
    except KeyError:
        raise ValidationError(message='Invalid status - must be "Shared" or "Not shared"') from None


def headline_status_to_external(status_id: str | None) -> str | None:
    return HEADLINE_STATUS_TO_EXTERNAL.get(status_id or "", status_id)


def parse_id_list(value: str | None) -> list[str]:
    """Split a comma-separated id string, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def strip_html(text: str | None) -> str:
    if not text:
        return ""
    return unescape(_TAG_RE.sub("", text)).strip()


def full_name(user: dict[str, Any] | None) -> str:
    if not user:
        return ""
    return f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()


def parse_date(value: str | date) -> date:
    """Parse YYYY-MM-DD (or an ISO timestamp) into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        raise ValidationError(message=f"Invalid date format: {value}. Use YYYY-MM-DD.") from None


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping to the end of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def scorecard_range_start(data_field_type: str, periods: int, today: date) -> date:
    """First date of a default scorecard window covering ``periods`` units back from today.

    Args:
        data_field_type: weekly, monthly, quarterly or annually (any case)
        periods: Number of periods to cover
        today: Reference date
    """
    kind = data_field_type.lower()
    if kind == "weekly":
        return today - timedelta(days=periods * 7)
    if kind == "monthly":
        return add_months(today, -periods)
    if kind == "quarterly":
        return add_months(today, -periods * 3)
    if kind == "annually":
        return add_months(today, -periods * 12)
    raise ValidationError(message=f"Unknown data field type: {data_field_type}")


def monday_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def first_day_of_month(day: date) -> date:
    return day.replace(day=1)


def first_day_of_year(day: date) -> date:
    return date(day.year, 1, 1)


def normalize_month_day(value: Any) -> str:
    """Normalize a stored quarter date to MM-DD."""
    if isinstance(value, (date, datetime)):
        return f"{value.month:02d}-{value.day:02d}"
    if isinstance(value, str):
        if _MM_DD_RE.match(value):
            return value
        if _ISO_DATE_RE.match(value):
            return value[5:10]
        raise ValueError(f"Invalid date format: {value}")
    raise ValueError(f"Unexpected date type: {type(value).__name__}")


def _in_year(month_day: str, year: int) -> date:
    month, day = (int(part) for part in month_day.split("-"))
    return date(year, month, day)


def quarter_start_date(day: date, quarter_dates: list[Any]) -> date:
    """Start of the company quarter containing ``day``.

    Args:
        day: Reference date
        quarter_dates: The four quarter start dates (only month/day are used)
    """
    starts = [_in_year(normalize_month_day(q), day.year) for q in quarter_dates]
    for start in reversed(starts):
        if start <= day:
            return start
    return _in_year(normalize_month_day(quarter_dates[3]), day.year - 1)


def last_date_of_current_quarter(quarter_dates: list[Any], today: date) -> date | None:
    """Last day of the company quarter containing ``today``, or None if a quarter date is missing."""
    if len(quarter_dates) != 4 or any(not q for q in quarter_dates):
        return None
    month_days = [normalize_month_day(q) for q in quarter_dates]
    next_start = next((d for d in (_in_year(md, today.year) for md in month_days) if d > today), None)
    if next_start is None:
        next_start = _in_year(month_days[0], today.year + 1)
    return next_start - timedelta(days=1)


def period_start_for_data_field(data_field_type: str, day: date, quarter_dates: list[Any] | None = None) -> date:
    """Align a date to the start of the reporting period for a data field type."""
    if data_field_type == "WEEKLY":
        return monday_of_week(day)
    if data_field_type == "MONTHLY":
        return first_day_of_month(day)
    if data_field_type == "QUARTERLY":
        if not quarter_dates or any(not q for q in quarter_dates):
            raise ValidationError(
                message="Company has missing quarter dates. All four quarters must be configured."
            )
        return quarter_start_date(day, quarter_dates)
    if data_field_type == "ANNUALLY":
        return first_day_of_year(day)
    raise ValidationError(message=f"Unknown data field type: {data_field_type}")


def validate_measurable_value(value: str, unit_type: str | None) -> None:
    """Raise ValidationError if value is empty, or not numeric for a numeric unit type."""
    if value is None or str(value).strip() == "":
        raise ValidationError(message="Value is required and cannot be empty")
    if unit_type not in NUMERIC_UNIT_TYPES:
        return
    cleaned = _UNIT_CHARS_RE.sub("", str(value)).strip()
    try:
        float(cleaned)
    except ValueError:
        raise ValidationError(
            message=f"Value must be numeric for unit type '{unit_type}'. Got: '{value}'"
        ) from None
