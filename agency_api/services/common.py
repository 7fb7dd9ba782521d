"""Helpers shared by the domain handlers."""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel

from agency_api.errors import InvalidInput


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def require_email(value: str) -> str:
    email = normalize_email(value)
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise InvalidInput("A valid email address is required")
    return email


def require_choice(value: str, choices: Iterable[str], field: str) -> str:
    allowed = tuple(choices)
    if value not in allowed:
        raise InvalidInput(f"{field} must be one of: {', '.join(allowed)}")
    return value


def apply_updates(row: Any, payload: BaseModel, fields: Optional[Iterable[str]] = None) -> dict[str, Any]:
    """Copy explicitly-sent fields from payload onto row.

    Fields omitted from the request body are left untouched, as are explicit
    nulls sent for NOT NULL columns.

    Returns:
        The changes that were applied
    """
    changes = payload.model_dump(exclude_unset=True)
    if fields is not None:
        allowed = set(fields)
        changes = {k: v for k, v in changes.items() if k in allowed}
    columns = row.__table__.columns
    changes = {
        k: v for k, v in changes.items() if v is not None or k not in columns or columns[k].nullable
    }
    for key, value in changes.items():
        setattr(row, key, value)
    return changes


def format_hours(hours: Union[Decimal, float]) -> str:
    """Render hours without trailing zeros: 2.50 -> '2.5', 24.00 -> '24'."""
    value = Decimal(str(hours)).normalize()
    return format(value, "f")


def round_hours(value: Any) -> float:
    return round(float(value or 0), 2)


def month_range(today: Optional[date] = None) -> tuple[date, date]:
    """First and last day of the current calendar month."""
    current = today or date.today()
    last_day = calendar.monthrange(current.year, current.month)[1]
    return current.replace(day=1), current.replace(day=last_day)


def week_start(today: Optional[date] = None) -> date:
    """Sunday that starts the current week."""
    current = today or date.today()
    return current - timedelta(days=(current.weekday() + 1) % 7)


def resolve_range(
    start_date: Optional[date], end_date: Optional[date], today: Optional[date] = None
) -> tuple[date, date]:
    default_start, default_end = month_range(today)
    start = start_date or default_start
    end = end_date or default_end
    if start > end:
        raise InvalidInput("start_date must be on or before end_date")
    return start, end
