# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Row coercion shared by repositories (drivers differ on dates and booleans)."""
from datetime import date, datetime
from typing import Any, Optional


def as_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value)[:10])


def as_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def as_bool(value: Any) -> bool:
    return bool(value)
