from __future__ import annotations

from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date.

    Full ISO timestamps (``2026-10-19T00:00:00.000Z``) are accepted too; an
    explicit offset is converted to local time before the calendar day is taken.
    Anything else raises ValueError.
    """
    v = value.strip()
    try:
        return date.fromisoformat(v)
    except ValueError:
        pass

    dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def format_dt(value: datetime | None) -> str | None:
    return value.isoformat(timespec="seconds") if value else None
