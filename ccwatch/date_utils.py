"""Shared timestamp normalization helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt.isoformat().replace("+00:00", "Z")


def format_epoch(value: float) -> str:
    return format_datetime_utc(datetime.fromtimestamp(float(value), timezone.utc))


def _parse_datetime_token(token: str) -> datetime | None:
    cleaned = token.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in ("%Y-%m-%dT%H:%M:%S.%fZ", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(cleaned, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def normalize_iso_date(value: Any) -> str:
    """Convert mixed timestamp inputs into comparable ISO strings.

    Accepts datetimes, ISO strings (with or without ``Z``) and epoch
    milliseconds as written by the Claude CLI. Unparseable input yields "".
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, datetime):
        return format_datetime_utc(value)
    if isinstance(value, (int, float)):
        if value <= 0:
            return ""
        return format_epoch(value / 1000.0)
    if isinstance(value, str):
        parsed_dt = _parse_datetime_token(value)
        if parsed_dt:
            return format_datetime_utc(parsed_dt)
    return ""


def iso_to_epoch(value: str) -> float:
    parsed_dt = _parse_datetime_token(value or "")
    if not parsed_dt:
        return 0.0
    dt = parsed_dt if parsed_dt.tzinfo else parsed_dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).timestamp()
