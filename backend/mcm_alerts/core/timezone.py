"""
Timezone utilities.
All timestamps are stored and exchanged as timezone-aware UTC.
"""
from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.
    
    This should be used instead of datetime.utcnow() which returns
    a naive datetime that can be misinterpreted by the database.
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_epoch_ms(value: Union[int, float]) -> datetime:
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise ValueError(f"Epoch milliseconds out of range: {value}") from e


def parse_since(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """
    Parse a polling cursor.
    
    Accepts milliseconds since the epoch (as number or digit string) or an
    ISO-8601 timestamp. Raises ValueError for anything else, including
    epoch values outside the platform's representable range.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)
    text = value.strip()
    if text.isdigit():
        return _from_epoch_ms(int(text))
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))
