from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (columns are stored without tz)"""
    return datetime.now(UTC).replace(tzinfo=None)
