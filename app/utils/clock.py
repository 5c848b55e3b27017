from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive value. SQLite hands back naive datetimes, Postgres aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
