from datetime import UTC, datetime


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes read back from a store as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
