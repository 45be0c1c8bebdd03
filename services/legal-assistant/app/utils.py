from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC now helper to avoid naive datetimes."""
    return datetime.now(timezone.utc)


def iso_timestamp() -> str:
    return utcnow().isoformat().replace("+00:00", "Z")
