from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    # storage keeps UTC without an offset
    return utcnow().replace(tzinfo=None)
