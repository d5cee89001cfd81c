from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(dt):
    return dt.isoformat() if dt else None
