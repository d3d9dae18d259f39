from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (all stored timestamps are naive UTC)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_day(moment: datetime) -> date:
    """Calendar day of a UTC moment; the natural key of an attendance record"""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.date()
