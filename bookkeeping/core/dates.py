from datetime import date, datetime, timedelta, timezone


def normalize_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value_text = value.strip()
        if not value_text:
            return None
        try:
            return date.fromisoformat(value_text)
        except ValueError:
            return None
    return None


def window_start(window_days: int, today: date | None = None) -> date:
    if today is None:
        today = date.today()
    return today - timedelta(days=window_days)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
