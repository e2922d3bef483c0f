from datetime import UTC, datetime, timedelta


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def is_past_or_now(self, utc_dt: datetime) -> bool:
        return utc_dt <= self.now_utc()

    def hours_from_now(self, hours: int) -> datetime:
        return self.now_utc() + timedelta(hours=hours)


class FixedClock:
    """Clock pinned to one instant; advance() moves it forward."""

    def __init__(self, now: datetime):
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def is_past_or_now(self, utc_dt: datetime) -> bool:
        return utc_dt <= self._now

    def hours_from_now(self, hours: int) -> datetime:
        return self._now + timedelta(hours=hours)

    def advance(self, **kwargs: float) -> None:
        self._now = self._now + timedelta(**kwargs)
