"""Daily vocabulary-generation quota.

The counter is reset lazily: a stored date that is not today counts as zero,
whatever the stored count says. "Today" is whatever the injected clock
returns, a local ISO date string by default.
"""
from datetime import date

from pydantic import BaseModel


class QuotaCounter(BaseModel):
    date: str = ""
    count: int = 0


class QuotaExceeded(Exception):
    def __init__(self, limit: int):
        super().__init__(f"今日の更新回数制限（{limit}回）に達しました。明日また来てください！")
        self.limit = limit


def local_today() -> str:
    return date.today().isoformat()


def effective_count(counter: QuotaCounter, today: str) -> int:
    return counter.count if counter.date == today else 0


def can_generate(counter: QuotaCounter, limit: int, today: str) -> bool:
    return effective_count(counter, today) < limit


def record_generation(counter: QuotaCounter, today: str) -> QuotaCounter:
    """Counter after one more successful generation on `today`."""
    return QuotaCounter(date=today, count=effective_count(counter, today) + 1)
