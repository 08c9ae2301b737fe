"""
Operation Context Module

Explicit clock and operator values passed into every state-changing
operation instead of reading wall-clock time or a global "current user".
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone, date, timedelta
from typing import Optional


@dataclass(frozen=True)
class Operator:
    """Staff member performing an operation (encoder, approver, collector)"""
    id: str
    name: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Operator id is required")


class Clock(ABC):
    """Source of the current time"""

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware timestamp"""
        pass

    def today(self) -> date:
        """Current calendar date"""
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in UTC"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock pinned to a given instant; used for replay and tests"""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    @classmethod
    def on(cls, day: date) -> 'FixedClock':
        """Clock fixed at midday UTC on the given date"""
        return cls(datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def advance(self, days: int = 0, **kwargs) -> None:
        """Move the clock forward"""
        self._instant = self._instant + timedelta(days=days, **kwargs)
