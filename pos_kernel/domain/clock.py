"""
Injectable time source.

Services stamp order timestamps, ``recorded_at`` and ``last_updated``
from a ``Clock`` handed to their constructor.  Engines never read a clock;
they receive dates as arguments.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware wall-clock time of the shop."""

    def today(self) -> date:
        """Business date, i.e. the date part of ``now()``."""
        return self.now().date()


class SystemClock(Clock):
    """Host local time, with its UTC offset attached."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class DeterministicClock(Clock):
    """Frozen clock for tests.  Moves only when told to."""

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = moment

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move one second forward and return the new time."""
        self.advance()
        return self._current
