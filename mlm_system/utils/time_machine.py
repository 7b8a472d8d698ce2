# mlm_system/utils/time_machine.py
"""
Time machine for testing - controls virtual time in the system.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class TimeMachine:
    """Singleton for managing system time."""

    _instance = None
    _virtualTime: Optional[datetime] = None
    _isTestMode: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def now(self) -> datetime:
        """Get current system time (real or virtual)."""
        if self._isTestMode and self._virtualTime:
            return self._virtualTime
        return datetime.now(timezone.utc)

    def monthBounds(self, month: Optional[int] = None, year: Optional[int] = None) -> Tuple[datetime, datetime]:
        """
        Return [start, end) of a calendar month as naive datetimes.
        Defaults to the current month.
        """
        if month is None:
            month = self.now.month
        if year is None:
            year = self.now.year
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month: {month}")

        start = datetime(year, month, 1)
        if month == 12:
            end = datetime(year + 1, 1, 1)
        else:
            end = datetime(year, month + 1, 1)
        return start, end

    def daysSince(self, moment: Optional[datetime]) -> int:
        """Whole days elapsed since moment, never negative."""
        if moment is None:
            return 0
        now = self.now
        if moment.tzinfo is None:
            now = now.replace(tzinfo=None)
        elif now.tzinfo is None:
            moment = moment.replace(tzinfo=None)
        return max(0, (now - moment).days)

    def setTime(self, newTime: datetime, adminId: Optional[int] = None):
        """Set virtual time for testing."""
        self._isTestMode = True
        self._virtualTime = newTime
        logger.info(f"Virtual time set to {newTime} by admin {adminId}")

    def advanceTime(self, days: int = 0, hours: int = 0):
        """Advance virtual time forward."""
        if not self._isTestMode:
            raise ValueError("Cannot advance time when not in test mode")

        self._virtualTime += timedelta(days=days, hours=hours)
        logger.info(f"Time advanced to {self._virtualTime}")

    def resetToRealTime(self):
        """Return to real time."""
        self._isTestMode = False
        self._virtualTime = None
        logger.info("Returned to real time")


# Global instance
timeMachine = TimeMachine()
