"""Daily usage counter deciding which primary model tier to request."""

import logging
import threading
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


class UsageTracker:
    """Counts successful primary-tier calls per calendar day.

    The day boundary is evaluated in a fixed reference timezone and checked
    lazily on every access, so no background job is needed to reset it.
    """

    def __init__(
        self,
        threshold: int = 240,
        cap: int = 250,
        timezone: str = "Asia/Taipei",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not 0 < threshold < cap:
            raise ValueError(f"threshold ({threshold}) must be positive and below cap ({cap})")
        self.threshold = threshold
        self.cap = cap
        self.tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self.tz))
        self._lock = threading.Lock()
        self.current_date: date = self._today()
        self.primary_count = 0

    def _today(self) -> date:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return now.date()

    def _rollover(self) -> None:
        # Caller holds the lock
        today = self._today()
        if today != self.current_date:
            logger.info(
                f"Usage date rolled over {self.current_date} -> {today}, "
                f"resetting count ({self.primary_count})"
            )
            self.current_date = today
            self.primary_count = 0

    def should_use_reduced_tier(self) -> bool:
        with self._lock:
            self._rollover()
            return self.primary_count >= self.threshold

    def record_primary_call(self) -> None:
        with self._lock:
            self._rollover()
            self.primary_count += 1
            if self.primary_count == self.threshold:
                logger.warning(
                    f"Primary usage reached threshold {self.threshold}/{self.cap}, "
                    "switching to reduced tier"
                )

    def status_report(self) -> str:
        with self._lock:
            self._rollover()
            tier = "精簡模型" if self.primary_count >= self.threshold else "標準模型"
            return (
                f"📊 今日 ({self.current_date.isoformat()}) AI 用量："
                f"{self.primary_count}/{self.cap}，"
                f"降級門檻 {self.threshold}，目前使用{tier}"
            )

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            self._rollover()
            return {
                "date": self.current_date.isoformat(),
                "primary_count": self.primary_count,
                "threshold": self.threshold,
                "cap": self.cap,
                "reduced_tier": self.primary_count >= self.threshold,
            }
