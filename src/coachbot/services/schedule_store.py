"""Per-source cache of parsed training schedules."""

import json
import logging
import os
import time
from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from ..models.schedule import ScheduleDocument
from ..schedule.parser import is_date_within_period

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


class ScheduleStore:
    """LRU store of schedules keyed by source, then by period string.

    A later schedule for the same period replaces the earlier one. Sources
    whose newest entry is older than the retention horizon are purged when
    the store is written to. Persistence to JSON is best-effort.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        max_sources: int = 500,
        retention_seconds: float = 365 * DAY_SECONDS,
        load_max_age_seconds: float = 30 * DAY_SECONDS,
        timezone: str = "Asia/Taipei",
        clock: Optional[Callable[[], float]] = None,
    ):
        self.path = path
        self.max_sources = max_sources
        self.retention_seconds = retention_seconds
        self.load_max_age_seconds = load_max_age_seconds
        self.tz = ZoneInfo(timezone)
        self._clock = clock or time.time
        self.sources: OrderedDict[str, Dict[str, Dict[str, Any]]] = OrderedDict()

        if self.path:
            self.load()

    def _today(self) -> date:
        return datetime.fromtimestamp(self._clock(), self.tz).date()

    def put(self, source_id: Optional[str], document: ScheduleDocument) -> bool:
        """Cache a document under its period; returns False when it has no key."""
        if not source_id or not document.period_str:
            return False

        periods = self.sources.get(source_id)
        if periods is None:
            if len(self.sources) >= self.max_sources:
                evicted, _ = self.sources.popitem(last=False)
                logger.info(f"Evicted schedules of least recently used source {evicted}")
            periods = {}
            self.sources[source_id] = periods

        periods[document.period_str] = {"data": document, "timestamp": self._clock()}
        self.sources.move_to_end(source_id)
        logger.info(f"Cached schedule {document.period_str} for {source_id}")

        self._purge_stale()
        self.save()
        return True

    def get_latest(
        self, source_id: Optional[str], today: Optional[date] = None
    ) -> Optional[ScheduleDocument]:
        """The schedule covering today, else the most recently stored one."""
        periods = self._lookup(source_id)
        if not periods:
            return None

        today = today or self._today()
        for period, entry in periods.items():
            if is_date_within_period(period, today):
                return entry["data"]

        newest = max(periods.values(), key=lambda e: e["timestamp"])
        return newest["data"]

    def get_for_date(
        self, source_id: Optional[str], target: Optional[date] = None
    ) -> Optional[ScheduleDocument]:
        """The schedule whose period strictly contains the target date."""
        periods = self._lookup(source_id)
        if not periods:
            return None

        target = target or self._today()
        for period, entry in periods.items():
            if is_date_within_period(period, target):
                return entry["data"]
        return None

    def _lookup(self, source_id: Optional[str]) -> Optional[Dict[str, Dict[str, Any]]]:
        if not source_id or source_id not in self.sources:
            return None
        self.sources.move_to_end(source_id)
        return self.sources[source_id]

    def _purge_stale(self) -> None:
        now = self._clock()
        for source_id in list(self.sources.keys()):
            periods = self.sources[source_id]
            newest = max((e["timestamp"] for e in periods.values()), default=0)
            if now - newest > self.retention_seconds:
                logger.info(f"Purging schedules of {source_id}, idle past retention")
                del self.sources[source_id]

    def load(self) -> None:
        """Load persisted schedules, skipping entries that are too old."""
        if not self.path or not os.path.exists(self.path):
            return
        now = self._clock()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            for source_id, periods in raw.items():
                kept = {}
                for period, entry in periods.items():
                    if now - entry["timestamp"] < self.load_max_age_seconds:
                        kept[period] = {
                            "data": ScheduleDocument.from_dict(entry["data"]),
                            "timestamp": entry["timestamp"],
                        }
                if kept:
                    self.sources[source_id] = kept
            logger.info(f"Loaded schedules for {len(self.sources)} sources from {self.path}")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Failed to load schedules from {self.path}: {e}")

    def save(self) -> None:
        """Write the store to disk; failures are logged and ignored."""
        if not self.path:
            return
        payload = {
            source_id: {
                period: {"data": entry["data"].to_dict(), "timestamp": entry["timestamp"]}
                for period, entry in periods.items()
            }
            for source_id, periods in self.sources.items()
        }
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error(f"Failed to save schedules to {self.path}: {e}")

    def clear(self) -> None:
        self.sources.clear()
        self.save()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "sources": len(self.sources),
            "schedules": sum(len(p) for p in self.sources.values()),
            "max_sources": self.max_sources,
            "persistent": bool(self.path),
        }
