"""Unit tests for the schedule store."""

import json
from datetime import date

from coachbot.models.schedule import ScheduleDocument, ScheduleGroup
from coachbot.schedule.parser import parse_schedule
from coachbot.services.schedule_store import DAY_SECONDS, ScheduleStore
from tests.fixtures import SAMPLE_SCHEDULE, SAMPLE_SCHEDULE_REVISED


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_document(period, week="Week1", reps="6"):
    return ScheduleDocument(
        week_label=week,
        period_str=period,
        groups=[ScheduleGroup(name="A", target="SUB 3:00", distance=1200, reps=reps)],
    )


class TestScheduleStore:
    """Test suite for ScheduleStore."""

    def test_put_and_get_for_date(self):
        store = ScheduleStore()
        document = parse_schedule(SAMPLE_SCHEDULE)

        assert store.put("G1", document) is True
        assert store.get_for_date("G1", date(2025, 2, 25)) is document
        assert store.get_for_date("G1", date(2025, 3, 10)) is None

    def test_put_without_period_is_rejected(self):
        store = ScheduleStore()
        assert store.put("G1", make_document(None)) is False
        assert store.get_latest("G1") is None

    def test_put_without_source_is_rejected(self):
        store = ScheduleStore()
        assert store.put(None, make_document("01/01-01/07")) is False
        assert store.sources == {}

    def test_same_period_overwrites(self):
        """Test that a second parse for the same period replaces the first."""
        store = ScheduleStore()
        store.put("G1", parse_schedule(SAMPLE_SCHEDULE))
        store.put("G1", parse_schedule(SAMPLE_SCHEDULE_REVISED))

        assert list(store.sources["G1"]) == ["02/23-03/01"]
        group = store.get_for_date("G1", date(2025, 2, 25)).get_group("A")
        assert group.reps == "5"
        assert group.paces == ["04:00"]

    def test_get_latest_prefers_current_period(self):
        clock = FakeClock()
        store = ScheduleStore(clock=clock)
        store.put("G1", make_document("02/23-03/01", week="Week9"))
        clock.now += 10
        store.put("G1", make_document("03/02-03/08", week="Week10"))

        assert store.get_latest("G1", today=date(2025, 2, 25)).week_label == "Week9"

    def test_get_latest_falls_back_to_newest(self):
        clock = FakeClock()
        store = ScheduleStore(clock=clock)
        store.put("G1", make_document("02/23-03/01", week="Week9"))
        clock.now += 10
        store.put("G1", make_document("03/02-03/08", week="Week10"))

        assert store.get_latest("G1", today=date(2025, 6, 1)).week_label == "Week10"

    def test_unknown_source(self):
        store = ScheduleStore()
        assert store.get_latest("nobody") is None
        assert store.get_for_date("nobody") is None

    def test_lru_eviction(self):
        store = ScheduleStore(max_sources=2)
        store.put("G1", make_document("01/01-01/07"))
        store.put("G2", make_document("01/01-01/07"))

        # Reading G1 makes G2 the least recently used
        store.get_latest("G1")
        store.put("G3", make_document("01/01-01/07"))

        assert list(store.sources) == ["G1", "G3"]

    def test_stale_sources_purged_on_write(self):
        clock = FakeClock()
        store = ScheduleStore(retention_seconds=10 * DAY_SECONDS, clock=clock)
        store.put("old", make_document("01/01-01/07"))

        clock.now += 11 * DAY_SECONDS
        store.put("new", make_document("01/08-01/14"))

        assert "old" not in store.sources
        assert "new" in store.sources

    def test_persistence_round_trip(self, tmp_path):
        path = tmp_path / "data" / "schedules.json"
        clock = FakeClock()
        store = ScheduleStore(path=str(path), clock=clock)
        store.put("G1", parse_schedule(SAMPLE_SCHEDULE))

        assert path.exists()
        reloaded = ScheduleStore(path=str(path), clock=clock)
        document = reloaded.get_for_date("G1", date(2025, 2, 25))
        assert document.week_label == "Week9"
        assert document.get_group("S").lap_times == [46, 45]

    def test_load_skips_old_entries(self, tmp_path):
        path = tmp_path / "schedules.json"
        clock = FakeClock()
        payload = {
            "G1": {
                "01/01-01/07": {
                    "data": make_document("01/01-01/07").to_dict(),
                    "timestamp": clock.now - 31 * DAY_SECONDS,
                },
                "02/01-02/07": {
                    "data": make_document("02/01-02/07").to_dict(),
                    "timestamp": clock.now - DAY_SECONDS,
                },
            }
        }
        path.write_text(json.dumps(payload), encoding="utf-8")

        store = ScheduleStore(path=str(path), clock=clock)
        assert list(store.sources["G1"]) == ["02/01-02/07"]

    def test_load_ignores_corrupt_file(self, tmp_path):
        path = tmp_path / "schedules.json"
        path.write_text("{not json", encoding="utf-8")

        store = ScheduleStore(path=str(path))
        assert store.sources == {}

    def test_save_failure_is_not_raised(self, tmp_path):
        # A directory where the file should be makes open() fail
        path = tmp_path / "schedules.json"
        path.mkdir()
        store = ScheduleStore(path=str(path))

        assert store.put("G1", make_document("01/01-01/07")) is True

    def test_clear_and_stats(self):
        store = ScheduleStore(max_sources=10)
        store.put("G1", make_document("01/01-01/07"))
        store.put("G1", make_document("01/08-01/14"))
        store.put("G2", make_document("01/01-01/07"))

        assert store.get_stats() == {
            "sources": 2,
            "schedules": 3,
            "max_sources": 10,
            "persistent": False,
        }
        store.clear()
        assert store.get_stats()["sources"] == 0
