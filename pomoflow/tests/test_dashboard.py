from __future__ import annotations

from datetime import date, timedelta
import unittest

from pomoflow.dashboard import DashboardService, current_streak, longest_streak
from pomoflow.schedule import ScheduleService
from pomoflow.timer_engine import TimerEngine
from pomoflow.tests.test_helpers import START, USER, temp_db


class TestStreakMath(unittest.TestCase):
    def test_current_streak_ends_today(self) -> None:
        today = date(2026, 3, 10)
        days = [date(2026, 3, 8), date(2026, 3, 9), date(2026, 3, 10), date(2026, 3, 1)]
        self.assertEqual(current_streak(days, today), 3)
        self.assertEqual(current_streak(days, date(2026, 3, 12)), 0)

    def test_longest_streak(self) -> None:
        days = [date(2026, 3, d) for d in (1, 2, 3, 5, 6, 9)]
        self.assertEqual(longest_streak(days), 3)
        self.assertEqual(longest_streak([]), 0)
        self.assertEqual(longest_streak([date(2026, 3, 1)]), 1)


class TestDashboardService(unittest.TestCase):
    def test_streak_from_completed_rows(self) -> None:
        with temp_db() as (db, clock):
            engine = TimerEngine(db, clock)
            for offset in (2, 1, 0):
                clock.set(START - timedelta(days=offset))
                row = engine.start(USER, {"duration_minutes": 25})
                engine.complete(USER, row.id)
            engine.start(USER, {"duration_minutes": 25})

            summary = DashboardService(db, clock).streak(USER)

            self.assertEqual(summary.current_streak, 3)
            self.assertEqual(summary.longest_streak, 3)
            self.assertEqual(summary.total_days, 3)
            self.assertEqual(summary.last_login_date, START.date().isoformat())

    def test_empty_streak(self) -> None:
        with temp_db() as (db, clock):
            summary = DashboardService(db, clock).streak(USER)
            self.assertEqual((summary.current_streak, summary.longest_streak, summary.total_days), (0, 0, 0))
            self.assertEqual(summary.last_login_date, START.date().isoformat())

    def test_today_schedule_fallbacks(self) -> None:
        with temp_db() as (db, clock):
            template = db.insert_template(USER, "Deep work", 50, 10, None, clock.now())
            schedule = ScheduleService(db, clock)
            schedule.create(USER, {"title": "Standup prep", "start_datetime": "2026-03-02T08:15:00Z", "duration_min": 15})
            schedule.create(USER, {"session_id": template.id, "start_datetime": "2026-03-02T13:00:00Z", "duration_min": 50})
            schedule.create(USER, {"title": "Tomorrow", "start_datetime": "2026-03-03T08:00:00Z"})

            items = DashboardService(db, clock).today_schedule(USER)

            self.assertEqual([(i.time, i.title, i.duration) for i in items], [
                ("08:15", "Standup prep", "15 min"),
                ("13:00", "Deep work", "50 min"),
            ])
            self.assertFalse(items[0].completed)

    def test_focus_stats_counts_completed_focus_only(self) -> None:
        with temp_db() as (db, clock):
            engine = TimerEngine(db, clock)
            clock.set(START - timedelta(days=10))
            old = engine.start(USER, {"duration_minutes": 25})
            engine.complete(USER, old.id)

            clock.set(START)
            for minutes in (20, 30):
                row = engine.start(USER, {"duration_minutes": minutes})
                engine.complete(USER, row.id)
            brk = engine.start(USER, {"duration_minutes": 5, "phase": "short_break"})
            engine.complete(USER, brk.id)
            engine.start(USER, {"duration_minutes": 45})

            stats = DashboardService(db, clock).focus_stats(USER)

            self.assertEqual(stats.sessions_completed, 2)
            self.assertEqual(stats.total_focus_minutes, 50)
            self.assertEqual(stats.average_session_minutes, 25)

    def test_overview(self) -> None:
        with temp_db() as (db, clock):
            db.insert_template(USER, "Deep work", 50, 10, None, clock.now())
            overview = DashboardService(db, clock).overview(USER)
            self.assertEqual(overview.streak.current_streak, 0)
            self.assertEqual(overview.todays_schedule, [])
            self.assertEqual([t.name for t in overview.templates], ["Deep work"])


if __name__ == "__main__":
    unittest.main()
