from __future__ import annotations

from datetime import datetime, timezone
import unittest

from pomoflow.errors import NotFoundError, ValidationError
from pomoflow.schedule import ScheduleService, build_schedule_input, parse_datetime
from pomoflow.tests.test_helpers import OTHER_USER, USER, temp_db


class TestScheduleInput(unittest.TestCase):
    def test_parse_datetime_accepts_z_suffix(self) -> None:
        parsed = parse_datetime("2026-03-02T09:30:00Z", "start_datetime")
        self.assertEqual(parsed, datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc))

    def test_naive_datetime_is_utc(self) -> None:
        parsed = parse_datetime("2026-03-02T09:30", "start_datetime")
        self.assertEqual(parsed.tzinfo, timezone.utc)

    def test_validation(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            build_schedule_input({"title": "x"}, allow_missing_title=False)
        self.assertEqual(ctx.exception.message, "start_datetime is required")

        with self.assertRaises(ValidationError):
            build_schedule_input({"title": "x", "start_datetime": "tomorrow"}, allow_missing_title=False)

        with self.assertRaises(ValidationError) as ctx:
            build_schedule_input({"start_datetime": "2026-03-02T09:30:00Z"}, allow_missing_title=False)
        self.assertEqual(ctx.exception.message, "provide session_id or title")

        with self.assertRaises(ValidationError):
            build_schedule_input(
                {"title": "x", "start_datetime": "2026-03-02T09:30:00Z", "duration_min": -5},
                allow_missing_title=False,
            )

    def test_default_duration(self) -> None:
        data = build_schedule_input({"title": "x", "start_datetime": "2026-03-02T09:30:00Z"}, False)
        self.assertEqual(data.duration_min, 25)


class TestScheduleService(unittest.TestCase):
    def test_create_joins_template(self) -> None:
        with temp_db() as (db, clock):
            template = db.insert_template(USER, "Deep work", 50, 10, "no phone", clock.now())
            service = ScheduleService(db, clock)

            item = service.create(USER, {"session_id": template.id, "start_datetime": "2026-03-02T10:00:00Z"})

            self.assertIsNone(item.title)
            assert item.session is not None
            self.assertEqual(item.session.name, "Deep work")
            self.assertEqual(item.session.description, "no phone")
            self.assertFalse(item.completed)

    def test_rejects_foreign_template(self) -> None:
        with temp_db() as (db, clock):
            template = db.insert_template(OTHER_USER, "Theirs", 25, 5, None, clock.now())
            service = ScheduleService(db, clock)
            with self.assertRaises(ValidationError) as ctx:
                service.create(USER, {"session_id": template.id, "start_datetime": "2026-03-02T10:00:00Z"})
            self.assertEqual(ctx.exception.message, "Invalid session_id")

    def test_list_filters_and_orders(self) -> None:
        with temp_db() as (db, clock):
            service = ScheduleService(db, clock)
            late = service.create(USER, {"title": "late", "start_datetime": "2026-03-05T10:00:00Z"})
            early = service.create(USER, {"title": "early", "start_datetime": "2026-03-01T10:00:00Z"})
            middle = service.create(USER, {"title": "middle", "start_datetime": "2026-03-03T10:00:00Z"})

            self.assertEqual([item.id for item in service.list(USER)], [early.id, middle.id, late.id])
            window = service.list(USER, "2026-03-02", "2026-03-04T00:00:00Z")
            self.assertEqual([item.id for item in window], [middle.id])
            self.assertEqual(service.list(OTHER_USER), [])

    def test_update_and_delete(self) -> None:
        with temp_db() as (db, clock):
            service = ScheduleService(db, clock)
            item = service.create(USER, {"title": "plan", "start_datetime": "2026-03-05T10:00:00Z"})

            updated = service.update(
                USER,
                item.id,
                {"title": "plan b", "start_datetime": "2026-03-05T11:00:00Z", "duration_min": 45, "completed": True},
            )
            self.assertEqual(updated.title, "plan b")
            self.assertEqual(updated.duration_min, 45)
            self.assertTrue(updated.completed)

            with self.assertRaises(NotFoundError):
                service.update(OTHER_USER, item.id, {"start_datetime": "2026-03-05T11:00:00Z"})
            with self.assertRaises(NotFoundError):
                service.delete(OTHER_USER, item.id)

            service.delete(USER, item.id)
            with self.assertRaises(NotFoundError):
                service.get(USER, item.id)


if __name__ == "__main__":
    unittest.main()
