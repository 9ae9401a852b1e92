from __future__ import annotations

import unittest

from pomoflow.auth import StaticTokenResolver
from pomoflow.clock import FakeClock
from pomoflow.config import Settings
from pomoflow.errors import UpstreamError
from pomoflow.sentiment import SentimentResult
from pomoflow.tests.test_helpers import START, local_tmp_dir

ALICE = {"Authorization": "Bearer alice-token"}
BOB = {"Authorization": "Bearer bob-token"}


class FakeClassifier:
    def __init__(self) -> None:
        self.fail = False

    def classify(self, text: str) -> SentimentResult:
        if self.fail:
            raise UpstreamError("model loading")
        return SentimentResult("POSITIVE" if "good" in text else "NEGATIVE", 0.91)


class TestAPI(unittest.TestCase):
    def setUp(self) -> None:
        try:
            from fastapi.testclient import TestClient
            from pomoflow.api.app import create_app
        except Exception as exc:  # pragma: no cover
            self.skipTest(f"fastapi test client unavailable: {exc}")

        self._tmp = local_tmp_dir()
        tmp = self._tmp.__enter__()
        self.addCleanup(self._tmp.__exit__, None, None, None)

        self.clock = FakeClock(START)
        self.classifier = FakeClassifier()
        app = create_app(
            db_path=tmp / "data" / "pomoflow.sqlite",
            settings=Settings(),
            classifier=self.classifier,
            token_resolver=StaticTokenResolver({"alice-token": "alice", "bob-token": "bob"}),
            clock=self.clock,
        )
        self.client = TestClient(app)

    def test_health_needs_no_token(self) -> None:
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_auth_errors(self) -> None:
        missing = self.client.get("/api/timer/active")
        self.assertEqual(missing.status_code, 401)
        self.assertEqual(missing.json(), {"error": "No token provided"})

        invalid = self.client.get("/api/timer/active", headers={"Authorization": "Bearer nope"})
        self.assertEqual(invalid.status_code, 401)
        self.assertEqual(invalid.json(), {"error": "Invalid token"})

    def test_timer_lifecycle(self) -> None:
        self.assertIsNone(self.client.get("/api/timer/active", headers=ALICE).json())

        started = self.client.post(
            "/api/timer/start",
            json={"duration_minutes": 25, "phase": "focus", "session_group_id": "g1"},
            headers=ALICE,
        )
        self.assertEqual(started.status_code, 201)
        timer = started.json()
        self.assertEqual(timer["remaining_seconds"], 1500)

        self.clock.advance(minutes=5)
        active = self.client.get("/api/timer/active", headers=ALICE).json()
        self.assertEqual(active["id"], timer["id"])
        self.assertEqual(active["remaining_seconds"], 1200)
        self.assertIsNone(self.client.get("/api/timer/active", headers=BOB).json())

        self.assertTrue(self.client.post("/api/timer/pause", headers=ALICE).json()["paused"])
        self.assertFalse(self.client.post("/api/timer/resume", headers=ALICE).json()["paused"])

        notes = self.client.patch(f"/api/timer/{timer['id']}/notes", json={"notes": "ok"}, headers=ALICE)
        self.assertEqual(notes.json()["notes"], "ok")

        stopped = self.client.post("/api/timer/stop", headers=ALICE).json()
        self.assertTrue(stopped["completed"])
        self.assertIsNotNone(stopped["end_time"])
        self.assertIsNone(stopped["remaining_seconds"])

        history = self.client.get("/api/timer/history?limit=5", headers=ALICE).json()
        self.assertEqual([row["id"] for row in history], [timer["id"]])

    def test_timer_errors(self) -> None:
        pause = self.client.post("/api/timer/pause", headers=ALICE)
        self.assertEqual(pause.status_code, 404)
        self.assertEqual(pause.json(), {"error": "No active timer to pause"})

        bad = self.client.post("/api/timer/start", json={"duration_minutes": "abc", "phase": "focus"}, headers=ALICE)
        self.assertEqual(bad.status_code, 400)
        self.assertIn("duration_minutes", bad.json()["error"])

        phase = self.client.post("/api/timer/start", json={"duration_minutes": 5, "phase": "nap"}, headers=ALICE)
        self.assertEqual(phase.status_code, 400)

        missing_id = self.client.post("/api/timer/complete", json={}, headers=ALICE)
        self.assertEqual(missing_id.status_code, 400)
        self.assertEqual(missing_id.json(), {"error": "timer_id is required"})

        unknown = self.client.post("/api/timer/complete", json={"timer_id": 999}, headers=ALICE)
        self.assertEqual(unknown.status_code, 404)
        self.assertEqual(unknown.json(), {"error": "Timer session not found"})

        notes = self.client.patch("/api/timer/999/notes", json={"notes": "x"}, headers=ALICE)
        self.assertEqual(notes.status_code, 404)

        bad_path = self.client.patch("/api/timer/abc/notes", json={"notes": "x"}, headers=ALICE)
        self.assertEqual(bad_path.status_code, 404)
        self.assertEqual(bad_path.json(), {"error": "Timer session not found"})

        malformed = self.client.post("/api/timer/start", json={"duration_minutes": 5, "session_group_id": 5}, headers=ALICE)
        self.assertEqual(malformed.status_code, 201)

        not_json = self.client.post("/api/timer/start", content="nope", headers={**ALICE, "Content-Type": "application/json"})
        self.assertEqual(not_json.status_code, 400)

    def test_cross_tenant_complete_is_not_found(self) -> None:
        timer = self.client.post("/api/timer/start", json={"duration_minutes": 25}, headers=ALICE).json()
        response = self.client.post("/api/timer/complete", json={"timer_id": timer["id"]}, headers=BOB)
        self.assertEqual(response.status_code, 404)

    def test_advance_and_insights(self) -> None:
        first = self.client.post(
            "/api/timer/start",
            json={"duration_minutes": 25, "target_cycles": 2, "session_group_id": "run-1"},
            headers=ALICE,
        ).json()

        step = self.client.post("/api/timer/advance", json={"timer_id": first["id"]}, headers=ALICE).json()
        self.assertFalse(step["run_complete"])
        self.assertEqual(step["started"]["phase"], "short_break")

        step = self.client.post(
            "/api/timer/transition",
            json={"completed_timer_id": step["started"]["id"], "next": {"duration_minutes": 25, "phase": "focus"}},
            headers=ALICE,
        ).json()
        self.assertEqual(step["started"]["session_group_id"], "run-1")
        last_id = step["started"]["id"]

        done = self.client.post("/api/timer/advance", json={"timer_id": last_id}, headers=ALICE).json()
        self.assertTrue(done["run_complete"])
        self.assertIsNone(done["started"])

        listed = self.client.get("/api/insights/completed-sessions", headers=ALICE).json()
        self.assertEqual(len(listed["sessions"]), 1)
        session = listed["sessions"][0]
        self.assertEqual(session["id"], f"timer_{first['id']}")
        self.assertEqual(session["duration"], 50)
        self.assertIsNone(session["sentiment"])
        self.assertIn("analyzedAt", session)

        analyzed = self.client.post(
            "/api/insights/analyze", json={"id": f"timer_{last_id}", "notes": "good session"}, headers=ALICE
        )
        self.assertEqual(analyzed.status_code, 200)
        body = analyzed.json()
        self.assertEqual(body["id"], f"timer_{first['id']}")
        self.assertEqual(body["sentiment"], {"label": "POSITIVE", "score": 0.91})
        self.assertIn("analyzedAt", body)

        listed = self.client.get("/api/insights/completed-sessions", headers=ALICE).json()
        self.assertEqual(listed["sessions"][0]["sentiment"]["label"], "POSITIVE")

        stats = self.client.get("/api/insights/stats", headers=ALICE).json()
        self.assertEqual(stats["analyzed"], 1)
        self.assertEqual(stats["positive"], 1)
        self.assertEqual(self.client.get("/api/insights/completed-sessions", headers=BOB).json(), {"sessions": []})

    def test_analyze_errors(self) -> None:
        missing = self.client.post("/api/insights/analyze", json={}, headers=ALICE)
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.json(), {"error": "id is required"})

        bad = self.client.post("/api/insights/analyze", json={"id": "timer_x"}, headers=ALICE)
        self.assertEqual(bad.json(), {"error": "Invalid id format"})

        unknown = self.client.post("/api/insights/analyze", json={"id": 404}, headers=ALICE)
        self.assertEqual(unknown.status_code, 404)

        timer = self.client.post("/api/timer/start", json={"duration_minutes": 25}, headers=ALICE).json()
        self.classifier.fail = True
        with self.assertLogs("pomoflow.api.app", level="WARNING"):
            failed = self.client.post("/api/insights/analyze", json={"id": timer["id"]}, headers=ALICE)
        self.assertEqual(failed.status_code, 500)
        self.assertEqual(failed.json(), {"error": "sentiment service unavailable"})

        direct = self.client.post(
            "/api/insights/analyze",
            json={"sessionId": timer["id"], "sentiment_label": "NEUTRAL", "sentiment_score": 0.4},
            headers=ALICE,
        ).json()
        self.assertEqual(direct["sentiment"], {"label": "NEUTRAL", "score": 0.4})

    def test_templates_crud(self) -> None:
        created = self.client.post(
            "/api/sessions", json={"name": "Deep work", "focus_duration": 50, "break_duration": 10}, headers=ALICE
        )
        self.assertEqual(created.status_code, 201)
        template = created.json()

        invalid = self.client.post("/api/sessions", json={"focus_duration": 50, "break_duration": 10}, headers=ALICE)
        self.assertEqual(invalid.json(), {"error": "Name is required"})

        self.assertEqual(len(self.client.get("/api/sessions", headers=ALICE).json()), 1)
        self.assertEqual(self.client.get("/api/sessions", headers=BOB).json(), [])
        self.assertEqual(self.client.get(f"/api/sessions/{template['id']}", headers=BOB).status_code, 404)

        updated = self.client.put(
            f"/api/sessions/{template['id']}",
            json={"name": "Deeper", "focus_duration": 60, "break_duration": 10},
            headers=ALICE,
        )
        self.assertEqual(updated.json()["name"], "Deeper")

        self.client.post(
            "/api/timer/start", json={"duration_minutes": 60, "session_template_id": template["id"]}, headers=ALICE
        )
        deleted = self.client.delete(f"/api/sessions/{template['id']}", headers=ALICE)
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get("/api/timer/history", headers=ALICE).json(), [])
        self.assertEqual(self.client.delete(f"/api/sessions/{template['id']}", headers=ALICE).status_code, 404)
        self.assertEqual(self.client.get("/api/sessions/abc", headers=ALICE).status_code, 400)

    def test_schedule_and_dashboard(self) -> None:
        template = self.client.post(
            "/api/sessions", json={"name": "Deep work", "focus_duration": 50, "break_duration": 10}, headers=ALICE
        ).json()
        created = self.client.post(
            "/api/schedule",
            json={"session_id": template["id"], "start_datetime": "2026-03-02T13:00:00Z", "duration_min": 50},
            headers=ALICE,
        )
        self.assertEqual(created.status_code, 201)
        item = created.json()
        self.assertEqual(item["session"]["name"], "Deep work")

        foreign = self.client.post(
            "/api/schedule",
            json={"session_id": template["id"], "start_datetime": "2026-03-02T13:00:00Z"},
            headers=BOB,
        )
        self.assertEqual(foreign.json(), {"error": "Invalid session_id"})

        window = self.client.get("/api/schedule?from=2026-03-02T00:00:00Z&to=2026-03-02T23:59:59Z", headers=ALICE)
        self.assertEqual([row["id"] for row in window.json()], [item["id"]])

        today = self.client.get("/api/dashboard/today-schedule", headers=ALICE).json()
        self.assertEqual(today[0]["title"], "Deep work")
        self.assertEqual(today[0]["time"], "13:00")

        self.assertEqual(self.client.delete(f"/api/schedule/{item['id']}", headers=ALICE).status_code, 204)
        self.assertEqual(self.client.get(f"/api/schedule/{item['id']}", headers=ALICE).status_code, 404)

        timer = self.client.post("/api/timer/start", json={"duration_minutes": 25}, headers=ALICE).json()
        self.client.post("/api/timer/complete", json={"timer_id": timer["id"]}, headers=ALICE)

        streak = self.client.get("/api/dashboard/streak", headers=ALICE).json()
        self.assertEqual(streak["currentStreak"], 1)
        stats = self.client.get("/api/dashboard/stats", headers=ALICE).json()
        self.assertEqual(stats["sessionsCompleted"], 1)
        overview = self.client.get("/api/dashboard/overview", headers=ALICE).json()
        self.assertEqual([t["name"] for t in overview["templates"]], ["Deep work"])

    def test_dashboard_keys_use_camel_case(self) -> None:
        self.client.post(
            "/api/sessions", json={"name": "Deep work", "focus_duration": 50, "break_duration": 10}, headers=ALICE
        )
        self.client.post(
            "/api/schedule", json={"title": "Review", "start_datetime": "2026-03-02T15:30:00Z"}, headers=ALICE
        )
        for minutes in (25, 30):
            timer = self.client.post("/api/timer/start", json={"duration_minutes": minutes}, headers=ALICE).json()
            self.client.post("/api/timer/complete", json={"timer_id": timer["id"]}, headers=ALICE)

        overview = self.client.get("/api/dashboard/overview", headers=ALICE).json()
        self.assertEqual(set(overview), {"streak", "todaysSchedule", "templates"})
        self.assertEqual(
            set(overview["streak"]), {"currentStreak", "longestStreak", "totalDays", "lastLoginDate"}
        )
        self.assertEqual(overview["streak"]["lastLoginDate"], START.date().isoformat())
        self.assertEqual(overview["todaysSchedule"][0]["title"], "Review")

        stats = self.client.get("/api/dashboard/stats", headers=ALICE).json()
        self.assertEqual(stats, {"totalFocusTime": "55m", "sessionsCompleted": 2, "averageSession": "28m"})

        today = self.client.get("/api/dashboard/today-schedule", headers=ALICE)
        self.assertEqual(today.status_code, 200)
        self.assertEqual(self.client.get("/api/dashboard/today", headers=ALICE).status_code, 404)

    def test_openapi_lists_routes(self) -> None:
        paths = self.client.get("/openapi.json").json().get("paths", {})
        for path in ("/api/timer/transition", "/api/insights/analyze", "/api/dashboard/overview"):
            self.assertIn(path, paths)


if __name__ == "__main__":
    unittest.main()
