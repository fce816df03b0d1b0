import os
import sys
import sqlite3
import unittest
from unittest import mock
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from rest_api import WorkoutAPI


def submission(date, name="", exercises=None, notes=""):
    return {
        "date": date,
        "name": name,
        "notes": notes,
        "exercises": exercises
        or [{"name": "Bench", "sets": [{"set_number": "", "weight": "80", "reps": "5"}]}],
    }


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_workout.db"
        self.yaml_path = "test_settings.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = WorkoutAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _log_bench_workouts(self) -> tuple:
        first = self.client.post(
            "/workouts",
            json=submission(
                "2024-01-01",
                "Push Day",
                [
                    {
                        "name": "Bench",
                        "sets": [
                            {"set_number": "1", "weight": "80", "reps": "5"},
                            {"set_number": "", "weight": "85", "reps": "3"},
                        ],
                    }
                ],
            ),
        )
        second = self.client.post(
            "/workouts",
            json=submission(
                "2024-01-08",
                "push day",
                [{"name": "Bench", "sets": [{"weight": 90, "reps": 2}]}],
            ),
        )
        return first.json()["id"], second.json()["id"]

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_full_workflow(self) -> None:
        response = self.client.get("/workouts")
        self.assertEqual(response.json(), [])

        first_id, second_id = self._log_bench_workouts()

        response = self.client.get("/workouts")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([w["id"] for w in response.json()], [second_id, first_id])

        response = self.client.get(f"/workouts/{first_id}")
        self.assertEqual(response.status_code, 200)
        sets = response.json()["exercises"][0]["sets"]
        self.assertEqual(sets[0]["setNumber"], 1)
        self.assertNotIn("setNumber", sets[1])
        self.assertEqual(sets[1]["display_number"], 2)

        response = self.client.get("/exercises")
        self.assertEqual(response.json(), ["Bench"])

        response = self.client.get("/exercises/Bench/prs")
        self.assertEqual(
            response.json(), {"max_weight": 90.0, "max_reps": 5, "max_volume": 400.0}
        )

        response = self.client.get("/exercises/Bench/history")
        history = response.json()
        self.assertEqual([h["date"] for h in history], ["2024-01-08", "2024-01-01"])

        response = self.client.get("/exercises/Bench/progression")
        data = response.json()
        self.assertEqual(data["chart"][0], {"date": "2024-01-01", "max_weight": 85.0, "avg_weight": 82.5})
        self.assertEqual(len(data["history"]), 2)

        response = self.client.get("/exercises/last", params={"name": "bench"})
        self.assertEqual(response.json()["workout_id"], second_id)

        response = self.client.get("/workouts/last", params={"name": "PUSH DAY"})
        self.assertEqual(response.json()["id"], second_id)

        response = self.client.delete(f"/workouts/{first_id}")
        self.assertEqual(response.json(), {"status": "deleted"})
        response = self.client.get(f"/workouts/{first_id}")
        self.assertEqual(response.status_code, 404)

        response = self.client.delete("/workouts/unknown")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.client.get("/workouts").json()), 1)

    def test_validation_error(self) -> None:
        response = self.client.post(
            "/workouts",
            json=submission("", exercises=[{"name": "Bench", "sets": [{"weight": "", "reps": ""}]}]),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.json()["detail"]), {"date", "exercises"})
        self.assertEqual(self.client.get("/workouts").json(), [])

    def test_storage_write_failure(self) -> None:
        first_id, _ = self._log_bench_workouts()
        failure = sqlite3.OperationalError("disk I/O error")
        with mock.patch.object(self.api.workouts, "set_value", side_effect=failure):
            with self.assertLogs("db", level="ERROR"):
                response = self.client.post("/workouts", json=submission("2024-02-01"))
            self.assertEqual(response.status_code, 500)
            with self.assertLogs("db", level="ERROR"):
                response = self.client.delete(f"/workouts/{first_id}")
            self.assertEqual(response.status_code, 500)
        self.assertEqual(len(self.client.get("/workouts").json()), 2)

    def test_non_finite_weight_is_rejected(self) -> None:
        response = self.client.post(
            "/workouts",
            content='{"date": "2024-01-01", "exercises": [{"name": "Bench", "sets": [{"weight": NaN, "reps": 5}]}]}',
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("exercises", response.json()["detail"])

    def test_exercise_names_with_slashes(self) -> None:
        self.client.post(
            "/workouts",
            json=submission("2024-01-01", exercises=[{"name": "Incline/Decline", "sets": [{"weight": 20, "reps": 10}]}]),
        )
        response = self.client.get("/exercises/Incline%2FDecline/history")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([h["exercise"] for h in response.json()], ["Incline/Decline"])
        prs = self.client.get("/exercises/Incline/Decline/prs").json()
        self.assertEqual(prs["max_volume"], 200.0)

    def test_lookup_misses(self) -> None:
        self.assertEqual(self.client.get("/exercises/last", params={"name": "x"}).status_code, 404)
        self.assertEqual(self.client.get("/workouts/last", params={"name": "x"}).status_code, 404)
        self.assertEqual(self.client.get("/prefill/exercise", params={"name": "x"}).status_code, 404)
        self.assertEqual(self.client.get("/prefill/workout", params={"name": "x"}).status_code, 404)
        prs = self.client.get("/exercises/Squat/prs").json()
        self.assertEqual(prs, {"max_weight": None, "max_reps": None, "max_volume": None})

    def test_stats(self) -> None:
        self._log_bench_workouts()
        response = self.client.get("/stats/overview", params={"today": "2024-01-20"})
        self.assertEqual(
            response.json(),
            {
                "total_workouts": 2,
                "last_workout_date": "2024-01-08",
                "current_month_workouts": 2,
                "frequency": {"per_week": 2.0, "per_month": 8.6},
            },
        )
        response = self.client.get("/stats/most_common", params={"limit": 1})
        self.assertEqual(response.json(), [{"name": "Bench", "count": 2}])
        self.assertEqual(self.client.get("/stats/overview", params={"today": "bad"}).status_code, 400)

    def test_calendar(self) -> None:
        self._log_bench_workouts()
        cells = self.client.get("/calendar", params={"year": 2024, "month": 1}).json()
        flagged = [c["day"] for c in cells if c and c["has_workout"]]
        self.assertEqual(flagged, [1, 8])
        self.assertEqual(self.client.get("/calendar", params={"year": 2024, "month": 13}).status_code, 400)

    def test_prefill(self) -> None:
        self._log_bench_workouts()
        rows = self.client.get("/prefill/exercise", params={"name": "Bench"}).json()
        self.assertEqual(rows, [{"set_number": "", "weight": "90", "reps": "2"}])
        form = self.client.get("/prefill/workout", params={"name": "push day"}).json()
        self.assertEqual(form["name"], "push day")
        self.assertEqual(form["exercises"][0]["name"], "Bench")

    def test_settings_file(self) -> None:
        with open(self.yaml_path, "w", encoding="utf-8") as f:
            f.write("most_common_limit: 1\n")
        api = WorkoutAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        client = TestClient(api.app)
        for name in ("Row", "Curl"):
            client.post(
                "/workouts",
                json=submission("2024-01-01", exercises=[{"name": name, "sets": [{"weight": 1, "reps": 1}]}]),
            )
        self.assertEqual(client.get("/stats/most_common").json(), [{"name": "Row", "count": 1}])


if __name__ == "__main__":
    unittest.main()
