import requests
from typing import Optional
from urllib.parse import quote

class SpotterClient:
    """Simple REST client for the workout API."""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, **params):
        resp = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def _get_optional(self, path: str, **params):
        resp = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def log_workout(self, submission: dict) -> dict:
        resp = requests.post(f"{self.base_url}/workouts", json=submission, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def list_workouts(self) -> list:
        return self._get("/workouts")

    def get_workout(self, workout_id: str) -> Optional[dict]:
        return self._get_optional(f"/workouts/{quote(workout_id, safe='')}")

    def delete_workout(self, workout_id: str) -> None:
        resp = requests.delete(f"{self.base_url}/workouts/{quote(workout_id, safe='')}", timeout=self.timeout)
        resp.raise_for_status()

    def last_workout(self, name: str) -> Optional[dict]:
        return self._get_optional("/workouts/last", name=name)

    def exercises(self) -> list:
        return self._get("/exercises")

    def last_exercise(self, name: str) -> Optional[dict]:
        return self._get_optional("/exercises/last", name=name)

    def exercise_history(self, name: str) -> list:
        return self._get(f"/exercises/{quote(name, safe='')}/history")

    def personal_records(self, name: str) -> dict:
        return self._get(f"/exercises/{quote(name, safe='')}/prs")

    def progression(self, name: str) -> dict:
        return self._get(f"/exercises/{quote(name, safe='')}/progression")

    def overview(self, today: Optional[str] = None) -> dict:
        params = {"today": today} if today else {}
        return self._get("/stats/overview", **params)

    def frequency(self) -> dict:
        return self._get("/stats/frequency")

    def most_common(self, limit: int = 5) -> list:
        return self._get("/stats/most_common", limit=limit)

    def calendar(self, year: int, month: int) -> list:
        return self._get("/calendar", year=year, month=month)
