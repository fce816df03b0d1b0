import datetime
import sqlite3
from typing import Dict

from fastapi import FastAPI, HTTPException

from config import YamlConfig
from db import WorkoutRepository
from stats_service import StatisticsService, display_set_number
from workout_form import (
    WorkoutSubmission,
    WorkoutValidationError,
    assemble_workout,
    prefill_exercise_sets,
    prefill_workout,
)


def _set_json(set_entry, index: int) -> Dict:
    data = set_entry.model_dump(by_alias=True, exclude_none=True)
    data["display_number"] = display_set_number(set_entry, index)
    return data


def _history_json(item: Dict) -> Dict:
    return {
        "date": item["date"].isoformat(),
        "workout_id": item["workout_id"],
        "exercise": item["exercise"].name,
        "sets": [_set_json(s, i) for i, s in enumerate(item["sets"])],
    }


class WorkoutAPI:
    """Provides REST endpoints for workout logging and statistics."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str | None = None,
    ) -> None:
        self.settings = YamlConfig(yaml_path).settings()
        self.db_path = db_path or self.settings.db_path
        self.workouts = WorkoutRepository(self.db_path, self.settings.storage_key)
        self.statistics = StatisticsService(
            self.workouts, most_common_limit=self.settings.most_common_limit
        )
        self.app = FastAPI(
            title="Spotter API",
            description="REST API for workout logging and progress statistics",
        )
        self._setup_routes()

    def _setup_routes(self) -> None:
        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and storage connectivity.",
        )
        def health():
            self.workouts.fetch_all("SELECT 1;")
            return {"status": "ok"}

        @self.app.get(
            "/workouts",
            summary="List workouts",
            description="All logged workouts, newest first.",
        )
        def list_workouts():
            return [w.to_storage() for w in self.statistics.history()]

        @self.app.post(
            "/workouts",
            summary="Log workout",
            description="Validate a logging form submission and store it.",
        )
        def create_workout(submission: WorkoutSubmission):
            try:
                record = assemble_workout(submission)
            except WorkoutValidationError as e:
                raise HTTPException(status_code=400, detail=e.errors)
            try:
                stored = self.workouts.append(record)
            except sqlite3.Error as e:
                raise HTTPException(status_code=500, detail=str(e))
            return stored.to_storage()

        @self.app.get("/workouts/last")
        def last_workout(name: str):
            workout = self.statistics.last_by_name(name)
            if workout is None:
                raise HTTPException(status_code=404, detail="no workout with that name")
            return workout.to_storage()

        @self.app.get("/workouts/{workout_id}")
        def get_workout(workout_id: str):
            workout = self.workouts.fetch(workout_id)
            if workout is None:
                raise HTTPException(status_code=404, detail="workout not found")
            data = workout.to_storage()
            for ex_data, ex in zip(data["exercises"], workout.exercises):
                ex_data["sets"] = [_set_json(s, i) for i, s in enumerate(ex.sets)]
            return data

        @self.app.delete("/workouts/{workout_id}")
        def delete_workout(workout_id: str):
            try:
                self.workouts.delete_by_id(workout_id)
            except sqlite3.Error as e:
                raise HTTPException(status_code=500, detail=str(e))
            return {"status": "deleted"}

        @self.app.get("/exercises")
        def list_exercises():
            return self.statistics.exercises()

        @self.app.get("/exercises/last")
        def last_exercise(name: str):
            item = self.statistics.last_for_exercise(name)
            if item is None:
                raise HTTPException(status_code=404, detail="exercise not logged yet")
            return _history_json(item)

        @self.app.get("/exercises/{name:path}/history")
        def exercise_history(name: str):
            return [_history_json(i) for i in self.statistics.exercise_history(name)]

        @self.app.get("/exercises/{name:path}/prs")
        def exercise_prs(name: str):
            return self.statistics.personal_records(name)

        @self.app.get(
            "/exercises/{name:path}/progression",
            summary="Exercise progression",
            description="History, personal records and chart points for one exercise.",
        )
        def exercise_progression(name: str):
            progress = self.statistics.exercise_progress(name)
            return {
                "exercise": progress["exercise"],
                "history": [_history_json(i) for i in progress["history"]],
                "prs": progress["prs"],
                "chart": [
                    {**p, "date": p["date"].isoformat()} for p in progress["chart"]
                ],
            }

        @self.app.get("/stats/overview")
        def stats_overview(today: str = None):
            try:
                day = datetime.date.fromisoformat(today) if today else None
            except ValueError:
                raise HTTPException(
                    status_code=400, detail="today must be in YYYY-MM-DD format"
                )
            overview = self.statistics.overview(day)
            last = overview["last_workout_date"]
            overview["last_workout_date"] = last.isoformat() if last else None
            return overview

        @self.app.get("/stats/frequency")
        def stats_frequency():
            return self.statistics.frequency()

        @self.app.get("/stats/most_common")
        def stats_most_common(limit: int | None = None):
            return self.statistics.most_common(limit)

        @self.app.get("/calendar")
        def month_calendar(year: int, month: int):
            if not 1 <= month <= 12:
                raise HTTPException(status_code=400, detail="month must be 1-12")
            return self.statistics.calendar(year, month)

        @self.app.get("/prefill/exercise")
        def prefill_exercise(name: str):
            rows = prefill_exercise_sets(self.workouts.load_all(), name)
            if rows is None:
                raise HTTPException(status_code=404, detail="exercise not logged yet")
            return rows

        @self.app.get("/prefill/workout")
        def prefill_named_workout(name: str):
            form = prefill_workout(self.workouts.load_all(), name)
            if form is None:
                raise HTTPException(status_code=404, detail="no workout with that name")
            return form


def create_app() -> FastAPI:
    return WorkoutAPI().app


if __name__ == "__main__":
    import uvicorn

    from config import setup_logging

    api = WorkoutAPI()
    setup_logging(api.settings.log_level)
    uvicorn.run(api.app)
