from __future__ import annotations
import calendar
import datetime
from collections import Counter
from typing import Dict, Iterable, List, Optional

from db import WorkoutRepository
from models import ExerciseEntry, SetEntry, WorkoutRecord


def _clean(name: Optional[str]) -> str:
    return (name or "").strip()


def names_match(name: Optional[str], target: Optional[str], case_sensitive: bool = True) -> bool:
    """Compare two names after trimming, optionally ignoring case."""
    left = _clean(name)
    right = _clean(target)
    if not case_sensitive:
        return left.lower() == right.lower()
    return left == right


def _entries(workouts: Iterable[WorkoutRecord]):
    for workout in workouts:
        for exercise in workout.exercises or []:
            yield workout, exercise


def _history_item(workout: WorkoutRecord, exercise: ExerciseEntry) -> Dict:
    return {
        "date": workout.date,
        "workout_id": workout.id,
        "exercise": exercise,
        "sets": exercise.sets,
    }


def _newest_first(items: List, key) -> List:
    # sorted() with reverse=True keeps equal dates in their original order
    return sorted(items, key=key, reverse=True)


def enumerate_exercises(workouts: Iterable[WorkoutRecord]) -> List[str]:
    """Return every distinct trimmed exercise name in ascending order."""
    names = {_clean(ex.name) for _w, ex in _entries(workouts)}
    names.discard("")
    return sorted(names)


def exercise_history(workouts: Iterable[WorkoutRecord], exercise_name: str) -> List[Dict]:
    """Return all sessions of ``exercise_name`` newest first.

    Matching is exact on the trimmed name, so ``"Bench"`` and ``"bench"``
    have separate histories.
    """
    history = [
        _history_item(w, ex)
        for w, ex in _entries(workouts)
        if names_match(ex.name, exercise_name) and ex.sets
    ]
    return _newest_first(history, key=lambda item: item["date"])


def last_workout_for_exercise(
    workouts: Iterable[WorkoutRecord], exercise_name: Optional[str]
) -> Optional[Dict]:
    """Return the most recent session of ``exercise_name`` ignoring case."""
    if not _clean(exercise_name):
        return None
    history = [
        _history_item(w, ex)
        for w, ex in _entries(workouts)
        if names_match(ex.name, exercise_name, case_sensitive=False) and ex.sets
    ]
    history = _newest_first(history, key=lambda item: item["date"])
    return history[0] if history else None


def last_workout_by_name(
    workouts: Iterable[WorkoutRecord], workout_name: Optional[str]
) -> Optional[WorkoutRecord]:
    """Return the most recent non-empty workout called ``workout_name``."""
    if not _clean(workout_name):
        return None
    matches = [
        w
        for w in workouts
        if names_match(w.name, workout_name, case_sensitive=False)
        and w.exercises
    ]
    matches = _newest_first(matches, key=lambda w: w.date)
    return matches[0] if matches else None


def calculate_pr(workouts: Iterable[WorkoutRecord], exercise_name: str) -> Dict[str, Optional[float]]:
    """Return the best weight, reps and single-set volume for an exercise.

    Each maximum is tracked on its own, so they may come from different sets.
    Metrics that were never above zero are reported as ``None``.
    """
    max_weight = 0.0
    max_reps = 0
    max_volume = 0.0
    for _w, ex in _entries(workouts):
        if not names_match(ex.name, exercise_name):
            continue
        for s in ex.sets or []:
            weight = s.weight or 0
            reps = s.reps or 0
            volume = weight * reps
            if weight > max_weight:
                max_weight = weight
            if reps > max_reps:
                max_reps = reps
            if volume > max_volume:
                max_volume = volume
    return {
        "max_weight": max_weight or None,
        "max_reps": max_reps or None,
        "max_volume": max_volume or None,
    }


def total_workouts(workouts: List[WorkoutRecord]) -> int:
    return len(workouts)


def training_frequency(workouts: List[WorkoutRecord]) -> Dict[str, float]:
    """Average sessions per week and per (30 day) month over the logged span."""
    if not workouts:
        return {"per_week": 0, "per_month": 0}
    dates = sorted(w.date for w in workouts)
    days = max(1, (dates[-1] - dates[0]).days)
    weeks = days / 7
    months = days / 30
    count = len(workouts)
    return {
        "per_week": round(count / weeks, 1) if weeks > 0 else count,
        "per_month": round(count / months, 1) if months > 0 else count,
    }


def most_common_exercises(workouts: Iterable[WorkoutRecord], limit: int = 5) -> List[Dict]:
    """Rank exercises by the number of sessions they appear in.

    Ties keep the order in which the names were first seen.
    """
    counts: Counter[str] = Counter()
    for _w, ex in _entries(workouts):
        name = _clean(ex.name)
        if name:
            counts[name] += 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "count": count} for name, count in ranked[: max(limit, 0)]]


def sorted_workouts(workouts: Iterable[WorkoutRecord]) -> List[WorkoutRecord]:
    return _newest_first(list(workouts), key=lambda w: w.date)


def last_workout_date(workouts: Iterable[WorkoutRecord]) -> Optional[datetime.date]:
    return max((w.date for w in workouts), default=None)


def workouts_in_month(workouts: Iterable[WorkoutRecord], year: int, month: int) -> int:
    return sum(1 for w in workouts if w.date.year == year and w.date.month == month)


def workout_days(workouts: Iterable[WorkoutRecord], year: int, month: int) -> List[int]:
    """Days of ``month`` with at least one logged workout."""
    return sorted(
        {w.date.day for w in workouts if w.date.year == year and w.date.month == month}
    )


def month_calendar(workouts: Iterable[WorkoutRecord], year: int, month: int) -> List[Optional[Dict]]:
    """Monday-first month grid padded with ``None`` before the first day."""
    logged = set(workout_days(workouts, year, month))
    offset, days_in_month = calendar.monthrange(year, month)
    cells: List[Optional[Dict]] = [None] * offset
    for day in range(1, days_in_month + 1):
        cells.append({"day": day, "has_workout": day in logged})
    return cells


def progression_chart(history: List[Dict]) -> List[Dict]:
    """Max and average weight per session, oldest first."""
    points = []
    for item in history:
        weights = [s.weight for s in item["sets"]]
        if not weights:
            continue
        points.append(
            {
                "date": item["date"],
                "max_weight": max(weights),
                "avg_weight": round(sum(weights) / len(weights), 1),
            }
        )
    points.reverse()
    return points


def display_set_number(set_entry: SetEntry, index: int) -> int:
    return set_entry.set_number or index + 1


class StatisticsService:
    """Compute workout statistics from the workout store."""

    def __init__(self, workout_repo: WorkoutRepository, most_common_limit: int = 5) -> None:
        self.workouts = workout_repo
        self.most_common_limit = most_common_limit

    def _all(self) -> List[WorkoutRecord]:
        return self.workouts.load_all()

    def history(self) -> List[WorkoutRecord]:
        return sorted_workouts(self._all())

    def exercises(self) -> List[str]:
        return enumerate_exercises(self._all())

    def exercise_history(self, exercise: str) -> List[Dict]:
        return exercise_history(self._all(), exercise)

    def personal_records(self, exercise: str) -> Dict[str, Optional[float]]:
        return calculate_pr(self._all(), exercise)

    def exercise_progress(self, exercise: str) -> Dict:
        data = self._all()
        history = exercise_history(data, exercise)
        return {
            "exercise": _clean(exercise),
            "history": history,
            "prs": calculate_pr(data, exercise),
            "chart": progression_chart(history),
        }

    def last_for_exercise(self, exercise: str) -> Optional[Dict]:
        return last_workout_for_exercise(self._all(), exercise)

    def last_by_name(self, name: str) -> Optional[WorkoutRecord]:
        return last_workout_by_name(self._all(), name)

    def frequency(self) -> Dict[str, float]:
        return training_frequency(self._all())

    def most_common(self, limit: int | None = None) -> List[Dict]:
        if limit is None:
            limit = self.most_common_limit
        return most_common_exercises(self._all(), limit)

    def calendar(self, year: int, month: int) -> List[Optional[Dict]]:
        return month_calendar(self._all(), year, month)

    def overview(self, today: datetime.date | None = None) -> Dict:
        """Dashboard figures: totals, last session, this month and frequency."""
        today = today or datetime.date.today()
        data = self._all()
        return {
            "total_workouts": total_workouts(data),
            "last_workout_date": last_workout_date(data),
            "current_month_workouts": workouts_in_month(data, today.year, today.month),
            "frequency": training_frequency(data),
        }
