from __future__ import annotations
import datetime
import math
import re
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from models import ExerciseEntry, SetEntry, WorkoutRecord
from stats_service import last_workout_by_name, last_workout_for_exercise

FormValue = Union[str, int, float, None]

_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"\s*[+-]?\d+")


class SetInput(BaseModel):
    set_number: FormValue = ""
    weight: FormValue = ""
    reps: FormValue = ""


class ExerciseInput(BaseModel):
    name: str = ""
    sets: List[SetInput] = Field(default_factory=lambda: [SetInput()])


class WorkoutSubmission(BaseModel):
    """Raw values of the logging form."""

    date: Optional[Union[datetime.date, str]] = None
    name: str = ""
    exercises: List[ExerciseInput] = Field(default_factory=lambda: [ExerciseInput()])
    notes: str = ""


class WorkoutValidationError(ValueError):
    """Raised when a submission cannot be saved."""

    def __init__(self, errors: Dict[str, str]) -> None:
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


def parse_number(value: FormValue) -> Optional[float]:
    """Parse the leading number of ``value`` the way a form field does."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        match = _FLOAT_PREFIX.match(value)
        if not match:
            return None
        number = float(match.group())
    return number if math.isfinite(number) else None


def parse_integer(value: FormValue) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _INT_PREFIX.match(value)
    return int(match.group()) if match else None


def _blank(value: FormValue) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _valid_set(row: SetInput) -> Optional[SetEntry]:
    if _blank(row.weight) or _blank(row.reps):
        return None
    weight = parse_number(row.weight)
    reps = parse_integer(row.reps)
    if weight is None or reps is None or not (weight > 0 and reps > 0):
        return None
    set_number = None
    if not _blank(row.set_number):
        number = parse_integer(row.set_number)
        if number is not None and number > 0:
            set_number = number
    return SetEntry(set_number=set_number, weight=weight, reps=reps)


def _parse_date(value) -> Optional[datetime.date]:
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(value.strip().split("T", 1)[0])


def assemble_workout(submission: WorkoutSubmission) -> WorkoutRecord:
    """Build a storable workout from form values.

    Unnamed exercises and incomplete sets are dropped. Raises
    :class:`WorkoutValidationError` when the date is missing or no exercise
    keeps at least one valid set.
    """
    errors: Dict[str, str] = {}
    workout_date = None
    if _blank(submission.date):
        errors["date"] = "Date is required"
    else:
        try:
            workout_date = _parse_date(submission.date)
        except ValueError:
            errors["date"] = "Date must be in YYYY-MM-DD format"

    exercises: List[ExerciseEntry] = []
    for ex in submission.exercises:
        name = ex.name.strip()
        if not name:
            continue
        sets = [s for s in (_valid_set(row) for row in ex.sets) if s is not None]
        if sets:
            exercises.append(ExerciseEntry(name=name, sets=sets))
    if not exercises:
        errors["exercises"] = "Log at least one exercise with one set (weight and reps)"

    if errors:
        raise WorkoutValidationError(errors)
    return WorkoutRecord(
        date=workout_date,
        name=submission.name.strip() or None,
        exercises=exercises,
        notes=submission.notes.strip(),
    )


def _format_weight(weight: float) -> str:
    return str(int(weight)) if float(weight).is_integer() else str(weight)


def _set_rows(sets: Iterable[SetEntry]) -> List[Dict[str, str]]:
    return [
        {
            "set_number": str(s.set_number) if s.set_number else "",
            "weight": _format_weight(s.weight),
            "reps": str(s.reps),
        }
        for s in sets
    ]


def prefill_exercise_sets(
    workouts: Iterable[WorkoutRecord], exercise_name: str
) -> Optional[List[Dict[str, str]]]:
    """Form rows copied from the last session of ``exercise_name``."""
    last = last_workout_for_exercise(workouts, exercise_name)
    if last is None or not last["sets"]:
        return None
    return _set_rows(last["sets"])


def prefill_workout(workouts: Iterable[WorkoutRecord], workout_name: str) -> Optional[Dict]:
    """Form state copied from the last workout called ``workout_name``."""
    last = last_workout_by_name(workouts, workout_name)
    if last is None:
        return None
    return {
        "name": last.name,
        "exercises": [
            {"name": ex.name, "sets": _set_rows(ex.sets)} for ex in last.exercises
        ],
        "notes": last.notes or "",
    }
