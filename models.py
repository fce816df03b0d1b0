from __future__ import annotations
import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SetEntry(BaseModel):
    """One completed set of an exercise."""

    model_config = ConfigDict(populate_by_name=True)

    set_number: Optional[int] = Field(default=None, alias="setNumber")
    weight: float
    reps: int


class ExerciseEntry(BaseModel):
    """One exercise performed within a workout."""

    name: str = ""
    sets: List[SetEntry] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _none_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("sets", mode="before")
    @classmethod
    def _none_sets(cls, value: Any) -> Any:
        return [] if value is None else value


class WorkoutRecord(BaseModel):
    """A logged training session."""

    id: Optional[str] = None
    date: datetime.date
    name: Optional[str] = None
    exercises: List[ExerciseEntry] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        # stored timestamps only carry day granularity
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    @field_validator("exercises", mode="before")
    @classmethod
    def _none_exercises(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_storage(self) -> dict:
        """Return the JSON-ready form, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def parse_workouts(items: list) -> List[WorkoutRecord]:
    return [WorkoutRecord.model_validate(item) for item in items]


def serialize_workouts(workouts: List[WorkoutRecord]) -> dict:
    """Wrap ``workouts`` in the container mapping used for persistence."""
    return {"workouts": [w.to_storage() for w in workouts]}
