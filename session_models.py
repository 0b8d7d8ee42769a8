from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tools import WorkoutTools


class CamelModel(BaseModel):
    """Models persisted with camelCase keys, accessed with snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ExerciseTemplate(BaseModel):
    """One exercise of a program day as defined by the catalog."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(alias="exercise")
    technique: Optional[str] = None
    sets: Optional[str | int] = None
    reps: Optional[str | int] = None
    rir: Optional[str | int] = None
    notes: Optional[str] = None
    substitutions: List[str] = Field(default_factory=list)


class LoggedSet(CamelModel):
    set_number: int = Field(gt=0)
    weight: Optional[float] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    logged: bool = False

    def is_loggable(self) -> bool:
        return (
            self.weight is not None
            and self.reps is not None
            and self.weight > 0
            and self.reps > 0
        )


class ExerciseProgress(CamelModel):
    name: str
    technique: Optional[str] = None
    sets: Optional[str | int] = None
    reps: Optional[str | int] = None
    rir: Optional[str | int] = None
    notes: Optional[str] = None
    substitutions: List[str] = Field(default_factory=list)
    completed: bool = False
    expanded: bool = False
    logged_sets: List[LoggedSet] = Field(default_factory=list)

    def all_logged(self) -> bool:
        return all(s.logged for s in self.logged_sets)


class ActiveSession(CamelModel):
    week: int
    day_type: str
    started_at: str
    elapsed_seconds: int = Field(0, ge=0)
    exercises: List[ExerciseProgress] = Field(default_factory=list)

    @field_validator("started_at")
    @classmethod
    def _check_started_at(cls, value: str) -> str:
        WorkoutTools.parse_timestamp(value)
        return value

    def completed_count(self) -> int:
        return sum(1 for ex in self.exercises if ex.completed)


class HistorySet(CamelModel):
    weight: float = Field(ge=0)
    reps: int = Field(ge=0)


class HistoryExercise(CamelModel):
    name: str
    sets: List[HistorySet] = Field(default_factory=list)


class HistoryRecord(CamelModel):
    week: int
    day_type: str
    completed_at: str
    exercises: List[HistoryExercise] = Field(default_factory=list)

    @field_validator("completed_at")
    @classmethod
    def _check_completed_at(cls, value: str) -> str:
        WorkoutTools.parse_timestamp(value)
        return value

    def find_exercise(self, name: str) -> Optional[HistoryExercise]:
        for ex in self.exercises:
            if ex.name == name:
                return ex
        return None


class PendingSelection(CamelModel):
    week: int
    day_type: str
