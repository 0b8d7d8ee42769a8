from __future__ import annotations
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from errors import ProgramDataNotFound
from session_models import ExerciseTemplate

logger = logging.getLogger(__name__)


class ProgramCatalog:
    """Read-only access to the multi-week program definition."""

    def __init__(self, path: str = "program.json", data: dict | None = None) -> None:
        self.path = path
        self._data = data

    def _load(self) -> dict:
        if self._data is not None:
            return self._data
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load program data from %s: %s", self.path, e)
            raise ProgramDataNotFound() from e
        if not isinstance(data, dict) or not isinstance(data.get("weeks"), list):
            logger.error("Program data in %s has no weeks list", self.path)
            raise ProgramDataNotFound()
        self._data = data
        return data

    def program_info(self) -> dict:
        data = self._load()
        return {
            "name": data.get("program_name"),
            "description": data.get("program_description"),
        }

    def get_week(self, week: int) -> Optional[dict]:
        for item in self._load()["weeks"]:
            if item.get("week") == week:
                return item
        return None

    def get_day(self, week: int, day_type: str) -> Optional[dict]:
        data = self.get_week(week)
        if data is None:
            return None
        for day in data.get("days", []):
            if day.get("day_type") == day_type:
                return day
        return None

    def resolve_day(self, week: int, day_type: str) -> List[ExerciseTemplate]:
        """Return the exercise templates for ``day_type`` in ``week``."""
        day = self.get_day(week, day_type)
        if day is None:
            raise ProgramDataNotFound(week, day_type)
        try:
            return [ExerciseTemplate.model_validate(ex) for ex in day.get("exercises", [])]
        except ValidationError as e:
            logger.error("Invalid exercise in week %s %s: %s", week, day_type, e)
            raise ProgramDataNotFound(week, day_type) from e

    def all_day_types(self, week: int) -> List[str]:
        data = self.get_week(week)
        if data is None:
            return []
        return [day["day_type"] for day in data.get("days", [])]

    def all_day_types_in_program(self) -> List[str]:
        seen: dict[str, None] = {}
        for week in self._load()["weeks"]:
            for day in week.get("days", []):
                seen.setdefault(day["day_type"], None)
        return list(seen)

    def week_label(self, week: int) -> str:
        data = self.get_week(week)
        if data is None or not data.get("label"):
            return f"Week {week}"
        return data["label"]

    def all_weeks(self) -> List[dict]:
        result = []
        for week in self._load()["weeks"]:
            day_types = [day["day_type"] for day in week.get("days", [])]
            result.append(
                {
                    "week": week["week"],
                    "label": week.get("label") or f"Week {week['week']}",
                    "day_types": day_types,
                    "total_days": len(day_types),
                }
            )
        return result

    def total_weeks(self) -> int:
        return len(self._load()["weeks"])

    def search_exercises(self, query: str) -> List[dict]:
        """Return every program slot whose exercise name contains ``query``."""
        needle = query.lower()
        results = []
        for week in self._load()["weeks"]:
            for day in week.get("days", []):
                for ex in day.get("exercises", []):
                    if needle in str(ex.get("exercise", "")).lower():
                        results.append(
                            {
                                "week": week["week"],
                                "week_label": week.get("label") or f"Week {week['week']}",
                                "day_type": day["day_type"],
                                "exercise": ex,
                            }
                        )
        return results
