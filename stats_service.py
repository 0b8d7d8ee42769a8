from __future__ import annotations
from typing import Dict, List, Optional

from db import HistoryRepository, SettingsRepository
from session_models import HistoryRecord
from tools import MathTools, WorkoutTools


class StatisticsService:
    """Compute progress statistics from completed workouts."""

    def __init__(
        self,
        history_repo: HistoryRepository,
        settings_repo: SettingsRepository | None = None,
    ) -> None:
        self.history = history_repo
        self.settings = settings_repo

    def _records(self, history: Optional[Dict[str, HistoryRecord]]) -> List[HistoryRecord]:
        if history is None:
            history = self.history.fetch_all()
        return list(history.values())

    def build_series(
        self, history: Optional[Dict[str, HistoryRecord]] = None
    ) -> Dict[str, List[dict]]:
        """Return per-exercise sessions ordered by date.

        Each session carries ``max_weight`` (heaviest set) and ``total_volume``
        (sum of weight x reps). Exercise entries without sets are skipped, so
        exercises that were never logged do not appear at all.
        """
        series: Dict[str, List[dict]] = {}
        for record in self._records(history):
            for exercise in record.exercises:
                if not exercise.sets:
                    continue
                sets = [s.model_dump() for s in exercise.sets]
                series.setdefault(exercise.name, []).append(
                    {
                        "date": record.completed_at,
                        "week": record.week,
                        "day_type": record.day_type,
                        "sets": sets,
                        "max_weight": MathTools.max_weight(s["weight"] for s in sets),
                        "total_volume": MathTools.volume(
                            (s["reps"], s["weight"]) for s in sets
                        ),
                    }
                )
        for sessions in series.values():
            sessions.sort(key=lambda s: WorkoutTools.parse_timestamp(s["date"]))
        return series

    def exercise_names(self) -> List[str]:
        return sorted(self.build_series())

    @staticmethod
    def summarize(sessions: List[dict]) -> Optional[dict]:
        if not sessions:
            return None
        first = sessions[0]
        last = sessions[-1]
        starting = first["max_weight"]
        current = last["max_weight"]
        record = max(s["max_weight"] for s in sessions)
        return {
            "starting_weight": starting,
            "current_weight": current,
            "personal_record": record,
            "gain": current - starting,
            "percent_gain": MathTools.percent_gain(starting, current),
            "is_current_pr": current == record,
            "total_sessions": len(sessions),
            "starting_date": first["date"],
            "current_date": last["date"],
        }

    def exercise_summary(
        self, exercise: str, history: Optional[Dict[str, HistoryRecord]] = None
    ) -> Optional[dict]:
        summary = self.summarize(self.build_series(history).get(exercise, []))
        if summary is not None and self.settings is not None:
            summary["unit"] = self.settings.get_text("weight_unit", "lbs")
        return summary

    def history_stats(self) -> dict:
        """Return workout counts and the first/last completion timestamps."""
        records = self._records(None)
        if not records:
            return {
                "total_workouts": 0,
                "first_workout": None,
                "last_workout": None,
                "workouts_by_type": {},
            }
        ordered = sorted(
            records, key=lambda r: WorkoutTools.parse_timestamp(r.completed_at)
        )
        by_type: Dict[str, int] = {}
        for record in records:
            by_type[record.day_type] = by_type.get(record.day_type, 0) + 1
        return {
            "total_workouts": len(records),
            "first_workout": ordered[0].completed_at,
            "last_workout": ordered[-1].completed_at,
            "workouts_by_type": by_type,
        }
