from __future__ import annotations
import math
from typing import List

from db import AppStateRepository, HistoryRepository
from program_catalog import ProgramCatalog


class CompletionTracker:
    """Answer which program days have been completed, from workout history."""

    def __init__(
        self,
        catalog: ProgramCatalog,
        history_repo: HistoryRepository,
        state_repo: AppStateRepository | None = None,
    ) -> None:
        self.catalog = catalog
        self.history = history_repo
        self.state = state_repo

    def is_completed(self, week: int, day_type: str) -> dict:
        for key, record in self.history.fetch_all().items():
            if record.week == week and record.day_type == day_type:
                return {
                    "completed": True,
                    "completed_at": record.completed_at,
                    "key": key,
                }
        return {"completed": False}

    def week_completion_stats(self, week: int) -> dict:
        day_types = self.catalog.all_day_types(week)
        total = len(day_types)
        completed = sum(
            1 for day in day_types if self.is_completed(week, day)["completed"]
        )
        # half-up rounding, so 1 of 8 days reads as 13%
        percentage = math.floor(completed / total * 100 + 0.5) if total > 0 else 0
        return {"total": total, "completed": completed, "percentage": percentage}

    def current_week(self) -> int:
        if self.state is None:
            return 1
        return self.state.get_current_week()

    def set_current_week(self, week: int) -> int:
        if self.state is None:
            raise ValueError("state repository not configured")
        self.state.set_current_week(week)
        return week

    def week_timeline(self) -> List[dict]:
        """Return one status entry per program week for the timeline view."""
        current = self.current_week()
        timeline = []
        for week in self.catalog.all_weeks():
            number = week["week"]
            stats = self.week_completion_stats(number)
            timeline.append(
                {
                    "week": number,
                    "label": week["label"],
                    "days": [
                        {"day_type": day, **self.is_completed(number, day)}
                        for day in week["day_types"]
                    ],
                    "stats": stats,
                    "is_complete": stats["total"] > 0
                    and stats["completed"] == stats["total"],
                    "is_current": number == current,
                    "is_future": number > current,
                }
            )
        return timeline
