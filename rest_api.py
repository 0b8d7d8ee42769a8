import json
from typing import Callable, Dict, Optional
from fastapi import FastAPI, HTTPException, APIRouter, Body, Response

from config import APP_VERSION, default_db_path, default_program_path
from db import (
    KeyValueRepository,
    HistoryRepository,
    ActiveSessionRepository,
    AppStateRepository,
    SettingsRepository,
)
from errors import (
    ConfirmationRequired,
    IncompleteSetInput,
    NoActiveSession,
    PersistenceError,
    ProgramDataNotFound,
    SetLocked,
)
from program_catalog import ProgramCatalog
from session_timer import SessionTimer
from workout_service import WorkoutSessionService
from completion_service import CompletionTracker
from stats_service import StatisticsService


class WorkoutAPI:
    """Provides REST endpoints for program progress and workout logging."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = "settings.yaml",
        program_path: str | None = None,
        *,
        timer_factory: Callable = SessionTimer,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.db_path = db_path or default_db_path()
        self.settings = SettingsRepository(self.db_path, yaml_path)
        self.store = KeyValueRepository(self.db_path)
        self.history = HistoryRepository(self.store)
        self.active_sessions = ActiveSessionRepository(self.store)
        self.app_state = AppStateRepository(self.store)
        self.catalog = ProgramCatalog(program_path or default_program_path())
        self.workouts = WorkoutSessionService(
            self.catalog,
            self.history,
            self.active_sessions,
            self.settings,
            timer_factory=timer_factory,
            clock=clock,
        )
        self.completion = CompletionTracker(self.catalog, self.history, self.app_state)
        self.statistics = StatisticsService(self.history, self.settings)
        self.app = FastAPI(
            title="Min-Max Companion API",
            description="REST API for program progress and workout logging",
            version=APP_VERSION,
        )
        self._setup_routes()

    @staticmethod
    def _session_payload(session) -> dict:
        if session is None:
            return {"active": False}
        return {"active": True, "session": session.to_json_dict()}

    def _call(self, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ProgramDataNotFound, NoActiveSession, IndexError) as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ConfirmationRequired as e:
            raise HTTPException(
                status_code=409,
                detail={"message": str(e), "completed": e.completed, "total": e.total},
            )
        except (IncompleteSetInput, SetLocked, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _setup_routes(self) -> None:
        session_router = APIRouter(prefix="/session", tags=["Session"])
        program_router = APIRouter(prefix="/program", tags=["Program"])
        history_router = APIRouter(prefix="/history", tags=["History"])
        progress_router = APIRouter(prefix="/progress", tags=["Progress"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.store.keys()
                return {"status": "ok", "version": APP_VERSION}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @session_router.get("")
        def get_session():
            return self._session_payload(self.workouts.session())

        @session_router.post("/resume")
        def resume_session(week: int | None = None, day_type: str | None = None):
            pending = None
            if week is not None and day_type is not None:
                pending = {"week": week, "day_type": day_type}
            return self._session_payload(
                self._call(self.workouts.resume_or_start, pending)
            )

        @session_router.post("/start")
        def start_session(week: int, day_type: str):
            return self._session_payload(
                self._call(self.workouts.start_new_workout, week, day_type)
            )

        @session_router.post("/select")
        def select_workout(week: int, day_type: str):
            selection = self._call(self.workouts.select_workout, week, day_type)
            return selection.to_json_dict()

        @session_router.put("/exercises/{exercise_index}/sets/{set_index}")
        def update_set(
            exercise_index: int,
            set_index: int,
            weight: str | None = None,
            reps: str | None = None,
        ):
            values = {}
            if weight is not None:
                values["weight"] = weight
            if reps is not None:
                values["reps"] = reps
            logged = self._call(
                self.workouts.update_set, exercise_index, set_index, **values
            )
            return logged.to_json_dict()

        @session_router.post("/exercises/{exercise_index}/sets/{set_index}/adjust")
        def adjust_set(exercise_index: int, set_index: int, field: str, direction: int = 1):
            if field == "weight":
                func = self.workouts.adjust_weight
            elif field == "reps":
                func = self.workouts.adjust_reps
            else:
                raise HTTPException(status_code=400, detail="field must be weight or reps")
            step = 1 if direction >= 0 else -1
            return self._call(func, exercise_index, set_index, step).to_json_dict()

        @session_router.post("/exercises/{exercise_index}/sets/{set_index}/log")
        def log_set(exercise_index: int, set_index: int):
            logged = self._call(self.workouts.log_set, exercise_index, set_index)
            return logged.to_json_dict()

        @session_router.post("/exercises/{exercise_index}/sets/{set_index}/edit")
        def edit_set(exercise_index: int, set_index: int):
            logged = self._call(self.workouts.edit_set, exercise_index, set_index)
            return logged.to_json_dict()

        @session_router.post("/exercises/{exercise_index}/toggle")
        def toggle_exercise(exercise_index: int):
            expanded = self._call(self.workouts.toggle_exercise_expanded, exercise_index)
            return {"expanded": expanded}

        @session_router.post("/tick")
        def tick():
            elapsed = self.workouts.tick()
            if elapsed is None:
                raise HTTPException(status_code=404, detail="no active workout")
            return {"elapsed_seconds": elapsed}

        @session_router.get("/finish")
        def finish_summary():
            return self._call(self.workouts.finish_summary)

        @session_router.post("/finish")
        def finish_workout(confirm: bool = False):
            return self._call(self.workouts.finish_workout, confirm)

        @session_router.post("/cancel")
        def cancel_workout(confirm: bool = False):
            cancelled = self._call(self.workouts.cancel_workout, confirm)
            return {"cancelled": cancelled}

        @program_router.get("")
        def program_info():
            info = self._call(self.catalog.program_info)
            info["total_weeks"] = self.catalog.total_weeks()
            return info

        @program_router.get("/weeks")
        def list_weeks():
            return self._call(self.catalog.all_weeks)

        @program_router.get("/weeks/{week}/days/{day_type:path}")
        def get_day(week: int, day_type: str):
            templates = self._call(self.catalog.resolve_day, week, day_type)
            return [t.model_dump() for t in templates]

        @program_router.get("/search")
        def search_exercises(query: str):
            return self._call(self.catalog.search_exercises, query)

        @program_router.get("/current_week")
        def get_current_week():
            return {"week": self.completion.current_week()}

        @program_router.put("/current_week")
        def set_current_week(week: int):
            return {"week": self._call(self.completion.set_current_week, week)}

        @program_router.get("/timeline")
        def timeline():
            return self._call(self.completion.week_timeline)

        @self.app.get("/completion/{week}")
        def week_completion(week: int):
            return self._call(self.completion.week_completion_stats, week)

        @self.app.get("/completion/{week}/{day_type:path}")
        def day_completion(week: int, day_type: str):
            return self.completion.is_completed(week, day_type)

        @history_router.get("")
        def list_history():
            return {
                key: record.to_json_dict()
                for key, record in self.history.fetch_sorted(descending=True)
            }

        @history_router.get("/stats")
        def history_stats():
            return self.statistics.history_stats()

        @history_router.get("/export")
        def export_history():
            return Response(self.history.export_json(), media_type="application/json")

        @history_router.post("/import")
        def import_history(payload: Dict = Body(...), replace: bool = False):
            count = self._call(self.history.import_json, json.dumps(payload), replace)
            return {"records": count}

        @history_router.delete("")
        def clear_history(confirm: bool = False):
            if not confirm:
                return {"cleared": False}
            self._call(self.history.clear_all)
            return {"cleared": True}

        @progress_router.get("")
        def list_progress():
            return self.statistics.build_series()

        @progress_router.get("/{exercise:path}")
        def exercise_progress(exercise: str):
            series = self.statistics.build_series()
            if exercise not in series:
                raise HTTPException(status_code=404, detail="no progress data")
            return {
                "exercise": exercise,
                "sessions": series[exercise],
                "summary": self.statistics.exercise_summary(exercise),
            }

        @self.app.get("/settings")
        def get_settings():
            return self.settings.all_settings()

        @self.app.put("/settings/{key}")
        def update_setting(key: str, value: str):
            self._call(self.settings.set_text, key, value)
            return {"status": "updated"}

        self.app.include_router(session_router)
        self.app.include_router(program_router)
        self.app.include_router(history_router)
        self.app.include_router(progress_router)


api = WorkoutAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
