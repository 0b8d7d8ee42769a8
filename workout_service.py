from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

from db import ActiveSessionRepository, HistoryRepository, SettingsRepository
from errors import (
    ConfirmationRequired,
    IncompleteSetInput,
    NoActiveSession,
    PersistenceError,
    ProgramDataNotFound,
    SetLocked,
)
from program_catalog import ProgramCatalog
from session_models import (
    ActiveSession,
    ExerciseProgress,
    HistoryExercise,
    HistoryRecord,
    HistorySet,
    LoggedSet,
    PendingSelection,
)
from session_timer import SessionTimer
from tools import WorkoutTools

logger = logging.getLogger(__name__)

_UNSET = object()


class WorkoutSessionService:
    """Own the in-progress workout: set logging, elapsed timer, finish and cancel.

    At most one :class:`ActiveSession` exists per service. Every mutation runs
    under the service lock and is written through to ``session_repo`` before the
    call returns, so a new service on the same store can resume it exactly.
    """

    def __init__(
        self,
        catalog: ProgramCatalog,
        history_repo: HistoryRepository,
        session_repo: ActiveSessionRepository,
        settings_repo: SettingsRepository | None = None,
        timer_factory: Callable = SessionTimer,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.catalog = catalog
        self.history = history_repo
        self.sessions = session_repo
        self.settings = settings_repo
        self.timer_factory = timer_factory
        self.clock = clock or WorkoutTools.now_iso
        self._session: ActiveSession | None = None
        self._timer = None
        self._lock = threading.RLock()

    # read accessors

    def session(self) -> Optional[ActiveSession]:
        """Return a copy of the active session, or ``None`` when idle."""
        with self._lock:
            if self._session is None:
                return None
            return self._session.model_copy(deep=True)

    @property
    def timer_running(self) -> bool:
        return self._timer is not None

    def finish_summary(self) -> dict:
        with self._lock:
            session = self._require()
            completed = session.completed_count()
            total = len(session.exercises)
            return {
                "completed": completed,
                "total": total,
                "requires_confirmation": completed < total,
            }

    # lifecycle

    def select_workout(self, week: int, day_type: str) -> PendingSelection:
        """Remember ``week``/``day_type`` as the workout to start on next resume."""
        self.catalog.resolve_day(week, day_type)
        selection = PendingSelection(week=week, day_type=day_type)
        self.sessions.save_pending(selection)
        return selection

    def resume_or_start(
        self, pending_selection: PendingSelection | dict | None = None
    ) -> Optional[ActiveSession]:
        with self._lock:
            if self._session is None:
                self._session = self.sessions.load()
            if self._session is not None:
                if self._timer is None:
                    self._start_timer()
                return self.session()

            if isinstance(pending_selection, dict):
                pending_selection = PendingSelection.model_validate(pending_selection)
            selection = pending_selection
            if selection is None:
                selection = self.sessions.load_pending()
            if selection is None:
                return None
            try:
                return self.start_new_workout(selection.week, selection.day_type)
            except ProgramDataNotFound as e:
                logger.error("Day data not found: %s", e)
                return None
            finally:
                self.sessions.clear_pending()

    def start_new_workout(self, week: int, day_type: str) -> ActiveSession:
        with self._lock:
            templates = self.catalog.resolve_day(week, day_type)
            default_sets = (
                self.settings.get_int("default_target_sets", 2) if self.settings else 2
            )
            exercises = []
            for template in templates:
                last = self.history.last_performance(template.name) or []
                target_sets = WorkoutTools.parse_set_count(template.sets, default_sets)
                logged_sets = []
                for idx in range(target_sets):
                    prev = last[idx] if idx < len(last) else None
                    logged_sets.append(
                        LoggedSet(
                            set_number=idx + 1,
                            weight=prev["weight"] if prev else None,
                            reps=prev["reps"] if prev else None,
                        )
                    )
                exercises.append(
                    ExerciseProgress(
                        name=template.name,
                        technique=template.technique,
                        sets=template.sets,
                        reps=template.reps,
                        rir=template.rir,
                        notes=template.notes,
                        substitutions=list(template.substitutions),
                        logged_sets=logged_sets,
                    )
                )
            self._session = ActiveSession(
                week=week,
                day_type=day_type,
                started_at=self.clock(),
                elapsed_seconds=0,
                exercises=exercises,
            )
            self._persist()
            self._start_timer()
            return self.session()

    def finish_workout(self, confirm: bool = False) -> dict:
        """Move the session into history and clear it.

        Raises :class:`ConfirmationRequired` when some exercises are not
        completed and ``confirm`` is false. If the history write fails the
        session is kept and the timer keeps running.
        """
        with self._lock:
            session = self._require()
            completed = session.completed_count()
            total = len(session.exercises)
            if completed < total and not confirm:
                raise ConfirmationRequired(completed, total)

            self._stop_timer()
            record = HistoryRecord(
                week=session.week,
                day_type=session.day_type,
                completed_at=self.clock(),
                exercises=[
                    HistoryExercise(
                        name=ex.name,
                        sets=[
                            HistorySet(weight=float(s.weight), reps=int(s.reps))
                            for s in ex.logged_sets
                            if s.logged and s.weight is not None and s.reps is not None
                        ],
                    )
                    for ex in session.exercises
                ],
            )
            try:
                key = self.history.save(record)
            except PersistenceError:
                logger.error("Failed to save workout; keeping active session")
                self._start_timer()
                raise

            self._session = None
            try:
                self.sessions.clear()
            except PersistenceError as e:
                logger.error("Failed to clear workout state: %s", e)
            return {
                "completed": completed,
                "total": total,
                "elapsed_seconds": session.elapsed_seconds,
                "duration": WorkoutTools.format_time(session.elapsed_seconds),
                "key": key,
            }

    def cancel_workout(self, confirm: bool = False) -> bool:
        """Discard the session without writing history. Unconfirmed calls do nothing."""
        with self._lock:
            self._require()
            if not confirm:
                return False
            self._stop_timer()
            try:
                self.sessions.clear()
            except PersistenceError:
                self._start_timer()
                raise
            self._session = None
            return True

    # set logging

    def update_set(self, exercise_index: int, set_index: int, weight=_UNSET, reps=_UNSET) -> LoggedSet:
        """Record typed input for an unlogged set. ``None`` or ``""`` clears a value."""
        with self._lock:
            logged_set = self._set(exercise_index, set_index)
            if logged_set.logged:
                raise SetLocked("set is logged; edit it before changing values")
            new_weight = logged_set.weight if weight is _UNSET else WorkoutTools.parse_weight(weight)
            new_reps = logged_set.reps if reps is _UNSET else WorkoutTools.parse_reps(reps)
            logged_set.weight = new_weight
            logged_set.reps = new_reps
            self._persist()
            return logged_set.model_copy()

    def adjust_weight(self, exercise_index: int, set_index: int, direction: int) -> LoggedSet:
        step = self.settings.get_float("weight_increment", 5.0) if self.settings else 5.0
        with self._lock:
            current = self._set(exercise_index, set_index).weight or 0.0
            return self.update_set(
                exercise_index, set_index, weight=max(0.0, current + direction * step)
            )

    def adjust_reps(self, exercise_index: int, set_index: int, direction: int) -> LoggedSet:
        step = self.settings.get_int("rep_increment", 1) if self.settings else 1
        with self._lock:
            current = self._set(exercise_index, set_index).reps or 0
            return self.update_set(
                exercise_index, set_index, reps=max(0, current + direction * step)
            )

    def log_set(self, exercise_index: int, set_index: int) -> LoggedSet:
        with self._lock:
            exercise = self._exercise(exercise_index)
            logged_set = self._set(exercise_index, set_index)
            if not logged_set.is_loggable():
                raise IncompleteSetInput(exercise_index, set_index)
            logged_set.logged = True
            exercise.completed = exercise.all_logged()
            self._persist()
            return logged_set.model_copy()

    def edit_set(self, exercise_index: int, set_index: int) -> LoggedSet:
        with self._lock:
            exercise = self._exercise(exercise_index)
            logged_set = self._set(exercise_index, set_index)
            logged_set.logged = False
            exercise.completed = False
            self._persist()
            return logged_set.model_copy()

    def toggle_exercise_expanded(self, exercise_index: int) -> bool:
        with self._lock:
            exercise = self._exercise(exercise_index)
            exercise.expanded = not exercise.expanded
            self._persist()
            return exercise.expanded

    def tick(self) -> Optional[int]:
        """Advance the elapsed counter by one second. No-op without a session."""
        with self._lock:
            if self._session is None:
                return None
            self._session.elapsed_seconds += 1
            self._persist()
            return self._session.elapsed_seconds

    # internals

    def _require(self) -> ActiveSession:
        if self._session is None:
            raise NoActiveSession()
        return self._session

    def _exercise(self, exercise_index: int) -> ExerciseProgress:
        exercises = self._require().exercises
        if not 0 <= exercise_index < len(exercises):
            raise IndexError(f"exercise index {exercise_index} out of range")
        return exercises[exercise_index]

    def _set(self, exercise_index: int, set_index: int) -> LoggedSet:
        sets = self._exercise(exercise_index).logged_sets
        if not 0 <= set_index < len(sets):
            raise IndexError(f"set index {set_index} out of range")
        return sets[set_index]

    def _persist(self) -> None:
        try:
            self.sessions.save(self._session)
        except PersistenceError as e:
            logger.error("Failed to save workout state: %s", e)

    def _start_timer(self) -> None:
        self._stop_timer()
        interval = self.settings.get_float("timer_interval", 1.0) if self.settings else 1.0
        timer = self.timer_factory(lambda: self._on_timer(timer), interval)
        self._timer = timer
        timer.start()

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, timer) -> None:
        with self._lock:
            if timer is not self._timer:
                return
            self.tick()
