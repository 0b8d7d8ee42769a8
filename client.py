import requests
from requests.utils import quote
from typing import Optional


class WorkoutClient:
    """Simple REST client for the workout API."""

    def __init__(self, base_url: str = "http://localhost:8000", session=None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = session or requests.Session()

    def _get(self, path: str, **params):
        resp = self.http.get(f"{self.base_url}{path}", params=params or None)
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, **params):
        resp = self.http.post(f"{self.base_url}{path}", params=params or None)
        resp.raise_for_status()
        return resp.json()

    def health(self) -> dict:
        return self._get("/health")

    def get_session(self) -> Optional[dict]:
        data = self._get("/session")
        return data["session"] if data["active"] else None

    def resume(self) -> Optional[dict]:
        data = self._post("/session/resume")
        return data["session"] if data["active"] else None

    def start_workout(self, week: int, day_type: str) -> dict:
        return self._post("/session/start", week=week, day_type=day_type)["session"]

    def update_set(
        self,
        exercise_index: int,
        set_index: int,
        weight: Optional[float] = None,
        reps: Optional[int] = None,
    ) -> dict:
        params = {}
        if weight is not None:
            params["weight"] = weight
        if reps is not None:
            params["reps"] = reps
        resp = self.http.put(
            f"{self.base_url}/session/exercises/{exercise_index}/sets/{set_index}",
            params=params,
        )
        resp.raise_for_status()
        return resp.json()

    def log_set(self, exercise_index: int, set_index: int) -> dict:
        return self._post(f"/session/exercises/{exercise_index}/sets/{set_index}/log")

    def edit_set(self, exercise_index: int, set_index: int) -> dict:
        return self._post(f"/session/exercises/{exercise_index}/sets/{set_index}/edit")

    def finish_workout(self, confirm: bool = False) -> dict:
        return self._post("/session/finish", confirm=str(confirm).lower())

    def cancel_workout(self, confirm: bool = False) -> bool:
        return self._post("/session/cancel", confirm=str(confirm).lower())["cancelled"]

    def week_completion(self, week: int) -> dict:
        return self._get(f"/completion/{week}")

    def history(self) -> dict:
        return self._get("/history")

    def progress(self, exercise: Optional[str] = None):
        if exercise is None:
            return self._get("/progress")
        return self._get(f"/progress/{quote(exercise, safe='')}")
