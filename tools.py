import re
import math
import datetime
from typing import Iterable, Tuple


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    @staticmethod
    def volume(sets: Iterable[Tuple[int, float]]) -> float:
        """Return total training volume for ``(reps, weight)`` pairs."""
        return float(sum(int(r) * float(w) for r, w in sets))

    @staticmethod
    def max_weight(weights: Iterable[float]) -> float:
        values = [float(w or 0) for w in weights]
        return max(values) if values else 0.0

    @staticmethod
    def percent_gain(start: float, current: float, digits: int = 1) -> float:
        """Return the relative change from ``start`` in percent, 0 when ``start`` is 0."""
        if start <= 0:
            return 0.0
        return round((current - start) / start * 100, digits)


class WorkoutTools:
    """Helpers shared by the workout session and history code."""

    _LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
    _WHITESPACE = re.compile(r"\s+")

    @staticmethod
    def now_iso() -> str:
        return datetime.datetime.now(datetime.timezone.utc).isoformat()

    @staticmethod
    def parse_timestamp(ts: str) -> datetime.datetime:
        """Return ``ts`` as timezone-aware datetime in UTC."""
        if ts.endswith("Z"):
            ts = ts[:-1] + "+00:00"
        dt = datetime.datetime.fromisoformat(ts)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=datetime.timezone.utc)
        return dt.astimezone(datetime.timezone.utc)

    @classmethod
    def parse_set_count(cls, value, default: int = 2) -> int:
        """Return the leading integer of a target-sets field such as ``"2-3"``."""
        if value is None:
            return default
        match = cls._LEADING_INT.match(str(value))
        if not match:
            return default
        count = int(match.group(1))
        return count if count > 0 else default

    @classmethod
    def record_key(cls, week: int, day_type: str, completed_at: str) -> str:
        """Build the history key ``week-<n>-<daytype>-<YYYY-MM-DD>``."""
        day = cls._WHITESPACE.sub("", day_type.lower())
        date = cls.parse_timestamp(completed_at).date().isoformat()
        return f"week-{week}-{day}-{date}"

    @staticmethod
    def parse_weight(value) -> float | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            weight = float(value)
        except (TypeError, ValueError):
            raise ValueError("weight must be a number")
        if not math.isfinite(weight):
            raise ValueError("weight must be a number")
        if weight < 0:
            raise ValueError("weight must be non-negative")
        return weight

    @staticmethod
    def parse_reps(value) -> int | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError("reps must be a whole number")
        if not math.isfinite(number) or number != int(number):
            raise ValueError("reps must be a whole number")
        if number < 0:
            raise ValueError("reps must be non-negative")
        return int(number)

    @staticmethod
    def format_time(seconds: int) -> str:
        """Format seconds as ``H:MM:SS`` or ``M:SS``."""
        hrs, rem = divmod(int(seconds), 3600)
        mins, secs = divmod(rem, 60)
        if hrs > 0:
            return f"{hrs}:{mins:02d}:{secs:02d}"
        return f"{mins}:{secs:02d}"


class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.20462

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb / WeightConverter.KG_TO_LB, 2)
