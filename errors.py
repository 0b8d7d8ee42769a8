class ProgramDataNotFound(LookupError):
    """Requested week/day is not part of the program catalog."""

    def __init__(self, week: int | None = None, day_type: str | None = None) -> None:
        self.week = week
        self.day_type = day_type
        if week is None:
            msg = "program data not available"
        elif day_type is None:
            msg = f"week {week} not found in program"
        else:
            msg = f"{day_type} not found in week {week}"
        super().__init__(msg)


class IncompleteSetInput(ValueError):
    """A set was logged without a positive weight and rep count."""

    def __init__(self, exercise_index: int, set_index: int) -> None:
        self.exercise_index = exercise_index
        self.set_index = set_index
        super().__init__("Please enter both weight and reps")


class SetLocked(ValueError):
    """Input was sent to a set that is already logged."""


class NoActiveSession(LookupError):
    """An operation required an active workout but none exists."""

    def __init__(self) -> None:
        super().__init__("no active workout")


class ConfirmationRequired(Exception):
    """Finishing a partially completed workout needs explicit confirmation."""

    def __init__(self, completed: int, total: int) -> None:
        self.completed = completed
        self.total = total
        super().__init__(
            f"You've only completed {completed} of {total} exercises. "
            "Confirm to finish anyway."
        )


class PersistenceError(RuntimeError):
    """The underlying key-value store rejected a write."""
