import threading
from typing import Callable


class SessionTimer(threading.Thread):
    """Background thread calling ``callback`` every ``interval`` seconds until cancelled."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0) -> None:
        super().__init__(daemon=True)
        self.callback = callback
        self.interval = interval
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            self.callback()

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()


class ManualTimer:
    """Timer that only fires when told to, for tests and externally driven loops."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0) -> None:
        self.callback = callback
        self.interval = interval
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self, times: int = 1) -> None:
        """Call the callback ``times`` times, even after :meth:`cancel`."""
        for _ in range(times):
            self.callback()
