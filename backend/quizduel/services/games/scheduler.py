import time
from typing import Any, Callable, List, Tuple


class Scheduler:
    """Runs deferred callbacks on Socket.IO background tasks.

    There is no cancel handle: callbacks receive the deadline they were
    armed for and compare it against the room's current one, so a
    cancelled or re-armed timer fires as a no-op.

    - No background tasks in TESTING mode (unless ENABLE_SCHEDULER_IN_TESTS);
      calls are recorded in ``pending`` instead so tests can fire them.
    """

    def __init__(self, socketio):
        self.socketio = socketio
        self.app = None
        self.enabled = True
        self.pending: List[Tuple[Callable[..., Any], tuple]] = []

    def init_app(self, app) -> None:
        self.app = app
        self.enabled = not (app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'))
        self.pending = []

    def schedule(self, delay_sec: float, fn: Callable[..., Any], *args) -> None:
        if not self.enabled:
            self.pending.append((fn, args))
            return
        self.socketio.start_background_task(self._worker, max(0.0, delay_sec), fn, args)

    def run_pending(self, name=None) -> int:
        """Fire recorded calls (optionally only those of callback ``name``)."""
        calls, self.pending = self.pending, []
        fired = 0
        for fn, args in calls:
            if name is None or fn.__name__ == name:
                with self.app.app_context():
                    fn(*args)
                fired += 1
            else:
                self.pending.append((fn, args))
        return fired

    def _worker(self, delay, fn, args):
        time.sleep(delay)
        with self.app.app_context():
            try:
                fn(*args)
            except Exception:
                self.app.logger.exception(f"[timer-error] callback={fn.__name__} args={args}")
