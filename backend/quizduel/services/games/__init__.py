"""Game domain services: room sessions, scoring, timers and notifications.

This package contains the room state machine and its helpers, imported by
the HTTP routes and socket handlers so transport concerns stay separated
from core game mechanics.
"""

from .notifier import Notifier  # noqa: F401
from .scheduler import Scheduler  # noqa: F401
from .session import RoomSessions  # noqa: F401
