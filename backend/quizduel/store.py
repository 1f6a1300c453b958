import threading
from typing import Dict, List, Optional

from quizduel.errors import RoomNotFound
from quizduel.models import Player, Room, generate_room_code


class RoomStore:
    """In-memory rooms keyed by room code."""

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()
        self.code_length = 6

    def init_app(self, app) -> None:
        with self._lock:
            self._rooms = {}
        self.code_length = int(app.config.get('ROOM_CODE_LENGTH', 6))

    def create(self, host: Player, difficulty: str, round_duration_ms: int) -> Room:
        with self._lock:
            code = generate_room_code(self._rooms, length=self.code_length)
            room = Room(
                code=code,
                host_user_id=host.user_id,
                difficulty=difficulty,
                round_duration_ms=round_duration_ms,
                players=[host],
            )
            self._rooms[code] = room
        return room

    def find(self, code) -> Optional[Room]:
        if not code:
            return None
        with self._lock:
            return self._rooms.get(str(code).upper())

    def get(self, code) -> Room:
        room = self.find(code)
        if room is None:
            raise RoomNotFound()
        return room

    def delete(self, code) -> None:
        with self._lock:
            self._rooms.pop(str(code).upper(), None)

    def rooms_for(self, user_id) -> List[Room]:
        with self._lock:
            rooms = list(self._rooms.values())
        return [r for r in rooms if r.has_player(user_id)]

    def codes(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __len__(self):
        with self._lock:
            return len(self._rooms)
