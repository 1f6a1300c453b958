"""Push-channel projection of room state.

``snapshot`` is a pure function of the Room. Correct answers are never
part of it while a game is playing; a finished room reveals every question
with its answers for the results view.
"""
from typing import Any, Dict, Optional

from quizduel.models import FINISHED, Room

NAMESPACE = '/ws'


def room_channel(code: str) -> str:
    return f"room:{code}"


def _ms(ts: Optional[float]) -> Optional[int]:
    return int(ts * 1000) if ts is not None else None


def snapshot(room: Room) -> Dict[str, Any]:
    question = room.current_question
    data = {
        'roomCode': room.code,
        'hostUserId': room.host_user_id,
        'status': room.status,
        'difficulty': room.difficulty,
        'currentRoundNumber': room.current_round_number,
        'maxRounds': room.max_rounds,
        'roundStartTimestamp': _ms(room.round_started_at),
        'roundDurationMs': room.round_duration_ms,
        'roundDeadline': (
            _ms(room.round_started_at + room.round_duration_ms / 1000.0)
            if room.round_started_at is not None else None
        ),
        'players': [p.to_dict() for p in room.players],
        'currentQuestion': question.to_dict() if question else None,
    }
    if room.status == FINISHED and room.questions:
        data['results'] = [q.to_dict(reveal=True) for q in room.questions]
    return data


class Notifier:
    def __init__(self, socketio, users):
        self.socketio = socketio
        self.users = users
        self.logger = None

    def init_app(self, app) -> None:
        self.logger = app.logger

    def broadcast(self, room: Room) -> None:
        self._emit('roomUpdate', snapshot(room), room_channel(room.code))

    def room_deleted(self, code: str, reason: str) -> None:
        self._emit('roomDeleted', {'roomCode': code, 'reason': reason}, room_channel(code))
        try:
            self.socketio.close_room(room_channel(code), namespace=NAMESPACE)
        except Exception as exc:
            self.logger.warning(f"[notify-fail] close_room room={code} error={exc}")

    def send_to_user(self, user_id: str, event: str, payload: Dict[str, Any]) -> None:
        sid = self.users.connection_of(user_id)
        if sid is None:
            return
        self._emit(event, payload, sid)

    def attach(self, code: str, user_id: str) -> None:
        sid = self.users.connection_of(user_id)
        if sid is None:
            return
        try:
            self.socketio.server.enter_room(sid, room_channel(code), namespace=NAMESPACE)
        except Exception as exc:
            self.logger.warning(f"[notify-fail] enter_room room={code} user={user_id} error={exc}")

    def detach(self, code: str, user_id: str, sid: Optional[str] = None) -> None:
        sid = sid or self.users.connection_of(user_id)
        if sid is None:
            return
        try:
            self.socketio.server.leave_room(sid, room_channel(code), namespace=NAMESPACE)
        except Exception as exc:
            self.logger.warning(f"[notify-fail] leave_room room={code} user={user_id} error={exc}")

    def _emit(self, event, payload, to):
        try:
            self.socketio.emit(event, payload, to=to, namespace=NAMESPACE)
        except Exception as exc:
            # stale connections must not fail the triggering action
            self.logger.warning(f"[notify-fail] event={event} to={to} error={exc}")
