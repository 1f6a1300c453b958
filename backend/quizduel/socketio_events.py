import functools

from flask import current_app, request
from flask_socketio import emit

from quizduel import notifier, room_store, sessions, socketio, users
from quizduel.errors import InvalidInput, QuizDuelError, Unauthenticated
from quizduel.services.games.notifier import NAMESPACE


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _current_user_id() -> str:
    user_id = users.user_for_connection(_get_sid())
    if user_id is None:
        emit('forceReauthenticate', {})
        raise Unauthenticated('Connection is not registered; authenticate again.')
    return user_id


def _payload(data) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput('Event payload must be a JSON object.')
    return data


def _room_code(data) -> str:
    code = _payload(data).get('roomCode')
    if not isinstance(code, str) or not code.strip():
        raise InvalidInput('roomCode is required')
    return code.strip().upper()


def _reports_errors(handler):
    """Turn game errors into an ``error`` event for the calling connection."""
    @functools.wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except QuizDuelError as exc:
            emit('error', {'kind': exc.kind, 'message': exc.message})
            return {'ok': False, 'kind': exc.kind, 'message': exc.message}
    return wrapper


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    user_id = users.detach_connection(_get_sid())
    if not user_id:
        return
    current_app.logger.info(f"[disconnect] user={user_id} reason={reason}")
    sessions.handle_disconnect(user_id)


@_reports_errors
def handle_register_connection(data=None):
    user_id = _payload(data).get('userId')
    sid = _get_sid()
    previous_sid = users.connection_of(user_id)
    if not users.attach_connection(user_id, sid):
        emit('forceReauthenticate', {})
        return {'ok': False}
    emit('registered', {'userId': user_id})
    if previous_sid and previous_sid != sid:
        # the replaced connection stops receiving this user's room updates
        for room in room_store.rooms_for(user_id):
            notifier.detach(room.code, user_id, sid=previous_sid)
    # Reconnect: rejoin the channels of rooms the user still plays in
    for room in room_store.rooms_for(user_id):
        with room.lock:
            if room.deleted:
                continue
            notifier.attach(room.code, user_id)
            notifier.broadcast(room)
    return {'ok': True}


@_reports_errors
def handle_create_room(data=None):
    data = _payload(data)
    room = sessions.create_room(_current_user_id(), data.get('difficulty'), username=data.get('username'))
    emit('roomCreated', {'roomCode': room.code})
    return {'ok': True, 'roomCode': room.code}


@_reports_errors
def handle_join_room(data=None):
    room = sessions.join_room(_room_code(data), _current_user_id(), username=_payload(data).get('username'))
    emit('roomJoined', {'roomCode': room.code})
    return {'ok': True, 'roomCode': room.code}


@_reports_errors
def handle_start_game(data=None):
    sessions.start_game(_room_code(data), _current_user_id())
    return {'ok': True}


@_reports_errors
def handle_submit_answer(data=None):
    data = _payload(data)
    earned = sessions.submit_answer(_room_code(data), _current_user_id(), data.get('round'), data.get('answers'))
    return {'ok': True, 'scoreEarned': earned}


@_reports_errors
def handle_next_round(data=None):
    sessions.advance_round(_room_code(data), _current_user_id())
    return {'ok': True}


@_reports_errors
def handle_leave_room(data=None):
    code = _room_code(data)
    sessions.leave_room(code, _current_user_id())
    emit('roomLeft', {'roomCode': code})
    return {'ok': True}


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('registerConnection', handle_register_connection, namespace=NAMESPACE)
    socketio.on_event('createRoom', handle_create_room, namespace=NAMESPACE)
    socketio.on_event('joinRoom', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('startGame', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('submitAnswer', handle_submit_answer, namespace=NAMESPACE)
    socketio.on_event('nextRound', handle_next_round, namespace=NAMESPACE)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
