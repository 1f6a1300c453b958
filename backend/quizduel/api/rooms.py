from flask import Blueprint, jsonify

from quizduel import room_store, sessions, users
from quizduel.api.helpers import json_body, request_user_id, request_username
from quizduel.models import FINISHED
from quizduel.services.games.notifier import snapshot

rooms = Blueprint('rooms', __name__)


def _room_payload(room_code):
    """Current snapshot, or None if the room is already gone."""
    room = room_store.find(room_code)
    if room is None:
        return None
    with room.lock:
        return None if room.deleted else snapshot(room)


@rooms.route('/create', methods=['POST'])
def create_room():
    user = users.require(request_user_id())
    data = json_body()
    room = sessions.create_room(user.id, data.get('difficulty'), username=request_username())
    return jsonify({
        'message': 'New room created!',
        'roomCode': room.code,
        'room': _room_payload(room.code),
    }), 201


@rooms.route('/join/<string:room_code>', methods=['POST'])
def join_room(room_code):
    user = users.require(request_user_id())
    room = sessions.join_room(room_code, user.id, username=request_username())
    return jsonify({'roomCode': room.code, 'room': _room_payload(room.code)})


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room(room_code):
    return jsonify(sessions.snapshot(room_code))


@rooms.route('/<string:room_code>/start', methods=['POST'])
def start_game(room_code):
    user = users.require(request_user_id())
    room = sessions.start_game(room_code, user.id)
    return jsonify({'message': 'Game started!', 'room': _room_payload(room.code)})


@rooms.route('/<string:room_code>/answer', methods=['POST'])
def submit_answer(room_code):
    user = users.require(request_user_id())
    data = json_body()
    earned = sessions.submit_answer(room_code, user.id, data.get('round'), data.get('answers'))
    return jsonify({
        'message': 'Answers received and scored.',
        'scoreEarned': earned,
        'room': _room_payload(room_code),
    })


@rooms.route('/<string:room_code>/next-round', methods=['POST'])
def next_round(room_code):
    user = users.require(request_user_id())
    room = sessions.advance_round(room_code, user.id)
    payload = _room_payload(room.code)
    if payload is None or payload['status'] == FINISHED:
        message = 'Game finished'
    else:
        message = f"Moved to round {payload['currentRoundNumber']}"
    return jsonify({'message': message, 'room': payload})


@rooms.route('/<string:room_code>/leave', methods=['POST'])
def leave_room(room_code):
    user = users.require(request_user_id())
    sessions.leave_room(room_code, user.id)
    return jsonify({'message': 'Left room successfully'})
