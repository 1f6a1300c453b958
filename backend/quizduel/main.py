from flask import Blueprint, jsonify

from quizduel import room_store, users
from quizduel.api.helpers import json_body, request_user_id, request_username

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the QuizDuel game server!'})


@main.route('/api/health')
def health():
    return jsonify({'ok': True, 'activeRooms': len(room_store)})


@main.route('/api/auth/anonymous', methods=['POST'])
def anonymous_login():
    """Issue an anonymous identity, or refresh the username of a known one."""
    user = users.register(request_user_id(), request_username())
    return jsonify(user.to_dict())


@main.route('/api/user/update-username', methods=['POST'])
def update_username():
    user = users.update_username(request_user_id(), json_body().get('newUsername'))
    return jsonify({'message': 'Username updated successfully', **user.to_dict()})
