import json
import os
import sys
import pytest

# Ensure the backend root (containing the `quizduel` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizduel import create_app, socketio


CAPITALS = ['Paris', 'Berlin', 'Madrid', 'Rome', 'Lisbon', 'Vienna', 'Prague', 'Warsaw']


def make_questions(count=5):
    questions = [{'question': 'List 8 European capitals.', 'correct_answers': list(CAPITALS)}]
    for i in range(2, count + 1):
        questions.append({
            'question': f'List 8 things for round {i}.',
            'correct_answers': [f'Thing {i}-{j}' for j in range(8)],
        })
    return questions


class FakeGenerator:
    """Stands in for the Gemini call; replies are consumed in order.

    A reply may be a string, an exception instance (raised), or a callable
    (invoked, its result used). The last reply repeats once exhausted.
    """

    def __init__(self, replies=None):
        self.replies = list(replies) if replies else [json.dumps({'questions': make_questions()})]
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply()
        return reply


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    QUESTION_FORMAT = 'list'
    LIST_ANSWER_COUNT = 8
    OPTION_COUNT = 4
    GENERATION_MAX_ATTEMPTS = 3
    MAX_PLAYERS = 2
    MAX_ROUNDS = 5
    ROUND_DURATION_MS = 15000
    ROUND_LEAD_IN_MS = 0
    ROOM_CODE_LENGTH = 6
    FINISHED_ROOM_TTL_SEC = 300
    MAX_USERNAME_LENGTH = 32


@pytest.fixture()
def generator():
    return FakeGenerator()


@pytest.fixture()
def flask_app(generator):
    application = create_app(TestConfig, question_generator=generator)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def auth(client):
    """Register an anonymous user over HTTP and return its request headers."""
    def _auth(username):
        res = client.post('/api/auth/anonymous', json={'username': username})
        user_id = res.get_json()['userId']
        return {'X-User-Id': user_id, 'X-Username': username}
    return _auth


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect(user_id=None):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        if user_id:
            test_client.emit('registerConnection', {'userId': user_id}, namespace='/ws')
        test_client.get_received('/ws')  # flush
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


def events(test_client, name):
    return [pkt['args'][0] if pkt['args'] else None
            for pkt in test_client.get_received('/ws') if pkt['name'] == name]
