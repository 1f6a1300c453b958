from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

from quizduel.errors import QuizDuelError
from quizduel.services.games import Notifier, RoomSessions, Scheduler
from quizduel.services.questions import DIFFICULTIES, QuestionProvider
from quizduel.store import RoomStore
from quizduel.users import UserRegistry

socketio = SocketIO(async_mode=None)
users = UserRegistry()
room_store = RoomStore()
question_provider = QuestionProvider()
scheduler = Scheduler(socketio)
notifier = Notifier(socketio, users)
sessions = RoomSessions(room_store, users, question_provider, scheduler, notifier)


def create_app(config_class=Config, question_generator=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # In-memory state starts empty for every app instance
    users.init_app(flask_app)
    room_store.init_app(flask_app)
    question_provider.init_app(flask_app, generator=question_generator)
    scheduler.init_app(flask_app)
    notifier.init_app(flask_app)
    sessions.init_app(flask_app)

    from quizduel.main import main
    flask_app.register_blueprint(main)

    from quizduel.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from quizduel.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @flask_app.errorhandler(QuizDuelError)
    def handle_game_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(404)
    def not_found(_exc):
        return jsonify({'error': 'Not found', 'kind': 'NotFound'}), 404

    @click.command('generate-questions')
    @click.option('--difficulty', type=click.Choice(DIFFICULTIES), default='easy')
    @click.option('--count', type=int, default=None, help='Defaults to MAX_ROUNDS.')
    def generate_questions_command(difficulty, count):
        """Fetch one validated question set and print it."""
        questions = question_provider.fetch(difficulty, count or sessions.max_rounds)
        for index, q in enumerate(questions, start=1):
            click.echo(f"{index}. {q.prompt}")
            if q.options:
                click.echo(f"   options: {', '.join(q.options)}")
            click.echo(f"   answers: {', '.join(q.correct_answers)}")

    flask_app.cli.add_command(generate_questions_command)

    return flask_app
