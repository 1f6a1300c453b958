"""Room lifecycle: waiting -> playing -> finished.

Every mutation of a room happens while holding ``room.lock``. The only
blocking call, the question fetch in ``start_game``, runs outside it with
the room marked ``starting``. Notifications for a room are emitted while
its lock is held so clients receive them in mutation order.
"""
import time
from contextlib import contextmanager

from quizduel.errors import (
    AlreadyAnswered,
    GameAlreadyStarted,
    GenerationError,
    InsufficientPlayers,
    InvalidInput,
    InvalidState,
    NotHost,
    PlayerNotFound,
    RoomFull,
    RoomNotFound,
    RoundNotReady,
    StaleRound,
)
from quizduel.models import FINISHED, PLAYING, WAITING, AnswerRecord, Player, Room
from quizduel.services.games.notifier import snapshot
from quizduel.services.games.scoring import normalize_submission, score_submission
from quizduel.services.questions import DIFFICULTIES


class RoomSessions:
    def __init__(self, rooms, users, questions, scheduler, notifier):
        self.rooms = rooms
        self.users = users
        self.questions = questions
        self.scheduler = scheduler
        self.notifier = notifier
        self.max_players = 2
        self.max_rounds = 5
        self.round_duration_ms = 15000
        self.round_lead_in_ms = 0
        self.finished_room_ttl_sec = 0
        self.logger = None

    def init_app(self, app) -> None:
        cfg = app.config
        # a trivia duel: never more than two players
        self.max_players = min(2, int(cfg.get('MAX_PLAYERS', 2)))
        self.max_rounds = int(cfg.get('MAX_ROUNDS', 5))
        self.round_duration_ms = int(cfg.get('ROUND_DURATION_MS', 15000))
        self.round_lead_in_ms = int(cfg.get('ROUND_LEAD_IN_MS', 0))
        self.finished_room_ttl_sec = float(cfg.get('FINISHED_ROOM_TTL_SEC', 0))
        self.logger = app.logger

    # ---- lookups ----

    @contextmanager
    def _room(self, code):
        """Yield a live room with its lock held."""
        room = self.rooms.get(code)
        with room.lock:
            if room.deleted:
                raise RoomNotFound()
            yield room

    def snapshot(self, code):
        with self._room(code) as room:
            return snapshot(room)

    # ---- lobby ----

    def create_room(self, user_id, difficulty, username=None) -> Room:
        user = self.users.require(user_id)
        if username:
            user = self.users.register(user_id, username)
        difficulty = (difficulty or '').strip().lower() if isinstance(difficulty, str) else ''
        if difficulty not in DIFFICULTIES:
            raise InvalidInput(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}.")
        host = Player(user_id=user.id, display_name=user.username)
        room = self.rooms.create(host, difficulty, self.round_duration_ms)
        with room.lock:
            self.logger.info(f"[room-create] room={room.code} host={user.id} difficulty={difficulty}")
            self.notifier.attach(room.code, user.id)
            self.notifier.broadcast(room)
        return room

    def join_room(self, code, user_id, username=None) -> Room:
        user = self.users.require(user_id)
        if username:
            user = self.users.register(user_id, username)
        with self._room(code) as room:
            existing = room.player(user.id)
            if existing is not None:
                existing.display_name = user.username
                self.notifier.attach(room.code, user.id)
                self.notifier.broadcast(room)
                return room
            if len(room.players) >= self.max_players:
                raise RoomFull()
            if room.status != WAITING:
                raise GameAlreadyStarted()
            room.players.append(Player(user_id=user.id, display_name=user.username))
            self.logger.info(f"[join] room={room.code} user={user.id} players={len(room.players)}")
            self.notifier.attach(room.code, user.id)
            self.notifier.broadcast(room)
            return room

    def leave_room(self, code, user_id) -> None:
        with self._room(code) as room:
            if not room.has_player(user_id):
                raise PlayerNotFound('You are not in this room.')
            self._remove_player_locked(room, user_id, reason='left')

    def handle_disconnect(self, user_id) -> None:
        for room in self.rooms.rooms_for(user_id):
            with room.lock:
                if room.deleted or not room.has_player(user_id):
                    continue
                self._remove_player_locked(room, user_id, reason='disconnected')

    def _remove_player_locked(self, room: Room, user_id, reason) -> None:
        room.players = [p for p in room.players if p.user_id != user_id]
        room.answers.pop(user_id, None)
        self.logger.info(f"[leave] room={room.code} user={user_id} reason={reason} players={len(room.players)}")

        if not room.players:
            room.host_user_id = None
            # the departing connection is still in the channel and hears roomDeleted
            self._delete_locked(room, reason='empty')
            return

        self.notifier.detach(room.code, user_id)
        if room.host_user_id == user_id:
            room.host_user_id = room.players[0].user_id
            self.logger.info(f"[host-change] room={room.code} from={user_id} to={room.host_user_id}")
        if room.status == PLAYING and len(room.players) < 2:
            self._finish_locked(room, reason='opponent_left')
        self.notifier.broadcast(room)

    def _delete_locked(self, room: Room, reason) -> None:
        room.deleted = True
        room.timer_deadline = None
        self.rooms.delete(room.code)
        self.logger.info(f"[room-delete] room={room.code} reason={reason}")
        self.notifier.room_deleted(room.code, reason)

    # ---- game ----

    def start_game(self, code, requester_id) -> Room:
        with self._room(code) as room:
            self._check_can_start(room, requester_id)
            room.starting = True
            difficulty = room.difficulty

        try:
            questions = self.questions.fetch(difficulty, self.max_rounds)
        except GenerationError:
            with room.lock:
                room.starting = False
            self.logger.warning(f"[start-failed] room={room.code} generation failed")
            raise

        with room.lock:
            room.starting = False
            if room.deleted:
                self.logger.info(f"[start-discard] room={room.code} deleted during generation")
                raise RoomNotFound()
            self._check_can_start(room, requester_id)
            self._begin_locked(room, questions)
            return room

    def _check_can_start(self, room: Room, requester_id) -> None:
        if room.host_user_id != requester_id:
            raise NotHost('Only the host can start the game.')
        if len(room.players) < 2:
            raise InsufficientPlayers()
        if room.status != WAITING:
            raise InvalidState('Game has already started or finished.')
        if room.starting:
            raise InvalidState('Game is already starting.')

    def _begin_locked(self, room: Room, questions) -> None:
        room.questions = list(questions)
        room.max_rounds = len(room.questions)
        room.status = PLAYING
        room.current_round_number = 1
        room.current_question_index = 0
        for p in room.players:
            p.score = 0
        room.reset_round_state()
        room.finished_at = None
        room.round_started_at = time.time() + self.round_lead_in_ms / 1000.0
        self.logger.info(f"[start] room={room.code} rounds={room.max_rounds}")
        self._arm_timer_locked(room, (self.round_lead_in_ms + room.round_duration_ms) / 1000.0)
        self.notifier.broadcast(room)

    def submit_answer(self, code, user_id, round_number, submission) -> int:
        if isinstance(round_number, bool) or not isinstance(round_number, int):
            raise InvalidInput('Round number must be an integer.')
        values = normalize_submission(submission)
        with self._room(code) as room:
            if room.status != PLAYING:
                raise InvalidState('Game is not in progress.')
            if round_number != room.current_round_number:
                raise StaleRound()
            player = room.player(user_id)
            if player is None:
                raise PlayerNotFound()
            if player.has_answered_current_round:
                raise AlreadyAnswered()
            question = room.current_question
            if len(values) > question.answer_count:
                raise InvalidInput(f'At most {question.answer_count} answers are allowed.')

            earned = score_submission(values, question)
            player.score += earned
            player.has_answered_current_round = True
            room.answers[user_id] = AnswerRecord(submission=values, score=earned)
            self.logger.info(f"[answer] room={room.code} round={round_number} user={user_id} score={earned}")

            self.notifier.send_to_user(user_id, 'answerSubmittedConfirmation', {
                'roomCode': room.code,
                'roundNumber': round_number,
                'scoreEarned': earned,
            })
            self.notifier.broadcast(room)
            if room.all_players_answered:
                self._advance_locked(room, trigger='all_answered')
            return earned

    def advance_round(self, code, requester_id) -> Room:
        with self._room(code) as room:
            if room.host_user_id != requester_id:
                raise NotHost('Only the host can advance rounds.')
            if room.status != PLAYING:
                raise InvalidState('Game is not in progress.')
            if not (room.all_players_answered or room.round_elapsed()):
                raise RoundNotReady()
            self._advance_locked(room, trigger='host')
            return room

    def _advance_locked(self, room: Room, trigger) -> None:
        prev_round = room.current_round_number
        room.timer_deadline = None
        room.current_question_index += 1
        room.current_round_number += 1
        if room.current_question_index < len(room.questions) and room.current_round_number <= room.max_rounds:
            room.round_started_at = time.time()
            room.reset_round_state()
            self.logger.info(
                f"[next_round] room={room.code} advance round {prev_round} -> {room.current_round_number} trigger={trigger}"
            )
            self._arm_timer_locked(room, room.round_duration_ms / 1000.0)
        else:
            # keep the last valid round number for the results view
            room.current_round_number = prev_round
            room.current_question_index = len(room.questions) - 1
            self._finish_locked(room, reason=f'completed:{trigger}')
        self.notifier.broadcast(room)

    def _finish_locked(self, room: Room, reason) -> None:
        room.status = FINISHED
        room.round_started_at = None
        room.timer_deadline = None
        room.reset_round_state()
        room.finished_at = time.time()
        self.logger.info(f"[finish] room={room.code} round={room.current_round_number} reason={reason}")
        if self.finished_room_ttl_sec > 0:
            self.scheduler.schedule(self.finished_room_ttl_sec, self.on_finished_expiry, room.code, room.finished_at)

    # ---- timers ----

    def _arm_timer_locked(self, room: Room, delay_sec: float) -> None:
        deadline = time.time() + delay_sec
        room.timer_deadline = deadline
        self.logger.info(
            f"[timer-set] room={room.code} round={room.current_round_number} delay={delay_sec:.1f}s"
        )
        self.scheduler.schedule(delay_sec, self.on_round_timer, room.code, room.current_round_number, deadline)

    def on_round_timer(self, code, round_number, deadline) -> None:
        room = self.rooms.find(code)
        if room is None:
            self.logger.info(f"[timer-abort] room={code} round={round_number} room gone")
            return
        with room.lock:
            if (room.deleted or room.status != PLAYING
                    or room.current_round_number != round_number
                    or room.timer_deadline != deadline):
                self.logger.info(
                    f"[timer-abort] room={code} expected_round={round_number} actual_round={room.current_round_number} status={room.status}"
                )
                return
            self.logger.info(f"[timer-fire] room={code} round={round_number}")
            self._advance_locked(room, trigger='timer')

    def on_finished_expiry(self, code, finished_at) -> None:
        room = self.rooms.find(code)
        if room is None:
            return
        with room.lock:
            if room.deleted or room.status != FINISHED or room.finished_at != finished_at:
                return
            for p in room.players:
                self.notifier.detach(room.code, p.user_id)
            self._delete_locked(room, reason='expired')
