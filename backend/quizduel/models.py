import random
import string
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

WAITING = 'waiting'
PLAYING = 'playing'
FINISHED = 'finished'


def normalize_answer(value) -> str:
    """Trim and case-fold a single answer string."""
    return str(value).strip().casefold()


@dataclass
class User:
    id: str
    username: str
    connection: Optional[str] = None

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    def to_dict(self):
        return {
            'userId': self.id,
            'username': self.username,
        }


@dataclass
class Player:
    user_id: str
    display_name: str
    score: int = 0
    has_answered_current_round: bool = False

    def to_dict(self):
        return {
            'userId': self.user_id,
            'displayName': self.display_name,
            'score': self.score,
            'hasAnsweredCurrentRound': self.has_answered_current_round,
        }


@dataclass(frozen=True)
class Question:
    prompt: str
    correct_answers: Tuple[str, ...]
    options: Optional[Tuple[str, ...]] = None

    @property
    def correct_set(self) -> frozenset:
        return frozenset(self.correct_answers)

    @property
    def is_multiple_choice(self) -> bool:
        return self.options is not None

    @property
    def answer_count(self) -> int:
        return len(self.correct_answers)

    def to_dict(self, reveal=False):
        data = {
            'prompt': self.prompt,
            'answerCount': self.answer_count,
        }
        if self.options is not None:
            data['options'] = list(self.options)
        if reveal:
            data['correctAnswers'] = list(self.correct_answers)
        return data


@dataclass
class AnswerRecord:
    submission: List[str]
    score: int
    submitted_at: float = field(default_factory=time.time)

    def to_dict(self):
        return {
            'submission': list(self.submission),
            'score': self.score,
            'submittedAt': int(self.submitted_at * 1000),
        }


def generate_room_code(taken, length=6):
    """Generate a short room code not present in ``taken``."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


@dataclass(eq=False)
class Room:
    code: str
    host_user_id: Optional[str]
    difficulty: str
    round_duration_ms: int
    players: List[Player] = field(default_factory=list)
    status: str = WAITING
    current_round_number: int = 0
    max_rounds: int = 0
    questions: List[Question] = field(default_factory=list)
    current_question_index: int = 0
    round_started_at: Optional[float] = None
    answers: Dict[str, AnswerRecord] = field(default_factory=dict)
    # Set while questions are being fetched for a start request
    starting: bool = False
    timer_deadline: Optional[float] = None
    finished_at: Optional[float] = None
    deleted: bool = False
    created_at: float = field(default_factory=time.time)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def player(self, user_id) -> Optional[Player]:
        for p in self.players:
            if p.user_id == user_id:
                return p
        return None

    def has_player(self, user_id) -> bool:
        return self.player(user_id) is not None

    @property
    def current_question(self) -> Optional[Question]:
        if self.status != PLAYING:
            return None
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def all_players_answered(self) -> bool:
        return bool(self.players) and all(p.has_answered_current_round for p in self.players)

    def round_elapsed(self, now=None) -> bool:
        if self.round_started_at is None:
            return False
        now = time.time() if now is None else now
        return (now - self.round_started_at) * 1000.0 >= self.round_duration_ms

    def reset_round_state(self) -> None:
        self.answers = {}
        for p in self.players:
            p.has_answered_current_round = False
