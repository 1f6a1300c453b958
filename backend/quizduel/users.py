import threading
from typing import Dict, Optional

from quizduel.errors import InvalidInput, Unauthenticated, UserNotFound
from quizduel.models import User

MIN_USERNAME_LENGTH = 3


class UserRegistry:
    """Anonymous users and their live Socket.IO connection.

    A user has at most one live connection; attaching a new one replaces
    the old. ``_by_connection`` is the reverse index used on disconnect.
    """

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._by_connection: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.max_username_length = 32
        self.logger = None

    def init_app(self, app) -> None:
        with self._lock:
            self._users = {}
            self._by_connection = {}
        self.max_username_length = int(app.config.get('MAX_USERNAME_LENGTH', 32))
        self.logger = app.logger

    def register(self, candidate_id=None, username=None) -> User:
        if not isinstance(username, str):
            username = None
        username = (username or '').strip()[:self.max_username_length] or None
        with self._lock:
            user = self._users.get(candidate_id) if isinstance(candidate_id, str) else None
            if user is None:
                user_id = User.new_id()
                user = User(id=user_id, username=username or f'Guest_{user_id[:6]}')
                self._users[user_id] = user
                self._log(f"[register] user={user_id} username={user.username}")
            elif username and user.username != username:
                user.username = username
            return user

    def update_username(self, user_id, new_username) -> User:
        name = (new_username or '').strip() if isinstance(new_username, str) else ''
        if len(name) < MIN_USERNAME_LENGTH:
            raise InvalidInput(f'Username must be at least {MIN_USERNAME_LENGTH} characters')
        if len(name) > self.max_username_length:
            raise InvalidInput(f'Username must be at most {self.max_username_length} characters')
        with self._lock:
            user = self._users.get(user_id) if isinstance(user_id, str) else None
            if user is None:
                raise UserNotFound()
            user.username = name
            return user

    def get(self, user_id) -> Optional[User]:
        if not user_id or not isinstance(user_id, str):
            return None
        with self._lock:
            return self._users.get(user_id)

    def require(self, user_id) -> User:
        user = self.get(user_id)
        if user is None:
            raise Unauthenticated()
        return user

    def attach_connection(self, user_id, sid) -> bool:
        with self._lock:
            user = self._users.get(user_id) if isinstance(user_id, str) else None
            if user is None:
                self._log(f"[attach-miss] user={user_id} sid={sid} unknown user")
                return False
            if user.connection and user.connection != sid:
                self._by_connection.pop(user.connection, None)
            previous_owner = self._by_connection.get(sid)
            if previous_owner and previous_owner != user_id:
                self._users[previous_owner].connection = None
            user.connection = sid
            self._by_connection[sid] = user_id
            return True

    def detach_connection(self, sid) -> Optional[str]:
        with self._lock:
            user_id = self._by_connection.pop(sid, None)
            if user_id is None:
                return None
            user = self._users.get(user_id)
            if user is not None and user.connection == sid:
                user.connection = None
            return user_id

    def connection_of(self, user_id) -> Optional[str]:
        user = self.get(user_id)
        return user.connection if user else None

    def user_for_connection(self, sid) -> Optional[str]:
        with self._lock:
            return self._by_connection.get(sid)

    def __len__(self):
        with self._lock:
            return len(self._users)

    def _log(self, message):
        if self.logger is not None:
            self.logger.info(message)
