"""Error taxonomy shared by the REST and Socket.IO adapters.

Every error carries a ``kind`` (reported to clients next to the message)
and the HTTP status the REST adapter answers with.
"""


class QuizDuelError(Exception):
    kind = 'Error'
    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


class Unauthenticated(QuizDuelError):
    kind = 'Unauthenticated'
    status_code = 401
    default_message = 'User not authenticated'


class NotFound(QuizDuelError):
    kind = 'NotFound'
    status_code = 404
    default_message = 'Not found'


class RoomNotFound(NotFound):
    kind = 'RoomNotFound'
    default_message = 'Room not found.'


class PlayerNotFound(NotFound):
    kind = 'PlayerNotFound'
    default_message = 'You are not a player in this room.'


class UserNotFound(NotFound):
    kind = 'UserNotFound'
    default_message = 'User not found.'


class InvalidState(QuizDuelError):
    kind = 'InvalidState'
    default_message = 'Action not allowed in the current game state.'


class GameAlreadyStarted(InvalidState):
    kind = 'GameAlreadyStarted'
    default_message = 'Cannot join: Game has already started or finished.'


class InsufficientPlayers(InvalidState):
    kind = 'InsufficientPlayers'
    default_message = 'Need 2 players to start the game.'


class NotHost(QuizDuelError):
    kind = 'NotHost'
    status_code = 403
    default_message = 'Only the host can do that.'


class RoomFull(QuizDuelError):
    kind = 'RoomFull'
    default_message = 'Room is full (max 2 players).'


class AlreadyAnswered(QuizDuelError):
    kind = 'AlreadyAnswered'
    default_message = 'You have already submitted answers for this round.'


class StaleRound(QuizDuelError):
    kind = 'StaleRound'
    default_message = 'Submitted answers for a past or future round.'


class RoundNotReady(QuizDuelError):
    kind = 'RoundNotReady'
    default_message = 'Not all players have answered and time has not elapsed.'


class InvalidInput(QuizDuelError):
    kind = 'InvalidInput'
    default_message = 'Invalid input.'


class GenerationError(QuizDuelError):
    kind = 'GenerationError'
    status_code = 502
    default_message = 'Failed to generate questions.'


class GenerationUnavailable(GenerationError):
    status_code = 503
    default_message = 'Question generator is not configured.'
