import os

from dotenv import load_dotenv

load_dotenv()


def _origins(raw):
    origins = [o.strip() for o in raw.split(',') if o.strip()]
    return origins if origins and origins != ['*'] else '*'


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3000'))
    CORS_ORIGINS = _origins(os.environ.get('CORS_ORIGINS', '*'))
    # External question generator (Gemini)
    GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
    GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-1.5-flash')
    GEMINI_API_URL = os.environ.get('GEMINI_API_URL')
    GENERATION_TIMEOUT_SEC = float(os.environ.get('GENERATION_TIMEOUT_SEC', '30'))
    GENERATION_MAX_ATTEMPTS = int(os.environ.get('GENERATION_MAX_ATTEMPTS', '3'))
    # 'list' (name N items) or 'multiple_choice'; one format per deployment
    QUESTION_FORMAT = os.environ.get('QUESTION_FORMAT', 'list')
    LIST_ANSWER_COUNT = int(os.environ.get('LIST_ANSWER_COUNT', '8'))
    OPTION_COUNT = int(os.environ.get('OPTION_COUNT', '4'))
    # Game rules
    MAX_PLAYERS = 2
    MAX_ROUNDS = int(os.environ.get('MAX_ROUNDS', '5'))
    ROUND_DURATION_MS = int(os.environ.get('ROUND_DURATION_MS', '15000'))
    # Countdown shown to clients before round 1 (ms)
    ROUND_LEAD_IN_MS = int(os.environ.get('ROUND_LEAD_IN_MS', '3000'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    # Finished rooms are dropped after this hold time (seconds). 0 disables.
    FINISHED_ROOM_TTL_SEC = int(os.environ.get('FINISHED_ROOM_TTL_SEC', '300'))
    MAX_USERNAME_LENGTH = int(os.environ.get('MAX_USERNAME_LENGTH', '32'))
