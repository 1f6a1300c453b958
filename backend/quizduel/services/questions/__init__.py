"""Question sets for a game, fetched from the external text generator."""

from .provider import DIFFICULTIES, QuestionProvider  # noqa: F401
