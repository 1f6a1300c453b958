from typing import List

from quizduel.errors import InvalidInput
from quizduel.models import Question, normalize_answer


def normalize_submission(submission) -> List[str]:
    """Normalize a raw submission into distinct, non-empty answer strings.

    Accepts a single string or a list of strings. Order of first occurrence
    is kept so the stored answer reads like what the player typed.
    """
    if isinstance(submission, str):
        submission = [submission]
    if not isinstance(submission, (list, tuple)):
        raise InvalidInput('Answers must be a string or a list of strings.')
    normalized = []
    seen = set()
    for value in submission:
        if not isinstance(value, str):
            raise InvalidInput('Answers must be a string or a list of strings.')
        value = normalize_answer(value)
        if value and value not in seen:
            seen.add(value)
            normalized.append(value)
    return normalized


def score_submission(values: List[str], question: Question) -> int:
    """Count distinct submitted values that belong to the correct-answer set.

    Each correct value scores at most once however often it was submitted.
    """
    return len(set(values) & question.correct_set)
