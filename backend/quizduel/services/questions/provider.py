import json
import re
from typing import Callable, List, Optional

from quizduel.errors import GenerationError, GenerationUnavailable
from quizduel.models import Question, normalize_answer

LIST_FORMAT = 'list'
MULTIPLE_CHOICE_FORMAT = 'multiple_choice'
DIFFICULTIES = ('easy', 'medium', 'hard')


def strip_json_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith('```'):
        text = re.sub(r'^```[a-zA-Z0-9_-]*\s*', '', text)
        text = re.sub(r'\s*```$', '', text)
    starts = [i for i in (text.find('{'), text.find('[')) if i >= 0]
    if not starts:
        return text
    start = min(starts)
    end = text.rfind('}' if text[start] == '{' else ']')
    if end > start:
        return text[start:end + 1]
    return text


def _unique(values):
    seen = set()
    out = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


class QuestionProvider:
    """Fetches and validates question sets from the external generator.

    The generator is any callable taking a prompt and returning the model's
    text reply. Malformed replies and transport failures are retried up to
    ``max_attempts`` times in total before ``GenerationError`` is raised.
    """

    def __init__(self, generator: Optional[Callable[[str], str]] = None):
        self.generator = generator
        self.question_format = LIST_FORMAT
        self.list_answer_count = 8
        self.option_count = 4
        self.max_attempts = 3
        self.logger = None

    def init_app(self, app, generator=None) -> None:
        cfg = app.config
        self.question_format = cfg.get('QUESTION_FORMAT', LIST_FORMAT)
        if self.question_format not in (LIST_FORMAT, MULTIPLE_CHOICE_FORMAT):
            raise ValueError(f'Unknown QUESTION_FORMAT {self.question_format!r}')
        self.list_answer_count = int(cfg.get('LIST_ANSWER_COUNT', 8))
        self.option_count = int(cfg.get('OPTION_COUNT', 4))
        self.max_attempts = max(1, int(cfg.get('GENERATION_MAX_ATTEMPTS', 3)))
        self.logger = app.logger
        if generator is not None:
            self.generator = generator
        elif self.generator is None:
            from quizduel.services.questions.gemini import GeminiGenerator
            self.generator = GeminiGenerator.from_config(cfg)

    def fetch(self, difficulty: str, count: int) -> List[Question]:
        if self.generator is None:
            raise GenerationUnavailable()
        prompt = self.build_prompt(difficulty, count)
        last_error = 'unknown error'
        for attempt in range(1, self.max_attempts + 1):
            try:
                raw = self.generator(prompt)
                return self.parse(raw, count)
            except GenerationUnavailable:
                raise
            except GenerationError as exc:
                last_error = exc.message
            except Exception as exc:
                # the generator is external code; anything it raises counts as a failed attempt
                last_error = str(exc) or exc.__class__.__name__
            if self.logger is not None:
                self.logger.warning(
                    f"[generation-retry] attempt={attempt}/{self.max_attempts} difficulty={difficulty} reason={last_error}"
                )
        raise GenerationError(f'Failed to generate questions: {last_error}')

    def build_prompt(self, difficulty: str, count: int) -> str:
        if self.question_format == MULTIPLE_CHOICE_FORMAT:
            return (
                f"Generate {count} distinct general-knowledge quiz questions about everyday life.\n"
                f"Difficulty: {difficulty}.\n"
                f"Each question has exactly {self.option_count} short, distinct answer options "
                "and exactly one of them is correct.\n"
                'Format the response as a JSON object: {"questions": [{"question": "...", '
                '"options": ["...", "...", "...", "..."], "correct_answer": "..."}]}. '
                "The correct_answer must be copied verbatim from options."
            )
        n = self.list_answer_count
        return (
            f"Generate {count} unique, daily-basis quiz questions. Each question asks the user to list "
            f"exactly {n} distinct items related to a common everyday activity, household items, "
            "general knowledge related to daily life, or simple practical scenarios.\n"
            f"Difficulty: {difficulty}.\n"
            f"Provide each question with an array of exactly {n} correct answers. "
            "Ensure all answers are single words or very short phrases.\n"
            'Format the response as a JSON object: {"questions": [{"question": "List 8 common fruits.", '
            '"correct_answers": ["Apple", "Banana", "Orange", "Grape", "Strawberry", "Blueberry", '
            '"Pineapple", "Mango"]}]}'
        )

    def parse(self, raw, count: int) -> List[Question]:
        if not isinstance(raw, str) or not raw.strip():
            raise GenerationError('Empty response from generator')
        try:
            payload = json.loads(strip_json_fence(raw))
        except ValueError as exc:
            raise GenerationError(f'Invalid JSON from generator: {raw[:100]!r}') from exc
        items = payload.get('questions') if isinstance(payload, dict) else payload
        if isinstance(items, dict):
            items = [items]
        if not isinstance(items, list):
            raise GenerationError('Generator JSON does not contain questions[]')
        questions = []
        for item in items:
            question = self.validate_item(item)
            if question is not None:
                questions.append(question)
            if len(questions) == count:
                return questions
        raise GenerationError(f'Generator returned {len(questions)} valid questions, {count} required')

    def validate_item(self, item) -> Optional[Question]:
        """Return a normalized Question, or None if the item is unusable."""
        if not isinstance(item, dict):
            return None
        prompt = item.get('question') or item.get('prompt') or item.get('text')
        if not isinstance(prompt, str) or not prompt.strip():
            return None
        answers = item.get('correct_answers')
        if answers is None:
            single = item.get('correct_answer', item.get('answer'))
            answers = [single] if single is not None else []
        if isinstance(answers, str):
            answers = [answers]
        if not isinstance(answers, list) or not all(isinstance(a, str) for a in answers):
            return None
        correct = _unique(normalize_answer(a) for a in answers)
        if not correct:
            return None

        if self.question_format == LIST_FORMAT:
            if len(correct) != self.list_answer_count:
                return None
            return Question(prompt=prompt.strip(), correct_answers=tuple(correct))

        options = item.get('options')
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            return None
        options = [o.strip() for o in options]
        if any(not o for o in options) or len(options) != self.option_count:
            return None
        folded = [normalize_answer(o) for o in options]
        if len(set(folded)) != len(folded):
            return None
        if len(correct) != 1 or correct[0] not in folded:
            return None
        return Question(prompt=prompt.strip(), correct_answers=tuple(correct), options=tuple(options))
