import requests

from quizduel.errors import GenerationError, GenerationUnavailable

DEFAULT_API_URL = 'https://generativelanguage.googleapis.com/v1beta/models'


class GeminiGenerator:
    """Sends a prompt to Gemini ``generateContent`` and returns the text reply."""

    def __init__(self, api_key, model='gemini-1.5-flash', api_url=DEFAULT_API_URL, timeout=30, session=None):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get('GEMINI_API_KEY'),
            model=config.get('GEMINI_MODEL', 'gemini-1.5-flash'),
            api_url=config.get('GEMINI_API_URL') or DEFAULT_API_URL,
            timeout=float(config.get('GENERATION_TIMEOUT_SEC', 30)),
        )

    def __call__(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationUnavailable('GEMINI_API_KEY is not set')
        body = {
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'generationConfig': {'responseMimeType': 'application/json'},
        }
        try:
            res = self.session.post(
                f'{self.api_url}/{self.model}:generateContent',
                params={'key': self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GenerationError(f'Generator request failed: {exc}') from exc
        if res.status_code != 200:
            raise GenerationError(f'HTTP {res.status_code}: {res.text[:300]}')
        try:
            payload = res.json()
        except ValueError as exc:
            raise GenerationError('Generator returned a non-JSON body') from exc
        return extract_text(payload)


def extract_text(payload) -> str:
    candidates = payload.get('candidates') if isinstance(payload, dict) else None
    if not isinstance(candidates, list) or not candidates:
        raise GenerationError('Model response does not contain candidates')
    content = candidates[0].get('content') if isinstance(candidates[0], dict) else None
    parts = content.get('parts') if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise GenerationError('Model response does not contain content parts')
    texts = [str(p.get('text') or '') for p in parts if isinstance(p, dict)]
    text = ''.join(texts).strip()
    if not text:
        raise GenerationError('Model response does not contain text content')
    return text
