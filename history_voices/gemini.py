"""Google GenAI client setup and response accessors."""

import os

from google import genai
from google.genai import types

from history_voices.constants import API_KEY_ENV_VARS

_client = None

# Historical scenes involve battles, trade and religion; only block the worst
SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


def get_api_key() -> str | None:
    """First non-empty key among the supported environment variables."""
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def init_client():
    """Initialize the Google GenAI client once per process."""
    global _client
    if _client is None:
        api_key = get_api_key()
        if not api_key:
            raise ValueError(f"{' or '.join(API_KEY_ENV_VARS)} must be set")
        _client = genai.Client(api_key=api_key)
    return _client


def first_candidate(response):
    candidates = getattr(response, "candidates", None) or []
    return candidates[0] if candidates else None


def finish_reason(response) -> str | None:
    """Finish reason of the first candidate as a bare name, e.g. 'SAFETY'."""
    candidate = first_candidate(response)
    reason = getattr(candidate, "finish_reason", None)
    if reason is None:
        return None
    return getattr(reason, "name", None) or str(reason)


def is_safety_block(response) -> bool:
    return finish_reason(response) == "SAFETY"


def response_parts(response) -> list:
    candidate = first_candidate(response)
    content = getattr(candidate, "content", None)
    return getattr(content, "parts", None) or []


def first_inline_data(response):
    """First part carrying inline data (audio or image), or None."""
    for part in response_parts(response):
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return inline
    return None
