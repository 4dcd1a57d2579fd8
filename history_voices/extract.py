"""Pull a single JSON object out of a chatty model response."""

import json
import logging
import re

from history_voices.errors import MalformedResponse

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f]+")


def extract_json(text: str | None) -> dict:
    """Return the object spanning the first '{' to the last '}' in text.

    Markdown fences are stripped first. If the span doesn't parse, control
    characters are removed and parsing is tried once more. Trailing commas
    and truncated output are not repaired.
    """
    if not text:
        raise MalformedResponse("Empty response from model.")

    cleaned = _FENCE_RE.sub("", text.strip())
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise MalformedResponse("No JSON object found in response.")

    span = cleaned[start:end + 1]
    try:
        data = json.loads(span)
    except json.JSONDecodeError:
        try:
            data = json.loads(_CONTROL_CHARS_RE.sub("", span))
        except json.JSONDecodeError as e:
            logger.error("JSON parse error on string: %s", span[:500])
            raise MalformedResponse("Model returned invalid JSON format.") from e
    return data
