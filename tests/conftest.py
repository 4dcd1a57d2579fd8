"""Shared fixtures for history voices tests."""

import asyncio
from types import SimpleNamespace

import pytest
from pydub import AudioSegment

from history_voices.models import Annotation, Character, DialogueLine, Scenario, Source


class FakeModels:
    """Stands in for client.aio.models; replays queued responses or errors."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def generate_content(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        await asyncio.sleep(0)
        if not self.responses:
            raise AssertionError(f"Unexpected call to {model}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(model=model, contents=contents, config=config)
        return item


def make_client(*responses):
    """Client whose aio.models.generate_content replays the given responses in order."""
    return SimpleNamespace(aio=SimpleNamespace(models=FakeModels(responses)))


def make_response(text=None, finish_reason="STOP", chunks=None, inline=None, mime_type=None):
    """Minimal GenerateContentResponse lookalike."""
    parts = []
    if inline is not None:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(data=inline, mime_type=mime_type)))
    grounding = SimpleNamespace(grounding_chunks=[
        SimpleNamespace(web=SimpleNamespace(uri=uri, title=title)) for uri, title in (chunks or [])
    ])
    candidate = SimpleNamespace(
        finish_reason=SimpleNamespace(name=finish_reason),
        grounding_metadata=grounding,
        content=SimpleNamespace(parts=parts),
    )
    return SimpleNamespace(text=text, candidates=[candidate])


class QuotaError(Exception):
    """Looks like google-genai's 429 APIError."""

    code = 429
    status = "RESOURCE_EXHAUSTED"


@pytest.fixture
def delays():
    """Recorded sleep durations."""
    return []


@pytest.fixture
def fake_sleep(delays):
    async def sleep(seconds):
        delays.append(seconds)
    return sleep


@pytest.fixture
def pcm_bytes():
    """100ms of 24kHz mono 16-bit silence."""
    return b"\x00\x00" * 2400


@pytest.fixture
def raw_payload():
    """Research output the way the model tends to return it."""
    return {
        "context": "Midday at the Djinguereber Mosque; caravans unload salt.",
        "accentProfile": "Songhay-inflected Arabic",
        "characters": [
            {"name": "Ali", "gender": "male", "voice": "Fenrir",
             "visualDescription": "A scholar in white robes", "bio": "Teaches at the mosque."},
            {"name": "Fatima", "gender": "female", "voice": "Aoede",
             "visualDescription": "A merchant in indigo cloth", "bio": "Trades salt."},
        ],
        "script": [
            {"speaker": "Ali", "text": "As-salamu alaykum, the salt caravan is late.",
             "translation": "Peace be upon you, the salt caravan is late.",
             "annotations": [{"phrase": "As-salamu alaykum", "explanation": "A greeting."}]},
            {"speaker": "Fatima", "text": "Wa alaykum as-salam.",
             "translation": "And upon you peace.", "annotations": []},
        ],
    }


@pytest.fixture
def sample_scenario():
    """A scenario as the normalizer would produce it."""
    return Scenario(
        context="Midday at the Djinguereber Mosque.",
        accent_profile="Songhay-inflected Arabic",
        characters=[
            Character(name="Ali", gender="male", voice="Fenrir",
                      visual_description="A scholar in white robes", bio="Teaches."),
            Character(name="Fatima", gender="female", voice="Aoede",
                      visual_description="A merchant in indigo cloth", bio="Trades salt."),
        ],
        script=[
            DialogueLine(speaker="Ali", text="Salam *bows*", translation="Peace",
                         annotations=[Annotation(phrase="Salam", explanation="A greeting.")]),
            DialogueLine(speaker="Fatima", text="Wa alaykum", translation="And upon you"),
        ],
        sources=[Source(title="Timbuktu", uri="https://example.org/timbuktu")],
    )


@pytest.fixture
def silent_audio():
    return AudioSegment.silent(duration=500, frame_rate=24000)
