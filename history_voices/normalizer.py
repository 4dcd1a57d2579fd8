"""Repair raw research output into a strict two-speaker Scenario."""

import logging
import random
from collections import Counter

from history_voices.constants import (
    UNKNOWN_SPEAKER,
    DEFAULT_VISUAL_DESCRIPTION,
    DEFAULT_BIO,
)
from history_voices.models import (
    Annotation,
    Character,
    DialogueLine,
    RawPayload,
    Scenario,
    Source,
)
from history_voices.voices import coerce_gender, default_voice, resolve_voice

logger = logging.getLogger(__name__)


def _as_text(value) -> str:
    if value is None:
        return ""
    return str(value)


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _default_character(number: int) -> dict:
    """Synthetic stand-in when the model returned too few characters."""
    gender = "male" if number % 2 != 0 else "female"
    return {
        "name": f"Speaker {number}",
        "gender": gender,
        "voice": default_voice(gender),
        "visualDescription": DEFAULT_VISUAL_DESCRIPTION,
        "bio": DEFAULT_BIO,
    }


def _normalize_characters(raw_characters, rng) -> list[Character]:
    entries = [_as_dict(c) for c in _as_list(raw_characters)]
    while len(entries) < 2:
        entries.append(_default_character(len(entries) + 1))
        logger.debug("Padded characters with %s", entries[-1]["name"])
    entries = entries[:2]

    characters = []
    for number, entry in enumerate(entries, start=1):
        name = _as_text(entry.get("name")).strip() or f"Speaker {number}"
        characters.append(Character(
            name=name,
            gender=coerce_gender(entry.get("gender")),
            visual_description=_as_text(entry.get("visualDescription")),
            bio=_as_text(entry.get("bio")),
        ))

    first, second = characters
    if first.name == second.name:
        logger.debug("Disambiguating duplicate character name %r", first.name)
        first.name = f"{first.name} (1)"
        second.name = f"{second.name} (2)"

    first.voice = resolve_voice(entries[0].get("voice"), first.gender, rng=rng)
    second.voice = resolve_voice(entries[1].get("voice"), second.gender, taken=first.voice, rng=rng)
    return characters


def _normalize_annotations(raw_annotations, text: str) -> list[Annotation]:
    """Keep only annotations whose phrase occurs in the line (case-insensitive)."""
    annotations = []
    lowered = text.lower()
    for entry in _as_list(raw_annotations):
        entry = _as_dict(entry)
        phrase = _as_text(entry.get("phrase")).strip()
        if not phrase or phrase.lower() not in lowered:
            continue
        annotations.append(Annotation(phrase=phrase, explanation=_as_text(entry.get("explanation"))))
    return annotations


def _normalize_line(raw_line) -> DialogueLine:
    entry = _as_dict(raw_line)
    text = _as_text(entry.get("text"))
    return DialogueLine(
        speaker=_as_text(entry.get("speaker")).strip() or UNKNOWN_SPEAKER,
        text=text,
        translation=_as_text(entry.get("translation")),
        annotations=_normalize_annotations(entry.get("annotations"), text),
    )


def _matches(raw_speaker: str, name: str) -> bool:
    """Exact match, or either name contains the other ignoring case."""
    if raw_speaker == name:
        return True
    raw_lower = raw_speaker.lower()
    name_lower = name.lower()
    return raw_lower in name_lower or name_lower in raw_lower


def build_speaker_map(speakers: list[str], first: str, second: str) -> dict[str, str]:
    """Map raw script speakers onto the two character names.

    Speakers are resolved most-frequent first (ties keep first-seen order).
    Fuzzy matches win; unmatched speakers fill whichever character has no
    lines yet, then fall back to the first character.
    """
    counts = Counter(speakers)
    ordered = sorted(counts, key=lambda s: -counts[s])

    speaker_map = {}
    for raw in ordered:
        if _matches(raw, first):
            speaker_map[raw] = first
        elif _matches(raw, second):
            speaker_map[raw] = second

    unmapped = [s for s in ordered if s not in speaker_map]
    if unmapped and first not in speaker_map.values():
        speaker_map[unmapped.pop(0)] = first
    if unmapped and second not in speaker_map.values():
        speaker_map[unmapped.pop(0)] = second
    for raw in unmapped:
        speaker_map[raw] = first

    remapped = {k: v for k, v in speaker_map.items() if k != v}
    if remapped:
        logger.debug("Remapped script speakers: %s", remapped)
    return speaker_map


def _normalize_sources(raw_sources) -> list[Source]:
    sources = {}
    for entry in _as_list(raw_sources):
        entry = _as_dict(entry)
        uri = _as_text(entry.get("uri")).strip()
        if uri and uri not in sources:
            sources[uri] = Source(title=_as_text(entry.get("title")) or uri, uri=uri)
    return list(sources.values())


def normalize_scenario(raw: RawPayload, rng: random.Random | None = None) -> Scenario:
    """Coerce an untrusted research payload into a valid Scenario.

    Never raises: missing or malformed fields are replaced with defaults, so
    the result always has exactly two distinctly named characters with
    distinct gender-appropriate voices, and every line is spoken by one of them.
    """
    raw = _as_dict(raw)
    characters = _normalize_characters(raw.get("characters"), rng)
    first, second = (c.name for c in characters)

    script = [_normalize_line(line) for line in _as_list(raw.get("script"))]
    speaker_map = build_speaker_map([line.speaker for line in script], first, second)
    for line in script:
        line.speaker = speaker_map.get(line.speaker, first)

    return Scenario(
        context=_as_text(raw.get("context")),
        accent_profile=_as_text(raw.get("accentProfile")),
        characters=characters,
        script=script,
        sources=_normalize_sources(raw.get("sources")),
    )
