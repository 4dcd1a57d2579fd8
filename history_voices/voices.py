"""Voice pools and per-character voice resolution."""

import logging
import random

from history_voices.constants import (
    MALE_VOICES,
    FEMALE_VOICES,
    DEFAULT_MALE_VOICE,
    DEFAULT_FEMALE_VOICE,
    DEFAULT_GENDER,
)

logger = logging.getLogger(__name__)

VOICE_POOLS = {
    "male": MALE_VOICES,
    "female": FEMALE_VOICES,
}


def coerce_gender(value) -> str:
    """Anything other than exactly 'male' or 'female' becomes the default."""
    if isinstance(value, str) and value in VOICE_POOLS:
        return value
    return DEFAULT_GENDER


def voices_for_gender(gender: str) -> list[str]:
    """Prebuilt voices available for a gender."""
    return VOICE_POOLS[coerce_gender(gender)]


def default_voice(gender: str) -> str:
    return DEFAULT_FEMALE_VOICE if coerce_gender(gender) == "female" else DEFAULT_MALE_VOICE


def resolve_voice(
    voice,
    gender: str,
    taken: str | None = None,
    rng: random.Random | None = None,
) -> str:
    """Pick a voice for a character.

    Priority: stated voice (if valid for the gender and not taken) →
    random pick excluding the taken voice → random pick from the whole pool.
    """
    rng = rng or random
    pool = voices_for_gender(gender)

    if voice in pool and voice != taken:
        return voice

    available = [v for v in pool if v != taken]
    if available:
        chosen = rng.choice(available)
    else:
        # Only reachable if a pool ever shrinks to the taken voice
        chosen = rng.choice(pool)
    logger.debug("Reassigned voice %r -> %r (gender=%s, taken=%r)", voice, chosen, gender, taken)
    return chosen


def list_voices(gender: str | None = None) -> list[tuple[str, str]]:
    """(gender, voice) pairs, optionally filtered to one gender."""
    pairs = []
    for pool_gender, pool in VOICE_POOLS.items():
        if gender and gender != pool_gender:
            continue
        pairs.extend((pool_gender, v) for v in pool)
    return pairs
