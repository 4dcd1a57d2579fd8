"""Character portraits; failures degrade to no image."""

import asyncio
import base64
import dataclasses
import logging

from google.genai import types

from history_voices import gemini
from history_voices.constants import AVATAR_RETRY_COUNT, DEFAULT_IMAGE_MIME, IMAGE_MODEL
from history_voices.models import Character, Scenario
from history_voices.retry import with_retry

logger = logging.getLogger(__name__)


def build_avatar_prompt(description: str, context: str) -> str:
    return (
        "Generate a photorealistic, historically accurate headshot portrait of a person "
        f'matching this description: "{description}".\n'
        f"Context for clothing and style: {context}.\n"
        "The image should be a close-up character portrait with neutral or subtle expression.\n"
        "High quality, authentic details."
    )


def to_data_uri(data, mime_type: str | None = None) -> str:
    if isinstance(data, str):
        encoded = data
    else:
        encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_IMAGE_MIME};base64,{encoded}"


async def generate_character_avatar(
    description: str,
    context: str,
    client=None,
    sleep=asyncio.sleep,
) -> str | None:
    """Generate one portrait as a data: URI, or None on any failure."""
    try:
        client = client or gemini.init_client()
        config = types.GenerateContentConfig(safety_settings=gemini.SAFETY_SETTINGS)
        prompt = build_avatar_prompt(description, context)
        response = await with_retry(
            lambda: client.aio.models.generate_content(
                model=IMAGE_MODEL,
                contents=prompt,
                config=config,
            ),
            retries=AVATAR_RETRY_COUNT,
            sleep=sleep,
        )
        inline = gemini.first_inline_data(response)
        if inline is None:
            logger.warning("Image generation returned no image (Finish Reason: %s)", gemini.finish_reason(response))
            return None
        return to_data_uri(inline.data, getattr(inline, "mime_type", None))
    except Exception as e:
        logger.warning("Image generation failed: %s", e)
        return None


async def _with_avatar(char: Character, context: str, client, sleep) -> Character:
    if not char.visual_description:
        return char
    url = await generate_character_avatar(char.visual_description, context, client=client, sleep=sleep)
    return dataclasses.replace(char, avatar_url=url)


async def generate_avatars(scenario: Scenario, client=None, sleep=asyncio.sleep) -> Scenario:
    """Return a copy of scenario with a portrait per described character.

    Portraits are generated concurrently; one failing leaves the other intact.
    """
    characters = await asyncio.gather(*(
        _with_avatar(char, scenario.context, client, sleep) for char in scenario.characters
    ))
    return dataclasses.replace(scenario, characters=list(characters))
