"""Research a place and date into a normalized Scenario."""

import asyncio
import logging
import random
from urllib.parse import urlparse

from google.genai import types

from history_voices import gemini
from history_voices.constants import RESEARCH_MODEL, MALE_VOICES, FEMALE_VOICES
from history_voices.errors import (
    ContentBlocked,
    HistoryVoicesError,
    MalformedResponse,
    ResearchFailed,
    ServiceBusy,
)
from history_voices.extract import extract_json
from history_voices.models import Scenario, Source
from history_voices.normalizer import normalize_scenario
from history_voices.retry import is_quota_error, with_retry

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "The system is currently busy (Quota Exceeded). Please try again in a moment."


def build_research_prompt(location: str, date: str) -> str:
    """Prompt asking for grounded research plus a two-character scene as JSON."""
    return f"""
You are an expert historical researcher.
TASK: Research the historical context and atmosphere at this location: "{location}" on the date {date}.

STEP 1: RESEARCH
Use the Google Search tool to find verified details for this place and date:
events in the region, local customs, clothing, trade goods, and sensory details.

STEP 2: CREATE SCENARIO
Write a plausible, immersive historical fiction scene. If exact records are
missing, extrapolate from what is known about the era. Do not refuse.

Write a short, naturalistic dialogue (about 6-8 lines) between two fictional
characters present at that spot and time, in the NATIVE LANGUAGE of that place
and period, with an English translation for each line. Describe the accent or
dialect. Annotate obscure historical terms used in the dialogue.

Assign each character a gender ('male' or 'female') and a voice:
- Male voices: {MALE_VOICES}
- Female voices: {FEMALE_VOICES}
The voice must match the gender and the two characters must have DISTINCT voices.

Output strictly valid JSON with this structure:
{{
  "context": "Setting, time of day and historical atmosphere.",
  "accentProfile": "Accent or dialect description for the audio model.",
  "characters": [
    {{
      "name": "Character Name",
      "gender": "male",
      "voice": "VoiceName",
      "visualDescription": "Appearance, age and period clothing, for a portrait.",
      "bio": "Backstory, role and personality. No visual appearance."
    }}
  ],
  "script": [
    {{
      "speaker": "Character Name",
      "text": "The line in the NATIVE LANGUAGE.",
      "translation": "The English translation.",
      "annotations": [{{"phrase": "term in the native text", "explanation": "Brief context."}}]
    }}
  ]
}}
""".strip()


def extract_sources(response) -> list[Source]:
    """Web citations from grounding metadata, deduplicated by URI.

    The first title seen for a URI wins; untitled entries use the host name.
    """
    candidate = gemini.first_candidate(response)
    metadata = getattr(candidate, "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources = {}
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if not uri or uri in sources:
            continue
        title = getattr(web, "title", None) or urlparse(uri).hostname or uri
        sources[uri] = Source(title=title, uri=uri)
    return list(sources.values())


async def research_location_and_date(
    location: str,
    date: str,
    client=None,
    sleep=asyncio.sleep,
    rng: random.Random | None = None,
) -> Scenario:
    """Ask the research model for a scene and normalize it.

    Raises ServiceBusy on quota exhaustion, ContentBlocked / MalformedResponse
    for those specific failures, and ResearchFailed for everything else.
    """
    try:
        client = client or gemini.init_client()
        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
            safety_settings=gemini.SAFETY_SETTINGS,
        )
        prompt = build_research_prompt(location, date)

        response = await with_retry(
            lambda: client.aio.models.generate_content(
                model=RESEARCH_MODEL,
                contents=prompt,
                config=config,
            ),
            sleep=sleep,
        )

        if gemini.is_safety_block(response):
            raise ContentBlocked(
                "The request was blocked by safety filters. "
                "Please try a different location or topic."
            )

        sources = extract_sources(response)
        logger.info("Extracted %d grounding sources", len(sources))

        data = extract_json(response.text)
        if not data:
            raise MalformedResponse("Empty response from model.")

        scenario = normalize_scenario(data, rng=rng)
        scenario.sources = sources
        return scenario

    except Exception as e:
        logger.error("Research error: %s", e)
        if is_quota_error(e):
            raise ServiceBusy(BUSY_MESSAGE) from e
        if isinstance(e, HistoryVoicesError):
            raise
        raise ResearchFailed(f"Research failed: {e}") from e
