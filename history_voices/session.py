"""Top-level request lifecycle: research, then audio and portraits in parallel."""

import asyncio
import logging

from history_voices.avatars import generate_avatars
from history_voices.constants import (
    STATE_IDLE,
    STATE_RESEARCHING,
    STATE_GENERATING_MEDIA,
)
from history_voices.research import research_location_and_date
from history_voices.tts import decode_pcm, generate_dialogue_audio

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """Drives one submission at a time and holds the latest published result.

    State moves idle → researching → generating_media → idle. Any failure
    returns straight to idle with the error message recorded. A newer
    submission (or reset) supersedes in-flight ones: their results are dropped.
    """

    def __init__(self, client=None, decoder=decode_pcm, sleep=asyncio.sleep, on_state=None):
        self.client = client
        self.decoder = decoder
        self.sleep = sleep
        self.on_state = on_state
        self.state = STATE_IDLE
        self.scenario = None
        self.audio = None
        self.error: str | None = None
        self.last_exception: Exception | None = None
        self._generation = 0

    def _clear(self) -> None:
        self.scenario = None
        self.audio = None
        self.error = None
        self.last_exception = None

    def reset(self) -> None:
        """Discard the current result and any in-flight submission."""
        self._generation += 1
        self._clear()
        self._set_state(STATE_IDLE)

    def _set_state(self, state: str) -> None:
        self.state = state
        if self.on_state is not None:
            self.on_state(state)

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.warning("Dropping result of superseded submission #%d", generation)
            return False
        return True

    async def _media(self, scenario, generate_images: bool):
        if not generate_images:
            return scenario
        return await generate_avatars(scenario, client=self.client, sleep=self.sleep)

    async def submit(self, location: str, date: str, generate_images: bool = True) -> bool:
        """Run the full pipeline for one request.

        Returns True if this submission's result (or error) was published,
        False if a newer submission or reset superseded it.
        """
        self._generation += 1
        generation = self._generation
        self._clear()
        self._set_state(STATE_RESEARCHING)
        logger.info("Researching %s on %s", location, date)

        try:
            scenario = await research_location_and_date(
                location, date, client=self.client, sleep=self.sleep,
            )
            if not self._is_current(generation):
                return False

            self._set_state(STATE_GENERATING_MEDIA)
            logger.info("Generating media (images=%s)", generate_images)
            audio, enriched = await asyncio.gather(
                generate_dialogue_audio(
                    scenario, client=self.client, decoder=self.decoder, sleep=self.sleep,
                ),
                self._media(scenario, generate_images),
                return_exceptions=True,
            )
            if not self._is_current(generation):
                return False
            if isinstance(audio, BaseException):
                raise audio
            if isinstance(enriched, BaseException):
                # Portraits are optional; keep the un-enriched scenario
                logger.warning("Avatar stage failed: %s", enriched)
                enriched = scenario

        except Exception as e:
            if not self._is_current(generation):
                return False
            logger.error("Submission failed: %s", e)
            self._clear()
            self.error = str(e) or "An unexpected error occurred."
            self.last_exception = e
            self._set_state(STATE_IDLE)
            return True

        self.scenario = enriched
        self.audio = audio
        self._set_state(STATE_IDLE)
        return True
