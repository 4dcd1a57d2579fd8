"""Multi-speaker dialogue synthesis with a translated-text fallback."""

import asyncio
import base64
import logging
import re

from google.genai import types
from pydub import AudioSegment

from history_voices import gemini
from history_voices.constants import (
    CHANNEL_LABELS,
    CHANNELS,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
    TTS_MODEL,
)
from history_voices.errors import (
    AudioGenerationFailed,
    ContentBlocked,
    EmptyDialogue,
    NoAudioData,
)
from history_voices.models import Scenario
from history_voices.retry import with_retry

logger = logging.getLogger(__name__)

# *laughs*, [pauses]
_STAGE_DIRECTION_RE = re.compile(r"\*[^*]+\*|\[[^\]]*\]")


def decode_pcm(data: bytes, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS) -> AudioSegment:
    """Wrap signed 16-bit little-endian PCM in an AudioSegment.

    A trailing partial frame is dropped.
    """
    frame_size = SAMPLE_WIDTH * channels
    usable = len(data) - len(data) % frame_size
    return AudioSegment(
        data=bytes(data[:usable]),
        sample_width=SAMPLE_WIDTH,
        frame_rate=sample_rate,
        channels=channels,
    )


def channel_labels(scenario: Scenario) -> dict[str, str]:
    """Character display name → ASCII-safe speaker tag for the TTS model."""
    labels = {}
    for index, char in enumerate(scenario.characters):
        if index < len(CHANNEL_LABELS):
            label = CHANNEL_LABELS[index]
        else:
            label = f"Speaker {chr(ord('A') + index)}"
        labels[char.name] = label
    return labels


def build_speech_config(scenario: Scenario) -> types.SpeechConfig:
    """One prebuilt-voice config per speaker tag."""
    labels = channel_labels(scenario)
    return types.SpeechConfig(
        multi_speaker_voice_config=types.MultiSpeakerVoiceConfig(
            speaker_voice_configs=[
                types.SpeakerVoiceConfig(
                    speaker=labels[char.name],
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=char.voice),
                    ),
                )
                for char in scenario.characters
            ],
        ),
    )


def clean_line(text: str) -> str:
    """Strip stage directions the model shouldn't read aloud."""
    return _STAGE_DIRECTION_RE.sub("", text or "").strip()


def render_transcript(scenario: Scenario, use_translation: bool = False) -> str:
    """Flatten the script into 'Speaker A: ...' lines.

    Raises EmptyDialogue if no line has any speakable text.
    """
    labels = channel_labels(scenario)
    lines = []
    for line in scenario.script:
        text = clean_line(line.translation if use_translation else line.text)
        if text:
            label = labels.get(line.speaker, CHANNEL_LABELS[0])
            lines.append(f"{label}: {text}")

    if not lines:
        raise EmptyDialogue("Dialogue text is empty.")
    return "\n".join(lines)


def _payload_bytes(data) -> bytes:
    # The SDK hands back decoded bytes; raw REST payloads are base64 text
    if isinstance(data, str):
        return base64.b64decode(data)
    return bytes(data)


async def synthesize_transcript(transcript: str, speech_config, client, sleep=asyncio.sleep) -> bytes:
    """One TTS call; returns the raw PCM payload."""
    config = types.GenerateContentConfig(
        response_modalities=["AUDIO"],
        speech_config=speech_config,
        safety_settings=gemini.SAFETY_SETTINGS,
    )
    response = await with_retry(
        lambda: client.aio.models.generate_content(
            model=TTS_MODEL,
            contents=transcript,
            config=config,
        ),
        sleep=sleep,
    )

    inline = gemini.first_inline_data(response)
    if inline is None:
        reason = gemini.finish_reason(response)
        if reason == "SAFETY":
            raise ContentBlocked("Audio generation was blocked by safety filters.")
        # OTHER usually means the model can't speak the requested language
        raise NoAudioData(f"No audio data returned from the model (Finish Reason: {reason or 'UNKNOWN'}).")
    return _payload_bytes(inline.data)


async def generate_dialogue_audio(
    scenario: Scenario,
    client=None,
    decoder=decode_pcm,
    sleep=asyncio.sleep,
):
    """Synthesize the scenario's dialogue and decode it.

    Tries the native-language script first; on any failure, a payload that
    won't decode included, retries once with the English translations. Raises AudioGenerationFailed if both fail.
    """
    client = client or gemini.init_client()
    speech_config = build_speech_config(scenario)

    async def attempt(use_translation: bool):
        transcript = render_transcript(scenario, use_translation)
        payload = await synthesize_transcript(transcript, speech_config, client, sleep=sleep)
        return decoder(payload, SAMPLE_RATE, CHANNELS)

    try:
        return await attempt(use_translation=False)
    except Exception as e:
        logger.warning("Primary TTS generation failed (%s), falling back to English translation", e)
        try:
            return await attempt(use_translation=True)
        except Exception as fallback_error:
            raise AudioGenerationFailed(f"Audio generation failed: {fallback_error}") from fallback_error
