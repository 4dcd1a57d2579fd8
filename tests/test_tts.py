"""Tests for TTS module (Layer 1c)."""

import asyncio
import base64

import pytest
from pydub import AudioSegment

from history_voices.constants import TTS_MODEL
from history_voices.errors import AudioGenerationFailed, ContentBlocked, EmptyDialogue, NoAudioData
from history_voices.models import DialogueLine
from history_voices.tts import (
    build_speech_config,
    channel_labels,
    clean_line,
    decode_pcm,
    generate_dialogue_audio,
    render_transcript,
    synthesize_transcript,
)
from conftest import make_client, make_response


def _recording_decoder():
    """Decoder that records its input and returns a marker."""
    seen = []

    def decoder(data, sample_rate, channels):
        seen.append((data, sample_rate, channels))
        return f"audio:{data.decode()}"

    return decoder, seen


# --- Transcript rendering ---

def test_channel_labels(sample_scenario):
    assert channel_labels(sample_scenario) == {"Ali": "Speaker A", "Fatima": "Speaker B"}


@pytest.mark.parametrize("text, expected", [
    ("Salam *bows*", "Salam"),
    ("[laughs] Hello there", "Hello there"),
    ("  plain  ", "plain"),
    ("*sighs*", ""),
])
def test_clean_line(text, expected):
    """Stage directions are not read aloud."""
    assert clean_line(text) == expected


def test_render_native(sample_scenario):
    assert render_transcript(sample_scenario) == "Speaker A: Salam\nSpeaker B: Wa alaykum"


def test_render_translation(sample_scenario):
    transcript = render_transcript(sample_scenario, use_translation=True)
    assert transcript == "Speaker A: Peace\nSpeaker B: And upon you"


def test_render_skips_blank_lines(sample_scenario):
    sample_scenario.script.append(DialogueLine(speaker="Fatima", text="*nods*"))
    assert render_transcript(sample_scenario).count("\n") == 1


def test_render_empty_raises(sample_scenario):
    sample_scenario.script = [DialogueLine(speaker="Ali", text="  ")]
    with pytest.raises(EmptyDialogue, match="empty"):
        render_transcript(sample_scenario)


def test_speech_config_maps_voices(sample_scenario):
    config = build_speech_config(sample_scenario)
    speakers = config.multi_speaker_voice_config.speaker_voice_configs
    assert [(s.speaker, s.voice_config.prebuilt_voice_config.voice_name) for s in speakers] == [
        ("Speaker A", "Fenrir"),
        ("Speaker B", "Aoede"),
    ]


# --- PCM decoding ---

def test_decode_pcm(pcm_bytes):
    """100ms of 24kHz mono PCM decodes to a 100ms AudioSegment."""
    audio = decode_pcm(pcm_bytes)
    assert isinstance(audio, AudioSegment)
    assert audio.frame_rate == 24000
    assert audio.channels == 1
    assert len(audio) == 100


def test_decode_pcm_drops_partial_frame(pcm_bytes):
    audio = decode_pcm(pcm_bytes + b"\x01")
    assert len(audio.raw_data) == len(pcm_bytes)


# --- Synthesis ---

def test_synthesize_returns_payload(fake_sleep, sample_scenario):
    client = make_client(make_response(inline=b"pcm"))
    config = build_speech_config(sample_scenario)
    payload = asyncio.run(synthesize_transcript("Speaker A: hi", config, client, sleep=fake_sleep))
    assert payload == b"pcm"
    call = client.aio.models.calls[0]
    assert call["model"] == TTS_MODEL
    assert call["config"].response_modalities == ["AUDIO"]


def test_synthesize_decodes_base64_text(fake_sleep, sample_scenario):
    client = make_client(make_response(inline=base64.b64encode(b"pcm").decode()))
    config = build_speech_config(sample_scenario)
    payload = asyncio.run(synthesize_transcript("Speaker A: hi", config, client, sleep=fake_sleep))
    assert payload == b"pcm"


def test_synthesize_no_audio(fake_sleep, sample_scenario):
    """Missing audio reports the finish reason."""
    client = make_client(make_response(finish_reason="OTHER"))
    config = build_speech_config(sample_scenario)
    with pytest.raises(NoAudioData, match="OTHER"):
        asyncio.run(synthesize_transcript("Speaker A: hi", config, client, sleep=fake_sleep))


def test_synthesize_safety(fake_sleep, sample_scenario):
    client = make_client(make_response(finish_reason="SAFETY"))
    config = build_speech_config(sample_scenario)
    with pytest.raises(ContentBlocked):
        asyncio.run(synthesize_transcript("Speaker A: hi", config, client, sleep=fake_sleep))


def test_generate_native_success(fake_sleep, sample_scenario):
    """Native text succeeds on the first try; one call only."""
    decoder, seen = _recording_decoder()
    client = make_client(make_response(inline=b"native"))
    audio = asyncio.run(generate_dialogue_audio(sample_scenario, client=client, decoder=decoder, sleep=fake_sleep))
    assert audio == "audio:native"
    assert seen == [(b"native", 24000, 1)]
    assert len(client.aio.models.calls) == 1


def test_generate_falls_back_to_translation(fake_sleep, sample_scenario):
    """When native synthesis yields nothing, the translated script is spoken."""
    decoder, seen = _recording_decoder()
    client = make_client(make_response(finish_reason="OTHER"), make_response(inline=b"english"))
    audio = asyncio.run(generate_dialogue_audio(sample_scenario, client=client, decoder=decoder, sleep=fake_sleep))
    assert audio == "audio:english"
    calls = client.aio.models.calls
    assert "Salam" in calls[0]["contents"]
    assert calls[1]["contents"] == "Speaker A: Peace\nSpeaker B: And upon you"


def test_generate_fallback_fails(fake_sleep, sample_scenario):
    """Both attempts failing raises AudioGenerationFailed with the fallback's message."""
    client = make_client(RuntimeError("native broke"), RuntimeError("english broke"))
    with pytest.raises(AudioGenerationFailed, match="english broke"):
        asyncio.run(generate_dialogue_audio(sample_scenario, client=client, sleep=fake_sleep))


def test_generate_empty_translation_fails(fake_sleep, sample_scenario):
    """No translations to fall back on: the empty-dialogue error surfaces."""
    for line in sample_scenario.script:
        line.translation = ""
    client = make_client(RuntimeError("native broke"))
    with pytest.raises(AudioGenerationFailed, match="empty"):
        asyncio.run(generate_dialogue_audio(sample_scenario, client=client, sleep=fake_sleep))


def test_generate_undecodable_native_falls_back(fake_sleep, sample_scenario):
    """A native payload that fails to decode triggers the translated attempt."""
    def decoder(data, sample_rate, channels):
        if data == b"garbled":
            raise ValueError("bad PCM")
        return f"audio:{data.decode()}"

    client = make_client(make_response(inline=b"garbled"), make_response(inline=b"english"))
    audio = asyncio.run(generate_dialogue_audio(sample_scenario, client=client, decoder=decoder, sleep=fake_sleep))
    assert audio == "audio:english"
    assert len(client.aio.models.calls) == 2


def test_generate_undecodable_both_fails(fake_sleep, sample_scenario):
    def decoder(data, sample_rate, channels):
        raise ValueError("bad PCM")

    client = make_client(make_response(inline=b"one"), make_response(inline=b"two"))
    with pytest.raises(AudioGenerationFailed, match="bad PCM"):
        asyncio.run(generate_dialogue_audio(sample_scenario, client=client, decoder=decoder, sleep=fake_sleep))
