"""Export the dialogue audio with a provenance manifest."""

import json
import os
from datetime import datetime, timezone

from pydub import AudioSegment

from history_voices.constants import DEFAULT_AUDIO_FORMAT, OUTPUT_BITRATE, VERSION
from history_voices.models import Scenario


def export(
    audio: AudioSegment,
    project_dir: str,
    slug: str,
    scenario: Scenario,
    request: dict,
    settings: dict,
    fmt: str = DEFAULT_AUDIO_FORMAT,
) -> str:
    """Export dialogue audio as WAV or tagged MP3.

    Creates:
      - output/<slug>/final/<slug>.<fmt> (the dialogue)
      - output/<slug>/final/output.json (provenance manifest)

    Returns path to the audio file.
    """
    final_dir = os.path.join(project_dir, "final")
    os.makedirs(final_dir, exist_ok=True)

    output_path = os.path.join(final_dir, f"{slug}.{fmt}")
    names = [c.name for c in scenario.characters]

    if fmt == "mp3":
        tags = {
            "title": f"{request.get('location', '')}, {request.get('date', '')}",
            "artist": " & ".join(names),
        }
        audio.export(output_path, format="mp3", bitrate=OUTPUT_BITRATE, tags=tags)
    else:
        audio.export(output_path, format=fmt)

    manifest = {
        "project": slug,
        "request": request,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "cast": {
            c.name: {"gender": c.gender, "voice": c.voice, "avatar": c.avatar_url is not None}
            for c in scenario.characters
        },
        "sources": [{"title": s.title, "uri": s.uri} for s in scenario.sources],
        "settings": settings,
        "stats": {
            "lines": len(scenario.script),
            "duration_seconds": round(len(audio) / 1000, 1),
            "characters": len(names),
        },
    }

    manifest_path = os.path.join(final_dir, "output.json")
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)

    return output_path
