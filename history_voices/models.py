"""Data models for a generated historical scenario."""

from dataclasses import dataclass, field
from typing import Any

# Untrusted research output, before normalization
RawPayload = dict[str, Any]


@dataclass
class Character:
    name: str
    gender: str = "male"           # "male" or "female"
    voice: str = ""                # populated by the normalizer
    visual_description: str = ""
    bio: str = ""
    avatar_url: str | None = None  # data: URI once a portrait was generated


@dataclass
class Annotation:
    phrase: str
    explanation: str = ""


@dataclass
class DialogueLine:
    speaker: str
    text: str = ""
    translation: str = ""
    annotations: list[Annotation] = field(default_factory=list)


@dataclass
class Source:
    title: str
    uri: str


@dataclass
class Scenario:
    context: str = ""
    accent_profile: str = ""
    characters: list[Character] = field(default_factory=list)
    script: list[DialogueLine] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)


def scenario_to_dict(scenario: Scenario) -> RawPayload:
    """Serialize a Scenario into the research payload's camelCase shape."""
    characters = []
    for char in scenario.characters:
        entry = {
            "name": char.name,
            "gender": char.gender,
            "voice": char.voice,
            "visualDescription": char.visual_description,
            "bio": char.bio,
        }
        if char.avatar_url is not None:
            entry["avatarUrl"] = char.avatar_url
        characters.append(entry)

    return {
        "context": scenario.context,
        "accentProfile": scenario.accent_profile,
        "characters": characters,
        "script": [
            {
                "speaker": line.speaker,
                "text": line.text,
                "translation": line.translation,
                "annotations": [
                    {"phrase": a.phrase, "explanation": a.explanation}
                    for a in line.annotations
                ],
            }
            for line in scenario.script
        ],
        "sources": [{"title": s.title, "uri": s.uri} for s in scenario.sources],
    }


def scenario_from_dict(data: RawPayload) -> Scenario:
    """Rebuild a Scenario that was saved with scenario_to_dict().

    No repair is attempted; untrusted payloads go through normalize_scenario().
    """
    return Scenario(
        context=data.get("context", ""),
        accent_profile=data.get("accentProfile", ""),
        characters=[
            Character(
                name=c["name"],
                gender=c.get("gender", "male"),
                voice=c.get("voice", ""),
                visual_description=c.get("visualDescription", ""),
                bio=c.get("bio", ""),
                avatar_url=c.get("avatarUrl"),
            )
            for c in data.get("characters", [])
        ],
        script=[
            DialogueLine(
                speaker=line["speaker"],
                text=line.get("text", ""),
                translation=line.get("translation", ""),
                annotations=[
                    Annotation(phrase=a["phrase"], explanation=a.get("explanation", ""))
                    for a in line.get("annotations", [])
                ],
            )
            for line in data.get("script", [])
        ],
        sources=[Source(title=s["title"], uri=s["uri"]) for s in data.get("sources", [])],
    )
