"""CLI interface with subcommand routing."""

import argparse
import asyncio
import logging
import os
import random
import re
import shutil
import sys
from datetime import date as date_cls

from history_voices.constants import (
    DEFAULT_AUDIO_FORMAT,
    MAX_DATE,
    OUTPUT_DIR,
    PRESETS,
    STATE_RESEARCHING,
    STATE_GENERATING_MEDIA,
    VERSION,
)
from history_voices.models import Annotation, scenario_from_dict
from history_voices.gemini import get_api_key
from history_voices.session import SessionCoordinator
from history_voices.artifacts import (
    init_output_dir,
    is_exported,
    list_projects,
    load_artifact,
    save_scenario,
    slug_from_request,
)
from history_voices.exporter import export
from history_voices.voices import list_voices

STATE_MESSAGES = {
    STATE_RESEARCHING: "Analyzing historical sources...",
    STATE_GENERATING_MEDIA: "Generating voices and characters...",
}


def _check_api_key():
    """Verify a Gemini API key is configured."""
    if not get_api_key():
        print("Error: GEMINI_API_KEY (or GOOGLE_API_KEY) is not set.", file=sys.stderr)
        raise SystemExit(1)


def _check_ffmpeg():
    """Verify ffmpeg is installed (needed for MP3 export)."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required for --format mp3 but was not found.", file=sys.stderr)
        print("Install ffmpeg, or use --format wav.", file=sys.stderr)
        raise SystemExit(1)


def validate_date(value: str) -> str:
    """Accept ISO YYYY-MM-DD dates up to MAX_DATE. Raises ValueError."""
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", value or ""):
        raise ValueError(f"Invalid date '{value}': expected YYYY-MM-DD")
    try:
        date_cls.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid date '{value}': no such day")
    if value > MAX_DATE:
        raise ValueError(f"Date '{value}' is too recent: the latest supported date is {MAX_DATE}")
    return value


def mark_annotations(text: str, annotations: list[Annotation]) -> str:
    """Wrap annotated phrases in brackets, case-insensitively.

    Longer phrases win where phrases overlap.
    """
    phrases = sorted({a.phrase for a in annotations if a.phrase}, key=len, reverse=True)
    if not phrases:
        return text
    pattern = re.compile("|".join(re.escape(p) for p in phrases), re.IGNORECASE)
    return pattern.sub(lambda m: f"[{m.group(0)}]", text)


def _print_state(state: str) -> None:
    message = STATE_MESSAGES.get(state)
    if message:
        print(message)


def cmd_new(args):
    """Research a place and date and produce the dialogue."""
    _check_api_key()
    if args.format == "mp3":
        _check_ffmpeg()

    if args.random:
        label, location, date = random.choice(PRESETS)
        print(f"Preset: {label}")
    else:
        location, date = args.location, args.date
        if not location or not date:
            print("Error: 'new' requires <location> and <date> (or --random)", file=sys.stderr)
            raise SystemExit(1)

    try:
        validate_date(date)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    # Check if project already exists
    slug = slug_from_request(location, date)
    if os.path.exists(os.path.join(OUTPUT_DIR, slug, "scenario.json")):
        print(f"Error: Project '{slug}' already exists.", file=sys.stderr)
        print(f"Use 'history-voices show {slug}' to read it, or remove its directory to regenerate.", file=sys.stderr)
        raise SystemExit(1)

    coordinator = SessionCoordinator(on_state=_print_state)
    asyncio.run(coordinator.submit(location, date, generate_images=not args.no_images))

    if coordinator.error:
        print(f"Error: {coordinator.error}", file=sys.stderr)
        raise SystemExit(1)

    scenario = coordinator.scenario
    project_dir = init_output_dir(slug, output_base=OUTPUT_DIR)
    save_scenario(project_dir, scenario, location, date)

    request = {"location": location, "date": date}
    settings = {"images": not args.no_images, "format": args.format}
    output_path = export(
        coordinator.audio, project_dir, slug, scenario, request, settings, fmt=args.format,
    )

    portraits = sum(1 for c in scenario.characters if c.avatar_url)
    print(f"Created project: {slug}")
    for char in scenario.characters:
        print(f"  {char.name:<24} {char.gender:<7} → {char.voice}")
    print(f"{len(scenario.script)} lines, {len(scenario.sources)} sources, {portraits} portraits")
    print(f"Done: {output_path}")
    print(f"Run 'history-voices show {slug}' to read the transcript.")


def cmd_show(args):
    """Print a saved scenario with its annotations."""
    project_dir = os.path.join(OUTPUT_DIR, args.slug)
    data = load_artifact(project_dir, "scenario.json")
    if not data:
        print(f"Error: Project '{args.slug}' not found.", file=sys.stderr)
        raise SystemExit(1)

    request = data.get("request", {})
    scenario = scenario_from_dict(data["scenario"])

    print(f"{request.get('location', '?')}, {request.get('date', '?')}")
    print()
    print(scenario.context)
    if scenario.accent_profile:
        print(f"Accent: {scenario.accent_profile}")
    print()
    print("Characters:")
    for char in scenario.characters:
        portrait = f" [{char.avatar_url}]" if char.avatar_url else ""
        print(f"  {char.name} ({char.gender}, {char.voice}){portrait}")
        if char.bio:
            print(f"    {char.bio}")
    print()
    print("Script:")
    for line in scenario.script:
        print(f"  {line.speaker}: {mark_annotations(line.text, line.annotations)}")
        if line.translation:
            print(f"    ({line.translation})")
        for annotation in line.annotations:
            print(f"    * {annotation.phrase}: {annotation.explanation}")
    if scenario.sources:
        print()
        print("Sources:")
        for source in scenario.sources:
            print(f"  {source.title} <{source.uri}>")


def cmd_list(args):
    """List all projects."""
    projects = list_projects(output_base=OUTPUT_DIR)
    if not projects:
        print("No projects found.")
        return
    print("Projects:")
    for name in projects:
        marker = "[done]" if is_exported(os.path.join(OUTPUT_DIR, name)) else "[----]"
        print(f"  {marker} {name}")


def cmd_presets(args):
    """List curated locations and dates."""
    print("Presets:")
    for label, location, date in PRESETS:
        print(f"  {label:<26} {date}  {location}")


def cmd_voices(args):
    """List available voices."""
    print("Available voices:")
    for gender, voice in list_voices(args.gender):
        print(f"  {voice:<8} ({gender})")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="history-voices",
        description="Voices from History: hear imagined conversations from the past",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # new
    new_parser = subparsers.add_parser("new", help="Generate a dialogue for a place and date")
    new_parser.add_argument("location", nargs="?", help="Address, landmark, or coordinates")
    new_parser.add_argument("date", nargs="?", help=f"YYYY-MM-DD, no later than {MAX_DATE}")
    new_parser.add_argument("--random", action="store_true", help="Use a random preset")
    new_parser.add_argument("--no-images", action="store_true", help="Skip character portraits")
    new_parser.add_argument("--format", choices=["wav", "mp3"], default=DEFAULT_AUDIO_FORMAT,
                            help="Audio output format (mp3 requires ffmpeg)")
    new_parser.set_defaults(func=cmd_new)

    # show
    show_parser = subparsers.add_parser("show", help="Print a saved scenario")
    show_parser.add_argument("slug", help="Project slug")
    show_parser.set_defaults(func=cmd_show)

    # list
    list_parser = subparsers.add_parser("list", help="List all projects")
    list_parser.set_defaults(func=cmd_list)

    # presets
    presets_parser = subparsers.add_parser("presets", help="List preset locations and dates")
    presets_parser.set_defaults(func=cmd_presets)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--gender", choices=["male", "female"], help="Only this gender's voices")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
