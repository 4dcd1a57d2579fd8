"""Project directories, JSON artifacts and portrait files."""

import base64
import json
import mimetypes
import os
import re

from history_voices.constants import OUTPUT_DIR
from history_voices.models import Scenario, scenario_to_dict

_DATA_URI_RE = re.compile(r"^data:([\w.+-]+/[\w.+-]+);base64,(.*)$", re.DOTALL)


def slugify(text: str) -> str:
    """Replace non-alphanumeric runs with underscores, lowercase, strip edges."""
    return re.sub(r"[^a-zA-Z0-9]+", "_", text).strip("_").lower()


def slug_from_request(location: str, date: str) -> str:
    """Project slug for a submission.

    ("Djinguereber Mosque, Timbuktu", "1324-10-15") → "djinguereber_mosque_timbuktu_1324_10_15"
    """
    return slugify(f"{location} {date}") or "scenario"


def init_output_dir(slug: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/ and its subdirectories.

    Returns the project directory path.
    """
    project_dir = os.path.join(output_base, slug)
    for subdir in ["avatars", "final"]:
        os.makedirs(os.path.join(project_dir, subdir), exist_ok=True)
    return project_dir


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename.

    Returns path to the written file.
    """
    path = os.path.join(project_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if file doesn't exist."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def decode_data_uri(uri: str) -> tuple[str, bytes] | None:
    """(mime_type, payload) for a base64 data: URI, None for anything else."""
    match = _DATA_URI_RE.match(uri or "")
    if not match:
        return None
    return match.group(1), base64.b64decode(match.group(2))


def save_avatars(project_dir: str, scenario: Scenario) -> dict[str, str]:
    """Write each character's portrait under avatars/.

    Returns character name → path relative to project_dir.
    """
    avatar_dir = os.path.join(project_dir, "avatars")
    os.makedirs(avatar_dir, exist_ok=True)

    saved = {}
    for index, char in enumerate(scenario.characters, start=1):
        decoded = decode_data_uri(char.avatar_url)
        if decoded is None:
            continue
        mime_type, payload = decoded
        ext = mimetypes.guess_extension(mime_type) or ".png"
        filename = f"{index}_{slugify(char.name) or 'character'}{ext}"
        with open(os.path.join(avatar_dir, filename), "wb") as f:
            f.write(payload)
        saved[char.name] = os.path.join("avatars", filename)
    return saved


def save_scenario(project_dir: str, scenario: Scenario, location: str, date: str) -> str:
    """Write scenario.json; inline portraits are swapped for their file paths."""
    avatars = save_avatars(project_dir, scenario)
    data = scenario_to_dict(scenario)
    for entry in data["characters"]:
        if entry["name"] in avatars:
            entry["avatarUrl"] = avatars[entry["name"]]

    return write_artifact(project_dir, "scenario.json", {
        "request": {"location": location, "date": date},
        "scenario": data,
    })


def is_exported(project_dir: str) -> bool:
    final_dir = os.path.join(project_dir, "final")
    if not os.path.isdir(final_dir):
        return False
    return any(not f.endswith(".json") for f in os.listdir(final_dir))


def list_projects(output_base: str = OUTPUT_DIR) -> list[str]:
    """List all project slugs under the output directory.

    Returns sorted list of directory names that contain a scenario.json.
    """
    if not os.path.exists(output_base):
        return []
    projects = []
    for name in os.listdir(output_base):
        project_dir = os.path.join(output_base, name)
        if os.path.isdir(project_dir):
            if os.path.exists(os.path.join(project_dir, "scenario.json")):
                projects.append(name)
    return sorted(projects)
