"""
File I/O for curve scenes, strokes and SVG output.
"""

import json
import os

from freehandmap.models import Scene
from freehandmap.tracer import get_tracer


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_json(data, path, indent=2):
    """
    Save a dictionary or Pydantic model to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def load_scene(path):
    """
    Load a scene file. A missing file yields an empty scene.

    Raises pydantic.ValidationError for malformed content.
    """
    if not os.path.exists(path):
        return Scene()

    with open(path, "r", encoding="utf-8") as f:
        return Scene.model_validate(json.load(f))


def save_scene(scene, path):
    save_json(scene, path)


def load_points(path):
    """
    Load a raw pointer stroke.

    Accepts either a bare list of samples or {"points": [...]}; samples are
    {"x": .., "y": ..} objects or [x, y] pairs.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("points", [])

    return data


def save_svg(svg_content, path):
    """
    Save SVG content to file.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(svg_content, "tostring"):
        content = svg_content.tostring()
    else:
        content = str(svg_content)

    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    tracer.event(f"Saved SVG: {path}")
