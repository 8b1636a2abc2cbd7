"""
Save and open jobs as JSON documents.

A document references its source image by path (relative to the document
when possible) and lists the cuts in order and the marks:

    {
      "version": 1,
      "image": "sprites.png",
      "image_size": {"width": 100, "height": 80},
      "cuts": [{"x": 50, "y": 0, "orientation": "vertical"}],
      "selections": [{"x": 10, "y": 10, "name": "left"}]
    }
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from slicer import Cut, Job, Mark, Orientation, Point

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".slicedimage"
FORMAT_VERSION = 1


class DocumentError(ValueError):
    """The document could not be read as a job."""


def job_to_dict(job: Job, image_path: str) -> Dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "image": image_path,
        "image_size": {"width": job.image.width, "height": job.image.height},
        "cuts": [{"x": c.at.x, "y": c.at.y, "orientation": c.orientation.value}
                 for c in job.cuts],
        "selections": [{"x": m.around.x, "y": m.around.y, "name": m.name}
                       for m in job.selections],
    }


def save_job(job: Job, path: str, image_path: Optional[str] = None) -> None:
    """Write *job* to *path*, pointing at *image_path* or the job's own file.

    Raises DocumentError if the job was not opened from a file and no
    *image_path* is given.
    """
    image_path = image_path or job.path
    if image_path is None:
        raise DocumentError(f"{job!r} has no image file to reference")
    directory = os.path.dirname(os.path.abspath(path))
    try:
        ref = os.path.relpath(os.path.abspath(image_path), directory)
    except ValueError:
        # Different drive on Windows.
        ref = os.path.abspath(image_path)
    data = job_to_dict(job, ref)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info("Saved %r to %s", job, path)


def load_job(path: str) -> Job:
    """Read the document at *path* and open the image it references.

    Raises DocumentError if the document is malformed, and OSError if
    either file cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise DocumentError(f"{path}: not a JSON document: {e}") from e

    if not isinstance(data, dict) or "image" not in data:
        raise DocumentError(f"{path}: missing image reference")
    version = data.get("version", FORMAT_VERSION)
    if not isinstance(version, int) or version > FORMAT_VERSION:
        raise DocumentError(f"{path}: unsupported document version {version}")

    try:
        cuts = [Cut(Point(float(c["x"]), float(c["y"])), Orientation(c["orientation"]))
                for c in data.get("cuts", [])]
        selections = [Mark(Point(float(m["x"]), float(m["y"])), str(m["name"]))
                      for m in data.get("selections", [])]
    except (KeyError, TypeError, ValueError) as e:
        raise DocumentError(f"{path}: malformed cut or selection: {e}") from e

    image_path = os.path.join(os.path.dirname(os.path.abspath(path)), data["image"])
    job = Job.from_path(image_path)
    for cut in cuts:
        job.add_cut(cut)
    for mark in selections:
        job.add_mark(mark)
    job.name = os.path.splitext(os.path.basename(path))[0]
    return job


def open_any(path: str) -> Job:
    """Open a saved document, or start a new job on a plain image file."""
    if path.endswith(DOCUMENT_SUFFIX):
        return load_job(path)
    return Job.from_path(path)
