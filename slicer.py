"""
Core slicing logic — pure functions and value types, no GUI dependencies.

A job pairs a source image with an ordered list of cuts and a list of named
marks.  Each cut splits whichever region currently contains its point, so
the cuts carve the image into a tree of rectangles:

    +-------+---------------+
    |       |    mark 1     |
    |       +-------+-------+
    |       |       |       |
    +-------+-------+-------+

The partition is never stored; it is derived from the cuts on every read.
Exporting writes the region around each mark to ``<mark name>.png``.
"""

from __future__ import annotations

import enum
import io
import logging
import math
import os
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

EXPORT_SUFFIX = ".png"


class SliceError(ValueError):
    """A cut does not fall inside any region of the current partition."""


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------
class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in image coordinates (y grows downward)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def box(self) -> Tuple[float, float, float, float]:
        """Return (x0, y0, x1, y1), the PIL crop box convention."""
        return (self.x, self.y, self.max_x, self.max_y)

    def integral(self) -> "Rect":
        """Smallest rectangle on whole-pixel boundaries that encloses this one."""
        x0, y0 = math.floor(self.x), math.floor(self.y)
        x1, y1 = math.ceil(self.max_x), math.ceil(self.max_y)
        return Rect(x0, y0, x1 - x0, y1 - y0)


def contains(rect: Rect, point: Point) -> bool:
    """Half-open containment: lower edges inclusive, upper edges exclusive."""
    return rect.x <= point.x < rect.max_x and rect.y <= point.y < rect.max_y


def nearest(target: Point, candidates: Sequence[Point]) -> Optional[Point]:
    """Return the candidate closest to *target*, or None if there are none.

    Ties go to the earliest candidate in *candidates*.
    """
    best: Optional[Point] = None
    best_distance = 0.0
    for candidate in candidates:
        dx = candidate.x - target.x
        dy = candidate.y - target.y
        distance = dx * dx + dy * dy
        if best is None or distance < best_distance:
            best, best_distance = candidate, distance
    return best


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------
class Orientation(enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class Cut:
    """A single slice through whichever region contains *at*."""
    at: Point
    orientation: Orientation

    def __post_init__(self) -> None:
        object.__setattr__(self, "at", Point(*self.at))


@dataclass(frozen=True)
class Mark:
    """A named point selecting the region to export under *name*."""
    around: Point
    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "around", Point(*self.around))


@dataclass(frozen=True)
class Subimage:
    rect: Rect

    def contains(self, point: Point) -> bool:
        return contains(self.rect, point)


def split(rect: Rect, cut: Cut) -> Tuple[Rect, Rect]:
    """Divide *rect* at the cut's coordinate.

    A horizontal cut splits at ``at.y`` into (top, bottom); a vertical cut
    splits at ``at.x`` into (left, right).
    """
    if cut.orientation is Orientation.HORIZONTAL:
        top = cut.at.y - rect.y
        return (Rect(rect.x, rect.y, rect.width, top),
                Rect(rect.x, cut.at.y, rect.width, rect.height - top))
    left = cut.at.x - rect.x
    return (Rect(rect.x, rect.y, left, rect.height),
            Rect(cut.at.x, rect.y, rect.width - left, rect.height))


def partition(bounds: Rect, cuts: Sequence[Cut]) -> List[Subimage]:
    """Apply *cuts* in order to *bounds* and return the resulting regions.

    Each cut replaces the region containing its point with the two halves,
    in place, so the other regions keep their relative order.

    Raises SliceError if a cut lies outside every current region.
    """
    subimages = [Subimage(bounds)]
    for cut in cuts:
        index = _index_containing(subimages, cut.at)
        if index is None:
            raise SliceError(f"{cut} is not contained by any subimage of {bounds}")
        first, second = split(subimages[index].rect, cut)
        subimages[index:index + 1] = [Subimage(first), Subimage(second)]
    return subimages


def _index_containing(subimages: Sequence[Subimage], point: Point) -> Optional[int]:
    for i, sub in enumerate(subimages):
        if sub.contains(point):
            return i
    return None


def _remove_first(items: list, value) -> int:
    index = items.index(value)
    del items[index]
    return index


# ---------------------------------------------------------------------------
# Job
# ---------------------------------------------------------------------------
class Job:
    """An image together with the cuts and marks placed on it.

    The image is only ever read.  *cuts* and *selections* are exposed as
    tuples; change them through the add/remove methods.
    """

    def __init__(self, image: Image.Image, cuts: Sequence[Cut] = (),
                 selections: Sequence[Mark] = (), name: str = "",
                 path: Optional[str] = None) -> None:
        self.image = image
        self.name = name
        self.path = path
        self._cuts: List[Cut] = list(cuts)
        self._selections: List[Mark] = list(selections)

    @classmethod
    def from_path(cls, path: str) -> "Job":
        """Open the image at *path* as RGBA and start an empty job on it."""
        with Image.open(path) as img:
            image = img.convert("RGBA")
        name = os.path.splitext(os.path.basename(path))[0]
        return cls(image, name=name, path=path)

    def __repr__(self) -> str:
        return (f"Job(name={self.name!r}, size={self.image.size}, "
                f"cuts={len(self._cuts)}, selections={len(self._selections)})")

    @property
    def cuts(self) -> Tuple[Cut, ...]:
        return tuple(self._cuts)

    @property
    def selections(self) -> Tuple[Mark, ...]:
        return tuple(self._selections)

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.image.width, self.image.height)

    # -- mutation ----------------------------------------------------------
    def add_cut(self, cut: Cut, index: Optional[int] = None) -> None:
        """Append *cut*, or insert it at *index* when restoring a removal."""
        if index is None:
            self._cuts.append(cut)
        else:
            self._cuts.insert(index, cut)

    def remove_cut(self, cut: Cut) -> int:
        """Remove the first cut equal to *cut* and return where it was.

        Raises ValueError if there is no such cut.
        """
        return _remove_first(self._cuts, cut)

    def add_mark(self, mark: Mark, index: Optional[int] = None) -> None:
        if index is None:
            self._selections.append(mark)
        else:
            self._selections.insert(index, mark)

    def remove_mark(self, mark: Mark) -> int:
        return _remove_first(self._selections, mark)

    def rename_mark(self, mark: Mark, name: str) -> Mark:
        """Replace the first mark equal to *mark* with a renamed copy."""
        index = self._selections.index(mark)
        renamed = Mark(mark.around, name)
        self._selections[index] = renamed
        return renamed

    # -- queries -----------------------------------------------------------
    def subimages(self) -> List[Subimage]:
        """Derive the current partition.  Raises SliceError on a stray cut."""
        return partition(self.bounds, self._cuts)

    def nearest_cut(self, point: Point) -> Optional[Cut]:
        hit = nearest(Point(*point), [cut.at for cut in self._cuts])
        if hit is None:
            return None
        return next(cut for cut in self._cuts if cut.at == hit)

    def nearest_mark(self, point: Point) -> Optional[Mark]:
        hit = nearest(Point(*point), [mark.around for mark in self._selections])
        if hit is None:
            return None
        return next(mark for mark in self._selections if mark.around == hit)

    def crop(self, subimage: Subimage) -> Image.Image:
        """Copy the pixels of *subimage*, snapped to whole pixels, as RGBA."""
        rect = subimage.rect.integral()
        if rect.width <= 0 or rect.height <= 0:
            raise ValueError(f"cannot rasterize empty region {rect}")
        region = self.image.crop(rect.box)
        if region.mode != "RGBA":
            region = region.convert("RGBA")
        return region

    def export_selections(self, directory: str, dry_run: bool = False) -> "ExportResult":
        return export_selections(self, directory, dry_run)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ExportFailure:
    selection: Mark
    path: Optional[str]
    reason: str


@dataclass
class ExportResult:
    """Outcome of an export pass.

    *created* holds the written (or, on a dry run, would-be) paths in
    selection order; *failures* holds one entry per skipped selection.
    """
    created: List[str] = field(default_factory=list)
    failures: List[ExportFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def valid_export_name(name: str) -> bool:
    """True if *name* makes a plain file name directly inside the target directory."""
    return name not in ("", ".", "..") and not os.path.dirname(name)


def export_path(directory: str, selection: Mark) -> str:
    return os.path.join(directory, f"{selection.name}{EXPORT_SUFFIX}")


def export_selections(job: Job, directory: str, dry_run: bool = False) -> ExportResult:
    """Write the region around each selection to ``<name>.png`` in *directory*.

    Existing files are never overwritten.  Names that are not plain file
    names, and names already used earlier in the same pass, are refused.
    A selection that cannot be exported is logged, recorded in the result's
    failures, and skipped; the remaining selections are still exported.
    With *dry_run* nothing is rasterized or written, only the paths are
    computed.

    Raises SliceError if the cuts themselves are inconsistent.
    """
    result = ExportResult()
    subimages = job.subimages()
    claimed = set()

    def fail(selection: Mark, path: Optional[str], reason: str) -> None:
        logger.error("Skipping selection %r: %s", selection.name, reason)
        result.failures.append(ExportFailure(selection, path, reason))

    for selection in job.selections:
        index = _index_containing(subimages, selection.around)
        if index is None:
            fail(selection, None, f"{selection.around} is not contained by any subimage")
            continue

        if not valid_export_name(selection.name):
            fail(selection, None, f"{selection.name!r} is not a valid file name")
            continue

        path = export_path(directory, selection)
        if path in claimed:
            fail(selection, path, "duplicate name")
            continue
        claimed.add(path)

        if dry_run:
            result.created.append(path)
            continue

        try:
            data = _encode_png(job.crop(subimages[index]))
        except (ValueError, OSError, MemoryError) as e:
            fail(selection, path, f"failed to rasterize: {e}")
            continue

        try:
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError:
            fail(selection, path, "file already exists")
            continue
        except OSError as e:
            fail(selection, path, f"failed writing {len(data)} bytes: {e}")
            continue
        result.created.append(path)

    logger.info("Exported %d of %d selections%s", len(result.created),
                len(job.selections), " (dry run)" if dry_run else "")
    return result


def _encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
