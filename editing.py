"""
Interactive editing of a job: turns a clicked point plus the current
editing mode into a model change, and records an inverse for every change
so it can be undone.

The editor knows nothing about windows or events.  The view feeds it
points and supplies callbacks for renaming marks and redrawing.
"""

from __future__ import annotations

import enum
import logging
import math
from typing import Callable, List, Optional, Protocol, Tuple

import preview
from slicer import Cut, Job, Mark, Orientation, Point, Rect, contains

logger = logging.getLogger(__name__)

MAX_UNDO = 50


class EditingMode(enum.Enum):
    NOT_EDITING = "not_editing"
    ADDING_HORIZONTAL_CUT = "adding_horizontal_cut"
    ADDING_VERTICAL_CUT = "adding_vertical_cut"
    ADDING_MARK = "adding_mark"
    DELETING_CUT = "deleting_cut"
    DELETING_MARK = "deleting_mark"

    @classmethod
    def adding_cut(cls, orientation: Orientation) -> "EditingMode":
        if orientation is Orientation.HORIZONTAL:
            return cls.ADDING_HORIZONTAL_CUT
        return cls.ADDING_VERTICAL_CUT

    @property
    def cut_orientation(self) -> Optional[Orientation]:
        """Orientation of the cuts placed in this mode, if it adds cuts."""
        return {
            EditingMode.ADDING_HORIZONTAL_CUT: Orientation.HORIZONTAL,
            EditingMode.ADDING_VERTICAL_CUT: Orientation.VERTICAL,
        }.get(self)


# ---------------------------------------------------------------------------
# Undo
# ---------------------------------------------------------------------------
class UndoRecorder(Protocol):
    def record(self, action_name: str, undo: Callable[[], None]) -> None:
        ...


class UndoStack:
    """Bounded undo/redo history of inverse actions.

    Inverses recorded while undoing land on the redo stack, and the other
    way round, so an undone action can be redone.
    """

    def __init__(self, max_depth: int = MAX_UNDO) -> None:
        self.max_depth = max_depth
        self._undo: List[Tuple[str, Callable[[], None]]] = []
        self._redo: List[Tuple[str, Callable[[], None]]] = []
        self._undoing = False
        self._redoing = False
        self._action_name = ""

    def record(self, action_name: str, undo: Callable[[], None]) -> None:
        if not self._undoing and not self._redoing:
            self._action_name = action_name
        stack = self._redo if self._undoing else self._undo
        stack.append((self._action_name, undo))
        if len(stack) > self.max_depth:
            stack.pop(0)
        if not self._undoing and not self._redoing:
            self._redo.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_action_name(self) -> Optional[str]:
        return self._undo[-1][0] if self._undo else None

    @property
    def redo_action_name(self) -> Optional[str]:
        return self._redo[-1][0] if self._redo else None

    def undo(self) -> bool:
        if not self._undo:
            return False
        name, action = self._undo.pop()
        self._action_name = name
        self._undoing = True
        try:
            action()
        finally:
            self._undoing = False
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        name, action = self._redo.pop()
        self._action_name = name
        self._redoing = True
        try:
            action()
        finally:
            self._redoing = False
        return True

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------
# Called with the mark and its label bounds; returns the new name, or None
# if the user kept the old one.
RenameHandler = Callable[[Mark, Rect], Optional[str]]


def _round(value: float) -> float:
    """Round half away from zero."""
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _snap(point: Point, bounds: Rect) -> Point:
    """Round *point* to whole pixels, keeping it on a pixel inside *bounds*."""
    x = min(max(_round(point.x), bounds.x), bounds.max_x - 1)
    y = min(max(_round(point.y), bounds.y), bounds.max_y - 1)
    return Point(x, y)


class Editor:
    """Applies clicks to a job according to the current editing mode.

    Adding modes stay active across clicks; deleting modes drop back to
    NOT_EDITING after one click.
    """

    def __init__(self, job: Job, undo: Optional[UndoRecorder] = None,
                 rename: Optional[RenameHandler] = None,
                 on_change: Optional[Callable[[], None]] = None,
                 on_mode_change: Optional[Callable[["Editor"], None]] = None,
                 editable: bool = True) -> None:
        self.job = job
        self.undo = undo
        self.rename = rename
        self.on_change = on_change
        self.on_mode_change = on_mode_change
        self.editable = editable
        self.pointer: Optional[Point] = None
        self._mode = EditingMode.NOT_EDITING

    @property
    def mode(self) -> EditingMode:
        return self._mode

    @mode.setter
    def mode(self, mode: EditingMode) -> None:
        if not self.editable and mode is not EditingMode.NOT_EDITING:
            logger.info("Not editable, refusing change to mode %s", mode.name)
            mode = EditingMode.NOT_EDITING
        logger.debug("Editing mode: %s", mode.name)
        self._mode = mode
        if self.on_mode_change is not None:
            self.on_mode_change(self)

    # -- hover -------------------------------------------------------------
    def hover(self, point: Optional[Point]) -> None:
        self.pointer = None if point is None else Point(*point)

    @property
    def highlighted_mark(self) -> Optional[Mark]:
        if self.pointer is None:
            return None
        return self.job.nearest_mark(self.pointer)

    @property
    def victim_cut(self) -> Optional[Cut]:
        """The cut a click would delete, while in DELETING_CUT mode."""
        if self.pointer is None or self._mode is not EditingMode.DELETING_CUT:
            return None
        return self.job.nearest_cut(self.pointer)

    # -- clicks ------------------------------------------------------------
    def click(self, point: Point) -> EditingMode:
        """Handle a click at *point* and return the mode now in effect."""
        point = Point(*point)
        self.pointer = point
        mode = self._mode

        orientation = mode.cut_orientation
        if orientation is not None:
            self.add_cut(Cut(_snap(point, self.job.bounds), orientation))
            return mode

        if mode is EditingMode.NOT_EDITING:
            mark = self.highlighted_mark
            if mark is not None and contains(preview.label_rect(mark), point):
                self.request_rename(mark)
            return mode

        if mode is EditingMode.ADDING_MARK:
            mark = Mark(point, f"mark {len(self.job.selections) + 1}")
            self.add_mark(mark)
            self.request_rename(mark)
            return mode

        if mode is EditingMode.DELETING_CUT:
            cut = self.job.nearest_cut(point)
            if cut is not None:
                self.remove_cut(cut)
        else:
            mark = self.job.nearest_mark(point)
            if mark is not None:
                self.remove_mark(mark)
        self.mode = EditingMode.NOT_EDITING
        return self._mode

    def request_rename(self, mark: Mark) -> bool:
        """Ask the rename handler for a new name; True if *mark* was renamed."""
        if self.rename is None:
            return False
        name = self.rename(mark, preview.label_rect(mark))
        if name is None or name == mark.name:
            return False
        self.rename_mark(mark, name)
        return True

    # -- undoable mutations ------------------------------------------------
    def _record(self, action_name: str, undo: Callable[[], None]) -> None:
        if self.undo is not None:
            self.undo.record(action_name, undo)
        if self.on_change is not None:
            self.on_change()

    def add_cut(self, cut: Cut, index: Optional[int] = None) -> None:
        self.job.add_cut(cut, index)
        self._record("Add Cut", lambda: self.remove_cut(cut))

    def remove_cut(self, cut: Cut) -> None:
        index = self.job.remove_cut(cut)
        self._record("Delete Cut", lambda: self.add_cut(cut, index))

    def add_mark(self, mark: Mark, index: Optional[int] = None) -> None:
        self.job.add_mark(mark, index)
        self._record("Add Mark", lambda: self.remove_mark(mark))

    def remove_mark(self, mark: Mark) -> None:
        index = self.job.remove_mark(mark)
        self._record("Delete Mark", lambda: self.add_mark(mark, index))

    def rename_mark(self, mark: Mark, name: str) -> Mark:
        renamed = self.job.rename_mark(mark, name)
        self._record("Rename Mark", lambda: self.rename_mark(renamed, mark.name))
        return renamed
