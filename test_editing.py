"""Unit tests for editing.py — run with: python -m pytest test_editing.py"""

import pytest
from PIL import Image

import preview
from editing import Editor, EditingMode, UndoStack
from slicer import Cut, Job, Mark, Orientation, Point, Rect

H = Orientation.HORIZONTAL
V = Orientation.VERTICAL


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _make_job(**kwargs) -> Job:
    return Job(Image.new("RGBA", (100, 100), (255, 255, 255, 255)), **kwargs)


class _Renamer:
    """Rename handler that answers with a fixed name and remembers its calls."""

    def __init__(self, answer=None):
        self.answer = answer
        self.calls = []

    def __call__(self, mark, rect):
        self.calls.append((mark, rect))
        return self.answer


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------
class TestEditingMode:
    def test_adding_cut(self):
        assert EditingMode.adding_cut(H) is EditingMode.ADDING_HORIZONTAL_CUT
        assert EditingMode.adding_cut(V) is EditingMode.ADDING_VERTICAL_CUT

    def test_cut_orientation(self):
        assert EditingMode.ADDING_VERTICAL_CUT.cut_orientation is V
        assert EditingMode.ADDING_MARK.cut_orientation is None


# ---------------------------------------------------------------------------
# Clicks
# ---------------------------------------------------------------------------
class TestAddingCut:
    def test_rounds_and_stays(self):
        job = _make_job()
        ed = Editor(job)
        ed.mode = EditingMode.ADDING_VERTICAL_CUT
        assert ed.click(Point(10.4, 20.6)) is EditingMode.ADDING_VERTICAL_CUT
        assert ed.click(Point(60.5, 2.5)) is EditingMode.ADDING_VERTICAL_CUT
        assert job.cuts == (Cut(Point(10, 21), V), Cut(Point(61, 3), V))

    def test_rounding_stays_inside_image(self):
        job = _make_job()
        ed = Editor(job)
        ed.mode = EditingMode.ADDING_VERTICAL_CUT
        ed.click(Point(99.6, 10))
        ed.mode = EditingMode.ADDING_HORIZONTAL_CUT
        ed.click(Point(10, 99.5))
        assert job.cuts == (Cut(Point(99, 10), V), Cut(Point(10, 99), H))
        assert len(job.subimages()) == 3

    def test_horizontal(self):
        job = _make_job()
        ed = Editor(job)
        ed.mode = EditingMode.adding_cut(H)
        ed.click(Point(5, 50))
        assert [s.rect for s in job.subimages()] == [Rect(0, 0, 100, 50), Rect(0, 50, 100, 50)]


class TestAddingMark:
    def test_first_mark_name(self):
        job = _make_job()
        ed = Editor(job)
        ed.mode = EditingMode.ADDING_MARK
        assert ed.click(Point(5, 5)) is EditingMode.ADDING_MARK
        assert job.selections == (Mark(Point(5, 5), "mark 1"),)

    def test_counter_uses_selection_count(self):
        job = _make_job(selections=[Mark(Point(1, 1), "a"), Mark(Point(2, 2), "b")])
        ed = Editor(job)
        ed.mode = EditingMode.ADDING_MARK
        ed.click(Point(50, 50))
        assert job.selections[-1].name == "mark 3"

    def test_asks_for_name(self):
        job = _make_job()
        renamer = _Renamer("icon")
        ed = Editor(job, rename=renamer)
        ed.mode = EditingMode.ADDING_MARK
        ed.click(Point(40, 40))
        assert renamer.calls[0][0] == Mark(Point(40, 40), "mark 1")
        assert renamer.calls[0][1] == preview.label_rect(Mark(Point(40, 40), "mark 1"))
        assert job.selections == (Mark(Point(40, 40), "icon"),)

    def test_rename_declined(self):
        job = _make_job()
        ed = Editor(job, rename=_Renamer(None))
        ed.mode = EditingMode.ADDING_MARK
        ed.click(Point(40, 40))
        assert job.selections[0].name == "mark 1"


class TestDeleting:
    def test_deleting_cut_scenario(self):
        job = _make_job(cuts=[Cut(Point(10, 10), V), Cut(Point(90, 90), H)])
        ed = Editor(job)
        ed.mode = EditingMode.DELETING_CUT
        assert ed.click(Point(12, 12)) is EditingMode.NOT_EDITING
        assert job.cuts == (Cut(Point(90, 90), H),)
        assert ed.mode is EditingMode.NOT_EDITING

    def test_deleting_mark(self):
        job = _make_job(selections=[Mark(Point(20, 20), "a"), Mark(Point(80, 80), "b")])
        ed = Editor(job)
        ed.mode = EditingMode.DELETING_MARK
        assert ed.click(Point(75, 75)) is EditingMode.NOT_EDITING
        assert [m.name for m in job.selections] == ["a"]

    def test_nothing_to_delete_still_reverts(self):
        ed = Editor(_make_job())
        ed.mode = EditingMode.DELETING_CUT
        assert ed.click(Point(5, 5)) is EditingMode.NOT_EDITING


class TestNotEditing:
    def test_click_on_label_renames(self):
        mark = Mark(Point(50, 50), "mark 1")
        job = _make_job(selections=[mark])
        renamer = _Renamer("logo")
        ed = Editor(job, rename=renamer)
        assert ed.click(Point(50, 50)) is EditingMode.NOT_EDITING
        assert job.selections == (Mark(Point(50, 50), "logo"),)

    def test_click_away_from_label_does_nothing(self):
        job = _make_job(selections=[Mark(Point(50, 50), "mark 1")])
        renamer = _Renamer("logo")
        ed = Editor(job, rename=renamer)
        ed.click(Point(5, 95))
        assert renamer.calls == []
        assert job.selections[0].name == "mark 1"

    def test_no_marks(self):
        ed = Editor(_make_job(), rename=_Renamer("x"))
        assert ed.click(Point(5, 5)) is EditingMode.NOT_EDITING


# ---------------------------------------------------------------------------
# Hover, notifications, editable flag
# ---------------------------------------------------------------------------
class TestHover:
    def test_highlighted_mark(self):
        job = _make_job(selections=[Mark(Point(20, 20), "a"), Mark(Point(80, 80), "b")])
        ed = Editor(job)
        assert ed.highlighted_mark is None
        ed.hover(Point(70, 70))
        assert ed.highlighted_mark.name == "b"
        ed.hover(None)
        assert ed.highlighted_mark is None

    def test_victim_cut_only_when_deleting(self):
        job = _make_job(cuts=[Cut(Point(10, 10), V)])
        ed = Editor(job)
        ed.hover(Point(15, 15))
        assert ed.victim_cut is None
        ed.mode = EditingMode.DELETING_CUT
        assert ed.victim_cut == Cut(Point(10, 10), V)


class TestNotifications:
    def test_on_change_and_mode_change(self):
        changes, modes = [], []
        ed = Editor(_make_job(), on_change=lambda: changes.append(1),
                    on_mode_change=lambda e: modes.append(e.mode))
        ed.mode = EditingMode.ADDING_MARK
        ed.click(Point(1, 1))
        assert modes == [EditingMode.ADDING_MARK]
        assert changes == [1]

    def test_not_editable_refuses_modes(self):
        ed = Editor(_make_job(), editable=False)
        ed.mode = EditingMode.ADDING_VERTICAL_CUT
        assert ed.mode is EditingMode.NOT_EDITING
        ed.click(Point(5, 5))
        assert ed.job.cuts == ()


# ---------------------------------------------------------------------------
# Undo
# ---------------------------------------------------------------------------
class TestUndo:
    def test_undo_add_cut(self):
        job = _make_job()
        stack = UndoStack()
        ed = Editor(job, undo=stack)
        ed.mode = EditingMode.ADDING_VERTICAL_CUT
        ed.click(Point(50, 0))
        assert stack.undo_action_name == "Add Cut"
        assert stack.undo()
        assert job.cuts == ()
        assert stack.redo_action_name == "Add Cut"
        assert stack.redo()
        assert job.cuts == (Cut(Point(50, 0), V),)
        assert stack.undo_action_name == "Add Cut"

    def test_undo_delete_restores_position(self):
        a, b, c = Cut(Point(50, 0), V), Cut(Point(10, 30), H), Cut(Point(70, 70), H)
        job = _make_job(cuts=[a, b, c])
        stack = UndoStack()
        ed = Editor(job, undo=stack)
        ed.mode = EditingMode.DELETING_CUT
        ed.click(Point(49, 1))
        assert job.cuts == (b, c)
        assert stack.undo_action_name == "Delete Cut"
        stack.undo()
        assert job.cuts == (a, b, c)

    def test_undo_rename(self):
        job = _make_job()
        stack = UndoStack()
        ed = Editor(job, undo=stack, rename=_Renamer("icon"))
        ed.mode = EditingMode.ADDING_MARK
        ed.click(Point(30, 30))
        assert stack.undo_action_name == "Rename Mark"
        stack.undo()
        assert job.selections[0].name == "mark 1"
        stack.undo()
        assert job.selections == ()
        assert not stack.can_undo
        stack.redo()
        stack.redo()
        assert job.selections[0].name == "icon"

    def test_new_action_clears_redo(self):
        job = _make_job()
        stack = UndoStack()
        ed = Editor(job, undo=stack)
        ed.add_mark(Mark(Point(1, 1), "a"))
        stack.undo()
        assert stack.can_redo
        ed.add_mark(Mark(Point(2, 2), "b"))
        assert not stack.can_redo

    def test_depth_is_bounded(self):
        stack = UndoStack(max_depth=3)
        ed = Editor(_make_job(), undo=stack)
        for i in range(5):
            ed.add_mark(Mark(Point(i, i), str(i)))
        undone = 0
        while stack.undo():
            undone += 1
        assert undone == 3
        assert [m.name for m in ed.job.selections] == ["0", "1"]

    def test_redo_depth_is_bounded(self):
        stack = UndoStack(max_depth=2)

        def undo_many():
            for _ in range(3):
                stack.record("Step", lambda: None)

        stack.record("Batch", undo_many)
        stack.undo()
        redone = 0
        while stack.redo():
            redone += 1
        assert redone == 2

    def test_empty_stack(self):
        stack = UndoStack()
        assert not stack.undo()
        assert not stack.redo()
        assert stack.undo_action_name is None


@pytest.mark.parametrize("value, expected", [(2.5, 3), (2.49, 2), (-2.5, -3), (7.0, 7)])
def test_rounding_half_away_from_zero(value, expected):
    from editing import _round
    assert _round(value) == expected
