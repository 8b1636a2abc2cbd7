"""Unit tests for preview.py — run with: python -m pytest test_preview.py"""

import pytest
from PIL import Image

import preview
from slicer import Cut, Job, Mark, Orientation, Point, SliceError

WHITE = (255, 255, 255, 255)


def _make_job(**kwargs) -> Job:
    return Job(Image.new("RGBA", (100, 100), WHITE), **kwargs)


class TestLabelRect:
    def test_centred_on_mark(self):
        rect = preview.label_rect(Mark(Point(50, 40), "logo"))
        assert rect.width > 0 and rect.height > 0
        assert rect.x + rect.width / 2 == pytest.approx(50)
        assert rect.y + rect.height / 2 == pytest.approx(40)

    def test_longer_name_is_wider(self):
        short = preview.label_rect(Mark(Point(0, 0), "a"))
        long = preview.label_rect(Mark(Point(0, 0), "a much longer name"))
        assert long.width > short.width


class TestCompose:
    def test_outlines_and_cut_points(self):
        job = _make_job(cuts=[Cut(Point(50, 50), Orientation.VERTICAL)])
        img = preview.compose(job)
        assert img.size == (100, 100)
        assert img.getpixel((0, 0)) == preview.OUTLINE_COLOR
        assert img.getpixel((50, 50)) == preview.CUT_COLOR
        assert img.getpixel((25, 25)) == WHITE

    def test_victim_cut_colour(self):
        cut = Cut(Point(50, 50), Orientation.VERTICAL)
        img = preview.compose(_make_job(cuts=[cut]), victim=cut)
        assert img.getpixel((50, 50)) == preview.VICTIM_CUT_COLOR

    def test_source_is_untouched(self):
        job = _make_job(cuts=[Cut(Point(50, 50), Orientation.VERTICAL)],
                        selections=[Mark(Point(20, 20), "a")])
        preview.compose(job)
        assert job.image.getpixel((0, 0)) == WHITE

    def test_bad_cut_raises(self):
        with pytest.raises(SliceError):
            preview.compose(_make_job(cuts=[Cut(Point(500, 5), Orientation.VERTICAL)]))


class TestRenderPreview:
    def test_full_size(self):
        assert preview.render_preview(_make_job()).size == (100, 100)

    def test_fits_requested_size(self):
        job = Job(Image.new("RGBA", (200, 100), WHITE))
        assert preview.render_preview(job, (50, 50)).size == (50, 25)

    def test_cancelled_before_start(self):
        calls = []

        def cancelled():
            calls.append(1)
            return True

        assert preview.render_preview(_make_job(), is_cancelled=cancelled) is None
        assert calls == [1]

    def test_not_cancelled(self):
        assert preview.render_preview(_make_job(), is_cancelled=lambda: False) is not None

    def test_bad_size(self):
        with pytest.raises(ValueError):
            preview.render_preview(_make_job(), (0, 10))
