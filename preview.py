"""
Render a job as a single picture: the source image with its region
outlines, cut points and mark labels drawn on top.

Used for thumbnails and by the editor window, which scales the result to
the current zoom.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from slicer import Cut, Job, Mark, Rect

OUTLINE_COLOR = (0, 200, 0, 255)
CUT_COLOR = (255, 0, 0, 255)
VICTIM_CUT_COLOR = (255, 165, 0, 255)
LABEL_COLOR = (0, 0, 255, 255)
HIGHLIGHT_COLOR = (255, 165, 0, 102)
CUT_POINT_SIZE = 2

_font: Optional[ImageFont.ImageFont] = None


def label_font() -> ImageFont.ImageFont:
    global _font
    if _font is None:
        _font = ImageFont.load_default()
    return _font


def _text_size(text: str) -> Tuple[int, int]:
    x0, y0, x1, y1 = label_font().getbbox(text or " ")
    return x1 - x0, y1 - y0


def label_rect(mark: Mark) -> Rect:
    """Bounds of *mark*'s name when drawn centred on its point."""
    w, h = _text_size(mark.name)
    return Rect(mark.around.x - w / 2, mark.around.y - h / 2, w, h)


def compose(job: Job, highlighted: Optional[Mark] = None,
            victim: Optional[Cut] = None) -> Image.Image:
    """Draw outlines, cut points and labels over a copy of the job's image.

    *highlighted* gets a background behind its label; *victim* (the cut
    about to be deleted) is drawn in a different colour.
    """
    canvas = job.image.convert("RGBA")
    overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    for sub in job.subimages():
        x0, y0, x1, y1 = sub.rect.integral().box
        draw.rectangle((x0, y0, max(x0, x1 - 1), max(y0, y1 - 1)), outline=OUTLINE_COLOR)

    for cut in job.cuts:
        color = VICTIM_CUT_COLOR if cut == victim else CUT_COLOR
        x, y = cut.at.x - 1, cut.at.y - 1
        draw.rectangle((x, y, x + CUT_POINT_SIZE - 1, y + CUT_POINT_SIZE - 1), fill=color)

    font = label_font()
    for mark in job.selections:
        rect = label_rect(mark)
        if mark == highlighted:
            draw.rectangle(rect.box, fill=HIGHLIGHT_COLOR)
        left, top = font.getbbox(mark.name or " ")[:2]
        draw.text((rect.x - left, rect.y - top), mark.name, font=font, fill=LABEL_COLOR)

    return Image.alpha_composite(canvas, overlay)


def render_preview(job: Job, size: Optional[Tuple[int, int]] = None,
                   is_cancelled: Optional[Callable[[], bool]] = None) -> Optional[Image.Image]:
    """Render *job* for a thumbnail or preview host.

    *is_cancelled* is consulted once, before any drawing; None is returned
    if the host no longer wants the result.  When *size* is given the
    picture is scaled down to fit inside it, keeping its aspect ratio.
    """
    if size is not None and (size[0] <= 0 or size[1] <= 0):
        raise ValueError(f"preview size must be positive, got {size}")
    if is_cancelled is not None and is_cancelled():
        return None
    img = compose(job)
    if size is not None:
        img.thumbnail(size, Image.LANCZOS)
    return img
