"""
Tkinter-based Image Slicer GUI.

Layout
------
+--------------------------------------------------+
|  Open | Save | mode buttons | Undo Redo | Export |
+--------------------------------------------------+
|  Source image with region outlines, cut points   |
|  and mark labels                                 |
+--------------------------------------------------+
|  Status                                          |
+--------------------------------------------------+
"""

from __future__ import annotations

import logging
import os
import tkinter as tk
from tkinter import filedialog, messagebox, simpledialog, ttk
from typing import Optional, Tuple

from PIL import Image, ImageTk

import document
import preview
import slicer
from editing import Editor, EditingMode, UndoStack

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
CANVAS_BG = "#2b2b2b"
MAX_ZOOM = 16.0
MIN_ZOOM = 0.1

_MODES = (
    ("Select", EditingMode.NOT_EDITING),
    ("H Cut", EditingMode.ADDING_HORIZONTAL_CUT),
    ("V Cut", EditingMode.ADDING_VERTICAL_CUT),
    ("Mark", EditingMode.ADDING_MARK),
    ("Delete Cut", EditingMode.DELETING_CUT),
    ("Delete Mark", EditingMode.DELETING_MARK),
)


class App(tk.Tk):
    """Main application window."""

    def __init__(self, path: Optional[str] = None) -> None:
        super().__init__()
        self.title("Image Slicer")
        self.configure(bg="#333")
        self.minsize(800, 600)

        # State -----------------------------------------------------------
        self._editor: Optional[Editor] = None
        self._undo = UndoStack()
        self._tk_img: Optional[ImageTk.PhotoImage] = None
        self._zoom: float = 1.0
        self._pan_offset: Tuple[float, float] = (0.0, 0.0)
        self._pan_start: Optional[Tuple[int, int]] = None

        self._build_ui()
        self._bind_keys()
        if path:
            self.after_idle(lambda: self._open_path(path))

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        toolbar = ttk.Frame(self)
        toolbar.pack(fill=tk.X, padx=4, pady=(4, 0))

        ttk.Button(toolbar, text="Open…", command=self._open).pack(side=tk.LEFT, padx=2)
        ttk.Button(toolbar, text="Save…", command=self._save).pack(side=tk.LEFT, padx=2)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6)

        self._mode_var = tk.StringVar(value=EditingMode.NOT_EDITING.value)
        for label, mode in _MODES:
            ttk.Radiobutton(toolbar, text=label, variable=self._mode_var, value=mode.value,
                            command=self._on_mode_selected).pack(side=tk.LEFT, padx=2)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6)

        self._undo_btn = ttk.Button(toolbar, text="Undo", command=self._do_undo)
        self._undo_btn.pack(side=tk.LEFT, padx=2)
        self._redo_btn = ttk.Button(toolbar, text="Redo", command=self._do_redo)
        self._redo_btn.pack(side=tk.LEFT, padx=2)

        self._dry_run = tk.BooleanVar(value=False)
        ttk.Checkbutton(toolbar, text="Dry run", variable=self._dry_run).pack(side=tk.RIGHT, padx=4)
        ttk.Button(toolbar, text="Export…", command=self._export).pack(side=tk.RIGHT, padx=2)

        self._canvas = tk.Canvas(self, bg=CANVAS_BG, highlightthickness=0)
        self._canvas.pack(fill=tk.BOTH, expand=True, padx=4, pady=4)

        status_bar = ttk.Frame(self)
        status_bar.pack(fill=tk.X, padx=4, pady=(0, 4))
        self._status_var = tk.StringVar(value="Open an image to begin.")
        ttk.Label(status_bar, textvariable=self._status_var).pack(side=tk.LEFT, padx=4)

        self._canvas.bind("<Configure>", lambda _: self._redraw())
        self._canvas.bind("<ButtonPress-1>", self._on_press)
        self._canvas.bind("<Motion>", self._on_hover)
        self._canvas.bind("<Leave>", self._on_leave)
        self._canvas.bind("<MouseWheel>", self._on_scroll)
        self._canvas.bind("<ButtonPress-2>", self._on_pan_start)
        self._canvas.bind("<B2-Motion>", self._on_pan_move)
        self._canvas.bind("<ButtonPress-3>", self._on_pan_start)
        self._canvas.bind("<B3-Motion>", self._on_pan_move)
        self._update_undo_buttons()

    def _bind_keys(self) -> None:
        self.bind("<Control-z>", lambda _: self._do_undo())
        self.bind("<Control-y>", lambda _: self._do_redo())
        self.bind("<Control-o>", lambda _: self._open())
        self.bind("<Control-s>", lambda _: self._save())
        self.bind("<Escape>", lambda _: self._set_mode(EditingMode.NOT_EDITING))

    # ------------------------------------------------------------------
    # Opening / saving
    # ------------------------------------------------------------------
    def _open(self) -> None:
        path = filedialog.askopenfilename(
            filetypes=[("Images and documents",
                        f"*.png *.jpg *.jpeg *.bmp *.gif *.tga *{document.DOCUMENT_SUFFIX}"),
                       ("All files", "*.*")]
        )
        if path:
            self._open_path(path)

    def _open_path(self, path: str) -> None:
        try:
            job = document.open_any(path)
        except (OSError, ValueError) as e:
            logger.error("Failed to open %s: %s", path, e)
            messagebox.showerror("Error", f"Failed to open:\n{e}")
            return

        self._undo.clear()
        self._editor = Editor(job, undo=self._undo, rename=self._ask_rename,
                              on_change=self._on_job_changed,
                              on_mode_change=self._on_mode_changed)
        self._mode_var.set(EditingMode.NOT_EDITING.value)
        self.title(f"Image Slicer — {job.name}")
        self._fit_zoom()
        self._redraw()
        self._update_undo_buttons()
        self._status_var.set(f"{os.path.basename(path)}  —  {job.image.width}×{job.image.height}")

    def _save(self) -> None:
        if not self._ensure_job():
            return
        path = filedialog.asksaveasfilename(
            defaultextension=document.DOCUMENT_SUFFIX,
            initialfile=f"{self._editor.job.name}{document.DOCUMENT_SUFFIX}",
            filetypes=[("Sliced image", f"*{document.DOCUMENT_SUFFIX}")],
        )
        if not path:
            return
        try:
            document.save_job(self._editor.job, path)
        except (OSError, ValueError) as e:
            messagebox.showerror("Error", f"Failed to save:\n{e}")
            return
        self._status_var.set(f"Saved → {os.path.basename(path)}")

    # ------------------------------------------------------------------
    # Coordinate helpers
    # ------------------------------------------------------------------
    def _fit_zoom(self) -> None:
        """Set zoom so the image fits the canvas with some padding."""
        if self._editor is None:
            return
        img = self._editor.job.image
        cw = self._canvas.winfo_width() or 600
        ch = self._canvas.winfo_height() or 400
        pad = 40
        self._zoom = min((cw - pad) / img.width, (ch - pad) / img.height, 4.0)
        self._pan_offset = (
            (cw - img.width * self._zoom) / 2,
            (ch - img.height * self._zoom) / 2,
        )

    def _canvas_to_img(self, cx: float, cy: float) -> slicer.Point:
        ox, oy = self._pan_offset
        return slicer.Point((cx - ox) / self._zoom, (cy - oy) / self._zoom)

    def _inside_image(self, point: slicer.Point) -> bool:
        return slicer.contains(self._editor.job.bounds, point)

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------
    def _redraw(self) -> None:
        c = self._canvas
        c.delete("all")
        if self._editor is None:
            return

        ed = self._editor
        try:
            composed = preview.compose(ed.job, ed.highlighted_mark, ed.victim_cut)
        except slicer.SliceError as e:
            logger.error("Cannot draw job: %s", e)
            self._status_var.set(str(e))
            return

        z = self._zoom
        display = composed.resize(
            (max(1, int(composed.width * z)), max(1, int(composed.height * z))),
            Image.NEAREST if z >= 2 else Image.LANCZOS,
        )
        self._tk_img = ImageTk.PhotoImage(display)
        ox, oy = self._pan_offset
        c.create_image(ox, oy, anchor=tk.NW, image=self._tk_img)

    def _on_job_changed(self) -> None:
        self._update_undo_buttons()
        self._redraw()

    def _update_undo_buttons(self) -> None:
        name = self._undo.undo_action_name
        self._undo_btn.config(text=f"Undo {name}" if name else "Undo",
                              state=tk.NORMAL if name else tk.DISABLED)
        name = self._undo.redo_action_name
        self._redo_btn.config(text=f"Redo {name}" if name else "Redo",
                              state=tk.NORMAL if name else tk.DISABLED)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def _on_mode_selected(self) -> None:
        self._set_mode(EditingMode(self._mode_var.get()))

    def _set_mode(self, mode: EditingMode) -> None:
        if self._editor is None:
            self._mode_var.set(EditingMode.NOT_EDITING.value)
            return
        self._editor.mode = mode

    def _on_mode_changed(self, editor: Editor) -> None:
        self._mode_var.set(editor.mode.value)
        self._redraw()

    def _ask_rename(self, mark: slicer.Mark, rect: slicer.Rect) -> Optional[str]:
        return simpledialog.askstring("Rename mark", "Name:", initialvalue=mark.name, parent=self)

    def _on_press(self, event: tk.Event) -> None:
        if self._editor is None:
            self._open()
            return
        point = self._canvas_to_img(event.x, event.y)
        if not self._inside_image(point):
            return
        self._editor.click(point)
        self._redraw()

    def _on_hover(self, event: tk.Event) -> None:
        if self._editor is None:
            return
        self._editor.hover(self._canvas_to_img(event.x, event.y))
        self._redraw()

    def _on_leave(self, event: tk.Event) -> None:
        if self._editor is None:
            return
        self._editor.hover(None)
        self._redraw()

    def _do_undo(self) -> None:
        if self._undo.undo():
            self._on_job_changed()

    def _do_redo(self) -> None:
        if self._undo.redo():
            self._on_job_changed()

    # ------------------------------------------------------------------
    # Zoom / Pan
    # ------------------------------------------------------------------
    def _move_view(self, anchor: Tuple[float, float], scale: float = 1.0,
                   shift: Tuple[float, float] = (0.0, 0.0)) -> None:
        """Rescale the view about *anchor* (canvas coords), then shift it."""
        if self._editor is None:
            return
        zoom = max(MIN_ZOOM, min(self._zoom * scale, MAX_ZOOM))
        ratio = zoom / self._zoom
        ax, ay = anchor
        ox, oy = self._pan_offset
        self._zoom = zoom
        self._pan_offset = (ax - (ax - ox) * ratio + shift[0],
                            ay - (ay - oy) * ratio + shift[1])
        self._redraw()

    def _on_scroll(self, event: tk.Event) -> None:
        self._move_view((event.x, event.y), scale=1.1 if event.delta > 0 else 1 / 1.1)

    def _on_pan_start(self, event: tk.Event) -> None:
        self._pan_start = (event.x, event.y)

    def _on_pan_move(self, event: tk.Event) -> None:
        if self._pan_start is None:
            return
        sx, sy = self._pan_start
        self._pan_start = (event.x, event.y)
        self._move_view((event.x, event.y), shift=(event.x - sx, event.y - sy))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def _ensure_job(self) -> bool:
        if self._editor is None:
            messagebox.showwarning("No image", "Open an image first.")
            return False
        return True

    def _export(self) -> None:
        if not self._ensure_job():
            return
        directory = filedialog.askdirectory(title="Choose output folder")
        if not directory:
            return
        dry_run = self._dry_run.get()
        try:
            result = slicer.export_selections(self._editor.job, directory, dry_run=dry_run)
        except slicer.SliceError as e:
            messagebox.showerror("Error", f"Export failed:\n{e}")
            return

        verb = "Would write" if dry_run else "Saved"
        self._status_var.set(f"{verb} {len(result.created)} PNGs → {directory}")
        if result.failures:
            lines = "\n".join(f"{f.selection.name}: {f.reason}" for f in result.failures)
            messagebox.showwarning("Export", f"{len(result.failures)} selection(s) skipped:\n{lines}")
