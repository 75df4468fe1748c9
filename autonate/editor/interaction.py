"""
Input routing for the focus editor.

InteractionRouter turns pointer, wheel and key input into focus region or
annotation store changes. Its behaviour depends on the mode:

- unlocked: the focus window follows the pointer, the wheel resizes it and
  right-click locks (custom-box uses two left clicks instead)
- locked, no tool: click to select, drag to move or reshape
- locked, with a tool: press/drag/release creates annotations

Redraws are requested through the redraw_requested signal. While unlocked,
pointer moves are coalesced to one redraw per frame; once locked every
change redraws right away.
"""

from typing import Optional, Tuple

from PySide6.QtCore import QObject, QPointF, Qt, QTimer, Signal
from PySide6.QtGui import QColor

from autonate.editor.annotations import (
    AnnotationBase,
    ArrowAnnotation,
    DragHandle,
    TextAnnotation,
)
from autonate.editor.focus_region import FocusShape
from autonate.editor.session import EditorSession
from autonate.editor.text_overlay import TextEditController
from autonate.editor.tools import TOOL_SHORTCUTS, ToolType
from autonate.services.logging_service import get_logger


FRAME_INTERVAL_MS = 16
LABEL_PROMPT_DELAY_MS = 120
LABEL_OFFSET = QPointF(20, 20)

RADIUS_STEP = 10
STAMP_SIZE_STEP = 2
NUDGE_STEP = 1
NUDGE_STEP_LARGE = 10

_NUDGE_KEYS = {
    Qt.Key.Key_Left: (-1, 0),
    Qt.Key.Key_Right: (1, 0),
    Qt.Key.Key_Up: (0, -1),
    Qt.Key.Key_Down: (0, 1),
}


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


class InteractionRouter(QObject):
    """
    Dispatches input for one editor session.

    Signals:
        redraw_requested(): Repaint the editor now.
        cursor_changed(): Tool, color or size changed, refresh the cursor.
        tool_changed(object): Active tool changed from the keyboard.
        export_requested(str): Export with the given action ("copy"/"save").
        close_requested(): End the session without exporting.
    """

    redraw_requested = Signal()
    cursor_changed = Signal()
    tool_changed = Signal(object)
    export_requested = Signal(str)
    close_requested = Signal()

    def __init__(
        self,
        session: EditorSession,
        text_editor: TextEditController,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session
        self._text = text_editor

        self._pointer: Optional[QPointF] = None

        self._frame_timer = QTimer(self)
        self._frame_timer.setSingleShot(True)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._flush_frame)

        self._label_timer = QTimer(self)
        self._label_timer.setSingleShot(True)
        self._label_timer.setInterval(LABEL_PROMPT_DELAY_MS)
        self._label_timer.timeout.connect(self._on_label_timer)
        self._pending_label_id: Optional[int] = None

        # Pointer press bookkeeping
        self._press_pos: Optional[QPointF] = None
        self._dragging = False
        self._drag_moved = False

        # Arrow click-move-click gesture in progress
        self._arrow_click_mode = False

        text_editor.changed.connect(self._redraw_now)

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def session(self) -> EditorSession:
        return self._session

    @property
    def pointer(self) -> Optional[QPointF]:
        """Last known pointer position."""
        return self._pointer

    @property
    def _focus(self):
        return self._session.focus

    @property
    def _store(self):
        return self._session.store

    def set_tool(self, tool: Optional[ToolType]) -> None:
        """Switch tools. Drops any unfinished annotation and the selection."""
        if tool == self._session.tool:
            return
        self._store.discard_in_progress()
        self._arrow_click_mode = False
        self._store.selection.clear()
        self._session.tool = tool
        self._logger.debug(f"Tool: {tool.value if tool else 'none'}")
        self.cursor_changed.emit()
        self._redraw()

    def set_color(self, color: QColor) -> None:
        """Change the annotation color, recoloring the selection too."""
        self._session.color = QColor(color)
        selected = self._store.selected
        if selected is not None and selected.style.color != color:
            self._store.recolor(selected.id, color)
        self.cursor_changed.emit()
        self._redraw()

    # ─── Redraw ───────────────────────────────────────────────────────────

    def _redraw(self) -> None:
        if self._focus.is_locked:
            self._redraw_now()
        else:
            self._schedule_frame()

    def _redraw_now(self) -> None:
        self.redraw_requested.emit()

    def _schedule_frame(self) -> None:
        if self._frame_timer.isActive():
            return
        self._frame_timer.start()

    @property
    def frame_pending(self) -> bool:
        return self._frame_timer.isActive()

    def _flush_frame(self) -> None:
        if not self._session.ended:
            self.redraw_requested.emit()

    # ─── Hit testing ──────────────────────────────────────────────────────

    def get_hit_annotation(self, pos: QPointF) -> Optional[Tuple[AnnotationBase, DragHandle]]:
        """
        Find the annotation under pos.

        Handles of the current selection win over any body, then bodies are
        tested from the topmost annotation down.

        Returns:
            (annotation, handle) with handle MOVE for a body hit, or None.
        """
        selected = self._store.selected
        if selected is not None:
            handle = selected.hit_test_handle(pos)
            if handle != DragHandle.NONE:
                return selected, handle

        for annotation in reversed(self._store.annotations):
            if annotation.hit_test(pos):
                return annotation, DragHandle.MOVE
        return None

    # ─── Pointer ──────────────────────────────────────────────────────────

    def mouse_press(self, pos: QPointF, button: Qt.MouseButton) -> None:
        if self._session.ended:
            return
        self._pointer = QPointF(pos)

        if button == Qt.MouseButton.RightButton:
            self._right_click(pos)
            return
        if button != Qt.MouseButton.LeftButton:
            return

        if not self._focus.is_locked:
            self._unlocked_press(pos)
            return

        # A click on the canvas ends any open text edit
        self._text.finalize()

        if self._session.tool is None:
            self._select_press(pos)
        else:
            self._tool_press(pos)

    def mouse_move(self, pos: QPointF) -> None:
        if self._session.ended:
            return
        self._pointer = QPointF(pos)

        if not self._focus.is_locked:
            self._schedule_frame()
            return

        if self._dragging and self._store.selection.active_handle != DragHandle.NONE:
            anchor = self._store.selection.drag_anchor or pos
            dx = pos.x() - anchor.x()
            dy = pos.y() - anchor.y()
            if dx or dy:
                self._store.drag_selected(pos, dx, dy)
                self._drag_moved = True
                self._redraw_now()
            return

        if self._store.in_progress is not None:
            self._store.extend_annotation(pos)
            self._redraw_now()

    def mouse_release(self, pos: QPointF, button: Qt.MouseButton) -> None:
        if self._session.ended or button != Qt.MouseButton.LeftButton:
            return
        self._pointer = QPointF(pos)

        if not self._focus.is_locked:
            return

        if self._dragging:
            self._finish_drag()
            return

        in_progress = self._store.in_progress
        if in_progress is None:
            return

        if isinstance(in_progress, ArrowAnnotation):
            if self._press_pos is not None and pos == self._press_pos:
                # Plain click: keep the arrow live until the next press
                self._arrow_click_mode = True
                return
            self._store.extend_annotation(pos)

        self._commit_in_progress()

    def wheel(self, delta: float) -> None:
        """
        Handle a wheel step. Positive delta (scroll up) grows.

        Unlocked it resizes the focus window, locked with a tool it resizes
        stamps and strokes.
        """
        if self._session.ended or not delta:
            return

        if not self._focus.is_locked:
            if self._focus.adjust_radius(_sign(delta) * RADIUS_STEP):
                self._schedule_frame()
            return

        if self._session.tool is not None:
            if self._session.adjust_stamp_size(_sign(delta) * STAMP_SIZE_STEP):
                self.cursor_changed.emit()
                self._redraw_now()

    # ─── Modes ────────────────────────────────────────────────────────────

    def _unlocked_press(self, pos: QPointF) -> None:
        if not self._focus.is_custom_box:
            return

        if self._focus.custom_box_start is None:
            self._focus.begin_custom_box(pos)
            self._schedule_frame()
        elif self._focus.complete_custom_box(pos):
            self._redraw_now()

    def _right_click(self, pos: QPointF) -> None:
        if not self._focus.is_locked:
            if self._focus.is_custom_box:
                if self._focus.cancel_custom_box():
                    self._schedule_frame()
            elif self._focus.lock(pos):
                self._redraw_now()
            return

        self.request_export()

    def _select_press(self, pos: QPointF) -> None:
        selection = self._store.selection
        hit = self.get_hit_annotation(pos)
        if hit is None:
            if selection.selected_id is not None:
                selection.clear()
                self._redraw_now()
            return

        annotation, handle = hit
        selection.selected_id = annotation.id
        selection.active_handle = handle
        selection.drag_anchor = QPointF(pos)
        self._store.begin_gesture()
        self._press_pos = QPointF(pos)
        self._dragging = True
        self._drag_moved = False
        self._redraw_now()

    def _finish_drag(self) -> None:
        selection = self._store.selection
        handle = selection.active_handle
        self._store.end_gesture()
        self._dragging = False
        selection.active_handle = DragHandle.NONE
        selection.drag_anchor = None

        # Click on a text body edits it, a drag only moves it
        annotation = self._store.selected
        if (
            isinstance(annotation, TextAnnotation)
            and handle == DragHandle.MOVE
            and not self._drag_moved
        ):
            self._text.open_existing(annotation)
        self._redraw_now()

    def _tool_press(self, pos: QPointF) -> None:
        tool = self._session.tool
        self._press_pos = QPointF(pos)

        if tool == ToolType.TEXT:
            self._text.open_new(pos, self._session.style())
            return

        in_progress = self._store.in_progress
        if self._arrow_click_mode and isinstance(in_progress, ArrowAnnotation):
            self._arrow_click_mode = False
            self._store.extend_annotation(pos)
            self._commit_in_progress()
            return

        self._arrow_click_mode = False
        annotation = self._store.begin_annotation(
            tool.annotation_type, pos, self._session.style()
        )
        if self._store.in_progress is None:
            # Stamps are committed on press
            self._after_commit(annotation)
        self._redraw_now()

    def _commit_in_progress(self) -> None:
        annotation = self._store.finalize_annotation()
        self._redraw_now()
        if annotation is not None:
            self._after_commit(annotation)

    def _after_commit(self, annotation: AnnotationBase) -> None:
        """Invite a caption next to a freshly committed shape."""
        if isinstance(annotation, TextAnnotation):
            return
        self._pending_label_id = annotation.id
        self._label_timer.start()

    def _on_label_timer(self) -> None:
        annotation_id = self._pending_label_id
        self._pending_label_id = None
        if annotation_id is not None:
            self.prompt_label(annotation_id)

    def prompt_label(self, annotation_id: int) -> bool:
        """
        Open an empty text editor beside a committed annotation.

        Skipped if the session ended, the annotation is gone or another
        annotation is being drawn.
        """
        if self._session.ended or self._store.in_progress is not None:
            return False
        annotation = self._store.get(annotation_id)
        if annotation is None:
            return False

        anchor = annotation.anchor
        self._text.open_new(
            QPointF(anchor.x() + LABEL_OFFSET.x(), anchor.y() + LABEL_OFFSET.y()),
            self._session.style(),
        )
        return True

    def _cycle_shape(self) -> None:
        shapes = list(FocusShape)
        current = shapes.index(self._focus.shape)
        self._focus.set_shape(shapes[(current + 1) % len(shapes)])
        self._schedule_frame()

    # ─── Export ───────────────────────────────────────────────────────────

    def request_export(self) -> None:
        """Clear editing affordances and ask for the export."""
        self._text.finalize()
        self._store.discard_in_progress()
        self._store.selection.clear()
        self._logger.info(f"Export requested ({self._session.default_action})")
        self.export_requested.emit(self._session.default_action)

    # ─── Keyboard ─────────────────────────────────────────────────────────

    def key_press(self, key: int, modifiers: Qt.KeyboardModifier) -> bool:
        """
        Handle a key press.

        Returns:
            True if the key was consumed.
        """
        if self._session.ended:
            return False

        if key == Qt.Key.Key_Escape:
            if self._text.is_open and self._text.has_focus():
                self._text.cancel()
            else:
                self.close_requested.emit()
            return True

        # Keys typed into the text editor belong to it
        if self._text.has_focus():
            return False

        ctrl = bool(modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier))
        shift = bool(modifiers & Qt.KeyboardModifier.ShiftModifier)

        if ctrl and key == Qt.Key.Key_Z:
            if shift:
                self._store.redo()
            else:
                self._store.undo()
            self._redraw_now()
            return True
        if ctrl and key == Qt.Key.Key_Y:
            self._store.redo()
            self._redraw_now()
            return True

        if not self._focus.is_locked:
            if key == Qt.Key.Key_Tab:
                self._cycle_shape()
                return True
            return False

        selected = self._store.selected
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace) and selected is not None:
            self._store.delete_annotation(selected.id)
            self._redraw_now()
            return True

        if key in _NUDGE_KEYS and selected is not None:
            step = NUDGE_STEP_LARGE if shift else NUDGE_STEP
            dx, dy = _NUDGE_KEYS[key]
            self._store.move_annotation(selected.id, dx * step, dy * step)
            self._redraw_now()
            return True

        if not ctrl and (key in TOOL_SHORTCUTS or key == Qt.Key.Key_0):
            tool = TOOL_SHORTCUTS.get(key)
            self.set_tool(tool)
            self.tool_changed.emit(tool)
            return True

        return False
