import pytest
from PySide6.QtCore import QEventLoop, QPointF, Qt, QTimer
from PySide6.QtGui import QColor

from autonate.editor.annotations import (
    AnnotationType,
    TextAnnotation,
    XMarkAnnotation,
)
from autonate.editor.focus_region import FocusShape
from autonate.editor.interaction import FRAME_INTERVAL_MS, LABEL_PROMPT_DELAY_MS
from autonate.editor.tools import ToolType

LEFT = Qt.MouseButton.LeftButton
RIGHT = Qt.MouseButton.RightButton
NO_MODS = Qt.KeyboardModifier.NoModifier
CTRL = Qt.KeyboardModifier.ControlModifier


def _record(signal):
    seen = []
    signal.connect(lambda *args: seen.append(args))
    return seen


def _wait(ms):
    loop = QEventLoop()
    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(loop.quit)
    timer.start(ms)
    loop.exec()


def _click(router, x, y, button=LEFT):
    router.mouse_press(QPointF(x, y), button)
    router.mouse_release(QPointF(x, y), button)


def _drag(router, *points):
    router.mouse_press(QPointF(*points[0]), LEFT)
    for point in points[1:]:
        router.mouse_move(QPointF(*point))
    router.mouse_release(QPointF(*points[-1]), LEFT)


@pytest.fixture
def locked(router, session):
    router.mouse_press(QPointF(400, 300), RIGHT)
    assert session.focus.is_locked
    return router


# ─── Unlocked ─────────────────────────────────────────────────────────────────


def test_right_click_locks_at_pointer(router, session):
    router.mouse_move(QPointF(300, 400))
    router.mouse_press(QPointF(300, 400), RIGHT)
    assert session.focus.is_locked
    assert session.focus.lock_center == QPointF(300, 400)


def test_wheel_resizes_focus_window(router, session):
    router.wheel(120)
    assert session.focus.radius == 160
    router.wheel(-120)
    router.wheel(-120)
    assert session.focus.radius == 140


def test_tab_cycles_focus_shapes(router, session):
    assert router.key_press(Qt.Key.Key_Tab, NO_MODS)
    assert session.focus.shape == FocusShape.SQUARE
    for _ in range(3):
        router.key_press(Qt.Key.Key_Tab, NO_MODS)
    assert session.focus.shape == FocusShape.CIRCLE


def test_custom_box_two_clicks_lock(router, session):
    session.focus.set_shape(FocusShape.CUSTOM_BOX)
    _click(router, 100, 100)
    assert not session.focus.is_locked
    _click(router, 300, 200)
    assert session.focus.is_locked
    assert session.focus.lock_center == QPointF(200, 150)


def test_right_click_cancels_pending_custom_box(router, session):
    session.focus.set_shape(FocusShape.CUSTOM_BOX)
    _click(router, 100, 100)
    router.mouse_press(QPointF(100, 100), RIGHT)
    assert session.focus.custom_box_start is None
    assert not session.focus.is_locked


def test_left_click_does_nothing_before_lock(router, session):
    router.set_tool(ToolType.XMARK)
    _click(router, 100, 100)
    assert len(session.store) == 0


def test_escape_requests_close(router):
    closes = _record(router.close_requested)
    assert router.key_press(Qt.Key.Key_Escape, NO_MODS)
    assert len(closes) == 1


# ─── Drawing ──────────────────────────────────────────────────────────────────


def test_line_drag_creates_one_annotation(locked, session):
    locked.set_tool(ToolType.LINE)
    _drag(locked, (10, 10), (20, 20), (30, 30))

    annotations = session.store.annotations
    assert len(annotations) == 1
    assert annotations[0].annotation_type == AnnotationType.LINE
    assert annotations[0].points == [QPointF(10, 10), QPointF(20, 20), QPointF(30, 30)]


def test_arrow_drag_and_click_move_click_match(locked, session):
    locked.set_tool(ToolType.ARROW)
    _drag(locked, (10, 10), (60, 40), (100, 80))
    dragged = session.store.annotations[-1]

    _click(locked, 10, 10)
    assert session.store.in_progress is not None
    locked.mouse_move(QPointF(50, 50))
    _click(locked, 100, 80)
    clicked = session.store.annotations[-1]

    assert clicked.id != dragged.id
    assert (clicked.start, clicked.end) == (dragged.start, dragged.end)
    assert session.store.in_progress is None


def test_stamp_commits_on_press(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 60), LEFT)
    annotations = session.store.annotations
    assert len(annotations) == 1
    assert isinstance(annotations[0], XMarkAnnotation)
    assert annotations[0].center == QPointF(50, 60)


def test_switching_tool_discards_unfinished_annotation(locked, session):
    locked.set_tool(ToolType.LINE)
    locked.mouse_press(QPointF(10, 10), LEFT)
    locked.mouse_move(QPointF(20, 20))
    locked.set_tool(ToolType.ARROW)
    assert session.store.in_progress is None
    assert len(session.store) == 0


def test_wheel_with_tool_resizes_stamps(locked, session):
    locked.set_tool(ToolType.XMARK)
    size = session.stamp_size
    locked.wheel(120)
    assert session.stamp_size == size + 2
    locked.wheel(-120)
    locked.wheel(-120)
    assert session.stamp_size == size - 2


def test_digits_pick_tools(locked, session):
    tools = _record(locked.tool_changed)
    assert locked.key_press(Qt.Key.Key_3, NO_MODS)
    assert session.tool == ToolType.ARROW
    locked.key_press(Qt.Key.Key_0, NO_MODS)
    assert session.tool is None
    assert tools == [(ToolType.ARROW,), (None,)]


# ─── Undo ─────────────────────────────────────────────────────────────────────


def test_ctrl_z_undoes_stamp_and_clears_selection(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 50), LEFT)
    locked.set_tool(None)
    _click(locked, 50, 50)
    assert session.store.selection.selected_id is not None

    locked.key_press(Qt.Key.Key_Z, CTRL)
    assert len(session.store) == 0
    assert session.store.selection.selected_id is None

    locked.key_press(Qt.Key.Key_Z, CTRL | Qt.KeyboardModifier.ShiftModifier)
    assert len(session.store) == 1


def test_ctrl_y_redoes(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 50), LEFT)
    locked.key_press(Qt.Key.Key_Z, CTRL)
    locked.key_press(Qt.Key.Key_Y, CTRL)
    assert len(session.store) == 1


# ─── Selection ────────────────────────────────────────────────────────────────


def test_click_selects_topmost_and_empty_click_clears(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 50), LEFT)
    locked.mouse_press(QPointF(55, 50), LEFT)
    top = session.store.annotations[-1]
    locked.set_tool(None)

    _click(locked, 52, 50)
    assert session.store.selection.selected_id == top.id

    _click(locked, 600, 500)
    assert session.store.selection.selected_id is None


def test_get_hit_annotation_on_empty_store(locked):
    assert locked.get_hit_annotation(QPointF(10, 10)) is None


def test_drag_moves_selection_as_one_undo_step(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 50), LEFT)
    locked.set_tool(None)

    _drag(locked, (50, 50), (60, 55), (70, 60))
    stamp = session.store.annotations[0]
    assert stamp.center == QPointF(70, 60)

    session.store.undo()
    assert session.store.annotations[0].center == QPointF(50, 50)
    # Only the stamp itself is left to undo
    session.store.undo()
    assert len(session.store) == 0


def test_arrow_endpoint_drag(locked, session):
    locked.set_tool(ToolType.ARROW)
    _drag(locked, (100, 100), (200, 100))
    locked.set_tool(None)

    _click(locked, 150, 100)
    _drag(locked, (200, 100), (220, 130))
    arrow = session.store.annotations[0]
    assert arrow.start == QPointF(100, 100)
    assert arrow.end == QPointF(220, 130)


def test_delete_and_nudge_keys(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 50), LEFT)
    locked.set_tool(None)
    _click(locked, 50, 50)

    locked.key_press(Qt.Key.Key_Right, NO_MODS)
    locked.key_press(Qt.Key.Key_Down, Qt.KeyboardModifier.ShiftModifier)
    assert session.store.annotations[0].center == QPointF(51, 60)

    assert locked.key_press(Qt.Key.Key_Delete, NO_MODS)
    assert len(session.store) == 0


def test_color_change_recolors_selection(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 50), LEFT)
    locked.set_tool(None)
    _click(locked, 50, 50)

    locked.set_color(QColor("#00ff00"))
    assert session.color.name() == "#00ff00"
    assert session.store.annotations[0].style.color.name() == "#00ff00"


# ─── Text and labels ──────────────────────────────────────────────────────────


def test_text_tool_commits_typed_text(locked, session, text_editor):
    locked.set_tool(ToolType.TEXT)
    locked.mouse_press(QPointF(100, 120), LEFT)
    assert text_editor.is_open

    text_editor.overlay.setPlainText("hello")
    text_editor.finalize()
    assert not text_editor.is_open

    annotation = session.store.annotations[0]
    assert isinstance(annotation, TextAnnotation)
    assert annotation.text == "hello"
    assert annotation.start == QPointF(100, 120)


def test_empty_text_commit_adds_nothing(locked, session, text_editor):
    locked.set_tool(ToolType.TEXT)
    locked.mouse_press(QPointF(100, 120), LEFT)
    text_editor.finalize()
    assert len(session.store) == 0
    assert not session.store.can_undo


def test_click_on_text_opens_editor_and_drag_moves_it(locked, session, text_editor):
    text = TextAnnotation(QPointF(100, 100), "note", 120, 40, session.style())
    session.store.add_annotation(text)

    locked.set_tool(None)
    _drag(locked, (110, 110), (130, 120))
    assert not text_editor.is_open
    assert session.store.get(text.id).start == QPointF(120, 110)

    _click(locked, 125, 115)
    assert text_editor.is_open
    assert text_editor.editing_id == text.id
    assert text_editor.overlay.toPlainText() == "note"


def test_prompt_label_opens_editor_beside_annotation(locked, session, text_editor):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 60), LEFT)
    stamp = session.store.annotations[0]

    assert locked.prompt_label(stamp.id)
    assert text_editor.is_open
    assert text_editor.editing_id is None
    assert text_editor.overlay.pos().x() == 70
    assert text_editor.overlay.pos().y() == 80


def test_prompt_label_skipped_while_drawing(locked, session, text_editor):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 60), LEFT)
    stamp = session.store.annotations[0]

    locked.set_tool(ToolType.LINE)
    locked.mouse_press(QPointF(200, 200), LEFT)
    assert not locked.prompt_label(stamp.id)
    assert not text_editor.is_open


def test_prompt_label_skipped_for_removed_annotation(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 60), LEFT)
    stamp = session.store.annotations[0]
    session.store.undo()
    assert not locked.prompt_label(stamp.id)


# ─── Export ───────────────────────────────────────────────────────────────────


def test_locked_right_click_requests_default_export(locked, session):
    exports = _record(locked.export_requested)
    locked.set_tool(ToolType.LINE)
    locked.mouse_press(QPointF(10, 10), LEFT)
    locked.mouse_move(QPointF(20, 20))

    locked.mouse_press(QPointF(30, 30), RIGHT)
    assert exports == [("copy",)]
    assert session.store.in_progress is None
    assert session.store.selection.selected_id is None


def test_input_ignored_after_session_end(router, session):
    session.end()
    router.mouse_press(QPointF(10, 10), RIGHT)
    assert not session.focus.is_locked
    assert not router.key_press(Qt.Key.Key_Escape, NO_MODS)


def test_unchanged_text_edit_records_no_undo_step(locked, session, text_editor):
    text = TextAnnotation(QPointF(100, 100), "note", 120, 40, session.style())
    session.store.add_annotation(text)
    locked.set_tool(None)
    undo_depth = len(session.store._undo_stack)

    _click(locked, 110, 110)
    assert text_editor.editing_id == text.id
    text_editor.finalize()

    assert len(session.store._undo_stack) == undo_depth
    assert session.store.get(text.id).text == "note"


def test_picking_the_current_color_records_no_undo_step(locked, session):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 50), LEFT)
    locked.set_tool(None)
    _click(locked, 50, 50)
    undo_depth = len(session.store._undo_stack)

    locked.set_color(QColor(session.store.annotations[0].style.color))
    assert len(session.store._undo_stack) == undo_depth


def test_highlighter_is_ready_after_lock(locked, session):
    assert session.tool == ToolType.HIGHLIGHTER
    _drag(locked, (10, 10), (50, 10))
    assert session.store.annotations[0].annotation_type == AnnotationType.HIGHLIGHTER


# ─── Redraw scheduling ────────────────────────────────────────────────────────


def test_unlocked_moves_coalesce_into_one_frame(router):
    redraws = _record(router.redraw_requested)
    for x in range(20):
        router.mouse_move(QPointF(100 + x, 100))
    assert redraws == []
    assert router.frame_pending

    _wait(FRAME_INTERVAL_MS * 5)
    assert len(redraws) == 1
    assert not router.frame_pending


def test_locked_changes_redraw_immediately(locked):
    redraws = _record(locked.redraw_requested)
    locked.mouse_press(QPointF(10, 10), LEFT)
    assert len(redraws) == 1
    locked.mouse_move(QPointF(20, 20))
    assert len(redraws) == 2
    assert not locked.frame_pending


def test_label_prompt_opens_after_delay(locked, text_editor):
    locked.set_tool(ToolType.XMARK)
    locked.mouse_press(QPointF(50, 60), LEFT)
    assert not text_editor.is_open

    _wait(LABEL_PROMPT_DELAY_MS * 3)
    assert text_editor.is_open
    assert text_editor.overlay.pos().x() == 70
