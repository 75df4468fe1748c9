from PySide6.QtCore import QEvent, QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QKeyEvent

from autonate.editor.annotation_store import AnnotationStore
from autonate.editor.annotations import AnnotationStyle, TextAnnotation
from autonate.editor.text_overlay import TextEditController, TextEditOverlay


def _key(key, modifiers=Qt.KeyboardModifier.NoModifier):
    return QKeyEvent(QEvent.Type.KeyPress, key, modifiers)


def _record(signal):
    seen = []
    signal.connect(lambda *args: seen.append(args))
    return seen


def test_commit_fires_once(host):
    overlay = TextEditOverlay(QPointF(10, 10), AnnotationStyle(), "hi", parent=host)
    commits = _record(overlay.committed)
    cancels = _record(overlay.cancelled)

    overlay.commit()
    overlay.commit()
    overlay.cancel()
    assert len(commits) == 1
    assert commits[0][0] == "hi"
    assert isinstance(commits[0][1], QRectF)
    assert cancels == []
    assert overlay.is_finished


def test_enter_commits_and_escape_cancels(host):
    overlay = TextEditOverlay(QPointF(10, 10), AnnotationStyle(), "hi", parent=host)
    commits = _record(overlay.committed)
    overlay.keyPressEvent(_key(Qt.Key.Key_Return))
    assert len(commits) == 1

    overlay = TextEditOverlay(QPointF(10, 10), AnnotationStyle(), "hi", parent=host)
    cancels = _record(overlay.cancelled)
    overlay.keyPressEvent(_key(Qt.Key.Key_Escape))
    assert len(cancels) == 1


def test_shift_enter_inserts_newline(host):
    overlay = TextEditOverlay(QPointF(10, 10), AnnotationStyle(), "a", parent=host)
    commits = _record(overlay.committed)
    overlay.keyPressEvent(_key(Qt.Key.Key_Return, Qt.KeyboardModifier.ShiftModifier))
    assert overlay.toPlainText() == "a\n"
    assert commits == []


def test_box_grows_with_lines_and_respects_minimum(host):
    style = AnnotationStyle(size=20)
    overlay = TextEditOverlay(QPointF(10, 10), style, "", parent=host)
    one_line = overlay.box().height()
    assert overlay.box().width() >= 50
    assert one_line >= 30

    overlay.setPlainText("a\nb\nc\nd")
    assert overlay.box().height() > one_line


def test_box_stays_inside_viewport(host):
    overlay = TextEditOverlay(QPointF(700, 10), AnnotationStyle(), "hi", parent=host)
    assert overlay.box().right() <= 800


def test_controller_keeps_one_editor(host):
    store = AnnotationStore()
    controller = TextEditController(store, host)

    first = controller.open_new(QPointF(10, 10), AnnotationStyle())
    first.setPlainText("first")
    second = controller.open_new(QPointF(300, 300), AnnotationStyle())

    assert controller.overlay is second
    assert first.is_finished
    assert [a.text for a in store.annotations] == ["first"]


def test_cancel_keeps_existing_text(host):
    store = AnnotationStore()
    text = TextAnnotation(QPointF(10, 10), "keep", 100, 40, AnnotationStyle(QColor("red")))
    store.add_annotation(text)
    controller = TextEditController(store, host)

    overlay = controller.open_existing(text)
    assert controller.editing_id == text.id
    overlay.setPlainText("changed")
    controller.cancel()

    assert not controller.is_open
    assert store.get(text.id).text == "keep"


def test_clearing_existing_text_deletes_it(host):
    store = AnnotationStore()
    text = TextAnnotation(QPointF(10, 10), "gone", 100, 40)
    store.add_annotation(text)
    controller = TextEditController(store, host)

    controller.open_existing(text).setPlainText("   ")
    controller.finalize()
    assert store.get(text.id) is None
