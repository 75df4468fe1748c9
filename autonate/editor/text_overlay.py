"""
Inline text editor for text annotations.

A borderless QPlainTextEdit is placed over the locked capture wherever text
is being written. Enter (without Shift) or losing focus commits, Escape
cancels. Only one editor exists at a time.
"""

from typing import Optional

from PySide6.QtCore import QObject, QPointF, QRect, QRectF, QSize, Qt, Signal
from PySide6.QtGui import QFocusEvent, QKeyEvent, QTextCursor
from PySide6.QtWidgets import QFrame, QPlainTextEdit, QWidget

from autonate.editor.annotation_store import AnnotationStore
from autonate.editor.annotations import (
    AnnotationStyle,
    TEXT_MIN_HEIGHT,
    TEXT_MIN_WIDTH,
    TEXT_PADDING_X,
    TEXT_PADDING_Y,
    TextAnnotation,
    text_font,
    wrap_text,
)
from autonate.services.logging_service import get_logger


DEFAULT_TEXT_WIDTH = 220
VIEWPORT_MARGIN = 20


class TextEditOverlay(QPlainTextEdit):
    """
    Transient editable text box.

    Signals:
        committed(str, QRectF): Text and final box on Enter or focus loss.
        cancelled(): Escape pressed.
    """

    committed = Signal(str, QRectF)
    cancelled = Signal()

    def __init__(
        self,
        pos: QPointF,
        style: AnnotationStyle,
        text: str = "",
        size: Optional[QSize] = None,
        annotation_id: Optional[int] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.annotation_id = annotation_id
        self._style = style.clone()
        self._finished = False
        self._user_size = size

        self.setFont(text_font(style.size))
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.WidgetWidth)
        self.document().setDocumentMargin(0)
        self.setViewportMargins(TEXT_PADDING_X, TEXT_PADDING_Y, TEXT_PADDING_X, TEXT_PADDING_Y)
        self.setStyleSheet(
            "QPlainTextEdit { background: transparent; color: %s;"
            " border: 1px dashed rgba(255, 255, 255, 128); }"
            % style.color.name()
        )

        self._origin = QPointF(pos)
        self.setPlainText(text)
        self.moveCursor(QTextCursor.MoveOperation.End)
        self.textChanged.connect(self._fit_to_text)
        self._fit_to_text()

    @property
    def annotation_style(self) -> AnnotationStyle:
        return self._style

    @property
    def is_finished(self) -> bool:
        return self._finished

    def _max_size(self) -> QSize:
        parent = self.parentWidget()
        if parent is None:
            return QSize(10000, 10000)
        return QSize(
            max(TEXT_MIN_WIDTH, int(parent.width() - self._origin.x() - VIEWPORT_MARGIN)),
            max(TEXT_MIN_HEIGHT, int(parent.height() - self._origin.y() - VIEWPORT_MARGIN)),
        )

    def _fit_to_text(self) -> None:
        """Size the box to its content within the viewport."""
        limit = self._max_size()
        if self._user_size is not None:
            width = self._user_size.width()
        else:
            width = DEFAULT_TEXT_WIDTH
        width = max(TEXT_MIN_WIDTH, min(limit.width(), width))

        lines = wrap_text(self.toPlainText(), self.font(), width - 2 * TEXT_PADDING_X)
        content_height = len(lines) * self._style.size * 1.2 + 2 * TEXT_PADDING_Y
        if self._user_size is not None:
            content_height = max(content_height, self._user_size.height())
        height = int(max(TEXT_MIN_HEIGHT, min(limit.height(), content_height)))

        self.setGeometry(QRect(self._origin.toPoint(), QSize(int(width), height)))

    def box(self) -> QRectF:
        return QRectF(self.geometry())

    def commit(self) -> None:
        """Emit committed once."""
        if self._finished:
            return
        self._finished = True
        self.committed.emit(self.toPlainText(), self.box())

    def cancel(self) -> None:
        """Emit cancelled once."""
        if self._finished:
            return
        self._finished = True
        self.cancelled.emit()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key = event.key()
        if key == Qt.Key.Key_Escape:
            self.cancel()
            event.accept()
            return
        if key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            if event.modifiers() & Qt.KeyboardModifier.ShiftModifier:
                self.insertPlainText("\n")
            else:
                self.commit()
            event.accept()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event: QFocusEvent) -> None:
        super().focusOutEvent(event)
        # Popup focus changes (context menus) keep the edit open
        if event.reason() != Qt.FocusReason.PopupFocusReason:
            self.commit()


class TextEditController(QObject):
    """
    Hosts at most one TextEditOverlay and writes its result into the store.

    Opening a new editor commits the current one first.

    Signals:
        changed(): The store or the visible editor changed.
    """

    changed = Signal()

    def __init__(self, store: AnnotationStore, host: QWidget) -> None:
        super().__init__(host)
        self._logger = get_logger(__name__)
        self._store = store
        self._host = host
        self._overlay: Optional[TextEditOverlay] = None

    @property
    def overlay(self) -> Optional[TextEditOverlay]:
        return self._overlay

    @property
    def is_open(self) -> bool:
        return self._overlay is not None

    @property
    def editing_id(self) -> Optional[int]:
        """Id of the existing annotation being edited, if any."""
        return self._overlay.annotation_id if self._overlay is not None else None

    def has_focus(self) -> bool:
        return self._overlay is not None and self._overlay.hasFocus()

    def open_new(self, pos: QPointF, style: AnnotationStyle) -> TextEditOverlay:
        """Open an empty editor with its top-left corner at pos."""
        return self._open(pos, style)

    def open_existing(self, annotation: TextAnnotation) -> TextEditOverlay:
        """Open an editor pre-filled with an existing text annotation."""
        return self._open(
            annotation.start,
            annotation.style,
            text=annotation.text,
            size=QSize(int(annotation.width), int(annotation.height)),
            annotation_id=annotation.id,
        )

    def _open(
        self,
        pos: QPointF,
        style: AnnotationStyle,
        text: str = "",
        size: Optional[QSize] = None,
        annotation_id: Optional[int] = None,
    ) -> TextEditOverlay:
        self.finalize()

        overlay = TextEditOverlay(pos, style, text, size, annotation_id, self._host)
        overlay.committed.connect(self._on_committed)
        overlay.cancelled.connect(self._on_cancelled)
        self._overlay = overlay

        overlay.show()
        overlay.raise_()
        overlay.setFocus(Qt.FocusReason.OtherFocusReason)
        self._logger.debug(
            f"Text editor opened at ({pos.x():.0f}, {pos.y():.0f})"
            + (f" for #{annotation_id}" if annotation_id is not None else "")
        )
        self.changed.emit()
        return overlay

    def finalize(self) -> None:
        """Commit the open editor, if any."""
        if self._overlay is not None:
            self._overlay.commit()

    def cancel(self) -> None:
        """Cancel the open editor, if any."""
        if self._overlay is not None:
            self._overlay.cancel()

    def _close(self) -> Optional[TextEditOverlay]:
        overlay = self._overlay
        self._overlay = None
        if overlay is not None:
            overlay.hide()
            overlay.deleteLater()
            self._host.setFocus()
        return overlay

    def _on_committed(self, text: str, box: QRectF) -> None:
        overlay = self._close()
        if overlay is None:
            return

        if overlay.annotation_id is not None:
            self._store.set_text(
                overlay.annotation_id, text, box.topLeft(), box.width(), box.height()
            )
        elif text.strip():
            annotation = TextAnnotation(
                box.topLeft(), text, box.width(), box.height(), overlay.annotation_style
            )
            self._store.add_annotation(annotation)
        self.changed.emit()

    def _on_cancelled(self) -> None:
        self._close()
        self.changed.emit()
