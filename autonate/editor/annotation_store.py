"""
Annotation document for one editor session.

Holds the committed annotations in paint order, the single in-progress
annotation, the selection and whole-document undo/redo snapshots.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from PySide6.QtCore import QPointF
from PySide6.QtGui import QColor

from autonate.editor.annotations import (
    AnnotationBase,
    AnnotationStyle,
    AnnotationType,
    ArrowAnnotation,
    DragHandle,
    MAX_THICKNESS,
    MIN_THICKNESS,
    PolylineAnnotation,
    TEXT_MIN_HEIGHT,
    TEXT_MIN_WIDTH,
    TextAnnotation,
    create_annotation,
)
from autonate.editor.geometry import clamp
from autonate.services.logging_service import get_logger


STAMP_TYPES = (AnnotationType.XMARK, AnnotationType.QUESTION)

Snapshot = List[AnnotationBase]


@dataclass
class SelectionState:
    """Current selection and the drag it may be driving."""
    selected_id: Optional[int] = None
    active_handle: DragHandle = DragHandle.NONE
    drag_anchor: Optional[QPointF] = None

    def clear(self) -> None:
        self.selected_id = None
        self.active_handle = DragHandle.NONE
        self.drag_anchor = None


def _copy(annotations: Snapshot) -> Snapshot:
    return [annotation.clone() for annotation in annotations]


class AnnotationStore:
    """
    Annotation list with snapshot undo/redo.

    Every discrete mutation of a committed annotation pushes a deep copy of
    the list as it was before and clears the redo stack. Pointer drags are
    bracketed by begin_gesture()/end_gesture() and produce a single snapshot.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._annotations: Snapshot = []
        self._in_progress: Optional[AnnotationBase] = None
        self._undo_stack: List[Snapshot] = []
        self._redo_stack: List[Snapshot] = []
        self._gesture_snapshot: Optional[Snapshot] = None
        self.selection = SelectionState()

    # ─── Queries ──────────────────────────────────────────────────────────

    @property
    def annotations(self) -> Snapshot:
        return list(self._annotations)

    @property
    def in_progress(self) -> Optional[AnnotationBase]:
        return self._in_progress

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def __len__(self) -> int:
        return len(self._annotations)

    def get(self, annotation_id: Optional[int]) -> Optional[AnnotationBase]:
        if annotation_id is None:
            return None
        for annotation in self._annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    @property
    def selected(self) -> Optional[AnnotationBase]:
        return self.get(self.selection.selected_id)

    def snapshot(self) -> Snapshot:
        """Deep copy of the committed annotations."""
        return _copy(self._annotations)

    def to_dicts(self) -> List[Dict]:
        return [annotation.to_dict() for annotation in self._annotations]

    # ─── Undo bookkeeping ─────────────────────────────────────────────────

    def _push_undo(self, snapshot: Optional[Snapshot] = None) -> None:
        self._undo_stack.append(snapshot if snapshot is not None else self.snapshot())
        self._redo_stack.clear()

    def _sync_selection(self) -> None:
        if self.selection.selected_id is not None and self.get(self.selection.selected_id) is None:
            self.selection.clear()

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False if there is none."""
        if not self._undo_stack:
            return False
        self._redo_stack.append(self.snapshot())
        self._annotations = self._undo_stack.pop()
        self._sync_selection()
        self._logger.debug(f"Undo: {len(self._annotations)} annotations")
        return True

    def redo(self) -> bool:
        """Re-apply an undone snapshot. Returns False if there is none."""
        if not self._redo_stack:
            return False
        self._undo_stack.append(self.snapshot())
        self._annotations = self._redo_stack.pop()
        self._sync_selection()
        self._logger.debug(f"Redo: {len(self._annotations)} annotations")
        return True

    # ─── Creation ─────────────────────────────────────────────────────────

    def begin_annotation(
        self, kind: AnnotationType, point: QPointF, style: AnnotationStyle
    ) -> AnnotationBase:
        """
        Start a new annotation at point.

        Stamps are committed immediately. Any other unfinished annotation is
        discarded first.

        Returns:
            The new annotation (already committed for stamps).
        """
        if kind == AnnotationType.TEXT:
            raise ValueError("Text annotations are created through add_annotation()")

        self._in_progress = create_annotation(kind, point, style.clone())
        if kind in STAMP_TYPES:
            return self.finalize_annotation()
        return self._in_progress

    def extend_annotation(self, point: QPointF) -> None:
        """Add a pointer sample to the in-progress annotation."""
        annotation = self._in_progress
        if isinstance(annotation, PolylineAnnotation):
            annotation.add_point(point)
        elif isinstance(annotation, ArrowAnnotation):
            annotation.end = point

    def finalize_annotation(self) -> Optional[AnnotationBase]:
        """
        Commit the in-progress annotation.

        Returns:
            The committed annotation, or None if nothing was in progress.
        """
        annotation = self._in_progress
        if annotation is None:
            return None

        self._push_undo()
        self._annotations.append(annotation)
        self._in_progress = None
        self._logger.debug(f"Committed {annotation.annotation_type.name} #{annotation.id}")
        return annotation

    def discard_in_progress(self) -> None:
        self._in_progress = None

    def add_annotation(self, annotation: AnnotationBase) -> None:
        """Commit a fully built annotation."""
        self._push_undo()
        self._annotations.append(annotation)
        self._logger.debug(f"Added {annotation.annotation_type.name} #{annotation.id}")

    # ─── Discrete edits ───────────────────────────────────────────────────

    def delete_annotation(self, annotation_id: int) -> bool:
        annotation = self.get(annotation_id)
        if annotation is None:
            return False

        self._push_undo()
        self._annotations.remove(annotation)
        self._sync_selection()
        self._logger.debug(f"Deleted annotation #{annotation_id}")
        return True

    def recolor(self, annotation_id: int, color: QColor) -> bool:
        annotation = self.get(annotation_id)
        if annotation is None:
            return False
        self._push_undo()
        annotation.style.color = QColor(color)
        return True

    def restyle(self, annotation_id: int, thickness: int) -> bool:
        annotation = self.get(annotation_id)
        if annotation is None:
            return False
        self._push_undo()
        annotation.style.thickness = int(clamp(thickness, MIN_THICKNESS, MAX_THICKNESS))
        return True

    def move_annotation(self, annotation_id: int, dx: float, dy: float) -> bool:
        annotation = self.get(annotation_id)
        if annotation is None:
            return False
        self._push_undo()
        annotation.move_by(dx, dy)
        return True

    def resize_text(self, annotation_id: int, dw: float, dh: float) -> bool:
        annotation = self.get(annotation_id)
        if not isinstance(annotation, TextAnnotation):
            return False
        self._push_undo()
        annotation.resize_by(dw, dh)
        return True

    def set_text(
        self, annotation_id: int, text: str, start: QPointF, width: float, height: float
    ) -> bool:
        """
        Replace the content and box of an existing text annotation.

        Whitespace-only text deletes the annotation instead. An unchanged
        text and box records nothing and returns False.
        """
        annotation = self.get(annotation_id)
        if not isinstance(annotation, TextAnnotation):
            return False

        if not text.strip():
            return self.delete_annotation(annotation_id)

        width = max(TEXT_MIN_WIDTH, width)
        height = max(TEXT_MIN_HEIGHT, height)
        if (
            text == annotation.text
            and start == annotation.start
            and width == annotation.width
            and height == annotation.height
        ):
            return False

        self._push_undo()
        annotation.text = text
        annotation.move_by(start.x() - annotation.start.x(), start.y() - annotation.start.y())
        annotation.width = width
        annotation.height = height
        return True

    # ─── Drag gestures ────────────────────────────────────────────────────

    def begin_gesture(self) -> None:
        """Remember the document before a pointer drag starts."""
        self._gesture_snapshot = self.snapshot()

    def drag_selected(self, pos: QPointF, dx: float, dy: float) -> bool:
        """Apply a drag sample to the selected annotation's active handle."""
        annotation = self.selected
        if annotation is None or self.selection.active_handle == DragHandle.NONE:
            return False
        annotation.drag_handle(self.selection.active_handle, pos, dx, dy)
        self.selection.drag_anchor = QPointF(pos)
        return True

    def end_gesture(self) -> bool:
        """
        Close a drag gesture.

        Returns:
            True if the drag changed the document and was recorded.
        """
        before = self._gesture_snapshot
        self._gesture_snapshot = None
        if before is None:
            return False

        changed = [a.to_dict() for a in before] != self.to_dicts()
        if changed:
            self._push_undo(before)
        return changed
