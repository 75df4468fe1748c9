import pytest
from PySide6.QtCore import QPointF, QSize, Qt
from PySide6.QtGui import QColor, QImage, QPainter

from autonate.editor.annotation_store import AnnotationStore
from autonate.editor.annotations import AnnotationStyle, AnnotationType
from autonate.editor.focus_region import FocusRegionController, FocusShape
from autonate.editor.renderer import FocusRenderer, blur_image, build_backdrop


def _checkerboard(size=40):
    image = QImage(size, size, QImage.Format.Format_RGB32)
    image.fill(Qt.GlobalColor.black)
    painter = QPainter(image)
    for y in range(0, size, 4):
        for x in range(0, size, 4):
            if (x + y) // 4 % 2 == 0:
                painter.fillRect(x, y, 4, 4, Qt.GlobalColor.white)
    painter.end()
    return image


@pytest.fixture
def parts(source_image):
    focus = FocusRegionController(FocusShape.CIRCLE, radius=100, blur_radius=4)
    store = AnnotationStore()
    renderer = FocusRenderer(source_image, QSize(800, 600), focus, store)
    return renderer, focus, store


def test_blur_keeps_size_and_smooths():
    image = _checkerboard()
    blurred = blur_image(image, 3)
    assert blurred.size() == image.size()
    assert blurred.format() == QImage.Format.Format_RGBA8888

    # A mid-board pixel ends up grey instead of black or white
    red = blurred.pixelColor(20, 20).red()
    assert 30 < red < 225


def test_blur_radius_zero_is_a_copy():
    image = _checkerboard()
    copy = blur_image(image, 0)
    assert copy.pixelColor(0, 0) == image.pixelColor(0, 0)
    assert copy.pixelColor(4, 0) == image.pixelColor(4, 0)


def test_backdrop_is_dimmed_and_scaled(source_image):
    backdrop = build_backdrop(source_image, QSize(400, 300), 0)
    assert backdrop.size() == QSize(400, 300)
    color = backdrop.pixelColor(10, 10)
    assert color.red() < 100
    assert color.green() < 60


def test_backdrop_is_cached_until_invalidated(parts):
    renderer, focus, _ = parts
    first = renderer.backdrop
    assert renderer.backdrop is first

    focus.set_shape(FocusShape.SQUARE)
    assert renderer.backdrop is not first


def test_backdrop_rebuilds_when_custom_box_locks(parts):
    renderer, focus, _ = parts
    focus.set_shape(FocusShape.CUSTOM_BOX)
    sharp = renderer.backdrop
    focus.begin_custom_box(QPointF(10, 10))
    focus.complete_custom_box(QPointF(200, 200))
    assert renderer.backdrop is not sharp


def test_locked_render_shows_sharp_window(parts, source_image):
    renderer, focus, _ = parts
    focus.lock(QPointF(400, 300))
    image = renderer.render_to_image()

    assert image.size() == QSize(800, 600)
    inside = image.pixelColor(400, 300)
    assert (inside.red(), inside.green(), inside.blue()) == (200, 100, 50)
    outside = image.pixelColor(20, 20)
    assert outside.red() < 100


def test_export_has_no_selection_decorations(parts):
    renderer, focus, store = parts
    focus.lock(QPointF(400, 300))
    stamp = store.begin_annotation(
        AnnotationType.XMARK, QPointF(400, 300), AnnotationStyle(QColor("#00ff00"), 6, 24)
    )

    plain = renderer.render_to_image()
    store.selection.selected_id = stamp.id
    decorated = renderer.render_to_image()
    assert plain == decorated

    # The stamp itself is painted
    center = plain.pixelColor(400, 300)
    assert center.green() > 200 and center.red() < 50


def test_preview_paints_without_window(source_image):
    focus = FocusRegionController(FocusShape.CUSTOM_BOX)
    renderer = FocusRenderer(source_image, QSize(200, 100), focus, AnnotationStore())
    image = QImage(200, 100, QImage.Format.Format_ARGB32_Premultiplied)
    painter = QPainter(image)
    renderer.paint(painter, QPointF(50, 50))
    painter.end()
    # No anchor yet, so everything is dimmed
    assert image.pixelColor(50, 50).red() < 100
