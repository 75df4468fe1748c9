from PySide6.QtGui import QColor, QImage

from autonate.core.capture_service import CaptureService


def _record(signal):
    seen = []
    signal.connect(lambda *args: seen.append(args))
    return seen


def test_load_image_emits_the_file(tmp_path):
    path = tmp_path / "shot.png"
    image = QImage(64, 48, QImage.Format.Format_ARGB32)
    image.fill(QColor(1, 2, 3))
    assert image.save(str(path), "PNG")

    service = CaptureService()
    completed = _record(service.capture_completed)
    service.load_image(path)

    assert len(completed) == 1
    loaded, geometry = completed[0]
    assert loaded.size() == image.size()
    assert geometry.width() > 0


def test_missing_file_cancels(tmp_path):
    service = CaptureService()
    cancelled = _record(service.capture_cancelled)
    service.load_image(tmp_path / "nope.png")
    assert cancelled == [()]
