"""Shared fixtures for the Autonate test suite."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtGui import QColor, QImage
from PySide6.QtWidgets import QApplication, QWidget

from autonate.editor.interaction import InteractionRouter
from autonate.editor.session import EditorSession
from autonate.editor.text_overlay import TextEditController


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def source_image():
    image = QImage(800, 600, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(QColor(200, 100, 50))
    return image


@pytest.fixture
def host():
    widget = QWidget()
    widget.resize(800, 600)
    yield widget
    widget.deleteLater()


@pytest.fixture
def session(source_image):
    editor_session = EditorSession(source_image)
    yield editor_session
    # Stops any pending label prompt or frame timer from touching the session
    editor_session.end()


@pytest.fixture
def text_editor(session, host):
    return TextEditController(session.store, host)


@pytest.fixture
def router(session, text_editor, host):
    return InteractionRouter(session, text_editor, host)
