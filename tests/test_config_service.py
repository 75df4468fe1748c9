import json

from autonate.services.config_service import DEFAULT_CONFIG, ConfigService


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = ConfigService(path)

    assert path.exists()
    assert json.loads(path.read_text()) == DEFAULT_CONFIG
    assert config.shape == "circle"
    assert config.focus_radius == 150
    assert config.blur_radius == 8
    assert config.default_action == "copy"


def test_stored_values_override_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"shape": "square", "blur_radius": 3}))

    config = ConfigService(path)
    assert config.shape == "square"
    assert config.blur_radius == 3
    assert config.stamp_size == DEFAULT_CONFIG["stamp_size"]
    # Missing keys are written back
    assert "stamp_size" in json.loads(path.read_text())


def test_corrupt_file_is_recreated(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    config = ConfigService(path)
    assert config.shape == "circle"
    assert json.loads(path.read_text()) == DEFAULT_CONFIG


def test_non_object_file_is_recreated(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2, 3]")
    ConfigService(path)
    assert json.loads(path.read_text()) == DEFAULT_CONFIG


def test_out_of_range_values_are_clamped(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "focus_radius": 5000,
        "blur_radius": -4,
        "stamp_size": 1,
        "palette_scale": 9,
    }))

    config = ConfigService(path)
    assert config.focus_radius == 600
    assert config.blur_radius == 0
    assert config.stamp_size == 4
    assert config.palette_scale == 2.0


def test_invalid_values_fall_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "shape": "hexagon",
        "default_action": "print",
        "focus_radius": "big",
    }))

    config = ConfigService(path)
    assert config.shape == "circle"
    assert config.default_action == "copy"
    assert config.focus_radius == 150


def test_remember_focus_persists(tmp_path):
    path = tmp_path / "config.json"
    config = ConfigService(path)

    config.remember_focus(shape="custom-box", radius=1000)
    stored = json.loads(path.read_text())
    assert stored["shape"] == "custom-box"
    assert stored["focus_radius"] == 600

    config.remember_focus(shape="hexagon")
    assert ConfigService(path).shape == "custom-box"
