import pytest
from pydantic import ValidationError

from dartvision.config import VisionSettings, load_settings
from dartvision.core.dart_tracker import DartTracker
from dartvision.core.inference import MODELS_DIR


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DARTVISION_CONFIG", "DARTVISION_MODELS_DIR", "DARTVISION_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.decoder.confidence_threshold == 0.25
    assert settings.decoder.iou_threshold == 0.45
    assert settings.decoder.input_size == 1216
    assert settings.decoder.num_anchors == 30324
    assert settings.warper.angle_correction == 9.0
    assert settings.warper.flip_x is False
    assert settings.tracker.tolerance == 20.0
    assert settings.tracker.max_darts == 3
    assert settings.models.board_model == "Board.onnx"
    assert settings.models.models_dir == str(MODELS_DIR)
    assert settings.log_level == "INFO"


def test_load_from_file(tmp_path):
    path = tmp_path / "dartvision.toml"
    path.write_text(
        'log_level = "DEBUG"\n'
        "[decoder]\nconfidence_threshold = 0.3\n"
        "[warper]\nflip_x = true\n"
        "[tracker]\ntolerance = 25.0\n"
    )

    settings = load_settings(path)

    assert settings.log_level == "DEBUG"
    assert settings.decoder.confidence_threshold == 0.3
    assert settings.decoder.iou_threshold == 0.45
    assert settings.warper.flip_x is True
    assert settings.tracker.tolerance == 25.0


def test_config_path_from_env(tmp_path, monkeypatch):
    path = tmp_path / "dartvision.toml"
    path.write_text("[tracker]\nmax_darts = 4\n")
    monkeypatch.setenv("DARTVISION_CONFIG", str(path))

    assert load_settings().tracker.max_darts == 4


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DARTVISION_MODELS_DIR", "/opt/models")
    monkeypatch.setenv("DARTVISION_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.models.models_dir == "/opt/models"
    assert settings.log_level == "DEBUG"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.toml")


@pytest.mark.parametrize("section,values", [
    ("decoder", {"confidence_threshold": 1.5}),
    ("decoder", {"input_size": 0}),
    ("tracker", {"tolerance": 0}),
    ("tracker", {"max_darts": 0}),
])
def test_validation(section, values):
    with pytest.raises(ValidationError):
        VisionSettings(**{section: values})


def test_tracker_from_settings():
    settings = VisionSettings(tracker={"tolerance": 5.0, "max_darts": 2})

    tracker = DartTracker.from_settings(settings)

    assert tracker.tolerance == 5.0
    assert tracker.max_darts == 2
