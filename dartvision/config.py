"""
Configuration for the dart vision pipeline.

Defaults match the board geometry and detector settings the models were
trained with. A TOML file can override any section:

    log_level = "DEBUG"

    [decoder]
    confidence_threshold = 0.3

    [warper]
    flip_x = true

    [tracker]
    tolerance = 25.0

    [models]
    models_dir = "/opt/dartvision/models"
"""
import logging
import os
from pathlib import Path
from typing import Optional, Union

import toml
from pydantic import BaseModel, Field

from dartvision.core.inference import MODELS_DIR

logger = logging.getLogger(__name__)

CONFIG_ENV = "DARTVISION_CONFIG"
MODELS_DIR_ENV = "DARTVISION_MODELS_DIR"
LOG_LEVEL_ENV = "DARTVISION_LOG_LEVEL"


class DecoderSettings(BaseModel):
    confidence_threshold: float = Field(0.25, ge=0.0, le=1.0)
    iou_threshold: float = Field(0.45, ge=0.0, le=1.0)
    input_size: int = Field(1216, gt=0, description="Square model input size in pixels")
    num_anchors: Optional[int] = Field(30324, gt=0, description="Expected anchors, None to skip the check")


class WarperSettings(BaseModel):
    angle_correction: float = 9.0
    extra_rotation: float = 9.0
    flip_x: bool = False


class TrackerSettings(BaseModel):
    tolerance: float = Field(20.0, gt=0.0, description="Same-dart distance on the board canvas")
    max_darts: int = Field(3, ge=1)


class ModelSettings(BaseModel):
    models_dir: str = str(MODELS_DIR)
    board_model: str = "Board.onnx"
    darts_model: str = "Darts.onnx"


class VisionSettings(BaseModel):
    decoder: DecoderSettings = Field(default_factory=DecoderSettings)
    warper: WarperSettings = Field(default_factory=WarperSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    models: ModelSettings = Field(default_factory=ModelSettings)
    log_level: str = "INFO"


def load_settings(path: Optional[Union[str, Path]] = None) -> VisionSettings:
    """
    Load settings from a TOML file.

    Args:
        path: Config file; falls back to $DARTVISION_CONFIG, then to defaults

    Returns:
        VisionSettings with environment overrides applied

    Raises:
        FileNotFoundError: if the named file does not exist
        pydantic.ValidationError: if a value is out of range
    """
    if path is None:
        path = os.getenv(CONFIG_ENV)

    data = {}
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        data = toml.load(config_path)
        logger.info(f"[CONFIG] Loaded {config_path}")

    settings = VisionSettings(**data)

    models_dir = os.getenv(MODELS_DIR_ENV)
    if models_dir:
        settings.models.models_dir = models_dir

    log_level = os.getenv(LOG_LEVEL_ENV)
    if log_level:
        settings.log_level = log_level.upper()

    return settings
