"""
YOLO Pose Inference

Runs the board and dart models on an image and decodes their raw output.
The models themselves are opaque: any callable image -> raw tensor works.
Exported ONNX models are run through OpenCV's DNN module.
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import cv2
import numpy as np

from dartvision.core.detection import (
    CONFIDENCE_THRESHOLD,
    IOU_THRESHOLD,
    DetectedDart,
    DetectedKeypoint,
    decode_board_keypoints,
    decode_darts,
)
from dartvision.core.errors import ModelNotFoundError

logger = logging.getLogger(__name__)

# Default models directory (repo root / models)
MODELS_DIR = Path(__file__).parent.parent.parent / "models"
BOARD_MODEL_NAME = "Board.onnx"
DARTS_MODEL_NAME = "Darts.onnx"

# Square model input
INPUT_SIZE = 1216

ModelFn = Callable[[np.ndarray], np.ndarray]


class OpenCVModel:
    """
    Raw-output runner for an exported YOLO pose model.

    Returns the untouched (1, channels, anchors) tensor; decoding and NMS
    happen in dartvision.core.detection.
    """

    def __init__(self, model_path: Union[str, Path], input_size: int = INPUT_SIZE):
        self.model_path = Path(model_path)
        self.input_size = input_size

        if not self.model_path.exists():
            raise ModelNotFoundError(f"Model not found at {self.model_path}")

        self.net = cv2.dnn.readNet(str(self.model_path))
        logger.info(f"[MODEL] Loaded {self.model_path.name} (input {input_size}x{input_size})")

    def __call__(self, image: np.ndarray) -> np.ndarray:
        # Plain stretch to the square input, BGR -> RGB, 0..1
        blob = cv2.dnn.blobFromImage(
            image,
            scalefactor=1.0 / 255.0,
            size=(self.input_size, self.input_size),
            swapRB=True,
            crop=False
        )
        self.net.setInput(blob)
        return self.net.forward()


class YOLOInference:
    """
    Board keypoint and dart tip detection.

    Detections are scaled from model-input pixels back to the original image.
    """

    def __init__(
        self,
        board_model: ModelFn,
        dart_model: ModelFn,
        input_size: int = INPUT_SIZE,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
        iou_threshold: float = IOU_THRESHOLD,
        num_anchors: Optional[int] = None
    ):
        self.board_model = board_model
        self.dart_model = dart_model
        self.input_size = input_size
        self.confidence_threshold = confidence_threshold
        self.iou_threshold = iou_threshold
        self.num_anchors = num_anchors

    @classmethod
    def from_model_dir(
        cls,
        models_dir: Union[str, Path] = MODELS_DIR,
        board_model: str = BOARD_MODEL_NAME,
        darts_model: str = DARTS_MODEL_NAME,
        input_size: int = INPUT_SIZE,
        **kwargs
    ) -> "YOLOInference":
        """Load both ONNX models from a directory."""
        models_dir = Path(models_dir)
        return cls(
            board_model=OpenCVModel(models_dir / board_model, input_size),
            dart_model=OpenCVModel(models_dir / darts_model, input_size),
            input_size=input_size,
            **kwargs
        )

    @classmethod
    def from_settings(cls, settings) -> "YOLOInference":
        """Build from a VisionSettings instance."""
        return cls.from_model_dir(
            models_dir=settings.models.models_dir,
            board_model=settings.models.board_model,
            darts_model=settings.models.darts_model,
            input_size=settings.decoder.input_size,
            confidence_threshold=settings.decoder.confidence_threshold,
            iou_threshold=settings.decoder.iou_threshold,
            num_anchors=settings.decoder.num_anchors
        )

    def _scale(self, image: np.ndarray) -> Tuple[float, float]:
        height, width = image.shape[:2]
        return (width / self.input_size, height / self.input_size)

    def detect_board_keypoints(self, image: np.ndarray) -> List[DetectedKeypoint]:
        """
        Detect the four board keypoints (TOP, Right, Bottom, Left).

        Returns:
            One keypoint per label found, best confidence per label
        """
        scale_x, scale_y = self._scale(image)
        keypoints = decode_board_keypoints(
            self.board_model(image),
            scale_x=scale_x,
            scale_y=scale_y,
            confidence_threshold=self.confidence_threshold,
            iou_threshold=self.iou_threshold,
            num_anchors=self.num_anchors
        )
        logger.debug(f"[MODEL] {len(keypoints)} board keypoints")
        return keypoints

    def detect_darts(self, image: np.ndarray) -> List[DetectedDart]:
        """Detect dart tip positions."""
        scale_x, scale_y = self._scale(image)
        darts = decode_darts(
            self.dart_model(image),
            scale_x=scale_x,
            scale_y=scale_y,
            confidence_threshold=self.confidence_threshold,
            iou_threshold=self.iou_threshold,
            num_anchors=self.num_anchors
        )
        logger.debug(f"[MODEL] {len(darts)} darts")
        return darts
