"""
Pydantic schemas for serialised pipeline results
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from dartvision.core.detection import DetectedKeypoint
from dartvision.core.errors import InsufficientKeypointsError
from dartvision.core.geometry import BOARD_CLASSES

# Model class label -> serialised key
KEYPOINT_KEYS = {
    "TOP": "top",
    "Right": "right",
    "Bottom": "bottom",
    "Left": "left",
}


class KeypointSet(BaseModel):
    """The four board keypoints as [x, y] pixel pairs"""
    top: List[float] = Field(..., min_length=2, max_length=2)
    right: List[float] = Field(..., min_length=2, max_length=2)
    bottom: List[float] = Field(..., min_length=2, max_length=2)
    left: List[float] = Field(..., min_length=2, max_length=2)

    @classmethod
    def from_keypoints(cls, keypoints: List[DetectedKeypoint]) -> "KeypointSet":
        by_label = {kp.label: kp for kp in keypoints}
        missing = [label for label in BOARD_CLASSES if label not in by_label]
        if missing:
            raise InsufficientKeypointsError(found=len(BOARD_CLASSES) - len(missing))
        return cls(**{
            KEYPOINT_KEYS[label]: [by_label[label].x, by_label[label].y]
            for label in BOARD_CLASSES
        })

    def to_keypoints(self, confidence: float = 1.0) -> List[DetectedKeypoint]:
        return [
            DetectedKeypoint(
                label=label,
                x=getattr(self, KEYPOINT_KEYS[label])[0],
                y=getattr(self, KEYPOINT_KEYS[label])[1],
                confidence=confidence
            )
            for label in BOARD_CLASSES
        ]


class DartInfo(BaseModel):
    """A scored dart on the board canvas"""
    x: float = Field(..., description="X on the 400x400 board canvas")
    y: float = Field(..., description="Y on the 400x400 board canvas")
    score: int = Field(..., description="Points (e.g., 60 for T20)")
    segment: int = Field(..., description="1-20, 25 outer bull, 50 bull, 0 miss")
    multiplier: int = Field(..., description="0=miss, 1=single, 2=double/bull, 3=triple")
    field_type: str = Field(..., description="bull, outer_bull, triple, double, single or miss")
    confidence: float = Field(..., description="Detection confidence 0-1")


class PipelineResponse(BaseModel):
    """Result of processing one frame"""
    keypoints: Optional[KeypointSet] = None
    darts: List[DartInfo] = Field(default_factory=list)
    dart_count: int = 0
