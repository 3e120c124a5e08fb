"""
Board Warper - perspective correction onto the 400x400 board canvas.

Computes the homography from the four board keypoints and maps dart tip
pixels into canvas coordinates that the scorer understands.
"""
import logging
import math
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from dartvision.core.detection import DetectedDart, DetectedKeypoint
from dartvision.core.geometry import (
    ANGLE_CORRECTION,
    BOARD_CENTER,
    BOARD_CLASSES,
    BOARD_SIZE,
    EXTRA_ROTATION,
    TARGET_POINTS,
)
from dartvision.core.homography import apply_homography, compute_homography

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class BoardWarper:
    """
    Maps camera pixels onto the normalised board.

    Transform of a point:
    1. homography (keypoints -> rotated target layout)
    2. optional horizontal mirror
    3. rotation by angle_correction about the board center
    4. rotation by extra_rotation about the canvas center
    """

    def __init__(
        self,
        angle_correction: float = ANGLE_CORRECTION,
        extra_rotation: float = EXTRA_ROTATION,
        flip_x: bool = False
    ):
        self.angle_correction = angle_correction
        self.extra_rotation = extra_rotation
        self.flip_x = flip_x

        # Applied once to the targets and again to every transformed point
        self._rotation = cv2.getRotationMatrix2D(BOARD_CENTER, angle_correction, 1.0)
        self._target_points = [self._rotate(p) for p in TARGET_POINTS]

    @property
    def rotated_target_points(self) -> List[Point]:
        """Destination layout (top, right, bottom, left) after angle correction."""
        return list(self._target_points)

    def _rotate(self, point: Point) -> Point:
        x, y = point
        m = self._rotation
        return (
            float(m[0, 0] * x + m[0, 1] * y + m[0, 2]),
            float(m[1, 0] * x + m[1, 1] * y + m[1, 2]),
        )

    def _extra_rotate(self, point: Point) -> Point:
        cx = BOARD_SIZE / 2.0
        cy = BOARD_SIZE / 2.0
        dx = point[0] - cx
        dy = point[1] - cy
        rad = math.radians(self.extra_rotation)
        return (
            cx + dx * math.cos(rad) - dy * math.sin(rad),
            cy + dx * math.sin(rad) + dy * math.cos(rad),
        )

    def compute_homography(self, keypoints: Sequence[DetectedKeypoint]) -> Optional[np.ndarray]:
        """
        Homography from the four labeled board keypoints.

        Args:
            keypoints: Must contain one keypoint per label TOP, Right, Bottom, Left

        Returns:
            3x3 matrix, or None if a label is missing or the solve failed
        """
        source = []
        for label in BOARD_CLASSES:
            kp = next((k for k in keypoints if k.label == label), None)
            if kp is None:
                logger.warning(f"[WARPER] Missing keypoint '{label}'")
                return None
            source.append(kp.point)

        return compute_homography(source, self._target_points)

    def transform_point(self, point: Point, H: np.ndarray) -> Point:
        """
        Map a pixel coordinate onto the board canvas.

        A near-zero projective weight yields (0.0, 0.0); callers should treat
        a dart at the origin as suspect.
        """
        projected = apply_homography(H, point)
        if projected is None:
            logger.warning(f"[WARPER] Degenerate projective weight for {point}, returning origin")
            return (0.0, 0.0)

        px, py = projected
        if self.flip_x:
            px = (BOARD_SIZE - 1) - px

        return self._extra_rotate(self._rotate((px, py)))

    def transform_darts(
        self,
        darts: Sequence[DetectedDart],
        H: np.ndarray
    ) -> List[Tuple[Point, float]]:
        """Transform several darts, keeping their confidences."""
        return [(self.transform_point(d.point, H), d.confidence) for d in darts]
