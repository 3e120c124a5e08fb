"""
Image Pipeline - one call per captured frame.

Board keypoints -> homography (cached) -> dart detection -> board canvas -> score.

Calibration is assumed stable once achieved; it is only dropped through
reset_keypoints() (the host calls invalidate_calibration() when the device
moved). One pipeline instance must not process frames concurrently without
external serialisation; the calibration cache is guarded by a lock.
"""
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import List, Optional, Sequence, Tuple

import numpy as np

from dartvision.core.detection import DetectedKeypoint
from dartvision.core.errors import HomographyFailedError, InsufficientKeypointsError
from dartvision.core.geometry import BOARD_CLASSES
from dartvision.core.inference import YOLOInference
from dartvision.core.scoring import ScoredDart, scoring_system
from dartvision.core.warper import BoardWarper
from dartvision.models.schemas import DartInfo, KeypointSet, PipelineResponse

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Keypoints used for this frame and every scored dart."""
    keypoints: List[DetectedKeypoint]
    darts: List[ScoredDart] = field(default_factory=list)

    def to_response(self) -> PipelineResponse:
        return PipelineResponse(
            keypoints=KeypointSet.from_keypoints(self.keypoints),
            darts=[
                DartInfo(
                    x=d.x,
                    y=d.y,
                    score=d.score.value,
                    segment=d.score.segment,
                    multiplier=d.score.multiplier,
                    field_type=d.score.field_type,
                    confidence=d.confidence
                )
                for d in self.darts
            ],
            dart_count=len(self.darts)
        )


def distinct_labels(keypoints: Sequence[DetectedKeypoint]) -> int:
    """Number of distinct board labels present."""
    return len({kp.label for kp in keypoints if kp.label in BOARD_CLASSES})


def keypoints_equal(
    a: Optional[Sequence[DetectedKeypoint]],
    b: Optional[Sequence[DetectedKeypoint]],
    tolerance: float = 1.0
) -> bool:
    """
    True if both sets carry all four labels and every corner matches
    within tolerance on each axis.
    """
    if not a or not b:
        return False

    first = {kp.label: kp for kp in a}
    second = {kp.label: kp for kp in b}
    for label in BOARD_CLASSES:
        p1 = first.get(label)
        p2 = second.get(label)
        if p1 is None or p2 is None:
            return False
        if abs(p1.x - p2.x) > tolerance or abs(p1.y - p2.y) > tolerance:
            return False
    return True


class ImagePipeline:
    """
    Orchestrates keypoint detection, calibration caching and dart scoring.
    """

    def __init__(self, inference: YOLOInference, warper: Optional[BoardWarper] = None):
        self.inference = inference
        self.warper = warper or BoardWarper()
        self._lock = Lock()
        self._cached_keypoints: Optional[List[DetectedKeypoint]] = None
        self._cached_homography: Optional[np.ndarray] = None

    @classmethod
    def from_settings(cls, settings) -> "ImagePipeline":
        """Build with ONNX models and warper parameters from a VisionSettings."""
        return cls(
            inference=YOLOInference.from_settings(settings),
            warper=BoardWarper(
                angle_correction=settings.warper.angle_correction,
                extra_rotation=settings.warper.extra_rotation,
                flip_x=settings.warper.flip_x
            )
        )

    @property
    def current_keypoints(self) -> Optional[List[DetectedKeypoint]]:
        with self._lock:
            return list(self._cached_keypoints) if self._cached_keypoints else None

    @property
    def current_homography(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._cached_homography is None else self._cached_homography.copy()

    def process(
        self,
        image: np.ndarray,
        existing_keypoints: Optional[Sequence[DetectedKeypoint]] = None,
        board_stable: bool = True
    ) -> PipelineResult:
        """
        Detect and score all darts in one frame.

        Args:
            image: BGR image as loaded by OpenCV
            existing_keypoints: Caller-supplied keypoints for this frame only;
                used when all four labels are present
            board_stable: When False the cached calibration is not reused and
                keypoints are detected again

        Returns:
            PipelineResult with the keypoints used and the scored darts

        Raises:
            InsufficientKeypointsError: fewer than 4 labeled corners detected
            HomographyFailedError: the solve failed; nothing is cached
            InvalidModelOutputError: a model returned an unexpected tensor
        """
        keypoints, H = self._resolve_calibration(image, existing_keypoints, board_stable)

        detected = self.inference.detect_darts(image)
        if not detected:
            return PipelineResult(keypoints=keypoints, darts=[])

        darts = [
            scoring_system.score_dart(x, y, confidence)
            for (x, y), confidence in self.warper.transform_darts(detected, H)
        ]
        logger.debug(f"[PIPELINE] Scored {len(darts)} dart(s): {[d.score.value for d in darts]}")
        return PipelineResult(keypoints=keypoints, darts=darts)

    def _resolve_calibration(
        self,
        image: np.ndarray,
        existing_keypoints: Optional[Sequence[DetectedKeypoint]],
        board_stable: bool
    ) -> Tuple[List[DetectedKeypoint], np.ndarray]:
        if existing_keypoints is not None:
            if distinct_labels(existing_keypoints) == len(BOARD_CLASSES):
                keypoints = list(existing_keypoints)
                return keypoints, self._solve(keypoints)
            logger.warning(
                f"[PIPELINE] Ignoring supplied keypoints, only "
                f"{distinct_labels(existing_keypoints)} of 4 labels"
            )

        with self._lock:
            if board_stable and self._cached_keypoints is not None and self._cached_homography is not None:
                return list(self._cached_keypoints), self._cached_homography

            keypoints = self.inference.detect_board_keypoints(image)
            found = distinct_labels(keypoints)
            if found < len(BOARD_CLASSES):
                raise InsufficientKeypointsError(found=found)

            H = self._solve(keypoints)
            self._cached_keypoints = list(keypoints)
            self._cached_homography = H
            logger.info("[PIPELINE] Calibration cached from detected keypoints")
            return list(keypoints), H

    def _solve(self, keypoints: Sequence[DetectedKeypoint]) -> np.ndarray:
        H = self.warper.compute_homography(keypoints)
        if H is None:
            logger.error("[PIPELINE] Homography could not be computed")
            raise HomographyFailedError()
        return H

    def reset_keypoints(self) -> None:
        """Drop the cached calibration; the next frame detects keypoints again."""
        with self._lock:
            self._cached_keypoints = None
            self._cached_homography = None
        logger.info("[PIPELINE] Calibration reset")

    def invalidate_calibration(self) -> None:
        """External 'device moved' signal."""
        self.reset_keypoints()

    def set_keypoints(self, keypoints: Sequence[DetectedKeypoint]) -> None:
        """
        Inject externally obtained keypoints as the cached calibration.

        Raises:
            InsufficientKeypointsError: not all four labels present
            HomographyFailedError: the solve failed; the cache is left untouched
        """
        found = distinct_labels(keypoints)
        if found < len(BOARD_CLASSES):
            raise InsufficientKeypointsError(found=found)

        H = self._solve(keypoints)
        with self._lock:
            self._cached_keypoints = list(keypoints)
            self._cached_homography = H
        logger.info("[PIPELINE] Calibration set from supplied keypoints")
