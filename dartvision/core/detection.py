"""
Detection Decoder

Turns the raw YOLO pose output tensor into boxes, classes and keypoints,
removes duplicates with non-maximum suppression and reduces board
detections to one keypoint per corner label.

Tensor layout: (1, channels, num_anchors), row-major by channel, where
channels = 4 (cx, cy, w, h) + num_classes + 3 * num_keypoints (x, y, conf).
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from dartvision.core.errors import InvalidModelOutputError
from dartvision.core.geometry import BOARD_CLASSES

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.25
IOU_THRESHOLD = 0.45

# Known model variants
BOARD_NUM_CLASSES = 4
DART_NUM_CLASSES = 1
NUM_KEYPOINTS = 1
NUM_ANCHORS = 30324


@dataclass
class RawDetection:
    """One candidate from the raw tensor, in model-input pixel space."""
    cx: float
    cy: float
    width: float
    height: float
    class_index: int
    confidence: float
    keypoints: List[Tuple[float, float]] = field(default_factory=list)

    def to_xyxy(self) -> Tuple[float, float, float, float]:
        half_w = self.width / 2
        half_h = self.height / 2
        return (self.cx - half_w, self.cy - half_h, self.cx + half_w, self.cy + half_h)


@dataclass(frozen=True)
class DetectedKeypoint:
    """A labeled board corner in original-image pixel space."""
    label: str  # 'TOP', 'Right', 'Bottom', 'Left'
    x: float
    y: float
    confidence: float

    @property
    def point(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class DetectedDart:
    """A dart tip in original-image pixel space."""
    x: float
    y: float
    confidence: float

    @property
    def point(self) -> Tuple[float, float]:
        return (self.x, self.y)


def reshape_output(
    output: np.ndarray,
    num_classes: int,
    num_keypoints: int = NUM_KEYPOINTS,
    num_anchors: Optional[int] = None
) -> np.ndarray:
    """
    Bring a raw model output into (channels, anchors) shape.

    Accepts (1, C, N), (C, N) or a flat buffer of C * N values.

    Raises:
        InvalidModelOutputError: if the layout does not match the model variant
    """
    channels = 4 + num_classes + 3 * num_keypoints
    try:
        tensor = np.asarray(output, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidModelOutputError(f"Model output is not a numeric tensor: {e}") from e

    if tensor.ndim == 3:
        if tensor.shape[0] != 1:
            raise InvalidModelOutputError(f"Expected batch size 1, got {tensor.shape[0]}")
        tensor = tensor[0]
    elif tensor.ndim == 1:
        if tensor.size % channels != 0:
            raise InvalidModelOutputError(
                f"Flat output of {tensor.size} values is not divisible by {channels} channels"
            )
        tensor = tensor.reshape(channels, -1)
    elif tensor.ndim != 2:
        raise InvalidModelOutputError(f"Unsupported output rank {tensor.ndim}")

    if tensor.shape[0] != channels:
        raise InvalidModelOutputError(
            f"Expected {channels} channels (4 + {num_classes} classes + 3x{num_keypoints} keypoints), "
            f"got {tensor.shape[0]}"
        )

    if num_anchors is not None and tensor.shape[1] != num_anchors:
        raise InvalidModelOutputError(f"Expected {num_anchors} anchors, got {tensor.shape[1]}")

    return tensor


def parse_raw_output(
    output: np.ndarray,
    num_classes: int,
    num_keypoints: int = NUM_KEYPOINTS,
    confidence_threshold: float = CONFIDENCE_THRESHOLD,
    num_anchors: Optional[int] = None
) -> List[RawDetection]:
    """
    Decode every anchor whose best class probability reaches the threshold.

    Args:
        output: Raw model output, see reshape_output
        num_classes: Number of class channels
        num_keypoints: Number of (x, y, conf) keypoint triples
        confidence_threshold: Minimum best-class probability
        num_anchors: Expected anchor count, or None to accept any

    Returns:
        List of RawDetection in anchor order
    """
    tensor = reshape_output(output, num_classes, num_keypoints, num_anchors)

    class_probs = tensor[4:4 + num_classes]
    best_class = np.argmax(class_probs, axis=0)
    best_prob = class_probs[best_class, np.arange(tensor.shape[1])]

    detections = []
    for a in np.nonzero(best_prob >= confidence_threshold)[0]:
        kps = []
        for k in range(num_keypoints):
            kp_offset = 4 + num_classes + k * 3
            # keypoint confidence (kp_offset + 2) is not used
            kps.append((float(tensor[kp_offset, a]), float(tensor[kp_offset + 1, a])))

        detections.append(RawDetection(
            cx=float(tensor[0, a]),
            cy=float(tensor[1, a]),
            width=float(tensor[2, a]),
            height=float(tensor[3, a]),
            class_index=int(best_class[a]),
            confidence=float(best_prob[a]),
            keypoints=kps
        ))

    logger.debug(f"[DECODER] {len(detections)} candidates above {confidence_threshold}")
    return detections


def box_iou(a: RawDetection, b: RawDetection) -> float:
    """Intersection over union of two center-format boxes."""
    ax1, ay1, ax2, ay2 = a.to_xyxy()
    bx1, by1, bx2, by2 = b.to_xyxy()

    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter_area = inter_w * inter_h

    union_area = a.width * a.height + b.width * b.height - inter_area
    if union_area <= 0:
        return 0.0
    return inter_area / union_area


def non_max_suppression(
    detections: List[RawDetection],
    iou_threshold: float = IOU_THRESHOLD
) -> List[RawDetection]:
    """
    Greedy NMS, class-agnostic.

    Candidates are visited by descending confidence (equal confidences keep
    their input order); a candidate is kept only if its IoU with every kept
    box is <= iou_threshold.
    """
    ordered = sorted(detections, key=lambda d: d.confidence, reverse=True)
    kept: List[RawDetection] = []

    for det in ordered:
        if all(box_iou(det, existing) <= iou_threshold for existing in kept):
            kept.append(det)

    logger.debug(f"[DECODER] NMS kept {len(kept)} of {len(detections)}")
    return kept


def best_per_class(detections: List[RawDetection]) -> Dict[int, RawDetection]:
    """
    Map each class index to its highest-confidence detection.

    On equal confidence the first detection seen wins.
    """
    best: Dict[int, RawDetection] = {}
    for det in detections:
        current = best.get(det.class_index)
        if current is None or det.confidence > current.confidence:
            best[det.class_index] = det
    return best


def decode_board_keypoints(
    output: np.ndarray,
    scale_x: float = 1.0,
    scale_y: float = 1.0,
    confidence_threshold: float = CONFIDENCE_THRESHOLD,
    iou_threshold: float = IOU_THRESHOLD,
    num_anchors: Optional[int] = None
) -> List[DetectedKeypoint]:
    """
    Decode the board model output into at most one keypoint per corner label.

    Args:
        output: Raw board model output (4 classes, 1 keypoint)
        scale_x, scale_y: Factors from model-input pixels to original-image pixels

    Returns:
        Keypoints ordered TOP, Right, Bottom, Left (missing labels are skipped)
    """
    raw = parse_raw_output(
        output,
        num_classes=BOARD_NUM_CLASSES,
        num_keypoints=NUM_KEYPOINTS,
        confidence_threshold=confidence_threshold,
        num_anchors=num_anchors
    )
    filtered = non_max_suppression(raw, iou_threshold)

    keypoints = []
    for class_idx, det in sorted(best_per_class(filtered).items()):
        if class_idx >= len(BOARD_CLASSES) or not det.keypoints:
            continue
        kx, ky = det.keypoints[0]
        keypoints.append(DetectedKeypoint(
            label=BOARD_CLASSES[class_idx],
            x=kx * scale_x,
            y=ky * scale_y,
            confidence=det.confidence
        ))

    logger.debug(f"[DECODER] Board keypoints: {[kp.label for kp in keypoints]}")
    return keypoints


def decode_darts(
    output: np.ndarray,
    scale_x: float = 1.0,
    scale_y: float = 1.0,
    confidence_threshold: float = CONFIDENCE_THRESHOLD,
    iou_threshold: float = IOU_THRESHOLD,
    num_anchors: Optional[int] = None
) -> List[DetectedDart]:
    """
    Decode the dart model output into tip positions.

    The tip keypoint is used when present, otherwise the box center.
    """
    raw = parse_raw_output(
        output,
        num_classes=DART_NUM_CLASSES,
        num_keypoints=NUM_KEYPOINTS,
        confidence_threshold=confidence_threshold,
        num_anchors=num_anchors
    )
    filtered = non_max_suppression(raw, iou_threshold)

    darts = []
    for det in filtered:
        tx, ty = det.keypoints[0] if det.keypoints else (det.cx, det.cy)
        darts.append(DetectedDart(x=tx * scale_x, y=ty * scale_y, confidence=det.confidence))
    return darts
