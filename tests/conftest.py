"""
Shared fixtures: synthetic YOLO pose tensors and reference board data.
"""
import numpy as np
import pytest

from dartvision.core.detection import DetectedKeypoint


# Keypoints consistent with the seven reference darts below.
REFERENCE_KEYPOINTS = {
    "TOP": (333.66, 451.93),
    "Right": (1056.25, 853.66),
    "Bottom": (550.58, 1721.73),
    "Left": (63.91, 1155.04),
}

# Published keypoint set; its Right/Bottom corners do not fit the reference darts.
PUBLISHED_KEYPOINTS = {
    "TOP": (336.88, 455.85),
    "Right": (598.00, 804.00),
    "Bottom": (333.00, 1157.00),
    "Left": (71.48, 1157.43),
}

# (raw_x, raw_y, board_x, board_y, score, field_type)
REFERENCE_DARTS = [
    (672.2, 850.3, 292, 153, 4, "single"),
    (377.6, 570.3, 186, 47, 20, "single"),
    (347.9, 557.6, 173, 40, 5, "single"),
    (442.7, 743.4, 210, 108, 20, "single"),
    (597.9, 513.3, 274, 53, 1, "single"),
    (703.0, 605.2, 307, 88, 18, "single"),
    (441.0, 742.9, 209, 107, 20, "single"),
]


def build_output(rows, num_classes, num_anchors=32):
    """
    Build a (1, channels, anchors) tensor.

    rows: list of (box, class_probs, keypoint) with box = (cx, cy, w, h)
    and keypoint = (x, y). Unused anchors stay zero.
    """
    channels = 4 + num_classes + 3
    out = np.zeros((1, channels, num_anchors), dtype=np.float32)
    for a, (box, probs, kp) in enumerate(rows):
        out[0, 0:4, a] = box
        out[0, 4:4 + num_classes, a] = probs
        out[0, 4 + num_classes:4 + num_classes + 3, a] = (kp[0], kp[1], 1.0)
    return out


def to_keypoints(mapping, confidence=0.9):
    return [DetectedKeypoint(label=label, x=x, y=y, confidence=confidence)
            for label, (x, y) in mapping.items()]


@pytest.fixture
def make_output():
    return build_output


@pytest.fixture
def reference_keypoints():
    return to_keypoints(REFERENCE_KEYPOINTS)


@pytest.fixture
def published_keypoints():
    return to_keypoints(PUBLISHED_KEYPOINTS)
