"""
Homography Solver

Direct Linear Transform over point correspondences, solved with SVD.
Replaces cv2.findHomography for the exact four-point board case.

Note: near-degenerate layouts (e.g. three collinear keypoints) are not
detected beyond what the SVD itself reports; no condition-number check
is applied to the solution.
"""
import logging
from typing import Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# Below this the homogeneous weight is treated as zero
WEIGHT_EPSILON = 1e-10


def build_dlt_matrix(source: Sequence[Point], destination: Sequence[Point]) -> np.ndarray:
    """
    Build the 2n x 9 DLT constraint matrix.

    For each pair (sx, sy) -> (dx, dy):
        [-sx, -sy, -1,   0,   0,  0, dx*sx, dx*sy, dx]
        [  0,   0,  0, -sx, -sy, -1, dy*sx, dy*sy, dy]
    """
    n = min(len(source), len(destination))
    A = np.zeros((2 * n, 9), dtype=np.float64)

    for i in range(n):
        sx, sy = float(source[i][0]), float(source[i][1])
        dx, dy = float(destination[i][0]), float(destination[i][1])

        A[2 * i] = [-sx, -sy, -1.0, 0.0, 0.0, 0.0, dx * sx, dx * sy, dx]
        A[2 * i + 1] = [0.0, 0.0, 0.0, -sx, -sy, -1.0, dy * sx, dy * sy, dy]

    return A


def compute_homography(
    source: Sequence[Point],
    destination: Sequence[Point]
) -> Optional[np.ndarray]:
    """
    Compute the 3x3 projective transform mapping source onto destination.

    The solution is the right-singular vector of the smallest singular value
    (last row of V^T), scaled so that H[2, 2] == 1 when that entry is not
    numerically zero.

    Args:
        source: At least four points in pixel space
        destination: The matching points in board space

    Returns:
        3x3 float64 matrix, or None if fewer than four pairs were given or
        the solve failed
    """
    if len(source) < 4 or len(destination) < 4:
        logger.warning(f"[HOMOGRAPHY] Need 4 point pairs, got {len(source)}/{len(destination)}")
        return None

    A = build_dlt_matrix(source, destination)

    try:
        _, _, vt = np.linalg.svd(A)
    except np.linalg.LinAlgError as e:
        logger.error(f"[HOMOGRAPHY] SVD did not converge: {e}")
        return None

    h = vt[-1].copy()
    if abs(h[8]) > WEIGHT_EPSILON:
        h /= h[8]

    if not np.all(np.isfinite(h)):
        logger.error("[HOMOGRAPHY] Non-finite solution")
        return None

    return h.reshape(3, 3)


def apply_homography(H: np.ndarray, point: Point) -> Optional[Point]:
    """
    Projectively map a point.

    Returns:
        (x, y), or None when the homogeneous weight is below WEIGHT_EPSILON
    """
    sx, sy = float(point[0]), float(point[1])
    w = H[2, 0] * sx + H[2, 1] * sy + H[2, 2]
    if abs(w) < WEIGHT_EPSILON:
        return None

    x = (H[0, 0] * sx + H[0, 1] * sy + H[0, 2]) / w
    y = (H[1, 0] * sx + H[1, 1] * sy + H[1, 2]) / w
    return (float(x), float(y))
