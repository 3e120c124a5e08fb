"""
Homography solver and board warper tests.
"""
import numpy as np
import pytest

from conftest import REFERENCE_DARTS
from dartvision.core.geometry import TARGET_POINTS
from dartvision.core.homography import apply_homography, build_dlt_matrix, compute_homography
from dartvision.core.scoring import get_score
from dartvision.core.warper import BoardWarper

QUADS = [
    (
        [(10, 20), (300, 40), (320, 280), (5, 300)],
        [(0, 0), (400, 0), (400, 400), (0, 400)],
    ),
    (
        [(336.88, 455.85), (598.0, 804.0), (333.0, 1157.0), (71.48, 1157.43)],
        [(200, 0), (400, 200), (200, 400), (0, 200)],
    ),
    (
        [(100, 100), (200, 120), (210, 230), (90, 210)],
        [(-50, 10), (60, 5), (70, 90), (-40, 100)],
    ),
]


def test_dlt_matrix_shape_and_rows():
    A = build_dlt_matrix([(2, 3)] * 4, [(5, 7)] * 4)
    assert A.shape == (8, 9)
    np.testing.assert_allclose(A[0], [-2, -3, -1, 0, 0, 0, 10, 15, 5])
    np.testing.assert_allclose(A[1], [0, 0, 0, -2, -3, -1, 14, 21, 7])


@pytest.mark.parametrize("source, destination", QUADS)
def test_homography_round_trip(source, destination):
    H = compute_homography(source, destination)

    assert H is not None
    assert H.shape == (3, 3)
    assert H[2, 2] == pytest.approx(1.0)
    for src, dst in zip(source, destination):
        assert apply_homography(H, src) == pytest.approx(dst, abs=1e-4)


def test_homography_needs_four_pairs():
    assert compute_homography([(0, 0), (1, 0), (1, 1)], [(0, 0), (1, 0), (1, 1)]) is None


def test_homography_svd_failure(monkeypatch):
    def fail(*args, **kwargs):
        raise np.linalg.LinAlgError("SVD did not converge")

    monkeypatch.setattr(np.linalg, "svd", fail)
    source, destination = QUADS[0]
    assert compute_homography(source, destination) is None


def test_homography_non_finite_solution(monkeypatch):
    real_svd = np.linalg.svd

    def nan_svd(a, *args, **kwargs):
        u, s, vt = real_svd(a, *args, **kwargs)
        vt = vt.copy()
        vt[-1, 0] = np.nan
        return u, s, vt

    monkeypatch.setattr(np.linalg, "svd", nan_svd)
    source, destination = QUADS[0]
    assert compute_homography(source, destination) is None


def test_degenerate_weight():
    H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 0.0]])
    assert apply_homography(H, (10, 20)) is None
    assert BoardWarper().transform_point((10, 20), H) == (0.0, 0.0)


def test_rotated_targets():
    targets = BoardWarper().rotated_target_points
    assert targets[0] == pytest.approx((168.713, 2.462), abs=1e-3)
    assert targets[1] == pytest.approx((397.538, 168.713), abs=1e-3)
    assert targets[2] == pytest.approx((231.287, 397.538), abs=1e-3)
    assert targets[3] == pytest.approx((2.462, 231.287), abs=1e-3)


def test_zero_angles_keep_targets():
    warper = BoardWarper(angle_correction=0.0, extra_rotation=0.0)
    for got, want in zip(warper.rotated_target_points, TARGET_POINTS):
        assert got == pytest.approx(want)


@pytest.mark.parametrize("source, destination", QUADS)
def test_transform_point_maps_source_to_destination(source, destination):
    warper = BoardWarper()
    H = compute_homography(source, destination)
    for src, dst in zip(source, destination):
        assert warper.transform_point(src, H) == pytest.approx(dst, abs=1.0)


def test_flip_x_mirrors_before_rotation():
    warper = BoardWarper(angle_correction=0.0, extra_rotation=0.0, flip_x=True)
    assert warper.transform_point((10, 20), np.eye(3)) == pytest.approx((389.0, 20.0))


def test_extra_rotation_is_a_separate_step():
    # Only the canvas rotation: a point right of center turns clockwise on screen
    warper = BoardWarper(angle_correction=0.0, extra_rotation=90.0)
    assert warper.transform_point((300, 200), np.eye(3)) == pytest.approx((200.0, 300.0))


def test_keypoint_homography_maps_keypoints_to_targets(published_keypoints):
    warper = BoardWarper()
    H = warper.compute_homography(published_keypoints)

    assert H is not None
    for kp, target in zip(published_keypoints, warper.rotated_target_points):
        assert apply_homography(H, kp.point) == pytest.approx(target, abs=1e-4)


def test_keypoint_homography_missing_label(published_keypoints):
    assert BoardWarper().compute_homography(published_keypoints[:3]) is None


def test_keypoint_order_does_not_matter(published_keypoints):
    warper = BoardWarper()
    H1 = warper.compute_homography(published_keypoints)
    H2 = warper.compute_homography(list(reversed(published_keypoints)))
    np.testing.assert_allclose(H1, H2)


@pytest.mark.parametrize("raw_x, raw_y, board_x, board_y, score, field_type", REFERENCE_DARTS)
def test_reference_darts(reference_keypoints, raw_x, raw_y, board_x, board_y, score, field_type):
    warper = BoardWarper()
    H = warper.compute_homography(reference_keypoints)

    x, y = warper.transform_point((raw_x, raw_y), H)

    assert abs(x - board_x) <= 5
    assert abs(y - board_y) <= 5
    result = get_score(x, y)
    assert result.value == score
    assert result.field_type == field_type


def test_transform_darts_keeps_confidence(reference_keypoints):
    from dartvision.core.detection import DetectedDart

    warper = BoardWarper()
    H = warper.compute_homography(reference_keypoints)
    darts = [DetectedDart(x=672.2, y=850.3, confidence=0.77)]

    [(position, confidence)] = warper.transform_darts(darts, H)

    assert position == pytest.approx((292, 153), abs=5)
    assert confidence == 0.77
