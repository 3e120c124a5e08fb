"""
Dartboard Geometry Constants

Normalised 400x400 board canvas used after perspective correction.
All radii are measured in canvas units from the board center (200, 200);
radius 200 is the outer edge of the double ring.
"""
from typing import List, Tuple

# Canvas
BOARD_SIZE = 400.0
BOARD_RADIUS = 200.0
BOARD_CENTER: Tuple[float, float] = (200.0, 200.0)

# Segment order clockwise from top (20 at 12 o'clock)
DARTBOARD_SEGMENTS: List[int] = [
    20, 1, 18, 4, 13, 6, 10, 15, 2, 17,
    3, 19, 7, 16, 8, 11, 14, 9, 12, 5
]

# Ring radii in canvas units
INNER_BULL_RADIUS = 7.5         # Bull (50 points)
OUTER_BULL_RADIUS = 18.7        # Outer bull (25 points)
TRIPLE_INNER_RADIUS = 116.5     # Inner edge of triple ring
TRIPLE_OUTER_RADIUS = 125.9     # Outer edge of triple ring
DOUBLE_INNER_RADIUS = 190.6     # Inner edge of double ring
DOUBLE_OUTER_RADIUS = 200.0     # Outer edge of double ring (board edge)

# Degrees per segment
DEGREES_PER_SEGMENT = 18.0  # 360 / 20

# Sector boundaries are shifted so that sector centers sit on multiples of 18
SEGMENT_BOUNDARY_OFFSET = -9.0

# Calibration angles (degrees)
ANGLE_CORRECTION = 9.0   # applied to the target layout and to every transformed point
EXTRA_ROTATION = 9.0     # residual sensor / mounting skew about the canvas center

# Board keypoint labels in model class order
BOARD_CLASSES: List[str] = ["TOP", "Right", "Bottom", "Left"]

# Where each keypoint lands on the canvas before the angle correction
TARGET_POINTS: List[Tuple[float, float]] = [
    (200.0, 0.0),     # top
    (400.0, 200.0),   # right
    (200.0, 400.0),   # bottom
    (0.0, 200.0),     # left
]


def sector_ranges() -> List[Tuple[int, float, float]]:
    """
    Angular range of every sector.

    Returns:
        List of (segment, start_deg, end_deg), clockwise from 12 o'clock,
        start inclusive and end exclusive. Sector 20 spans -9..9.
    """
    return [
        (
            segment,
            index * DEGREES_PER_SEGMENT + SEGMENT_BOUNDARY_OFFSET,
            (index + 1) * DEGREES_PER_SEGMENT + SEGMENT_BOUNDARY_OFFSET,
        )
        for index, segment in enumerate(DARTBOARD_SEGMENTS)
    ]
