"""
Scoring module for dart detection.

Calculates the score of a point on the normalised 400x400 board canvas.
"""
import math
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Tuple

from dartvision.core.geometry import (
    BOARD_CENTER,
    INNER_BULL_RADIUS,
    OUTER_BULL_RADIUS,
    TRIPLE_INNER_RADIUS,
    TRIPLE_OUTER_RADIUS,
    DOUBLE_INNER_RADIUS,
    DOUBLE_OUTER_RADIUS,
    sector_ranges,
)

# Field types reported to game logic
FIELD_BULL = "bull"
FIELD_OUTER_BULL = "outer_bull"
FIELD_TRIPLE = "triple"
FIELD_DOUBLE = "double"
FIELD_SINGLE = "single"
FIELD_MISS = "miss"

FIELD_TYPES = (FIELD_BULL, FIELD_OUTER_BULL, FIELD_TRIPLE, FIELD_DOUBLE, FIELD_SINGLE, FIELD_MISS)


@dataclass(frozen=True)
class DartScore:
    """Score of a single hit."""
    value: int  # total points, e.g. 60 for T20
    segment: int  # 1-20, 25 (outer bull), 50 (bull), 0 for miss
    multiplier: int  # 0=miss, 1=single, 2=double/bull, 3=triple
    field_type: str  # one of FIELD_TYPES

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


MISS = DartScore(value=0, segment=0, multiplier=0, field_type=FIELD_MISS)

_SECTORS: List[Tuple[int, float, float]] = sector_ranges()


def angle_from_top(dx: float, dy: float) -> float:
    """Angle in degrees clockwise from 12 o'clock, in [0, 360)."""
    return (math.degrees(math.atan2(dx, -dy)) + 360.0) % 360.0


def get_segment(angle_deg: float) -> int:
    """
    Get the sector number for an angle.

    Args:
        angle_deg: Angle clockwise from 12 o'clock in degrees, [0, 360)

    Returns:
        Sector number (1-20), or 0 if no sector matches
    """
    for segment, start, end in _SECTORS:
        start = (start + 360.0) % 360.0
        end = (end + 360.0) % 360.0

        if start < end:
            inside = start <= angle_deg < end
        else:
            # Wraparound (351..9 for sector 20)
            inside = angle_deg >= start or angle_deg < end

        if inside:
            return segment
    return 0


def get_score(x: float, y: float) -> DartScore:
    """
    Calculate score and field type for a point on the normalised board.

    Args:
        x, y: Canvas coordinates (center at 200,200, board edge at radius 200)

    Returns:
        DartScore
    """
    dx = x - BOARD_CENTER[0]
    dy = y - BOARD_CENTER[1]
    r = math.hypot(dx, dy)

    if r <= INNER_BULL_RADIUS:
        return DartScore(value=50, segment=50, multiplier=2, field_type=FIELD_BULL)

    if r <= OUTER_BULL_RADIUS:
        return DartScore(value=25, segment=25, multiplier=1, field_type=FIELD_OUTER_BULL)

    segment = get_segment(angle_from_top(dx, dy))
    if segment == 0:
        return MISS

    if TRIPLE_INNER_RADIUS <= r <= TRIPLE_OUTER_RADIUS:
        return DartScore(value=segment * 3, segment=segment, multiplier=3, field_type=FIELD_TRIPLE)
    if DOUBLE_INNER_RADIUS <= r <= DOUBLE_OUTER_RADIUS:
        return DartScore(value=segment * 2, segment=segment, multiplier=2, field_type=FIELD_DOUBLE)
    if r < DOUBLE_OUTER_RADIUS:
        return DartScore(value=segment, segment=segment, multiplier=1, field_type=FIELD_SINGLE)

    # Outside the board
    return MISS


@dataclass(frozen=True)
class ScoredDart:
    """A dart on the board canvas with its score and detector confidence."""
    x: float
    y: float
    score: DartScore
    confidence: float = 1.0

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


class ScoringSystem:
    """
    Calculate dart scores from positions on the board canvas.
    """

    def score_from_board_coords(self, x: float, y: float) -> DartScore:
        return get_score(x, y)

    def score_dart(self, x: float, y: float, confidence: float = 1.0) -> ScoredDart:
        """Score a canvas point and bundle it with its position."""
        return ScoredDart(x=x, y=y, score=self.score_from_board_coords(x, y), confidence=confidence)


# Global instance
scoring_system = ScoringSystem()
