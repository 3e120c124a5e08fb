"""
Dart Tracker - per-turn dart identity across repeated frames.

Frames keep arriving while darts stay stuck in the board. The tracker uses
positional proximity only (the detector gives no per-dart identity) to tell
apart "same darts, nothing new", "a new dart was thrown" and "darts were
pulled, a new turn begins".

Callers must serialise merge() per tracker, one call per frame in capture order.
"""
import logging
import math
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Sequence, Tuple

from dartvision.core.scoring import DartScore, ScoredDart

logger = logging.getLogger(__name__)

# Board-canvas distance under which two tips are the same dart
POSITION_TOLERANCE = 20.0
MAX_DARTS_PER_TURN = 3

SCAN_SAME_ROUND = "same_round"
SCAN_UPDATE = "update"


@dataclass(frozen=True)
class TrackedDart:
    """A confirmed dart of the current turn."""
    x: float
    y: float
    score: DartScore

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(self.x - x, self.y - y)


@dataclass(frozen=True)
class ScanResult:
    """
    Outcome of one frame.

    kind == SCAN_SAME_ROUND: nothing new, darts is empty.
    kind == SCAN_UPDATE: darts is the full confirmed list for this turn.
    """
    kind: str
    darts: Tuple[TrackedDart, ...] = ()

    @classmethod
    def same_round(cls) -> "ScanResult":
        return cls(kind=SCAN_SAME_ROUND)

    @classmethod
    def update(cls, darts: Sequence[TrackedDart]) -> "ScanResult":
        return cls(kind=SCAN_UPDATE, darts=tuple(darts))

    @property
    def is_same_round(self) -> bool:
        return self.kind == SCAN_SAME_ROUND


@dataclass
class MergeOutcome:
    """Everything a merge() call reports back."""
    result: ScanResult
    # Running per-dart scores of the current turn, for live display
    live_scores: List[int] = field(default_factory=list)
    # Darts archived by a reset during this call (previous player's darts)
    reset_darts: List[TrackedDart] = field(default_factory=list)


class DartTracker:
    """
    Holds up to max_darts confirmed darts for the current turn.
    """

    def __init__(
        self,
        tolerance: float = POSITION_TOLERANCE,
        max_darts: int = MAX_DARTS_PER_TURN
    ):
        self.tolerance = tolerance
        self.max_darts = max_darts
        self._lock = Lock()
        self._held: List[TrackedDart] = []
        self._ignored: List[TrackedDart] = []

    @classmethod
    def from_settings(cls, settings) -> "DartTracker":
        """Build from a VisionSettings instance."""
        return cls(tolerance=settings.tracker.tolerance, max_darts=settings.tracker.max_darts)

    @property
    def history_count(self) -> int:
        """Number of darts confirmed in the current turn."""
        with self._lock:
            return len(self._held)

    @property
    def darts(self) -> List[TrackedDart]:
        """Copy of the confirmed darts, in confirmation order."""
        with self._lock:
            return list(self._held)

    @property
    def ignored_darts(self) -> List[TrackedDart]:
        """Darts archived by the last reset."""
        with self._lock:
            return list(self._ignored)

    @property
    def turn_total(self) -> int:
        with self._lock:
            return sum(d.score.value for d in self._held)

    def reset(self) -> List[TrackedDart]:
        """
        End the current turn.

        Returns:
            The archived darts; the live score list is now empty
        """
        with self._lock:
            return self._reset_locked()

    def _reset_locked(self) -> List[TrackedDart]:
        self._ignored = list(self._held)
        self._held = []
        logger.info(f"[TRACKER] Turn reset, archived {len(self._ignored)} dart(s)")
        return list(self._ignored)

    def _is_near_held(self, x: float, y: float) -> bool:
        return any(d.distance_to(x, y) <= self.tolerance for d in self._held)

    def merge(self, detections: Sequence[ScoredDart], is_busted: bool = False) -> MergeOutcome:
        """
        Merge one frame's scored darts into the turn.

        Args:
            detections: Darts seen in this frame (board-canvas positions)
            is_busted: True if game logic already ended this turn with a bust

        Returns:
            MergeOutcome; result is SAME_ROUND when the held list did not change
        """
        with self._lock:
            before = list(self._held)
            reset_darts: List[TrackedDart] = []

            # Empty board after a full turn: darts were pulled
            if not detections and len(self._held) >= self.max_darts:
                reset_darts = self._reset_locked()

            if len(self._held) >= self.max_darts or is_busted:
                if any(self._is_near_held(d.x, d.y) for d in detections):
                    logger.debug("[TRACKER] Previous round still on the board")
                    return MergeOutcome(
                        result=ScanResult.same_round(),
                        live_scores=[d.score.value for d in self._held],
                        reset_darts=reset_darts
                    )

                if self._held:
                    logger.info(f"[TRACKER] New round, dropping {len(self._held)} held dart(s)")
                self._held = []

            for det in detections:
                if len(self._held) >= self.max_darts:
                    break
                if self._is_near_held(det.x, det.y):
                    # Same physical dart seen again
                    continue

                self._held.append(TrackedDart(x=det.x, y=det.y, score=det.score))
                logger.info(
                    f"[TRACKER] Dart {len(self._held)} confirmed: "
                    f"{det.score.field_type} {det.score.value} at ({det.x:.1f}, {det.y:.1f})"
                )

            live_scores = [d.score.value for d in self._held]

            if self._held == before:
                return MergeOutcome(
                    result=ScanResult.same_round(),
                    live_scores=live_scores,
                    reset_darts=reset_darts
                )

            return MergeOutcome(
                result=ScanResult.update(self._held),
                live_scores=live_scores,
                reset_darts=reset_darts
            )

    def get_state(self) -> Dict[str, Any]:
        """Current tracker state as plain data."""
        with self._lock:
            return {
                'dart_count': len(self._held),
                'turn_total': sum(d.score.value for d in self._held),
                'darts': [
                    {
                        'dart_index': i,
                        'x': d.x,
                        'y': d.y,
                        **d.score.to_dict()
                    }
                    for i, d in enumerate(self._held)
                ],
                'ignored_darts': len(self._ignored)
            }
