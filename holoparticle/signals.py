"""Control-signal snapshots and the hand-gesture smoothing logic.

The engine consumes two kinds of per-frame snapshots: :class:`HandData`
from the gesture tracker and :class:`AudioBands` from the audio analyser.
:class:`GestureTracker` turns raw hand landmarks (as produced by a hand
landmark detector, normalised to ``[0, 1]``) into a smoothed ``HandData`` and
fires the open-then-close trigger used to switch shapes.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Sequence, Tuple

__all__ = ["AudioBands", "GestureTracker", "HandData", "IDLE_HAND", "SILENCE", "clamp01"]


def clamp01(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(0.0, min(1.0, number))


@dataclass(frozen=True)
class HandData:
    is_open: bool = False
    gesture_value: float = 0.0
    position: Tuple[float, float] = (0.5, 0.5)

    def __post_init__(self) -> None:
        object.__setattr__(self, "gesture_value", clamp01(self.gesture_value))
        px, py = self.position
        object.__setattr__(self, "position", (clamp01(px), clamp01(py)))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "HandData":
        """Build from the tracker payload ``{isOpen, gestureValue, position: {x, y}}``."""

        position = payload.get("position")
        if isinstance(position, Mapping):
            pos = (position.get("x", 0.5), position.get("y", 0.5))
        elif isinstance(position, Sequence) and len(position) >= 2:
            pos = (position[0], position[1])
        else:
            pos = (0.5, 0.5)
        return cls(
            is_open=bool(payload.get("isOpen", False)),
            gesture_value=clamp01(payload.get("gestureValue", 0.0)),
            position=(clamp01(pos[0]), clamp01(pos[1])),
        )


@dataclass(frozen=True)
class AudioBands:
    bass: float = 0.0
    mid: float = 0.0
    high: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "bass", clamp01(self.bass))
        object.__setattr__(self, "mid", clamp01(self.mid))
        object.__setattr__(self, "high", clamp01(self.high))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "AudioBands":
        return cls(payload.get("bass", 0.0), payload.get("mid", 0.0), payload.get("high", 0.0))  # type: ignore[arg-type]


SILENCE = AudioBands()
IDLE_HAND = HandData()

Landmark = Tuple[float, float]

WRIST = 0
MIDDLE_MCP = 9
MIDDLE_TIP = 12


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def _xy(landmark: object) -> Landmark:
    if isinstance(landmark, Mapping):
        return float(landmark.get("x", 0.0)), float(landmark.get("y", 0.0))  # type: ignore[arg-type]
    if hasattr(landmark, "x") and hasattr(landmark, "y"):
        return float(getattr(landmark, "x")), float(getattr(landmark, "y"))
    return float(landmark[0]), float(landmark[1])  # type: ignore[index]


@dataclass
class GestureTracker:
    """Smooth raw hand landmarks and detect the open-then-close gesture."""

    position_alpha: float = 0.7
    openness_alpha: float = 0.6
    idle_openness: float = 0.1
    open_threshold: float = 0.6
    closed_threshold: float = 0.25
    trigger_cooldown_ms: float = 450.0
    on_trigger: Optional[Callable[[], None]] = None
    clock: Callable[[], float] = _monotonic_ms

    _position: Landmark = field(default=(0.5, 0.5), init=False)
    _openness: float = field(default=0.0, init=False)
    _was_open: bool = field(default=False, init=False)
    _last_trigger_ms: float = field(default=-math.inf, init=False)

    @staticmethod
    def raw_openness(hands: Sequence[Sequence[object]]) -> Tuple[float, Landmark]:
        """Return the unsmoothed openness and hand position for detected hands."""

        if len(hands) >= 2:
            ax, ay = _xy(hands[0][WRIST])
            bx, by = _xy(hands[1][WRIST])
            dist = math.hypot(ax - bx, ay - by)
            openness = min(max((dist - 0.05) * 2.5, 0.0), 1.0)
            return openness, ((ax + bx) / 2.0, (ay + by) / 2.0)
        landmarks = hands[0]
        wx, wy = _xy(landmarks[WRIST])
        tx, ty = _xy(landmarks[MIDDLE_TIP])
        dist = math.hypot(wx - tx, wy - ty)
        openness = min(max((dist - 0.12) * 3.5, 0.0), 1.0)
        return openness, _xy(landmarks[MIDDLE_MCP])

    def update(self, hands: Sequence[Sequence[object]]) -> HandData:
        """Feed one detection result (possibly empty) and return the smoothed snapshot."""

        if hands:
            target, (raw_x, raw_y) = self.raw_openness(hands)
        else:
            target, (raw_x, raw_y) = self.idle_openness, (0.5, 0.5)
        px, py = self._position
        px += (raw_x - px) * self.position_alpha
        py += (raw_y - py) * self.position_alpha
        self._position = (px, py)
        self._openness += (target - self._openness) * self.openness_alpha

        self._check_trigger()
        return HandData(
            is_open=self._openness > 0.5,
            gesture_value=self._openness,
            position=self._position,
        )

    def _check_trigger(self) -> None:
        if self._openness > self.open_threshold:
            self._was_open = True
        if not (self._was_open and self._openness < self.closed_threshold):
            return
        now = self.clock()
        if now - self._last_trigger_ms <= self.trigger_cooldown_ms:
            return
        self._last_trigger_ms = now
        self._was_open = False
        if self.on_trigger is not None:
            self.on_trigger()

    @property
    def openness(self) -> float:
        return self._openness

    @property
    def position(self) -> Landmark:
        return self._position

