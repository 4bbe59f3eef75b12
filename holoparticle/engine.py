"""Per-frame particle animation.

:class:`ParticleEngine` owns an :class:`AnimationState` and advances it once
per display refresh.  Each frame every particle's target is read from the
active shape buffer, then warped, expanded, spun, perturbed and finally
approached by exponential smoothing.  The integrated position is pushed into
a fixed-depth trail and coloured with a fading afterimage.

All per-particle data lives in flat numpy arrays (``(N, 3)`` positions and
``(N, depth, 3)`` trail/colour rings) so the whole pipeline runs vectorised.
"""

from __future__ import annotations

import copy
import math
import time
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

import numpy as np

from .config import coerce_float, default_state
from .diagnostics import debug, warn
from .shapes import ShapeType, generate
from .signals import IDLE_HAND, SILENCE, AudioBands, HandData
from .strokes import fit_to_count

__all__ = ["AnimationState", "FrameOutput", "ParticleEngine"]

# Time frequencies of the fluid noise on x, y and z.
_NOISE_TIME_FREQ = (0.8, 0.7, 0.9)
_MAX_LERP = 0.99


def _hex_to_rgb(value: str) -> Tuple[float, float, float]:
    value = str(value).strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    try:
        number = int(value, 16)
    except ValueError:
        return 1.0, 1.0, 1.0
    return ((number >> 16) & 255) / 255.0, ((number >> 8) & 255) / 255.0, (number & 255) / 255.0


@dataclass
class AnimationState:
    """Mutable per-particle state, created once per scene."""

    positions: np.ndarray
    offsets: np.ndarray
    trail: np.ndarray
    colors: np.ndarray
    intensity: float = 0.0
    rotation: Tuple[float, float] = (0.0, 0.0)
    point_size: float = 0.06
    opacity: float = 0.8
    fade: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        depth = self.trail.shape[1]
        self.fade = ((1.0 - np.arange(depth) / depth) ** 2).astype(np.float32)

    @classmethod
    def create(cls, start: np.ndarray, depth: int, rng: np.random.Generator) -> "AnimationState":
        cloud = np.asarray(start, dtype=np.float64).reshape(-1, 3)
        count = len(cloud)
        depth = max(1, int(depth))
        trail = np.repeat(cloud[:, None, :], depth, axis=1).astype(np.float32)
        return cls(
            positions=cloud.copy(),
            offsets=rng.random(count) * 2.0 * math.pi,
            trail=trail,
            colors=np.ones((count, depth, 3), dtype=np.float32),
        )

    @property
    def count(self) -> int:
        return len(self.positions)

    @property
    def depth(self) -> int:
        return self.trail.shape[1]

    @property
    def transitioning(self) -> bool:
        return self.intensity > 0.0

    def trigger_transition(self) -> None:
        self.intensity = 1.0

    def advance_transition(self, decay: float, threshold: float) -> float:
        if self.intensity > 0.0:
            self.intensity *= decay
            if self.intensity < threshold:
                self.intensity = 0.0
        return self.intensity


@dataclass
class FrameOutput:
    """Buffers handed to the renderer, newest trail sample first per particle."""

    positions: np.ndarray
    colors: np.ndarray
    count: int
    depth: int
    rotation: Tuple[float, float]
    point_size: float
    opacity: float
    music_mode: bool
    intensity: float
    skipped: bool = False


class ParticleEngine:
    """Generate shape targets and animate the particle cloud toward them."""

    def __init__(
        self,
        params: Optional[Mapping[str, object]] = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.state: Dict[str, dict] = default_state()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._start_time = time.perf_counter()
        self.music_mode = False
        self.shape: ShapeType = ShapeType.HEART
        self.target: Optional[np.ndarray] = None
        self.custom_points: Optional[np.ndarray] = None
        self._base_color = _hex_to_rgb(self.state["appearance"]["color"])
        self._last_mismatch: Optional[Tuple[int, int]] = None
        if params:
            self.merge_state(params)
            self._base_color = _hex_to_rgb(self.state["appearance"].get("color", "#ffffff"))
        self.anim = self._create_state()
        self.target = self._build_target(self.shape)

    # ------------------------------------------------------------------ helpers
    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._start_time

    @property
    def count(self) -> int:
        return self.anim.count

    @property
    def depth(self) -> int:
        return self.anim.depth

    def _section(self, name: str) -> Mapping[str, object]:
        section = self.state.get(name, {})
        return section if isinstance(section, Mapping) else {}

    def _value(self, section: str, key: str, default: float = 0.0) -> float:
        return coerce_float(self._section(section).get(key), default)

    def merge_state(self, payload: Mapping[str, object]) -> None:
        for key, value in payload.items():
            if key not in self.state or not isinstance(self.state[key], dict) or not isinstance(value, Mapping):
                self.state[key] = value  # type: ignore[assignment]
                continue
            self.state[key].update(value)

    def set_params(self, payload: Mapping[str, object]) -> None:
        if not isinstance(payload, Mapping):
            return
        previous = (self._particle_count(), self._trail_length())
        snapshot = copy.deepcopy(self.state)
        self.merge_state(payload)
        try:
            self._particle_count()
        except ValueError:
            self.state = snapshot
            raise
        appearance = payload.get("appearance")
        if isinstance(appearance, Mapping) and "color" in appearance:
            self.set_color(str(appearance["color"]))
        if (self._particle_count(), self._trail_length()) != previous:
            self.rebuild_buffers()

    def _particle_count(self) -> int:
        count = int(self._value("particles", "count", 8000))
        if count < 0:
            raise ValueError(f"particle count must be >= 0, got {count}")
        return count

    def _trail_length(self) -> int:
        return max(1, int(self._value("particles", "trailLength", 5)))

    def _create_state(self) -> AnimationState:
        count = self._particle_count()
        start_shape = self._section("particles").get("startShape", ShapeType.SPHERE)
        start = generate(start_shape, count, self.rng)  # type: ignore[arg-type]
        debug("animation state created (count=%d, trail=%d)" % (count, self._trail_length()))
        return AnimationState.create(start, self._trail_length(), self.rng)

    def rebuild_buffers(self) -> None:
        """Recreate every buffer after a change of particle count or trail depth."""

        self.anim = self._create_state()
        self._last_mismatch = None
        self.target = self._build_target(self.shape)

    def reset(self, count: Optional[int] = None) -> None:
        """Rebuild every buffer, optionally at a new particle count."""

        if count is not None:
            self.state["particles"]["count"] = int(count)
        self.rebuild_buffers()

    def reset_visual_state(self) -> None:
        self._start_time = time.perf_counter()
        self.rebuild_buffers()

    # ---------------------------------------------------------------- targets
    def _build_target(self, shape: ShapeType) -> np.ndarray:
        count = self.anim.count
        if shape is ShapeType.CUSTOM and self.custom_points is not None:
            fitted = fit_to_count(self.custom_points, count, self.rng)
            if fitted is not None:
                return fitted
        return generate(shape, count, self.rng)

    def set_shape(self, shape: Union[ShapeType, str], *, transition: bool = True) -> ShapeType:
        member = ShapeType.coerce(shape)
        if member is None:
            debug("set_shape: unknown shape %r, using sphere" % (shape,))
            member = ShapeType.SPHERE
        self.shape = member
        self.set_target(self._build_target(member), transition=transition)
        return member

    def set_custom_points(self, points: np.ndarray, *, activate: bool = True) -> bool:
        """Store a drawn cloud; when ``activate`` the custom shape becomes current."""

        fitted = fit_to_count(points, self.anim.count, self.rng)
        if fitted is None:
            return False
        self.custom_points = fitted
        if activate:
            self.shape = ShapeType.CUSTOM
            self.set_target(fitted)
        return True

    def set_target(self, buffer: Optional[np.ndarray], *, transition: bool = True) -> None:
        """Swap in a new target buffer. Length is checked when the frame reads it."""

        self.target = None if buffer is None else np.asarray(buffer, dtype=np.float32).reshape(-1)
        if transition:
            self.anim.trigger_transition()

    def set_color(self, color: str) -> None:
        self.state["appearance"]["color"] = color
        self._base_color = _hex_to_rgb(color)

    def set_mode(self, music: bool) -> None:
        self.music_mode = bool(music)

    # ---------------------------------------------------------------- signal response
    def expansion_factor(self, hand: HandData, audio: AudioBands, now: float) -> float:
        if self.music_mode:
            m = self._section("music")
            gain = coerce_float(m.get("expansionGain"), 2.5)
            factor = 1.0 + audio.bass * gain
            # rhythmic wave on the beat
            factor += math.sin(now * coerce_float(m.get("rhythmFreq"), 3.0)) * (
                audio.bass * coerce_float(m.get("rhythmGain"), 0.5)
            )
            return factor
        g = self._section("gesture")
        value = hand.gesture_value
        factor = 1.0 + (value ** coerce_float(g.get("expansionExponent"), 1.5)) * coerce_float(g.get("expansionGain"), 3.0)
        factor += audio.bass * coerce_float(g.get("bassGain"), 0.5)
        pulse_freq = coerce_float(g.get("pulseFreq"), 2.0) + value * coerce_float(g.get("pulseFreqGain"), 5.0)
        factor += math.sin(now * pulse_freq) * (
            coerce_float(g.get("pulseAmp"), 0.05) + audio.bass * coerce_float(g.get("pulseBassAmp"), 0.1)
        )
        return factor

    def lerp_factor(self, hand: HandData, audio: AudioBands) -> float:
        if self.music_mode:
            base = self._value("music", "lerpBase", 0.1) + audio.bass * self._value("music", "lerpGain", 0.2)
        else:
            base = self._value("gesture", "lerpBase", 0.08) + hand.gesture_value * self._value("gesture", "lerpGain", 0.05)
        base += self.anim.intensity * self._value("transition", "lerpBoost", 0.05)
        return max(0.0, min(_MAX_LERP, base))

    def vortex_strength(self, hand: HandData, audio: AudioBands) -> float:
        if self.music_mode:
            return audio.high * self._value("music", "vortexGain", 0.8)
        return hand.gesture_value * self._value("gesture", "vortexGain", 0.5)

    def noise_amplitude(self, hand: HandData, audio: AudioBands) -> float:
        if self.music_mode:
            return self._value("music", "noiseBase", 0.1) + audio.high * self._value("music", "noiseGain", 0.5)
        return self._value("gesture", "noiseBase", 0.15) + hand.gesture_value * self._value("gesture", "noiseGain", 0.2)

    def _update_rotation(self, hand: HandData, audio: AudioBands, now: float) -> None:
        rx, ry = self.anim.rotation
        if self.music_mode:
            m = self._section("music")
            ry += coerce_float(m.get("spinBase"), 0.002) + audio.high * coerce_float(m.get("spinGain"), 0.02)
            rx = math.sin(now * coerce_float(m.get("tiltFreq"), 0.5)) * coerce_float(m.get("tiltAmp"), 0.1)
            rx += audio.bass * coerce_float(m.get("tiltBassGain"), 0.1)
        else:
            g = self._section("gesture")
            follow = coerce_float(g.get("rotFollow"), 0.05)
            target_ry = (hand.position[0] - 0.5) * coerce_float(g.get("rotYGain"), 3.0)
            target_rx = (hand.position[1] - 0.5) * coerce_float(g.get("rotXGain"), 1.5)
            ry += (target_ry - ry) * follow
            rx += (target_rx - rx) * follow
        self.anim.rotation = (rx, ry)

    def _update_material(self, hand: HandData, audio: AudioBands) -> None:
        size = self._value("appearance", "px", 0.04)
        if self.music_mode:
            size += audio.bass * self._value("music", "sizeGain", 0.15)
            opacity = self._value("music", "opacityBase", 0.5) + audio.mid * self._value("music", "opacityGain", 0.5)
        else:
            size += (hand.gesture_value ** self._value("gesture", "sizeExponent", 1.2)) * self._value("gesture", "sizeGain", 0.12)
            opacity = self._value("gesture", "opacityBase", 0.6) + hand.gesture_value * self._value("gesture", "opacityGain", 0.3)
        follow = self._value("appearance", "sizeFollow", 0.1)
        self.anim.point_size += (size - self.anim.point_size) * follow
        self.anim.opacity = opacity

    def _checked_target(self) -> Optional[np.ndarray]:
        expected = self.anim.count * 3
        actual = -1 if self.target is None else int(self.target.size)
        if actual == expected:
            self._last_mismatch = None
            return self.target
        key = (expected, actual)
        if key != self._last_mismatch:
            if self.target is None:
                warn("no target buffer, particles hold position")
            else:
                warn("target buffer has %d values, expected %d; particles hold position" % (actual, expected))
            self._last_mismatch = key
        return None

    # ---------------------------------------------------------------- frame
    def step(
        self,
        hand: Optional[HandData] = None,
        audio: Optional[AudioBands] = None,
        now: Optional[float] = None,
    ) -> FrameOutput:
        """Advance one frame. ``now`` is the elapsed time in seconds."""

        hand = hand if hand is not None else IDLE_HAND
        audio = audio if audio is not None else SILENCE
        t = self.elapsed if now is None else float(now)
        anim = self.anim

        anim.advance_transition(
            self._value("transition", "decay", 0.92),
            self._value("transition", "threshold", 0.01),
        )
        self._update_rotation(hand, audio, t)
        self._update_material(hand, audio)

        target = self._checked_target()
        if target is None or anim.count == 0:
            return self._output(skipped=target is None)

        count = anim.count
        cur = anim.positions
        tgt = target.reshape(-1, 3).astype(np.float64)

        if anim.intensity > 0.0:
            warp = anim.intensity * self._value("transition", "warp", 12.0)
            tgt += (self.rng.random((count, 3)) - 0.5) * warp

        tgt *= self.expansion_factor(hand, audio, t)

        eps = max(1e-6, self._value("motion", "vortexEpsilon", 0.1))
        dist = np.sqrt(tgt[:, 0] ** 2 + tgt[:, 2] ** 2)
        spin_rate = self._value("motion", "spinBase", 0.2) + audio.high * self._value("motion", "spinHighGain", 0.5)
        spin = t * spin_rate + self.vortex_strength(hand, audio) / (dist + eps)
        cos_s = np.cos(spin)
        sin_s = np.sin(spin)
        tx = tgt[:, 0] * cos_s - tgt[:, 2] * sin_s
        tz = tgt[:, 0] * sin_s + tgt[:, 2] * cos_s
        tgt[:, 0] = tx
        tgt[:, 2] = tz

        amp = self.noise_amplitude(hand, audio)
        if amp:
            freq = self._value("motion", "noiseFreq", 0.5)
            off = anim.offsets
            fx, fy, fz = _NOISE_TIME_FREQ
            tgt[:, 0] += np.sin(t * fx + cur[:, 1] * freq + off) * amp
            tgt[:, 1] += np.cos(t * fy + cur[:, 2] * freq + off) * amp
            tgt[:, 2] += np.sin(t * fz + cur[:, 0] * freq + off) * amp

        if self.music_mode and audio.bass > self._value("music", "jitterThreshold", 0.3):
            jitter = audio.bass * self._value("music", "jitterGain", 0.05)
            tgt += (self.rng.random((count, 3)) - 0.5) * jitter

        bad = ~np.isfinite(tgt)
        if bad.any():
            tgt[bad] = cur[bad]

        cur += (tgt - cur) * self.lerp_factor(hand, audio)

        anim.trail[:, 1:] = anim.trail[:, :-1].copy()
        anim.trail[:, 0] = cur

        self._write_colors(audio)
        return self._output()

    def _write_colors(self, audio: AudioBands) -> None:
        anim = self.anim
        a = self._section("appearance")
        scale = coerce_float(a.get("colorScale"), 5.0) or 5.0
        gradient = np.array([
            coerce_float(a.get("gradientX"), 0.4),
            coerce_float(a.get("gradientY"), 0.4),
            coerce_float(a.get("gradientZ"), 0.6),
        ])
        boost = audio.bass * coerce_float(a.get("boostBass"), 0.6) + audio.high * coerce_float(a.get("boostHigh"), 0.4)
        rgb = np.asarray(self._base_color) + anim.positions / scale * gradient + boost
        anim.colors[:] = rgb[:, None, :] * anim.fade[None, :, None]

    def _output(self, skipped: bool = False) -> FrameOutput:
        anim = self.anim
        return FrameOutput(
            positions=anim.trail.reshape(-1),
            colors=anim.colors.reshape(-1),
            count=anim.count,
            depth=anim.depth,
            rotation=anim.rotation,
            point_size=anim.point_size,
            opacity=anim.opacity,
            music_mode=self.music_mode,
            intensity=anim.intensity,
            skipped=skipped,
        )
