"""Scene controller tying the engine to its control signals.

:class:`ParticleScene` is what the window talks to.  It keeps the current
shape, colour and drawn cloud, routes the gesture trigger and the music
toggle, and produces one :class:`~holoparticle.engine.FrameOutput` per
:meth:`ParticleScene.tick`.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Union

import numpy as np

from .audio import AudioAnalyser, DroneSynth, analyse_block, filter_cutoff
from .config import PALETTE
from .diagnostics import debug
from .engine import FrameOutput, ParticleEngine
from .shapes import ROMANTIC_SHAPES, ShapeType
from .signals import IDLE_HAND, SILENCE, AudioBands, GestureTracker, HandData
from .strokes import resample_from_payload

__all__ = ["ParticleScene"]


class ParticleScene:
    def __init__(
        self,
        params: Optional[Mapping[str, object]] = None,
        *,
        rng: Optional[np.random.Generator] = None,
        synth: Optional[DroneSynth] = None,
        analyser: Optional[AudioAnalyser] = None,
        sample_rate: int = 44100,
    ) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.engine = ParticleEngine(params, rng=self.rng)
        self.synth = synth if synth is not None else DroneSynth(sample_rate=sample_rate)
        self.analyser = analyser if analyser is not None else AudioAnalyser()
        self.sample_rate = int(sample_rate)
        self.tracker = GestureTracker(on_trigger=self.on_gesture_trigger)
        self.hand: HandData = IDLE_HAND
        self.audio: AudioBands = SILENCE
        self.color = str(self.engine.state["appearance"]["color"])
        self._last_now: Optional[float] = None

    # ---------------------------------------------------------------- state
    @property
    def shape(self) -> ShapeType:
        return self.engine.shape

    @property
    def music_mode(self) -> bool:
        return self.engine.music_mode

    @property
    def has_drawing(self) -> bool:
        return self.engine.custom_points is not None

    def select_shape(self, shape: Union[ShapeType, str]) -> bool:
        """Switch to ``shape``. Returns ``False`` when custom is asked with no drawing."""

        member = ShapeType.coerce(shape)
        if member is ShapeType.CUSTOM and not self.has_drawing:
            debug("custom shape requested without a drawing")
            return False
        self.engine.set_shape(member if member is not None else shape)
        self.synth.trigger_warp()
        return True

    def save_drawing(self, payload: Mapping[str, object]) -> bool:
        points = resample_from_payload(payload, self.engine.count, self.rng)
        if points is None:
            debug("drawing ignored: not enough strokes to build a shape")
            return False
        if not self.engine.set_custom_points(points, activate=True):
            return False
        self.synth.trigger_warp()
        return True

    def set_color(self, color: str) -> None:
        self.color = color
        self.engine.set_color(color)

    def cycle_color(self) -> str:
        try:
            index = PALETTE.index(self.color)
        except ValueError:
            index = -1
        self.set_color(PALETTE[(index + 1) % len(PALETTE)])
        return self.color

    def on_gesture_trigger(self) -> None:
        if self.music_mode:
            return
        choices = [shape for shape in ROMANTIC_SHAPES if shape is not self.shape]
        if not choices:
            return
        shape = choices[int(self.rng.integers(0, len(choices)))]
        self.engine.set_shape(shape)
        self.set_color(PALETTE[int(self.rng.integers(0, len(PALETTE)))])
        self.synth.trigger_warp()
        debug("gesture trigger -> %s" % shape.value)

    # ---------------------------------------------------------------- music
    def start_music(self) -> None:
        self.engine.set_mode(True)

    def stop_music(self) -> None:
        self.engine.set_mode(False)
        self.analyser.reset()
        self.audio = SILENCE

    def toggle_music(self) -> bool:
        if self.music_mode:
            self.stop_music()
        else:
            self.start_music()
        return self.music_mode

    def filter_settings(self):
        """Low-pass ``(frequency, q)``: hand-steered in gesture mode, open in music mode."""

        return filter_cutoff(self.hand.gesture_value, playing_file=self.music_mode)

    # ---------------------------------------------------------------- signals
    def update_hands(self, hands: Sequence[Sequence[object]]) -> HandData:
        """Feed one landmark detection result. May fire the gesture trigger."""

        self.hand = self.tracker.update(hands)
        return self.hand

    def set_hand(self, hand: HandData) -> None:
        self.hand = hand

    def set_audio(self, audio: AudioBands) -> None:
        self.audio = audio

    def _pull_audio(self, now: Optional[float]) -> None:
        if now is None or self._last_now is None:
            frames = self.analyser.fft_size
        else:
            frames = int(max(0.0, now - self._last_now) * self.sample_rate)
        if frames > 0:
            self.audio = analyse_block(self.analyser, self.synth, frames)

    def tick(self, now: Optional[float] = None) -> FrameOutput:
        self.synth.set_filter(*self.filter_settings())
        self._pull_audio(now)
        self._last_now = now
        return self.engine.step(self.hand, self.audio, now)
