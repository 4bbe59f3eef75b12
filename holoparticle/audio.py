"""Frequency-band energies and the ambient tone generator.

:class:`AudioAnalyser` mirrors a browser-style analyser node: Blackman
window, FFT of ``fft_size`` samples, exponential smoothing of the magnitude
spectrum and mapping of the ``[min_db, max_db]`` range onto byte values.
The bass/mid/high energies read by the engine are averages of fixed bin
ranges of that byte spectrum.

:class:`DroneSynth` renders the filtered idle drone and the shape-switch chirp into
sample blocks.  Playback and file decoding belong to the host application.
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

import numpy as np
from scipy import signal

from .signals import AudioBands

__all__ = [
    "AudioAnalyser",
    "DroneSynth",
    "ResonantLowPass",
    "analyse_block",
    "band_energies",
    "filter_cutoff",
]

BASS_BINS = (0, 15)
MID_BINS = (15, 80)
HIGH_BINS = (80, 200)

FILTER_MIN_HZ = 150.0
FILTER_MAX_HZ = 6000.0
FILTER_OPEN_HZ = 20000.0
FILTER_IDLE_HZ = 400.0
FILTER_GLIDE_S = 0.1
CHIRP_S = 0.3


def band_energies(spectrum: np.ndarray) -> AudioBands:
    """Average a byte spectrum (values 0..255) into normalised bass/mid/high."""

    data = np.asarray(spectrum, dtype=np.float64).reshape(-1)

    def _avg(bounds: Tuple[int, int]) -> float:
        start, end = bounds
        chunk = data[start:end]
        if chunk.size == 0:
            return 0.0
        # bins past the end of a short spectrum count as silent
        return float(chunk.sum() / (end - start))

    return AudioBands(_avg(BASS_BINS) / 255.0, _avg(MID_BINS) / 255.0, _avg(HIGH_BINS) / 255.0)


def filter_cutoff(gesture_value: float, playing_file: bool = False) -> Tuple[float, float]:
    """Return ``(frequency_hz, q)`` of the low-pass filter steered by the hand."""

    if playing_file:
        return FILTER_OPEN_HZ, 1.0
    g = max(0.0, min(1.0, float(gesture_value)))
    return FILTER_MIN_HZ + (FILTER_MAX_HZ - FILTER_MIN_HZ) * g * g, 1.0 + g * 8.0


class AudioAnalyser:
    """Running spectrum of the most recent ``fft_size`` samples."""

    def __init__(
        self,
        fft_size: int = 512,
        smoothing: float = 0.8,
        min_db: float = -100.0,
        max_db: float = -30.0,
    ) -> None:
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        self.fft_size = int(fft_size)
        self.smoothing = float(smoothing)
        self.min_db = float(min_db)
        self.max_db = float(max_db)
        self._window = np.blackman(self.fft_size)
        self._samples = np.zeros(self.fft_size, dtype=np.float64)
        self._smoothed = np.zeros(self.fft_size // 2, dtype=np.float64)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self) -> None:
        self._samples[:] = 0.0
        self._smoothed[:] = 0.0

    def push(self, samples: np.ndarray) -> None:
        """Append mono samples in ``[-1, 1]`` and refresh the smoothed spectrum."""

        block = np.asarray(samples, dtype=np.float64).reshape(-1)
        if block.size == 0:
            return
        if block.size >= self.fft_size:
            self._samples[:] = block[-self.fft_size:]
        else:
            self._samples = np.roll(self._samples, -block.size)
            self._samples[-block.size:] = block
        spectrum = np.abs(np.fft.rfft(self._samples * self._window))[: self.bin_count] / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * spectrum

    def byte_spectrum(self) -> np.ndarray:
        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed)
        scaled = (db - self.min_db) / (self.max_db - self.min_db) * 255.0
        return np.clip(np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0), 0.0, 255.0).astype(np.uint8)

    def bands(self) -> AudioBands:
        return band_energies(self.byte_spectrum())


class ResonantLowPass:
    """Second-order low-pass with resonance, state kept across blocks."""

    def __init__(self, sample_rate: int, frequency: float = FILTER_IDLE_HZ, q: float = 1.0) -> None:
        self.sample_rate = int(sample_rate)
        self.frequency = float(frequency)
        self.q = float(q)
        self._zi = np.zeros(2)
        self._ba = self._design(self.frequency, self.q)

    def _design(self, frequency: float, q: float) -> Tuple[np.ndarray, np.ndarray]:
        nyquist = self.sample_rate / 2.0
        frequency = min(max(frequency, 10.0), nyquist * 0.99)
        w0 = 2.0 * math.pi * frequency / self.sample_rate
        alpha = math.sin(w0) / (2.0 * max(q, 1e-3))
        cos_w0 = math.cos(w0)
        b = np.array([(1.0 - cos_w0) / 2.0, 1.0 - cos_w0, (1.0 - cos_w0) / 2.0])
        a = np.array([1.0 + alpha, -2.0 * cos_w0, 1.0 - alpha])
        return b / a[0], a / a[0]

    def set(self, frequency: float, q: float) -> None:
        if frequency == self.frequency and q == self.q:
            return
        self.frequency = float(frequency)
        self.q = float(q)
        self._ba = self._design(self.frequency, self.q)

    def process(self, block: np.ndarray) -> np.ndarray:
        b, a = self._ba
        out, self._zi = signal.lfilter(b, a, block, zi=self._zi)
        return out


class DroneSynth:
    """Idle drone through the hand-steered low-pass, plus the shape-switch chirp.

    The chirp bypasses the filter. ``set_filter`` only sets the target; the
    cutoff glides toward it with a 100 ms time constant while rendering.
    """

    DRONE = ((110.0, "sawtooth"), (110.5, "sine"), (220.2, "triangle"))

    def __init__(self, sample_rate: int = 44100, gain: float = 0.5, master: float = 0.4) -> None:
        self.sample_rate = int(sample_rate)
        self.gain = float(gain)
        self.master = float(master)
        self.drone_enabled = True
        self.filter = ResonantLowPass(self.sample_rate)
        self._filter_target = (self.filter.frequency, self.filter.q)
        self._t = 0.0
        self._chirps: List[float] = []

    @staticmethod
    def _wave(kind: str, phase: np.ndarray) -> np.ndarray:
        cycle = phase % 1.0
        if kind == "sawtooth":
            return 2.0 * cycle - 1.0
        if kind == "triangle":
            return 1.0 - 4.0 * np.abs(cycle - 0.5)
        if kind == "square":
            return np.where(cycle < 0.5, 1.0, -1.0)
        return np.sin(2.0 * math.pi * phase)

    def set_filter(self, frequency: float, q: float) -> None:
        self._filter_target = (float(frequency), float(q))

    def _glide_filter(self, seconds: float) -> None:
        target_f, target_q = self._filter_target
        if seconds <= 0.0:
            return
        k = 1.0 - math.exp(-seconds / FILTER_GLIDE_S)
        freq = self.filter.frequency + (target_f - self.filter.frequency) * k
        q = self.filter.q + (target_q - self.filter.q) * k
        self.filter.set(freq, q)

    @property
    def pending_chirps(self) -> int:
        return len(self._chirps)

    def trigger_warp(self) -> None:
        # one chirp per start instant; finished ones are dropped
        self._chirps = [start for start in self._chirps if self._t - start < CHIRP_S and start != self._t]
        self._chirps.append(self._t)

    def _chirp(self, t: np.ndarray, start: float) -> np.ndarray:
        local = t - start
        active = (local >= 0.0) & (local < CHIRP_S)
        # exponential sweep 200 -> 800 Hz during the first 100 ms, then hold
        sweep = np.minimum(local, 0.1)
        phase = 200.0 * (np.power(4.0, sweep / 0.1) - 1.0) * 0.1 / math.log(4.0)
        phase = phase + np.maximum(local - 0.1, 0.0) * 800.0
        attack = np.clip(local / 0.05, 0.0, 1.0) * 0.2
        decay = 0.2 * np.power(0.05, np.clip((local - 0.05) / 0.25, 0.0, 1.0))
        envelope = np.where(local < 0.05, attack, decay)
        return np.where(active, np.sin(2.0 * math.pi * phase) * envelope, 0.0)

    def render(self, frames: int) -> np.ndarray:
        """Return the next ``frames`` mono samples."""

        frames = max(0, int(frames))
        t = self._t + np.arange(frames) / self.sample_rate
        drone = np.zeros(frames, dtype=np.float64)
        if self.drone_enabled:
            for freq, kind in self.DRONE:
                drone += self._wave(kind, freq * t) * self.gain
        self._glide_filter(frames / self.sample_rate)
        out = self.filter.process(drone) if frames else drone
        for start in self._chirps:
            out += self._chirp(t, start)
        self._t += frames / self.sample_rate
        self._chirps = [start for start in self._chirps if self._t - start < CHIRP_S]
        return np.clip(out * self.master, -1.0, 1.0)

    def seconds(self) -> float:
        return self._t


def analyse_block(analyser: AudioAnalyser, synth: Optional[DroneSynth], frames: int) -> AudioBands:
    """Render ``frames`` samples from ``synth`` into ``analyser`` and read the bands."""

    if synth is not None:
        analyser.push(synth.render(frames))
    return analyser.bands()
