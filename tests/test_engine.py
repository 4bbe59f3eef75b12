from __future__ import annotations

import math

import numpy as np
import pytest

from holoparticle.engine import ParticleEngine
from holoparticle.shapes import ShapeType
from holoparticle.signals import IDLE_HAND, SILENCE, AudioBands, HandData


def _engine(rng, count: int = 300, **sections) -> ParticleEngine:
    params = {"particles": {"count": count}}
    params.update(sections)
    return ParticleEngine(params, rng=rng)


def test_buffers_match_particle_count(rng) -> None:
    engine = _engine(rng, count=250)
    frame = engine.step(IDLE_HAND, SILENCE, now=0.0)
    assert frame.count == 250
    assert frame.depth == 5
    assert frame.positions.shape == (250 * 5 * 3,)
    assert frame.colors.shape == (250 * 5 * 3,)
    assert not frame.skipped


def test_particles_converge_on_a_still_target(rng) -> None:
    engine = _engine(rng, gesture={"noiseBase": 0.0})
    target = engine.target.reshape(-1, 3)
    distances = []
    for _ in range(60):
        engine.step(IDLE_HAND, SILENCE, now=0.0)
        distances.append(float(np.abs(engine.anim.positions - target).max()))
    assert all(later <= earlier + 1e-9 for earlier, later in zip(distances, distances[1:]))
    assert distances[-1] < distances[0] * 0.92 ** 50


def test_transition_intensity_decays_geometrically(rng) -> None:
    engine = _engine(rng)
    engine.set_shape(ShapeType.GALAXY)
    assert engine.anim.intensity == 1.0
    for k in range(1, 11):
        engine.step(IDLE_HAND, SILENCE, now=0.0)
        assert engine.anim.intensity == pytest.approx(0.92 ** k)
    for _ in range(60):
        engine.step(IDLE_HAND, SILENCE, now=0.0)
    assert engine.anim.intensity == 0.0
    assert not engine.anim.transitioning


def test_intensity_snaps_to_zero_below_threshold(rng) -> None:
    engine = _engine(rng)
    engine.set_shape(ShapeType.DNA)
    steps = math.ceil(math.log(0.01) / math.log(0.92))
    for _ in range(steps - 1):
        engine.step(now=0.0)
    assert engine.anim.intensity > 0.0
    engine.step(now=0.0)
    assert engine.anim.intensity == 0.0


def test_mode_switch_keeps_positions(rng) -> None:
    engine = _engine(rng)
    engine.step(IDLE_HAND, SILENCE, now=0.0)
    before = engine.anim.positions.copy()
    engine.set_mode(True)
    assert engine.music_mode
    assert np.array_equal(engine.anim.positions, before)


def test_mismatched_target_holds_positions_and_warns_once(rng, capsys) -> None:
    engine = _engine(rng)
    engine.step(now=0.0)
    before = engine.anim.positions.copy()
    engine.set_target(np.zeros(9, dtype=np.float32), transition=False)
    for _ in range(3):
        frame = engine.step(now=0.0)
        assert frame.skipped
    assert np.array_equal(engine.anim.positions, before)
    err = capsys.readouterr().err
    assert err.count("[Holo][WARN]") == 1


def test_expansion_factor_in_both_modes(rng) -> None:
    engine = _engine(rng)
    assert engine.expansion_factor(HandData(gesture_value=0.0), SILENCE, 0.0) == pytest.approx(1.0)
    assert engine.expansion_factor(HandData(gesture_value=1.0), SILENCE, 0.0) == pytest.approx(4.0)
    engine.set_mode(True)
    assert engine.expansion_factor(IDLE_HAND, AudioBands(bass=1.0), 0.0) == pytest.approx(3.5)
    assert engine.expansion_factor(IDLE_HAND, SILENCE, 0.0) == pytest.approx(1.0)


def test_lerp_factor_is_boosted_during_transition(rng) -> None:
    engine = _engine(rng)
    resting = engine.lerp_factor(IDLE_HAND, SILENCE)
    assert resting == pytest.approx(0.08)
    engine.anim.trigger_transition()
    assert engine.lerp_factor(IDLE_HAND, SILENCE) == pytest.approx(0.13)
    assert engine.lerp_factor(HandData(gesture_value=1.0), SILENCE) < 1.0


def test_trail_shifts_one_sample_per_frame(rng) -> None:
    engine = _engine(rng)
    engine.step(now=0.0)
    first = engine.anim.positions.copy()
    engine.step(now=0.1)
    trail = engine.anim.trail
    assert np.allclose(trail[:, 0], engine.anim.positions, atol=1e-5)
    assert np.allclose(trail[:, 1], first, atol=1e-5)


def test_trail_colours_fade_with_age(rng) -> None:
    engine = _engine(rng)
    engine.step(now=0.0)
    colors = engine.anim.colors
    fade = engine.anim.fade
    assert fade[0] == pytest.approx(1.0)
    assert np.all(np.diff(fade) < 0.0)
    assert np.allclose(colors[:, 2], colors[:, 0] * fade[2], atol=1e-5)


def test_non_finite_targets_are_ignored(rng) -> None:
    engine = _engine(rng)
    buffer = engine.target.copy()
    buffer[:3] = np.nan
    engine.set_target(buffer, transition=False)
    engine.step(now=0.0)
    assert np.isfinite(engine.anim.positions).all()


def test_custom_points_are_fitted_to_the_particle_count(rng) -> None:
    engine = _engine(rng, count=120)
    assert engine.set_custom_points(np.ones(30, dtype=np.float32))
    assert engine.shape is ShapeType.CUSTOM
    assert engine.target.size == 360
    assert engine.anim.transitioning


def test_changing_count_rebuilds_buffers(rng) -> None:
    engine = _engine(rng, count=100)
    engine.set_params({"particles": {"count": 40}})
    assert engine.count == 40
    assert engine.target.size == 120
    frame = engine.step(now=0.0)
    assert not frame.skipped


def test_zero_particles_is_a_valid_scene(rng) -> None:
    engine = _engine(rng, count=0)
    frame = engine.step(now=0.0)
    assert frame.count == 0
    assert frame.positions.size == 0


def test_reset_rebuilds_at_a_new_count(rng) -> None:
    engine = _engine(rng, count=100)
    engine.reset(64)
    assert engine.count == 64
    assert engine.anim.positions.shape == (64, 3)
    assert engine.target.size == 192


def test_rejected_count_leaves_state_untouched(rng) -> None:
    engine = _engine(rng)
    with pytest.raises(ValueError):
        engine.set_params({"particles": {"count": -1}})
    assert engine.state["particles"]["count"] == 300
    engine.set_params({"appearance": {"color": "#00ff66"}})
    assert engine.state["appearance"]["color"] == "#00ff66"
    assert engine.step(now=0.0).count == 300


def test_music_mode_ignores_the_hand(rng) -> None:
    engine = _engine(rng)
    engine.set_mode(True)
    audio = AudioBands(bass=0.5, mid=0.3, high=0.4)
    closed = HandData(gesture_value=0.0)
    opened = HandData(gesture_value=1.0, is_open=True, position=(0.9, 0.1))
    assert engine.expansion_factor(closed, audio, 0.7) == engine.expansion_factor(opened, audio, 0.7)
    assert engine.vortex_strength(closed, audio) == engine.vortex_strength(opened, audio)
    assert engine.noise_amplitude(closed, audio) == engine.noise_amplitude(opened, audio)
    assert engine.lerp_factor(closed, audio) == engine.lerp_factor(opened, audio)


def _draws_random(engine: ParticleEngine, audio: AudioBands) -> bool:
    engine.anim.intensity = 0.0
    before = engine.rng.bit_generator.state
    engine.step(IDLE_HAND, audio, now=0.0)
    return engine.rng.bit_generator.state != before


def test_bass_jitter_only_above_threshold_in_music_mode(rng) -> None:
    engine = _engine(rng)
    assert not _draws_random(engine, AudioBands(bass=1.0))
    engine.set_mode(True)
    assert not _draws_random(engine, AudioBands(bass=0.29))
    assert _draws_random(engine, AudioBands(bass=0.31))
