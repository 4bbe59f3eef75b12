from __future__ import annotations

import numpy as np

from holoparticle.config import PALETTE
from holoparticle.scene import ParticleScene
from holoparticle.shapes import ROMANTIC_SHAPES, ShapeType

PARAMS = {"particles": {"count": 300}}
DRAWING = {
    "strokes": [[{"x": 20, "y": 20}, {"x": 380, "y": 20}, {"x": 200, "y": 380}]],
    "canvasWidth": 400,
    "canvasHeight": 400,
}


def test_scene_starts_on_the_heart(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    assert scene.shape is ShapeType.HEART
    assert not scene.music_mode
    frame = scene.tick(0.0)
    assert frame.count == 300


def test_custom_without_drawing_is_refused(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    assert scene.select_shape(ShapeType.CUSTOM) is False
    assert scene.shape is ShapeType.HEART


def test_select_shape_starts_a_transition(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    assert scene.select_shape("saturn")
    assert scene.shape is ShapeType.SATURN
    assert scene.engine.anim.transitioning


def test_saved_drawing_becomes_the_custom_shape(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    assert scene.save_drawing(DRAWING)
    assert scene.shape is ShapeType.CUSTOM
    assert scene.engine.target.size == 900
    scene.select_shape(ShapeType.DNA)
    assert scene.select_shape(ShapeType.CUSTOM)


def test_degenerate_drawing_keeps_previous_shape(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    scene.select_shape(ShapeType.GALAXY)
    target = scene.engine.target
    assert scene.save_drawing({"strokes": [[{"x": 5, "y": 5}]], "canvasWidth": 400, "canvasHeight": 400}) is False
    assert scene.shape is ShapeType.GALAXY
    assert scene.engine.target is target


def test_gesture_trigger_picks_another_romantic_shape(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    for _ in range(10):
        previous = scene.shape
        scene.on_gesture_trigger()
        assert scene.shape in ROMANTIC_SHAPES
        assert scene.shape is not previous
        assert scene.color in PALETTE


def test_gesture_trigger_is_ignored_in_music_mode(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    scene.start_music()
    color = scene.color
    scene.on_gesture_trigger()
    assert scene.shape is ShapeType.HEART
    assert scene.color == color
    assert not scene.engine.anim.transitioning


def test_music_mode_feeds_audio_bands(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    scene.start_music()
    for i in range(10):
        frame = scene.tick(i / 60.0)
    assert frame.music_mode
    assert scene.audio.bass > 0.0
    scene.stop_music()
    assert not scene.music_mode
    assert scene.audio.bass == 0.0


def test_cycle_color_walks_the_palette(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    seen = {scene.cycle_color() for _ in PALETTE}
    assert seen == set(PALETTE)


def test_hand_landmarks_drive_the_scene(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    landmarks = [(0.3, 0.8)] * 21
    landmarks[12] = (0.3, 0.2)
    hand = scene.update_hands([landmarks])
    assert hand.gesture_value > 0.5
    frame = scene.tick(0.0)
    assert np.isfinite(frame.positions).all()


def test_idle_drone_feeds_the_bass_in_gesture_mode(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    for i in range(30):
        scene.tick(i / 60.0)
    assert not scene.music_mode
    assert scene.audio.bass > 0.0


def test_gesture_triggers_do_not_pile_up_chirps(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    scene.start_music()
    scene.stop_music()
    for i in range(500):
        scene.on_gesture_trigger()
        scene.tick(i / 60.0)
    assert scene.synth.pending_chirps <= 19


def test_shape_changes_play_the_chirp(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    assert scene.select_shape(ShapeType.GALAXY)
    assert scene.synth.pending_chirps == 1

    drawn = ParticleScene(PARAMS, rng=rng)
    assert drawn.save_drawing(DRAWING)
    assert drawn.synth.pending_chirps == 1

    refused = ParticleScene(PARAMS, rng=rng)
    assert not refused.select_shape(ShapeType.CUSTOM)
    assert refused.synth.pending_chirps == 0


def test_filter_follows_the_hand_and_opens_for_music(rng) -> None:
    scene = ParticleScene(PARAMS, rng=rng)
    assert scene.filter_settings() == (150.0, 1.0)
    scene.start_music()
    assert scene.filter_settings() == (20000.0, 1.0)
    scene.tick(0.0)
    assert scene.synth._filter_target == (20000.0, 1.0)
