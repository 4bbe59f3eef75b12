from __future__ import annotations

import numpy as np

from holoparticle.strokes import fit_to_count, parse_strokes, resample, resample_from_payload


def test_resample_returns_exact_particle_count(rng) -> None:
    strokes = [[(10, 10), (200, 50), (120, 300)], [(300, 300), (320, 380)]]
    points = resample(strokes, 777, (400, 400), rng)
    assert points is not None
    assert points.shape == (777 * 3,)
    assert np.isfinite(points).all()


def test_particles_split_by_stroke_length(rng) -> None:
    strokes = [[(0, 0), (100, 0)], [(0, 100), (300, 100)]]
    points = resample(strokes, 400, (400, 400), rng).reshape(-1, 3)
    # canvas centre (200, 200), scale 400 / 5 = 80
    assert int(np.sum(points[:, 1] == np.float32(2.5))) == 100
    assert int(np.sum(points[:, 1] == np.float32(1.25))) == 300


def test_samples_are_evenly_spaced_along_a_stroke(rng) -> None:
    points = resample([[(0, 200), (400, 200)]], 4, (400, 400), rng).reshape(-1, 3)
    assert np.allclose(points[:, 0], [-2.5, -1.25, 0.0, 1.25])
    assert np.allclose(points[:, 1], 0.0)
    assert (np.abs(points[:, 2]) <= 0.25).all()


def test_dict_points_are_accepted(rng) -> None:
    payload = {
        "strokes": [[{"x": 0, "y": 0}, {"x": 50, "y": 50}]],
        "canvasWidth": 100,
        "canvasHeight": 100,
    }
    points = resample_from_payload(payload, 10, rng)
    assert points is not None and points.size == 30


def test_degenerate_drawings_return_none(rng) -> None:
    assert resample([], 100, (400, 400), rng) is None
    assert resample([[(1, 1)]], 100, (400, 400), rng) is None
    assert resample([[(1, 1), (1, 1)]], 100, (400, 400), rng) is None
    assert resample([[(0, 0), (10, 10)]], 100, (0, 400), rng) is None
    assert resample_from_payload({"strokes": [[(0, 0), (10, 0)]]}, 100, rng) is None


def test_parse_strokes_drops_invalid_points() -> None:
    strokes = parse_strokes([[(0, 0), ("a", 1), {"x": 2, "y": 3}, (float("nan"), 1)]])
    assert strokes == [[(0.0, 0.0), (2.0, 3.0)]]


def test_fit_to_count_resizes_cloud(rng) -> None:
    cloud = np.arange(30, dtype=np.float32)
    grown = fit_to_count(cloud, 25, rng)
    assert grown.shape == (75,)
    rows = {tuple(row) for row in cloud.reshape(-1, 3)}
    assert all(tuple(row) in rows for row in grown.reshape(-1, 3))
    assert fit_to_count(np.zeros(4), 10, rng) is None
