from __future__ import annotations

import numpy as np
import pytest

from holoparticle.shapes import (
    ROMANTIC_SHAPES,
    ShapeType,
    available_shapes,
    generate,
    heart_inequality,
    shape_label,
)


@pytest.mark.parametrize("shape", list(ShapeType))
def test_every_shape_fills_the_buffer_with_finite_values(shape: ShapeType, rng) -> None:
    points = generate(shape, 500, rng)
    assert points.dtype == np.float32
    assert points.shape == (1500,)
    assert np.isfinite(points).all()


def test_every_shape_has_a_generator() -> None:
    assert set(available_shapes()) == set(ShapeType)
    assert set(ROMANTIC_SHAPES) <= set(ShapeType)


def test_heart_points_lie_inside_the_implicit_surface(rng) -> None:
    cloud = generate(ShapeType.HEART, 2000, rng).reshape(-1, 3).astype(np.float64)
    # undo the upright permutation and the scale of 2
    local = cloud[:, [0, 2, 1]] / 2.0
    values = heart_inequality(local[:, 0], local[:, 1], local[:, 2])
    assert (values < 1e-4).all()
    assert np.linalg.norm(cloud, axis=1).max() <= 2.0 * 1.8


def test_sphere_stays_within_radius(rng) -> None:
    cloud = generate(ShapeType.SPHERE, 3000, rng).reshape(-1, 3)
    assert np.linalg.norm(cloud, axis=1).max() <= 3.0 + 1e-5


def test_zero_count_yields_empty_buffer(rng) -> None:
    points = generate(ShapeType.GALAXY, 0, rng)
    assert points.size == 0


def test_negative_count_is_rejected(rng) -> None:
    with pytest.raises(ValueError):
        generate(ShapeType.GALAXY, -1, rng)


def test_unknown_shape_falls_back_to_sphere() -> None:
    fallback = generate("not-a-shape", 200, np.random.default_rng(7))
    sphere = generate(ShapeType.SPHERE, 200, np.random.default_rng(7))
    assert np.array_equal(fallback, sphere)


def test_seeded_generators_are_reproducible() -> None:
    first = generate(ShapeType.SOLAR_SYSTEM, 300, np.random.default_rng(3))
    second = generate(ShapeType.SOLAR_SYSTEM, 300, np.random.default_rng(3))
    assert np.array_equal(first, second)


def test_coerce_accepts_values_and_labels() -> None:
    assert ShapeType.coerce("heart") is ShapeType.HEART
    assert ShapeType.coerce(ShapeType.DNA) is ShapeType.DNA
    assert ShapeType.coerce(shape_label(ShapeType.FLOWER_SEA)) is ShapeType.FLOWER_SEA
    assert ShapeType.coerce(42) is None


def test_saturn_splits_body_and_ring(rng) -> None:
    cloud = generate(ShapeType.SATURN, 10000, rng).reshape(-1, 3)
    radius = np.linalg.norm(cloud, axis=1)
    body = radius <= 1.8 + 1e-5
    assert body.mean() == pytest.approx(0.6, abs=0.03)
    assert (radius[~body] >= 2.8 - 1e-3).all()
