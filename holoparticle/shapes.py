"""Procedural point-cloud generators, one per built-in shape.

Every generator takes a particle count and a ``numpy.random.Generator`` and
returns an ``(count, 3)`` array.  :func:`generate` dispatches on
:class:`ShapeType` and flattens the result into the ``3 * count`` float32
buffer consumed by the engine.  Outputs are random, so only their
distribution is reproducible unless the caller passes a seeded generator.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np

from .diagnostics import debug

__all__ = [
    "ShapeType",
    "SHAPE_GENERATORS",
    "ROMANTIC_SHAPES",
    "available_shapes",
    "generate",
    "heart_inequality",
    "random_point_in_sphere",
    "shape_label",
]


class ShapeType(str, Enum):
    HEART = "heart"
    DOUBLE_HEART = "double_heart"
    FLOWER = "flower"
    FLOWER_SEA = "flower_sea"
    SATURN = "saturn"
    SOLAR_SYSTEM = "solar_system"
    RING = "ring"
    BUTTERFLY = "butterfly"
    I_LOVE_U = "i_love_u"
    BUDDHA = "buddha"
    FIREWORKS = "fireworks"
    GALAXY = "galaxy"
    DNA = "dna"
    SPHERE = "sphere"
    CUSTOM = "custom"

    @classmethod
    def coerce(cls, value: object) -> Optional["ShapeType"]:
        """Return the member matching ``value`` (member, value or label), else None."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().lower().replace(" ", "_").replace("-", "_")
        for member in cls:
            if member.value == key or _LABELS[member].lower() == value.strip().lower():
                return member
        return None


_LABELS: Dict[ShapeType, str] = {
    ShapeType.HEART: "Heart",
    ShapeType.DOUBLE_HEART: "Double Heart",
    ShapeType.FLOWER: "Flower",
    ShapeType.FLOWER_SEA: "Flower Sea",
    ShapeType.SATURN: "Saturn",
    ShapeType.SOLAR_SYSTEM: "Solar System",
    ShapeType.RING: "Ring",
    ShapeType.BUTTERFLY: "Butterfly",
    ShapeType.I_LOVE_U: "I Love U",
    ShapeType.BUDDHA: "Buddha",
    ShapeType.FIREWORKS: "Fireworks",
    ShapeType.GALAXY: "Galaxy",
    ShapeType.DNA: "DNA",
    ShapeType.SPHERE: "Sphere",
    ShapeType.CUSTOM: "Custom",
}

# Shapes picked at random by the open-then-close hand gesture.
ROMANTIC_SHAPES: Tuple[ShapeType, ...] = (
    ShapeType.HEART,
    ShapeType.DOUBLE_HEART,
    ShapeType.GALAXY,
    ShapeType.DNA,
    ShapeType.RING,
    ShapeType.BUTTERFLY,
    ShapeType.I_LOVE_U,
    ShapeType.FIREWORKS,
)

ShapeGenerator = Callable[[int, np.random.Generator], np.ndarray]

# ---------------------------------------------------------------------------
# Helpers


def shape_label(shape: Union[ShapeType, str]) -> str:
    member = ShapeType.coerce(shape)
    return _LABELS[member] if member is not None else str(shape)


def _empty(count: int) -> np.ndarray:
    return np.zeros((count, 3), dtype=np.float64)


def random_point_in_sphere(radius: float, count: int, rng: np.random.Generator) -> np.ndarray:
    """Uniform-density samples of a solid sphere (cube-root radius scaling)."""

    theta = 2.0 * math.pi * rng.random(count)
    phi = np.arccos(2.0 * rng.random(count) - 1.0)
    r = np.cbrt(rng.random(count)) * radius
    sin_phi = np.sin(phi)
    return np.column_stack((r * sin_phi * np.cos(theta), r * sin_phi * np.sin(theta), r * np.cos(phi)))


def heart_inequality(x, y, z):
    """Left-hand side of the implicit heart surface; negative inside."""

    a = x * x + 2.25 * y * y + z * z - 1.0
    return a ** 3 - x * x * z ** 3 - (9.0 / 80.0) * y * y * z ** 3


def _heart_points(count: int, scale: float, rng: np.random.Generator) -> np.ndarray:
    """Rejection-sample the volumetric heart, standing upright."""

    out = _empty(count)
    filled = 0
    while filled < count:
        # roughly one candidate in ten lands inside the heart
        batch = (count - filled) * 12 + 64
        cand = rng.uniform(-1.5, 1.5, size=(batch, 3))
        inside = cand[heart_inequality(cand[:, 0], cand[:, 1], cand[:, 2]) < 0.0]
        take = inside[: count - filled]
        out[filled:filled + len(take)] = take
        filled += len(take)
    return out[:, [0, 2, 1]] * scale


# ---------------------------------------------------------------------------
# Generators


def _gen_heart(count: int, rng: np.random.Generator) -> np.ndarray:
    return _heart_points(count, 2.0, rng)


def _gen_double_heart(count: int, rng: np.random.Generator) -> np.ndarray:
    pts = _heart_points(count, 1.8, rng)
    first = rng.random(count) < 0.5
    angle = math.pi / 4.0
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    x, y, z = pts[:, 0], pts[:, 1], pts[:, 2]
    rx = x * cos_a - z * sin_a
    rz = x * sin_a + z * cos_a
    return np.column_stack((
        np.where(first, x - 0.8, rx + 0.8),
        y,
        np.where(first, z, rz),
    ))


def _gen_galaxy(count: int, rng: np.random.Generator) -> np.ndarray:
    arms = 3
    arm_index = np.arange(count) % arms
    u = rng.random(count)
    angle = u * math.pi * 4.0 + arm_index * (2.0 * math.pi / arms)
    distance = 0.2 + u * 3.5
    x = np.cos(angle) * distance + (rng.random(count) - 0.5) * 0.2
    z = np.sin(angle) * distance + (rng.random(count) - 0.5) * 0.2
    # thicker toward the core
    y = (rng.random(count) - 0.5) * (1.0 - u) * 0.8
    return np.column_stack((x, y, z))


def _gen_dna(count: int, rng: np.random.Generator) -> np.ndarray:
    radius = 1.0
    height = 6.0
    idx = np.arange(count)
    frac = idx / max(1, count)
    y = frac * height - height / 2.0

    t = frac * math.pi * 20.0 + np.where(idx % 2 == 0, 0.0, math.pi)
    x = np.cos(t) * radius
    z = np.sin(t) * radius

    rung = idx % 10 == 0
    t_rung = np.floor(frac * 20.0) * math.pi
    mix = rng.random(count) * 2.0 - 1.0
    x = np.where(rung, np.cos(t_rung) * radius * mix, x)
    z = np.where(rung, np.sin(t_rung) * radius * mix, z)
    return np.column_stack((x, y, z))


def _gen_flower(count: int, rng: np.random.Generator) -> np.ndarray:
    petals = 5
    theta = rng.random(count) * 2.0 * math.pi
    r = 3.0 * np.cos(petals * theta) + rng.random(count) * 2.0
    z = (rng.random(count) - 0.5) * 1.5
    return np.column_stack((r * np.cos(theta), r * np.sin(theta), z))


def _gen_flower_sea(count: int, rng: np.random.Generator) -> np.ndarray:
    width = depth = 14.0
    x = (rng.random(count) - 0.5) * width
    z = (rng.random(count) - 0.5) * depth
    # rolling hills lifted toward the centre, with stems scattered upward
    y = np.sin(x * 0.5) * np.cos(z * 0.5) * 1.5 - 2.5 + 1.0
    y = y + rng.random(count) * 0.6
    return np.column_stack((x, y, z))


def _gen_ring(count: int, rng: np.random.Generator) -> np.ndarray:
    beam = rng.random(count) < 0.15

    h = rng.random(count) * 1.5
    beam_r = (1.0 - np.abs(h - 0.75) / 0.75) * 0.8
    beam_theta = rng.random(count) * 2.0 * math.pi

    major_r = 2.0
    minor_r = 0.2 + rng.random(count) * 0.1
    u = rng.random(count) * 2.0 * math.pi
    v = rng.random(count) * 2.0 * math.pi
    tx = (major_r + minor_r * np.cos(v)) * np.cos(u)
    ty = (major_r + minor_r * np.cos(v)) * np.sin(u)
    tz = minor_r * np.sin(v)

    x = np.where(beam, beam_r * np.cos(beam_theta), ty)
    y = np.where(beam, h + 2.0, tx)
    z = np.where(beam, beam_r * np.sin(beam_theta), tz)
    return np.column_stack((x, y, z))


def _gen_butterfly(count: int, rng: np.random.Generator) -> np.ndarray:
    t = rng.random(count) * math.pi * 4.0
    r = np.exp(np.cos(t)) - 2.0 * np.cos(4.0 * t) + np.sin(t / 12.0) ** 5
    x = r * np.sin(t) * 0.8
    y = r * np.cos(t) * 0.8
    dist = np.sqrt(x * x + y * y)
    z = np.abs(x) * 0.5 * np.sin(dist * 0.5) + (rng.random(count) - 0.5) * 0.5
    return np.column_stack((x, y, z))


def _gen_i_love_u(count: int, rng: np.random.Generator) -> np.ndarray:
    section = rng.random(count)
    out = _empty(count)

    letter_i = section < 0.2
    n = int(letter_i.sum())
    out[letter_i] = np.column_stack((
        -2.5 + rng.random(n) * 0.5,
        rng.random(n) * 4.0 - 2.0,
        (rng.random(n) - 0.5) * 0.5,
    ))

    love = (section >= 0.2) & (section < 0.6)
    out[love] = _heart_points(int(love.sum()), 1.2, rng)

    letter_u = section >= 0.6
    n = int(letter_u.sum())
    t = rng.random(n) * math.pi
    r = 1.5
    uy = np.sin(t + math.pi) * r * 1.5
    stems = rng.random(n) > 0.7
    uy = uy + np.where(stems, rng.random(n) * 2.0, 0.0)
    out[letter_u] = np.column_stack((
        np.cos(t + math.pi) * r + 2.5,
        uy + 0.5,
        (rng.random(n) - 0.5) * 0.5,
    ))
    return out


def _gen_saturn(count: int, rng: np.random.Generator) -> np.ndarray:
    body = rng.random(count) < 0.6
    sphere = random_point_in_sphere(1.8, count, rng)
    angle = rng.random(count) * 2.0 * math.pi
    dist = 2.8 + rng.random(count) * 1.5
    band = np.column_stack((np.cos(angle) * dist, (rng.random(count) - 0.5) * 0.1, np.sin(angle) * dist))
    return np.where(body[:, None], sphere, band)


_ORBIT_RADII = np.array([1.5, 2.2, 3.2, 4.5, 6.5, 8.5, 10.5, 12.5])
# (orbit radius, planet size, angle along the orbit)
_PLANETS = np.array([
    (1.5, 0.1, 0.0),
    (2.2, 0.18, 1.2),
    (3.2, 0.2, 2.5),
    (4.5, 0.15, 4.0),
    (6.5, 0.5, 5.5),
    (8.5, 0.45, 0.5),
    (10.5, 0.3, 2.0),
    (12.5, 0.3, 3.5),
])
_RINGED_PLANET = 5


def _gen_solar_system(count: int, rng: np.random.Generator) -> np.ndarray:
    pick = rng.random(count)
    out = _empty(count)

    sun = pick < 0.15
    out[sun] = random_point_in_sphere(0.8, int(sun.sum()), rng)

    orbits = (pick >= 0.15) & (pick < 0.55)
    n = int(orbits.sum())
    rad = _ORBIT_RADII[rng.integers(0, len(_ORBIT_RADII), size=n)] + (rng.random(n) - 0.5) * 0.1
    theta = rng.random(n) * 2.0 * math.pi
    out[orbits] = np.column_stack((rad * np.cos(theta), (rng.random(n) - 0.5) * 0.05, rad * np.sin(theta)))

    planets = pick >= 0.55
    n = int(planets.sum())
    p_idx = rng.integers(0, len(_PLANETS), size=n)
    orbit_r, size, angle = _PLANETS[p_idx, 0], _PLANETS[p_idx, 1], _PLANETS[p_idx, 2]
    cx = orbit_r * np.cos(angle)
    cz = orbit_r * np.sin(angle)
    body = random_point_in_sphere(1.0, n, rng) * size[:, None]
    px = cx + body[:, 0]
    py = body[:, 1]
    pz = cz + body[:, 2]

    ringed = (p_idx == _RINGED_PLANET) & (rng.random(n) > 0.5)
    ring_r = size * (1.4 + rng.random(n) * 0.8)
    ring_theta = rng.random(n) * 2.0 * math.pi
    px = np.where(ringed, cx + ring_r * np.cos(ring_theta), px)
    pz = np.where(ringed, cz + ring_r * np.sin(ring_theta), pz)
    # tilted ring plane
    py = np.where(ringed, (rng.random(n) - 0.5) * 0.05 + np.sin(ring_theta) * 0.1, py)
    out[planets] = np.column_stack((px, py, pz))
    return out


def _gen_buddha(count: int, rng: np.random.Generator) -> np.ndarray:
    part = rng.random(count)
    out = _empty(count)

    head = part < 0.2
    n = int(head.sum())
    out[head] = random_point_in_sphere(0.8, n, rng) + np.array([0.0, 2.5, 0.0])

    torso = (part >= 0.2) & (part < 0.6)
    n = int(torso.sum())
    h = rng.random(n) * 3.0
    r = 1.0 + (3.0 - h) * 0.5
    theta = rng.random(n) * 2.0 * math.pi
    out[torso] = np.column_stack((
        r * np.cos(theta) * np.sqrt(rng.random(n)),
        h - 1.5,
        r * np.sin(theta) * np.sqrt(rng.random(n)),
    ))

    base = part >= 0.6
    n = int(base.sum())
    theta = rng.random(n) * 2.0 * math.pi
    r = 2.5 * np.sqrt(rng.random(n))
    out[base] = np.column_stack((r * np.cos(theta), -1.5 + rng.random(n) * 0.5, r * np.sin(theta)))
    return out


def _gen_fireworks(count: int, rng: np.random.Generator) -> np.ndarray:
    theta = rng.random(count) * 2.0 * math.pi
    phi = np.arccos(2.0 * rng.random(count) - 1.0)
    # linear radius keeps the burst dense at its core
    r = rng.random(count) * 6.0
    return np.column_stack((
        r * np.sin(phi) * np.cos(theta),
        r * np.sin(phi) * np.sin(theta),
        r * np.cos(phi),
    ))


def _gen_sphere(count: int, rng: np.random.Generator) -> np.ndarray:
    return random_point_in_sphere(3.0, count, rng)


SHAPE_GENERATORS: Dict[ShapeType, ShapeGenerator] = {
    ShapeType.HEART: _gen_heart,
    ShapeType.DOUBLE_HEART: _gen_double_heart,
    ShapeType.GALAXY: _gen_galaxy,
    ShapeType.DNA: _gen_dna,
    ShapeType.FLOWER: _gen_flower,
    ShapeType.FLOWER_SEA: _gen_flower_sea,
    ShapeType.RING: _gen_ring,
    ShapeType.BUTTERFLY: _gen_butterfly,
    ShapeType.I_LOVE_U: _gen_i_love_u,
    ShapeType.SATURN: _gen_saturn,
    ShapeType.SOLAR_SYSTEM: _gen_solar_system,
    ShapeType.BUDDHA: _gen_buddha,
    ShapeType.FIREWORKS: _gen_fireworks,
    # without a drawing the custom slot shows the placeholder sphere
    ShapeType.CUSTOM: _gen_sphere,
    ShapeType.SPHERE: _gen_sphere,
}


def available_shapes() -> Tuple[ShapeType, ...]:
    return tuple(SHAPE_GENERATORS.keys())


def generate(
    shape: Union[ShapeType, str],
    count: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Return a flat float32 buffer of ``3 * count`` coordinates for ``shape``.

    Unknown identifiers fall back to the uniform solid sphere.
    """

    count = int(count)
    if count < 0:
        raise ValueError(f"particle count must be >= 0, got {count}")
    if count == 0:
        return np.zeros(0, dtype=np.float32)
    rng = rng if rng is not None else np.random.default_rng()
    member = ShapeType.coerce(shape)
    generator = SHAPE_GENERATORS.get(member, _gen_sphere) if member is not None else _gen_sphere
    if member is None:
        debug("generate: unknown shape %r, using sphere" % (shape,))
    try:
        points = generator(count, rng)
    except Exception as exc:
        debug("generate failed for %s (%r), using sphere" % (shape, exc))
        points = _gen_sphere(count, rng)
    return np.ascontiguousarray(points, dtype=np.float32).reshape(-1)
