from __future__ import annotations

import math

import pytest

from holoparticle.config import DEFAULTS, TOOLTIPS, coerce_float, default_state


@pytest.mark.parametrize(
    "value, expected",
    [(2, 2.0), ("0.5", 0.5), (None, 7.0), ("abc", 7.0), (math.inf, 7.0), (float("nan"), 7.0), ([1], 7.0)],
)
def test_coerce_float_falls_back_on_bad_input(value, expected) -> None:
    assert coerce_float(value, 7.0) == expected


def test_default_state_is_a_private_copy() -> None:
    state = default_state()
    state["particles"]["count"] = 1
    assert DEFAULTS["particles"]["count"] == 8000


def test_shape_tip_names_the_shape() -> None:
    assert "Saturne" in TOOLTIPS["shape"].format(label="Saturne")
    assert {"quit", "music", "trigger", "draw", "color"} <= set(TOOLTIPS)
