from __future__ import annotations

import copy
import math
from typing import Dict

DEFAULTS = dict(
    particles=dict(count=8000, trailLength=5, startShape="sphere"),
    transition=dict(decay=0.92, threshold=0.01, warp=12.0, lerpBoost=0.05),
    gesture=dict(
        expansionGain=3.0, expansionExponent=1.5, bassGain=0.5,
        pulseFreq=2.0, pulseFreqGain=5.0, pulseAmp=0.05, pulseBassAmp=0.1,
        lerpBase=0.08, lerpGain=0.05,
        vortexGain=0.5, noiseBase=0.15, noiseGain=0.2,
        rotYGain=3.0, rotXGain=1.5, rotFollow=0.05,
        sizeGain=0.12, sizeExponent=1.2, opacityBase=0.6, opacityGain=0.3,
    ),
    music=dict(
        expansionGain=2.5, rhythmFreq=3.0, rhythmGain=0.5,
        lerpBase=0.1, lerpGain=0.2,
        vortexGain=0.8, noiseBase=0.1, noiseGain=0.5,
        jitterThreshold=0.3, jitterGain=0.05,
        spinBase=0.002, spinGain=0.02, tiltFreq=0.5, tiltAmp=0.1, tiltBassGain=0.1,
        sizeGain=0.15, opacityBase=0.5, opacityGain=0.5,
    ),
    motion=dict(spinBase=0.2, spinHighGain=0.5, vortexEpsilon=0.1, noiseFreq=0.5),
    appearance=dict(
        color="#ff00aa", colorScale=5.0, gradientX=0.4, gradientY=0.4, gradientZ=0.6,
        boostBass=0.6, boostHigh=0.4, px=0.04, sizeFollow=0.1,
    ),
    system=dict(frameIntervalMs=16, background="#020205", fov=60.0, camDistance=10.0),
)

PALETTE = ("#00f0ff", "#ff00aa", "#7000ff", "#00ff66", "#ffaa00", "#ffffff")

# Status-bar help of the window actions, keyed by action name.
TOOLTIPS = {
    "quit": "Quitter l’application.",
    "music": "Bascule entre le mode geste et le mode musique. En mode musique les basses pilotent le nuage.",
    "trigger": "Change de forme et de couleur au hasard, comme un geste main ouverte puis fermée.",
    "draw": "Ouvre la toile de dessin ; le tracé enregistré devient la forme personnalisée.",
    "color": "Passe à la couleur suivante de la palette.",
    "shape": "Affiche la forme « {label} ».",
}


def default_state() -> Dict[str, dict]:
    return copy.deepcopy(DEFAULTS)


def coerce_float(value: object, default: float = 0.0) -> float:
    """Return ``value`` converted to ``float`` when possible."""

    if value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value))
        except (TypeError, ValueError):
            return default
    return number if math.isfinite(number) else default


__all__ = ["DEFAULTS", "PALETTE", "TOOLTIPS", "coerce_float", "default_state"]
