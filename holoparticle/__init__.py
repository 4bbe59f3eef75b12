"""Gesture and music driven particle shapes."""

from .engine import AnimationState, FrameOutput, ParticleEngine
from .scene import ParticleScene
from .shapes import ShapeType, available_shapes, generate
from .signals import AudioBands, HandData
from .strokes import resample

__all__ = [
    "AnimationState",
    "AudioBands",
    "FrameOutput",
    "HandData",
    "ParticleEngine",
    "ParticleScene",
    "ShapeType",
    "available_shapes",
    "generate",
    "resample",
]

__version__ = "0.1.0"
