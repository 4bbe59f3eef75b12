"""Qt renderer for the particle scene.

This module exposes :func:`HoloViewWidget`, a factory returning a widget that
drives a :class:`~holoparticle.scene.ParticleScene` from a ``QTimer`` and
paints every frame as additive round sprites.  Two backends share the same
behaviour: a ``QOpenGLWidget`` when the platform can create a GL context, and
a plain raster ``QWidget`` otherwise.

Without a hand tracker attached, the mouse stands in for the hand: the cursor
position steers the rotation and the wheel opens or closes the virtual hand.
"""

from __future__ import annotations

import os
import time
from typing import Mapping, Optional, Tuple

from PyQt5 import QtCore, QtGui, QtWidgets

from ..config import coerce_float
from ..diagnostics import warn
from ..scene import ParticleScene
from ..signals import HandData, clamp01
from ..projection import project_frame

__all__ = ["HoloViewWidget"]

WHEEL_STEP = 0.08


# ---------------------------------------------------------------------------
# OpenGL helpers


def _create_opengl_functions() -> Tuple[Optional[object], Optional[BaseException]]:
    """Return ``(functions, error)`` for the current GL context."""

    factory = getattr(QtGui, "QOpenGLFunctions", None)
    if factory is None:
        return None, AttributeError("PyQt5.QtGui has no attribute 'QOpenGLFunctions'")
    try:
        functions = factory()
        functions.initializeOpenGLFunctions()
    except Exception as exc:  # pragma: no cover - depends on bindings/runtime GL state
        return None, exc
    return functions, None


class _ViewWidgetBase:
    """Common behaviour shared by both the OpenGL and raster backends.

    Listed before the Qt class so its event handlers take precedence.
    """

    def _init_view_widget(self, scene: Optional[ParticleScene]) -> None:
        self.setAttribute(QtCore.Qt.WA_OpaquePaintEvent, True)
        self.setMouseTracking(True)
        self.setFocusPolicy(QtCore.Qt.StrongFocus)
        self.scene = scene if scene is not None else ParticleScene()
        self._gl: Optional[object] = None
        self._start = time.perf_counter()
        self._frame = None
        self._mouse_driven = True
        self._openness = 0.0
        self._pointer = (0.5, 0.5)
        self._timer = QtCore.QTimer(self)
        self._frame_interval_ms = 16
        self._timer.timeout.connect(self._advance)
        self._apply_frame_interval(self._system_value("frameIntervalMs", 16))

    # ------------------------------------------------------------------ config
    def _system_value(self, key: str, default: float) -> float:
        system = self.scene.engine.state.get("system", {})
        if not isinstance(system, Mapping):
            return default
        return coerce_float(system.get(key), default)

    def _background(self) -> QtGui.QColor:
        system = self.scene.engine.state.get("system", {})
        color = QtGui.QColor(str(system.get("background", "#020205")))
        return color if color.isValid() else QtGui.QColor("black")

    def _apply_frame_interval(self, interval_ms: float) -> None:
        """Retune the frame timer; a non-positive interval pauses the animation."""

        self._frame_interval_ms = max(int(interval_ms), 0)
        if not self._frame_interval_ms:
            self._timer.stop()
        elif self._timer.interval() != self._frame_interval_ms or not self._timer.isActive():
            self._timer.start(self._frame_interval_ms)

    # ------------------------------------------------------------------ API
    def set_params(self, payload: Mapping[str, object]) -> None:
        self.scene.engine.set_params(payload)
        self._apply_frame_interval(self._system_value("frameIntervalMs", 16))
        self.update()

    def set_mouse_driven(self, enabled: bool) -> None:
        """Disable when a real hand tracker feeds the scene."""

        self._mouse_driven = bool(enabled)

    def reset_visual_state(self) -> None:
        self._start = time.perf_counter()
        self.scene.engine.reset_visual_state()
        self.update()

    def elapsed(self) -> float:
        return time.perf_counter() - self._start

    # ------------------------------------------------------------------ frame loop
    def _advance(self) -> None:
        if self._mouse_driven:
            self.scene.set_hand(HandData(
                is_open=self._openness > 0.5,
                gesture_value=self._openness,
                position=self._pointer,
            ))
        self._frame = self.scene.tick(self.elapsed())
        self.update()

    # ------------------------------------------------------------------ pointer
    def mouseMoveEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        width = max(1, self.width())
        height = max(1, self.height())
        self._pointer = (clamp01(event.x() / width), clamp01(event.y() / height))
        super().mouseMoveEvent(event)

    def wheelEvent(self, event: QtGui.QWheelEvent) -> None:  # type: ignore[override]
        steps = event.angleDelta().y() / 120.0
        self._openness = clamp01(self._openness + steps * WHEEL_STEP)
        event.accept()

    # ------------------------------------------------------------------ rendering
    def _render_with_painter(self, painter: QtGui.QPainter) -> None:
        painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
        painter.fillRect(self.rect(), self._background())
        frame = self._frame
        if frame is None or not frame.count:
            return
        width = max(1, self.width())
        height = max(1, self.height())
        projected = project_frame(
            frame,
            width,
            height,
            fov=self._system_value("fov", 60.0),
            cam_distance=self._system_value("camDistance", 10.0),
        )
        painter.setCompositionMode(QtGui.QPainter.CompositionMode_Plus)
        painter.setPen(QtCore.Qt.NoPen)
        alpha = clamp01(projected.alpha)
        color = QtGui.QColor()
        for sx, sy, r, (red, green, blue) in zip(projected.x, projected.y, projected.radius, projected.rgb):
            if red + green + blue <= 0.0:
                continue
            color.setRgbF(red, green, blue, alpha)
            painter.setBrush(color)
            painter.drawEllipse(QtCore.QRectF(sx - r, sy - r, r * 2.0, r * 2.0))


class _OpenGLViewWidget(_ViewWidgetBase, QtWidgets.QOpenGLWidget):
    """OpenGL-backed renderer when the system can create a GL context."""

    def __init__(self, scene: Optional[ParticleScene] = None, parent: Optional[QtWidgets.QWidget] = None) -> None:
        QtWidgets.QOpenGLWidget.__init__(self, parent)
        self._init_view_widget(scene)

    def initializeGL(self) -> None:  # pragma: no cover - requires GUI context
        self._gl, error = _create_opengl_functions()
        if error is not None:
            warn(f"OpenGL initialisation failed: {error}. Falling back to painter clear.")

    def resizeGL(self, width: int, height: int) -> None:  # pragma: no cover - requires GUI context
        del width, height

    def paintGL(self) -> None:  # pragma: no cover - requires GUI context
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            painter.end()


class _RasterViewWidget(_ViewWidgetBase, QtWidgets.QWidget):
    """Fallback renderer using the traditional raster ``QWidget`` backend."""

    def __init__(self, scene: Optional[ParticleScene] = None, parent: Optional[QtWidgets.QWidget] = None) -> None:
        QtWidgets.QWidget.__init__(self, parent)
        self._init_view_widget(scene)

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # type: ignore[override]
        del event
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            painter.end()


_BACKENDS = {"opengl": True, "gl": True, "raster": False, "software": False}


def _should_use_opengl(force_backend: Optional[str]) -> bool:
    for choice in (force_backend, os.environ.get("HOLO_FORCE_BACKEND")):
        key = (choice or "").strip().lower()
        if key in _BACKENDS:
            return _BACKENDS[key]
    return hasattr(QtWidgets, "QOpenGLWidget")


def HoloViewWidget(
    scene: Optional[ParticleScene] = None,
    parent: Optional[QtWidgets.QWidget] = None,
    *,
    force_backend: Optional[str] = None,
) -> QtWidgets.QWidget:
    """Factory returning the best available renderer widget.

    Parameters
    ----------
    scene:
        Scene animated by the widget; a default one is created when omitted.
    parent:
        Parent widget used by Qt for ownership.
    force_backend:
        ``"opengl"`` forces the OpenGL widget while ``"raster"`` selects the
        pure QWidget implementation.  ``HOLO_FORCE_BACKEND`` does the same
        from the environment.
    """

    if _should_use_opengl(force_backend):
        try:
            widget = _OpenGLViewWidget(scene, parent)
            setattr(widget, "backend_name", "opengl")
            return widget
        except Exception as exc:
            warn(f"Unable to initialise OpenGL backend ({exc!r}). Using raster widget instead.")
    widget = _RasterViewWidget(scene, parent)
    setattr(widget, "backend_name", "raster")
    return widget
