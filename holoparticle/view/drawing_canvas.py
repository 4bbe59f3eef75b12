"""Freehand drawing surface used to build the custom shape."""

from __future__ import annotations

from typing import Dict, List, Optional

from PyQt5 import QtCore, QtGui, QtWidgets

__all__ = ["DrawingCanvas", "DrawingDialog"]


class DrawingCanvas(QtWidgets.QWidget):
    """Record mouse strokes as lists of ``{"x", "y"}`` points in widget pixels."""

    changed = QtCore.pyqtSignal()
    strokesSaved = QtCore.pyqtSignal(dict)

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self.setMinimumSize(480, 360)
        self.setAttribute(QtCore.Qt.WA_OpaquePaintEvent, True)
        self._strokes: List[List[Dict[str, float]]] = []
        self._current: Optional[List[Dict[str, float]]] = None
        self.pen_color = QtGui.QColor("#ff00aa")

    @property
    def strokes(self) -> List[List[Dict[str, float]]]:
        return [list(stroke) for stroke in self._strokes]

    def is_empty(self) -> bool:
        return not any(len(stroke) >= 2 for stroke in self._strokes)

    def clear(self) -> None:
        self._strokes.clear()
        self._current = None
        self.changed.emit()
        self.update()

    def undo(self) -> None:
        if self._strokes:
            self._strokes.pop()
            self.changed.emit()
            self.update()

    def save(self) -> bool:
        if self.is_empty():
            return False
        self.strokesSaved.emit(self.payload())
        return True

    def payload(self) -> Dict[str, object]:
        return {
            "strokes": self.strokes,
            "canvasWidth": float(self.width()),
            "canvasHeight": float(self.height()),
        }

    # ------------------------------------------------------------------ events
    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        if event.button() != QtCore.Qt.LeftButton:
            return
        self._current = [{"x": float(event.x()), "y": float(event.y())}]
        self._strokes.append(self._current)
        self.update()

    def mouseMoveEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        if self._current is None:
            return
        self._current.append({"x": float(event.x()), "y": float(event.y())})
        self.update()

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        if event.button() == QtCore.Qt.LeftButton and self._current is not None:
            self._current = None
            self.changed.emit()

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # type: ignore[override]
        del event
        painter = QtGui.QPainter(self)
        try:
            painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
            painter.fillRect(self.rect(), QtGui.QColor("#020205"))
            pen = QtGui.QPen(self.pen_color, 4.0)
            pen.setCapStyle(QtCore.Qt.RoundCap)
            pen.setJoinStyle(QtCore.Qt.RoundJoin)
            painter.setPen(pen)
            for stroke in self._strokes:
                if len(stroke) < 2:
                    continue
                path = QtGui.QPainterPath(QtCore.QPointF(stroke[0]["x"], stroke[0]["y"]))
                for point in stroke[1:]:
                    path.lineTo(point["x"], point["y"])
                painter.drawPath(path)
        finally:
            painter.end()


class DrawingDialog(QtWidgets.QDialog):
    """Modal canvas with Clear / Undo / Save, emitting the strokes on save."""

    strokesSaved = QtCore.pyqtSignal(dict)

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None, color: str = "#ff00aa") -> None:
        super().__init__(parent)
        self.setWindowTitle("Dessiner une forme")
        self.canvas = DrawingCanvas(self)
        self.canvas.pen_color = QtGui.QColor(color)

        clear_btn = QtWidgets.QPushButton("Effacer", self)
        undo_btn = QtWidgets.QPushButton("Annuler", self)
        self.save_btn = QtWidgets.QPushButton("Enregistrer", self)
        cancel_btn = QtWidgets.QPushButton("Fermer", self)
        clear_btn.clicked.connect(self.canvas.clear)
        undo_btn.clicked.connect(self.canvas.undo)
        self.save_btn.clicked.connect(self._save)
        cancel_btn.clicked.connect(self.reject)
        self.canvas.changed.connect(self._refresh_buttons)
        self.canvas.strokesSaved.connect(self.strokesSaved)

        buttons = QtWidgets.QHBoxLayout()
        buttons.addWidget(clear_btn)
        buttons.addWidget(undo_btn)
        buttons.addStretch(1)
        buttons.addWidget(cancel_btn)
        buttons.addWidget(self.save_btn)

        layout = QtWidgets.QVBoxLayout(self)
        layout.addWidget(self.canvas, 1)
        layout.addLayout(buttons)
        self._refresh_buttons()

    def _refresh_buttons(self) -> None:
        self.save_btn.setEnabled(not self.canvas.is_empty())

    def _save(self) -> None:
        if self.canvas.save():
            self.accept()
