# -*- coding: utf-8 -*-
import sys
from typing import NoReturn, Optional, Sequence


_QT_HINTS = (
    ("libGL.so", "installez les paquets Mesa/OpenGL de votre distribution (libgl1)."),
    ("xcb", "le greffon Qt xcb ne trouve pas ses bibliothèques X11 (libxcb-*)."),
    ("No module named", "installez les dépendances : pip install holoparticle."),
)


def _handle_qt_import_error(exc: ImportError) -> NoReturn:
    """Stop with a French diagnostic naming the likely missing piece."""

    details = str(exc)
    hints = [hint for needle, hint in _QT_HINTS if needle in details]
    lines = ["Holoparticle ne peut pas démarrer : PyQt5 est introuvable ou incomplet."]
    lines += [f"Indice : {hint}" for hint in hints]
    lines.append(f"Erreur d'origine : {details}")
    raise SystemExit("\n".join(lines)) from exc


try:
    from PyQt5 import QtCore, QtGui, QtWidgets
    from PyQt5.QtGui import QSurfaceFormat
except ImportError as exc:  # pragma: no cover - dépendances environnementales
    _handle_qt_import_error(exc)

from .config import TOOLTIPS
from .diagnostics import debug, install_debug_silencer
from .scene import ParticleScene
from .shapes import ShapeType, shape_label
from .view import DrawingDialog, HoloViewWidget

SHAPE_KEYS = (
    ("1", ShapeType.HEART),
    ("2", ShapeType.DOUBLE_HEART),
    ("3", ShapeType.FLOWER),
    ("4", ShapeType.FLOWER_SEA),
    ("5", ShapeType.SATURN),
    ("6", ShapeType.SOLAR_SYSTEM),
    ("7", ShapeType.RING),
    ("8", ShapeType.BUTTERFLY),
    ("9", ShapeType.I_LOVE_U),
    ("B", ShapeType.BUDDHA),
    ("F", ShapeType.FIREWORKS),
    ("G", ShapeType.GALAXY),
    ("N", ShapeType.DNA),
    ("S", ShapeType.SPHERE),
    ("U", ShapeType.CUSTOM),
)


class ViewWindow(QtWidgets.QMainWindow):
    def __init__(self, app: QtWidgets.QApplication, scene: Optional[ParticleScene] = None):
        super().__init__(None)
        self.setWindowTitle("Holoparticle")
        self.scene = scene if scene is not None else ParticleScene()
        self.view = HoloViewWidget(self.scene, self)
        self.setCentralWidget(self.view)
        self.statusBar().showMessage(self._status_text())

        self._add_action("Quitter", "Esc", app.quit, TOOLTIPS["quit"])
        self._add_action("Musique", "M", self.toggle_music, TOOLTIPS["music"])
        self._add_action("Déclencher", "Space", self.trigger, TOOLTIPS["trigger"])
        self._add_action("Dessiner", "D", self.open_drawing, TOOLTIPS["draw"])
        self._add_action("Couleur", "C", self.cycle_color, TOOLTIPS["color"])
        for key, shape in SHAPE_KEYS:
            label = shape_label(shape)
            self._add_action(
                label, key, lambda _=False, s=shape: self.select_shape(s), TOOLTIPS["shape"].format(label=label)
            )

    def _add_action(self, text: str, key: str, slot, tip: str = "") -> QtWidgets.QAction:
        action = QtWidgets.QAction(text, self)
        action.setStatusTip(tip)
        action.setToolTip(tip or text)
        action.setShortcut(QtGui.QKeySequence(key))
        action.setShortcutContext(QtCore.Qt.ApplicationShortcut)
        action.triggered.connect(slot)
        self.addAction(action)
        return action

    def _status_text(self) -> str:
        mode = "musique" if self.scene.music_mode else "geste"
        return f"{shape_label(self.scene.shape)} · mode {mode} · {self.scene.color}"

    def _refresh_status(self) -> None:
        self.statusBar().showMessage(self._status_text())

    # ------------------------------------------------------------------ actions
    def select_shape(self, shape: ShapeType) -> None:
        if not self.scene.select_shape(shape):
            self.open_drawing()
            return
        self._refresh_status()

    def trigger(self) -> None:
        self.scene.on_gesture_trigger()
        self._refresh_status()

    def toggle_music(self) -> None:
        self.scene.toggle_music()
        self._refresh_status()

    def cycle_color(self) -> None:
        self.scene.cycle_color()
        self._refresh_status()

    def open_drawing(self) -> None:
        dialog = DrawingDialog(self, color=self.scene.color)
        dialog.strokesSaved.connect(self.save_drawing)
        dialog.exec_()

    def save_drawing(self, payload: dict) -> None:
        if not self.scene.save_drawing(payload):
            self.statusBar().showMessage("Dessin trop court : forme inchangée.", 3000)
            return
        self._refresh_status()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the application and return the exit code."""

    install_debug_silencer()
    fmt = QSurfaceFormat()
    fmt.setAlphaBufferSize(8)
    QSurfaceFormat.setDefaultFormat(fmt)
    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_EnableHighDpiScaling, True)
    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_UseHighDpiPixmaps, True)
    app = QtWidgets.QApplication(list(argv) if argv is not None else sys.argv)
    window = ViewWindow(app)
    window.resize(1280, 800)
    window.show()
    debug("view backend: %s" % getattr(window.view, "backend_name", "?"))
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
