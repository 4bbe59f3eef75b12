from __future__ import annotations

import io
import sys

from holoparticle.diagnostics import DEBUG_MARKER, DebugSilencer, debug, install_debug_silencer


def test_silencer_drops_marked_lines() -> None:
    sink = io.StringIO()
    stream = DebugSilencer(sink, DEBUG_MARKER)
    stream.write(f"{DEBUG_MARKER} hidden\nshown\n")
    stream.write("partial")
    stream.flush()
    assert sink.getvalue() == "shown\npartial"


def test_debug_lines_carry_the_marker(capsys) -> None:
    debug("hello")
    assert capsys.readouterr().out == f"{DEBUG_MARKER} hello\n"


def test_env_flag_keeps_streams_untouched(monkeypatch) -> None:
    monkeypatch.setenv("HOLO_DEBUG", "1")
    before = sys.stdout
    install_debug_silencer()
    assert sys.stdout is before


def test_silencer_counts_lines_of_every_marker() -> None:
    sink = io.StringIO()
    stream = DebugSilencer(sink, "[A]", "[B]")
    stream.write("[A] one\nkeep\n[B] two\n[A] thr")
    assert stream.suppressed == 2
    stream.write("ee\n")
    assert sink.getvalue() == "keep\n"
    assert stream.suppressed == 3
