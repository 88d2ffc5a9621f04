import io

import matplotlib
import pytest

matplotlib.use("Agg")

from hp663x import plotting
from hp663x.plotting import GnuplotSink, MatplotlibSink, make_sink, plot_command, setup_commands
from hp663x.recorder import DataRecorder, Sample


def test_time_series_plot_uses_secondary_current_axis():
    assert setup_commands("a.dat", ramp=False)[-1] == \
        "set xlabel 'min'; set ylabel 'V'; set y2label 'A'; set y2tics"
    assert plot_command("a.dat", ramp=False, second_segment=False) == \
        "plot 'a.dat' using 1:2 title 'Voltage', '' u 1:3 axis x1y2 title 'Current'"


def test_ramp_plot_selects_segments():
    assert setup_commands("r.dat", ramp=True)[-1] == "set xlabel 'V'; set ylabel 'A'"
    assert plot_command("r.dat", ramp=True, second_segment=False) == \
        "plot 'r.dat' using 2:3 ti 'I vs. U (1)'"
    assert plot_command("r.dat", ramp=True, second_segment=True) == \
        "plot 'r.dat' using 2:3 index 0 ti 'I vs. U (1)', '' u 2:3 index 1 ti 'I vs. U (2)'"


class FakeProc:
    def __init__(self, args, stdin=None, text=None):
        self.args = args
        self.stdin = io.StringIO()
        self.waited = False

    def wait(self):
        self.waited = True
        return 0


def test_gnuplot_sink_command_stream(monkeypatch):
    procs = []

    def popen(*args, **kwargs):
        procs.append(FakeProc(*args, **kwargs))
        return procs[-1]

    monkeypatch.setattr(plotting.subprocess, "Popen", popen)
    sink = GnuplotSink("r.dat", ramp=True, executable="/opt/gnuplot")
    sink.open()
    proc = procs[0]
    assert proc.args == ["/opt/gnuplot"]
    sink.refresh(second_segment=True)
    sent = proc.stdin.getvalue().splitlines()
    assert sent[0].startswith("set mouse;")
    assert sent[-1] == plot_command("r.dat", ramp=True, second_segment=True)
    proc.stdin.close = lambda: None
    sink.close()
    assert proc.waited
    assert not sink.is_open


def test_gnuplot_missing_executable_raises_oserror(tmp_path):
    sink = GnuplotSink("a.dat", ramp=False, executable=str(tmp_path / "no-gnuplot"))
    with pytest.raises(OSError):
        sink.open()


def test_matplotlib_sink_reads_the_log(tmp_path):
    path = tmp_path / "ramp.dat"
    rec = DataRecorder(path)
    rec.open()
    for v in (0.1, 0.2):
        rec.append(Sample(0.0, v, v / 10))
    rec.segment_break()
    rec.append(Sample(0.0, 0.1, 0.01))
    rec.flush()

    sink = MatplotlibSink(path, ramp=True)
    sink.open()
    try:
        sink.refresh(second_segment=False)
        assert list(sink.lines[0].get_xdata()) == pytest.approx([0.1, 0.2])
        assert len(sink.lines[1].get_xdata()) == 0
        sink.refresh(second_segment=True)
        assert list(sink.lines[1].get_xdata()) == pytest.approx([0.1])
    finally:
        sink.close()
        rec.close()
    assert not sink.is_open


def test_make_sink():
    assert isinstance(make_sink("matplotlib", "a.dat", False), MatplotlibSink)
    sink = make_sink("gnuplot", "a.dat", True, "/usr/local/bin/gnuplot")
    assert isinstance(sink, GnuplotSink)
    assert sink.executable == "/usr/local/bin/gnuplot"
