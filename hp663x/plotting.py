"""Live plot sinks.

Both sinks redraw from the log file on disk, never from memory, so what is
shown is exactly what has been flushed.
"""
import logging
import subprocess
import time

import matplotlib.pyplot as plt
import numpy as np

from .recorder import load_segments

logger = logging.getLogger(__name__)


def setup_commands(path, ramp: bool) -> list[str]:
    cmds = [
        f"set mouse;set mouse labels; set style data lines; set title '{path}'",
        "set grid xt; set grid yt",
    ]
    # ramps plot I vs. U, everything else U and I over time
    if ramp:
        cmds.append("set xlabel 'V'; set ylabel 'A'")
    else:
        cmds.append("set xlabel 'min'; set ylabel 'V'; set y2label 'A'; set y2tics")
    return cmds


def plot_command(path, ramp: bool, second_segment: bool) -> str:
    if not ramp:
        return f"plot '{path}' using 1:2 title 'Voltage', '' u 1:3 axis x1y2 title 'Current'"
    if second_segment:
        return f"plot '{path}' using 2:3 index 0 ti 'I vs. U (1)', '' u 2:3 index 1 ti 'I vs. U (2)'"
    return f"plot '{path}' using 2:3 ti 'I vs. U (1)'"


class GnuplotSink:
    """Command stream to an external gnuplot process."""

    def __init__(self, path, ramp: bool, executable: str = "gnuplot"):
        self.path = path
        self.ramp = ramp
        self.executable = executable
        self.proc = None

    @property
    def is_open(self) -> bool:
        return self.proc is not None

    def open(self):
        self.proc = subprocess.Popen(
            [self.executable], stdin=subprocess.PIPE, text=True,
        )
        for cmd in setup_commands(self.path, self.ramp):
            self._send(cmd)

    def _send(self, cmd: str):
        if self.proc is None:
            return
        try:
            self.proc.stdin.write(cmd + "\n")
            self.proc.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            logger.warning("gnuplot went away (%s), continuing without graphics", e)
            self.proc = None

    def refresh(self, second_segment: bool = False):
        self._send(plot_command(self.path, self.ramp, second_segment))

    def pause(self, seconds: float):
        time.sleep(seconds)

    def close(self):
        if self.proc is None:
            return
        proc, self.proc = self.proc, None
        try:
            proc.stdin.close()
        except OSError as e:
            logger.debug("closing gnuplot pipe: %s", e)
        proc.wait()


class MatplotlibSink:
    """Interactive matplotlib window re-reading the log on every refresh."""

    def __init__(self, path, ramp: bool):
        self.path = path
        self.ramp = ramp
        self.fig = None

    @property
    def is_open(self) -> bool:
        return self.fig is not None

    def open(self):
        plt.ion()
        self.fig, self.ax = plt.subplots()
        self.ax.set_title(str(self.path))
        self.ax.grid(True)
        if self.ramp:
            self.ax.set_xlabel("V")
            self.ax.set_ylabel("A")
            self.lines = [
                self.ax.plot([], [], label="I vs. U (1)")[0],
                self.ax.plot([], [], label="I vs. U (2)")[0],
            ]
            self.ax2 = None
        else:
            self.ax.set_xlabel("min")
            self.ax.set_ylabel("V")
            self.ax2 = self.ax.twinx()
            self.ax2.set_ylabel("A")
            self.lines = [
                self.ax.plot([], [], label="Voltage")[0],
                self.ax2.plot([], [], color="tab:orange", label="Current")[0],
            ]
        self.fig.tight_layout()

    def refresh(self, second_segment: bool = False):
        if self.fig is None:
            return
        segments = load_segments(self.path)
        if self.ramp:
            shown = segments[:2] if second_segment else segments[:1]
            for line, df in zip(self.lines, shown):
                line.set_data(np.asarray(df["Volt"]), np.asarray(df["Ampere"]))
        elif segments:
            t, v, a = segments[0][["min", "Volt", "Ampere"]].to_numpy().T
            self.lines[0].set_data(t, v)
            self.lines[1].set_data(t, a)
        for ax in (self.ax, self.ax2):
            if ax is not None:
                ax.relim()
                ax.autoscale_view()
        self.fig.canvas.draw()
        self.fig.canvas.flush_events()

    def pause(self, seconds: float):
        plt.pause(seconds)

    def close(self):
        if self.fig is None:
            return
        plt.ioff()
        plt.close(self.fig)
        self.fig = None


def make_sink(plotter: str, path, ramp: bool, gnuplot: str = "gnuplot"):
    if plotter == "matplotlib":
        return MatplotlibSink(path, ramp)
    return GnuplotSink(path, ramp, gnuplot)
