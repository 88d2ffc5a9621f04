"""Pytest configuration and instrument fakes for the hp663x tests.

The project root is put on ``sys.path`` so ``pytest`` works without an
editable install. ``FakeResource`` stands in for a pyvisa resource of an
HP663xA: it records every command and answers VOUT?/IOUT? with fixed-width
CR/LF terminated fields.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _ensure_project_root_on_path() -> None:
    root = Path(__file__).resolve().parents[1]
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()


import pytest
from pyvisa import constants
from pyvisa.errors import VisaIOError

from hp663x.config import SUPPLY_MODELS
from hp663x.instruments import HP663x, InstrumentLink


class FakeResource:
    def __init__(self, amp=0.1, fail_on_read=None, fail_on_write=None):
        self.amp = amp
        self.volt = 0.0
        self.writes = []
        self.reads = 0
        self.fail_on_read = fail_on_read      # 1-based index of the failing read
        self.fail_on_write = fail_on_write    # command prefix that fails
        self.closed = False
        self._pending = None

    def write(self, cmd):
        if self.fail_on_write and cmd.startswith(self.fail_on_write):
            raise VisaIOError(constants.VI_ERROR_TMO)
        self.writes.append(cmd)
        for part in cmd.split(";"):
            if part.startswith("VSET "):
                self.volt = float(part[5:])
        if cmd in ("VOUT?", "IOUT?"):
            self._pending = cmd

    def read_raw(self, size=None):
        self.reads += 1
        if self.fail_on_read is not None and self.reads == self.fail_on_read:
            raise VisaIOError(constants.VI_ERROR_TMO)
        if self._pending == "VOUT?":
            return f"{self.volt:7.3f}\r\n".encode()
        return f"{self.amp:7.4f}\r\n".encode()

    def close(self):
        self.closed = True


class FakeKeyboard:
    """Presses ``key`` once ``after`` polls have gone by."""

    def __init__(self, key=None, after=0):
        self.key = key
        self.after = after
        self.polls = 0
        self.entered = False
        self.restored = False
        self.interactive = True

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, *exc):
        self.restored = True
        return False

    def kbhit(self):
        self.polls += 1
        return self.key is not None and self.polls > self.after

    def getch(self):
        key, self.key = self.key, None
        return key or ""


class FakeSink:
    def __init__(self, plotter, path, ramp, gnuplot="gnuplot"):
        self.path = path
        self.ramp = ramp
        self.refreshes = []
        self.opened = False
        self.closed = False

    @property
    def is_open(self):
        return self.opened and not self.closed

    def open(self):
        self.opened = True

    def refresh(self, second_segment=False):
        self.refreshes.append(second_segment)

    def pause(self, seconds):
        pass

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def _no_reset_settle(monkeypatch):
    monkeypatch.setattr("hp663x.instruments.hp663x.RESET_SETTLE_S", 0)


@pytest.fixture
def resource():
    return FakeResource()


@pytest.fixture
def make_supply():
    def _make(res, model="6633"):
        link = InstrumentLink("GPIB0::5::INSTR", opener=lambda _r: res)
        return HP663x(link, SUPPLY_MODELS[model])
    return _make
