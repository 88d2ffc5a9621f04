import io
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd

from .config import PROGRAM, VERSION
from .errors import FileError

logger = logging.getLogger(__name__)

COLUMNS = ["min", "Volt", "Ampere"]


@dataclass(frozen=True)
class Sample:
    elapsed_min: float
    volt: float
    amp: float

    def to_line(self) -> str:
        return f"{self.elapsed_min:.4f}\t{self.volt:.4f}\t{self.amp:.4f}\n"


class DataRecorder:
    """Append-only tab separated log, readable by gnuplot and pandas.

    A blank-line pair splits the file into plot segments ('index' in gnuplot).
    """

    def __init__(self, path, flush_every: int = 100):
        self.path = Path(path)
        self.flush_every = flush_every
        self.count = 0
        self._f = None

    @property
    def is_open(self) -> bool:
        return self._f is not None

    def open(self, comment: str = ""):
        try:
            self._f = open(self.path, "w", encoding="utf-8", newline="\n")
            self._f.write(f"# {PROGRAM} {VERSION}\n")
            self._f.write(f"# {comment}\n")
            self._f.write(f"# Start: {datetime.now().ctime()}\n")
            self._f.write("# " + "\t".join(COLUMNS) + "\n")
        except OSError as e:
            self._f = None
            raise FileError(f"Could not open '{self.path}' for writing: {e}") from e

    def _write(self, text: str):
        if self._f is None:
            raise RuntimeError(f"{self.path}: recorder is not open")
        try:
            self._f.write(text)
        except OSError as e:
            raise FileError(f"Could not write to '{self.path}': {e}") from e

    def append(self, sample: Sample) -> bool:
        """Write one sample. Returns True when this append forced a flush."""
        self._write(sample.to_line())
        self.count += 1
        if self.count % self.flush_every == 0:
            self.flush()
            return True
        return False

    def segment_break(self):
        self._write("\n\n")

    def flush(self):
        if self._f is None:
            return
        try:
            self._f.flush()
            os.fsync(self._f.fileno())
        except OSError as e:
            raise FileError(f"Could not flush '{self.path}': {e}") from e

    def close(self, footer: bool = True):
        if self._f is None:
            return
        f, self._f = self._f, None
        try:
            if footer:
                f.write(f"# Stop: {datetime.now().ctime()}\n")
            f.flush()
        except OSError as e:
            raise FileError(f"Could not finish '{self.path}': {e}") from e
        finally:
            f.close()
        logger.debug("closed %s after %d samples", self.path, self.count)


def load_segments(path) -> list[pd.DataFrame]:
    """Read a log back as one DataFrame per plot segment."""
    blocks: list[list[str]] = [[]]
    blank = 0
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.rstrip("\n")
            if line.startswith("#"):
                continue
            if not line.strip():
                blank += 1
                continue
            if blank >= 2 and blocks[-1]:
                blocks.append([])
            blank = 0
            blocks[-1].append(line)

    frames = []
    for lines in blocks:
        if not lines:
            continue
        frames.append(pd.read_csv(io.StringIO("\n".join(lines)), sep="\t", header=None, names=COLUMNS))
    return frames
