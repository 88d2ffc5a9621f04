"""Non-blocking single key polling on a POSIX terminal.

``RawKeyboard`` switches stdin to non-canonical, no-echo mode on enter and
restores the saved mode on exit, whichever way the block is left. When
stdin is not a terminal it is inert and never reports a key.
"""
import os
import select
import sys

try:
    import termios
except ImportError:     # not POSIX
    termios = None

ESC = "\x1b"
STOP_KEYS = ("q", ESC)


class RawKeyboard:
    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdin
        self._fd = None
        self._saved = None
        self._peek = None

    def __enter__(self):
        if termios is None or not self.stream.isatty():
            return self
        self._fd = self.stream.fileno()
        self._saved = termios.tcgetattr(self._fd)
        mode = termios.tcgetattr(self._fd)
        mode[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG)
        mode[6][termios.VMIN] = 1
        mode[6][termios.VTIME] = 0
        termios.tcsetattr(self._fd, termios.TCSANOW, mode)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSANOW, self._saved)
            self._saved = None
        self._fd = None
        return False

    @property
    def interactive(self) -> bool:
        return self._fd is not None

    def kbhit(self) -> bool:
        if self._peek is not None:
            return True
        if self._fd is None:
            return False
        ready, _, _ = select.select([self._fd], [], [], 0)
        if not ready:
            return False
        data = os.read(self._fd, 1)
        if not data:
            return False
        self._peek = data.decode("latin-1")
        return True

    def getch(self) -> str:
        if self._peek is None and not self.kbhit():
            return ""
        ch, self._peek = self._peek, None
        return ch
