from __future__ import annotations

import logging

from pyvisa.errors import Error as VisaError

from ..errors import DecodeError, LinkError
from ..visa_utils import open_resource

logger = logging.getLogger(__name__)


class InstrumentLink:
    """Logical connection to one instrument on the bus.

    Every bus failure is raised as LinkError; nothing here retries.
    Responses are fixed-width fields ended by CR/LF; ``read`` looks for the
    terminator inside the field instead of trusting the byte count.
    """

    def __init__(self, resource: str, opener=open_resource):
        self.resource = resource
        self.inst = None
        self._opener = opener

    @property
    def is_open(self) -> bool:
        return self.inst is not None

    def connect(self):
        try:
            self.inst = self._opener(self.resource)
        except (VisaError, OSError, ValueError) as e:
            raise LinkError(f"Error trying to open {self.resource}: {e}") from e
        logger.debug("opened %s", self.resource)

    def close(self):
        if self.inst is None:
            return
        try:
            self.inst.close()
        except (VisaError, OSError) as e:
            raise LinkError(f"Error closing {self.resource}: {e}") from e
        finally:
            self.inst = None
        logger.debug("closed %s", self.resource)

    def _require_open(self):
        if self.inst is None:
            raise RuntimeError(f"{self.resource}: instrument session is not open")

    def write(self, cmd: str):
        self._require_open()
        logger.debug("-> %s", cmd)
        try:
            self.inst.write(cmd)
        except (VisaError, OSError) as e:
            raise LinkError(f"Error executing '{cmd}': {e}") from e

    def read(self, max_bytes: int) -> str:
        self._require_open()
        try:
            raw = self.inst.read_raw(max_bytes)
        except (VisaError, OSError) as e:
            raise LinkError(f"Error trying to read from instrument: {e}") from e
        logger.debug("<- %r", raw)
        return parse_field(raw, max_bytes)


def parse_field(raw: bytes, max_bytes: int) -> str:
    """Return the text of a response field with its line terminator removed."""
    field = raw[:max_bytes]
    end = field.find(b"\n")
    if end < 0:
        raise DecodeError(f"No line terminator within {max_bytes} bytes: {raw!r}")
    if end > 0 and field[end - 1:end] == b"\r":
        end -= 1
    try:
        return field[:end].decode("ascii")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Non-ASCII response: {raw!r}") from e
