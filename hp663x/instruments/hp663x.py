import enum
import logging
import time

from ..config import SupplyModel, check_voltage
from ..errors import ConfigurationError, DecodeError
from ..visa_utils import gpib_resource
from .base import InstrumentLink

logger = logging.getLogger(__name__)

# the supply always answers with 9 characters, the last 2 being CR/LF,
# e.g. ' 12.009' for VOUT? and '-0.0005' for IOUT?
FIELD_WIDTH = 11
RESET_SETTLE_S = 1.0


class Measurement(enum.Enum):
    OUTPUT_VOLTAGE = "VOUT?"
    OUTPUT_CURRENT = "IOUT?"


class HP663x:
    """HP6632A/6633A/6634A system power supply on GPIB."""

    def __init__(self, link: InstrumentLink, model: SupplyModel):
        self.link = link
        self.model = model

    @classmethod
    def at_address(cls, address: int, model: SupplyModel, board: int = 0):
        return cls(InstrumentLink(gpib_resource(address, board)), model)

    @property
    def is_open(self) -> bool:
        return self.link.is_open

    def open(self, reset: bool = True):
        self.link.connect()
        if reset:
            self.reset_and_clear()
            time.sleep(RESET_SETTLE_S)

    def close(self, reset: bool = True):
        """Optionally switch the output off and reset, then drop the link."""
        try:
            if reset and self.link.is_open:
                self.reset_and_clear()
        finally:
            self.link.close()

    def reset_and_clear(self):
        self.link.write("OUT 0;RST;CLR")

    def configure(self, volt: float, amp: float, limiter_volt: float, ocp: bool):
        check_voltage(volt, self.model, "Voltage")
        check_voltage(limiter_volt, self.model, "Voltage limit")
        if not (0.0 <= amp <= self.model.max_amp):
            raise ConfigurationError(
                f"Current limit must be in range 0...{self.model.max_amp:g} A."
            )
        logger.info(
            "%s: VSET %.4f V, ISET %.4f A, OVSET %.4f V, OCP %s",
            self.model.name, volt, amp, limiter_volt, "on" if ocp else "off",
        )
        self.link.write(f"VSET {volt:f};ISET {amp:f};OVSET {limiter_volt:f};OCP {1 if ocp else 0}")

    def set_voltage(self, volt: float):
        check_voltage(volt, self.model, "Voltage")
        self.link.write(f"VSET {volt:f}")

    def read_measurement(self, kind: Measurement) -> float:
        self.link.write(kind.value)
        text = self.link.read(FIELD_WIDTH)
        try:
            return float(text.strip())
        except ValueError as e:
            raise DecodeError(f"Could not parse {kind.value} response: {text!r}") from e

    def measure_voltage(self) -> float:
        return self.read_measurement(Measurement.OUTPUT_VOLTAGE)

    def measure_current(self) -> float:
        return self.read_measurement(Measurement.OUTPUT_CURRENT)
