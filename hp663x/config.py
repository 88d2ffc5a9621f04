from dataclasses import dataclass, field
from typing import Optional

from .errors import ConfigurationError

PROGRAM = "hp663x"
VERSION = "1.0.0"

DEFAULT_ADDRESS = 5
DEFAULT_INTERVAL = 10           # tenths of a second
DEFAULT_FLUSH = 100             # samples between forced writes / replots


@dataclass(frozen=True)
class SupplyModel:
    name: str
    max_volt: float
    max_amp: float


SUPPLY_MODELS = {
    "6632": SupplyModel("HP6632A", 25.0, 4.0),
    "6633": SupplyModel("HP6633A", 50.0, 2.0),
    "6634": SupplyModel("HP6634A", 100.0, 1.0),
}
DEFAULT_MODEL = "6633"


@dataclass(frozen=True)
class SupplyConfiguration:
    volt: float = 0.0               # set voltage (ramp start when ramping)
    amp: Optional[float] = None     # current limit; None => model maximum
    limiter_volt: Optional[float] = None    # OVSET ceiling; None => model maximum
    ocp: bool = False               # trip instead of current limiting

    def resolved(self, model: SupplyModel) -> "SupplyConfiguration":
        return SupplyConfiguration(
            volt=self.volt,
            amp=model.max_amp if self.amp is None else self.amp,
            limiter_volt=model.max_volt if self.limiter_volt is None else self.limiter_volt,
            ocp=self.ocp,
        )

    def validate(self, model: SupplyModel):
        check_voltage(self.volt, model, "Voltage")
        if self.limiter_volt is not None:
            check_voltage(self.limiter_volt, model, "Voltage limit")
        if self.amp is not None and not (0.0 <= self.amp <= model.max_amp):
            raise ConfigurationError(
                f"Current limit must be in range 0...{model.max_amp:g} A."
            )


@dataclass(frozen=True)
class RampPlan:
    start: float            # V
    end: float              # V
    step_mv: int            # signed, |step| in 1..1000
    dual: bool = False

    def validate(self, limiter_volt: float):
        if not (1 <= abs(self.step_mv) <= 1000):
            raise ConfigurationError("Ramp steps must be in range (+/-)1...1000 mV.")
        if self.end < self.start:
            raise ConfigurationError(
                "Upper ramp voltage (-U) must be higher than set voltage (-u)."
            )
        if self.end > limiter_volt:
            raise ConfigurationError(
                "Upper ramp voltage (-U) must be less than voltage limit (-M)."
            )


@dataclass(frozen=True)
class RunConfig:
    supply: SupplyConfiguration = field(default_factory=SupplyConfiguration)
    ramp: Optional[RampPlan] = None
    model: str = DEFAULT_MODEL
    address: int = DEFAULT_ADDRESS
    board: int = 0
    interval: int = DEFAULT_INTERVAL    # 0 => configure, then exit
    flush_every: int = DEFAULT_FLUSH
    comment: str = ""
    keep: bool = False                  # no reset on open/close
    wait_key: bool = True               # "press any key" before closing the plot
    graph: bool = True
    plotter: str = "gnuplot"            # "gnuplot" or "matplotlib"
    gnuplot: str = "gnuplot"
    output: Optional[str] = None

    @property
    def supply_model(self) -> SupplyModel:
        return SUPPLY_MODELS[self.model]

    @property
    def configure_only(self) -> bool:
        return self.interval == 0

    @property
    def reset(self) -> bool:
        return not self.keep and not self.configure_only

    @property
    def plotting(self) -> bool:
        return self.graph and not self.configure_only

    def validate(self) -> "RunConfig":
        if self.model not in SUPPLY_MODELS:
            raise ConfigurationError(
                f"Unknown supply model '{self.model}' (choose from {', '.join(SUPPLY_MODELS)})."
            )
        model = self.supply_model
        self.supply.validate(model)
        if not (0 <= self.address <= 30):
            raise ConfigurationError("Primary address must be between 0 and 30.")
        if self.board < 0:
            raise ConfigurationError("GPIB board index must not be negative.")
        if not (0 <= self.interval <= 600):
            raise ConfigurationError("Delay must be 1 ... 600 (1/10 s).")
        if not (1 <= self.flush_every <= 10000):
            raise ConfigurationError("Flush must occur every 1...10000 points.")
        if self.plotter not in ("gnuplot", "matplotlib"):
            raise ConfigurationError(f"Unknown plotter '{self.plotter}'.")
        if self.ramp is not None:
            check_voltage(self.ramp.end, model, "Voltage")
            self.ramp.validate(self.supply.resolved(model).limiter_volt)
        if not self.configure_only and not self.output:
            raise ConfigurationError("Please specify a data file.")
        return self


def check_voltage(value: float, model: SupplyModel, what: str):
    if not (0.0 <= value <= model.max_volt):
        raise ConfigurationError(f"{what} must be in range 0...{model.max_volt:g} V.")
