import enum
import logging
import sys
import time
from dataclasses import dataclass
from typing import Optional

from .config import RunConfig
from .errors import LinkError, SupplyError
from .instruments import HP663x
from .keyboard import STOP_KEYS, RawKeyboard
from .plotting import make_sink
from .ramp import RampController, leg_length
from .recorder import DataRecorder, Sample

logger = logging.getLogger(__name__)

KEY_WAIT_S = 0.1


class RunState(enum.Enum):
    CONFIGURING = "configuring"
    SAMPLING = "sampling"
    DRAINING = "draining"
    CLOSED = "closed"


@dataclass
class AcquisitionRun:
    interval: int                   # tenths of a second
    tick: int = 0
    cancelled: bool = False
    second_segment: bool = False    # a dual ramp has entered its second leg


class Runner:
    """Configure the supply, then sample (and optionally ramp) until stopped.

    ``run()`` never raises SupplyError; it returns the process exit code.
    Whatever state fails, teardown goes through the same close path; any
    other exception is re-raised after it, with the run counted as failed.
    """

    def __init__(self, cfg: RunConfig, supply: Optional[HP663x] = None,
                 keyboard=None, sink_factory=make_sink,
                 sleep=time.sleep, clock=time.monotonic, out=None):
        self.cfg = cfg
        self.supply = supply if supply is not None else HP663x.at_address(
            cfg.address, cfg.supply_model, cfg.board)
        self.keyboard = keyboard if keyboard is not None else RawKeyboard()
        self.sink_factory = sink_factory
        self.sleep = sleep
        self.clock = clock
        self.out = out if out is not None else sys.stdout

        self.state = RunState.CONFIGURING
        self.ramp = RampController(cfg.ramp)
        self.run_state = AcquisitionRun(interval=cfg.interval)
        self.recorder: Optional[DataRecorder] = None
        self.sink = None

    def run(self) -> int:
        code = 0
        with self.keyboard:
            try:
                self._configure()
                if not self.cfg.configure_only:
                    self._open_outputs()
                    self._banner()
                    self._sample()
                    self._drain()
            except SupplyError as e:
                logger.error("%s", e)
                code = e.exit_code
            except Exception:
                code = code or 1
                raise
            finally:
                code = self._close(code)
        return code

    # ---- states ----
    def _configure(self):
        self.state = RunState.CONFIGURING
        cfg = self.cfg
        supply = cfg.supply.resolved(cfg.supply_model)
        self.supply.open(reset=cfg.reset)
        # a rising ramp drives the setpoint itself, starting from 0 V
        rising = self.ramp.active and cfg.ramp.step_mv > 0
        self.supply.configure(
            0.0 if rising else supply.volt,
            supply.amp, supply.limiter_volt, supply.ocp,
        )

    def _open_outputs(self):
        cfg = self.cfg
        self.recorder = DataRecorder(cfg.output, cfg.flush_every)
        self.recorder.open(cfg.comment)
        if not cfg.plotting:
            return
        sink = self.sink_factory(cfg.plotter, cfg.output, self.ramp.active, cfg.gnuplot)
        try:
            sink.open()
        except OSError as e:
            logger.warning("Cannot launch %s (%s), will continue without graphics.", cfg.plotter, e)
            return
        self.sink = sink

    def _sample(self):
        self.state = RunState.SAMPLING
        run = self.run_state
        t0 = self.clock()
        while not run.cancelled:
            if self.ramp.active:
                step = self.ramp.advance()
                if step is None:
                    run.cancelled = True
                    break
                if step.segment_break:
                    self.recorder.segment_break()
                    run.second_segment = True
                self.supply.set_voltage(step.voltage)

            self.sleep(run.interval / 10.0)

            volt = self.supply.measure_voltage()
            amp = self.supply.measure_current()
            sample = Sample((self.clock() - t0) / 60.0, volt, amp)
            flushed = self.recorder.append(sample)
            run.tick += 1
            print(f"{run.tick:10d} {sample.elapsed_min:10.2f} min {volt:10.4f} V {amp:10.4f} A",
                  end="\r", file=self.out, flush=True)

            if flushed and self.sink is not None:
                self.sink.refresh(run.second_segment)

            if self.keyboard.kbhit() and self.keyboard.getch() in STOP_KEYS:
                run.cancelled = True

    def _drain(self):
        self.state = RunState.DRAINING
        self.recorder.close(footer=True)

    def _close(self, code: int) -> int:
        self.state = RunState.CLOSED
        if self.recorder is not None and self.recorder.is_open:
            try:
                self.recorder.close(footer=False)
            except SupplyError as e:
                logger.error("%s", e)

        try:
            self.supply.close(reset=self.cfg.reset)
        except LinkError as e:
            logger.error("Error during reset of instrument: %s", e)
            if code == 0:
                code = e.exit_code

        if self.sink is not None:
            try:
                if code == 0:
                    self.sink.refresh(self.run_state.second_segment)
                    if self.cfg.wait_key and self.keyboard.interactive:
                        print("\nAcquisition finished. Press any key to terminate graphic display and exit.",
                              file=self.out, flush=True)
                        while not self.keyboard.kbhit():
                            self.sink.pause(KEY_WAIT_S)
                        self.keyboard.getch()
            finally:
                self.sink.close()
        print(file=self.out)
        return code

    def _banner(self):
        cfg = self.cfg
        supply = cfg.supply.resolved(cfg.supply_model)
        rows = [
            ("Instrument", cfg.supply_model.name),
            ("GPIB address", cfg.address),
            ("Output file", cfg.output),
        ]
        if cfg.comment:
            rows.append(("Comment", cfg.comment))
        rows += [
            ("Voltage limit", f"{supply.limiter_volt:.4f} V"),
            (f"Current {'trip' if supply.ocp else 'limit':>5}", f"{supply.amp:.4f} A"),
            ("Sampling", f"{cfg.interval / 10.0:.1f} s"),
        ]
        if cfg.ramp is not None:
            legs = 2 if cfg.ramp.dual else 1
            rows += [
                ("Ramp start", f"{cfg.ramp.start:.4f} V"),
                ("Ramp end", f"{cfg.ramp.end:.4f} V"),
                ("Increment", f"{cfg.ramp.step_mv} mV"),
                ("Steps", leg_length(cfg.ramp) * legs),
            ]
        rows += [
            ("Refresh", cfg.flush_every),
            ("Stop", "Press 'q' or ESC."),
        ]
        lines = [""] + [f"{label:>13} :  {value}" for label, value in rows]
        lines += ["", "     Count           Time      Reading"]
        print("\n".join(lines), file=self.out, flush=True)
