"""Voltage ramp state machine.

The cursor is carried in integer millivolts so repeated stepping never
drifts. A leg ends when the cursor sits on (or past) its target; the last
step of a leg is clamped to the target, so a leg of span S and step d takes
exactly ceil(S / d) ticks and never leaves the declared bounds. The second
leg of a dual ramp retraces the first leg's points in reverse and ends on
the bound the ramp started from.
"""
import enum
import math
from dataclasses import dataclass
from typing import Optional

from .config import RampPlan


class RampState(enum.Enum):
    IDLE = "idle"
    RAMPING = "ramping"
    AWAITING_FLIP = "awaiting_flip"
    DONE = "done"


@dataclass(frozen=True)
class RampStep:
    voltage: float
    segment_break: bool = False     # first setpoint of the second leg


def _mv(volt: float) -> int:
    return int(round(volt * 1000))


class RampController:
    def __init__(self, plan: Optional[RampPlan]):
        self.plan = plan
        self.step_mv = 0
        self.direction_will_flip = False
        self.second_leg_started = False
        self._finished = False
        self._cursor_mv = 0
        if plan is None:
            return
        self.step_mv = plan.step_mv
        self.direction_will_flip = plan.dual
        self._start_mv = _mv(plan.start)
        self._end_mv = _mv(plan.end)
        # up-ramps begin at the lower bound, down-ramps at the upper one
        self._cursor_mv = self._start_mv if self.step_mv > 0 else self._end_mv
        self._origin_mv = self._cursor_mv

    @property
    def active(self) -> bool:
        return self.plan is not None

    @property
    def current_voltage(self) -> float:
        return self._cursor_mv / 1000.0

    @property
    def state(self) -> RampState:
        if not self.active:
            return RampState.IDLE
        if self._finished:
            return RampState.DONE
        if self._target_reached() and self.direction_will_flip:
            return RampState.AWAITING_FLIP
        return RampState.RAMPING

    def _target_mv(self) -> int:
        return self._end_mv if self.step_mv > 0 else self._start_mv

    def _target_reached(self) -> bool:
        if self.step_mv > 0:
            return self._cursor_mv >= self._target_mv()
        return self._cursor_mv <= self._target_mv()

    def advance(self) -> Optional[RampStep]:
        """Move one step. Returns the new setpoint, or None once the ramp is done."""
        if not self.active:
            raise RuntimeError("advance() called without a ramp plan")
        if self._finished:
            return None

        segment_break = False
        while self._target_reached():
            if not self.direction_will_flip:
                # a flip onto a leg of zero length ends here, so no break is reported
                self._finished = True
                return None
            self.step_mv = -self.step_mv
            self.direction_will_flip = False
            self.second_leg_started = True
            segment_break = True

        if self.second_leg_started:
            # back onto the first leg's grid, which is anchored at the origin
            remaining = abs(self._origin_mv - self._cursor_mv)
            move = remaining % abs(self.step_mv) or abs(self.step_mv)
            self._cursor_mv += move if self.step_mv > 0 else -move
        else:
            target = self._target_mv()
            nxt = self._cursor_mv + self.step_mv
            self._cursor_mv = min(nxt, target) if self.step_mv > 0 else max(nxt, target)
        return RampStep(self.current_voltage, segment_break)


def leg_length(plan: RampPlan) -> int:
    """Number of setpoints in one leg of ``plan``."""
    span = abs(_mv(plan.end) - _mv(plan.start))
    return math.ceil(span / abs(plan.step_mv))
