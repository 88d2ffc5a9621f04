import numpy as np
import pytest

from hp663x.config import RampPlan
from hp663x.ramp import RampController, RampState, leg_length


def run_to_end(plan):
    ctl = RampController(plan)
    steps = []
    while True:
        step = ctl.advance()
        if step is None:
            return ctl, steps
        steps.append(step)
        assert len(steps) < 100000


def test_single_up_ramp_0_to_15_by_100mv():
    ctl, steps = run_to_end(RampPlan(0.0, 15.0, 100))
    volts = [s.voltage for s in steps]
    assert len(volts) == 150
    np.testing.assert_allclose(volts, np.linspace(0.1, 15.0, 150))
    assert volts[-1] == 15.0
    assert not any(s.segment_break for s in steps)
    assert ctl.state is RampState.DONE
    assert not ctl.second_leg_started


def test_dual_down_ramp_starts_from_the_top():
    ctl, steps = run_to_end(RampPlan(6.0, 15.0, -100, dual=True))
    volts = [s.voltage for s in steps]
    breaks = [i for i, s in enumerate(steps) if s.segment_break]
    assert breaks == [90]
    np.testing.assert_allclose(volts[:90], np.linspace(14.9, 6.0, 90))
    np.testing.assert_allclose(volts[90:], np.linspace(6.1, 15.0, 90))
    assert ctl.second_leg_started
    assert ctl.state is RampState.DONE


@pytest.mark.parametrize("plan", [
    RampPlan(0.0, 15.0, 100, dual=True),
    RampPlan(2.0, 5.0, 250, dual=True),
    RampPlan(1.0, 3.5, -300, dual=True),
])
def test_dual_ramp_trajectory_is_symmetric(plan):
    ctl = RampController(plan)
    start = ctl.current_voltage
    _, steps = run_to_end(plan)
    path = [start] + [s.voltage for s in steps]
    assert path == path[::-1]


@pytest.mark.parametrize("plan", [
    RampPlan(0.0, 15.0, 100),
    RampPlan(0.0, 1.0, 300),
    RampPlan(3.0, 4.0, -7),
    RampPlan(0.0, 50.0, 1000),
])
def test_leg_takes_ceil_span_over_step_ticks(plan):
    _, steps = run_to_end(plan)
    assert len(steps) == leg_length(plan)


def test_last_step_is_clamped_to_the_bound():
    _, steps = run_to_end(RampPlan(0.0, 1.0, 300))
    assert [s.voltage for s in steps] == [0.3, 0.6, 0.9, 1.0]


def test_same_plan_gives_same_sequence():
    plan = RampPlan(0.5, 7.25, 45, dual=True)
    _, a = run_to_end(plan)
    _, b = run_to_end(plan)
    assert a == b


def test_plan_bounds_are_not_mutated():
    plan = RampPlan(6.0, 15.0, -100, dual=True)
    run_to_end(plan)
    assert (plan.start, plan.end, plan.step_mv, plan.dual) == (6.0, 15.0, -100, True)


def test_dual_ramp_on_a_bound_finishes_without_setpoints():
    ctl, steps = run_to_end(RampPlan(5.0, 5.0, 100, dual=True))
    assert steps == []
    assert ctl.state is RampState.DONE


def test_state_walk_through_dual_ramp():
    ctl = RampController(RampPlan(0.0, 0.2, 100, dual=True))
    assert ctl.state is RampState.RAMPING
    assert ctl.advance().voltage == 0.1
    assert ctl.advance().voltage == 0.2
    assert ctl.state is RampState.AWAITING_FLIP
    step = ctl.advance()
    assert (step.voltage, step.segment_break) == (0.1, True)
    assert ctl.second_leg_started
    assert ctl.advance().voltage == 0.0
    assert ctl.advance() is None
    assert ctl.state is RampState.DONE
    assert ctl.advance() is None


def test_no_plan_is_inert():
    ctl = RampController(None)
    assert ctl.state is RampState.IDLE
    assert not ctl.active
    with pytest.raises(RuntimeError):
        ctl.advance()
