import math
import pytest

from pksteady.errors import InfeasibleInfusionError
from pksteady.validation import check_mti


def test_single_infusion_per_cycle_is_accepted():
    check_mti(100.0, 2.0, 12.0, "Steady State Event")


def test_infusion_filling_the_whole_interval_is_accepted():
    check_mti(100.0, 12.0, 12.0, "Steady State Event")


def test_overlapping_infusions_are_rejected():
    """amt = 100 at rate 1 lasts 100 h, longer than ii = 50 h."""
    with pytest.raises(InfeasibleInfusionError) as excinfo:
        check_mti(100.0, 100.0, 50.0, "Steady State Event")

    err = excinfo.value
    assert err.context == "Steady State Event"
    assert err.delta == 100.0 and err.ii == 50.0
    assert "Steady State Event" in str(err)


@pytest.mark.parametrize("delta", [0.0, -1.0, math.inf, math.nan])
def test_degenerate_infusion_durations_are_rejected(delta):
    with pytest.raises(InfeasibleInfusionError):
        check_mti(100.0, delta, 24.0, "dosing event 3")


def test_infeasible_infusion_is_a_value_error():
    with pytest.raises(ValueError):
        check_mti(10.0, 30.0, 24.0, "Steady State Event")
