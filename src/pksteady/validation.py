# src/pksteady/validation.py
import math

from .errors import InfeasibleInfusionError


def check_mti(amount, delta, ii, function: str) -> None:
    """
    Check that a truncated infusion (amount given at a fixed rate over
    delta = amount / rate hours, repeated every ii hours) fits the
    one-infusion-per-cycle steady-state model.

    Raises InfeasibleInfusionError, labelled with `function`, when delta is
    not a finite positive number or when delta > ii, i.e. the next infusion
    would start before the current one ends.
    """
    if not math.isfinite(delta):
        raise InfeasibleInfusionError(function, amount, delta, ii,
                                      "infusion duration must be finite")
    if delta <= 0:
        raise InfeasibleInfusionError(function, amount, delta, ii,
                                      "infusion duration must be positive")
    if delta > ii:
        # Overlapping infusions would need the number of infusions running at
        # once as a discrete unknown.
        raise InfeasibleInfusionError(function, amount, delta, ii,
                                      "interdose interval (ii) must be greater than or equal to "
                                      "the amount divided by the rate")
