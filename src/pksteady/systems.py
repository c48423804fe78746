# src/pksteady/systems.py
"""
Algebraic systems whose root is the steady-state solution of a dosing event.

A residual system is evaluated at a candidate pre-dose state x and returns
a vector that vanishes when x repeats exactly after one dosing cycle:

  bolus               : x - state one interval after dosing x
  truncated infusion  : x - state after infusing for amt / rate, then
                        running without the infusion for the rest of ii
  continuous infusion : dx/dt evaluated at x

Everything is written with array operators so the same system works on
numpy arrays (values only) and on JAX arrays and tracers (sensitivities).
The branch taken depends on fixed data only, so a system can be traced
under jax.jit.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable

from ._scalar import array_namespace, as_fixed_int, as_fixed_real, dose_vector
from .errors import UnsupportedConfigurationError
from .types import Regime, classify_regime
from .validation import check_mti

logger = logging.getLogger(__name__)

EVENT_LABEL = "Steady State Event"


@dataclass(frozen=True)
class FixedDoseResidualSystem:
    """
    Steady-state system where both the dose amount and the rate are fixed.

    Real data holds the per-compartment rates followed by the (bioavailability
    adjusted) amount. Only the parameters y carry sensitivities.

    f          : model right-hand side f(t, x, theta, x_r, x_i), rates included
    ii         : interdose interval (h)
    cmt        : dosing compartment, 1-based (<= 0: none)
    integrator : integrate(f, y0, t0, ts, theta, x_r, x_i)
    """
    f: Callable
    ii: float
    cmt: int
    integrator: Any

    def __post_init__(self):
        if self.ii < 0:
            raise ValueError(f"ii must be >= 0 (got {self.ii}).")

    def __call__(self, x, y, x_r, x_i):
        return self.evaluate(x, y, x_r, x_i)

    def evaluate(self, x, y, x_r, x_i):
        xp = array_namespace(x, y)
        x = xp.asarray(x)
        x_r = as_fixed_real(x_r)
        x_i = as_fixed_int(x_i)

        amt = float(x_r[-1])
        rate = float(x_r[self.cmt - 1]) if self.cmt >= 1 else 0.0

        # The integrator and f only see rates (and covariates), not the amount.
        x_r_ode = x_r[:-1]

        kind = classify_regime(rate, self.ii)
        if kind is Regime.BOLUS:
            x0 = x + amt * dose_vector(x.shape[0], self.cmt)
            pred = self.integrator(self.f, x0, 0.0, [self.ii], y, x_r_ode, x_i)[0]
            return x - pred

        if kind is Regime.TRUNCATED_INFUSION:
            delta = amt / rate
            check_mti(amt, delta, self.ii, EVENT_LABEL)

            x_end = self.integrator(self.f, x, 0.0, [delta], y, x_r_ode, x_i)[0]
            x_r_off = x_r_ode.copy()
            x_r_off[self.cmt - 1] = 0.0
            pred = self.integrator(self.f, x_end, 0.0, [self.ii - delta], y, x_r_off, x_i)[0]
            return x - pred

        return xp.asarray(self.f(0.0, x, y, x_r_ode, x_i))


@dataclass(frozen=True)
class VariableDoseResidualSystem:
    """
    Steady-state system where the dose amount is a parameter and the rate is
    fixed. This happens when the amount is scaled by an estimated
    bioavailability.

    The last element of y is the amount; the rest are the model parameters.
    Real data holds the per-compartment rates (and covariates) only.

    The truncated-infusion case is not supported: the sensitivity of the
    infusion duration amt / rate with respect to amt is not derived.
    """
    f: Callable
    ii: float
    cmt: int
    integrator: Any

    def __post_init__(self):
        if self.ii < 0:
            raise ValueError(f"ii must be >= 0 (got {self.ii}).")

    def __call__(self, x, y, x_r, x_i):
        return self.evaluate(x, y, x_r, x_i)

    def evaluate(self, x, y, x_r, x_i):
        xp = array_namespace(x, y)
        x = xp.asarray(x)
        y = xp.asarray(y)
        x_r = as_fixed_real(x_r)
        x_i = as_fixed_int(x_i)

        amt = y[-1]
        theta = y[:-1]
        rate = float(x_r[self.cmt - 1]) if self.cmt >= 1 else 0.0

        kind = classify_regime(rate, self.ii)
        if kind is Regime.BOLUS:
            x0 = x + amt * dose_vector(x.shape[0], self.cmt)
            pred = self.integrator(self.f, x0, 0.0, [self.ii], theta, x_r, x_i)[0]
            return x - pred

        if kind is Regime.TRUNCATED_INFUSION:
            raise UnsupportedConfigurationError(
                f"{EVENT_LABEL}: current version does not handle the case of multiple "
                f"truncated infusions (i.e. ii > 0 and rate > 0) when F * amt is a parameter.")

        return xp.asarray(self.f(0.0, x, theta, x_r, x_i))


def residual_system_for(amount_is_parameter: bool, f, ii, cmt, integrator):
    """Pick the fixed- or variable-dose system for a steady-state event."""
    cls = VariableDoseResidualSystem if amount_is_parameter else FixedDoseResidualSystem
    logger.debug("steady-state system %s (ii=%g, cmt=%d)", cls.__name__, ii, cmt)
    return cls(f, ii, cmt, integrator)
