# src/pksteady/types.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

# Time is in HOURS throughout, amounts in mg, rates in mg/h.
IntegratorMethod = Literal["rk45", "tsit5", "bdf"]
SolverMethod = Literal["newton", "dogleg", "hybr"]


class Regime(Enum):
    """Which of the three steady-state cases a dosing regimen falls into."""
    BOLUS = "bolus"
    TRUNCATED_INFUSION = "truncated_infusion"
    CONTINUOUS_INFUSION = "continuous_infusion"


def classify_regime(rate: float, ii: float) -> Regime:
    """
    Pick the steady-state case from the (rate, interdose interval) pair:
      rate == 0             -> bolus
      rate > 0 and ii > 0   -> truncated infusion
      rate > 0 and ii == 0  -> continuous infusion
    """
    if rate < 0:
        raise ValueError(f"rate must be >= 0 (got {rate}).")
    if ii < 0:
        raise ValueError(f"ii must be >= 0 (got {ii}).")
    if rate == 0:
        return Regime.BOLUS
    if ii > 0:
        return Regime.TRUNCATED_INFUSION
    return Regime.CONTINUOUS_INFUSION


@dataclass(frozen=True)
class DosingRegime:
    """
    A repeated dosing regimen, as seen by a steady-state event.

    cmt     : dosing compartment, 1-based (<= 0 means no dosing compartment)
    ii      : interdose interval (h); 0 together with rate > 0 means a
              continuous infusion
    rate    : infusion rate (mg/h); 0 for bolus doses
    amount  : dose amount (mg). May be a JAX value when the amount is a
              parameter (e.g. scaled by an estimated bioavailability).
    """
    cmt: int
    ii: float
    rate: float = 0.0
    amount: Any = 0.0

    def __post_init__(self):
        if self.ii < 0:
            raise ValueError(f"ii must be >= 0 (got {self.ii}).")
        if self.rate < 0:
            raise ValueError(f"rate must be >= 0 (got {self.rate}).")

    @property
    def kind(self) -> Regime:
        return classify_regime(self.rate, self.ii)


@dataclass(frozen=True)
class IntegratorConfig:
    """
    Settings for the ODE integrator used inside the residual systems.

    method        : "rk45" (Dormand-Prince), "tsit5" or "bdf" (stiff; an
                    implicit ESDIRK scheme on the differentiable path)
    rel_tol       : relative tolerance
    abs_tol       : absolute tolerance
    max_num_steps : maximum number of steps per integration call
    """
    method: IntegratorMethod = "rk45"
    rel_tol: float = 1e-10
    abs_tol: float = 1e-10
    max_num_steps: int = 4096

    def __post_init__(self):
        if self.method not in ("rk45", "tsit5", "bdf"):
            raise ValueError(f"Unknown integrator method '{self.method}'.")
        _validate_positive("rel_tol", self.rel_tol)
        _validate_positive("abs_tol", self.abs_tol)
        _validate_positive_int("max_num_steps", self.max_num_steps)


@dataclass(frozen=True)
class SolverConfig:
    """
    Settings for the root solve that finds the steady state.

    method             : "newton" or "dogleg" (differentiable, JAX), or
                         "hybr" (scipy Powell hybrid, plain floats only)
    rel_tol            : relative step tolerance of the root finder
    function_tolerance : largest accepted |residual| at the returned root;
                         also the absolute tolerance of the root finder
    max_num_steps      : iteration cap
    """
    method: SolverMethod = "newton"
    rel_tol: float = 1e-10
    function_tolerance: float = 1e-6
    max_num_steps: int = 1000

    def __post_init__(self):
        if self.method not in ("newton", "dogleg", "hybr"):
            raise ValueError(f"Unknown solver method '{self.method}'.")
        _validate_positive("rel_tol", self.rel_tol)
        _validate_positive("function_tolerance", self.function_tolerance)
        _validate_positive_int("max_num_steps", self.max_num_steps)


@dataclass(frozen=True)
class SteadyStateExposure:
    """
    Exposure over one steady-state dosing cycle (concentration units, h).
    """
    cmax: float
    tmax: float
    cmin: float
    tmin: float
    ctrough: float
    cavg: float
    auc_tau: float
    peak_to_trough_ratio: float
    fluctuation_index: float


# --------------------------
# Small input validators
# --------------------------
def _validate_positive(name: str, x: float) -> None:
    if not (x > 0):
        raise ValueError(f"{name} must be > 0 (got {x}).")

def _validate_positive_int(name: str, x: int) -> None:
    if not (isinstance(x, int) and x > 0):
        raise ValueError(f"{name} must be a positive integer (got {x}).")
