# src/pksteady/metrics.py
import numpy as np
from typing import Tuple

from .types import SteadyStateExposure

def cmax(C: np.ndarray) -> float:
    """Maximum concentration over the cycle (mg/L)."""
    return float(np.max(C))

def tmax(t: np.ndarray, C: np.ndarray) -> float:
    """Time of maximum concentration (h)."""
    return float(t[int(np.argmax(C))])

def cmin(C: np.ndarray) -> float:
    """Minimum concentration over the cycle (mg/L)."""
    return float(np.min(C))

def tmin(t: np.ndarray, C: np.ndarray) -> float:
    """Time of minimum concentration (h)."""
    return float(t[int(np.argmin(C))])

def cmax_tmax(t: np.ndarray, C: np.ndarray) -> Tuple[float, float]:
    """Return Cmax (mg/L) and Tmax (h)."""
    idx = np.argmax(C)
    return float(C[idx]), float(t[idx])

def auc_trapz(t: np.ndarray, C: np.ndarray) -> float:
    """Area Under the Curve (AUC) via trapezoidal rule (mg*h/L)."""
    return float(np.trapezoid(C, t))

def cavg(t: np.ndarray, C: np.ndarray) -> float:
    """
    Time-averaged concentration, AUC / (t_end - t_start).
    A single sample (continuous infusion at steady state) is its own average.
    """
    span = float(t[-1] - t[0])
    if span <= 0:
        return float(np.mean(C))
    return auc_trapz(t, C) / span

def peak_to_trough_ratio(C: np.ndarray) -> float:
    """Peak-to-Trough Ratio (PTR) = Cmax / Cmin."""
    cmin_val = cmin(C)
    if cmin_val <= 0:
        return float('inf')
    return cmax(C) / cmin_val

def fluctuation_index(t: np.ndarray, C: np.ndarray) -> float:
    """Fluctuation Index (FI) = (Cmax - Cmin) / Cavg."""
    cavg_val = cavg(t, C)
    if cavg_val == 0.0:
        return float('inf')
    return (cmax(C) - cmin(C)) / cavg_val

def exposure_summary(t: np.ndarray, C: np.ndarray) -> SteadyStateExposure:
    """
    Steady-state exposure over one dosing cycle.

    t : time points covering exactly one cycle [0, ii] (h), e.g. from
        `cycle_profile`
    C : concentration at those times (mg/L)

    The trough is the concentration at the end of the cycle, which at steady
    state equals the pre-dose concentration.
    """
    t = np.asarray(t, dtype=float)
    C = np.asarray(C, dtype=float)
    peak, t_peak = cmax_tmax(t, C)
    return SteadyStateExposure(
        cmax=peak,
        tmax=t_peak,
        cmin=cmin(C),
        tmin=tmin(t, C),
        ctrough=float(C[-1]),
        cavg=cavg(t, C),
        auc_tau=auc_trapz(t, C),
        peak_to_trough_ratio=peak_to_trough_ratio(C),
        fluctuation_index=fluctuation_index(t, C),
    )
