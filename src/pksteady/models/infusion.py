# src/pksteady/models/infusion.py
import numpy as np

from .._scalar import array_namespace


def with_infusion_rates(f):
    """
    Add zero-order inputs to a model right-hand side.

    The returned function reads one infusion rate per state from the front of
    the real data, x_r[:n], and adds it to f's derivative. Any further entries
    of x_r are left for f to use as covariates.
    """
    def rhs(t, x, theta, x_r, x_i):
        xp = array_namespace(x, theta)
        dxdt = xp.asarray(f(t, x, theta, x_r, x_i))
        n = dxdt.shape[0]
        rates = np.asarray(x_r, dtype=float)[:n]
        if rates.size < n:
            raise ValueError(f"Real data holds {rates.size} rates but the model has {n} states.")
        return dxdt + rates

    rhs.__wrapped__ = f
    return rhs
