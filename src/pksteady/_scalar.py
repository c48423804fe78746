# src/pksteady/_scalar.py
"""
Scalar plumbing shared by the residual systems and models.

Residual systems and model right-hand sides are written once and evaluated
with plain numpy arrays (value-only path) or with JAX arrays and tracers
(forward/reverse sensitivities). The helpers here pick the matching array
module and separate fixed data from differentiable values.
"""
import jax
import jax.numpy as jnp
import numpy as np

# Steady-state tolerances (1e-6 and below) need double precision.
jax.config.update("jax_enable_x64", True)


def array_namespace(*values):
    """Return jax.numpy if any value is a JAX array or tracer, else numpy."""
    for v in values:
        if isinstance(v, jax.Array):
            return jnp
    return np


def is_fixed(value) -> bool:
    """
    True if `value` is concrete data that can be read as floats.
    Values being traced by a JAX transformation (jvp, grad, jit) are not.
    """
    try:
        np.asarray(value, dtype=float)
    except (jax.errors.TracerArrayConversionError, jax.errors.ConcretizationTypeError):
        return False
    return True


def as_fixed_real(data) -> np.ndarray:
    """Fixed real data as a 1-D float array (raises for traced values)."""
    return np.atleast_1d(np.asarray(data, dtype=float))


def as_fixed_int(data) -> np.ndarray:
    return np.atleast_1d(np.asarray(data, dtype=int))


def dose_vector(n: int, cmt: int) -> np.ndarray:
    """Unit vector selecting compartment `cmt` (1-based); zeros if cmt <= 0."""
    if cmt > n:
        raise ValueError(f"Dosing compartment {cmt} is out of range for {n} states.")
    e = np.zeros(n)
    if cmt >= 1:
        e[cmt - 1] = 1.0
    return e
