# src/pksteady/solve.py
"""
Root solve of a residual system: finds the steady state x* with r(x*, y) = 0.

Two back ends:
  - "newton" / "dogleg": optimistix root finding on JAX arrays. The solve is
    differentiable with respect to y (jax.jvp, jacfwd, grad, jit). Derivatives
    are not taken through the iterations; they come from the implicit function
    theorem at the root, dx*/dy = -(dr/dx)^-1 dr/dy.
  - "hybr": scipy's Powell hybrid method on plain floats, no sensitivities.

Importing this module (or any pksteady module that builds residuals) turns on
JAX double precision for the whole process (jax_enable_x64).
"""
import logging

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
import optimistix as optx
from scipy.optimize import root

from ._scalar import as_fixed_int, as_fixed_real
from .errors import SteadyStateConvergenceError
from .types import SolverConfig

logger = logging.getLogger(__name__)


def solve_steady_state(system, x_guess, y, x_r, x_i, config: SolverConfig | None = None):
    """
    Solve system(x, y, x_r, x_i) = 0 for x, starting from x_guess.

    system  : FixedDoseResidualSystem or VariableDoseResidualSystem
    x_guess : initial guess for the steady state
    y       : parameters (for the variable-dose system the amount is last)
    x_r     : fixed real data, x_i : fixed integer data
    config  : SolverConfig

    Returns x* as a JAX array ("newton", "dogleg") or numpy array ("hybr").
    Errors raised by the system (infeasible infusion, unsupported case,
    integration failure) propagate unchanged.
    """
    config = config or SolverConfig()
    x_r = as_fixed_real(x_r)
    x_i = as_fixed_int(x_i)
    logger.debug("steady-state solve method=%s rel_tol=%g f_tol=%g max_steps=%d",
                 config.method, config.rel_tol, config.function_tolerance, config.max_num_steps)

    if config.method == "hybr":
        return _solve_hybr(system, x_guess, y, x_r, x_i, config)
    return _solve_optx(system, x_guess, y, x_r, x_i, config)


def _solve_optx(system, x_guess, y, x_r, x_i, config):
    x_guess = jnp.asarray(x_guess, dtype=float)
    y = jnp.asarray(y, dtype=float)

    def fn(x, args):
        return system(x, args, x_r, x_i)

    sol = optx.root_find(fn, _root_finder(config), x_guess, args=y,
                         max_steps=config.max_num_steps,
                         adjoint=optx.ImplicitAdjoint(), throw=True)
    x_star = sol.value

    fx = fn(jax.lax.stop_gradient(x_star), jax.lax.stop_gradient(y))
    return eqx.error_if(x_star, jnp.max(jnp.abs(fx)) > config.function_tolerance,
                        "steady-state residual exceeds the function tolerance")


def _solve_hybr(system, x_guess, y, x_r, x_i, config):
    y = np.asarray(y, dtype=float)

    def fun(x):
        return np.asarray(system(x, y, x_r, x_i), dtype=float)

    sol = root(fun, np.asarray(x_guess, dtype=float), method="hybr",
               tol=config.rel_tol, options={"maxfev": config.max_num_steps})
    max_residual = float(np.max(np.abs(sol.fun))) if sol.fun.size else 0.0
    if max_residual > config.function_tolerance:
        raise SteadyStateConvergenceError(
            f"Steady state not found: {sol.message} (max |residual| = {max_residual:g}, "
            f"function tolerance = {config.function_tolerance:g}).")
    if not sol.success:
        logger.warning("hybr stopped early (%s) but max |residual| = %g is within tolerance",
                       sol.message, max_residual)
    return sol.x


def _root_finder(config: SolverConfig):
    if config.method == "dogleg":
        return optx.Dogleg(rtol=config.rel_tol, atol=config.function_tolerance)
    return optx.Newton(rtol=config.rel_tol, atol=config.function_tolerance)
