# src/pksteady/integrators.py
"""
ODE integrators used by the residual systems.

Both integrators share one call signature:

    integrate(f, y0, t0, ts, theta, x_r, x_i) -> array of shape (len(ts), n)

with `f(t, y, theta, x_r, x_i)` the model right-hand side. Row i holds the
state at output time ts[i]. `x_r` and `x_i` are fixed data and are passed to
`f` untouched.
"""
import logging
from dataclasses import dataclass

import diffrax
import jax.numpy as jnp
import numpy as np
from scipy.integrate import solve_ivp

from ._scalar import as_fixed_int, as_fixed_real
from .errors import IntegrationError
from .types import IntegratorConfig

logger = logging.getLogger(__name__)

# scipy has no Tsitouras scheme; RK45 is the closest explicit pair.
_SCIPY_METHODS = {"rk45": "RK45", "tsit5": "RK45", "bdf": "BDF"}


@dataclass(frozen=True)
class ScipyIntegrator:
    """
    Value-only integrator on top of scipy's solve_ivp.

    States and parameters must be plain floats. Passing JAX tracers (i.e.
    asking for sensitivities) fails on conversion; use DiffraxIntegrator for
    that. `max_num_steps` is not enforced by solve_ivp.
    """
    config: IntegratorConfig = IntegratorConfig()

    def __call__(self, f, y0, t0, ts, theta, x_r, x_i) -> np.ndarray:
        y0 = np.asarray(y0, dtype=float)
        theta = np.asarray(theta, dtype=float)
        x_r = as_fixed_real(x_r)
        x_i = as_fixed_int(x_i)
        ts = as_fixed_real(ts)
        t0 = float(t0)

        if np.all(ts == t0):
            return np.tile(y0, (ts.size, 1))

        def rhs(t, y):
            return np.asarray(f(t, y, theta, x_r, x_i), dtype=float)

        sol = solve_ivp(rhs, t_span=(t0, float(ts[-1])), y0=y0,
                        method=_SCIPY_METHODS[self.config.method], t_eval=ts,
                        rtol=self.config.rel_tol, atol=self.config.abs_tol)
        if not sol.success:
            raise IntegrationError(f"solve_ivp failed on [{t0}, {ts[-1]}]: {sol.message}")
        return sol.y.T


@dataclass(frozen=True)
class DiffraxIntegrator:
    """
    Differentiable integrator on top of diffrax.

    Accepts numpy arrays, JAX arrays and JAX tracers for the initial state and
    the parameters, and supports forward-mode (jvp, jacfwd) as well as
    reverse-mode (vjp, grad) differentiation through the solve. Reaching
    `max_num_steps` raises at runtime.
    """
    config: IntegratorConfig = IntegratorConfig()

    def __call__(self, f, y0, t0, ts, theta, x_r, x_i):
        y0 = jnp.asarray(y0, dtype=float)
        theta = jnp.asarray(theta, dtype=float)
        x_r = as_fixed_real(x_r)
        x_i = as_fixed_int(x_i)
        ts = as_fixed_real(ts)
        t0 = float(t0)

        if np.all(ts == t0):
            return jnp.tile(y0, (ts.size, 1))

        term = diffrax.ODETerm(lambda t, y, args: f(t, y, args, x_r, x_i))
        sol = diffrax.diffeqsolve(
            term,
            _diffrax_solver(self.config.method),
            t0=t0,
            t1=float(ts[-1]),
            dt0=None,
            y0=y0,
            args=theta,
            saveat=diffrax.SaveAt(ts=jnp.asarray(ts)),
            stepsize_controller=diffrax.PIDController(rtol=self.config.rel_tol,
                                                      atol=self.config.abs_tol),
            max_steps=self.config.max_num_steps,
            # DirectAdjoint supports both forward- and reverse-mode autodiff.
            adjoint=diffrax.DirectAdjoint(),
        )
        return sol.ys


def make_integrator(config: IntegratorConfig | None = None, *, differentiable: bool = True):
    """Build the integrator for a residual system from its config."""
    config = config or IntegratorConfig()
    logger.debug("integrator method=%s rel_tol=%g abs_tol=%g differentiable=%s",
                 config.method, config.rel_tol, config.abs_tol, differentiable)
    if differentiable:
        return DiffraxIntegrator(config)
    return ScipyIntegrator(config)


def _diffrax_solver(method: str):
    if method == "rk45":
        return diffrax.Dopri5()
    if method == "tsit5":
        return diffrax.Tsit5()
    return diffrax.Kvaerno5()
