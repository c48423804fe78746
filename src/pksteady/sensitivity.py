# src/pksteady/sensitivity.py
"""
Sensitivities of the steady state with respect to the parameters.

`solve_steady_state` is already differentiable; this module adds the
explicit implicit-function-theorem Jacobian and a caller-owned context that
keeps compiled solve / Jacobian / gradient functions for one system.
"""
import logging

import jax
import jax.numpy as jnp

from ._scalar import as_fixed_int, as_fixed_real
from .solve import solve_steady_state
from .types import SolverConfig

logger = logging.getLogger(__name__)


def steady_state_sensitivity(system, x_star, y, x_r, x_i):
    """
    Jacobian of the steady state with respect to y, evaluated at a root x*:

        dx*/dy = -(dr/dx)^-1 dr/dy

    Returns an array of shape (len(x*), len(y)). Only the residual's partial
    derivatives at x* are needed, not the solver's iterations.
    """
    x_star = jnp.asarray(x_star, dtype=float)
    y = jnp.asarray(y, dtype=float)
    x_r = as_fixed_real(x_r)
    x_i = as_fixed_int(x_i)

    r_x = jax.jacfwd(lambda x: system(x, y, x_r, x_i))(x_star)
    r_y = jax.jacfwd(lambda p: system(x_star, p, x_r, x_i))(y)
    return -jnp.linalg.solve(r_x, r_y)


class SensitivityContext:
    """
    Workspace for repeated steady-state solves and sensitivities of one
    residual system with fixed data.

    The context owns its compiled functions. They are dropped when the `with`
    block exits, normally or through an exception, or when `close()` is
    called. Create one context per thread; contexts share no state.

        with SensitivityContext(system, x_guess, x_r, x_i) as ctx:
            x_star = ctx.solve(y)
            jac = ctx.jacobian(y)                   # forward mode
            grad = ctx.gradient(lambda x: x[0], y)  # reverse mode
    """

    def __init__(self, system, x_guess, x_r, x_i, config: SolverConfig | None = None):
        config = config or SolverConfig()
        if config.method == "hybr":
            raise ValueError("SensitivityContext needs a differentiable solver ('newton' or 'dogleg').")
        self.system = system
        self.x_guess = jnp.asarray(x_guess, dtype=float)
        self.x_r = as_fixed_real(x_r)
        self.x_i = as_fixed_int(x_i)
        self.config = config
        self._compiled = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        if self._compiled:
            logger.debug("dropping %d compiled steady-state functions", len(self._compiled))
        self._compiled.clear()

    def solve(self, y):
        """Steady state x*(y)."""
        fn = self._get("solve", lambda: jax.jit(self._solve))
        return fn(jnp.asarray(y, dtype=float))

    def jacobian(self, y):
        """dx*/dy by forward-mode differentiation, shape (n, len(y))."""
        fn = self._get("jacobian", lambda: jax.jit(jax.jacfwd(self._solve)))
        return fn(jnp.asarray(y, dtype=float))

    def gradient(self, objective, y):
        """
        Gradient of the scalar objective(x*(y)) by reverse-mode differentiation.

        Only the most recent objective stays compiled: pass the same callable
        on repeated calls to reuse it. A new callable replaces the old entry.
        """
        key = ("gradient", objective)
        if key not in self._compiled:
            for old in [k for k in self._compiled if isinstance(k, tuple) and k[0] == "gradient"]:
                del self._compiled[old]
        fn = self._get(key, lambda: jax.jit(jax.grad(lambda p: objective(self._solve(p)))))
        return fn(jnp.asarray(y, dtype=float))

    def _get(self, key, build):
        fn = self._compiled.get(key)
        if fn is None:
            fn = self._compiled[key] = build()
        return fn

    def _solve(self, y):
        return solve_steady_state(self.system, self.x_guess, y, self.x_r, self.x_i, self.config)
