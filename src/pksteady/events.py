# src/pksteady/events.py
"""
Steady-state events for a dosing regimen: the pre-dose steady state and the
states over one steady-state cycle.

Importing pksteady turns on JAX double precision for the whole process
(jax_enable_x64); steady-state tolerances need it.
"""
import logging
from typing import Sequence

import jax.numpy as jnp
import numpy as np

from ._scalar import as_fixed_real, dose_vector, is_fixed
from .integrators import ScipyIntegrator, make_integrator
from .models.infusion import with_infusion_rates
from .solve import solve_steady_state
from .systems import EVENT_LABEL, residual_system_for
from .types import DosingRegime, IntegratorConfig, Regime, SolverConfig, classify_regime
from .validation import check_mti

logger = logging.getLogger(__name__)


def steady_state(f, regime: DosingRegime, theta, n_states: int, *,
                 covariates: Sequence[float] = (), int_data: Sequence[int] = (),
                 bioavailability=1.0, x_guess=None,
                 integrator_config: IntegratorConfig | None = None,
                 solver_config: SolverConfig | None = None):
    """
    Pre-dose steady state of a model under a repeated dosing regimen.

    f               : model right-hand side f(t, x, theta, x_r, x_i) without
                      infusions; x_r holds one rate per state, then `covariates`
    regime          : DosingRegime (cmt, ii, rate, amount)
    theta           : model parameters
    n_states        : number of states
    bioavailability : fraction of the amount that reaches the compartment
    x_guess         : initial guess for the root solve (default zeros)

    When the amount or the bioavailability is being traced by JAX (e.g. the
    caller differentiates with respect to it), the dose is treated as a
    parameter and the variable-dose system is used; truncated infusions are
    then not supported. Otherwise the amount is fixed data.

    Returns x*, differentiable with respect to theta for the "newton" and
    "dogleg" solvers.
    """
    solver_config = solver_config or SolverConfig()
    differentiable = solver_config.method != "hybr"
    amount_is_parameter = not (is_fixed(regime.amount) and is_fixed(bioavailability))
    if amount_is_parameter and not differentiable:
        raise ValueError("A differentiable dose amount needs the 'newton' or 'dogleg' solver.")

    kind = regime.kind
    if kind is Regime.BOLUS and regime.ii == 0:
        logger.warning("bolus steady state with ii = 0 has no solution unless the amount is 0")
    if regime.rate > 0 and regime.cmt < 1:
        logger.warning("rate %g given without a dosing compartment; treated as a bolus", regime.rate)

    x_r = _real_data(regime, n_states, covariates)
    system = residual_system_for(amount_is_parameter, with_infusion_rates(f), regime.ii, regime.cmt,
                                 make_integrator(integrator_config, differentiable=differentiable))
    if x_guess is None:
        x_guess = np.zeros(n_states)

    if amount_is_parameter:
        amount = jnp.asarray(regime.amount * bioavailability, dtype=float)
        y = jnp.concatenate([jnp.asarray(theta, dtype=float), jnp.reshape(amount, (1,))])
        return solve_steady_state(system, x_guess, y, x_r, int_data, solver_config)

    amount = float(regime.amount) * float(bioavailability)
    return solve_steady_state(system, x_guess, theta, np.append(x_r, amount), int_data, solver_config)


def cycle_profile(f, regime: DosingRegime, theta, x_star, *, n_points: int = 101,
                  covariates: Sequence[float] = (), int_data: Sequence[int] = (),
                  bioavailability: float = 1.0,
                  integrator_config: IntegratorConfig | None = None):
    """
    States over one steady-state dosing cycle, starting from the pre-dose
    steady state x* at t = 0 (values only).

    Bolus doses are applied at t = 0. For truncated infusions the end of the
    infusion is always one of the returned time points. A continuous infusion
    has no cycle: the single point (0, x*) is returned.

    Returns:
      t      : array of time points (h), from 0 to ii
      states : array of shape (len(t), n_states)
    """
    x_star = np.asarray(x_star, dtype=float)
    n_states = x_star.size
    rate = regime.rate if regime.cmt >= 1 else 0.0
    kind = classify_regime(rate, regime.ii)
    if kind is Regime.CONTINUOUS_INFUSION:
        return np.array([0.0]), x_star[None, :]

    integrator = ScipyIntegrator(integrator_config or IntegratorConfig())
    rhs = with_infusion_rates(f)
    x_r = _real_data(regime, n_states, covariates)
    amount = float(regime.amount) * float(bioavailability)
    t = np.linspace(0.0, regime.ii, n_points)

    if kind is Regime.BOLUS:
        x0 = x_star + amount * dose_vector(n_states, regime.cmt)
        return t, integrator(rhs, x0, 0.0, t, theta, x_r, int_data)

    delta = amount / rate
    check_mti(amount, delta, regime.ii, EVENT_LABEL)
    t = np.union1d(t, [delta])

    t_on = t[t <= delta]
    on = integrator(rhs, x_star, 0.0, t_on, theta, x_r, int_data)

    t_off = t[t > delta]
    if t_off.size == 0:
        return t, on
    x_r_off = x_r.copy()
    x_r_off[regime.cmt - 1] = 0.0
    off = integrator(rhs, on[-1], 0.0, t_off - delta, theta, x_r_off, int_data)
    return t, np.vstack([on, off])


def _real_data(regime: DosingRegime, n_states: int, covariates) -> np.ndarray:
    # Rates per compartment first, then covariates.
    rates = regime.rate * dose_vector(n_states, regime.cmt)
    return np.concatenate([rates, as_fixed_real(covariates)])
