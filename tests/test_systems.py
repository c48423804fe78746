import math
import jax
import jax.numpy as jnp
import numpy as np
import pytest

from pksteady.errors import InfeasibleInfusionError, UnsupportedConfigurationError
from pksteady.integrators import DiffraxIntegrator, ScipyIntegrator
from pksteady.models.infusion import with_infusion_rates
from pksteady.models.one_compartment import one_compartment_elimination
from pksteady.models.two_compartment import two_compartment_first_order
from pksteady.systems import FixedDoseResidualSystem, VariableDoseResidualSystem
from pksteady.types import DosingRegime, Regime, classify_regime


RHS = with_infusion_rates(one_compartment_elimination)
K = 0.1


class RecordingIntegrator:
    """Wraps an integrator and records the (ts, x_r) of every call."""

    def __init__(self, inner=None):
        self.inner = inner or ScipyIntegrator()
        self.calls = []

    def __call__(self, f, y0, t0, ts, theta, x_r, x_i):
        self.calls.append((list(ts), np.array(x_r, dtype=float)))
        return self.inner(f, y0, t0, ts, theta, x_r, x_i)


class NoIntegration:
    def __call__(self, *args):
        raise AssertionError("integrator must not be called")


@pytest.mark.parametrize("rate, ii, expected", [
    (0.0, 24.0, Regime.BOLUS),
    (0.0, 0.0, Regime.BOLUS),
    (5.0, 24.0, Regime.TRUNCATED_INFUSION),
    (5.0, 0.0, Regime.CONTINUOUS_INFUSION),
])
def test_regime_is_selected_by_rate_and_interval(rate, ii, expected):
    assert classify_regime(rate, ii) is expected
    assert DosingRegime(cmt=1, ii=ii, rate=rate, amount=100.0).kind is expected


def test_negative_rate_or_interval_is_rejected():
    with pytest.raises(ValueError):
        classify_regime(-1.0, 24.0)
    with pytest.raises(ValueError):
        DosingRegime(cmt=1, ii=-24.0)
    with pytest.raises(ValueError):
        FixedDoseResidualSystem(RHS, ii=-1.0, cmt=1, integrator=ScipyIntegrator())


def test_zero_amount_bolus_still_takes_the_bolus_branch():
    """With amt = 0 the residual is x - x e^{-k ii}: one integration, nothing added."""
    integrator = RecordingIntegrator()
    system = FixedDoseResidualSystem(RHS, ii=24.0, cmt=1, integrator=integrator)
    x = 3.0

    r = system([x], [K], [0.0, 0.0], [])

    assert len(integrator.calls) == 1
    assert integrator.calls[0][0] == [24.0]
    assert np.isclose(r[0], x - x * math.exp(-K * 24.0), rtol=1e-8)


def test_bolus_without_dosing_compartment_adds_nothing():
    system = FixedDoseResidualSystem(RHS, ii=24.0, cmt=0, integrator=ScipyIntegrator())
    x = 3.0

    # One (zero) rate for the single state, then the amount.
    r = system([x], [K], [0.0, 100.0], [])

    assert np.isclose(r[0], x - x * math.exp(-K * 24.0), rtol=1e-8)


def test_amount_is_stripped_before_integration():
    integrator = RecordingIntegrator()
    system = FixedDoseResidualSystem(RHS, ii=24.0, cmt=1, integrator=integrator)

    system([1.0], [K], [0.0, 7.5, 100.0], [])

    _, x_r = integrator.calls[0]
    assert np.array_equal(x_r, [0.0, 7.5])


def test_continuous_infusion_residual_is_the_raw_right_hand_side():
    """rate > 0 and ii = 0: the residual is f(0, x) and nothing is integrated."""
    system = FixedDoseResidualSystem(RHS, ii=0.0, cmt=1, integrator=NoIntegration())
    x = np.array([12.0])

    r = system(x, [K], [5.0, 100.0], [])

    assert np.allclose(r, RHS(0.0, x, [K], np.array([5.0]), []))
    assert np.isclose(r[0], -K * 12.0 + 5.0)


def test_truncated_infusion_integrates_twice_and_stops_the_rate():
    integrator = RecordingIntegrator()
    system = FixedDoseResidualSystem(RHS, ii=12.0, cmt=1, integrator=integrator)

    system([1.0], [K], [50.0, 100.0], [])

    assert len(integrator.calls) == 2
    (ts_on, x_r_on), (ts_off, x_r_off) = integrator.calls
    assert ts_on == [2.0] and ts_off == [10.0]
    assert np.array_equal(x_r_on, [50.0])
    assert np.array_equal(x_r_off, [0.0])


def test_infeasible_truncated_infusion_raises():
    """amt = 100, rate = 1, ii = 50: the infusion lasts 100 h > ii."""
    system = FixedDoseResidualSystem(RHS, ii=50.0, cmt=1, integrator=NoIntegration())

    with pytest.raises(InfeasibleInfusionError) as excinfo:
        system([0.0], [K], [1.0, 100.0], [])
    assert excinfo.value.context == "Steady State Event"


def test_variable_dose_truncated_infusion_is_unsupported():
    system = VariableDoseResidualSystem(RHS, ii=12.0, cmt=1, integrator=NoIntegration())

    with pytest.raises(UnsupportedConfigurationError):
        system([0.0], [K, 100.0], [50.0], [])


@pytest.mark.parametrize("rate, ii", [(0.0, 24.0), (5.0, 0.0)])
def test_fixed_and_variable_dose_systems_agree(rate, ii):
    """Same amount, once as fixed data and once as the last parameter."""
    rhs = with_infusion_rates(two_compartment_first_order)
    theta = [5.0, 8.0, 20.0, 70.0, 1.2]
    x = np.array([3.0, 40.0, 25.0])
    amt = 100.0

    fixed = FixedDoseResidualSystem(rhs, ii=ii, cmt=1, integrator=ScipyIntegrator())
    variable = VariableDoseResidualSystem(rhs, ii=ii, cmt=1, integrator=ScipyIntegrator())

    r_fixed = fixed(x, theta, [rate, 0.0, 0.0, amt], [])
    r_variable = variable(x, theta + [amt], [rate, 0.0, 0.0], [])

    assert np.allclose(r_fixed, r_variable, rtol=1e-12, atol=1e-12)


@pytest.mark.parametrize("x", [[0.0], [-50.0], [1e6]])
def test_residual_is_finite_away_from_the_root(x):
    system = FixedDoseResidualSystem(RHS, ii=24.0, cmt=1, integrator=DiffraxIntegrator())

    r = system(x, [K], [0.0, 100.0], [])

    assert np.all(np.isfinite(np.asarray(r)))


def test_residual_parameter_jacobian_matches_analytic():
    """r(x, k) = x - (x + A) e^{-k ii}  =>  dr/dk = ii (x + A) e^{-k ii}."""
    system = FixedDoseResidualSystem(RHS, ii=24.0, cmt=1, integrator=DiffraxIntegrator())
    x, amt = 5.0, 100.0

    dr_dk = jax.jacfwd(lambda y: system(jnp.array([x]), y, [0.0, amt], []))(jnp.array([K]))

    expected = 24.0 * (x + amt) * math.exp(-K * 24.0)
    assert np.isclose(float(dr_dk[0, 0]), expected, rtol=1e-6)


def test_variable_dose_residual_is_differentiable_in_the_amount():
    """dr/dA = -e^{-k ii} for a bolus into the only compartment."""
    system = VariableDoseResidualSystem(RHS, ii=24.0, cmt=1, integrator=DiffraxIntegrator())

    grad = jax.grad(lambda y: system(jnp.array([5.0]), y, [0.0], [])[0])(jnp.array([K, 100.0]))

    assert np.isclose(float(grad[1]), -math.exp(-K * 24.0), rtol=1e-6)
