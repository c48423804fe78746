# src/pksteady/errors.py


class InfeasibleInfusionError(ValueError):
    """
    A truncated infusion that cannot be solved with one infusion per cycle.

    context : label of the event being solved (e.g. "Steady State Event")
    amount  : dose amount
    delta   : infusion duration, amount / rate
    ii      : interdose interval
    """

    def __init__(self, context: str, amount, delta, ii, reason: str):
        self.context = context
        self.amount = amount
        self.delta = delta
        self.ii = ii
        super().__init__(f"{context}: {reason} (amt = {amount}, amt / rate = {delta}, ii = {ii}).")


class UnsupportedConfigurationError(NotImplementedError):
    """A known, declared limitation of a residual system."""


class IntegrationError(RuntimeError):
    """The ODE integrator did not reach the requested output time."""


class SteadyStateConvergenceError(RuntimeError):
    """The root solve did not converge to a steady state."""
