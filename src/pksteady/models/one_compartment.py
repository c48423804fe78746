# src/pksteady/models/one_compartment.py
from .._scalar import array_namespace


def one_compartment_elimination(t, x, theta, x_r, x_i):
    """
    One compartment with linear elimination, dx/dt = -k * x.

    x     : [A] drug amount (mg)
    theta : [k] elimination rate constant (1/h)
    """
    xp = array_namespace(x, theta)
    x = xp.asarray(x)
    return -theta[0] * x


def one_compartment_first_order(t, x, theta, x_r, x_i):
    """
    One-compartment model with first-order absorption and elimination.
    Two states:
      x[0] = drug in absorption depot (mg)
      x[1] = drug in central compartment (mg)

    Parameters (theta):
      ka  : absorption rate constant (1/h)
      CL  : clearance (L/h)
      V   : volume of distribution (L)

    Infusions are not handled here; wrap with `with_infusion_rates`.
    """
    xp = array_namespace(x, theta)
    ka, CL, V = theta[0], theta[1], theta[2]
    A_gut, A_c = x[0], x[1]

    dA_gut_dt = -ka * A_gut
    dA_c_dt   = ka * A_gut - (CL / V) * A_c

    return xp.stack([dA_gut_dt, dA_c_dt])
