# src/pksteady/models/two_compartment.py
from .._scalar import array_namespace


def two_compartment_first_order(t, x, theta, x_r, x_i):
    """
    Two-compartment model with first-order absorption.
    Three states:
      x[0] = drug in absorption depot (mg)
      x[1] = drug in central compartment (mg)
      x[2] = drug in peripheral compartment (mg)

    Parameters (theta):
      CL  : clearance (L/h)
      Q   : intercompartmental clearance (L/h)
      V1  : central volume (L)
      V2  : peripheral volume (L)
      ka  : absorption rate constant (1/h)
    """
    xp = array_namespace(x, theta)
    CL, Q, V1, V2, ka = theta[0], theta[1], theta[2], theta[3], theta[4]
    k10 = CL / V1
    k12 = Q / V1
    k21 = Q / V2

    return xp.stack([
        -ka * x[0],
        ka * x[0] - (k10 + k12) * x[1] + k21 * x[2],
        k12 * x[1] - k21 * x[2],
    ])
