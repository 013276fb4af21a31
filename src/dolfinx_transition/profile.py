"""
Wall-normal profile probe.

Builds a synthetic boundary-layer velocity gradient on a line normal to a
flat wall and evaluates every auxiliary field of the transition model on it,
without a mesh or a flow solver. Used by `dolfinx-transition profile` to
inspect where the onset, blending and damping functions switch.
"""

import numpy as np

from dolfinx_transition.config import ProfileParams, TransitionCoeffs
from dolfinx_transition.models import correlations as corr

PROFILE_COLUMNS = [
    "y",
    "S",
    "W",
    "chi",
    "Fmi",
    "F1",
    "Tu_l",
    "lambdaThetaL",
    "F_PG",
    "Re_thetac",
    "Re_v",
    "F_onset",
    "F_turb",
    "PRnu_lim",
    "nut_over_nu",
]


def synthetic_velocity_gradient(params: ProfileParams, y: np.ndarray) -> np.ndarray:
    """
    grad(u) for u = U_inf * tanh(y / delta) with a uniform wall-normal strain.

    [c, i, j] = du_i/dx_j in 2-D; continuity sets du/dx = -dv/dy.
    """
    dUdy = params.U_inf / params.delta / np.cosh(y / params.delta) ** 2
    dVdy = params.dpdx_factor * params.U_inf / params.delta

    grad_u = np.zeros((y.size, 2, 2))
    grad_u[:, 0, 0] = -dVdy
    grad_u[:, 0, 1] = dUdy
    grad_u[:, 1, 1] = dVdy
    return grad_u


def evaluate_profile(params: ProfileParams, coeffs: TransitionCoeffs) -> dict[str, np.ndarray]:
    """Evaluate all auxiliary fields along the wall-normal line."""
    if params.N < 2:
        raise ValueError(f"profile.N must be >= 2, got {params.N}")
    if not 0.0 < params.y_first < params.y_max:
        raise ValueError(
            f"profile requires 0 < y_first < y_max, got y_first={params.y_first}, y_max={params.y_max}"
        )

    nu = params.nu
    y = np.geomspace(params.y_first, params.y_max, params.N)
    n = np.tile([0.0, 1.0], (params.N, 1))
    Rnu = np.full(params.N, params.Rnu)
    gamma = np.full(params.N, params.gamma)

    grad_u = synthetic_velocity_gradient(params, y)
    S = corr.strain_rate_magnitude(grad_u)
    W = corr.vorticity_magnitude(grad_u)

    chi = corr.chi(Rnu, nu)
    Fmi = corr.fmi(chi, coeffs.Cw)
    nut = Fmi * Rnu
    Rt = nut / nu

    lam = corr.lambda_theta_l(grad_u, n, y, nu)
    fpg = corr.f_pg(lam)
    tu = corr.tu_l(S, Rnu, y, coeffs.Cmu, coeffs.Comega)
    re_thc = corr.re_thetac(tu, fpg)
    rev = corr.re_v(S, y, nu)

    return {
        "y": y,
        "S": S,
        "W": W,
        "chi": chi,
        "Fmi": Fmi,
        "F1": corr.f1(S, W, Rnu, y, nu, coeffs.Cmu, coeffs.Comega),
        "Tu_l": tu,
        "lambdaThetaL": lam,
        "F_PG": fpg,
        "Re_thetac": re_thc,
        "Re_v": rev,
        "F_onset": corr.f_onset(rev, re_thc, Rt),
        "F_turb": corr.f_turb(Rt),
        "PRnu_lim": corr.prnu_lim(rev, W, gamma, nut, nu),
        "nut_over_nu": Rt,
    }
