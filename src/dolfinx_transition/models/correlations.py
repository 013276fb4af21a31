"""
Auxiliary fields of the Wray-Agarwal transition model.

Every function here is a pure, cell-wise map over numpy arrays: no state,
no mesh, no collaborator. The model evaluates them once per correction step
from the previous step's Rnu / gamma and the current velocity gradient.

Evaluation order matters only through the arguments:
    lambda_theta_l -> f_pg -> re_thetac -> f_onset
"""

import numpy as np

from dolfinx_transition.config import (
    C_K,
    C_PG1,
    C_PG1_LIM,
    C_PG2,
    C_PG2_LIM,
    C_PG3,
    C_SEP,
    C_TU1,
    C_TU2,
    C_TU3,
    RE_THETAC_LIM,
)

SMALL = 1e-16
Y_MIN = 1e-10  # Wall-distance floor


# ── Velocity-gradient invariants ─────────────────────────────────


def strain_rate_magnitude(grad_u: np.ndarray) -> np.ndarray:
    """|S| = sqrt(2 S_ij S_ij) for grad_u of shape (N, d, d)."""
    S_ij = 0.5 * (grad_u + np.swapaxes(grad_u, -1, -2))
    return np.sqrt(2.0 * np.sum(S_ij * S_ij, axis=(-2, -1)))


def vorticity_magnitude(grad_u: np.ndarray) -> np.ndarray:
    """|W| = sqrt(2 W_ij W_ij) for grad_u of shape (N, d, d)."""
    W_ij = 0.5 * (grad_u - np.swapaxes(grad_u, -1, -2))
    return np.sqrt(2.0 * np.sum(W_ij * W_ij, axis=(-2, -1)))


# ── Eddy-viscosity damping ───────────────────────────────────────


def chi(Rnu, nu):
    """chi = Rnu / nu."""
    return np.asarray(Rnu) / nu


def fmi(chi_arr, Cw: float):
    """Near-wall damping f_mu = chi^3 / (chi^3 + Cw^3), in [0, 1)."""
    chi3 = np.maximum(chi_arr, 0.0) ** 3
    return chi3 / (chi3 + Cw**3)


def specific_dissipation(S, Cmu: float, Comega: float):
    """Synthesised omega = Comega * S / sqrt(Cmu), floored."""
    return np.maximum(Comega * np.asarray(S) / np.sqrt(Cmu), SMALL)


# ── Onset correlation ────────────────────────────────────────────


def tu_l(S, Rnu, y, Cmu: float, Comega: float):
    """
    Local turbulence intensity (percent) from k = Rnu*omega.

    Tu_L = min(100 * sqrt(2k/3) / (omega * y), 100)
    """
    omega = specific_dissipation(S, Cmu, Comega)
    k = np.maximum(Rnu, 0.0) * omega
    y_safe = np.maximum(y, Y_MIN)
    return np.minimum(100.0 * np.sqrt(2.0 * k / 3.0) / (omega * y_safe), 100.0)


def wall_normal_velocity_derivative(grad_u: np.ndarray, n: np.ndarray) -> np.ndarray:
    """dV/dy = n_i n_j dU_i/dx_j (derivative of the wall-normal velocity along n)."""
    return np.einsum("ci,cij,cj->c", n, grad_u, n)


def lambda_theta_l(grad_u: np.ndarray, n: np.ndarray, y, nu):
    """Pressure-gradient parameter, clipped to [-1, 1]."""
    dVdy = wall_normal_velocity_derivative(grad_u, n)
    lam = -7.57e-3 * dVdy * np.asarray(y) ** 2 / nu + 0.0128
    return np.clip(lam, -1.0, 1.0)


def f_pg(lam):
    """Pressure-gradient correction of the onset correlation, >= 0."""
    lam = np.asarray(lam, dtype=float)
    favourable = np.minimum(1.0 + C_PG1 * lam, C_PG1_LIM)
    adverse = np.minimum(
        1.0 + C_PG2 * lam + C_PG3 * np.minimum(lam + 0.0681, 0.0), C_PG2_LIM
    )
    return np.maximum(np.where(lam >= 0.0, favourable, adverse), 0.0)


def re_thetac(tu, fpg):
    """Critical momentum-thickness Reynolds number."""
    return C_TU1 + C_TU2 * np.exp(-C_TU3 * np.asarray(tu) * np.asarray(fpg))


def re_v(S, y, nu):
    """Vorticity (strain) Reynolds number y^2 S / nu."""
    return np.asarray(y) ** 2 * np.asarray(S) / nu


def f_onset(re_v_arr, re_thetac_arr, rt):
    """
    Transition onset function, clipped to [0, 1].

    Zero while Re_v < 2.2 Re_thetac in a laminar layer; reaches one at
    Re_v = 4.4 Re_thetac, or earlier once Rt has grown.
    """
    onset1 = np.asarray(re_v_arr) / (2.2 * np.asarray(re_thetac_arr))
    onset2 = np.minimum(onset1, 2.0)
    onset3 = np.maximum(1.0 - (np.asarray(rt) / 3.5) ** 3, 0.0)
    return np.clip(onset2 - onset3, 0.0, 1.0)


def f_turb(rt):
    """Switches gamma destruction off inside turbulent regions."""
    return np.exp(-((np.asarray(rt) / 2.0) ** 4))


# ── Blending and limiter ─────────────────────────────────────────


def f1(S, W, Rnu, y, nu, Cmu: float, Comega: float):
    """
    k-omega / k-epsilon blending factor, 1 near walls and 0 far away.

    eta = max(S, W), omega = Comega * eta / sqrt(Cmu), k = Rnu * omega
    arg1 = min(max(sqrt(k) / (Cmu omega y), 500 nu / (y^2 omega)), 10)
    """
    eta = np.maximum(S, W)
    omega = specific_dissipation(eta, Cmu, Comega)
    k = np.maximum(Rnu, 0.0) * omega
    y_safe = np.maximum(y, Y_MIN)

    term1 = np.sqrt(k) / (Cmu * omega * y_safe)
    term2 = 500.0 * nu / (y_safe**2 * omega)
    arg1 = np.minimum(np.maximum(term1, term2), 10.0)
    return np.tanh(arg1**4)


def prnu_lim(re_v_arr, W, gamma, nut, nu):
    """
    Additional Rnu production for separation-induced transition.

    Active only for 0.2 < gamma < 1 and Re_v above 2.2 * Re_thetac,lim.
    """
    gamma = np.asarray(gamma)
    f_on_lim = np.minimum(
        np.maximum(np.asarray(re_v_arr) / (2.2 * RE_THETAC_LIM) - 1.0, 0.0), 3.0
    )
    return (
        5.0
        * C_K
        * np.maximum(gamma - 0.2, 0.0)
        * (1.0 - gamma)
        * f_on_lim
        * np.maximum(3.0 * C_SEP * nu - np.asarray(nut), 0.0)
        * np.asarray(W)
    )
