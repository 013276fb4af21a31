"""
Wray-Agarwal one-equation model with intermittency transition (WA-gamma).

References:
    Wray, T.J. and Agarwal, R.K. "Low-Reynolds-number one-equation turbulence
    model based on k-omega closure." AIAA Journal, 53(8), 2015.
    Menter, F.R., Smirnov, P.E., Liu, T., Avancha, R. "A one-equation local
    correlation-based transition model." Flow Turbulence and Combustion, 95, 2015.

Transported variables:
    Rnu   ~ k/omega, eddy-viscosity-like, clipped to >= 0
    gamma   intermittency, nominally in [0, 1] (not clamped)

Per correction step: auxiliary fields from the previous Rnu/gamma, then the
gamma equation, then the Rnu equation with the new gamma, then nut. New
values are committed only when both solves succeed.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import numpy as np

from dolfinx_transition.config import (
    COEFFS_SECTION,
    CoefficientError,
    TransitionCoeffs,
    coeffs_from_dict,
    coeffs_section,
)
from dolfinx_transition.models import correlations as corr
from dolfinx_transition.models.base import TurbulenceClosure, readonly_view
from dolfinx_transition.operators import FieldOperators, SolveReport, TransportTerms
from dolfinx_transition.utils import fmt_pair_sci, fmt_sci, load_json_config


@dataclass(frozen=True)
class CorrectionReport:
    """What happened during one correct() call."""

    gamma: SolveReport
    Rnu: SolveReport
    n_clipped: int  # DOFs where the solved Rnu was negative
    n_gamma_outside: int  # DOFs with gamma outside [0, 1]


class WrayAgarwalTransition(TurbulenceClosure):
    """WA-2017m eddy-viscosity equation gated by a gamma transition equation."""

    type_name = "WrayAgarwalTransition"

    def __init__(
        self,
        ops: FieldOperators,
        transport,
        fields: Mapping[str, np.ndarray],
        properties: Mapping[str, Any] | str | Path | None = None,
        alpha=1.0,
        rho=1.0,
        properties_name: str = "turbulenceProperties",
        verbose: bool = False,
    ):
        missing = sorted({"Rnu", "gamma"} - set(fields))
        if missing:
            raise ValueError(f"{self.type_name} needs initial fields {missing}")

        self._ops = ops
        self._transport = transport
        self._properties = properties
        self.properties_name = properties_name
        self.verbose = verbose

        self._Rnu = np.array(fields["Rnu"], dtype=float)
        self._gamma = np.array(fields["gamma"], dtype=float)
        if self._Rnu.ndim != 1 or self._gamma.shape != self._Rnu.shape:
            raise ValueError(
                f"Rnu and gamma must be 1-D arrays of equal length, "
                f"got {self._Rnu.shape} and {self._gamma.shape}"
            )
        size = self._Rnu.size
        self._alpha = np.broadcast_to(np.asarray(alpha, dtype=float), (size,)).copy()
        self._rho = np.broadcast_to(np.asarray(rho, dtype=float), (size,)).copy()

        # Malformed coefficients at construction are fatal
        self._coeffs = coeffs_from_dict(self._coeff_dict())

        # Flow snapshot, refreshed at the start of every correct()
        self._grad_u = None
        self._y = None
        self._n = None
        self._S = np.zeros(size)
        self._W = np.zeros(size)

        self._nut = np.zeros(size)
        self.correct_nut()

    # ── Metadata ──────────────────────────────────────────────────

    @property
    def model_name(self) -> str:
        return "wrayagarwaltransition"

    @property
    def display_name(self) -> str:
        return "Wray-Agarwal + gamma transition"

    # ── Coefficients ──────────────────────────────────────────────

    @property
    def coeffs(self) -> TransitionCoeffs:
        return self._coeffs

    def _coeff_dict(self) -> dict[str, Any]:
        props = self._properties
        if isinstance(props, (str, Path)):
            props = load_json_config(props)
        return coeffs_section(props)

    def read(self) -> bool:
        """Re-parse the coefficient dictionary.

        On failure the previous coefficients stay in effect and False is
        returned.
        """
        try:
            coeffs = coeffs_from_dict(self._coeff_dict())
        except (CoefficientError, OSError, ValueError) as e:
            print(
                f"WARNING: {self.properties_name}: could not read {COEFFS_SECTION}: {e}",
                flush=True,
            )
            return False
        self._coeffs = coeffs
        return True

    # ── State ─────────────────────────────────────────────────────

    @property
    def Rnu(self) -> np.ndarray:
        return readonly_view(self._Rnu)

    @property
    def gamma(self) -> np.ndarray:
        return readonly_view(self._gamma)

    @property
    def S(self) -> np.ndarray:
        """Strain-rate magnitude from the last flow snapshot."""
        return readonly_view(self._S)

    @property
    def W(self) -> np.ndarray:
        """Vorticity magnitude from the last flow snapshot."""
        return readonly_view(self._W)

    def _nu(self) -> np.ndarray:
        return np.broadcast_to(
            np.asarray(self._transport.nu(), dtype=float), self._Rnu.shape
        )

    def update_flow_state(self, y: np.ndarray, n: np.ndarray) -> None:
        """Capture grad(u), S, W and the borrowed wall distance / normal."""
        size = self._Rnu.size
        y = np.asarray(y, dtype=float)
        n = np.asarray(n, dtype=float)
        if y.shape != (size,):
            raise ValueError(f"Wall distance has shape {y.shape}, expected ({size},)")
        if n.ndim != 2 or n.shape[0] != size:
            raise ValueError(f"Wall normal has shape {n.shape}, expected ({size}, d)")

        grad_u = np.asarray(self._ops.velocity_gradient(), dtype=float)
        if grad_u.shape != (size, n.shape[1], n.shape[1]):
            raise ValueError(
                f"Velocity gradient has shape {grad_u.shape}, "
                f"expected ({size}, {n.shape[1]}, {n.shape[1]})"
            )

        self._y = readonly_view(y)
        self._n = readonly_view(n)
        self._grad_u = grad_u
        self._S = corr.strain_rate_magnitude(grad_u)
        self._W = corr.vorticity_magnitude(grad_u)

    def _require_snapshot(self) -> None:
        if self._y is None:
            raise RuntimeError("No flow snapshot: call update_flow_state(y, n) or correct(y, n) first")

    # ── Auxiliary fields ──────────────────────────────────────────

    def chi(self) -> np.ndarray:
        return corr.chi(self._Rnu, self._nu())

    def fmi(self, chi: np.ndarray) -> np.ndarray:
        return corr.fmi(chi, self._coeffs.Cw)

    def tu_l(self, S: np.ndarray) -> np.ndarray:
        self._require_snapshot()
        c = self._coeffs
        return corr.tu_l(S, self._Rnu, self._y, c.Cmu, c.Comega)

    def lambda_theta_l(self) -> np.ndarray:
        self._require_snapshot()
        return corr.lambda_theta_l(self._grad_u, self._n, self._y, self._nu())

    def f_pg(self) -> np.ndarray:
        return corr.f_pg(self.lambda_theta_l())

    def re_thetac(self, S: np.ndarray) -> np.ndarray:
        return corr.re_thetac(self.tu_l(S), self.f_pg())

    def re_v(self, S: np.ndarray) -> np.ndarray:
        self._require_snapshot()
        return corr.re_v(S, self._y, self._nu())

    def f_onset(self, Re_v: np.ndarray, S: np.ndarray) -> np.ndarray:
        return corr.f_onset(Re_v, self.re_thetac(S), self.rt())

    def f1(self, S: np.ndarray, W: np.ndarray) -> np.ndarray:
        self._require_snapshot()
        c = self._coeffs
        return corr.f1(S, W, self._Rnu, self._y, self._nu(), c.Cmu, c.Comega)

    def prnu_lim(self, Re_v: np.ndarray, W: np.ndarray) -> np.ndarray:
        return corr.prnu_lim(Re_v, W, self._gamma, self._nut, self._nu())

    def gamma_production(self, F_onset: np.ndarray, S: np.ndarray) -> np.ndarray:
        """P_gamma = Flength * S * F_onset * gamma * (1 - gamma)."""
        g = self._gamma
        return self._coeffs.Flength * S * F_onset * g * (1.0 - g)

    # ── Transport equations ───────────────────────────────────────

    def _gamma_terms(self, S, W, F_onset, F_turb) -> TransportTerms:
        c = self._coeffs
        w = self._alpha * self._rho
        g = self._gamma

        prod = c.Flength * S * F_onset
        dest = c.Ca2 * W * F_turb
        # P - E = (prod + dest)*g - (prod + Ce2*dest)*g^2; the g^2 part is
        # implicit where its coefficient is positive.
        q = (prod + c.Ce2 * dest) * g
        return TransportTerms(
            name="gamma",
            weight=w,
            diffusivity=w * self.nu_eff_gamma(),
            reaction=w * np.maximum(q, 0.0),
            source=w * ((prod + dest) * g - np.minimum(q, 0.0) * g),
        )

    def _Rnu_terms(self, S, W, F1, Re_v, gamma_new) -> TransportTerms:
        c = self._coeffs
        w = self._alpha * self._rho
        R = np.maximum(self._Rnu, 0.0)

        grad_R = np.asarray(self._ops.grad(self._Rnu), dtype=float)
        grad_S = np.asarray(self._ops.grad(S), dtype=float)
        S_safe = np.maximum(S, corr.SMALL)

        C1 = F1 * (c.C1kOm - c.C1kEps) + c.C1kEps
        production = gamma_new * C1 * R * S + corr.prnu_lim(
            Re_v, W, gamma_new, self._nut, self._nu()
        )

        # F1 * C2kOm * (R/S) * grad(R).grad(S), written as cross * R
        cross = F1 * c.C2kOm * np.sum(grad_R * grad_S, axis=-1) / S_safe

        destruction = (1.0 - F1) * c.C2kEps * np.minimum(
            R**2 * np.sum(grad_S * grad_S, axis=-1) / S_safe**2,
            c.Cm * np.sum(grad_R * grad_R, axis=-1),
        )

        return TransportTerms(
            name="Rnu",
            weight=w,
            diffusivity=w * self.nu_eff_r(F1),
            reaction=w * (destruction / np.maximum(R, corr.SMALL) + np.maximum(-cross, 0.0)),
            source=w * (production + np.maximum(cross, 0.0) * R),
        )

    def correct(self, y: np.ndarray, n: np.ndarray) -> CorrectionReport:
        """Solve gamma, then Rnu, then update nut.

        LinearSolveError from the operators propagates unchanged and leaves
        Rnu, gamma and nut as they were.
        """
        # 1. Flow snapshot
        self.update_flow_state(y, n)
        S, W = self._S, self._W

        # 2. Auxiliary fields from the previous step
        F1 = self.f1(S, W)
        Re_v = self.re_v(S)
        F_onset = self.f_onset(Re_v, S)
        F_turb = corr.f_turb(self.rt())

        # 3. Intermittency
        gamma_terms = self._gamma_terms(S, W, F_onset, F_turb)
        gamma_terms.check(self._gamma.size)
        gamma_new, gamma_report = self._ops.solve_transport(gamma_terms, self._gamma)
        gamma_new = np.array(gamma_new, dtype=float)

        # 4. Rnu, consuming the new gamma
        Rnu_terms = self._Rnu_terms(S, W, F1, Re_v, gamma_new)
        Rnu_terms.check(self._Rnu.size)
        Rnu_new, Rnu_report = self._ops.solve_transport(Rnu_terms, self._Rnu)
        Rnu_new = np.array(Rnu_new, dtype=float)

        # 5. Realizability
        negative = Rnu_new < 0.0
        n_clipped = int(np.count_nonzero(negative))
        Rnu_new[negative] = 0.0

        # 6. Commit and rebuild nut
        self._gamma = gamma_new
        self._Rnu = Rnu_new
        self.correct_nut(self.fmi(self.chi()))

        n_outside = int(np.count_nonzero((gamma_new < 0.0) | (gamma_new > 1.0)))
        report = CorrectionReport(
            gamma=gamma_report,
            Rnu=Rnu_report,
            n_clipped=n_clipped,
            n_gamma_outside=n_outside,
        )
        if self.verbose and getattr(self._ops, "rank", 0) == 0:
            self._print_step(report)
        return report

    def _print_step(self, report: CorrectionReport) -> None:
        g, R = self._gamma, self._Rnu
        rt_max = float(np.max(self.rt())) if self._nut.size else 0.0
        print(
            f"  {self.display_name}: "
            f"gamma[min,max]={fmt_pair_sci(float(g.min()), float(g.max()))} "
            f"Rnu[min,max]={fmt_pair_sci(float(R.min()), float(R.max()))} "
            f"nu_t/nu max={fmt_sci(rt_max)} "
            f"its={report.gamma.iterations}/{report.Rnu.iterations} "
            f"clipped={report.n_clipped}",
            flush=True,
        )
        if report.n_gamma_outside:
            print(
                f"  WARNING: gamma outside [0, 1] at {report.n_gamma_outside} DOFs",
                flush=True,
            )

    # ── Eddy viscosity ────────────────────────────────────────────

    def correct_nut(self, fmi: np.ndarray | None = None) -> None:
        """nut = Fmi * Rnu; pass Fmi to skip recomputing it from chi."""
        if fmi is None:
            fmi = self.fmi(self.chi())
        self._nut = np.asarray(fmi, dtype=float) * self._Rnu

    def nut(self) -> np.ndarray:
        return readonly_view(self._nut)

    def nu_eff_gamma(self) -> np.ndarray:
        """Effective diffusivity of the gamma equation: nu + nut/sigmaGamm."""
        return self._nu() + self._nut / self._coeffs.sigmaGamm

    def nu_eff_r(self, F1: np.ndarray) -> np.ndarray:
        """Effective diffusivity of the Rnu equation: sigma_R * Rnu + nu."""
        c = self._coeffs
        sigma_R = F1 * (c.sigmakOm - c.sigmakEps) + c.sigmakEps
        return sigma_R * self._Rnu + self._nu()

    def rt(self) -> np.ndarray:
        """Turbulence Reynolds number nut/nu."""
        return self._nut / self._nu()

    def _omega(self) -> np.ndarray:
        c = self._coeffs
        return corr.specific_dissipation(self._S, c.Cmu, c.Comega)

    def k(self) -> np.ndarray:
        """k = nut * omega with omega synthesised from the strain rate."""
        return self._nut * self._omega()

    def epsilon(self) -> np.ndarray:
        """epsilon = Cmu * k * omega."""
        return self._coeffs.Cmu * self.k() * self._omega()
