"""
Configuration dataclasses and model constants for dolfinx-transition.

Contains:
- Wray-Agarwal transition model default coefficients
- Menter (2015) local-correlation transition constants
- TransitionCoeffs container and merge/validation of user overrides
- ProfileParams for the profile probe CLI
"""

import math
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping


# =============================================================================
# Wray-Agarwal constants
# Reference: Wray, T.J. and Agarwal, R.K. "Low-Reynolds-number one-equation
#            turbulence model based on k-omega closure." AIAA Journal, 53(8), 2015.
# =============================================================================

C1_K_OM = 0.0829  # Production, k-omega branch
C1_K_EPS = 0.1127  # Production, k-epsilon branch
SIGMA_K_OM = 0.72  # Diffusion, k-omega branch
SIGMA_K_EPS = 1.0  # Diffusion, k-epsilon branch
KAPPA = 0.41  # von Karman constant
C_W = 8.54  # Near-wall damping f_mu
C_MU = 0.09
C_M = 8.0  # Destruction limiter
C_OMEGA = 1.0  # omega = C_omega * S / sqrt(C_mu)

# =============================================================================
# Intermittency constants
# Reference: Menter, F.R., Smirnov, P.E., Liu, T., Avancha, R. "A one-equation
#            local correlation-based transition model." Flow Turbulence and
#            Combustion, 95, 2015.
# =============================================================================

F_LENGTH = 100.0
C_E2 = 50.0
C_A2 = 0.06
SIGMA_GAMMA = 1.0

# Re_thetac correlation
C_TU1 = 100.0
C_TU2 = 1000.0
C_TU3 = 1.0

# Pressure-gradient correction F_PG
C_PG1 = 14.68
C_PG1_LIM = 1.5
C_PG2 = -7.34
C_PG2_LIM = 3.0
C_PG3 = 0.0

# Production limiter
C_K = 1.0
C_SEP = 1.0
RE_THETAC_LIM = 1100.0

COEFFS_SECTION = "WrayAgarwalTransitionCoeffs"

# Names accepted in a coefficient dictionary in place of the field name
COEFF_ALIASES = {"sigmakW": "sigmakOm"}


class CoefficientError(ValueError):
    """Malformed or type-mismatched entry in a coefficient dictionary."""


@dataclass(frozen=True)
class TransitionCoeffs:
    """Immutable model coefficients (WrayAgarwalTransitionCoeffs).

    C2kOm / C2kEps are derived from the other constants unless set
    explicitly: C2 = C1/kappa^2 + sigma.
    """

    Flength: float = F_LENGTH
    C1kOm: float = C1_K_OM
    C1kEps: float = C1_K_EPS
    sigmakOm: float = SIGMA_K_OM
    sigmakEps: float = SIGMA_K_EPS
    kappa: float = KAPPA
    C2kOm: float = C1_K_OM / KAPPA**2 + SIGMA_K_OM
    C2kEps: float = C1_K_EPS / KAPPA**2 + SIGMA_K_EPS
    Cmu: float = C_MU
    Comega: float = C_OMEGA
    Cm: float = C_M
    Ce2: float = C_E2
    Ca2: float = C_A2
    sigmaGamm: float = SIGMA_GAMMA
    Cw: float = C_W

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


COEFF_NAMES = tuple(f.name for f in fields(TransitionCoeffs))

# Square roots, divisors and cubed denominators: must stay > 0
POSITIVE_COEFFS = ("Cmu", "Comega", "kappa", "sigmaGamm", "sigmakOm", "sigmakEps", "Cw", "Cm")


def _to_float(name: str, value: Any) -> float:
    # bool is an int subclass; "true" is never a valid coefficient
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CoefficientError(
            f"Coefficient '{name}' must be a number, got {type(value).__name__}: {value!r}"
        )
    value = float(value)
    if not math.isfinite(value):
        raise CoefficientError(f"Coefficient '{name}' must be finite, got {value}")
    return value


def coeffs_from_dict(
    data: Mapping[str, Any] | None, base: TransitionCoeffs | None = None
) -> TransitionCoeffs:
    """
    Merge coefficient overrides onto defaults (or onto ``base``).

    Unknown keys are ignored, missing keys keep their current value and
    malformed values raise CoefficientError. Keys starting with "_" are
    treated as comments.
    """
    base = TransitionCoeffs() if base is None else base
    data = {} if data is None else dict(data)

    overrides: dict[str, float] = {}
    for key, value in data.items():
        if str(key).startswith("_"):
            continue
        name = COEFF_ALIASES.get(key, key)
        if name not in COEFF_NAMES:
            continue
        overrides[name] = _to_float(key, value)

    merged = replace(base, **overrides)
    for name in POSITIVE_COEFFS:
        if not getattr(merged, name) > 0.0:
            raise CoefficientError(
                f"Coefficient '{name}' must be positive, got {getattr(merged, name)}"
            )

    # Derived C2 constants follow C1/kappa/sigma unless set explicitly,
    # either here or in base
    base_C2 = _derived_c2(base)
    new_C2 = _derived_c2(merged)
    derived = {}
    for name in ("C2kOm", "C2kEps"):
        explicit_in_base = not math.isclose(getattr(base, name), base_C2[name], rel_tol=1e-12)
        if name not in overrides and not explicit_in_base:
            derived[name] = new_C2[name]
    return replace(merged, **derived)


def _derived_c2(c: TransitionCoeffs) -> dict[str, float]:
    if not c.kappa > 0.0:
        return {"C2kOm": math.nan, "C2kEps": math.nan}
    return {
        "C2kOm": c.C1kOm / c.kappa**2 + c.sigmakOm,
        "C2kEps": c.C1kEps / c.kappa**2 + c.sigmakEps,
    }


def coeffs_section(properties: Mapping[str, Any] | None) -> dict[str, Any]:
    """Extract the coefficient sub-dictionary from a properties mapping.

    A mapping without a WrayAgarwalTransitionCoeffs section is taken to be
    the coefficient dictionary itself.
    """
    if properties is None:
        return {}
    if not isinstance(properties, Mapping):
        raise CoefficientError(
            f"Coefficient properties must be a dictionary, got {type(properties).__name__}"
        )
    if COEFFS_SECTION in properties:
        section = properties[COEFFS_SECTION]
        if not isinstance(section, Mapping):
            raise CoefficientError(
                f"'{COEFFS_SECTION}' must be a dictionary, got {type(section).__name__}"
            )
        return dict(section)
    return dict(properties)


# =============================================================================
# Profile probe configuration
# =============================================================================


@dataclass(frozen=True)
class ProfileParams:
    """
    Synthetic boundary-layer profile for the profile probe.

    Blasius-like tanh velocity profile over a wall-normal line, used to
    evaluate every auxiliary field of the transition model at once.

    nu: Kinematic viscosity
    U_inf: Free-stream velocity
    delta: Boundary-layer thickness
    y_max: Extent of the wall-normal line
    N: Number of points
    Rnu: Uniform Rnu value on the line
    gamma: Uniform intermittency on the line
    dpdx_factor: Pressure-gradient proxy, dV/dy = dpdx_factor * U_inf / delta
    """

    nu: float
    U_inf: float
    delta: float
    y_max: float
    N: int
    Rnu: float = 0.0
    gamma: float = 1.0
    dpdx_factor: float = 0.0
    y_first: float = 1e-6
