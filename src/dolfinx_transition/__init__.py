"""
dolfinx-transition: Wray-Agarwal transition model for DOLFINx.

A one-equation eddy-viscosity closure (Rnu ~ k/omega) with an intermittency
equation that keeps the eddy viscosity off until local-correlation onset
criteria are met. The closure forms its equations; a FieldOperators
collaborator (dolfinx_transition.fem for DOLFINx) discretizes and solves them.

Requirements:
    - numpy, matplotlib
    - DOLFINx 0.10.0+ for dolfinx_transition.fem and `dolfinx-transition run`

Example:
    from dolfinx_transition import ConstantViscosity, create_model
    from dolfinx_transition.fem import DolfinxOperators, wall_fields
    ops = DolfinxOperators(domain, u, dt=1e-3)
    y, n = wall_fields(ops, wall_facets)
    model = create_model("WrayAgarwalTransition", ops, ConstantViscosity(1e-5),
                         {"Rnu": Rnu0, "gamma": gamma0})
    model.correct(y, n)
"""

__version__ = "0.1.0"

from dolfinx_transition.config import CoefficientError, TransitionCoeffs, coeffs_from_dict
from dolfinx_transition.models import (
    ConstantViscosity,
    CorrectionReport,
    TurbulenceClosure,
    WrayAgarwalTransition,
    create_model,
)
from dolfinx_transition.operators import (
    FieldOperators,
    LinearSolveError,
    SolveReport,
    TransportTerms,
)

__all__ = [
    "__version__",
    "CoefficientError",
    "ConstantViscosity",
    "CorrectionReport",
    "FieldOperators",
    "LinearSolveError",
    "SolveReport",
    "TransitionCoeffs",
    "TransportTerms",
    "TurbulenceClosure",
    "WrayAgarwalTransition",
    "coeffs_from_dict",
    "create_model",
]
