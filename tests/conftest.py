"""
Shared fixtures: a cell-local FieldOperators for tests without DOLFINx.

Every DOF is its own control volume, so convection and diffusion drop out
and the implicit transport solve reduces to a backward-Euler update

    w (phi - phi_n)/dt + r phi = s  ->  phi = (w phi_n/dt + s) / (w/dt + r)
"""

import numpy as np
import pytest

from dolfinx_transition.models import ConstantViscosity
from dolfinx_transition.operators import LinearSolveError, SolveReport


class CellLocalOperators:
    def __init__(self, grad_u, dt=1.0, fail_on=None, shift=None, override=None):
        self.grad_u = np.asarray(grad_u, dtype=float)
        self.dt = dt
        self.fail_on = fail_on
        self.shift = {} if shift is None else dict(shift)
        self.override = {} if override is None else dict(override)
        self.solved = []
        self.terms = {}

    def velocity_gradient(self):
        return self.grad_u.copy()

    def grad(self, values):
        return np.zeros((len(values), self.grad_u.shape[1]))

    def solve_transport(self, terms, current):
        self.solved.append(terms.name)
        self.terms[terms.name] = terms
        if terms.name == self.fail_on:
            raise LinearSolveError(terms.name, -3, 1000)
        if terms.name in self.override:
            return np.array(self.override[terms.name], dtype=float), SolveReport(terms.name, 0, 0.0)

        w_dt = terms.weight / self.dt
        new = (w_dt * current + terms.source) / (w_dt + terms.reaction)
        new = new + self.shift.get(terms.name, 0.0)
        return new, SolveReport(terms.name, 1, 0.0)


def shear_gradient(n_dofs, dUdy):
    """2-D grad(u) of a pure shear u = (dUdy * y, 0)."""
    grad_u = np.zeros((n_dofs, 2, 2))
    grad_u[:, 0, 1] = dUdy
    return grad_u


def wall_normal(n_dofs):
    return np.tile([0.0, 1.0], (n_dofs, 1))


@pytest.fixture
def make_model():
    """Factory for a WrayAgarwalTransition on cell-local operators."""
    from dolfinx_transition.models import WrayAgarwalTransition

    def _make(n_dofs=4, dUdy=0.0, Rnu=1e-6, gamma=1.0, nu=1.5e-5, properties=None, **ops_kwargs):
        ops = CellLocalOperators(shear_gradient(n_dofs, dUdy), **ops_kwargs)
        fields = {
            "Rnu": np.broadcast_to(np.asarray(Rnu, dtype=float), (n_dofs,)).copy(),
            "gamma": np.broadcast_to(np.asarray(gamma, dtype=float), (n_dofs,)).copy(),
        }
        model = WrayAgarwalTransition(ops, ConstantViscosity(nu), fields, properties=properties)
        return model, ops

    return _make
