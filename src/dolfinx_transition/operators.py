"""
Interface between a turbulence closure and the host discretization.

The closure never builds a matrix. It describes each scalar equation as a
TransportTerms record,

    d(w phi)/dt + div(w u phi) - div(D grad(phi)) + r phi = s

and hands it to a FieldOperators implementation, which owns the mesh, the
velocity and flux fields, the time step, boundary conditions and the linear
solver. dolfinx_transition.fem provides the DOLFINx implementation.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np


class LinearSolveError(RuntimeError):
    """A transport solve failed to converge (or produced non-finite values)."""

    def __init__(self, name: str, reason: str | int, iterations: int = 0):
        self.name = name
        self.reason = reason
        self.iterations = iterations
        super().__init__(
            f"{name}-equation solve failed after {iterations} iterations (reason: {reason})"
        )


@dataclass
class TransportTerms:
    """Per-DOF coefficient arrays of one implicit scalar transport equation.

    weight: w = alpha*rho multiplying the time derivative and convection
    diffusivity: D (already weighted)
    reaction: r >= 0, implicit linear sink coefficient
    source: s, explicit source
    """

    name: str
    weight: np.ndarray
    diffusivity: np.ndarray
    reaction: np.ndarray
    source: np.ndarray

    def check(self, size: int) -> None:
        for label in ("weight", "diffusivity", "reaction", "source"):
            arr = getattr(self, label)
            if arr.shape != (size,):
                raise ValueError(
                    f"{self.name}: {label} has shape {arr.shape}, expected ({size},)"
                )
        if np.any(self.reaction < 0.0):
            raise ValueError(f"{self.name}: implicit reaction coefficient must be >= 0")


@dataclass(frozen=True)
class SolveReport:
    """Outcome of one converged transport solve."""

    name: str
    iterations: int
    residual_norm: float


@runtime_checkable
class FieldOperators(Protocol):
    """Capabilities the host framework lends to a turbulence closure."""

    def velocity_gradient(self) -> np.ndarray:
        """Current grad(u) at the scalar DOFs, shape (N, d, d), [c, i, j] = du_i/dx_j."""
        ...

    def grad(self, values: np.ndarray) -> np.ndarray:
        """Gradient of a scalar DOF array, shape (N, d)."""
        ...

    def solve_transport(
        self, terms: TransportTerms, current: np.ndarray
    ) -> tuple[np.ndarray, SolveReport]:
        """Solve the implicit equation described by ``terms``.

        ``current`` is the value at the old time level; it must not be
        modified. Returns the new DOF array and a report, or raises
        LinearSolveError.
        """
        ...
