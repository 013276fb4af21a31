"""
Abstract base class for turbulence closures.

A closure exposes a small capability set:
- correct(): advance its own transported fields by one step
- read(): reload its coefficients
- nut(), k(), epsilon(): fields consumed by the momentum equation and by
  two-equation-model style post-processing

Closures get their discretization from a FieldOperators collaborator and
their molecular viscosity from a transport object; they do not inherit
solver behaviour.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ConstantViscosity:
    """Newtonian transport with a uniform kinematic viscosity."""

    nu_value: float

    def __post_init__(self):
        if not self.nu_value > 0.0:
            raise ValueError(f"Kinematic viscosity must be positive, got {self.nu_value}")

    def nu(self) -> float:
        return self.nu_value


class TurbulenceClosure(ABC):
    """Interface every registered closure implements."""

    # ── Metadata ──────────────────────────────────────────────────

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Registry key, e.g. 'wrayagarwaltransition'."""

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable label."""

    # ── Lifecycle ─────────────────────────────────────────────────

    @abstractmethod
    def correct(self, y: np.ndarray, n: np.ndarray):
        """Advance the closure one step.

        Args:
            y: Wall distance at each DOF (borrowed, read-only)
            n: Unit wall-normal at each DOF, shape (N, d) (borrowed, read-only)
        """

    @abstractmethod
    def read(self) -> bool:
        """Reload coefficients. False leaves the previous values in effect."""

    # ── Fields ────────────────────────────────────────────────────

    @abstractmethod
    def nut(self) -> np.ndarray:
        """Turbulent viscosity at each DOF."""

    @abstractmethod
    def k(self) -> np.ndarray:
        """Turbulent kinetic energy (synthesised if not transported)."""

    @abstractmethod
    def epsilon(self) -> np.ndarray:
        """Dissipation rate (synthesised if not transported)."""


def readonly_view(arr: np.ndarray) -> np.ndarray:
    """Non-writeable view of a borrowed array."""
    view = np.asarray(arr).view()
    view.flags.writeable = False
    return view
