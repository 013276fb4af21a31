"""Laminar closure (nut = 0)."""

import numpy as np

from dolfinx_transition.models.base import TurbulenceClosure, readonly_view


class LaminarModel(TurbulenceClosure):
    """No turbulence: zero eddy viscosity, nothing transported."""

    type_name = "laminar"

    def __init__(self, ops, transport, fields=None, properties=None, **options):
        self._ops = ops
        self._transport = transport
        size = np.asarray(ops.velocity_gradient()).shape[0]
        self._zeros = np.zeros(size)

    @property
    def model_name(self) -> str:
        return "laminar"

    @property
    def display_name(self) -> str:
        return "Laminar"

    def correct(self, y, n):
        return None

    def read(self) -> bool:
        return True

    def nut(self):
        return readonly_view(self._zeros)

    def k(self):
        return readonly_view(self._zeros)

    def epsilon(self):
        return readonly_view(self._zeros)
