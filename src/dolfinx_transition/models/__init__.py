"""
Turbulence closure registry.

Usage:
    from dolfinx_transition.models import create_model
    model = create_model("WrayAgarwalTransition", ops, transport, fields)
"""

from dolfinx_transition.models.base import ConstantViscosity, TurbulenceClosure
from dolfinx_transition.models.laminar import LaminarModel
from dolfinx_transition.models.wray_agarwal_transition import (
    CorrectionReport,
    WrayAgarwalTransition,
)

_REGISTRY: dict[str, type[TurbulenceClosure]] = {
    "wrayagarwaltransition": WrayAgarwalTransition,
    "laminar": LaminarModel,
}


def register_model(name: str, cls: type[TurbulenceClosure]) -> None:
    """Add a closure under a configuration name (case-insensitive)."""
    key = name.lower()
    if key in _REGISTRY and _REGISTRY[key] is not cls:
        raise ValueError(f"Turbulence model '{name}' is already registered")
    _REGISTRY[key] = cls


def available_models() -> list[str]:
    return sorted(_REGISTRY)


def create_model(name: str, *args, **kwargs) -> TurbulenceClosure:
    """Factory: instantiate a turbulence closure by config name."""
    key = name.lower()
    cls = _REGISTRY.get(key)
    if cls is None:
        supported = ", ".join(sorted(_REGISTRY))
        raise ValueError(
            f"Unknown turbulence model '{name}'. Supported: {supported}"
        )
    return cls(*args, **kwargs)


__all__ = [
    "TurbulenceClosure",
    "ConstantViscosity",
    "CorrectionReport",
    "LaminarModel",
    "WrayAgarwalTransition",
    "available_models",
    "create_model",
    "register_model",
]
