"""Numerical building blocks: quadrature, radial tables, cancellation."""

from .cancellation import CancellationToken
from .quadrature import (
    Integrand,
    Quadrature,
    KirchhoffIntegrator,
    TOLERANCE,
    MAX_ITERATIONS,
    ZERO_FLOOR,
)
from .radial import (
    max_radius,
    build_radial_table,
    reconstruct_plane,
    radial_plane,
)

__all__ = [
    "CancellationToken",
    # Quadrature
    "Integrand",
    "Quadrature",
    "KirchhoffIntegrator",
    "TOLERANCE",
    "MAX_ITERATIONS",
    "ZERO_FLOOR",
    # Radial profile
    "max_radius",
    "build_radial_table",
    "reconstruct_plane",
    "radial_plane",
]
