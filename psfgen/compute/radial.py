"""Radial-profile reconstruction of rotationally symmetric planes.

A diffraction-limited plane depends only on the distance to the optical
axis. Instead of one integral per pixel, the intensity is tabulated on a
1-D radius axis with ``S`` samples per pixel and every pixel is linearly
interpolated from the two bracketing entries. This reduces the cost per
plane from O(nx·ny) integrals to O(R·S).
"""

import math
from typing import Callable, Optional

import numpy as np

from .cancellation import CancellationToken

__all__ = ["max_radius", "build_radial_table", "reconstruct_plane", "radial_plane"]


def max_radius(nx: int, ny: int) -> int:
    """Largest radius (pixels) that the table must cover.

    ``R = ceil(sqrt((nx/2)² + (ny/2)²)) + 1``, which bounds the distance of
    every pixel centre to ``((nx-1)/2, (ny-1)/2)``.
    """
    return int(math.ceil(math.hypot(nx / 2.0, ny / 2.0))) + 1


def build_radial_table(
    intensity: Callable[[float], float],
    nx: int,
    ny: int,
    pixel_size: float,
    oversampling: int = 1,
    token: Optional[CancellationToken] = None,
) -> np.ndarray:
    """Tabulate the intensity at ``r = n / S`` pixels, ``n = 0 … R·S``.

    The last entry is a guard sample so that the interpolation at the
    largest pixel radius can always read ``table[i + 1]``.

    Args:
        intensity: Function of the physical radius (nm), usually a
            KirchhoffIntegrator.
        nx: Plane width.
        ny: Plane height.
        pixel_size: Lateral pixel pitch (nm).
        oversampling: Samples per pixel, S.
        token: Polled once per table entry.

    Returns:
        1-D array of ``R·S + 1`` intensities.
    """
    if oversampling < 1:
        raise ValueError(f"Oversampling must be at least 1, got {oversampling}")
    length = max_radius(nx, ny) * oversampling + 1
    table = np.empty(length, dtype=np.float64)
    for n in range(length):
        if token is not None:
            token.check()
        r = n / oversampling
        table[n] = intensity(r * pixel_size)
    return table


def reconstruct_plane(
    table: np.ndarray,
    nx: int,
    ny: int,
    oversampling: int = 1,
    token: Optional[CancellationToken] = None,
) -> np.ndarray:
    """Interpolate a (ny, nx) plane from a radial table.

    Each pixel at distance ρ from ``((nx-1)/2, (ny-1)/2)`` gets
    ``h[i] + (h[i+1] - h[i]) · (ρ - i/S) · S`` with ``i = floor(ρ·S)``.
    The token is polled once per row.
    """
    x0 = (nx - 1) / 2.0
    y0 = (ny - 1) / 2.0
    dx = np.arange(nx) - x0
    plane = np.empty((ny, nx), dtype=np.float64)
    for y in range(ny):
        if token is not None:
            token.check()
        rho = np.sqrt(dx**2 + (y - y0) ** 2)
        index = np.floor(rho * oversampling).astype(np.intp)
        fraction = (rho - index / oversampling) * oversampling
        plane[y] = table[index] + (table[index + 1] - table[index]) * fraction
    return plane


def radial_plane(
    intensity: Callable[[float], float],
    nx: int,
    ny: int,
    pixel_size: float,
    oversampling: int = 1,
    token: Optional[CancellationToken] = None,
) -> np.ndarray:
    """Tabulate ``intensity`` and reconstruct the full plane from it."""
    table = build_radial_table(intensity, nx, ny, pixel_size, oversampling, token)
    return reconstruct_plane(table, nx, ny, oversampling, token)
