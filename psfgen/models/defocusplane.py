"""Closed-form PSFs built from a 2D lateral function scaled along z.

Each plane is a lateral function whose width is the focal radius times an
axial factor. The factor is 1 in the focal plane and 2 in the defocussed
plane. Every plane is normalized to unit sum.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from ..compute.cancellation import CancellationToken
from ..errors import ComputationError
from ..optics import Geometry, LabelledEnum, Optics
from .base import PSFModel, check_min_size

__all__ = [
    "LateralFunction",
    "ZFunction",
    "DefocusPlaneParameters",
    "DefocusPlane",
    "focal_radius",
    "axial_factor",
    "lateral_profile",
]

# FWHM of a unit-sigma Gaussian
FWHM_SIGMA = 2.35482005


class LateralFunction(LabelledEnum):
    GAUSSIAN = 0
    LORENTZ = 1
    CARDINAL_SINE = 2
    COSINE = 3
    CIRCULAR_PUPIL = 4
    ASTIGMATISM = 5
    ORIENTED_GAUSSIAN = 6
    DOUBLE_HELIX = 7


class ZFunction(LabelledEnum):
    LINEAR = 0
    EXPONENTIAL = 1
    PARABOLIC = 2
    CONSTANT = 3


def focal_radius(optics: Optics, pixel_size: float) -> float:
    """Gaussian sigma (pixels) equivalent to the lateral resolution 0.5·λ/NA."""
    return (0.5 * optics.wavelength / optics.na) / FWHM_SIGMA / pixel_size


def axial_factor(
    function: ZFunction, z: float, z_defocus: float, z_focal: float
) -> float:
    """Width multiplier of the lateral function at plane ``z``.

    ``z_defocus`` and ``z_focal`` are in plane units.

    Example:
        ```python
        >>> axial_factor(ZFunction.LINEAR, 0.0, 0.4, 0.0)
        1.0
        ```
    """
    if function is ZFunction.CONSTANT:
        return 1.0
    span = z_defocus - z_focal
    offset = z - z_focal
    if function is ZFunction.EXPONENTIAL:
        return math.exp(abs(offset) * math.log(2.0) / abs(span))
    if function is ZFunction.PARABOLIC:
        return 1.0 + offset * offset / (span * span)
    return 1.0 + abs(offset) / abs(span)


def _gaussian(x, y, radius, factor):
    s = radius * factor
    return np.exp(-(x * x + y * y) / (2.0 * s * s))


def _lorentz(x, y, radius, factor):
    g = radius * factor
    return 1.0 / (1.0 + (x * x + y * y) / (g * g))


def _cardinal_sine(x, y, radius, factor):
    w = radius * factor
    return np.sinc(np.hypot(x, y) / w) ** 2


def _cosine(x, y, radius, factor):
    # single lobe of support 2·radius·factor
    w = 2.0 * radius * factor
    rho = np.hypot(x, y)
    return np.where(rho < w, np.cos(0.5 * np.pi * rho / w), 0.0)


def _circular_pupil(x, y, radius, factor):
    return (np.hypot(x, y) <= radius * factor).astype(np.float64)


def _astigmatism(x, y, radius, factor):
    sx = radius * factor
    sy = radius
    return np.exp(-0.5 * ((x / sx) ** 2 + (y / sy) ** 2))


def _oriented_gaussian(x, y, radius, factor):
    # elongated Gaussian turning with defocus, angle in radians
    c, s = math.cos(factor), math.sin(factor)
    u = c * x + s * y
    v = -s * x + c * y
    su = 2.0 * radius * factor
    sv = radius
    return np.exp(-0.5 * ((u / su) ** 2 + (v / sv) ** 2))


def _double_helix(x, y, radius, factor):
    sigma = 0.25 * radius
    dx = 0.5 * radius * math.cos(factor)
    dy = 0.5 * radius * math.sin(factor)
    k = 0.5 / (sigma * sigma)
    lobe1 = np.exp(-k * ((x - dx) ** 2 + (y - dy) ** 2))
    lobe2 = np.exp(-k * ((x + dx) ** 2 + (y + dy) ** 2))
    return lobe1 + lobe2


_LATERAL: Dict[LateralFunction, Callable] = {
    LateralFunction.GAUSSIAN: _gaussian,
    LateralFunction.LORENTZ: _lorentz,
    LateralFunction.CARDINAL_SINE: _cardinal_sine,
    LateralFunction.COSINE: _cosine,
    LateralFunction.CIRCULAR_PUPIL: _circular_pupil,
    LateralFunction.ASTIGMATISM: _astigmatism,
    LateralFunction.ORIENTED_GAUSSIAN: _oriented_gaussian,
    LateralFunction.DOUBLE_HELIX: _double_helix,
}


def lateral_profile(
    function: LateralFunction,
    nx: int,
    ny: int,
    radius: float,
    factor: float,
) -> np.ndarray:
    """Evaluate a lateral function on a (ny, nx) grid centred at (nx/2, ny/2).

    Returns:
        Plane normalized to unit sum.

    Raises:
        ComputationError: If the plane has no finite positive energy.
    """
    x = np.arange(nx, dtype=np.float64) - nx / 2.0
    y = np.arange(ny, dtype=np.float64)[:, np.newaxis] - ny / 2.0
    with np.errstate(divide="ignore", invalid="ignore"):
        plane = np.asarray(_LATERAL[function](x, y, radius, factor), dtype=np.float64)
    plane = np.broadcast_to(plane, (ny, nx)).copy()
    total = plane.sum()
    if not np.isfinite(total) or total <= 0.0:
        raise ComputationError(
            f"{function.label} plane has no energy (factor={factor:.4g})"
        )
    return plane / total


@dataclass(frozen=True)
class DefocusPlaneParameters:
    """Parameters of the closed-form models.

    Attributes:
        lateral: Lateral function of each plane.
        axial: Law scaling the lateral width with defocus.
        z_focus: Position of the focal plane (nm).
        z_defocus: Position where the lateral width doubles (nm).
    """

    lateral: LateralFunction = LateralFunction.GAUSSIAN
    axial: ZFunction = ZFunction.LINEAR
    z_focus: float = 0.0
    z_defocus: float = 100.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "lateral", LateralFunction.parse(self.lateral))
        object.__setattr__(self, "axial", ZFunction.parse(self.axial))


class DefocusPlane(PSFModel):
    name = "Defocus Plane Model"
    description = (
        "2D lateral function whose width grows with the distance to the "
        "focal plane."
    )
    Parameters = DefocusPlaneParameters

    @property
    def short_name(self) -> str:
        """Label of the lateral function, e.g. ``"Gaussian"``."""
        return self.params.lateral.label

    def check_size(self, nx: int, ny: int, nz: int) -> Optional[str]:
        return check_min_size(nx, ny, nz)

    def check_parameters(self, optics: Optics) -> Optional[str]:
        p = self.params
        if p.axial is not ZFunction.CONSTANT and p.z_defocus == p.z_focus:
            return "The defocus plane should differ from the focal plane."
        return None

    def compute_plane(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: CancellationToken,
    ) -> np.ndarray:
        token.check()
        p = self.params
        factor = axial_factor(
            p.axial,
            float(z),
            p.z_defocus / geometry.z_step,
            p.z_focus / geometry.z_step,
        )
        radius = focal_radius(optics, geometry.pixel_size)
        return lateral_profile(p.lateral, geometry.nx, geometry.ny, radius, factor)
