"""PSF models defined by an analytic OTF in the Fourier domain.

Each plane is obtained by evaluating a real, even OTF on one quadrant of
the spectrum, folding it to the full grid, inverse transforming and
moving the origin to the centre. Grid sizes must be powers of two.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..compute.cancellation import CancellationToken
from ..errors import ValidationError
from ..optics import Geometry, Optics
from ..utils.fourier import otf_to_psf, radial_frequency
from .base import PSFModel, check_power_of_two

__all__ = [
    "DefocussingParameters",
    "Defocussing",
    "KoehlerParameters",
    "Koehler",
    "interpolate_distance",
]


def interpolate_distance(
    z: int,
    center: float,
    top: float,
    mid: float,
    bottom: float,
) -> float:
    """Blend the defocus distance from ``mid`` at ``center`` to ``top``/``bottom``.

    Example:
        ```python
        >>> interpolate_distance(0, 2, top=30.0, mid=1.0, bottom=30.0)
        30.0
        ```
    """
    if z < center:
        r = (center - z) / center
        return mid * (1.0 - r) + top * r
    if z == center:
        return mid
    r = (z - center) / center
    return mid * (1.0 - r) + bottom * r


@dataclass(frozen=True)
class DefocussingParameters:
    """Parameters of the lens defocussing model.

    Attributes:
        zi: Distance of the image plane to the lens (µm).
        k: Lens constant (µm).
        d_top: Defocus distance at the first plane (µm).
        d_mid: Defocus distance at the middle plane (µm).
        d_bottom: Defocus distance at the last plane (µm).
    """

    zi: float = 2000.0
    k: float = 275.0
    d_top: float = 30.0
    d_mid: float = 1.0
    d_bottom: float = 30.0

    def __post_init__(self) -> None:
        if self.k == 0:
            raise ValidationError("k must be non-zero")


class Defocussing(PSFModel):
    """Geometrical defocus of a thin lens.

    Physics:
        OTF(ω) = exp(-3·ω²) · |sinc(wm·ω·(1-ω))|,
        wm = d / (zi - d) / K
    """

    name = "Simulation of Lens Defocussing"
    short_name = "Defocus"
    description = "Defocus of a thin lens simulated in the Fourier domain."
    Parameters = DefocussingParameters

    def check_size(self, nx: int, ny: int, nz: int) -> Optional[str]:
        return check_power_of_two(nx, ny, nz)

    def distance(self, z: int, nz: int) -> float:
        p = self.params
        return interpolate_distance(z, nz // 2, p.d_top, p.d_mid, p.d_bottom)

    def otf(self, d: float, nx: int, ny: int) -> Optional[np.ndarray]:
        """OTF quadrant for defocus ``d``; None when ``d`` equals ``zi``."""
        p = self.params
        if d == p.zi:
            return None
        wm = (d / (p.zi - d)) / (p.k * 1e-6)
        wr = radial_frequency(nx // 2 + 1, ny // 2 + 1, nx / 2, ny / 2)
        # np.sinc is the normalized sin(πx)/(πx)
        s = wm * wr * (1.0 - wr)
        sinc = np.abs(np.sinc(s / np.pi))
        return np.exp(-3.0 * wr * wr) * sinc

    def compute_plane(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: CancellationToken,
    ) -> np.ndarray:
        token.check()
        nx, ny = geometry.nx, geometry.ny
        quadrant = self.otf(self.distance(z, geometry.nz), nx, ny)
        if quadrant is None:
            return np.zeros((ny, nx), dtype=np.float64)
        return otf_to_psf(quadrant, nx, ny)


@dataclass(frozen=True)
class KoehlerParameters:
    """Parameters of the Köhler illumination model.

    Attributes:
        n0: Width of the OTF at zero defocus.
        n1: Growth of the OTF width per unit defocus.
        d_top: Defocus distance at the first plane.
        d_mid: Defocus distance at the middle plane.
        d_bottom: Defocus distance at the last plane.
    """

    n0: float = 1.5
    n1: float = 1.0
    d_top: float = 6.0
    d_mid: float = 3.0
    d_bottom: float = 6.0


class Koehler(PSFModel):
    """Defocus from the condenser in Köhler illumination.

    Physics:
        OTF(ω) = exp(-ω²σ²/2), σ = n0 + n1·|d|
    """

    name = "Koehler Simulation"
    short_name = "Koehler"
    description = "Gaussian OTF whose width grows with the defocus distance."
    Parameters = KoehlerParameters

    def check_size(self, nx: int, ny: int, nz: int) -> Optional[str]:
        return check_power_of_two(nx, ny, nz)

    def distance(self, z: int, nz: int) -> float:
        p = self.params
        return interpolate_distance(z, (nz - 1) / 2.0, p.d_top, p.d_mid, p.d_bottom)

    def otf(self, d: float, nx: int, ny: int) -> np.ndarray:
        p = self.params
        sigma = p.n0 + p.n1 * abs(d)
        xsize = nx // 2 + 1
        ysize = ny // 2 + 1
        wr = radial_frequency(xsize, ysize, xsize, ysize)
        return np.exp(-wr * wr * sigma * sigma / 2.0)

    def compute_plane(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: CancellationToken,
    ) -> np.ndarray:
        token.check()
        nx, ny = geometry.nx, geometry.ny
        quadrant = self.otf(self.distance(z, geometry.nz), nx, ny)
        return otf_to_psf(quadrant, nx, ny)
