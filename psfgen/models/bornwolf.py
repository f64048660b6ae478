"""Born & Wolf scalar diffraction model.

The particle is in focus and the detector plane is displaced by the
defocus ``d``. The amplitude at radius r is

    A(r) = ∫_0^1 J0(k0·NA·r·ρ) · exp(-i·k0·NA²·d·ρ²/(2·ni)) · ρ dρ

Reference:
    Born, M. & Wolf, E. "Principles of Optics", 7th ed., §8.8.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.special import j0

from ..compute.cancellation import CancellationToken
from ..compute.quadrature import KirchhoffIntegrator
from ..errors import ValidationError
from ..optics import Accuracy, Geometry, Optics
from .base import DiffractionModel

__all__ = ["BornWolfParameters", "BornWolf"]


@dataclass(frozen=True)
class BornWolfParameters:
    """Parameters of the Born & Wolf model.

    Attributes:
        ni: Refractive index of the immersion medium.
        accuracy: Quadrature accuracy level.
    """

    ni: float = 1.5
    accuracy: Accuracy = Accuracy.GOOD

    def __post_init__(self) -> None:
        if self.ni <= 0:
            raise ValidationError(f"ni must be positive, got {self.ni}")
        object.__setattr__(self, "accuracy", Accuracy.parse(self.accuracy))


class BornWolf(DiffractionModel):
    name = "Born & Wolf 3D Optical Model"
    short_name = "BW"
    description = (
        "Scalar diffraction in the microscope when the particle is in "
        "focus. The imaging plane need not be in focus."
    )
    Parameters = BornWolfParameters
    oversampling = 1

    def integrator(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: Optional[CancellationToken] = None,
    ) -> KirchhoffIntegrator:
        defocus = geometry.defocus(z)
        ni = self.params.ni
        na = optics.na
        k0 = optics.k0

        def integrand(rho: np.ndarray, r: float) -> np.ndarray:
            bessel = j0(k0 * na * r * rho)
            w = k0 * na * na * defocus * rho * rho / (2.0 * ni)
            return (bessel * np.exp(-1j * w) * rho)[np.newaxis, :]

        return KirchhoffIntegrator(integrand, 0.0, 1.0, self.k, token=token)
