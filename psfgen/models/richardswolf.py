"""Richards & Wolf vectorial model.

For an aplanatic objective with aperture half-angle α = asin(NA/ni) the
three vectorial integrals over θ are

    I0 = ∫ √cosθ·sinθ·(1+cosθ)·J0(k'r·sinθ)·e^{ik'd·cosθ} dθ
    I1 = ∫ √cosθ·sinθ·sinθ·J1(k'r·sinθ)·e^{ik'd·cosθ} dθ
    I2 = ∫ √cosθ·sinθ·(1-cosθ)·J2(k'r·sinθ)·e^{ik'd·cosθ} dθ

with k' = 2π·ni/λ and the intensity |I0|² + 2|I1|² + |I2|².

Reference:
    Richards, B. & Wolf, E. "Electromagnetic diffraction in optical
    systems II." Proc. R. Soc. Lond. A 253 (1959): 358-379.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.special import j0, j1, jv

from ..compute.cancellation import CancellationToken
from ..compute.quadrature import KirchhoffIntegrator
from ..errors import ValidationError
from ..optics import Accuracy, Geometry, Optics
from .base import DiffractionModel

__all__ = ["RichardsWolfParameters", "RichardsWolf"]


@dataclass(frozen=True)
class RichardsWolfParameters:
    ni: float = 1.5
    accuracy: Accuracy = Accuracy.GOOD

    def __post_init__(self) -> None:
        if self.ni <= 0:
            raise ValidationError(f"ni must be positive, got {self.ni}")
        object.__setattr__(self, "accuracy", Accuracy.parse(self.accuracy))


class RichardsWolf(DiffractionModel):
    name = "Richards & Wolf 3D Optical Model"
    short_name = "RW"
    description = (
        "Vectorial diffraction of an aplanatic objective at high numerical "
        "aperture."
    )
    Parameters = RichardsWolfParameters
    oversampling = 1
    weights = (1.0, 2.0, 1.0)

    def integrator(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: Optional[CancellationToken] = None,
    ) -> KirchhoffIntegrator:
        ni = self.params.ni
        kn = optics.k0 * ni
        defocus = geometry.defocus(z)
        alpha = math.asin(optics.na / ni)

        def integrand(theta: np.ndarray, r: float) -> np.ndarray:
            cos_t = np.cos(theta)
            sin_t = np.sin(theta)
            x = kn * r * sin_t
            phase = np.exp(1j * kn * defocus * cos_t)
            apodized = np.sqrt(cos_t) * sin_t * phase
            return np.stack(
                [
                    apodized * (1.0 + cos_t) * j0(x),
                    apodized * sin_t * j1(x),
                    apodized * (1.0 - cos_t) * jv(2, x),
                ]
            )

        return KirchhoffIntegrator(
            integrand, 0.0, alpha, self.k, weights=self.weights, token=token
        )
