"""Gibson & Lanni model with a depth-varying specimen refractive index.

The specimen index changes from ``ns1`` at the coverslip to ``ns2`` at the
particle following a linear, logarithmic or exponential law. The layer
between them is cut into ``zint = ceil(zp / dz)`` slabs and each slab adds
its own contribution to the optical path difference, on top of the
immersion-thickness term ``ni·(ti - ti0)·√(1-(NAρ/ni)²)``.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.special import j0

from ..compute.cancellation import CancellationToken
from ..compute.quadrature import KirchhoffIntegrator
from ..errors import ValidationError
from ..optics import Accuracy, Geometry, LabelledEnum, Optics
from .base import DiffractionModel

__all__ = [
    "RIVariation",
    "VariableRIGibsonLanniParameters",
    "VariableRIGibsonLanni",
    "index_profile",
]


class RIVariation(LabelledEnum):
    LINEAR = 0
    LOGARITHMIC = 1
    EXPONENTIAL = 2


def index_profile(ns1: float, ns2: float, zint: int, law: RIVariation) -> np.ndarray:
    """Refractive index of each of the ``zint`` slabs above the particle.

    Example:
        ```python
        >>> index_profile(1.33, 1.4, 2, RIVariation.LINEAR)
        array([1.33 , 1.365])
        ```
    """
    if zint <= 0:
        return np.zeros(0)
    layer = np.arange(zint, dtype=np.float64)
    if law is RIVariation.LOGARITHMIC:
        b = math.exp(ns1)
        a = (math.exp(ns2) - b) / zint
        return np.log(a * layer + b)
    if law is RIVariation.EXPONENTIAL:
        b = math.log(ns1)
        a = (math.log(ns2) - b) / zint
        return np.exp(a * layer + b)
    a = (ns2 - ns1) / zint
    return a * layer + ns1


@dataclass(frozen=True)
class VariableRIGibsonLanniParameters:
    """Parameters of the variable refractive index model.

    Attributes:
        ni: Immersion refractive index.
        ns1: Specimen index at the coverslip.
        ns2: Specimen index at the particle.
        particle_z: Particle depth below the coverslip (nm).
        law: Shape of the index variation between ``ns1`` and ``ns2``.
        accuracy: Quadrature accuracy level.
    """

    ni: float = 1.5
    ns1: float = 1.33
    ns2: float = 1.4
    particle_z: float = 2000.0
    law: RIVariation = RIVariation.LINEAR
    accuracy: Accuracy = Accuracy.GOOD

    def __post_init__(self) -> None:
        for name in ("ni", "ns1", "ns2"):
            if getattr(self, name) <= 0:
                raise ValidationError(
                    f"{name} must be positive, got {getattr(self, name)}"
                )
        object.__setattr__(self, "law", RIVariation.parse(self.law))
        object.__setattr__(self, "accuracy", Accuracy.parse(self.accuracy))


class VariableRIGibsonLanni(DiffractionModel):
    name = "Variable RI Gibson & Lanni 3D Optical Model"
    short_name = "VRIGL"
    description = (
        "Gibson & Lanni model where the refractive index of the specimen "
        "varies with depth."
    )
    Parameters = VariableRIGibsonLanniParameters
    oversampling = 2

    def integrator(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: Optional[CancellationToken] = None,
    ) -> KirchhoffIntegrator:
        p = self.params
        na = optics.na
        k0 = optics.k0
        dti = geometry.defocus(z)
        zint = int(math.ceil(p.particle_z / geometry.z_step))
        layers = index_profile(p.ns1, p.ns2, zint, p.law)[:, np.newaxis]
        pixel_size = geometry.pixel_size

        def integrand(rho: np.ndarray, r: float) -> np.ndarray:
            s = na * rho
            specimen = pixel_size * np.sqrt(np.abs(layers - s)).sum(axis=0)
            with np.errstate(invalid="ignore"):
                immersion = p.ni * dti * np.sqrt(1.0 - (s / p.ni) ** 2)
            w = k0 * (specimen + immersion)
            return (j0(k0 * na * r * rho) * np.exp(1j * w) * rho)[np.newaxis, :]

        upper = min(1.0, p.ni / na)
        return KirchhoffIntegrator(integrand, 0.0, upper, self.k, token=token)
