"""PSF model family and registry.

Models are looked up by their short name (``"BW"``, ``"GL"``, ...) or, for
the closed-form family, by the label of their lateral function
(``"Gaussian"``, ``"Double-Helix"``, ...).

Example:
    ```python
    from psfgen.models import make_model

    model = make_model("GL", ns=1.4, particle_z=5000.0, accuracy="best")
    astig = make_model("Astigmatism", axial="parabolic")
    ```
"""

from dataclasses import fields
from typing import Callable, Dict

from ..errors import ValidationError
from .base import PSFModel, DiffractionModel, check_min_size, check_power_of_two
from .bornwolf import BornWolf, BornWolfParameters
from .gibsonlanni import GibsonLanni, GibsonLanniParameters, optical_path_difference
from .richardswolf import RichardsWolf, RichardsWolfParameters
from .torokvarga import TorokVarga, TorokVargaParameters
from .vrigl import (
    RIVariation,
    VariableRIGibsonLanni,
    VariableRIGibsonLanniParameters,
    index_profile,
)
from .defocusplane import (
    LateralFunction,
    ZFunction,
    DefocusPlane,
    DefocusPlaneParameters,
    axial_factor,
    focal_radius,
    lateral_profile,
)
from .otf import (
    Defocussing,
    DefocussingParameters,
    Koehler,
    KoehlerParameters,
    interpolate_distance,
)


def _build(cls, **defaults) -> Callable[..., PSFModel]:
    def factory(**kwargs) -> PSFModel:
        names = {f.name for f in fields(cls.Parameters)}
        unknown = set(kwargs) - names
        if unknown:
            raise ValidationError(
                f"Unknown parameter(s) for {cls.__name__}: "
                f"{', '.join(sorted(unknown))}. "
                f"Expected: {', '.join(sorted(names))}"
            )
        return cls(cls.Parameters(**{**defaults, **kwargs}))

    return factory


MODELS: Dict[str, Callable[..., PSFModel]] = {
    "BW": _build(BornWolf),
    "GL": _build(GibsonLanni),
    "RW": _build(RichardsWolf),
    "TV": _build(TorokVarga),
    "VRIGL": _build(VariableRIGibsonLanni),
    "Defocus": _build(Defocussing),
    "Koehler": _build(Koehler),
}
MODELS.update(
    {lateral.label: _build(DefocusPlane, lateral=lateral) for lateral in LateralFunction}
)


def make_model(name: str, **kwargs) -> PSFModel:
    """Build a model from its registry name and parameter overrides.

    Args:
        name: Registry key, matched case-insensitively.
        **kwargs: Fields of the model's parameter dataclass.

    Raises:
        ValidationError: If the name or a parameter is unknown or invalid.
    """
    key = name.strip().lower()
    for registered, factory in MODELS.items():
        if registered.lower() == key:
            return factory(**kwargs)
    raise ValidationError(
        f"Unknown model '{name}'. Choose one of: {', '.join(MODELS)}"
    )


__all__ = [
    # Base
    "PSFModel",
    "DiffractionModel",
    "check_min_size",
    "check_power_of_two",
    # Scalar diffraction
    "BornWolf",
    "BornWolfParameters",
    "GibsonLanni",
    "GibsonLanniParameters",
    "optical_path_difference",
    "VariableRIGibsonLanni",
    "VariableRIGibsonLanniParameters",
    "RIVariation",
    "index_profile",
    # Vectorial diffraction
    "RichardsWolf",
    "RichardsWolfParameters",
    "TorokVarga",
    "TorokVargaParameters",
    # Closed-form
    "DefocusPlane",
    "DefocusPlaneParameters",
    "LateralFunction",
    "ZFunction",
    "axial_factor",
    "focal_radius",
    "lateral_profile",
    # Fourier-domain
    "Defocussing",
    "DefocussingParameters",
    "Koehler",
    "KoehlerParameters",
    "interpolate_distance",
    # Registry
    "MODELS",
    "make_model",
]
