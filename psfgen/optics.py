"""Optical system and output grid configuration data structures."""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple, Union

from .errors import ValidationError

__all__ = [
    "LabelledEnum",
    "Accuracy",
    "Scale",
    "OutputType",
    "Optics",
    "Geometry",
]


class LabelledEnum(IntEnum):
    """IntEnum that can be built from its ordinal, name or display label."""

    @property
    def label(self) -> str:
        return self.name.replace("_", "-").title()

    @classmethod
    def parse(cls, value: Union["LabelledEnum", str, int]) -> "LabelledEnum":
        """Return the member matching ``value``.

        Strings are matched case-insensitively against member names and
        labels, so ``"Good"``, ``"GOOD"`` and ``"good"`` are equivalent.

        Raises:
            ValidationError: If no member matches.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.name.lower(), member.label.lower()):
                    return member
        else:
            try:
                return cls(value)
            except ValueError:
                pass
        choices = ", ".join(member.label for member in cls)
        raise ValidationError(
            f"Unknown {cls.__name__} '{value}'. Choose one of: {choices}"
        )


class Accuracy(LabelledEnum):
    """Convergence strictness of the adaptive quadrature.

    Each diffraction model maps the level to K, the number of
    consecutive refinements that must satisfy the tolerance. FAST is
    the coarsest setting and maps to K=3 for every model.
    """

    GOOD = 0
    BETTER = 1
    BEST = 2
    FAST = 3


class Scale(LabelledEnum):
    """Intensity transform applied to the volume after statistics."""

    LINEAR = 0
    LOG = 1
    SQRT = 2
    DECIBEL = 3


class OutputType(LabelledEnum):
    """Numeric type of the exported voxels."""

    FLOAT32 = 0
    UINT8 = 1
    UINT16 = 2

    @property
    def label(self) -> str:
        return {0: "32-bits", 1: "8-bits", 2: "16-bits"}[int(self)]


@dataclass(frozen=True)
class Optics:
    """Immutable parameters shared by every PSF model.

    Attributes:
        na: Numerical aperture of the objective.
        wavelength: Emission wavelength (nm).

    Example:
        ```python
        optics = Optics(na=1.4, wavelength=610.0)
        print(optics.airy_radius)  # 0.61 * wavelength / NA -> ~265.8 nm
        ```
    """

    na: float = 1.4
    wavelength: float = 610.0

    def __post_init__(self) -> None:
        """Validate optical parameters."""
        if self.na <= 0:
            raise ValidationError(f"NA must be positive, got {self.na}")
        if self.wavelength <= 0:
            raise ValidationError(
                f"Wavelength must be positive, got {self.wavelength}"
            )

    @property
    def k0(self) -> float:
        """Vacuum wavenumber 2π/λ in rad/nm."""
        return 2.0 * math.pi / self.wavelength

    @property
    def airy_radius(self) -> float:
        """Radius of the first Airy zero (nm)."""
        return 0.61 * self.wavelength / self.na


@dataclass(frozen=True)
class Geometry:
    """Output voxel grid.

    Attributes:
        nx: Number of pixels along x (columns).
        ny: Number of pixels along y (rows).
        nz: Number of axial planes.
        pixel_size: Lateral pixel pitch (nm).
        z_step: Axial distance between planes (nm).
        scale: Intensity transform applied after statistics.
        output: Numeric type used when the volume is exported.

    Only basic sanity is checked here. Model-specific constraints such as
    ``nz >= 3`` or power-of-two sizes are reported by the model's
    ``check_size`` so that the caller gets a message instead of an
    exception.
    """

    nx: int = 256
    ny: int = 256
    nz: int = 65
    pixel_size: float = 100.0
    z_step: float = 250.0
    scale: Scale = Scale.LINEAR
    output: OutputType = OutputType.FLOAT32

    def __post_init__(self) -> None:
        """Validate sizes and coerce enumerations."""
        for name in ("nx", "ny", "nz"):
            value = getattr(self, name)
            if int(value) != value or value < 1:
                raise ValidationError(
                    f"{name} must be a positive integer, got {value}"
                )
            object.__setattr__(self, name, int(value))
        if self.pixel_size <= 0 or self.z_step <= 0:
            raise ValidationError(
                f"Pixel sizes must be positive, got pixel_size={self.pixel_size}, "
                f"z_step={self.z_step}"
            )
        object.__setattr__(self, "scale", Scale.parse(self.scale))
        object.__setattr__(self, "output", OutputType.parse(self.output))

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Return (nz, ny, nx) shape."""
        return (self.nz, self.ny, self.nx)

    @property
    def center(self) -> Tuple[float, float]:
        """Pixel coordinates (x0, y0) of the optical axis."""
        return ((self.nx - 1) / 2.0, (self.ny - 1) / 2.0)

    def defocus(self, z: int) -> float:
        """Axial offset (nm) of plane ``z`` relative to the stack centre."""
        return self.z_step * (z - (self.nz - 1.0) / 2.0)
