"""Base classes for PSF models."""

from abc import ABC, abstractmethod
from typing import ClassVar, Dict, Optional, Tuple

import numpy as np

from ..compute.cancellation import CancellationToken
from ..compute.quadrature import KirchhoffIntegrator
from ..compute.radial import radial_plane
from ..optics import Accuracy, Geometry, Optics
from ..utils.fourier import is_power_of_two

__all__ = [
    "PSFModel",
    "DiffractionModel",
    "check_min_size",
    "check_power_of_two",
]


def check_min_size(nx: int, ny: int, nz: int, min_xy: int = 4) -> Optional[str]:
    """Return an error message if the grid is too small, else None."""
    if nz < 3:
        return f"nz should be at least 3, got {nz}."
    if nx < min_xy:
        return f"nx should be at least {min_xy}, got {nx}."
    if ny < min_xy:
        return f"ny should be at least {min_xy}, got {ny}."
    return None


def check_power_of_two(nx: int, ny: int, nz: int) -> Optional[str]:
    """Return an error message unless nx and ny are powers of two."""
    if nz < 3:
        return f"nz should be at least 3, got {nz}."
    if not is_power_of_two(nx):
        return f"nx should be a power of 2, got {nx}."
    if not is_power_of_two(ny):
        return f"ny should be a power of 2, got {ny}."
    return None


class PSFModel(ABC):
    """Abstract base class for PSF models.

    A model is a strategy that owns an immutable parameter dataclass and
    produces one (ny, nx) plane per axial index. Planes are independent,
    so the scheduler may call :meth:`compute_plane` concurrently for
    different ``z`` on the same instance.

    Subclasses set ``name``, ``short_name`` (a property where it depends
    on the parameters) and ``Parameters`` and
    implement :meth:`check_size` and :meth:`compute_plane`.

    Example:
        ```python
        model = BornWolf(BornWolfParameters(ni=1.5))
        plane = model.compute_plane(0, optics, geometry, CancellationToken())
        ```
    """

    name: ClassVar[str] = "Untitled"
    short_name: ClassVar[str] = "..."
    description: ClassVar[str] = ""
    Parameters: ClassVar[type]

    def __init__(self, params=None):
        self.params = params if params is not None else self.Parameters()
        if not isinstance(self.params, self.Parameters):
            raise TypeError(
                f"{type(self).__name__} expects {self.Parameters.__name__}, "
                f"got {type(self.params).__name__}"
            )

    @abstractmethod
    def check_size(self, nx: int, ny: int, nz: int) -> Optional[str]:
        """Return an error message if the grid is unsupported, else None."""

    def check_parameters(self, optics: Optics) -> Optional[str]:
        """Return an error message if the parameters are unusable, else None."""
        return None

    def validate(self, optics: Optics, geometry: Geometry) -> Optional[str]:
        """Check grid then parameters; first error message wins."""
        error = self.check_size(geometry.nx, geometry.ny, geometry.nz)
        if error is None:
            error = self.check_parameters(optics)
        return error

    @abstractmethod
    def compute_plane(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: CancellationToken,
    ) -> np.ndarray:
        """Compute plane ``z``.

        Args:
            z: Plane index in ``[0, nz)``.
            optics: Shared optical parameters.
            geometry: Output grid.
            token: Polled at least once per image row.

        Returns:
            Array of shape (ny, nx), float64.

        Raises:
            ComputationCancelled: If the token is set during computation.
            ComputationError: If the plane cannot be computed.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.params!r})"


class DiffractionModel(PSFModel):
    """Model evaluated by Kirchhoff integrals on a radial table.

    Subclasses provide the integrand, its interval and the K table;
    this class handles the radial table and the per-pixel interpolation.
    """

    oversampling: ClassVar[int] = 1
    weights: ClassVar[Tuple[float, ...]] = (1.0,)
    k_table: ClassVar[Dict[Accuracy, int]] = {
        Accuracy.GOOD: 5,
        Accuracy.BETTER: 7,
        Accuracy.BEST: 9,
    }

    @property
    def k(self) -> int:
        """Consecutive stable refinements required at this accuracy."""
        return self.k_table.get(self.params.accuracy, 3)

    def check_size(self, nx: int, ny: int, nz: int) -> Optional[str]:
        return check_min_size(nx, ny, nz)

    def check_parameters(self, optics: Optics) -> Optional[str]:
        ni = self.params.ni
        if optics.na >= ni:
            return (
                f"NA ({optics.na}) should be smaller than the immersion "
                f"refractive index ({ni})."
            )
        return None

    @abstractmethod
    def integrator(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: Optional[CancellationToken] = None,
    ) -> KirchhoffIntegrator:
        """Integrator giving the intensity of plane ``z`` at a radius (nm)."""

    def compute_plane(
        self,
        z: int,
        optics: Optics,
        geometry: Geometry,
        token: CancellationToken,
    ) -> np.ndarray:
        integrate = self.integrator(z, optics, geometry, token)
        return radial_plane(
            integrate,
            geometry.nx,
            geometry.ny,
            geometry.pixel_size,
            self.oversampling,
            token,
        )
