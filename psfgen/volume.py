"""Voxel storage of a computed PSF with its statistics and reports.

The volume is an array of shape (nz, ny, nx). Within a plane the linear
scan index is ``k = x + nx·y``, so a C-order flatten visits voxels in the
same order as a scan with z outer and k inner.

Lifecycle:
    1. Planes are written once each, by the task that owns them.
    2. :meth:`Volume.determine_maximum_and_energy` and
       :meth:`Volume.estimate_fwhm` run after every plane is complete.
    3. :meth:`Volume.rescale` runs once, in place.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
from loguru import logger

from .errors import PSFError
from .optics import Geometry, Optics, OutputType, Scale

__all__ = ["Point3D", "Volume", "RESCALE_FLOOR"]

# Ratios below this are clamped before the Log, Sqrt and Decibel transforms
RESCALE_FLOOR = 1e-6


@dataclass
class Point3D:
    """Voxel position with an associated value."""

    x: int = 0
    y: int = 0
    z: int = 0
    value: float = 0.0


def _first_below(profile: np.ndarray, start: int, threshold: float, step: int) -> int:
    """Index of the first sample below ``threshold`` walking from ``start``.

    Returns ``len(profile)`` or ``-1`` when the walk leaves the array.
    """
    i = start
    while 0 <= i < len(profile):
        if profile[i] < threshold:
            return i
        i += step
    return i


class Volume:
    """PSF voxels plus maximum, energy and FWHM statistics.

    Args:
        nx: Plane width.
        ny: Plane height.
        nz: Number of planes.

    Attributes:
        data: Float64 array of shape (nz, ny, nx).
        maximum: Global maximum and the first voxel where it occurs.
        energy: Sum of squared voxel values.
        fwhm: FWHM extents in voxels; ``value`` holds the intensity summed
            inside the FWHM box.
        aborted: True if the computation filling this volume was cancelled.
        scale: Transform applied by :meth:`rescale`, None before.
        plane_stats: Per-plane (maximum, energy, efficiency radius) taken
            with the global statistics, before any rescale.

    Example:
        ```python
        volume = Volume(64, 64, 32)
        volume.put_plane(0, plane)
        volume.determine_maximum_and_energy()
        volume.estimate_fwhm()
        volume.rescale(Scale.LINEAR)
        ```
    """

    def __init__(self, nx: int, ny: int, nz: int):
        self.data = np.zeros((nz, ny, nx), dtype=np.float64)
        self.maximum = Point3D(value=-np.inf)
        self.fwhm = Point3D()
        self.energy = 0.0
        self.aborted = False
        self.scale: Optional[Scale] = None
        self.plane_stats: Optional[np.ndarray] = None

    @classmethod
    def from_array(cls, data: np.ndarray) -> "Volume":
        """Wrap an existing (nz, ny, nx) array."""
        data = np.asarray(data, dtype=np.float64)
        if data.ndim != 3:
            raise ValueError(f"Expected a 3D array, got shape {data.shape}")
        nz, ny, nx = data.shape
        volume = cls(nx, ny, nz)
        volume.data[...] = data
        return volume

    @property
    def nx(self) -> int:
        return self.data.shape[2]

    @property
    def ny(self) -> int:
        return self.data.shape[1]

    @property
    def nz(self) -> int:
        return self.data.shape[0]

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.data.shape

    def plane(self, z: int) -> np.ndarray:
        return self.data[z]

    def put_plane(self, z: int, plane: np.ndarray) -> None:
        """Store plane ``z``; accepts (ny, nx) or flat ``k = x + nx·y`` order."""
        plane = np.asarray(plane, dtype=np.float64)
        if plane.size != self.nx * self.ny:
            raise ValueError(
                f"Plane {z} has {plane.size} values, expected {self.nx * self.ny}"
            )
        self.data[z] = plane.reshape(self.ny, self.nx)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def determine_maximum_and_energy(self) -> Point3D:
        """Locate the global maximum and accumulate the energy Σv².

        Per-plane statistics are captured at the same time so that
        :meth:`plane_information` stays valid after a non-linear rescale.

        Ties resolve to the first voxel in scan order (z outer, then k).
        """
        index = int(np.argmax(self.data))
        z, k = divmod(index, self.nx * self.ny)
        y, x = divmod(k, self.nx)
        self.maximum = Point3D(x=x, y=y, z=z, value=float(self.data[z, y, x]))
        self.energy = float(np.vdot(self.data, self.data))
        self.plane_stats = self._plane_statistics()
        return self.maximum

    def maximum_of(self, z: int) -> float:
        return float(self.data[z].max())

    def energy_of(self, z: int) -> float:
        plane = self.data[z]
        return float(np.vdot(plane, plane))

    def estimate_fwhm(self, legacy: bool = False) -> Point3D:
        """Estimate the full width at half maximum around the global maximum.

        Along each axis the walk starts at the maximum and stops at the
        first voxel below half the maximum, or one past the edge. The
        extent is the distance between the two stopping indices. The
        intensity is summed over the inclusive box they bound, clipped to
        the volume.

        Args:
            legacy: Walk only towards increasing indices and take the
                maximum itself as the lower bound, as older releases did.

        Returns:
            Extents in voxels, with ``value`` set to the box intensity.
        """
        if not np.isfinite(self.maximum.value):
            self.determine_maximum_and_energy()
        m = self.maximum
        half = 0.5 * m.value

        x_profile = self.data[m.z, m.y, :]
        y_profile = self.data[m.z, :, m.x]
        z_profile = self.data[:, m.y, m.x]

        x2 = _first_below(x_profile, m.x, half, 1)
        y2 = _first_below(y_profile, m.y, half, 1)
        z2 = _first_below(z_profile, m.z, half, 1)
        if legacy:
            x1, y1, z1 = m.x, m.y, m.z
        else:
            x1 = _first_below(x_profile, m.x, half, -1)
            y1 = _first_below(y_profile, m.y, half, -1)
            z1 = _first_below(z_profile, m.z, half, -1)

        box = self.data[
            max(z1, 0) : min(z2, self.nz - 1) + 1,
            max(y1, 0) : min(y2, self.ny - 1) + 1,
            max(x1, 0) : min(x2, self.nx - 1) + 1,
        ]
        self.fwhm = Point3D(x=x2 - x1, y=y2 - y1, z=z2 - z1, value=float(box.sum()))
        return self.fwhm

    # -------------------------------------------------------------------------
    # Rescale
    # -------------------------------------------------------------------------

    def rescale(self, scale=Scale.LINEAR) -> None:
        """Normalize by the maximum and apply the intensity transform in place.

        Transforms of the ratio ``v / max``:

        - Linear: ``v / max``
        - Log: ``ln(max(v / max, 1e-6))``
        - Sqrt: ``sqrt(max(v / max, 1e-6))``
        - Decibel: ``20·log10(max(v / max, 1e-6))``

        Raises:
            PSFError: If the volume was already rescaled.
        """
        if self.scale is not None:
            raise PSFError(f"Volume already rescaled ({self.scale.label})")
        scale = Scale.parse(scale)
        self.scale = scale
        if not np.isfinite(self.maximum.value):
            self.determine_maximum_and_energy()
        peak = self.maximum.value
        if peak <= 0:
            logger.warning(f"Maximum is {peak:.4g}, skipping {scale.label} rescale")
            return

        ratio = self.data / peak
        if scale is Scale.LINEAR:
            self.data[...] = ratio
            return
        clamped = np.maximum(ratio, RESCALE_FLOOR)
        if scale is Scale.LOG:
            self.data[...] = np.log(clamped)
        elif scale is Scale.SQRT:
            self.data[...] = np.sqrt(clamped)
        else:
            self.data[...] = 20.0 * np.log10(clamped)

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def _plane_statistics(self) -> np.ndarray:
        """(nz, 3) array of plane maximum, plane energy and efficiency radius.

        The radius is ``sqrt(Σ v·d² / Σ v)`` in pixels, with ``d`` the
        distance to ``((nx-1)/2, (ny-1)/2)``.
        """
        x0 = (self.nx - 1) / 2.0
        y0 = (self.ny - 1) / 2.0
        dx = np.arange(self.nx) - x0
        dy = np.arange(self.ny)[:, np.newaxis] - y0
        d2 = dx * dx + dy * dy

        stats = np.zeros((self.nz, 3), dtype=np.float64)
        with np.errstate(divide="ignore", invalid="ignore"):
            for z in range(self.nz):
                plane = self.data[z]
                stats[z, 0] = self.maximum_of(z)
                stats[z, 1] = self.energy_of(z)
                stats[z, 2] = np.sqrt((plane * d2).sum() / plane.sum())
        return stats

    def plane_information(self) -> np.ndarray:
        """Per-plane statistics of the volume as computed, before any rescale.

        Returns:
            Array of shape (nz, 4) with columns: plane index, plane
            maximum / global maximum, plane energy / total energy, and the
            efficiency radius in pixels.
        """
        if self.plane_stats is None:
            self.determine_maximum_and_energy()
        stats = self.plane_stats

        info = np.zeros((self.nz, 4), dtype=np.float64)
        info[:, 0] = np.arange(self.nz)
        with np.errstate(divide="ignore", invalid="ignore"):
            info[:, 1] = stats[:, 0] / np.float64(self.maximum.value)
            info[:, 2] = stats[:, 1] / np.float64(self.energy)
        info[:, 3] = stats[:, 2]
        return info

    def summary(
        self, optics: Optics, geometry: Geometry
    ) -> Dict[str, Tuple[float, Optional[float]]]:
        """Feature table: name -> (value in nm or physical units, value in pixels)."""
        px, dz = geometry.pixel_size, geometry.z_step
        m, f = self.maximum, self.fwhm
        return {
            "Numerical Aperture": (optics.na, None),
            "Wavelength": (optics.wavelength, None),
            "Energy": (self.energy, None),
            "Size X": (self.nx * px, self.nx),
            "Size Y": (self.ny * px, self.ny),
            "Size Z": (self.nz * dz, self.nz),
            "Pixelsize X": (px, None),
            "Pixelsize Y": (px, None),
            "Axial Z-step": (dz, None),
            "FWHM Lateral X": (f.x * px, f.x),
            "FWHM Lateral Y": (f.y * px, f.y),
            "FWHM Axial Z": (f.z * dz, f.z),
            "Energy under FWHM": (f.value, None),
            "Max Lateral X": (m.x * px, m.x),
            "Max Lateral Y": (m.y * px, m.y),
            "Max Axial Z": (m.z * dz, m.z),
            "Max Value": (m.value, None),
        }

    # -------------------------------------------------------------------------
    # Output conversion
    # -------------------------------------------------------------------------

    def as_type(self, output=OutputType.FLOAT32) -> np.ndarray:
        """Copy of the voxels in the requested output type.

        Integer outputs assume a linear volume in [0, 1] and clip after
        scaling to the full range of the type.
        """
        output = OutputType.parse(output)
        if output is OutputType.UINT8:
            return np.clip(self.data * 255.0, 0, 255).astype(np.uint8)
        if output is OutputType.UINT16:
            return np.clip(self.data * 65535.0, 0, 65535).astype(np.uint16)
        return self.data.astype(np.float32)

    def histogram(self, nbins: int = 256) -> np.ndarray:
        """Counts of voxel values in [0, 1] over ``nbins`` equal bins.

        Negative values are ignored, values at or above 1 land in the last bin.
        """
        if nbins < 1:
            raise ValueError(f"nbins must be positive, got {nbins}")
        values = self.data[self.data >= 0] * nbins
        index = np.minimum(values.astype(np.int64), nbins - 1)
        return np.bincount(index, minlength=nbins)

    def to_torch(self, device=None):
        """Hand the voxels to PyTorch, e.g. to deconvolve with this PSF.

        Args:
            device: Optional torch device for the returned tensor.

        Returns:
            Float64 tensor of shape (nz, ny, nx) sharing memory on CPU.
        """
        import torch

        tensor = torch.from_numpy(self.data)
        if device is not None:
            tensor = tensor.to(device)
        return tensor

    def __repr__(self) -> str:
        return (
            f"Volume(nx={self.nx}, ny={self.ny}, nz={self.nz}, "
            f"max={self.maximum.value:.4g}, aborted={self.aborted})"
        )
