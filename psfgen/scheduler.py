"""Plane-parallel execution of a PSF model.

Each axial index is an independent task that writes one plane of the
volume. Tasks run on a thread pool; NumPy and SciPy release the GIL in
their vectorized kernels, so planes overlap in practice.
"""

import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from .compute.cancellation import CancellationToken
from .errors import ComputationCancelled, ComputationError
from .models.base import PSFModel
from .optics import Geometry, Optics
from .volume import Volume

__all__ = ["PlaneTask", "PlaneScheduler", "default_workers"]

# (z, planes_done, nz) -> None
PlaneCallback = Callable[[int, int, int], None]


def default_workers(nz: int) -> int:
    return max(1, min(nz, os.cpu_count() or 1))


@dataclass
class PlaneTask:
    """Compute plane ``z`` and store it in the volume."""

    model: PSFModel
    z: int
    optics: Optics
    geometry: Geometry
    volume: Volume
    token: CancellationToken

    def __call__(self) -> int:
        self.token.check()
        plane = self.model.compute_plane(self.z, self.optics, self.geometry, self.token)
        self.token.check()
        self.volume.put_plane(self.z, plane)
        return self.z


class PlaneScheduler:
    """Run one :class:`PlaneTask` per plane and wait for all of them.

    Args:
        model: Model computing the planes.
        optics: Shared optical parameters.
        geometry: Output grid.
        volume: Destination, written once per plane.
        token: Cancellation token shared by all tasks.
        on_plane: Called after each completed plane, serialized by a lock.
        max_workers: Thread count, ``min(nz, cpu_count)`` by default.

    Example:
        ```python
        scheduler = PlaneScheduler(model, optics, geometry, volume, token)
        scheduler.run()  # raises ComputationError or ComputationCancelled
        ```
    """

    def __init__(
        self,
        model: PSFModel,
        optics: Optics,
        geometry: Geometry,
        volume: Volume,
        token: CancellationToken,
        on_plane: Optional[PlaneCallback] = None,
        max_workers: Optional[int] = None,
    ):
        self.model = model
        self.optics = optics
        self.geometry = geometry
        self.volume = volume
        self.token = token
        self.on_plane = on_plane
        self.max_workers = max_workers or default_workers(geometry.nz)
        self._lock = threading.Lock()
        self._done = 0

    def _task(self, z: int) -> int:
        task = PlaneTask(
            self.model, z, self.optics, self.geometry, self.volume, self.token
        )
        task()
        with self._lock:
            self._done += 1
            if self.on_plane is not None:
                self.on_plane(z, self._done, self.geometry.nz)
        return z

    def run(self) -> None:
        """Compute every plane.

        Raises:
            ComputationError: If any plane failed. Remaining planes are
                cancelled and the first failure is chained as the cause.
            ComputationCancelled: If the token was set before every plane
                was written and no plane failed.
        """
        nz = self.geometry.nz
        name = self.model.short_name
        logger.debug(f"Scheduling {nz} planes of {name} on {self.max_workers} workers")

        failure = None
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix=f"psfgen-{name}"
        ) as executor:
            futures = {executor.submit(self._task, z): z for z in range(nz)}
            for future in as_completed(futures):
                z = futures[future]
                try:
                    future.result()
                except ComputationCancelled:
                    continue
                except Exception as e:
                    if failure is None:
                        logger.error(f"Plane {z} of {name} failed: {e}")
                        failure = (z, e)
                        self.token.cancel()

        if failure is not None:
            z, cause = failure
            if isinstance(cause, ComputationError):
                raise cause
            raise ComputationError(f"Plane {z} of {name} failed: {cause}") from cause
        if self.token.cancelled and self._done < nz:
            raise ComputationCancelled(f"{name} cancelled after {self._done}/{nz} planes")
