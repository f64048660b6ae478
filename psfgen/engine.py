"""Entry point that validates, computes and post-processes one PSF volume.

Progress runs from 1 % (start) to 4 % (volume allocated) and 5 %
(planes dispatched), then grows by 90/nz per completed plane. Statistics
and the rescale bring it to 100 %.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger

from .compute.cancellation import CancellationToken
from .errors import ComputationCancelled, ComputationError, ValidationError
from .models.base import PSFModel
from .optics import Geometry, Optics
from .scheduler import PlaneScheduler
from .volume import Volume

__all__ = [
    "Success",
    "Failure",
    "Cancelled",
    "Outcome",
    "EngineListener",
    "PSFEngine",
]


@dataclass(frozen=True)
class Success:
    volume: Volume


@dataclass(frozen=True)
class Failure:
    error: ComputationError


@dataclass(frozen=True)
class Cancelled:
    pass


Outcome = Union[Success, Failure, Cancelled]


class EngineListener:
    """Receives engine events. Override the methods of interest.

    In asynchronous mode the callbacks run on worker threads.
    """

    def on_progress(self, percent: float, message: str) -> None:
        pass

    def on_success(self, volume: Volume) -> None:
        pass

    def on_failure(self, error: Exception) -> None:
        pass

    def on_cancelled(self) -> None:
        pass


class PSFEngine:
    """Compute a PSF volume with one model.

    An engine computes a single volume; build a new one for every run.

    Args:
        model: The PSF model.
        optics: Shared optical parameters.
        geometry: Output grid, scale and type.
        listener: Optional receiver of progress and outcome events.
        max_workers: Plane worker threads, ``min(nz, cpu_count)`` by default.

    Example:
        ```python
        from psfgen import PSFEngine, Optics, Geometry, make_model

        engine = PSFEngine(
            make_model("BW"),
            Optics(na=1.4, wavelength=610.0),
            Geometry(nx=128, ny=128, nz=65, pixel_size=100.0, z_step=250.0),
        )
        outcome = engine.run()
        if isinstance(outcome, Success):
            psf = outcome.volume.data
        ```
    """

    def __init__(
        self,
        model: PSFModel,
        optics: Optics,
        geometry: Geometry,
        listener: Optional[EngineListener] = None,
        max_workers: Optional[int] = None,
    ):
        self.model = model
        self.optics = optics
        self.geometry = geometry
        self.listener = listener if listener is not None else EngineListener()
        self.max_workers = max_workers
        self.token = CancellationToken()
        self.volume: Optional[Volume] = None
        self.progress = 0.0

    def validate(self) -> Optional[str]:
        """Return the first grid or parameter error, or None when runnable."""
        return self.model.validate(self.optics, self.geometry)

    def cancel(self) -> None:
        """Ask every running plane to stop at its next poll."""
        logger.info(f"Cancelling {self.model.short_name}")
        self.token.cancel()

    def run(self) -> Outcome:
        """Compute the volume on the calling thread.

        Raises:
            ValidationError: If :meth:`validate` reports an error. No plane
                is computed in that case.
        """
        self._check()
        return self._execute()

    def run_async(self) -> "Future[Outcome]":
        """Start the computation in the background.

        Validation happens immediately on the calling thread.

        Raises:
            ValidationError: If :meth:`validate` reports an error.
        """
        self._check()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="psfgen-engine")
        future = executor.submit(self._execute)
        executor.shutdown(wait=False)
        return future

    def compute(self) -> Volume:
        """Run synchronously and return the volume.

        Raises:
            ValidationError: If the configuration is invalid.
            ComputationError: If a plane failed.
            ComputationCancelled: If the engine was cancelled.
        """
        outcome = self.run()
        if isinstance(outcome, Failure):
            raise outcome.error
        if isinstance(outcome, Cancelled):
            raise ComputationCancelled(f"{self.model.short_name} cancelled")
        return outcome.volume

    def _check(self) -> None:
        error = self.validate()
        if error is not None:
            logger.warning(f"{self.model.short_name}: {error}")
            raise ValidationError(error)

    def _report(self, percent: float, message: str) -> None:
        self.progress = percent
        logger.debug(f"{percent:5.1f}% {message}")
        self.listener.on_progress(percent, message)

    def _on_plane(self, z: int, done: int, nz: int) -> None:
        self._report(5.0 + 90.0 * done / nz, f"{z} / {nz}")

    def _execute(self) -> Outcome:
        name = self.model.short_name
        g = self.geometry
        logger.info(f"Starting {name} on {g.nx}x{g.ny}x{g.nz}")
        self._report(1.0, f"Starting {name}...")

        volume = Volume(g.nx, g.ny, g.nz)
        self.volume = volume
        self._report(4.0, f"Init {name}...")

        scheduler = PlaneScheduler(
            self.model,
            self.optics,
            g,
            volume,
            self.token,
            on_plane=self._on_plane,
            max_workers=self.max_workers,
        )
        self._report(5.0, f"Executing {name}...")
        try:
            scheduler.run()
        except ComputationCancelled:
            volume.aborted = True
            logger.info(f"{name} cancelled")
            self.listener.on_cancelled()
            return Cancelled()
        except ComputationError as e:
            return self._fail(e)

        try:
            self._finish(volume)
        except ComputationError as e:
            return self._fail(e)
        except Exception as e:
            error = ComputationError(f"Post-processing of {name} failed: {e}")
            error.__cause__ = e
            return self._fail(error)
        return Success(volume)

    def _finish(self, volume: Volume) -> None:
        """Statistics, rescale and the success event."""
        name = self.model.short_name
        volume.determine_maximum_and_energy()
        volume.estimate_fwhm()
        volume.rescale(self.geometry.scale)
        self._report(100.0, f"{name} done")
        logger.info(
            f"Finished {name}: max {volume.maximum.value:.4g} at "
            f"({volume.maximum.x}, {volume.maximum.y}, {volume.maximum.z}), "
            f"energy {volume.energy:.4g}"
        )
        self.listener.on_success(volume)

    def _fail(self, error: ComputationError) -> Failure:
        logger.error(f"{self.model.short_name} failed: {error}")
        self.listener.on_failure(error)
        return Failure(error)
