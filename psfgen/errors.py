"""Exceptions raised by the PSF engine."""

__all__ = [
    "PSFError",
    "ValidationError",
    "ComputationError",
    "ComputationCancelled",
]


class PSFError(Exception):
    """Base class for all psfgen errors."""


class ValidationError(PSFError, ValueError):
    """Geometry or parameters violate a model constraint.

    Raised before any plane is computed; the caller may correct the
    input and try again.
    """


class ComputationError(PSFError):
    """A plane task failed while the volume was being computed.

    The underlying exception is available as ``__cause__``.
    """


class ComputationCancelled(PSFError):
    """Raised inside plane tasks when the cancellation token is set."""
