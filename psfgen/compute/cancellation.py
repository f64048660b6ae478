"""Cooperative cancellation shared by the plane tasks of one volume."""

import threading

from ..errors import ComputationCancelled

__all__ = ["CancellationToken"]


class CancellationToken:
    """Thread-safe flag polled by plane tasks at deterministic points.

    Tasks call :meth:`check` once per radial sample, quadrature
    refinement or image row. Setting the token never interrupts a task;
    it stops at its next poll.

    Example:
        ```python
        token = CancellationToken()
        token.cancel()
        token.check()  # raises ComputationCancelled
        ```
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Raise ComputationCancelled if the token has been set."""
        if self._event.is_set():
            raise ComputationCancelled("Computation cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
