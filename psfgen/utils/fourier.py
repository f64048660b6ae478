"""Fourier transform utilities for the OTF-defined models."""

import numpy as np

__all__ = [
    "is_power_of_two",
    "radial_frequency",
    "fill_hermitian",
    "center_shift",
    "otf_to_psf",
]


def is_power_of_two(n: int) -> bool:
    """Return True if ``n`` is a positive power of two."""
    return n > 0 and (n & (n - 1)) == 0


def radial_frequency(
    nfx: int,
    nfy: int,
    xsize: float,
    ysize: float,
) -> np.ndarray:
    """Radial angular frequency over one quadrant of the spectrum.

    Args:
        nfx: Number of frequency samples along x (including DC).
        nfy: Number of frequency samples along y (including DC).
        xsize: Divisor mapping index ``x`` to ``π·x/xsize``.
        ysize: Divisor mapping index ``y`` to ``π·y/ysize``.

    Returns:
        Array of shape (nfy, nfx) with ``sqrt(wx² + wy²)``.
    """
    wx = np.pi * np.arange(nfx) / xsize
    wy = np.pi * np.arange(nfy) / ysize
    return np.hypot(wx[np.newaxis, :], wy[:, np.newaxis])


def fill_hermitian(quadrant: np.ndarray, nx: int, ny: int) -> np.ndarray:
    """Expand a real, even quadrant to a full (ny, nx) spectrum.

    The quadrant holds non-negative frequencies with DC at (0, 0). Every
    output sample takes the value of its folded frequency
    ``(min(x, nx - x), min(y, ny - y))``, so the result is real and even,
    which makes its inverse transform real.

    Args:
        quadrant: Array of shape at least (ny // 2 + 1, nx // 2 + 1).
        nx: Output width.
        ny: Output height.

    Returns:
        Full spectrum of shape (ny, nx), DC at corner.

    Example:
        ```python
        q = np.ones((5, 5))
        spectrum = fill_hermitian(q, 8, 8)  # shape (8, 8)
        ```
    """
    fx = np.arange(nx)
    fy = np.arange(ny)
    fx = np.minimum(fx, nx - fx)
    fy = np.minimum(fy, ny - fy)
    if quadrant.shape[0] <= fy.max() or quadrant.shape[1] <= fx.max():
        raise ValueError(
            f"Quadrant shape {quadrant.shape} too small for a "
            f"({ny}, {nx}) spectrum"
        )
    return quadrant[np.ix_(fy, fx)]


def center_shift(plane: np.ndarray) -> np.ndarray:
    """Move the DC sample from the corner to the array centre."""
    return np.fft.fftshift(plane, axes=(-2, -1))


def otf_to_psf(quadrant: np.ndarray, nx: int, ny: int) -> np.ndarray:
    """Inverse-transform a real even OTF quadrant into a centred PSF plane.

    Physics:
        PSF(x, y) = shift( IFFT{ OTF(wx, wy) } )

    Returns:
        Real array of shape (ny, nx) with the peak at (ny // 2, nx // 2).
    """
    spectrum = fill_hermitian(quadrant, nx, ny)
    psf = np.real(np.fft.ifft2(spectrum))
    return center_shift(psf)
