"""Mathematical utilities shared by the PSF models."""

from .fourier import (
    is_power_of_two,
    radial_frequency,
    fill_hermitian,
    center_shift,
    otf_to_psf,
)

__all__ = [
    "is_power_of_two",
    "radial_frequency",
    "fill_hermitian",
    "center_shift",
    "otf_to_psf",
]
