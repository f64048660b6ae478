"""Tests for the Fourier-domain models and FFT helpers."""

import numpy as np
import pytest

from psfgen import Geometry, Optics
from psfgen.compute import CancellationToken
from psfgen.models import (
    Defocussing,
    DefocussingParameters,
    Koehler,
    KoehlerParameters,
    interpolate_distance,
    make_model,
)
from psfgen.utils import fill_hermitian, is_power_of_two, otf_to_psf, radial_frequency


@pytest.fixture
def optics():
    return Optics(na=1.4, wavelength=610.0)


@pytest.fixture
def geometry():
    return Geometry(nx=32, ny=16, nz=5)


class TestFourierHelpers:
    """Tests for the Hermitian fill and inverse transform."""

    @pytest.mark.parametrize("n, expected", [(1, True), (64, True), (48, False), (0, False)])
    def test_is_power_of_two(self, n, expected):
        assert is_power_of_two(n) is expected

    def test_fill_hermitian_is_even(self):
        quadrant = np.random.default_rng(0).random((5, 9))
        spectrum = fill_hermitian(quadrant, 16, 8)
        assert spectrum.shape == (8, 16)
        flipped = np.roll(spectrum[::-1, ::-1], shift=(1, 1), axis=(0, 1))
        assert np.allclose(spectrum, flipped)

    def test_fill_hermitian_rejects_small_quadrant(self):
        with pytest.raises(ValueError):
            fill_hermitian(np.ones((3, 3)), 16, 16)

    def test_flat_otf_gives_centred_impulse(self):
        psf = otf_to_psf(np.ones((5, 9)), 16, 8)
        expected = np.zeros((8, 16))
        expected[4, 8] = 1.0
        assert np.allclose(psf, expected)

    def test_radial_frequency(self):
        w = radial_frequency(3, 2, 2.0, 1.0)
        assert w.shape == (2, 3)
        assert np.isclose(w[1, 2], np.hypot(np.pi, np.pi))


class TestDistance:
    def test_interpolation_endpoints(self):
        assert interpolate_distance(0, 2, 30.0, 1.0, 20.0) == 30.0
        assert interpolate_distance(2, 2, 30.0, 1.0, 20.0) == 1.0
        assert interpolate_distance(4, 2, 30.0, 1.0, 20.0) == 20.0
        assert interpolate_distance(1, 2, 30.0, 1.0, 20.0) == 15.5


class TestDefocussing:
    """Tests for the lens defocussing model."""

    def test_sizes_must_be_powers_of_two(self, optics):
        model = Defocussing()
        assert model.validate(optics, Geometry(nx=48, ny=32, nz=5)) is not None
        assert model.validate(optics, Geometry(nx=32, ny=32, nz=5)) is None

    def test_plane_sums_to_one(self, optics, geometry):
        """The OTF is 1 at DC, so each PSF plane has unit sum."""
        model = Defocussing()
        plane = model.compute_plane(0, optics, geometry, CancellationToken())
        assert plane.shape == (16, 32)
        assert np.isclose(plane.sum(), 1.0)

    def test_peak_at_centre(self, optics, geometry):
        model = Defocussing()
        plane = model.compute_plane(2, optics, geometry, CancellationToken())
        assert np.unravel_index(np.argmax(plane), plane.shape) == (8, 16)

    def test_distance_equal_to_zi_gives_empty_plane(self, optics, geometry):
        model = Defocussing(DefocussingParameters(zi=2000.0, d_mid=2000.0))
        plane = model.compute_plane(2, optics, geometry, CancellationToken())
        assert np.all(plane == 0.0)


class TestKoehler:
    """Tests for the Köhler illumination model."""

    def test_plane_sums_to_one(self, optics, geometry):
        plane = Koehler().compute_plane(1, optics, geometry, CancellationToken())
        assert np.isclose(plane.sum(), 1.0)

    def test_defocus_widens_psf(self, optics, geometry):
        """Top and bottom planes are more defocussed than the middle one."""
        model = Koehler(KoehlerParameters(d_top=6.0, d_mid=0.0, d_bottom=6.0))
        token = CancellationToken()
        middle = model.compute_plane(2, optics, geometry, token)
        top = model.compute_plane(0, optics, geometry, token)
        assert middle.max() > top.max()
        assert np.unravel_index(np.argmax(middle), middle.shape) == (8, 16)

    def test_registry(self):
        assert isinstance(make_model("koehler"), Koehler)
        assert isinstance(make_model("Defocus"), Defocussing)
