"""Tests for radial-profile tabulation and plane reconstruction."""

import numpy as np
import pytest

from psfgen import Geometry, Optics
from psfgen.compute import (
    CancellationToken,
    build_radial_table,
    max_radius,
    radial_plane,
    reconstruct_plane,
)
from psfgen.errors import ComputationCancelled
from psfgen.models import make_model


class TestTable:
    """Tests for the radial table layout."""

    def test_max_radius(self):
        assert max_radius(8, 8) == 7
        assert max_radius(16, 4) == 10

    def test_length_includes_guard_sample(self):
        table = build_radial_table(lambda r: r, 8, 8, 1.0, oversampling=2)
        assert table.shape == (7 * 2 + 1,)

    def test_samples_at_fractional_pixels(self):
        """Entry n holds the intensity at n/S pixels, in nm."""
        table = build_radial_table(lambda r: r, 8, 8, 100.0, oversampling=2)
        assert np.allclose(table, 50.0 * np.arange(15))

    def test_invalid_oversampling(self):
        with pytest.raises(ValueError):
            build_radial_table(lambda r: r, 8, 8, 1.0, oversampling=0)


class TestReconstruction:
    """Tests for the per-pixel linear interpolation."""

    def test_linear_profile_reproduces_distance(self):
        """Interpolating a linear profile gives the exact pixel distance."""
        nx, ny, s = 10, 6, 3
        table = np.arange(max_radius(nx, ny) * s + 1) / s
        plane = reconstruct_plane(table, nx, ny, oversampling=s)

        x0, y0 = (nx - 1) / 2.0, (ny - 1) / 2.0
        yy, xx = np.mgrid[0:ny, 0:nx]
        assert np.allclose(plane, np.hypot(xx - x0, yy - y0))

    def test_plane_is_radially_symmetric(self):
        table = np.exp(-np.arange(15) / 4.0)
        plane = reconstruct_plane(table, 8, 8, oversampling=2)
        assert np.allclose(plane, plane[::-1, :])
        assert np.allclose(plane, plane[:, ::-1])
        assert np.allclose(plane, plane.T)

    def test_cancelled_token_raises(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ComputationCancelled):
            reconstruct_plane(np.ones(15), 8, 8, oversampling=2, token=token)


class TestAgainstDirectQuadrature:
    """The table must agree with evaluating the integral per pixel."""

    @pytest.fixture(params=["BW", "GL", "RW", "TV", "VRIGL"])
    def setup(self, request):
        optics = Optics(na=1.4, wavelength=610.0)
        geometry = Geometry(nx=9, ny=9, nz=3, pixel_size=60.0, z_step=200.0)
        model = make_model(request.param)
        integrate = model.integrator(0, optics, geometry)
        return model, integrate, geometry

    def test_pixels_on_table_nodes_match(self, setup):
        """Pixels at integer radius read the table directly."""
        model, integrate, g = setup
        plane = radial_plane(integrate, g.nx, g.ny, g.pixel_size, model.oversampling)
        # centre is (4, 4): pixel (7, 4) is 3 px away, (4, 4) is on axis
        assert np.isclose(plane[4, 7], integrate(3 * g.pixel_size))
        assert np.isclose(plane[4, 4], integrate(0.0))

    def test_pixels_between_nodes_are_bracketed(self, setup):
        """Each pixel lies between the direct values at its bracketing radii."""
        model, integrate, g = setup
        s = model.oversampling
        plane = radial_plane(integrate, g.nx, g.ny, g.pixel_size, s)
        for y, x in [(0, 0), (2, 5), (6, 1)]:
            rho = np.hypot(x - 4, y - 4)
            n = np.floor(rho * s)
            lo = integrate(n / s * g.pixel_size)
            hi = integrate((n + 1) / s * g.pixel_size)
            assert min(lo, hi) - 1e-12 <= plane[y, x] <= max(lo, hi) + 1e-12


class TestHalfPixelNodes:
    """Oversampled models tabulate every half pixel."""

    @pytest.mark.parametrize("name", ["GL", "TV", "VRIGL"])
    def test_half_pixel_radius_reads_the_table(self, name):
        optics = Optics(na=1.4, wavelength=610.0)
        # even width puts the axis between columns: (3.5, 4)
        geometry = Geometry(nx=8, ny=9, nz=3, pixel_size=60.0, z_step=200.0)
        model = make_model(name)
        assert model.oversampling == 2
        integrate = model.integrator(0, optics, geometry)
        plane = radial_plane(
            integrate, geometry.nx, geometry.ny, geometry.pixel_size, 2
        )
        assert np.isclose(plane[4, 5], integrate(1.5 * geometry.pixel_size))
        assert np.isclose(plane[4, 0], integrate(3.5 * geometry.pixel_size))
