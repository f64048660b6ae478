"""Tests for volume statistics, rescale and export."""

import numpy as np
import pytest

from psfgen import Geometry, Optics, OutputType, PSFEngine, Scale, Volume, make_model
from psfgen.errors import PSFError
from psfgen.volume import RESCALE_FLOOR


@pytest.fixture
def profile_volume():
    """1D peak along x in a 7x1x1 volume."""
    return Volume.from_array(
        np.array([0.0, 0.2, 0.6, 1.0, 0.6, 0.2, 0.0]).reshape(1, 1, 7)
    )


class TestMaximumAndEnergy:
    """Tests for the single-pass statistics."""

    def test_uniform_volume(self):
        v = 0.5
        volume = Volume.from_array(np.full((2, 3, 4), v))
        m = volume.determine_maximum_and_energy()
        assert np.isclose(volume.energy, v * v * 4 * 3 * 2)
        assert m.value == v
        assert (m.x, m.y, m.z) == (0, 0, 0)

    def test_first_maximum_in_scan_order(self):
        """Ties resolve to the lowest z, then the lowest k = x + nx·y."""
        data = np.zeros((3, 3, 4))
        data[2, 0, 0] = 5.0
        data[1, 2, 0] = 5.0
        data[1, 0, 3] = 5.0
        m = Volume.from_array(data).determine_maximum_and_energy()
        assert (m.x, m.y, m.z) == (3, 0, 1)

    def test_put_plane_uses_row_major_index(self):
        volume = Volume(4, 3, 2)
        flat = np.arange(12.0)
        volume.put_plane(1, flat)
        assert volume.data[1, 2, 1] == flat[1 + 4 * 2]

    def test_put_plane_rejects_wrong_size(self):
        with pytest.raises(ValueError):
            Volume(4, 3, 2).put_plane(0, np.zeros(10))


class TestFWHM:
    """Tests for the FWHM walk."""

    def test_two_sided(self, profile_volume):
        profile_volume.determine_maximum_and_energy()
        fwhm = profile_volume.estimate_fwhm()
        assert fwhm.x == 4
        # y and z walk off both edges of a single sample
        assert fwhm.y == 2
        assert fwhm.z == 2
        assert np.isclose(fwhm.value, 2.6)

    def test_legacy_one_sided(self, profile_volume):
        profile_volume.determine_maximum_and_energy()
        fwhm = profile_volume.estimate_fwhm(legacy=True)
        assert fwhm.x == 2
        assert fwhm.y == 1
        assert np.isclose(fwhm.value, 1.8)

    def test_computes_maximum_when_missing(self, profile_volume):
        assert profile_volume.estimate_fwhm().x == 4


class TestRescale:
    """Tests for the intensity transforms."""

    @pytest.fixture
    def volume(self):
        data = np.array([[[0.0, 0.5], [1.0, 2.0]]])
        volume = Volume.from_array(data)
        volume.determine_maximum_and_energy()
        return volume

    def test_linear_round_trip(self, volume):
        original = volume.data.copy()
        peak = volume.maximum.value
        volume.rescale(Scale.LINEAR)
        assert volume.data.max() == 1.0
        assert np.allclose(volume.data * peak, original)

    def test_log(self, volume):
        volume.rescale("Log")
        assert np.isclose(volume.data[0, 1, 1], 0.0)
        assert np.isclose(volume.data[0, 0, 0], np.log(RESCALE_FLOOR))

    def test_sqrt(self, volume):
        volume.rescale(Scale.SQRT)
        assert np.isclose(volume.data[0, 0, 1], 0.5)

    def test_decibel(self, volume):
        volume.rescale(Scale.DECIBEL)
        assert np.isclose(volume.data[0, 1, 0], 20 * np.log10(0.5))
        assert np.isclose(volume.data[0, 0, 0], -120.0)

    def test_only_once(self, volume):
        volume.rescale()
        with pytest.raises(PSFError):
            volume.rescale()

    def test_non_positive_maximum_is_skipped(self):
        volume = Volume(4, 4, 3)
        volume.determine_maximum_and_energy()
        volume.rescale(Scale.LOG)
        assert np.all(volume.data == 0.0)


class TestReports:
    """Tests for the per-plane and summary reports."""

    def test_plane_information(self):
        data = np.stack([np.ones((4, 6)), np.full((4, 6), 0.5)])
        volume = Volume.from_array(data)
        volume.determine_maximum_and_energy()
        info = volume.plane_information()
        assert info.shape == (2, 4)
        assert np.allclose(info[:, 0], [0, 1])
        assert np.allclose(info[:, 1], [1.0, 0.5])
        assert np.allclose(info[:, 2], [0.8, 0.2])
        # uniform planes share the same efficiency radius
        x = np.arange(6) - 2.5
        y = np.arange(4)[:, np.newaxis] - 1.5
        expected = np.sqrt(np.mean(x * x + y * y))
        assert np.allclose(info[:, 3], expected)

    @pytest.mark.parametrize("scale", list(Scale))
    def test_plane_information_survives_rescale(self, scale):
        data = np.stack([np.ones((4, 6)), np.full((4, 6), 0.5)])
        before = Volume.from_array(data).plane_information()
        volume = Volume.from_array(data)
        volume.determine_maximum_and_energy()
        volume.rescale(scale)
        assert np.allclose(volume.plane_information(), before)

    @pytest.mark.parametrize("scale", list(Scale))
    def test_engine_volume_reports_every_scale(self, scale):
        volume = PSFEngine(
            make_model("BW"), Optics(), Geometry(nx=8, ny=8, nz=3, scale=scale)
        ).compute()
        info = volume.plane_information()
        assert np.all(np.isfinite(info))
        assert np.isclose(info[:, 1].max(), 1.0)
        assert np.isclose(info[:, 2].sum(), 1.0)
        assert np.all(info[:, 3] > 0)

    def test_summary(self, profile_volume):
        profile_volume.determine_maximum_and_energy()
        profile_volume.estimate_fwhm()
        geometry = Geometry(nx=7, ny=1, nz=1, pixel_size=80.0, z_step=200.0)
        summary = profile_volume.summary(Optics(na=1.2, wavelength=500.0), geometry)
        assert summary["Numerical Aperture"] == (1.2, None)
        assert summary["FWHM Lateral X"] == (4 * 80.0, 4)
        assert summary["Max Lateral X"] == (3 * 80.0, 3)
        assert summary["Size Z"] == (200.0, 1)
        assert summary["Max Value"] == (1.0, None)


class TestExport:
    """Tests for output conversion."""

    @pytest.fixture
    def volume(self):
        return Volume.from_array(np.array([[[0.0, 0.5, 1.0, 1.2, -0.1]]]))

    def test_uint8(self, volume):
        out = volume.as_type(OutputType.UINT8)
        assert out.dtype == np.uint8
        assert out.ravel().tolist() == [0, 127, 255, 255, 0]

    def test_uint16(self, volume):
        out = volume.as_type("16-bits")
        assert out.dtype == np.uint16
        assert out.ravel().tolist() == [0, 32767, 65535, 65535, 0]

    def test_float32(self, volume):
        out = volume.as_type()
        assert out.dtype == np.float32
        assert np.allclose(out, volume.data)

    def test_histogram(self, volume):
        counts = volume.histogram(2)
        # negatives are ignored, values >= 1 fall into the last bin
        assert counts.tolist() == [1, 3]

    def test_to_torch(self, volume):
        torch = pytest.importorskip("torch")
        tensor = volume.to_torch()
        assert isinstance(tensor, torch.Tensor)
        assert tuple(tensor.shape) == volume.shape
        assert np.allclose(tensor.numpy(), volume.data)
