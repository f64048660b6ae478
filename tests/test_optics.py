"""Tests for configuration dataclasses, enumerations and the model registry."""

import math

import numpy as np
import pytest
from loguru import logger

from psfgen import (
    Accuracy,
    Geometry,
    Optics,
    OutputType,
    PSFEngine,
    Scale,
    make_model,
    setup_logging,
)
from psfgen.errors import ValidationError
from psfgen.models import GibsonLanni, LateralFunction


class TestOptics:
    def test_defaults(self):
        optics = Optics()
        assert optics.na == 1.4
        assert optics.wavelength == 610.0

    def test_wavenumber(self):
        assert np.isclose(Optics(wavelength=500.0).k0, 2 * math.pi / 500.0)

    @pytest.mark.parametrize("kwargs", [{"na": 0.0}, {"wavelength": -1.0}])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            Optics(**kwargs)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            Optics(na=-1.0)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Optics().na = 1.2


class TestGeometry:
    def test_shape_and_centre(self):
        geometry = Geometry(nx=8, ny=6, nz=3)
        assert geometry.shape == (3, 6, 8)
        assert geometry.center == (3.5, 2.5)

    def test_defocus_is_centred(self):
        geometry = Geometry(nz=3, z_step=250.0)
        assert geometry.defocus(0) == -250.0
        assert geometry.defocus(1) == 0.0
        assert geometry.defocus(2) == 250.0

    def test_enums_from_labels(self):
        geometry = Geometry(scale="Decibel", output="8-bits")
        assert geometry.scale is Scale.DECIBEL
        assert geometry.output is OutputType.UINT8

    @pytest.mark.parametrize(
        "kwargs", [{"nx": 0}, {"nz": 2.5}, {"pixel_size": 0.0}, {"scale": "cubic"}]
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            Geometry(**kwargs)


class TestEnumerations:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Good", Accuracy.GOOD),
            ("best", Accuracy.BEST),
            (1, Accuracy.BETTER),
            (Accuracy.FAST, Accuracy.FAST),
        ],
    )
    def test_accuracy_parse(self, value, expected):
        assert Accuracy.parse(value) is expected

    def test_unknown_member_lists_choices(self):
        with pytest.raises(ValidationError, match="Good, Better, Best, Fast"):
            Accuracy.parse("perfect")

    def test_labels(self):
        assert LateralFunction.CARDINAL_SINE.label == "Cardinal-Sine"
        assert OutputType.UINT16.label == "16-bits"


class TestRegistry:
    def test_case_insensitive(self):
        model = make_model("gl", accuracy="Better")
        assert isinstance(model, GibsonLanni)
        assert model.k == 5

    def test_unknown_model(self):
        with pytest.raises(ValidationError):
            make_model("Airy")

    def test_unknown_parameter(self):
        with pytest.raises(ValidationError, match="wavelength"):
            make_model("BW", wavelength=500.0)


class TestLogging:
    def test_file_sink_receives_engine_records(self, tmp_path):
        log_file = tmp_path / "psfgen.log"
        setup_logging(level="DEBUG", log_file=log_file)
        try:
            PSFEngine(
                make_model("Gaussian"), Optics(), Geometry(nx=8, ny=8, nz=3)
            ).compute()
        finally:
            logger.remove()
            logger.disable("psfgen")
        text = log_file.read_text()
        assert "Starting Gaussian on 8x8x3" in text
        assert "Finished Gaussian" in text
