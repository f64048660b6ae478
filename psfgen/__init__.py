"""psfgen - 3D point spread function synthesis for optical microscopy.

Computes the 3D PSF of a widefield microscope as a stack of planes from
one of several optical models:

- **Diffraction integrals**: Born & Wolf, Gibson & Lanni, variable RI
  Gibson & Lanni (scalar), Richards & Wolf, Török & Varga (vectorial)
- **Closed-form**: a lateral function whose width grows with defocus
- **Fourier-domain**: lens defocussing and Köhler illumination OTFs

Planes are computed in parallel, then the volume is summarized (maximum,
energy, FWHM) and rescaled.

Example:
    >>> from psfgen import Optics, Geometry, PSFEngine, make_model
    >>>
    >>> optics = Optics(na=1.4, wavelength=610.0)   # nm
    >>> geometry = Geometry(
    ...     nx=128, ny=128, nz=33,
    ...     pixel_size=100.0,                       # nm
    ...     z_step=250.0,                           # nm
    ...     scale="Linear",
    ... )
    >>> model = make_model("GL", ns=1.33, particle_z=2000.0, accuracy="Good")
    >>> volume = PSFEngine(model, optics, geometry).compute()
    >>> volume.data.shape
    (33, 128, 128)

Reference:
    Kirshner, H. et al. "3-D PSF fitting for fluorescence microscopy:
    implementation and localization application." Journal of Microscopy
    249.1 (2013): 13-25.
"""

from loguru import logger

__version__ = "0.1.0"

# =============================================================================
# Configuration and errors
# =============================================================================
from .errors import (
    PSFError,
    ValidationError,
    ComputationError,
    ComputationCancelled,
)
from .optics import (
    Accuracy,
    Scale,
    OutputType,
    Optics,
    Geometry,
)

# =============================================================================
# Models
# =============================================================================
from .models import (
    PSFModel,
    DiffractionModel,
    BornWolf,
    BornWolfParameters,
    GibsonLanni,
    GibsonLanniParameters,
    VariableRIGibsonLanni,
    VariableRIGibsonLanniParameters,
    RIVariation,
    RichardsWolf,
    RichardsWolfParameters,
    TorokVarga,
    TorokVargaParameters,
    DefocusPlane,
    DefocusPlaneParameters,
    LateralFunction,
    ZFunction,
    Defocussing,
    DefocussingParameters,
    Koehler,
    KoehlerParameters,
    MODELS,
    make_model,
)

# =============================================================================
# Computation
# =============================================================================
from .compute import CancellationToken, KirchhoffIntegrator, Quadrature
from .volume import Point3D, Volume
from .scheduler import PlaneScheduler, PlaneTask
from .engine import (
    PSFEngine,
    EngineListener,
    Outcome,
    Success,
    Failure,
    Cancelled,
)
from .logging_config import setup_logging

# Silent unless the application opts in
logger.disable("psfgen")

__all__ = [
    "__version__",
    # Errors
    "PSFError",
    "ValidationError",
    "ComputationError",
    "ComputationCancelled",
    # Configuration
    "Accuracy",
    "Scale",
    "OutputType",
    "Optics",
    "Geometry",
    # Models
    "PSFModel",
    "DiffractionModel",
    "BornWolf",
    "BornWolfParameters",
    "GibsonLanni",
    "GibsonLanniParameters",
    "VariableRIGibsonLanni",
    "VariableRIGibsonLanniParameters",
    "RIVariation",
    "RichardsWolf",
    "RichardsWolfParameters",
    "TorokVarga",
    "TorokVargaParameters",
    "DefocusPlane",
    "DefocusPlaneParameters",
    "LateralFunction",
    "ZFunction",
    "Defocussing",
    "DefocussingParameters",
    "Koehler",
    "KoehlerParameters",
    "MODELS",
    "make_model",
    # Computation
    "CancellationToken",
    "KirchhoffIntegrator",
    "Quadrature",
    "Point3D",
    "Volume",
    "PlaneScheduler",
    "PlaneTask",
    "PSFEngine",
    "EngineListener",
    "Outcome",
    "Success",
    "Failure",
    "Cancelled",
    # Logging
    "setup_logging",
]
