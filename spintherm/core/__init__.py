"""Core moment algebra and per-site dynamics."""

from .exceptions import SingularMatrixError, InvalidConfigurationError, UnsupportedMethodError, EncodingError
from .options import MomentMethod, Thermostat, EvolutionMethod, ThermalMethod, PulseShape
from .vector_algebra import Vector3, Matrix3, distance
from .site import MomentState, Site

__all__ = [
    "SingularMatrixError",
    "InvalidConfigurationError",
    "UnsupportedMethodError",
    "EncodingError",
    "MomentMethod",
    "Thermostat",
    "EvolutionMethod",
    "ThermalMethod",
    "PulseShape",
    "Vector3",
    "Matrix3",
    "distance",
    "MomentState",
    "Site",
]
