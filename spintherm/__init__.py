"""
SpinTherm: moment dynamics of thermal spins.

Integrates the first and second spin moments (dLLB equations) of atomic
sites under local fields and a classical or quantum thermostat, optionally
driven by a laser-heated two/three-temperature bath.
"""

__version__ = "0.1.0"

from . import core
from . import utils
from . import analysis
from . import thermal
from . import dynamics

from .core import Vector3, Matrix3, MomentState, Site
from .core.exceptions import SingularMatrixError, InvalidConfigurationError, UnsupportedMethodError, EncodingError
from .dynamics import DLLBSolver
from .thermal import LaserExcitation, TTMConfig, Pulse, Coupling, Temperatures, HeatCapacity
from .analysis import MomentAnalyzer
from .utils.constants import PHYSICAL_CONSTANTS, PhysicalConstants, DEFAULT_CONSTANTS

__all__ = [
    "Vector3",
    "Matrix3",
    "MomentState",
    "Site",
    "SingularMatrixError",
    "InvalidConfigurationError",
    "UnsupportedMethodError",
    "EncodingError",
    "DLLBSolver",
    "LaserExcitation",
    "TTMConfig",
    "Pulse",
    "Coupling",
    "Temperatures",
    "HeatCapacity",
    "MomentAnalyzer",
    "PHYSICAL_CONSTANTS",
    "PhysicalConstants",
    "DEFAULT_CONSTANTS",
    "core",
    "dynamics",
    "thermal",
    "analysis",
    "utils",
]
