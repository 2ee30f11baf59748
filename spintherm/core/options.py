"""
Closed sets of method names used to select integrators, thermostats and pulses.

Every option is a ``str`` enum, so plain strings compare equal to members and
can be passed anywhere an option is expected. ``coerce`` is case-insensitive
and raises UnsupportedMethodError for names outside the set.
"""

from enum import Enum
from typing import Dict, Union

from .exceptions import UnsupportedMethodError


class _Option(str, Enum):

    @classmethod
    def aliases(cls) -> Dict[str, str]:
        return {}

    @classmethod
    def coerce(cls, value: Union[str, '_Option']) -> '_Option':
        """Return the member matching ``value``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = cls.aliases().get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        choices = ", ".join(member.value for member in cls)
        raise UnsupportedMethodError(
            f"Unknown {cls.__name__}: {value!r}. Must be one of: {choices}"
        )

    def __str__(self) -> str:
        return self.value


class MomentMethod(_Option):
    """Per-site moment integration scheme."""
    EULER = "euler"
    RK4 = "rk4"
    SYMPLECTIC = "symplectic"


class Thermostat(_Option):
    """Statistics used for the thermal fluctuation/dissipation coefficient."""
    CLASSICAL = "classical"
    # magnon density of states built from per-site stiffness and van Hove parameter
    QUANTUM = "quantum"
    # fixed critical temperature, dispersion exponent 1/3
    QUANTUM_CRITICAL = "quantum_critical"


class EvolutionMethod(_Option):
    """Sweep scheme driven by DLLBSolver.evolve."""
    EULER = "euler"
    RK4 = "rk4"
    SYMPLECTIC = "symplectic"
    EXP_LS = "exp_ls"

    @classmethod
    def aliases(cls) -> Dict[str, str]:
        return {"expls": "exp_ls", "rk45": "rk4"}


class ThermalMethod(_Option):
    """Stepper of the two/three-temperature model."""
    EULER = "euler"
    RK2 = "rk2"
    RK4 = "rk4"

    @classmethod
    def aliases(cls) -> Dict[str, str]:
        return {"rk1": "euler"}


class PulseShape(_Option):
    """Temporal shape of the laser pulse."""
    GAUSSIAN = "gaussian"
    NONE = "none"
