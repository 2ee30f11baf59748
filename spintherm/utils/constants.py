"""Physical constants and unit conversions."""

from dataclasses import dataclass, asdict
from typing import Dict

# Physical constants
PHYSICAL_CONSTANTS = {
    # Boltzmann constant
    'kB': 8.617333262e-5,  # eV/K
    'kB_SI': 1.380649e-23,  # J/K

    # Bohr magneton
    'mu_B': 5.7883818060e-5,  # eV/T
    'mu_B_SI': 9.2740100783e-24,  # J/T

    # Gyromagnetic ratio for electron
    'gamma_e': 1.76085963023e11,  # rad/(s·T)

    # Reduced Planck constant
    'hbar': 6.582119569e-16,  # eV·s
    'hbar_SI': 1.054571817e-34,  # J·s
}

# Unit conversion factors
UNIT_CONVERSIONS = {
    # Energy
    'eV_to_J': 1.602176634e-19,
    'meV_to_eV': 1e-3,
    'K_to_eV': 8.617333262e-5,

    # Time
    'fs_to_s': 1e-15,
    'ps_to_s': 1e-12,
    'ns_to_s': 1e-9,
}


@dataclass(frozen=True)
class PhysicalConstants:
    """
    Immutable set of constants used by the moment and analysis equations.

    All values share one unit system (eV-based by default), so that
    gamma * k_B * T / (g * mu_B) is a rate in 1/s and hbar * omega an energy.

    Attributes:
        hbar: Reduced Planck constant
        k_B: Boltzmann constant
        mu_B: Bohr magneton
        gamma: Gyromagnetic ratio
    """
    hbar: float
    k_B: float
    mu_B: float
    gamma: float

    @classmethod
    def from_table(cls, table: Dict[str, float]) -> 'PhysicalConstants':
        """Build constants from a PHYSICAL_CONSTANTS-like table."""
        return cls(
            hbar=table['hbar'],
            k_B=table['kB'],
            mu_B=table['mu_B'],
            gamma=table['gamma_e']
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


DEFAULT_CONSTANTS = PhysicalConstants.from_table(PHYSICAL_CONSTANTS)


def convert_units(value, from_unit: str, to_unit: str) -> float:
    """
    Convert between different units.

    Args:
        value: Value to convert
        from_unit: Source unit
        to_unit: Target unit

    Returns:
        Converted value
    """
    conversion_key = f"{from_unit}_to_{to_unit}"

    if conversion_key in UNIT_CONVERSIONS:
        return value * UNIT_CONVERSIONS[conversion_key]
    else:
        # Try reverse conversion
        reverse_key = f"{to_unit}_to_{from_unit}"
        if reverse_key in UNIT_CONVERSIONS:
            return value / UNIT_CONVERSIONS[reverse_key]
        else:
            raise ValueError(f"Unknown unit conversion: {from_unit} to {to_unit}")


def larmor_pulsation(
    B_field: float,
    g_factor: float = 2.0,
    constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> float:
    """
    Larmor pulsation of a moment in a magnetic field.

    Args:
        B_field: Magnetic field in Tesla
        g_factor: Landé g-factor
        constants: Physical constants

    Returns:
        Pulsation g·μ_B·B/ħ in rad/s
    """
    return g_factor * constants.mu_B * B_field / constants.hbar
