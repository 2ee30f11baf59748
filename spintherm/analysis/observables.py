"""
Macroscopic observables reduced from the site moments.
"""

import numpy as np
from typing import Any, Dict, List, Sequence

from ..core.site import Site
from ..core.vector_algebra import Matrix3, Vector3
from ..utils.constants import DEFAULT_CONSTANTS, PhysicalConstants


class MomentAnalyzer:
    """
    Read-only reductions over a collection of sites.

    Magnetization is weighted by the Landé factors, so sites with g = 0
    (non-magnetic species) do not contribute to it.
    """

    def __init__(self, sites: Sequence[Site], constants: PhysicalConstants = DEFAULT_CONSTANTS):
        """
        Initialize analyzer.

        Args:
            sites: Sites to reduce over (never mutated)
            constants: Physical constants for the spin temperature
        """
        self.sites = sites
        self.constants = constants

    @property
    def n_sites(self) -> int:
        return len(self.sites)

    def sublattice(self, atom_type: int) -> 'MomentAnalyzer':
        """Analyzer restricted to the sites of one type."""
        selected = [site for site in self.sites if site.atom_type == atom_type]
        return MomentAnalyzer(selected, self.constants)

    def _total_g(self) -> float:
        return float(sum(site.g for site in self.sites))

    def calculate_energy(self) -> float:
        """Zeeman-like energy Σ ωᵢ·Sᵢ (pulsation units)."""
        return float(sum(site.omega.dot(site.spin) for site in self.sites))

    def calculate_magnetization(self) -> Vector3:
        """Σ gᵢSᵢ / Σ gᵢ; the zero vector when no site carries a moment."""
        total_g = self._total_g()
        if total_g == 0:
            return Vector3.zero()
        weighted = np.sum([site.g * site.spin.to_array() for site in self.sites], axis=0)
        return Vector3.from_array(weighted / total_g)

    def calculate_magnetization_length(self) -> float:
        """Σ gᵢ|Sᵢ| / Σ gᵢ; 0 when no site carries a moment."""
        total_g = self._total_g()
        if total_g == 0:
            return 0.0
        return float(sum(site.g * site.spin.norm() for site in self.sites) / total_g)

    def calculate_torque(self) -> Vector3:
        torque = Vector3.zero()
        for site in self.sites:
            torque += site.omega.cross(site.spin)
        return torque

    def calculate_spin_temperature(self, coefficient: float = 2.0) -> float:
        """
        Spin temperature |τ|²ħ / (E·coefficient·k_B).

        Args:
            coefficient: Normalization of the energy term

        Returns:
            Temperature in Kelvin, nan when the energy vanishes
        """
        energy = self.calculate_energy()
        if energy == 0:
            return float('nan')
        torque = self.calculate_torque()
        return torque.dot(torque) * self.constants.hbar / (energy * coefficient * self.constants.k_B)

    def calculate_susceptibility(self) -> Matrix3:
        """(1/N) Σ (Σᵢ − Sᵢ⊗Sᵢ)."""
        if self.n_sites == 0:
            return Matrix3()
        total = Matrix3()
        for site in self.sites:
            total += site.moments.sigma - site.spin.outer(site.spin)
        return total / self.n_sites

    def calculate_cumulant(self) -> Matrix3:
        """(1/N) Σ Σᵢ."""
        if self.n_sites == 0:
            return Matrix3()
        total = Matrix3()
        for site in self.sites:
            total += site.moments.sigma
        return total / self.n_sites

    def summary(self) -> Dict[str, Any]:
        """All observables as plain Python values."""
        magnetization = self.calculate_magnetization()
        return {
            'n_sites': self.n_sites,
            'energy': self.calculate_energy(),
            'magnetization': magnetization.to_dict(),
            'magnetization_length': self.calculate_magnetization_length(),
            'torque': self.calculate_torque().to_dict(),
            'spin_temperature': self.calculate_spin_temperature(),
            'susceptibility': self.calculate_susceptibility().to_dict(),
            'cumulant': self.calculate_cumulant().to_dict(),
        }

    def atom_types(self) -> List[int]:
        return sorted({site.atom_type for site in self.sites})
