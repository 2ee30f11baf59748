"""
Atomic sites carrying the first and second moments of the dLLB equations.
"""

import numpy as np
from scipy.special import roots_legendre
from typing import Any, Dict, Optional, Union

from .exceptions import InvalidConfigurationError
from .options import MomentMethod, Thermostat
from .vector_algebra import Matrix3, Vector3
from . import fast_ops
from ..utils.constants import DEFAULT_CONSTANTS, PhysicalConstants
from ..utils.io import to_json

# Critical temperature of the fixed-Tc magnon thermostat (K)
CRITICAL_TEMPERATURE = 635.0

# 32-point Gauss-Legendre rule on [-1, 1]
_NODES, _WEIGHTS = roots_legendre(32)


class MomentState:
    """
    First and second statistical moments of a spin.

    Attributes:
        spin: First moment <S>
        sigma: Second moment <S⊗S>
    """

    __slots__ = ("spin", "sigma")

    def __init__(self, spin: Optional[Vector3] = None, sigma: Optional[Matrix3] = None):
        self.spin = spin if spin is not None else Vector3()
        self.sigma = sigma if sigma is not None else Matrix3()

    @classmethod
    def from_spin(cls, spin: Vector3) -> 'MomentState':
        """Sharp (fluctuation-free) state: sigma = spin ⊗ spin."""
        return cls(spin=spin, sigma=spin.outer(spin))

    def __add__(self, other: 'MomentState') -> 'MomentState':
        if not isinstance(other, MomentState):
            return NotImplemented
        return MomentState(self.spin + other.spin, self.sigma + other.sigma)

    def __mul__(self, scalar: float) -> 'MomentState':
        if isinstance(scalar, MomentState):
            return NotImplemented
        return MomentState(scalar * self.spin, scalar * self.sigma)

    __rmul__ = __mul__

    def __eq__(self, other) -> bool:
        if not isinstance(other, MomentState):
            return NotImplemented
        return self.spin == other.spin and self.sigma == other.sigma

    __hash__ = None

    def __repr__(self) -> str:
        return f"MomentState(spin={self.spin!r}, sigma={self.sigma!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {"spin": self.spin.to_dict(), "sigma": self.sigma.to_dict()}

    def jsonify(self) -> str:
        return to_json(self.to_dict())


class Site:
    """
    One atomic site: identity, static parameters, local field and moments.

    The local pulsation vector ``omega`` is written by the external field
    aggregator and only read here. ``moments`` is owned by the site and
    changed only by ``advance_moments``.
    """

    def __init__(
        self,
        name: str = "",
        atom_type: int = 0,
        position: Optional[Vector3] = None,
        omega: Optional[Vector3] = None,
        moments: Optional[MomentState] = None,
        g: float = 0.0,
        magnon_energy: float = 0.0,
        atomic_volume: float = 0.0,
        exchange_stiffness: float = 0.0,
        van_hove: float = 0.0,
        constants: PhysicalConstants = DEFAULT_CONSTANTS,
        use_fast: bool = True
    ):
        """
        Initialize a site.

        Args:
            name: Name of the atomic species
            atom_type: Integer type tag
            position: Cartesian position
            omega: Local pulsation vector (rad/s)
            moments: Initial first and second moments
            g: Landé factor in Bohr magneton units, must be >= 0
            magnon_energy: Magnon energy ℇ
            atomic_volume: Atomic cell volume Vat
            exchange_stiffness: Reference exchange stiffness Dref
            van_hove: van Hove parameter b of the magnon DOS
            constants: Physical constants used by the equations
            use_fast: Whether to use the compiled kernels
        """
        if not g >= 0:
            raise ValueError("g factor must be positive!")

        self.name = name
        self.atom_type = int(atom_type)
        self.g = float(g)
        self.magnon_energy = float(magnon_energy)
        self.atomic_volume = float(atomic_volume)
        self.exchange_stiffness = float(exchange_stiffness)
        self.van_hove = float(van_hove)
        self.position = position if position is not None else Vector3()
        self.omega = omega if omega is not None else Vector3()
        self.moments = moments if moments is not None else MomentState()
        self.constants = constants
        self.use_fast = use_fast

    @property
    def omega(self) -> Vector3:
        return self._omega

    @omega.setter
    def omega(self, value: Union[Vector3, np.ndarray]):
        self._omega = value if isinstance(value, Vector3) else Vector3.from_array(value)

    @property
    def position(self) -> Vector3:
        return self._position

    @position.setter
    def position(self, value: Union[Vector3, np.ndarray]):
        self._position = value if isinstance(value, Vector3) else Vector3.from_array(value)

    @property
    def spin(self) -> Vector3:
        return self.moments.spin

    def thermal_coefficient(
        self,
        temperature: float,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL
    ) -> float:
        """
        Strength of the thermal fluctuation/dissipation coupling (energy units).

        Args:
            temperature: Thermostat temperature in Kelvin
            thermostat: "classical" (k_B·T), "quantum" (magnon DOS of the site)
                or "quantum_critical" (fixed Tc magnon estimate)

        Returns:
            The thermal coefficient; 0 at or below 0 K
        """
        thermostat = Thermostat.coerce(thermostat)
        if temperature <= 0:
            return 0.0

        if thermostat is Thermostat.CLASSICAL:
            return self.constants.k_B * temperature
        if thermostat is Thermostat.QUANTUM_CRITICAL:
            return self._critical_magnon_coefficient(temperature)
        return self._magnon_dos_coefficient(temperature)

    def _critical_magnon_coefficient(self, temperature: float) -> float:
        beta = self.constants.k_B * temperature
        if temperature >= CRITICAL_TEMPERATURE:
            return beta

        reduced = 1.0 - temperature / CRITICAL_TEMPERATURE
        energy = self.magnon_energy * reduced ** (1.0 / 3.0)
        u = energy / beta
        if u <= 0.0:
            # classical limit of the integral below
            return beta

        x = 0.5 * u * (_NODES + 1.0)
        with np.errstate(over="ignore"):
            integral = 0.5 * u * np.sum(_WEIGHTS * x ** 1.5 / np.expm1(x))
        return float(integral * 1.5 * energy * u ** -2.5)

    def _magnon_dos_coefficient(self, temperature: float) -> float:
        hbar = self.constants.hbar
        b = self.van_hove
        stiffness = self.magnon_energy * self.moments.spin.norm() ** 2 + self.exchange_stiffness
        if b <= 0.0 or stiffness <= 0.0:
            raise InvalidConfigurationError(
                f"Quantum thermostat needs a positive van Hove parameter and stiffness "
                f"(site {self.name!r}: b={b}, D_T={stiffness})"
            )

        prefactor = hbar * self.atomic_volume / (4.0 * np.pi ** 2 * stiffness)
        cutoff = stiffness / (4.0 * hbar * b)
        w = 0.5 * cutoff * (_NODES + 1.0)
        with np.errstate(over="ignore"):
            dos = magnon_dos(w, temperature, b, stiffness, self.constants)
        return float(0.5 * cutoff * prefactor * np.sum(_WEIGHTS * dos))

    def diffusion_rate(
        self,
        temperature: float,
        alpha: float,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL
    ) -> float:
        """
        Diffusion rate D = γ·(α/(g·μ_B))·coefficient entering the moment RHS.

        A site with g = 0 carries no moment and is not coupled to the thermostat.
        """
        coefficient = self.thermal_coefficient(temperature, thermostat)
        if self.g == 0.0 or alpha == 0.0 or coefficient == 0.0:
            return 0.0
        n = self.g * self.constants.mu_B
        return self.constants.gamma * (alpha / n) * coefficient

    def rhs(
        self,
        moments: MomentState,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL
    ) -> MomentState:
        """
        Time derivative of the moments under the site's frozen pulsation.

        Args:
            moments: State at which the derivative is evaluated
            temperature: Thermostat temperature in Kelvin
            alpha: Damping parameter
            thermostat: Thermostat kind

        Returns:
            (dS/dt, dΣ/dt) as a MomentState
        """
        d = self.diffusion_rate(temperature, alpha, thermostat)
        if self.use_fast:
            spin, sigma, omega = fast_ops.as_kernel_arrays(
                moments.spin.to_array(), moments.sigma.to_array(), self.omega.to_array()
            )
            ds, dsigma = fast_ops.dllb_rhs(spin, sigma, omega, float(alpha), d)
            return MomentState(Vector3.from_array(ds), Matrix3.from_array(dsigma))
        return self._reference_rhs(moments, float(alpha), d)

    def advance_moments(
        self,
        method: Union[str, MomentMethod],
        dt: float,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL
    ):
        """
        Integrate the moments over one time step.

        The thermal coefficient is evaluated once, from the state at the start
        of the step.

        Args:
            method: "euler", "rk4" or "symplectic"
            dt: Time step in seconds
            temperature: Thermostat temperature in Kelvin
            alpha: Damping parameter
            thermostat: Thermostat kind
        """
        method = MomentMethod.coerce(method)
        alpha = float(alpha)
        d = self.diffusion_rate(temperature, alpha, thermostat)

        if self.use_fast:
            step = {
                MomentMethod.EULER: fast_ops.dllb_euler_step,
                MomentMethod.RK4: fast_ops.dllb_rk4_step,
                MomentMethod.SYMPLECTIC: fast_ops.dllb_symplectic_step,
            }[method]
            spin, sigma, omega = fast_ops.as_kernel_arrays(
                self.moments.spin.to_array(), self.moments.sigma.to_array(), self.omega.to_array()
            )
            new_spin, new_sigma = step(spin, sigma, omega, alpha, d, float(dt))
            self.moments = MomentState(Vector3.from_array(new_spin), Matrix3.from_array(new_sigma))
        else:
            self.moments = self._reference_step(method, float(dt), alpha, d)

    def _reference_rhs(
        self,
        moments: MomentState,
        alpha: float,
        d: float,
        precession: bool = True
    ) -> MomentState:
        c = 1.0 / (1.0 + alpha * alpha)
        omega = self.omega
        spin = moments.spin
        sigma = moments.sigma
        sigma_t = sigma.transpose()
        ws = omega.outer(spin)
        ss = spin.outer(spin)

        ds = alpha * (sigma.trace() * omega - sigma_t @ omega) - 2.0 * d * c * spin

        a1 = sigma.trace() * ws - sigma_t @ ws
        a1 += ws @ sigma_t - ws.trace() * sigma_t
        a1 += (ws - ws.transpose()) @ sigma_t
        a1 -= 2.0 * (ss.trace() * ws - ss.transpose() @ ws)
        m1 = alpha * a1

        if precession:
            ds += omega.cross(spin)
            m1 += omega.cross(sigma_t)

        m2 = 2.0 * sigma.trace() * Matrix3.identity() - 3.0 * (sigma + sigma_t)
        return MomentState(c * ds, c * (m1 + m1.transpose() + d * c * m2))

    def _reference_step(self, method: MomentMethod, dt: float, alpha: float, d: float) -> MomentState:
        m = self.moments
        if method is MomentMethod.EULER:
            return m + dt * self._reference_rhs(m, alpha, d)

        if method is MomentMethod.RK4:
            k1 = self._reference_rhs(m, alpha, d)
            k2 = self._reference_rhs(m + 0.5 * dt * k1, alpha, d)
            k3 = self._reference_rhs(m + 0.5 * dt * k2, alpha, d)
            k4 = self._reference_rhs(m + dt * k3, alpha, d)
            return m + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

        # symplectic: Strang splitting around the exact precession
        half = self._reference_dissipation(m, alpha, d, 0.5 * dt)
        rotation = Matrix3.from_array(
            fast_ops.precession_rotation(self.omega.to_array(), alpha, dt)
        )
        rotated = MomentState(rotation @ half.spin, rotation @ half.sigma @ rotation.transpose())
        return self._reference_dissipation(rotated, alpha, d, 0.5 * dt)

    def _reference_dissipation(self, m: MomentState, alpha: float, d: float, dt: float) -> MomentState:
        k1 = self._reference_rhs(m, alpha, d, precession=False)
        k2 = self._reference_rhs(m + 0.5 * dt * k1, alpha, d, precession=False)
        return m + dt * k2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.atom_type,
            "g": self.g,
            "magnon_energy": self.magnon_energy,
            "atomic_volume": self.atomic_volume,
            "exchange_stiffness": self.exchange_stiffness,
            "van_hove": self.van_hove,
            "position": self.position.to_dict(),
            "omega": self.omega.to_dict(),
            "moments": self.moments.to_dict(),
        }

    def jsonify(self) -> str:
        return to_json(self.to_dict())

    def __repr__(self) -> str:
        return (f"Site(name={self.name!r}, type={self.atom_type}, g={self.g}, "
                f"spin={self.moments.spin!r})")


def magnon_dos(w, temperature: float, b: float, stiffness: float,
               constants: PhysicalConstants = DEFAULT_CONSTANTS):
    """
    Bose-Einstein weighted magnon density of states at pulsation w.

    (ħw / (exp(ħw/k_B T) - 1)) · sqrt[(1 - r)/(2b)] / r,  r = sqrt(1 - 4ħwb/D_T)
    """
    energy = constants.hbar * w
    occupation = energy / np.expm1(energy / (constants.k_B * temperature))
    root = np.sqrt(1.0 - 4.0 * constants.hbar * w * b / stiffness)
    return occupation * np.sqrt((1.0 - root) / (2.0 * b)) / root
