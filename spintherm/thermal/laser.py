"""
Laser heating of the electron, phonon and spin baths (two/three-temperature model).

The electron heat capacity is linear in temperature, Ce = γ·Te; the phonon
and spin capacities are constants. Setting a coupling constant to zero
removes the corresponding exchange term, so a zero spin capacity with zero
spin couplings gives the two-temperature model.
"""

import time as _time
import numpy as np
from dataclasses import dataclass, field, asdict
from tqdm import tqdm
from typing import Any, Dict, Optional, Union

from ..core.exceptions import InvalidConfigurationError
from ..core.options import PulseShape, ThermalMethod
from ..utils.io import TraceWriter, to_json


@dataclass(frozen=True)
class Temperatures:
    """Electron, phonon and spin temperatures (K), or rates (K/s)."""
    electron: float = 0.0
    phonon: float = 0.0
    spin: float = 0.0

    def __add__(self, other: 'Temperatures') -> 'Temperatures':
        if not isinstance(other, Temperatures):
            return NotImplemented
        return Temperatures(self.electron + other.electron,
                            self.phonon + other.phonon,
                            self.spin + other.spin)

    def __sub__(self, other: 'Temperatures') -> 'Temperatures':
        if not isinstance(other, Temperatures):
            return NotImplemented
        return Temperatures(self.electron - other.electron,
                            self.phonon - other.phonon,
                            self.spin - other.spin)

    def __mul__(self, scalar: float) -> 'Temperatures':
        if isinstance(scalar, Temperatures):
            return NotImplemented
        return Temperatures(scalar * self.electron, scalar * self.phonon, scalar * self.spin)

    __rmul__ = __mul__

    def max_abs(self) -> float:
        return max(abs(self.electron), abs(self.phonon), abs(self.spin))

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def jsonify(self) -> str:
        return to_json(self.to_dict())


# Heat capacities share the three-bath layout; electron holds γ of Ce = γ·Te
HeatCapacity = Temperatures


@dataclass(frozen=True)
class Coupling:
    """Bath coupling constants (W/(m³·K))."""
    electron_phonon: float = 0.0
    electron_spin: float = 0.0
    phonon_spin: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Pulse:
    """
    Laser pulse.

    Attributes:
        shape: "gaussian" or "none"
        fluence: Absorbed fluence Φ
        duration: Pulse duration σ (s)
        delay: Time of the pulse maximum δ (s)
    """
    shape: Union[str, PulseShape] = PulseShape.GAUSSIAN
    fluence: float = 0.0
    duration: float = 0.0
    delay: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'shape', PulseShape.coerce(self.shape))
        if self.shape is PulseShape.GAUSSIAN and self.fluence != 0 and not self.duration > 0:
            raise InvalidConfigurationError(
                f"Gaussian pulse with fluence {self.fluence} needs a positive duration, got {self.duration}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'shape': self.shape.value,
            'fluence': self.fluence,
            'duration': self.duration,
            'delay': self.delay,
        }

    def jsonify(self) -> str:
        return to_json(self.to_dict())


@dataclass(frozen=True)
class TTMConfig:
    """
    Physical content of the two/three-temperature model.

    Attributes:
        effective_thickness: Optical penetration depth ζ (m)
        initial_temperature: Reference temperature Tref (K), also the start value
        heat_capacity: γ of Ce = γ·Te, phonon capacity Cp, spin capacity Cs
        coupling: Electron-phonon, electron-spin and phonon-spin constants
        damping: Newton cooling time τ towards Tref (s); <= 0 disables it
    """
    effective_thickness: float
    initial_temperature: float
    heat_capacity: Temperatures
    coupling: Coupling = field(default_factory=Coupling)
    damping: float = 0.0

    def __post_init__(self):
        capacity = self.heat_capacity
        coupling = self.coupling

        if not capacity.electron > 0:
            raise InvalidConfigurationError(
                f"Electron heat capacity coefficient must be positive, got {capacity.electron}"
            )
        if not self.initial_temperature > 0:
            raise InvalidConfigurationError(
                f"Initial temperature must be positive, got {self.initial_temperature}"
            )
        if not self.effective_thickness > 0:
            raise InvalidConfigurationError(
                f"Effective thickness must be positive, got {self.effective_thickness}"
            )

        couplings = [
            ('electron_phonon', coupling.electron_phonon, ('phonon',)),
            ('electron_spin', coupling.electron_spin, ('spin',)),
            ('phonon_spin', coupling.phonon_spin, ('phonon', 'spin')),
        ]
        for name, value, baths in couplings:
            if value == 0:
                continue
            for bath in baths:
                if getattr(capacity, bath) == 0:
                    raise InvalidConfigurationError(
                        f"Coupling {name}={value} into the {bath} bath with zero heat capacity"
                    )

    @property
    def newton_cooling(self) -> bool:
        return self.damping > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'effective_thickness': self.effective_thickness,
            'initial_temperature': self.initial_temperature,
            'damping': self.damping,
            'heat_capacity': self.heat_capacity.to_dict(),
            'coupling': self.coupling.to_dict(),
        }

    def jsonify(self) -> str:
        return to_json(self.to_dict())


def _ratio(coupling: float, capacity: float) -> float:
    if coupling == 0:
        return 0.0
    return coupling / capacity


class LaserExcitation:
    """
    Laser pulse driving the coupled electron, phonon and spin temperatures.

    ``temperatures`` and ``time`` advance together through ``advance``.
    """

    def __init__(
        self,
        ttm: TTMConfig,
        pulse: Optional[Pulse] = None,
        temperatures: Optional[Temperatures] = None,
        time: float = 0.0
    ):
        """
        Initialize the bath.

        Args:
            ttm: Model constants
            pulse: Laser pulse (no pulse: zero power)
            temperatures: Start temperatures; all baths at the reference when None
            time: Start time (s)
        """
        self.ttm = ttm
        self.pulse = pulse if pulse is not None else Pulse()
        if temperatures is None:
            t0 = ttm.initial_temperature
            temperatures = Temperatures(t0, t0, t0)
        if not temperatures.electron > 0:
            raise InvalidConfigurationError(
                f"Electron temperature must be positive, got {temperatures.electron}"
            )
        self.temperatures = temperatures
        self.time = float(time)

    def power(self, t: float) -> float:
        """Absorbed power density Φ/(σζ)·exp(−(t−δ)²/(0.36σ²))."""
        pulse = self.pulse
        if pulse.shape is PulseShape.NONE or pulse.fluence == 0:
            return 0.0
        sigma = pulse.duration
        return float(
            pulse.fluence / (sigma * self.ttm.effective_thickness)
            * np.exp(-(t - pulse.delay) ** 2 / (0.36 * sigma * sigma))
        )

    def rhs(self, t: float, temperatures: Temperatures) -> Temperatures:
        """
        Rates of the three temperatures.

        Args:
            t: Time (s)
            temperatures: Temperatures at which the rates are evaluated

        Returns:
            dT/dt of every bath (K/s)
        """
        ttm = self.ttm
        gamma = ttm.heat_capacity.electron
        cp = ttm.heat_capacity.phonon
        cs = ttm.heat_capacity.spin
        cep = ttm.coupling.electron_phonon
        ces = ttm.coupling.electron_spin
        cps = ttm.coupling.phonon_spin

        te = temperatures.electron
        tp = temperatures.phonon
        ts = temperatures.spin

        electron = self.power(t) / (gamma * te)
        electron -= (cep / gamma) * (1.0 - tp / te)
        electron -= (ces / gamma) * (1.0 - ts / te)
        if ttm.newton_cooling:
            electron -= (te - ttm.initial_temperature) / ttm.damping

        phonon = _ratio(cep, cp) * (te - tp) + _ratio(cps, cp) * (ts - tp)
        spin = _ratio(ces, cs) * (te - ts) + _ratio(cps, cs) * (tp - ts)
        return Temperatures(electron, phonon, spin)

    def advance(self, method: Union[str, ThermalMethod], dt: float):
        """
        Advance temperatures and time by one step.

        Args:
            method: "euler" (or "rk1"), "rk2" or "rk4"
            dt: Time step (s)
        """
        method = ThermalMethod.coerce(method)
        t = self.time
        temps = self.temperatures

        if method is ThermalMethod.EULER:
            temps = temps + dt * self.rhs(t, temps)
        elif method is ThermalMethod.RK2:
            midpoint = temps + 0.5 * dt * self.rhs(t, temps)
            temps = temps + dt * self.rhs(t + 0.5 * dt, midpoint)
        else:
            k1 = self.rhs(t, temps)
            k2 = self.rhs(t + 0.5 * dt, temps + 0.5 * dt * k1)
            k3 = self.rhs(t + 0.5 * dt, temps + 0.5 * dt * k2)
            k4 = self.rhs(t + dt, temps + dt * k3)
            temps = temps + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)

        self.temperatures = temps
        self.time = t + dt

    def estimate_timestep(self, quality_factor: float = 0.8) -> float:
        """
        Time step over which no temperature changes by more than quality_factor K.

        Single evaluation of the rates at the current state.

        Returns:
            quality_factor / max|dT/dt|, or inf when every rate vanishes
        """
        if not quality_factor > 0:
            raise ValueError(f"Quality factor must be positive, got {quality_factor}")
        largest = self.rhs(self.time, self.temperatures).max_abs()
        if largest == 0:
            return float('inf')
        return quality_factor / largest

    def trace_line(self) -> str:
        temps = self.temperatures
        return "%e %f %f %f" % (self.time, temps.electron, temps.phonon, temps.spin)

    def run(
        self,
        n_steps: int,
        quality_factor: float = 0.8,
        method: Union[str, ThermalMethod] = ThermalMethod.RK4,
        sink: Optional[str] = None,
        max_timestep: Optional[float] = None,
        verbose: bool = True
    ) -> Dict[str, Any]:
        """
        Adaptive heating run: estimate the step, advance, record.

        Args:
            n_steps: Number of steps
            quality_factor: Largest temperature change allowed per step (K)
            method: Thermal stepper
            sink: Trace filename; None, "", "none" or "nofile" write nothing
            max_timestep: Upper bound on the step; without it the run stops
                once every rate vanishes
            verbose: Whether to show progress

        Returns:
            Dictionary with times, temperatures, trace lines and timing
        """
        method = ThermalMethod.coerce(method)
        writer = TraceWriter(sink)
        start_time = _time.time()

        times = [self.time]
        history = [self.temperatures.to_dict()]
        writer.append(self.trace_line())

        steps_done = 0
        for _ in tqdm(range(n_steps), desc="TTM Steps", disable=not verbose):
            dt = self.estimate_timestep(quality_factor)
            if max_timestep is not None:
                dt = min(dt, max_timestep)
            if not np.isfinite(dt):
                if verbose:
                    print(f"Baths at rest after {steps_done} steps, stopping")
                break

            self.advance(method, dt)
            steps_done += 1
            times.append(self.time)
            history.append(self.temperatures.to_dict())
            writer.append(self.trace_line())

        trace_file = writer.flush()
        elapsed = _time.time() - start_time
        if verbose:
            target = trace_file if trace_file is not None else "suppressed"
            print(f"TTM run: {steps_done} steps in {elapsed:.2f}s (trace: {target})")

        return {
            'times': np.array(times),
            'electron': np.array([h['electron'] for h in history]),
            'phonon': np.array([h['phonon'] for h in history]),
            'spin': np.array([h['spin'] for h in history]),
            'trace': writer.lines,
            'trace_file': trace_file,
            'timing': {'total_time': elapsed, 'n_steps': steps_done},
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'time': self.time,
            'temperatures': self.temperatures.to_dict(),
            'pulse': self.pulse.to_dict(),
            'ttm': self.ttm.to_dict(),
        }

    def jsonify(self) -> str:
        return to_json(self.to_dict())

    def __repr__(self) -> str:
        return f"LaserExcitation(time={self.time:e}, temperatures={self.temperatures})"
