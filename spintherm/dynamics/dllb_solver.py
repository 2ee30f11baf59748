"""
Time integration of the dLLB moment equations over a collection of sites.
"""

import time
import numpy as np
import psutil
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from tqdm import tqdm
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

from ..core.options import EvolutionMethod, MomentMethod, ThermalMethod, Thermostat
from ..core.site import Site
from ..analysis.observables import MomentAnalyzer
from ..utils.constants import DEFAULT_CONSTANTS, PhysicalConstants
from ..utils.io import TraceWriter, format_trace_line
from .integrators import EulerSweep, RK4Sweep, SplittingSweep, Sweep, SymplecticSweep


class FieldAggregator(Protocol):
    """
    Interaction object owning the sites.

    ``refresh_fields`` recomputes the pulsation ω of every site from the
    current moments.
    """

    sites: Sequence[Site]

    def refresh_fields(self) -> None:
        ...


class DLLBSolver:
    """
    Solver for the dLLB equations of the first and second spin moments.

    Every step is a sweep over the sites followed by one call to
    ``interaction.refresh_fields()``. In the parallel sweeps the sites are
    split into exclusive contiguous slices advanced by a thread pool; the
    refresh runs only once every slice is done, so ω stays frozen during a
    sweep.
    """

    def __init__(
        self,
        interaction: FieldAggregator,
        n_workers: Optional[int] = None,
        constants: PhysicalConstants = DEFAULT_CONSTANTS
    ):
        """
        Initialize solver.

        Args:
            interaction: Field aggregator exposing ``sites`` and ``refresh_fields()``
            n_workers: Number of worker threads (default: physical cores)
            constants: Physical constants for the diagnostics
        """
        if not hasattr(interaction, 'sites') or not callable(getattr(interaction, 'refresh_fields', None)):
            raise ValueError("Interaction must provide 'sites' and 'refresh_fields()'")

        if n_workers is None:
            n_workers = psutil.cpu_count(logical=False) or 1
        if n_workers < 1:
            raise ValueError(f"Number of workers must be positive, got {n_workers}")

        self.interaction = interaction
        self.n_workers = int(n_workers)
        self.constants = constants

        # Current state
        self.time = 0.0
        self.step_count = 0

        # Performance tracking
        self.timing_info = {}

    @property
    def sites(self) -> Sequence[Site]:
        return self.interaction.sites

    @property
    def n_sites(self) -> int:
        return len(self.sites)

    def analyzer(self) -> MomentAnalyzer:
        return MomentAnalyzer(self.sites, self.constants)

    def partition(self) -> List[np.ndarray]:
        """Contiguous exclusive slices of site indices, one per worker."""
        n = self.n_sites
        if n == 0:
            return []
        return np.array_split(np.arange(n), min(self.n_workers, n))

    def _create_sweep(self, method: Union[str, EvolutionMethod], site_method: Union[str, MomentMethod] = MomentMethod.EULER) -> Sweep:
        """Create the sweep for the specified scheme."""
        method = EvolutionMethod.coerce(method)
        if method is EvolutionMethod.EXP_LS:
            return SplittingSweep(self, site_method)

        sweep_map = {
            EvolutionMethod.EULER: EulerSweep,
            EvolutionMethod.RK4: RK4Sweep,
            EvolutionMethod.SYMPLECTIC: SymplecticSweep,
        }
        return sweep_map[method](self)

    def _pool(self):
        if self.n_workers > 1 and self.n_sites > 1:
            return ThreadPoolExecutor(max_workers=self.n_workers)
        return nullcontext(None)

    def _resolve_steps(self, stop: float, dt: float, n_steps: Optional[int]) -> int:
        if not dt > 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        if n_steps is not None:
            return int(n_steps)
        return max(0, int(np.ceil((stop - self.time) / dt - 1e-9)))

    def step(
        self,
        dt: float,
        method: Union[str, EvolutionMethod] = EvolutionMethod.EULER,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL
    ):
        """
        Perform one sweep (with field refresh) and advance the clock.

        Args:
            dt: Time step in seconds
            method: "euler", "rk4", "symplectic" or "exp_ls"
            temperature: Thermostat temperature in Kelvin
            alpha: Damping parameter
            thermostat: Thermostat kind
        """
        sweep = self._create_sweep(method)
        with self._pool() as executor:
            sweep.step(dt, temperature, alpha, thermostat, executor)
        self.time += dt
        self.step_count += 1

    def exp_ls(
        self,
        dt: float,
        method: Union[str, MomentMethod] = MomentMethod.EULER,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL
    ):
        """
        One symmetric operator-splitting sweep.

        Sites 0..N-2 advance by dt/2, site N-1 by dt, then sites N-2..0 by
        dt/2, each sub-step followed by a field refresh (2N-1 refreshes).

        Args:
            dt: Time step in seconds
            method: Per-site scheme used for the sub-steps

        Raises:
            InvalidConfigurationError: With fewer than 2 sites
        """
        SplittingSweep(self, method).step(dt, temperature, alpha, thermostat)
        self.time += dt
        self.step_count += 1

    def _run(
        self,
        sweep: Sweep,
        n_steps: int,
        dt: float,
        record: Callable[[], List[float]],
        sink: Optional[str],
        desc: str,
        verbose: bool,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL,
        before_sweep: Optional[Callable[[], Optional[float]]] = None
    ) -> Dict[str, Any]:
        start_time = time.time()
        thermostat = Thermostat.coerce(thermostat)
        writer = TraceWriter(sink)
        times = []

        with self._pool() as executor:
            for _ in tqdm(range(n_steps), desc=desc, disable=not verbose):
                # diagnostics of the state at the start of the step
                times.append(self.time)
                writer.append(format_trace_line(self.time, record()))

                if before_sweep is not None:
                    temperature = before_sweep()

                sweep.step(dt, temperature, alpha, thermostat, executor)
                self.time += dt
                self.step_count += 1

        trace_file = writer.flush()

        total_sim_time = time.time() - start_time
        self.timing_info = {
            'total_time': total_sim_time,
            'time_per_step': total_sim_time / n_steps if n_steps > 0 else 0.0,
            'steps_per_second': n_steps / total_sim_time if total_sim_time > 0 else 0.0,
            'simulated_time': n_steps * dt,
            'n_workers': self.n_workers
        }

        if verbose:
            target = trace_file if trace_file is not None else "suppressed"
            print(f"{desc}: {n_steps} steps in {total_sim_time:.2f}s (trace: {target})")

        analyzer = self.analyzer()
        return {
            'times': np.array(times),
            'trace': writer.lines,
            'trace_file': trace_file,
            'final_magnetization': analyzer.calculate_magnetization().to_array(),
            'final_energy': analyzer.calculate_energy(),
            'timing': self.timing_info
        }

    def _record_spins(self) -> List[float]:
        values = []
        for site in self.sites:
            values.extend(site.spin)
        return values

    def _record_magnetization(self, n_probes: int = 0) -> List[float]:
        values = []
        for site in list(self.sites)[:n_probes]:
            values.extend(site.spin)
        analyzer = self.analyzer()
        values.extend(analyzer.calculate_magnetization())
        values.append(analyzer.calculate_magnetization_length())
        return values

    def evolve_euler(
        self,
        stop: float,
        dt: float,
        sink: Optional[str] = None,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL,
        n_steps: Optional[int] = None,
        verbose: bool = True
    ) -> Dict[str, Any]:
        """
        Run Euler sweeps until ``stop``.

        Each trace line holds the time and the spin components of every site.

        Args:
            stop: End time on the solver clock (s)
            dt: Time step (s)
            sink: Trace filename; None, "", "none" or "nofile" write nothing
            temperature: Thermostat temperature in Kelvin
            alpha: Damping parameter
            thermostat: Thermostat kind
            n_steps: Number of steps, overriding ``stop``
            verbose: Whether to show progress

        Returns:
            Dictionary with simulation results
        """
        return self._run(
            EulerSweep(self), self._resolve_steps(stop, dt, n_steps), dt,
            self._record_spins, sink, "Euler Steps", verbose,
            temperature, alpha, thermostat
        )

    def evolve_rk4(
        self,
        stop: float,
        dt: float,
        sink: Optional[str] = None,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL,
        n_steps: Optional[int] = None,
        verbose: bool = True
    ) -> Dict[str, Any]:
        """
        Run RK4 sweeps until ``stop``.

        Each trace line holds the time, the spins of the first two sites,
        the magnetization and its length. As in every run the diagnostics are
        taken before the step is applied, so the line stamped t shows the
        state at t.
        """
        return self._run(
            RK4Sweep(self), self._resolve_steps(stop, dt, n_steps), dt,
            lambda: self._record_magnetization(n_probes=2), sink, "RK4 Steps", verbose,
            temperature, alpha, thermostat
        )

    def evolve_symplectic(
        self,
        stop: float,
        dt: float,
        sink: Optional[str] = None,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL,
        n_steps: Optional[int] = None,
        verbose: bool = True
    ) -> Dict[str, Any]:
        """Run sweeps of the per-site exact-precession scheme; trace as in evolve_euler."""
        return self._run(
            SymplecticSweep(self), self._resolve_steps(stop, dt, n_steps), dt,
            self._record_spins, sink, "Symplectic Steps", verbose,
            temperature, alpha, thermostat
        )

    def evolve_exp_ls(
        self,
        stop: float,
        dt: float,
        sink: Optional[str] = None,
        method: Union[str, MomentMethod] = MomentMethod.EULER,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL,
        n_steps: Optional[int] = None,
        verbose: bool = True
    ) -> Dict[str, Any]:
        """
        Run operator-splitting sweeps until ``stop``.

        Each trace line holds the time, the magnetization and its length.
        """
        return self._run(
            SplittingSweep(self, method), self._resolve_steps(stop, dt, n_steps), dt,
            self._record_magnetization, sink, "Splitting Steps", verbose,
            temperature, alpha, thermostat
        )

    def evolve(
        self,
        stop: float,
        dt: float,
        method: Union[str, EvolutionMethod] = EvolutionMethod.EULER,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Run the named scheme ("euler", "rk4", "symplectic" or "exp_ls").

        Keyword arguments are passed to the matching ``evolve_*`` method.
        """
        method = EvolutionMethod.coerce(method)
        runners = {
            EvolutionMethod.EULER: self.evolve_euler,
            EvolutionMethod.RK4: self.evolve_rk4,
            EvolutionMethod.SYMPLECTIC: self.evolve_symplectic,
            EvolutionMethod.EXP_LS: self.evolve_exp_ls,
        }
        return runners[method](stop, dt, **kwargs)

    def evolve_laser(
        self,
        laser,
        stop: float,
        dt: float,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL,
        method: Union[str, EvolutionMethod] = EvolutionMethod.RK4,
        thermal_method: Union[str, ThermalMethod] = ThermalMethod.EULER,
        sink: Optional[str] = None,
        n_steps: Optional[int] = None,
        verbose: bool = True
    ) -> Dict[str, Any]:
        """
        Moment dynamics driven by a laser-heated electron bath.

        Each step advances the bath by dt, then sweeps the sites with the
        thermostat at the new electron temperature, then refreshes the fields.
        Each trace line holds the time, the z magnetization, the
        magnetization length, the absorbed power and the three temperatures.
        When the sites carry more than one atom type, the z magnetization of
        every sublattice, in ascending type order, follows the length.

        Args:
            laser: LaserExcitation advanced alongside the moments
            stop: End time on the solver clock (s)
            dt: Time step shared by bath and moments (s)
            alpha: Damping parameter
            thermostat: Thermostat kind
            method: Sweep scheme for the moments
            thermal_method: Stepper of the bath
            sink: Trace filename
            n_steps: Number of steps, overriding ``stop``
            verbose: Whether to show progress

        Returns:
            Dictionary with simulation results and the temperature history
        """
        thermal_method = ThermalMethod.coerce(thermal_method)
        electron = []

        def record():
            analyzer = self.analyzer()
            temps = laser.temperatures
            values = [
                analyzer.calculate_magnetization().z,
                analyzer.calculate_magnetization_length(),
            ]
            types = analyzer.atom_types()
            if len(types) > 1:
                values.extend(analyzer.sublattice(t).calculate_magnetization().z for t in types)
            values.extend([laser.power(laser.time), temps.electron, temps.phonon, temps.spin])
            return values

        def heat():
            laser.advance(thermal_method, dt)
            electron.append(laser.temperatures.electron)
            return laser.temperatures.electron

        results = self._run(
            self._create_sweep(method), self._resolve_steps(stop, dt, n_steps), dt,
            record, sink, "Laser Steps", verbose,
            alpha=alpha, thermostat=thermostat, before_sweep=heat
        )
        results['electron_temperatures'] = np.array(electron)
        results['final_temperatures'] = laser.temperatures.to_dict()
        return results

    def reset(self):
        """Reset solver clock and statistics."""
        self.time = 0.0
        self.step_count = 0
        self.timing_info.clear()

    def __repr__(self) -> str:
        return (f"DLLBSolver(n_sites={self.n_sites}, "
                f"n_workers={self.n_workers}, "
                f"time={self.time:.3e})")
