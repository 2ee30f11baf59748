"""
Sweeps that advance every site of a system by one time step.
"""

import numpy as np
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import TYPE_CHECKING, Optional, Sequence, Union

from ..core.exceptions import InvalidConfigurationError
from ..core.options import MomentMethod, Thermostat
from ..core.site import Site

if TYPE_CHECKING:
    from .dllb_solver import DLLBSolver


def _advance_chunk(
    sites: Sequence[Site],
    indices: np.ndarray,
    method: MomentMethod,
    dt: float,
    temperature: float,
    alpha: float,
    thermostat: Thermostat
):
    """Advance an exclusive slice of sites under frozen fields."""
    for i in indices:
        sites[i].advance_moments(method, dt, temperature, alpha, thermostat)


class Sweep(ABC):
    """Abstract base class for one-step sweeps over the sites."""

    def __init__(self, solver: 'DLLBSolver'):
        """Initialize sweep with reference to the solver."""
        self.solver = solver

    @abstractmethod
    def step(
        self,
        dt: float,
        temperature: float = 0.0,
        alpha: float = 0.0,
        thermostat: Union[str, Thermostat] = Thermostat.CLASSICAL,
        executor: Optional[Executor] = None
    ):
        """
        Perform one sweep and refresh the fields.

        Args:
            dt: Time step in seconds
            temperature: Thermostat temperature in Kelvin
            alpha: Damping parameter
            thermostat: Thermostat kind
            executor: Worker pool, or None to sweep in the calling thread
        """
        pass


class ParallelSweep(Sweep):
    """
    Sweep in which every site sees the fields of the previous step.

    Sites are split into contiguous exclusive slices, one per worker. The
    field refresh runs only after every worker has returned.
    """

    method = MomentMethod.EULER

    def step(self, dt, temperature=0.0, alpha=0.0, thermostat=Thermostat.CLASSICAL, executor=None):
        sites = self.solver.sites
        thermostat = Thermostat.coerce(thermostat)
        chunks = self.solver.partition()

        if executor is None or len(chunks) <= 1:
            for chunk in chunks:
                _advance_chunk(sites, chunk, self.method, dt, temperature, alpha, thermostat)
        else:
            futures = [
                executor.submit(_advance_chunk, sites, chunk, self.method, dt, temperature, alpha, thermostat)
                for chunk in chunks
            ]
            for future in futures:
                future.result()

        self.solver.interaction.refresh_fields()


class EulerSweep(ParallelSweep):
    """Explicit Euler step on every site."""
    method = MomentMethod.EULER


class RK4Sweep(ParallelSweep):
    """Fourth-order Runge-Kutta on every site, fields frozen over the step."""
    method = MomentMethod.RK4


class SymplecticSweep(ParallelSweep):
    """Exact precession with split dissipation on every site."""
    method = MomentMethod.SYMPLECTIC


class SplittingSweep(Sweep):
    """
    Symmetric Lie-Strang operator splitting over the sites.

    Sites 0..N-2 advance by dt/2, site N-1 by dt, then sites N-2..0 by dt/2.
    The fields are refreshed after every sub-step, so each site sees the
    already updated ones. Sequential by construction.
    """

    def __init__(self, solver: 'DLLBSolver', method: Union[str, MomentMethod] = MomentMethod.EULER):
        super().__init__(solver)
        self.method = MomentMethod.coerce(method)

    def step(self, dt, temperature=0.0, alpha=0.0, thermostat=Thermostat.CLASSICAL, executor=None):
        sites = list(self.solver.sites)
        if len(sites) < 2:
            raise InvalidConfigurationError(
                f"Operator splitting needs at least 2 sites, got {len(sites)}"
            )
        thermostat = Thermostat.coerce(thermostat)
        refresh = self.solver.interaction.refresh_fields
        half = 0.5 * dt

        for site in sites[:-1]:
            site.advance_moments(self.method, half, temperature, alpha, thermostat)
            refresh()

        sites[-1].advance_moments(self.method, dt, temperature, alpha, thermostat)
        refresh()

        for site in reversed(sites[:-1]):
            site.advance_moments(self.method, half, temperature, alpha, thermostat)
            refresh()
