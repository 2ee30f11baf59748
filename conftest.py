"""
SpinTherm Test Configuration
"""

import pytest
import numpy as np

from spintherm.core.site import MomentState, Site
from spintherm.core.vector_algebra import Vector3
from spintherm.thermal.laser import Coupling, HeatCapacity, TTMConfig
from spintherm.utils.constants import larmor_pulsation


class UniformField:
    """Field aggregator applying the same pulsation to every site."""

    def __init__(self, sites, omega):
        self.sites = sites
        self.omega = omega
        self.refresh_count = 0
        self.refresh_fields()

    def refresh_fields(self):
        self.refresh_count += 1
        for site in self.sites:
            site.omega = self.omega


class ExchangeChain(UniformField):
    """Open chain: ω_i = ω0 + J·(S_{i-1} + S_{i+1})."""

    def __init__(self, sites, omega, coupling):
        self.coupling = coupling
        super().__init__(sites, omega)

    def refresh_fields(self):
        self.refresh_count += 1
        spins = [site.spin for site in self.sites]
        for i, site in enumerate(self.sites):
            field = self.omega
            if i > 0:
                field = field + self.coupling * spins[i - 1]
            if i < len(self.sites) - 1:
                field = field + self.coupling * spins[i + 1]
            site.omega = field


def make_sites(n, direction="+x", g=2.0, **kwargs):
    """Sharp unit spins along one direction."""
    return [
        Site(name="Fe", atom_type=i % 2, position=Vector3(float(i), 0.0, 0.0),
             moments=MomentState.from_spin(Vector3(direction=direction)), g=g, **kwargs)
        for i in range(n)
    ]


@pytest.fixture
def larmor_omega():
    """Pulsation of a g=2 moment in 1 T along +z."""
    return Vector3(0.0, 0.0, larmor_pulsation(1.0, g_factor=2.0))


@pytest.fixture
def uniform_field(larmor_omega):
    """Factory of n-site systems in a uniform field."""
    def build(n, direction="+x", **kwargs):
        return UniformField(make_sites(n, direction, **kwargs), larmor_omega)
    return build


@pytest.fixture
def exchange_chain(larmor_omega):
    """6-site exchange chain with random initial spins."""
    np.random.seed(7)
    sites = make_sites(6)
    for site in sites:
        site.moments = MomentState.from_spin(Vector3(direction="random"))
    return ExchangeChain(sites, larmor_omega, coupling=5e12)


@pytest.fixture
def ttm_config():
    """Three-temperature model at 300 K without Newton cooling."""
    return TTMConfig(
        effective_thickness=15e-9,
        initial_temperature=300.0,
        heat_capacity=HeatCapacity(electron=100.0, phonon=3e6, spin=1e6),
        coupling=Coupling(electron_phonon=1e17, electron_spin=1e16, phonon_spin=1e15),
    )


def pytest_configure(config):
    """Configure pytest"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
