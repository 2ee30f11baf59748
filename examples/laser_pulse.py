#!/usr/bin/env python3
"""
Optical pulse example using SpinTherm.

A femtosecond Gaussian pulse heats the electrons of a two-temperature
model; the electron temperature drives the thermostat of a two-sublattice
ferrimagnetic chain.
"""

from spintherm import (
    Coupling, DLLBSolver, HeatCapacity, LaserExcitation, MomentAnalyzer,
    MomentState, Pulse, Site, TTMConfig, Vector3
)
from spintherm.utils import convert_units, larmor_pulsation


class ExchangeChain:
    """Open chain with nearest-neighbour exchange and a Zeeman field along z."""

    def __init__(self, sites, omega, coupling):
        self.sites = sites
        self.omega = omega
        self.coupling = coupling
        self.refresh_fields()

    def refresh_fields(self):
        spins = [site.spin for site in self.sites]
        for i, site in enumerate(self.sites):
            field = self.omega
            if i > 0:
                field = field + self.coupling * spins[i - 1]
            if i < len(spins) - 1:
                field = field + self.coupling * spins[i + 1]
            site.omega = field


def main():
    """Run the laser pulse example."""

    print("SpinTherm: Laser Pulse Example")
    print("=" * 40)

    pulse = Pulse(
        shape="gaussian",
        fluence=32.5,
        duration=convert_units(60.0, "fs", "s"),
        delay=convert_units(0.5, "ps", "s")
    )
    ttm = TTMConfig(
        effective_thickness=15e-9,
        initial_temperature=82.0,
        heat_capacity=HeatCapacity(electron=7e3, phonon=3e6),
        coupling=Coupling(electron_phonon=6e17),
        damping=convert_units(5.0, "ps", "s")
    )
    laser = LaserExcitation(ttm, pulse)
    print(f"Peak power: {laser.power(pulse.delay):.3e} W/m^3")

    # Alternating Fe (type 1) and Gd (type 2) moments, antiparallel
    sites = []
    for i in range(10):
        if i % 2 == 0:
            sites.append(Site(name="Fe", atom_type=1, g=2.0, position=Vector3(float(i), 0.0, 0.0),
                              moments=MomentState.from_spin(Vector3(direction="+z"))))
        else:
            sites.append(Site(name="Gd", atom_type=2, g=2.0, position=Vector3(float(i), 0.0, 0.0),
                              moments=MomentState.from_spin(Vector3(direction="-z"))))

    field = ExchangeChain(sites, Vector3(0.0, 0.0, larmor_pulsation(0.1)), coupling=-1e13)
    solver = DLLBSolver(field)

    results = solver.evolve_laser(
        laser,
        stop=convert_units(1.0, "ps", "s"),
        dt=convert_units(1.0, "fs", "s"),
        alpha=0.05,
        thermostat="classical",
        sink="laser_trace.dat"
    )

    analyzer = MomentAnalyzer(sites)
    print(f"Maximum electron temperature: {results['electron_temperatures'].max():.1f} K")
    print(f"Final temperatures: {results['final_temperatures']}")
    for atom_type in analyzer.atom_types():
        sublattice = analyzer.sublattice(atom_type)
        print(f"Sublattice {atom_type}: m_z = {sublattice.calculate_magnetization().z:.4f}, "
              f"|m| = {sublattice.calculate_magnetization_length():.4f}")


if __name__ == "__main__":
    main()
