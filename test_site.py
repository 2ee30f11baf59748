"""
Tests for MomentState, Site thermostats and the per-site moment integrators.
"""

import json
import numpy as np
import pytest

from spintherm.core.exceptions import InvalidConfigurationError, UnsupportedMethodError
from spintherm.core.site import CRITICAL_TEMPERATURE, MomentState, Site
from spintherm.core.vector_algebra import Matrix3, Vector3
from spintherm.utils.constants import DEFAULT_CONSTANTS, larmor_pulsation
from spintherm.utils.io import save_sites

OMEGA = larmor_pulsation(1.0)


def precessing_site(use_fast=True, **kwargs):
    return Site(
        name="Fe",
        g=2.0,
        omega=Vector3(0.0, 0.0, OMEGA),
        moments=MomentState.from_spin(Vector3(direction="+x")),
        use_fast=use_fast,
        **kwargs
    )


def generic_state():
    spin = Vector3(0.3, -0.5, 0.7)
    sigma = spin.outer(spin) + 0.01 * Matrix3.identity() + Matrix3(0, 0.002, 0, 0, 0, 0, 0, 0, 0)
    return MomentState(spin, sigma)


class TestMomentState:

    def test_arithmetic(self):
        a = MomentState.from_spin(Vector3(1, 0, 0))
        b = MomentState.from_spin(Vector3(0, 1, 0))
        total = a + b
        assert total.spin == Vector3(1, 1, 0)
        assert total.sigma == Matrix3(1, 0, 0, 0, 1, 0, 0, 0, 0)
        assert 2.0 * a == a * 2.0
        assert (2.0 * a).sigma == Matrix3(2, 0, 0, 0, 0, 0, 0, 0, 0)

    def test_accumulate_does_not_alias(self):
        a = MomentState.from_spin(Vector3(1, 0, 0))
        held = a
        a += a
        assert held.spin == Vector3(1, 0, 0)
        assert a.spin == Vector3(2, 0, 0)

    def test_jsonify(self):
        payload = json.loads(MomentState.from_spin(Vector3(0, 0, 1)).jsonify())
        assert payload["spin"] == {"x": 0.0, "y": 0.0, "z": 1.0}
        assert payload["sigma"]["zz"] == 1.0


class TestSiteConstruction:

    @pytest.mark.parametrize("g", [-1e-12, -1.0, -2.0, float('-inf')])
    def test_negative_g_rejected(self, g):
        with pytest.raises(ValueError, match="g factor must be positive"):
            Site(g=g)

    def test_nan_g_rejected(self):
        with pytest.raises(ValueError):
            Site(g=float('nan'))

    def test_defaults(self):
        site = Site()
        assert site.g == 0.0
        assert site.spin == Vector3()
        assert site.omega == Vector3()

    def test_omega_accepts_arrays(self):
        site = Site(g=2.0)
        site.omega = np.array([1.0, 2.0, 3.0])
        assert site.omega == Vector3(1, 2, 3)

    def test_to_dict_and_save(self, tmp_path):
        site = precessing_site()
        payload = json.loads(site.jsonify())
        assert payload["name"] == "Fe"
        assert payload["moments"]["spin"]["x"] == 1.0

        filename = tmp_path / "sites.json"
        save_sites(filename, [site, site])
        saved = json.loads(filename.read_text())
        assert len(saved) == 2
        assert saved[1]["g"] == 2.0


class TestThermalCoefficient:

    def test_classical(self):
        site = precessing_site()
        assert site.thermal_coefficient(300.0, "classical") == DEFAULT_CONSTANTS.k_B * 300.0

    @pytest.mark.parametrize("thermostat", ["classical", "quantum", "quantum_critical"])
    def test_zero_temperature(self, thermostat):
        site = precessing_site()
        assert site.thermal_coefficient(0.0, thermostat) == 0.0
        assert site.thermal_coefficient(-5.0, thermostat) == 0.0

    def test_unknown_thermostat(self):
        with pytest.raises(UnsupportedMethodError):
            precessing_site().thermal_coefficient(300.0, "langevin")

    def test_critical_above_tc_is_classical(self):
        site = precessing_site(magnon_energy=0.05)
        t = CRITICAL_TEMPERATURE + 10.0
        assert site.thermal_coefficient(t, "quantum_critical") == DEFAULT_CONSTANTS.k_B * t

    def test_critical_without_magnon_energy_is_classical(self):
        site = precessing_site(magnon_energy=0.0)
        assert site.thermal_coefficient(300.0, "quantum_critical") == DEFAULT_CONSTANTS.k_B * 300.0

    def test_critical_below_tc(self):
        site = precessing_site(magnon_energy=0.05)
        coefficient = site.thermal_coefficient(300.0, "quantum_critical")
        assert 0.0 < coefficient < DEFAULT_CONSTANTS.k_B * 300.0

    def test_critical_small_magnon_energy_approaches_classical(self):
        site = precessing_site(magnon_energy=1e-6)
        coefficient = site.thermal_coefficient(300.0, "quantum_critical")
        assert abs(coefficient / (DEFAULT_CONSTANTS.k_B * 300.0) - 1.0) < 1e-3

    def test_quantum_needs_van_hove(self):
        site = precessing_site(exchange_stiffness=0.02, atomic_volume=1e-29)
        with pytest.raises(InvalidConfigurationError):
            site.thermal_coefficient(300.0, "quantum")

    def test_quantum_needs_stiffness(self):
        site = precessing_site(van_hove=1.0, atomic_volume=1e-29)
        with pytest.raises(InvalidConfigurationError):
            site.thermal_coefficient(300.0, "quantum")

    def test_quantum_depends_on_spin_length(self):
        site = precessing_site(magnon_energy=0.01, exchange_stiffness=0.02,
                               van_hove=1.0, atomic_volume=1e-29)
        full = site.thermal_coefficient(300.0, "quantum")
        assert np.isfinite(full) and full > 0.0

        site.moments = MomentState.from_spin(Vector3(0.5, 0.0, 0.0))
        assert site.thermal_coefficient(300.0, "quantum") != full

    def test_no_diffusion_without_moment(self):
        site = Site(g=0.0)
        assert site.diffusion_rate(300.0, 0.1) == 0.0


class TestAdvanceMoments:

    def test_rhs_vanishes_along_field(self):
        site = precessing_site()
        site.moments = MomentState.from_spin(Vector3(0, 0, 1))
        rate = site.rhs(site.moments, temperature=0.0, alpha=0.1)
        np.testing.assert_allclose(rate.spin.to_array(), 0.0, atol=1e-6)

    @pytest.mark.slow
    def test_rk4_precession_conserves_length(self):
        site = precessing_site()
        for _ in range(10000):
            site.advance_moments("rk4", 1e-15)
        assert abs(site.spin.norm() - 1.0) < 1e-6

    @pytest.mark.parametrize("use_fast", [True, False])
    def test_symplectic_precession_conserves_length(self, use_fast):
        site = precessing_site(use_fast=use_fast)
        for _ in range(1000):
            site.advance_moments("symplectic", 1e-14)
        assert abs(site.spin.norm() - 1.0) < 1e-12
        # rotated by exactly c·|ω|·dt per step
        angle = np.arctan2(site.spin.y, site.spin.x)
        expected = np.angle(np.exp(1j * OMEGA * 1e-14 * 1000))
        assert abs(angle - expected) < 1e-9

    @pytest.mark.parametrize("method", ["euler", "rk4", "symplectic"])
    def test_fast_matches_reference(self, method):
        fast = precessing_site(use_fast=True)
        reference = precessing_site(use_fast=False)
        for site in (fast, reference):
            site.moments = generic_state()
            site.omega = Vector3(2e11, -1e11, 3e11)
            for _ in range(5):
                site.advance_moments(method, 1e-15, temperature=300.0, alpha=0.1)

        np.testing.assert_allclose(fast.spin.to_array(), reference.spin.to_array(), rtol=1e-12, atol=1e-13)
        np.testing.assert_allclose(fast.moments.sigma.to_array(), reference.moments.sigma.to_array(),
                                   rtol=1e-12, atol=1e-13)

    def test_rhs_fast_matches_reference(self):
        state = generic_state()
        fast = precessing_site(use_fast=True)
        reference = precessing_site(use_fast=False)
        a = fast.rhs(state, 300.0, 0.05)
        b = reference.rhs(state, 300.0, 0.05)
        scale = OMEGA
        np.testing.assert_allclose(a.spin.to_array(), b.spin.to_array(), rtol=1e-12, atol=1e-12 * scale)
        np.testing.assert_allclose(a.sigma.to_array(), b.sigma.to_array(),
                                   rtol=1e-12, atol=1e-12 * scale)

    @pytest.mark.parametrize("method", ["euler", "rk4", "symplectic"])
    def test_thermostat_shrinks_spin(self, method):
        site = precessing_site()
        for _ in range(100):
            site.advance_moments(method, 1e-15, temperature=300.0, alpha=0.1)
        assert site.spin.norm() < 1.0

    def test_unknown_method(self):
        site = precessing_site()
        before = site.moments
        with pytest.raises(UnsupportedMethodError):
            site.advance_moments("leapfrog", 1e-15)
        assert site.moments == before
