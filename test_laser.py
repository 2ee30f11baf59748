"""
Tests for the two/three-temperature laser heating model.
"""

import dataclasses
import json
import numpy as np
import pytest

from spintherm.core.exceptions import InvalidConfigurationError, UnsupportedMethodError
from spintherm.thermal.laser import (
    Coupling, HeatCapacity, LaserExcitation, Pulse, TTMConfig, Temperatures
)


class TestTemperatures:

    def test_arithmetic(self):
        a = Temperatures(300.0, 200.0, 100.0)
        b = Temperatures(1.0, 2.0, 3.0)
        assert a + b == Temperatures(301.0, 202.0, 103.0)
        assert a - b == Temperatures(299.0, 198.0, 97.0)
        assert 2 * b == b * 2 == Temperatures(2.0, 4.0, 6.0)

    def test_accumulate(self):
        a = Temperatures(1.0, 1.0, 1.0)
        held = a
        a += Temperatures(1.0, 0.0, 0.0)
        assert held == Temperatures(1.0, 1.0, 1.0)
        assert a.electron == 2.0


class TestConfiguration:

    def test_electron_capacity_required(self):
        with pytest.raises(InvalidConfigurationError):
            TTMConfig(15e-9, 300.0, HeatCapacity(0.0, 3e6, 1e6))

    def test_coupling_into_empty_bath(self):
        with pytest.raises(InvalidConfigurationError):
            TTMConfig(15e-9, 300.0, HeatCapacity(100.0, 3e6, 0.0),
                      coupling=Coupling(electron_phonon=1e17, electron_spin=1e16))

    def test_two_temperature_mode(self):
        ttm = TTMConfig(15e-9, 300.0, HeatCapacity(100.0, 3e6, 0.0),
                        coupling=Coupling(electron_phonon=1e17))
        laser = LaserExcitation(ttm, temperatures=Temperatures(400.0, 300.0, 300.0))
        rates = laser.rhs(0.0, laser.temperatures)
        assert rates.spin == 0.0
        assert rates.phonon == pytest.approx(1e17 / 3e6 * 100.0)

    def test_capacity_cannot_change_after_construction(self, ttm_config):
        capacity = ttm_config.heat_capacity
        with pytest.raises(dataclasses.FrozenInstanceError):
            capacity.phonon = 0.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            ttm_config.heat_capacity = HeatCapacity(100.0, 0.0, 0.0)
        laser = LaserExcitation(ttm_config, temperatures=Temperatures(400.0, 300.0, 300.0))
        rates = laser.rhs(0.0, laser.temperatures)
        assert np.isfinite(rates.phonon)
        assert ttm_config.heat_capacity == HeatCapacity(100.0, 3e6, 1e6)

    @pytest.mark.parametrize("electron", [0.0, -10.0, float('nan')])
    def test_electron_temperature_must_be_positive(self, ttm_config, electron):
        with pytest.raises(InvalidConfigurationError, match="Electron temperature"):
            LaserExcitation(ttm_config, temperatures=Temperatures(electron, 300.0, 300.0))

    def test_unknown_pulse_shape(self):
        with pytest.raises(UnsupportedMethodError):
            Pulse(shape="triangle", fluence=1.0, duration=1e-13)

    def test_gaussian_needs_duration(self):
        with pytest.raises(InvalidConfigurationError):
            Pulse(fluence=1.0, duration=0.0)

    def test_jsonify(self, ttm_config):
        laser = LaserExcitation(ttm_config, Pulse(fluence=2.0, duration=5e-14))
        payload = json.loads(laser.jsonify())
        assert payload['pulse']['shape'] == "gaussian"
        assert payload['ttm']['heat_capacity']['phonon'] == 3e6
        assert payload['temperatures'] == {'electron': 300.0, 'phonon': 300.0, 'spin': 300.0}


class TestPower:

    def test_gaussian_peak(self, ttm_config):
        pulse = Pulse(fluence=2.0, duration=5e-14, delay=1e-12)
        laser = LaserExcitation(ttm_config, pulse)
        assert laser.power(1e-12) == pytest.approx(2.0 / (5e-14 * 15e-9))
        assert laser.power(1e-12 + 3e-14) == pytest.approx(
            laser.power(1e-12) * np.exp(-(3e-14) ** 2 / (0.36 * (5e-14) ** 2))
        )

    def test_no_pulse(self, ttm_config):
        assert LaserExcitation(ttm_config).power(0.0) == 0.0
        laser = LaserExcitation(ttm_config, Pulse(shape="none", fluence=2.0))
        assert laser.power(0.0) == 0.0


class TestIntegration:

    @pytest.mark.parametrize("method", ["euler", "rk1", "rk2", "rk4"])
    def test_steady_state(self, ttm_config, method):
        laser = LaserExcitation(ttm_config)
        for _ in range(50):
            laser.advance(method, 1e-15)
        assert laser.temperatures == Temperatures(300.0, 300.0, 300.0)
        assert laser.time == pytest.approx(50e-15)

    def test_unknown_method(self, ttm_config):
        laser = LaserExcitation(ttm_config)
        with pytest.raises(UnsupportedMethodError):
            laser.advance("rk3", 1e-15)
        assert laser.time == 0.0

    def test_relaxation_towards_common_temperature(self, ttm_config):
        laser = LaserExcitation(ttm_config, temperatures=Temperatures(600.0, 300.0, 300.0))
        for _ in range(200):
            laser.advance("rk4", laser.estimate_timestep(0.5))
        temps = laser.temperatures
        assert temps.electron < 600.0
        assert temps.phonon > 300.0 and temps.spin > 300.0

    def test_newton_cooling(self):
        ttm = TTMConfig(15e-9, 300.0, HeatCapacity(100.0, 0.0, 0.0), damping=1e-12)
        laser = LaserExcitation(ttm, temperatures=Temperatures(310.0, 300.0, 300.0))
        assert laser.rhs(0.0, laser.temperatures).electron == pytest.approx(-10.0 / 1e-12)

    def test_rk4_matches_exact_cooling(self):
        tau = 1e-12
        ttm = TTMConfig(15e-9, 300.0, HeatCapacity(100.0, 0.0, 0.0), damping=tau)
        laser = LaserExcitation(ttm, temperatures=Temperatures(400.0, 300.0, 300.0))
        for _ in range(100):
            laser.advance("rk4", 1e-14)
        expected = 300.0 + 100.0 * np.exp(-1e-12 / tau)
        assert laser.temperatures.electron == pytest.approx(expected, rel=1e-9)


class TestTimestep:

    def test_hand_computation(self, ttm_config):
        laser = LaserExcitation(ttm_config, temperatures=Temperatures(310.0, 300.0, 300.0))
        gamma, cp, cs = 100.0, 3e6, 1e6
        cep, ces, cps = 1e17, 1e16, 1e15
        rate_e = -(cep / gamma) * (1 - 300.0 / 310.0) - (ces / gamma) * (1 - 300.0 / 310.0)
        rate_p = (cep / cp) * 10.0 + (cps / cp) * 0.0
        rate_s = (ces / cs) * 10.0 + (cps / cs) * 0.0
        expected = 0.8 / max(abs(rate_e), abs(rate_p), abs(rate_s))
        assert laser.estimate_timestep(0.8) == pytest.approx(expected, rel=1e-12)

    def test_at_rest(self, ttm_config):
        assert LaserExcitation(ttm_config).estimate_timestep() == float('inf')

    def test_invalid_quality_factor(self, ttm_config):
        with pytest.raises(ValueError):
            LaserExcitation(ttm_config).estimate_timestep(0.0)


class TestRun:

    def test_trace_format(self, ttm_config, tmp_path):
        laser = LaserExcitation(ttm_config, Pulse(fluence=1e-3, duration=6e-14, delay=1e-13))
        sink = tmp_path / "ttm.dat"
        results = laser.run(20, max_timestep=1e-15, sink=str(sink), verbose=False)

        lines = sink.read_text().splitlines()
        assert len(lines) == 21
        assert lines[0] == "0.000000e+00 300.000000 300.000000 300.000000"
        assert len(results['times']) == 21
        assert np.all(np.diff(results['times']) > 0)

    def test_stops_at_rest(self, ttm_config):
        laser = LaserExcitation(ttm_config)
        results = laser.run(10, verbose=False)
        assert results['timing']['n_steps'] == 0
        assert results['trace_file'] is None
        assert len(results['trace']) == 1
