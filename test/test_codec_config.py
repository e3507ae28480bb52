"""Wire frames and static configuration."""

from types import SimpleNamespace

import numpy as np
import pytest

from mpf_localizer import config
from mpf_localizer.codec import (CodecError, decode_particles, decode_update,
                                 encode_particles, encode_update)
from mpf_localizer.config import ConfigurationError, FilterConfig, GnssConfig
from mpf_localizer.particles import ParticleArray, WeightedUpdate


class TestCodec:
    def test_population_frame(self):
        p = ParticleArray(41, 123.25, np.random.randn(5, 6), np.random.rand(5))
        data = encode_particles(p)
        assert data.shape == (4 + 5*7,)
        q = decode_particles(list(data))
        assert q.id == 41 and q.stamp == 123.25
        assert np.array_equal(q.poses, p.poses) and np.array_equal(q.weights, p.weights)

    def test_update_frame(self):
        u = decode_update(encode_update(WeightedUpdate(9, [0.5, 0.25, 0.0])))
        assert u.id == 9 and np.array_equal(u.weights, [0.5, 0.25, 0.0])

    def test_malformed_frames(self):
        good = encode_particles(ParticleArray(1, 0.0, np.zeros((2, 6)), np.ones(2)))
        with pytest.raises(CodecError):
            decode_particles(good[:-1])
        with pytest.raises(CodecError):
            decode_update(good)                        # wrong kind
        with pytest.raises(CodecError):
            decode_update([2.0, 1.0])                  # too short
        with pytest.raises(CodecError):
            decode_update([2.0, float("nan"), 1.0, 1.0])
        assert issubclass(CodecError, ValueError)


class FakeNode:
    """Just enough of rclpy.node.Node for config.load()."""

    def __init__(self, overrides=None):
        self.params = dict(overrides or {})

    def has_parameter(self, name): return name in self.params

    def declare_parameter(self, name, value): self.params[name] = value

    def get_parameter(self, name): return SimpleNamespace(value=self.params[name])


class TestConfig:
    def test_defaults_validate(self):
        assert FilterConfig().validate().num_of_particles == config.TUNE["num_of_particles"]
        assert GnssConfig().validate().likelihood_stdev == config.TUNE["likelihood_stdev"]

    @pytest.mark.parametrize("kw", [
        {"num_of_particles": 0},
        {"num_of_particles": -3},
        {"prediction_rate": 0.0},
        {"history_size": 0},
        {"motion_noise_scale": float("nan")},
        {"static_linear_covariance": -1.0},
    ])
    def test_invalid_filter_config(self, kw):
        with pytest.raises(ConfigurationError):
            FilterConfig(**kw).validate()

    @pytest.mark.parametrize("kw", [
        {"likelihood_stdev": 0.0},
        {"float_range_gain": -1.0},
        {"likelihood_min_weight": -0.1},
        {"buffer_seconds": 0.0},
    ])
    def test_invalid_gnss_config(self, kw):
        with pytest.raises(ConfigurationError):
            GnssConfig(**kw).validate()

    def test_load_declares_and_overrides(self):
        node = FakeNode({"num_of_particles": 64, "use_dynamic_noise": False})
        cfg = config.load(FilterConfig, node)
        assert cfg.num_of_particles == 64 and cfg.use_dynamic_noise is False
        assert node.params["prediction_rate"] == config.TUNE["prediction_rate"]

    def test_load_rejects_bad_values(self):
        with pytest.raises(ConfigurationError):
            config.load(FilterConfig, FakeNode({"num_of_particles": 0}))
