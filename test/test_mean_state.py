"""Mean-state reduction of a weighted population."""

import logging
import math

import numpy as np
import pytest

from mpf_localizer.particles import ParticleArray, mean_state, normalized_weights, YAW


def population(poses, weights, gid=0, stamp=0.0):
    return ParticleArray(gid, stamp, np.asarray(poses, float), np.asarray(weights, float))


class TestNormalizedWeights:
    def test_non_negative_and_sums_to_one(self):
        for w in (np.random.rand(50), np.random.rand(50)*1e-30, np.array([3.0, 0.0, 7.0])):
            n = normalized_weights(w)
            assert np.all(n >= 0.0)
            assert float(np.sum(n)) == pytest.approx(1.0)

    def test_equal_weights_uniform(self):
        assert np.allclose(normalized_weights(np.full(4, 0.3)), 0.25)
        assert np.allclose(normalized_weights(np.zeros(4)), 0.25)

    def test_non_finite_falls_back_with_warning(self, caplog):
        caplog.set_level(logging.WARNING)
        n = normalized_weights(np.array([1.0, np.inf, 2.0, np.nan]))
        assert np.allclose(n, 0.25)
        assert "uniform fallback" in caplog.text


class TestMeanState:
    def test_min_max_normalization_drops_lowest(self):
        # weights [1,3] become [0,1]: the mean is the heavier particle
        p = population([[0, 0, 0, 0, 0, 0], [2, 4, 1, 0, 0, 0.5]], [1.0, 3.0])
        m = mean_state(p)
        assert np.allclose(m.position, [2, 4, 1])
        assert m.rpy[2] == pytest.approx(0.5)

    def test_uniform_position_mean(self):
        p = population([[0, 0, 0, 0, 0, 0], [2, 4, 0, 0, 0, 0]], [1.0, 1.0], stamp=3.5)
        m = mean_state(p)
        assert np.allclose(m.position, [1, 2, 0])
        assert m.stamp == 3.5

    def test_yaw_is_circular(self):
        poses = np.zeros((2, 6))
        poses[:, YAW] = [math.radians(170.0), math.radians(-170.0)]
        m = mean_state(population(poses, [1.0, 1.0]))
        assert abs(abs(m.rpy[2]) - math.pi) < 1e-9

    def test_deterministic(self):
        poses = np.random.randn(30, 6)
        w = np.random.rand(30)
        a = mean_state(population(poses, w)); b = mean_state(population(poses, w))
        assert np.array_equal(a.position, b.position) and np.array_equal(a.rpy, b.rpy)

    def test_empty(self):
        assert mean_state(population(np.zeros((0, 6)), [])) is None
