"""Retroactive weighting and interval resampling."""

import logging

import numpy as np
import pytest
from scipy.stats import chisquare

from mpf_localizer.particles import ParticleArray, WeightedUpdate, X
from mpf_localizer.resampler import RetroactiveResampler, systematic_indexes


def population(N, gid=0, stamp=0.0, weights=None):
    poses = np.zeros((N, 6))
    poses[:, X] = np.arange(N)  # x encodes the original row
    w = np.ones(N) if weights is None else np.asarray(weights, float)
    return ParticleArray(gid, stamp, poses, w)


def resampled(rs, p, t_start=0.0):
    # first call only starts the clock
    first = p.copy(); first.stamp = t_start
    assert rs.resampling(first) is None
    due = p.copy(); due.stamp = t_start + rs.interval
    return rs.resampling(due)


class TestRetroactiveWeighting:
    def test_current_id_is_elementwise_product(self):
        rs = RetroactiveResampler(1.0, 8)
        cur = population(8, gid=5, weights=np.linspace(0.5, 2.0, 8))
        w = np.random.rand(8)
        out = rs.retroactive_weighting(cur, WeightedUpdate(5, w))
        assert np.allclose(out.weights, cur.weights * w)
        assert out.id == 5
        assert np.array_equal(out.poses, cur.poses)

    def test_older_generation_without_resample_is_index_aligned(self):
        rs = RetroactiveResampler(1.0, 4, history_size=10)
        cur = population(4, gid=7)
        out = rs.retroactive_weighting(cur, WeightedUpdate(3, [1.0, 2.0, 3.0, 4.0]))
        assert np.allclose(out.weights, [1.0, 2.0, 3.0, 4.0])

    def test_out_of_horizon_returns_none_and_leaves_population(self):
        rs = RetroactiveResampler(1.0, 4, history_size=10)
        cur = population(4, gid=20)
        before = cur.copy()
        assert rs.retroactive_weighting(cur, WeightedUpdate(10, np.full(4, 9.0))) is None
        assert np.array_equal(cur.weights, before.weights)
        # oldest remembered generation is still accepted
        assert rs.retroactive_weighting(cur, WeightedUpdate(11, np.full(4, 9.0))) is not None

    def test_future_and_pre_initialization_ids_rejected(self):
        rs = RetroactiveResampler(1.0, 4, history_size=100, first_id=12)
        cur = population(4, gid=15)
        assert rs.retroactive_weighting(cur, WeightedUpdate(16, np.ones(4))) is None
        assert rs.retroactive_weighting(cur, WeightedUpdate(11, np.ones(4))) is None
        assert rs.retroactive_weighting(cur, WeightedUpdate(12, np.ones(4))) is not None

    def test_length_mismatch_rejected(self):
        rs = RetroactiveResampler(1.0, 4)
        assert rs.retroactive_weighting(population(4), WeightedUpdate(0, np.ones(3))) is None

    def test_update_follows_lineage_through_resample(self):
        N = 6
        rs = RetroactiveResampler(1.0, N)
        p = population(N, gid=0, weights=[0.0, 5.0, 1.0, 0.0, 3.0, 1.0])
        r = resampled(rs, p)
        assert r.id == 1
        parents = r.poses[:, X].astype(int)
        assert np.array_equal(parents, rs.lineage[1])

        late = np.array([10.0, 20.0, 30.0, 40.0, 50.0, 60.0])
        out = rs.retroactive_weighting(r, WeightedUpdate(0, late))
        assert np.allclose(out.weights, late[parents])


class TestResampling:
    def test_interval_gate(self):
        rs = RetroactiveResampler(2.0, 5)
        assert rs.resampling(population(5, stamp=10.0)) is None   # starts the clock
        assert rs.resampling(population(5, stamp=11.9)) is None
        out = rs.resampling(population(5, gid=3, stamp=12.0))
        assert out is not None and out.id == 4
        assert rs.resampling(population(5, gid=4, stamp=13.0)) is None

    @pytest.mark.parametrize("weights", [
        np.zeros(10),
        np.eye(10)[3],
        np.random.rand(10),
        np.full(10, 1e-300),
    ])
    def test_size_is_preserved(self, weights):
        rs = RetroactiveResampler(1.0, 10)
        out = resampled(rs, population(10, weights=weights))
        assert len(out) == 10
        assert np.all(out.weights == 1.0)

    def test_single_particle_passes_through(self):
        rs = RetroactiveResampler(1.0, 1)
        p = population(1, gid=2, weights=[0.0])
        out = resampled(rs, p)
        assert len(out) == 1 and out.id == 3
        assert np.array_equal(out.poses, p.poses)

    def test_one_hot_collapses(self):
        rs = RetroactiveResampler(1.0, 10)
        out = resampled(rs, population(10, weights=np.eye(10)[7]))
        assert np.all(out.poses[:, X] == 7)

    def test_all_zero_weights_warn(self, caplog):
        caplog.set_level(logging.WARNING)
        rs = RetroactiveResampler(1.0, 10)
        out = resampled(rs, population(10, weights=np.zeros(10)))
        assert len(out) == 10
        assert "degenerate weights" in caplog.text

    @pytest.mark.parametrize("offset", [0.1, 0.25, 0.5, 0.9])
    def test_equal_weights_keep_every_row_once(self, offset):
        idx = systematic_indexes(np.ones(500), offset=offset)
        assert np.array_equal(idx, np.arange(500))

    def test_equal_weights_resample_preserves_population(self):
        rs = RetroactiveResampler(1.0, 16)
        p = population(16, gid=4)
        out = resampled(rs, p)
        assert out.id == 5
        assert np.array_equal(out.poses, p.poses)
        assert np.all(out.weights == 1.0)

    def test_weighted_draw_matches_weights(self):
        N, trials = 400, 25
        w = np.tile([1.0, 2.0, 3.0, 4.0], N // 4)
        observed = np.zeros(4)
        for _ in range(trials):
            idx = systematic_indexes(w)
            observed += np.bincount(idx % 4, minlength=4)
        expected = np.array([0.1, 0.2, 0.3, 0.4]) * N * trials
        _, pval = chisquare(observed, expected)
        assert pval > 0.01

    def test_lineage_is_pruned_to_history(self):
        rs = RetroactiveResampler(1.0, 3, history_size=2)
        p = population(3)
        t = 0.0
        rs.resampling(p)
        for _ in range(5):
            t += 1.0
            p = p.copy(); p.stamp = t
            p = rs.resampling(p)
        assert sorted(rs.lineage) == [p.id - 1, p.id]
