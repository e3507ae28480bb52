#!/usr/bin/env python3
# resampler.py
# Retroactive weighting + interval-triggered systematic resampling.
#
# Correctors score a predicted population and answer later with weights tagged
# by the generation id they scored. By the time the answer arrives the
# predictor may have ticked (same rows, new id) or resampled (rows rebuilt).
# Each resample records which parent row every new row was drawn from, so an
# update against an older generation is routed row-by-row into the current one.

import math
import logging
from typing import Optional

import numpy as np

from mpf_localizer.particles import ParticleArray, WeightedUpdate

_LOG = logging.getLogger(__name__)


def systematic_indexes(weights, offset=None):
    """Low-variance draw: one uniform offset, N evenly spaced pointers."""
    w = np.asarray(weights, float)
    N = w.shape[0]
    if offset is None:
        offset = np.random.uniform()
    positions = (np.arange(N) + offset) / N
    cs = np.cumsum(w / np.sum(w))
    cs[-1] = 1.0  # guard against round-off leaving the last pointer unmatched
    indexes = np.zeros(N, int)
    i = j = 0
    while i < N:
        if positions[i] < cs[j]:
            indexes[i] = j; i += 1
        else:
            j += 1
    return indexes


class RetroactiveResampler:
    def __init__(self, resampling_interval_seconds, number_of_particles, history_size=100,
                 first_id=0, logger=None):
        self.interval = float(resampling_interval_seconds)
        self.N = int(number_of_particles)
        self.history_size = int(history_size)
        self.first_id = int(first_id)
        self.log = logger or _LOG

        self.previous_resampling_time = None
        # resample generation id -> parent row of each new row
        self.lineage = {}

    # -------------------- retroactive weighting --------------------
    def _check_validity(self, current: ParticleArray, update: WeightedUpdate) -> bool:
        uid, cid = int(update.id), int(current.id)
        floor = max(self.first_id, cid - self.history_size + 1)
        if uid < floor or uid > cid:
            self.log.debug(f"drop weighted update id={uid} (current={cid}, horizon starts at {floor})")
            return False
        if len(update) != len(current):
            self.log.debug(f"drop weighted update id={uid}: {len(update)} weights for {len(current)} particles")
            return False
        return True

    def _trace_back(self, from_id, to_id):
        # rows of generation `from_id` -> rows of generation `to_id` (to_id <= from_id)
        idx = np.arange(self.N)
        for gid in sorted((g for g in self.lineage if to_id < g <= from_id), reverse=True):
            idx = self.lineage[gid][idx]
        return idx

    def retroactive_weighting(self, current: ParticleArray, update: WeightedUpdate) -> Optional[ParticleArray]:
        if not self._check_validity(current, update):
            return None
        idx = self._trace_back(int(current.id), int(update.id))
        out = current.copy()
        out.weights = current.weights * update.weights[idx]
        return out

    # -------------------- resampling --------------------
    def resampling(self, current: ParticleArray) -> Optional[ParticleArray]:
        t = float(current.stamp)
        if self.previous_resampling_time is None:
            self.previous_resampling_time = t
            return None
        if t - self.previous_resampling_time < self.interval:
            return None

        N = len(current)
        w = current.weights
        if N == 1:
            indexes = np.zeros(1, int)
        else:
            s = float(np.sum(w)) if np.all(np.isfinite(w)) else float("nan")
            if not math.isfinite(s) or s <= 0.0 or np.any(w < 0.0):
                self.log.warning(f"degenerate weights (sum={s}), unweighted resample of {N} particles")
                indexes = np.random.randint(0, N, size=N)
            else:
                indexes = systematic_indexes(w)

        new_id = int(current.id) + 1
        out = ParticleArray(new_id, t, current.poses[indexes].copy(), np.ones(N, float))

        self.lineage[new_id] = indexes
        floor = new_id - self.history_size
        for gid in [g for g in self.lineage if g <= floor]:
            del self.lineage[gid]

        self.previous_resampling_time = t
        return out
