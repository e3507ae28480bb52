#!/usr/bin/env python3
# particles.py
# Population containers and the mean-state (best estimate) reduction.

import math
import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from mpf_localizer.prediction_util import mean_radian, quat_from_rpy

_LOG = logging.getLogger(__name__)

# pose columns
X, Y, Z, ROLL, PITCH, YAW = range(6)
POSE_DIM = 6


@dataclass
class ParticleArray:
    """Fixed-size ordered population tagged with a generation id.

    poses:   (N,6) [x, y, z, roll, pitch, yaw]
    weights: (N,)  unnormalized importance, >= 0
    Row i keeps its lineage across ticks; only a resample rebuilds rows.
    """
    id: int
    stamp: float
    poses: np.ndarray
    weights: np.ndarray

    def __post_init__(self):
        self.poses = np.asarray(self.poses, float).reshape(-1, POSE_DIM)
        self.weights = np.asarray(self.weights, float).reshape(-1)
        if self.weights.shape[0] != self.poses.shape[0]:
            raise ValueError(f"{self.poses.shape[0]} poses but {self.weights.shape[0]} weights")

    def __len__(self): return self.poses.shape[0]

    def copy(self):
        return ParticleArray(int(self.id), float(self.stamp), self.poses.copy(), self.weights.copy())


@dataclass
class WeightedUpdate:
    id: int
    weights: np.ndarray

    def __post_init__(self):
        self.weights = np.asarray(self.weights, float).reshape(-1)

    def __len__(self): return self.weights.shape[0]


@dataclass
class MeanPose:
    stamp: float
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rpy: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @property
    def quaternion(self):
        return quat_from_rpy(*self.rpy)


def normalized_weights(weights, logger=None) -> np.ndarray:
    """Min-max normalize, then renormalize to sum 1 (uniform fallback)."""
    log = logger or _LOG
    w = np.asarray(weights, float)
    n = w.shape[0]
    if n == 0:
        return w
    uniform = np.full(n, 1.0/n)
    if not np.all(np.isfinite(w)):
        log.warning(f"non-finite particle weights, uniform fallback (N={n})")
        return uniform

    lo, hi = float(np.min(w)), float(np.max(w))
    if hi - lo != 0.0:
        w = (w - lo)/(hi - lo)
    else:
        w = uniform.copy()

    s = float(np.sum(w))
    if not math.isfinite(s) or s <= 0.0:
        log.warning(f"sum_weight: {s}, uniform fallback")
        return uniform
    return w/s


def mean_state(particles: ParticleArray, logger=None) -> Optional[MeanPose]:
    if len(particles) == 0:
        return None
    log = logger or _LOG
    w = normalized_weights(particles.weights, log)
    P = particles.poses

    pos = w @ P[:, X:Z+1]
    rpy = np.array([mean_radian(P[:, k], w) for k in (ROLL, PITCH, YAW)], float)
    return MeanPose(stamp=particles.stamp, position=np.asarray(pos, float), rpy=rpy)
