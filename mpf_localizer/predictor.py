#!/usr/bin/env python3
# predictor.py
# Owns the live population: initialization, constant-twist prediction with
# injected noise, and merging of (possibly late) weighted updates.
# ROS-free; predictor_node.py drives it from a timer and topic callbacks.

import math
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from mpf_localizer.config import FilterConfig
from mpf_localizer.particles import (ParticleArray, WeightedUpdate, MeanPose, mean_state,
                                     X, Y, Z, ROLL, PITCH, YAW)
from mpf_localizer.prediction_util import nrand, normalize_radian
from mpf_localizer.resampler import RetroactiveResampler

_LOG = logging.getLogger(__name__)

# 6x6 row-major covariance diagonal indices
COV_X, COV_Y, COV_YAW = 0, 6*1 + 1, 6*5 + 5


@dataclass
class Twist:
    linear_x: float
    angular_z: float
    linear_var: Optional[float] = None   # None => no covariance supplied
    angular_var: Optional[float] = None


class Uninitialized:
    def __repr__(self): return "Uninitialized"

UNINITIALIZED = Uninitialized()


@dataclass
class Ready:
    particles: ParticleArray
    resampler: RetroactiveResampler


class Predictor:
    def __init__(self, config: Optional[FilterConfig] = None, logger=None):
        self.cfg = (config or FilterConfig()).validate()
        self.log = logger or _LOG
        self.N = int(self.cfg.num_of_particles)

        self.state: Union[Uninitialized, Ready] = UNINITIALIZED
        self.twist: Optional[Twist] = None
        self.ground_height: Optional[float] = None
        self._next_id = 0
        self._lock = threading.Lock()

    @property
    def particles(self) -> Optional[ParticleArray]:
        return self.state.particles if isinstance(self.state, Ready) else None

    # -------------------- inputs --------------------
    def initialize(self, position, yaw, covariance, stamp, only_if_uninitialized=False) -> Optional[ParticleArray]:
        cov = np.asarray(covariance, float).reshape(-1)
        sx = math.sqrt(max(0.0, cov[COV_X]))
        sy = math.sqrt(max(0.0, cov[COV_Y]))
        syaw = math.sqrt(max(0.0, cov[COV_YAW]))
        x0, y0, z0 = (float(v) for v in position)
        if self.ground_height is not None:
            z0 = self.ground_height

        N = self.N
        P = np.zeros((N, 6), float)
        P[:, X] = x0 + nrand(sx, N)
        P[:, Y] = y0 + nrand(sy, N)
        P[:, Z] = z0
        P[:, ROLL] = 0.0; P[:, PITCH] = 0.0
        P[:, YAW] = normalize_radian(float(yaw) + nrand(syaw, N))

        with self._lock:
            if only_if_uninitialized and isinstance(self.state, Ready):
                return None
            gid = self._next_id
            self._next_id = gid + 1
            particles = ParticleArray(gid, float(stamp), P, np.ones(N, float))
            resampler = RetroactiveResampler(self.cfg.resampling_interval_seconds, N,
                                             self.cfg.history_size, first_id=gid, logger=self.log)
            self.state = Ready(particles, resampler)
        self.log.info(f"initialized {N} particles at ({x0:.2f},{y0:.2f}) yaw={float(yaw):.3f} id={gid}")
        return particles.copy()

    def initialize_from_gnss(self, position, yaw, stamp) -> Optional[ParticleArray]:
        """Seed the population from a GNSS pose; ignored once initialized."""
        cov = np.zeros(36)
        cov[COV_X] = cov[COV_Y] = self.cfg.gnss_initial_xy_covariance
        cov[COV_YAW] = self.cfg.gnss_initial_yaw_covariance
        return self.initialize(position, yaw, cov, stamp, only_if_uninitialized=True)

    def set_twist(self, twist: Twist):
        self.twist = twist

    def set_ground_height(self, height: float):
        if math.isfinite(height):
            self.ground_height = float(height)

    # -------------------- predict --------------------
    def _noise_sigmas(self, tw: Twist) -> Tuple[float, float]:
        if self.cfg.use_dynamic_noise and tw.linear_var is not None and tw.angular_var is not None:
            lv, av = tw.linear_var, tw.angular_var
        else:
            lv, av = self.cfg.static_linear_covariance, self.cfg.static_angular_covariance
        k = self.cfg.motion_noise_scale
        return k*math.sqrt(max(0.0, lv)), k*math.sqrt(max(0.0, av))

    def tick(self, now: float) -> Optional[Tuple[ParticleArray, MeanPose]]:
        with self._lock:
            if not isinstance(self.state, Ready) or self.twist is None:
                return None
            particles = self.state.particles
            tw = self.twist

            dt = float(now) - particles.stamp
            if dt < 0.0:
                self.log.warning(f"non-monotonic time: dt={dt:.4f}s, prediction skipped")
                return None

            s_v, s_w = self._noise_sigmas(tw)
            N = len(particles)
            P = particles.poses
            yaw = P[:, YAW]
            vx = tw.linear_x + nrand(s_v, N)
            wz = tw.angular_z + nrand(s_w, N)
            P[:, X] += vx*np.cos(yaw)*dt
            P[:, Y] += vx*np.sin(yaw)*dt
            P[:, YAW] = normalize_radian(yaw + wz*dt)
            if self.ground_height is not None:
                P[:, Z] = self.ground_height

            particles.id = self._bump_id(particles.id)
            particles.stamp = float(now)
            out = particles.copy()

        return out, mean_state(out, self.log)

    def _bump_id(self, gid):
        gid = max(int(gid) + 1, self._next_id)
        self._next_id = gid + 1
        return gid

    # -------------------- corrections --------------------
    def on_weighted_update(self, update: WeightedUpdate) -> Optional[ParticleArray]:
        """Merge a corrector's weights; returns the resampled population if one was drawn."""
        with self._lock:
            if not isinstance(self.state, Ready):
                return None
            st = self.state
            merged = st.resampler.retroactive_weighting(st.particles, update)
            if merged is not None:
                st.particles = merged
            resampled = st.resampler.resampling(st.particles)
            if resampled is None:
                return None
            st.particles = resampled
            self._next_id = max(self._next_id, resampled.id + 1)
            return resampled.copy()

