#!/usr/bin/env python3
# gnss_corrector.py
# Absolute-position correction: a GNSS fix becomes per-particle weights.
#
# Likelihood of a particle = gaussian pdf of its planar distance to the fix,
# flat inside `likelihood_flat_radius`, floored at `likelihood_min_weight` so a
# bad fix can never wipe out the population. Non-fixed (float/single) solutions
# use stdev and flat radius inflated by `float_range_gain`.

import math
from dataclasses import dataclass
from typing import Optional, List, Tuple

import numpy as np

from mpf_localizer.config import GnssConfig
from mpf_localizer.corrector import AbstCorrector
from mpf_localizer.particles import ParticleArray, WeightedUpdate, mean_state, X, Y, Z
from mpf_localizer.visualize import weight_to_rgba, bound_weights

_SQRT_2PI = math.sqrt(2.0*math.pi)


@dataclass
class GnssFix:
    position: np.ndarray
    fixed: bool
    stamp: float


@dataclass
class GnssDiagnostics:
    fix_position: np.ndarray
    fixed: bool
    points: np.ndarray                         # (N,3)
    colors: List[Tuple[float, float, float, float]]


def normal_pdf(x, mu, sigma):
    a = (np.asarray(x, float) - mu)/sigma
    return np.exp(-0.5*a*a)/(_SQRT_2PI*sigma)


class GnssParticleCorrector(AbstCorrector):
    def __init__(self, config: Optional[GnssConfig] = None, logger=None):
        self.cfg = (config or GnssConfig()).validate()
        super().__init__(self.cfg.buffer_seconds, logger)
        self.latest_height: Optional[float] = None
        self.last_mean_position: Optional[np.ndarray] = None
        self.last_diagnostics: Optional[GnssDiagnostics] = None

    def on_height(self, height: float):
        if math.isfinite(height):
            self.latest_height = float(height)

    def is_fixed(self, position_variance: float) -> bool:
        if not self.cfg.rtk_enabled:
            return False
        return math.isfinite(position_variance) and position_variance <= self.cfg.fixed_covariance_threshold

    # -------------------- likelihood --------------------
    def likelihood_params(self, fixed: bool):
        sigma = self.cfg.likelihood_stdev
        flat = self.cfg.likelihood_flat_radius
        if not fixed:
            sigma *= self.cfg.float_range_gain
            flat *= self.cfg.float_range_gain
        return sigma, flat

    def weight_particles(self, particles: ParticleArray, position, fixed: bool) -> np.ndarray:
        sigma, flat = self.likelihood_params(fixed)
        d = np.hypot(particles.poses[:, X] - position[0], particles.poses[:, Y] - position[1])
        like = normal_pdf(np.maximum(d - flat, 0.0), 0.0, sigma)
        return np.maximum(like, self.cfg.likelihood_min_weight)

    def score(self, particles: ParticleArray, fix: GnssFix) -> Optional[WeightedUpdate]:
        w = self.weight_particles(particles, fix.position, fix.fixed)
        return WeightedUpdate(particles.id, w)

    # -------------------- event --------------------
    def on_fix(self, fix: GnssFix) -> Optional[WeightedUpdate]:
        if not self.enabled:
            return None
        if self.latest_height is None:
            return None
        particles = self.synchronized_particles(fix.stamp)
        if particles is None:
            return None

        position = np.array([fix.position[0], fix.position[1], self.latest_height], float)
        fix = GnssFix(position, bool(fix.fixed), float(fix.stamp))

        dt = fix.stamp - particles.stamp
        if abs(dt) > self.cfg.max_sync_delay:
            self.log.warning(f"gnss fix and predicted particles are {dt:.3f}s apart")

        update = self.score(particles, fix)
        self.last_diagnostics = self._diagnostics(particles, update.weights, fix)

        # skip near-duplicate fixes while standing still
        weighted = ParticleArray(particles.id, particles.stamp, particles.poses, update.weights)
        mean = mean_state(weighted, self.log).position
        if self.last_mean_position is not None:
            moved = float(np.linalg.norm(mean[:2] - self.last_mean_position[:2]))
            if moved <= self.cfg.min_travel_distance:
                self.log.debug(f"skip gnss weighting, mean moved only {moved:.2f} m")
                return None
        self.last_mean_position = mean
        return update

    def _diagnostics(self, particles, weights, fix) -> GnssDiagnostics:
        pts = particles.poses[:, [X, Y, Z]].copy()
        colors = [weight_to_rgba(v) for v in bound_weights(weights)]
        return GnssDiagnostics(fix.position.copy(), fix.fixed, pts, colors)
