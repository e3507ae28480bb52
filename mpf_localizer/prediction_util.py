#!/usr/bin/env python3
# prediction_util.py
# Small math shared by the predictor, resampler and correctors.
# All sampling goes through numpy's process-wide random state so one
# np.random.seed() makes a whole run reproducible.

import math
import numpy as np


def nrand(sigma, size=None):
    # zero-mean gaussian; sigma==0 yields exact zeros
    sigma = float(sigma)
    if not math.isfinite(sigma) or sigma <= 0.0:
        return 0.0 if size is None else np.zeros(size, float)
    return np.random.normal(0.0, sigma, size=size)


def normalize_radian(a):
    """Wrap angle(s) into (-pi, pi]."""
    if np.ndim(a) == 0:
        r = math.fmod(float(a) + math.pi, 2.0*math.pi)
        if r <= 0.0: r += 2.0*math.pi
        return r - math.pi
    a = np.asarray(a, float)
    r = np.fmod(a + math.pi, 2.0*math.pi)
    r = np.where(r <= 0.0, r + 2.0*math.pi, r)
    return r - math.pi


def mean_radian(angles, weights=None) -> float:
    """Weighted circular mean: atan2 of the weighted sum of unit vectors.

    A linear average of {170deg, -170deg} gives 0; this gives 180deg.
    """
    th = np.asarray(angles, float)
    if th.size == 0:
        return 0.0
    w = np.ones_like(th) if weights is None else np.asarray(weights, float)
    s = float(np.sum(w*np.sin(th))); c = float(np.sum(w*np.cos(th)))
    if not (math.isfinite(s) and math.isfinite(c)):
        return 0.0
    return normalize_radian(math.atan2(s, c))


# -------------------- rotations --------------------
def yaw_from_quat(x, y, z, w):
    siny_cosp = 2.0*(w*z + x*y)
    cosy_cosp = 1.0 - 2.0*(y*y + z*z)
    return math.atan2(siny_cosp, cosy_cosp)

def quat_from_rpy(roll, pitch, yaw):
    # (x, y, z, w), same convention as tf2 setRPY
    cr, sr = math.cos(roll*0.5), math.sin(roll*0.5)
    cp, sp = math.cos(pitch*0.5), math.sin(pitch*0.5)
    cy, sy = math.cos(yaw*0.5), math.sin(yaw*0.5)
    return (sr*cp*cy - cr*sp*sy,
            cr*sp*cy + sr*cp*sy,
            cr*cp*sy - sr*sp*cy,
            cr*cp*cy + sr*sp*sy)
