#!/usr/bin/env python3
# visualize.py
# Colour ramp used by diagnostic markers (blue -> cyan -> green -> yellow -> red).

import numpy as np


def weight_to_rgba(value):
    v = min(1.0, max(0.0, float(value)))
    r = g = b = 1.0
    if v < 0.25:
        r = 0.0; g = 4.0*v
    elif v < 0.5:
        r = 0.0; b = 1.0 + 4.0*(0.25 - v)
    elif v < 0.75:
        r = 4.0*(v - 0.5); b = 0.0
    else:
        g = 1.0 + 4.0*(0.75 - v); b = 0.0
    return (r, g, b, 1.0)


def bound_weights(weights):
    # min-max into [0,1]; flat populations map to 0
    w = np.asarray(weights, float)
    if w.size == 0:
        return w
    lo, hi = float(np.min(w)), float(np.max(w))
    hi = max(hi, lo + 1e-7)
    return np.clip((w - lo)/(hi - lo), 0.0, 1.0)
