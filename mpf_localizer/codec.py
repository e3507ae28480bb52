#!/usr/bin/env python3
# codec.py
# Flat float64 frames for std_msgs/Float64MultiArray transport.
#   population:      [1, id, stamp, N, (x,y,z,roll,pitch,yaw,w) * N]
#   weighted update: [2, id, N, w * N]

import math
import numpy as np

from mpf_localizer.particles import ParticleArray, WeightedUpdate, POSE_DIM

KIND_POPULATION = 1
KIND_UPDATE = 2
STRIDE = POSE_DIM + 1


class CodecError(ValueError):
    pass


def encode_particles(p: ParticleArray) -> np.ndarray:
    N = len(p)
    body = np.column_stack([p.poses, p.weights]).reshape(-1)
    return np.concatenate([[KIND_POPULATION, p.id, p.stamp, N], body]).astype(float)


def encode_update(u: WeightedUpdate) -> np.ndarray:
    return np.concatenate([[KIND_UPDATE, u.id, len(u)], u.weights]).astype(float)


def _header(data, kind, n_head):
    a = np.asarray(data, float).reshape(-1)
    if a.shape[0] < n_head:
        raise CodecError(f"frame too short ({a.shape[0]} values)")
    if not all(math.isfinite(v) for v in a[:n_head]):
        raise CodecError("non-finite frame header")
    if int(a[0]) != kind:
        raise CodecError(f"expected frame kind {kind}, got {a[0]}")
    return a


def decode_particles(data) -> ParticleArray:
    a = _header(data, KIND_POPULATION, 4)
    gid, stamp, N = int(a[1]), float(a[2]), int(a[3])
    if N < 0 or a.shape[0] != 4 + N*STRIDE:
        raise CodecError(f"population frame of {a.shape[0]} values cannot hold {N} particles")
    body = a[4:].reshape(N, STRIDE)
    return ParticleArray(gid, stamp, body[:, :POSE_DIM].copy(), body[:, POSE_DIM].copy())


def decode_update(data) -> WeightedUpdate:
    a = _header(data, KIND_UPDATE, 3)
    gid, N = int(a[1]), int(a[2])
    if N < 0 or a.shape[0] != 3 + N:
        raise CodecError(f"update frame of {a.shape[0]} values cannot hold {N} weights")
    return WeightedUpdate(gid, a[3:].copy())
