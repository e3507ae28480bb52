#!/usr/bin/env python3
# corrector.py
# Common base for correction sources. A corrector only ever sees predicted
# populations and answers with a WeightedUpdate tagged by the generation it
# scored; it never touches the predictor's state.

import bisect
import enum
import logging
from collections import deque
from typing import Optional

from mpf_localizer.particles import ParticleArray, WeightedUpdate

_LOG = logging.getLogger(__name__)


class AbstCorrector:
    def __init__(self, buffer_seconds=1.0, logger=None):
        self.buffer_seconds = float(buffer_seconds)
        self.log = logger or _LOG
        self.enabled = True
        self.buf = deque()  # predicted populations, ascending stamp

    # -------------------- admin --------------------
    def set_enabled(self, flag: bool) -> bool:
        if bool(flag) != self.enabled:
            self.log.info(f"{type(self).__name__} {'enabled' if flag else 'disabled'}")
        self.enabled = bool(flag)
        return self.enabled

    # -------------------- predicted population buffer --------------------
    def on_predicted(self, particles: ParticleArray):
        if self.buf and particles.stamp < self.buf[-1].stamp:
            # clock jumped back (bag restart / reinit): old history is meaningless
            self.buf.clear()
        self.buf.append(particles)
        tmin = particles.stamp - self.buffer_seconds
        while self.buf and self.buf[0].stamp < tmin:
            self.buf.popleft()

    def synchronized_particles(self, stamp: float) -> Optional[ParticleArray]:
        if not self.buf:
            return None
        times = [p.stamp for p in self.buf]
        i = bisect.bisect_left(times, stamp)
        if i <= 0: return self.buf[0]
        if i >= len(self.buf): return self.buf[-1]
        a, b = self.buf[i-1], self.buf[i]
        return b if abs(b.stamp - stamp) < abs(stamp - a.stamp) else a

    # -------------------- scoring --------------------
    def score(self, particles: ParticleArray, observation) -> Optional[WeightedUpdate]:
        raise NotImplementedError


# -------------------- admin toggle outcome --------------------
class SwitchResult(enum.Enum):
    OK = "ok"
    REJECTED = "rejected"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


def switch_result(service_ready: bool, done: bool, response) -> SwitchResult:
    # an unanswered toggle is reported, never retried
    if not service_ready:
        return SwitchResult.UNAVAILABLE
    if not done or response is None:
        return SwitchResult.TIMEOUT
    return SwitchResult.OK if response.success else SwitchResult.REJECTED
