#!/usr/bin/env python3
# config.py
# Static configuration for the predictor / resampler / gnss corrector.

import math
from dataclasses import dataclass, fields

# ╔═══════════════════════════════════════════════════════════════════════╗
# ║                         TUNING CONSTANTS (TOP)                        ║
# ╚═══════════════════════════════════════════════════════════════════════╝
# You can edit these OR override them with ROS2 params of the same names.

TUNE = {
    # Population / timing
    "num_of_particles":            500,
    "prediction_rate":             50.0,    # Hz, tick timer
    "resampling_interval_seconds": 1.0,
    "history_size":                100,     # generations an update may lag behind

    # Motion model
    "motion_noise_scale":          4.0,     # multiplies sqrt(twist variance) during prediction only
    "use_dynamic_noise":           True,    # False => static covariances below
    "static_linear_covariance":    0.04,    # (m/s)^2
    "static_angular_covariance":   0.006,   # (rad/s)^2

    # Initialization from a GNSS pose (only while uninitialized)
    "gnss_initial_xy_covariance":  1.0,     # m^2
    "gnss_initial_yaw_covariance": 0.1,     # rad^2

    # GNSS likelihood
    "likelihood_stdev":            5.0,     # m, fixed solution
    "float_range_gain":            5.0,     # stdev / flat radius multiplier for non-fixed solutions
    "likelihood_flat_radius":      1.0,     # m
    "likelihood_min_weight":       0.01,
    "min_travel_distance":         1.0,     # m between emitted updates
    "rtk_enabled":                 True,    # False => every fix is treated as float
    "fixed_covariance_threshold":  0.1,     # m^2, pose cov[0] at or below => fixed
    "max_sync_delay":              0.1,     # s, warn when the scored population is older
    "buffer_seconds":              1.0,     # s of predicted populations kept by correctors

    # Admin
    "switch_timeout_s":            1.0,
}


class ConfigurationError(ValueError):
    pass


def _require(cond, msg):
    if not cond:
        raise ConfigurationError(msg)

def _finite(*vals): return all(math.isfinite(float(v)) for v in vals)


@dataclass
class FilterConfig:
    num_of_particles: int = TUNE["num_of_particles"]
    prediction_rate: float = TUNE["prediction_rate"]
    resampling_interval_seconds: float = TUNE["resampling_interval_seconds"]
    history_size: int = TUNE["history_size"]
    motion_noise_scale: float = TUNE["motion_noise_scale"]
    use_dynamic_noise: bool = TUNE["use_dynamic_noise"]
    static_linear_covariance: float = TUNE["static_linear_covariance"]
    static_angular_covariance: float = TUNE["static_angular_covariance"]
    gnss_initial_xy_covariance: float = TUNE["gnss_initial_xy_covariance"]
    gnss_initial_yaw_covariance: float = TUNE["gnss_initial_yaw_covariance"]

    def validate(self):
        _require(int(self.num_of_particles) > 0,
                 f"num_of_particles must be > 0, got {self.num_of_particles}")
        _require(_finite(self.prediction_rate) and self.prediction_rate > 0.0,
                 f"prediction_rate must be > 0, got {self.prediction_rate}")
        _require(_finite(self.resampling_interval_seconds) and self.resampling_interval_seconds > 0.0,
                 f"resampling_interval_seconds must be > 0, got {self.resampling_interval_seconds}")
        _require(int(self.history_size) >= 1, f"history_size must be >= 1, got {self.history_size}")
        _require(_finite(self.motion_noise_scale) and self.motion_noise_scale >= 0.0,
                 f"motion_noise_scale must be >= 0, got {self.motion_noise_scale}")
        _require(_finite(self.static_linear_covariance, self.static_angular_covariance)
                 and self.static_linear_covariance >= 0.0 and self.static_angular_covariance >= 0.0,
                 "static covariances must be finite and >= 0")
        _require(_finite(self.gnss_initial_xy_covariance, self.gnss_initial_yaw_covariance)
                 and self.gnss_initial_xy_covariance >= 0.0 and self.gnss_initial_yaw_covariance >= 0.0,
                 "gnss initial covariances must be finite and >= 0")
        return self


@dataclass
class GnssConfig:
    likelihood_stdev: float = TUNE["likelihood_stdev"]
    float_range_gain: float = TUNE["float_range_gain"]
    likelihood_flat_radius: float = TUNE["likelihood_flat_radius"]
    likelihood_min_weight: float = TUNE["likelihood_min_weight"]
    min_travel_distance: float = TUNE["min_travel_distance"]
    rtk_enabled: bool = TUNE["rtk_enabled"]
    fixed_covariance_threshold: float = TUNE["fixed_covariance_threshold"]
    max_sync_delay: float = TUNE["max_sync_delay"]
    buffer_seconds: float = TUNE["buffer_seconds"]

    def validate(self):
        _require(_finite(self.likelihood_stdev) and self.likelihood_stdev > 0.0,
                 f"likelihood_stdev must be > 0, got {self.likelihood_stdev}")
        _require(_finite(self.float_range_gain) and self.float_range_gain > 0.0,
                 f"float_range_gain must be > 0, got {self.float_range_gain}")
        for name in ("likelihood_flat_radius", "likelihood_min_weight", "min_travel_distance",
                     "fixed_covariance_threshold", "max_sync_delay"):
            v = getattr(self, name)
            _require(_finite(v) and v >= 0.0, f"{name} must be >= 0, got {v}")
        _require(_finite(self.buffer_seconds) and self.buffer_seconds > 0.0,
                 f"buffer_seconds must be > 0, got {self.buffer_seconds}")
        return self


def load(cls, node):
    """Declare every field of `cls` as a ROS parameter and build a validated instance.

    `node` is any rclpy Node; nothing here imports rclpy so the dataclasses stay
    usable from tests.
    """
    kw = {}
    for f in fields(cls):
        if not node.has_parameter(f.name):
            node.declare_parameter(f.name, TUNE[f.name])
        v = node.get_parameter(f.name).value
        kw[f.name] = type(TUNE[f.name])(v)
    return cls(**kw).validate()
