#!/usr/bin/env python3
# gnss_corrector_node.py
# GNSS particle corrector (ROS2).
#   in : predicted_particles, gnss/pose_with_covariance, height, srv switch (SetBool)
#   out: weighted_particles, gnss/markers (diagnostics only)

import numpy as np

import rclpy
from rclpy.node import Node
from rclpy.time import Time as RclTime

from builtin_interfaces.msg import Duration
from geometry_msgs.msg import Point, PoseWithCovarianceStamped
from std_msgs.msg import ColorRGBA, Float32, Float64MultiArray, MultiArrayDimension
from std_srvs.srv import SetBool
from visualization_msgs.msg import Marker, MarkerArray

from mpf_localizer import config
from mpf_localizer.codec import CodecError, decode_particles, encode_update
from mpf_localizer.gnss_corrector import GnssFix, GnssParticleCorrector

MAP_FRAME = "map"


def stamp_sec(stamp): return RclTime.from_msg(stamp).nanoseconds * 1e-9


class GnssCorrectorNode(Node):
    def __init__(self):
        super().__init__("gnss_particle_corrector")

        self.cfg = config.load(config.GnssConfig, self)
        self.declare_parameter("enabled_at_first", True)
        self.declare_parameter("visualize", True)
        self.visualize = bool(self.get_parameter("visualize").value)

        self.corrector = GnssParticleCorrector(self.cfg, logger=self.get_logger())
        self.corrector.set_enabled(bool(self.get_parameter("enabled_at_first").value))

        self.create_subscription(Float64MultiArray, "predicted_particles", self.cb_predicted, 10)
        self.create_subscription(PoseWithCovarianceStamped, "gnss/pose_with_covariance", self.cb_pose, 10)
        self.create_subscription(Float32, "height", self.cb_height, 10)
        self.pub_weighted = self.create_publisher(Float64MultiArray, "weighted_particles", 10)
        self.pub_marker = self.create_publisher(MarkerArray, "gnss/markers", 10)
        self.create_service(SetBool, "switch", self.on_switch)

        self.get_logger().info(
            f"gnss corrector up. stdev={self.cfg.likelihood_stdev:.2f}m gain={self.cfg.float_range_gain:.1f} "
            f"flat={self.cfg.likelihood_flat_radius:.2f}m min_w={self.cfg.likelihood_min_weight:.3f}")

    # -------------------- callbacks --------------------
    def on_switch(self, request, response):
        response.success = True
        response.message = "enabled" if self.corrector.set_enabled(request.data) else "disabled"
        return response

    def cb_height(self, msg: Float32):
        self.corrector.on_height(float(msg.data))

    def cb_predicted(self, msg: Float64MultiArray):
        try:
            particles = decode_particles(msg.data)
        except CodecError as e:
            self.get_logger().warning(f"bad predicted_particles frame: {e}")
            return
        self.corrector.on_predicted(particles)

    def cb_pose(self, msg: PoseWithCovarianceStamped):
        p = msg.pose.pose.position
        fix = GnssFix(np.array([p.x, p.y, p.z], float),
                      self.corrector.is_fixed(float(msg.pose.covariance[0])),
                      stamp_sec(msg.header.stamp))
        update = self.corrector.on_fix(fix)
        if update is not None:
            out = Float64MultiArray()
            out.data = [float(v) for v in encode_update(update)]
            out.layout.dim = [MultiArrayDimension(label="weights", size=len(out.data), stride=1)]
            self.pub_weighted.publish(out)
        if self.visualize and self.corrector.last_diagnostics is not None:
            self._publish_markers(self.corrector.last_diagnostics, msg.header.stamp)
            self.corrector.last_diagnostics = None

    # -------------------- markers --------------------
    def _publish_markers(self, diag, stamp):
        ma = MarkerArray()

        pts = Marker()
        pts.header.frame_id = MAP_FRAME; pts.header.stamp = stamp
        pts.ns = "gnss_weighted_particles"; pts.id = 0
        pts.type = Marker.POINTS; pts.action = Marker.ADD
        pts.scale.x = 0.3; pts.scale.y = 0.3
        pts.lifetime = Duration(sec=1)
        pts.points = [Point(x=float(x), y=float(y), z=float(z)) for x, y, z in diag.points]
        pts.colors = [ColorRGBA(r=r, g=g, b=b, a=a) for r, g, b, a in diag.colors]
        ma.markers.append(pts)

        fx = Marker()
        fx.header.frame_id = MAP_FRAME; fx.header.stamp = stamp
        fx.ns = "gnss_fix"; fx.id = 1
        fx.type = Marker.CYLINDER; fx.action = Marker.ADD
        _, flat = self.corrector.likelihood_params(diag.fixed)
        fx.scale.x = fx.scale.y = max(0.2, 2.0*flat); fx.scale.z = 0.1
        fx.pose.position.x = float(diag.fix_position[0])
        fx.pose.position.y = float(diag.fix_position[1])
        fx.pose.position.z = float(diag.fix_position[2])
        fx.color = ColorRGBA(r=0.0, g=1.0, b=0.0, a=0.6) if diag.fixed else ColorRGBA(r=1.0, g=0.6, b=0.0, a=0.6)
        fx.lifetime = Duration(sec=1)
        ma.markers.append(fx)

        self.pub_marker.publish(ma)


def main():
    rclpy.init()
    node = GnssCorrectorNode()
    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    finally:
        if rclpy.ok():
            node.destroy_node()
            rclpy.shutdown()

if __name__ == "__main__":
    main()
