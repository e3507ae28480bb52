#!/usr/bin/env python3
# predictor_node.py
# Particle-filter predictor node (ROS2).
#   in : initialpose | gnss_pose (until initialized), twist_with_covariance | twist, height, weighted_particles
#   out: predicted_particles, resampled_particles, predicted_mean_pose, TF map->mpf
# Every callback mutates the same Predictor; the node uses one mutually
# exclusive callback group and is meant for a single-threaded executor.

import math

import rclpy
from rclpy.node import Node
from rclpy.time import Time as RclTime
from rclpy.qos import QoSProfile, QoSHistoryPolicy, QoSReliabilityPolicy, QoSDurabilityPolicy

from geometry_msgs.msg import (PoseStamped, PoseWithCovarianceStamped, TransformStamped,
                               TwistStamped, TwistWithCovarianceStamped, Quaternion)
from std_msgs.msg import Float32, Float64MultiArray, MultiArrayDimension
from tf2_ros import TransformBroadcaster

from mpf_localizer import config
from mpf_localizer.codec import CodecError, encode_particles, decode_update, STRIDE
from mpf_localizer.predictor import Predictor, Twist
from mpf_localizer.prediction_util import yaw_from_quat

MAP_FRAME = "map"
MPF_FRAME = "mpf"


def stamp_sec(stamp): return RclTime.from_msg(stamp).nanoseconds * 1e-9

def to_multiarray(data, label, stride) -> Float64MultiArray:
    msg = Float64MultiArray()
    msg.layout.dim = [MultiArrayDimension(label=label, size=len(data), stride=stride)]
    msg.data = [float(v) for v in data]
    return msg


class PredictorNode(Node):
    def __init__(self):
        super().__init__("predictor")

        self.cfg = config.load(config.FilterConfig, self)
        self.predictor = Predictor(self.cfg, logger=self.get_logger())

        qos_fast = QoSProfile(history=QoSHistoryPolicy.KEEP_LAST, depth=10,
                              reliability=QoSReliabilityPolicy.BEST_EFFORT,
                              durability=QoSDurabilityPolicy.VOLATILE)

        # ----- subs/pubs -----
        self.create_subscription(PoseWithCovarianceStamped, "initialpose", self.cb_initialpose, 1)
        self.create_subscription(PoseStamped, "gnss_pose", self.cb_gnss_pose, 10)
        self.create_subscription(TwistWithCovarianceStamped, "twist_with_covariance", self.cb_twist_cov, qos_fast)
        self.create_subscription(TwistStamped, "twist", self.cb_twist, qos_fast)
        self.create_subscription(Float32, "height", self.cb_height, 10)
        self.create_subscription(Float64MultiArray, "weighted_particles", self.cb_weighted, 10)

        self.pub_predicted = self.create_publisher(Float64MultiArray, "predicted_particles", 10)
        self.pub_resampled = self.create_publisher(Float64MultiArray, "resampled_particles", 10)
        self.pub_mean = self.create_publisher(PoseStamped, "predicted_mean_pose", 10)
        self.tf_b = TransformBroadcaster(self)

        self.create_timer(1.0/self.cfg.prediction_rate, self.on_timer)

        self.get_logger().info(
            f"predictor up. N={self.cfg.num_of_particles} rate={self.cfg.prediction_rate:.1f}Hz "
            f"resample={self.cfg.resampling_interval_seconds:.2f}s dynamic_noise={self.cfg.use_dynamic_noise}")

    def now_sec(self): return self.get_clock().now().nanoseconds * 1e-9

    # -------------------- callbacks --------------------
    def cb_initialpose(self, msg: PoseWithCovarianceStamped):
        p = msg.pose.pose.position; q = msg.pose.pose.orientation
        yaw = yaw_from_quat(q.x, q.y, q.z, q.w)
        self.predictor.initialize((p.x, p.y, p.z), yaw, list(msg.pose.covariance), stamp_sec(msg.header.stamp))

    def cb_gnss_pose(self, msg: PoseStamped):
        p = msg.pose.position; q = msg.pose.orientation
        yaw = yaw_from_quat(q.x, q.y, q.z, q.w)
        self.predictor.initialize_from_gnss((p.x, p.y, p.z), yaw, stamp_sec(msg.header.stamp))

    def cb_twist_cov(self, msg: TwistWithCovarianceStamped):
        c = msg.twist.covariance
        self.predictor.set_twist(Twist(float(msg.twist.twist.linear.x), float(msg.twist.twist.angular.z),
                                       float(c[0]), float(c[6*5 + 5])))

    def cb_twist(self, msg: TwistStamped):
        self.predictor.set_twist(Twist(float(msg.twist.linear.x), float(msg.twist.angular.z)))

    def cb_height(self, msg: Float32):
        self.predictor.set_ground_height(float(msg.data))

    def cb_weighted(self, msg: Float64MultiArray):
        try:
            update = decode_update(msg.data)
        except CodecError as e:
            self.get_logger().warning(f"bad weighted_particles frame: {e}")
            return
        resampled = self.predictor.on_weighted_update(update)
        if resampled is not None:
            self.pub_resampled.publish(to_multiarray(encode_particles(resampled), "particles", STRIDE))

    def on_timer(self):
        out = self.predictor.tick(self.now_sec())
        if out is None:
            return
        particles, mean = out
        self.pub_predicted.publish(to_multiarray(encode_particles(particles), "particles", STRIDE))
        if mean is not None:
            self._publish_mean(mean)

    # -------------------- publish --------------------
    def _publish_mean(self, mean):
        stamp = rclpy.time.Time(seconds=mean.stamp).to_msg()
        qx, qy, qz, qw = mean.quaternion
        q = Quaternion(x=qx, y=qy, z=qz, w=qw)
        x, y, z = (float(v) for v in mean.position)
        if not all(map(math.isfinite, (x, y, z))):
            return

        ps = PoseStamped()
        ps.header.stamp = stamp; ps.header.frame_id = MAP_FRAME
        ps.pose.position.x = x; ps.pose.position.y = y; ps.pose.position.z = z
        ps.pose.orientation = q
        self.pub_mean.publish(ps)

        t = TransformStamped()
        t.header.stamp = stamp; t.header.frame_id = MAP_FRAME; t.child_frame_id = MPF_FRAME
        t.transform.translation.x = x; t.transform.translation.y = y; t.transform.translation.z = z
        t.transform.rotation = q
        self.tf_b.sendTransform(t)


def main():
    rclpy.init()
    node = PredictorNode()
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
