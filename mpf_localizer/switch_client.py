#!/usr/bin/env python3
# switch_client.py
# One-shot administrative on/off request for a correction source.
#   ros2 run mpf_localizer switch_client --ros-args -p service:=/gnss/switch -p enable:=false
# Waits at most `switch_timeout_s` for the service and for the answer; the
# outcome is logged and returned as the exit code, nothing is retried.

import sys

import rclpy
from rclpy.node import Node
from std_srvs.srv import SetBool

from mpf_localizer.config import TUNE
from mpf_localizer.corrector import SwitchResult, switch_result


class SwitchClient(Node):
    def __init__(self):
        super().__init__("corrector_switch_client")
        self.declare_parameter("service", "switch")
        self.declare_parameter("enable", True)
        self.declare_parameter("switch_timeout_s", TUNE["switch_timeout_s"])

        self.service = str(self.get_parameter("service").value)
        self.enable = bool(self.get_parameter("enable").value)
        self.timeout = float(self.get_parameter("switch_timeout_s").value)
        self.client = self.create_client(SetBool, self.service)

    def call(self) -> SwitchResult:
        ready = self.client.wait_for_service(timeout_sec=self.timeout)
        done, response = False, None
        if ready:
            fut = self.client.call_async(SetBool.Request(data=self.enable))
            rclpy.spin_until_future_complete(self, fut, timeout_sec=self.timeout)
            done = fut.done()
            response = fut.result() if done else None

        res = switch_result(ready, done, response)
        if res is SwitchResult.OK:
            self.get_logger().info(f"{self.service}: enable={self.enable} acknowledged")
        else:
            self.get_logger().warning(f"{self.service}: enable={self.enable} -> {res.value} "
                                      f"(timeout {self.timeout:.1f}s, not retried)")
        return res


def main():
    rclpy.init()
    node = SwitchClient()
    res = SwitchResult.UNAVAILABLE
    try:
        res = node.call()
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()
    sys.exit(0 if res is SwitchResult.OK else 1)

if __name__ == "__main__":
    main()
