#!/usr/bin/env python3
"""
Example: Stream a calibrated skeletal pose from wearable sensors.

This script is a minimal console front end: it connects to the configured
sensors and lets you issue the three user commands from the keyboard while
the latest joint orientations are printed periodically.

Commands:
    c   connect to all sensors
    s   broadcast "start" (begin streaming)
    k   broadcast "calibrate" and collect the T-pose reference
    q   quit

Usage:
    python stream_pose.py --config mixamo_ybot
    python stream_pose.py --sensor RA=10.148.16.85 --sensor RFA=10.148.16.90 --verbose
"""

import argparse
import logging
import threading
import time

from imu_mocap_sdk import MotionCaptureService, PoseBuffer, load_rig_config
from imu_mocap_sdk.sensor_session import STATUS_STILL, STATUS_TPOSE
from imu_mocap_sdk.utils import quat_to_euler


def parse_sensor_overrides(values):
    sensors = {}
    for value in values or []:
        label, sep, address = value.partition("=")
        if not sep or not label or not address:
            raise argparse.ArgumentTypeError(f"Expected LABEL=ADDRESS, got {value!r}")
        sensors[label] = address
    return sensors or None


def print_pose_loop(pose, stop_event, interval):
    while not stop_event.wait(interval):
        latest = pose.get_latest_pose()
        if not latest:
            continue
        print(f"\n[Pose] {len(latest)} joint(s), {pose.update_count} update(s)")
        for joint, q in sorted(latest.items()):
            euler = quat_to_euler(q)
            print(f"  {joint:24s} q=({q[0]:6.3f}, {q[1]:6.3f}, {q[2]:6.3f}, {q[3]:6.3f}) "
                  f"euler=({euler[0]:7.1f}, {euler[1]:7.1f}, {euler[2]:7.1f})")


def report_status(token):
    if token == STATUS_STILL:
        print("\n[Main] All sensors report Still, now hold the T-pose")
    elif token == STATUS_TPOSE:
        print("\n[Main] All sensors report T-Pose, hold until the window closes")
    else:
        print(f"\n[Main] {token} completed on all sensors")


def main():
    parser = argparse.ArgumentParser(description="Stream a calibrated pose from wearable IMU sensors")

    parser.add_argument(
        "--config",
        default="mixamo_ybot",
        help="Rig config name or path to a JSON file (default: mixamo_ybot)",
    )

    parser.add_argument(
        "--sensor",
        action="append",
        metavar="LABEL=ADDRESS",
        help="Sensor address, overrides the config's sensor table (repeatable)",
    )

    parser.add_argument(
        "--calibration_window",
        type=float,
        default=None,
        help="T-pose collection window in seconds (default: from config)",
    )

    parser.add_argument(
        "--print_interval",
        type=float,
        default=2.0,
        help="Seconds between pose printouts (default: 2.0)",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    config = load_rig_config(args.config, sensors=parse_sensor_overrides(args.sensor))
    if args.calibration_window is not None:
        config.calibration_window = args.calibration_window

    # Without a renderer the skeleton is just the configured joint names
    pose = PoseBuffer(config.label_to_joint_name.values())
    service = MotionCaptureService(
        config,
        pose,
        on_status_complete=report_status,
    )
    service.start()

    stop_event = threading.Event()
    printer = threading.Thread(target=print_pose_loop, args=(pose, stop_event, args.print_interval), daemon=True)
    printer.start()

    print("[Main] Commands: c=connect, s=start, k=calibrate, q=quit")
    try:
        while True:
            command = input().strip().lower()
            if command == "c":
                started = service.connect_all()
                print(f"[Main] Connecting to {started}")
            elif command == "s":
                service.broadcast_start()
            elif command == "k":
                if service.begin_calibration():
                    print(f"[Main] Hold the T-pose for {config.calibration_window:.0f}s...")
                else:
                    print("[Main] Calibration already running")
            elif command == "q":
                break
            elif command:
                print(f"[Main] Unknown command: {command}")
    except (KeyboardInterrupt, EOFError):
        print("\n[Main] Stopping...")
    finally:
        stop_event.set()
        service.stop()
        time.sleep(0.1)
        print("[Main] Done")


if __name__ == "__main__":
    main()
