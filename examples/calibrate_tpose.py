#!/usr/bin/env python3
"""
Example: Run one unattended T-pose calibration and print the references.

Connects to every configured sensor, waits for them to come up, starts the
stream, collects the T-pose window and prints the calibration summary.

Usage:
    python calibrate_tpose.py --config mixamo_ybot --connect_timeout 5
"""

import argparse
import logging
import time

from imu_mocap_sdk import CalibrationState, MotionCaptureService, PoseBuffer, load_rig_config


def main():
    parser = argparse.ArgumentParser(description="Collect T-pose reference orientations")

    parser.add_argument(
        "--config",
        default="mixamo_ybot",
        help="Rig config name or path to a JSON file (default: mixamo_ybot)",
    )

    parser.add_argument(
        "--connect_timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for sensors to connect (default: 5.0)",
    )

    parser.add_argument(
        "--calibration_window",
        type=float,
        default=None,
        help="T-pose collection window in seconds (default: from config)",
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

    config = load_rig_config(args.config)
    if args.calibration_window is not None:
        config.calibration_window = args.calibration_window

    pose = PoseBuffer(config.label_to_joint_name.values())
    service = MotionCaptureService(config, pose)
    service.start()

    try:
        service.connect_all()
        deadline = time.monotonic() + args.connect_timeout
        expected = {s.label for s in config.sensors}
        while time.monotonic() < deadline and set(service.sessions.connected_labels()) != expected:
            time.sleep(0.1)

        connected = service.sessions.connected_labels()
        if not connected:
            print("[Main] No sensor connected, giving up")
            return
        print(f"[Main] Connected: {connected}")

        service.broadcast_start()
        service.begin_calibration()
        print(f"[Main] Hold the T-pose for {config.calibration_window:.0f}s...")

        while service.calibration_state is CalibrationState.COLLECTING:
            time.sleep(0.5)
            print(f"[Main] {service.engine.remaining():4.1f}s remaining", end="\r")

        result = service.engine.last_result
        print()
        print(result.summary() if result else "[Main] No calibration result")

    except KeyboardInterrupt:
        print("\n[Main] Stopping...")
    finally:
        service.stop()
        print("[Main] Done")


if __name__ == "__main__":
    main()
