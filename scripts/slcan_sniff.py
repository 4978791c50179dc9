"""Sniff frames from a LAWICEL adapter.

Usage:
  python scripts/slcan_sniff.py --device /dev/ttyUSB0 --count 20
  python scripts/slcan_sniff.py --device /dev/ttyUSB0 --log capture.asc

Frames are printed as they arrive. With --log they are also written through
python-can's Logger, the file format follows the extension (.asc, .blf,
.csv, .log, ...). The channel is closed on exit.
"""
from __future__ import annotations

import argparse
import logging
import pathlib
import sys

import can

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from serialcan.adapters.lawicel import LawicelAdapter
from serialcan.config import ConfigManager
from serialcan.exceptions import SerialCanError


def main():
    p = argparse.ArgumentParser(description="Print (and optionally log) received CAN frames")
    p.add_argument("--config", default=None, help="JSON config file (see serialcan.config)")
    p.add_argument("--device", default=None, help="Serial device, overrides the configuration")
    p.add_argument("--bitrate", type=int, default=None, help="CAN bitrate, overrides the configuration")
    p.add_argument("--count", type=int, default=None, help="Stop after this many frames")
    p.add_argument("--log", default=None, help="Write frames to this python-can log file")
    args = p.parse_args()

    config = ConfigManager(config_path=args.config)
    if args.device:
        config.serial.device = args.device
    if args.bitrate:
        config.bus.bitrate = args.bitrate
    logging.basicConfig(level=config.app.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    adapter: LawicelAdapter = config.create_adapter()
    try:
        adapter.open()
    except SerialCanError as e:
        print("Failed to initialize adapter:", e)
        sys.exit(2)

    writer = can.Logger(args.log) if args.log else None
    seen = 0
    try:
        for frame in adapter.iter_recv(count=args.count):
            seen += 1
            print(f"{frame.kind.value:8} id=0x{frame.identifier:x} len={frame.length} data={frame.data_hex}")
            if writer is not None:
                writer.on_message_received(frame.to_message())
    except KeyboardInterrupt:
        pass
    except SerialCanError as e:
        print("Receive aborted:", e)
    finally:
        if writer is not None:
            writer.stop()
        adapter.close()
    print(f"Received {seen} frame(s)")


if __name__ == "__main__":
    main()
