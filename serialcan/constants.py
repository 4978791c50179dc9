"""
Constants for the LAWICEL serial CAN adapter protocol.

This module centralizes the wire bytes, field widths, limits and lookup
tables shared by the codec, the transaction engine and the receive loop.

Constants are organized by category:
- Wire bytes (terminator, status codes, frame tags)
- CAN identifier and length limits
- ISO-TP segment limits
- Bitrate tables (predefined codes and SJA1000 BTR0/BTR1 values)
- Default adapter settings
"""

# Wire bytes
TERMINATOR = b"\r"
TERMINATOR_BYTE = 0x0D
BELL_BYTE = 0x07  # adapter error reply
STATUS_OK_UPPER = 0x5A  # 'Z'
STATUS_OK_LOWER = 0x7A  # 'z'

TAG_STANDARD = b"t"
TAG_EXTENDED = b"T"

HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")

# CAN identifier ranges
CAN_ID_MASK_STANDARD = 0x7FF  # Standard CAN (11-bit)
CAN_ID_MASK_EXTENDED = 0x1FFFFFFF  # Extended CAN (29-bit)

# Hex digits used for the identifier on the wire
CAN_ID_DIGITS_STANDARD = 3
CAN_ID_DIGITS_EXTENDED = 8

# CAN frame limits
CAN_FRAME_MAX_LENGTH = 8  # Classic CAN maximum data length

# ISO-TP limits
ISOTP_SINGLE_MAX_DATA = 7
ISOTP_FIRST_MAX_DATA = 6
ISOTP_CONSECUTIVE_MAX_DATA = 7
ISOTP_FIRST_MIN_LENGTH = 8
ISOTP_MAX_PAYLOAD = 0xFFF  # 12-bit First frame length
ISOTP_MAX_INDEX = 0xF
ISOTP_MAX_FLOW_FLAG = 2

# Predefined bitrate codes for the 'S' command
STANDARD_BITRATES = {
    1000000: "8",
    800000: "7",
    500000: "6",
    250000: "5",
    125000: "4",
    100000: "3",
    50000: "2",
    20000: "1",
    10000: "0",
}

# BTR0/BTR1 values for the 's' command. The SJA1000 on the CANUSB runs at
# 16 MHz: bitrate = 16000000 / (2 * (BRP + 1) * (3 + TSEG1 + TSEG2))
BTR_BITRATES = {
    1000000: 0x4014,
    800000: 0x4016,
    500000: 0x401C,
    250000: 0x411C,
    125000: 0x431C,
    100000: 0x441C,
    50000: 0x491C,
    20000: 0x581C,
    10000: 0x711C,
}

# Default adapter settings
SERIAL_DEVICE_DEFAULT = "/dev/ttyUSB0"
SERIAL_SPEED_DEFAULT = 19200
CAN_BITRATE_DEFAULT = 125000
ACCEPTANCE_MASK_DEFAULT = 0xFFFFFFFF  # receive all frames
ACCEPTANCE_CODE_DEFAULT = 0x0
SIM_READ_TIMEOUT_DEFAULT = 1.0  # seconds
