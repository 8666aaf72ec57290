from __future__ import annotations

import os
import re
import time
import uuid

# ISO 3779: 17 characters, letters I, O and Q are never used.
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")


def generate_uuid7() -> str:
    """
    Generate a UUIDv7 string (time-ordered).

    UUIDv7 layout per draft:
    - 48-bit Unix timestamp in milliseconds
    - 4-bit version (0b0111)
    - 74-bit randomness
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def normalize_vin(vin: str) -> str:
    return (vin or "").strip().upper()


def is_valid_vin(vin: str) -> bool:
    return bool(VIN_PATTERN.match(normalize_vin(vin)))
