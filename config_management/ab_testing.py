"""
A/B Arm Assignment.

Deterministic bucketing of subjects into arms. A subject id is
hashed with the 32-bit Java string hash so assignments agree with
other services that bucket the same ids.
"""

import random
from typing import Callable, Optional

from .models import ABArm


INT32_MAX = 2147483647


def java_string_hash(value: str) -> int:
    """``h = h * 31 + ord(c)`` wrapped to a signed 32-bit integer."""
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def normalized_hash(value: str) -> float:
    """Map ``value`` into [0, 1]."""
    return min(abs(java_string_hash(value)) / INT32_MAX, 1.0)


def assign_arm(
    traffic_split: float,
    subject_id: Optional[str] = None,
    rng: Callable[[], float] = random.random,
) -> ABArm:
    """
    Choose an arm.

    With a subject id the choice is a pure function of the id and the
    split. None and the empty string both mean no subject, which
    gets a uniform random draw.
    """
    draw = normalized_hash(subject_id) if subject_id else rng()
    return ABArm.A if draw < traffic_split else ABArm.B
