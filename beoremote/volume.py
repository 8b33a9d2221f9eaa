# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Volume scale conversion between device levels and percentages.

BeoNetRemote devices report and accept integer speaker levels in
[VOLUME_MIN, VOLUME_MAX].  Everything above this module works in a
normalized 0.0-1.0 fraction.

Rounding is deliberately asymmetric: device -> fraction is exact, fraction ->
device rounds *up* so a requested volume is never under-set.
"""

import math

VOLUME_MIN = 1
VOLUME_MAX = 89


class VolumeScale:
    """Linear mapping between a device level range and [0, 1]."""

    def __init__(self, minimum: int = VOLUME_MIN, maximum: int = VOLUME_MAX):
        if maximum <= minimum:
            raise ValueError(f"Invalid volume range {minimum}..{maximum}")
        self.minimum = minimum
        self.maximum = maximum

    def to_percentage(self, level: float) -> float:
        """Clamp *level* to the device range, then map it to [0, 1]."""
        level = max(level, self.minimum)
        level = min(level, self.maximum)
        return (level - self.minimum) / (self.maximum - self.minimum)

    def to_device_level(self, percentage: float) -> int:
        """Map a fraction back to an integer device level, rounding up."""
        percentage = min(max(percentage, 0.0), 1.0)
        return math.ceil(self.minimum + percentage * (self.maximum - self.minimum))

    def __repr__(self):
        return f"VolumeScale({self.minimum}, {self.maximum})"


DEFAULT_SCALE = VolumeScale()


def to_percentage(level: float) -> float:
    return DEFAULT_SCALE.to_percentage(level)


def to_device_level(percentage: float) -> int:
    return DEFAULT_SCALE.to_device_level(percentage)
