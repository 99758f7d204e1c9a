# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Small numeric and time helpers shared across the simulation components."""

import math
from datetime import datetime, timezone
from time import time


def clamp(x: float, lo: float, hi: float) -> float:
    """Bounds a value to the closed interval [lo, hi].

    :param x: Value to bound.
    :param lo: Lower bound.
    :param hi: Upper bound.
    :return: Bounded value.
    """
    return max(lo, min(hi, x))


def coerce_level(value, default: float = 0.0) -> float:
    """Converts an arbitrary control input into a level within [0, 1]. Anything that
    cannot be read as a finite number falls back to the default.

    :param value: Raw input, e.g. from a request body.
    :param default: Level used for non-numeric input.
    :return: Level within [0, 1].
    """
    try:
        level = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(level):
        return default
    return clamp(level, 0.0, 1.0)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def now_ms() -> int:
    return int(time() * 1000)
