from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def ceil_div(numer: float, denom: float) -> int:
    if denom <= 0 or numer <= 0:
        return 0
    # Guard against 480 / 80.000000001 style float noise.
    return int(math.ceil(round(numer / denom, 9)))


def levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    dist = np.zeros((len(a) + 1, len(b) + 1), dtype=int)
    dist[:, 0] = np.arange(len(a) + 1)
    dist[0, :] = np.arange(len(b) + 1)
    for i in range(1, len(a) + 1):
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            dist[i, j] = min(dist[i - 1, j] + 1, dist[i, j - 1] + 1, dist[i - 1, j - 1] + cost)
    return int(dist[len(a), len(b)])


def round_up_to_ladder(value: float, ladder: Sequence[int]) -> int | None:
    for step in ladder:
        if value <= step:
            return step
    return None
