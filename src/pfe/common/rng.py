# src/pfe/common/rng.py
# -----------------------------------------------------------------------------
# Explicit seeded stream for shuffles.
#
# A SeededStream is an ordinary object handed to the partitioner and the k-fold
# runner; there is no module-level generator. Two streams built from the same
# seed produce the same sequence of uniforms, so a Fisher–Yates shuffle driven
# by them is reproducible index-for-index.
#
# The uniforms come from numpy's PCG64 (np.random.default_rng(seed)), whose
# `random()` output for a given seed is stable across numpy releases.
# -----------------------------------------------------------------------------
from __future__ import annotations

import math

import numpy as np


class SeededStream:
    """Deterministic stream of uniforms in [0, 1) keyed by an integer seed."""

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        self._rng = np.random.default_rng(self.seed)
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        return float(self._rng.random())

    def shuffled_indices(self, n: int) -> list[int]:
        """
        Fisher–Yates shuffle of the identity permutation [0..n-1].

        For i = n-1 down to 1: j = floor(u * (i + 1)), swap(i, j).
        Consumes exactly max(n - 1, 0) draws.
        """
        indices = list(range(n))
        for i in range(n - 1, 0, -1):
            j = int(math.floor(self.random() * (i + 1)))
            indices[i], indices[j] = indices[j], indices[i]
        return indices

    def __repr__(self) -> str:
        return f"SeededStream(seed={self.seed}, draws={self.draws})"
