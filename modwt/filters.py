# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Per-level MODWT filter derivation.

At cascade level j the base filters are upsampled "à trous" (2^(j-1) - 1 zeros
between consecutive taps) and scaled by the per-stage MODWT normalization
1/sqrt(2). Because every stage filters the previous stage's approximation, a
single factor per stage is the convention that gives perfect reconstruction.

Analysis filter sets are built from the decomposition taps and applied as
convolutions. Synthesis filter sets are built from the time-reversed
reconstruction taps and applied as correlations (the adjoint orientation).
"""

import threading
from enum import Enum
from typing import Dict, Tuple

import numpy as np

from .config import MAX_SAFE_SHIFT_BITS, MODWT_SCALE
from .errors import InvalidArgumentError
from .wavelet import Wavelet


class FilterKind(Enum):
    """Direction a filter set is derived for."""
    ANALYSIS = 0
    SYNTHESIS = 1


class FilterSet:
    """Immutable pair of upsampled, scaled low-pass and high-pass taps for one level."""

    __slots__ = ("level", "kind", "low", "high")

    def __init__(self, level: int, kind: FilterKind, low: np.ndarray, high: np.ndarray):
        low = np.array(low, dtype=np.float64)
        high = np.array(high, dtype=np.float64)
        low.setflags(write=False)
        high.setflags(write=False)
        object.__setattr__(self, "level", level)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "low", low)
        object.__setattr__(self, "high", high)

    def __setattr__(self, key, value):
        raise AttributeError("FilterSet instances are immutable")

    @property
    def length(self) -> int:
        return int(self.low.size)

    def __repr__(self):
        return f"FilterSet(level={self.level}, kind={self.kind.name}, length={self.length})"


def _check_level(level):
    if isinstance(level, bool) or not isinstance(level, (int, np.integer)):
        raise InvalidArgumentError(f"level must be an integer, got {level!r}")
    if level < 1:
        raise InvalidArgumentError(f"level must be >= 1, got {level}")
    if level - 1 >= MAX_SAFE_SHIFT_BITS:
        raise InvalidArgumentError(
            f"level {level} would overflow the 2^(level-1) upsampling factor "
            f"(maximum safe level is {MAX_SAFE_SHIFT_BITS})"
        )


def upsample(taps, level: int) -> np.ndarray:
    """
    Insert 2^(level-1) - 1 zeros between consecutive taps.

    A filter of length L0 becomes length (L0-1)*2^(level-1)+1.
    """
    _check_level(level)
    taps = np.asarray(taps, dtype=np.float64).ravel()
    step = 1 << (level - 1)
    if step == 1:
        return taps.copy()
    out = np.zeros((taps.size - 1) * step + 1, dtype=np.float64)
    out[::step] = taps
    return out


def upsample_and_scale(taps, level: int) -> np.ndarray:
    """Upsample for the level and apply the per-stage MODWT normalization."""
    return upsample(taps, level) * MODWT_SCALE


def derive(wavelet: Wavelet, level: int, kind: FilterKind = FilterKind.ANALYSIS) -> FilterSet:
    """
    Derive the scaled filter pair for a cascade level.

    Args:
        wavelet (Wavelet): Base filter bank
        level (int): Cascade level, >= 1
        kind (FilterKind): ANALYSIS uses the decomposition taps, SYNTHESIS the
            time-reversed reconstruction taps

    Returns:
        FilterSet: Immutable (low, high) pair for the level
    """
    if wavelet is None:
        raise InvalidArgumentError("wavelet cannot be None")
    _check_level(level)
    if kind is FilterKind.ANALYSIS:
        low, high = wavelet.dec_lo, wavelet.dec_hi
    else:
        low, high = wavelet.rec_lo[::-1], wavelet.rec_hi[::-1]
    return FilterSet(int(level), kind, upsample_and_scale(low, level), upsample_and_scale(high, level))


class FilterCache:
    """
    Per-engine cache of derived filter sets keyed by (wavelet, level, kind).

    Entries are computed lazily on first use under a narrow lock and are
    immutable once published, so later reads need no synchronization.
    """

    def __init__(self):
        self._entries: Dict[Tuple[Wavelet, int, FilterKind], FilterSet] = {}
        self._lock = threading.Lock()

    def get(self, wavelet: Wavelet, level: int, kind: FilterKind = FilterKind.ANALYSIS) -> FilterSet:
        key = (wavelet, level, kind)
        entry = self._entries.get(key)
        if entry is not None:
            return entry
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = derive(wavelet, level, kind)
                self._entries[key] = entry
            return entry

    def analysis(self, wavelet: Wavelet, level: int) -> FilterSet:
        return self.get(wavelet, level, FilterKind.ANALYSIS)

    def synthesis(self, wavelet: Wavelet, level: int) -> FilterSet:
        return self.get(wavelet, level, FilterKind.SYNTHESIS)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries
