# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Sequential multi-level MODWT cascade.

This is the single-threaded reference implementation of the forward and
inverse recurrence. Level j filters the level-(j-1) approximation with the
level-j filter set, producing the level-j detail and the approximation that
feeds level j+1. Reconstruction runs the adjoint recurrence from level J down
to level 1.

The concurrent engine in :mod:`modwt.parallel` and the batch kernel in
:mod:`modwt.batch` must agree with this module to within double-precision
rounding.
"""

import logging
from typing import List, Optional, Union

import numpy as np

from .alignment import NEUTRAL_DECISION, AlignmentDecision, SymmetricAlignmentTable
from .convolution import analysis_convolve, synthesis_correlate
from .errors import InvalidArgumentError, InvalidStateError
from .filters import FilterCache, FilterSet
from .result import CascadeResult
from .validation import (
    check_same_length,
    max_levels,
    validate_boundary_mode,
    validate_levels,
    validate_signal,
)
from .wavelet import BoundaryMode, Wavelet, as_wavelet

WaveletLike = Union[Wavelet, str]


class MultiLevelMODWT:
    """
    Sequential multi-level MODWT engine.

    The engine owns a filter cache keyed by (wavelet, level), populated on
    first use and kept until :meth:`close`. One engine may serve any number of
    wavelets and boundary modes.

    Args:
        alignment: Object with ``decide(wavelet, level)`` used for symmetric
            reconstruction; defaults to :class:`SymmetricAlignmentTable`
        logger (logging.Logger): Optional logger instance
    """

    def __init__(self, alignment=None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(type(self).__name__)
        self._filters = FilterCache()
        self._alignment = alignment if alignment is not None else SymmetricAlignmentTable()
        self._closed = False

    # Lifecycle

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def filter_cache(self) -> FilterCache:
        return self._filters

    @property
    def alignment(self):
        return self._alignment

    def close(self):
        """Release cached filters. Further transform calls raise InvalidStateError."""
        if self._closed:
            return
        self._closed = True
        self._filters.clear()
        self.logger.debug(f"{type(self).__name__} closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _ensure_open(self):
        if self._closed:
            raise InvalidStateError(f"{type(self).__name__} has been closed")

    # Public API

    def max_levels(self, signal_length: int, wavelet: WaveletLike) -> int:
        """Maximum decomposition level for a signal length and wavelet."""
        return max_levels(int(signal_length), as_wavelet(wavelet).filter_length)

    def decompose(self, signal, wavelet: WaveletLike,
                  boundary_mode: BoundaryMode = BoundaryMode.PERIODIC,
                  levels: Optional[int] = None) -> CascadeResult:
        """
        Perform the forward multi-level MODWT.

        Args:
            signal (array-like): Input signal, finite values, length >= 1
            wavelet (Wavelet or str): Filter bank or catalog name
            boundary_mode (BoundaryMode): PERIODIC, SYMMETRIC or ZERO_PADDING
            levels (int): Number of levels J; None selects the maximum

        Returns:
            CascadeResult: J detail arrays and the level-J approximation

        Raises:
            InvalidSignalError: signal is None, empty or non-finite
            InvalidArgumentError: bad wavelet, mode or level count
            InvalidStateError: engine has been closed
        """
        self._ensure_open()
        x = validate_signal(signal)
        wavelet = as_wavelet(wavelet)
        mode = validate_boundary_mode(boundary_mode)
        if levels is None:
            levels = max(1, max_levels(x.size, wavelet.filter_length))
        levels = validate_levels(levels, x.size, wavelet)

        filter_sets = [self._filters.analysis(wavelet, level) for level in range(1, levels + 1)]
        details, approximation = self._run_cascade(x, filter_sets, mode)
        return CascadeResult(details, approximation)

    def reconstruct(self, result: CascadeResult, wavelet: WaveletLike,
                    boundary_mode: BoundaryMode = BoundaryMode.PERIODIC) -> np.ndarray:
        """
        Perform the inverse multi-level MODWT.

        Under PERIODIC boundary this is exact for every valid decomposition.
        Under SYMMETRIC boundary the alignment table is consulted per level.
        """
        self._ensure_open()
        wavelet, mode = self._check_inverse_inputs(result, wavelet, boundary_mode)
        return self._synthesize(result.approximation, result.details, wavelet, mode)

    def reconstruct_from_level(self, result: CascadeResult, wavelet: WaveletLike,
                               boundary_mode: BoundaryMode = BoundaryMode.PERIODIC,
                               start_level: int = 1) -> np.ndarray:
        """
        Reconstruct while discarding details finer than ``start_level``.

        The approximation and the details at levels start_level..J are kept;
        finer details are replaced by zeros. start_level=1 is a full inverse.
        """
        self._ensure_open()
        wavelet, mode = self._check_inverse_inputs(result, wavelet, boundary_mode)
        if start_level < 1 or start_level > result.levels:
            raise InvalidArgumentError(
                f"Invalid start level: {start_level}. Must be between 1 and {result.levels}"
            )
        zeros = np.zeros(result.signal_length)
        details = [result.detail(j) if j >= start_level else zeros
                   for j in range(1, result.levels + 1)]
        return self._synthesize(result.approximation, details, wavelet, mode)

    def reconstruct_levels(self, result: CascadeResult, wavelet: WaveletLike,
                           boundary_mode: BoundaryMode = BoundaryMode.PERIODIC,
                           min_level: int = 1, max_level: Optional[int] = None) -> np.ndarray:
        """
        Band-limited reconstruction from details in [min_level, max_level].

        The approximation contributes only when max_level equals J; other
        components are zeroed before running the inverse cascade.
        """
        self._ensure_open()
        wavelet, mode = self._check_inverse_inputs(result, wavelet, boundary_mode)
        if max_level is None:
            max_level = result.levels
        if min_level < 1 or max_level > result.levels or min_level > max_level:
            raise InvalidArgumentError(
                f"Invalid level range [{min_level}, {max_level}] for partial reconstruction "
                f"of a {result.levels}-level result"
            )
        zeros = np.zeros(result.signal_length)
        details = [result.detail(j) if min_level <= j <= max_level else zeros
                   for j in range(1, result.levels + 1)]
        approximation = result.approximation if max_level == result.levels else zeros
        return self._synthesize(approximation, details, wavelet, mode)

    # Recurrence

    def _check_inverse_inputs(self, result, wavelet, boundary_mode):
        if not isinstance(result, CascadeResult):
            raise InvalidArgumentError(f"result must be a CascadeResult, got {type(result).__name__}")
        wavelet = as_wavelet(wavelet)
        mode = validate_boundary_mode(boundary_mode)
        validate_levels(result.levels, result.signal_length, wavelet)
        check_same_length(result.details, result.signal_length, "details")
        return wavelet, mode

    def _run_cascade(self, x: np.ndarray, filter_sets: List[FilterSet], mode: BoundaryMode):
        current = x
        details = []
        for filters in filter_sets:
            details.append(analysis_convolve(current, filters.high, mode))
            current = analysis_convolve(current, filters.low, mode)
        return details, current

    def _synthesize(self, approximation, details, wavelet: Wavelet, mode: BoundaryMode) -> np.ndarray:
        current = np.array(approximation, dtype=np.float64)
        for level in range(len(details), 0, -1):
            filters = self._filters.synthesis(wavelet, level)
            decision = self._alignment.decide(wavelet, level) if mode is BoundaryMode.SYMMETRIC else NEUTRAL_DECISION
            current = self._synthesis_step(current, details[level - 1], filters, mode, decision)
        return current

    def _synthesis_step(self, approx, detail, filters: FilterSet, mode: BoundaryMode,
                        decision: AlignmentDecision) -> np.ndarray:
        low = synthesis_correlate(approx, filters.low, mode,
                                  decision.approx_orientation, decision.approx_offset)
        high = synthesis_correlate(detail, filters.high, mode,
                                   decision.detail_orientation, decision.detail_offset)
        return low + high


def forward(signal, wavelet: WaveletLike, boundary_mode: BoundaryMode = BoundaryMode.PERIODIC,
            levels: Optional[int] = None) -> CascadeResult:
    """Decompose a signal with a short-lived sequential engine."""
    with MultiLevelMODWT() as engine:
        return engine.decompose(signal, wavelet, boundary_mode, levels)


def inverse(result: CascadeResult, wavelet: WaveletLike,
            boundary_mode: BoundaryMode = BoundaryMode.PERIODIC) -> np.ndarray:
    """Reconstruct a signal with a short-lived sequential engine."""
    with MultiLevelMODWT() as engine:
        return engine.reconstruct(result, wavelet, boundary_mode)
