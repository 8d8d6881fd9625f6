# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Batch MODWT kernels over a structure-of-arrays (SoA) layout.

B equal-length signals are interleaved into one flat buffer so that element
``t * B + b`` holds sample t of signal b. Viewed as an (N, B) array, every tap
of a convolution becomes one row-gather followed by a multiply-add over a
contiguous group of columns, which is the shape numpy vectorizes well.

Columns are processed in groups of ``vector_width`` with a narrower remainder
group when B is not a multiple of the width. Filters with two or four nonzero
taps take unrolled kernels; everything else goes through the generic tap loop.
Taps are always accumulated in ascending offset order, the same order the
sequential engine uses, so both paths agree to double-precision rounding.

Only :func:`to_soa` and :func:`from_soa` convert layouts. The public
:class:`BatchMODWT` facade accepts and returns per-signal arrays.
"""

import logging
import threading
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .cascade import MultiLevelMODWT, WaveletLike
from .config import VECTOR_WIDTH
from .convolution import _nonzero_taps, symmetric_index
from .errors import InvalidArgumentError, InvalidStateError
from .filters import FilterCache, FilterSet
from .result import CascadeResult
from .validation import (
    max_levels,
    validate_batch,
    validate_boundary_mode,
    validate_levels,
)
from .wavelet import BoundaryMode, as_wavelet

# Per-thread gather index tables, keyed by (length, shift)
_scratch = threading.local()
_MAX_CACHED_INDEX_TABLES = 512


def _index_table(n: int, shift: int) -> np.ndarray:
    """Rows (t - shift) mod n for t in [0, n)."""
    tables = getattr(_scratch, "tables", None)
    if tables is None:
        tables = _scratch.tables = {}
    key = (n, shift)
    table = tables.get(key)
    if table is None:
        if len(tables) >= _MAX_CACHED_INDEX_TABLES:
            tables.clear()
        table = (np.arange(n) - shift) % n
        tables[key] = table
    return table


def clear_scratch():
    """Drop the calling thread's cached index tables."""
    _scratch.tables = {}


# Layout adapters

def to_soa(signals) -> np.ndarray:
    """Interleave a (B, N) stack into a flat SoA buffer of length N * B."""
    stack = np.asarray(signals, dtype=np.float64)
    if stack.ndim != 2:
        raise InvalidArgumentError(f"Expected a (batch, length) array, got shape {stack.shape}")
    return np.ascontiguousarray(stack.T).ravel()


def from_soa(buffer, batch_size: int, signal_length: int) -> np.ndarray:
    """Split a flat SoA buffer back into a (B, N) stack."""
    buffer = np.asarray(buffer, dtype=np.float64)
    if buffer.size != batch_size * signal_length:
        raise InvalidArgumentError(
            f"SoA buffer holds {buffer.size} values, expected {batch_size} x {signal_length}"
        )
    return np.ascontiguousarray(buffer.reshape(signal_length, batch_size).T)


def _as_matrix(buffer, batch_size: int, length: int) -> np.ndarray:
    buffer = np.asarray(buffer, dtype=np.float64)
    if buffer.size != batch_size * length:
        raise InvalidArgumentError(
            f"SoA buffer holds {buffer.size} values, expected {batch_size} x {length}"
        )
    return buffer.reshape(length, batch_size)


def _column_groups(batch_size: int, width: int):
    for start in range(0, batch_size, width):
        yield slice(start, min(start + width, batch_size))


def _resolve_width(vector_width: Optional[int]) -> int:
    width = VECTOR_WIDTH if vector_width is None else int(vector_width)
    if width < 1:
        raise InvalidArgumentError(f"vector_width must be >= 1, got {width}")
    return width


# Periodic kernels. ``shifts`` are signed: +offset for convolution,
# -offset for correlation.

def _periodic_2tap(x, out, cols, shifts, coeffs):
    n = x.shape[0]
    group = x[:, cols]
    out[:, cols] = (coeffs[0] * group[_index_table(n, shifts[0])]
                    + coeffs[1] * group[_index_table(n, shifts[1])])


def _periodic_4tap(x, out, cols, shifts, coeffs):
    n = x.shape[0]
    group = x[:, cols]
    acc = coeffs[0] * group[_index_table(n, shifts[0])]
    acc += coeffs[1] * group[_index_table(n, shifts[1])]
    acc += coeffs[2] * group[_index_table(n, shifts[2])]
    acc += coeffs[3] * group[_index_table(n, shifts[3])]
    out[:, cols] = acc


def _periodic_generic(x, out, cols, shifts, coeffs):
    n = x.shape[0]
    group = x[:, cols]
    acc = np.zeros(group.shape, dtype=np.float64)
    for shift, coeff in zip(shifts, coeffs):
        acc += coeff * group[_index_table(n, shift)]
    out[:, cols] = acc


def _periodic_kernel(tap_count: int):
    if tap_count == 2:
        return _periodic_2tap
    if tap_count == 4:
        return _periodic_4tap
    return _periodic_generic


def _periodic_matrix(x: np.ndarray, taps, width: int, correlate: bool = False) -> np.ndarray:
    offsets, coeffs = _nonzero_taps(taps)
    shifts = [-int(o) if correlate else int(o) for o in offsets]
    out = np.zeros(x.shape, dtype=np.float64)
    if not shifts:
        return out
    kernel = _periodic_kernel(len(shifts))
    for cols in _column_groups(x.shape[1], width):
        kernel(x, out, cols, shifts, coeffs)
    return out


def batch_modwt_soa(soa, batch_size: int, signal_length: int, low, high,
                    vector_width: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Single-level periodic MODWT of every signal in a SoA buffer.

    Args:
        soa (np.ndarray): Flat input of length signal_length * batch_size
        batch_size (int): Number of interleaved signals B
        signal_length (int): Samples per signal N
        low (np.ndarray): Level low-pass analysis taps
        high (np.ndarray): Level high-pass analysis taps
        vector_width (int): Column-group width, by default ``VECTOR_WIDTH``

    Returns:
        tuple: (approximation, detail) as flat SoA buffers
    """
    width = _resolve_width(vector_width)
    x = _as_matrix(soa, batch_size, signal_length)
    approx = _periodic_matrix(x, low, width)
    detail = _periodic_matrix(x, high, width)
    return approx.ravel(), detail.ravel()


# History kernel

def _history_matrix(history: np.ndarray, block: np.ndarray, taps, width: int) -> np.ndarray:
    h = history.shape[0]
    m = block.shape[0]
    offsets, coeffs = _nonzero_taps(taps)
    if offsets.size and offsets[-1] > h:
        raise InvalidArgumentError(
            f"History of {h} samples is too short for a filter reaching back {int(offsets[-1])} samples"
        )
    extended = np.concatenate([history, block], axis=0)
    out = np.zeros(block.shape, dtype=np.float64)
    for cols in _column_groups(block.shape[1], width):
        acc = np.zeros((m, cols.stop - cols.start), dtype=np.float64)
        for offset, coeff in zip(offsets, coeffs):
            start = h - int(offset)
            acc += coeff * extended[start:start + m, cols]
        out[:, cols] = acc
    return out


def convolve_with_history_soa(history, history_length: int, block, batch_size: int,
                              block_length: int, taps,
                              vector_width: Optional[int] = None) -> np.ndarray:
    """
    Causal convolution of a SoA block that reads ``history_length`` earlier
    samples per signal from a SoA history buffer.

    ``out[t] = sum_l taps[l] * ext[H + t - l]`` where ext is the history
    followed by the block. The history must cover the filter span.
    """
    width = _resolve_width(vector_width)
    hist = _as_matrix(history, batch_size, history_length)
    x = _as_matrix(block, batch_size, block_length)
    return _history_matrix(hist, x, taps, width).ravel()


def _initial_history(x: np.ndarray, history_length: int, mode: BoundaryMode) -> np.ndarray:
    """History preceding the first sample: zeros or the half-sample mirror image."""
    if mode is BoundaryMode.SYMMETRIC:
        rows = symmetric_index(np.arange(history_length) - history_length, x.shape[0])
        return x[rows]
    return np.zeros((history_length, x.shape[1]), dtype=np.float64)


def _analysis_matrix(x: np.ndarray, taps, mode: BoundaryMode, width: int) -> np.ndarray:
    if mode is BoundaryMode.PERIODIC:
        return _periodic_matrix(x, taps, width)
    history_length = np.asarray(taps).size - 1
    return _history_matrix(_initial_history(x, history_length, mode), x, taps, width)


def batch_multi_level_soa(soa, batch_size: int, signal_length: int,
                          filter_sets: Sequence[FilterSet], mode: BoundaryMode = BoundaryMode.PERIODIC,
                          vector_width: Optional[int] = None) -> Tuple[List[np.ndarray], np.ndarray]:
    """
    Multi-level forward cascade over a SoA buffer.

    The level input and the next approximation live in two buffers that swap
    roles after every level; the caller's buffer is never written.

    Returns:
        tuple: (list of detail SoA buffers for levels 1..J, final approximation SoA buffer)
    """
    width = _resolve_width(vector_width)
    current = _as_matrix(soa, batch_size, signal_length).copy()
    spare = np.empty_like(current)
    details = []
    for filters in filter_sets:
        details.append(_analysis_matrix(current, filters.high, mode, width).ravel())
        spare[:] = _analysis_matrix(current, filters.low, mode, width)
        current, spare = spare, current
    return details, current.ravel()


def _synthesis_matrix(c: np.ndarray, taps, mode: BoundaryMode, width: int) -> np.ndarray:
    if mode is BoundaryMode.PERIODIC:
        return _periodic_matrix(c, taps, width, correlate=True)
    # Zero padding: coefficients at or beyond N read as zero
    offsets, coeffs = _nonzero_taps(taps)
    n = c.shape[0]
    reach = int(offsets[-1]) if offsets.size else 0
    extended = np.concatenate([c, np.zeros((reach, c.shape[1]), dtype=np.float64)], axis=0)
    out = np.zeros(c.shape, dtype=np.float64)
    for cols in _column_groups(c.shape[1], width):
        acc = np.zeros((n, cols.stop - cols.start), dtype=np.float64)
        for offset, coeff in zip(offsets, coeffs):
            acc += coeff * extended[int(offset):int(offset) + n, cols]
        out[:, cols] = acc
    return out


def batch_inverse_soa(approximation, details: Sequence[np.ndarray], batch_size: int,
                      signal_length: int, filter_sets: Sequence[FilterSet],
                      mode: BoundaryMode = BoundaryMode.PERIODIC,
                      vector_width: Optional[int] = None) -> np.ndarray:
    """
    Multi-level inverse cascade over SoA buffers (PERIODIC or ZERO_PADDING).

    ``filter_sets[j - 1]`` must be the synthesis filter set of level j.
    """
    if mode not in (BoundaryMode.PERIODIC, BoundaryMode.ZERO_PADDING):
        raise InvalidArgumentError(f"SoA inverse supports PERIODIC and ZERO_PADDING, got {mode.name}")
    if len(details) != len(filter_sets):
        raise InvalidArgumentError(
            f"Got {len(details)} detail buffers for {len(filter_sets)} synthesis filter sets"
        )
    width = _resolve_width(vector_width)
    current = _as_matrix(approximation, batch_size, signal_length).copy()
    for level in range(len(details), 0, -1):
        filters = filter_sets[level - 1]
        detail = _as_matrix(details[level - 1], batch_size, signal_length)
        low = _synthesis_matrix(current, filters.low, mode, width)
        high = _synthesis_matrix(detail, filters.high, mode, width)
        current = low + high
    return current.ravel()


class BatchMODWT:
    """
    Batch MODWT over many equal-length signals.

    Parameters
    ----------
    vector_width : int, optional
        Column-group width for the SoA kernels, by default ``VECTOR_WIDTH``
    alignment : optional
        Alignment policy for SYMMETRIC reconstruction
    logger : logging.Logger, optional
        Logger instance
    """

    def __init__(self, vector_width: Optional[int] = None, alignment=None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("BatchMODWT")
        self._width = _resolve_width(vector_width)
        self._filters = FilterCache()
        self._sequential = MultiLevelMODWT(alignment=alignment, logger=self.logger)
        self._closed = False

    @property
    def vector_width(self) -> int:
        return self._width

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._filters.clear()
        self._sequential.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _ensure_open(self):
        if self._closed:
            raise InvalidStateError("BatchMODWT has been closed")

    def single_level(self, signals, wavelet: WaveletLike,
                     boundary_mode: BoundaryMode = BoundaryMode.PERIODIC) -> Tuple[np.ndarray, np.ndarray]:
        """
        Level-1 transform of every signal.

        Returns:
            tuple: (approximation, detail), each of shape (B, N)
        """
        self._ensure_open()
        stack = validate_batch(signals)
        wavelet = as_wavelet(wavelet)
        mode = validate_boundary_mode(boundary_mode)
        batch_size, n = stack.shape
        validate_levels(1, n, wavelet)

        filters = self._filters.analysis(wavelet, 1)
        x = _as_matrix(to_soa(stack), batch_size, n)
        approx = _analysis_matrix(x, filters.low, mode, self._width)
        detail = _analysis_matrix(x, filters.high, mode, self._width)
        return from_soa(approx.ravel(), batch_size, n), from_soa(detail.ravel(), batch_size, n)

    def decompose(self, signals, wavelet: WaveletLike,
                  boundary_mode: BoundaryMode = BoundaryMode.PERIODIC,
                  levels: Optional[int] = None) -> List[CascadeResult]:
        """Multi-level forward transform, one CascadeResult per input signal."""
        self._ensure_open()
        stack = validate_batch(signals)
        wavelet = as_wavelet(wavelet)
        mode = validate_boundary_mode(boundary_mode)
        batch_size, n = stack.shape
        if levels is None:
            levels = max(1, max_levels(n, wavelet.filter_length))
        levels = validate_levels(levels, n, wavelet)

        self.logger.debug(
            f"Batch decompose: B={batch_size}, N={n}, levels={levels}, "
            f"wavelet={wavelet.name}, mode={mode.name}"
        )
        filter_sets = [self._filters.analysis(wavelet, j) for j in range(1, levels + 1)]
        details, approx = batch_multi_level_soa(to_soa(stack), batch_size, n, filter_sets, mode, self._width)
        detail_stacks = [from_soa(d, batch_size, n) for d in details]
        approx_stack = from_soa(approx, batch_size, n)
        return [CascadeResult([d[b] for d in detail_stacks], approx_stack[b]) for b in range(batch_size)]

    def reconstruct(self, results: Sequence[CascadeResult], wavelet: WaveletLike,
                    boundary_mode: BoundaryMode = BoundaryMode.PERIODIC) -> np.ndarray:
        """Inverse transform of a batch of results; returns a (B, N) array."""
        self._ensure_open()
        wavelet = as_wavelet(wavelet)
        mode = validate_boundary_mode(boundary_mode)
        results = list(results) if results is not None else []
        if not results:
            raise InvalidArgumentError("results must contain at least one CascadeResult")
        first = results[0]
        for i, r in enumerate(results):
            if not isinstance(r, CascadeResult):
                raise InvalidArgumentError(f"results[{i}] is not a CascadeResult")
            if r.levels != first.levels or r.signal_length != first.signal_length:
                raise InvalidArgumentError(
                    f"results[{i}] has {r.levels} levels of length {r.signal_length}, "
                    f"expected {first.levels} levels of length {first.signal_length}"
                )
        validate_levels(first.levels, first.signal_length, wavelet)

        if mode is BoundaryMode.SYMMETRIC:
            return np.stack([self._sequential.reconstruct(r, wavelet, mode) for r in results])

        batch_size, n = len(results), first.signal_length
        filter_sets = [self._filters.synthesis(wavelet, j) for j in range(1, first.levels + 1)]
        approx = to_soa(np.stack([r.approximation for r in results]))
        details = [to_soa(np.stack([r.detail(j) for r in results])) for j in range(1, first.levels + 1)]
        out = batch_inverse_soa(approx, details, batch_size, n, filter_sets, mode, self._width)
        return from_soa(out, batch_size, n)
