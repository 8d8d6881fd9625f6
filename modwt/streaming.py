# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Block-wise batch MODWT for signals that arrive in pieces.

Each cascade level keeps the last ``H_j = L_j - 1`` input samples of every
signal in a SoA history buffer. A new block is convolved against that history,
so under ZERO_PADDING the concatenated block outputs are identical to the
whole-signal transform. Under SYMMETRIC the first block seeds the history with
its own mirror image. PERIODIC blocks have no causal past and are transformed
independently, each one wrapping on itself.

Once the input ends, the flush methods extend the stream past the last block
(zeros, or the reflected history under SYMMETRIC) and emit the tail that
extension produces.
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from .batch import (
    _as_matrix,
    _history_matrix,
    _resolve_width,
    batch_modwt_soa,
    batch_multi_level_soa,
    from_soa,
    to_soa,
)
from .cascade import WaveletLike
from .config import MAX_DECOMPOSITION_LEVELS
from .convolution import symmetric_index
from .errors import InvalidArgumentError, InvalidStateError
from .filters import FilterCache
from .result import CascadeResult
from .validation import (
    scaled_filter_length,
    validate_batch,
    validate_boundary_mode,
    validate_levels,
)
from .wavelet import BoundaryMode, as_wavelet

_SINGLE = "single-level"
_MULTI = "multi-level"


class BatchStreamingMODWT:
    """
    Streaming MODWT over a fixed batch of signals.

    A stream is either single-level or multi-level; mixing the two without an
    intervening :meth:`reset` raises InvalidStateError.

    Args:
        wavelet (Wavelet or str): Filter bank or catalog name
        boundary_mode (BoundaryMode): PERIODIC, SYMMETRIC or ZERO_PADDING
        levels (int): Cascade depth used by the multi-level calls
        vector_width (int): Column-group width for the SoA kernels
        logger (logging.Logger): Optional logger instance
    """

    def __init__(self, wavelet: WaveletLike, boundary_mode: BoundaryMode = BoundaryMode.PERIODIC,
                 levels: int = 1, vector_width: Optional[int] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("BatchStreamingMODWT")
        self.wavelet = as_wavelet(wavelet)
        self.boundary_mode = validate_boundary_mode(boundary_mode)
        if isinstance(levels, bool) or not isinstance(levels, (int, np.integer)):
            raise InvalidArgumentError(f"levels must be an integer, got {levels!r}")
        if levels < 1 or levels > MAX_DECOMPOSITION_LEVELS:
            raise InvalidArgumentError(
                f"Invalid number of decomposition levels: {levels}. "
                f"Must be between 1 and {MAX_DECOMPOSITION_LEVELS}"
            )
        self.levels = int(levels)
        self._width = _resolve_width(vector_width)
        self._filters = FilterCache()
        self._histories: Dict[int, np.ndarray] = {}
        self._batch_size: Optional[int] = None
        self._kind: Optional[str] = None
        self._closed = False

    # State

    def history_length(self, level: int) -> int:
        """Samples of history kept for a level: L_j - 1."""
        if level < 1 or level > self.levels:
            raise InvalidArgumentError(f"level must be between 1 and {self.levels}, got {level}")
        return scaled_filter_length(self.wavelet.filter_length, level) - 1

    def min_flush_tail_length(self) -> int:
        """Longest tail a flush may request; the shortest history across levels."""
        return self.history_length(1)

    @property
    def batch_size(self) -> Optional[int]:
        return self._batch_size

    @property
    def started(self) -> bool:
        return bool(self._histories)

    def reset(self):
        """Forget all history. The next block starts a new stream."""
        self._histories = {}
        self._batch_size = None
        self._kind = None

    def close(self):
        if self._closed:
            return
        self.reset()
        self._filters.clear()
        self._closed = True
        self.logger.debug("BatchStreamingMODWT closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _ensure_open(self):
        if self._closed:
            raise InvalidStateError("BatchStreamingMODWT has been closed")

    def _begin_block(self, stack: np.ndarray, kind: str):
        batch_size = stack.shape[0]
        if self._batch_size is not None and batch_size != self._batch_size:
            self.logger.warning(
                f"Batch size changed from {self._batch_size} to {batch_size}; resetting stream history"
            )
            self.reset()
        if self._kind is not None and self._kind != kind:
            raise InvalidStateError(
                f"Stream is {self._kind}; call reset() before processing {kind} blocks"
            )
        self._batch_size = batch_size
        self._kind = kind

    def _level_block(self, level: int, x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Transform one level input block against its history, then advance the history."""
        filters = self._filters.analysis(self.wavelet, level)
        h = self.history_length(level)
        history = self._histories.get(level)
        if history is None:
            history = self._seed_history(x, h)
        approx = _history_matrix(history, x, filters.low, self._width)
        detail = _history_matrix(history, x, filters.high, self._width)
        self._histories[level] = np.concatenate([history, x], axis=0)[-h:].copy() if h else history
        return approx, detail

    def _seed_history(self, x: np.ndarray, h: int) -> np.ndarray:
        if self.boundary_mode is BoundaryMode.SYMMETRIC:
            return x[symmetric_index(np.arange(h) - h, x.shape[0])]
        return np.zeros((h, x.shape[1]), dtype=np.float64)

    # Processing

    def process_single_level(self, block) -> Tuple[np.ndarray, np.ndarray]:
        """
        Level-1 transform of the next block of every signal.

        Args:
            block: (B, M) array or sequence of B equal-length arrays

        Returns:
            tuple: (approximation, detail), each of shape (B, M)
        """
        self._ensure_open()
        stack = validate_batch(block, "block")
        batch_size, m = stack.shape
        if self.boundary_mode is BoundaryMode.PERIODIC:
            validate_levels(1, m, self.wavelet)
            filters = self._filters.analysis(self.wavelet, 1)
            approx, detail = batch_modwt_soa(to_soa(stack), batch_size, m, filters.low, filters.high, self._width)
            return from_soa(approx, batch_size, m), from_soa(detail, batch_size, m)

        self._begin_block(stack, _SINGLE)
        x = _as_matrix(to_soa(stack), batch_size, m)
        approx, detail = self._level_block(1, x)
        return from_soa(approx.ravel(), batch_size, m), from_soa(detail.ravel(), batch_size, m)

    def process_multi_level(self, block) -> List[CascadeResult]:
        """Multi-level transform of the next block; one block-length CascadeResult per signal."""
        self._ensure_open()
        stack = validate_batch(block, "block")
        batch_size, m = stack.shape
        if self.boundary_mode is BoundaryMode.PERIODIC:
            validate_levels(self.levels, m, self.wavelet)
            filter_sets = [self._filters.analysis(self.wavelet, j) for j in range(1, self.levels + 1)]
            details, approx = batch_multi_level_soa(
                to_soa(stack), batch_size, m, filter_sets, self.boundary_mode, self._width
            )
            return self._results([_as_matrix(d, batch_size, m) for d in details],
                                 _as_matrix(approx, batch_size, m))

        self._begin_block(stack, _MULTI)
        current = _as_matrix(to_soa(stack), batch_size, m)
        details = []
        for level in range(1, self.levels + 1):
            current, detail = self._level_block(level, current)
            details.append(detail)
        return self._results(details, current)

    @staticmethod
    def _results(details: List[np.ndarray], approx: np.ndarray) -> List[CascadeResult]:
        batch_size = approx.shape[1]
        return [CascadeResult([d[:, b] for d in details], approx[:, b]) for b in range(batch_size)]

    # Flush

    def _check_flush(self, tail_length: int, kind: str):
        self._ensure_open()
        if self.boundary_mode is BoundaryMode.PERIODIC:
            raise InvalidStateError("Flush is not applicable to PERIODIC streams; blocks are independent")
        if not self.started:
            raise InvalidStateError("Nothing to flush: no block has been processed")
        if self._kind != kind:
            raise InvalidStateError(f"Stream is {self._kind}; cannot flush it as {kind}")
        limit = self.min_flush_tail_length()
        if isinstance(tail_length, bool) or not isinstance(tail_length, (int, np.integer)):
            raise InvalidArgumentError(f"tail_length must be an integer, got {tail_length!r}")
        if tail_length < 1 or tail_length > limit:
            raise InvalidArgumentError(
                f"Invalid tail length: {tail_length}. Must be between 1 and {limit} "
                f"for wavelet '{self.wavelet.name}'"
            )

    def _extension(self, tail_length: int) -> np.ndarray:
        """Input samples past the last block: zeros, or the reflected level-1 history."""
        history = self._histories[1]
        if self.boundary_mode is BoundaryMode.SYMMETRIC:
            h = history.shape[0]
            return history[h - 1 - np.arange(tail_length)]
        return np.zeros((tail_length, history.shape[1]), dtype=np.float64)

    def flush_single_level(self, tail_length: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Emit the level-1 tail produced by extending past the last block.

        The stream is reset afterwards.
        """
        self._check_flush(tail_length, _SINGLE)
        approx, detail = self._level_block(1, self._extension(tail_length))
        batch_size = approx.shape[1]
        self.reset()
        return (from_soa(approx.ravel(), batch_size, tail_length),
                from_soa(detail.ravel(), batch_size, tail_length))

    def flush_multi_level(self, tail_length: int) -> List[CascadeResult]:
        """Multi-level counterpart of :meth:`flush_single_level`."""
        self._check_flush(tail_length, _MULTI)
        current = self._extension(tail_length)
        details = []
        for level in range(1, self.levels + 1):
            current, detail = self._level_block(level, current)
            details.append(detail)
        self.reset()
        return self._results(details, current)


def stream_blocks(streamer: BatchStreamingMODWT, signals, block_length: int) -> List[CascadeResult]:
    """
    Feed whole signals through a streamer in fixed-size blocks and stitch the
    multi-level outputs back together.
    """
    stack = validate_batch(signals)
    if block_length < 1:
        raise InvalidArgumentError(f"block_length must be >= 1, got {block_length}")
    pieces = [streamer.process_multi_level(stack[:, start:start + block_length])
              for start in range(0, stack.shape[1], block_length)]
    stitched = []
    for b in range(stack.shape[0]):
        per_block = [blk[b] for blk in pieces]
        details = [np.concatenate([r.detail(j) for r in per_block]) for j in range(1, streamer.levels + 1)]
        approx = np.concatenate([r.approximation for r in per_block])
        stitched.append(CascadeResult(details, approx))
    return stitched
