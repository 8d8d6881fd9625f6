# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Concurrent multi-level MODWT cascade.

Within a level the low-pass branch (next approximation) and the high-pass
branch (detail) only read the level input, so they run as two concurrent
subtasks. Level j+1 is submitted only after both subtasks of level j have been
joined. Reconstruction uses the same shape: per level the approximation and
detail synthesis branches run concurrently and are summed after the join.

The public calls are blocking: they return the finished result or raise the
first subtask failure. Nothing partial is ever returned.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, Executor, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Tuple

import numpy as np

from .cascade import MultiLevelMODWT
from .config import MIN_PARALLEL_SIGNAL_LENGTH, default_max_workers
from .convolution import analysis_convolve, synthesis_correlate
from .errors import InvalidArgumentError
from .filters import FilterSet
from .wavelet import BoundaryMode


class ParallelMultiLevelMODWT(MultiLevelMODWT):
    """
    Multi-level MODWT that runs the two convolutions of each level concurrently.

    Parameters
    ----------
    executor : concurrent.futures.Executor, optional
        External worker pool. It is used as-is and never shut down by the
        engine. When omitted the engine creates and owns a ThreadPoolExecutor.
    max_workers : int, optional
        Size of the engine-owned pool, by default ``config.default_max_workers()``.
        Passing it together with ``executor`` raises InvalidArgumentError.
    min_parallel_signal_length : int, optional
        Signals shorter than this are processed sequentially in the calling
        thread, by default ``config.MIN_PARALLEL_SIGNAL_LENGTH``
    alignment : optional
        Symmetric alignment policy, as for :class:`MultiLevelMODWT`
    logger : logging.Logger, optional
        Logger instance
    """

    def __init__(self, executor: Optional[Executor] = None, max_workers: Optional[int] = None,
                 min_parallel_signal_length: Optional[int] = None, alignment=None,
                 logger: Optional[logging.Logger] = None):
        if executor is not None and max_workers is not None:
            raise InvalidArgumentError("max_workers only sizes an owned pool; it cannot be combined with executor")
        super().__init__(alignment=alignment, logger=logger)
        if executor is None:
            workers = max_workers if max_workers and max_workers > 0 else default_max_workers()
            self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="modwt-cascade")
            self._owns_executor = True
            self.logger.info(f"Created owned worker pool with {workers} workers")
        else:
            self._executor = executor
            self._owns_executor = False
        if min_parallel_signal_length is None:
            min_parallel_signal_length = MIN_PARALLEL_SIGNAL_LENGTH
        self._min_parallel_signal_length = max(0, int(min_parallel_signal_length))

    @property
    def owns_executor(self) -> bool:
        return self._owns_executor

    @property
    def min_parallel_signal_length(self) -> int:
        return self._min_parallel_signal_length

    def close(self):
        """Shut down the owned pool (if any) and release cached filters."""
        if self.closed:
            return
        super().close()
        if self._owns_executor:
            self._executor.shutdown(wait=True)
            self.logger.info("Owned worker pool shut down")

    def _use_parallel(self, signal_length: int) -> bool:
        return signal_length >= self._min_parallel_signal_length

    def _run_pair(self, first: Callable[[], np.ndarray],
                  second: Callable[[], np.ndarray]) -> Tuple[np.ndarray, np.ndarray]:
        """Run two independent subtasks and join both, failing fast on the first error."""
        futures = [self._executor.submit(first), self._executor.submit(second)]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        failed = [f for f in futures if f in done and f.exception() is not None]
        if failed:
            for f in pending:
                f.cancel()
            error = failed[0].exception()
            self.logger.error(f"Cascade subtask failed, aborting remaining levels: {error!r}")
            raise error
        return futures[0].result(), futures[1].result()

    def _run_cascade(self, x: np.ndarray, filter_sets: List[FilterSet], mode: BoundaryMode):
        if not self._use_parallel(x.size):
            self.logger.debug(
                f"Signal length {x.size} below parallel threshold "
                f"{self._min_parallel_signal_length}, running sequentially"
            )
            return super()._run_cascade(x, filter_sets, mode)

        current = x
        details = []
        for filters in filter_sets:
            level_input = current
            approx, detail = self._run_pair(
                lambda: analysis_convolve(level_input, filters.low, mode),
                lambda: analysis_convolve(level_input, filters.high, mode),
            )
            details.append(detail)
            current = approx
        return details, current

    def _synthesis_step(self, approx, detail, filters: FilterSet, mode: BoundaryMode, decision):
        if not self._use_parallel(np.size(approx)):
            return super()._synthesis_step(approx, detail, filters, mode, decision)
        low, high = self._run_pair(
            lambda: synthesis_correlate(approx, filters.low, mode,
                                        decision.approx_orientation, decision.approx_offset),
            lambda: synthesis_correlate(detail, filters.high, mode,
                                        decision.detail_orientation, decision.detail_offset),
        )
        return low + high
