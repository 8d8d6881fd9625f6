# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Benchmark calibration of symmetric-boundary alignment decisions.

For a wavelet, every level j is calibrated greedily from level 1 upward. The
benchmark signals (a sine, a chirp and a random walk at each length in
``BENCHMARK_LENGTHS``) are decomposed to level j under SYMMETRIC and
reconstructed with the decisions already chosen for levels 1..j-1. For level j
every combination of approximation and detail alignment is scored by the
mean squared reconstruction error, summed over the benchmark. The lowest score
wins. Candidates are ordered neutral first and a candidate must score strictly
lower to replace an earlier one, so a level keeps the plain half-sample mirror
unless another fold measurably helps.

Reconstruction is linear, so the level-j contribution of each branch candidate
is pushed through the lower levels once and the 36 combinations are scored as
sums of those propagated vectors.

The result depends only on the wavelet taps, so it is cached per process.
"""

import functools
import logging
from typing import List, Tuple

import numpy as np

from .alignment import NEUTRAL_DECISION, AlignmentDecision, Orientation, bands_from_decisions
from .convolution import analysis_convolve, synthesis_correlate
from .filters import FilterKind, derive
from .signals import generate_chirp_signal, generate_random_walk, generate_test_signal
from .validation import max_levels
from .wavelet import BoundaryMode, Wavelet

logger = logging.getLogger("AlignmentCalibration")

BENCHMARK_LENGTHS = (129, 257, 512)

# (orientation, offset) per branch; index 0 is the neutral fold
BRANCH_CANDIDATES = (
    (Orientation.PLUS, 0),
    (Orientation.PLUS, 1),
    (Orientation.PLUS, -1),
    (Orientation.MINUS, 0),
    (Orientation.MINUS, 1),
    (Orientation.MINUS, -1),
)

_SYMMETRIC = BoundaryMode.SYMMETRIC


def benchmark_signals(length: int) -> Tuple[np.ndarray, ...]:
    """The three calibration signals at one length."""
    return (
        generate_test_signal(length, freq=3.0, phase=0.3),
        generate_chirp_signal(length, f0=1.0, f1=25.0),
        generate_random_walk(length, seed=11) / np.sqrt(length),
    )


class _Case:
    """One benchmark signal decomposed to every level its length allows."""

    def __init__(self, signal: np.ndarray, wavelet: Wavelet, levels: int):
        self.signal = signal
        self.levels = levels
        self.details = []
        self.approximations = []
        current = signal
        for level in range(1, levels + 1):
            filters = derive(wavelet, level, FilterKind.ANALYSIS)
            self.details.append(analysis_convolve(current, filters.high, _SYMMETRIC))
            current = analysis_convolve(current, filters.low, _SYMMETRIC)
            self.approximations.append(current)


def _descend(vector, synthesis, decisions, top):
    """Push a level-``top`` approximation contribution down the low branch to level 0."""
    for level in range(top, 0, -1):
        decision = decisions[level - 1]
        vector = synthesis_correlate(vector, synthesis[level - 1].low, _SYMMETRIC,
                                     decision.approx_orientation, decision.approx_offset)
    return vector


def _detail_floor(case, synthesis, decisions, top):
    """Reconstruction of details ``1..top`` with a zero approximation at level ``top``."""
    current = np.zeros_like(case.signal)
    for level in range(top, 0, -1):
        decision = decisions[level - 1]
        filters = synthesis[level - 1]
        current = (synthesis_correlate(current, filters.low, _SYMMETRIC,
                                       decision.approx_orientation, decision.approx_offset)
                   + synthesis_correlate(case.details[level - 1], filters.high, _SYMMETRIC,
                                         decision.detail_orientation, decision.detail_offset))
    return current


def _level_scores(cases, synthesis, decisions, level) -> np.ndarray:
    """Summed benchmark MSE for every (approx candidate, detail candidate) at ``level``."""
    filters = synthesis[level - 1]
    count = len(BRANCH_CANDIDATES)
    scores = np.zeros((count, count))
    for case in cases:
        if case.levels < level:
            continue
        approx = np.stack([
            _descend(synthesis_correlate(case.approximations[level - 1], filters.low, _SYMMETRIC, o, k),
                     synthesis, decisions, level - 1)
            for o, k in BRANCH_CANDIDATES
        ])
        detail = np.stack([
            _descend(synthesis_correlate(case.details[level - 1], filters.high, _SYMMETRIC, o, k),
                     synthesis, decisions, level - 1)
            for o, k in BRANCH_CANDIDATES
        ])
        base = _detail_floor(case, synthesis, decisions, level - 1) - case.signal
        error = approx[:, None, :] + detail[None, :, :] + base
        scores += np.mean(error * error, axis=2)
    return scores


def calibration_levels(wavelet: Wavelet) -> int:
    """Deepest level at which at least one benchmark length can be decomposed."""
    return max(max_levels(n, wavelet.filter_length) for n in BENCHMARK_LENGTHS)


@functools.lru_cache(maxsize=64)
def calibrated_decisions(wavelet: Wavelet) -> Tuple[AlignmentDecision, ...]:
    """
    Calibrated decision for each level of a wavelet.

    Args:
        wavelet (Wavelet): Filter bank to calibrate

    Returns:
        tuple: AlignmentDecision per level; index 0 is level 1
    """
    depth = calibration_levels(wavelet)
    cases = [
        _Case(signal, wavelet, max_levels(n, wavelet.filter_length))
        for n in BENCHMARK_LENGTHS if max_levels(n, wavelet.filter_length) > 0
        for signal in benchmark_signals(n)
    ]
    synthesis = [derive(wavelet, level, FilterKind.SYNTHESIS) for level in range(1, depth + 1)]

    decisions: List[AlignmentDecision] = []
    for level in range(1, depth + 1):
        scores = _level_scores(cases, synthesis, decisions, level)
        best_approx, best_detail = np.unravel_index(np.argmin(scores), scores.shape)
        approx_orientation, approx_offset = BRANCH_CANDIDATES[best_approx]
        detail_orientation, detail_offset = BRANCH_CANDIDATES[best_detail]
        decision = AlignmentDecision(approx_orientation, approx_offset, detail_orientation, detail_offset)
        decisions.append(decision)
        if decision != NEUTRAL_DECISION:
            logger.debug(
                f"{wavelet.name} level {level}: {decision} scores {scores[best_approx, best_detail]:.3e} "
                f"against {scores[0, 0]:.3e} for the neutral fold"
            )

    logger.info(f"Calibrated symmetric alignment for wavelet '{wavelet.name}' over {depth} levels")
    return tuple(decisions)


def calibrated_entries(*wavelets: Wavelet):
    """
    Level bands for several wavelets, in the shape ``SymmetricAlignmentTable`` accepts.

    Useful to freeze a calibration into an explicit table.
    """
    return {w.name: bands_from_decisions(calibrated_decisions(w)) for w in wavelets}
