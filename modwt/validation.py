# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Input validation shared by every engine.

These checks run before any convolution work so that failures are immediate
and never leave partially computed state behind.
"""

from typing import List, Sequence

import numpy as np

from .config import MAX_DECOMPOSITION_LEVELS, MAX_SAFE_SHIFT_BITS
from .errors import InvalidArgumentError, InvalidSignalError
from .wavelet import BoundaryMode, SUPPORTED_BOUNDARY_MODES, Wavelet


def validate_signal(signal, name="signal") -> np.ndarray:
    """
    Validate a single signal and return it as a fresh float64 array.

    Raises:
        InvalidSignalError: if the signal is None, empty, not 1-D or non-finite
    """
    if signal is None:
        raise InvalidSignalError(f"{name} cannot be None")
    try:
        arr = np.array(signal, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidSignalError(f"{name} must be a sequence of real numbers: {e}")
    if arr.ndim != 1:
        raise InvalidSignalError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        raise InvalidSignalError(f"{name} cannot be empty")
    if not np.all(np.isfinite(arr)):
        bad = int(np.flatnonzero(~np.isfinite(arr))[0])
        raise InvalidSignalError(f"{name} contains a non-finite value at index {bad}: {arr[bad]}")
    return arr


def validate_batch(signals, name="signals") -> np.ndarray:
    """
    Validate equal-length signals and return them stacked as a (B, N) array.

    Accepts a sequence of 1-D arrays or a 2-D array with one signal per row.
    """
    if signals is None:
        raise InvalidSignalError(f"{name} cannot be None")
    if isinstance(signals, np.ndarray) and signals.ndim == 2:
        rows = [signals[b] for b in range(signals.shape[0])]
    else:
        rows = list(signals)
    if not rows:
        raise InvalidSignalError(f"{name} must contain at least one signal")
    validated: List[np.ndarray] = [validate_signal(row, f"{name}[{i}]") for i, row in enumerate(rows)]
    length = validated[0].size
    for i, row in enumerate(validated):
        if row.size != length:
            raise InvalidSignalError(
                f"All {name} must have equal length: {name}[0] has {length}, {name}[{i}] has {row.size}"
            )
    return np.stack(validated)


def validate_boundary_mode(mode) -> BoundaryMode:
    """Reject None, foreign values and modes without an implementation."""
    if mode is None:
        raise InvalidArgumentError("boundary_mode cannot be None")
    if not isinstance(mode, BoundaryMode):
        raise InvalidArgumentError(f"boundary_mode must be a BoundaryMode, got {mode!r}")
    if mode not in SUPPORTED_BOUNDARY_MODES:
        supported = ", ".join(m.name for m in SUPPORTED_BOUNDARY_MODES)
        raise InvalidArgumentError(
            f"Boundary mode {mode.name} is not supported by the MODWT cascade (supported: {supported})"
        )
    return mode


def scaled_filter_length(base_length: int, level: int) -> int:
    """Length of a base filter after upsampling for the given level."""
    return (base_length - 1) * (1 << (level - 1)) + 1


def max_levels(signal_length: int, filter_length: int) -> int:
    """
    Largest cascade level whose upsampled filter still fits in the signal.

    Level j is valid when (L0-1)*2^(j-1)+1 <= N. The result is capped at
    MAX_DECOMPOSITION_LEVELS and is 0 when not even level 1 fits.
    """
    if signal_length < filter_length:
        return 0
    level = 0
    while level < MAX_DECOMPOSITION_LEVELS and level < MAX_SAFE_SHIFT_BITS:
        if scaled_filter_length(filter_length, level + 1) > signal_length:
            break
        level += 1
    return level


def validate_levels(levels: int, signal_length: int, wavelet: Wavelet) -> int:
    """Check 1 <= levels <= max_levels(N, L0)."""
    if isinstance(levels, bool) or not isinstance(levels, (int, np.integer)):
        raise InvalidArgumentError(f"levels must be an integer, got {levels!r}")
    levels = int(levels)
    maximum = max_levels(signal_length, wavelet.filter_length)
    if levels < 1 or levels > maximum:
        if maximum == 0:
            raise InvalidArgumentError(
                f"Signal of length {signal_length} is shorter than the '{wavelet.name}' "
                f"filter (length {wavelet.filter_length}); no decomposition level is possible"
            )
        raise InvalidArgumentError(
            f"Invalid number of decomposition levels: {levels}. Must be between 1 and {maximum} "
            f"for signal length {signal_length} and wavelet '{wavelet.name}' "
            f"(filter length {wavelet.filter_length})"
        )
    return levels


def check_same_length(arrays: Sequence[np.ndarray], length: int, label: str):
    for i, arr in enumerate(arrays):
        if arr.shape != (length,):
            raise InvalidArgumentError(
                f"{label}[{i}] has shape {arr.shape}, expected ({length},)"
            )
