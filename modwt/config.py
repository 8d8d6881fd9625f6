# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Environment-driven defaults for the MODWT engines.

Values are read once at import time. Every engine accepts keyword arguments
that override these defaults per instance.
"""

import os

# Hard upper bound on cascade depth regardless of signal length
MAX_DECOMPOSITION_LEVELS = 10

# 2^(level-1) must stay representable as a 32-bit shift
MAX_SAFE_SHIFT_BITS = 31

# MODWT per-stage filter normalization
MODWT_SCALE = 1.0 / (2.0 ** 0.5)


def _env_int(name, default):
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")
    if parsed < 0:
        raise ValueError(f"Environment variable {name} must be non-negative, got {parsed}")
    return parsed


# Column-group width used by the batch SoA kernels
VECTOR_WIDTH = max(1, _env_int("MODWT_VECTOR_WIDTH", 8))

# Signals shorter than this run sequentially inside the concurrent engine
MIN_PARALLEL_SIGNAL_LENGTH = _env_int("MODWT_MIN_PARALLEL_LENGTH", 4096)

# Number of nonzero taps at which circular convolution switches to the FFT path
FFT_MIN_TAPS = max(1, _env_int("MODWT_FFT_MIN_TAPS", 64))

# Worker count for engine-owned thread pools (0 means the executor default)
MAX_WORKERS = _env_int("MODWT_MAX_WORKERS", 0)


def default_max_workers():
    """Worker count for an engine-owned pool."""
    if MAX_WORKERS > 0:
        return MAX_WORKERS
    return min(32, (os.cpu_count() or 1) + 4)
