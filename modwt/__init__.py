# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Multi-level Maximal Overlap Discrete Wavelet Transform (MODWT) engines.

This package provides:
- A sequential reference cascade with exact periodic reconstruction
- A concurrent cascade that runs the two branches of each level in parallel
- Batch kernels over a structure-of-arrays layout, including block streaming
- Periodic, symmetric and zero-padding boundary handling
"""

__version__ = '0.1.0'

from .errors import (
    WaveletError,
    InvalidArgumentError,
    InvalidSignalError,
    InvalidStateError,
)
from .wavelet import BoundaryMode, Wavelet, as_wavelet
from .filters import FilterCache, FilterKind, FilterSet, derive, upsample
from .alignment import (
    NEUTRAL_DECISION,
    AlignmentDecision,
    Orientation,
    SymmetricAlignmentTable,
)
from .calibration import calibrated_decisions, calibrated_entries
from .result import CascadeResult
from .validation import max_levels
from .cascade import MultiLevelMODWT, forward, inverse
from .parallel import ParallelMultiLevelMODWT
from .batch import BatchMODWT, from_soa, to_soa
from .streaming import BatchStreamingMODWT
from .signals import (
    generate_chirp_signal,
    generate_random_walk,
    generate_signal_batch,
    generate_test_signal,
)
