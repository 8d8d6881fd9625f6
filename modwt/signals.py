# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Deterministic test signals for exercising the MODWT engines.

Every generator is a pure function of its arguments, so the same call always
returns the same samples. The alignment calibration relies on that.
"""

import numpy as np


def _phase_signal(phase_steps, amplitude, phase):
    # Integrate per-sample phase increments (cycles) into a sinusoid
    cycles = np.concatenate([[0.0], np.cumsum(phase_steps[:-1])])
    return amplitude * np.sin(2 * np.pi * cycles + phase)


def generate_test_signal(length=1024, freq=5.0, sample_rate=100.0, amplitude=1.0, phase=0.0):
    """
    Constant-frequency sinusoid.

    Args:
        length (int): Number of samples
        freq (float): Frequency in Hz
        sample_rate (float): Sampling rate in Hz
        amplitude (float): Peak amplitude
        phase (float): Phase at sample 0 in radians

    Returns:
        numpy.ndarray: Signal of shape (length,)
    """
    return _phase_signal(np.full(length, freq / sample_rate), amplitude, phase)


def generate_chirp_signal(length=1024, f0=1.0, f1=20.0, sample_rate=100.0, amplitude=1.0, phase=0.0):
    """Linear chirp sweeping from ``f0`` at the first sample to ``f1`` at the last."""
    return _phase_signal(np.linspace(f0, f1, length) / sample_rate, amplitude, phase)


def generate_random_walk(length=1024, seed=0, scale=1.0):
    """Cumulative sum of Gaussian steps; reproducible for a given seed."""
    rng = np.random.default_rng(seed)
    return np.cumsum(rng.normal(0.0, scale, length))


def generate_signal_batch(batch_size, length=1024, seed=0):
    """
    Stack of distinct signals: sines, chirps and random walks in rotation.

    Returns:
        numpy.ndarray: (batch_size, length) array
    """
    rows = []
    for b in range(batch_size):
        kind = b % 3
        if kind == 0:
            rows.append(generate_test_signal(length, freq=2.0 + b, phase=0.1 * b))
        elif kind == 1:
            rows.append(generate_chirp_signal(length, f0=1.0, f1=10.0 + b))
        else:
            rows.append(generate_random_walk(length, seed=seed + b))
    return np.stack(rows)
