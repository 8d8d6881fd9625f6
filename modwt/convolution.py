# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Boundary convolution primitives for the MODWT cascade.

Analysis (forward) direction::

    out[t] = sum_l taps[l] * x[t - l]

Synthesis (inverse) direction, applied with the adjoint filter set::

    out[t] = sum_k taps[k] * c[t + k]

Each direction comes in one variant per boundary mode. Upsampled filters are
mostly zeros, so only nonzero taps are visited.
"""

import logging

import numpy as np
import scipy.fft

from .alignment import Orientation
from .config import FFT_MIN_TAPS
from .wavelet import BoundaryMode

logger = logging.getLogger("Convolution")


def _nonzero_taps(taps):
    taps = np.asarray(taps, dtype=np.float64).ravel()
    offsets = np.flatnonzero(taps)
    return offsets, taps[offsets]


def symmetric_index(idx, n):
    """Fold indices into [0, n) by half-sample mirroring (x[-1] = x[0])."""
    idx = np.asarray(idx)
    m = idx % (2 * n)
    return np.where(m < n, m, 2 * n - 1 - m)


def whole_sample_index(idx, n):
    """Fold indices into [0, n) by whole-sample mirroring (x[-1] = x[1])."""
    idx = np.asarray(idx)
    if n == 1:
        return np.zeros_like(idx)
    period = 2 * n - 2
    m = idx % period
    return np.where(m < n, m, period - m)


def aligned_index(idx, n, orientation, offset=0):
    """
    Map synthesis indices under symmetric boundary alignment.

    In-range indices are returned unchanged. An out-of-range index is first
    displaced by ``offset`` samples toward the interior, then folded with the
    mirror convention selected by ``orientation``: PLUS repeats the edge sample,
    MINUS does not.
    """
    idx = np.asarray(idx)
    left = idx < 0
    right = idx >= n
    shifted = idx + offset * left - offset * right
    if orientation is Orientation.PLUS:
        folded = symmetric_index(shifted, n)
    else:
        folded = whole_sample_index(shifted, n)
    return np.where(left | right, folded, idx)


def _fft_circular(x, taps, correlate):
    n = x.size
    kernel = np.zeros(n, dtype=np.float64)
    np.add.at(kernel, np.arange(taps.size) % n, taps)
    kernel_spectrum = scipy.fft.rfft(kernel)
    if correlate:
        kernel_spectrum = np.conj(kernel_spectrum)
    return scipy.fft.irfft(scipy.fft.rfft(x) * kernel_spectrum, n)


def circular_convolve(signal, taps, fft_min_taps=None):
    """
    Periodic convolution: out[t] = sum_l taps[l] * x[(t - l) mod N].

    Exact for every N >= 1. Filters with at least ``fft_min_taps`` nonzero taps
    go through an FFT product instead of the direct tap loop.
    """
    x = np.asarray(signal, dtype=np.float64)
    taps = np.asarray(taps, dtype=np.float64)
    offsets, coeffs = _nonzero_taps(taps)
    threshold = FFT_MIN_TAPS if fft_min_taps is None else fft_min_taps
    if offsets.size >= threshold:
        logger.debug(f"FFT circular convolution: N={x.size}, nonzero taps={offsets.size}")
        return _fft_circular(x, taps, correlate=False)
    out = np.zeros(x.size, dtype=np.float64)
    for offset, coeff in zip(offsets, coeffs):
        out += coeff * np.roll(x, offset)
    return out


def zero_padded_convolve(signal, taps):
    """Causal convolution where samples before t = 0 are zero. No wraparound."""
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    out = np.zeros(n, dtype=np.float64)
    offsets, coeffs = _nonzero_taps(taps)
    for offset, coeff in zip(offsets, coeffs):
        if offset < n:
            out[offset:] += coeff * x[:n - offset]
    return out


def symmetric_convolve(signal, taps):
    """Convolution with samples before t = 0 taken from the half-sample mirror image."""
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    t = np.arange(n)
    out = np.zeros(n, dtype=np.float64)
    offsets, coeffs = _nonzero_taps(taps)
    for offset, coeff in zip(offsets, coeffs):
        out += coeff * x[symmetric_index(t - offset, n)]
    return out


def circular_correlate(coeffs, taps, fft_min_taps=None):
    """Periodic synthesis: out[t] = sum_k taps[k] * c[(t + k) mod N]."""
    c = np.asarray(coeffs, dtype=np.float64)
    taps = np.asarray(taps, dtype=np.float64)
    offsets, values = _nonzero_taps(taps)
    threshold = FFT_MIN_TAPS if fft_min_taps is None else fft_min_taps
    if offsets.size >= threshold:
        logger.debug(f"FFT circular correlation: N={c.size}, nonzero taps={offsets.size}")
        return _fft_circular(c, taps, correlate=True)
    out = np.zeros(c.size, dtype=np.float64)
    for offset, value in zip(offsets, values):
        out += value * np.roll(c, -offset)
    return out


def zero_padded_correlate(coeffs, taps):
    """Synthesis where coefficients at or beyond N are zero."""
    c = np.asarray(coeffs, dtype=np.float64)
    n = c.size
    out = np.zeros(n, dtype=np.float64)
    offsets, values = _nonzero_taps(taps)
    for offset, value in zip(offsets, values):
        if offset < n:
            out[:n - offset] += value * c[offset:]
    return out


def aligned_correlate(coeffs, taps, orientation=Orientation.PLUS, offset=0):
    """Synthesis under symmetric boundary with the given alignment for this branch."""
    c = np.asarray(coeffs, dtype=np.float64)
    n = c.size
    t = np.arange(n)
    out = np.zeros(n, dtype=np.float64)
    offsets, values = _nonzero_taps(taps)
    for k, value in zip(offsets, values):
        out += value * c[aligned_index(t + k, n, orientation, offset)]
    return out


def analysis_convolve(signal, taps, mode):
    """Forward convolution for one branch under the given boundary mode."""
    if mode is BoundaryMode.PERIODIC:
        return circular_convolve(signal, taps)
    if mode is BoundaryMode.ZERO_PADDING:
        return zero_padded_convolve(signal, taps)
    if mode is BoundaryMode.SYMMETRIC:
        return symmetric_convolve(signal, taps)
    raise ValueError(f"No analysis convolution for boundary mode {mode}")


def synthesis_correlate(coeffs, taps, mode, orientation=Orientation.PLUS, offset=0):
    """Inverse contribution of one branch under the given boundary mode."""
    if mode is BoundaryMode.PERIODIC:
        return circular_correlate(coeffs, taps)
    if mode is BoundaryMode.ZERO_PADDING:
        return zero_padded_correlate(coeffs, taps)
    if mode is BoundaryMode.SYMMETRIC:
        return aligned_correlate(coeffs, taps, orientation, offset)
    raise ValueError(f"No synthesis convolution for boundary mode {mode}")
