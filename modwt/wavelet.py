# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Wavelet filter banks and boundary modes.

Named filter banks come from the PyWavelets catalog and are wrapped in an
immutable :class:`Wavelet` value. The MODWT engines only ever read the four tap
arrays; they never depend on how the catalog derived them.
"""

from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pywt

from .errors import InvalidArgumentError


class BoundaryMode(Enum):
    """Enum defining boundary handling modes for wavelet transforms."""
    PERIODIC = 0
    SYMMETRIC = 1
    ZERO_PADDING = 2
    CONSTANT = 3


SUPPORTED_BOUNDARY_MODES = (
    BoundaryMode.PERIODIC,
    BoundaryMode.SYMMETRIC,
    BoundaryMode.ZERO_PADDING,
)


def _frozen(taps, label):
    arr = np.array(taps, dtype=np.float64).ravel()
    if arr.size == 0:
        raise InvalidArgumentError(f"Wavelet filter '{label}' must contain at least one tap")
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f"Wavelet filter '{label}' contains non-finite taps")
    arr.setflags(write=False)
    return arr


class Wavelet:
    """
    Immutable discrete wavelet filter bank.

    Holds the analysis (decomposition) and synthesis (reconstruction) low-pass
    and high-pass taps. Instances are hashable and compare equal when their
    names and taps match, so they can key per-engine filter caches.

    Args:
        name (str): Catalog name or a caller-chosen label
        dec_lo, dec_hi (sequence of float): Analysis low-pass / high-pass taps
        rec_lo, rec_hi (sequence of float): Synthesis low-pass / high-pass taps
        family (str): Family descriptor used by the symmetric alignment table
    """

    __slots__ = ("_name", "_family", "_dec_lo", "_dec_hi", "_rec_lo", "_rec_hi", "_hash")

    def __init__(self, name, dec_lo, dec_hi, rec_lo, rec_hi, family=None):
        if not name:
            raise InvalidArgumentError("Wavelet name must be a non-empty string")
        dec_lo = _frozen(dec_lo, "dec_lo")
        dec_hi = _frozen(dec_hi, "dec_hi")
        rec_lo = _frozen(rec_lo, "rec_lo")
        rec_hi = _frozen(rec_hi, "rec_hi")
        lengths = {dec_lo.size, dec_hi.size, rec_lo.size, rec_hi.size}
        if len(lengths) != 1:
            raise InvalidArgumentError(
                f"Wavelet '{name}' filters must share one length, got "
                f"dec_lo={dec_lo.size}, dec_hi={dec_hi.size}, rec_lo={rec_lo.size}, rec_hi={rec_hi.size}"
            )
        object.__setattr__(self, "_name", str(name))
        object.__setattr__(self, "_family", family or str(name).rstrip("0123456789."))
        object.__setattr__(self, "_dec_lo", dec_lo)
        object.__setattr__(self, "_dec_hi", dec_hi)
        object.__setattr__(self, "_rec_lo", rec_lo)
        object.__setattr__(self, "_rec_hi", rec_hi)
        object.__setattr__(self, "_hash", hash((
            self._name,
            dec_lo.tobytes(), dec_hi.tobytes(), rec_lo.tobytes(), rec_hi.tobytes(),
        )))

    def __setattr__(self, key, value):
        raise AttributeError("Wavelet instances are immutable")

    @classmethod
    def from_name(cls, name: str) -> "Wavelet":
        """Build a wavelet from the PyWavelets discrete catalog (e.g. 'haar', 'db4', 'bior2.2')."""
        try:
            w = pywt.Wavelet(name)
        except (ValueError, TypeError) as e:
            raise InvalidArgumentError(f"Unknown discrete wavelet '{name}': {e}")
        dec_lo, dec_hi, rec_lo, rec_hi = w.filter_bank
        return cls(w.name, dec_lo, dec_hi, rec_lo, rec_hi, family=w.short_family_name)

    @classmethod
    def from_low_pass(cls, name: str, low_pass: Sequence[float]) -> "Wavelet":
        """
        Build an orthogonal wavelet from its analysis low-pass taps.

        The high-pass filter follows the quadrature mirror relationship and the
        synthesis filters are the time-reversed analysis filters.
        """
        lo = np.asarray(low_pass, dtype=np.float64).ravel()
        n = len(lo)
        if n < 2 or n % 2:
            raise InvalidArgumentError(f"Orthogonal low-pass filter needs an even length >= 2, got {n}")
        hi = np.array([(-1) ** i * lo[n - 1 - i] for i in range(n)])
        return cls(name, lo, hi, lo[::-1], hi[::-1])

    @property
    def name(self) -> str:
        return self._name

    @property
    def family(self) -> str:
        return self._family

    @property
    def dec_lo(self) -> np.ndarray:
        return self._dec_lo

    @property
    def dec_hi(self) -> np.ndarray:
        return self._dec_hi

    @property
    def rec_lo(self) -> np.ndarray:
        return self._rec_lo

    @property
    def rec_hi(self) -> np.ndarray:
        return self._rec_hi

    @property
    def filter_length(self) -> int:
        """Base (level-1) filter length L0."""
        return int(self._dec_lo.size)

    @property
    def orthogonal(self) -> bool:
        """True when synthesis taps are the time-reversed analysis taps."""
        return (np.allclose(self._rec_lo, self._dec_lo[::-1], atol=1e-12)
                and np.allclose(self._rec_hi, self._dec_hi[::-1], atol=1e-12))

    @property
    def filter_bank(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        return self._dec_lo, self._dec_hi, self._rec_lo, self._rec_hi

    def __eq__(self, other):
        if not isinstance(other, Wavelet):
            return NotImplemented
        return (self._name == other._name
                and np.array_equal(self._dec_lo, other._dec_lo)
                and np.array_equal(self._dec_hi, other._dec_hi)
                and np.array_equal(self._rec_lo, other._rec_lo)
                and np.array_equal(self._rec_hi, other._rec_hi))

    def __hash__(self):
        return self._hash

    def __repr__(self):
        return f"Wavelet(name={self._name!r}, family={self._family!r}, length={self.filter_length})"


def as_wavelet(wavelet: Optional[Union[Wavelet, str]]) -> Wavelet:
    """Resolve a wavelet argument, accepting either a Wavelet or a catalog name."""
    if wavelet is None:
        raise InvalidArgumentError("wavelet cannot be None")
    if isinstance(wavelet, Wavelet):
        return wavelet
    if isinstance(wavelet, str):
        return Wavelet.from_name(wavelet)
    raise InvalidArgumentError(f"wavelet must be a Wavelet or a catalog name, got {type(wavelet).__name__}")
