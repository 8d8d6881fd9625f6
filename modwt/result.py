# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Multi-level MODWT decomposition result.
"""

from typing import List, Sequence

import numpy as np

from .errors import InvalidArgumentError


class CascadeResult:
    """
    Detail coefficients for levels 1..J plus the level-J approximation.

    Every array has the length of the decomposed signal. The result is
    produced fresh by each decompose call and owned by the caller.

    Parameters
    ----------
    details : sequence of np.ndarray
        Detail (wavelet) coefficients, index 0 holds level 1
    approximation : np.ndarray
        Final approximation (scaling) coefficients at level J
    """

    def __init__(self, details: Sequence[np.ndarray], approximation: np.ndarray):
        approximation = np.array(approximation, dtype=np.float64)
        if approximation.ndim != 1 or approximation.size == 0:
            raise InvalidArgumentError(
                f"approximation must be a non-empty 1-D array, got shape {approximation.shape}"
            )
        details = [np.array(d, dtype=np.float64) for d in details]
        if not details:
            raise InvalidArgumentError("A cascade result needs at least one detail level")
        for i, d in enumerate(details):
            if d.shape != approximation.shape:
                raise InvalidArgumentError(
                    f"Detail level {i + 1} has shape {d.shape}, expected {approximation.shape}"
                )
        self._details: List[np.ndarray] = details
        self._approximation = approximation

    @property
    def levels(self) -> int:
        return len(self._details)

    @property
    def signal_length(self) -> int:
        return int(self._approximation.size)

    @property
    def approximation(self) -> np.ndarray:
        return self._approximation

    @property
    def details(self) -> List[np.ndarray]:
        return list(self._details)

    def detail(self, level: int) -> np.ndarray:
        """Detail coefficients at a 1-based level."""
        if level < 1 or level > self.levels:
            raise InvalidArgumentError(f"level must be between 1 and {self.levels}, got {level}")
        return self._details[level - 1]

    def detail_energy(self, level: int) -> float:
        d = self.detail(level)
        return float(np.dot(d, d))

    @property
    def approximation_energy(self) -> float:
        return float(np.dot(self._approximation, self._approximation))

    @property
    def total_energy(self) -> float:
        return self.approximation_energy + sum(self.detail_energy(j) for j in range(1, self.levels + 1))

    def relative_energy_distribution(self) -> np.ndarray:
        """
        Share of total energy per component.

        Index 0 is the approximation, index j the detail at level j. All zeros
        when the total energy is zero.
        """
        shares = np.zeros(self.levels + 1)
        total = self.total_energy
        if total == 0.0:
            return shares
        shares[0] = self.approximation_energy / total
        for j in range(1, self.levels + 1):
            shares[j] = self.detail_energy(j) / total
        return shares

    def copy(self) -> "CascadeResult":
        return CascadeResult([d.copy() for d in self._details], self._approximation.copy())

    def allclose(self, other: "CascadeResult", atol: float = 1e-9) -> bool:
        """Coefficient-wise comparison within an absolute tolerance."""
        if self.levels != other.levels or self.signal_length != other.signal_length:
            return False
        if not np.allclose(self._approximation, other._approximation, rtol=0.0, atol=atol):
            return False
        return all(np.allclose(a, b, rtol=0.0, atol=atol) for a, b in zip(self._details, other._details))

    def __repr__(self):
        return f"CascadeResult(levels={self.levels}, signal_length={self.signal_length})"
