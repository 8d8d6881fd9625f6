# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Symmetric-boundary alignment table for MODWT reconstruction.

Under mirror extension there is no closed-form alignment that minimizes the
reconstruction error near the edges for asymmetric filters. The decision for
each (wavelet, level) is therefore calibrated on a fixed benchmark (see
:mod:`modwt.calibration`) and looked up from a table.

A decision only changes how out-of-range synthesis indices are folded back
into the signal. Synthesis reads ``c[t + k]`` with ``k >= 0``, so folding only
happens past the right edge. ``orientation`` selects the mirror convention
(PLUS repeats the edge sample, MINUS does not) and ``offset`` displaces the
out-of-range index toward the interior by -1, 0 or +1 samples before folding.
Interior samples are never touched, so reconstruction away from the edge is
exact whatever the table says.

The table is a replaceable policy: engines accept any object with a
``decide(wavelet, level)`` method.
"""

from enum import Enum
from typing import Mapping, Optional, Sequence, Tuple

from .errors import InvalidArgumentError


class Orientation(Enum):
    """Mirror convention for one reconstruction branch."""
    PLUS = 1
    MINUS = -1


class AlignmentDecision:
    """Frozen per-(wavelet, level) alignment for both reconstruction branches."""

    __slots__ = ("approx_orientation", "approx_offset", "detail_orientation", "detail_offset")

    def __init__(self, approx_orientation, approx_offset, detail_orientation, detail_offset):
        for label, offset in (("approx_offset", approx_offset), ("detail_offset", detail_offset)):
            if offset not in (-1, 0, 1):
                raise InvalidArgumentError(f"{label} must be -1, 0 or +1, got {offset}")
        object.__setattr__(self, "approx_orientation", Orientation(approx_orientation))
        object.__setattr__(self, "approx_offset", int(approx_offset))
        object.__setattr__(self, "detail_orientation", Orientation(detail_orientation))
        object.__setattr__(self, "detail_offset", int(detail_offset))

    def __setattr__(self, key, value):
        raise AttributeError("AlignmentDecision instances are immutable")

    def _key(self):
        return (self.approx_orientation, self.approx_offset, self.detail_orientation, self.detail_offset)

    def __eq__(self, other):
        if not isinstance(other, AlignmentDecision):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return (f"AlignmentDecision(approx={self.approx_orientation.name}{self.approx_offset:+d}, "
                f"detail={self.detail_orientation.name}{self.detail_offset:+d})")


# Plain half-sample mirror on both branches
NEUTRAL_DECISION = AlignmentDecision(Orientation.PLUS, 0, Orientation.PLUS, 0)

# (first level the band applies to, decision); bands sorted by first level
LevelBands = Sequence[Tuple[int, AlignmentDecision]]


def bands_from_decisions(decisions: Sequence[AlignmentDecision]) -> Tuple[Tuple[int, AlignmentDecision], ...]:
    """Compress a per-level decision list (index 0 is level 1) into level bands."""
    bands = []
    for level, decision in enumerate(decisions, start=1):
        if not bands or bands[-1][1] != decision:
            bands.append((level, decision))
    return tuple(bands)


def _check_bands(name, bands):
    if not bands:
        raise InvalidArgumentError(f"Alignment entry '{name}' has no level bands")
    if bands[0][0] != 1:
        raise InvalidArgumentError(f"Alignment entry '{name}' must start at level 1")
    firsts = [first for first, _ in bands]
    if firsts != sorted(set(firsts)):
        raise InvalidArgumentError(f"Alignment entry '{name}' has unsorted level bands")


def _band_lookup(bands, level):
    decision = bands[0][1]
    for first, candidate in bands:
        if first > level:
            break
        decision = candidate
    return decision


class SymmetricAlignmentTable:
    """
    Pure lookup from (wavelet, level) to an :class:`AlignmentDecision`.

    Explicit entries are consulted first, by wavelet name and then by family.
    Wavelets without an entry use the benchmark calibration from
    :func:`modwt.calibration.calibrated_decisions`, computed once per wavelet
    and cached. Levels deeper than the calibration covers fall back to
    ``default``.

    Parameters
    ----------
    entries : mapping, optional
        Explicit level bands keyed by wavelet name or family
    overrides : mapping, optional
        Merged on top of ``entries``; use to recalibrate a few wavelets
    calibrate : bool, optional
        Use the benchmark calibration for wavelets without an entry, by default True
    default : AlignmentDecision, optional
        Decision when nothing else applies, by default :data:`NEUTRAL_DECISION`
    """

    def __init__(self, entries: Optional[Mapping[str, LevelBands]] = None,
                 overrides: Optional[Mapping[str, LevelBands]] = None,
                 calibrate: bool = True, default: AlignmentDecision = NEUTRAL_DECISION):
        table = dict(entries or {})
        if overrides:
            table.update(overrides)
        for name, bands in table.items():
            _check_bands(name, bands)
        self._table = {name: tuple(bands) for name, bands in table.items()}
        self._calibrate = calibrate
        self._default = default

    def descriptors(self):
        """Wavelet names or families that have an explicit entry."""
        return sorted(self._table)

    def decide(self, wavelet, level: int) -> AlignmentDecision:
        if level < 1:
            raise InvalidArgumentError(f"level must be >= 1, got {level}")
        bands = self._table.get(wavelet.name)
        if bands is None:
            bands = self._table.get(wavelet.family)
        if bands is not None:
            return _band_lookup(bands, level)
        if self._calibrate:
            from .calibration import calibrated_decisions
            decisions = calibrated_decisions(wavelet)
            if level <= len(decisions):
                return decisions[level - 1]
        return self._default
