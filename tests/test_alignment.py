# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

import numpy as np
import pytest

from modwt import AlignmentDecision, InvalidArgumentError, Orientation, SymmetricAlignmentTable, Wavelet
from modwt.alignment import NEUTRAL_DECISION, bands_from_decisions
from modwt.calibration import calibrated_decisions, calibration_levels

PLUS = Orientation.PLUS
MINUS = Orientation.MINUS


def uncatalogued(length):
    return Wavelet("mywave3", np.ones(length), np.ones(length), np.ones(length), np.ones(length))


class TestAlignmentDecision:
    def test_rejects_large_offset(self):
        with pytest.raises(InvalidArgumentError):
            AlignmentDecision(PLUS, 2, PLUS, 0)
        with pytest.raises(InvalidArgumentError):
            AlignmentDecision(PLUS, 0, MINUS, -2)

    def test_frozen(self):
        d = AlignmentDecision(PLUS, 0, MINUS, 1)
        with pytest.raises(AttributeError):
            d.approx_offset = 1

    def test_value_equality(self):
        assert AlignmentDecision(MINUS, -1, PLUS, 0) == AlignmentDecision(-1, -1, 1, 0)
        assert len({AlignmentDecision(PLUS, 0, PLUS, 0), AlignmentDecision(PLUS, 0, PLUS, 0)}) == 1


class TestDefaults:
    def test_neutral_without_calibration(self):
        table = SymmetricAlignmentTable(calibrate=False)
        for level in range(1, 5):
            assert table.decide(Wavelet.from_name("db4"), level) == NEUTRAL_DECISION

    def test_custom_default(self):
        decision = AlignmentDecision(MINUS, -1, PLUS, 0)
        table = SymmetricAlignmentTable(calibrate=False, default=decision)
        assert table.decide(uncatalogued(6), 2) == decision

    def test_levels_beyond_calibration_use_default(self):
        decision = AlignmentDecision(PLUS, 1, MINUS, 0)
        db8 = Wavelet.from_name("db8")
        depth = calibration_levels(db8)
        table = SymmetricAlignmentTable(default=decision)
        assert table.decide(db8, depth + 1) == decision
        assert table.decide(db8, depth) == calibrated_decisions(db8)[depth - 1]


class TestBandsFromDecisions:
    def test_merges_runs(self):
        a = AlignmentDecision(PLUS, 1, PLUS, 0)
        bands = bands_from_decisions([NEUTRAL_DECISION, NEUTRAL_DECISION, a, a, NEUTRAL_DECISION])
        assert bands == ((1, NEUTRAL_DECISION), (3, a), (5, NEUTRAL_DECISION))

    def test_bands_are_accepted_by_table(self):
        a = AlignmentDecision(MINUS, 0, PLUS, -1)
        decisions = [a, NEUTRAL_DECISION, a]
        table = SymmetricAlignmentTable(entries={"db4": bands_from_decisions(decisions)})
        db4 = Wavelet.from_name("db4")
        assert [table.decide(db4, level) for level in (1, 2, 3, 7)] == [a, NEUTRAL_DECISION, a, a]


class TestSymmetricAlignmentTable:
    def test_deterministic(self):
        table = SymmetricAlignmentTable()
        w = Wavelet.from_name("db6")
        first = [table.decide(w, level) for level in range(1, 8)]
        again = [table.decide(Wavelet.from_name("db6"), level) for level in range(1, 8)]
        assert first == again

    def test_level_bands(self):
        a = AlignmentDecision(MINUS, 0, PLUS, 0)
        b = AlignmentDecision(MINUS, -1, PLUS, 1)
        table = SymmetricAlignmentTable(entries={"db6": ((1, a), (3, b))})
        db6 = Wavelet.from_name("db6")
        assert table.decide(db6, 1) == a
        assert table.decide(db6, 2) == a
        assert table.decide(db6, 3) == b
        assert table.decide(db6, 9) == b

    def test_calibrated_by_default(self):
        table = SymmetricAlignmentTable()
        sym4 = Wavelet.from_name("sym4")
        expected = calibrated_decisions(sym4)
        assert [table.decide(sym4, level) for level in range(1, len(expected) + 1)] == list(expected)

    def test_descriptors(self):
        assert SymmetricAlignmentTable().descriptors() == []
        table = SymmetricAlignmentTable(entries={"sym4": ((1, NEUTRAL_DECISION),)},
                                        overrides={"db2": ((1, NEUTRAL_DECISION),)})
        assert table.descriptors() == ["db2", "sym4"]

    def test_overrides(self):
        decision = AlignmentDecision(PLUS, 1, PLUS, -1)
        table = SymmetricAlignmentTable(overrides={"haar": ((1, decision),)})
        assert table.decide(Wavelet.from_name("haar"), 3) == decision
        db4 = Wavelet.from_name("db4")
        assert table.decide(db4, 1) == calibrated_decisions(db4)[0]

    def test_family_fallback(self):
        decision = AlignmentDecision(MINUS, 1, MINUS, 1)
        table = SymmetricAlignmentTable(entries={"mywave": ((1, decision),)})
        assert table.decide(uncatalogued(4), 1) == decision

    def test_rejects_level_zero(self):
        with pytest.raises(InvalidArgumentError):
            SymmetricAlignmentTable().decide(Wavelet.from_name("db4"), 0)

    def test_rejects_bands_not_starting_at_one(self):
        with pytest.raises(InvalidArgumentError):
            SymmetricAlignmentTable(entries={"db4": ((2, AlignmentDecision(PLUS, 0, PLUS, 0)),)})

    def test_rejects_unsorted_bands(self):
        d = AlignmentDecision(PLUS, 0, PLUS, 0)
        with pytest.raises(InvalidArgumentError):
            SymmetricAlignmentTable(entries={"db4": ((1, d), (3, d), (2, d))})

    def test_rejects_empty_bands(self):
        with pytest.raises(InvalidArgumentError):
            SymmetricAlignmentTable(entries={"db4": ()})
