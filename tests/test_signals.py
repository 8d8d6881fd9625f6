# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

import numpy as np

from modwt import generate_chirp_signal, generate_random_walk, generate_signal_batch, generate_test_signal


class TestGenerators:
    def test_sine_matches_closed_form(self):
        t = np.arange(300) / 100.0
        expected = 2.0 * np.sin(2 * np.pi * 4.0 * t + 0.5)
        np.testing.assert_allclose(generate_test_signal(300, freq=4.0, amplitude=2.0, phase=0.5),
                                   expected, atol=1e-9)

    def test_chirp_frequency_sweeps_between_endpoints(self):
        x = generate_chirp_signal(2000, f0=1.0, f1=20.0, sample_rate=1000.0)
        assert x.shape == (2000,)
        assert x[0] == 0.0
        # Slow start, fast finish: fewer sign changes in the first half
        crossings = np.diff(np.signbit(x).astype(int)) != 0
        assert crossings[:1000].sum() < crossings[1000:].sum()

    def test_random_walk_reproducible(self):
        np.testing.assert_array_equal(generate_random_walk(64, seed=5), generate_random_walk(64, seed=5))
        assert not np.array_equal(generate_random_walk(64, seed=5), generate_random_walk(64, seed=6))

    def test_batch_rows_are_distinct(self):
        batch = generate_signal_batch(6, 128, seed=1)
        assert batch.shape == (6, 128)
        assert len({row.tobytes() for row in batch}) == 6
