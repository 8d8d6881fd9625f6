# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Global pytest configuration.
"""

import os
import sys

import numpy as np
import pytest

# Add the project root to the Python path so tests can import modules properly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from modwt.signals import generate_chirp_signal, generate_random_walk, generate_test_signal  # noqa: E402

ORTHOGONAL_WAVELETS = ["haar", "db2", "db4", "sym4", "coif2"]
BIORTHOGONAL_WAVELETS = ["bior2.2", "bior3.5"]


@pytest.fixture
def rng():
    """Seeded random generator so failures reproduce."""
    return np.random.default_rng(1234)


@pytest.fixture
def mixed_signal():
    """Chirp plus random walk, long enough for several db4 levels."""
    return generate_chirp_signal(512, f0=2.0, f1=30.0) + 0.1 * generate_random_walk(512, seed=7)


@pytest.fixture
def odd_signal():
    """Sine of odd length to exercise non power-of-two sizes."""
    return generate_test_signal(257, freq=3.0)
