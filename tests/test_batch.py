# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

import threading

import numpy as np
import pytest

from modwt import (
    BatchMODWT,
    BoundaryMode,
    InvalidArgumentError,
    InvalidSignalError,
    InvalidStateError,
    MultiLevelMODWT,
    Wavelet,
    from_soa,
    generate_signal_batch,
    to_soa,
)
from modwt.batch import (
    batch_inverse_soa,
    batch_modwt_soa,
    batch_multi_level_soa,
    clear_scratch,
    convolve_with_history_soa,
)
from modwt.convolution import zero_padded_convolve
from modwt.filters import derive, FilterKind

ALL_MODES = [BoundaryMode.PERIODIC, BoundaryMode.SYMMETRIC, BoundaryMode.ZERO_PADDING]


@pytest.fixture
def sequential_engine():
    with MultiLevelMODWT() as engine:
        yield engine


class TestLayout:
    def test_interleaving(self):
        stack = np.array([[0.0, 1.0, 2.0], [10.0, 11.0, 12.0]])
        soa = to_soa(stack)
        np.testing.assert_array_equal(soa, [0, 10, 1, 11, 2, 12])
        np.testing.assert_array_equal(from_soa(soa, 2, 3), stack)

    def test_sample_position(self, rng):
        stack = rng.normal(size=(5, 9))
        soa = to_soa(stack)
        for t in (0, 4, 8):
            for b in (0, 3):
                assert soa[t * 5 + b] == stack[b, t]

    def test_size_mismatch(self):
        with pytest.raises(InvalidArgumentError):
            from_soa(np.zeros(7), 2, 3)

    def test_to_soa_requires_2d(self):
        with pytest.raises(InvalidArgumentError):
            to_soa(np.zeros(4))


class TestKernels:
    @pytest.mark.parametrize("wavelet", ["haar", "db2", "db4", "bior2.2"])
    @pytest.mark.parametrize("width", [1, 3, 8])
    def test_single_level_periodic_kernel(self, sequential_engine, wavelet, width):
        stack = generate_signal_batch(7, 128)
        fs = derive(Wavelet.from_name(wavelet), 1)
        approx, detail = batch_modwt_soa(to_soa(stack), 7, 128, fs.low, fs.high, vector_width=width)
        approx, detail = from_soa(approx, 7, 128), from_soa(detail, 7, 128)
        for b in range(7):
            expected = sequential_engine.decompose(stack[b], wavelet, BoundaryMode.PERIODIC, 1)
            np.testing.assert_allclose(approx[b], expected.approximation, atol=1e-9)
            np.testing.assert_allclose(detail[b], expected.detail(1), atol=1e-9)

    def test_history_kernel_with_zero_history(self, rng):
        stack = rng.normal(size=(3, 50))
        taps = derive(Wavelet.from_name("db4"), 2).low
        h = taps.size - 1
        out = convolve_with_history_soa(np.zeros(h * 3), h, to_soa(stack), 3, 50, taps, vector_width=2)
        out = from_soa(out, 3, 50)
        for b in range(3):
            np.testing.assert_allclose(out[b], zero_padded_convolve(stack[b], taps), atol=1e-12)

    def test_history_kernel_continues_previous_block(self, rng):
        x = rng.normal(size=(2, 80))
        taps = derive(Wavelet.from_name("sym4"), 1).high
        h = taps.size - 1
        history = to_soa(x[:, 40 - h:40])
        out = from_soa(convolve_with_history_soa(history, h, to_soa(x[:, 40:]), 2, 40, taps), 2, 40)
        for b in range(2):
            np.testing.assert_allclose(out[b], zero_padded_convolve(x[b], taps)[40:], atol=1e-12)

    def test_history_too_short(self, rng):
        taps = derive(Wavelet.from_name("db4"), 1).low
        with pytest.raises(InvalidArgumentError):
            convolve_with_history_soa(np.zeros(2), 2, np.zeros(10), 1, 10, taps)

    def test_multi_level_does_not_modify_input(self):
        stack = generate_signal_batch(4, 64)
        soa = to_soa(stack)
        before = soa.copy()
        filter_sets = [derive(Wavelet.from_name("db2"), j) for j in (1, 2, 3)]
        details, approx = batch_multi_level_soa(soa, 4, 64, filter_sets)
        np.testing.assert_array_equal(soa, before)
        assert len(details) == 3 and approx.size == 4 * 64

    def test_inverse_soa_rejects_symmetric(self):
        fs = [derive(Wavelet.from_name("haar"), 1, FilterKind.SYNTHESIS)]
        with pytest.raises(InvalidArgumentError):
            batch_inverse_soa(np.zeros(8), [np.zeros(8)], 2, 4, fs, BoundaryMode.SYMMETRIC)

    def test_scratch_is_thread_local(self):
        stack = generate_signal_batch(5, 96)
        fs = derive(Wavelet.from_name("db2"), 2)
        outputs = {}

        def worker(name):
            clear_scratch()
            outputs[name] = batch_modwt_soa(to_soa(stack), 5, 96, fs.low, fs.high, vector_width=2)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for i in range(1, 4):
            np.testing.assert_array_equal(outputs[i][0], outputs[0][0])
            np.testing.assert_array_equal(outputs[i][1], outputs[0][1])


class TestBatchMODWT:
    @pytest.mark.parametrize("mode", ALL_MODES)
    @pytest.mark.parametrize("batch_size,width", [(1, 8), (5, 4), (8, 8), (11, 3)])
    def test_decompose_matches_sequential(self, sequential_engine, mode, batch_size, width):
        stack = generate_signal_batch(batch_size, 256, seed=3)
        with BatchMODWT(vector_width=width) as batch:
            results = batch.decompose(stack, "db4", mode, 4)
        assert len(results) == batch_size
        for b, result in enumerate(results):
            expected = sequential_engine.decompose(stack[b], "db4", mode, 4)
            assert result.allclose(expected, atol=1e-9)

    @pytest.mark.parametrize("wavelet", ["haar", "db2", "coif2", "bior3.5"])
    def test_periodic_round_trip(self, wavelet):
        stack = generate_signal_batch(6, 200)
        with BatchMODWT(vector_width=4) as batch:
            results = batch.decompose(stack, wavelet, BoundaryMode.PERIODIC, 3)
            reconstructed = batch.reconstruct(results, wavelet, BoundaryMode.PERIODIC)
        assert reconstructed.shape == stack.shape
        assert np.max(np.abs(reconstructed - stack)) < 1e-9

    @pytest.mark.parametrize("mode", [BoundaryMode.SYMMETRIC, BoundaryMode.ZERO_PADDING])
    def test_reconstruct_matches_sequential(self, sequential_engine, mode):
        stack = generate_signal_batch(3, 256)
        with BatchMODWT() as batch:
            results = batch.decompose(stack, "sym4", mode, 3)
            reconstructed = batch.reconstruct(results, "sym4", mode)
        for b in range(3):
            expected = sequential_engine.reconstruct(results[b], "sym4", mode)
            np.testing.assert_allclose(reconstructed[b], expected, atol=1e-9)

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_single_level(self, sequential_engine, mode):
        stack = generate_signal_batch(4, 100)
        with BatchMODWT(vector_width=3) as batch:
            approx, detail = batch.single_level(stack, "db2", mode)
        for b in range(4):
            expected = sequential_engine.decompose(stack[b], "db2", mode, 1)
            np.testing.assert_allclose(approx[b], expected.approximation, atol=1e-9)
            np.testing.assert_allclose(detail[b], expected.detail(1), atol=1e-9)

    def test_accepts_list_of_arrays(self):
        signals = [np.arange(16.0), np.ones(16)]
        with BatchMODWT() as batch:
            results = batch.decompose(signals, "haar", BoundaryMode.PERIODIC, 2)
        assert [r.signal_length for r in results] == [16, 16]

    def test_unequal_lengths(self):
        with BatchMODWT() as batch:
            with pytest.raises(InvalidSignalError):
                batch.decompose([np.ones(16), np.ones(15)], "haar")

    def test_empty_batch(self):
        with BatchMODWT() as batch:
            with pytest.raises(InvalidSignalError):
                batch.decompose([], "haar")

    def test_non_finite_member(self):
        signals = [np.ones(16), np.ones(16)]
        signals[1][3] = np.nan
        with BatchMODWT() as batch:
            with pytest.raises(InvalidSignalError, match=r"signals\[1\]"):
                batch.decompose(signals, "haar")

    def test_reconstruct_mismatched_results(self):
        with BatchMODWT() as batch:
            a = batch.decompose([np.ones(32)], "haar", BoundaryMode.PERIODIC, 2)
            b = batch.decompose([np.ones(32)], "haar", BoundaryMode.PERIODIC, 3)
            with pytest.raises(InvalidArgumentError):
                batch.reconstruct(a + b, "haar")

    def test_constant_mode(self):
        with BatchMODWT() as batch:
            with pytest.raises(InvalidArgumentError):
                batch.decompose([np.ones(32)], "haar", BoundaryMode.CONSTANT)

    def test_invalid_width(self):
        with pytest.raises(InvalidArgumentError):
            BatchMODWT(vector_width=0)

    def test_closed(self):
        batch = BatchMODWT()
        batch.close()
        with pytest.raises(InvalidStateError):
            batch.decompose([np.ones(32)], "haar")
