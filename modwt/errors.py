# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Error kinds raised by the MODWT engines.

All errors are raised synchronously at the call site and are not retried by
the engines. The argument and signal errors are also ``ValueError`` and the
state error is also a ``RuntimeError``, so callers catching the builtin kinds
keep working.
"""


class WaveletError(Exception):
    """Base class for all errors raised by this package."""


class InvalidArgumentError(WaveletError, ValueError):
    """Bad level count, missing wavelet or boundary mode, unsupported mode."""


class InvalidSignalError(WaveletError, ValueError):
    """Signal is None, empty, not one-dimensional or contains non-finite values."""


class InvalidStateError(WaveletError, RuntimeError):
    """Operation attempted on a disposed engine or in an invalid stream state."""
