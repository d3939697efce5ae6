"""Pytest configuration and shared fixtures for wfa2py tests."""

import tempfile
from pathlib import Path

import pytest

from wfa2py import _native
from wfa2py.tests.utils import PATTERN, TEXT, FakeWavefrontLib


@pytest.fixture
def fake_lib(monkeypatch):
    """Route every new context to an in-process fake engine.

    Yields the fake ``lib`` so tests can inspect handles and calls.
    """
    lib = FakeWavefrontLib()
    monkeypatch.setattr(_native, "_ENGINE", lib.engine())
    yield lib


@pytest.fixture
def no_engine(monkeypatch):
    """Make the compiled engine unavailable."""

    def missing():
        raise ImportError("No module named 'wfa2py._wfa2'")

    monkeypatch.setattr(_native, "_ENGINE", None)
    monkeypatch.setattr(_native, "_load_extension", missing)


@pytest.fixture
def scenario_pair():
    """Pattern and text with two mismatches, a deletion and an insertion."""
    return PATTERN, TEXT


@pytest.fixture
def sequence_pairs():
    """Small (pattern, text) pairs with their gap-affine 4/6/2 costs."""
    return [
        (b"ACGT", b"ACGT", 0),
        (b"GATTACA", b"GATCACA", 4),
        (b"AAAA", b"AAAAAA", 10),
        (b"ACGTACGT", b"ACGACGT", 8),
        (PATTERN, TEXT, 24),
    ]


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs.

    Yields a temporary directory path that is automatically cleaned up.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
