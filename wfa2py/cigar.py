"""Helpers for the engine's CIGAR operation strings.

The engine writes one byte per aligned column:

    M  match      (consumes pattern and text)
    X  mismatch   (consumes pattern and text)
    D  deletion   (consumes pattern only)
    I  insertion  (consumes text only)

Functions accept any bytes-like object (including ``str``) and work on a
``uint8`` NumPy view of it.

Example:
    >>> compress(b"MMMXMMMMDMM")
    b'3M1X4M1D2M'
    >>> consumed_lengths(b"MMMXMMMMDMM")
    (11, 10)
"""

from __future__ import annotations

import re
from typing import Dict, Tuple

import numpy as np

from wfa2py import constants
from wfa2py.errors import ValidationError

OPERATIONS = b"MXID"

_RLE_TOKEN = re.compile(rb"(\d+)([MXID])")


def _as_bytes(data) -> bytes:
    if isinstance(data, str):
        return data.encode("ascii")
    return bytes(data)


def _as_array(ops) -> np.ndarray:
    array = np.frombuffer(_as_bytes(ops), dtype=np.uint8)
    if array.size:
        unknown = ~np.isin(array, np.frombuffer(OPERATIONS, dtype=np.uint8))
        if unknown.any():
            bad = bytes(array[unknown][:1]).decode("latin-1")
            raise ValidationError("cigar", bad, "operations from 'MXID'")
    return array


def _runs(array: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Return (run_starts, run_lengths) of identical consecutive bytes."""
    boundaries = np.flatnonzero(np.diff(array)) + 1
    starts = np.concatenate(([0], boundaries))
    lengths = np.diff(np.concatenate((starts, [array.size])))
    return starts, lengths


def compress(ops) -> bytes:
    """Run-length encode an operation string (``b"MMX"`` -> ``b"2M1X"``)."""
    array = _as_array(ops)
    if array.size == 0:
        return b""
    starts, lengths = _runs(array)
    return b"".join(
        b"%d%c" % (int(length), int(array[start])) for start, length in zip(starts, lengths)
    )


def expand(rle) -> bytes:
    """Inverse of :func:`compress`.

    Raises:
        ValidationError: If ``rle`` is not a sequence of ``<count><op>`` tokens
    """
    if isinstance(rle, str):
        rle = rle.encode("ascii")
    rle = bytes(rle)
    parts = []
    position = 0
    for token in _RLE_TOKEN.finditer(rle):
        if token.start() != position:
            break
        count = int(token.group(1))
        if count == 0:
            raise ValidationError("cigar", rle.decode("latin-1"), "run lengths > 0")
        parts.append(token.group(2) * count)
        position = token.end()
    if position != len(rle):
        raise ValidationError(
            "cigar", rle.decode("latin-1"), "run-length tokens like '3M1X2D'"
        )
    return b"".join(parts)


def operation_counts(ops) -> Dict[str, int]:
    """Count each operation type."""
    array = _as_array(ops)
    counts = np.bincount(array, minlength=256)
    return {chr(op): int(counts[op]) for op in OPERATIONS}


def consumed_lengths(ops) -> Tuple[int, int]:
    """Return how many (pattern, text) characters the operations consume."""
    counts = operation_counts(ops)
    aligned = counts["M"] + counts["X"]
    return aligned + counts["D"], aligned + counts["I"]


def check_alignment(ops, pattern, text) -> bool:
    """Verify that ``ops`` is a valid end-to-end alignment of the two sequences.

    Every ``M`` must pair equal characters, every ``X`` different ones, and
    the operations must consume both sequences completely.
    """
    array = _as_array(ops)
    pattern = np.frombuffer(_as_bytes(pattern), dtype=np.uint8)
    text = np.frombuffer(_as_bytes(text), dtype=np.uint8)
    if consumed_lengths(ops) != (pattern.size, text.size):
        return False

    consumes_pattern = (array != constants.OP_INSERTION).astype(np.int64)
    consumes_text = (array != constants.OP_DELETION).astype(np.int64)
    # Position of each operation in the sequences, before it is applied
    v = np.cumsum(consumes_pattern) - consumes_pattern
    h = np.cumsum(consumes_text) - consumes_text

    diagonal = (array == constants.OP_MATCH) | (array == constants.OP_MISMATCH)
    equal = pattern[v[diagonal]] == text[h[diagonal]]
    expected = array[diagonal] == constants.OP_MATCH
    return bool(np.array_equal(equal, expected))


def diagonal_range(ops) -> Tuple[int, int]:
    """Return the lowest and highest diagonal ``k = h - v`` the path visits.

    The path starts on diagonal 0; ``I`` moves it up by one, ``D`` down by
    one and ``M``/``X`` keep it.
    """
    array = _as_array(ops)
    steps = (array == constants.OP_INSERTION).astype(np.int64) - (
        array == constants.OP_DELETION
    ).astype(np.int64)
    diagonals = np.concatenate(([0], np.cumsum(steps)))
    return int(diagonals.min()), int(diagonals.max())


def cigar_cost(ops, model) -> int:
    """Recompute the penalty of an operation string under a penalty model."""
    array = _as_array(ops)
    counts = operation_counts(ops)
    cost = counts["M"] * model.match + counts["X"] * model.mismatch
    if array.size == 0:
        return cost
    starts, lengths = _runs(array)
    gaps = np.isin(array[starts], (constants.OP_INSERTION, constants.OP_DELETION))
    for length in lengths[gaps]:
        cost += model.gap_cost(int(length))
    return int(cost)


__all__ = [
    "OPERATIONS",
    "compress",
    "expand",
    "operation_counts",
    "consumed_lengths",
    "check_alignment",
    "diagonal_range",
    "cigar_cost",
]
