"""Penalty models for wavefront alignment.

Three closed variants are recognised by the engine:

* :class:`Edit` - unit-cost edit distance
* :class:`GapAffine` - mismatch plus one affine gap curve
* :class:`GapAffine2p` - mismatch plus two affine gap curves; the engine keeps
  both and charges each gap with the cheaper one, which favours short gaps
  under the first curve and long gaps under the second

Gap costs follow the engine's convention ``gap_open + gap_extend * length``.
``match`` is a score bonus and must be zero or negative.

Example:
    >>> model = GapAffine(mismatch=4, gap_open=6, gap_extend=2)
    >>> model.gap_cost(3)
    12
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from wfa2py import constants
from wfa2py.errors import ValidationError


def _check_cost(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(name, value, "integer")
    if value < 0:
        raise ValidationError(name, value, "integer >= 0")


def _check_match(value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("match", value, "integer")
    if value > 0:
        raise ValidationError("match", value, "integer <= 0 (match is a bonus)")


@dataclass(frozen=True)
class Edit:
    """Edit (Levenshtein) distance: every mismatch, insertion and deletion costs 1."""

    match: ClassVar[int] = 0
    mismatch: ClassVar[int] = 1

    def gap_cost(self, length: int) -> int:
        return max(length, 0)


@dataclass(frozen=True)
class GapAffine:
    """Single-curve gap-affine penalties."""

    mismatch: int = constants.DEFAULT_MISMATCH
    gap_open: int = constants.DEFAULT_GAP_OPEN
    gap_extend: int = constants.DEFAULT_GAP_EXTEND
    match: int = constants.DEFAULT_MATCH

    def __post_init__(self):
        _check_match(self.match)
        _check_cost("mismatch", self.mismatch)
        _check_cost("gap_open", self.gap_open)
        _check_cost("gap_extend", self.gap_extend)

    def gap_cost(self, length: int) -> int:
        if length <= 0:
            return 0
        return self.gap_open + self.gap_extend * length


@dataclass(frozen=True)
class GapAffine2p:
    """Dual-cost (two-piece) gap-affine penalties."""

    mismatch: int
    gap_open1: int
    gap_extend1: int
    gap_open2: int
    gap_extend2: int
    match: int = constants.DEFAULT_MATCH

    def __post_init__(self):
        _check_match(self.match)
        _check_cost("mismatch", self.mismatch)
        _check_cost("gap_open1", self.gap_open1)
        _check_cost("gap_extend1", self.gap_extend1)
        _check_cost("gap_open2", self.gap_open2)
        _check_cost("gap_extend2", self.gap_extend2)

    def gap_cost(self, length: int) -> int:
        if length <= 0:
            return 0
        return min(
            self.gap_open1 + self.gap_extend1 * length,
            self.gap_open2 + self.gap_extend2 * length,
        )


PenaltyModel = Edit | GapAffine | GapAffine2p

DEFAULT_PENALTIES = GapAffine()


def apply_penalties(lib, attributes, model: PenaltyModel) -> None:
    """Write ``model`` into a ``wavefront_aligner_attr_t``.

    Sets the distance metric and the penalties block the engine reads for it.
    """
    if isinstance(model, Edit):
        attributes.distance_metric = lib.edit
    elif isinstance(model, GapAffine):
        attributes.distance_metric = lib.gap_affine
        block = attributes.affine_penalties
        block.match = model.match
        block.mismatch = model.mismatch
        block.gap_opening = model.gap_open
        block.gap_extension = model.gap_extend
    elif isinstance(model, GapAffine2p):
        attributes.distance_metric = lib.gap_affine_2p
        block = attributes.affine2p_penalties
        block.match = model.match
        block.mismatch = model.mismatch
        block.gap_opening1 = model.gap_open1
        block.gap_extension1 = model.gap_extend1
        block.gap_opening2 = model.gap_open2
        block.gap_extension2 = model.gap_extend2
    else:
        raise ValidationError(
            "penalties", model, "Edit, GapAffine or GapAffine2p"
        )


def penalties_from_native(lib, native) -> PenaltyModel:
    """Decode the engine's ``wavefront_penalties_t`` back into a model.

    Raises:
        ValueError: If the engine uses a metric this binding does not expose
    """
    metric = native.distance_metric
    if metric == lib.edit:
        return Edit()
    if metric == lib.gap_affine:
        return GapAffine(
            mismatch=native.mismatch,
            gap_open=native.gap_opening1,
            gap_extend=native.gap_extension1,
            match=native.match,
        )
    if metric == lib.gap_affine_2p:
        return GapAffine2p(
            mismatch=native.mismatch,
            gap_open1=native.gap_opening1,
            gap_extend1=native.gap_extension1,
            gap_open2=native.gap_opening2,
            gap_extend2=native.gap_extension2,
            match=native.match,
        )
    raise ValueError(f"Unsupported native distance metric {metric}")


__all__ = [
    "Edit",
    "GapAffine",
    "GapAffine2p",
    "PenaltyModel",
    "DEFAULT_PENALTIES",
    "apply_penalties",
    "penalties_from_native",
]
