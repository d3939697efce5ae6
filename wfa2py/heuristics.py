"""Heuristic strategies for pruning the wavefront search.

The engine recognises a fixed set of strategies, modelled here as frozen
dataclasses. Parameters are validated when the strategy is built, so an
invalid band or drop never reaches the native handle.

The engine keeps active strategies as a bitmask and its setters add to it;
every strategy clears the mask first so that applying one replaces the last.

Diagonals follow the engine's convention ``k = text_position - pattern_position``:
a deletion moves the path one diagonal down, an insertion one diagonal up.

Example:
    >>> ctx.set_heuristic(BandedStatic(band_min_k=-10, band_max_k=10))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from wfa2py.errors import ValidationError


def _check_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(name, value, "integer")


def _check_non_negative(name: str, value) -> None:
    _check_int(name, value)
    if value < 0:
        raise ValidationError(name, value, "integer >= 0")


def _check_steps(value) -> None:
    _check_int("score_steps", value)
    if value <= 0:
        raise ValidationError("score_steps", value, "integer > 0")


def _check_band(band_min_k, band_max_k) -> None:
    _check_int("band_min_k", band_min_k)
    _check_int("band_max_k", band_max_k)
    if band_min_k > band_max_k:
        raise ValidationError(
            "band_min_k",
            band_min_k,
            f"band_min_k <= band_max_k ({band_max_k})",
        )


@dataclass(frozen=True)
class NoHeuristic:
    """Exhaustive wavefront exploration."""

    def apply(self, lib, aligner) -> None:
        lib.wavefront_aligner_set_heuristic_none(aligner)


@dataclass(frozen=True)
class BandedStatic:
    """Only explore diagonals ``band_min_k..band_max_k``."""

    band_min_k: int
    band_max_k: int

    def __post_init__(self):
        _check_band(self.band_min_k, self.band_max_k)

    def apply(self, lib, aligner) -> None:
        lib.wavefront_aligner_set_heuristic_none(aligner)
        lib.wavefront_aligner_set_heuristic_banded_static(
            aligner, self.band_min_k, self.band_max_k
        )


@dataclass(frozen=True)
class BandedAdaptive:
    """Band of fixed width that follows the furthest-reaching diagonal."""

    band_min_k: int
    band_max_k: int
    score_steps: int

    def __post_init__(self):
        _check_band(self.band_min_k, self.band_max_k)
        _check_steps(self.score_steps)

    def apply(self, lib, aligner) -> None:
        lib.wavefront_aligner_set_heuristic_none(aligner)
        lib.wavefront_aligner_set_heuristic_banded_adaptive(
            aligner, self.band_min_k, self.band_max_k, self.score_steps
        )


@dataclass(frozen=True)
class WFAdaptive:
    """Drop diagonals lagging ``max_distance_threshold`` behind the best one
    once the wavefront is at least ``min_wavefront_length`` wide.
    """

    min_wavefront_length: int
    max_distance_threshold: int
    score_steps: int

    def __post_init__(self):
        _check_non_negative("min_wavefront_length", self.min_wavefront_length)
        _check_non_negative("max_distance_threshold", self.max_distance_threshold)
        _check_steps(self.score_steps)

    def apply(self, lib, aligner) -> None:
        lib.wavefront_aligner_set_heuristic_none(aligner)
        lib.wavefront_aligner_set_heuristic_wfadaptive(
            aligner,
            self.min_wavefront_length,
            self.max_distance_threshold,
            self.score_steps,
        )


@dataclass(frozen=True)
class WFMash:
    """WF-adaptive variant tuned for long-read mapping."""

    min_wavefront_length: int
    max_distance_threshold: int
    score_steps: int

    def __post_init__(self):
        _check_non_negative("min_wavefront_length", self.min_wavefront_length)
        _check_non_negative("max_distance_threshold", self.max_distance_threshold)
        _check_steps(self.score_steps)

    def apply(self, lib, aligner) -> None:
        lib.wavefront_aligner_set_heuristic_none(aligner)
        lib.wavefront_aligner_set_heuristic_wfmash(
            aligner,
            self.min_wavefront_length,
            self.max_distance_threshold,
            self.score_steps,
        )


@dataclass(frozen=True)
class XDrop:
    """Stop extending once the score drops ``xdrop`` below the best seen."""

    xdrop: int
    score_steps: int

    def __post_init__(self):
        _check_non_negative("xdrop", self.xdrop)
        _check_steps(self.score_steps)

    def apply(self, lib, aligner) -> None:
        lib.wavefront_aligner_set_heuristic_none(aligner)
        lib.wavefront_aligner_set_heuristic_xdrop(aligner, self.xdrop, self.score_steps)


@dataclass(frozen=True)
class ZDrop:
    """Like :class:`XDrop`, but the drop is corrected for the diagonal gap."""

    zdrop: int
    score_steps: int

    def __post_init__(self):
        _check_non_negative("zdrop", self.zdrop)
        _check_steps(self.score_steps)

    def apply(self, lib, aligner) -> None:
        lib.wavefront_aligner_set_heuristic_none(aligner)
        lib.wavefront_aligner_set_heuristic_zdrop(aligner, self.zdrop, self.score_steps)


HeuristicStrategy = (
    NoHeuristic | BandedStatic | BandedAdaptive | WFAdaptive | WFMash | XDrop | ZDrop
)

_STRATEGY_TYPES = (
    NoHeuristic,
    BandedStatic,
    BandedAdaptive,
    WFAdaptive,
    WFMash,
    XDrop,
    ZDrop,
)


def check_strategy(strategy) -> HeuristicStrategy:
    """Return ``strategy`` (``None`` becomes :class:`NoHeuristic`) or raise."""
    if strategy is None:
        return NoHeuristic()
    if not isinstance(strategy, _STRATEGY_TYPES):
        raise ValidationError(
            "heuristic",
            strategy,
            "one of " + ", ".join(t.__name__ for t in _STRATEGY_TYPES),
        )
    return strategy


def apply_heuristic(lib, aligner, strategy: HeuristicStrategy) -> None:
    """Replace the heuristic active on a native aligner."""
    check_strategy(strategy).apply(lib, aligner)


def heuristics_from_native(lib, native) -> List[HeuristicStrategy]:
    """Decode a ``wavefront_heuristic_t`` into its active strategies.

    The engine stores strategies as a bitmask; an empty mask decodes to
    ``[NoHeuristic()]``.
    """
    mask = native.strategy
    steps = native.steps_between_cutoffs
    active: List[HeuristicStrategy] = []

    if mask & lib.wf_heuristic_zdrop:
        active.append(ZDrop(zdrop=native.zdrop, score_steps=steps))
    if mask & lib.wf_heuristic_xdrop:
        active.append(XDrop(xdrop=native.xdrop, score_steps=steps))
    if mask & lib.wf_heuristic_banded_adaptive:
        active.append(
            BandedAdaptive(
                band_min_k=native.min_k, band_max_k=native.max_k, score_steps=steps
            )
        )
    if mask & lib.wf_heuristic_banded_static:
        active.append(BandedStatic(band_min_k=native.min_k, band_max_k=native.max_k))
    if mask & lib.wf_heuristic_wfadaptive:
        active.append(
            WFAdaptive(
                min_wavefront_length=native.min_wavefront_length,
                max_distance_threshold=native.max_distance_threshold,
                score_steps=steps,
            )
        )
    if mask & lib.wf_heuristic_wfmash:
        active.append(
            WFMash(
                min_wavefront_length=native.min_wavefront_length,
                max_distance_threshold=native.max_distance_threshold,
                score_steps=steps,
            )
        )

    if not active:
        active.append(NoHeuristic())
    return active


__all__ = [
    "NoHeuristic",
    "BandedStatic",
    "BandedAdaptive",
    "WFAdaptive",
    "WFMash",
    "XDrop",
    "ZDrop",
    "HeuristicStrategy",
    "check_strategy",
    "apply_heuristic",
    "heuristics_from_native",
]
