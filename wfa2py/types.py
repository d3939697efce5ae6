"""Status codes and engine modes shared across the binding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum

from wfa2py import constants
from wfa2py.errors import ValidationError

LOGGER = logging.getLogger(__name__)


class AlignmentStatus(IntEnum):
    """Outcome of ``AlignmentContext.align``.

    The values are the engine's return codes, except ``UNDEFINED`` which
    stands for any code the binding does not know.
    """

    COMPLETED = constants.STATUS_COMPLETED
    PARTIAL = constants.STATUS_PARTIAL
    MAX_STEPS_REACHED = constants.STATUS_MAX_STEPS_REACHED
    OOM = constants.STATUS_OOM
    UNATTAINABLE = constants.STATUS_UNATTAINABLE
    UNDEFINED = -1

    @classmethod
    def from_code(cls, code: int) -> "AlignmentStatus":
        """Map a native return code, never raising for unknown codes."""
        try:
            status = cls(int(code))
        except ValueError:
            LOGGER.warning("Engine returned unknown status code %d", code)
            return cls.UNDEFINED
        if status is cls.UNDEFINED:
            LOGGER.warning("Engine returned unknown status code %d", code)
        return status

    @property
    def ok(self) -> bool:
        """True when score and CIGAR can be read."""
        return self in (AlignmentStatus.COMPLETED, AlignmentStatus.PARTIAL)

    @property
    def infeasible(self) -> bool:
        """True when heuristics or limits pruned every path."""
        return self in (
            AlignmentStatus.UNATTAINABLE,
            AlignmentStatus.MAX_STEPS_REACHED,
        )

    @property
    def failed(self) -> bool:
        return not self.ok


class AlignmentScope(Enum):
    """What the engine computes: the score only or the full CIGAR."""

    SCORE = "compute_score"
    ALIGNMENT = "compute_alignment"

    def native(self, lib) -> int:
        return getattr(lib, self.value)

    @classmethod
    def from_native(cls, lib, value: int) -> "AlignmentScope":
        for scope in cls:
            if scope.native(lib) == value:
                return scope
        raise ValueError(f"Unknown alignment scope {value}")


class MemoryMode(Enum):
    """Wavefront memory strategy of the engine."""

    HIGH = "wavefront_memory_high"
    MEDIUM = "wavefront_memory_med"
    LOW = "wavefront_memory_low"
    ULTRALOW = "wavefront_memory_ultralow"

    def native(self, lib) -> int:
        return getattr(lib, self.value)

    @classmethod
    def from_native(cls, lib, value: int) -> "MemoryMode":
        for mode in cls:
            if mode.native(lib) == value:
                return mode
        raise ValueError(f"Unknown memory mode {value}")


@dataclass(frozen=True)
class EndToEnd:
    """Global alignment: both sequences are aligned end to end."""


@dataclass(frozen=True)
class EndsFree:
    """Ends-free alignment: up to the given number of leading or trailing
    characters of each sequence may be left unaligned at no cost.
    """

    pattern_begin_free: int = 0
    pattern_end_free: int = 0
    text_begin_free: int = 0
    text_end_free: int = 0

    def __post_init__(self):
        for name in (
            "pattern_begin_free",
            "pattern_end_free",
            "text_begin_free",
            "text_end_free",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(name, value, "integer >= 0")


AlignmentSpan = EndToEnd | EndsFree


def span_from_native(lib, form) -> AlignmentSpan:
    """Decode an ``alignment_form_t``."""
    if form.span == lib.alignment_endsfree:
        return EndsFree(
            pattern_begin_free=form.pattern_begin_free,
            pattern_end_free=form.pattern_end_free,
            text_begin_free=form.text_begin_free,
            text_end_free=form.text_end_free,
        )
    return EndToEnd()


__all__ = [
    "AlignmentStatus",
    "AlignmentScope",
    "MemoryMode",
    "EndToEnd",
    "EndsFree",
    "AlignmentSpan",
    "span_from_native",
]
