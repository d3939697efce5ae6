"""Configuration dataclass for aligner construction.

Penalties and heuristics have their own types; this module gathers the
remaining engine attributes that are fixed when a context is created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from wfa2py.errors import ValidationError
from wfa2py.types import AlignmentScope, AlignmentSpan, EndsFree, EndToEnd, MemoryMode


def _check_optional_positive(name: str, value) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(name, value, "positive integer or None")


@dataclass(frozen=True)
class AlignerConfig:
    """Construction-time attributes of an alignment context.

    Attributes:
        scope: Compute the score only, or the score and the CIGAR.
        span: End-to-end or ends-free alignment.
        memory_mode: Wavefront memory strategy. High memory is the default;
            the ultralow (BiWFA) mode is known to misbehave with some
            heuristics.
        max_alignment_steps: Abort with MAX_STEPS_REACHED after this many
            score steps (None keeps the engine default).
        max_memory_resident: Memory buffered before the engine reaps.
        max_memory_abort: Memory use at which the engine aborts with OOM.
    """

    scope: AlignmentScope = AlignmentScope.ALIGNMENT
    span: AlignmentSpan = field(default_factory=EndToEnd)
    memory_mode: MemoryMode = MemoryMode.HIGH
    max_alignment_steps: Optional[int] = None
    max_memory_resident: Optional[int] = None
    max_memory_abort: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.scope, AlignmentScope):
            raise ValidationError("scope", self.scope, "AlignmentScope")
        if not isinstance(self.span, (EndToEnd, EndsFree)):
            raise ValidationError("span", self.span, "EndToEnd or EndsFree")
        if not isinstance(self.memory_mode, MemoryMode):
            raise ValidationError("memory_mode", self.memory_mode, "MemoryMode")
        _check_optional_positive("max_alignment_steps", self.max_alignment_steps)
        _check_optional_positive("max_memory_resident", self.max_memory_resident)
        _check_optional_positive("max_memory_abort", self.max_memory_abort)
        if (self.max_memory_resident is None) != (self.max_memory_abort is None):
            raise ValidationError(
                "max_memory_abort",
                self.max_memory_abort,
                "set together with max_memory_resident",
            )
        if (
            self.max_memory_abort is not None
            and self.max_memory_abort < self.max_memory_resident
        ):
            raise ValidationError(
                "max_memory_abort",
                self.max_memory_abort,
                f">= max_memory_resident ({self.max_memory_resident})",
            )

    def apply_attributes(self, lib, attributes) -> None:
        """Write scope, span and memory mode into ``wavefront_aligner_attr_t``."""
        attributes.alignment_scope = self.scope.native(lib)
        attributes.memory_mode = self.memory_mode.native(lib)
        form = attributes.alignment_form
        if isinstance(self.span, EndsFree):
            form.span = lib.alignment_endsfree
            form.pattern_begin_free = self.span.pattern_begin_free
            form.pattern_end_free = self.span.pattern_end_free
            form.text_begin_free = self.span.text_begin_free
            form.text_end_free = self.span.text_end_free
        else:
            form.span = lib.alignment_end2end
            form.pattern_begin_free = 0
            form.pattern_end_free = 0
            form.text_begin_free = 0
            form.text_end_free = 0

    def apply_limits(self, lib, aligner) -> None:
        """Apply step and memory limits to an allocated aligner."""
        if self.max_alignment_steps is not None:
            lib.wavefront_aligner_set_max_alignment_steps(
                aligner, self.max_alignment_steps
            )
        if self.max_memory_resident is not None:
            lib.wavefront_aligner_set_max_memory(
                aligner, self.max_memory_resident, self.max_memory_abort
            )


DEFAULT_CONFIG = AlignerConfig()

__all__ = ["AlignerConfig", "DEFAULT_CONFIG"]
