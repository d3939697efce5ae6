"""Alignment context: sole owner of one native wavefront aligner.

Lifecycle::

    construct ──> Ready ──align──> Aligned ──align──> Aligned ...
                    │                 │
                    └──── close ──────┴──> Destroyed

* Construction is atomic: either a fully configured context is returned or
  the native handle is released before the error propagates.
* ``set_heuristic`` / ``set_alignment_span`` reconfigure the handle for the
  next ``align`` and leave the current result readable.
* ``align`` starts a new result generation before calling the engine, which
  invalidates every :class:`~wfa2py.results.AlignmentView` issued earlier.
* ``close`` releases the handle exactly once; it also runs from the garbage
  collector through the cffi destructor when a context is dropped unclosed.

A context is not reentrant. Overlapping mutations from several threads raise
:class:`~wfa2py.errors.ContextBusyError`; distinct contexts share nothing and
may align concurrently (cffi releases the GIL around native calls).
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import List, Optional

from wfa2py import _native
from wfa2py.config import DEFAULT_CONFIG, AlignerConfig
from wfa2py.errors import (
    AllocationError,
    ContextBusyError,
    ContextClosedError,
    NoResultError,
    ValidationError,
)
from wfa2py.heuristics import HeuristicStrategy, check_strategy, heuristics_from_native
from wfa2py.penalties import (
    DEFAULT_PENALTIES,
    Edit,
    GapAffine,
    GapAffine2p,
    PenaltyModel,
    apply_penalties,
    penalties_from_native,
)
from wfa2py.results import AlignmentView
from wfa2py.types import (
    AlignmentScope,
    AlignmentSpan,
    AlignmentStatus,
    EndsFree,
    EndToEnd,
    MemoryMode,
    span_from_native,
)

LOGGER = logging.getLogger(__name__)

_MAX_SEQUENCE_LENGTH = 2**31 - 1


def _as_sequence(name: str, value) -> bytes:
    """Convert an input sequence to bytes, rejecting empty or non-ASCII input."""
    if isinstance(value, str):
        try:
            value = value.encode("ascii")
        except UnicodeEncodeError:
            raise ValidationError(name, value, "ASCII sequence") from None
    elif isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value)
    else:
        raise ValidationError(name, type(value).__name__, "bytes-like object or str")

    if not value:
        raise ValidationError(name, value, "non-empty sequence")
    if len(value) > _MAX_SEQUENCE_LENGTH:
        raise ValidationError(name, f"<{len(value)} characters>", "at most 2**31 - 1 characters")
    return value


class AlignmentContext:
    """Owns an opaque WFA2 aligner configured with fixed penalties.

    Args:
        penalties: Penalty model bound for the lifetime of the context
            (default: ``GapAffine(mismatch=4, gap_open=6, gap_extend=2)``)
        heuristic: Initial heuristic strategy (default: none)
        config: Scope, span, memory mode and limits (default: AlignerConfig())

    Raises:
        ValidationError: If any argument is invalid (nothing is allocated)
        NativeLibraryError: If the compiled engine cannot be loaded
        AllocationError: If the engine cannot allocate the aligner

    Examples:
        >>> with AlignmentContext.default() as ctx:
        ...     status = ctx.align(b"TCTTTACTCGCGCGTTGGAGAAATACAATAGT",
        ...                        b"TCTATACTGCGCGTTTGGAGAAATAAAATAGT")
        ...     print(status.name, ctx.score(), ctx.cigar())
        COMPLETED 24 b'MMMXMMMMDMMMMMMMIMMMMMMMMMXMMMMMM'
    """

    def __init__(
        self,
        penalties: Optional[PenaltyModel] = None,
        heuristic: Optional[HeuristicStrategy] = None,
        config: Optional[AlignerConfig] = None,
    ):
        if penalties is None:
            penalties = DEFAULT_PENALTIES
        if not isinstance(penalties, (Edit, GapAffine, GapAffine2p)):
            raise ValidationError("penalties", penalties, "Edit, GapAffine or GapAffine2p")
        heuristic = check_strategy(heuristic)
        if config is None:
            config = DEFAULT_CONFIG
        if not isinstance(config, AlignerConfig):
            raise ValidationError("config", config, "AlignerConfig")

        self._aligner = None
        self._penalties = penalties
        self._heuristic = heuristic
        self._config = config
        self._generation = 0
        self._status: Optional[AlignmentStatus] = None
        self._lock = threading.Lock()
        self._engine = _native.engine()

        ffi, lib = self._engine
        attributes = ffi.new("wavefront_aligner_attr_t *")
        attributes[0] = lib.wavefront_aligner_attr_default
        apply_penalties(lib, attributes, penalties)
        config.apply_attributes(lib, attributes)

        handle = lib.wavefront_aligner_new(attributes)
        if handle == ffi.NULL:
            raise AllocationError(context=f"penalties={penalties!r}")
        self._aligner = ffi.gc(handle, lib.wavefront_aligner_delete)

        try:
            heuristic.apply(lib, self._aligner)
            config.apply_limits(lib, self._aligner)
        except BaseException:
            self._release()
            raise
        LOGGER.debug("Allocated aligner with %r, %r", penalties, heuristic)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def default(cls, *, heuristic=None, config=None) -> "AlignmentContext":
        """Context with the engine's default gap-affine penalties."""
        return cls(DEFAULT_PENALTIES, heuristic=heuristic, config=config)

    @classmethod
    def with_penalties_affine(
        cls,
        mismatch: int,
        gap_open: int,
        gap_extend: int,
        *,
        match: int = 0,
        heuristic=None,
        config=None,
    ) -> "AlignmentContext":
        """Context with single-curve gap-affine penalties."""
        penalties = GapAffine(
            mismatch=mismatch, gap_open=gap_open, gap_extend=gap_extend, match=match
        )
        return cls(penalties, heuristic=heuristic, config=config)

    @classmethod
    def with_penalties_affine2p(
        cls,
        mismatch: int,
        gap_open1: int,
        gap_extend1: int,
        gap_open2: int,
        gap_extend2: int,
        *,
        match: int = 0,
        heuristic=None,
        config=None,
    ) -> "AlignmentContext":
        """Context with dual-cost gap-affine penalties."""
        penalties = GapAffine2p(
            mismatch=mismatch,
            gap_open1=gap_open1,
            gap_extend1=gap_extend1,
            gap_open2=gap_open2,
            gap_extend2=gap_extend2,
            match=match,
        )
        return cls(penalties, heuristic=heuristic, config=config)

    @classmethod
    def with_penalties_edit(cls, *, heuristic=None, config=None) -> "AlignmentContext":
        """Context computing edit distance."""
        return cls(Edit(), heuristic=heuristic, config=config)

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    @contextmanager
    def _exclusive(self, operation: str):
        if not self._lock.acquire(blocking=False):
            raise ContextBusyError(operation)
        try:
            if self._aligner is None:
                raise ContextClosedError(operation)
            yield self._aligner
        finally:
            self._lock.release()

    def _handle(self, operation: str):
        aligner = self._aligner
        if aligner is None:
            raise ContextClosedError(operation)
        return aligner

    def _release(self) -> None:
        aligner, self._aligner = self._aligner, None
        self._generation += 1
        self._status = None
        self._engine.ffi.release(aligner)
        LOGGER.debug("Released aligner")

    def close(self) -> None:
        """Release the native aligner. Calling it again is a no-op."""
        if not self._lock.acquire(blocking=False):
            raise ContextBusyError("close the context")
        try:
            if self._aligner is not None:
                self._release()
        finally:
            self._lock.release()

    @property
    def closed(self) -> bool:
        return self._aligner is None

    def __enter__(self) -> "AlignmentContext":
        self._handle("enter the context")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def penalties(self) -> PenaltyModel:
        """Penalty model bound at construction."""
        return self._penalties

    @property
    def heuristic(self) -> HeuristicStrategy:
        """Strategy most recently set on this context."""
        return self._heuristic

    @property
    def config(self) -> AlignerConfig:
        return self._config

    def set_heuristic(self, strategy: Optional[HeuristicStrategy]) -> None:
        """Replace the active heuristic for subsequent alignments.

        ``None`` disables heuristics. The current result stays readable.
        """
        strategy = check_strategy(strategy)
        with self._exclusive("set the heuristic") as aligner:
            strategy.apply(self._engine.lib, aligner)
            self._heuristic = strategy
        LOGGER.debug("Heuristic set to %r", strategy)

    def set_alignment_span(self, span: AlignmentSpan) -> None:
        """Switch between end-to-end and ends-free alignment."""
        if not isinstance(span, (EndToEnd, EndsFree)):
            raise ValidationError("span", span, "EndToEnd or EndsFree")
        lib = self._engine.lib
        with self._exclusive("set the alignment span") as aligner:
            if isinstance(span, EndsFree):
                lib.wavefront_aligner_set_alignment_free_ends(
                    aligner,
                    span.pattern_begin_free,
                    span.pattern_end_free,
                    span.text_begin_free,
                    span.text_end_free,
                )
            else:
                lib.wavefront_aligner_set_alignment_end_to_end(aligner)
        LOGGER.debug("Alignment span set to %r", span)

    def native_penalties(self) -> PenaltyModel:
        """Penalties as stored in the native aligner."""
        aligner = self._handle("read the penalties")
        return penalties_from_native(self._engine.lib, aligner.penalties)

    def native_heuristics(self) -> List[HeuristicStrategy]:
        """Heuristics as stored in the native aligner."""
        aligner = self._handle("read the heuristics")
        return heuristics_from_native(self._engine.lib, aligner.heuristic)

    @property
    def alignment_scope(self) -> AlignmentScope:
        aligner = self._handle("read the alignment scope")
        return AlignmentScope.from_native(self._engine.lib, aligner.alignment_scope)

    @property
    def alignment_span(self) -> AlignmentSpan:
        aligner = self._handle("read the alignment span")
        return span_from_native(self._engine.lib, aligner.alignment_form)

    @property
    def memory_mode(self) -> MemoryMode:
        aligner = self._handle("read the memory mode")
        return MemoryMode.from_native(self._engine.lib, aligner.memory_mode)

    def aligner_size(self) -> int:
        """Bytes currently held by the native aligner."""
        aligner = self._handle("measure the aligner")
        return int(self._engine.lib.wavefront_aligner_get_size(aligner))

    def reap(self) -> None:
        """Return the buffers the engine grew during earlier alignments.

        Invalidates the current result.
        """
        with self._exclusive("reap the aligner") as aligner:
            self._generation += 1
            self._status = None
            self._engine.lib.wavefront_aligner_reap(aligner)
        LOGGER.debug("Reaped aligner buffers")

    # ------------------------------------------------------------------
    # Alignment
    # ------------------------------------------------------------------

    def align(self, pattern, text) -> AlignmentStatus:
        """Align ``pattern`` (query) against ``text`` (reference).

        Args:
            pattern: Query sequence (bytes-like or ASCII str, non-empty)
            text: Reference sequence (bytes-like or ASCII str, non-empty)

        Returns:
            AlignmentStatus; score and CIGAR are readable only if ``status.ok``

        Raises:
            ValidationError: If a sequence is empty or not ASCII
            ContextClosedError: If the context was closed
            ContextBusyError: If another thread is using the context
        """
        with self._exclusive("align") as aligner:
            pattern = _as_sequence("pattern", pattern)
            text = _as_sequence("text", text)
            self._generation += 1
            self._status = None
            code = self._engine.lib.wavefront_align(
                aligner, pattern, len(pattern), text, len(text)
            )
            status = AlignmentStatus.from_code(code)
            self._status = status
        LOGGER.debug(
            "Aligned pattern (%d) against text (%d): %s",
            len(pattern),
            len(text),
            status.name,
        )
        return status

    @property
    def status(self) -> Optional[AlignmentStatus]:
        """Status of the current result, or None if there is none."""
        return self._status

    @property
    def generation(self) -> int:
        """Counter bumped by every align, reap and close."""
        return self._generation

    def _result_cigar(self, operation: str):
        aligner = self._handle(operation)
        if self._lock.locked():
            raise ContextBusyError(operation)
        status = self._status
        if status is None:
            raise NoResultError("no alignment has been run since construction or the last reap")
        if not status.ok:
            raise NoResultError(f"last alignment returned {status.name}")
        return aligner.cigar

    def score(self) -> int:
        """Cost of the current alignment under the bound penalties.

        The engine stores the score as a negated penalty; the binding returns
        the penalty itself, which is non-negative whenever ``match == 0``.
        """
        cigar = self._result_cigar("read the score")
        return -int(cigar.score)

    def cigar(self) -> bytes:
        """Copy of the current alignment's operations (``M``, ``X``, ``I``, ``D``).

        Empty when the context computes the score only.
        """
        ffi = self._engine.ffi
        cigar = self._result_cigar("read the CIGAR")
        length = cigar.end_offset - cigar.begin_offset
        if length <= 0 or cigar.operations == ffi.NULL:
            return b""
        return ffi.unpack(cigar.operations + cigar.begin_offset, length)

    def result(self) -> AlignmentView:
        """Borrowed view of the current result, valid until the next align."""
        self._result_cigar("take a result view")
        return AlignmentView(self, self._generation, self._status)

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"generation={self._generation}"
        return f"<AlignmentContext {self._penalties!r} {self._heuristic!r} {state}>"


__all__ = ["AlignmentContext"]
