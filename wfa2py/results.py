"""Result views over engine-owned alignment memory.

The engine keeps the score and the CIGAR of the last alignment inside the
aligner handle and reuses those buffers on the next call. Two result types
expose them:

* :class:`AlignmentView` is borrowed. It reads the native buffers on every
  access and is valid only while the owning context is still at the
  alignment it was issued for. After the next ``align``, a ``reap`` or
  ``close`` it raises :class:`~wfa2py.errors.StaleResultError` instead of
  reading reused or freed memory.
* :class:`Alignment` is a caller-owned copy with no link to the context.

Python has no way to tie a borrowed buffer's lifetime to its owner, so every
byte that leaves the binding is copied; the view only decides *whether* the
copy is still allowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Tuple

from wfa2py import cigar as cigar_ops
from wfa2py.errors import StaleResultError
from wfa2py.types import AlignmentStatus

if TYPE_CHECKING:
    from wfa2py.context import AlignmentContext


@dataclass(frozen=True)
class Alignment:
    """Caller-owned copy of an alignment result.

    Attributes:
        status: Engine status of the alignment
        score: Alignment cost under the context's penalties
        cigar: One byte per operation (``M``, ``X``, ``I``, ``D``); empty when
            only the score was computed
    """

    status: AlignmentStatus
    score: int
    cigar: bytes

    def cigar_string(self, compact: bool = False) -> str:
        """CIGAR as text, run-length encoded when ``compact`` is set."""
        ops = cigar_ops.compress(self.cigar) if compact else self.cigar
        return ops.decode("ascii")

    def operation_counts(self) -> Dict[str, int]:
        return cigar_ops.operation_counts(self.cigar)

    def consumed_lengths(self) -> Tuple[int, int]:
        return cigar_ops.consumed_lengths(self.cigar)

    def __str__(self) -> str:
        return f"{self.status.name} score={self.score} cigar={self.cigar_string(compact=True)}"


class AlignmentView:
    """Borrowed, generation-scoped view of a context's current result.

    Obtained from :meth:`AlignmentContext.result`. Holding a view keeps the
    context object alive, but not its result: validity ends as soon as the
    context moves on.

    Examples:
        >>> view = ctx.result()
        >>> view.score
        24
        >>> ctx.align(b"ACGT", b"AGGT")
        >>> view.score  # raises StaleResultError
    """

    __slots__ = ("_context", "_generation", "_status")

    def __init__(self, context: "AlignmentContext", generation: int, status: AlignmentStatus):
        self._context = context
        self._generation = generation
        self._status = status

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def valid(self) -> bool:
        """True while the owning context still holds this alignment."""
        context = self._context
        return not context.closed and context.generation == self._generation

    def _check(self) -> "AlignmentContext":
        context = self._context
        if context.closed:
            raise StaleResultError(self._generation, None)
        if context.generation != self._generation:
            raise StaleResultError(self._generation, context.generation)
        return context

    @property
    def status(self) -> AlignmentStatus:
        self._check()
        return self._status

    @property
    def score(self) -> int:
        return self._check().score()

    @property
    def cigar(self) -> bytes:
        return self._check().cigar()

    def snapshot(self) -> Alignment:
        """Copy the result out so it survives the next alignment."""
        context = self._check()
        return Alignment(status=self._status, score=context.score(), cigar=context.cigar())

    def __repr__(self) -> str:
        state = "valid" if self.valid else "stale"
        return f"<AlignmentView generation={self._generation} {state}>"


__all__ = ["Alignment", "AlignmentView"]
