"""Custom exceptions for the wfa2py Python API.

Every error raised by the binding derives from :class:`WFA2Error` and from the
builtin exception that best describes it, so callers can catch either.
"""

from __future__ import annotations
from typing import Optional


class WFA2Error(Exception):
    """Base exception for all wfa2py errors.

    Provides structured error information with message, suggestion and
    context for helpful error reporting.

    Args:
        message: Error message describing what went wrong
        suggestion: What the user should do to fix the error
        context: Additional context about the error

    Examples:
        >>> raise WFA2Error(
        ...     "Operation failed",
        ...     suggestion="Try different parameters",
        ...     context="Input was empty"
        ... )
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[str] = None,
    ):
        self.message = message
        self.suggestion = suggestion
        self.context = context
        super().__init__(self.formatted())

    def formatted(self) -> str:
        """Get fully formatted error message for display.

        Returns:
            Formatted error message with context and suggestion
        """
        msg = f"[ERROR] {self.message}"

        if self.context:
            msg += f"\n  Context: {self.context}"

        if self.suggestion:
            msg += f"\n  Suggestion: {self.suggestion}"

        return msg

    def __str__(self) -> str:
        return self.formatted()


class ValidationError(WFA2Error, ValueError):
    """Validation error for invalid penalties, heuristics or inputs.

    Raised before the native engine is touched; values are never clamped.

    Args:
        param_name: Name of the parameter
        value: Actual value provided
        expected: Expected value or range
    """

    def __init__(self, param_name: str, value: object, expected: str):
        super().__init__(
            f"Invalid value for {param_name}: {value!r}",
            suggestion=f"Expected: {expected}",
        )
        self.param_name = param_name
        self.value = value
        self.expected = expected


class NativeLibraryError(WFA2Error, ImportError):
    """The compiled WFA2 extension module could not be loaded.

    Args:
        reason: Why loading failed
    """

    def __init__(self, reason: str):
        super().__init__(
            "WFA2 engine extension is not available",
            suggestion="Build the wfa2py._wfa2 cffi module against WFA2-lib "
            "(see wfa2py._native.make_builder)",
            context=reason,
        )


class AllocationError(WFA2Error, MemoryError):
    """The engine could not allocate a wavefront aligner.

    No partially-initialised context is ever returned when this is raised.
    """

    def __init__(self, context: Optional[str] = None):
        super().__init__(
            "wavefront_aligner_new returned NULL",
            suggestion="Reduce memory usage or choose a lower memory mode",
            context=context,
        )


class MisuseError(WFA2Error, RuntimeError):
    """An alignment context or result view was used outside its valid state."""


class NoResultError(MisuseError):
    """Score or CIGAR requested while no successful alignment is held.

    Args:
        reason: Which state the context is in
    """

    def __init__(self, reason: str):
        super().__init__(
            f"No alignment result available: {reason}",
            suggestion="Call align() and check that it returned a successful status",
        )


class ContextClosedError(MisuseError):
    """Operation attempted on a context whose native handle was released.

    Args:
        operation: Name of the rejected operation
    """

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation}: alignment context is closed",
            suggestion="Create a new AlignmentContext",
        )
        self.operation = operation


class StaleResultError(MisuseError):
    """A result view outlived the alignment it was taken from.

    Args:
        view_generation: Generation the view was issued for
        current_generation: Generation of the owning context, or None if closed
    """

    def __init__(self, view_generation: int, current_generation: Optional[int]):
        if current_generation is None:
            context = "the owning context was closed"
        else:
            context = (
                f"view belongs to alignment #{view_generation}, "
                f"context is at #{current_generation}"
            )
        super().__init__(
            "Result view is no longer valid",
            suggestion="Take a snapshot() before re-aligning if the result must be kept",
            context=context,
        )
        self.view_generation = view_generation
        self.current_generation = current_generation


class ContextBusyError(MisuseError):
    """Concurrent mutation of one context from several threads.

    Args:
        operation: Name of the rejected operation
    """

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation}: alignment context is in use by another thread",
            suggestion="Use one AlignmentContext per thread or serialise access",
        )
        self.operation = operation


class AlignmentError(WFA2Error, RuntimeError):
    """Alignment finished with a non-successful status.

    Args:
        status: The AlignmentStatus returned by the engine
        suggestion: Optional suggestion for fixing the error
    """

    def __init__(self, status, suggestion: Optional[str] = None):
        if suggestion is None and status.infeasible:
            suggestion = "Widen or remove the heuristic, or raise the step limit"
        super().__init__(
            f"Alignment failed with status {status.name}",
            suggestion=suggestion
            or "Try adjusting alignment parameters or input data",
        )
        self.status = status


__all__ = [
    "WFA2Error",
    "ValidationError",
    "NativeLibraryError",
    "AllocationError",
    "MisuseError",
    "NoResultError",
    "ContextClosedError",
    "StaleResultError",
    "ContextBusyError",
    "AlignmentError",
]
