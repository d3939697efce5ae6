"""Python API surface for the WFA2 wavefront alignment engine."""

from __future__ import annotations

from importlib import metadata as _metadata
from typing import Optional

from wfa2py import cigar
from wfa2py.config import DEFAULT_CONFIG, AlignerConfig
from wfa2py.context import AlignmentContext
from wfa2py.errors import (
    AlignmentError,
    AllocationError,
    ContextBusyError,
    ContextClosedError,
    MisuseError,
    NativeLibraryError,
    NoResultError,
    StaleResultError,
    ValidationError,
    WFA2Error,
)
from wfa2py.heuristics import (
    BandedAdaptive,
    BandedStatic,
    HeuristicStrategy,
    NoHeuristic,
    WFAdaptive,
    WFMash,
    XDrop,
    ZDrop,
)
from wfa2py.penalties import DEFAULT_PENALTIES, Edit, GapAffine, GapAffine2p, PenaltyModel
from wfa2py.results import Alignment, AlignmentView
from wfa2py.types import AlignmentScope, AlignmentStatus, EndsFree, EndToEnd, MemoryMode

# Version comes from the installed distribution metadata (pyproject.toml)
try:
    __version__ = _metadata.version("wfa2py")
except _metadata.PackageNotFoundError:
    # Running from a source tree that was never installed
    __version__ = "0+unknown"

__all__ = [
    "align",
    "version_info",
    "AlignmentContext",
    "AlignerConfig",
    "DEFAULT_CONFIG",
    "Alignment",
    "AlignmentView",
    "AlignmentStatus",
    "AlignmentScope",
    "MemoryMode",
    "EndToEnd",
    "EndsFree",
    "Edit",
    "GapAffine",
    "GapAffine2p",
    "PenaltyModel",
    "DEFAULT_PENALTIES",
    "NoHeuristic",
    "BandedStatic",
    "BandedAdaptive",
    "WFAdaptive",
    "WFMash",
    "XDrop",
    "ZDrop",
    "HeuristicStrategy",
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
    "cigar",
    "__version__",
]


def align(
    pattern,
    text,
    *,
    penalties: Optional[PenaltyModel] = None,
    heuristic: Optional[HeuristicStrategy] = None,
    config: Optional[AlignerConfig] = None,
) -> Alignment:
    """Align two sequences with a throwaway context.

    Convenient for one-off alignments; for many alignments with the same
    penalties reuse an :class:`AlignmentContext`, which keeps the engine's
    buffers between calls.

    Args:
        pattern: Query sequence (bytes-like or ASCII str)
        text: Reference sequence (bytes-like or ASCII str)
        penalties: Penalty model (default: gap-affine 4/6/2)
        heuristic: Heuristic strategy (default: none)
        config: Scope, span, memory mode and limits

    Returns:
        Alignment with status, score and CIGAR

    Raises:
        AlignmentError: If the engine did not produce an alignment

    Example:
        >>> result = wfa2py.align("GATTACA", "GATCACA")
        >>> result.score, result.cigar
        (4, b'MMMXMMM')
    """
    with AlignmentContext(penalties, heuristic=heuristic, config=config) as context:
        status = context.align(pattern, text)
        if not status.ok:
            raise AlignmentError(status)
        return context.result().snapshot()


def version_info() -> dict:
    """Get version information for the binding and its runtime.

    Returns:
        Dictionary with version information:
        {
            'version': str,
            'engine_available': bool,
            'cffi_version': str,
            'numpy_version': str,
            'python_version': str,
            'platform': str,
        }
    """
    import platform
    import sys

    import cffi
    import numpy

    from wfa2py import _native

    return {
        "version": __version__,
        "engine_available": _native.available(),
        "cffi_version": cffi.__version__,
        "numpy_version": numpy.__version__,
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "platform": platform.platform(),
    }
