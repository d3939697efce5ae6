"""cffi contract with the WFA2 engine and loading of the compiled module.

The binding talks to WFA2-lib through the declarations in :data:`CDEF` only.
Structures are declared partially (``...;``): cffi resolves every field offset
and enum value from the real headers when the extension is compiled, so the
Python side can never disagree with the engine about a layout.

The compiled module is ``wfa2py._wfa2`` (see :func:`make_builder`). It is
loaded lazily by :func:`engine` so that importing :mod:`wfa2py` never requires
the native library.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Any, NamedTuple, Optional, Sequence

from cffi import FFI

from wfa2py import constants
from wfa2py.errors import NativeLibraryError

LOGGER = logging.getLogger(__name__)

CDEF = r"""
typedef enum { indel, edit, gap_linear, gap_affine, gap_affine_2p, ... } distance_metric_t;
typedef enum { compute_score, compute_alignment, ... } alignment_scope_t;
typedef enum { alignment_end2end, alignment_endsfree, ... } alignment_span_t;
typedef enum {
    wavefront_memory_high,
    wavefront_memory_med,
    wavefront_memory_low,
    wavefront_memory_ultralow,
    ...
} wavefront_memory_t;
typedef enum {
    wf_heuristic_none,
    wf_heuristic_banded_static,
    wf_heuristic_banded_adaptive,
    wf_heuristic_wfadaptive,
    wf_heuristic_xdrop,
    wf_heuristic_zdrop,
    wf_heuristic_wfmash,
    ...
} wf_heuristic_strategy;

typedef struct {
    int match;
    int mismatch;
    int indel;
    ...;
} linear_penalties_t;

typedef struct {
    int match;
    int mismatch;
    int gap_opening;
    int gap_extension;
    ...;
} affine_penalties_t;

typedef struct {
    int match;
    int mismatch;
    int gap_opening1;
    int gap_extension1;
    int gap_opening2;
    int gap_extension2;
    ...;
} affine2p_penalties_t;

typedef struct {
    distance_metric_t distance_metric;
    int match;
    int mismatch;
    int gap_opening1;
    int gap_extension1;
    int gap_opening2;
    int gap_extension2;
    ...;
} wavefront_penalties_t;

typedef struct {
    alignment_span_t span;
    int pattern_begin_free;
    int pattern_end_free;
    int text_begin_free;
    int text_end_free;
    ...;
} alignment_form_t;

typedef struct {
    wf_heuristic_strategy strategy;
    int steps_between_cutoffs;
    int min_k;
    int max_k;
    int min_wavefront_length;
    int max_distance_threshold;
    int xdrop;
    int zdrop;
    ...;
} wavefront_heuristic_t;

typedef struct {
    char* operations;
    int begin_offset;
    int end_offset;
    int score;
    ...;
} cigar_t;

typedef struct {
    distance_metric_t distance_metric;
    alignment_scope_t alignment_scope;
    alignment_form_t alignment_form;
    linear_penalties_t linear_penalties;
    affine_penalties_t affine_penalties;
    affine2p_penalties_t affine2p_penalties;
    wavefront_heuristic_t heuristic;
    wavefront_memory_t memory_mode;
    ...;
} wavefront_aligner_attr_t;

typedef struct {
    alignment_scope_t alignment_scope;
    alignment_form_t alignment_form;
    wavefront_penalties_t penalties;
    wavefront_heuristic_t heuristic;
    wavefront_memory_t memory_mode;
    cigar_t* cigar;
    ...;
} wavefront_aligner_t;

extern wavefront_aligner_attr_t wavefront_aligner_attr_default;

wavefront_aligner_t* wavefront_aligner_new(wavefront_aligner_attr_t* attributes);
void wavefront_aligner_reap(wavefront_aligner_t* wf_aligner);
void wavefront_aligner_delete(wavefront_aligner_t* wf_aligner);
uint64_t wavefront_aligner_get_size(wavefront_aligner_t* wf_aligner);

void wavefront_aligner_set_alignment_end_to_end(wavefront_aligner_t* wf_aligner);
void wavefront_aligner_set_alignment_free_ends(
    wavefront_aligner_t* wf_aligner,
    int pattern_begin_free, int pattern_end_free,
    int text_begin_free, int text_end_free);

void wavefront_aligner_set_heuristic_none(wavefront_aligner_t* wf_aligner);
void wavefront_aligner_set_heuristic_banded_static(
    wavefront_aligner_t* wf_aligner, int band_min_k, int band_max_k);
void wavefront_aligner_set_heuristic_banded_adaptive(
    wavefront_aligner_t* wf_aligner, int band_min_k, int band_max_k, int score_steps);
void wavefront_aligner_set_heuristic_wfadaptive(
    wavefront_aligner_t* wf_aligner,
    int min_wavefront_length, int max_distance_threshold, int score_steps);
void wavefront_aligner_set_heuristic_wfmash(
    wavefront_aligner_t* wf_aligner,
    int min_wavefront_length, int max_distance_threshold, int score_steps);
void wavefront_aligner_set_heuristic_xdrop(
    wavefront_aligner_t* wf_aligner, int xdrop, int score_steps);
void wavefront_aligner_set_heuristic_zdrop(
    wavefront_aligner_t* wf_aligner, int zdrop, int score_steps);

void wavefront_aligner_set_max_alignment_steps(
    wavefront_aligner_t* wf_aligner, int max_alignment_steps);
void wavefront_aligner_set_max_memory(
    wavefront_aligner_t* wf_aligner,
    uint64_t max_memory_resident, uint64_t max_memory_abort);

int wavefront_align(
    wavefront_aligner_t* wf_aligner,
    const char* pattern, int pattern_length,
    const char* text, int text_length);
"""

SOURCE = '#include "wavefront/wavefront_align.h"\n'


class Engine(NamedTuple):
    """The loaded engine: cffi type system and native entry points."""

    ffi: Any
    lib: Any


_ENGINE: Optional[Engine] = None


def make_builder(
    include_dirs: Sequence[str] = (),
    library_dirs: Sequence[str] = (),
    libraries: Sequence[str] = ("wfa2",),
) -> FFI:
    """Return a cffi builder for the ``wfa2py._wfa2`` extension.

    Args:
        include_dirs: Directories containing ``wavefront/wavefront_align.h``
        library_dirs: Directories containing the WFA2 library
        libraries: Libraries to link against

    Example:
        >>> builder = make_builder(["WFA2-lib"], ["WFA2-lib/lib"])
        >>> builder.compile(tmpdir="wfa2py")
    """
    builder = FFI()
    builder.cdef(CDEF)
    builder.set_source(
        f"wfa2py.{constants.EXTENSION_NAME}",
        SOURCE,
        include_dirs=list(include_dirs),
        library_dirs=list(library_dirs),
        libraries=list(libraries),
    )
    return builder


def _load_extension():
    pkg_dir = Path(__file__).resolve().parent
    pattern = f"{constants.EXTENSION_NAME}*"
    candidates = sorted(pkg_dir.glob(f"{pattern}.so")) + sorted(pkg_dir.glob(f"{pattern}.pyd"))
    module_name = f"wfa2py.{constants.EXTENSION_NAME}"
    if candidates:
        spec = importlib.util.spec_from_file_location(module_name, candidates[0])
        if spec and spec.loader:
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
            return module
    return importlib.import_module(module_name)


def engine() -> Engine:
    """Return the loaded engine, loading the extension on first use.

    Raises:
        NativeLibraryError: If the compiled extension cannot be imported
    """
    global _ENGINE
    if _ENGINE is None:
        try:
            module = _load_extension()
        except ImportError as exc:
            raise NativeLibraryError(str(exc)) from exc
        _ENGINE = Engine(ffi=module.ffi, lib=module.lib)
        LOGGER.debug("Loaded WFA2 engine from %s", getattr(module, "__file__", "?"))
    return _ENGINE


def available() -> bool:
    """True if the compiled engine can be loaded."""
    try:
        engine()
    except NativeLibraryError:
        return False
    return True


__all__ = ["CDEF", "Engine", "make_builder", "engine", "available"]
