"""Shared utilities for wfa2py tests.

``FakeWavefrontLib`` stands in for the compiled ``wfa2py._wfa2`` module. It
exposes the same entry points and enum constants over its own cffi
structures, so the binding writes attribute blocks, reads the aligner's
penalties/heuristics and copies CIGARs out of a C buffer exactly as it does
with the real engine. Alignments are computed by a small Gotoh dynamic
program, which is exact, so its scores match the engine's without heuristics.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from cffi import FFI

from wfa2py import _native

# Scenario used throughout the tests: two mismatches, one deletion and one
# insertion under the default penalties (4 + 4 + 8 + 8).
PATTERN = b"TCTTTACTCGCGCGTTGGAGAAATACAATAGT"
TEXT = b"TCTATACTGCGCGTTTGGAGAAATAAAATAGT"
EXPECTED_SCORE = 24
EXPECTED_CIGAR = b"MMMXMMMMDMMMMMMMIMMMMMMMMMXMMMMMM"

FAKE_CDEF = r"""
typedef struct {
    int match;
    int mismatch;
    int indel;
} linear_penalties_t;

typedef struct {
    int match;
    int mismatch;
    int gap_opening;
    int gap_extension;
} affine_penalties_t;

typedef struct {
    int match;
    int mismatch;
    int gap_opening1;
    int gap_extension1;
    int gap_opening2;
    int gap_extension2;
} affine2p_penalties_t;

typedef struct {
    int distance_metric;
    int match;
    int mismatch;
    int gap_opening1;
    int gap_extension1;
    int gap_opening2;
    int gap_extension2;
} wavefront_penalties_t;

typedef struct {
    int span;
    int pattern_begin_free;
    int pattern_end_free;
    int text_begin_free;
    int text_end_free;
} alignment_form_t;

typedef struct {
    int strategy;
    int steps_between_cutoffs;
    int min_k;
    int max_k;
    int min_wavefront_length;
    int max_distance_threshold;
    int xdrop;
    int zdrop;
} wavefront_heuristic_t;

typedef struct {
    char* operations;
    int max_operations;
    int begin_offset;
    int end_offset;
    int score;
} cigar_t;

typedef struct {
    int distance_metric;
    int alignment_scope;
    alignment_form_t alignment_form;
    linear_penalties_t linear_penalties;
    affine_penalties_t affine_penalties;
    affine2p_penalties_t affine2p_penalties;
    wavefront_heuristic_t heuristic;
    int memory_mode;
} wavefront_aligner_attr_t;

typedef struct {
    int alignment_scope;
    alignment_form_t alignment_form;
    wavefront_penalties_t penalties;
    wavefront_heuristic_t heuristic;
    int memory_mode;
    cigar_t* cigar;
    int max_alignment_steps;
    uint64_t max_memory_resident;
    uint64_t max_memory_abort;
} wavefront_aligner_t;
"""

FAKE_FFI = FFI()
FAKE_FFI.cdef(FAKE_CDEF)

_UNREACHABLE = 1 << 60
_START = 0
_DIAGONAL = 1


def _address(ptr) -> int:
    return int(FAKE_FFI.cast("uintptr_t", ptr))


def gotoh(
    pattern: bytes,
    text: bytes,
    *,
    match: int,
    mismatch: int,
    gap_pieces: List[Tuple[int, int]],
    band: Optional[Tuple[int, int]] = None,
    free_ends: Tuple[int, int, int, int] = (0, 0, 0, 0),
    traceback: bool = True,
) -> Tuple[Optional[int], bytes]:
    """Optimal alignment cost and operations under piecewise gap-affine costs.

    A gap of length ``L`` under piece ``(o, e)`` costs ``o + e * L`` and each
    gap takes its cheapest piece. ``band`` restricts cells to diagonals
    ``min_k <= h - v <= max_k``. Returns ``(None, b"")`` when no path exists.
    """
    n, m = len(pattern), len(text)
    width = m + 1
    size = (n + 1) * width
    pattern_begin_free, pattern_end_free, text_begin_free, text_end_free = free_ends

    best = [_UNREACHABLE] * size
    best_from = [_START] * size
    ins = [[_UNREACHABLE] * size for _ in gap_pieces]
    ins_extends = [[False] * size for _ in gap_pieces]
    dels = [[_UNREACHABLE] * size for _ in gap_pieces]
    dels_extends = [[False] * size for _ in gap_pieces]

    for v in range(n + 1):
        for h in range(m + 1):
            if band is not None and not band[0] <= h - v <= band[1]:
                continue
            cell = v * width + h
            cost, came_from = _UNREACHABLE, _START

            if v > 0 and h > 0 and best[cell - width - 1] < _UNREACHABLE:
                step = match if pattern[v - 1] == text[h - 1] else mismatch
                cost, came_from = best[cell - width - 1] + step, _DIAGONAL

            for piece, (gap_open, gap_extend) in enumerate(gap_pieces):
                if v > 0:
                    above = cell - width
                    opened = best[above] + gap_open + gap_extend
                    extended = dels[piece][above] + gap_extend
                    if extended < opened:
                        dels[piece][cell], dels_extends[piece][cell] = extended, True
                    else:
                        dels[piece][cell] = opened
                    if dels[piece][cell] < cost:
                        cost, came_from = dels[piece][cell], 3 + 2 * piece
                if h > 0:
                    left = cell - 1
                    opened = best[left] + gap_open + gap_extend
                    extended = ins[piece][left] + gap_extend
                    if extended < opened:
                        ins[piece][cell], ins_extends[piece][cell] = extended, True
                    else:
                        ins[piece][cell] = opened
                    if ins[piece][cell] < cost:
                        cost, came_from = ins[piece][cell], 2 + 2 * piece

            if (v == 0 and h <= text_begin_free) or (h == 0 and v <= pattern_begin_free):
                cost, came_from = 0, _START
            if cost >= _UNREACHABLE // 2:
                cost = _UNREACHABLE
            best[cell], best_from[cell] = cost, came_from

    ends = [(n, m)]
    ends += [(n, h) for h in range(max(0, m - text_end_free), m)]
    ends += [(v, m) for v in range(max(0, n - pattern_end_free), n)]
    v, h = min(ends, key=lambda end: best[end[0] * width + end[1]])
    score = best[v * width + h]
    if score >= _UNREACHABLE:
        return None, b""
    if not traceback:
        return score, b""

    ops = bytearray()
    gap = None
    while True:
        cell = v * width + h
        if gap is None:
            came_from = best_from[cell]
            if came_from == _START:
                break
            if came_from == _DIAGONAL:
                ops.append(ord("M") if pattern[v - 1] == text[h - 1] else ord("X"))
                v, h = v - 1, h - 1
                continue
            gap = ((came_from - 2) % 2, (came_from - 2) // 2)
            continue
        is_deletion, piece = gap
        if is_deletion:
            ops.append(ord("D"))
            extends = dels_extends[piece][cell]
            v -= 1
        else:
            ops.append(ord("I"))
            extends = ins_extends[piece][cell]
            h -= 1
        if not extends:
            gap = None
    ops.reverse()
    return score, bytes(ops)


class FakeWavefrontLib:
    """In-process stand-in for the compiled engine module's ``lib``.

    Attributes:
        live: Handles allocated and not yet deleted, by address
        deleted: Addresses passed to ``wavefront_aligner_delete``
        double_frees: Addresses deleted more than once
        calls: Names of the entry points called, in order
        fail_allocation: Make ``wavefront_aligner_new`` return NULL
        force_status: Status code returned by the next alignments
        on_align: Callable run inside ``wavefront_align``
    """

    # distance_metric_t
    indel = 0
    edit = 1
    gap_linear = 2
    gap_affine = 3
    gap_affine_2p = 4
    # alignment_scope_t
    compute_score = 0
    compute_alignment = 1
    # alignment_span_t
    alignment_end2end = 0
    alignment_endsfree = 1
    # wavefront_memory_t
    wavefront_memory_high = 0
    wavefront_memory_med = 1
    wavefront_memory_low = 2
    wavefront_memory_ultralow = 3
    # wf_heuristic_strategy
    wf_heuristic_none = 0x0
    wf_heuristic_banded_static = 0x1
    wf_heuristic_banded_adaptive = 0x2
    wf_heuristic_wfadaptive = 0x4
    wf_heuristic_xdrop = 0x10
    wf_heuristic_zdrop = 0x20
    wf_heuristic_wfmash = 0x40

    def __init__(self):
        self.live: Dict[int, dict] = {}
        self.deleted: List[int] = []
        self.double_frees: List[int] = []
        self.calls: List[str] = []
        self.align_count = 0
        self.fail_allocation = False
        self.force_status: Optional[int] = None
        self.on_align: Optional[Callable[[], None]] = None

        self._attr_default = FAKE_FFI.new("wavefront_aligner_attr_t *")
        default = self._attr_default
        default.distance_metric = self.gap_affine
        default.alignment_scope = self.compute_alignment
        default.alignment_form.span = self.alignment_end2end
        default.affine_penalties.match = 0
        default.affine_penalties.mismatch = 4
        default.affine_penalties.gap_opening = 6
        default.affine_penalties.gap_extension = 2
        default.heuristic.strategy = self.wf_heuristic_wfadaptive
        default.heuristic.min_wavefront_length = 10
        default.heuristic.max_distance_threshold = 50
        default.heuristic.steps_between_cutoffs = 1
        default.memory_mode = self.wavefront_memory_high

    @property
    def wavefront_aligner_attr_default(self):
        return self._attr_default[0]

    def engine(self) -> _native.Engine:
        return _native.Engine(ffi=FAKE_FFI, lib=self)

    def _state(self, aligner) -> dict:
        return self.live[_address(aligner)]

    # Lifecycle -------------------------------------------------------

    def wavefront_aligner_new(self, attributes):
        self.calls.append("new")
        if self.fail_allocation:
            return FAKE_FFI.NULL
        aligner = FAKE_FFI.new("wavefront_aligner_t *")
        cigar = FAKE_FFI.new("cigar_t *")
        aligner.cigar = cigar
        aligner.alignment_scope = attributes.alignment_scope
        aligner.alignment_form = attributes.alignment_form
        aligner.heuristic = attributes.heuristic
        aligner.memory_mode = attributes.memory_mode

        penalties = aligner.penalties
        penalties.distance_metric = attributes.distance_metric
        if attributes.distance_metric == self.edit:
            penalties.match, penalties.mismatch = 0, 1
            penalties.gap_opening1, penalties.gap_extension1 = 0, 1
            penalties.gap_opening2, penalties.gap_extension2 = -1, -1
        elif attributes.distance_metric == self.gap_affine:
            block = attributes.affine_penalties
            penalties.match, penalties.mismatch = block.match, block.mismatch
            penalties.gap_opening1 = block.gap_opening
            penalties.gap_extension1 = block.gap_extension
            penalties.gap_opening2, penalties.gap_extension2 = -1, -1
        elif attributes.distance_metric == self.gap_affine_2p:
            block = attributes.affine2p_penalties
            penalties.match, penalties.mismatch = block.match, block.mismatch
            penalties.gap_opening1 = block.gap_opening1
            penalties.gap_extension1 = block.gap_extension1
            penalties.gap_opening2 = block.gap_opening2
            penalties.gap_extension2 = block.gap_extension2
        else:
            raise AssertionError(f"unsupported metric {attributes.distance_metric}")

        self.live[_address(aligner)] = {"aligner": aligner, "cigar": cigar, "buffer": None}
        return aligner

    def wavefront_aligner_delete(self, aligner):
        self.calls.append("delete")
        address = _address(aligner)
        if address in self.deleted:
            self.double_frees.append(address)
        self.deleted.append(address)
        self.live.pop(address, None)

    def wavefront_aligner_reap(self, aligner):
        self.calls.append("reap")
        state = self._state(aligner)
        cigar = state["cigar"]
        cigar.operations = FAKE_FFI.NULL
        cigar.max_operations = 0
        cigar.begin_offset = cigar.end_offset = 0
        state["buffer"] = None

    def wavefront_aligner_get_size(self, aligner):
        state = self._state(aligner)
        return 4096 + state["cigar"].max_operations

    # Configuration ---------------------------------------------------

    def wavefront_aligner_set_alignment_end_to_end(self, aligner):
        self.calls.append("set_alignment_end_to_end")
        form = aligner.alignment_form
        form.span = self.alignment_end2end
        form.pattern_begin_free = form.pattern_end_free = 0
        form.text_begin_free = form.text_end_free = 0

    def wavefront_aligner_set_alignment_free_ends(
        self, aligner, pattern_begin_free, pattern_end_free, text_begin_free, text_end_free
    ):
        self.calls.append("set_alignment_free_ends")
        form = aligner.alignment_form
        form.span = self.alignment_endsfree
        form.pattern_begin_free = pattern_begin_free
        form.pattern_end_free = pattern_end_free
        form.text_begin_free = text_begin_free
        form.text_end_free = text_end_free

    def wavefront_aligner_set_heuristic_none(self, aligner):
        self.calls.append("set_heuristic_none")
        aligner.heuristic.strategy = self.wf_heuristic_none

    def wavefront_aligner_set_heuristic_banded_static(self, aligner, band_min_k, band_max_k):
        self.calls.append("set_heuristic_banded_static")
        heuristic = aligner.heuristic
        heuristic.strategy |= self.wf_heuristic_banded_static
        heuristic.min_k, heuristic.max_k = band_min_k, band_max_k

    def wavefront_aligner_set_heuristic_banded_adaptive(
        self, aligner, band_min_k, band_max_k, score_steps
    ):
        self.calls.append("set_heuristic_banded_adaptive")
        heuristic = aligner.heuristic
        heuristic.strategy |= self.wf_heuristic_banded_adaptive
        heuristic.min_k, heuristic.max_k = band_min_k, band_max_k
        heuristic.steps_between_cutoffs = score_steps

    def wavefront_aligner_set_heuristic_wfadaptive(
        self, aligner, min_wavefront_length, max_distance_threshold, score_steps
    ):
        self.calls.append("set_heuristic_wfadaptive")
        heuristic = aligner.heuristic
        heuristic.strategy |= self.wf_heuristic_wfadaptive
        heuristic.min_wavefront_length = min_wavefront_length
        heuristic.max_distance_threshold = max_distance_threshold
        heuristic.steps_between_cutoffs = score_steps

    def wavefront_aligner_set_heuristic_wfmash(
        self, aligner, min_wavefront_length, max_distance_threshold, score_steps
    ):
        self.calls.append("set_heuristic_wfmash")
        heuristic = aligner.heuristic
        heuristic.strategy |= self.wf_heuristic_wfmash
        heuristic.min_wavefront_length = min_wavefront_length
        heuristic.max_distance_threshold = max_distance_threshold
        heuristic.steps_between_cutoffs = score_steps

    def wavefront_aligner_set_heuristic_xdrop(self, aligner, xdrop, score_steps):
        self.calls.append("set_heuristic_xdrop")
        heuristic = aligner.heuristic
        heuristic.strategy |= self.wf_heuristic_xdrop
        heuristic.xdrop = xdrop
        heuristic.steps_between_cutoffs = score_steps

    def wavefront_aligner_set_heuristic_zdrop(self, aligner, zdrop, score_steps):
        self.calls.append("set_heuristic_zdrop")
        heuristic = aligner.heuristic
        heuristic.strategy |= self.wf_heuristic_zdrop
        heuristic.zdrop = zdrop
        heuristic.steps_between_cutoffs = score_steps

    def wavefront_aligner_set_max_alignment_steps(self, aligner, max_alignment_steps):
        self.calls.append("set_max_alignment_steps")
        aligner.max_alignment_steps = max_alignment_steps

    def wavefront_aligner_set_max_memory(self, aligner, max_memory_resident, max_memory_abort):
        self.calls.append("set_max_memory")
        aligner.max_memory_resident = max_memory_resident
        aligner.max_memory_abort = max_memory_abort

    # Alignment -------------------------------------------------------

    def _gap_pieces(self, penalties) -> Tuple[int, int, List[Tuple[int, int]]]:
        if penalties.distance_metric == self.edit:
            return 0, 1, [(0, 1)]
        pieces = [(penalties.gap_opening1, penalties.gap_extension1)]
        if penalties.distance_metric == self.gap_affine_2p:
            pieces.append((penalties.gap_opening2, penalties.gap_extension2))
        return penalties.match, penalties.mismatch, pieces

    def wavefront_align(self, aligner, pattern, pattern_length, text, text_length):
        self.calls.append("align")
        self.align_count += 1
        if self.on_align is not None:
            self.on_align()

        state = self._state(aligner)
        cigar = state["cigar"]
        match, mismatch, pieces = self._gap_pieces(aligner.penalties)
        heuristic = aligner.heuristic
        band = None
        if heuristic.strategy & (self.wf_heuristic_banded_static | self.wf_heuristic_banded_adaptive):
            band = (heuristic.min_k, heuristic.max_k)
        form = aligner.alignment_form
        free_ends = (0, 0, 0, 0)
        if form.span == self.alignment_endsfree:
            free_ends = (
                form.pattern_begin_free,
                form.pattern_end_free,
                form.text_begin_free,
                form.text_end_free,
            )

        score, ops = gotoh(
            bytes(pattern[:pattern_length]),
            bytes(text[:text_length]),
            match=match,
            mismatch=mismatch,
            gap_pieces=pieces,
            band=band,
            free_ends=free_ends,
            traceback=aligner.alignment_scope == self.compute_alignment,
        )

        cigar.begin_offset = cigar.end_offset = 0
        if score is None:
            cigar.score = 0
            return -300
        if aligner.max_alignment_steps > 0 and score > aligner.max_alignment_steps:
            cigar.score = 0
            return -100

        cigar.score = -score
        if ops:
            # Operations start one byte into the buffer, like the engine's
            # backtrace which writes from the end of a reused buffer.
            if len(ops) + 1 > cigar.max_operations:
                state["buffer"] = FAKE_FFI.new("char[]", 2 * len(ops) + 1)
                cigar.operations = state["buffer"]
                cigar.max_operations = 2 * len(ops) + 1
            FAKE_FFI.memmove(cigar.operations + 1, ops, len(ops))
            cigar.begin_offset = 1
            cigar.end_offset = 1 + len(ops)

        if self.force_status is not None:
            return self.force_status
        return 0


__all__ = [
    "PATTERN",
    "TEXT",
    "EXPECTED_SCORE",
    "EXPECTED_CIGAR",
    "FAKE_FFI",
    "FakeWavefrontLib",
    "gotoh",
]
