"""
Command-line interface for the wfa2py package.

Aligns sequence pairs given on the command line or read from a
tab-separated file, reusing one alignment context per invocation.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from . import __version__, constants
from .cigar import compress
from .config import AlignerConfig
from .context import AlignmentContext
from .errors import ValidationError
from .heuristics import BandedAdaptive, BandedStatic, WFAdaptive, WFMash, XDrop, ZDrop
from .penalties import Edit, GapAffine, GapAffine2p
from .types import AlignmentScope, EndsFree, EndToEnd, MemoryMode

LOGGER = logging.getLogger(__name__)


# Custom argparse types for early validation

def existing_file_type(path: str):
    """Argparse type for input files that must exist."""
    p = Path(path)
    if not p.exists():
        raise argparse.ArgumentTypeError(f"File not found: {path}")
    if not p.is_file():
        raise argparse.ArgumentTypeError(f"Not a file: {path}")
    return str(path)


def output_path_type(path: str):
    """
    Argparse type for output paths - validates parent directory exists.

    Raises:
        ArgumentTypeError: If parent directory doesn't exist
    """
    p = Path(path)
    if p.parent != Path() and not p.parent.exists():
        raise argparse.ArgumentTypeError(
            f"Output directory doesn't exist: {p.parent}"
        )
    return str(path)


def positive_int_type(value: str):
    """
    Argparse type for positive integers.

    Raises:
        ArgumentTypeError: If not a positive integer
    """
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Must be an integer, got {value}")
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive, got {value}")
    return ivalue


def non_negative_int_type(value: str):
    """Argparse type for integers >= 0."""
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Must be an integer, got {value}")
    if ivalue < 0:
        raise argparse.ArgumentTypeError(f"Must be >= 0, got {value}")
    return ivalue


def print_info(message: str, quiet: bool = False) -> None:
    """Print informational message unless quiet mode is enabled."""
    if not quiet:
        print(message)


def _add_alignment_options(parser: argparse.ArgumentParser) -> None:
    penalties = parser.add_argument_group(
        "penalties",
        "Cost options apply to affine and affine2p; --gap-open2 and --gap-extend2 "
        "to affine2p only. Passing one the chosen metric does not use is an error.",
    )
    penalties.add_argument(
        "--distance",
        choices=("edit", "affine", "affine2p"),
        default="affine",
        help="Distance metric (default: affine)",
    )
    penalties.add_argument(
        "--match",
        type=int,
        default=None,
        help=f"Match score, <= 0 (default: {constants.DEFAULT_MATCH})",
    )
    penalties.add_argument(
        "--mismatch",
        type=non_negative_int_type,
        default=None,
        help=f"Mismatch penalty (default: {constants.DEFAULT_MISMATCH})",
    )
    penalties.add_argument(
        "--gap-open",
        type=non_negative_int_type,
        default=None,
        help=f"Gap opening penalty (default: {constants.DEFAULT_GAP_OPEN})",
    )
    penalties.add_argument(
        "--gap-extend",
        type=non_negative_int_type,
        default=None,
        help=f"Gap extension penalty (default: {constants.DEFAULT_GAP_EXTEND})",
    )
    penalties.add_argument(
        "--gap-open2",
        type=non_negative_int_type,
        default=None,
        help=f"Second gap opening penalty, affine2p only (default: {constants.DEFAULT_GAP_OPEN2})",
    )
    penalties.add_argument(
        "--gap-extend2",
        type=non_negative_int_type,
        default=None,
        help=f"Second gap extension penalty, affine2p only (default: {constants.DEFAULT_GAP_EXTEND2})",
    )

    heuristics = parser.add_argument_group("heuristics").add_mutually_exclusive_group()
    heuristics.add_argument(
        "--band",
        nargs=2,
        type=int,
        metavar=("MIN_K", "MAX_K"),
        help="Static band of diagonals",
    )
    heuristics.add_argument(
        "--adaptive-band",
        nargs=3,
        type=int,
        metavar=("MIN_K", "MAX_K", "STEPS"),
        help="Adaptive band of diagonals",
    )
    heuristics.add_argument(
        "--wf-adaptive",
        nargs=3,
        type=int,
        metavar=("MIN_LENGTH", "MAX_DISTANCE", "STEPS"),
        help="WF-adaptive wavefront pruning",
    )
    heuristics.add_argument(
        "--wf-mash",
        nargs=3,
        type=int,
        metavar=("MIN_LENGTH", "MAX_DISTANCE", "STEPS"),
        help="WF-mash wavefront pruning",
    )
    heuristics.add_argument(
        "--xdrop",
        nargs=2,
        type=int,
        metavar=("XDROP", "STEPS"),
        help="X-drop pruning",
    )
    heuristics.add_argument(
        "--zdrop",
        nargs=2,
        type=int,
        metavar=("ZDROP", "STEPS"),
        help="Z-drop pruning",
    )

    options = parser.add_argument_group("alignment")
    options.add_argument(
        "--score-only",
        action="store_true",
        help="Compute the score without the CIGAR",
    )
    options.add_argument(
        "--ends-free",
        nargs=4,
        type=non_negative_int_type,
        metavar=("PATTERN_BEGIN", "PATTERN_END", "TEXT_BEGIN", "TEXT_END"),
        help="Ends-free alignment with the given free lengths",
    )
    options.add_argument(
        "--memory",
        choices=("high", "med", "low", "ultralow"),
        default="high",
        help="Wavefront memory mode (default: high)",
    )
    options.add_argument(
        "--max-steps",
        type=positive_int_type,
        default=None,
        help="Abort alignments after this many score steps",
    )
    options.add_argument(
        "--compact",
        action="store_true",
        help="Print the CIGAR run-length encoded",
    )


_MEMORY_MODES = {
    "high": MemoryMode.HIGH,
    "med": MemoryMode.MEDIUM,
    "low": MemoryMode.LOW,
    "ultralow": MemoryMode.ULTRALOW,
}


_COST_OPTIONS = {
    "match": constants.DEFAULT_MATCH,
    "mismatch": constants.DEFAULT_MISMATCH,
    "gap_open": constants.DEFAULT_GAP_OPEN,
    "gap_extend": constants.DEFAULT_GAP_EXTEND,
}

_SECOND_CURVE_OPTIONS = {
    "gap_open2": constants.DEFAULT_GAP_OPEN2,
    "gap_extend2": constants.DEFAULT_GAP_EXTEND2,
}


def _penalty_values(args, options: dict, distance: str, used: bool) -> dict:
    values = {}
    for name, default in options.items():
        value = getattr(args, name)
        if not used and value is not None:
            raise ValidationError(
                "--" + name.replace("_", "-"), value, f"not used with --distance {distance}"
            )
        values[name] = default if value is None else value
    return values


def build_penalties(args):
    """Penalty model from parsed arguments.

    Raises:
        ValidationError: If a cost option is given that the metric ignores
    """
    distance = args.distance
    costs = _penalty_values(args, _COST_OPTIONS, distance, distance != "edit")
    second = _penalty_values(args, _SECOND_CURVE_OPTIONS, distance, distance == "affine2p")
    if distance == "edit":
        return Edit()
    if distance == "affine2p":
        return GapAffine2p(
            mismatch=costs["mismatch"],
            gap_open1=costs["gap_open"],
            gap_extend1=costs["gap_extend"],
            gap_open2=second["gap_open2"],
            gap_extend2=second["gap_extend2"],
            match=costs["match"],
        )
    return GapAffine(
        mismatch=costs["mismatch"],
        gap_open=costs["gap_open"],
        gap_extend=costs["gap_extend"],
        match=costs["match"],
    )


def build_heuristic(args):
    """Heuristic strategy from parsed arguments (None when not requested)."""
    if args.band:
        return BandedStatic(*args.band)
    if args.adaptive_band:
        return BandedAdaptive(*args.adaptive_band)
    if args.wf_adaptive:
        return WFAdaptive(*args.wf_adaptive)
    if args.wf_mash:
        return WFMash(*args.wf_mash)
    if args.xdrop:
        return XDrop(*args.xdrop)
    if args.zdrop:
        return ZDrop(*args.zdrop)
    return None


def build_config(args) -> AlignerConfig:
    """Aligner configuration from parsed arguments."""
    return AlignerConfig(
        scope=AlignmentScope.SCORE if args.score_only else AlignmentScope.ALIGNMENT,
        span=EndsFree(*args.ends_free) if args.ends_free else EndToEnd(),
        memory_mode=_MEMORY_MODES[args.memory],
        max_alignment_steps=args.max_steps,
    )


def read_pairs(path: str) -> List[tuple]:
    """Read ``pattern<TAB>text`` lines, skipping blank lines and ``#`` comments."""
    pairs = []
    with open(path) as handle:
        for number, line in enumerate(handle, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            fields = line.split("\t")
            if len(fields) != 2:
                raise ValidationError(f"{path}:{number}", line, "pattern<TAB>text")
            pairs.append((fields[0], fields[1]))
    return pairs


def _format_cigar(ops: bytes, compact: bool) -> str:
    if not ops:
        return "-"
    return (compress(ops) if compact else ops).decode("ascii")


def run_align(args) -> int:
    with AlignmentContext(
        build_penalties(args), heuristic=build_heuristic(args), config=build_config(args)
    ) as context:
        status = context.align(args.pattern, args.text)
        print_info(f"pattern: {args.pattern}", args.quiet)
        print_info(f"text:    {args.text}", args.quiet)
        print_info(f"status:  {status.name}", args.quiet)
        if not status.ok:
            print(f"[FAIL] Alignment failed with status {status.name}", file=sys.stderr)
            return 1
        print(f"score:   {context.score()}")
        print(f"cigar:   {_format_cigar(context.cigar(), args.compact)}")
    return 0


def run_batch(args) -> int:
    pairs = read_pairs(args.input)
    scores = []
    failed = 0
    with AlignmentContext(
        build_penalties(args), heuristic=build_heuristic(args), config=build_config(args)
    ) as context, open(args.output, "w") as out:
        for pattern, text in pairs:
            status = context.align(pattern, text)
            if status.ok:
                score = context.score()
                scores.append(score)
                out.write(f"{status.name}\t{score}\t{_format_cigar(context.cigar(), args.compact)}\n")
            else:
                failed += 1
                out.write(f"{status.name}\t-\t-\n")

    print_info("[OK] Batch alignment complete", args.quiet)
    print_info(f"  Total alignments: {len(pairs)}", args.quiet)
    print_info(f"  Failed: {failed}", args.quiet)
    print_info(f"  Output file: {args.output}", args.quiet)

    if args.stats and not args.quiet and scores:
        values = np.asarray(scores, dtype=np.int64)
        print("\nDetailed Statistics:")
        print(f"  Min score: {values.min()}")
        print(f"  Max score: {values.max()}")
        print(f"  Mean score: {values.mean():.4f}")
        print(f"  Std dev: {values.std():.4f}")
    return 0


def main(argv: Optional[List[str]] = None):
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="wfa2py",
        description="Pairwise sequence alignment with the WFA2 wavefront engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"wfa2py {__version__}",
    )

    # Global flags
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output (only show results and errors)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ========================================================================
    # ALIGN command
    # ========================================================================
    align_parser = subparsers.add_parser(
        "align",
        help="Align one pattern against one text",
    )
    align_parser.add_argument("pattern", help="Pattern (query) sequence")
    align_parser.add_argument("text", help="Text (reference) sequence")
    _add_alignment_options(align_parser)

    # ========================================================================
    # BATCH command
    # ========================================================================
    batch_parser = subparsers.add_parser(
        "batch",
        help="Align tab-separated sequence pairs from a file",
    )
    batch_parser.add_argument(
        "input",
        type=existing_file_type,
        help="File with one 'pattern<TAB>text' pair per line",
    )
    batch_parser.add_argument(
        "-o", "--output",
        type=output_path_type,
        required=True,
        help="Output TSV file (status, score, cigar)",
    )
    batch_parser.add_argument(
        "--stats",
        action="store_true",
        help="Show score statistics after completion",
    )
    _add_alignment_options(batch_parser)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, force=True)
    else:
        logging.basicConfig(level=logging.WARNING, force=True)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "align":
            return run_align(args)
        return run_batch(args)
    except Exception as e:
        LOGGER.debug("Command failed", exc_info=True)
        print(f"[FAIL] Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
