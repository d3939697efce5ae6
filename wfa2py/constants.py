"""Constants and default values for wfa2py.

Defaults mirror the WFA2 engine's own defaults so that a context built with
no arguments behaves like ``wavefront_aligner_new(NULL)``.
"""

# Default gap-affine penalties of the engine (wavefront_aligner_attr_default)
DEFAULT_MATCH = 0
DEFAULT_MISMATCH = 4
DEFAULT_GAP_OPEN = 6
DEFAULT_GAP_EXTEND = 2

# Default dual-cost penalties used by the command line (short gaps follow the
# first curve, long gaps the second)
DEFAULT_GAP_OPEN2 = 24
DEFAULT_GAP_EXTEND2 = 1

# Native alignment status codes (wavefront_align return values)
STATUS_COMPLETED = 0
STATUS_PARTIAL = 1
STATUS_MAX_STEPS_REACHED = -100
STATUS_OOM = -200
STATUS_UNATTAINABLE = -300

# CIGAR operation symbols as written by the engine
OP_MATCH = ord("M")
OP_MISMATCH = ord("X")
OP_INSERTION = ord("I")
OP_DELETION = ord("D")

# Name of the compiled cffi extension module
EXTENSION_NAME = "_wfa2"
