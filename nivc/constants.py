"""Named constants — eliminates magic numbers across the codebase."""

from __future__ import annotations

# Goldilocks prime: p = 2^64 - 2^32 + 1
GOLDILOCKS_PRIME = 0xFFFFFFFF00000001

# Small-step reductions folded into one primary-lane step
DEFAULT_REDUCTION_COUNT = 10

# Default bound on evaluation frames
DEFAULT_EVAL_LIMIT = 1000

# IO layout: (ip, acc, reg, halted)
IO_ARITY = 4

# The primary (interpreter) circuit always sits at index 0
PRIMARY_CIRCUIT_INDEX = 0

# Auxiliary lanes are proven one invocation per step
AUXILIARY_REDUCTION_COUNT = 1

# Secondary circuit of the curve cycle is trivial over this single element
SECONDARY_ARITY = 1

SCHEME_REFERENCE = "reference"

DOMAIN_FINGERPRINT = b"nivc/coprocessor"
DOMAIN_SHAPE = b"nivc/shape"
DOMAIN_CLAIMS = b"nivc/claims"
DOMAIN_STEP = b"nivc/step"
