"""Error taxonomy for proving and verification.

Configuration and programming errors are never retryable. Scheme-level
failures carry ``retryable = True``: re-running with the same inputs may
succeed when the failure was caused by a transient resource problem.
"""

from __future__ import annotations


class ProofError(Exception):
    """Base class for every failure raised by this package."""

    retryable: bool = False


class EmptyTraceError(ProofError):
    """There are no frames to prove."""

    def __init__(self, message: str = "cannot prove an empty trace"):
        super().__init__(message)


class UnknownLaneError(ProofError, KeyError):
    """A fingerprint is absent from the lane registry, or a lane index is out of range."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown lane"


class SynthesisError(ProofError):
    """The circuit generator rejected a batch of frames."""


class UnsupportedProofKindError(ProofError, NotImplementedError):
    """The requested proof kind is not implemented (compressed proofs)."""


class FoldingSchemeError(Exception):
    """Raised by folding-scheme backends; translated by the proving loop."""


class SchemeError(ProofError):
    """A folding-scheme operation failed during one proving run."""

    retryable = True

    def __init__(self, message: str, step: int | None = None):
        super().__init__(message)
        self.step = step

    def __str__(self) -> str:
        base = super().__str__()
        if self.step is None:
            return base
        return f"step {self.step}: {base}"


class SetupError(SchemeError):
    """Running-claim setup failed."""


class BaseStepError(SchemeError):
    """The accumulator could not be bootstrapped from the first step."""


class FoldError(SchemeError):
    """A step could not be folded into the accumulator."""


class VerificationError(SchemeError):
    """The accumulator failed verification."""
