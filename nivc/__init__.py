"""NIVC folding orchestration: segment execution traces into steps and fold them into one proof."""

from .errors import (  # noqa: F401
    ProofError,
    EmptyTraceError,
    UnknownLaneError,
    SynthesisError,
    UnsupportedProofKindError,
    SchemeError,
    SetupError,
    BaseStepError,
    FoldError,
    VerificationError,
)
from .lane import LaneTag  # noqa: F401
from .lang import Lang  # noqa: F401
from .folding_config import FoldingConfig, FoldingMode  # noqa: F401
from .steps import NIVCStep, NIVCSteps  # noqa: F401
from .proof import Proof, ProofKind, PublicParams, prove_recursively  # noqa: F401
from .run_types import ProverConfig, ProveResult  # noqa: F401
from .prover import SuperNovaProver  # noqa: F401
