"""Prover run data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field

from . import constants
from .folding_config import FoldingMode
from .proof import Proof
from .scheme import RunningClaim


@dataclass(frozen=True)
class ProverConfig:
    """Groups prover configuration."""

    reduction_count: int = constants.DEFAULT_REDUCTION_COUNT
    mode: FoldingMode = FoldingMode.NON_UNIFORM
    # verify the accumulator after every fold (fail fast, slower)
    verify_steps: bool = True
    scheme: str = constants.SCHEME_REFERENCE

    def __post_init__(self):
        if self.reduction_count < 1:
            raise ValueError(
                f"reduction_count must be at least 1, got {self.reduction_count}"
            )


@dataclass
class ProvingStats:
    """Timing and size statistics for one proving run."""

    num_frames: int = 0
    num_steps: int = 0
    num_circuits: int = 0
    steps_per_circuit: dict[int, int] = field(default_factory=dict)

    # Stage timings (seconds)
    eval_time: float = 0.0
    setup_time: float = 0.0
    segment_time: float = 0.0
    prove_time: float = 0.0
    total_time: float = 0.0

    def report(self) -> str:
        lines = [
            "═══ Proving Statistics ═══",
            f"  {self.num_frames} frames → {self.num_steps} steps over {self.num_circuits} circuits",
            "",
            f"  {'Stage':<20} {'Time':>10}",
            f"  {'─' * 20} {'─' * 10}",
        ]
        stages = [
            ("Evaluate", self.eval_time),
            ("Setup claims", self.setup_time),
            ("Segment", self.segment_time),
            ("Fold + verify", self.prove_time),
        ]
        for name, t in stages:
            lines.append(f"  {name:<20} {t * 1000:>8.1f}ms")
        lines.append(f"  {'─' * 20} {'─' * 10}")
        lines.append(f"  {'Total':<20} {self.total_time * 1000:>8.1f}ms")
        if self.steps_per_circuit:
            lines.append("")
            for index in sorted(self.steps_per_circuit):
                lines.append(
                    f"  circuit {index}: {self.steps_per_circuit[index]} steps"
                )
        return "\n".join(lines)


@dataclass(frozen=True)
class ProveResult:
    """Everything a caller needs to verify the run independently."""

    proof: Proof
    z0: list[int]
    zi: list[int]
    num_steps: int
    last_claim: RunningClaim
    stats: ProvingStats = field(default_factory=ProvingStats, compare=False)
