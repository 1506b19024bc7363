"""Prover facade — evaluate → segment → fold → proof."""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Mapping, Sequence

from . import constants
from .errors import EmptyTraceError
from .eval_types import Frame
from .evaluator import evaluate
from .folding_config import FoldingConfig, FoldingMode
from .ir import Instruction, parse_program
from .lang import Lang
from .proof import Proof, PublicParams, prove_recursively, public_params
from .run_types import ProverConfig, ProveResult, ProvingStats
from .scheme import FoldingScheme, RunningClaim, get_scheme
from .steps import NIVCSteps

logger = logging.getLogger(__name__)


class SuperNovaProver:
    """Drives one folding configuration over any number of traces.

    The lane registry and configuration are read-only and may be shared by
    concurrent provers; running claims are set up per call unless a cached
    ``PublicParams`` is passed in.
    """

    def __init__(
        self,
        lang: Lang,
        config: ProverConfig = ProverConfig(),
        scheme: FoldingScheme | None = None,
    ):
        self._lang = lang
        self.config = config
        self.scheme = scheme or get_scheme(config.scheme)

    @classmethod
    def new(cls, reduction_count: int, lang: Lang) -> SuperNovaProver:
        return cls(lang, ProverConfig(reduction_count=reduction_count))

    def reduction_count(self) -> int:
        return self.config.reduction_count

    def lang(self) -> Lang:
        return self._lang

    def folding_config(self) -> FoldingConfig:
        if self.config.mode == FoldingMode.UNIFORM:
            return FoldingConfig.new_ivc(self._lang, self.config.reduction_count)
        return FoldingConfig.new_nivc(self._lang, self.config.reduction_count)

    def public_params(self) -> PublicParams:
        return public_params(self.folding_config(), self.scheme)

    def get_evaluation_frames(
        self,
        program: Sequence[Instruction] | str,
        env: Mapping[str, int] | None,
        limit: int = constants.DEFAULT_EVAL_LIMIT,
    ) -> list[Frame]:
        if isinstance(program, str):
            program = parse_program(program)
        return evaluate(list(program), env, limit, self._lang)

    def prove(
        self,
        frames: Sequence[Frame],
        pp: PublicParams | None = None,
        folding_config: FoldingConfig | None = None,
        stats: ProvingStats | None = None,
    ) -> ProveResult:
        """Prove a frame trace.

        Returns:
            ProveResult with the proof, the encoded first input ``z0``, the
            encoded last output ``zi``, the step count, and the claim of the
            last folded circuit.
        """
        if not frames:
            raise EmptyTraceError()
        folding_config = folding_config or self.folding_config()
        stats = stats or ProvingStats()
        start = time.perf_counter()

        z0 = frames[0].input.to_vector()
        zi = frames[-1].output.to_vector()

        t0 = time.perf_counter()
        if pp is None:
            pp = public_params(folding_config, self.scheme)
        else:
            pp.check_compatible(folding_config)
        stats.setup_time = time.perf_counter() - t0

        t0 = time.perf_counter()
        nivc_steps = NIVCSteps.from_frames(
            folding_config.reduction_count, frames, folding_config
        )
        stats.segment_time = time.perf_counter() - t0

        num_steps = nivc_steps.num_steps()
        t0 = time.perf_counter()
        outcome = prove_recursively(
            pp, nivc_steps, z0, self.scheme, verify_steps=self.config.verify_steps
        )
        stats.prove_time = time.perf_counter() - t0

        stats.num_frames = len(frames)
        stats.num_steps = num_steps
        stats.num_circuits = folding_config.num_circuits()
        stats.steps_per_circuit = dict(Counter(s.circuit_index() for s in nivc_steps))
        stats.total_time += time.perf_counter() - start
        logger.info(
            "Proved %d frames in %d steps (%.1fms)",
            len(frames),
            num_steps,
            stats.prove_time * 1000,
        )

        return ProveResult(
            proof=outcome.proof,
            z0=z0,
            zi=zi,
            num_steps=num_steps,
            last_claim=outcome.last_claim,
            stats=stats,
        )

    def evaluate_and_prove(
        self,
        program: Sequence[Instruction] | str,
        env: Mapping[str, int] | None = None,
        limit: int = constants.DEFAULT_EVAL_LIMIT,
        pp: PublicParams | None = None,
    ) -> ProveResult:
        stats = ProvingStats()
        t0 = time.perf_counter()
        frames = self.get_evaluation_frames(program, env, limit)
        stats.eval_time = time.perf_counter() - t0
        stats.total_time = stats.eval_time
        logger.info("got %d evaluation frames", len(frames))
        return self.prove(frames, pp=pp, stats=stats)

    def verify(
        self,
        claim: RunningClaim,
        proof: Proof,
        z0: list[int],
        zi: list[int] | None,
    ) -> bool:
        return proof.verify(claim, z0, zi, self.scheme)
