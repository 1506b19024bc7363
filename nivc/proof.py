"""Recursive proving loop, proof values and setup parameters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from . import constants
from .errors import (
    BaseStepError,
    EmptyTraceError,
    FoldError,
    FoldingSchemeError,
    SetupError,
    UnsupportedProofKindError,
    VerificationError,
)
from .folding_config import FoldingConfig
from .scheme import (
    ClaimSet,
    FoldingScheme,
    RecursiveSNARK,
    RunningClaim,
    get_scheme,
)
from .steps import NIVCSteps, blank_primary_step

logger = logging.getLogger(__name__)


def z0_secondary() -> list[int]:
    """Initial state of the trivial secondary circuit."""
    return [0] * constants.SECONDARY_ARITY


# ── Setup parameters ─────────────────────────────────────────────


@dataclass(frozen=True)
class PublicParams:
    """Running claims for one folding configuration, reusable across proving runs.

    ``lane_fingerprints`` names the coprocessor behind each auxiliary circuit,
    so parameters built for one registry are never reused with another. The
    claims themselves are encoded by the folding scheme unchanged.
    """

    claims: ClaimSet
    reduction_count: int
    lane_fingerprints: tuple[int, ...] = ()

    def num_circuits(self) -> int:
        return len(self.claims)

    def digest(self) -> int:
        return self.claims.digest()

    def __getitem__(self, circuit_index: int) -> RunningClaim:
        return self.claims[circuit_index]

    def to_bytes(self, scheme: FoldingScheme) -> bytes:
        header = self.reduction_count.to_bytes(4, "big")
        header += len(self.lane_fingerprints).to_bytes(4, "big")
        for fp in self.lane_fingerprints:
            header += fp.to_bytes(8, "big")
        return header + scheme.encode_claims(self.claims)

    @classmethod
    def from_bytes(cls, data: bytes, scheme: FoldingScheme) -> PublicParams:
        if len(data) < 8:
            raise SetupError("truncated setup parameters")
        reduction_count = int.from_bytes(data[:4], "big")
        num_lanes = int.from_bytes(data[4:8], "big")
        body = 8 + 8 * num_lanes
        if len(data) < body:
            raise SetupError("truncated setup parameters")
        lane_fingerprints = tuple(
            int.from_bytes(data[offset : offset + 8], "big")
            for offset in range(8, body, 8)
        )
        try:
            claims = scheme.restore_claims(data[body:])
        except FoldingSchemeError as exc:
            raise SetupError(str(exc)) from exc
        return cls(
            claims=claims,
            reduction_count=reduction_count,
            lane_fingerprints=lane_fingerprints,
        )

    def save(self, path: str | Path, scheme: FoldingScheme) -> None:
        Path(path).write_bytes(self.to_bytes(scheme))

    @classmethod
    def load(cls, path: str | Path, scheme: FoldingScheme) -> PublicParams:
        return cls.from_bytes(Path(path).read_bytes(), scheme)

    def check_compatible(self, folding_config: FoldingConfig) -> None:
        if (
            self.num_circuits() != folding_config.num_circuits()
            or self.reduction_count != folding_config.reduction_count
        ):
            raise SetupError(
                f"parameters for {self.num_circuits()} circuits at reduction count "
                f"{self.reduction_count} do not fit a configuration with "
                f"{folding_config.num_circuits()} circuits at "
                f"{folding_config.reduction_count}"
            )
        if self.lane_fingerprints != folding_config.lane_fingerprints():
            raise SetupError(
                "parameters were set up for a different coprocessor registry"
            )


def public_params(folding_config: FoldingConfig, scheme: FoldingScheme) -> PublicParams:
    """Set up running claims from a placeholder primary step (expensive; cache the result)."""
    # The primary lane stands in for an undifferentiated blank circuit.
    blank_step = blank_primary_step(folding_config)
    logger.info("setting up running claims")
    try:
        claims = scheme.setup(blank_step)
    except FoldingSchemeError as exc:
        raise SetupError(str(exc)) from exc
    logger.info("running claim setup complete (%d circuits)", len(claims))
    return PublicParams(
        claims=claims,
        reduction_count=folding_config.reduction_count,
        lane_fingerprints=folding_config.lane_fingerprints(),
    )


# ── Proof ────────────────────────────────────────────────────────


class ProofKind(str, Enum):
    RECURSIVE = "recursive"
    # No compressing SNARK exists for the non-uniform scheme yet.
    COMPRESSED = "compressed"


class Proof(BaseModel):
    kind: ProofKind
    snark: RecursiveSNARK | None = None

    @classmethod
    def recursive(cls, snark: RecursiveSNARK) -> Proof:
        return cls(kind=ProofKind.RECURSIVE, snark=snark)

    @classmethod
    def compressed(cls) -> Proof:
        return cls(kind=ProofKind.COMPRESSED)

    def verify(
        self,
        claim: RunningClaim,
        z0: list[int],
        zi: list[int] | None,
        scheme: FoldingScheme | None = None,
    ) -> bool:
        """Verify against the claim of the last folded lane.

        Returns False when the scheme rejects the proof or the final state
        differs from ``zi``; raises UnsupportedProofKindError for compressed proofs.
        """
        if self.kind == ProofKind.COMPRESSED:
            raise UnsupportedProofKindError("compressed proofs are not implemented")
        if self.snark is None:
            logger.info("recursive proof carries no accumulator")
            return False
        scheme = scheme or get_scheme()
        try:
            final = scheme.verify(self.snark, claim, list(z0), z0_secondary())
        except FoldingSchemeError as exc:
            logger.info("proof rejected: %s", exc)
            return False
        if zi is not None and list(zi) != final:
            logger.info("proof ends in %s, expected %s", final, list(zi))
            return False
        return True


@dataclass(frozen=True)
class RecursiveOutcome:
    proof: Proof
    last_claim: RunningClaim


def prove_recursively(
    pp: PublicParams,
    nivc_steps: NIVCSteps,
    z0: list[int],
    scheme: FoldingScheme,
    verify_steps: bool = True,
) -> RecursiveOutcome:
    """Fold every step in order into one accumulator.

    The first step bootstraps the accumulator; each later step is folded in.
    With ``verify_steps`` the accumulator is verified after every step.

    Returns:
        The recursive proof and the claim of the last folded circuit, which
        is what the proof must be verified against.
    """
    if nivc_steps.num_steps() == 0:
        raise EmptyTraceError()

    z0_primary = list(z0)
    z0_sec = z0_secondary()
    claims_digest = pp.digest()
    snark: RecursiveSNARK | None = None
    last_claim: RunningClaim | None = None

    for i, step in enumerate(nivc_steps):
        logger.info("prove_recursively, step %d", i)
        circuit_index = step.circuit_index()
        if circuit_index >= pp.num_circuits():
            raise SetupError(
                f"step uses circuit {circuit_index} but only {pp.num_circuits()} were set up",
                step=i,
            )
        claim = pp[circuit_index]

        if snark is None:
            logger.info("base step %d", i)
            try:
                snark = scheme.base_step(
                    claim,
                    step,
                    claims_digest,
                    circuit_index,
                    circuit_index,
                    step.folding_config.num_circuits(),
                    z0_primary,
                    z0_sec,
                )
            except FoldingSchemeError as exc:
                raise BaseStepError(str(exc), step=i) from exc
        else:
            logger.info("prove_step %d", i)
            try:
                snark = scheme.prove_step(snark, claim, step, z0_primary, z0_sec)
            except FoldingSchemeError as exc:
                raise FoldError(str(exc), step=i) from exc

        if verify_steps:
            logger.info("verify step %d", i)
            try:
                scheme.verify(snark, claim, z0_primary, z0_sec)
            except FoldingSchemeError as exc:
                raise VerificationError(str(exc), step=i) from exc

        last_claim = claim

    return RecursiveOutcome(proof=Proof.recursive(snark), last_claim=last_claim)
