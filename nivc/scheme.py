"""Folding-scheme contract and the in-process reference scheme.

The proving loop only talks to ``FoldingScheme``: setup producing one
``RunningClaim`` per circuit, a digest over the claim set, base step, fold,
verify, and an encoding for cached setup parameters.

``ReferenceScheme`` is transparent and not succinct: its accumulator keeps a
hash-chained record of every folded step and verification re-checks that
chain. It exercises the same chaining invariants a real folding backend
enforces (state continuity, program-counter handoff, circuit shape) and is
what the test suite proves against.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, ValidationError

from . import constants, field
from .constraint_system import AllocatedNum, ConstraintSystem, shape_cs, witness_cs
from .errors import FoldingSchemeError

logger = logging.getLogger(__name__)


# ── Circuit contracts ────────────────────────────────────────────


class StepCircuit(ABC):
    """One foldable circuit, as seen by the folding scheme."""

    @abstractmethod
    def arity(self) -> int: ...

    @abstractmethod
    def circuit_index(self) -> int: ...

    @abstractmethod
    def synthesize(
        self,
        cs: ConstraintSystem,
        pc: AllocatedNum | None,
        z: list[AllocatedNum],
    ) -> tuple[AllocatedNum | None, list[AllocatedNum]]:
        """Constrain one step; return ``(next_pc, z_out)``."""
        ...


class NonUniformCircuit(ABC):
    """Dispatch table over every circuit a computation may fold."""

    @abstractmethod
    def num_circuits(self) -> int: ...

    @abstractmethod
    def primary_circuit(self, circuit_index: int) -> StepCircuit: ...


# ── Claims and accumulator ───────────────────────────────────────


class RunningClaim(BaseModel):
    """Per-circuit parameters derived once from a placeholder step."""

    model_config = ConfigDict(frozen=True)

    circuit_index: int
    num_circuits: int
    arity: int
    num_vars: int
    num_constraints: int
    shape_digest: int
    params_digest: int = 0


class ClaimSet(BaseModel):
    """One claim per circuit index, in index order."""

    model_config = ConfigDict(frozen=True)

    claims: list[RunningClaim]

    def digest(self) -> int:
        return _claims_digest(self.claims)

    def __getitem__(self, circuit_index: int) -> RunningClaim:
        return self.claims[circuit_index]

    def __len__(self) -> int:
        return len(self.claims)


def _claims_digest(claims: list[RunningClaim]) -> int:
    parts: list[int] = []
    for c in claims:
        parts.extend(
            [
                c.circuit_index,
                c.num_circuits,
                c.arity,
                c.num_vars,
                c.num_constraints,
                c.shape_digest,
            ]
        )
    return field.hash_to_field(constants.DOMAIN_CLAIMS, parts)


class StepRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    circuit_index: int
    program_counter: int
    next_program_counter: int
    z_in: list[int]
    z_out: list[int]
    shape_digest: int


class RecursiveSNARK(BaseModel):
    """Running accumulator, extended one step at a time."""

    model_config = ConfigDict(frozen=True)

    params_digest: int
    num_circuits: int
    num_steps: int
    program_counter: int
    last_circuit_index: int
    z0_primary: list[int]
    zi_primary: list[int]
    z0_secondary: list[int]
    zi_secondary: list[int]
    records: list[StepRecord]
    commitment: int


# ── Scheme contract ──────────────────────────────────────────────


class FoldingScheme(ABC):
    @abstractmethod
    def setup(self, circuit: NonUniformCircuit) -> ClaimSet:
        """Derive one RunningClaim per circuit index from a placeholder circuit."""
        ...

    @abstractmethod
    def base_step(
        self,
        claim: RunningClaim,
        step: StepCircuit,
        claims_digest: int,
        program_counter: int,
        circuit_index: int,
        num_circuits: int,
        z0_primary: list[int],
        z0_secondary: list[int],
    ) -> RecursiveSNARK: ...

    @abstractmethod
    def prove_step(
        self,
        snark: RecursiveSNARK,
        claim: RunningClaim,
        step: StepCircuit,
        z0_primary: list[int],
        z0_secondary: list[int],
    ) -> RecursiveSNARK: ...

    @abstractmethod
    def verify(
        self,
        snark: RecursiveSNARK,
        claim: RunningClaim,
        z0_primary: list[int],
        z0_secondary: list[int],
    ) -> list[int]:
        """Check the accumulator; return the final primary state."""
        ...

    def encode_claims(self, claims: ClaimSet) -> bytes:
        return claims.model_dump_json().encode("utf-8")

    def restore_claims(self, data: bytes) -> ClaimSet:
        try:
            return ClaimSet.model_validate_json(data)
        except ValidationError as exc:
            raise FoldingSchemeError(f"corrupt setup parameters: {exc}") from exc


# ── Reference scheme ─────────────────────────────────────────────


class ReferenceScheme(FoldingScheme):
    """Transparent hash-chained accumulator with a trivial secondary circuit."""

    def setup(self, circuit: NonUniformCircuit) -> ClaimSet:
        num_circuits = circuit.num_circuits()
        claims: list[RunningClaim] = []
        for circuit_index in range(num_circuits):
            primary = circuit.primary_circuit(circuit_index)
            cs = shape_cs()
            _synthesize_augmented(cs, primary, None, None)
            logger.debug(
                "circuit %d: %d vars, %d constraints",
                circuit_index,
                cs.num_vars,
                cs.num_constraints,
            )
            claims.append(
                RunningClaim(
                    circuit_index=circuit_index,
                    num_circuits=num_circuits,
                    arity=primary.arity(),
                    num_vars=cs.num_vars,
                    num_constraints=cs.num_constraints,
                    shape_digest=cs.shape_digest(),
                )
            )
        digest = _claims_digest(claims)
        return ClaimSet(
            claims=[c.model_copy(update={"params_digest": digest}) for c in claims]
        )

    def base_step(
        self,
        claim: RunningClaim,
        step: StepCircuit,
        claims_digest: int,
        program_counter: int,
        circuit_index: int,
        num_circuits: int,
        z0_primary: list[int],
        z0_secondary: list[int],
    ) -> RecursiveSNARK:
        if claims_digest != claim.params_digest:
            raise FoldingSchemeError("claim does not belong to the given claim set")
        if num_circuits != claim.num_circuits:
            raise FoldingSchemeError(
                f"claim set has {claim.num_circuits} circuits, step reports {num_circuits}"
            )
        if circuit_index != claim.circuit_index:
            raise FoldingSchemeError(
                f"circuit {circuit_index} bootstrapped with claim for circuit {claim.circuit_index}"
            )
        _check_secondary(z0_secondary)
        seed = _seed(claims_digest, z0_primary, z0_secondary)
        record = self._fold_record(claim, step, program_counter, z0_primary)
        return RecursiveSNARK(
            params_digest=claims_digest,
            num_circuits=num_circuits,
            num_steps=1,
            program_counter=record.next_program_counter,
            last_circuit_index=record.circuit_index,
            z0_primary=list(z0_primary),
            zi_primary=record.z_out,
            z0_secondary=list(z0_secondary),
            zi_secondary=list(z0_secondary),
            records=[record],
            commitment=_chain(seed, record),
        )

    def prove_step(
        self,
        snark: RecursiveSNARK,
        claim: RunningClaim,
        step: StepCircuit,
        z0_primary: list[int],
        z0_secondary: list[int],
    ) -> RecursiveSNARK:
        if snark.params_digest != claim.params_digest:
            raise FoldingSchemeError("claim does not belong to this accumulator")
        if z0_primary != snark.z0_primary or z0_secondary != snark.z0_secondary:
            raise FoldingSchemeError("initial state differs from the accumulator's")
        circuit_index = step.circuit_index()
        if snark.program_counter != circuit_index:
            raise FoldingSchemeError(
                f"program counter selects circuit {snark.program_counter}, "
                f"step uses circuit {circuit_index}"
            )
        record = self._fold_record(claim, step, snark.program_counter, snark.zi_primary)
        return snark.model_copy(
            update={
                "num_steps": snark.num_steps + 1,
                "program_counter": record.next_program_counter,
                "last_circuit_index": record.circuit_index,
                "zi_primary": record.z_out,
                "records": [*snark.records, record],
                "commitment": _chain(snark.commitment, record),
            }
        )

    def verify(
        self,
        snark: RecursiveSNARK,
        claim: RunningClaim,
        z0_primary: list[int],
        z0_secondary: list[int],
    ) -> list[int]:
        if snark.num_steps < 1 or snark.num_steps != len(snark.records):
            raise FoldingSchemeError("accumulator step count is inconsistent")
        if snark.params_digest != claim.params_digest:
            raise FoldingSchemeError("claim does not belong to this accumulator")
        if snark.last_circuit_index != claim.circuit_index:
            raise FoldingSchemeError(
                f"last step used circuit {snark.last_circuit_index}, "
                f"claim is for circuit {claim.circuit_index}"
            )
        if list(z0_primary) != snark.z0_primary:
            raise FoldingSchemeError("z0 does not match the accumulator")
        if list(z0_secondary) != snark.z0_secondary or snark.zi_secondary != snark.z0_secondary:
            raise FoldingSchemeError("secondary state does not match")

        commitment = _seed(snark.params_digest, z0_primary, z0_secondary)
        z = list(z0_primary)
        pc = snark.records[0].circuit_index
        for i, record in enumerate(snark.records):
            if record.z_in != z:
                raise FoldingSchemeError(f"step {i} does not continue from the previous state")
            if record.program_counter != pc or record.circuit_index != pc:
                raise FoldingSchemeError(
                    f"step {i} ran circuit {record.circuit_index} but the program counter was {pc}"
                )
            if record.circuit_index >= snark.num_circuits:
                raise FoldingSchemeError(f"step {i} names unknown circuit {record.circuit_index}")
            commitment = _chain(commitment, record)
            z = record.z_out
            pc = record.next_program_counter

        if commitment != snark.commitment:
            raise FoldingSchemeError("accumulator commitment mismatch")
        if z != snark.zi_primary or pc != snark.program_counter:
            raise FoldingSchemeError("accumulator final state mismatch")
        if snark.records[-1].shape_digest != claim.shape_digest:
            raise FoldingSchemeError("last step does not match the claim's circuit shape")
        return list(snark.zi_primary)

    def _fold_record(
        self,
        claim: RunningClaim,
        step: StepCircuit,
        program_counter: int,
        z_in: list[int],
    ) -> StepRecord:
        circuit_index = step.circuit_index()
        if circuit_index != claim.circuit_index or program_counter != circuit_index:
            raise FoldingSchemeError(
                f"step for circuit {circuit_index} folded with pc {program_counter} "
                f"against claim for circuit {claim.circuit_index}"
            )
        if len(z_in) != claim.arity:
            raise FoldingSchemeError(f"state has arity {len(z_in)}, claim expects {claim.arity}")

        cs = witness_cs()
        next_pc, z_out = _synthesize_augmented(cs, step, program_counter, z_in)
        if not cs.is_satisfied():
            raise FoldingSchemeError(
                f"circuit {circuit_index} unsatisfied at {cs.which_is_unsatisfied()}"
            )
        shape = cs.shape_digest()
        if shape != claim.shape_digest:
            raise FoldingSchemeError(
                f"step shape differs from the claim for circuit {circuit_index}"
            )
        return StepRecord(
            circuit_index=circuit_index,
            program_counter=program_counter,
            next_program_counter=next_pc,
            z_in=list(z_in),
            z_out=z_out,
            shape_digest=shape,
        )


def _synthesize_augmented(
    cs: ConstraintSystem,
    step: StepCircuit,
    program_counter: int | None,
    z_in: list[int] | None,
) -> tuple[int | None, list[int | None]]:
    """Wrap a step circuit with its program counter and state inputs."""
    pc = cs.alloc("program_counter", lambda: program_counter)
    z = [cs.alloc(f"z_in_{j}", lambda j=j: z_in[j]) for j in range(step.arity())]
    with cs.namespace("step"):
        next_pc, z_out = step.synthesize(cs, pc, z)
    if next_pc is None:
        raise FoldingSchemeError("non-uniform step circuits must output a program counter")
    return next_pc.get_value(), [n.get_value() for n in z_out]


def _check_secondary(z0_secondary: list[int]) -> None:
    if len(z0_secondary) != constants.SECONDARY_ARITY:
        raise FoldingSchemeError(
            f"secondary state must have {constants.SECONDARY_ARITY} element(s)"
        )


def _seed(params_digest: int, z0_primary: list[int], z0_secondary: list[int]) -> int:
    return field.hash_to_field(
        constants.DOMAIN_STEP, params_digest, z0_primary, z0_secondary
    )


def _chain(commitment: int, record: StepRecord) -> int:
    return field.hash_to_field(
        constants.DOMAIN_STEP,
        commitment,
        record.circuit_index,
        record.program_counter,
        record.next_program_counter,
        record.z_in,
        record.z_out,
        record.shape_digest,
    )


def get_scheme(name: str = constants.SCHEME_REFERENCE) -> FoldingScheme:
    """Factory for folding-scheme backends.

    Args:
        name: "reference"
    """
    if name == constants.SCHEME_REFERENCE:
        return ReferenceScheme()
    raise ValueError(f"Unknown folding scheme: {name}")
