"""Circuit generator — compiles same-lane frame batches into step circuits.

A ``MultiFrame`` is one circuit instance: a fixed number of reduction slots,
each proving that one frame's output is the reduction of the running state.
Unused trailing slots are padding and leave the state unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from . import constants
from .constraint_system import AllocatedNum, ConstraintSystem
from .errors import SynthesisError
from .eval_types import IO, Frame
from .evaluator import reduce
from .folding_config import FoldingConfig, FoldingMode
from .ir import Opcode
from .lane import LaneTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotWitness:
    """Values assigned to one reduction slot."""

    is_padding: int
    opcode: int
    input: list[int]
    reduced: list[int]
    output: list[int]
    callee: int


@dataclass
class MultiFrame:
    folding_config: FoldingConfig
    lane: LaneTag
    count: int
    # None for a placeholder (blank) instance
    frames: list[Frame] | None = None
    # pivot frame duplicated from the next batch; validated, never reduced
    boundary: Frame | None = field(default=None, repr=False)

    @classmethod
    def blank(cls, folding_config: FoldingConfig, lane: LaneTag) -> MultiFrame:
        """Placeholder with the shape of ``lane``'s circuit and no frame data."""
        return cls(
            folding_config=folding_config,
            lane=lane,
            count=folding_config.batch_size(lane),
        )

    @classmethod
    def from_frames(
        cls,
        count: int,
        frames: list[Frame],
        folding_config: FoldingConfig,
        boundary: Frame | None = None,
    ) -> list[MultiFrame]:
        """Split a same-lane batch into circuit instances of at most ``count`` frames.

        The lane's circuit has a fixed number of slots and ``count`` may not
        exceed it; the final instance is padded.
        """
        if not frames:
            return []
        lane = frames[0].lane
        index = folding_config.circuit_index(lane)
        for frame in frames:
            if folding_config.circuit_index(frame.lane) != index:
                raise SynthesisError(
                    f"batch mixes circuit {index} with frame on lane {frame.lane}"
                )
        slots = folding_config.batch_size(lane)
        if not 1 <= count <= slots:
            raise SynthesisError(
                f"cannot batch {count} frames per instance of a {slots}-slot circuit"
            )
        chunks = [frames[i : i + count] for i in range(0, len(frames), count)]

        if boundary is not None and chunks[-1][-1].output != boundary.input:
            raise SynthesisError(
                f"batch ends in state {chunks[-1][-1].output} but the next lane "
                f"starts from {boundary.input}"
            )

        return [
            cls(
                folding_config=folding_config,
                lane=lane,
                count=slots,
                frames=list(chunk),
                boundary=boundary if i == len(chunks) - 1 else None,
            )
            for i, chunk in enumerate(chunks)
        ]

    # ── Shape ────────────────────────────────────────────────────

    @staticmethod
    def arity() -> int:
        return IO.ARITY

    def circuit_index(self) -> int:
        index = self.folding_config.circuit_index(self.lane)
        logger.debug("circuit_index for %s: %d", self.lane, index)
        return index

    @property
    def is_blank(self) -> bool:
        return self.frames is None

    @property
    def input(self) -> IO | None:
        return self.frames[0].input if self.frames else None

    @property
    def output(self) -> IO | None:
        return self.frames[-1].output if self.frames else None

    def frame_count(self) -> int:
        return len(self.frames) if self.frames else 0

    # ── Synthesis ────────────────────────────────────────────────

    def synthesize(
        self, cs: ConstraintSystem, z: list[AllocatedNum]
    ) -> list[AllocatedNum]:
        if len(z) != self.arity():
            raise SynthesisError(
                f"expected state of arity {self.arity()}, got {len(z)}"
            )
        if self.frames is not None and len(self.frames) > self.count:
            raise SynthesisError(
                f"{len(self.frames)} frames do not fit in {self.count} slots"
            )

        is_auxiliary = self.circuit_index() != constants.PRIMARY_CIRCUIT_INDEX
        zero = cs.alloc_constant("zero", 0)
        # The callee each slot must match: this lane's coprocessor, or none at
        # all for the primary circuit when coprocessors have their own circuits.
        if is_auxiliary:
            expected_callee = cs.alloc_constant("lane_fingerprint", self.lane.fingerprint)
        elif self.folding_config.mode == FoldingMode.NON_UNIFORM:
            expected_callee = zero
        else:
            expected_callee = None

        current = z
        prev_padding = zero
        for slot in range(self.count):
            frame = self._frame_at(slot)
            with cs.namespace(f"slot_{slot}"):
                w = (
                    self._slot_witness(frame, [n.value for n in current])
                    if cs.witness
                    else None
                )

                is_padding = cs.alloc("is_padding", lambda: w.is_padding)
                # Once a slot is padding, every later slot is too.
                order = cs.alloc(
                    "padding_order",
                    lambda: prev_padding.value * (1 - is_padding.value),
                )
                cs.enforce_equal("padding_trails", order, zero)
                cs.alloc("opcode", lambda: w.opcode)

                inputs = [
                    cs.alloc(f"input_{j}", lambda j=j: w.input[j])
                    for j in range(self.arity())
                ]
                for j in range(self.arity()):
                    cs.enforce_equal(f"input_{j}_chains", inputs[j], current[j])

                reduced = [
                    cs.alloc(f"reduced_{j}", lambda j=j: w.reduced[j])
                    for j in range(self.arity())
                ]
                outputs = [
                    cs.alloc(f"output_{j}", lambda j=j: w.output[j])
                    for j in range(self.arity())
                ]
                for j in range(self.arity()):
                    cs.enforce_equal(f"output_{j}_reduces", reduced[j], outputs[j])

                if expected_callee is not None:
                    callee = cs.alloc("callee", lambda: w.callee)
                    cs.enforce_equal("callee_is_lane", callee, expected_callee)

            current = outputs
            prev_padding = is_padding

        return current

    def _frame_at(self, slot: int) -> Frame | None:
        if self.frames is None or slot >= len(self.frames):
            return None
        return self.frames[slot]

    def _slot_witness(self, frame: Frame | None, state: list[int]) -> SlotWitness:
        if frame is None:
            return SlotWitness(
                is_padding=1,
                opcode=0,
                input=list(state),
                reduced=list(state),
                output=list(state),
                callee=0,
            )
        lang = self.folding_config.lang
        callee = 0
        if frame.witness.opcode == Opcode.CALL:
            callee = lang.lookup(str(frame.witness.operand))
        try:
            reduced = reduce(IO.from_vector(state), frame.witness, lang)
        except ValueError as exc:
            raise SynthesisError(f"cannot reduce {frame.witness}: {exc}") from exc
        return SlotWitness(
            is_padding=0,
            opcode=frame.witness.opcode_code(),
            input=frame.input.to_vector(),
            reduced=reduced.to_vector(),
            output=frame.output.to_vector(),
            callee=callee,
        )
