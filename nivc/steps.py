"""NIVC steps — segmentation of a frame trace into linked, foldable steps."""

from __future__ import annotations

import logging
from typing import Iterator, Sequence

from . import constants
from .circuit import MultiFrame
from .constraint_system import AllocatedNum, ConstraintSystem
from .errors import EmptyTraceError, SynthesisError, UnknownLaneError
from .eval_types import Frame
from .folding_config import FoldingConfig
from .lane import PRIMARY, LaneTag
from .scheme import NonUniformCircuit, StepCircuit

logger = logging.getLogger(__name__)


class NIVCStep(StepCircuit, NonUniformCircuit):
    """One step of an NIVC computation.

    Steps live in one owned sequence; ``next_index`` points at the successor
    in that sequence and is only read to learn which circuit it will use.
    """

    def __init__(self, multiframe: MultiFrame):
        self.multiframe = multiframe
        self.next_index: int | None = None
        self._arena: Sequence[NIVCStep] = ()

    @classmethod
    def blank(cls, folding_config: FoldingConfig, lane: LaneTag) -> NIVCStep:
        return cls(MultiFrame.blank(folding_config, lane))

    @property
    def folding_config(self) -> FoldingConfig:
        return self.multiframe.folding_config

    @property
    def lane(self) -> LaneTag:
        return self.multiframe.lane

    def link(self, arena: Sequence[NIVCStep], next_index: int) -> None:
        self._arena = arena
        self.next_index = next_index

    @property
    def next(self) -> NIVCStep | None:
        if self.next_index is None:
            return None
        return self._arena[self.next_index]

    def next_circuit_index(self) -> int:
        """Circuit of the successor; the primary circuit when this step is last."""
        successor = self.next
        if successor is None:
            return constants.PRIMARY_CIRCUIT_INDEX
        return successor.circuit_index()

    # ── StepCircuit ──────────────────────────────────────────────

    def arity(self) -> int:
        return self.multiframe.arity()

    def circuit_index(self) -> int:
        return self.multiframe.circuit_index()

    def synthesize(
        self,
        cs: ConstraintSystem,
        pc: AllocatedNum | None,
        z: list[AllocatedNum],
    ) -> tuple[AllocatedNum | None, list[AllocatedNum]]:
        if pc is not None and pc.get_value() is not None:
            if pc.get_value() == constants.PRIMARY_CIRCUIT_INDEX:
                logger.debug("synthesizing step circuit for the primary lane")
            else:
                logger.debug(
                    "synthesizing step circuit for coprocessor with pc: %d",
                    pc.get_value(),
                )
        output = self.multiframe.synthesize(cs, z)
        next_pc = cs.alloc("next_pc", self.next_circuit_index)
        logger.debug("synthesizing with next_pc: %s", next_pc.get_value())
        return next_pc, output

    # ── NonUniformCircuit ────────────────────────────────────────

    def num_circuits(self) -> int:
        if not self.lane.is_primary:
            raise ValueError(
                f"only a primary-lane step enumerates circuits, not one on {self.lane}"
            )
        return self.folding_config.num_circuits()

    def primary_circuit(self, circuit_index: int) -> NIVCStep:
        """Circuit 0 is this step itself; circuit k > 0 is a placeholder for lane k - 1."""
        logger.debug(
            "getting primary_circuit for index %d and lane %s", circuit_index, self.lane
        )
        if circuit_index == constants.PRIMARY_CIRCUIT_INDEX:
            return self
        try:
            lane = self.folding_config.lane_for_circuit(circuit_index)
        except UnknownLaneError:
            logger.debug("unsupported primary circuit index: %d", circuit_index)
            raise
        logger.debug("using coprocessor %d with lane %s", circuit_index - 1, lane)
        return NIVCStep.blank(self.folding_config, lane)

    def __repr__(self) -> str:
        return (
            f"NIVCStep(circuit={self.circuit_index()}, "
            f"frames={self.multiframe.frame_count()}, next={self.next_index})"
        )


class NIVCSteps:
    """All steps of an NIVC computation, in trace order."""

    def __init__(self, steps: list[NIVCStep]):
        self.steps = steps

    def num_steps(self) -> int:
        return len(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, idx: int) -> NIVCStep:
        return self.steps[idx]

    def __iter__(self) -> Iterator[NIVCStep]:
        return iter(self.steps)

    @classmethod
    def from_frames(
        cls,
        count: int,
        frames: Sequence[Frame],
        folding_config: FoldingConfig,
    ) -> NIVCSteps:
        """Separate frames according to NIVC circuit requirements.

        Consecutive frames on the same circuit form a batch. A primary batch
        closed by a lane change also receives the triggering frame as its
        boundary, so the batch's final state is checked against the state
        the next lane starts from. Primary batches are split into instances
        of ``count`` frames; auxiliary batches into one instance per frame.
        """
        if not frames:
            raise EmptyTraceError()
        if count != folding_config.reduction_count:
            raise ValueError(
                f"batch cap {count} differs from the configured reduction count "
                f"{folding_config.reduction_count}"
            )

        steps: list[NIVCStep] = []
        batch: list[Frame] = []
        batch_circuit = folding_config.circuit_index(frames[0].lane)

        for frame in frames:
            circuit = folding_config.circuit_index(frame.lane)
            if circuit == batch_circuit:
                batch.append(frame)
                continue
            boundary = frame if batch_circuit == constants.PRIMARY_CIRCUIT_INDEX else None
            steps.extend(cls._compile(count, batch, folding_config, boundary))
            batch = [frame]
            batch_circuit = circuit

        if batch:
            steps.extend(cls._compile(count, batch, folding_config, None))

        for i in range(len(steps) - 1):
            steps[i].link(steps, i + 1)

        logger.info("Segmented %d frames into %d steps", len(frames), len(steps))
        return cls(steps)

    @staticmethod
    def _compile(
        count: int,
        batch: list[Frame],
        folding_config: FoldingConfig,
        boundary: Frame | None,
    ) -> list[NIVCStep]:
        lane = batch[0].lane
        size = (
            count
            if folding_config.circuit_index(lane) == constants.PRIMARY_CIRCUIT_INDEX
            else constants.AUXILIARY_REDUCTION_COUNT
        )
        multiframes = MultiFrame.from_frames(size, batch, folding_config, boundary)
        if not multiframes:
            raise SynthesisError("circuit generator produced no instances")
        return [NIVCStep(mf) for mf in multiframes]


def blank_primary_step(folding_config: FoldingConfig) -> NIVCStep:
    """Placeholder primary-lane step used to fix circuit shapes during setup."""
    return NIVCStep.blank(folding_config, PRIMARY)
