"""Folding configuration — which circuit handles which lane."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from . import constants
from .lane import LaneTag
from .lang import Lang

logger = logging.getLogger(__name__)


class FoldingMode(str, Enum):
    """UNIFORM (IVC): one circuit for every frame. NON_UNIFORM (NIVC): one circuit per lane."""

    UNIFORM = "uniform"
    NON_UNIFORM = "non_uniform"


@dataclass(frozen=True)
class FoldingConfig:
    """Read-only context shared by every step of one proving run.

    The primary lane is always circuit 0. In non-uniform mode auxiliary lane
    ``k`` (the registry's index for a fingerprint) is circuit ``k + 1``.
    """

    mode: FoldingMode
    lang: Lang
    reduction_count: int

    def __post_init__(self):
        if self.reduction_count < 1:
            raise ValueError(
                f"reduction_count must be at least 1, got {self.reduction_count}"
            )

    @classmethod
    def new_ivc(cls, lang: Lang, reduction_count: int) -> FoldingConfig:
        return cls(mode=FoldingMode.UNIFORM, lang=lang, reduction_count=reduction_count)

    @classmethod
    def new_nivc(cls, lang: Lang, reduction_count: int) -> FoldingConfig:
        return cls(
            mode=FoldingMode.NON_UNIFORM, lang=lang, reduction_count=reduction_count
        )

    def circuit_index(self, lane: LaneTag) -> int:
        """Circuit assigned to frames tagged ``lane``; unknown fingerprints raise UnknownLaneError."""
        if self.mode == FoldingMode.UNIFORM or lane.is_primary:
            return constants.PRIMARY_CIRCUIT_INDEX
        return self.lang.index_of(lane.fingerprint) + 1

    def num_circuits(self) -> int:
        if self.mode == FoldingMode.UNIFORM:
            return 1
        return 1 + self.lang.count()

    def lane_for_circuit(self, circuit_index: int) -> LaneTag:
        """Inverse of ``circuit_index`` over the non-uniform dispatch table."""
        if circuit_index == constants.PRIMARY_CIRCUIT_INDEX:
            return LaneTag.primary()
        return LaneTag.auxiliary(self.lang.fingerprint_of(circuit_index - 1))

    def batch_size(self, lane: LaneTag) -> int:
        """Frames per circuit instance for ``lane``'s circuit."""
        if self.circuit_index(lane) == constants.PRIMARY_CIRCUIT_INDEX:
            return self.reduction_count
        return constants.AUXILIARY_REDUCTION_COUNT

    def lane_fingerprints(self) -> tuple[int, ...]:
        """Fingerprint run by each auxiliary circuit, in circuit order (empty in uniform mode)."""
        return tuple(
            self.lane_for_circuit(index).fingerprint
            for index in range(1, self.num_circuits())
        )
