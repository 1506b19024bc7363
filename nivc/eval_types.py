"""Evaluation data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants
from .ir import Instruction
from .lane import PRIMARY, LaneTag


@dataclass(frozen=True)
class IO:
    """Machine state at a frame boundary; every component is a field element."""

    ip: int = 0
    acc: int = 0
    reg: int = 0
    halted: int = 0

    ARITY = constants.IO_ARITY

    def to_vector(self) -> list[int]:
        return [self.ip, self.acc, self.reg, self.halted]

    @classmethod
    def from_vector(cls, z: list[int]) -> IO:
        if len(z) != cls.ARITY:
            raise ValueError(f"IO vector must have {cls.ARITY} elements, got {len(z)}")
        ip, acc, reg, halted = z
        return cls(ip=ip, acc=acc, reg=reg, halted=halted)

    @property
    def is_terminal(self) -> bool:
        return self.halted == 1


@dataclass(frozen=True)
class Frame:
    """One reduction: ``input`` steps to ``output`` by executing ``witness``."""

    input: IO
    output: IO
    witness: Instruction
    lane: LaneTag = PRIMARY

    def __str__(self) -> str:
        return f"[{self.lane}] {self.witness}: {self.input} -> {self.output}"
