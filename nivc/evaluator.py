"""Reference evaluator — runs a program and records one Frame per reduction."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from . import field
from .eval_types import IO, Frame
from .ir import Instruction, Opcode
from .lane import PRIMARY, LaneTag
from .lang import Lang

logger = logging.getLogger(__name__)

ARITH_TABLE: dict[Opcode, Callable[[int, int], int]] = {
    Opcode.CONST: lambda acc, k: k,
    Opcode.ADD: field.add,
    Opcode.SUB: field.sub,
    Opcode.MUL: field.mul,
}


def lane_of(instruction: Instruction, lang: Lang) -> LaneTag:
    """Lane tag of the frame that executes ``instruction``."""
    if instruction.opcode == Opcode.CALL:
        return LaneTag.auxiliary(lang.lookup(str(instruction.operand)))
    return PRIMARY


def reduce(io: IO, instruction: Instruction, lang: Lang) -> IO:
    """Single-step semantics, shared by the evaluator and the circuits.

    A halted state reduces to itself whatever the instruction.
    """
    if io.is_terminal:
        return io

    op = instruction.opcode
    next_ip = field.add(io.ip, 1)

    if op in ARITH_TABLE:
        k = field.to_field(_int_operand(instruction))
        return IO(ip=next_ip, acc=ARITH_TABLE[op](io.acc, k), reg=io.reg)
    if op == Opcode.ADDR:
        return IO(ip=next_ip, acc=field.add(io.acc, io.reg), reg=io.reg)
    if op == Opcode.SWAP:
        return IO(ip=next_ip, acc=io.reg, reg=io.acc)
    if op == Opcode.JNZ:
        target = field.to_field(_int_operand(instruction))
        return IO(ip=target if io.acc != 0 else next_ip, acc=io.acc, reg=io.reg)
    if op == Opcode.CALL:
        coprocessor = lang.get(lang.lookup(str(instruction.operand)))
        return IO(ip=next_ip, acc=coprocessor.evaluate(io.acc), reg=io.reg)
    if op == Opcode.HALT:
        return IO(ip=io.ip, acc=io.acc, reg=io.reg, halted=1)
    raise ValueError(f"Unhandled opcode: {op}")


def _int_operand(instruction: Instruction) -> int:
    if not isinstance(instruction.operand, int):
        raise ValueError(f"{instruction.opcode.value} needs an integer operand")
    return instruction.operand


def initial_io(env: Mapping[str, int] | None = None) -> IO:
    """Starting state; ``env`` may bind ``acc`` and ``reg``."""
    env = dict(env or {})
    unknown = set(env) - {"acc", "reg"}
    if unknown:
        raise ValueError(f"Unknown environment bindings: {sorted(unknown)}")
    return IO(
        acc=field.to_field(env.get("acc", 0)),
        reg=field.to_field(env.get("reg", 0)),
    )


def evaluate(
    program: list[Instruction],
    env: Mapping[str, int] | None,
    limit: int,
    lang: Lang,
) -> list[Frame]:
    """Execute ``program`` for at most ``limit`` reductions.

    Stops after the HALT frame has been recorded. Falling off the end of the
    program without a HALT is an error.

    Returns:
        Frames in execution order; frame ``i``'s output is frame ``i + 1``'s input.
    """
    io = initial_io(env)
    frames: list[Frame] = []

    for _ in range(limit):
        if io.ip >= len(program):
            raise ValueError(
                f"Instruction pointer {io.ip} outside program of length {len(program)}"
            )
        instruction = program[io.ip]
        output = reduce(io, instruction, lang)
        frames.append(
            Frame(
                input=io,
                output=output,
                witness=instruction,
                lane=lane_of(instruction, lang),
            )
        )
        io = output
        if io.is_terminal:
            break
    else:
        if limit:
            logger.info("Evaluation stopped at limit of %d frames", limit)

    logger.info("Evaluated %d frames (terminal=%s)", len(frames), io.is_terminal)
    return frames
