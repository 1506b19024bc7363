"""Instruction set of the reference accumulator machine."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Opcode(str, Enum):
    # Accumulator arithmetic
    CONST = "CONST"
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    ADDR = "ADDR"
    SWAP = "SWAP"
    # Control flow
    JNZ = "JNZ"
    HALT = "HALT"
    # Coprocessor invocation
    CALL = "CALL"


class Instruction(BaseModel):
    opcode: Opcode
    operand: int | str | None = None

    def __str__(self) -> str:
        if self.operand is None:
            return self.opcode.value.lower()
        return f"{self.opcode.value.lower()} {self.operand}"

    def opcode_code(self) -> int:
        """Stable small-int encoding of the opcode, used as a circuit witness."""
        return _OPCODE_CODES[self.opcode]


_OPCODE_CODES: dict[Opcode, int] = {op: i + 1 for i, op in enumerate(Opcode)}


def parse_program(source: str) -> list[Instruction]:
    """Parse one instruction per line: ``<opcode> [operand]``; ``#`` starts a comment."""
    program: list[Instruction] = []
    for lineno, raw in enumerate(source.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.split()
        try:
            opcode = Opcode(parts[0].upper())
        except ValueError as exc:
            raise ValueError(f"line {lineno}: unknown opcode {parts[0]!r}") from exc
        if len(parts) > 2:
            raise ValueError(f"line {lineno}: too many operands in {line!r}")
        operand: int | str | None = None
        if len(parts) == 2:
            operand = parts[1] if opcode == Opcode.CALL else int(parts[1], 0)
        program.append(Instruction(opcode=opcode, operand=operand))
    return program
