"""Minimal constraint system used to synthesize step circuits.

Variables are allocated with a value *function* rather than a value: in shape
mode the function is never called, so placeholder circuits with no frame data
synthesize to exactly the same structure as real ones.
"""

from __future__ import annotations

import hashlib
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from . import constants, field
from .errors import SynthesisError, UnknownLaneError


@dataclass(frozen=True)
class AllocatedNum:
    index: int
    label: str
    value: int | None = None

    def get_value(self) -> int | None:
        return self.value


@dataclass(frozen=True)
class Constraint:
    label: str
    lhs: int
    rhs: int


class ConstraintSystem:
    """Records allocations and equality constraints.

    ``witness=True`` computes values and tracks satisfaction; ``witness=False``
    only records the shape.
    """

    def __init__(self, witness: bool = True):
        self.witness = witness
        self.variables: list[AllocatedNum] = []
        self.constraints: list[Constraint] = []
        # values fixed at circuit-definition time; part of the shape
        self.constants: list[AllocatedNum] = []
        self._prefix: list[str] = []
        self._unsatisfied: list[str] = []

    # ── Allocation ───────────────────────────────────────────────

    def alloc(self, label: str, value_fn: Callable[[], int]) -> AllocatedNum:
        value = None
        if self.witness:
            try:
                value = field.to_field(value_fn())
            except (SynthesisError, UnknownLaneError):
                raise
            except (ValueError, KeyError, TypeError) as exc:
                raise SynthesisError(
                    f"cannot compute {self._qualify(label)}: {exc}"
                ) from exc
        num = AllocatedNum(
            index=len(self.variables), label=self._qualify(label), value=value
        )
        self.variables.append(num)
        return num

    def alloc_constant(self, label: str, value: int) -> AllocatedNum:
        """Allocate a value known at circuit-definition time (present in shape mode too)."""
        num = AllocatedNum(
            index=len(self.variables),
            label=self._qualify(label),
            value=field.to_field(value),
        )
        self.variables.append(num)
        self.constants.append(num)
        return num

    # ── Constraints ──────────────────────────────────────────────

    def enforce_equal(self, label: str, a: AllocatedNum, b: AllocatedNum) -> None:
        qualified = self._qualify(label)
        self.constraints.append(Constraint(label=qualified, lhs=a.index, rhs=b.index))
        if not self.witness:
            return
        if a.value is None or b.value is None or a.value != b.value:
            self._unsatisfied.append(qualified)

    def is_satisfied(self) -> bool:
        return not self._unsatisfied

    def which_is_unsatisfied(self) -> str | None:
        return self._unsatisfied[0] if self._unsatisfied else None

    # ── Namespacing ──────────────────────────────────────────────

    @contextmanager
    def namespace(self, label: str) -> Iterator[ConstraintSystem]:
        self._prefix.append(label)
        try:
            yield self
        finally:
            self._prefix.pop()

    def _qualify(self, label: str) -> str:
        return "/".join([*self._prefix, label])

    # ── Shape ────────────────────────────────────────────────────

    @property
    def num_vars(self) -> int:
        return len(self.variables)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    def shape_digest(self) -> int:
        """Digest of the structure: labels, wiring and constant values, never witness values."""
        h = hashlib.sha256(constants.DOMAIN_SHAPE)
        for var in self.variables:
            h.update(var.label.encode("utf-8") + b"\x00")
        h.update(b"\x01")
        for c in self.constraints:
            h.update(f"{c.label}:{c.lhs}={c.rhs}".encode("utf-8") + b"\x00")
        h.update(b"\x02")
        for const in self.constants:
            h.update(
                f"{const.index}:{const.label}=".encode("utf-8")
                + const.value.to_bytes(8, "big")
            )
        return int.from_bytes(h.digest(), "big") % constants.GOLDILOCKS_PRIME


def shape_cs() -> ConstraintSystem:
    return ConstraintSystem(witness=False)


def witness_cs() -> ConstraintSystem:
    return ConstraintSystem(witness=True)
