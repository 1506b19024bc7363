"""Coprocessors — auxiliary computations proven in their own circuit lane."""

from __future__ import annotations

from abc import ABC, abstractmethod

from . import constants, field


class Coprocessor(ABC):
    """A unary function over the field with a stable name.

    The name determines the coprocessor's fingerprint, which is what frames
    carry in their lane tag.
    """

    name: str = ""

    @abstractmethod
    def evaluate(self, value: int) -> int:
        """Apply the coprocessor to one field element."""
        ...

    @property
    def fingerprint(self) -> int:
        return fingerprint_of_name(self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


def fingerprint_of_name(name: str) -> int:
    return field.hash_to_field(constants.DOMAIN_FINGERPRINT, name)


class SquareCoprocessor(Coprocessor):
    name = "square"

    def evaluate(self, value: int) -> int:
        return field.mul(value, value)


class CubeCoprocessor(Coprocessor):
    name = "cube"

    def evaluate(self, value: int) -> int:
        return field.mul(field.mul(value, value), value)


class InverseCoprocessor(Coprocessor):
    name = "inverse"

    def evaluate(self, value: int) -> int:
        return field.inv(value)


class AffineCoprocessor(Coprocessor):
    """``value * mul + add``, named by the caller."""

    def __init__(self, name: str, mul: int, add: int = 0):
        self.name = name
        self.mul = field.to_field(mul)
        self.add = field.to_field(add)

    def evaluate(self, value: int) -> int:
        return field.add(field.mul(value, self.mul), self.add)
