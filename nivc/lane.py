"""Lane tags — which circuit produced a frame."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LaneKind(str, Enum):
    PRIMARY = "primary"
    AUXILIARY = "auxiliary"


@dataclass(frozen=True)
class LaneTag:
    """Either ``Primary`` or ``Auxiliary(fingerprint)``.

    The fingerprint is an opaque field element naming the coprocessor that
    produced the frame; it is ``None`` exactly when the tag is primary.
    """

    kind: LaneKind
    fingerprint: int | None = None

    def __post_init__(self):
        if (self.kind == LaneKind.PRIMARY) != (self.fingerprint is None):
            raise ValueError(
                f"{self.kind.value} lane tag with fingerprint {self.fingerprint!r}"
            )

    @classmethod
    def primary(cls) -> LaneTag:
        return PRIMARY

    @classmethod
    def auxiliary(cls, fingerprint: int) -> LaneTag:
        return cls(kind=LaneKind.AUXILIARY, fingerprint=fingerprint)

    @property
    def is_primary(self) -> bool:
        return self.kind == LaneKind.PRIMARY

    def __str__(self) -> str:
        if self.is_primary:
            return "Primary"
        return f"Auxiliary({self.fingerprint:#x})"


PRIMARY = LaneTag(kind=LaneKind.PRIMARY)
