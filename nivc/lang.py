"""Lane registry — maps coprocessor fingerprints to lane indices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .coprocessor import Coprocessor
from .errors import UnknownLaneError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Lang:
    """Ordered, immutable set of coprocessors.

    Lane index ``i`` is the position of the coprocessor in construction
    order. Lookup tables are built once, so every query is O(1).
    """

    coprocessors: tuple[Coprocessor, ...] = ()
    # fingerprint → lane index
    _index: dict[int, int] = field(default_factory=dict, repr=False, compare=False)
    # name → fingerprint
    _names: dict[str, int] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        for i, coprocessor in enumerate(self.coprocessors):
            if coprocessor.name in self._names:
                raise ValueError(f"Duplicate coprocessor name: {coprocessor.name!r}")
            fp = coprocessor.fingerprint
            self._names[coprocessor.name] = fp
            self._index[fp] = i
        logger.debug("Built lane registry with %d coprocessors", len(self.coprocessors))

    @classmethod
    def of(cls, coprocessors: Iterable[Coprocessor] = ()) -> Lang:
        return cls(coprocessors=tuple(coprocessors))

    def count(self) -> int:
        return len(self.coprocessors)

    def index_of(self, fingerprint: int) -> int:
        try:
            return self._index[fingerprint]
        except KeyError:
            raise UnknownLaneError(
                f"No coprocessor with fingerprint {fingerprint:#x}"
            ) from None

    def fingerprint_of(self, index: int) -> int:
        return self.coprocessor_at(index).fingerprint

    def coprocessor_at(self, index: int) -> Coprocessor:
        if not 0 <= index < len(self.coprocessors):
            raise UnknownLaneError(
                f"Lane index {index} out of range for {len(self.coprocessors)} coprocessors"
            )
        return self.coprocessors[index]

    def get(self, fingerprint: int) -> Coprocessor:
        return self.coprocessors[self.index_of(fingerprint)]

    def lookup(self, name: str) -> int:
        """Return the fingerprint of the coprocessor called ``name``."""
        if name not in self._names:
            raise UnknownLaneError(f"No coprocessor named {name!r}")
        return self._names[name]

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._index

