"""
Indicator Series

Aligned, immutable sequence of optional floats. Position i always refers to
the same candle as position i of the source series; None marks positions
where not enough history exists yet.
"""

import math
from collections.abc import Iterable, Sequence
from typing import Optional, Union, overload

import numpy as np


class Series(Sequence):
    """Optional-float sequence produced by every indicator."""

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[Optional[float]] = ()):
        self._values: tuple[Optional[float], ...] = tuple(
            None if v is None or math.isnan(v) else float(v) for v in values
        )

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Series":
        """Build from a NumPy array where NaN marks missing values."""
        return cls(arr.tolist())

    @classmethod
    def empty(cls, length: int) -> "Series":
        return cls([None] * length)

    def to_array(self) -> np.ndarray:
        """NumPy view of the series with NaN in place of None."""
        return np.array(
            [np.nan if v is None else v for v in self._values], dtype=float
        )

    def to_list(self) -> list[Optional[float]]:
        return list(self._values)

    # -------------------------------------------------------------------------
    # Sequence protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._values)

    @overload
    def __getitem__(self, index: int) -> Optional[float]: ...

    @overload
    def __getitem__(self, index: slice) -> "Series": ...

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            return Series(self._values[index])
        return self._values[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Series):
            return self._values == other._values
        if isinstance(other, (list, tuple)):
            return self._values == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        return f"Series(len={len(self)}, leading_nulls={self.leading_nulls}, last={self.last()})"

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def leading_nulls(self) -> int:
        """Length of the null prefix."""
        for i, value in enumerate(self._values):
            if value is not None:
                return i
        return len(self._values)

    def last_index(self) -> Optional[int]:
        """Index of the last defined value."""
        for i in range(len(self._values) - 1, -1, -1):
            if self._values[i] is not None:
                return i
        return None

    def last(self) -> Optional[float]:
        """Last defined value."""
        index = self.last_index()
        return None if index is None else self._values[index]

    def defined(self) -> list[float]:
        """Defined values in order, nulls removed."""
        return [v for v in self._values if v is not None]

    @classmethod
    def realigned(
        cls, mask: Sequence[bool], values: Sequence[Optional[float]]
    ) -> "Series":
        """
        Scatter `values` back onto the positions where `mask` is True.

        Used after running a calculation on the defined values only.
        """
        it = iter(values)
        return cls(next(it) if keep else None for keep in mask)
