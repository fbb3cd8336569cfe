"""Mirror of the factor type in R."""
from __future__ import annotations

import functools
import logging
from typing import Any, Iterable, Iterator, List, Sequence

from rlink.core import codec
from rlink.core.datatype import RDatatype, class_names
from rlink.core.errors import InvalidIndexError, TypeMismatchError, UnknownNameError
from rlink.core.registry import register_datatype

logger = logging.getLogger(__name__)


@functools.total_ordering
class FactorValue:
    """
    One element of a factor: its 1-based code and its level.

    Compares equal to a FactorValue with the same pair, to its code and to
    its level name. Orders by code, as R does.
    """

    __slots__ = ("value", "level")

    def __init__(self, value: int, level: str):
        self.value = value
        self.level = level

    def __int__(self):
        return self.value

    def __str__(self):
        return str(self.level)

    def __repr__(self):
        return repr(self.level)

    def to_r(self) -> str:
        return str(self.value)

    def __eq__(self, other):
        if isinstance(other, FactorValue):
            return self.value == other.value and self.level == other.level
        if isinstance(other, bool):
            return False
        if isinstance(other, int):
            return self.value == other
        if isinstance(other, str):
            return self.level == other
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, FactorValue):
            return self.value < other.value
        if isinstance(other, int) and not isinstance(other, bool):
            return self.value < other
        return NotImplemented

    def __hash__(self):
        return hash((self.value, self.level))


@register_datatype
class Factor(RDatatype):
    """
    Parallel arrays of 1-based integer codes and ordered levels.

    Every code is in ``[1, len(levels)]``.
    """

    @classmethod
    def can_pull(cls, r_type, r_class):
        return "factor" in class_names(r_class)

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        levels = codec.as_list(session.pull(f"levels({variable})"))
        values = codec.as_list(session.pull(f"as.integer({variable})"))
        return cls([int(v) for v in values], levels)

    def load_in_r_as(self, session, variable_name):
        session.eval(
            f"{variable_name} <- factor({codec.render(self._values)}, "
            f"levels={self._level_codes()}, labels={codec.render(self._levels)})"
        )

    def __init__(self, values: Iterable[int], levels: Iterable[Any]):
        self._levels: List[str] = [str(level) for level in levels]
        self._values: List[int] = list(values)
        for code in self._values:
            self._check_code(code)

    @classmethod
    def from_labels(cls, labels: Sequence[Any], levels: Sequence[Any] = None) -> Factor:
        """Build a factor from level names (levels default to the sorted distinct labels)."""
        if levels is None:
            levels = sorted({str(label) for label in labels})
        levels = [str(level) for level in levels]
        factor = cls([], levels)
        for label in labels:
            factor.append(label)
        return factor

    @property
    def levels(self) -> List[str]:
        return self._levels

    @property
    def codes(self) -> List[int]:
        return self._values

    def _level_codes(self) -> str:
        return f"1:{len(self._levels)}" if self._levels else "integer(0)"

    def _check_code(self, code: Any):
        if not isinstance(code, int) or isinstance(code, bool):
            raise TypeMismatchError("RLNK-1002", expected="int code", actual=type(code).__name__)
        if code < 1 or code > len(self._levels):
            raise InvalidIndexError(
                "RLNK-1006",
                f"The given value {code} is outside the factor bounds [1, {len(self._levels)}]",
                index=code,
            )

    def _to_code(self, value: Any) -> int:
        if isinstance(value, FactorValue):
            if value.level not in self._levels:
                raise UnknownNameError(
                    "RLNK-1004",
                    f"Incompatible factor value {value.level!r}, expected one of {', '.join(self._levels)}",
                    name=value.level,
                )
            return self._levels.index(value.level) + 1

        if isinstance(value, str):
            if value not in self._levels:
                raise UnknownNameError(
                    "RLNK-1004",
                    f"Unsupported value {value!r}; expected {', '.join(self._levels)}",
                    name=value,
                )
            return self._levels.index(value) + 1

        self._check_code(value)
        return value

    def __getitem__(self, i: int) -> FactorValue:
        code = self._values[i]
        return FactorValue(code, self._levels[code - 1])

    def __setitem__(self, i: int, value: Any):
        """Set element ``i`` from a code, a FactorValue or a level name."""
        code = self._to_code(value)
        self._values[i] = code

    def __delitem__(self, i: int):
        del self._values[i]

    def append(self, value: Any):
        self._values.append(self._to_code(value))

    def take(self, indices: Iterable[int]) -> Factor:
        """New factor with the elements at ``indices``, same levels."""
        return Factor([self._values[i] for i in indices], self._levels)

    def copy(self) -> Factor:
        return Factor(self._values, self._levels)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[FactorValue]:
        for code in self._values:
            yield FactorValue(code, self._levels[code - 1])

    def to_list(self) -> List[FactorValue]:
        return list(self)

    def labels(self) -> List[str]:
        """The level name of every element."""
        return [self._levels[code - 1] for code in self._values]

    def __eq__(self, other):
        if not isinstance(other, Factor):
            return NotImplemented
        return self._levels == other._levels and self._values == other._values

    __hash__ = object.__hash__

    def _hash_payload(self):
        return (self._values, self._levels)

    def __repr__(self):
        return repr(self.to_list())
