"""Numeric sequences rendered through R's ``seq``."""
from __future__ import annotations

from typing import Iterator, List, Union

from rlink.core.errors import ValidationError

Number = Union[int, float]


class Sequence:
    """Values from ``min`` to ``max`` (inclusive) by ``step``."""

    def __init__(self, min: Number, max: Number, step: Number = 1):
        if step == 0:
            raise ValidationError("RLNK-1007", reason="step must not be zero")
        self.min = min
        self.max = max
        self.step = step

    def by(self, step: Number) -> "Sequence":
        """Return a copy with a different step."""
        return Sequence(self.min, self.max, step)

    def __iter__(self) -> Iterator[Number]:
        value = self.min
        if self.step > 0:
            while value <= self.max:
                yield value
                value += self.step
        else:
            while value >= self.max:
                yield value
                value += self.step

    def to_list(self) -> List[Number]:
        return [value for value in self]

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def to_r(self) -> str:
        return f"seq(from={self.min}, to={self.max}, by={self.step})"

    def load_in_r_as(self, session, variable_name):
        session.eval(f"{variable_name} <- {self.to_r()}")

    def __repr__(self):
        return self.to_r()
