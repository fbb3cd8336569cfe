"""Mirror of the matrix type in R."""
from __future__ import annotations

import logging
import numbers
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from rlink.core import codec
from rlink.core.datatype import RDatatype, class_names
from rlink.core.errors import (
    InvalidIndexError,
    ShapeMismatchError,
    TypeMismatchError,
    UnknownNameError,
)
from rlink.core.registry import register_datatype

logger = logging.getLogger(__name__)

Index = Union[int, str]


def _names_or_none(names: Any) -> Optional[List[str]]:
    names = codec.as_list(names)
    if not names or all(name is None for name in names):
        return None
    return [str(name) for name in names]


@register_datatype
class Matrix(RDatatype):
    """
    Rectangular, non-empty, numeric 2D array with optional row and column
    names. Elements are addressed by position or by name.
    """

    @classmethod
    def can_pull(cls, r_type, r_class):
        return "matrix" in class_names(r_class)

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        dims = codec.as_list(session.pull(f"dim({variable})"))
        n_rows, n_cols = int(dims[0]), int(dims[1])
        flat = codec.as_list(session.pull(f"as.vector({variable})"))
        # R stores matrices column-major
        data = [[flat[j * n_rows + i] for j in range(n_cols)] for i in range(n_rows)]

        row_names = _names_or_none(session.pull(f"rownames({variable})"))
        column_names = _names_or_none(session.pull(f"colnames({variable})"))
        return cls(data, row_names, column_names)

    def load_in_r_as(self, session, variable_name):
        dimnames = ""
        if self._row_names or self._column_names:
            dimnames = f", dimnames=list({codec.render(self._row_names)}, {codec.render(self._column_names)})"
        session.eval(
            f"{variable_name} <- matrix({codec.render(self.flatten())}, "
            f"nrow={self.rows}, ncol={self.cols}, byrow=TRUE{dimnames})"
        )

    def __init__(
        self,
        data: Union[Sequence[Sequence[float]], np.ndarray],
        row_names: Optional[List[str]] = None,
        column_names: Optional[List[str]] = None,
    ):
        if isinstance(data, np.ndarray):
            data = data.tolist()
        if not isinstance(data, (list, tuple)) or not all(isinstance(row, (list, tuple)) for row in data):
            raise TypeMismatchError("RLNK-1002", expected="list of lists", actual=type(data).__name__)

        self._data: List[List[Any]] = [list(row) for row in data]
        self._row_names = list(row_names) if row_names is not None else None
        self._column_names = list(column_names) if column_names is not None else None

        flat = self.flatten()
        if not flat:
            raise ShapeMismatchError("RLNK-1003", "Empty matrices are not allowed")
        if not all(isinstance(e, numbers.Real) and not isinstance(e, bool) for e in flat):
            raise TypeMismatchError("RLNK-1002", "Only numeric matrices are supported",
                                    expected="numeric", actual="mixed")
        if len({len(row) for row in self._data}) != 1:
            raise ShapeMismatchError("RLNK-1003", "All the rows must have the same size")
        if self._row_names is not None and len(self._row_names) != self.rows:
            raise ShapeMismatchError(
                "RLNK-1003",
                f"Expected row names {self._row_names} to match the number of rows ({self.rows})",
            )
        if self._column_names is not None and len(self._column_names) != self.cols:
            raise ShapeMismatchError(
                "RLNK-1003",
                f"Expected column names {self._column_names} to match the number of columns ({self.cols})",
            )

    @property
    def rows(self) -> int:
        return len(self._data)

    @property
    def cols(self) -> int:
        return len(self._data[0])

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.cols

    @property
    def rownames(self) -> Optional[List[str]]:
        return self._row_names

    @property
    def colnames(self) -> Optional[List[str]]:
        return self._column_names

    def flatten(self) -> List[Any]:
        """Row-major list of all the elements."""
        return [e for row in self._data for e in row]

    def to_numpy(self) -> np.ndarray:
        return np.array(self._data)

    def _resolve(self, index: Index, names: Optional[List[str]], size: int, axis: str) -> int:
        if isinstance(index, str):
            if not names or index not in names:
                raise UnknownNameError("RLNK-1004", f"Can not find {axis} {index}", name=index)
            return names.index(index)

        if not isinstance(index, int) or isinstance(index, bool):
            raise TypeMismatchError(
                "RLNK-1002",
                "Expected i and j to be both integers or strings",
                expected="int or str",
                actual=type(index).__name__,
            )
        if not 0 <= index < size:
            raise InvalidIndexError("RLNK-1006", f"Wrong {axis} index {index}", index=index)
        return index

    def _indices(self, key: Tuple[Index, Index]) -> Tuple[int, int]:
        if not isinstance(key, tuple) or len(key) != 2:
            raise TypeMismatchError("RLNK-1002", expected="(i, j)", actual=repr(key))
        i, j = key
        return (
            self._resolve(i, self._row_names, self.rows, "row"),
            self._resolve(j, self._column_names, self.cols, "column"),
        )

    def __getitem__(self, key: Tuple[Index, Index]) -> Any:
        i, j = self._indices(key)
        return self._data[i][j]

    def __setitem__(self, key: Tuple[Index, Index], value: Any):
        i, j = self._indices(key)
        self._data[i][j] = value

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        return (self._data == other._data and self._row_names == other._row_names
                and self._column_names == other._column_names)

    __hash__ = object.__hash__

    def _hash_payload(self):
        return (self._data, self._row_names, self._column_names)

    def __repr__(self):
        row_names = self._row_names or [str(i) for i in range(self.rows)]
        column_names = self._column_names or [str(j) for j in range(self.cols)]
        widths = [
            max([len(name)] + [len(repr(row[j])) for row in self._data])
            for j, name in enumerate(column_names)
        ]
        label_width = max(len(name) for name in row_names) + 3
        separator = " | "
        rule = "-" * (sum(widths) + label_width + len(separator) * (len(widths) - 1))

        lines = [rule, " " * label_width + separator.join(n.rjust(w) for n, w in zip(column_names, widths)), rule]
        for name, row in zip(row_names, self._data):
            label = f"[{name.rjust(label_width - 3)}] "
            lines.append(label + separator.join(repr(v).rjust(w) for v, w in zip(row, widths)))
        lines.append(rule)
        return "\n".join(lines)
