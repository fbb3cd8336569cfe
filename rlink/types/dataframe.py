"""
Data Frame Module

Columnar table mirroring R's data.frame.

A frame is an ordered list of unique column labels plus one column per
label. Columns are Python lists (or ``Factor`` objects for categorical data)
and all have the same length, the row count. Row order is preserved by every
operation except ``sort_by``/``shuffle``.

Methods ending in ``_inplace`` mutate the frame; their plain counterparts
return an independent copy. Violated preconditions raise before anything is
changed.

Usage:
    from rlink.types.dataframe import DataFrame

    df = DataFrame({"g": [1, 2, 1], "v": [10, 5, 20]})
    df.add_row([3, 7])
    totals = df.aggregate("g", sum)     # one row per g, ascending
    joined = df.merge(other, ["g"])     # inner join on g
"""
from __future__ import annotations

import logging
import random
from typing import (
    Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
)

import pandas as pd

from rlink.core import codec
from rlink.core.datatype import RDatatype, class_names, pull_variable
from rlink.core.errors import (
    DuplicateNameError,
    ShapeMismatchError,
    TypeMismatchError,
    UnknownNameError,
    ValidationError,
)
from rlink.core.registry import register_datatype
from rlink.types.factor import Factor

logger = logging.getLogger(__name__)

Column = Union[List[Any], Factor]
Row = Dict[str, Any]


def _copy_column(values: Iterable[Any]) -> Column:
    if isinstance(values, Factor):
        return values.copy()
    return list(values)


def _take(column: Column, indices: Sequence[int]) -> Column:
    if isinstance(column, Factor):
        return column.take(indices)
    return [column[i] for i in indices]


def _r_cell(value: Any) -> Any:
    # NULL can not be stored in a data.frame cell
    return float("nan") if value is None else value


def _sort_key(value: Any) -> Tuple[bool, Any]:
    if codec.is_na(value):
        return True, 0
    return False, value


def _same_key(a: Any, b: Any) -> bool:
    if codec.is_na(a) or codec.is_na(b):
        return codec.is_na(a) and codec.is_na(b)
    return a == b


@register_datatype
class DataFrame(RDatatype):
    """Mirror of the data-frame type in R."""

    pull_priority = 1

    @classmethod
    def can_pull(cls, r_type, r_class):
        return "data.frame" in class_names(r_class)

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        data: Dict[str, Column] = {}
        for name in codec.as_list(session.pull(f"colnames({variable})")):
            values = pull_variable(session, f"{variable}${codec.quote(name)}")
            data[name] = values if isinstance(values, Factor) else codec.as_list(values)
        return cls(data)

    def __init__(self, labels_or_data: Union[Sequence[str], Dict[str, Iterable[Any]]]):
        """
        Args:
            labels_or_data: column names (empty frame) or a mapping from
                column names to values (copied)
        """
        self._data: Dict[str, Column] = {}

        if isinstance(labels_or_data, dict):
            self._labels = [str(label) for label in labels_or_data]
            for key, values in labels_or_data.items():
                self._data[str(key)] = _copy_column(values)
            lengths = {len(column) for column in self._data.values()}
            if len(lengths) > 1:
                raise ShapeMismatchError(
                    "RLNK-1003",
                    f"All the columns must have the same length, got {sorted(lengths)}",
                )
        elif isinstance(labels_or_data, (list, tuple)):
            self._labels = [str(label) for label in labels_or_data]
            for label in self._labels:
                self._data[label] = []
        else:
            raise TypeMismatchError(
                "RLNK-1002",
                expected="list of labels or dict of columns",
                actual=type(labels_or_data).__name__,
            )

        if len(set(self._labels)) != len(self._labels):
            duplicated = sorted({label for label in self._labels if self._labels.count(label) > 1})
            raise DuplicateNameError("RLNK-1005", name=", ".join(duplicated))

    # =========================================================================
    # Shape and access
    # =========================================================================

    @property
    def rows(self) -> int:
        """Number of rows."""
        if not self._labels:
            return 0
        return len(self._data[self._labels[0]])

    @property
    def columns(self) -> int:
        """Number of columns."""
        return len(self._labels)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.columns

    @property
    def column_names(self) -> List[str]:
        return list(self._labels)

    colnames = column_names

    def __len__(self) -> int:
        return self.rows

    def _check_column(self, name: str):
        if name not in self._data:
            raise UnknownNameError(
                "RLNK-1004",
                f"This DataFrame does not contain a column named {name}",
                name=name,
            )

    def column(self, name: str) -> Column:
        """The column named ``name`` (live, not a copy)."""
        self._check_column(name)
        return self._data[name]

    def row(self, i: int) -> Optional[Row]:
        """The ``i``-th row as a dict, or None when ``i`` is out of range."""
        if i < 0 or i >= self.rows:
            return None
        return {label: self._data[label][i] for label in self._labels}

    def fast_row(self, i: int) -> Optional[List[Any]]:
        """The ``i``-th row as a list in column order, or None when out of range."""
        if i < 0 or i >= self.rows:
            return None
        return [self._data[label][i] for label in self._labels]

    def __getitem__(self, key):
        """
        ``df["a"]`` returns a column. ``df[rows]``, ``df[rows, cols]`` and
        ``df[None, cols]`` return copies restricted to the given row indices
        (list or range) and/or column names.
        """
        if isinstance(key, str):
            return self.column(key)

        rows, cols = key if isinstance(key, tuple) else (key, None)
        if rows is None and cols is None:
            raise ValidationError("RLNK-1007", reason="You must specify either rows or columns to select")

        result = self._take_rows(list(rows)) if rows is not None else self.clone()
        if cols is not None:
            result = result.select_columns([str(c) for c in cols])
        return result

    # =========================================================================
    # Iteration
    # =========================================================================

    def __iter__(self) -> Iterator[Row]:
        for _, row in self.iterrows():
            yield row

    def iterrows(self) -> Iterator[Tuple[int, Row]]:
        """Yield ``(index, row dict)`` pairs."""
        for i in range(self.rows):
            yield i, {label: self._data[label][i] for label in self._labels}

    def fast_iterrows(self) -> Iterator[Tuple[int, List[Any]]]:
        """Yield ``(index, row list)`` pairs; cheaper than ``iterrows``."""
        columns = [self._data[label] for label in self._labels]
        for i in range(self.rows):
            yield i, [column[i] for column in columns]

    # =========================================================================
    # Mutation
    # =========================================================================

    def add_row(self, row: Union[Sequence[Any], Row]):
        """
        Append a row given either as a sequence of values in column order or
        as a dict whose keys are exactly the column names.
        """
        if isinstance(row, dict):
            if set(row) != set(self._labels):
                raise ShapeMismatchError(
                    "RLNK-1003",
                    f"Expected a dict with the following keys: {self._labels}, got {list(row)}",
                )
            values = [row[label] for label in self._labels]
        elif isinstance(row, (list, tuple)):
            if len(row) != self.columns:
                raise ShapeMismatchError(
                    "RLNK-1003",
                    f"Expected a row of size {self.columns}, got {len(row)}",
                )
            values = list(row)
        else:
            raise TypeMismatchError("RLNK-1002", expected="list or dict", actual=type(row).__name__)

        # Factor columns validate the value before anything is appended
        for label, value in zip(self._labels, values):
            column = self._data[label]
            if isinstance(column, Factor):
                column._to_code(value)

        for label, value in zip(self._labels, values):
            self._data[label].append(value)

    def add_column(
        self,
        name: str,
        values: Optional[Iterable[Any]] = None,
        generator: Optional[Callable[[Row], Any]] = None,
    ):
        """
        Add the column ``name`` from ``values`` (one per row) or computed by
        ``generator(row)`` for every row.
        """
        name = str(name)
        if name in self._data:
            raise DuplicateNameError("RLNK-1005", f"Column already exists: {name}", name=name)
        if values is None and generator is None:
            raise ValidationError("RLNK-1007", reason="Values or generator required")
        if values is not None:
            values = _copy_column(values)
            if self._labels and len(values) != self.rows:
                raise ShapeMismatchError(
                    "RLNK-1003",
                    f"Number of values not matching: expected {self.rows}, got {len(values)}",
                )
        else:
            values = [generator(row) for row in self]

        self._labels.append(name)
        self._data[name] = values

    def delete_column(self, name: str):
        self._check_column(name)
        self._labels.remove(name)
        del self._data[name]

    def delete_row(self, i: int):
        """Delete the ``i``-th row. Bounds are the caller's responsibility."""
        for column in self._data.values():
            del column[i]

    def rename_column(self, old_name: str, new_name: str):
        self._check_column(old_name)
        if new_name in self._data:
            raise DuplicateNameError(
                "RLNK-1005",
                f"This DataFrame already contains a column named {new_name}",
                name=new_name,
            )
        self._data[new_name] = self._data.pop(old_name)
        self._labels[self._labels.index(old_name)] = new_name

    def transform_column(self, name: str, func: Callable[[Any], Any]):
        """Replace every value of ``name`` with ``func(value)``."""
        self._check_column(name)
        self._data[name] = [func(value) for value in self._data[name]]

    # =========================================================================
    # Selection
    # =========================================================================

    def select_rows(self, predicate: Callable[[Row, int], bool]) -> DataFrame:
        """Copy with only the rows for which ``predicate(row, index)`` is true."""
        indices = [i for i, row in self.iterrows() if predicate(row, i)]
        return self._take_rows(indices)

    def has_row(self, predicate: Callable[[Row, int], bool]) -> bool:
        return any(predicate(row, i) for i, row in self.iterrows())

    def select_columns(
        self,
        cols: Optional[Iterable[str]] = None,
        predicate: Optional[Callable[[str], bool]] = None,
    ) -> DataFrame:
        """
        Copy with only the given columns, or the columns whose name satisfies
        ``predicate``. Column order follows this frame.
        """
        if cols is None and predicate is None:
            raise ValidationError(
                "RLNK-1007",
                reason="You must specify either the columns you want to select or a selection predicate",
            )
        if cols is not None:
            cols = list(cols)
            for name in cols:
                self._check_column(name)
            keep = [label for label in self._labels if label in cols]
        else:
            keep = [label for label in self._labels if predicate(label)]
        return DataFrame({label: self._data[label] for label in keep})

    select_cols = select_columns

    def head(self, n: int = 10) -> DataFrame:
        """Copy with the first ``n`` rows."""
        return self._take_rows(range(min(n, self.rows)))

    def shuffle(self, seed: Optional[int] = None) -> DataFrame:
        """Copy with the rows in random order."""
        order = list(range(self.rows))
        random.Random(seed).shuffle(order)
        return self._take_rows(order)

    def _take_rows(self, indices: Sequence[int]) -> DataFrame:
        indices = list(indices)
        result = DataFrame(self._labels)
        for label in self._labels:
            result._data[label] = _take(self._data[label], indices)
        return result

    # =========================================================================
    # Dedup and sort
    # =========================================================================

    def _key(self, i: int, by: Sequence[str]) -> tuple:
        return tuple(self._data[name][i] for name in by)

    def uniq_by_inplace(self, by: Sequence[str]) -> DataFrame:
        """Keep only the first row of every distinct ``by`` tuple."""
        by = [by] if isinstance(by, str) else list(by)
        for name in by:
            self._check_column(name)

        seen = set()
        keep = []
        for i in range(self.rows):
            key = self._key(i, by)
            if key not in seen:
                seen.add(key)
                keep.append(i)

        if len(keep) != self.rows:
            for label in self._labels:
                self._data[label] = _take(self._data[label], keep)
        return self

    def uniq_by(self, by: Sequence[str]) -> DataFrame:
        return self.clone().uniq_by_inplace(by)

    def sort_by_inplace(self, by: str) -> DataFrame:
        """
        Stable ascending sort on the column ``by``. Rows with equal keys keep
        their relative order; missing values (None or NaN) go last, as in R.
        """
        self._check_column(by)
        column = self._data[by]
        order = sorted(range(self.rows), key=lambda i: _sort_key(column[i]))
        for label in self._labels:
            self._data[label] = _take(self._data[label], order)
        return self

    def sort_by(self, by: str) -> DataFrame:
        return self.clone().sort_by_inplace(by)

    # =========================================================================
    # Joins and aggregation
    # =========================================================================

    def merge(
        self,
        other: DataFrame,
        by: Union[str, Sequence[str]],
        first_alias: str = "x",
        second_alias: str = "y",
    ) -> DataFrame:
        """
        Inner join with ``other`` on the ``by`` columns.

        Columns outside ``by`` are prefixed with ``first_alias.`` (this frame)
        and ``second_alias.`` (``other``); empty aliases keep the names as
        they are.

        Rows of this frame are indexed by key with the last row winning, so
        when a key appears more than once here only its last row joins.
        Rows of ``other`` follow their own order and each joins at most once.
        """
        if not isinstance(other, DataFrame):
            raise TypeMismatchError("RLNK-1002", expected="DataFrame", actual=type(other).__name__)
        if isinstance(by, str):
            by = [by]
        if not all(isinstance(name, str) for name in by):
            raise TypeMismatchError("RLNK-1002", "Expected list of strings", expected="list of str", actual=repr(by))
        for name in by:
            if name not in self._data:
                raise UnknownNameError("RLNK-1004", f"This dataset should have all the columns in {by}", name=name)
            if name not in other._data:
                raise UnknownNameError("RLNK-1004", f"The passed dataset should have all the columns in {by}",
                                       name=name)

        merged_self = [label for label in self._labels if label not in by]
        merged_other = [label for label in other._labels if label not in by]

        if first_alias == second_alias:
            if first_alias == "":
                overlap = [label for label in merged_self if label in merged_other]
                if overlap:
                    raise DuplicateNameError(
                        "RLNK-1005",
                        f"Cannot merge because the following columns would overlap: {overlap}",
                        name=", ".join(overlap),
                    )
            else:
                raise ValidationError("RLNK-1007", reason="The aliases can not have the same value")

        first_prefix = f"{first_alias}." if first_alias else ""
        second_prefix = f"{second_alias}." if second_alias else ""

        output = (
            list(by)
            + [first_prefix + name for name in merged_self]
            + [second_prefix + name for name in merged_other]
        )
        clashes = sorted({name for name in output if output.count(name) > 1})
        if clashes:
            raise DuplicateNameError(
                "RLNK-1005",
                f"Cannot merge because the following columns would overlap: {clashes}",
                name=", ".join(clashes),
            )

        my_keys: Dict[tuple, int] = {}
        for i in range(self.rows):
            my_keys[self._key(i, by)] = i

        left_indices: List[int] = []
        right_indices: List[int] = []
        for j in range(other.rows):
            i = my_keys.get(other._key(j, by))
            if i is not None:
                left_indices.append(i)
                right_indices.append(j)

        data: Dict[str, Column] = {}
        for name in by:
            data[name] = _take(self._data[name], left_indices)
        for name in merged_self:
            data[f"{first_prefix}{name}"] = _take(self._data[name], left_indices)
        for name in merged_other:
            data[f"{second_prefix}{name}"] = _take(other._data[name], right_indices)
        return DataFrame(data)

    def aggregate(
        self,
        by: str,
        default: Callable[[List[Any]], Any],
        **aggregators: Callable[[List[Any]], Any],
    ) -> DataFrame:
        """
        Group rows by the value of ``by`` and reduce every other column.

        Each reducer receives the list of a column's values in one group and
        returns a scalar. ``aggregators`` holds per-column reducers; the other
        columns use ``default``. The result has one row per distinct value,
        in ascending order.
        """
        if not isinstance(by, str):
            raise TypeMismatchError("RLNK-1002", "Expected a string", expected="str", actual=type(by).__name__)
        self._check_column(by)
        if not callable(default):
            raise TypeMismatchError("RLNK-1002", "Expected a default aggregator",
                                    expected="callable", actual=type(default).__name__)
        for name, aggregator in aggregators.items():
            self._check_column(name)
            if not callable(aggregator):
                raise TypeMismatchError("RLNK-1002", "All the aggregators should be callables",
                                        expected="callable", actual=type(aggregator).__name__)

        result = DataFrame(self._labels)
        if self.rows == 0:
            return result

        ordered = self.sort_by(by)
        keys = ordered._data[by]
        groups: List[Tuple[int, int]] = []
        start = 0
        for i in range(1, ordered.rows + 1):
            if i == ordered.rows or not _same_key(keys[i], keys[start]):
                groups.append((start, i))
                start = i

        data: Dict[str, Column] = {}
        for label in self._labels:
            column = ordered._data[label]
            if label == by:
                data[label] = _take(column, [start for start, _ in groups])
                continue
            aggregator = aggregators.get(label, default)
            # reduced values are plain data even when the column is a factor
            data[label] = [aggregator([column[k] for k in range(start, stop)]) for start, stop in groups]
        return DataFrame(data)

    # =========================================================================
    # Binding
    # =========================================================================

    def bind_rows_inplace(self, other: DataFrame) -> DataFrame:
        """Append all rows of ``other``. The column names must match."""
        if not isinstance(other, DataFrame):
            raise TypeMismatchError("RLNK-1002", expected="DataFrame", actual=type(other).__name__)
        if set(self._labels) != set(other._labels):
            missing = [label for label in self._labels if label not in other._labels]
            extra = [label for label in other._labels if label not in self._labels]
            raise ShapeMismatchError(
                "RLNK-1003",
                f"The columns are not compatible: {missing} - {extra}",
            )
        for label in self._labels:
            incoming = other._data[label]
            column = self._data[label]
            if isinstance(column, Factor):
                for value in incoming:
                    column._to_code(value)
        for label in self._labels:
            column = self._data[label]
            for value in other._data[label]:
                column.append(value)
        return self

    def bind_rows(self, other: DataFrame) -> DataFrame:
        return self.clone().bind_rows_inplace(other)

    rbind = bind_rows

    def bind_columns_inplace(self, other: DataFrame) -> DataFrame:
        """Add all columns of ``other``. Row counts must match; names must not collide."""
        if not isinstance(other, DataFrame):
            raise TypeMismatchError("RLNK-1002", expected="DataFrame", actual=type(other).__name__)
        if self.rows != other.rows:
            raise ShapeMismatchError(
                "RLNK-1003",
                f"The number of rows are not compatible: {self.rows} vs {other.rows}",
            )
        overlap = [label for label in other._labels if label in self._data]
        if overlap:
            raise DuplicateNameError(
                "RLNK-1005",
                f"The dataset would override some columns: {overlap}",
                name=", ".join(overlap),
            )
        for label in other._labels:
            self.add_column(label, other._data[label])
        return self

    def bind_columns(self, other: DataFrame) -> DataFrame:
        return self.clone().bind_columns_inplace(other)

    cbind = bind_columns

    # =========================================================================
    # Copies, equality, interop
    # =========================================================================

    def clone(self) -> DataFrame:
        """Independent copy of this data-frame."""
        return DataFrame({label: self._data[label] for label in self._labels})

    copy = clone

    def __eq__(self, other):
        if not isinstance(other, DataFrame):
            return NotImplemented
        if self._labels != other._labels:
            return False
        return all(list(self._data[label]) == list(other._data[label]) for label in self._labels)

    __hash__ = object.__hash__

    def _hash_payload(self):
        return [(label, type(self._data[label]).__name__, list(self._data[label])) for label in self._labels]

    def to_pandas(self) -> pd.DataFrame:
        """Convert to a pandas DataFrame; factor columns become categoricals."""
        data = {}
        for label in self._labels:
            column = self._data[label]
            if isinstance(column, Factor):
                data[label] = pd.Categorical.from_codes([code - 1 for code in column.codes], column.levels)
            else:
                data[label] = list(column)
        return pd.DataFrame(data, columns=self._labels)

    @classmethod
    def from_pandas(cls, frame: pd.DataFrame) -> DataFrame:
        """Build a frame from pandas; categoricals become factors."""
        data: Dict[str, Column] = {}
        for label in frame.columns:
            series = frame[label]
            if isinstance(series.dtype, pd.CategoricalDtype):
                codes = series.cat.codes.tolist()
                data[str(label)] = Factor([code + 1 for code in codes], [str(c) for c in series.cat.categories])
            else:
                data[str(label)] = series.tolist()
        return cls(data)

    # =========================================================================
    # Engine push
    # =========================================================================

    def load_in_r_as(self, session, variable_name):
        """
        Write this frame into R as ``variable_name``: one assignment per row,
        then one statement per factor column to restore its levels. The
        statements are sent through the chunked path.
        """
        if self.rows == 0:
            return session.eval_big([f"{variable_name} <- {self._empty_r_frame()}"])

        commands = [f"{variable_name} <- data.frame()"]
        names = codec.render(self._labels)
        for i, row in self.fast_iterrows():
            values = ", ".join(codec.render(_r_cell(value)) for value in row)
            commands.append(f"{variable_name}[{i + 1}, {names}] <- list({values})")

        for label in self._labels:
            column = self._data[label]
            if isinstance(column, Factor):
                target = f"{variable_name}[, {codec.quote(label)}]"
                commands.append(
                    f"{target} <- factor({target}, levels={column._level_codes()}, "
                    f"labels={codec.render(column.levels)})"
                )

        logger.debug(f"Loading data frame {variable_name} ({self.rows}x{self.columns})")
        return session.eval_big(commands)

    def _empty_r_frame(self) -> str:
        columns = []
        for label in self._labels:
            column = self._data[label]
            if isinstance(column, Factor):
                empty = f"factor(character(0), levels={codec.render(column.levels)})"
            else:
                empty = "logical(0)"
            columns.append(f"{codec.quote(label)}={empty}")
        return f"data.frame({', '.join(columns + ['check.names=FALSE', 'stringsAsFactors=FALSE'])})"

    def __repr__(self):
        separator = " | "
        widths = {
            label: max([len(label)] + [len(repr(value)) for value in self._data[label]])
            for label in self._labels
        }
        index_width = len(str(max(self.rows - 1, 0))) + 3
        rule = "-" * (sum(widths.values()) + index_width + len(separator) * max(len(widths) - 1, 0))

        lines = [rule, " " * index_width + separator.join(label.rjust(widths[label]) for label in self._labels), rule]
        for i, row in self.iterrows():
            index_part = f"[{str(i).rjust(index_width - 3)}] "
            lines.append(index_part + separator.join(repr(row[label]).rjust(widths[label]) for label in self._labels))
        lines.append(rule)
        return "\n".join(lines)


class DataFrameList(list):
    """A list of data-frames."""

    def bind_all(self) -> Optional[DataFrame]:
        """All rows of all frames in one frame (columns must be compatible)."""
        if not self:
            return None
        result = self[0].clone()
        for frame in self[1:]:
            result.bind_rows_inplace(frame)
        return result


class DataFrameDict(dict):
    """Data-frames keyed by name (e.g. the file they were read from)."""

    def bind_all(self) -> Optional[DataFrame]:
        """All rows of all frames in one frame (columns must be compatible)."""
        return DataFrameList(self.values()).bind_all()
