"""
CSV interchange for data frames.

Usage:
    from rlink.io.csv import CSV

    df = CSV.read("data.csv", infer_integers=True)
    CSV.write("out.csv", df)
    everything = CSV.read_all("runs/*.csv").bind_all()
"""
from __future__ import annotations

import glob
import logging
from typing import Any, List

import pandas as pd

from rlink.core.errors import TypeMismatchError
from rlink.types.dataframe import DataFrame, DataFrameDict

logger = logging.getLogger(__name__)


def _all_parse(values: List[Any], parser) -> bool:
    for value in values:
        try:
            parser(value)
        except (TypeError, ValueError):
            return False
    return True


class CSV:
    """Reads and writes delimited text files as data frames."""

    @staticmethod
    def read_all(pattern: str, **options) -> DataFrameDict:
        """Read every file matching ``pattern``, keyed by file name. See ``read``."""
        result = DataFrameDict()
        for filename in sorted(glob.glob(pattern)):
            result[filename] = CSV.read(filename, **options)
        return result

    @staticmethod
    def read(
        filename: str,
        headers: bool = True,
        infer_numbers: bool = True,
        infer_integers: bool = False,
        **options,
    ) -> DataFrame:
        """
        Read the file at ``filename``.

        Args:
            headers: the first row holds the column names; otherwise the
                columns are named ``X1``..``Xn``
            infer_numbers: columns whose values all parse as numbers become
                floats
            infer_integers: with ``infer_numbers``, columns of integers become
                ints instead of floats
            options: passed to ``pandas.read_csv`` (e.g. ``sep``)
        """
        frame = pd.read_csv(
            filename,
            dtype=str,
            keep_default_na=False,
            header=0 if headers else None,
            **options,
        )
        if not headers:
            frame.columns = [f"X{i + 1}" for i in range(len(frame.columns))]

        result = DataFrame({str(label): frame[label].tolist() for label in frame.columns})
        if infer_numbers:
            CSV._infer_types(result, infer_integers)

        logger.debug(f"Read {result.rows} rows from {filename}")
        return result

    @staticmethod
    def write(filename: str, dataframe: DataFrame, headers: bool = True, **options) -> bool:
        """Write ``dataframe`` at ``filename``; options go to ``DataFrame.to_csv`` in pandas."""
        if not isinstance(dataframe, DataFrame):
            raise TypeMismatchError("RLNK-1002", expected="DataFrame", actual=type(dataframe).__name__)
        dataframe.to_pandas().to_csv(filename, index=False, header=headers, **options)
        return True

    @staticmethod
    def _infer_types(dataframe: DataFrame, infer_integers: bool):
        # each column is tested on its own
        for name in dataframe.column_names:
            values = dataframe.column(name)
            if infer_integers and _all_parse(values, int):
                dataframe.transform_column(name, int)
            elif _all_parse(values, float):
                dataframe.transform_column(name, float)
