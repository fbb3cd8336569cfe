"""
R datatype mirrors.

Import order is registration order, which breaks priority ties during
pull resolution.
"""
from .list import List
from .dataframe import DataFrame, DataFrameDict, DataFrameList
from .factor import Factor, FactorValue
from .matrix import Matrix
from .language import Arguments, Call, Environment, Formula, Function, Options, Variable
from .s4class import S4Class
from .sequence import Sequence

__all__ = [
    "List", "DataFrame", "DataFrameDict", "DataFrameList",
    "Factor", "FactorValue", "Matrix",
    "Arguments", "Call", "Environment", "Formula", "Function", "Options", "Variable",
    "S4Class", "Sequence",
]
