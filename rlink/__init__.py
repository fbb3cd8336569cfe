"""
rlink - Python bridge to an embedded R engine.

Exchanges data frames, matrices, factors, lists and formulas with R and
wraps the models fitted there.
"""

__version__ = "1.0.0"

from rlink.core import EngineSession, get_default_session, get_settings  # noqa: E402
from rlink import types  # noqa: E402,F401
from rlink import models  # noqa: E402,F401
from rlink.types import DataFrame, Factor, Formula, List, Matrix  # noqa: E402

__all__ = [
    "EngineSession", "get_default_session", "get_settings",
    "DataFrame", "Factor", "Formula", "List", "Matrix",
]
