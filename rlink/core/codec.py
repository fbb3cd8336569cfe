"""
Value Codec

Converts Python values into R literal syntax and normalizes the values the
engine hands back into plain Python objects.

Rendering rules:
- ``None`` -> ``NULL`` (``NA`` inside a vector); ``True``/``False`` -> ``TRUE``/``FALSE``
- integers and floats keep their Python spelling; NaN -> ``NA``, +-inf -> ``Inf``/``-Inf``
- strings are double quoted with R escapes; enum members render as their quoted name
- lists and tuples -> ``c(e1,e2,...)``; ranges -> ``a:b`` or ``seq(from=, to=, by=)``
- dicts -> ``list("k"=v, ...)``
- any object exposing ``to_r()`` renders through it

Usage:
    from rlink.core.codec import render, parse_for

    render([1, 2.5, float("nan")])        # 'c(1,2.5,NA)'
    parse_for("integer", np.array([1, 2]))  # [1, 2]
"""
from __future__ import annotations

import json
import math
import numbers
from enum import Enum
from typing import Any

import numpy as np

from rlink.core.errors import TypeMismatchError

NA = "NA"


def quote(text: str) -> str:
    """Quote a string as an R character literal."""
    return json.dumps(text, ensure_ascii=False)


def render(value: Any) -> str:
    """
    Render ``value`` as a single R expression.

    Raises:
        TypeMismatchError: if the value has no R literal representation
    """
    to_r = getattr(value, "to_r", None)
    if callable(to_r):
        return to_r()

    if value is None:
        return "NULL"

    if isinstance(value, (bool, np.bool_)):
        return "TRUE" if value else "FALSE"

    if isinstance(value, numbers.Integral):
        return str(int(value))

    if isinstance(value, numbers.Real):
        value = float(value)
        if math.isnan(value):
            return NA
        if math.isinf(value):
            return "Inf" if value > 0 else "-Inf"
        return repr(value)

    if isinstance(value, str):
        return quote(value)

    if isinstance(value, Enum):
        return quote(value.name)

    if isinstance(value, range):
        return _render_range(value)

    if isinstance(value, np.ndarray):
        return render(value.tolist())

    if isinstance(value, (list, tuple)):
        # NULL would be dropped by c(), shifting later elements
        return "c(" + ",".join(NA if element is None else render(element) for element in value) + ")"

    if isinstance(value, dict):
        items = ", ".join(f"{quote(str(key))}={render(item)}" for key, item in value.items())
        return f"list({items})"

    raise TypeMismatchError("RLNK-1001", type_name=type(value).__name__)


def _render_range(value: range) -> str:
    if len(value) == 0:
        return "integer(0)"
    last = value[-1]
    if value.step == 1:
        return f"{value.start}:{last}"
    return f"seq(from={value.start}, to={last}, by={value.step})"


# =============================================================================
# Parsing engine results
# =============================================================================

def normalize(raw: Any) -> Any:
    """
    Turn a value returned by the engine transport into plain Python.

    numpy arrays become (nested) lists, numpy scalars become Python scalars
    and tagged containers become lists of their values.
    """
    if raw is None:
        return None
    if isinstance(raw, np.ndarray):
        return [normalize(item) for item in raw.tolist()] if raw.ndim > 0 else normalize(raw.item())
    if isinstance(raw, np.generic):
        return raw.item()
    if hasattr(raw, "astuples"):
        # pyRserve TaggedList
        return [normalize(item) for _, item in raw.astuples()]
    if isinstance(raw, (list, tuple)):
        return [normalize(item) for item in raw]
    return raw


def is_na(value: Any) -> bool:
    """True for R missing values as they arrive in Python (None or NaN)."""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def _coerce(r_type: str, value: Any) -> Any:
    if isinstance(value, list):
        return [_coerce(r_type, item) for item in value]
    if r_type == "logical":
        return None if is_na(value) else bool(value)
    if r_type == "integer":
        return None if is_na(value) else int(value)
    if r_type == "double":
        return float("nan") if value is None else float(value)
    if r_type == "character":
        return None if value is None else str(value)
    return value


def parse_for(r_type: str, raw: Any) -> Any:
    """
    Parse a raw engine value according to its R ``typeof``.

    Args:
        r_type: result of ``typeof(x)`` in R ("double", "integer", ...)
        raw: value returned by the transport
    """
    if r_type == "NULL":
        return None
    return _coerce(r_type, normalize(raw))


def as_list(value: Any) -> list:
    """Wrap scalars in a list; R length-1 vectors arrive as scalars."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
