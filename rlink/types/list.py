"""Mirror of the list type in R."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List as PyList, Optional, Union

from rlink.core import codec
from rlink.core.datatype import RDatatype, class_names, pull_variable
from rlink.core.errors import TypeMismatchError, UnknownNameError
from rlink.core.registry import register_datatype

logger = logging.getLogger(__name__)

Key = Union[int, str]


@register_datatype
class List(RDatatype):
    """
    Ordered mapping from 0-based positions to values, with optional names
    and the R class tag it was pulled with (e.g. ``"lm"``).
    """

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "list"

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        if session.pull(f"length({variable})") == 0:
            return cls(r_class)

        names = [name for name in codec.as_list(session.pull(f"names({variable})"))]
        length = session.pull(f"length({variable})")

        result = cls(r_class, names)
        for i in range(int(length)):
            result[i] = pull_variable(session, f"{variable}[[{i + 1}]]")
        return result

    def load_in_r_as(self, session, variable_name):
        session.eval(f"{variable_name} <- list()")
        for key, value in self._data.items():
            if value is None:
                # [[i]] <- NULL would delete the element
                session.eval(f"{variable_name}[{key + 1}] <- list(NULL)")
            else:
                session.assign(f"{variable_name}[[{key + 1}]]", value)
        if self._names and len(self._names) == len(self._data):
            session.eval(f"names({variable_name}) <- {codec.render(self._names)}")

    def __init__(self, klass: Any = "list", names: Optional[PyList[str]] = None):
        self._data: Dict[int, Any] = {}
        self._names: PyList[str] = list(names or [])
        self._klass = klass

    @property
    def names(self) -> PyList[str]:
        return self._names

    @property
    def klass(self) -> PyList[str]:
        """The R class tag(s) of this list."""
        return class_names(self._klass)

    def _get_key(self, key: Key) -> int:
        if isinstance(key, str):
            if key not in self._names:
                raise UnknownNameError("RLNK-1004", f"Wrong key: {key}", name=key)
            return self._names.index(key)

        if not isinstance(key, int):
            raise TypeMismatchError(
                "RLNK-1002",
                "The key should be either a string or an integer",
                expected="str or int",
                actual=type(key).__name__,
            )
        return key

    def __getitem__(self, key: Key) -> Any:
        return self._data.get(self._get_key(key))

    def __setitem__(self, key: Key, value: Any):
        self._data[self._get_key(key)] = value

    def __contains__(self, key: Key) -> bool:
        if isinstance(key, str):
            return key in self._names
        return key in self._data

    def get(self, key: Key, default: Any = None) -> Any:
        if key not in self:
            return default
        return self[key]

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Any]:
        for key in sorted(self._data):
            yield self._data[key]

    def items(self):
        """(name or position, value) pairs in position order."""
        for key in sorted(self._data):
            name = self._names[key] if key < len(self._names) and self._names[key] else key
            yield name, self._data[key]

    def __eq__(self, other):
        if not isinstance(other, List):
            return NotImplemented
        return self._data == other._data and self._names == other._names

    __hash__ = object.__hash__

    def _hash_payload(self):
        return (sorted(self._data.items(), key=lambda item: item[0]), self._names, self.klass)

    def __repr__(self):
        lines = []
        for key in sorted(self._data):
            name = self._names[key] if key < len(self._names) and self._names[key] else f"[[{key}]]"
            lines.append("-" * 40)
            lines.append(name)
            lines.extend("  " + line for line in repr(self._data[key]).split("\n"))
        lines.append("-" * 40)
        return "\n".join(lines)
