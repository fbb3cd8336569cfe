"""
Mirrors of R language objects: formulas, calls and environments, plus small
builders for function calls.

Usage:
    from rlink.types.language import Formula, Function, Options, Variable

    formula = Formula("y", "x1 + x2")
    formula.to_r()          # 'y ~ x1 + x2'

    fn = Function("t.test")
    fn.arguments.append(Variable("a"))
    fn.options["paired"] = True
    fn.to_r()               # 't.test(a,paired=TRUE)'
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rlink.core import codec
from rlink.core.datatype import RDatatype, class_names
from rlink.core.errors import ShapeMismatchError, TypeMismatchError
from rlink.core.registry import register_datatype

logger = logging.getLogger(__name__)


@register_datatype
@dataclass(frozen=True, eq=True)
class Formula(RDatatype):
    """A ``left ~ right`` relationship; the left part may be empty."""

    left_part: Optional[str]
    right_part: str

    def __post_init__(self):
        if self.left_part is not None and not isinstance(self.left_part, str):
            raise TypeMismatchError("RLNK-1002", expected="str", actual=type(self.left_part).__name__)
        if not isinstance(self.right_part, str):
            raise TypeMismatchError("RLNK-1002", expected="str", actual=type(self.right_part).__name__)
        if self.left_part is None:
            object.__setattr__(self, "left_part", "")

    @classmethod
    def can_pull(cls, r_type, r_class):
        return "formula" in class_names(r_class)

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        elements = codec.as_list(session.pull(f"as.character({variable})"))
        # as.character(y ~ x) gives c("~", "y", "x"); one-sided formulas drop "y"
        if len(elements) == 2:
            return cls(None, elements[1])
        if len(elements) == 3:
            return cls(elements[1], elements[2])
        raise ShapeMismatchError(
            "RLNK-1003",
            f"The number of elements of a formula must be 2 or 3: {elements} given",
        )

    def load_in_r_as(self, session, variable_name):
        session.eval(f"{variable_name} <- {self.to_r()}")

    def to_r(self) -> str:
        return f"{self.left_part} ~ {self.right_part}"

    def _hash_payload(self):
        return (self.left_part, self.right_part)

    def __repr__(self):
        return self.to_r().strip()


@register_datatype
class Call(RDatatype):
    """An unevaluated R call, kept as its deparsed source."""

    @classmethod
    def can_pull(cls, r_type, r_class):
        return class_names(r_class) == ["call"]

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        return cls(" ".join(codec.as_list(session.pull(f"deparse({variable})"))))

    def __init__(self, value: str):
        self.value = value

    def load_in_r_as(self, session, variable_name):
        session.eval(f"{variable_name} <- str2lang({codec.quote(self.value)})")

    def to_r(self) -> str:
        return self.value

    def __eq__(self, other):
        if not isinstance(other, Call):
            return NotImplemented
        return self.value == other.value

    __hash__ = object.__hash__

    def __repr__(self):
        return self.value


@register_datatype
class Environment(RDatatype):
    """Placeholder for R environments, which are not exchanged."""

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "environment" and class_names(r_class) == ["environment"]

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        logger.warning("Exchanging R environments is not supported!")
        return cls()

    def load_in_r_as(self, session, variable_name):
        logger.warning("Exchanging R environments is not supported!")
        session.eval(f"{variable_name} <- environment()")


class Variable:
    """A bare R identifier, rendered without quotes."""

    def __init__(self, name: str):
        self.name = name

    def to_r(self) -> str:
        return self.name

    def __repr__(self):
        return f"Variable({self.name!r})"


class Arguments(list):
    """Positional arguments of a function call."""

    def to_r(self) -> str:
        return ", ".join(codec.render(value) for value in self)


class Options(dict):
    """Named arguments of a function call."""

    def to_r(self) -> str:
        return ", ".join(f"{key}={codec.render(value)}" for key, value in self.items())

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> Options:
        return cls((str(key), value) for key, value in values.items())


class Function:
    """
    An R function call under construction. Set its arguments and options,
    then render it with ``to_r()`` or run it with ``call(session)``.
    """

    def __init__(self, name: str):
        self.name = name
        self._arguments = Arguments()
        self._options = Options()

    @property
    def arguments(self) -> Arguments:
        return self._arguments

    @arguments.setter
    def arguments(self, arguments: Arguments):
        if not isinstance(arguments, Arguments):
            raise TypeMismatchError("RLNK-1002", expected="Arguments", actual=type(arguments).__name__)
        self._arguments = arguments

    @property
    def options(self) -> Options:
        return self._options

    @options.setter
    def options(self, options: Options):
        if not isinstance(options, Options):
            raise TypeMismatchError("RLNK-1002", expected="Options", actual=type(options).__name__)
        self._options = options

    def to_r(self) -> str:
        params = ",".join(part for part in (self._arguments.to_r(), self._options.to_r()) if part)
        return f"{self.name}({params})"

    def call(self, session):
        """Evaluate the call in the engine. Must run inside an exclusive block."""
        return session.eval(self.to_r())
