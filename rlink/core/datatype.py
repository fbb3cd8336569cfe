"""
Datatype base and pull resolution.

``RDatatype`` is the base for every Python mirror of an R value. It defines
the pull protocol used by the registry and the mirror cache that keeps an
engine-side copy of an object keyed by its identity and checked by a
content hash.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Any, List, Optional, Type

from rlink.core import codec
from rlink.core.errors import IncompatibleForcedTypeError, TypeMismatchError
from rlink.core.registry import DatatypeRegistry, get_registry, register_datatype

logger = logging.getLogger(__name__)


def class_names(r_class: Any) -> List[str]:
    """R classes arrive as a string or as a list of strings."""
    return [str(name) for name in codec.as_list(r_class)]


class RDatatype:
    """A value that can be loaded from and written to R."""

    pull_priority: int = 0

    @classmethod
    def can_pull(cls, r_type: str, r_class: Any) -> bool:
        return False

    @classmethod
    def pull_variable(cls, session, variable: str, r_type: str, r_class: Any):
        raise NotImplementedError(f"Pulling {cls.__name__} from R is not implemented")

    def load_in_r_as(self, session, variable_name: str):
        raise NotImplementedError(f"Loading {type(self).__name__} in R is not implemented")

    # =========================================================================
    # Mirror cache
    # =========================================================================

    def r_hash(self) -> str:
        """Content hash used to validate the engine-side mirror."""
        payload = repr(self._hash_payload()).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()[:16]

    def _hash_payload(self) -> Any:
        return sorted((key, repr(value)) for key, value in vars(self).items())

    def mirrored_variable_name(self, session) -> str:
        return f"{session.settings.mirror_prefix}.{id(self)}"

    def r_mirror(self, session) -> str:
        """
        Make sure the engine holds an up-to-date copy of this object.

        Returns the name of the R variable holding the copy. Must run inside
        an exclusive block.
        """
        varname = self.mirrored_variable_name(session)
        current_hash = self.r_hash()

        if not session.pull(f"exists({codec.quote(varname)})") or \
                session.pull(f"`{varname}.hash`") != current_hash:
            logger.debug(f"Loading {varname}")
            session.assign(f"`{varname}`", self)
            session.assign(f"`{varname}.hash`", current_hash)
        else:
            logger.debug(f"Using cached value for {varname}")

        return f"`{varname}`"

    def r_mirror_to(self, session, other_variable: str) -> str:
        """Adopt an existing R variable as the mirror of this object."""
        varname = self.mirrored_variable_name(session)
        session.eval(f"`{varname}` <- {other_variable}")
        session.assign(f"`{varname}.hash`", self.r_hash())
        return f"`{varname}`"


@register_datatype
class Null(RDatatype):
    """The NULL value in R."""

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "NULL" and class_names(r_class) == ["NULL"]

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        return None


def pull_variable(
    session,
    variable: str,
    forced: Optional[Type[RDatatype]] = None,
    registry: Optional[DatatypeRegistry] = None,
) -> Any:
    """
    Retrieve ``variable`` (any R expression) and materialize it in Python.

    The R type and class are introspected and the registry picks the datatype
    with the highest priority among those accepting them. Without a match,
    empty values become ``[]`` and anything else is returned as the plain
    parsed value.

    Args:
        session: exclusive engine session
        variable: R variable name or expression
        forced: datatype to use instead of discovery; it must accept the
            introspected type/class
        registry: table to resolve against (defaults to the shared one)
    """
    r_type = session.pull(f"as.character(typeof({variable}))")
    r_class = session.pull(f"as.character(class({variable}))")

    if forced is not None:
        if not (isinstance(forced, type) and issubclass(forced, RDatatype)):
            raise TypeMismatchError("RLNK-1002", expected="an RDatatype subclass", actual=repr(forced))
        if not forced.can_pull(r_type, r_class):
            raise IncompatibleForcedTypeError(
                "RLNK-2001",
                forced=forced.__name__,
                r_type=r_type,
                r_class=r_class,
                details={"variable": variable},
            )
        return forced.pull_variable(session, variable, r_type, r_class)

    datatype = (registry or get_registry()).resolve(r_type, r_class)
    if datatype is not None:
        logger.debug(f"Using {datatype.__name__} to pull {variable}")
        return datatype.pull_variable(session, variable, r_type, r_class)

    if session.pull(f"length({variable})") == 0:
        return []
    return codec.parse_for(r_type, session.pull(variable))
