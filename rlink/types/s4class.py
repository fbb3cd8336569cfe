"""Mirror for S4 objects in R."""
from __future__ import annotations

import logging
from typing import Any, List

from rlink.core import codec
from rlink.core.datatype import RDatatype, class_names
from rlink.core.errors import UnknownNameError
from rlink.core.registry import register_datatype

logger = logging.getLogger(__name__)


@register_datatype
class S4Class(RDatatype):
    """
    Handle on an S4 instance living in the engine.

    The object itself stays in R (bound to this instance's mirror variable);
    slots are read and written through the engine on demand. Slot access
    opens its own exclusive block, so do not call it from inside one.
    """

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "S4"

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        klass = class_names(r_class)[0]
        slots = codec.as_list(session.pull(f"names(getSlots({codec.quote(klass)}))"))
        return cls(session, variable, klass, slots)

    def __init__(self, session, variable_name: str, klass: str, slots: List[str]):
        self._session = session
        self._klass = klass
        self._slots = list(slots)
        self.r_mirror_to(session, variable_name)

    def load_in_r_as(self, session, variable_name):
        session.eval(f"{variable_name} <- {self.r_mirror(session)}")

    def r_hash(self) -> str:
        return "immutable"

    def _check_slot(self, key: str):
        if key not in self._slots:
            raise UnknownNameError("RLNK-1004", f"Unknown slot `{key}` for class `{self._klass}`", name=key)

    def __getitem__(self, key: str) -> Any:
        self._check_slot(key)
        with self._session.exclusive():
            return self._session[f"{self.r_mirror(self._session)}@{key}"]

    def __setitem__(self, key: str, value: Any):
        self._check_slot(key)
        with self._session.exclusive():
            self._session.assign(f"{self.r_mirror(self._session)}@{key}", value)

    @property
    def slots(self) -> List[str]:
        return self._slots

    @property
    def class_name(self) -> str:
        return self._klass

    def __repr__(self):
        return f"<S4 instance of {self._klass}, with slots {self._slots}>"
