"""
Datatype Registry

Maps the (type, class) pair that R reports for a value to the Python
datatype that should materialize it.

Every registered datatype declares ``can_pull(r_type, r_class)`` and an
integer ``pull_priority``. The table is kept ordered by descending priority
as datatypes are registered, so resolution is a single scan: the first
datatype that accepts the pair wins. Datatypes with the same priority keep
their registration order.

Usage:
    from rlink.core.registry import register_datatype, get_registry

    @register_datatype
    class Table(RDatatype):
        pull_priority = 1

        @classmethod
        def can_pull(cls, r_type, r_class):
            return "table" in class_names(r_class)

    get_registry().resolve("integer", "table")   # -> Table
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Type

logger = logging.getLogger(__name__)


class DatatypeRegistry:
    """Ordered table of pullable datatypes."""

    _instance: Optional[DatatypeRegistry] = None

    def __init__(self):
        self._entries: List[Type] = []

    @classmethod
    def get_instance(cls) -> DatatypeRegistry:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(self, datatype: Type) -> Type:
        """Add ``datatype`` to the table."""
        if not callable(getattr(datatype, "can_pull", None)):
            raise TypeError(f"Datatype {datatype.__name__} must define can_pull(r_type, r_class)")

        if datatype in self._entries:
            logger.warning(f"Datatype already registered: {datatype.__name__}")
            return datatype

        self._entries.append(datatype)
        # sort is stable: equal priorities keep registration order
        self._entries.sort(key=lambda entry: -getattr(entry, "pull_priority", 0))
        logger.debug(f"Registered datatype: {datatype.__name__} (priority {getattr(datatype, 'pull_priority', 0)})")
        return datatype

    def candidates(self, r_type: str, r_class: Any) -> List[Type]:
        """All datatypes accepting the pair, best first."""
        return [entry for entry in self._entries if entry.can_pull(r_type, r_class)]

    def resolve(self, r_type: str, r_class: Any) -> Optional[Type]:
        """Best datatype for the pair, or None."""
        for entry in self._entries:
            if entry.can_pull(r_type, r_class):
                return entry
        return None

    @property
    def datatypes(self) -> List[Type]:
        return list(self._entries)

    def __contains__(self, datatype: Type) -> bool:
        return datatype in self._entries

    def clear(self):
        """Clear registry (useful for testing)."""
        self._entries.clear()


def register_datatype(datatype: Type) -> Type:
    """Class decorator adding a datatype to the shared registry."""
    return DatatypeRegistry.get_instance().register(datatype)


def get_registry() -> DatatypeRegistry:
    return DatatypeRegistry.get_instance()
