"""
Error Catalog Module

Structured failure catalog with error codes and metadata for the R bridge.

Features:
- Canonical error codes (RLNK-XXXX format)
- Error categories (validation, resolution, engine, system)
- Machine-readable error payloads
- Exceptions that also derive from the matching Python builtin
  (TypeError, KeyError, IndexError) so callers can catch them idiomatically

Usage:
    from rlink.core.errors import (
        RLinkError, ValidationError, TypeMismatchError,
        get_error_catalog
    )

    # Raise typed error, message built from the catalog template
    raise UnknownNameError("RLNK-1004", column="age")

    # Or with an explicit message
    raise ShapeMismatchError("RLNK-1003", "Expected a row of size 3")
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Any, Optional, List
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    VALIDATION = "validation"    # Contract violations by the caller
    RESOLUTION = "resolution"    # Type resolution failures
    ENGINE = "engine"            # Failures raised inside the R engine
    SYSTEM = "system"            # Missing dependencies, misuse of the channel


@dataclass(frozen=True)
class ErrorDefinition:
    """Definition of an error in the catalog."""
    code: str                    # e.g., "RLNK-1001"
    message: str                 # Human-readable message template
    category: ErrorCategory
    description: str = ""
    resolution: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "description": self.description,
            "resolution": self.resolution,
        }


# =============================================================================
# Error Catalog (Canonical Error Definitions)
# =============================================================================

ERROR_CATALOG: Dict[str, ErrorDefinition] = {
    # =========================================================================
    # 1000-1999: Validation Errors
    # =========================================================================
    "RLNK-1001": ErrorDefinition(
        code="RLNK-1001",
        message="Unsupported type for R conversion: {type_name}",
        category=ErrorCategory.VALIDATION,
        description="The value has no literal representation in R",
        resolution="Convert the value to a number, string, bool, list or rlink datatype",
    ),
    "RLNK-1002": ErrorDefinition(
        code="RLNK-1002",
        message="Unexpected type: expected {expected}, got {actual}",
        category=ErrorCategory.VALIDATION,
    ),
    "RLNK-1003": ErrorDefinition(
        code="RLNK-1003",
        message="Shape mismatch: {reason}",
        category=ErrorCategory.VALIDATION,
        description="Sizes of rows, columns or names do not agree",
    ),
    "RLNK-1004": ErrorDefinition(
        code="RLNK-1004",
        message="Unknown name: {name}",
        category=ErrorCategory.VALIDATION,
        description="A column, level, slot or list name does not exist",
    ),
    "RLNK-1005": ErrorDefinition(
        code="RLNK-1005",
        message="Duplicate name: {name}",
        category=ErrorCategory.VALIDATION,
        description="A column with the same name already exists",
    ),
    "RLNK-1006": ErrorDefinition(
        code="RLNK-1006",
        message="Index out of range: {index}",
        category=ErrorCategory.VALIDATION,
    ),
    "RLNK-1007": ErrorDefinition(
        code="RLNK-1007",
        message="Invalid argument: {reason}",
        category=ErrorCategory.VALIDATION,
    ),

    # =========================================================================
    # 2000-2999: Resolution Errors
    # =========================================================================
    "RLNK-2001": ErrorDefinition(
        code="RLNK-2001",
        message="{forced} can not handle type {r_type}, class {r_class}",
        category=ErrorCategory.RESOLUTION,
        description="The forced datatype rejected the introspected R type/class",
        resolution="Pull without forcing a type, or force a compatible one",
    ),

    # =========================================================================
    # 5000-5999: System Errors
    # =========================================================================
    "RLNK-5001": ErrorDefinition(
        code="RLNK-5001",
        message="This command must be executed in an exclusive block",
        category=ErrorCategory.SYSTEM,
        description="Engine operations are only allowed inside session.exclusive()",
        resolution="Wrap the calls in `with session.exclusive():`",
    ),
    "RLNK-5002": ErrorDefinition(
        code="RLNK-5002",
        message="The exclusive session is already held by this thread",
        category=ErrorCategory.SYSTEM,
        description="Nested exclusive blocks are not supported",
        resolution="Run the inner calls directly in the outer exclusive block",
    ),
    "RLNK-5003": ErrorDefinition(
        code="RLNK-5003",
        message="Missing dependency: {package}",
        category=ErrorCategory.SYSTEM,
        resolution="Install it: pip install {package}",
    ),

    # =========================================================================
    # 6000-6999: Engine Errors
    # =========================================================================
    "RLNK-6001": ErrorDefinition(
        code="RLNK-6001",
        message="Failed to connect to the R engine at {host}:{port}",
        category=ErrorCategory.ENGINE,
        resolution="Ensure Rserve is running and reachable",
    ),
    "RLNK-6002": ErrorDefinition(
        code="RLNK-6002",
        message="R evaluation failed: {reason}",
        category=ErrorCategory.ENGINE,
        resolution="Check R syntax and the engine connection",
    ),
    "RLNK-6003": ErrorDefinition(
        code="RLNK-6003",
        message="Failed to assign R variable '{name}'",
        category=ErrorCategory.ENGINE,
    ),
}


# =============================================================================
# Exception Classes
# =============================================================================

class RLinkError(Exception):
    """Base exception for rlink errors."""

    def __init__(
        self,
        code: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **format_args,
    ):
        self.code = code
        self.details = details or {}
        self.definition = ERROR_CATALOG.get(code)

        if self.definition:
            if message:
                self.message = message
            else:
                try:
                    self.message = self.definition.message.format(**format_args)
                except KeyError:
                    self.message = self.definition.message
            self.category = self.definition.category
        else:
            self.message = message or f"Unknown error: {code}"
            self.category = ErrorCategory.SYSTEM

        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a machine-readable payload."""
        payload = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
        }
        if self.details:
            payload["details"] = dict(self.details)
        if self.definition and self.definition.resolution:
            payload["resolution"] = self.definition.resolution
        return payload


class ValidationError(RLinkError):
    """Validation errors (1000 series)."""
    pass


class TypeMismatchError(ValidationError, TypeError):
    """A value of an unsupported or unexpected type was given."""
    pass


class ShapeMismatchError(ValidationError):
    """Row/column/name sizes do not agree."""
    pass


class UnknownNameError(ValidationError, KeyError):
    """Unknown column, level, slot or list name."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return RLinkError.__str__(self)


class DuplicateNameError(ValidationError):
    """A name that must be unique already exists."""
    pass


class InvalidIndexError(ValidationError, IndexError):
    """Integer index outside the valid bounds."""
    pass


class IncompatibleForcedTypeError(RLinkError):
    """A forced datatype rejected the introspected R type/class (2000 series)."""
    pass


class PreconditionViolation(RLinkError):
    """The engine channel was used outside of its contract (5000 series)."""
    pass


class DependencyError(RLinkError):
    """A required Python package is not installed."""
    pass


class EngineConnectionError(RLinkError):
    """The R engine could not be reached (6000 series)."""
    pass


class EngineEvaluationError(RLinkError):
    """A command failed inside the R engine."""
    pass


# =============================================================================
# Helper Functions
# =============================================================================

def get_error_catalog() -> Dict[str, Dict[str, Any]]:
    """Get the full error catalog as JSON-serializable dict."""
    return {code: defn.to_dict() for code, defn in ERROR_CATALOG.items()}


def get_errors_by_category(category: ErrorCategory) -> List[Dict[str, Any]]:
    """Get all errors in a category."""
    return [
        defn.to_dict() for defn in ERROR_CATALOG.values()
        if defn.category == category
    ]


def list_error_codes() -> List[str]:
    """List all error codes."""
    return sorted(ERROR_CATALOG.keys())
