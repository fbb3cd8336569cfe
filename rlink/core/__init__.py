"""rlink Core Package."""
from .config import Settings, get_settings
from .errors import (
    RLinkError, ValidationError, TypeMismatchError, ShapeMismatchError,
    UnknownNameError, DuplicateNameError, InvalidIndexError,
    IncompatibleForcedTypeError, PreconditionViolation, DependencyError,
    EngineConnectionError, EngineEvaluationError,
)
from .registry import DatatypeRegistry, register_datatype, get_registry
from .datatype import RDatatype, Null, pull_variable
from .channel import EngineSession, chunk_statements, get_default_session, set_default_session

__all__ = [
    "Settings", "get_settings",
    "RLinkError", "ValidationError", "TypeMismatchError", "ShapeMismatchError",
    "UnknownNameError", "DuplicateNameError", "InvalidIndexError",
    "IncompatibleForcedTypeError", "PreconditionViolation", "DependencyError",
    "EngineConnectionError", "EngineEvaluationError",
    "DatatypeRegistry", "register_datatype", "get_registry",
    "RDatatype", "Null", "pull_variable",
    "EngineSession", "chunk_statements", "get_default_session", "set_default_session",
]
