"""
Test Error Catalog

Verifies the coded exceptions and their catalog.
"""
import pytest

from rlink.core.errors import (
    ERROR_CATALOG,
    ErrorCategory,
    IncompatibleForcedTypeError,
    InvalidIndexError,
    RLinkError,
    TypeMismatchError,
    UnknownNameError,
    ValidationError,
    get_error_catalog,
    get_errors_by_category,
    list_error_codes,
)


def test_message_formatted_from_catalog():
    err = UnknownNameError("RLNK-1004", name="age")
    assert err.message == "Unknown name: age"
    assert str(err) == "[RLNK-1004] Unknown name: age"
    assert err.category == ErrorCategory.VALIDATION


def test_explicit_message_wins():
    err = ValidationError("RLNK-1003", "Expected a row of size 3")
    assert str(err) == "[RLNK-1003] Expected a row of size 3"


def test_missing_format_args_keep_template():
    err = ValidationError("RLNK-1007")
    assert err.message == "Invalid argument: {reason}"


def test_unknown_code():
    err = RLinkError("RLNK-9999")
    assert err.message == "Unknown error: RLNK-9999"
    assert err.category == ErrorCategory.SYSTEM


def test_python_exception_hierarchy():
    assert issubclass(TypeMismatchError, TypeError)
    assert issubclass(UnknownNameError, KeyError)
    assert issubclass(InvalidIndexError, IndexError)

    with pytest.raises(KeyError):
        raise UnknownNameError("RLNK-1004", name="x")


def test_to_dict():
    err = IncompatibleForcedTypeError(
        "RLNK-2001", forced="Matrix", r_type="double", r_class="numeric", details={"variable": "x"}
    )
    payload = err.to_dict()
    assert payload["code"] == "RLNK-2001"
    assert payload["category"] == "resolution"
    assert payload["details"] == {"variable": "x"}
    assert "Matrix" in payload["message"] and "numeric" in payload["message"]


def test_catalog_helpers():
    codes = list_error_codes()
    assert codes == sorted(ERROR_CATALOG)
    assert set(get_error_catalog()) == set(codes)

    engine_errors = get_errors_by_category(ErrorCategory.ENGINE)
    assert {e["code"] for e in engine_errors} == {"RLNK-6001", "RLNK-6002", "RLNK-6003"}
