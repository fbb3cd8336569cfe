"""
Test Datatype Registry

Priority-based resolution of (type, class) pairs and the pull fallbacks.
"""
import math

import pytest

from rlink.core.datatype import Null, RDatatype, class_names, pull_variable
from rlink.core.errors import IncompatibleForcedTypeError, TypeMismatchError
from rlink.core.registry import DatatypeRegistry, get_registry
from rlink.models.anova import ANOVAModel
from rlink.models.regression import LinearRegressionModel
from rlink.types.dataframe import DataFrame
from rlink.types.factor import Factor
from rlink.types.list import List
from rlink.types.matrix import Matrix


class GenericList(RDatatype):
    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "list"


class TaggedList(RDatatype):
    pull_priority = 1

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "list" and "tagged" in class_names(r_class)


class OtherGenericList(RDatatype):
    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "list"


@pytest.fixture
def registry():
    registry = DatatypeRegistry()
    registry.register(GenericList)
    registry.register(TaggedList)
    registry.register(OtherGenericList)
    return registry


def test_registry_singleton():
    assert DatatypeRegistry.get_instance() is DatatypeRegistry.get_instance()
    assert get_registry() is DatatypeRegistry.get_instance()


def test_higher_priority_wins(registry):
    assert registry.resolve("list", ["tagged", "list"]) is TaggedList


def test_equal_priority_falls_back_to_registration_order(registry):
    assert registry.resolve("list", "list") is GenericList
    assert registry.candidates("list", "list") == [GenericList, OtherGenericList]


def test_no_candidate(registry):
    assert registry.resolve("double", "numeric") is None


def test_duplicate_registration_is_ignored(registry):
    registry.register(GenericList)
    assert registry.datatypes.count(GenericList) == 1


def test_register_requires_can_pull(registry):
    with pytest.raises(TypeError):
        registry.register(object)


def test_clear(registry):
    registry.clear()
    assert registry.datatypes == []
    assert GenericList not in registry


class TestSharedRegistry:
    """Resolution against the datatypes shipped with rlink."""

    def test_specific_wrappers_beat_list(self):
        registry = get_registry()
        assert registry.resolve("list", "lm") is LinearRegressionModel
        assert registry.resolve("list", ["aov", "lm"]) is ANOVAModel
        assert registry.resolve("list", "data.frame") is DataFrame
        assert registry.resolve("list", "list") is List

    def test_registration_order(self):
        names = [datatype.__name__ for datatype in get_registry().datatypes]
        assert names == [
            "DataFrame", "LinearRegressionModel", "LinearMixedEffectsModel", "ANOVAModel",
            "Null", "List", "Factor", "Matrix", "Formula", "Call", "Environment", "S4Class",
        ]

    def test_atomic_wrappers(self):
        registry = get_registry()
        assert registry.resolve("integer", "factor") is Factor
        assert registry.resolve("double", ["matrix", "array"]) is Matrix
        assert registry.resolve("NULL", "NULL") is Null
        assert registry.resolve("double", "numeric") is None


class TestPullVariable:
    def test_raw_value_when_no_wrapper_matches(self, session, script):
        script("x", "double", "numeric", value=[1, 2, 3], length=3)
        with session.exclusive():
            assert pull_variable(session, "x") == [1.0, 2.0, 3.0]

    def test_empty_value_becomes_empty_list(self, session, script):
        script("x", "character", "character", length=0)
        with session.exclusive():
            assert pull_variable(session, "x") == []

    def test_missing_values_are_parsed(self, session, script):
        script("x", "double", "numeric", value=[1.5, None], length=2)
        with session.exclusive():
            values = pull_variable(session, "x")
        assert values[0] == 1.5
        assert math.isnan(values[1])

    def test_null(self, session, script):
        script("x", "NULL", "NULL")
        with session.exclusive():
            assert pull_variable(session, "x") is None

    def test_forced_type_must_accept_the_value(self, session, script):
        script("x", "double", "numeric")
        with session.exclusive():
            with pytest.raises(IncompatibleForcedTypeError) as exc:
                pull_variable(session, "x", forced=Matrix)

        assert exc.value.code == "RLNK-2001"
        assert "Matrix" in str(exc.value)
        assert "double" in str(exc.value)

    def test_forced_type_bypasses_discovery(self, session, script, backend):
        script("m", "list", "lm", length=0)
        backend.answers["length(m)"] = 0
        with session.exclusive():
            result = pull_variable(session, "m", forced=List)
        assert isinstance(result, List)
        assert len(result) == 0

    def test_forced_type_must_be_a_datatype(self, session, script):
        script("x", "double", "numeric")
        with session.exclusive():
            with pytest.raises(TypeMismatchError):
                pull_variable(session, "x", forced=int)

    def test_custom_registry(self, session, script, registry, backend):
        script("x", "list", ["tagged"])
        with session.exclusive():
            with pytest.raises(NotImplementedError):
                pull_variable(session, "x", registry=registry)

    def test_session_item_access(self, session, script):
        script("flag", "logical", "logical", value=True, length=1)
        with session.exclusive():
            assert session["flag"] is True
