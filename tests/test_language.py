import logging

import pytest

from rlink.core.errors import ShapeMismatchError, TypeMismatchError, UnknownNameError, ValidationError
from rlink.types.language import Arguments, Call, Environment, Formula, Function, Options, Variable
from rlink.types.s4class import S4Class
from rlink.types.sequence import Sequence


class TestFormula:
    def test_structural_equality(self):
        assert Formula("y", "x") == Formula("y", "x")
        assert Formula("y", "x") != Formula("x", "y")
        assert hash(Formula("y", "x")) == hash(Formula("y", "x"))

    def test_render(self):
        assert Formula("y", "x1 + x2").to_r() == "y ~ x1 + x2"
        assert Formula(None, "x").to_r() == " ~ x"
        assert Formula(None, "x").left_part == ""

    def test_parts_must_be_strings(self):
        with pytest.raises(TypeMismatchError):
            Formula("y", 1)

    def test_pull_two_sided(self, session, backend, script):
        script("f", "language", "formula")
        backend.answers["as.character(f)"] = ["~", "y", "x1 + x2"]

        with session.exclusive():
            assert session["f"] == Formula("y", "x1 + x2")

    def test_pull_one_sided(self, session, backend, script):
        script("f", "language", "formula")
        backend.answers["as.character(f)"] = ["~", "x"]

        with session.exclusive():
            assert session["f"] == Formula("", "x")

    def test_pull_rejects_other_shapes(self, session, backend, script):
        script("f", "language", "formula")
        backend.answers["as.character(f)"] = ["~"]

        with session.exclusive():
            with pytest.raises(ShapeMismatchError):
                session["f"]


class TestCall:
    def test_pull_and_load(self, session, backend, script):
        script("cl", "language", "call")
        backend.answers["deparse(cl)"] = ["lm(formula = y ~ x,", "data = d)"]

        with session.exclusive():
            call = session["cl"]
            call.load_in_r_as(session, "copy")

        assert call == Call("lm(formula = y ~ x, data = d)")
        assert backend.commands[-1] == 'copy <- str2lang("lm(formula = y ~ x, data = d)")'


def test_environment_logs_warning(session, script, caplog):
    script("e", "environment", "environment")

    with caplog.at_level(logging.WARNING, logger="rlink"):
        with session.exclusive():
            assert isinstance(session["e"], Environment)

    assert "not supported" in caplog.text


class TestFunction:
    def test_to_r(self):
        fn = Function("t.test")
        fn.arguments.append(Variable("a"))
        fn.arguments.append([1, 2])
        fn.options["paired"] = True
        fn.options["mu"] = 0.5

        assert fn.to_r() == "t.test(a, c(1,2),paired=TRUE, mu=0.5)"

    def test_empty_call(self):
        assert Function("ls").to_r() == "ls()"

    def test_setters_validate(self):
        fn = Function("f")
        fn.arguments = Arguments([Variable("x")])
        fn.options = Options.from_dict({"n": 2})
        assert fn.to_r() == "f(x,n=2)"

        with pytest.raises(TypeMismatchError):
            fn.arguments = [1]
        with pytest.raises(TypeMismatchError):
            fn.options = {"n": 2}

    def test_call_evaluates_in_session(self, session, backend):
        fn = Function("rm")
        fn.arguments.append(Variable("tmp"))

        with session.exclusive():
            fn.call(session)

        assert backend.commands == ["rm(tmp)"]


class TestSequence:
    def test_iteration(self):
        assert Sequence(1, 3).to_list() == [1, 2, 3]
        assert Sequence(0, 1, 0.5).to_list() == [0, 0.5, 1.0]
        assert Sequence(3, 1, -1).to_list() == [3, 2, 1]
        assert len(Sequence(1, 10).by(3)) == 4
        assert len(Sequence(1, 3)) == 3
        assert len(Sequence(2, 1)) == 0

    def test_render(self):
        assert Sequence(1, 10, 2).to_r() == "seq(from=1, to=10, by=2)"

    def test_zero_step(self):
        with pytest.raises(ValidationError):
            Sequence(1, 2, 0)


class TestS4Class:
    def test_pull_and_slots(self, session, backend, script):
        script("obj", "S4", "Person")
        backend.answers['names(getSlots("Person"))'] = ["name", "age"]

        with session.exclusive():
            person = session["obj"]

        assert isinstance(person, S4Class)
        assert person.class_name == "Person"
        assert person.slots == ["name", "age"]
        assert person.r_hash() == "immutable"

        mirror = person.mirrored_variable_name(session)
        assert f"`{mirror}` <- obj" in backend.commands

        backend.answers[f'exists("{mirror}")'] = True
        backend.answers[f"`{mirror}.hash`"] = "immutable"
        script(f"`{mirror}`@name", "character", "character", value="Ada", length=1)
        assert person["name"] == "Ada"

    def test_unknown_slot(self, session, script, backend):
        script("obj", "S4", "Person")
        backend.answers['names(getSlots("Person"))'] = ["name"]

        with session.exclusive():
            person = session["obj"]

        with pytest.raises(UnknownNameError):
            person["salary"]
