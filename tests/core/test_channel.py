"""
Test Engine Channel

Exclusive-session discipline, warning capture, chunked evaluation and value
assignment against an in-memory backend.
"""
import threading
import time
from unittest.mock import MagicMock

import pandas as pd
import pytest

from rlink.core.channel import EngineSession, chunk_statements, get_default_session, set_default_session
from rlink.core.config import Settings
from rlink.core.errors import EngineEvaluationError, PreconditionViolation
from rlink.core.structured_logging import get_session_id
from rlink.types.dataframe import DataFrame


# =============================================================================
# Exclusive sessions
# =============================================================================

def test_eval_outside_exclusive_fails(session):
    with pytest.raises(PreconditionViolation) as exc:
        session.eval("x <- 1")
    assert exc.value.code == "RLNK-5001"


def test_pull_and_assign_outside_exclusive_fail(session):
    with pytest.raises(PreconditionViolation):
        session.pull("x")
    with pytest.raises(PreconditionViolation):
        session.assign("x", 1)


def test_nested_exclusive_raises_instead_of_deadlocking(session):
    with session.exclusive():
        with pytest.raises(PreconditionViolation) as exc:
            with session.exclusive():
                pass
        assert exc.value.code == "RLNK-5002"
        assert session.in_exclusive
    assert not session.in_exclusive


def test_exclusive_released_after_error(session):
    with pytest.raises(ValueError):
        with session.exclusive():
            raise ValueError("boom")

    with session.exclusive():
        assert session.eval("x <- 1") is True


def test_exclusive_sets_session_id(session):
    assert get_session_id() is None
    with session.exclusive():
        assert get_session_id() is not None
    assert get_session_id() is None


def test_run_exclusive_returns_result(session, backend):
    backend.answers["sum(1:3)"] = 6
    assert session.run_exclusive(session.pull, "sum(1:3)") == 6


def test_concurrent_sessions_do_not_interleave(make_session):
    session = make_session(delay=0.005)
    backend = session.backend
    results = {}

    def worker(value):
        with session.exclusive():
            session.eval(f"tmp <- {value}")
            time.sleep(0.01)
            session.eval("tmp2 <- tmp")
            results[value] = session.pull("tmp")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == {i: str(i) for i in range(4)}
    # each session's three commands were sent back to back by one thread
    for start in range(0, len(backend.threads), 3):
        assert len(set(backend.threads[start:start + 3])) == 1


# =============================================================================
# Warnings
# =============================================================================

def test_eval_returns_warning_lines(session, backend):
    backend.warnings["as.numeric"] = ["  Warning: NAs introduced by coercion  ", "", "second"]

    with session.exclusive():
        result, warnings = session.eval("x <- as.numeric('a')", return_warnings=True)

    assert result is True
    assert warnings == ["Warning: NAs introduced by coercion", "second"]
    assert backend.capturing is False


def test_pull_returns_empty_warnings(session, backend):
    backend.answers["1+1"] = 2
    with session.exclusive():
        assert session.pull("1+1", return_warnings=True) == (2, [])


def test_capture_is_stopped_when_command_fails(session, backend):
    backend.fail_on = "stop("

    with session.exclusive():
        with pytest.raises(EngineEvaluationError):
            session.eval("stop('nope')", return_warnings=True)

    assert backend.capture_calls == 1
    assert backend.capturing is False


def test_no_capture_without_request(session, backend):
    with session.exclusive():
        session.eval("x <- 1")
    assert backend.capture_calls == 0


# =============================================================================
# Chunking
# =============================================================================

def test_chunk_statements_breaks_between_statements():
    chunks = chunk_statements(["a <- 1", "b <- 2", "c <- 3"], 12)
    assert chunks == ["a <- 1", "b <- 2", "c <- 3"]

    chunks = chunk_statements(["a <- 1", "b <- 2", "c <- 3"], 100)
    assert chunks == ["a <- 1\nb <- 2\nc <- 3"]


def test_chunk_statements_sends_oversized_statement_alone():
    long_statement = "x <- c(" + ",".join(["1"] * 50) + ")"
    chunks = chunk_statements(["a <- 1", long_statement, "b <- 2"], 20)
    assert chunks == ["a <- 1", long_statement, "b <- 2"]


def test_chunk_statements_accepts_text():
    assert chunk_statements("a <- 1\nb <- 2", 100) == ["a <- 1\nb <- 2"]
    assert chunk_statements([], 100) == []


def test_chunked_eval_matches_single_batch(make_session):
    statements = [f"v{i} <- {i * i}" for i in range(40)]

    small_session = make_session(chunk_size=30)
    big_session = make_session(chunk_size=100000)
    small, big = small_session.backend, big_session.backend

    with small_session.exclusive():
        assert small_session.eval_big(statements) is True
    with big_session.exclusive():
        assert big_session.eval_big(statements) is True

    assert len(small.commands) > 1
    assert len(big.commands) == 1
    assert small.namespace == big.namespace


def test_eval_big_fails_if_any_chunk_fails():
    backend = MagicMock()
    backend.execute.side_effect = [True, False, True]
    session = EngineSession(backend=backend, settings=Settings(chunk_size=8))

    with session.exclusive():
        assert session.eval_big(["a <- 1", "b <- 2", "c <- 3"]) is False
    assert backend.execute.call_count == 3


# =============================================================================
# Values
# =============================================================================

def test_failed_assignment_names_the_variable(session, backend):
    backend.fail_on = "broken <-"

    with session.exclusive():
        with pytest.raises(EngineEvaluationError) as exc:
            session.assign("broken", [1, 2])

    assert exc.value.code == "RLNK-6003"
    assert "broken" in str(exc.value)
    assert exc.value.details["reason"]
    assert not session.in_exclusive


def test_assign_renders_plain_values(session, backend):
    with session.exclusive():
        session.assign("x", [1, 2.5, None])
        session["flag"] = True

    assert backend.commands == ["x <- c(1,2.5,NA)", "flag <- TRUE"]


def test_assign_pandas_frame_goes_through_dataframe(session, backend):
    frame = pd.DataFrame({"a": [1, 2]})
    with session.exclusive():
        session.assign("df", frame)

    sent = "\n".join(backend.commands)
    assert "df <- data.frame()" in sent
    assert 'df[2, c("a")] <- list(2)' in sent


def test_assign_datatype_loads_itself(session, backend):
    df = DataFrame({"a": ["x"]})
    with session.exclusive():
        session.assign("df", df)
    assert 'df[1, c("a")] <- list("x")' in "\n".join(backend.commands)


def test_prerequisite_installs_missing_library(session, backend):
    backend.answers['require("rsq", character.only = TRUE)'] = False

    session.prerequisite("rsq")

    assert 'install.packages("rsq", dependencies = TRUE)' in backend.commands
    assert backend.commands[-1] == 'library("rsq", character.only = TRUE)'


def test_prerequisite_skips_install_when_present(session, backend):
    backend.answers['require("rsq", character.only = TRUE)'] = True

    session.prerequisite("rsq")

    assert not any(command.startswith("install.packages") for command in backend.commands)


def test_default_session_can_be_replaced(session):
    set_default_session(session)
    try:
        assert get_default_session() is session
    finally:
        set_default_session(None)
