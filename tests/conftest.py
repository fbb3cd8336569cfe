import re
import threading
import time

import pytest

import rlink  # noqa: F401  (registers every datatype)
from rlink.core.channel import EngineSession
from rlink.core.config import Settings
from rlink.core.errors import EngineEvaluationError

_ASSIGNMENT = re.compile(r"^\s*(.+?)\s*<-\s*(.+?)\s*$")


class FakeBackend:
    """
    In-memory stand-in for the Rserve transport.

    Records every command, keeps simple ``name <- expr`` assignments in a
    namespace, answers ``evaluate`` from scripted answers (then from the
    namespace) and emulates diagnostic capture.
    """

    def __init__(self, answers=None, delay=0.0):
        self.answers = dict(answers or {})
        self.namespace = {}
        self.commands = []
        self.threads = []
        self.delay = delay
        self.fail_on = None
        self.warnings = {}
        self.capturing = False
        self.capture_calls = 0
        self._captured = []
        self._lock = threading.Lock()

    def _record(self, command):
        with self._lock:
            self.commands.append(command)
            self.threads.append(threading.get_ident())
        if self.fail_on and self.fail_on in command:
            raise EngineEvaluationError("RLNK-6002", reason=f"error in {command}")
        if self.capturing:
            for key, lines in self.warnings.items():
                if key in command:
                    self._captured.extend(lines)
        if self.delay:
            time.sleep(self.delay)

    def execute(self, command):
        self._record(command)
        for line in command.splitlines():
            match = _ASSIGNMENT.match(line)
            if match:
                self.namespace[match.group(1)] = match.group(2)
        return True

    def evaluate(self, command):
        self._record(command)
        if command in self.answers:
            return self.answers[command]
        if command in self.namespace:
            return self.namespace[command]
        raise EngineEvaluationError("RLNK-6002", reason=f"no answer for {command}")

    def start_capture(self):
        self.capturing = True
        self.capture_calls += 1
        self._captured = []

    def stop_capture(self):
        self.capturing = False
        captured, self._captured = self._captured, []
        return "\n".join(captured)

    def close(self):
        pass


@pytest.fixture
def settings():
    return Settings(debug=True, chunk_size=10000)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def session(backend, settings):
    return EngineSession(backend=backend, settings=settings)


@pytest.fixture
def script(backend):
    """Script the introspection answers used by ``pull_variable`` for a variable."""
    def _script(name, r_type, r_class, value=None, length=None):
        backend.answers[f"as.character(typeof({name}))"] = r_type
        backend.answers[f"as.character(class({name}))"] = r_class
        if length is not None:
            backend.answers[f"length({name})"] = length
        if value is not None:
            backend.answers[name] = value
    return _script


@pytest.fixture
def make_session():
    """Build an independent session on a fresh fake backend."""
    def _make(delay=0.0, **settings):
        return EngineSession(backend=FakeBackend(delay=delay), settings=Settings(**settings))
    return _make
