"""
Engine Channel

Single-writer gateway to the R engine. The engine has one global namespace
and is not re-entrant, so every interaction happens inside
``EngineSession.exclusive()``, which holds the session lock for the whole
logical operation (assign inputs, run a model, read results back). A second
lock guards each raw command together with the diagnostic capture around it.

Usage:
    from rlink.core.channel import EngineSession

    session = EngineSession()
    with session.exclusive():
        session.assign("x", [1, 2, 3])
        session.eval("y <- x * 2")
        total, warnings = session.pull("sum(y)", return_warnings=True)

Constraints:
- ``exclusive()`` is not re-entrant; nesting it on the same thread raises
  ``PreconditionViolation`` (RLNK-5002).
- Calls block until the engine answers. There is no timeout.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterable, List, Optional, Union

from rlink.core import codec
from rlink.core.config import Settings, get_settings
from rlink.core.errors import EngineEvaluationError, PreconditionViolation
from rlink.core.structured_logging import with_session_id

logger = logging.getLogger(__name__)

Commands = Union[str, Iterable[str]]


def chunk_statements(commands: Commands, limit: int) -> List[str]:
    """
    Split statements into batches shorter than ``limit`` characters.

    Batches only break between statements. A single statement longer than
    the limit is sent alone.
    """
    if isinstance(commands, str):
        statements = commands.splitlines()
    else:
        statements = list(commands)

    chunks: List[str] = []
    current: List[str] = []
    current_length = 0
    for statement in statements:
        length = len(statement) + 1
        if current and current_length + length >= limit:
            chunks.append("\n".join(current))
            current = []
            current_length = 0
        current.append(statement)
        current_length += length
    if current:
        chunks.append("\n".join(current))
    return chunks


class EngineSession:
    """
    Handle on one R engine process.

    Owns the transport and the lock pair. Components receive the session
    explicitly instead of reaching for a global.
    """

    def __init__(self, backend=None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        if backend is None:
            from rlink.core.r_bridge import RserveBackend
            backend = RserveBackend(self.settings.r_engine_host, self.settings.r_engine_port)
        self.backend = backend

        self._session_lock = threading.Lock()
        self._command_lock = threading.Lock()
        self._owner: Optional[int] = None

    # =========================================================================
    # Session discipline
    # =========================================================================

    @contextmanager
    def exclusive(self):
        """Hold the session lock for the duration of the block."""
        me = threading.get_ident()
        if self._owner == me:
            raise PreconditionViolation("RLNK-5002")

        with self._session_lock:
            self._owner = me
            try:
                with with_session_id() as session_id:
                    logger.debug(f"Session {session_id} acquired the engine")
                    yield self
            finally:
                self._owner = None

    def run_exclusive(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run ``func`` inside an exclusive block and return its result."""
        with self.exclusive():
            return func(*args, **kwargs)

    @property
    def in_exclusive(self) -> bool:
        """True when the calling thread holds the session lock."""
        return self._owner == threading.get_ident()

    def _check_exclusive(self):
        if not self.in_exclusive:
            raise PreconditionViolation("RLNK-5001")

    # =========================================================================
    # Raw execution
    # =========================================================================

    def _rexec(self, command: str, return_warnings: bool, executor: Callable[[str], Any]):
        self._check_exclusive()
        if self.settings.debug:
            logger.debug(f"Calling engine with command: {command}")

        with self._command_lock:
            diagnostics = ""
            if return_warnings:
                self.backend.start_capture()
            try:
                result = executor(command)
            finally:
                if return_warnings:
                    diagnostics = self.backend.stop_capture()

        if self.settings.debug:
            logger.debug(f" Result: {repr(result)[:100]}")

        if return_warnings:
            warnings = [line.strip() for line in diagnostics.splitlines() if line.strip()]
            if warnings:
                logger.debug(f" Got {len(warnings)} warning lines")
            return result, warnings
        return result

    def eval(self, command: str, return_warnings: bool = False):
        """Execute ``command``; returns True (and the warnings, if requested)."""
        return self._rexec(command, return_warnings, self.backend.execute)

    def pull(self, command: str, return_warnings: bool = False):
        """Evaluate ``command`` and return its value as plain Python."""
        def executor(cmd: str) -> Any:
            return codec.normalize(self.backend.evaluate(cmd))

        return self._rexec(command, return_warnings, executor)

    def eval_big(self, commands: Commands, return_warnings: bool = False):
        """
        Execute many statements, chunked to respect the engine command size.

        The batch succeeds only if every chunk succeeds.
        """
        def executor(_: str) -> bool:
            result = True
            for chunk in chunks:
                result = self.backend.execute(chunk) and result
            return result

        chunks = chunk_statements(commands, self.settings.chunk_size)
        logger.debug(f"Sending {len(chunks)} chunk(s) to the engine")
        return self._rexec("\n".join(chunks), return_warnings, executor)

    # =========================================================================
    # Values
    # =========================================================================

    def assign(self, name: str, value: Any):
        """
        Bind ``value`` to the R variable ``name``.

        rlink datatypes load themselves; pandas frames go through
        ``DataFrame.from_pandas``; anything else is rendered by the codec.

        Raises:
            EngineEvaluationError: RLNK-6003 when the engine rejects the
                assignment
        """
        self._check_exclusive()

        try:
            self._assign(name, value)
        except EngineEvaluationError as exc:
            raise EngineEvaluationError(
                "RLNK-6003",
                details={"reason": exc.message},
                name=name,
            ) from exc

    def _assign(self, name: str, value: Any):
        if hasattr(value, "load_in_r_as"):
            value.load_in_r_as(self, name)
            return

        import pandas as pd
        if isinstance(value, pd.DataFrame):
            from rlink.types.dataframe import DataFrame
            DataFrame.from_pandas(value).load_in_r_as(self, name)
            return

        self.eval(f"{name} <- {codec.render(value)}")

    def __setitem__(self, name: str, value: Any):
        self.assign(name, value)

    def __getitem__(self, variable: str) -> Any:
        from rlink.core.datatype import pull_variable
        return pull_variable(self, variable)

    # =========================================================================
    # Library prerequisites
    # =========================================================================

    def check_library(self, name: str) -> bool:
        """True if the R library ``name`` can be loaded."""
        with self.exclusive():
            result, _ = self.pull(f"require({codec.quote(name)}, character.only = TRUE)", True)
        return bool(result)

    def load_library(self, name: str):
        with self.exclusive():
            self.eval(f"library({codec.quote(name)}, character.only = TRUE)")

    def install_library(self, name: str):
        """Install the R library ``name`` and its dependencies."""
        with self.exclusive():
            self.eval(f"install.packages({codec.quote(name)}, dependencies = TRUE)")

    def prerequisite(self, library: str):
        """Install ``library`` if it is missing, then load it."""
        if not self.check_library(library):
            logger.info(f"Installing R library {library}")
            self.install_library(library)
        self.load_library(library)

    def close(self):
        self.backend.close()


_default_session: Optional[EngineSession] = None
_default_lock = threading.Lock()


def get_default_session() -> EngineSession:
    """Lazily create the session used when none is passed explicitly."""
    global _default_session
    with _default_lock:
        if _default_session is None:
            _default_session = EngineSession()
        return _default_session


def set_default_session(session: Optional[EngineSession]):
    """Replace the default session (None resets it)."""
    global _default_session
    with _default_lock:
        _default_session = session
