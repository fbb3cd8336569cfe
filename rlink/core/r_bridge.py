"""
Rserve Bridge Module

Handles the raw communication with the R engine via Rserve. This is the
transport used by ``EngineSession``; it knows nothing about locking,
sessions or datatypes.

Usage:
    backend = RserveBackend("localhost", 6311)
    backend.execute("x <- c(1, 2, 3)")
    backend.evaluate("mean(x)")   # 2.0
"""
import logging
from typing import Any, Optional

from rlink.core.errors import (
    DependencyError,
    EngineConnectionError,
    EngineEvaluationError,
)

logger = logging.getLogger(__name__)

# R-side names used while diagnostics are captured
_CAPTURE_CONNECTION = ".rlink.diag.con"
_CAPTURE_BUFFER = ".rlink.diag.out"


class RserveBackend:
    """
    Transport to the R statistical engine via Rserve.

    Diagnostics (printed output, messages and warnings) can be captured by
    sinking them into an R text connection between ``start_capture()`` and
    ``stop_capture()``.
    """

    def __init__(self, host: str = "localhost", port: int = 6311):
        self.host = host
        self.port = port
        self.conn = None
        self._capturing = False

    def _ensure_dependency(self):
        """Ensure pyRserve is installed."""
        try:
            import pyRserve  # noqa: F401
        except ImportError:
            raise DependencyError("RLNK-5003", package="pyRserve")

    def connect(self):
        """Establish connection to Rserve."""
        self._ensure_dependency()
        import pyRserve

        if self.conn is not None and not self.conn.isClosed:
            return

        try:
            self.conn = pyRserve.connect(host=self.host, port=self.port)
            logger.info(f"Connected to Rserve at {self.host}:{self.port}")
        except Exception as e:
            raise EngineConnectionError(
                "RLNK-6001",
                host=self.host,
                port=self.port,
                details={"host": self.host, "port": self.port, "reason": str(e)},
            ) from e

    def close(self):
        """Close connection."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _wrap(self, command: str) -> str:
        if not self._capturing:
            return command
        # Warnings are turned into messages so the message sink sees them
        return (
            "withCallingHandlers({\n"
            f"{command}\n"
            "}, warning = function(w) { message(\"Warning: \", conditionMessage(w)); "
            "invokeRestart(\"muffleWarning\") })"
        )

    def execute(self, command: str) -> bool:
        """Run ``command`` for its side effects. Returns True on success."""
        self.connect()
        try:
            self.conn.voidEval(self._wrap(command))
        except Exception as e:
            logger.error(f"R eval error: {e}")
            raise EngineEvaluationError("RLNK-6002", reason=str(e), details={"command": command[:200]}) from e
        return True

    def evaluate(self, command: str) -> Any:
        """Evaluate ``command`` and return the raw value produced by pyRserve."""
        self.connect()
        try:
            return self.conn.eval(self._wrap(command))
        except Exception as e:
            logger.error(f"R eval error: {e}")
            raise EngineEvaluationError("RLNK-6002", reason=str(e), details={"command": command[:200]}) from e

    def start_capture(self):
        """Redirect R output and messages into a text buffer."""
        self.execute(
            f"{_CAPTURE_CONNECTION} <- textConnection(\"{_CAPTURE_BUFFER}\", \"w\", local = FALSE); "
            f"sink({_CAPTURE_CONNECTION}); sink({_CAPTURE_CONNECTION}, type = \"message\")"
        )
        self._capturing = True

    def stop_capture(self) -> str:
        """Restore the R output sinks and return the captured text."""
        self._capturing = False
        self.execute(
            "if (sink.number(type = \"message\") != 2) sink(type = \"message\"); "
            "while (sink.number() > 0) sink(); "
            f"close({_CAPTURE_CONNECTION})"
        )
        captured: Optional[Any] = self.evaluate(f"paste({_CAPTURE_BUFFER}, collapse = \"\\n\")")
        self.execute(f"rm({_CAPTURE_CONNECTION}, {_CAPTURE_BUFFER})")
        return str(captured or "")

    def is_healthy(self) -> bool:
        """Check if R engine is responsive."""
        try:
            res = self.evaluate("1+1")
            return int(res) == 2
        except Exception:
            return False
