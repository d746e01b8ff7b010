#!filepath: rbridge/rserve/client.py
from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterable, Optional

import pyRserve
from pyRserve import rexceptions

from rbridge.config.rserve_config import RserveConfig
from rbridge.rserve.result import ERROR_MARKER, ProtocolResult, decode
from rbridge.script import builder as rb
from rbridge.script.names import sanitize
from rbridge.utils.errors import EngineConnectionError, RemoteExecutionError, ResourceError
from rbridge.utils.filesystem import FileSystem
from rbridge.utils.logger import logs
from rbridge.utils.retry import Retry

# global R variable holding the program being evaluated
PROGRAM_VARIABLE = "rbridge_program"

# evaluates the program in the global environment and turns any R error
# into c(ERROR_MARKER, message) instead of breaking the channel
EVAL_WRAPPER = f"""local({{
    result <- try(eval(parse(text = {PROGRAM_VARIABLE}), envir = globalenv()), silent = TRUE)
    if (inherits(result, "try-error")) {{
        c({rb.literal(ERROR_MARKER)}, as.character(result))
    }} else if (is.function(result) || is.environment(result)) {{
        NULL
    }} else {{
        result
    }}
}})"""


class RserveClient:
    """
    One blocking connection to an Rserve daemon.

    Semantics:
    - the engine runs one program at a time: every call holds `_lock`
    - every failure leaves this class as a BridgeError
    - close() releases this connection; shutdown() stops the daemon for everyone
    """

    def __init__(self, connection):
        self._conn = connection
        self._lock = threading.RLock()

    @classmethod
    def connect(cls, cfg: Optional[RserveConfig] = None) -> "RserveClient":
        cfg = cfg or RserveConfig()
        logs.info(f"[Rserve] connecting to {cfg.host}:{cfg.port}")
        try:
            conn = Retry.run(
                pyRserve.connect,
                host=cfg.host,
                port=cfg.port,
                atomicArray=False,
                exceptions=(rexceptions.RConnectionRefused, ConnectionError),
                max_attempts=cfg.connect_attempts,
                delay=cfg.connect_delay,
            )
        except (rexceptions.PyRserveError, OSError) as e:
            raise EngineConnectionError(
                f"Unable to connect to Rserve at {cfg.host}:{cfg.port}: {e}"
            ) from e
        return cls(conn)

    # ------------------------------------------------------------------
    # evaluation
    # ------------------------------------------------------------------
    def evaluate(self, program: str) -> ProtocolResult:
        with self._lock:
            logs.debug(f"[Rserve] eval:\n{program}")
            try:
                setattr(self._conn.r, PROGRAM_VARIABLE, program)
                raw = self._conn.eval(EVAL_WRAPPER)
            except rexceptions.REvalError as e:
                raise RemoteExecutionError(str(e), program) from e
            except (rexceptions.PyRserveError, OSError) as e:
                raise EngineConnectionError(f"Rserve transport failure: {e}", program) from e

        try:
            return decode(raw, program)
        except RemoteExecutionError as e:
            logs.error(f"[Rserve] R error: {e.message}")
            raise

    def load_script(self, path: str | Path) -> ProtocolResult:
        path = Path(path)
        if not path.exists():
            raise ResourceError("load script (not found)", path)
        if not path.is_file():
            raise ResourceError("load script (not a file)", path)

        contents = FileSystem.read_text(path)
        # R on Windows chokes on CR
        contents = contents.replace("\r\n", "\n").replace("\r", "\n")
        logs.info(f"[Rserve] loading script {path}")
        return self.evaluate(contents)

    def reset_all(self) -> None:
        """
        Drop every binding of the global environment, all models included.
        """
        logs.warning("[Rserve] resetting all engine-side bindings")
        self.evaluate("rm(list = ls(all.names = TRUE, envir = globalenv()), envir = globalenv())")

    # ------------------------------------------------------------------
    # assignment helpers
    # ------------------------------------------------------------------
    def assign_string_list(self, varname: str, namespace: str, values: Iterable[str]) -> None:
        self.evaluate(f"{namespace}${sanitize(varname)} <- {rb.vector(str(v) for v in values)}")

    def assign_int_list(self, varname: str, namespace: str, values: Iterable[int]) -> None:
        self.evaluate(f"{namespace}${sanitize(varname)} <- as.integer({rb.index_vector(values)})")

    # ------------------------------------------------------------------
    # teardown
    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return bool(getattr(self._conn, "isClosed", False))

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            try:
                self._conn.close()
            except (rexceptions.PyRserveError, OSError) as e:
                raise EngineConnectionError(f"Error closing Rserve connection: {e}") from e
            logs.info("[Rserve] connection closed")

    def shutdown(self) -> None:
        with self._lock:
            if self.closed:
                return
            logs.warning("[Rserve] shutting down the R server")
            try:
                self._conn.shutdown()
            except (rexceptions.PyRserveError, OSError) as e:
                raise EngineConnectionError(f"Error shutting down R server: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
