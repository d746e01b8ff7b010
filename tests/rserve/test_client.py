import numpy as np
import pytest
from pyRserve import rexceptions

from rbridge.config.rserve_config import RserveConfig
from rbridge.rserve import client as client_module
from rbridge.rserve.client import EVAL_WRAPPER, PROGRAM_VARIABLE, RserveClient
from rbridge.rserve.result import RDouble, RNull, RNumericVector, RText
from rbridge.utils.errors import EngineConnectionError, RemoteExecutionError, ResourceError

from tests.fakes import FakeRConnection, r_error


def _client(handler):
    conn = FakeRConnection(handler)
    return RserveClient(conn), conn


# ----------------------------------------------------------------------
# evaluate
# ----------------------------------------------------------------------
def test_program_travels_as_variable_and_runs_through_wrapper():
    client, conn = _client(lambda program: 2.5)

    assert client.evaluate("1 + 1.5") == RDouble(2.5)
    assert conn.r.values[PROGRAM_VARIABLE] == "1 + 1.5"
    assert conn.wrappers == [EVAL_WRAPPER]


def test_wrapper_traps_errors_and_hides_closures():
    assert "try(eval(parse(text = rbridge_program), envir = globalenv()), silent = TRUE)" in EVAL_WRAPPER
    assert '"__rbridge_error__"' in EVAL_WRAPPER
    assert "is.function(result) || is.environment(result)" in EVAL_WRAPPER


def test_program_text_is_passed_verbatim():
    client, conn = _client(lambda program: None)
    program = 'x <- "quote \\" and\nnewline"'

    client.evaluate(program)
    assert conn.programs == [program]


def test_decoded_results():
    results = iter([None, np.array([0.1, 0.9]), "done"])
    client, _ = _client(lambda program: next(results))

    assert client.evaluate("a") == RNull()
    assert client.evaluate("b") == RNumericVector(np.array([0.1, 0.9]))
    assert client.evaluate("c") == RText("done")


def test_engine_error_becomes_remote_execution_error():
    client, _ = _client(lambda program: r_error("could not find function \"nope\""))

    with pytest.raises(RemoteExecutionError) as exc:
        client.evaluate("nope()")
    assert 'could not find function "nope"' in exc.value.message
    assert exc.value.program == "nope()"
    assert not isinstance(exc.value, EngineConnectionError)


def test_channel_errors_are_mapped():
    def eval_error(program):
        raise rexceptions.REvalError("parse error")

    client, _ = _client(eval_error)
    with pytest.raises(RemoteExecutionError, match="parse error"):
        client.evaluate("(")

    def broken(program):
        raise ConnectionResetError("peer reset")

    client, _ = _client(broken)
    with pytest.raises(EngineConnectionError, match="peer reset"):
        client.evaluate("1")


def test_client_survives_an_engine_error():
    answers = iter([r_error("boom"), 1.0])
    client, _ = _client(lambda program: next(answers))

    with pytest.raises(RemoteExecutionError):
        client.evaluate("stop('boom')")
    assert client.evaluate("1") == RDouble(1.0)


# ----------------------------------------------------------------------
# scripts / helpers
# ----------------------------------------------------------------------
def test_load_script_normalizes_line_endings(tmp_path):
    script = tmp_path / "setup.R"
    script.write_bytes(b"a <- 1\r\nb <- 2\rc <- 3\n")
    client, conn = _client(lambda program: None)

    client.load_script(script)
    assert conn.programs == ["a <- 1\nb <- 2\nc <- 3\n"]


def test_load_script_missing_or_directory(tmp_path):
    client, conn = _client(lambda program: None)

    with pytest.raises(ResourceError, match="not found"):
        client.load_script(tmp_path / "absent.R")
    with pytest.raises(ResourceError, match="not a file"):
        client.load_script(tmp_path)
    assert conn.programs == []


def test_reset_all():
    client, conn = _client(lambda program: None)
    client.reset_all()
    assert conn.programs == [
        "rm(list = ls(all.names = TRUE, envir = globalenv()), envir = globalenv())"
    ]


def test_assign_lists():
    client, conn = _client(lambda program: None)

    client.assign_string_list("names", "x01", ["a", 'b"c'])
    client.assign_int_list("idx", "x01", [1, 3])

    assert conn.programs == [
        'x01$names <- c("a", "b\\"c")',
        "x01$idx <- as.integer(c(1, 3))",
    ]


# ----------------------------------------------------------------------
# lifecycle
# ----------------------------------------------------------------------
def test_close_is_idempotent():
    client, conn = _client(lambda program: None)

    with client:
        assert not client.closed
    assert conn.isClosed
    client.close()
    assert client.closed


def test_shutdown_stops_the_server():
    client, conn = _client(lambda program: None)
    client.shutdown()
    assert conn.shutdown_called
    assert client.closed


def test_connect_retries_refused_connections(monkeypatch):
    attempts = []
    conn = FakeRConnection()

    def fake_connect(**kwargs):
        attempts.append(kwargs)
        if len(attempts) < 3:
            raise rexceptions.RConnectionRefused("refused")
        return conn

    monkeypatch.setattr(client_module.pyRserve, "connect", fake_connect)
    monkeypatch.setattr("rbridge.utils.retry.time.sleep", lambda s: None)

    client = RserveClient.connect(RserveConfig(host="r-host", port=6312, connect_attempts=3))

    assert len(attempts) == 3
    assert attempts[0] == {"host": "r-host", "port": 6312, "atomicArray": False}
    client.close()
    assert conn.isClosed


def test_connect_gives_up(monkeypatch):
    def refused(**kwargs):
        raise rexceptions.RConnectionRefused("refused")

    monkeypatch.setattr(client_module.pyRserve, "connect", refused)
    monkeypatch.setattr("rbridge.utils.retry.time.sleep", lambda s: None)

    with pytest.raises(EngineConnectionError, match="r-host:6311"):
        RserveClient.connect(RserveConfig(host="r-host", connect_attempts=2))
