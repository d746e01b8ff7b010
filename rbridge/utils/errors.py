# rbridge/utils/errors.py
from __future__ import annotations

from pathlib import Path


class BridgeError(RuntimeError):
    """
    Root of every error raised by the public rbridge surface.
    """


class ConfigurationError(BridgeError):
    """
    Raised for invalid model metadata or properties.
    Never retried.
    """


class ModelNotFoundError(BridgeError):
    """
    Raised when an operation names a model id that is not registered.
    """

    def __init__(self, model_id):
        super().__init__(f"Model not found: {model_id}")
        self.model_id = model_id


class RemoteExecutionError(BridgeError):
    """
    Engine-side evaluation failure, with the engine's own message attached.
    """

    def __init__(self, message: str, program: str | None = None):
        super().__init__(message)
        self.message = message
        self.program = program


class EngineConnectionError(RemoteExecutionError):
    """
    Transport-level failure talking to the engine.
    """


class ResourceError(BridgeError):
    """
    File copy / delete / read / write failure.
    """

    def __init__(self, operation: str, path: str | Path, cause: Exception | None = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Unable to {operation} '{path}'{detail}")
        self.operation = operation
        self.path = Path(path)


class UnsupportedOperationError(BridgeError):
    """
    Operation intentionally not supported by the R backend.
    """
