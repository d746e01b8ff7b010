# rbridge/rserve/result.py
from __future__ import annotations

from dataclasses import dataclass
from numbers import Integral, Real
from typing import Union

import numpy as np

from rbridge.utils.errors import RemoteExecutionError
from rbridge.utils.logger import logs

# first element of the character vector returned for an engine-side failure
ERROR_MARKER = "__rbridge_error__"


@dataclass(frozen=True)
class RNull:
    def as_vector(self) -> np.ndarray:
        return np.empty(0, dtype=float)


@dataclass(frozen=True, eq=False)
class RNumericVector:
    values: np.ndarray

    def as_vector(self) -> np.ndarray:
        return self.values

    def __eq__(self, other):
        return isinstance(other, RNumericVector) and np.array_equal(self.values, other.values)

    def __len__(self):
        return len(self.values)


@dataclass(frozen=True)
class RInteger:
    value: int

    def as_vector(self) -> np.ndarray:
        return np.array([self.value], dtype=float)


@dataclass(frozen=True)
class RDouble:
    value: float

    def as_vector(self) -> np.ndarray:
        return np.array([self.value], dtype=float)


@dataclass(frozen=True)
class RText:
    value: str

    def as_vector(self) -> np.ndarray:
        raise TypeError(f"Text result is not numeric: {self.value!r}")


ProtocolResult = Union[RNull, RNumericVector, RInteger, RDouble, RText]


def _is_error(value) -> bool:
    if isinstance(value, np.ndarray):
        return value.dtype.kind in ("U", "S", "O") and value.size >= 1 and value.flat[0] == ERROR_MARKER
    if isinstance(value, (list, tuple)):
        return len(value) >= 1 and value[0] == ERROR_MARKER
    return value == ERROR_MARKER if isinstance(value, str) else False


def _error_message(value) -> str:
    parts = [str(v) for v in (value.flat if isinstance(value, np.ndarray) else value)][1:]
    return "\n".join(parts).strip() or "R evaluation failed"


def decode(value, program: str | None = None) -> ProtocolResult:
    """
    Decode a pyRserve value, precedence:
        error marker -> RemoteExecutionError
        null         -> RNull
        numeric vector -> RNumericVector
        integer scalar -> RInteger
        numeric scalar -> RDouble
        string scalar  -> RText
        anything else  -> RNull (logged)
    """
    if _is_error(value):
        raise RemoteExecutionError(_error_message(value), program)

    if value is None:
        return RNull()

    if isinstance(value, np.ndarray):
        if value.dtype.kind in ("f", "i", "u"):
            return RNumericVector(np.asarray(value, dtype=float).ravel())
        if value.dtype.kind in ("U", "S", "O") and value.size == 1:
            return RText(str(value.flat[0]))
        logs.warning(f"[Rserve] unsupported vector result dtype={value.dtype} size={value.size}")
        return RNull()

    # bool is an Integral: logical results are not integers
    if isinstance(value, (bool, np.bool_)):
        logs.warning(f"[Rserve] unsupported logical result: {value!r}")
        return RNull()

    if isinstance(value, Integral):
        return RInteger(int(value))

    if isinstance(value, Real):
        return RDouble(float(value))

    if isinstance(value, str):
        return RText(value)

    logs.warning(f"[Rserve] unsupported result type: {type(value).__name__}")
    return RNull()
