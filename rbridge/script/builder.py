# rbridge/script/builder.py
from __future__ import annotations

import math
from numbers import Integral, Real
from typing import Iterable, List

from rbridge.utils.errors import ConfigurationError

NA = "NA"


def literal(value) -> str:
    """
    Render one Python value as an R literal.

    - None / NaN      -> NA
    - str             -> double quoted, backslash and quote escaped
    - bool            -> TRUE / FALSE
    - int / float     -> numeric literal (Inf / -Inf for infinities)
    """
    if value is None:
        return NA

    if isinstance(value, str):
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
        )
        return f'"{escaped}"'

    # bool before Integral: bool is an int
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    if isinstance(value, Integral):
        return str(int(value))

    if isinstance(value, Real):
        value = float(value)
        if math.isnan(value):
            return NA
        if math.isinf(value):
            return "Inf" if value > 0 else "-Inf"
        return repr(value)

    # numpy scalars and friends
    if hasattr(value, "item"):
        return literal(value.item())

    raise ConfigurationError(f"Cannot render {type(value).__name__} value as R literal: {value!r}")


def vector(values: Iterable) -> str:
    return "c(" + ", ".join(literal(v) for v in values) + ")"


def index_vector(indices: Iterable[int]) -> str:
    return "c(" + ", ".join(str(int(i)) for i in indices) + ")"


def quote_name(name: str) -> str:
    """
    Backtick-quoted symbol, for formulas.
    """
    return "`" + name.replace("`", "\\`") + "`"


class RCodeBuilder:
    """
    Accumulates R statements with indentation.

    Every value that ends up in program text goes through `literal()`;
    call sites never quote by hand.
    """

    def __init__(self, indent: str = "    "):
        self._lines: List[str] = []
        self._indent = indent
        self._depth = 0

    def line(self, text: str = "") -> "RCodeBuilder":
        self._lines.append(self._indent * self._depth + text if text else "")
        return self

    def lines(self, text: str) -> "RCodeBuilder":
        for raw in text.replace("\r\n", "\n").split("\n"):
            self.line(raw.rstrip())
        return self

    def assign(self, target: str, expression: str) -> "RCodeBuilder":
        return self.line(f"{target} <- {expression}")

    def open(self, text: str) -> "RCodeBuilder":
        self.line(text)
        self._depth += 1
        return self

    def close(self, text: str = "}") -> "RCodeBuilder":
        self._depth -= 1
        return self.line(text)

    def build(self) -> str:
        return "\n".join(self._lines) + "\n"
