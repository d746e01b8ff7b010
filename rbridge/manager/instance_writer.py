# rbridge/manager/instance_writer.py
from __future__ import annotations

import math
import re
from numbers import Integral
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Union

import pandas as pd

from rbridge.model.attributes import UNKNOWN_CATEGORY, Attribute, check_kind, AttributeKind
from rbridge.model.model_config import ModelConfiguration
from rbridge.script.names import sanitize
from rbridge.utils.errors import ConfigurationError
from rbridge.utils.filesystem import FileSystem
from rbridge.utils.logger import logs

MISSING = "?"
DEFAULT_RELATION = "rbridge"
_PLAIN_NAME = re.compile(r"^[A-Za-z0-9_.\-]+$")

Instances = Union[pd.DataFrame, Iterable[Sequence]]


def _quote(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _name(value: str) -> str:
    return value if _PLAIN_NAME.match(value) else _quote(value)


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NA or value is pd.NaT


def _declaration(attribute: Attribute) -> str:
    name = _name(sanitize(attribute.name))
    if check_kind(attribute) == AttributeKind.NUMERIC:
        return f"@attribute {name} REAL"
    levels = ",".join(_quote(v) for v in attribute.levels)
    return f"@attribute {name} {{{levels}}}"


def _render(attribute: Attribute, value) -> str:
    if _is_missing(value):
        return MISSING

    if attribute.is_numeric:
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, Integral):
            return str(int(value))
        try:
            return repr(float(value))
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Non numeric value {value!r} for numeric attribute '{attribute.name}'"
            ) from None

    text = str(value)
    if text == UNKNOWN_CATEGORY:
        return MISSING
    return _quote(text)


def _rows(instances: Instances) -> Iterator[Sequence]:
    if isinstance(instances, pd.DataFrame):
        return instances.itertuples(index=False, name=None)
    return iter(instances)


def render_instances(
    config: ModelConfiguration,
    instances: Instances,
    relation: str = DEFAULT_RELATION,
) -> str:
    """
    Tabular instance dump (ARFF):

        @relation rbridge

        @attribute A1 {'a','b'}
        @attribute A2 REAL
        @attribute class {'0','1'}

        @data
        'a',3.5,'0'
    """
    config.validate()
    attributes = config.attributes

    lines: List[str] = [f"@relation {_name(relation)}", ""]
    lines.extend(_declaration(a) for a in attributes)
    lines.extend(["", "@data"])

    count = 0
    for row in _rows(instances):
        if len(row) != len(attributes):
            raise ConfigurationError(
                f"Instance {count} has {len(row)} values, expected {len(attributes)}"
            )
        lines.append(",".join(_render(a, v) for a, v in zip(attributes, row)))
        count += 1

    logs.debug(f"[InstanceWriter] rendered {count} instances, {len(attributes)} attributes")
    return "\n".join(lines) + "\n"


def write_instances(
    path: str | Path,
    config: ModelConfiguration,
    instances: Instances,
    relation: str = DEFAULT_RELATION,
) -> Path:
    text = render_instances(config, instances, relation)
    return FileSystem.safe_write(path, text.encode("utf-8"))
