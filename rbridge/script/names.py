# rbridge/script/names.py
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List
from uuid import UUID

from rbridge.utils.errors import ConfigurationError

if TYPE_CHECKING:
    from rbridge.model.attributes import Attribute

# R identifiers cannot start with a digit
IDENTIFIER_PREFIX = "X"
NAMESPACE_PREFIX = "x"


def sanitize(name: str) -> str:
    """
    Make `name` usable as an R column / variable name.

    Idempotent: sanitize(sanitize(x)) == sanitize(x)
    """
    if not name:
        raise ConfigurationError("Cannot sanitize an empty name")
    return IDENTIFIER_PREFIX + name if name[0].isdigit() else name


def attribute_names(attributes: Iterable[Attribute]) -> List[str]:
    return [sanitize(a.name) for a in attributes]


def namespace_name(model_id: UUID) -> str:
    """
    x + 32 hex digits, e.g. xd9556c1497f140f69514f6fb339474af
    """
    return NAMESPACE_PREFIX + model_id.hex


def model_id_from_namespace(namespace: str) -> UUID:
    if not namespace.startswith(NAMESPACE_PREFIX):
        raise ConfigurationError(f"Not a model namespace: {namespace}")
    try:
        return UUID(hex=namespace[len(NAMESPACE_PREFIX):])
    except ValueError:
        raise ConfigurationError(f"Not a model namespace: {namespace}") from None
