# rbridge/model/attributes.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Tuple

from rbridge.utils.errors import ConfigurationError

# placeholder category that is never declared as a factor level
UNKNOWN_CATEGORY = "__unknown__"


class AttributeKind(str, Enum):
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


@dataclass(frozen=True)
class Attribute:
    """
    One column of a model schema.

    Semantics:
    - `values` is only meaningful for categorical attributes
    - `values` order is the factor level order, fixed at training time
    """
    name: str
    kind: AttributeKind
    values: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Attribute name cannot be empty")

    @classmethod
    def numeric(cls, name: str) -> "Attribute":
        return cls(name=name, kind=AttributeKind.NUMERIC)

    @classmethod
    def categorical(cls, name: str, values: Iterable[str]) -> "Attribute":
        return cls(
            name=name,
            kind=AttributeKind.CATEGORICAL,
            values=tuple(str(v) for v in values),
        )

    @property
    def is_numeric(self) -> bool:
        return self.kind == AttributeKind.NUMERIC

    @property
    def is_categorical(self) -> bool:
        return self.kind == AttributeKind.CATEGORICAL

    @property
    def levels(self) -> Tuple[str, ...]:
        """
        Declared factor levels, without the unknown placeholder.
        """
        return tuple(v for v in self.values if v != UNKNOWN_CATEGORY)


def check_kind(attribute: Attribute) -> AttributeKind:
    try:
        return AttributeKind(attribute.kind)
    except ValueError:
        raise ConfigurationError(
            f"Unknown attribute type for '{attribute.name}': {attribute.kind!r}"
        ) from None
