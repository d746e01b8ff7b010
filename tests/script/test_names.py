import uuid

import pytest

from rbridge.model import Attribute
from rbridge.script.names import (
    attribute_names,
    model_id_from_namespace,
    namespace_name,
    sanitize,
)
from rbridge.utils.errors import ConfigurationError


@pytest.mark.parametrize(
    "name, expected",
    [
        ("A1", "A1"),
        ("1st", "X1st"),
        ("9", "X9"),
        ("class", "class"),
        ("X1st", "X1st"),
    ],
)
def test_sanitize(name, expected):
    assert sanitize(name) == expected


@pytest.mark.parametrize("name", ["A1", "1st", "0", "X0", "x_1", "123abc"])
def test_sanitize_idempotent(name):
    assert sanitize(sanitize(name)) == sanitize(name)


def test_sanitize_empty_rejected():
    with pytest.raises(ConfigurationError):
        sanitize("")


def test_attribute_names_keep_order():
    attrs = [Attribute.numeric("2b"), Attribute.numeric("a"), Attribute.categorical("3", ["x"])]
    assert attribute_names(attrs) == ["X2b", "a", "X3"]


def test_namespace_name_is_prefixed_hex():
    model_id = uuid.UUID("d9556c14-97f1-40f6-9514-f6fb339474af")
    assert namespace_name(model_id) == "xd9556c1497f140f69514f6fb339474af"


def test_namespace_name_roundtrip_and_unique():
    ids = [uuid.uuid4() for _ in range(50)]
    names = [namespace_name(i) for i in ids]

    assert len(set(names)) == len(ids)
    assert [model_id_from_namespace(n) for n in names] == ids


@pytest.mark.parametrize("bad", ["d9556c1497f140f69514f6fb339474af", "xnothex", "y" + "0" * 32])
def test_model_id_from_namespace_rejects(bad):
    with pytest.raises(ConfigurationError):
        model_id_from_namespace(bad)
