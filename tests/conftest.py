# tests/conftest.py
from __future__ import annotations

import pytest
from loguru import logger

from rbridge.manager.model_manager import ModelManager
from rbridge.model import Attribute, ModelConfiguration, ModelKeys
from rbridge.rserve.client import RserveClient

from tests.fakes import FakeRConnection, FakeREngine


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def attributes():
    return [
        Attribute.categorical("A1", ["a", "b"]),
        Attribute.numeric("A2"),
        Attribute.categorical("class", ["0", "1"]),
    ]


@pytest.fixture
def model_config(attributes) -> ModelConfiguration:
    return ModelConfiguration(
        attributes,
        {ModelKeys.LIBRARIES: "randomForest"},
        class_index=2,
    )


@pytest.fixture
def training_rows():
    return [
        ["a", 1.0, "0"],
        ["b", 2.5, "1"],
        ["a", 3.0, "0"],
        [None, 4.5, "1"],
    ]


@pytest.fixture
def engine() -> FakeREngine:
    return FakeREngine()


@pytest.fixture
def connection(engine) -> FakeRConnection:
    return FakeRConnection(engine)


@pytest.fixture
def client(connection) -> RserveClient:
    return RserveClient(connection)


@pytest.fixture
def manager(client, tmp_path) -> ModelManager:
    return ModelManager(client, tmp_path / "models")


@pytest.fixture
def artifact(tmp_path):
    p = tmp_path / "trained.model"
    p.write_bytes(b"RDX2\nexisting model")
    return p
