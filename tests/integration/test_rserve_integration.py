"""
Runs against a live Rserve with randomForest, pmml and XML installed:

    RSERVE_HOST=localhost pytest -m integration
"""
import os

import numpy as np
import pytest

from rbridge.config import RserveConfig
from rbridge.manager.model_manager import ModelManager
from rbridge.model import Attribute, ModelConfiguration, ModelKeys
from rbridge.rserve.client import RserveClient

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif("RSERVE_HOST" not in os.environ, reason="RSERVE_HOST not set"),
]


@pytest.fixture
def live_manager(tmp_path):
    cfg = RserveConfig(
        host=os.environ["RSERVE_HOST"],
        port=int(os.environ.get("RSERVE_PORT", 6311)),
    )
    manager = ModelManager(RserveClient.connect(cfg), tmp_path / "models")
    yield manager
    manager.close()


@pytest.fixture
def live_config():
    return ModelConfiguration(
        [
            Attribute.categorical("A1", ["a", "b"]),
            Attribute.numeric("A2"),
            Attribute.categorical("class", ["0", "1"]),
        ],
        {ModelKeys.LIBRARIES: "randomForest", ModelKeys.TRAIN_FUNCTION_ARGUMENTS: "ntree = 25"},
        class_index=2,
    )


def _rows(n=40):
    rng = np.random.default_rng(0)
    rows = []
    for i in range(n):
        a = "a" if i % 2 else "b"
        rows.append([a, float(rng.normal(3 if a == "a" else 6)), "1" if a == "a" else "0"])
    return rows


def test_train_add_score_export_remove(live_manager, live_config, tmp_path):
    model_id = live_manager.train_and_add(live_config, _rows())

    scores = live_manager.score([model_id], ["a", 3.5])[0]
    assert scores.shape == (2,)
    assert scores.sum() == pytest.approx(1.0)

    other = live_manager.score([model_id], ["b", 6.0])[0]
    assert other[0] > scores[0]

    exported = live_manager.export_artifact(model_id, tmp_path / "model.pmml")
    assert b'name="classIndex"' in exported.read_bytes()

    live_manager.remove_model(model_id)
    assert live_manager.list_models() == {}
