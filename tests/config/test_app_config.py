import os

import pytest

from rbridge.config import AppConfig
from rbridge.config.model_file import load_model_configuration
from rbridge.utils.errors import ConfigurationError, ResourceError

_ENV = ("RSERVE_HOST", "RSERVE_PORT", "RBRIDGE_MODEL_DIR", "RBRIDGE_LOG_DIR")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)
    yield
    # load_dotenv writes straight into os.environ
    for name in _ENV:
        os.environ.pop(name, None)


def test_defaults_from_packaged_yaml():
    cfg = AppConfig.load(env_file=None)

    assert cfg.rserve.host == "localhost"
    assert cfg.rserve.port == 6311
    assert cfg.storage.model_dir == "models"
    assert cfg.log.dir is None


def test_yaml_file(tmp_path):
    path = tmp_path / "app.yml"
    path.write_text(
        "rserve:\n"
        "  host: r.internal\n"
        "  port: 6400\n"
        "storage:\n"
        "  model_dir: /var/lib/rbridge\n"
    )

    cfg = AppConfig.load(str(path), env_file=None)

    assert cfg.rserve.host == "r.internal"
    assert cfg.rserve.port == 6400
    assert cfg.rserve.connect_attempts == 3
    assert cfg.storage.model_dir == "/var/lib/rbridge"


def test_environment_overrides(tmp_path, monkeypatch):
    env = tmp_path / ".env"
    env.write_text("RBRIDGE_MODEL_DIR=/srv/models\n")
    monkeypatch.setenv("RSERVE_HOST", "r-from-env")
    monkeypatch.setenv("RSERVE_PORT", "7000")

    cfg = AppConfig.load(env_file=str(env))

    assert cfg.rserve.host == "r-from-env"
    assert cfg.rserve.port == 7000
    assert cfg.storage.model_dir == "/srv/models"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AppConfig.load(str(tmp_path / "absent.yml"), env_file=None)


def test_invalid_port(tmp_path):
    path = tmp_path / "app.yml"
    path.write_text("rserve:\n  port: 70000\n")
    with pytest.raises(ValueError):
        AppConfig.load(str(path), env_file=None)


# ----------------------------------------------------------------------
# model files
# ----------------------------------------------------------------------
MODEL_YAML = """\
class_index: 2
attributes:
  - {name: A1, type: categorical, values: [a, b]}
  - {name: A2, type: numeric}
  - {name: class, type: categorical, values: ["0", "1"]}
properties:
  libraries: randomForest
  predict.function.arguments: type = "prob"
"""


def test_load_model_configuration(tmp_path):
    path = tmp_path / "model.yml"
    path.write_text(MODEL_YAML)

    config = load_model_configuration(str(path))

    assert [a.name for a in config.attributes] == ["A1", "A2", "class"]
    assert config.attributes[0].values == ("a", "b")
    assert config.class_index == 2
    assert config.get_property("predict.function.arguments") == 'type = "prob"'


def test_model_file_rejects_unknown_type(tmp_path):
    path = tmp_path / "model.yml"
    path.write_text(MODEL_YAML.replace("type: numeric", "type: date"))

    with pytest.raises(ConfigurationError, match="Invalid model file"):
        load_model_configuration(str(path))


def test_model_file_requires_class_index(tmp_path):
    path = tmp_path / "model.yml"
    path.write_text(MODEL_YAML.replace("class_index: 2\n", ""))

    with pytest.raises(ConfigurationError, match="classIndex"):
        load_model_configuration(str(path))


def test_model_file_missing(tmp_path):
    with pytest.raises(ResourceError):
        load_model_configuration(str(tmp_path / "absent.yml"))
