#!filepath: rbridge/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .log_config import LogConfig
from .rserve_config import RserveConfig
from .storage_config import StorageConfig
from rbridge.utils.logger import logs

# environment variable -> (section, key)
_ENV_OVERRIDES = {
    "RSERVE_HOST": ("rserve", "host"),
    "RSERVE_PORT": ("rserve", "port"),
    "RBRIDGE_MODEL_DIR": ("storage", "model_dir"),
    "RBRIDGE_LOG_DIR": ("log", "dir"),
}


def default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    rserve: RserveConfig = Field(default_factory=RserveConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def load(cls, path: str | None = None, env_file: str | None = ".env") -> "AppConfig":
        """
        Load YAML configuration + .env
        - defaults to rbridge/config/base.yml
        - RSERVE_HOST / RSERVE_PORT / RBRIDGE_MODEL_DIR / RBRIDGE_LOG_DIR override the file
        """
        if env_file is not None:
            load_dotenv(env_file)

        if path is None:
            path = default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        for env_name, (section, key) in _ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                raw.setdefault(section, {})[key] = value

        cfg = cls(**raw)
        logs.debug(f"[AppConfig] loaded {path}: rserve={cfg.rserve.host}:{cfg.rserve.port}")
        return cfg
