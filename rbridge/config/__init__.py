from .app_config import AppConfig
from .log_config import LogConfig
from .rserve_config import RserveConfig
from .storage_config import StorageConfig

__all__ = ["AppConfig", "LogConfig", "RserveConfig", "StorageConfig"]
