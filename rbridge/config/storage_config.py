#!filepath: rbridge/config/storage_config.py
from pydantic import BaseModel


class StorageConfig(BaseModel):
    # artifacts, export documents and instance dumps live here
    model_dir: str = "models"
