#!filepath: rbridge/config/rserve_config.py
from pydantic import BaseModel, Field


class RserveConfig(BaseModel):
    """
    Where the Rserve daemon listens.

    The daemon is started outside of rbridge, e.g.
        R --no-save --slave -e "library(Rserve); Rserve(args='--no-save --slave')"
    """

    host: str = "localhost"
    port: int = Field(default=6311, gt=0, lt=65536)
    connect_attempts: int = Field(default=3, ge=1)
    connect_delay: float = 1.0
