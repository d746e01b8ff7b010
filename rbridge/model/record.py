# rbridge/model/record.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import UUID

from rbridge.model.model_config import ModelConfiguration


@dataclass
class ModelRecord:
    """
    Registry entry of a hosted model.

    Semantics:
    - `namespace` is the engine-side binding name derived from `id`
    - files are owned by the record and deleted with it
    """
    id: UUID
    namespace: str
    config: ModelConfiguration
    artifact_path: Path
    export_path: Path
    header_path: Optional[Path] = None

    def owned_files(self) -> list[Path]:
        return [p for p in (self.artifact_path, self.header_path, self.export_path) if p is not None]
