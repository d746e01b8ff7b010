# rbridge/registry/namespace_registry.py
from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Optional
from uuid import UUID

from rbridge.model.model_config import ModelConfiguration, ModelKeys
from rbridge.model.record import ModelRecord
from rbridge.rserve.client import RserveClient
from rbridge.script.generator import ScriptGenerator
from rbridge.script.names import namespace_name
from rbridge.utils.errors import ConfigurationError, ModelNotFoundError, ResourceError
from rbridge.utils.filesystem import FileSystem
from rbridge.utils.logger import logs

ARTIFACT_SUFFIX = ".model"
EXPORT_SUFFIX = ".pmml"
STAGING_SUFFIX = ".next"

# keys that would leak storage paths to callers
_PATH_KEYS = (ModelKeys.MODEL_FILE, ModelKeys.EXPORT_FILE)


def _public(config: ModelConfiguration) -> ModelConfiguration:
    config = config.copy()
    for key in _PATH_KEYS:
        config.properties.pop(key, None)
    return config


class NamespaceRegistry:
    """
    NamespaceRegistry

    Semantics:
    - one live ModelRecord <-> one live engine namespace
    - a record becomes visible only after its namespace was built
    - `lock` serializes every registry read/write and every engine call made on
      behalf of a model
    """

    def __init__(
        self,
        client: RserveClient,
        storage_dir: str | Path,
        generator: Optional[ScriptGenerator] = None,
    ):
        self._client = client
        self._generator = generator or ScriptGenerator()
        self._storage_dir = FileSystem.ensure_dir(Path(storage_dir).resolve())
        self._records: Dict[UUID, ModelRecord] = {}
        self.lock = threading.RLock()

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    # ------------------------------------------------------------------
    # paths
    # ------------------------------------------------------------------
    def artifact_path(self, model_id: UUID) -> Path:
        return self._storage_dir / f"{model_id}{ARTIFACT_SUFFIX}"

    def export_path(self, model_id: UUID) -> Path:
        return self._storage_dir / f"{model_id}{EXPORT_SUFFIX}"

    def staging_path(self, model_id: UUID) -> Path:
        """
        Where a replacement artifact waits until its namespace was rebuilt.
        """
        artifact = self.artifact_path(model_id)
        return artifact.with_name(artifact.name + STAGING_SUFFIX)

    def new_record(
        self,
        model_id: UUID,
        config: ModelConfiguration,
        artifact_path: Path,
        header_path: Optional[Path] = None,
    ) -> ModelRecord:
        export_path = self.export_path(model_id)

        # paths live on the record only
        config.set_property(ModelKeys.ID, model_id)

        return ModelRecord(
            id=model_id,
            namespace=namespace_name(model_id),
            config=config,
            artifact_path=artifact_path,
            export_path=export_path,
            header_path=header_path,
        )

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------
    def __contains__(self, model_id: UUID) -> bool:
        with self.lock:
            return model_id in self._records

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    def get(self, model_id: UUID) -> ModelRecord:
        with self.lock:
            record = self._records.get(model_id)
            if record is None:
                raise ModelNotFoundError(model_id)
            return record

    def snapshot(self) -> Dict[UUID, ModelConfiguration]:
        """
        id -> configuration copy; no paths, no namespaces.
        """
        with self.lock:
            return {model_id: _public(r.config) for model_id, r in self._records.items()}

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def install(self, record: ModelRecord, replace: bool = False) -> ModelRecord:
        """
        Build (or rebuild) the namespace, then publish the record.

        The namespace program binds its global name last, so on failure the
        engine still holds the previous namespace and the registry the
        previous record.
        """
        with self.lock:
            previous = self._records.get(record.id)
            if previous is not None and not replace:
                raise ConfigurationError(f"Model already registered: {record.id}")
            if previous is None and replace:
                raise ModelNotFoundError(record.id)

            if not record.artifact_path.is_file():
                raise ResourceError("load artifact (not found)", record.artifact_path)

            script = self._generator.namespace_script(
                record.config,
                record.namespace,
                record.artifact_path,
                record.export_path,
            )
            self._client.evaluate(script)

            self._records[record.id] = record
            if previous is not None:
                # the export document describes the replaced namespace
                FileSystem.remove(previous.export_path)

            logs.info(
                f"[Registry] {'rebuilt' if previous else 'installed'} {record.id} "
                f"as {record.namespace}"
            )
            return record

    def uninstall(self, model_id: UUID) -> ModelRecord:
        """
        Drop the record, the engine namespace and every owned file.
        """
        with self.lock:
            record = self.get(model_id)

            self._client.evaluate(self._generator.remove_namespace(record.namespace))
            del self._records[model_id]

            for path in record.owned_files():
                FileSystem.remove(path)

            logs.info(f"[Registry] removed {model_id} ({record.namespace})")
            return record

    def materialize_export(self, model_id: UUID) -> Path:
        """
        Run the namespace's export function unless its document already exists.
        """
        with self.lock:
            record = self.get(model_id)
            if record.export_path.exists():
                logs.debug(f"[Registry] export exists: {record.export_path}")
                return record.export_path

            logs.info(f"[Registry] exporting {model_id} -> {record.export_path}")
            self._client.evaluate(self._generator.export_call(record.namespace))

            if not record.export_path.exists():
                raise ResourceError("read export document (not produced)", record.export_path)
            return record.export_path
