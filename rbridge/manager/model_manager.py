# rbridge/manager/model_manager.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
from uuid import UUID, uuid4

import numpy as np

from rbridge.config.app_config import AppConfig
from rbridge.manager.instance_writer import Instances, write_instances
from rbridge.manager.scorer import Scorer
from rbridge.model.model_config import ModelConfiguration, ModelKeys
from rbridge.registry.namespace_registry import NamespaceRegistry
from rbridge.rserve.client import RserveClient
from rbridge.script.generator import ScriptGenerator
from rbridge.utils.errors import (
    ConfigurationError,
    ResourceError,
    UnsupportedOperationError,
)
from rbridge.utils.filesystem import FileSystem
from rbridge.utils.logger import logs

ArtifactSource = Union[bytes, bytearray, str, Path]

INSTANCES_SUFFIX = ".arff"


class ModelManager:
    """
    Lifecycle of R models hosted in one Rserve engine.

    Semantics:
    - every public operation runs under the registry lock
    - an operation either commits fully or raises, leaving committed state as it was
    - the caller's ModelConfiguration is never mutated; the registry keeps a copy
    - each model owns exactly one artifact file, `<storage>/<id>.model`
    """

    def __init__(
        self,
        client: RserveClient,
        storage_dir: str | Path,
        generator: Optional[ScriptGenerator] = None,
    ):
        self._client = client
        self._generator = generator or ScriptGenerator()
        self._registry = NamespaceRegistry(client, storage_dir, self._generator)
        self._scorer = Scorer(self._registry, client, self._generator)

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "ModelManager":
        return cls(RserveClient.connect(cfg.rserve), cfg.storage.model_dir)

    @property
    def scorer(self) -> Scorer:
        return self._scorer

    @property
    def storage_dir(self) -> Path:
        return self._registry.storage_dir

    # ------------------------------------------------------------------
    # ids
    # ------------------------------------------------------------------
    @staticmethod
    def resolve_id(config: ModelConfiguration) -> UUID:
        """
        Explicit `id` property when set (must be a UUID), a fresh one otherwise.
        """
        raw = config.get_property(ModelKeys.ID)
        if raw is None:
            return uuid4()
        try:
            return UUID(raw.strip())
        except ValueError:
            raise ConfigurationError(f"Malformed model id: {raw!r}") from None

    def _new_id(self, config: ModelConfiguration) -> UUID:
        model_id = self.resolve_id(config)
        if model_id in self._registry:
            raise ConfigurationError(f"Model already registered: {model_id}")
        return model_id

    # ------------------------------------------------------------------
    # add / remove / reconfigure
    # ------------------------------------------------------------------
    @logs.catch("add_model failed")
    def add_model(self, config: ModelConfiguration, artifact: ArtifactSource) -> UUID:
        """
        Register a trained model.

        `artifact` is either the serialized model (bytes) or the path of an
        artifact file. Both end up as a file owned by the model under the
        storage dir; a caller's file is copied, never referenced.
        """
        return self._add(config, artifact)

    def _add(
        self,
        config: ModelConfiguration,
        artifact: ArtifactSource,
        header_path: Optional[Path] = None,
    ) -> UUID:
        with self._registry.lock:
            config = config.copy().validate()
            model_id = self._new_id(config)

            artifact_path = self._registry.artifact_path(model_id)
            written = self._materialize(artifact, artifact_path)

            record = self._registry.new_record(model_id, config, artifact_path, header_path)
            try:
                self._registry.install(record)
            except Exception:
                logs.error(f"[ModelManager] add {model_id} failed, discarding artifact copy")
                FileSystem.remove(written)
                raise

            logs.info(f"[ModelManager] added model {model_id} ({artifact_path})")
            return model_id

    @staticmethod
    def _materialize(artifact: ArtifactSource, target: Path) -> Optional[Path]:
        """
        Put the artifact at `target`; returns the file written, None when the
        artifact already lives there.
        """
        if isinstance(artifact, (bytes, bytearray)):
            return FileSystem.safe_write(target, bytes(artifact))

        source = Path(artifact).resolve()
        if source == target:
            return None
        return FileSystem.copy(source, target)

    @logs.catch("remove_model failed")
    def remove_model(self, model_id: UUID) -> None:
        with self._registry.lock:
            self._registry.uninstall(model_id)

    @logs.catch("reconfigure_model failed")
    def reconfigure_model(
        self,
        model_id: UUID,
        config: ModelConfiguration,
        artifact: Optional[ArtifactSource] = None,
    ) -> None:
        """
        Merge `config` into the model's configuration (optionally loading
        another artifact file) and rebuild its namespace from scratch.

        A replacement artifact is staged next to the current one and only
        takes its place once the namespace was rebuilt.
        """
        if isinstance(artifact, (bytes, bytearray)):
            raise UnsupportedOperationError(
                "Reconfiguring an R model with a serialized artifact is not supported"
            )

        with self._registry.lock:
            current = self._registry.get(model_id)

            merged = current.config.copy()
            merged.update(config)
            merged.set_property(ModelKeys.ID, model_id)
            merged.validate()

            if artifact is None:
                record = self._registry.new_record(
                    model_id, merged, current.artifact_path, current.header_path
                )
                self._registry.install(record, replace=True)
            else:
                staged = FileSystem.copy(Path(artifact).resolve(), self._registry.staging_path(model_id))
                record = self._registry.new_record(model_id, merged, staged, current.header_path)
                try:
                    self._registry.install(record, replace=True)
                except Exception:
                    FileSystem.remove(staged)
                    raise
                record.artifact_path = FileSystem.move(staged, self._registry.artifact_path(model_id))

            logs.info(f"[ModelManager] reconfigured model {model_id}")

    def list_models(self) -> Dict[UUID, ModelConfiguration]:
        return self._registry.snapshot()

    # ------------------------------------------------------------------
    # training
    # ------------------------------------------------------------------
    def _save_path(self, config: ModelConfiguration, data_path: Path) -> Path:
        save_dir = config.get_property(ModelKeys.MODEL_SAVE_PATH)
        directory = FileSystem.ensure_dir(save_dir) if save_dir else self.storage_dir
        return Path(directory).resolve() / (data_path.name + ".model")

    def _custom_code(self, config: ModelConfiguration) -> Optional[str]:
        train_file = config.get_property(ModelKeys.TRAIN_FILE)
        if train_file is None:
            return None
        return FileSystem.read_text(train_file)

    def _train_file(
        self,
        config: ModelConfiguration,
        path: str | Path,
        save_path: Optional[Path] = None,
    ) -> Path:
        data_path = Path(path).resolve()
        if not data_path.is_file():
            raise ResourceError("read training instances (not found)", data_path)

        save_path = save_path or self._save_path(config, data_path)
        script = self._generator.training_script(
            config, data_path, save_path, self._custom_code(config)
        )

        logs.info(f"[ModelManager] training on {data_path} -> {save_path}")
        self._client.evaluate(script)

        if not save_path.is_file():
            raise ResourceError("read trained model (not produced)", save_path)
        return save_path

    def _read_trained(self, config: ModelConfiguration, save_path: Path) -> bytes:
        """
        Trained bytes; the file is only kept under an explicit save location.
        """
        data = FileSystem.read_bytes(save_path)
        if config.get_property(ModelKeys.MODEL_SAVE_PATH) is None:
            FileSystem.remove(save_path)
        return data

    @logs.catch("train_file failed", log_time=True)
    def train_file(self, config: ModelConfiguration, path: str | Path) -> bytes:
        """
        Train from an existing instance dump; returns the serialized model.
        """
        with self._registry.lock:
            return self._read_trained(config, self._train_file(config, path))

    @logs.catch("train failed", log_time=True)
    def train(self, config: ModelConfiguration, instances: Instances) -> bytes:
        with self._registry.lock:
            dump = self.storage_dir / f"training-{uuid4().hex}{INSTANCES_SUFFIX}"
            write_instances(dump, config, instances)
            try:
                return self._read_trained(config, self._train_file(config, dump))
            finally:
                FileSystem.remove(dump)

    @logs.catch("train_and_add failed", log_time=True)
    def train_and_add(self, config: ModelConfiguration, instances: Instances) -> UUID:
        """
        Train on in-memory instances and register the result. The instance
        dump stays with the model as its header file.
        """
        with self._registry.lock:
            config = config.copy().validate()
            model_id = self._new_id(config)
            config.set_property(ModelKeys.ID, model_id)

            dump = self.storage_dir / f"{model_id}{INSTANCES_SUFFIX}"
            artifact_path = self._registry.artifact_path(model_id)
            try:
                write_instances(dump, config, instances)
                self._train_file(config, dump, artifact_path)
                return self._add(config, artifact_path, header_path=dump)
            except Exception:
                FileSystem.remove(dump)
                FileSystem.remove(artifact_path)
                raise

    @logs.catch("train_and_add_file failed", log_time=True)
    def train_and_add_file(self, config: ModelConfiguration, path: str | Path) -> UUID:
        """
        Train from an existing instance dump straight into the model's own
        artifact file and register it.
        """
        with self._registry.lock:
            config = config.copy().validate()
            model_id = self._new_id(config)
            config.set_property(ModelKeys.ID, model_id)

            artifact_path = self._registry.artifact_path(model_id)
            try:
                self._train_file(config, path, artifact_path)
                return self._add(config, artifact_path)
            except Exception:
                FileSystem.remove(artifact_path)
                raise

    # ------------------------------------------------------------------
    # scoring
    # ------------------------------------------------------------------
    @logs.catch("score failed")
    def score(self, model_ids: Sequence[UUID], row: Sequence) -> List[np.ndarray]:
        return self._scorer.score(model_ids, row)

    # ------------------------------------------------------------------
    # artifacts
    # ------------------------------------------------------------------
    @logs.catch("export_artifact failed")
    def export_artifact(self, model_id: UUID, destination: str | Path, compress: bool = False) -> Path:
        """
        Copy the model's interchange document to `destination`, generating
        it first when the namespace never exported it.
        """
        with self._registry.lock:
            source = self._registry.materialize_export(model_id)
            path = FileSystem.copy(source, destination, compress=compress)
            logs.info(f"[ModelManager] exported {model_id} -> {path} (gzip={compress})")
            return path

    @logs.catch("save failed")
    def save(self, model_id: UUID, destination: str | Path) -> Path:
        with self._registry.lock:
            record = self._registry.get(model_id)
            return FileSystem.copy(record.artifact_path, destination)

    def feature_importance(self, model_id: UUID):
        raise UnsupportedOperationError("Feature importance is not supported for R models")

    def close(self) -> None:
        """
        Release the engine connection; the engine itself keeps running.
        """
        self._client.close()
