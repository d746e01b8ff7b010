# rbridge/manager/scorer.py
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence
from uuid import UUID

import numpy as np

from rbridge.registry.namespace_registry import NamespaceRegistry
from rbridge.rserve.client import RserveClient
from rbridge.rserve.result import RNumericVector, RDouble, RInteger, RNull, RText
from rbridge.script.generator import ScriptGenerator
from rbridge.utils.errors import ConfigurationError, RemoteExecutionError


class Scorer:
    """
    Scores rows against hosted models, one engine call per (model, row).

    Semantics:
    - rows hold feature values only, in attribute order, class excluded
    - None is sent as NA
    - every call holds the registry lock, so scoring never interleaves
      with add / remove / reconfigure
    """

    def __init__(
        self,
        registry: NamespaceRegistry,
        client: RserveClient,
        generator: Optional[ScriptGenerator] = None,
    ):
        self._registry = registry
        self._client = client
        self._generator = generator or ScriptGenerator()

    def score(self, model_ids: Sequence[UUID], row: Sequence) -> List[np.ndarray]:
        """
        One row against several models.
        """
        return [self.score_one(model_id, row) for model_id in model_ids]

    def score_rows(self, model_id: UUID, rows: Sequence[Sequence]) -> List[np.ndarray]:
        """
        Several rows against one model.
        """
        return [self.score_one(model_id, row) for row in rows]

    def score_map(self, rows_by_model: Mapping[UUID, Sequence]) -> Dict[UUID, np.ndarray]:
        return {model_id: self.score_one(model_id, row) for model_id, row in rows_by_model.items()}

    def score_one(self, model_id: UUID, row: Sequence) -> np.ndarray:
        with self._registry.lock:
            record = self._registry.get(model_id)

            expected = len(record.config.feature_attributes)
            if len(row) != expected:
                raise ConfigurationError(
                    f"Model {model_id} expects {expected} values, got {len(row)}"
                )

            program = self._generator.score_call(record.namespace, row)
            result = self._client.evaluate(program)

        if isinstance(result, (RNumericVector, RDouble, RInteger)):
            return result.as_vector()
        if isinstance(result, RNull):
            raise RemoteExecutionError(f"Model {model_id} returned no score", program)
        if isinstance(result, RText):
            raise RemoteExecutionError(
                f"Model {model_id} returned text instead of scores: {result.value!r}", program
            )
        raise TypeError(f"Unexpected protocol result: {result!r}")
