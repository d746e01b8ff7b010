#!filepath: rbridge/config/model_file.py
from __future__ import annotations

from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from rbridge.model.attributes import Attribute
from rbridge.model.model_config import ModelConfiguration
from rbridge.utils.errors import ConfigurationError
from rbridge.utils.filesystem import FileSystem


class AttributeSpec(BaseModel):
    name: str = Field(..., min_length=1)
    type: Literal["numeric", "categorical"]
    values: List[str] = Field(default_factory=list)


class ModelFile(BaseModel):
    """
    On-disk model description:

        class_index: 2
        attributes:
          - {name: A1, type: categorical, values: [a, b]}
          - {name: A2, type: numeric}
          - {name: class, type: categorical, values: ["0", "1"]}
        properties:
          libraries: randomForest
    """

    attributes: List[AttributeSpec] = Field(..., min_length=1)
    class_index: Optional[int] = None
    properties: Dict[str, str] = Field(default_factory=dict)

    def to_configuration(self) -> ModelConfiguration:
        attributes = [
            Attribute.numeric(a.name) if a.type == "numeric" else Attribute.categorical(a.name, a.values)
            for a in self.attributes
        ]
        return ModelConfiguration(attributes, dict(self.properties), class_index=self.class_index)


def load_model_configuration(path: str) -> ModelConfiguration:
    raw = yaml.safe_load(FileSystem.read_text(path)) or {}
    try:
        model_file = ModelFile(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid model file {path}: {e}") from e
    return model_file.to_configuration().validate()
