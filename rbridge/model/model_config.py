# rbridge/model/model_config.py
from __future__ import annotations

import copy
from typing import Dict, List, Optional

from rbridge.model.attributes import Attribute, check_kind
from rbridge.script.names import sanitize
from rbridge.utils.errors import ConfigurationError


class ModelKeys:
    """
    Reserved ModelConfiguration property keys.
    """
    # comma separated R packages required by training and scoring
    LIBRARIES = "libraries"
    # R source file inlined before training
    TRAIN_FILE = "train.file"
    TRAIN_FUNCTION = "train.function"
    TRAIN_FUNCTION_ARGUMENTS = "train.function.arguments"
    PREDICT_FUNCTION = "predict.function"
    PREDICT_FUNCTION_ARGUMENTS = "predict.function.arguments"
    # R expression over `r`, the raw prediction
    PREDICT_RESULT_TRANSFORM = "predict.result.transform"
    # path inside the model object to its factor level table
    PREDICT_LEVELS = "predict.levels"
    CLASS_INDEX = "classIndex"
    MODEL_SAVE_PATH = "model.save.location"
    MODEL_FILE = "model"
    EXPORT_FILE = "pmml"
    ID = "id"


class ModelConfiguration:
    """
    Schema + engine knobs of a hosted model.

    Semantics:
    - attribute order is the column order of every scored row
    - mutated only through `update()` / `set_property()`
    """

    def __init__(
        self,
        attributes: List[Attribute],
        properties: Optional[Dict[str, str]] = None,
        class_index: Optional[int] = None,
    ):
        self.attributes = list(attributes)
        self.properties = {k: str(v) for k, v in (properties or {}).items()}
        if class_index is not None:
            self.properties[ModelKeys.CLASS_INDEX] = str(class_index)

    def __eq__(self, other):
        if not isinstance(other, ModelConfiguration):
            return NotImplemented
        return self.attributes == other.attributes and self.properties == other.properties

    def __repr__(self):
        return f"ModelConfiguration(attributes={self.attributes!r}, properties={self.properties!r})"

    # ------------------------------------------------------------------
    # properties
    # ------------------------------------------------------------------
    def get_property(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.properties.get(key)
        if value is None or value.strip() == "":
            return default
        return value

    def set_property(self, key: str, value) -> None:
        self.properties[key] = str(value)

    def get_int_property(self, key: str) -> int:
        raw = self.get_property(key)
        if raw is None:
            raise ConfigurationError(f"Missing required property '{key}'")
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"Property '{key}' is not an integer: {raw!r}") from None

    @property
    def class_index(self) -> int:
        index = self.get_int_property(ModelKeys.CLASS_INDEX)
        if not 0 <= index < len(self.attributes):
            raise ConfigurationError(
                f"Class index {index} out of range for {len(self.attributes)} attributes"
            )
        return index

    @property
    def class_attribute(self) -> Attribute:
        return self.attributes[self.class_index]

    @property
    def feature_attributes(self) -> List[Attribute]:
        """
        Attributes in scoring order: all but the class attribute.
        """
        index = self.class_index
        return [a for i, a in enumerate(self.attributes) if i != index]

    @property
    def libraries(self) -> List[str]:
        raw = self.get_property(ModelKeys.LIBRARIES, "")
        return [lib.strip() for lib in raw.split(",") if lib.strip()]

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def validate(self) -> "ModelConfiguration":
        """
        Raise ConfigurationError unless the schema can be turned into R code.
        """
        if not self.attributes:
            raise ConfigurationError("Model configuration has no attributes")

        # names must stay distinct once turned into R column labels
        seen: Dict[str, str] = {}
        for attribute in self.attributes:
            check_kind(attribute)
            column = sanitize(attribute.name)
            if column in seen:
                if seen[column] == attribute.name:
                    raise ConfigurationError(f"Duplicate attribute name: {attribute.name}")
                raise ConfigurationError(
                    f"Attributes '{seen[column]}' and '{attribute.name}' both map to column '{column}'"
                )
            seen[column] = attribute.name
            if attribute.is_categorical and not attribute.levels:
                raise ConfigurationError(
                    f"Categorical attribute '{attribute.name}' declares no values"
                )

        self.class_index  # missing or out of range raises
        return self

    def update(self, other: "ModelConfiguration") -> None:
        """
        Merge a newer configuration: attributes replaced when given,
        properties merged key by key.
        """
        if other.attributes:
            self.attributes = list(other.attributes)
        self.properties.update(other.properties)

    def copy(self) -> "ModelConfiguration":
        return copy.deepcopy(self)
