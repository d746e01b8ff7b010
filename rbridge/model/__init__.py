from .attributes import Attribute, AttributeKind, UNKNOWN_CATEGORY
from .model_config import ModelConfiguration, ModelKeys
from .record import ModelRecord

__all__ = [
    "Attribute",
    "AttributeKind",
    "UNKNOWN_CATEGORY",
    "ModelConfiguration",
    "ModelKeys",
    "ModelRecord",
]
