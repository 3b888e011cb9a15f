"""
Enhancement results produced by enhancers and by the merge step.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Union


class EnhancementSource(str, Enum):
    RULE = "rule"
    MODEL = "model"
    CACHE = "cache"
    HYBRID = "hybrid"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


_VALIDATION_KEYS = {
    "pattern": "pattern",
    "min_length": "minLength",
    "max_length": "maxLength",
    "min": "min",
    "max": "max",
    "required": "required",
    "message": "message",
}


@dataclass
class FieldValidation:
    """Validation rules inferred for a field."""
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[Union[str, float]] = None
    max: Optional[Union[str, float]] = None
    required: Optional[bool] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["FieldValidation"]:
        """Build from snake_case or camelCase keys; unknown keys are ignored."""
        if not isinstance(data, dict):
            return None
        kwargs = {}
        for snake, camel in _VALIDATION_KEYS.items():
            if snake in data:
                kwargs[snake] = data[snake]
            elif camel in data:
                kwargs[snake] = data[camel]
        validation = cls(**kwargs)
        return None if validation.is_empty() else validation

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        return {
            _VALIDATION_KEYS[f.name]: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class EnhancementDetails:
    """Transparency record of one model call."""
    prompt: str
    response: str
    timestamp: float
    duration: Optional[float] = None
    model: Optional[str] = None
    error: Optional[str] = None


@dataclass
class FieldEnhancement:
    """
    Semantic classification of one field.

    ``confidence`` is in [0, 1]; 0 means "no opinion", not a negative signal.
    """
    confidence: float = 0.0
    source: EnhancementSource = EnhancementSource.HYBRID
    field_type: Optional[str] = None
    label: Optional[str] = None
    validation: Optional[FieldValidation] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    details: Optional[EnhancementDetails] = None

    def copy(self, **changes: Any) -> "FieldEnhancement":
        """Independent copy; metadata and validation are not shared."""
        changes.setdefault("metadata", dict(self.metadata))
        if "validation" not in changes and self.validation is not None:
            changes["validation"] = replace(self.validation)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "confidence": self.confidence,
            "source": self.source.value,
        }
        if self.field_type is not None:
            data["fieldType"] = self.field_type
        if self.label is not None:
            data["label"] = self.label
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data
