"""Field enhancer variants."""

from .base import FieldEnhancer
from .model_enhancer import ModelBackedEnhancer, create_inference_adapter
from .rule_enhancer import RuleBasedEnhancer

__all__ = [
    "FieldEnhancer",
    "ModelBackedEnhancer",
    "RuleBasedEnhancer",
    "create_inference_adapter",
]
