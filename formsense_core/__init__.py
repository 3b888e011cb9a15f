"""
formsense_core: semantic classification of web form fields

Usage:
    from formsense_core import FieldContext, create_enhancement_service

    service = create_enhancement_service()
    results = await service.enhance_many(FieldContext.from_dict(f) for f in fields)
"""
from .cache import SimpleMemoryCache
from .config import (
    CacheConfig,
    ConfidenceThresholds,
    EnhancementConfig,
    ModelConfig,
    load_config,
)
from .connection import ConnectionState, ConnectionStatus
from .enhancement import (
    ConfidenceLevel,
    EnhancementDetails,
    EnhancementSource,
    FieldEnhancement,
    FieldValidation,
)
from .enhancers import FieldEnhancer, ModelBackedEnhancer, RuleBasedEnhancer
from .field_context import (
    FieldContext,
    FieldElement,
    FormContext,
    PageContext,
    SiblingField,
    field_fingerprint,
)
from .inference import InferenceAdapter, build_field_prompt, parse_field_response
from .llm import OllamaClient
from .log_config import LogConfig, configure_logging
from .retry import NetworkError, RetryExhaustedError
from .service import (
    ENHANCE_BATCH_SIZE,
    FieldEnhancementService,
    create_enhancement_service,
    merge_enhancements,
)

__all__ = [
    # Service
    "FieldEnhancementService",
    "create_enhancement_service",
    "merge_enhancements",
    "ENHANCE_BATCH_SIZE",
    # Types
    "FieldContext",
    "FieldElement",
    "FormContext",
    "PageContext",
    "SiblingField",
    "field_fingerprint",
    "FieldEnhancement",
    "FieldValidation",
    "EnhancementDetails",
    "EnhancementSource",
    "ConfidenceLevel",
    # Enhancers
    "FieldEnhancer",
    "RuleBasedEnhancer",
    "ModelBackedEnhancer",
    # Infrastructure
    "SimpleMemoryCache",
    "InferenceAdapter",
    "OllamaClient",
    "build_field_prompt",
    "parse_field_response",
    "ConnectionState",
    "ConnectionStatus",
    "NetworkError",
    "RetryExhaustedError",
    # Config
    "EnhancementConfig",
    "CacheConfig",
    "ModelConfig",
    "ConfidenceThresholds",
    "load_config",
    "LogConfig",
    "configure_logging",
]
