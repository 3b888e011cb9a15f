#!/usr/bin/env python3
"""
Enhancement pipeline configuration.

Defaults can be overridden from the environment (``FORMSENSE_*``), with a
``.env`` file in the working directory loaded on import.
"""

import os
from dataclasses import asdict, dataclass, field, fields, is_dataclass, replace
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import load_dotenv

load_dotenv()

TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in TRUE_VALUES


@dataclass
class CacheConfig:
    max_size: int = 1000
    ttl_seconds: int = 3600


@dataclass
class ModelConfig:
    """Model host settings for the model-backed enhancer."""
    name: str = "llama2"
    host: str = "http://127.0.0.1:11434"
    temperature: float = 0.1
    timeout_ms: int = 5000
    max_retries: int = 2
    retry_delay_ms: int = 1000
    max_connection_retries: int = 10
    request_timeout_s: int = 300


@dataclass
class ConfidenceThresholds:
    high: float = 0.8
    medium: float = 0.5
    low: float = 0.3

    def __post_init__(self):
        if not (1.0 >= self.high >= self.medium >= self.low >= 0.0):
            raise ValueError(
                f"Confidence thresholds must satisfy 1 >= high >= medium >= low >= 0, "
                f"got high={self.high}, medium={self.medium}, low={self.low}"
            )


@dataclass
class EnhancementConfig:
    """Configuration of the field enhancement service"""
    enable_model_backed_enhancing: bool = True
    enable_cache: bool = True
    cache: CacheConfig = field(default_factory=CacheConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    confidence_thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)

    @classmethod
    def from_env(cls) -> "EnhancementConfig":
        """Create config from environment variables"""
        cache_defaults = CacheConfig()
        model_defaults = ModelConfig()
        threshold_defaults = ConfidenceThresholds()
        return cls(
            enable_model_backed_enhancing=_env_bool("FORMSENSE_MODEL_ENHANCING", True),
            enable_cache=_env_bool("FORMSENSE_CACHE", True),
            cache=CacheConfig(
                max_size=int(os.getenv("FORMSENSE_CACHE_MAX_SIZE", cache_defaults.max_size)),
                ttl_seconds=int(os.getenv("FORMSENSE_CACHE_TTL_SECONDS", cache_defaults.ttl_seconds)),
            ),
            model=ModelConfig(
                name=os.getenv("FORMSENSE_MODEL", model_defaults.name),
                host=os.getenv("FORMSENSE_OLLAMA_HOST", model_defaults.host),
                temperature=float(os.getenv("FORMSENSE_TEMPERATURE", model_defaults.temperature)),
                timeout_ms=int(os.getenv("FORMSENSE_MODEL_TIMEOUT_MS", model_defaults.timeout_ms)),
                max_retries=int(os.getenv("FORMSENSE_MODEL_MAX_RETRIES", model_defaults.max_retries)),
                retry_delay_ms=int(os.getenv("FORMSENSE_MODEL_RETRY_DELAY_MS", model_defaults.retry_delay_ms)),
                max_connection_retries=int(
                    os.getenv("FORMSENSE_MAX_CONNECTION_RETRIES", model_defaults.max_connection_retries)
                ),
                request_timeout_s=int(os.getenv("FORMSENSE_REQUEST_TIMEOUT", model_defaults.request_timeout_s)),
            ),
            confidence_thresholds=ConfidenceThresholds(
                high=float(os.getenv("FORMSENSE_CONFIDENCE_HIGH", threshold_defaults.high)),
                medium=float(os.getenv("FORMSENSE_CONFIDENCE_MEDIUM", threshold_defaults.medium)),
                low=float(os.getenv("FORMSENSE_CONFIDENCE_LOW", threshold_defaults.low)),
            ),
        )

    def merged(self, changes: Union["EnhancementConfig", Mapping[str, Any], None]) -> "EnhancementConfig":
        """
        Return a new config with ``changes`` applied.

        Nested sections may be given as mappings, in which case only the
        listed keys change, or as section instances, which replace the
        section wholesale. Unknown keys raise ``KeyError``.
        """
        if changes is None:
            return self.copy()
        if isinstance(changes, EnhancementConfig):
            return changes.copy()
        updates: Dict[str, Any] = {}
        known = {f.name for f in fields(self)}
        for key, value in changes.items():
            if key not in known:
                raise KeyError(f"Unknown configuration option: {key}")
            current = getattr(self, key)
            if is_dataclass(current) and isinstance(value, Mapping):
                section_known = {f.name for f in fields(current)}
                unknown = set(value) - section_known
                if unknown:
                    raise KeyError(f"Unknown {key} options: {sorted(unknown)}")
                value = replace(current, **value)
            updates[key] = value
        return replace(self, **updates)

    def copy(self) -> "EnhancementConfig":
        return self.merged(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(changes: Optional[Mapping[str, Any]] = None) -> EnhancementConfig:
    """Environment config with optional overrides applied."""
    return EnhancementConfig.from_env().merged(changes)
