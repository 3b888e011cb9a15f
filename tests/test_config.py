#!/usr/bin/env python3
"""
Tests for enhancement configuration and logging setup
"""

import logging
import os

import pytest

from formsense_core import (
    CacheConfig,
    ConfidenceThresholds,
    EnhancementConfig,
    LogConfig,
    ModelConfig,
    configure_logging,
    load_config,
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any FORMSENSE_* variables picked up from the shell or .env"""
    for name in list(os.environ):
        if name.startswith("FORMSENSE_"):
            monkeypatch.delenv(name)
    return monkeypatch


class TestDefaults:
    """Built-in defaults"""

    def test_default_config(self):
        """Defaults match the documented values."""
        config = EnhancementConfig()
        assert config.enable_model_backed_enhancing is True
        assert config.enable_cache is True
        assert config.cache == CacheConfig(max_size=1000, ttl_seconds=3600)
        assert config.model.name == "llama2"
        assert config.model.host == "http://127.0.0.1:11434"
        assert config.model.temperature == 0.1
        assert config.model.timeout_ms == 5000
        assert config.model.max_retries == 2
        assert config.model.retry_delay_ms == 1000
        assert config.confidence_thresholds == ConfidenceThresholds(high=0.8, medium=0.5, low=0.3)


class TestThresholds:
    """Threshold ordering is enforced"""

    def test_equal_thresholds_allowed(self):
        """Equal thresholds are valid."""
        ConfidenceThresholds(high=0.5, medium=0.5, low=0.5)

    @pytest.mark.parametrize("high,medium,low", [
        (0.4, 0.5, 0.3),
        (0.8, 0.2, 0.3),
        (1.2, 0.5, 0.3),
        (0.8, 0.5, -0.1),
    ])
    def test_bad_ordering(self, high, medium, low):
        """Out-of-order or out-of-range thresholds are rejected."""
        with pytest.raises(ValueError):
            ConfidenceThresholds(high=high, medium=medium, low=low)


class TestFromEnv:
    """FORMSENSE_* environment variables"""

    def test_without_variables_matches_defaults(self, clean_env):
        """An empty environment gives the defaults."""
        assert EnhancementConfig.from_env() == EnhancementConfig()

    def test_reads_variables(self, clean_env):
        """Every FORMSENSE_* variable is applied."""
        clean_env.setenv("FORMSENSE_MODEL_ENHANCING", "false")
        clean_env.setenv("FORMSENSE_CACHE", "0")
        clean_env.setenv("FORMSENSE_CACHE_MAX_SIZE", "50")
        clean_env.setenv("FORMSENSE_CACHE_TTL_SECONDS", "60")
        clean_env.setenv("FORMSENSE_MODEL", "qwen2.5:7b")
        clean_env.setenv("FORMSENSE_OLLAMA_HOST", "http://gpu-box:11434")
        clean_env.setenv("FORMSENSE_TEMPERATURE", "0.3")
        clean_env.setenv("FORMSENSE_MODEL_TIMEOUT_MS", "2500")
        clean_env.setenv("FORMSENSE_MODEL_MAX_RETRIES", "4")
        clean_env.setenv("FORMSENSE_CONFIDENCE_HIGH", "0.9")

        config = EnhancementConfig.from_env()

        assert config.enable_model_backed_enhancing is False
        assert config.enable_cache is False
        assert config.cache == CacheConfig(max_size=50, ttl_seconds=60)
        assert config.model.name == "qwen2.5:7b"
        assert config.model.host == "http://gpu-box:11434"
        assert config.model.temperature == 0.3
        assert config.model.timeout_ms == 2500
        assert config.model.max_retries == 4
        assert config.confidence_thresholds.high == 0.9

    def test_bool_parsing(self, clean_env):
        """Boolean variables accept yes, true or 1 in any case."""
        clean_env.setenv("FORMSENSE_CACHE", "Yes")
        assert EnhancementConfig.from_env().enable_cache is True

    def test_load_config_applies_overrides(self, clean_env):
        """Overrides apply on top of the environment."""
        clean_env.setenv("FORMSENSE_MODEL", "mistral")
        config = load_config({"model": {"timeout_ms": 100}})
        assert config.model.name == "mistral"
        assert config.model.timeout_ms == 100


class TestMerged:
    """Partial updates"""

    def test_nested_mapping_changes_only_listed_keys(self):
        """Nested mappings change only the listed keys."""
        config = EnhancementConfig().merged({"model": {"name": "llama3"}, "enable_cache": False})
        assert config.model.name == "llama3"
        assert config.model.host == "http://127.0.0.1:11434"
        assert config.enable_cache is False

    def test_section_instance_replaces_section(self):
        """A section instance replaces the whole section."""
        config = EnhancementConfig().merged({"cache": CacheConfig(max_size=3)})
        assert config.cache == CacheConfig(max_size=3, ttl_seconds=3600)

    def test_full_config_is_copied(self):
        """A full config is copied, not shared."""
        source = EnhancementConfig(enable_cache=False)
        config = EnhancementConfig().merged(source)
        assert config == source
        assert config is not source
        assert config.model is not source.model

    def test_original_is_untouched(self):
        """merged() leaves the receiver unchanged."""
        base = EnhancementConfig()
        base.merged({"model": {"name": "llama3"}})
        assert base.model.name == "llama2"

    def test_unknown_top_level_key(self):
        """Unknown options raise KeyError."""
        with pytest.raises(KeyError):
            EnhancementConfig().merged({"enable_everything": True})

    def test_unknown_section_key(self):
        """Unknown section options raise KeyError."""
        with pytest.raises(KeyError):
            EnhancementConfig().merged({"model": {"provider": "openai"}})

    def test_invalid_thresholds_rejected(self):
        """Merging invalid thresholds raises ValueError."""
        with pytest.raises(ValueError):
            EnhancementConfig().merged({"confidence_thresholds": {"low": 0.9}})

    def test_copy_is_deep(self):
        """copy() shares no sections with the original."""
        base = EnhancementConfig()
        copy = base.copy()
        copy.model.name = "changed"
        copy.cache.max_size = 1
        assert base.model.name == "llama2"
        assert base.cache.max_size == 1000

    def test_to_dict(self):
        """to_dict() nests sections as dicts."""
        data = EnhancementConfig(model=ModelConfig(name="llama3")).to_dict()
        assert data["model"]["name"] == "llama3"
        assert data["confidence_thresholds"] == {"high": 0.8, "medium": 0.5, "low": 0.3}


class TestLogging:
    """Package logger setup"""

    @pytest.fixture
    def package_logger(self):
        logger = logging.getLogger("formsense_core")
        saved_handlers = list(logger.handlers)
        saved_level = logger.level
        logger.handlers = []
        yield logger
        for handler in logger.handlers:
            handler.close()
        logger.handlers = saved_handlers
        logger.setLevel(saved_level)

    def test_log_config_from_env(self, clean_env):
        """Log settings are read from the environment."""
        clean_env.setenv("FORMSENSE_LOG_LEVEL", "debug")
        clean_env.setenv("FORMSENSE_LOG_FILE", "/tmp/formsense.log")
        config = LogConfig.from_env()
        assert config.log_level == "DEBUG"
        assert config.level == logging.DEBUG
        assert config.log_file == "/tmp/formsense.log"

    def test_unknown_level_falls_back_to_info(self):
        """Unknown level names fall back to INFO."""
        assert LogConfig(log_level="chatty").level == logging.INFO

    def test_stream_handler_added_once(self, package_logger):
        """Repeated setup does not stack handlers."""
        configure_logging(LogConfig(log_level="WARNING"))
        configure_logging(LogConfig(log_level="WARNING"))

        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0], logging.StreamHandler)
        assert package_logger.level == logging.WARNING

    def test_file_handler(self, package_logger, tmp_path):
        """A log file gets records from package modules."""
        log_file = tmp_path / "enhance.log"
        logger = configure_logging(LogConfig(log_level="DEBUG", log_file=str(log_file)))

        logging.getLogger("formsense_core.service").debug("hello from service")
        for handler in logger.handlers:
            handler.flush()

        assert isinstance(logger.handlers[0], logging.FileHandler)
        assert "hello from service" in log_file.read_text(encoding="utf-8")
