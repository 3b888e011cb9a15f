"""
Shared fixtures for formsense tests
"""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from formsense_core import (
    EnhancementSource,
    FieldContext,
    FieldElement,
    FieldEnhancement,
    FieldEnhancementService,
    FieldEnhancer,
    ModelConfig,
)


class StubEnhancer(FieldEnhancer):
    """Enhancer returning a fixed result (or raising), counting calls."""

    def __init__(
        self,
        name: str,
        result: Optional[FieldEnhancement] = None,
        priority: int = 10,
        error: Optional[Exception] = None,
        applicable: bool = True,
        delay: float = 0.0,
    ):
        super().__init__()
        self.name = name
        self.priority = priority
        self.result = result
        self.error = error
        self.applicable = applicable
        self.delay = delay
        self.calls = 0

    def can_enhance(self, context):
        return self.applicable

    async def enhance(self, context):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result.copy() if self.result else None


class FakeAdapter:
    """Stand-in for InferenceAdapter; responses are AsyncMock side effects."""

    def __init__(self, *responses, connected=True):
        self.model = None
        self.host = "http://fake-host:11434"
        self.infer = AsyncMock(side_effect=list(responses))
        self.test_connection = AsyncMock(return_value=connected)

    def update_host(self, host):
        self.host = host


@pytest.fixture
def stub_enhancer():
    """Factory for StubEnhancer instances"""
    return StubEnhancer


@pytest.fixture
def fake_adapter():
    """Factory for FakeAdapter instances"""
    return FakeAdapter


@pytest.fixture
def make_context():
    """Build a FieldContext from element attributes"""
    def build(surrounding=(), **element) -> FieldContext:
        return FieldContext(element=FieldElement(**element), surrounding_text=tuple(surrounding))
    return build


@pytest.fixture
def make_result():
    """Build a FieldEnhancement, tagged rule-based unless told otherwise"""
    def build(confidence, source=EnhancementSource.RULE, **kwargs) -> FieldEnhancement:
        return FieldEnhancement(confidence=confidence, source=source, **kwargs)
    return build


@pytest.fixture
def fast_model_config():
    """Model settings with short timeouts and delays"""
    return ModelConfig(name="test-model", timeout_ms=1000, max_retries=3, retry_delay_ms=1)


@pytest.fixture
def bare_service():
    """Service with caching on and no enhancers registered"""
    service = FieldEnhancementService({"enable_model_backed_enhancing": False})
    service.enhancers = []
    return service
