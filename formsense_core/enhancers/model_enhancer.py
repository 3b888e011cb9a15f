"""
Model-backed field classification through a local Ollama host.
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Optional

from ..config import ModelConfig
from ..enhancement import EnhancementDetails, EnhancementSource, FieldEnhancement
from ..field_context import FieldContext
from ..inference import InferenceAdapter, build_field_prompt, parse_field_response
from ..llm import OllamaClient
from ..retry import NetworkError, RetryContext, RetryExhaustedError
from .base import FieldEnhancer

logger = logging.getLogger(__name__)


def create_inference_adapter(model_config: ModelConfig) -> InferenceAdapter:
    client = OllamaClient(
        base_url=model_config.host,
        temperature=model_config.temperature,
        timeout=model_config.request_timeout_s,
    )
    return InferenceAdapter(client, model=model_config.name)


class ModelBackedEnhancer(FieldEnhancer):
    """
    Asks the model host to classify a field.

    The whole query, retries included, runs under ``timeout_ms``. Timeouts,
    transport failures and unusable answers all yield None.

    ``last_error`` holds the most recent failure of any call and is not
    cleared by later successes. Concurrent calls share it, so it is a
    diagnostic only; per-request outcomes are the return value and
    ``FieldEnhancement.details``.
    """

    name = "ModelBackedEnhancer"
    priority = 2

    def __init__(
        self,
        model_config: Optional[ModelConfig] = None,
        adapter: Optional[InferenceAdapter] = None,
        enabled: bool = True,
    ):
        super().__init__(enabled=enabled)
        self.config = model_config or ModelConfig()
        self.adapter = adapter or create_inference_adapter(self.config)
        self.adapter.model = self.config.name
        self.last_error: Optional[str] = None

    @property
    def model(self) -> str:
        return self.config.name

    def set_model(self, model: str) -> None:
        self.config = replace(self.config, name=model)
        self.adapter.model = model

    def update_host(self, host: str) -> None:
        self.config = replace(self.config, host=host)
        self.adapter.update_host(host)

    async def test_connection(self) -> bool:
        return await self.adapter.test_connection()

    def can_enhance(self, context: FieldContext) -> bool:
        element = context.element
        return bool(element.name or element.label or element.placeholder or element.id)

    async def enhance(self, context: FieldContext) -> Optional[FieldEnhancement]:
        prompt = build_field_prompt(context)
        timeout = self.config.timeout_ms / 1000
        try:
            return await asyncio.wait_for(self._query(prompt), timeout=timeout)
        except asyncio.TimeoutError:
            self.last_error = f"Model request timed out after {self.config.timeout_ms}ms"
            logger.warning(self.last_error)
            return None
        except Exception as e:
            self.last_error = str(e)
            logger.warning(f"Model enhancement failed, contributing nothing: {e}")
            return None

    async def _query(self, prompt: str) -> Optional[FieldEnhancement]:
        started = time.monotonic()
        retry = RetryContext(
            max_attempts=self.config.max_retries,
            initial_delay=self.config.retry_delay_ms / 1000,
            backoff="linear",
        )
        try:
            while retry.should_retry():
                try:
                    raw = await self.adapter.infer(prompt)
                except NetworkError as e:
                    await retry.failed(e)
                    continue

                parsed = parse_field_response(raw)
                if parsed is None:
                    logger.debug(f"Unusable model response (attempt {retry.attempt + 1}): {raw[:200]!r}")
                    retry.skip()
                    continue

                retry.success()
                parsed.source = EnhancementSource.MODEL
                parsed.details = EnhancementDetails(
                    prompt=prompt,
                    response=raw,
                    timestamp=time.time(),
                    duration=time.monotonic() - started,
                    model=self.config.name,
                )
                return parsed
        except RetryExhaustedError as e:
            self.last_error = str(e.__cause__ or e)
            logger.warning(f"Model query failed after retries: {self.last_error}")
            return None

        self.last_error = "No usable model response"
        return None
