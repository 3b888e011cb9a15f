"""
Field Enhancement Service

Single entry point for classifying form fields. Owns the cache and the
ordered enhancer set, fans each request out to every applicable enhancer
concurrently and merges the answers by confidence.

Usage:
    from formsense_core import FieldContext, create_enhancement_service

    service = create_enhancement_service()
    await service.connect()
    result = await service.enhance(FieldContext.from_dict(raw_field))
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .cache import SimpleMemoryCache
from .config import EnhancementConfig, load_config
from .connection import ConnectionState, ConnectionStatus
from .enhancement import (
    ConfidenceLevel,
    EnhancementDetails,
    EnhancementSource,
    FieldEnhancement,
)
from .enhancers import FieldEnhancer, ModelBackedEnhancer, RuleBasedEnhancer
from .field_context import FieldContext, field_fingerprint
from .inference import InferenceAdapter
from .retry import backoff_delay

logger = logging.getLogger(__name__)

# Fields enhanced concurrently per batch in enhance_many()
ENHANCE_BATCH_SIZE = 10
MAX_CONNECT_RETRY_DELAY = 30.0

ConfigChanges = Union[EnhancementConfig, Mapping[str, Any]]


def merge_enhancements(results: List[FieldEnhancement]) -> FieldEnhancement:
    """
    Merge contributions field by field, highest confidence wins.

    A result must be strictly more confident than the running merge to
    overwrite ``field_type``/``label``/``validation``, and only the
    attributes it actually set are copied. On equal confidence the earlier
    result keeps its attributes. ``metadata`` is shallow-merged from every
    result regardless of confidence.
    """
    merged = FieldEnhancement(confidence=0.0, source=EnhancementSource.HYBRID)
    for result in results:
        if result.confidence > merged.confidence:
            if result.field_type is not None:
                merged.field_type = result.field_type
            if result.label is not None:
                merged.label = result.label
            if result.validation is not None:
                merged.validation = result.validation
            merged.confidence = result.confidence
        if result.metadata:
            merged.metadata.update(result.metadata)

    if len(results) == 1:
        merged.source = results[0].source
    return merged


class FieldEnhancementService:
    """Orchestrates enhancers, merging and caching for form fields."""

    def __init__(
        self,
        config: Optional[ConfigChanges] = None,
        adapter: Optional[InferenceAdapter] = None,
        cache: Optional[SimpleMemoryCache] = None,
    ):
        """
        Args:
            config: Full config or a nested mapping of overrides on the defaults
            adapter: Inference adapter for the model-backed enhancer
                (built from ``config.model`` when omitted)
            cache: Cache instance (built from ``config.cache`` when omitted)
        """
        self.config = EnhancementConfig().merged(config)
        self._adapter = adapter
        self.cache = cache or self._create_cache()
        self.enhancers: List[FieldEnhancer] = []
        self._status = ConnectionStatus()
        self._history: Dict[str, EnhancementDetails] = {}
        self._retry_count = 0
        self._retry_task: Optional[asyncio.Task] = None
        self._initialize_enhancers()

    def _create_cache(self) -> SimpleMemoryCache:
        return SimpleMemoryCache(
            max_size=self.config.cache.max_size,
            default_ttl_seconds=self.config.cache.ttl_seconds,
        )

    def _create_model_enhancer(self) -> ModelBackedEnhancer:
        return ModelBackedEnhancer(self.config.model, adapter=self._adapter)

    def _initialize_enhancers(self) -> None:
        self.register_enhancer(RuleBasedEnhancer())
        if self.config.enable_model_backed_enhancing:
            self.register_enhancer(self._create_model_enhancer())

    def _model_enhancer(self) -> Optional[ModelBackedEnhancer]:
        for enhancer in self.enhancers:
            if isinstance(enhancer, ModelBackedEnhancer):
                return enhancer
        return None

    # Enhancer registry

    def register_enhancer(self, enhancer: FieldEnhancer) -> None:
        """Add an enhancer; the list stays sorted by ascending priority."""
        if not isinstance(enhancer, FieldEnhancer):
            raise TypeError(f"Expected a FieldEnhancer, got {type(enhancer).__name__}")
        self.enhancers.append(enhancer)
        self.enhancers.sort(key=lambda e: e.priority)
        logger.debug(f"Registered enhancer {enhancer.name} (priority {enhancer.priority})")

    def enable_model_backed_enhancing(self, enable: bool) -> None:
        enhancer = self._model_enhancer()
        if enhancer is None:
            if enable:
                self.register_enhancer(self._create_model_enhancer())
        else:
            enhancer.enabled = enable
        self.config = replace(self.config, enable_model_backed_enhancing=enable)
        logger.info(f"Model-backed enhancing {'enabled' if enable else 'disabled'}")

    # Enhancement

    async def _run_enhancer(self, enhancer: FieldEnhancer, context: FieldContext) -> Optional[FieldEnhancement]:
        try:
            return await enhancer.enhance(context)
        except Exception as e:
            logger.warning(f"Enhancer {enhancer.name} failed: {e}")
            return None

    def _is_applicable(self, enhancer: FieldEnhancer, context: FieldContext) -> bool:
        if not enhancer.enabled:
            return False
        try:
            return bool(enhancer.can_enhance(context))
        except Exception as e:
            logger.warning(f"Enhancer {enhancer.name} applicability check failed: {e}")
            return False

    async def enhance(self, context: FieldContext) -> FieldEnhancement:
        """
        Classify one field.

        Always returns a result; when no enhancer contributes it has
        confidence 0 and source ``hybrid`` and is not cached.
        """
        key = field_fingerprint(context.element)

        if self.config.enable_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit: {key}")
                return cached.copy(source=EnhancementSource.CACHE)

        selected = [e for e in self.enhancers if self._is_applicable(e, context)]
        uses_model = any(isinstance(e, ModelBackedEnhancer) for e in selected)
        if uses_model and self._status.state == ConnectionState.CONNECTED:
            self._update_status(ConnectionState.PROCESSING, "Processing field enhancement...")

        try:
            outcomes = await asyncio.gather(*(self._run_enhancer(e, context) for e in selected))
        finally:
            if uses_model and self._status.state == ConnectionState.PROCESSING:
                self._update_status(ConnectionState.CONNECTED, "Ready")

        contributions = [r for r in outcomes if r is not None]
        merged = merge_enhancements(contributions)

        for result in contributions:
            if result.details is not None:
                self._history[key] = result.details

        if self.config.enable_cache and merged.confidence > 0:
            self.cache.set(key, merged.copy())

        logger.debug(
            f"Enhanced {key!r}: type={merged.field_type} label={merged.label} "
            f"confidence={merged.confidence:.2f} from {len(contributions)}/{len(selected)} enhancers"
        )
        return merged

    async def enhance_many(self, contexts: Iterable[FieldContext]) -> List[FieldEnhancement]:
        """
        Classify many fields, ``ENHANCE_BATCH_SIZE`` at a time.

        Batches run one after another; fields within a batch run
        concurrently. Results are in input order.
        """
        contexts = list(contexts)
        results: List[FieldEnhancement] = []
        for start in range(0, len(contexts), ENHANCE_BATCH_SIZE):
            batch = contexts[start:start + ENHANCE_BATCH_SIZE]
            results.extend(await asyncio.gather(*(self.enhance(c) for c in batch)))
        return results

    def confidence_level(self, confidence: float) -> ConfidenceLevel:
        thresholds = self.config.confidence_thresholds
        if confidence >= thresholds.high:
            return ConfidenceLevel.HIGH
        if confidence >= thresholds.medium:
            return ConfidenceLevel.MEDIUM
        if confidence >= thresholds.low:
            return ConfidenceLevel.LOW
        return ConfidenceLevel.NONE

    # Cache, history, config

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_enhancement_details(self, key: str) -> Optional[EnhancementDetails]:
        """Details of the last model call for a field fingerprint."""
        return self._history.get(key)

    def clear_enhancement_history(self) -> None:
        self._history.clear()

    def get_config(self) -> EnhancementConfig:
        return self.config.copy()

    def update_config(self, changes: ConfigChanges) -> None:
        """
        Apply config changes and rebuild the enhancer set from scratch.

        Custom enhancers registered earlier are dropped. The cache is rebuilt
        (and so emptied) only when cache settings change.
        """
        new_config = self.config.merged(changes)
        cache_changed = new_config.cache != self.config.cache
        self.config = new_config
        if cache_changed:
            self.cache = self._create_cache()
        self.enhancers = []
        self._initialize_enhancers()
        logger.info(f"Configuration updated (model={self.config.model.name})")

    def set_model(self, model: str) -> None:
        self.update_config({"model": {"name": model}})

    def set_host(self, host: str) -> None:
        """Point the model enhancer at another host without re-registering it."""
        self.config = replace(self.config, model=replace(self.config.model, host=host))
        enhancer = self._model_enhancer()
        if enhancer is not None:
            enhancer.update_host(host)

    # Connection lifecycle

    def get_connection_status(self) -> ConnectionStatus:
        return replace(self._status)

    def _update_status(self, state: ConnectionState, message: Optional[str] = None) -> None:
        now = time.time()
        previous = self._status
        self._status = ConnectionStatus(
            state=state,
            message=message,
            last_error=message if state == ConnectionState.ERROR else previous.last_error,
            connected_at=now if state == ConnectionState.CONNECTED else previous.connected_at,
            disconnected_at=now if state == ConnectionState.DISCONNECTED else previous.disconnected_at,
            retry_count=previous.retry_count,
            next_retry_at=previous.next_retry_at,
        )

    def _cancel_retry(self) -> None:
        if self._retry_task is not None and not self._retry_task.done():
            self._retry_task.cancel()
        self._retry_task = None

    async def connect(self) -> bool:
        """
        Probe the model host.

        On failure a background retry is scheduled with exponential backoff
        (capped at 30s) until ``max_connection_retries`` is reached.
        """
        self._cancel_retry()
        self._update_status(ConnectionState.CONNECTING, "Connecting to model host...")

        error = "Failed to connect to model host"
        connected = False
        enhancer = self._model_enhancer()
        if enhancer is None:
            error = "Model-backed enhancer not initialized"
        else:
            try:
                connected = await enhancer.test_connection()
            except Exception as e:
                error = str(e)

        if connected:
            self._retry_count = 0
            self._status.retry_count = 0
            self._status.next_retry_at = None
            self._update_status(ConnectionState.CONNECTED, "Connected to model host")
            logger.info(f"Connected to model host {self.config.model.host}")
            return True

        self._update_status(ConnectionState.ERROR, f"Connection failed: {error}")
        logger.warning(f"Model host connection failed: {error}")
        if self._retry_count < self.config.model.max_connection_retries:
            self._schedule_retry()
        return False

    def _schedule_retry(self) -> None:
        delay = backoff_delay(
            self._retry_count + 1,
            self.config.model.retry_delay_ms / 1000,
            backoff="exponential",
            max_delay=MAX_CONNECT_RETRY_DELAY,
        )
        self._retry_count += 1
        self._status.retry_count = self._retry_count
        self._status.next_retry_at = time.time() + delay
        logger.info(f"Retrying model host connection in {delay:.1f}s (attempt {self._retry_count})")
        self._retry_task = asyncio.get_running_loop().create_task(self._retry_after(delay))

    async def _retry_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retry_task = None
        await self.connect()

    def disconnect(self) -> None:
        self._cancel_retry()
        self._retry_count = 0
        self._status.retry_count = 0
        self._status.next_retry_at = None
        self._update_status(ConnectionState.DISCONNECTED, "Disconnected from model host")


def create_enhancement_service(
    config: Optional[ConfigChanges] = None,
    adapter: Optional[InferenceAdapter] = None,
    cache: Optional[SimpleMemoryCache] = None,
) -> FieldEnhancementService:
    """
    Build a service from environment configuration.

    ``config`` overrides apply on top of ``FORMSENSE_*`` settings. Each call
    returns an independent instance.
    """
    base = load_config()
    return FieldEnhancementService(base.merged(config), adapter=adapter, cache=cache)
