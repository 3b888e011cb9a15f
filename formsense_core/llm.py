#!/usr/bin/env python3
"""
Minimal async Ollama client.

Transport failures surface as ``NetworkError`` so callers can retry them
without catching aiohttp internals.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from .retry import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_HOST = "http://127.0.0.1:11434"


@dataclass
class PromptRequest:
    model: str
    prompt: str


@dataclass
class PromptResponse:
    model: str
    response: str
    done: bool = True
    created_at: Optional[str] = None


@dataclass
class ConnectionProbe:
    connected: bool
    error: Optional[str] = None


@dataclass
class ModelInfo:
    name: str
    size: Optional[int] = None
    digest: Optional[str] = None
    modified_at: Optional[str] = None


class OllamaClient:
    """Async Ollama client for non-streaming generation"""

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_HOST,
        temperature: Optional[float] = None,
        timeout: int = 300,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.options: Dict[str, Any] = {}
        if temperature is not None:
            self.options["temperature"] = temperature

    @property
    def host(self) -> str:
        return self.base_url

    def update_host(self, host: str) -> None:
        self.base_url = host.rstrip('/')
        logger.info(f"Ollama host set to {self.base_url}")

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        timeout_obj = aiohttp.ClientTimeout(total=self.timeout)
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession(timeout=timeout_obj) as session:
                async with session.request(method, url, json=payload) as resp:
                    if resp.status >= 400:
                        body = await resp.text()
                        raise NetworkError(f"{method} {path} returned HTTP {resp.status}: {body[:200]}")
                    return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

    async def send_prompt(self, request: PromptRequest) -> PromptResponse:
        payload = {
            "model": request.model,
            "prompt": request.prompt,
            "stream": False,
            "options": self.options,
        }
        data = await self._request("POST", "/api/generate", payload)
        if not isinstance(data, dict):
            raise NetworkError(f"Unexpected /api/generate payload: {data!r}")
        return PromptResponse(
            model=data.get("model", request.model),
            response=data.get("response", "") or "",
            done=bool(data.get("done", True)),
            created_at=data.get("created_at"),
        )

    async def list_models(self) -> List[ModelInfo]:
        data = await self._request("GET", "/api/tags")
        models = data.get("models", []) if isinstance(data, dict) else []
        return [
            ModelInfo(
                name=m.get("name", ""),
                size=m.get("size"),
                digest=m.get("digest"),
                modified_at=m.get("modified_at"),
            )
            for m in models
            if isinstance(m, dict)
        ]

    async def test_connection(self) -> ConnectionProbe:
        """Probe the host; never raises."""
        try:
            await self._request("GET", "/api/tags")
        except NetworkError as e:
            logger.debug(f"Ollama connection test failed: {e}")
            return ConnectionProbe(connected=False, error=str(e))
        return ConnectionProbe(connected=True)
