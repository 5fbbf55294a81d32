"""LLM client pool for shared model access with concurrency control."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI

from floodguard.config import AzureOpenAIConfig, OpenAICompatibleConfig


class LLMPool:
    """Manages shared LLM clients with concurrency limiting."""

    def __init__(self) -> None:
        self._configs: Dict[str, Any] = {}
        self._clients: Dict[str, Any] = {}
        self._models: Dict[str, str] = {}
        self._semaphores: Dict[str, asyncio.Semaphore] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._configs or name in self._clients

    def register_azure_openai(self, name: str, config: AzureOpenAIConfig) -> None:
        """Register an Azure OpenAI deployment under ``name``."""
        self._configs[name] = config
        self._models[name] = config.deployment_name
        self._semaphores[name] = asyncio.Semaphore(config.max_concurrent)

    def register_openai_compatible(self, name: str, config: OpenAICompatibleConfig) -> None:
        """Register an OpenAI-compatible endpoint such as Gemini under ``name``."""
        self._configs[name] = config
        self._models[name] = config.model
        self._semaphores[name] = asyncio.Semaphore(config.max_concurrent)

    def register_client(self, name: str, client: Any, model: str, max_concurrent: int = 10) -> None:
        """Register an already constructed client exposing ``chat.completions.create``."""
        self._clients[name] = client
        self._models[name] = model
        self._semaphores[name] = asyncio.Semaphore(max_concurrent)

    @asynccontextmanager
    async def acquire(self, model_name: str) -> AsyncIterator[Any]:
        """Acquire access to a model client with concurrency control."""
        if model_name not in self:
            raise KeyError(f"Model '{model_name}' not registered in LLM pool")

        semaphore = self._semaphores[model_name]
        await semaphore.acquire()

        try:
            # Lazy initialization on first use
            if model_name not in self._clients:
                self._clients[model_name] = self._build_client(self._configs[model_name])

            yield self._clients[model_name]
        finally:
            semaphore.release()

    async def complete_json(
        self,
        model_name: str,
        messages: List[Dict[str, str]],
        *,
        schema_name: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
        temperature: float = 0.7,
    ) -> str:
        """Run one chat completion and return the raw message content."""
        kwargs: Dict[str, Any] = {
            "model": self._models[model_name] if model_name in self else model_name,
            "messages": messages,
            "temperature": temperature,
        }
        if schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name or "response", "strict": True, "schema": schema},
            }

        async with self.acquire(model_name) as client:
            response = await client.chat.completions.create(**kwargs)

        content = response.choices[0].message.content
        if not isinstance(content, str):
            raise ValueError(f"Model '{model_name}' returned no text content")
        return content

    @staticmethod
    def _build_client(config: Any) -> Any:
        if isinstance(config, AzureOpenAIConfig):
            return AsyncAzureOpenAI(
                api_key=config.api_key,
                api_version=config.api_version,
                azure_endpoint=config.endpoint,
            )
        if isinstance(config, OpenAICompatibleConfig):
            return AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)
        raise TypeError(f"Unsupported LLM configuration: {type(config).__name__}")


def extract_json_block(content: str) -> str:
    """Strip markdown code fences some models wrap around JSON output."""
    if "```json" in content:
        return content.split("```json")[1].split("```")[0].strip()
    if "```" in content:
        return content.split("```")[1].split("```")[0].strip()
    return content.strip()
