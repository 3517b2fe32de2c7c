"""Generation backends - language-model calls with tool support."""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

import httpx

from boardhook.extraction.exceptions import GenerationBackendError
from boardhook.extraction.models import (
    GenerationResult,
    GenerationStep,
    GenerationUsage,
    ToolInvocation,
)
from boardhook.logging import sanitize_for_log, truncate_output

logger = logging.getLogger("boardhook.extraction")

ANTHROPIC_VERSION = "2023-06-01"


class GenerationBackend(Protocol):
    """Interface for a text-generation service that can call tools."""

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        tools: list[dict[str, Any]],
    ) -> GenerationResult:
        """Run one generation request and return its steps, text and usage."""
        ...


class AnthropicBackend:
    """Generation backend for the Anthropic Messages API.

    Uses a single non-streaming request; the response content blocks become
    one GenerationStep.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-haiku-4-5-20251001",
        base_url: str = "https://api.anthropic.com",
        max_tokens: int = 1024,
        timeout: float = 55.0,
    ) -> None:
        """Initialize the backend.

        Args:
            api_key: Anthropic API key
            model: Model name sent with every request
            base_url: API root (for proxies and tests)
            max_tokens: Output token cap per request
            timeout: HTTP timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client for the Messages API.

        Requests arrive on several threads; only one client is ever built.
        """
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                        "Content-Type": "application/json",
                    },
                    timeout=self.timeout,
                )
            return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        tools: list[dict[str, Any]],
    ) -> GenerationResult:
        """Send one Messages API request.

        Raises:
            GenerationBackendError: On transport errors, non-200 responses or
                an unparseable body
        """
        if not self.api_key:
            raise GenerationBackendError("Anthropic API key not configured")

        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if tools:
            payload["tools"] = tools

        try:
            response = self.client.post(f"{self.base_url}/v1/messages", json=payload)
        except httpx.HTTPError as e:
            raise GenerationBackendError(f"Generation request failed: {e}") from e

        if response.status_code != 200:
            raise GenerationBackendError(
                f"Generation request failed: {response.status_code} - "
                f"{sanitize_for_log(truncate_output(response.text, 500))}"
            )

        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise GenerationBackendError("Generation response was not valid JSON") from e

        return self._parse_response(data)

    def _parse_response(self, data: dict[str, Any]) -> GenerationResult:
        texts: list[str] = []
        invocations: list[ToolInvocation] = []
        for block in data.get("content") or []:
            block_type = block.get("type")
            if block_type == "text":
                texts.append(block.get("text", ""))
            elif block_type == "tool_use":
                tool_input = block.get("input")
                invocations.append(
                    ToolInvocation(
                        name=block.get("name", ""),
                        input=tool_input if isinstance(tool_input, dict) else {},
                        id=block.get("id"),
                    )
                )

        text = "".join(texts)
        usage = None
        raw_usage = data.get("usage")
        if raw_usage:
            cache_write = int(raw_usage.get("cache_creation_input_tokens") or 0)
            cache_read = int(raw_usage.get("cache_read_input_tokens") or 0)
            usage = GenerationUsage(
                # The API reports uncached input separately from cache tokens
                input_tokens=int(raw_usage.get("input_tokens") or 0) + cache_write + cache_read,
                output_tokens=int(raw_usage.get("output_tokens") or 0),
                cache_creation_input_tokens=cache_write,
                cache_read_input_tokens=cache_read,
            )

        logger.debug(
            "Generation [%s]: stop=%s, tool_calls=%d",
            data.get("model", self.model),
            data.get("stop_reason"),
            len(invocations),
        )

        return GenerationResult(
            model=self.model,
            steps=[GenerationStep(text=text, tool_invocations=invocations)],
            text=text,
            usage=usage,
        )
