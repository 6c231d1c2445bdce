# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Local Ollama backend.

Availability is config-derived plus a back-off window: a connection failure
marks the server unreachable for RETRY_AFTER_SECONDS so that is_available()
never has to block on a network probe.
"""

import logging
import time
from typing import List, Optional, Tuple

import httpx

from arduino_copilot.completion.protocol import ChatRequest, CompletionRequest
from arduino_copilot.config import ProviderType
from arduino_copilot.providers.base import (
    COMPLETION_SYSTEM_PROMPT,
    BaseAIProvider,
    build_chat_messages,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 30.0

FALLBACK_MODELS = ("codellama", "llama2", "mistral")


class OllamaProvider(BaseAIProvider):
    """Completions and chat through a local Ollama server."""

    provider_type = ProviderType.OLLAMA
    default_confidence = 0.7
    known_models = FALLBACK_MODELS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._models: Optional[List[str]] = None
        self._unreachable_until = 0.0

    @property
    def name(self) -> str:
        return "Ollama (Local)"

    def is_available(self) -> bool:
        if not self._settings.base_url:
            return False
        return time.monotonic() >= self._unreachable_until

    def available_models(self) -> List[str]:
        if self._models:
            return list(self._models)
        return list(FALLBACK_MODELS)

    async def refresh_models(self) -> List[str]:
        """Reload the installed model list from /api/tags."""
        result = await self._get_json("/api/tags")
        self._models = [m["name"] for m in result.get("models", []) if m.get("name")]
        logger.info(f"Found {len(self._models)} Ollama models")
        return self.available_models()

    def _on_transport_error(self, error: httpx.HTTPError) -> None:
        if isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout)):
            self._unreachable_until = time.monotonic() + RETRY_AFTER_SECONDS
            logger.warning(
                f"Ollama at {self._settings.base_url} unreachable, "
                f"retrying in {RETRY_AFTER_SECONDS:.0f}s"
            )

    async def _complete(self, prompt: str, request: CompletionRequest) -> List[str]:
        result = await self._post_json(
            "/api/generate",
            {
                "model": self._model,
                "system": COMPLETION_SYSTEM_PROMPT,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "temperature": request.temperature,
                    "num_predict": request.max_tokens,
                },
            },
        )
        return [result["response"]]

    async def _chat(self, request: ChatRequest) -> Tuple[str, int]:
        result = await self._post_json(
            "/api/chat",
            {
                "model": self._model,
                "messages": build_chat_messages(request),
                "stream": False,
                "options": {"num_predict": request.max_tokens},
            },
        )
        tokens = result.get("prompt_eval_count", 0) + result.get("eval_count", 0)
        return result["message"]["content"], tokens

    async def _probe(self) -> None:
        await self.refresh_models()
        self._unreachable_until = 0.0
