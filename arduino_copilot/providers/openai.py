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

"""OpenAI chat-completions backend."""

import logging
from typing import Dict, List, Tuple

from arduino_copilot.completion.protocol import ChatRequest, CompletionRequest
from arduino_copilot.config import ProviderType
from arduino_copilot.providers.base import (
    COMPLETION_SYSTEM_PROMPT,
    BaseAIProvider,
    build_chat_messages,
)

logger = logging.getLogger(__name__)

# Number of choices requested per completion (primary + alternatives)
COMPLETION_CHOICES = 3


class OpenAIProvider(BaseAIProvider):
    """Completions and chat through the OpenAI API."""

    provider_type = ProviderType.OPENAI
    default_confidence = 0.8
    known_models = ("gpt-3.5-turbo", "gpt-4", "gpt-4-turbo", "gpt-4o", "gpt-4o-mini")

    @property
    def name(self) -> str:
        return "OpenAI"

    def is_available(self) -> bool:
        return bool(self._settings.api_key)

    def set_model(self, model: str) -> None:
        if model not in self.known_models:
            logger.warning(f"Ignoring unknown OpenAI model: {model}")
            return
        super().set_model(model)

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._settings.api_key}"
        return headers

    async def _complete(self, prompt: str, request: CompletionRequest) -> List[str]:
        result = await self._post_json(
            "/chat/completions",
            {
                "model": self._model,
                "messages": [
                    {"role": "system", "content": COMPLETION_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": request.max_tokens,
                "temperature": request.temperature,
                "n": COMPLETION_CHOICES,
            },
        )
        return [choice["message"]["content"] or "" for choice in result["choices"]]

    async def _chat(self, request: ChatRequest) -> Tuple[str, int]:
        result = await self._post_json(
            "/chat/completions",
            {
                "model": self._model,
                "messages": build_chat_messages(request),
                "max_tokens": request.max_tokens,
                "temperature": 0.7,
            },
        )
        content = result["choices"][0]["message"]["content"] or ""
        tokens = result.get("usage", {}).get("total_tokens", 0)
        return content, tokens

    async def _probe(self) -> None:
        await self._get_json("/models")
