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

"""Anthropic messages-API backend."""

from typing import Any, Dict, List, Tuple

from arduino_copilot.completion.protocol import ChatRequest, CompletionRequest
from arduino_copilot.config import ProviderType
from arduino_copilot.providers.base import (
    COMPLETION_SYSTEM_PROMPT,
    BaseAIProvider,
    build_chat_messages,
)

API_VERSION = "2023-06-01"


def _text_of(result: Dict[str, Any]) -> str:
    return "".join(block.get("text", "") for block in result["content"] if block["type"] == "text")


class AnthropicProvider(BaseAIProvider):
    """Completions and chat through the Anthropic API.

    The messages API returns a single candidate, so completions carry no
    alternatives.
    """

    provider_type = ProviderType.ANTHROPIC
    default_confidence = 0.8
    known_models = (
        "claude-3-haiku-20240307",
        "claude-3-5-haiku-latest",
        "claude-3-5-sonnet-latest",
    )

    @property
    def name(self) -> str:
        return "Anthropic"

    def is_available(self) -> bool:
        return bool(self._settings.api_key)

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self._settings.api_key or ""
        headers["anthropic-version"] = API_VERSION
        return headers

    async def _complete(self, prompt: str, request: CompletionRequest) -> List[str]:
        result = await self._post_json(
            "/v1/messages",
            {
                "model": self._model,
                "system": COMPLETION_SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": request.max_tokens,
                "temperature": request.temperature,
            },
        )
        return [_text_of(result)]

    async def _chat(self, request: ChatRequest) -> Tuple[str, int]:
        messages = build_chat_messages(request)
        # System prompts go in a dedicated field
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        conversation = [m for m in messages if m["role"] != "system"]
        result = await self._post_json(
            "/v1/messages",
            {
                "model": self._model,
                "system": system,
                "messages": conversation,
                "max_tokens": request.max_tokens,
            },
        )
        usage = result.get("usage", {})
        tokens = usage.get("input_tokens", 0) + usage.get("output_tokens", 0)
        return _text_of(result), tokens

    async def _probe(self) -> None:
        await self._get_json("/v1/models")
