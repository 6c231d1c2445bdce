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

"""AI provider interface and shared HTTP implementation.

Every backend exposes the same contract so the engine can treat them
polymorphically. Prompt construction and response parsing are private to
each backend; failures always surface as ProviderError instead of leaving
the caller waiting.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

import httpx

from arduino_copilot.completion.protocol import (
    ChatRequest,
    ChatResponse,
    ChatRole,
    CompletionRequest,
    CompletionResponse,
)
from arduino_copilot.config import ProviderSettings, ProviderType
from arduino_copilot.errors import ProviderError, ProviderUnavailableError

logger = logging.getLogger(__name__)

INSERT_MARKER = "<INSERT_HERE>"

COMPLETION_SYSTEM_PROMPT = (
    "You are an expert Arduino programmer completing code in an Arduino sketch. "
    "Generate only the code to insert at the cursor position, no explanations."
)

CHAT_SYSTEM_PROMPT = (
    "You are an expert Arduino assistant. Help users with Arduino programming, "
    "hardware connections, libraries, and troubleshooting. Provide clear, "
    "concise answers with code examples when appropriate."
)

# Tokens some models leak at the end of a completion
END_TOKENS = ["<|endoftext|>", "</s>", "<|im_end|>", "<|end|>"]

FENCE_LANGUAGES = ("arduino", "cpp", "c++", "ino", "c")


@runtime_checkable
class AIProvider(Protocol):
    """Protocol every AI backend implements."""

    @property
    def name(self) -> str:
        """Human-readable backend name."""
        ...

    @property
    def current_model(self) -> str:
        ...

    def is_available(self) -> bool:
        """Cheap, non-blocking check that the backend can be used."""
        ...

    async def generate_completion(self, request: CompletionRequest) -> CompletionResponse:
        ...

    async def send_chat_message(self, request: ChatRequest) -> ChatResponse:
        ...

    def available_models(self) -> List[str]:
        ...

    def set_model(self, model: str) -> None:
        ...

    async def test_connection(self) -> bool:
        ...

    async def aclose(self) -> None:
        ...


def truncate_lines(text: str, max_lines: int, keep_end: bool) -> str:
    """Keep at most max_lines lines from the end (or the start) of text."""
    lines = text.split("\n")
    if len(lines) <= max_lines:
        return text
    kept = lines[-max_lines:] if keep_end else lines[:max_lines]
    return "\n".join(kept)


def build_completion_prompt(request: CompletionRequest, max_context_lines: int = 100) -> str:
    """Render the document with the caret marked for insertion.

    Args:
        request: Completion request
        max_context_lines: Lines kept on each side of the caret

    Returns:
        Prompt text
    """
    parts = []
    if request.project_context:
        parts.append(f"Project context:\n{request.project_context}\n\n")

    prefix = truncate_lines(request.prefix, max_context_lines, keep_end=True)
    suffix = truncate_lines(request.suffix, max_context_lines, keep_end=False)
    parts.append(f"{prefix}{INSERT_MARKER}{suffix}")
    parts.append(f"\n\nComplete the code at {INSERT_MARKER}:")
    return "".join(parts)


def build_chat_messages(request: ChatRequest) -> List[Dict[str, str]]:
    """OpenAI-style message list for a chat turn (system prompt first)."""
    messages = [{"role": ChatRole.SYSTEM.value, "content": CHAT_SYSTEM_PROMPT}]
    if request.context:
        messages.append(
            {"role": ChatRole.SYSTEM.value, "content": f"Current sketch context:\n{request.context}"}
        )
    for message in request.history:
        role = ChatRole.USER if message.role == ChatRole.USER else ChatRole.ASSISTANT
        messages.append({"role": role.value, "content": message.content})
    messages.append({"role": ChatRole.USER.value, "content": request.message})
    return messages


def clean_completion(text: str) -> str:
    """Extract insertable code from raw model output.

    Unwraps a fenced code block, drops leaked end tokens and the insertion
    marker, and trims trailing whitespace.
    """
    if not text:
        return ""

    start = text.find("```")
    end = text.rfind("```")
    if start != -1 and end > start:
        code = text[start + 3 : end]
        first_line, _, rest = code.partition("\n")
        if first_line.strip().lower() in FENCE_LANGUAGES:
            code = rest
        text = code.strip("\n")

    for token in END_TOKENS:
        if text.endswith(token):
            text = text[: -len(token)]
    text = text.replace(INSERT_MARKER, "")
    return text.rstrip()


class BaseAIProvider(ABC):
    """Shared plumbing for HTTP backends.

    Subclasses implement the vendor calls (_complete, _chat, _probe); this
    class adds availability checks, timing and error mapping.
    """

    provider_type: ProviderType
    default_confidence: float = 0.8
    known_models: Tuple[str, ...] = ()

    def __init__(
        self,
        settings: ProviderSettings,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_context_lines: int = 100,
    ):
        """Initialize the provider.

        Args:
            settings: Connection settings (api key, model, base url)
            timeout: Timeout in seconds for every HTTP call
            transport: Optional httpx transport (tests use httpx.MockTransport)
            max_context_lines: Lines kept on each side of the caret in prompts
        """
        self._settings = settings
        self._model = settings.model
        self._timeout = timeout
        self._transport = transport
        self._max_context_lines = max_context_lines
        self._client: Optional[httpx.AsyncClient] = None

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    def current_model(self) -> str:
        return self._model

    @property
    def settings(self) -> ProviderSettings:
        return self._settings

    @abstractmethod
    def is_available(self) -> bool:
        ...

    def available_models(self) -> List[str]:
        return list(self.known_models)

    def set_model(self, model: str) -> None:
        """Switch the model used for subsequent requests."""
        if not model:
            raise ValueError("model name must not be empty")
        self._model = model
        logger.info(f"{self.name} now using model {model}")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._timeout,
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post(path, json=payload)
        response.raise_for_status()
        return response.json()

    async def _get_json(self, path: str) -> Dict[str, Any]:
        response = await self.client.get(path)
        response.raise_for_status()
        return response.json()

    @abstractmethod
    async def _complete(self, prompt: str, request: CompletionRequest) -> List[str]:
        """Vendor call returning one or more raw completion texts."""
        ...

    @abstractmethod
    async def _chat(self, request: ChatRequest) -> Tuple[str, int]:
        """Vendor call returning (reply text, tokens used)."""
        ...

    @abstractmethod
    async def _probe(self) -> None:
        """Cheap authenticated request; raises on failure."""
        ...

    def _on_transport_error(self, error: httpx.HTTPError) -> None:
        """Hook for backends that track reachability."""

    async def generate_completion(self, request: CompletionRequest) -> CompletionResponse:
        """Generate completion candidates for the caret position.

        Raises:
            ProviderUnavailableError: If the backend is not configured
            ProviderError: On transport, vendor or payload errors
        """
        self._ensure_available()
        start_time = time.time()
        prompt = build_completion_prompt(request, self._max_context_lines)
        texts = await self._call("completion", start_time, self._complete(prompt, request))

        cleaned = [clean_completion(t) for t in texts]
        candidates = []
        for text in cleaned:
            if text and text not in candidates:
                candidates.append(text)

        elapsed_ms = (time.time() - start_time) * 1000
        if not candidates:
            return CompletionResponse(
                completion="", elapsed_ms=elapsed_ms, provider=self.name, confidence=0.0
            )
        return CompletionResponse(
            completion=candidates[0],
            alternatives=tuple(candidates[1:]),
            confidence=self.default_confidence,
            elapsed_ms=elapsed_ms,
            provider=self.name,
        )

    async def send_chat_message(self, request: ChatRequest) -> ChatResponse:
        """Send one chat turn.

        Raises:
            ProviderUnavailableError: If the backend is not configured
            ProviderError: On transport, vendor or payload errors
        """
        self._ensure_available()
        start_time = time.time()
        text, tokens = await self._call("chat", start_time, self._chat(request))
        return ChatResponse(
            response=text,
            elapsed_ms=(time.time() - start_time) * 1000,
            tokens_used=tokens,
        )

    async def test_connection(self) -> bool:
        """Check connectivity and credentials. Never raises."""
        try:
            await self._probe()
            return True
        except httpx.HTTPError as e:
            self._on_transport_error(e)
            logger.warning(f"{self.name} connection test failed: {e}")
            return False
        except Exception as e:
            logger.warning(f"{self.name} connection test failed: {e}")
            return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_available(self) -> None:
        if not self.is_available():
            raise ProviderUnavailableError(self.name, "provider is not available")

    async def _call(self, operation: str, start_time: float, awaitable: Any) -> Any:
        try:
            return await awaitable
        except ProviderError:
            raise
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                self.name,
                f"{operation} request failed with HTTP {e.response.status_code}",
                elapsed_ms=(time.time() - start_time) * 1000,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            self._on_transport_error(e)
            raise ProviderError(
                self.name,
                f"{operation} request failed",
                elapsed_ms=(time.time() - start_time) * 1000,
                cause=e,
            ) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(
                self.name,
                f"malformed {operation} response",
                elapsed_ms=(time.time() - start_time) * 1000,
                cause=e,
            ) from e

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, model={self._model!r})"
