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

"""Completion protocol types.

Value objects exchanged between the engine, the providers and the
presentation layer, plus the narrow interfaces of the editor-side
collaborators. Requests and responses are immutable; post-processing
derives new instances instead of mutating provider output.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Callable, Optional, Protocol, Tuple, runtime_checkable

if TYPE_CHECKING:
    from arduino_copilot.completion.session import SuggestionSession


class CompletionTriggerKind(IntEnum):
    """How the completion was triggered."""

    AUTOMATIC = 1  # Typing, after the debounce delay
    INVOKED = 2  # Explicit user command (e.g., Ctrl+Space)


@dataclass(frozen=True)
class DocumentSnapshot:
    """Text and caret captured together at the moment of analysis."""

    text: str
    caret: int

    @classmethod
    def capture(cls, text: str, caret: int) -> "DocumentSnapshot":
        """Create a snapshot with the caret clamped into the text."""
        text = text or ""
        return cls(text=text, caret=max(0, min(int(caret), len(text))))


@dataclass(frozen=True)
class CompletionContext:
    """Structured description of the code around the caret."""

    line_prefix: str = ""  # Line start up to the caret
    line_suffix: str = ""  # Caret up to the line end
    current_word: str = ""  # Identifier fragment left of the caret
    indent_level: int = 0
    in_function_body: bool = False
    in_comment: bool = False

    @property
    def line(self) -> str:
        return self.line_prefix + self.line_suffix

    def cache_key(self) -> str:
        """Fingerprint used for response reuse.

        Contexts sharing the trimmed line prefix and current word are
        interchangeable, whatever the surrounding code looks like.
        """
        return f"{self.line_prefix.strip()}|{self.current_word}"

    @property
    def in_pin_mode(self) -> bool:
        return "pinMode" in self.line_prefix

    @property
    def in_serial_call(self) -> bool:
        return "Serial." in self.line_prefix


@dataclass(frozen=True)
class CompletionRequest:
    """Parameters for a single completion call."""

    code: str  # Full document text
    project_context: str = ""  # Opaque summary of the other project files
    caret: int = 0
    max_tokens: int = 150
    temperature: float = 0.2

    @property
    def prefix(self) -> str:
        return self.code[: self.caret]

    @property
    def suffix(self) -> str:
        return self.code[self.caret :]


@dataclass(frozen=True)
class CompletionResponse:
    """A primary completion plus ranked alternatives."""

    completion: str
    alternatives: Tuple[str, ...] = ()
    confidence: float = 1.0  # 0-1
    elapsed_ms: float = 0.0
    provider: str = ""

    def __post_init__(self) -> None:
        # Lists are accepted for convenience but stored as tuples
        object.__setattr__(self, "alternatives", tuple(self.alternatives))
        object.__setattr__(self, "confidence", max(0.0, min(1.0, float(self.confidence))))

    @property
    def is_empty(self) -> bool:
        return not self.completion or not self.completion.strip()

    @property
    def candidates(self) -> Tuple[str, ...]:
        """Primary completion followed by the alternatives."""
        return (self.completion, *self.alternatives)

    def with_completion(self, completion: str) -> "CompletionResponse":
        """Derive a response with a different primary completion."""
        return replace(self, completion=completion)


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class ChatMessage:
    role: ChatRole
    content: str


@dataclass(frozen=True)
class ChatRequest:
    """A chat turn, consumed by the chat subsystem."""

    message: str
    context: str = ""
    history: Tuple[ChatMessage, ...] = ()
    max_tokens: int = 1000

    def __post_init__(self) -> None:
        object.__setattr__(self, "history", tuple(self.history))


@dataclass(frozen=True)
class ChatResponse:
    response: str
    elapsed_ms: float = 0.0
    tokens_used: int = 0


@dataclass
class CompletionMetrics:
    """Counters for completion operations."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    dropped_requests: int = 0  # Ignored while another request was outstanding
    empty_responses: int = 0
    stale_responses: int = 0
    total_latency_ms: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def average_latency_ms(self) -> float:
        """Calculate average latency."""
        if self.successful_requests == 0:
            return 0.0
        return self.total_latency_ms / self.successful_requests

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


@runtime_checkable
class EditorBuffer(Protocol):
    """The editor document the engine reads from and splices into."""

    @property
    def text(self) -> str:
        ...

    @property
    def caret(self) -> int:
        ...

    def insert(self, offset: int, text: str) -> None:
        """Insert text at an absolute offset."""
        ...


@runtime_checkable
class SuggestionPresenter(Protocol):
    """Presentation layer showing the suggestion list."""

    def show_suggestions(self, session: "SuggestionSession") -> None:
        ...

    def hide_suggestions(self) -> None:
        ...

    def show_notice(self, message: str) -> None:
        """Display a non-blocking message to the user."""
        ...


# Supplies a summary of the other project files, included verbatim in requests
ProjectContextSource = Callable[[], str]


@dataclass
class TextBuffer:
    """In-memory EditorBuffer, used headless and in tests."""

    text: str = ""
    caret: int = 0
    edits: list = field(default_factory=list)

    def insert(self, offset: int, text: str) -> None:
        offset = max(0, min(offset, len(self.text)))
        self.text = self.text[:offset] + text + self.text[offset:]
        self.caret = offset + len(text)
        self.edits.append((offset, text))
