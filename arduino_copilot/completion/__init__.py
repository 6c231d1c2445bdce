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

"""Inline completion for the Arduino editor.

Example usage:
    from arduino_copilot.completion import CompletionEngine, TextBuffer

    buffer = TextBuffer("void loop() {\n  Serial.", caret=22)
    engine = CompletionEngine(buffer, presenter)

    session = await engine.trigger_manual()
    if session is not None:
        engine.navigate(+1)
        engine.accept()
"""

from arduino_copilot.completion.cache import CacheEntry, CompletionCache
from arduino_copilot.completion.context import ContextAnalyzer
from arduino_copilot.completion.engine import CompletionEngine
from arduino_copilot.completion.postprocess import enhance_completion
from arduino_copilot.completion.protocol import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    CompletionContext,
    CompletionMetrics,
    CompletionRequest,
    CompletionResponse,
    CompletionTriggerKind,
    DocumentSnapshot,
    EditorBuffer,
    ProjectContextSource,
    SuggestionPresenter,
    TextBuffer,
)
from arduino_copilot.completion.scheduler import Debouncer, TaskScheduler
from arduino_copilot.completion.session import (
    SelectionState,
    SelectionStateMachine,
    SessionEvent,
    SuggestionSession,
)
from arduino_copilot.completion.trigger import should_trigger

__all__ = [
    # Protocol types
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatRole",
    "CompletionContext",
    "CompletionMetrics",
    "CompletionRequest",
    "CompletionResponse",
    "CompletionTriggerKind",
    "DocumentSnapshot",
    "EditorBuffer",
    "ProjectContextSource",
    "SuggestionPresenter",
    "TextBuffer",
    # Analysis and policy
    "ContextAnalyzer",
    "should_trigger",
    "enhance_completion",
    # Cache
    "CacheEntry",
    "CompletionCache",
    # Scheduling
    "Debouncer",
    "TaskScheduler",
    # Session
    "SelectionState",
    "SelectionStateMachine",
    "SessionEvent",
    "SuggestionSession",
    # Engine
    "CompletionEngine",
]
