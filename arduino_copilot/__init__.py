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

"""Arduino Copilot completion engine.

Inline AI code completion for an Arduino editor, providing:
- Context analysis of the text around the caret
- A trigger policy for automatic completions
- A TTL-bounded LRU cache of responses
- Interchangeable AI backends (OpenAI, Anthropic, Ollama)
- A selection state machine for the suggestion list

Package Structure:
    config.py       - CompletionSettings, YAML loading and change events
    errors.py       - Exception hierarchy
    events.py       - Synchronous publish/subscribe channel
    completion/     - Analyzer, trigger policy, cache, engine, session
    providers/      - AIProvider protocol, HTTP backends and factory

Usage:
    from arduino_copilot import CompletionEngine, ConfigurationManager

    config = ConfigurationManager.from_file("copilot.yaml")
    engine = CompletionEngine.from_configuration(config, editor, presenter)

    engine.on_document_changed()          # after every edit
    await engine.trigger_manual()         # explicit request
    engine.accept()                       # insert the highlighted candidate
"""

from arduino_copilot.completion import (
    CompletionCache,
    CompletionContext,
    CompletionEngine,
    CompletionRequest,
    CompletionResponse,
    ContextAnalyzer,
    SelectionState,
    SelectionStateMachine,
    SuggestionSession,
    should_trigger,
)
from arduino_copilot.config import (
    CompletionSettings,
    ConfigurationManager,
    ProviderSettings,
    ProviderType,
    SettingsChanged,
    load_settings,
)
from arduino_copilot.errors import (
    ConfigurationError,
    CopilotError,
    ProviderError,
    ProviderUnavailableError,
)
from arduino_copilot.events import EventChannel
from arduino_copilot.providers import AIProvider, ProviderFactory

__version__ = "0.1.0"

__all__ = [
    # Engine
    "CompletionEngine",
    "ContextAnalyzer",
    "CompletionCache",
    "SelectionStateMachine",
    "SelectionState",
    "SuggestionSession",
    "should_trigger",
    # Data
    "CompletionContext",
    "CompletionRequest",
    "CompletionResponse",
    # Configuration
    "CompletionSettings",
    "ConfigurationManager",
    "ProviderSettings",
    "ProviderType",
    "SettingsChanged",
    "load_settings",
    # Providers
    "AIProvider",
    "ProviderFactory",
    # Errors
    "CopilotError",
    "ConfigurationError",
    "ProviderError",
    "ProviderUnavailableError",
    # Events
    "EventChannel",
]
