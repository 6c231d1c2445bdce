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

"""AI backends for completion and chat."""

from arduino_copilot.providers.anthropic import AnthropicProvider
from arduino_copilot.providers.base import AIProvider, BaseAIProvider
from arduino_copilot.providers.factory import BUILTIN_PROVIDERS, ProviderFactory
from arduino_copilot.providers.ollama import OllamaProvider
from arduino_copilot.providers.openai import OpenAIProvider

__all__ = [
    "AIProvider",
    "BaseAIProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "OllamaProvider",
    "ProviderFactory",
    "BUILTIN_PROVIDERS",
]
