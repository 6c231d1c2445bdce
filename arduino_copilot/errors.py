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

"""Exception types raised by the completion engine and its providers."""

from typing import Optional


class CopilotError(Exception):
    """Base class for all arduino_copilot errors."""


class ConfigurationError(CopilotError):
    """Raised when settings are invalid or no provider can be constructed."""


class ProviderError(CopilotError):
    """A backend call failed (network, timeout, vendor error, bad payload).

    Carries enough detail to diagnose the failure from a single log line.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        elapsed_ms: float = 0.0,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.elapsed_ms = elapsed_ms
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.provider}] {self.message} after {self.elapsed_ms:.0f}ms"
        if self.cause is not None:
            text += f" ({type(self.cause).__name__}: {self.cause})"
        return text


class ProviderUnavailableError(ProviderError):
    """The backend is not configured or not reachable."""
