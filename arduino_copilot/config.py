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

"""Completion settings and the configuration collaborator.

Settings are immutable values. A change produces a new CompletionSettings
instance which is announced on ConfigurationManager.changes; consumers pick
it up on their next cycle instead of sharing mutable state.

Example:
    manager = ConfigurationManager.from_file("~/.arduino-copilot.yaml")
    manager.changes.subscribe(lambda event: print(event.keys))
    manager.update(trigger_delay_ms=300)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from arduino_copilot.errors import ConfigurationError
from arduino_copilot.events import EventChannel

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    """Closed set of supported AI backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


class ProviderSettings(BaseModel):
    """Connection settings for a single backend."""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = Field(default=None, description="API key (cloud backends only)")
    model: str = Field(description="Model used for completions and chat")
    base_url: str = Field(description="Root URL of the backend API")


def _default_openai() -> ProviderSettings:
    return ProviderSettings(model="gpt-3.5-turbo", base_url="https://api.openai.com/v1")


def _default_anthropic() -> ProviderSettings:
    return ProviderSettings(model="claude-3-haiku-20240307", base_url="https://api.anthropic.com")


def _default_ollama() -> ProviderSettings:
    return ProviderSettings(model="codellama", base_url="http://localhost:11434")


class CompletionSettings(BaseModel):
    """Options recognized by the completion engine."""

    model_config = ConfigDict(frozen=True)

    # Completion behaviour
    enabled: bool = Field(default=True, description="Master switch for completions")
    auto_trigger_enabled: bool = Field(
        default=True, description="Request completions automatically while typing"
    )
    trigger_delay_ms: int = Field(
        default=500, ge=0, description="Debounce delay between the last edit and evaluation"
    )
    min_trigger_chars: int = Field(
        default=2, ge=1, description="Minimum identifier length for word-based triggers"
    )
    max_tokens: int = Field(default=150, gt=0, description="Maximum completion size")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")

    # Engine resources
    request_timeout_s: float = Field(
        default=30.0, gt=0, description="Upper bound on a single provider call"
    )
    cache_capacity: int = Field(default=100, gt=0, description="Maximum cached responses")
    cache_ttl_s: float = Field(default=300.0, gt=0, description="Cached response lifetime")
    max_concurrent_requests: int = Field(
        default=4, gt=0, description="Size of the provider task pool"
    )

    # Backends
    provider: ProviderType = Field(default=ProviderType.OPENAI, description="Active backend")
    openai: ProviderSettings = Field(default_factory=_default_openai)
    anthropic: ProviderSettings = Field(default_factory=_default_anthropic)
    ollama: ProviderSettings = Field(default_factory=_default_ollama)

    @property
    def auto_completion_active(self) -> bool:
        """Whether automatic triggers should be evaluated at all."""
        return self.enabled and self.auto_trigger_enabled

    def provider_settings(self, provider: Optional[ProviderType] = None) -> ProviderSettings:
        """Get the connection settings of a backend (the active one by default)."""
        provider = ProviderType(provider or self.provider)
        return getattr(self, provider.value)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CompletionSettings":
        """Build settings from a nested or flat mapping.

        Accepts both the flat field names of this model and the sectioned
        layout used by configuration files::

            arduino-copilot:
              ai:
                provider: ollama
                ollama: {base-url: "http://localhost:11434", model: codellama}
              completion:
                delay-ms: 500
                min-chars: 2

        Raises:
            ConfigurationError: If the values do not validate
        """
        try:
            return cls.model_validate(_flatten_settings(data))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid completion settings: {e}") from e


# Sectioned keys that do not map 1:1 onto field names
_COMPLETION_ALIASES = {
    "auto_trigger": "auto_trigger_enabled",
    "delay_ms": "trigger_delay_ms",
    "min_chars": "min_trigger_chars",
}


def _normalize_key(key: str) -> str:
    return str(key).strip().replace("-", "_").lower()


def _normalize_section(section: Mapping[str, Any]) -> Dict[str, Any]:
    return {_normalize_key(k): v for k, v in section.items()}


def _flatten_settings(data: Mapping[str, Any]) -> Dict[str, Any]:
    data = _normalize_section(data or {})
    if "arduino_copilot" in data and isinstance(data["arduino_copilot"], Mapping):
        data = _normalize_section(data["arduino_copilot"])

    flat: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "completion" and isinstance(value, Mapping):
            for ckey, cvalue in _normalize_section(value).items():
                flat[_COMPLETION_ALIASES.get(ckey, ckey)] = cvalue
        elif key == "ai" and isinstance(value, Mapping):
            for akey, avalue in _normalize_section(value).items():
                if isinstance(avalue, Mapping):
                    flat[akey] = _normalize_section(avalue)
                else:
                    flat[akey] = avalue
        elif key in ("chat", "ui"):
            # Owned by the chat and presentation layers
            continue
        elif isinstance(value, Mapping):
            flat[key] = _normalize_section(value)
        else:
            flat[_COMPLETION_ALIASES.get(key, key)] = value

    # Partial backend sections are merged over the defaults
    defaults = CompletionSettings()
    for provider in ProviderType:
        section = flat.get(provider.value)
        if isinstance(section, Mapping):
            merged = defaults.provider_settings(provider).model_dump()
            merged.update(section)
            flat[provider.value] = merged
    return flat


def load_settings(path: Union[str, Path]) -> CompletionSettings:
    """Load settings from a YAML file.

    A missing file yields the defaults.

    Raises:
        ConfigurationError: If the file cannot be parsed or validated
    """
    path = Path(path).expanduser()
    if not path.exists():
        logger.info(f"No settings file at {path}, using defaults")
        return CompletionSettings()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read settings from {path}: {e}") from e

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    return CompletionSettings.from_mapping(data)


@dataclass(frozen=True)
class SettingsChanged:
    """Published whenever the active settings are replaced."""

    keys: FrozenSet[str]
    settings: CompletionSettings


class ConfigurationManager:
    """Holds the current settings value and announces replacements."""

    def __init__(self, settings: Optional[CompletionSettings] = None):
        self._settings = settings or CompletionSettings()
        self.changes: EventChannel[SettingsChanged] = EventChannel("settings")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ConfigurationManager":
        return cls(load_settings(path))

    @property
    def settings(self) -> CompletionSettings:
        return self._settings

    def update(self, **changes: Any) -> CompletionSettings:
        """Apply field changes and publish the new settings.

        Raises:
            ConfigurationError: If the resulting settings do not validate
        """
        merged = self._settings.model_dump()
        merged.update(changes)
        try:
            new_settings = CompletionSettings.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings update {sorted(changes)}: {e}") from e
        return self._apply(new_settings, frozenset(changes))

    def replace(self, settings: CompletionSettings) -> CompletionSettings:
        """Swap in a complete settings value and publish it."""
        old = self._settings.model_dump()
        new = settings.model_dump()
        keys = frozenset(k for k in new if old.get(k) != new[k])
        return self._apply(settings, keys)

    def _apply(self, settings: CompletionSettings, keys: FrozenSet[str]) -> CompletionSettings:
        self._settings = settings
        if keys:
            logger.debug(f"Settings changed: {sorted(keys)}")
            self.changes.publish(SettingsChanged(keys=keys, settings=settings))
        return settings
