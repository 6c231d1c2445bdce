# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for settings loading and change notification."""

import pytest

from arduino_copilot.config import (
    CompletionSettings,
    ConfigurationManager,
    ProviderType,
    load_settings,
)
from arduino_copilot.errors import ConfigurationError


class TestCompletionSettings:
    """Tests for defaults and mapping conversion."""

    def test_defaults(self):
        settings = CompletionSettings()

        assert settings.trigger_delay_ms == 500
        assert settings.min_trigger_chars == 2
        assert settings.cache_capacity == 100
        assert settings.cache_ttl_s == 300
        assert settings.provider == ProviderType.OPENAI
        assert settings.ollama.base_url == "http://localhost:11434"
        assert settings.auto_completion_active is True

    def test_auto_completion_requires_both_switches(self):
        assert CompletionSettings(enabled=False).auto_completion_active is False
        assert CompletionSettings(auto_trigger_enabled=False).auto_completion_active is False

    def test_settings_are_immutable(self):
        settings = CompletionSettings()

        with pytest.raises(Exception):
            settings.trigger_delay_ms = 10

    def test_sectioned_mapping(self):
        settings = CompletionSettings.from_mapping(
            {
                "arduino-copilot": {
                    "ai": {"provider": "ollama", "ollama": {"model": "mistral"}},
                    "completion": {"delay-ms": 250, "min-chars": 3, "auto-trigger": False},
                    "chat": {"history": 20},
                }
            }
        )

        assert settings.provider == ProviderType.OLLAMA
        assert settings.ollama.model == "mistral"
        assert settings.ollama.base_url == "http://localhost:11434"
        assert settings.trigger_delay_ms == 250
        assert settings.min_trigger_chars == 3
        assert settings.auto_trigger_enabled is False

    def test_flat_mapping(self):
        settings = CompletionSettings.from_mapping({"max_tokens": 64, "provider": "anthropic"})

        assert settings.max_tokens == 64
        assert settings.provider_settings().model == "claude-3-haiku-20240307"

    def test_invalid_values_raise_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CompletionSettings.from_mapping({"completion": {"min-chars": 0}})
        with pytest.raises(ConfigurationError):
            CompletionSettings.from_mapping({"provider": "gemini"})


class TestLoadSettings:
    """Tests for YAML loading."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "absent.yaml") == CompletionSettings()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "copilot.yaml"
        path.write_text(
            "arduino-copilot:\n"
            "  ai:\n"
            "    provider: openai\n"
            "    openai:\n"
            "      api-key: sk-test\n"
            "  completion:\n"
            "    delay-ms: 300\n"
        )

        settings = load_settings(path)

        assert settings.openai.api_key == "sk-test"
        assert settings.openai.model == "gpt-3.5-turbo"
        assert settings.trigger_delay_ms == 300

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("completion: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            load_settings(path)


class TestConfigurationManager:
    """Tests for ConfigurationManager."""

    def test_update_publishes_changed_keys(self):
        manager = ConfigurationManager()
        events = []
        manager.changes.subscribe(events.append)

        manager.update(trigger_delay_ms=100)

        assert manager.settings.trigger_delay_ms == 100
        assert len(events) == 1
        assert events[0].keys == frozenset({"trigger_delay_ms"})
        assert events[0].settings is manager.settings

    def test_invalid_update_keeps_old_settings(self):
        manager = ConfigurationManager()
        events = []
        manager.changes.subscribe(events.append)

        with pytest.raises(ConfigurationError):
            manager.update(cache_capacity=0)

        assert manager.settings.cache_capacity == 100
        assert events == []

    def test_replace_reports_only_differences(self):
        manager = ConfigurationManager()
        events = []
        manager.changes.subscribe(events.append)

        manager.replace(CompletionSettings())
        manager.replace(CompletionSettings(provider=ProviderType.OLLAMA))

        assert len(events) == 1
        assert events[0].keys == frozenset({"provider"})
