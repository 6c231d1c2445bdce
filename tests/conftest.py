# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Shared fixtures: scripted provider, recording presenter, editor buffer."""

import asyncio
from typing import List, Optional, Union

import pytest

from arduino_copilot.completion.protocol import (
    ChatRequest,
    ChatResponse,
    CompletionRequest,
    CompletionResponse,
    TextBuffer,
)
from arduino_copilot.config import CompletionSettings


class FakeProvider:
    """Scripted AIProvider.

    Each call pops the next scripted outcome: a CompletionResponse is
    returned, an exception is raised. When gated, calls block until
    release() is called.
    """

    def __init__(self, outcomes: Optional[List[Union[CompletionResponse, Exception]]] = None):
        self.outcomes = list(outcomes or [])
        self.requests: List[CompletionRequest] = []
        self.available = True
        self._gate: Optional[asyncio.Event] = None
        self.closed = False
        self._model = "fake-model"

    @property
    def name(self) -> str:
        return "Fake"

    @property
    def current_model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        return self.available

    def hold(self) -> None:
        """Block subsequent calls until release()."""
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def generate_completion(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if self._gate is not None:
            await self._gate.wait()
        outcome = self.outcomes.pop(0) if self.outcomes else CompletionResponse(completion="")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def send_chat_message(self, request: ChatRequest) -> ChatResponse:
        return ChatResponse(response="ok")

    def available_models(self) -> List[str]:
        return [self._model]

    def set_model(self, model: str) -> None:
        self._model = model

    async def test_connection(self) -> bool:
        return self.available

    async def aclose(self) -> None:
        self.closed = True


class RecordingPresenter:
    """SuggestionPresenter that records every call."""

    def __init__(self):
        self.shown = []
        self.hidden = 0
        self.notices: List[str] = []

    def show_suggestions(self, session) -> None:
        self.shown.append(session)

    def hide_suggestions(self) -> None:
        self.hidden += 1

    def show_notice(self, message: str) -> None:
        self.notices.append(message)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def buffer():
    return TextBuffer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return CompletionSettings(trigger_delay_ms=10, request_timeout_s=5.0)
