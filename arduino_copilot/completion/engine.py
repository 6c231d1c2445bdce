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

"""Completion engine orchestrating analysis, caching and providers.

Provides the high-level API the editor integration talks to, following
the Facade pattern. Handles:
- Debounced automatic triggers and explicit (manual) triggers
- At most one outstanding provider request
- Response caching keyed on the caret context
- Domain post-processing and the suggestion session lifecycle

All methods are meant to be called from the event loop that owns the
editor document.
"""

import asyncio
import logging
import threading
import time
from typing import Callable, Optional, Set

from arduino_copilot.completion.cache import CompletionCache
from arduino_copilot.completion.context import ContextAnalyzer
from arduino_copilot.completion.postprocess import enhance_completion
from arduino_copilot.completion.protocol import (
    CompletionContext,
    CompletionMetrics,
    CompletionRequest,
    CompletionResponse,
    CompletionTriggerKind,
    DocumentSnapshot,
    EditorBuffer,
    ProjectContextSource,
    SuggestionPresenter,
)
from arduino_copilot.completion.scheduler import Debouncer, TaskScheduler
from arduino_copilot.completion.session import (
    SelectionState,
    SelectionStateMachine,
    SessionEvent,
    SuggestionSession,
)
from arduino_copilot.completion.trigger import should_trigger
from arduino_copilot.config import CompletionSettings, ConfigurationManager, SettingsChanged
from arduino_copilot.errors import ConfigurationError, ProviderError
from arduino_copilot.providers.base import AIProvider
from arduino_copilot.providers.factory import ProviderFactory

logger = logging.getLogger(__name__)


class CompletionEngine:
    """Decides when to request completions and presents the results.

    Each request carries a sequence number. A response that arrives after
    a newer request was issued is cached but does not open a session.
    """

    def __init__(
        self,
        editor: EditorBuffer,
        presenter: Optional[SuggestionPresenter] = None,
        settings: Optional[CompletionSettings] = None,
        provider_factory: Optional[ProviderFactory] = None,
        project_context: Optional[ProjectContextSource] = None,
        cache: Optional[CompletionCache] = None,
        analyzer: Optional[ContextAnalyzer] = None,
    ):
        """Initialize the engine.

        Args:
            editor: Document to snapshot and splice accepted text into
            presenter: Presentation layer for sessions and notices
            settings: Initial settings (defaults if not provided)
            provider_factory: Builds the active provider from settings
            project_context: Supplies the project summary for requests
            cache: Response cache (built from settings if not provided)
            analyzer: Context analyzer
        """
        self._editor = editor
        self._presenter = presenter
        self._settings = settings or CompletionSettings()
        self._factory = provider_factory or ProviderFactory()
        self._project_context = project_context
        self._cache = cache or CompletionCache(
            capacity=self._settings.cache_capacity,
            ttl_seconds=self._settings.cache_ttl_s,
        )
        self._analyzer = analyzer or ContextAnalyzer()
        self._provider_override: Optional[AIProvider] = None

        self._selection = SelectionStateMachine()
        self._selection.transitions.subscribe(self._forward_to_presenter)
        self._scheduler = TaskScheduler(self._settings.max_concurrent_requests)
        self._debouncer = Debouncer(self._settings.trigger_delay_ms, self._on_edits_settled)
        self._trigger_tasks: Set[asyncio.Task] = set()

        self._lock = threading.Lock()
        self._outstanding: Optional[int] = None  # Sequence of the in-flight request
        self._latest_sequence = 0
        self._timed_out: Set[int] = set()  # Already reported as failed
        self._metrics = CompletionMetrics()
        self._unsubscribe_config: Optional[Callable[[], None]] = None

    @classmethod
    def from_configuration(
        cls,
        configuration: ConfigurationManager,
        editor: EditorBuffer,
        presenter: Optional[SuggestionPresenter] = None,
        **kwargs,
    ) -> "CompletionEngine":
        """Create an engine that follows a ConfigurationManager's changes."""
        engine = cls(editor, presenter, settings=configuration.settings, **kwargs)
        engine._unsubscribe_config = configuration.changes.subscribe(engine._on_settings_changed)
        return engine

    @property
    def settings(self) -> CompletionSettings:
        return self._settings

    @property
    def cache(self) -> CompletionCache:
        return self._cache

    @property
    def metrics(self) -> CompletionMetrics:
        """Get completion metrics."""
        return self._metrics

    def reset_metrics(self) -> None:
        """Reset all metrics."""
        self._metrics = CompletionMetrics()

    @property
    def selection(self) -> SelectionStateMachine:
        return self._selection

    @property
    def session(self) -> Optional[SuggestionSession]:
        return self._selection.session

    @property
    def is_request_outstanding(self) -> bool:
        with self._lock:
            return self._outstanding is not None

    def set_provider(self, provider: Optional[AIProvider]) -> None:
        """Pin a provider instance instead of resolving it from settings.

        Passing None returns to settings-driven selection. Takes effect on
        the next trigger; an in-flight request is not cancelled.
        """
        self._provider_override = provider

    def reload_settings(self, settings: CompletionSettings) -> None:
        """Adopt new settings for subsequent trigger cycles."""
        old = self._settings
        self._settings = settings
        self._debouncer.delay_ms = settings.trigger_delay_ms

        if (old.cache_capacity, old.cache_ttl_s) != (settings.cache_capacity, settings.cache_ttl_s):
            self._cache = CompletionCache(
                capacity=settings.cache_capacity, ttl_seconds=settings.cache_ttl_s
            )
        if old.max_concurrent_requests != settings.max_concurrent_requests:
            # Running tasks finish on the old pool
            self._scheduler = TaskScheduler(settings.max_concurrent_requests)
        if not settings.auto_completion_active:
            self._debouncer.cancel()
        if old.provider != settings.provider:
            logger.info(f"Completion provider switched to {settings.provider.value}")

    def _on_settings_changed(self, event: SettingsChanged) -> None:
        self.reload_settings(event.settings)

    # Triggers

    def on_document_changed(self) -> None:
        """Editor hook called after every edit; (re)starts the debounce timer."""
        if not self._settings.auto_completion_active:
            return
        self._debouncer.schedule()

    def _on_edits_settled(self) -> None:
        task = asyncio.get_running_loop().create_task(
            self.trigger_auto(self._editor.text, self._editor.caret)
        )
        self._trigger_tasks.add(task)
        task.add_done_callback(self._trigger_tasks.discard)

    async def trigger_auto(self, text: str, caret: int) -> Optional[SuggestionSession]:
        """Automatic trigger (typing). Silently ignored unless the trigger
        policy accepts the position.

        Returns:
            The session opened by this trigger, if any
        """
        if not self._settings.auto_completion_active:
            return None
        return await self._trigger(text, caret, CompletionTriggerKind.AUTOMATIC)

    async def trigger_manual(
        self, text: Optional[str] = None, caret: Optional[int] = None
    ) -> Optional[SuggestionSession]:
        """Explicit trigger. Always asks the provider, even on a cache hit.

        Args:
            text: Document text (read from the editor if not provided)
            caret: Caret offset (read from the editor if not provided)

        Returns:
            The session opened by this trigger, if any
        """
        if text is None:
            text = self._editor.text
        if caret is None:
            caret = self._editor.caret
        self._debouncer.cancel()
        return await self._trigger(text, caret, CompletionTriggerKind.INVOKED)

    async def _trigger(
        self, text: str, caret: int, kind: CompletionTriggerKind
    ) -> Optional[SuggestionSession]:
        manual = kind == CompletionTriggerKind.INVOKED
        if self.is_request_outstanding:
            self._metrics.dropped_requests += 1
            logger.debug("Completion request outstanding, trigger dropped")
            return None

        settings = self._settings
        snapshot = DocumentSnapshot.capture(text, caret)
        try:
            if not manual and not should_trigger(snapshot.text, snapshot.caret, settings):
                return None
            context = self._analyzer.analyze_snapshot(snapshot)
            cache_key = context.cache_key()
            cached = self._cache.get(cache_key)
        except Exception as e:
            logger.error(f"Completion analysis failed at offset {snapshot.caret}: {e}")
            return None

        if cached is not None and not manual:
            self._metrics.cache_hits += 1
            logger.debug(f"Serving cached completion for {cache_key!r}")
            with self._lock:
                # Responses to earlier requests must not replace this session
                self._latest_sequence += 1
            return self._selection.open(cached, snapshot.caret)
        self._metrics.cache_misses += 1

        provider = self._resolve_provider(manual)
        if provider is None:
            return None

        sequence = self._begin_request()
        if sequence is None:
            self._metrics.dropped_requests += 1
            return None

        request = CompletionRequest(
            code=snapshot.text,
            project_context=self._project_context_text(),
            caret=snapshot.caret,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
        )
        self._metrics.total_requests += 1
        task = self._scheduler.submit(
            self._run_request(sequence, provider, request, context, cache_key, manual),
            name=f"completion-{sequence}",
        )

        done, _ = await asyncio.wait({task}, timeout=settings.request_timeout_s)
        if task not in done:
            # The call keeps running; its late result is cached but not shown
            logger.error(
                f"Completion request to {provider.name} timed out "
                f"after {settings.request_timeout_s:.1f}s"
            )
            self._metrics.failed_requests += 1
            with self._lock:
                self._timed_out.add(sequence)
            self._end_request(sequence)
            if manual:
                self._notify(f"{provider.name} did not respond in time")
            return None
        return task.result()

    async def _run_request(
        self,
        sequence: int,
        provider: AIProvider,
        request: CompletionRequest,
        context: CompletionContext,
        cache_key: str,
        manual: bool,
    ) -> Optional[SuggestionSession]:
        start_time = time.time()
        try:
            response = await provider.generate_completion(request)
            return self._apply_response(
                sequence, response, context, cache_key, request.caret, start_time
            )
        except ProviderError as e:
            if self._is_timed_out(sequence):
                logger.debug(f"Timed-out completion #{sequence} failed late: {e}")
                return None
            self._metrics.failed_requests += 1
            logger.error(f"Completion request failed: {e}")
            if manual:
                self._notify(f"Completion failed: {e.message}")
            return None
        except Exception as e:
            if self._is_timed_out(sequence):
                logger.debug(f"Timed-out completion #{sequence} failed late: {e}")
                return None
            self._metrics.failed_requests += 1
            elapsed_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Completion request to {provider.name} failed after {elapsed_ms:.0f}ms: "
                f"{type(e).__name__}: {e}"
            )
            if manual:
                self._notify(f"Completion failed: {e}")
            return None
        finally:
            with self._lock:
                self._timed_out.discard(sequence)
            self._end_request(sequence)

    def _is_timed_out(self, sequence: int) -> bool:
        with self._lock:
            return sequence in self._timed_out

    def _apply_response(
        self,
        sequence: int,
        response: Optional[CompletionResponse],
        context: CompletionContext,
        cache_key: str,
        trigger_offset: int,
        start_time: float,
    ) -> Optional[SuggestionSession]:
        timed_out = self._is_timed_out(sequence)
        if response is None or response.is_empty:
            if not timed_out:
                self._metrics.empty_responses += 1
            logger.debug("Provider returned an empty completion")
            return None

        enhanced = enhance_completion(response, context)
        self._cache.put(cache_key, enhanced)
        if not timed_out:
            self._metrics.successful_requests += 1
            self._metrics.total_latency_ms += (time.time() - start_time) * 1000

        with self._lock:
            stale = timed_out or sequence != self._latest_sequence
        if stale:
            self._metrics.stale_responses += 1
            logger.info(f"Discarding stale completion #{sequence}")
            return None

        return self._selection.open(enhanced, trigger_offset)

    def _begin_request(self) -> Optional[int]:
        """Atomically claim the single outstanding-request slot."""
        with self._lock:
            if self._outstanding is not None:
                return None
            self._latest_sequence += 1
            self._outstanding = self._latest_sequence
            return self._latest_sequence

    def _end_request(self, sequence: int) -> None:
        with self._lock:
            if self._outstanding == sequence:
                self._outstanding = None

    def _resolve_provider(self, manual: bool) -> Optional[AIProvider]:
        provider = self._provider_override
        if provider is None:
            try:
                provider = self._factory.get_provider(self._settings)
            except ConfigurationError as e:
                logger.error(f"No completion provider: {e}")
                self._notify(str(e))
                return None

        if not provider.is_available():
            logger.warning(f"AI provider {provider.name} not available for completion")
            if manual:
                self._notify(f"{provider.name} is not available. Check the AI settings.")
            return None
        return provider

    def _project_context_text(self) -> str:
        if self._project_context is None:
            return ""
        try:
            return self._project_context() or ""
        except Exception as e:
            logger.warning(f"Project context unavailable: {e}")
            return ""

    # Session control, called by the presentation layer

    def navigate(self, delta: int) -> bool:
        """Move the highlighted candidate; out-of-range moves are clamped."""
        return self._selection.navigate(delta)

    def accept(self) -> Optional[str]:
        """Insert the highlighted candidate at the trigger offset."""
        return self._selection.accept(self._editor)

    def cancel(self) -> bool:
        """Dismiss the open session without editing the document."""
        return self._selection.cancel()

    def _forward_to_presenter(self, event: SessionEvent) -> None:
        if self._presenter is None:
            return
        if event.state == SelectionState.SHOWN:
            self._presenter.show_suggestions(event.session)
        elif event.state == SelectionState.HIDDEN:
            self._presenter.hide_suggestions()

    def _notify(self, message: str) -> None:
        if self._presenter is None:
            return
        try:
            self._presenter.show_notice(message)
        except Exception as e:
            logger.warning(f"Presenter failed to show notice: {e}")

    async def wait_idle(self) -> None:
        """Wait until every provider call, including timed-out ones, has finished."""
        await self._scheduler.drain()

    async def shutdown(self) -> None:
        """Stop timers, close the session and release providers."""
        self._debouncer.cancel()
        self._selection.cancel()
        for task in list(self._trigger_tasks):
            task.cancel()
        await self._scheduler.shutdown()
        self._cache.clear()
        if self._unsubscribe_config is not None:
            self._unsubscribe_config()
            self._unsubscribe_config = None
        await self._factory.aclose_all()
