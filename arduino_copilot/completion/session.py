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

"""Lifecycle of an open suggestion list.

    HIDDEN -> SHOWN -> (NAVIGATING <-> SHOWN) -> ACCEPTED | CANCELLED -> HIDDEN

Only the engine opens sessions. The presentation layer drives navigate(),
accept() and cancel() and never keeps its own copy of the response. All
transitions run on the event loop thread that owns the document.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from arduino_copilot.completion.protocol import CompletionResponse, EditorBuffer
from arduino_copilot.events import EventChannel

logger = logging.getLogger(__name__)


class SelectionState(str, Enum):
    HIDDEN = "hidden"
    SHOWN = "shown"
    NAVIGATING = "navigating"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


_session_ids = itertools.count(1)


class SuggestionSession:
    """The live, navigable set of candidates for one response."""

    def __init__(self, response: CompletionResponse, trigger_offset: int):
        self.id = next(_session_ids)
        self._response = response
        self._trigger_offset = trigger_offset
        self._index = 0
        self.state = SelectionState.SHOWN

    @property
    def response(self) -> CompletionResponse:
        return self._response

    @property
    def trigger_offset(self) -> int:
        """Offset at which the completion was requested and will be spliced."""
        return self._trigger_offset

    @property
    def candidates(self) -> Tuple[str, ...]:
        return self._response.candidates

    @property
    def index(self) -> int:
        return self._index

    @property
    def selected(self) -> str:
        return self.candidates[self._index]

    @property
    def is_open(self) -> bool:
        return self.state in (SelectionState.SHOWN, SelectionState.NAVIGATING)

    def __repr__(self) -> str:
        return (
            f"SuggestionSession(id={self.id}, state={self.state.value}, "
            f"index={self._index}/{len(self.candidates)}, offset={self._trigger_offset})"
        )


@dataclass(frozen=True)
class SessionEvent:
    """Published on every state transition."""

    state: SelectionState
    session: SuggestionSession


class SelectionStateMachine:
    """Owns at most one SuggestionSession at a time."""

    def __init__(self) -> None:
        self._session: Optional[SuggestionSession] = None
        self.transitions: EventChannel[SessionEvent] = EventChannel("selection")

    @property
    def session(self) -> Optional[SuggestionSession]:
        return self._session

    @property
    def state(self) -> SelectionState:
        if self._session is None:
            return SelectionState.HIDDEN
        return self._session.state

    def open(self, response: CompletionResponse, trigger_offset: int) -> SuggestionSession:
        """Show a new session, cancelling any session already open."""
        if self._session is not None and self._session.is_open:
            self.cancel()

        session = SuggestionSession(response, trigger_offset)
        self._session = session
        logger.debug(f"Opened {session!r}")
        self._emit(SelectionState.SHOWN, session)
        return session

    def navigate(self, delta: int) -> bool:
        """Move the highlight by delta, clamped to the candidate range.

        Returns:
            True if the highlighted index changed
        """
        session = self._session
        if session is None or not session.is_open:
            return False

        target = max(0, min(session.index + delta, len(session.candidates) - 1))
        if target == session.index:
            return False

        self._transition(session, SelectionState.NAVIGATING)
        session._index = target
        self._transition(session, SelectionState.SHOWN)
        return True

    def select(self, index: int) -> bool:
        """Highlight an absolute index (clamped)."""
        session = self._session
        if session is None:
            return False
        return self.navigate(index - session.index)

    def accept(self, editor: EditorBuffer) -> Optional[str]:
        """Splice the highlighted candidate at the recorded trigger offset.

        The document is not re-validated: the text goes where the request was
        made even if the caret has moved since.

        Returns:
            The inserted text, or None if no session was open
        """
        session = self._session
        if session is None or not session.is_open:
            return None

        text = session.selected
        editor.insert(session.trigger_offset, text)
        logger.debug(f"Accepted candidate {session.index} of session {session.id}")
        self._finish(session, SelectionState.ACCEPTED)
        return text

    def cancel(self) -> bool:
        """Dismiss the open session without touching the document."""
        session = self._session
        if session is None or not session.is_open:
            return False
        self._finish(session, SelectionState.CANCELLED)
        return True

    def _finish(self, session: SuggestionSession, final: SelectionState) -> None:
        self._transition(session, final)
        self._session = None
        self._emit(SelectionState.HIDDEN, session)

    def _transition(self, session: SuggestionSession, state: SelectionState) -> None:
        session.state = state
        self._emit(state, session)

    def _emit(self, state: SelectionState, session: SuggestionSession) -> None:
        self.transitions.publish(SessionEvent(state=state, session=session))
