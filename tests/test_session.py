# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the suggestion selection state machine."""

from arduino_copilot.completion.protocol import CompletionResponse, TextBuffer
from arduino_copilot.completion.session import SelectionState, SelectionStateMachine


def make_response():
    return CompletionResponse(completion="H);", alternatives=["LOW);", "HIGH_Z);"])


class TestSelectionStateMachine:
    """Tests for session transitions."""

    def setup_method(self):
        self.machine = SelectionStateMachine()
        self.events = []
        self.machine.transitions.subscribe(lambda e: self.events.append(e.state))

    def test_starts_hidden(self):
        assert self.machine.state == SelectionState.HIDDEN
        assert self.machine.session is None

    def test_open_shows_first_candidate(self):
        session = self.machine.open(make_response(), 20)

        assert self.machine.state == SelectionState.SHOWN
        assert session.index == 0
        assert session.selected == "H);"
        assert session.candidates == ("H);", "LOW);", "HIGH_Z);")
        assert self.events == [SelectionState.SHOWN]

    def test_navigate_passes_through_navigating(self):
        self.machine.open(make_response(), 0)

        assert self.machine.navigate(1) is True
        assert self.machine.session.index == 1
        assert self.machine.state == SelectionState.SHOWN
        assert self.events == [
            SelectionState.SHOWN,
            SelectionState.NAVIGATING,
            SelectionState.SHOWN,
        ]

    def test_navigate_clamps_instead_of_wrapping(self):
        self.machine.open(make_response(), 0)

        assert self.machine.navigate(-1) is False
        assert self.machine.session.index == 0

        self.machine.navigate(10)
        assert self.machine.session.index == 2
        assert self.machine.navigate(1) is False

    def test_select_absolute_index(self):
        self.machine.open(make_response(), 0)
        self.machine.select(2)

        assert self.machine.session.selected == "HIGH_Z);"

    def test_accept_inserts_at_trigger_offset(self):
        editor = TextBuffer("digitalWrite(13, HIG", caret=20)
        self.machine.open(make_response(), 20)
        editor.caret = 3  # Caret moved after the request

        inserted = self.machine.accept(editor)

        assert inserted == "H);"
        assert editor.text == "digitalWrite(13, HIGH);"
        assert self.machine.state == SelectionState.HIDDEN
        assert self.events[-2:] == [SelectionState.ACCEPTED, SelectionState.HIDDEN]

    def test_accept_highlighted_alternative(self):
        editor = TextBuffer("digitalWrite(13, ", caret=17)
        self.machine.open(make_response(), 17)
        self.machine.navigate(1)

        self.machine.accept(editor)

        assert editor.text == "digitalWrite(13, LOW);"

    def test_cancel_leaves_document_untouched(self):
        editor = TextBuffer("x", caret=1)
        self.machine.open(make_response(), 1)

        assert self.machine.cancel() is True
        assert editor.text == "x"
        assert editor.edits == []
        assert self.events[-2:] == [SelectionState.CANCELLED, SelectionState.HIDDEN]

    def test_actions_without_session_are_noops(self):
        editor = TextBuffer("x", caret=1)

        assert self.machine.navigate(1) is False
        assert self.machine.accept(editor) is None
        assert self.machine.cancel() is False
        assert self.events == []

    def test_open_cancels_existing_session(self):
        first = self.machine.open(make_response(), 0)
        second = self.machine.open(make_response(), 5)

        assert first.state == SelectionState.CANCELLED
        assert self.machine.session is second
        assert self.events == [
            SelectionState.SHOWN,
            SelectionState.CANCELLED,
            SelectionState.HIDDEN,
            SelectionState.SHOWN,
        ]
