# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the context analyzer."""

from arduino_copilot.completion.context import (
    ContextAnalyzer,
    indent_level,
    scan_structure,
    word_before,
)
from arduino_copilot.completion.protocol import CompletionContext


SKETCH = """void setup() {
  pinMode(13, OUTPUT);
}

void loop() {
  digitalWrite(13, HIG
"""


class TestAnalyze:
    """Tests for ContextAnalyzer.analyze."""

    def setup_method(self):
        self.analyzer = ContextAnalyzer()

    def test_current_word_and_line_split(self):
        caret = SKETCH.index("HIG") + 3
        context = self.analyzer.analyze(SKETCH, caret)

        assert context.current_word == "HIG"
        assert context.line_prefix == "  digitalWrite(13, HIG"
        assert context.line_suffix == ""
        assert context.indent_level == 1
        assert context.in_function_body is True
        assert context.in_comment is False

    def test_caret_in_middle_of_line(self):
        text = "Serial.println(x);"
        context = self.analyzer.analyze(text, 7)

        assert context.line_prefix == "Serial."
        assert context.line_suffix == "println(x);"
        assert context.current_word == ""
        assert context.in_serial_call is True

    def test_top_level_is_not_function_body(self):
        text = "void setup() {\n}\nint led"
        context = self.analyzer.analyze(text, len(text))

        assert context.in_function_body is False
        assert context.current_word == "led"

    def test_line_comment_detected(self):
        text = "void loop() {\n  // blink the "
        context = self.analyzer.analyze(text, len(text))

        assert context.in_comment is True

    def test_line_comment_ends_at_newline(self):
        text = "// header\nint x"
        context = self.analyzer.analyze(text, len(text))

        assert context.in_comment is False

    def test_block_comment_open_and_closed(self):
        open_text = "/* setup pins "
        closed_text = "/* setup pins */ pin"

        assert self.analyzer.analyze(open_text, len(open_text)).in_comment is True
        assert self.analyzer.analyze(closed_text, len(closed_text)).in_comment is False

    def test_braces_in_comments_are_ignored(self):
        text = "// {\n/* { { */\nint x"
        context = self.analyzer.analyze(text, len(text))

        assert context.in_function_body is False

    def test_caret_is_clamped(self):
        text = "int led"
        past_end = self.analyzer.analyze(text, 999)
        negative = self.analyzer.analyze(text, -5)

        assert past_end.current_word == "led"
        assert negative.line_prefix == ""
        assert negative.line_suffix == "int led"

    def test_empty_document(self):
        context = self.analyzer.analyze("", 0)

        assert context == CompletionContext()

    def test_none_text_yields_default_context(self):
        context = self.analyzer.analyze(None, 0)

        assert context.current_word == ""
        assert context.in_comment is False


class TestHelpers:
    """Tests for the scanning helpers."""

    def test_word_before_accepts_underscore_and_digits(self):
        assert word_before("int led_pin2", 12) == "led_pin2"

    def test_word_before_stops_at_punctuation(self):
        assert word_before("Serial.pri", 10) == "pri"

    def test_indent_level_counts_tabs_as_four_spaces(self):
        assert indent_level("\tfoo") == 2
        assert indent_level("    foo") == 2
        assert indent_level(" foo") == 0

    def test_scan_structure_counts_nesting(self):
        text = "void loop() {\n  if (x) {\n    "
        depth, in_comment = scan_structure(text, len(text))

        assert depth == 2
        assert in_comment is False

    def test_cache_key_uses_trimmed_prefix_and_word(self):
        context = CompletionContext(line_prefix="  digitalWrite(13, HIG ", current_word="HIG")

        assert context.cache_key() == "digitalWrite(13, HIG|HIG"
