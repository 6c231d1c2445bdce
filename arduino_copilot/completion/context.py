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

"""Lightweight context extraction around the caret.

The analyzer runs on every trigger, so it does a single forward scan of the
buffer up to the caret instead of parsing. Brace depth and comment state are
heuristics: nested block comments, and string or char literals containing
braces or comment markers, can give wrong in_function_body / in_comment
values.
"""

import logging

from arduino_copilot.completion.protocol import CompletionContext, DocumentSnapshot

logger = logging.getLogger(__name__)

TAB_WIDTH = 4
INDENT_WIDTH = 2


def is_identifier_char(ch: str) -> bool:
    """Characters that can appear inside a C/C++ identifier."""
    return ch.isalnum() or ch in "_$"


def line_bounds(text: str, caret: int) -> tuple:
    """Return (start, end) offsets of the line containing the caret."""
    start = text.rfind("\n", 0, caret) + 1
    end = text.find("\n", caret)
    if end == -1:
        end = len(text)
    return start, end


def current_line(text: str, caret: int) -> str:
    start, end = line_bounds(text, caret)
    return text[start:end]


def word_before(text: str, caret: int) -> str:
    """Identifier fragment immediately left of the caret."""
    start = caret
    while start > 0 and is_identifier_char(text[start - 1]):
        start -= 1
    return text[start:caret]


def indent_level(line_prefix: str) -> int:
    """Leading whitespace in indentation units (tabs count as four spaces)."""
    columns = 0
    for ch in line_prefix:
        if ch == " ":
            columns += 1
        elif ch == "\t":
            columns += TAB_WIDTH
        else:
            break
    return columns // INDENT_WIDTH


def scan_structure(text: str, caret: int) -> tuple:
    """Forward scan to the caret tracking brace depth and comments.

    Braces inside comments are ignored.

    Returns:
        (brace_depth, in_comment)
    """
    depth = 0
    in_line_comment = False
    in_block_comment = False
    i = 0
    while i < caret:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < caret else ""
        if in_line_comment:
            if ch == "\n":
                in_line_comment = False
        elif in_block_comment:
            if ch == "*" and nxt == "/":
                in_block_comment = False
                i += 1
        elif ch == "/" and nxt == "/":
            in_line_comment = True
            i += 1
        elif ch == "/" and nxt == "*":
            in_block_comment = True
            i += 1
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        i += 1
    return depth, in_line_comment or in_block_comment


class ContextAnalyzer:
    """Builds a CompletionContext from raw text and a caret offset."""

    def analyze(self, text: str, caret: int) -> CompletionContext:
        """Analyze the code around the caret.

        Out-of-range carets are clamped. Never raises for string input; an
        unexpected failure yields a default context.
        """
        snapshot = DocumentSnapshot.capture(text, caret)
        try:
            return self.analyze_snapshot(snapshot)
        except Exception as e:
            logger.error(f"Context analysis failed at offset {snapshot.caret}: {e}")
            return CompletionContext()

    def analyze_snapshot(self, snapshot: DocumentSnapshot) -> CompletionContext:
        text, caret = snapshot.text, snapshot.caret
        start, end = line_bounds(text, caret)
        line_prefix = text[start:caret]
        line_suffix = text[caret:end]
        depth, in_comment = scan_structure(text, caret)

        return CompletionContext(
            line_prefix=line_prefix,
            line_suffix=line_suffix,
            current_word=word_before(text, caret),
            indent_level=indent_level(line_prefix),
            in_function_body=depth > 0,
            in_comment=in_comment,
        )
