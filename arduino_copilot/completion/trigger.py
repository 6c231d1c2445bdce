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

"""Trigger policy for automatic completions.

A pure function of (text, caret, settings): no clock, no I/O, safe to call on
every keystroke. Debouncing is the engine's job.
"""

from typing import Optional

from arduino_copilot.completion.context import current_line, word_before
from arduino_copilot.config import CompletionSettings

# Member access, call, template/include
TRIGGER_CHARACTERS = (".", "(", "<")
SCOPE_OPERATOR = "::"
INCLUDE_DIRECTIVE = "#include"

# Pin, serial and analog IO calls
HARDWARE_API_FRAGMENTS = (
    "pinMode",
    "digitalWrite",
    "digitalRead",
    "analogRead",
    "analogWrite",
    "Serial.",
)

DEFAULT_MIN_TRIGGER_CHARS = 2


def should_trigger(
    text: str,
    caret: int,
    settings: Optional[CompletionSettings] = None,
) -> bool:
    """Decide whether an automatic completion should be requested.

    Rules are evaluated in order and the first match wins.

    Args:
        text: Full document text
        caret: Caret offset (clamped into the text)
        settings: Provides min_trigger_chars; defaults apply when None

    Returns:
        True if a completion should be requested
    """
    text = text or ""
    caret = max(0, min(caret, len(text)))
    if caret == 0:
        return False

    prev_char = text[caret - 1]
    if prev_char in TRIGGER_CHARACTERS:
        return True
    if caret >= 2 and text[caret - 2 : caret] == SCOPE_OPERATOR:
        return True

    line = current_line(text, caret)
    if line.strip().startswith(INCLUDE_DIRECTIVE):
        return True
    if any(fragment in line for fragment in HARDWARE_API_FRAGMENTS):
        return True

    if prev_char.isalnum():
        min_chars = settings.min_trigger_chars if settings else DEFAULT_MIN_TRIGGER_CHARS
        return len(word_before(text, caret)) >= min_chars

    return False
