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

"""Arduino-specific enhancement of provider completions."""

import re

from arduino_copilot.completion.protocol import CompletionContext, CompletionResponse

DEFAULT_BAUD_RATE = "9600"

_EMPTY_BEGIN = re.compile(r"begin\(\s*(?=\)|$)")


def annotate_pin_mode(completion: str) -> str:
    """Explain the pin direction unless the completion is already commented."""
    if "//" in completion:
        return completion
    # INPUT_PULLUP contains INPUT, so OUTPUT is checked first
    if "OUTPUT" in completion:
        return completion + " // Set pin as output"
    if "INPUT" in completion:
        return completion + " // Set pin as input"
    return completion


def fill_baud_rate(completion: str) -> str:
    """Suggest the common baud rate for an empty or unfinished Serial.begin( call."""
    return _EMPTY_BEGIN.sub(f"begin({DEFAULT_BAUD_RATE}", completion)


def enhance_completion(
    response: CompletionResponse, context: CompletionContext
) -> CompletionResponse:
    """Apply domain enhancements based on the caret context.

    The provider's response is left untouched; a new one is returned when
    the primary completion changes.
    """
    completion = response.completion
    if context.in_pin_mode:
        completion = annotate_pin_mode(completion)
    elif context.in_serial_call:
        completion = fill_baud_rate(completion)

    if completion == response.completion:
        return response
    return response.with_completion(completion)
