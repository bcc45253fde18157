"""
Chain Tutor - Response Parser
Extracts an embedded function call from a model completion.

The model signals a capability request with the marker
[FUNCTION_CALL:<name>] anywhere in its reply. Arguments travel as a JSON
object, either directly after the marker or in the first ```json fenced
block that follows it.
Only the first marker is honored; any later markers stay in the text.

Parsing never raises: malformed or missing arguments become {}.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

MARKER_PATTERN = re.compile(r'\[FUNCTION_CALL:([^\s\[\]]+)\]')
FENCED_JSON_PATTERN = re.compile(r'```(?:json)?\s*(\{.*?\})\s*```', re.DOTALL)

_decoder = json.JSONDecoder()


@dataclass
class Invocation:
    """A capability request found in model output."""
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParsedResponse:
    """
    Result of parsing one completion.

    Attributes:
        display_text: Text to show the learner (marker and arguments removed)
        invocation: The requested call, or None for a plain reply
    """
    display_text: str
    invocation: Optional[Invocation] = None

    def has_invocation(self) -> bool:
        return self.invocation is not None


def _decode_object(text: str) -> Optional[Dict[str, Any]]:
    """Decode text as a JSON object, or None."""
    try:
        value = json.loads(text)
    except (ValueError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def _inline_arguments(text: str, start: int) -> Tuple[Optional[Dict[str, Any]], int]:
    """
    Look for a JSON object beginning right after the marker.

    Returns:
        Tuple of (arguments or None, end offset of the consumed span)
    """
    offset = start
    while offset < len(text) and text[offset] in " \t\r\n":
        offset += 1
    if offset >= len(text) or text[offset] != "{":
        return None, start
    try:
        value, end = _decoder.raw_decode(text, offset)
    except ValueError:
        return None, start
    if not isinstance(value, dict):
        return None, start
    return value, end


def parse_response(text: Optional[str]) -> ParsedResponse:
    """
    Split a completion into display text and an optional invocation.

    Args:
        text: Raw completion text

    Returns:
        ParsedResponse; text without a marker is returned unchanged
    """
    if not text:
        return ParsedResponse(display_text=text or "")

    match = MARKER_PATTERN.search(text)
    if match is None:
        return ParsedResponse(display_text=text)

    name = match.group(1)
    arguments, consumed_to = _inline_arguments(text, match.end())
    tail = text[consumed_to if arguments is not None else match.end():]

    # Fenced arguments belong to the marker only when they follow it
    if arguments is None:
        fenced = FENCED_JSON_PATTERN.search(tail)
        if fenced:
            arguments = _decode_object(fenced.group(1))
            if arguments is not None:
                tail = tail[:fenced.start()] + tail[fenced.end():]

    return ParsedResponse(
        display_text=text[:match.start()] + tail,
        invocation=Invocation(name=name, arguments=arguments or {})
    )
