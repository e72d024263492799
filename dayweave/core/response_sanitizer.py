"""
Repair common JSON mistakes in language-model output.

The repair is heuristic and order-dependent. `sanitize` runs a fixed list of
steps; steps after key-quoting only rewrite text outside string literals, so
venue names such as "Kew's Garden, Richmond: 10:00" survive untouched.
The result is a candidate JSON document and may still fail to parse.
"""

import re
from typing import Callable

from dayweave.core.errors import MalformedResponse

_CODE_FENCE = re.compile(r"```[A-Za-z]*")

# String literals, double- then single-quoted
_DOUBLE_QUOTED = r'"(?:\\.|[^"\\])*"'
_SINGLE_QUOTED = r"'(?:\\.|[^'\\])*'"
_ANY_STRING = re.compile(f"{_DOUBLE_QUOTED}|{_SINGLE_QUOTED}", re.DOTALL)
_JSON_STRING = re.compile(_DOUBLE_QUOTED, re.DOTALL)

_ESCAPED_DOCUMENT = re.compile(r'^\{\s*\\"')
_ESCAPED_CHAR = re.compile(r'\\(["\\])')
_DOUBLED_QUOTES = re.compile(r'""([^",:{}\[\]\s][^"]*?)""')
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)(\s*:)")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_ESCAPE = re.compile(r"\\(.)", re.DOTALL)
_VALID_ESCAPES = set('"\\/bfnrtu')
_COMMA_RUN = re.compile(r",(?:\s*,)+")
_COMMA_AFTER_OPEN = re.compile(r"([{\[])\s*,")


def _outside_strings(
    text: str, transform: Callable[[str], str], strings: re.Pattern = _JSON_STRING
) -> str:
    """Apply `transform` to every stretch of `text` that is not a string literal."""
    parts: list[str] = []
    position = 0
    for match in strings.finditer(text):
        parts.append(transform(text[position : match.start()]))
        parts.append(match.group(0))
        position = match.end()
    parts.append(transform(text[position:]))
    return "".join(parts)


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text)


def extract_object(text: str) -> str:
    """Keep only the span from the first '{' to the last '}'."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise MalformedResponse(
            "No JSON object found in AI response", details=text[:200]
        )
    return text[start : end + 1]


def unescape_model_quoting(text: str) -> str:
    # A document that came back JSON-string-encoded: {\"events\": ...}
    if _ESCAPED_DOCUMENT.match(text):
        text = _ESCAPED_CHAR.sub(r"\1", text)
    return _DOUBLED_QUOTES.sub(r'"\1"', text)


def quote_bare_keys(text: str) -> str:
    def _quote(segment: str) -> str:
        return _BARE_KEY.sub(r'\1"\2"\3', segment)

    return _outside_strings(text, _quote, strings=_ANY_STRING)


def normalize_single_quotes(text: str) -> str:
    def _convert(match: re.Match) -> str:
        literal = match.group(0)
        if literal.startswith('"'):
            return literal
        body = literal[1:-1].replace("\\'", "'")
        body = re.sub(r'(?<!\\)"', r'\\"', body)
        return f'"{body}"'

    return _ANY_STRING.sub(_convert, text)


def remove_trailing_commas(text: str) -> str:
    return _outside_strings(text, lambda segment: _TRAILING_COMMA.sub(r"\1", segment))


def remove_invalid_escapes(text: str) -> str:
    def _clean_escape(match: re.Match) -> str:
        char = match.group(1)
        return match.group(0) if char in _VALID_ESCAPES else char

    def _clean_literal(match: re.Match) -> str:
        literal = match.group(0)
        return '"' + _ESCAPE.sub(_clean_escape, literal[1:-1]) + '"'

    return _JSON_STRING.sub(_clean_literal, text)


def collapse_commas(text: str) -> str:
    def _collapse(segment: str) -> str:
        segment = _COMMA_RUN.sub(",", segment)
        segment = _COMMA_AFTER_OPEN.sub(r"\1", segment)
        return _TRAILING_COMMA.sub(r"\1", segment)

    return _outside_strings(text, _collapse)


# Order matters: keys are quoted while single-quoted values are still
# recognisable, and comma cleanup runs last.
SANITIZE_STEPS: tuple[Callable[[str], str], ...] = (
    strip_code_fences,
    extract_object,
    unescape_model_quoting,
    quote_bare_keys,
    normalize_single_quotes,
    remove_trailing_commas,
    remove_invalid_escapes,
    collapse_commas,
)


def sanitize(text: str) -> str:
    """
    Turn raw model output into a candidate JSON document.

    Args:
        text: Raw response text, possibly fenced or wrapped in commentary

    Returns:
        The repaired text. Parse it before trusting it.

    Raises:
        MalformedResponse: if the text contains no '{' ... '}' span
    """
    if not text:
        raise MalformedResponse("Empty AI response")

    for step in SANITIZE_STEPS:
        text = step(text)
    return text
