"""Lexical repair helpers for malformed model output.

Each helper is a pure text-to-text function. The parser chains them into
tiers; none of them decides whether the result is acceptable.

Bracket matching and key/comma rewriting are string-aware: anything inside a
double- or single-quoted literal is left alone. A single quote only opens a
literal where a JSON value or key can start (after ``[ { , :``), and only
closes one when the next non-space character is ``, : } ]`` or the end of
the text, so apostrophes in French prose (``l'enduit``) do not derail the
scan.
"""

from collections.abc import Iterator
import re
from typing import NamedTuple

_FENCE_OPEN = re.compile(r"^\s*```[A-Za-z0-9_+.-]*[ \t]*(?:\r?\n)?")
_FENCE_CLOSE = re.compile(r"(?:\r?\n)?[ \t]*```\s*$")

_LEXICAL_TRANSLATION = str.maketrans(
    {
        "“": '"',
        "”": '"',
        "„": '"',
        "‟": '"',
        "‘": "'",
        "’": "'",
        "‚": "'",
        "‛": "'",
        "\r": " ",
        "\n": " ",
        "\t": " ",
    }
)

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
_PYTHON_LITERALS = re.compile(r"\b(None|True|False)\b")
_PYTHON_TO_JSON = {"None": "null", "True": "true", "False": "false"}

_SINGLE_QUOTE_OPENERS = "[{,:"
_SINGLE_QUOTE_CLOSERS = ",:}]"
_OPENERS = "[{"
_CLOSERS = "]}"


class Segment(NamedTuple):
    """A run of text that is either a quoted literal or code between literals."""

    text: str
    literal: bool


# --- Scanning ---


def _prev_code_char(text: str, index: int) -> str:
    j = index - 1
    while j >= 0 and text[j].isspace():
        j -= 1
    return text[j] if j >= 0 else ""


def _next_code_char(text: str, index: int) -> str:
    j = index
    while j < len(text) and text[j].isspace():
        j += 1
    return text[j] if j < len(text) else ""


def _opens_literal(text: str, index: int) -> bool:
    ch = text[index]
    if ch == '"':
        return True
    if ch == "'":
        prev = _prev_code_char(text, index)
        return prev == "" or prev in _SINGLE_QUOTE_OPENERS
    return False


def _literal_end(text: str, start: int) -> int:
    """Index just past the literal opened at `start` (end of text if unterminated)."""
    quote = text[start]
    j = start + 1
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            if quote == '"':
                return j + 1
            nxt = _next_code_char(text, j + 1)
            if nxt == "" or nxt in _SINGLE_QUOTE_CLOSERS:
                return j + 1
        j += 1
    return len(text)


def iter_segments(text: str) -> Iterator[Segment]:
    """Split text into alternating code and quoted-literal segments."""
    start = 0
    i = 0
    while i < len(text):
        if _opens_literal(text, i):
            end = _literal_end(text, i)
            if start < i:
                yield Segment(text[start:i], literal=False)
            yield Segment(text[i:end], literal=True)
            start = i = end
        else:
            i += 1
    if start < len(text):
        yield Segment(text[start:], literal=False)


def iter_code_chars(text: str, start: int = 0) -> Iterator[tuple[int, str]]:
    """Yield ``(index, char)`` for characters outside quoted literals."""
    i = start
    while i < len(text):
        if _opens_literal(text, i):
            i = _literal_end(text, i)
            continue
        yield i, text[i]
        i += 1


def _map_code(text: str, transform) -> str:
    return "".join(
        seg.text if seg.literal else transform(seg.text) for seg in iter_segments(text)
    )


def find_matching_bracket(text: str, start: int) -> int | None:
    """Index of the bracket closing the one at `start`, or None if truncated."""
    depth = 0
    for index, ch in iter_code_chars(text, start):
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                return index
    return None


# --- Tier 1: fence stripping ---


def strip_fences(text: str) -> str:
    """Remove a leading and a trailing code fence, each optional."""
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


# --- Tier 2: bound extraction ---


def _first_array_start(text: str) -> int:
    """First ``[`` that opens an array of objects, else the first ``[`` at all."""
    first = text.find("[")
    index = first
    while index >= 0:
        if _next_code_char(text, index + 1) in ("{", "]"):
            return index
        index = text.find("[", index + 1)
    return first


def extract_array_bounds(text: str) -> str:
    """Slice out the first array of objects.

    A truncated array is cut after its last complete element and closed
    with a synthesized ``]``; the trailing partial element is discarded.
    """
    start = _first_array_start(text)
    if start < 0:
        return text
    end = find_matching_bracket(text, start)
    if end is not None:
        return text[start : end + 1]

    last_element_end = None
    depth = 0
    for index, ch in iter_code_chars(text, start):
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if ch == "}" and depth == 1:
                last_element_end = index
    if last_element_end is None:
        return text[start:]
    return text[start : last_element_end + 1] + "]"


def extract_object_bounds(text: str) -> str:
    """Slice out the first top-level balanced ``{...}``.

    A truncated object is returned from its opening brace to the end of the
    text, for the truncation tier to close.
    """
    start = text.find("{")
    if start < 0:
        return text
    end = find_matching_bracket(text, start)
    if end is None:
        return text[start:]
    return text[start : end + 1]


# --- Tier 3: lexical normalization ---


def normalize_quotes(text: str) -> str:
    """Straighten smart quotes and collapse newlines and tabs to spaces."""
    return text.translate(_LEXICAL_TRANSLATION)


def remove_trailing_commas(text: str) -> str:
    """Drop commas directly before a closing bracket, outside literals."""
    return _map_code(text, lambda code: _TRAILING_COMMA.sub(r"\1", code))


def quote_bare_keys(text: str) -> str:
    """Double-quote object keys written as bare identifiers."""
    return _map_code(text, lambda code: _BARE_KEY.sub(r'\1"\2"\3', code))


def normalize_lexical(text: str) -> str:
    """Apply all lexical normalizations in order."""
    text = normalize_quotes(text)
    text = remove_trailing_commas(text)
    return quote_bare_keys(text)


# --- Tier 5: quote-style repair ---


def _single_to_double(literal: str) -> str:
    terminated = len(literal) >= 2 and literal.endswith("'")  # noqa: PLR2004
    body = literal[1:-1] if terminated else literal[1:]
    body = body.replace("\\'", "'").replace('\\"', '"').replace('"', '\\"')
    return f'"{body}"' if terminated else f'"{body}'


def convert_single_quotes(text: str) -> str:
    """Rewrite single-quoted literals as double-quoted JSON strings.

    Python-style ``None``/``True``/``False`` outside literals become their
    JSON spelling, since single-quoted output is usually a Python repr.
    """
    parts = []
    for seg in iter_segments(text):
        if seg.literal and seg.text.startswith("'"):
            parts.append(_single_to_double(seg.text))
        elif seg.literal:
            parts.append(seg.text)
        else:
            parts.append(
                _PYTHON_LITERALS.sub(lambda m: _PYTHON_TO_JSON[m.group(1)], seg.text)
            )
    return "".join(parts)


# --- Tier 6: truncation repair ---


def close_truncated(text: str, *, limit: int | None = None, array: bool) -> str | None:
    """Cut after the last complete container before `limit` and close the rest.

    For arrays only a complete top-level element (``}`` at depth 1) counts,
    so a partial element is never kept. For objects any closed nested
    container is a valid cut point.

    Returns:
        The repaired text, or None when no complete container precedes `limit`.
    """
    stack: list[str] = []
    cut: tuple[int, tuple[str, ...]] | None = None
    for index, ch in iter_code_chars(text):
        if limit is not None and index >= limit:
            break
        if ch in _OPENERS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if not stack:
                break
            stack.pop()
            if not stack:
                cut = (index, ())
                break
            if not array or (ch == "}" and len(stack) == 1):
                cut = (index, tuple(stack))

    if cut is None:
        return None
    index, still_open = cut
    closers = "".join("]" if ch == "[" else "}" for ch in reversed(still_open))
    return text[: index + 1] + closers


# --- Tier 7: keyed-subtree extraction ---


def find_keyed_array(text: str, keys: tuple[str, ...]) -> str | None:
    """Text from the ``[`` of the first ``"<key>": [`` onward, if any."""
    if not keys:
        return None
    names = "|".join(re.escape(key) for key in keys)
    match = re.search(rf"[\"']?\b(?:{names})\b[\"']?\s*:\s*\[", text)
    if match is None:
        return None
    return text[match.end() - 1 :]
