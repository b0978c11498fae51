"""
Response parsing and validation for chat-completion payloads.

No I/O occurs here; all functions are pure transformations of strings/dicts
to support easy unit testing.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from .config import MAX_AUTHOR_CHARS, MAX_TITLE_CHARS
from .retry import DecodingError, InvalidResponseError, NoResponseError


@dataclass(frozen=True)
class BookInfo:
    """Corrected book title and (optional) author."""

    title: str
    author: str | None = None


def extract_response_content(response_json: dict) -> str:
    """
    Extract ``choices[0].message.content`` from a chat-completion response.

    Args:
        response_json: Raw JSON-decoded response from the API.

    Returns:
        Message content string.

    Raises:
        NoResponseError: ``choices`` is missing or empty, or content is null.
    """
    choices = response_json.get("choices") or []
    if not choices:
        raise NoResponseError("Response contained no choices")

    content = (choices[0].get("message") or {}).get("content")
    if content is None:
        raise NoResponseError("First choice carried no message content")
    return content


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
        text = text.strip()
    return text


def _outermost_slice(text: str, opener: str, closer: str) -> str:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end == -1 or end < start:
        return text
    return text[start:end + 1]


def extract_json_object_string(text: str) -> str:
    """
    Return the outermost ``{...}`` slice of a model response.

    Markdown code fences are stripped first; models frequently wrap JSON in
    fences or surround it with prose.  If no braces are found the stripped
    text is returned unchanged so that the decoder reports the real problem.
    """
    return _outermost_slice(_strip_code_fences(text), "{", "}")


def extract_json_array_string(text: str) -> str:
    """
    Return the outermost ``[...]`` slice of a model response.

    Text with a ``{`` before its first ``[`` is returned unsliced, so an
    object wrapping an array fails to parse as an array.
    """
    text = _strip_code_fences(text)
    brace, bracket = text.find("{"), text.find("[")
    if brace != -1 and (bracket == -1 or brace < bracket):
        return text
    return _outermost_slice(text, "[", "]")


def _loads(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodingError(f"Could not decode JSON from model output: {exc}") from exc


def validate_book_info(info: BookInfo) -> bool:
    """
    Check a parsed :class:`BookInfo` against basic sanity limits.

    Title must be non-blank and at most ``MAX_TITLE_CHARS`` characters; an
    author, when present, must be non-blank and at most
    ``MAX_AUTHOR_CHARS`` characters.
    """
    if not info.title.strip() or len(info.title) > MAX_TITLE_CHARS:
        return False

    if info.author is not None:
        if not info.author.strip() or len(info.author) > MAX_AUTHOR_CHARS:
            return False

    return True


def parse_book_info(content: str) -> BookInfo:
    """
    Parse a ``{"title": ..., "author": ...}`` model response.

    Args:
        content: Message content returned by the model.

    Returns:
        Validated :class:`BookInfo`.

    Raises:
        DecodingError: Content holds no decodable JSON object, or the
                       object lacks a string ``title``.
        InvalidResponseError: Parsed values fail :func:`validate_book_info`.
    """
    parsed = _loads(extract_json_object_string(content))
    if not isinstance(parsed, dict) or not isinstance(parsed.get("title"), str):
        raise DecodingError("Book info response is missing a string 'title'")

    author = parsed.get("author")
    if author is not None and not isinstance(author, str):
        raise DecodingError("Book info 'author' must be a string or null")

    info = BookInfo(title=parsed["title"].strip(), author=author.strip() if author else author)
    if not validate_book_info(info):
        raise InvalidResponseError(f"Book info failed validation: {info!r}")
    return info


def parse_string_array(content: str) -> list[str]:
    """
    Parse a JSON array of strings from a model response.

    Blank entries are dropped and surrounding whitespace trimmed.

    Raises:
        DecodingError: Content is not a JSON array of strings.
    """
    parsed = _loads(extract_json_array_string(content))
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise DecodingError("Expected a JSON array of strings")
    return [item.strip() for item in parsed if item.strip()]
