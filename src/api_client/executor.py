"""
Request construction and API call execution for the OpenAI service.

Design notes:
- Every public call is wrapped in :func:`retry.execute_with_retry`; the
  ``perform_*`` coroutines below are single, stateless attempts.
- ``requests`` is blocking, so each POST runs in a worker thread via
  ``asyncio.to_thread``; the event loop stays free while a call is in
  flight and cancellation of the awaiting task stops further retries.
- The sleep handler and network monitor are constructor arguments so tests
  can substitute a no-op sleep and a static connectivity answer.
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Awaitable, Callable, TypeVar

import requests

from .config import (
    API_KEY_ENV,
    BOOK_INFO_PARAMS,
    CHAT_COMPLETIONS_PATH,
    COMPLETION_MAX_ATTEMPTS,
    EXTRACTION_MAX_ATTEMPTS,
    IDEAS_PARAMS,
    MAX_INPUT_CHARS,
    MODEL_IDS,
    OPENAI_BASE_URL,
    REQUEST_TIMEOUT_SECONDS,
)
from .network import NetworkMonitor, NetworkStatusProviding
from .parser import BookInfo, extract_response_content, parse_book_info, parse_string_array
from .retry import (
    DecodingError,
    InvalidResponseError,
    NetworkError,
    SleepHandler,
    execute_with_retry,
    make_backoff_delay,
)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

BOOK_INFO_SYSTEM_PROMPT = """\
You are an expert at identifying and correcting book titles and authors from user input.

Extract the book title and determine the correct author(s) from the user's input.
- Correct obvious formatting issues (capitalization, punctuation, spelling).
- Expand partial or abbreviated titles to the official published title.
- Do not substitute a different book, even a similar one.
- If no author is given, identify the author from the title when you know the book.
- Complete partial author names and format multiple authors as "A and B".
- Return null for author only if you are genuinely unsure.

Return ONLY a valid JSON object with this exact structure:
{"title": "Corrected Book Title", "author": "Author Name" or null}
"""

IDEAS_SYSTEM_PROMPT = """\
You are an expert at distilling the core, teachable ideas of a non-fiction book.

List the most important distinct ideas, frameworks, or mental models the book
teaches. Each entry is a short title followed by a colon and a one-sentence
description. Order them as they are introduced in the book.

Return ONLY a JSON array of strings.
"""


def sanitize_input(text: str, max_chars: int = MAX_INPUT_CHARS) -> str:
    """
    Prepare free-form user text for inclusion in a prompt.

    Trims whitespace, swaps double quotes for single quotes (the text is
    embedded inside a quoted prompt), and truncates to ``max_chars``.
    """
    return text.strip().replace('"', "'")[:max_chars]


def build_request_headers(api_key: str) -> dict:
    """Bearer-auth JSON headers for a chat-completion request."""
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def build_request_payload(
    model: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
    system_prompt: str | None = None,
    top_p: float | None = None,
) -> dict:
    """
    Construct the JSON request body for a chat-completion call.

    ``top_p`` is omitted entirely when ``None`` so the API default applies.

    Returns:
        Dict suitable for the ``json=`` argument of ``Session.post()``.
    """
    messages = []
    if system_prompt is not None:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})

    payload: dict = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    if top_p is not None:
        payload["top_p"] = top_p
    return payload


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class OpenAIService:
    """
    Retried chat-completion client.

    Args:
        api_key: OpenAI API key; falls back to the ``OPENAI_API_KEY``
                 environment variable.
        session: ``requests.Session`` to reuse connections; a new one is
                 created when omitted.
        network_monitor: Connectivity gate consulted before each attempt.
        sleep_handler: Coroutine used for backoff and offline waits.
        base_url: API base URL.

    Raises:
        ValueError: If no API key is supplied or found in the environment.
    """

    def __init__(
        self,
        api_key: str | None = None,
        session: requests.Session | None = None,
        network_monitor: NetworkStatusProviding | None = None,
        sleep_handler: SleepHandler = asyncio.sleep,
        base_url: str = OPENAI_BASE_URL,
    ) -> None:
        api_key = api_key or os.getenv(API_KEY_ENV)
        if not api_key:
            raise ValueError(
                f"API key not found. Pass api_key or set the '{API_KEY_ENV}' "
                "environment variable."
            )

        self.api_key = api_key
        self.session = session or requests.Session()
        self.network_monitor = network_monitor or NetworkMonitor()
        self.sleep_handler = sleep_handler
        self.base_url = base_url.rstrip("/")

    # -- retry ---------------------------------------------------------------

    async def with_retry(self, max_attempts: int, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` under the service's backoff and network gate."""
        return await execute_with_retry(
            max_attempts,
            operation,
            make_backoff_delay(self.sleep_handler),
            network_monitor=self.network_monitor,
            sleep_handler=self.sleep_handler,
        )

    # -- single attempts -----------------------------------------------------

    def _post(self, payload: dict) -> requests.Response:
        try:
            return self.session.post(
                f"{self.base_url}{CHAT_COMPLETIONS_PATH}",
                headers=build_request_headers(self.api_key),
                json=payload,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.Timeout:
            # Not wrapped, so the failure is still categorized as a timeout.
            raise
        except requests.RequestException as exc:
            raise NetworkError(str(exc)) from exc

    async def perform_chat(self, payload: dict) -> str:
        """
        Execute one chat-completion request and return the message content.

        Raises:
            requests.Timeout: On request timeout.
            NetworkError: On any other transport failure.
            InvalidResponseError: On a non-200 status.
            DecodingError: If the body is not JSON.
            NoResponseError: If the body carries no message content.
        """
        start = time.monotonic()
        response = await asyncio.to_thread(self._post, payload)
        latency = time.monotonic() - start

        if response.status_code != 200:
            raise InvalidResponseError(
                f"HTTP {response.status_code} from chat completions",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise DecodingError(f"Response body is not JSON: {exc}") from exc

        content = extract_response_content(body)
        print(f"  API call OK ({payload['model']}, {latency:.2f}s)")
        return content

    # -- public calls --------------------------------------------------------

    async def complete(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        top_p: float | None = None,
    ) -> str:
        """Single user-message completion, retried up to 5 attempts."""
        payload = build_request_payload(model, prompt, max_tokens, temperature, top_p=top_p)
        return await self.with_retry(COMPLETION_MAX_ATTEMPTS, lambda: self.perform_chat(payload))

    async def chat(
        self,
        system_prompt: str | None,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        top_p: float | None = None,
    ) -> str:
        """System + user completion, retried up to 5 attempts."""
        payload = build_request_payload(
            model, user_prompt, max_tokens, temperature,
            system_prompt=system_prompt, top_p=top_p,
        )
        return await self.with_retry(COMPLETION_MAX_ATTEMPTS, lambda: self.perform_chat(payload))

    async def extract_book_info(self, user_input: str) -> BookInfo:
        """
        Correct a free-form book title and identify its author.

        Parsing happens inside the retried operation, so a malformed or
        implausible model answer consumes an attempt like a network error.

        Args:
            user_input: Raw text typed by the user, e.g.
                        ``"thinking fast and slow by kahneman"``.

        Returns:
            :class:`BookInfo` with corrected title and optional author.
        """
        sanitized = sanitize_input(user_input)
        payload = build_request_payload(
            MODEL_IDS["book_info"],
            f'Extract and correct book title and determine author from: "{sanitized}"',
            system_prompt=BOOK_INFO_SYSTEM_PROMPT,
            **BOOK_INFO_PARAMS,
        )

        async def attempt() -> BookInfo:
            return parse_book_info(await self.perform_chat(payload))

        return await self.with_retry(EXTRACTION_MAX_ATTEMPTS, attempt)

    async def extract_ideas(self, text: str, author: str | None = None) -> list[str]:
        """
        List the core ideas of a book.

        Args:
            text: Book title (optionally with subtitle or description).
            author: Author name, added to the prompt when known.

        Returns:
            Idea strings in the order the model lists them.
        """
        author_context = f" by {author}" if author else ""
        payload = build_request_payload(
            MODEL_IDS["ideas"],
            f'Extract the core ideas from the book "{sanitize_input(text)}"{author_context}.',
            system_prompt=IDEAS_SYSTEM_PROMPT,
            **IDEAS_PARAMS,
        )

        async def attempt() -> list[str]:
            return parse_string_array(await self.perform_chat(payload))

        return await self.with_retry(EXTRACTION_MAX_ATTEMPTS, attempt)
