"""
src/api_client - OpenAI service layer with bounded retry and a network gate.

Module layout
-------------
config.py    - endpoint, model ids, retry budgets (re-exported from config/)
network.py   - NetworkStatusProviding protocol, StaticNetworkStatus, NetworkMonitor
retry.py     - service errors, failure categorization, backoff, execute_with_retry
parser.py    - response content extraction, JSON slicing, BookInfo parsing
executor.py  - request construction and the OpenAIService client

Public interface
----------------
Retry any coroutine function:
    await execute_with_retry(max_attempts, operation, delay)

Call the API:
    service = OpenAIService(api_key, network_monitor=StaticNetworkStatus(True))
    await service.extract_book_info("thinking fast and slow")
    await service.extract_ideas("Thinking, Fast and Slow", author="Daniel Kahneman")
    await service.complete(prompt, model, temperature, max_tokens)
"""

from .executor import OpenAIService
from .network import NetworkMonitor, NetworkStatusProviding, StaticNetworkStatus
from .parser import BookInfo
from .retry import (
    DecodingError,
    InvalidResponseError,
    NetworkError,
    NetworkUnavailableError,
    NoResponseError,
    OpenAIServiceError,
    execute_with_retry,
    exponential_backoff,
    make_backoff_delay,
)

__all__ = [
    # Retry
    "execute_with_retry",
    "exponential_backoff",
    "make_backoff_delay",
    # Network gate
    "NetworkStatusProviding",
    "StaticNetworkStatus",
    "NetworkMonitor",
    # Service
    "OpenAIService",
    "BookInfo",
    # Errors
    "OpenAIServiceError",
    "NoResponseError",
    "InvalidResponseError",
    "DecodingError",
    "NetworkError",
    "NetworkUnavailableError",
]
