"""
Completion parameters, retry budgets, and validation limits.

This is the AUTHORITATIVE source for all parameter and execution constants.
src/api_client/config.py imports from here - do not maintain parallel copies.

Design notes:
- Structured extraction calls get 3 attempts; free-form completion and chat
  calls get 5, since they back evaluation and tolerate a longer wait.
- Backoff is exponential with multiplicative jitter so that many clients
  recovering from the same outage do not retry in lockstep.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Completion parameters
# ---------------------------------------------------------------------------

BOOK_INFO_PARAMS: dict[str, int | float] = {
    "max_tokens": 200,
    "temperature": 0.1,
}

IDEAS_PARAMS: dict[str, int | float] = {
    "max_tokens": 1500,
    "temperature": 0.3,
}

EVALUATION_PARAMS: dict[str, int | float] = {
    "max_tokens": 600,
    "temperature": 0.2,
}

# Keyed by difficulty
QUESTION_PARAMS: dict[str, dict[str, int | float]] = {
    "easy": {"max_tokens": 350, "temperature": 0.6},
    "medium": {"max_tokens": 900, "temperature": 0.7},
    "hard": {"max_tokens": 500, "temperature": 0.75},
}

# ---------------------------------------------------------------------------
# Retry budgets and backoff
# ---------------------------------------------------------------------------

EXTRACTION_MAX_ATTEMPTS: int = 3   # extract_book_info / extract_ideas / generate_mcq
COMPLETION_MAX_ATTEMPTS: int = 5   # complete / chat

# Base delay doubles per failed attempt: 3 s, 6 s, 12 s, 24 s
BASE_DELAY_SECONDS: float = 3.0
# Multiplicative jitter range applied to every computed delay
JITTER_RANGE: tuple[float, float] = (0.5, 1.5)

# Grace period to wait for connectivity before failing fast when offline
OFFLINE_WAIT_SECONDS: float = 2.0

REQUEST_TIMEOUT_SECONDS: int = 90  # HTTP request timeout

# ---------------------------------------------------------------------------
# Validation limits
# ---------------------------------------------------------------------------

MAX_INPUT_CHARS: int = 1000
MAX_TITLE_CHARS: int = 200
MAX_AUTHOR_CHARS: int = 100
# Longest message excerpt printed for a failed attempt
ERROR_MESSAGE_PREVIEW_CHARS: int = 120
