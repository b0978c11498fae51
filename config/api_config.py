"""
API endpoint and authentication configuration for the OpenAI service.

This is the AUTHORITATIVE source for API configuration.
src/api_client/config.py imports from here - do not maintain parallel copies.

ENVIRONMENT VARIABLES REQUIRED:
    OPENAI_API_KEY      - chat completions (OpenAI)
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Endpoint and authentication
# ---------------------------------------------------------------------------

OPENAI_BASE_URL: str = "https://api.openai.com/v1"
CHAT_COMPLETIONS_PATH: str = "/chat/completions"

# Name of the environment variable holding the API key
API_KEY_ENV: str = "OPENAI_API_KEY"

# ---------------------------------------------------------------------------
# Model identifiers
# ---------------------------------------------------------------------------
#
# Fields:
#   book_info   - title/author correction (short, low temperature)
#   ideas       - idea extraction from book metadata
#   evaluation  - grading of open-ended answers
#   questions   - multiple-choice question generation

MODEL_IDS: dict[str, str] = {
    "book_info": "gpt-4.1-mini",
    "ideas": "gpt-4.1",
    "evaluation": "gpt-4.1-mini",
    "questions": "gpt-4.1",
}

# ---------------------------------------------------------------------------
# Connectivity probe target
# ---------------------------------------------------------------------------
# NetworkMonitor.refresh() opens a TCP connection here to decide whether the
# host currently has a usable route.

PROBE_HOST: str = "api.openai.com"
PROBE_PORT: int = 443
PROBE_TIMEOUT_SECONDS: float = 3.0
