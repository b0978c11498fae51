"""
API configuration, completion parameters, and retry constants.

All constants used across the api_client modules are re-exported here from
the root ``config`` package so that config is separated from logic and
there is a single place to change them.
"""

from config.api_config import (
    API_KEY_ENV,
    CHAT_COMPLETIONS_PATH,
    MODEL_IDS,
    OPENAI_BASE_URL,
    PROBE_HOST,
    PROBE_PORT,
    PROBE_TIMEOUT_SECONDS,
)
from config.model_params import (
    BASE_DELAY_SECONDS,
    BOOK_INFO_PARAMS,
    COMPLETION_MAX_ATTEMPTS,
    ERROR_MESSAGE_PREVIEW_CHARS,
    EVALUATION_PARAMS,
    EXTRACTION_MAX_ATTEMPTS,
    IDEAS_PARAMS,
    JITTER_RANGE,
    MAX_AUTHOR_CHARS,
    MAX_INPUT_CHARS,
    MAX_TITLE_CHARS,
    OFFLINE_WAIT_SECONDS,
    QUESTION_PARAMS,
    REQUEST_TIMEOUT_SECONDS,
)

__all__ = [
    "API_KEY_ENV",
    "BASE_DELAY_SECONDS",
    "BOOK_INFO_PARAMS",
    "CHAT_COMPLETIONS_PATH",
    "COMPLETION_MAX_ATTEMPTS",
    "ERROR_MESSAGE_PREVIEW_CHARS",
    "EVALUATION_PARAMS",
    "EXTRACTION_MAX_ATTEMPTS",
    "IDEAS_PARAMS",
    "JITTER_RANGE",
    "MAX_AUTHOR_CHARS",
    "MAX_INPUT_CHARS",
    "MAX_TITLE_CHARS",
    "MODEL_IDS",
    "OFFLINE_WAIT_SECONDS",
    "OPENAI_BASE_URL",
    "PROBE_HOST",
    "PROBE_PORT",
    "PROBE_TIMEOUT_SECONDS",
    "QUESTION_PARAMS",
    "REQUEST_TIMEOUT_SECONDS",
]
