"""
Multiple-choice question generation for a single idea.

One model call produces a question stem, four options and the index of the
correct one.  The response is parsed, its options stripped of label
prefixes and checked, and only then shuffled.  Every check runs inside the
retried operation, so an unusable question costs an attempt and the model
is asked again.
"""

from __future__ import annotations

import json
import random
import re

from src.api_client.config import EXTRACTION_MAX_ATTEMPTS, MODEL_IDS, QUESTION_PARAMS
from src.api_client.executor import build_request_payload
from src.api_client.parser import extract_json_object_string
from src.api_client.retry import DecodingError, InvalidResponseError

from .evaluation import POINT_VALUES
from .options import first_invalid_reason, randomize_options, sanitize_options

OPTION_COUNT: int = 4

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

DIFFICULTY_GUIDANCE: dict[str, str] = {
    "easy": (
        "Emphasize clarity, concrete wording, and a straightforward stem. "
        "Options must be concise, plausible, and parallel; avoid trickiness."
    ),
    "medium": (
        "Aim for moderate depth (why, when, contrast) with a realistic scenario. "
        "Distractors should reflect common misconceptions."
    ),
    "hard": (
        "Target critique and subtle distinctions; focus on conceptual precision. "
        "Options must be carefully balanced and not misleading."
    ),
}

MCQ_SYSTEM_PROMPT_TEMPLATE = """\
You are an expert educational content creator.
Create one high-quality {label} multiple-choice question for a non-fiction book idea.
{guidance}
Language: precise, no explanations.
Output only a valid JSON object (no prose before or after).
"""

MCQ_USER_PROMPT_TEMPLATE = """\
Idea title: {idea_title}

Return exactly this JSON structure:
{{
  "question": "string",
  "options": ["...", "...", "...", "..."],
  "correct": [0]
}}
Rules:
- Exactly 4 options and a single correct index (0-3).
- Do not prefix options with letters or numbers.
- Avoid phrases like "all of the above".
- Keep options similar in length so verbosity does not reveal the answer.
"""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _option_key(option: str) -> str:
    return re.sub(r"[^a-z0-9 ]", "", option.lower()).strip()


def parse_mcq(content: str) -> dict:
    """
    Parse and check a generated multiple-choice question.

    Options are sanitized before checking.  The question is rejected when
    it does not have exactly four options, when any option is blank or a
    bare label, when two options are the same after normalization, or when
    there is not exactly one in-range correct index.

    Args:
        content: Raw message content from the generation call.

    Returns:
        Dict with keys ``question`` (str), ``options`` (list of 4 str) and
        ``correct_indices`` (list of int), in the model's original order.

    Raises:
        DecodingError: Content is not a JSON object with the expected fields.
        InvalidResponseError: The question is structurally unusable.
    """
    try:
        parsed = json.loads(extract_json_object_string(content))
    except json.JSONDecodeError as exc:
        raise DecodingError(f"Question response is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise DecodingError("Question response is not a JSON object")

    question = parsed.get("question")
    options = parsed.get("options")
    correct = parsed.get("correct")
    if (
        not isinstance(question, str)
        or not isinstance(options, list)
        or not all(isinstance(o, str) for o in options)
        or not isinstance(correct, list)
        or not all(isinstance(i, int) and not isinstance(i, bool) for i in correct)
    ):
        raise DecodingError("Missing or mistyped 'question' / 'options' / 'correct'")

    question = question.strip()
    if not question:
        raise InvalidResponseError("Question stem is empty")

    if len(options) != OPTION_COUNT:
        raise InvalidResponseError(f"Expected {OPTION_COUNT} options, got {len(options)}")

    options = sanitize_options(options)
    reason = first_invalid_reason(options)
    if reason is not None:
        raise InvalidResponseError(f"Invalid options: {reason}")

    if len({_option_key(o) for o in options}) != OPTION_COUNT:
        raise InvalidResponseError("Duplicate options")

    if len(correct) != 1 or not 0 <= correct[0] < OPTION_COUNT:
        raise InvalidResponseError(f"Expected one correct index in 0-3, got {correct}")

    return {"question": question, "options": options, "correct_indices": correct}


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

async def generate_mcq(
    service,
    idea_title: str,
    difficulty: str,
    rng: random.Random | None = None,
) -> dict:
    """
    Generate one shuffled multiple-choice question about an idea.

    Args:
        service: An :class:`~src.api_client.executor.OpenAIService`.
        idea_title: Title of the idea being practised.
        difficulty: ``'easy'``, ``'medium'`` or ``'hard'``.
        rng: Optional random number generator for the option shuffle.

    Returns:
        Dict with keys ``question``, ``options`` (shuffled),
        ``correct_indices`` (sorted list into the shuffled options),
        ``difficulty`` and ``points``.

    Raises:
        ValueError: Unknown difficulty.
        DecodingError, InvalidResponseError: The last attempt's parse failure
            once the retry budget is spent.
    """
    if difficulty not in QUESTION_PARAMS:
        raise ValueError(
            f"Unknown difficulty '{difficulty}'; expected one of {sorted(QUESTION_PARAMS)}"
        )

    payload = build_request_payload(
        MODEL_IDS["questions"],
        MCQ_USER_PROMPT_TEMPLATE.format(idea_title=idea_title.strip()),
        system_prompt=MCQ_SYSTEM_PROMPT_TEMPLATE.format(
            label=difficulty.upper(),
            guidance=DIFFICULTY_GUIDANCE[difficulty],
        ),
        **QUESTION_PARAMS[difficulty],
    )

    async def attempt() -> dict:
        return parse_mcq(await service.perform_chat(payload))

    mcq = await service.with_retry(EXTRACTION_MAX_ATTEMPTS, attempt)

    options, correct = randomize_options(mcq["options"], mcq["correct_indices"], rng=rng)
    return {
        "question": mcq["question"],
        "options": options,
        "correct_indices": sorted(correct),
        "difficulty": difficulty,
        "points": POINT_VALUES[difficulty],
    }
