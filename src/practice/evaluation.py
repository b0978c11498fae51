"""
Open-ended answer evaluation: AI grading call, response parsing, and the
heuristic guards applied on top of the model's score.

The model's score is never trusted on its own for answers that are empty,
placeholder-like, or that talk about grading instead of the idea; those are
forced to zero before the correctness threshold is applied.
"""

from __future__ import annotations

import json
import re

from src.api_client.config import EVALUATION_PARAMS, MODEL_IDS
from src.api_client.parser import extract_json_object_string

# ---------------------------------------------------------------------------
# Scoring constants
# ---------------------------------------------------------------------------

POINT_VALUES: dict[str, int] = {
    "easy": 10,
    "medium": 15,
    "hard": 25,
}

CORRECTNESS_THRESHOLD: float = 0.70
WHY_MAX_CHARS: int = 140
MIN_ANSWER_WORDS: int = 6
MIN_ANSWER_CHARS: int = 20
META_PROXIMITY_WINDOW: int = 40

PLACEHOLDER_ANSWERS: frozenset[str] = frozenset({
    "answer", "n/a", "na", "idk", "i don't know", "dont know",
    "i do not know", "?", "???", "...", "test", "placeholder",
})

# Phrases that on their own mark an answer as talking about its own grade
META_STRONG_PHRASES: list[str] = [
    "correct answer", "this answer is correct", "this response is correct",
    "perfect score", "full marks", "i deserve full marks",
    "100/100", "10/10",
    "grade me", "grade this",
    "evaluate my answer", "evaluate this",
    "give me points", "award points",
    "as an ai", "as a language model",
    "rubric",
]

# Matched on word boundaries so "scorer" does not count as "score"
META_EVAL_TERMS: list[str] = ["score", "points", "grade", "grading", "evaluate", "evaluation"]
# Matched as plain substrings; some are fragments like "10/10"
META_INCENTIVE_TERMS: list[str] = [
    "give", "award", "deserve", "full", "perfect", "maximum", "100", "10/10", "marks",
]

META_FEEDBACK = (
    "Summary: Meta statement detected, not an answer. | What to fix: Explain "
    "the idea itself, with no talk about being correct or scoring. Use 2-3 "
    "sentences with a real example. | Next step: Name the key principle and "
    "pair it with one concrete case."
)
LOW_CONTENT_FEEDBACK = (
    "Summary: Too short to judge understanding. | What to fix: Write 2-3 "
    "sentences that show the idea with one concrete example. | Next step: "
    "Name the key principle and add a specific example."
)

EVALUATION_PROMPT_TEMPLATE = """\
You are grading a learner's open-ended answer about the idea "{idea_title}".

Question: {question_text}

Learner's answer: {user_answer}

Grade how well the answer demonstrates understanding of the idea itself.
Return ONLY a JSON object:
{{
  "score_percentage": <integer 0-100>,
  "feedback_280": "<feedback, at most 280 characters>",
  "exemplar": "<a strong model answer>",
  "why_140": "<why the exemplar is right, at most 140 characters>"
}}
"""


class EvaluationError(Exception):
    """The grading response could not be turned into an evaluation."""


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------

def is_low_content(text: str) -> bool:
    """
    Detect answers too thin to grade.

    An answer is low-content if it is blank, a known placeholder, has fewer
    than 6 words, or is shorter than 20 characters after trimming.
    """
    trimmed = text.strip()
    if not trimmed:
        return True

    lowered = trimmed.lower()
    if lowered in PLACEHOLDER_ANSWERS:
        return True

    words = re.findall(r"[^\W_]+", lowered)
    if len(words) < MIN_ANSWER_WORDS:
        return True

    return len(trimmed) < MIN_ANSWER_CHARS


def _term_positions(text: str, terms: list[str], word_bounded: bool) -> list[int]:
    positions: list[int] = []
    for term in terms:
        escaped = re.escape(term)
        pattern = rf"\b{escaped}\b" if word_bounded else escaped
        positions.extend(m.start() for m in re.finditer(pattern, text))
    return positions


def is_meta_gaming(text: str) -> bool:
    """
    Detect answers that argue for a grade rather than explain the idea.

    1. Any strong meta phrase (``"full marks"``, ``"as an ai"``...) matches.
    2. Otherwise an evaluation term (word-bounded) must occur within 40
       characters of an incentive term; requiring both families keeps
       ordinary uses like "goal scorer" from matching.
    """
    t = text.lower()

    if any(phrase in t for phrase in META_STRONG_PHRASES):
        return True

    eval_positions = _term_positions(t, META_EVAL_TERMS, word_bounded=True)
    if not eval_positions:
        return False
    incentive_positions = _term_positions(t, META_INCENTIVE_TERMS, word_bounded=False)

    return any(
        abs(left - right) <= META_PROXIMITY_WINDOW
        for left in eval_positions
        for right in incentive_positions
    )


def compact_why(text: str) -> str:
    """First sentence-ish chunk of ``text``, clamped to 140 characters."""
    t = text.strip()
    match = re.search(r"[.!?]", t)
    if match:
        t = t[:match.end()].strip()
    return t[:WHY_MAX_CHARS]


def fallback_feedback(user_answer: str) -> str:
    """Canned feedback for answers zeroed by the heuristics."""
    return META_FEEDBACK if is_meta_gaming(user_answer) else LOW_CONTENT_FEEDBACK


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_open_ended_evaluation(
    ai_response: str,
    difficulty: str,
    user_answer: str,
) -> dict:
    """
    Turn a grading model response into an evaluation record.

    Points are ``POINT_VALUES[difficulty] * score_percentage / 100``
    (truncated).  Low-content and meta-gaming answers are forced to zero and
    receive :func:`fallback_feedback`.  A missing or blank ``why_140`` is
    derived from the exemplar (or the feedback) via :func:`compact_why`.

    Args:
        ai_response: Raw message content from the grading call.
        difficulty: ``'easy'``, ``'medium'`` or ``'hard'``.
        user_answer: The learner's answer text.

    Returns:
        Dict with keys ``is_correct`` (bool), ``score_percentage`` (int),
        ``points_earned`` (int), ``feedback`` (str), ``exemplar``
        (str or None), ``why`` (str).

    Raises:
        ValueError: Unknown difficulty.
        EvaluationError: Response is not JSON or lacks required fields.
    """
    if difficulty not in POINT_VALUES:
        raise ValueError(
            f"Unknown difficulty '{difficulty}'; expected one of {sorted(POINT_VALUES)}"
        )

    try:
        parsed = json.loads(extract_json_object_string(ai_response))
    except json.JSONDecodeError as exc:
        raise EvaluationError(f"Grading response is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise EvaluationError("Grading response is not a JSON object")

    score = parsed.get("score_percentage")
    feedback = parsed.get("feedback_280")
    if isinstance(score, bool) or not isinstance(score, int) or not isinstance(feedback, str):
        raise EvaluationError("Missing required fields 'score_percentage' / 'feedback_280'")

    exemplar = parsed.get("exemplar")
    if not isinstance(exemplar, str):
        exemplar = None
    why = parsed.get("why_140")
    if not isinstance(why, str) or not why.strip():
        why = compact_why(exemplar or feedback)
    why = why[:WHY_MAX_CHARS]

    points = int(POINT_VALUES[difficulty] * score / 100)
    pct = score / 100

    if is_low_content(user_answer) or is_meta_gaming(user_answer):
        score, points, pct = 0, 0, 0.0

    return {
        "is_correct": pct >= CORRECTNESS_THRESHOLD,
        "score_percentage": score,
        "points_earned": points,
        "feedback": fallback_feedback(user_answer) if pct == 0.0 else feedback,
        "exemplar": exemplar,
        "why": why,
    }


async def evaluate_open_ended_answer(
    service,
    question_text: str,
    idea_title: str,
    user_answer: str,
    difficulty: str,
) -> dict:
    """
    Grade an open-ended answer with the model and apply the heuristic guards.

    Args:
        service: An :class:`~src.api_client.executor.OpenAIService` (or any
                 object with a compatible ``complete`` coroutine).
        question_text: The question shown to the learner.
        idea_title: Title of the idea being practised.
        user_answer: The learner's answer.
        difficulty: ``'easy'``, ``'medium'`` or ``'hard'``.

    Returns:
        Evaluation dict from :func:`parse_open_ended_evaluation`.
    """
    prompt = EVALUATION_PROMPT_TEMPLATE.format(
        idea_title=idea_title,
        question_text=question_text,
        user_answer=user_answer.strip(),
    )
    response = await service.complete(
        prompt=prompt,
        model=MODEL_IDS["evaluation"],
        **EVALUATION_PARAMS,
    )
    return parse_open_ended_evaluation(response, difficulty, user_answer)
