"""
Multiple-choice option handling: shuffling with correct-answer remapping,
and cleanup of label prefixes that models tend to prepend to options.
"""

from __future__ import annotations

import random
import re


# ---------------------------------------------------------------------------
# Randomization
# ---------------------------------------------------------------------------

def randomize_options(
    options: list[str],
    correct_indices: set[int] | list[int],
    rng: random.Random | None = None,
) -> tuple[list[str], set[int]]:
    """
    Shuffle options and remap the correct-answer indices to the new order.

    A random permutation of ``range(len(options))`` is generated and applied
    to the options.  Each originally-correct index is then located by its
    *original position* in the permutation, never by string content, so
    duplicate option strings keep the correct number of correct answers.

    Uses ``rng`` (an isolated ``random.Random``) when supplied rather than
    the global ``random`` state, so a seeded caller gets a reproducible
    order without side effects on other code.

    Args:
        options: Option strings in their original order.
        correct_indices: Positions in ``options`` that are correct answers.
        rng: Optional random number generator.

    Returns:
        Tuple of (shuffled options, correct indices into the shuffled list).

    Raises:
        ValueError: If any correct index is outside ``range(len(options))``.
    """
    out_of_range = sorted(i for i in correct_indices if not 0 <= i < len(options))
    if out_of_range:
        raise ValueError(
            f"Correct indices {out_of_range} out of range for {len(options)} options"
        )

    rng = rng or random.Random()
    permutation = list(range(len(options)))
    rng.shuffle(permutation)

    shuffled = [options[original] for original in permutation]
    new_position = {original: position for position, original in enumerate(permutation)}
    new_correct = {new_position[original] for original in correct_indices}

    return shuffled, new_correct


# ---------------------------------------------------------------------------
# Sanitization
# ---------------------------------------------------------------------------

LABEL_ONLY_OPTIONS: frozenset[str] = frozenset({
    "a", "b", "c", "d",
    "1", "2", "3", "4",
    "option a", "option b", "option c", "option d",
    "option 1", "option 2", "option 3", "option 4",
})

# Order matters: the first matching pattern is stripped.
LABEL_PREFIX_PATTERNS: list[re.Pattern] = [
    # A. / A) / A: / A- / (A) prefixes
    re.compile(r"^\s*\(?\s*([A-Da-d]|[1-4])\s*\)?\s*[.:\-)]\s*"),
    # Option A: / Option 1) prefixes
    re.compile(r"^\s*option\s*([A-Da-d]|[1-4])\s*[.:\-)]\s*", re.IGNORECASE),
    # Option A <text> without punctuation
    re.compile(r"^\s*option\s*([A-Da-d]|[1-4])\s+", re.IGNORECASE),
]


def _strip_leading_label(text: str) -> str:
    for pattern in LABEL_PREFIX_PATTERNS:
        match = pattern.match(text)
        if match:
            return text[match.end():].strip()
    return text


def sanitize_option(option: str) -> str:
    """
    Remove leading answer labels such as ``"B) "`` or ``"Option 2: "``.

    At most two passes are made, which handles doubled labels like
    ``"A. Option A: text"`` without eating into genuine content.
    """
    output = option.strip()
    previous = None
    passes = 0
    while output != previous and passes < 2:
        previous = output
        output = _strip_leading_label(output)
        passes += 1
    return output.strip()


def sanitize_options(options: list[str]) -> list[str]:
    """Apply :func:`sanitize_option` to every option, preserving order."""
    return [sanitize_option(option) for option in options]


def _normalize(option: str) -> str:
    return re.sub(r"\s+", " ", option.lower().strip())


def first_invalid_reason(options: list[str]) -> str | None:
    """
    Report why an option list is unusable, or ``None`` if it is fine.

    Returns:
        ``"empty option after sanitization"`` or
        ``"label-only option '<option>'"`` for the first offending option.
    """
    for option in options:
        normalized = _normalize(option)
        if not normalized:
            return "empty option after sanitization"
        if normalized in LABEL_ONLY_OPTIONS:
            return f"label-only option '{option}'"
    return None
