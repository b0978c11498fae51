"""
src/practice - question preparation and answer evaluation.

Module layout
-------------
options.py     - option randomization with correct-index remapping, label cleanup
evaluation.py  - open-ended answer grading and heuristic guards
questions.py   - multiple-choice question generation (parse, check, shuffle)
"""

from .evaluation import (
    EvaluationError,
    evaluate_open_ended_answer,
    is_low_content,
    is_meta_gaming,
    parse_open_ended_evaluation,
)
from .options import first_invalid_reason, randomize_options, sanitize_options
from .questions import generate_mcq, parse_mcq

__all__ = [
    # Options
    "randomize_options",
    "sanitize_options",
    "first_invalid_reason",
    # Evaluation
    "evaluate_open_ended_answer",
    "parse_open_ended_evaluation",
    "is_low_content",
    "is_meta_gaming",
    "EvaluationError",
    # Questions
    "generate_mcq",
    "parse_mcq",
]
